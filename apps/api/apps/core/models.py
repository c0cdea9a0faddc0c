"""
Core models: audit_log
"""
import uuid
from django.db import models
from django.utils import timezone


class AuditLog(models.Model):
    """
    Append-only audit trail written by the default audit writer.

    BUSINESS RULE: Every account-suspension denial, forced logout,
    appointment creation, appointment transition and admin status change
    leaves one row here. Rows are never updated or deleted by the app.

    Fields:
    - id: UUID PK
    - actor_id: UUID of the acting user (null for system actions)
    - actor_role: role of the actor at the time of the action
    - action: machine name of the action (e.g. appointment_cancel)
    - target_collection: kind of target (user, appointment, schedule_window)
    - target_id: id of the target
    - detail: JSON payload (from/to status, reasons, ...)
    - timestamp: when the action happened
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor_id = models.UUIDField(blank=True, null=True)
    actor_role = models.CharField(max_length=20, blank=True, default='')
    action = models.CharField(max_length=64)
    target_collection = models.CharField(max_length=64, blank=True, default='')
    target_id = models.CharField(max_length=64, blank=True, default='')
    detail = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'audit_log'
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['timestamp'], name='idx_audit_log_timestamp'),
            models.Index(fields=['actor_id'], name='idx_audit_log_actor'),
            models.Index(fields=['action'], name='idx_audit_log_action'),
            models.Index(fields=['target_collection', 'target_id'], name='idx_audit_log_target'),
        ]

    def __str__(self):
        actor = str(self.actor_id)[:8] if self.actor_id else 'system'
        return f"{self.action} on {self.target_collection}[{self.target_id[:8]}] by {actor}"
