"""
Audit sink.

The authorization and lifecycle code only ever talks to an AuditWriter.
Which writer is used is decided by settings.AUDIT_WRITER (dotted path).
"""
from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

from apps.core.observability import metrics
from apps.core.observability.logging import sanitize_dict


class AuditWriter:
    """
    Contract for audit storage.

    Implementations must be append-only. Errors propagate to the caller so
    that a mutation whose audit entry could not be written is rolled back.
    """

    def write(self, actor_id, actor_role, action, target_id, detail=None,
              target_collection='', timestamp=None):
        raise NotImplementedError


class DatabaseAuditWriter(AuditWriter):
    """Writes audit entries to the audit_log table."""

    def write(self, actor_id, actor_role, action, target_id, detail=None,
              target_collection='', timestamp=None):
        from apps.core.models import AuditLog

        entry = AuditLog.objects.create(
            actor_id=actor_id,
            actor_role=actor_role or '',
            action=action,
            target_collection=target_collection or '',
            target_id=str(target_id) if target_id is not None else '',
            detail=sanitize_dict(detail or {}),
            timestamp=timestamp or timezone.now(),
        )
        metrics.audit_entries_total.labels(action=action).inc()
        return entry


def get_audit_writer():
    """Instantiate the writer configured in settings.AUDIT_WRITER."""
    writer_class = import_string(settings.AUDIT_WRITER)
    return writer_class()


def audit(actor, action, target, detail=None, target_collection=None):
    """
    Write one audit entry for a user-initiated action.

    Args:
        actor: User performing the action (None for system actions)
        action: Machine name of the action
        target: Model instance or raw id the action applies to
        detail: JSON-serializable dict
        target_collection: Overrides the collection derived from the target

    Returns:
        Whatever the configured writer returns
    """
    if hasattr(target, 'pk'):
        target_id = target.pk
        collection = target_collection or target._meta.db_table
    else:
        target_id = target
        collection = target_collection or ''

    return get_audit_writer().write(
        actor_id=actor.pk if actor is not None else None,
        actor_role=getattr(actor, 'role', '') if actor is not None else '',
        action=action,
        target_id=target_id,
        detail=detail,
        target_collection=collection,
    )
