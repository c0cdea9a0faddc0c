# Generated migration for core app: audit_log

import uuid
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('actor_id', models.UUIDField(blank=True, null=True)),
                ('actor_role', models.CharField(blank=True, default='', max_length=20)),
                ('action', models.CharField(max_length=64)),
                ('target_collection', models.CharField(blank=True, default='', max_length=64)),
                ('target_id', models.CharField(blank=True, default='', max_length=64)),
                ('detail', models.JSONField(blank=True, default=dict)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'verbose_name': 'Audit Log',
                'verbose_name_plural': 'Audit Logs',
                'db_table': 'audit_log',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['timestamp'], name='idx_audit_log_timestamp'),
                    models.Index(fields=['actor_id'], name='idx_audit_log_actor'),
                    models.Index(fields=['action'], name='idx_audit_log_action'),
                    models.Index(fields=['target_collection', 'target_id'], name='idx_audit_log_target'),
                ],
            },
        ),
    ]
