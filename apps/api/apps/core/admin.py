from django.contrib import admin
from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['timestamp', 'action', 'actor_role', 'actor_id', 'target_collection', 'target_id']
    list_filter = ['action', 'actor_role', 'target_collection']
    search_fields = ['target_id', 'actor_id']
    readonly_fields = [
        'id', 'actor_id', 'actor_role', 'action',
        'target_collection', 'target_id', 'detail', 'timestamp',
    ]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
