from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'name', 'role', 'status', 'position', 'is_staff', 'created_at']
    list_filter = ['role', 'status', 'position', 'is_staff']
    search_fields = ['email', 'name', 'employee_id']
    readonly_fields = ['id', 'created_at', 'updated_at', 'last_login']

    fieldsets = (
        (None, {'fields': ('id', 'email', 'password')}),
        ('Personal Info', {'fields': ('name', 'phone')}),
        ('Clinic Role', {'fields': ('role', 'status')}),
        ('Staff Profile', {'fields': ('employee_id', 'position', 'license_number', 'license_expiry')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Important dates', {'fields': ('last_login', 'created_at', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2', 'name', 'role', 'status'),
        }),
    )

    ordering = ['email']
