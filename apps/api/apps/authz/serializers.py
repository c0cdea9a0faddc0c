"""
Authz serializers: current user, gate evaluation, status changes, logout.
"""
from rest_framework import serializers

from apps.authz.models import RoleChoices, User, UserStatusChoices
from apps.authz.permission_table import permissions_for


class CurrentUserSerializer(serializers.ModelSerializer):
    """
    Serializer for GET /api/v1/auth/me/.

    Exposes role, status and the permission-table grants so the frontend
    can decide which screens to show. The backend stays the authority.
    """
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'name',
            'role',
            'status',
            'position',
            'permissions',
        ]
        read_only_fields = fields

    def get_permissions(self, obj):
        return sorted(str(action) for action in permissions_for(obj.role))


class AuthorizeRequestSerializer(serializers.Serializer):
    """Input of POST /api/v1/auth/authorize/."""
    session_token = serializers.CharField(required=False, allow_blank=True, default='')
    required_roles = serializers.ListField(
        child=serializers.ChoiceField(choices=RoleChoices.choices),
        required=False,
        default=list
    )
    require_complete_profile = serializers.BooleanField(required=False, default=False)


class UserStatusSerializer(serializers.Serializer):
    """Input of POST /api/v1/auth/users/{id}/status/."""
    status = serializers.ChoiceField(choices=UserStatusChoices.choices)
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField()
