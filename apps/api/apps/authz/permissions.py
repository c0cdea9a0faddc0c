"""
DRF permission classes backed by the role gate and the permission table.

Views declare what they need:

    class AppointmentViewSet(viewsets.ModelViewSet):
        permission_classes = [RoleGatePermission, ActionPermission]
        required_roles = (RoleChoices.ADMIN, RoleChoices.STAFF)
        require_complete_profile = True
        permission_action = Action.VIEW_ALL_APPOINTMENTS

Either attribute can be replaced by a get_required_roles() /
get_permission_action() method for per-action rules. Denials raise the
typed domain errors so the clinic exception handler renders them.
"""
from rest_framework import permissions

from apps.authz.gate import RoleGate
from apps.authz.identity import identity_from_request
from apps.authz.permission_table import has_permission
from apps.core.exceptions import DenialReason, Forbidden


class RoleGatePermission(permissions.BasePermission):
    """
    Runs the role gate for every request.

    - Anonymous: 401 UNAUTHENTICATED
    - Non-active status: 403 ACCOUNT_SUSPENDED (sessions terminated)
    - Role not in view.required_roles: 403 ROLE_MISMATCH
    - Staff with incomplete profile/license (when required): 403
    - Patient: profile initialized; request.gate_decision.profile_incomplete set
    """

    def has_permission(self, request, view):
        if hasattr(view, 'get_required_roles'):
            required_roles = view.get_required_roles()
        else:
            required_roles = getattr(view, 'required_roles', ())
        require_complete_profile = getattr(view, 'require_complete_profile', False)

        decision = RoleGate().authorize(
            identity_from_request(request),
            required_roles=required_roles,
            require_complete_profile=require_complete_profile,
        )
        request.gate_decision = decision
        decision.raise_for_denial()
        return True


class ActionPermission(permissions.BasePermission):
    """
    Checks the permission table for the action declared by the view.

    Views without a declared action are not restricted here.
    """

    def has_permission(self, request, view):
        if hasattr(view, 'get_permission_action'):
            action = view.get_permission_action()
        else:
            action = getattr(view, 'permission_action', None)
        if action is None:
            return True

        user = identity_from_request(request)
        role = getattr(user, 'role', None)
        if not has_permission(role, action):
            raise Forbidden(DenialReason.ROLE_MISMATCH, required_permission=str(action), user_role=role)
        return True
