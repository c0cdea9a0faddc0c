"""
Authz views: session lifecycle, current user, role gate evaluation and
account status administration.
"""
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from apps.authz.gate import authorize_session
from apps.authz.models import RoleChoices
from apps.authz.permission_table import Action
from apps.authz.permissions import ActionPermission, RoleGatePermission
from apps.authz.serializers import (
    AuthorizeRequestSerializer,
    CurrentUserSerializer,
    LogoutSerializer,
    UserStatusSerializer,
)
from apps.authz.services import set_user_status
from apps.core.observability import log_domain_event


class LogoutView(APIView):
    """
    POST /api/v1/auth/logout/ - Blacklist the caller's refresh token.

    Only requires a valid access token so suspended users can still end
    their own session.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(request=LogoutSerializer, responses={205: None})
    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            token = RefreshToken(serializer.validated_data['refresh'])
            if str(token.get('user_id')) != str(request.user.pk):
                return Response(
                    {'success': False, 'error_code': 'INVALID_TOKEN', 'message': 'Token does not belong to caller.'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            token.blacklist()
        except TokenError:
            return Response(
                {'success': False, 'error_code': 'INVALID_TOKEN', 'message': 'Token is invalid or expired.'},
                status=status.HTTP_400_BAD_REQUEST
            )

        log_domain_event('user_logout', entity_type='User', entity_id=str(request.user.pk))
        return Response(status=status.HTTP_205_RESET_CONTENT)


class CurrentUserView(APIView):
    """
    GET /api/v1/auth/me/ - Profile of the authenticated caller.

    Runs through the role gate (any role), so suspended accounts are
    rejected and patients get their profile initialized on first call.

    Response format:
    {
        "id": "uuid",
        "email": "user@example.com",
        "role": "patient",
        "status": "active",
        "permissions": ["view_own_appointments", ...],
        "landing_page": "/patient/dashboard",
        "profile_incomplete": true
    }
    """
    permission_classes = [RoleGatePermission]

    @extend_schema(responses=CurrentUserSerializer)
    def get(self, request):
        data = CurrentUserSerializer(request.user).data
        decision = request.gate_decision
        data['landing_page'] = decision.landing_page
        data['profile_incomplete'] = decision.profile_incomplete
        return Response(data)


class AuthorizeView(APIView):
    """
    POST /api/v1/auth/authorize/ - Evaluate the role gate for a session token.

    The token comes from the body (`session_token`) or the Authorization
    header. Allowed decisions return 200 with the decision; denials are
    rendered by the exception handler (401/403).
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(request=AuthorizeRequestSerializer)
    def post(self, request):
        serializer = AuthorizeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session_token = serializer.validated_data['session_token'] or _bearer_token(request)
        decision = authorize_session(
            session_token,
            required_roles=serializer.validated_data['required_roles'],
            require_complete_profile=serializer.validated_data['require_complete_profile'],
        )
        decision.raise_for_denial()
        return Response(decision.as_dict())


class UserStatusView(APIView):
    """
    POST /api/v1/auth/users/{id}/status/ - Change account status (admin).

    RBAC:
    - Admin: allowed (manage_users)
    - Staff/Patient: 403 ROLE_MISMATCH
    """
    permission_classes = [RoleGatePermission, ActionPermission]
    required_roles = (RoleChoices.ADMIN,)
    permission_action = Action.MANAGE_USERS

    @extend_schema(request=UserStatusSerializer, responses=CurrentUserSerializer)
    def post(self, request, pk):
        serializer = UserStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = set_user_status(
            request.user,
            pk,
            serializer.validated_data['status'],
            reason=serializer.validated_data['reason'],
        )
        return Response(CurrentUserSerializer(user).data)


def _bearer_token(request):
    header = request.META.get('HTTP_AUTHORIZATION', '')
    parts = header.split()
    if len(parts) == 2 and parts[0] == 'Bearer':
        return parts[1]
    return None
