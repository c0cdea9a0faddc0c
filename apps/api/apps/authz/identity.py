"""
Identity context: who is calling.

Identity is always resolved here and passed explicitly into the role gate
and the resource access evaluator.
"""
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError


def resolve_identity(session_token):
    """
    Resolve a JWT access token to a User.

    Args:
        session_token: Raw access token string (no "Bearer " prefix)

    Returns:
        User instance, or None when the token is missing, malformed,
        expired, or references a user that no longer exists.
    """
    if not session_token:
        return None

    authentication = JWTAuthentication()
    try:
        validated_token = authentication.get_validated_token(session_token)
        return authentication.get_user(validated_token)
    except (InvalidToken, TokenError, AuthenticationFailed):
        return None


def identity_from_request(request):
    """The authenticated DRF request user, or None for anonymous requests."""
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        return None
    return user
