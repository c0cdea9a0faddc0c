"""
Session termination primitive.

A session is a simplejwt refresh token; terminating it blacklists the
token so it can no longer mint access tokens.
"""
from django.conf import settings
from django.utils.module_loading import import_string
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken


def terminate_user_sessions(user):
    """
    Blacklist every outstanding refresh token of `user`.

    Returns:
        Number of tokens newly blacklisted
    """
    outstanding = OutstandingToken.objects.filter(
        user=user,
        blacklistedtoken__isnull=True
    )
    terminated = 0
    for token in outstanding:
        _, created = BlacklistedToken.objects.get_or_create(token=token)
        if created:
            terminated += 1
    return terminated


def get_session_terminator():
    """The callable configured in settings.SESSION_TERMINATOR."""
    return import_string(settings.SESSION_TERMINATOR)
