"""
Account administration services.
"""
from django.core.exceptions import ValidationError
from django.db import transaction
from django.shortcuts import get_object_or_404

from apps.authz.models import User, UserStatusChoices
from apps.authz.permission_table import Action, has_permission
from apps.authz.sessions import get_session_terminator
from apps.core.audit import audit
from apps.core.exceptions import DenialReason, Forbidden
from apps.core.observability import log_domain_event


def set_user_status(actor, user_id, status, reason=''):
    """
    Change a user's account status (admin only).

    Users are never deleted; deactivation and suspension go through here.
    Moving a user out of `active` terminates their sessions right away.

    Args:
        actor: Admin performing the change
        user_id: Target user id
        status: UserStatusChoices value
        reason: Free-text reason stored in the audit entry

    Returns:
        Updated User

    Raises:
        Forbidden: actor lacks manage_users
        ValidationError: admin tries to change their own status
    """
    if not has_permission(actor.role, Action.MANAGE_USERS):
        raise Forbidden(DenialReason.ROLE_MISMATCH, required_permission=Action.MANAGE_USERS.value)

    with transaction.atomic():
        user = get_object_or_404(User.objects.select_for_update(), pk=user_id)
        if user.pk == actor.pk:
            raise ValidationError({'status': 'You cannot change your own account status.'})

        previous = user.status
        user.status = status
        user.save(update_fields=['status', 'updated_at'])

        terminated = 0
        if status != UserStatusChoices.ACTIVE and previous == UserStatusChoices.ACTIVE:
            terminated = get_session_terminator()(user)

        audit(
            actor,
            'user_status_changed',
            user,
            detail={
                'from_status': previous,
                'to_status': status,
                'reason': reason or None,
                'terminated_sessions': terminated,
            },
        )

    log_domain_event(
        'user_status_changed',
        entity_type='User',
        entity_id=str(user.pk),
        from_status=previous,
        to_status=status,
    )
    return user
