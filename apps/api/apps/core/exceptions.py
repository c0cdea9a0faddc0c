"""
Domain error taxonomy for authorization and appointment lifecycle.

Every error carries a stable error_code, an HTTP status used by the DRF
exception handler, a human-readable message and a retryable flag.
"""
from django.db import models
from rest_framework import status


class DenialReason(models.TextChoices):
    """Why a caller was refused."""
    ROLE_MISMATCH = 'role_mismatch', 'Role Mismatch'
    ACCOUNT_SUSPENDED = 'account_suspended', 'Account Suspended'
    STAFF_PROFILE_INCOMPLETE = 'staff_profile_incomplete', 'Staff Profile Incomplete'
    LICENSE_MISSING = 'license_missing', 'License Missing'
    LICENSE_EXPIRED = 'license_expired', 'License Expired'
    RESOURCE_ACCESS_DENIED = 'resource_access_denied', 'Resource Access Denied'
    INVALID_TRANSITION = 'invalid_transition', 'Invalid Transition'
    CANCELLATION_WINDOW_CLOSED = 'cancellation_window_closed', 'Cancellation Window Closed'
    SLOT_CONFLICT = 'slot_conflict', 'Slot Conflict'


DENIAL_MESSAGES = {
    DenialReason.ROLE_MISMATCH: 'You do not have permission to access that page.',
    DenialReason.ACCOUNT_SUSPENDED: 'Your account has been suspended. Please contact administrator.',
    DenialReason.STAFF_PROFILE_INCOMPLETE: 'Staff profile incomplete. Please contact administrator.',
    DenialReason.LICENSE_MISSING: 'Dental license required. Please contact administrator.',
    DenialReason.LICENSE_EXPIRED: 'Your dental license has expired. Please contact administrator.',
    DenialReason.RESOURCE_ACCESS_DENIED: 'Access denied.',
    DenialReason.INVALID_TRANSITION: 'The appointment cannot move to the requested status.',
    DenialReason.CANCELLATION_WINDOW_CLOSED: 'The cancellation window for this appointment has closed.',
    DenialReason.SLOT_CONFLICT: 'The requested time slot is not available.',
}


class DomainError(Exception):
    """Base class for errors rendered by the clinic exception handler."""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = 'DOMAIN_ERROR'
    default_message = 'Request could not be processed.'
    retryable = False

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_dict(self):
        payload = {
            'success': False,
            'error_code': self.error_code,
            'message': self.message,
            'retryable': self.retryable,
        }
        payload.update(self.details)
        return payload


class Unauthenticated(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = 'UNAUTHENTICATED'
    default_message = 'Authentication required'


class Forbidden(DomainError):
    """
    The caller is known but may not perform the operation.

    `reason` is one of DenialReason; the message defaults to the reason's
    fixed text so two reasons never share a message.
    """
    status_code = status.HTTP_403_FORBIDDEN
    default_reason = DenialReason.RESOURCE_ACCESS_DENIED

    def __init__(self, reason=None, message=None, **details):
        self.reason = DenialReason(reason or self.default_reason)
        super().__init__(message or DENIAL_MESSAGES[self.reason], **details)

    @property
    def error_code(self):
        return self.reason.value.upper()

    def as_dict(self):
        payload = super().as_dict()
        payload['reason'] = self.reason.value
        return payload


class InvalidTransition(Forbidden):
    """Requested action is not legal from the appointment's current state."""
    status_code = status.HTTP_409_CONFLICT
    default_reason = DenialReason.INVALID_TRANSITION

    def __init__(self, current_state, action, target_state=None, rule='', message=None):
        self.current_state = current_state
        self.action = action
        self.target_state = target_state
        self.rule = rule
        super().__init__(
            message=message,
            current_state=current_state,
            action=action,
            target_state=target_state,
            rule=rule,
        )


class CancellationWindowClosed(Forbidden):
    default_reason = DenialReason.CANCELLATION_WINDOW_CLOSED

    def __init__(self, cutoff_hours, hours_until_start, message=None):
        self.cutoff_hours = cutoff_hours
        self.hours_until_start = hours_until_start
        super().__init__(
            message=message,
            cutoff_hours=cutoff_hours,
            hours_until_start=round(hours_until_start, 2),
        )


class SlotConflict(Forbidden):
    """Slot is taken; the caller may retry with another slot."""
    status_code = status.HTTP_409_CONFLICT
    default_reason = DenialReason.SLOT_CONFLICT
    retryable = True

    def __init__(self, conflict=None, message=None):
        self.conflict = conflict
        details = conflict.as_dict() if conflict is not None else {}
        super().__init__(message=message, **details)


class InvalidRole(DomainError):
    """A referenced user does not hold the role the operation needs."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = 'INVALID_ROLE'
    default_message = 'Invalid role specified'

    def __init__(self, field, expected_role, actual_role=None, message=None):
        super().__init__(
            message=message or f'{field} must be an active {expected_role}.',
            field=field,
            expected_role=expected_role,
            actual_role=actual_role,
        )
