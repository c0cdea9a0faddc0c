"""
Role gate: the single place that decides whether a caller may enter a
role-restricted operation.

Evaluation order:
1. No caller                       -> Unauthenticated
2. status != active                -> Forbidden(account_suspended), sessions terminated
3. role not in required roles      -> Forbidden(role_mismatch), with landing page
4. staff, complete profile needed  -> staff_profile_incomplete / license_missing / license_expired
5. patient                         -> patient profile initialized, incompleteness reported
6. otherwise                       -> allowed
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple

from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

from apps.authz.identity import resolve_identity
from apps.authz.models import RoleChoices, UserStatusChoices
from apps.authz.sessions import get_session_terminator
from apps.core.audit import get_audit_writer
from apps.core.exceptions import DenialReason, Forbidden, Unauthenticated
from apps.core.observability import metrics
from apps.core.observability.correlation import bind_user
from apps.core.observability.events import log_authorization_denied, log_forced_logout


LANDING_PAGES = {
    RoleChoices.ADMIN: '/admin/dashboard',
    RoleChoices.STAFF: '/staff/dashboard',
    RoleChoices.PATIENT: '/patient/dashboard',
}


def landing_page_for(role):
    return LANDING_PAGES.get(role, '/dashboard')


@dataclass(frozen=True)
class Decision:
    """Outcome of one role gate evaluation."""
    allowed: bool
    caller: object = None
    reason: Optional[DenialReason] = None
    required_roles: Tuple[str, ...] = ()
    caller_role: Optional[str] = None
    landing_page: Optional[str] = None
    profile_incomplete: bool = False
    detail: dict = field(default_factory=dict)

    @property
    def is_unauthenticated(self):
        return not self.allowed and self.caller is None

    def raise_for_denial(self):
        """Raise the typed exception for a denial; no-op when allowed."""
        if self.allowed:
            return
        if self.caller is None:
            raise Unauthenticated()

        extra = dict(self.detail)
        if self.reason == DenialReason.ROLE_MISMATCH:
            extra.update(
                required_role=list(self.required_roles),
                user_role=self.caller_role,
                redirect_to=self.landing_page,
            )
        raise Forbidden(self.reason, **extra)

    def as_dict(self):
        return {
            'allowed': self.allowed,
            'reason': self.reason.value if self.reason else None,
            'required_roles': list(self.required_roles),
            'caller_role': self.caller_role,
            'landing_page': self.landing_page,
            'profile_incomplete': self.profile_incomplete,
            'detail': self.detail,
        }


class RoleGate:
    """
    Stateless role/status/profile evaluator.

    Collaborators (session terminator, audit writer, patient profile
    initializer) default to the ones configured in settings and can be
    injected for tests.
    """

    def __init__(self, session_terminator=None, audit_writer=None, profile_initializer=None):
        self.session_terminator = session_terminator or get_session_terminator()
        self.audit_writer = audit_writer or get_audit_writer()
        self.profile_initializer = profile_initializer or import_string(
            settings.PATIENT_PROFILE_INITIALIZER
        )

    def authorize(self, caller, required_roles=(), require_complete_profile=False):
        required_roles = tuple(str(role) for role in required_roles)

        if caller is None:
            metrics.authorization_decisions_total.labels(
                outcome='unauthenticated', reason='-'
            ).inc()
            return Decision(allowed=False, required_roles=required_roles)

        bind_user(caller)

        if caller.status != UserStatusChoices.ACTIVE:
            return self._deny_inactive(caller, required_roles)

        if required_roles and caller.role not in required_roles:
            return self._deny(
                caller,
                DenialReason.ROLE_MISMATCH,
                required_roles,
                landing_page=landing_page_for(caller.role),
            )

        if caller.role == RoleChoices.STAFF and require_complete_profile:
            denial = self._check_staff_profile(caller, required_roles)
            if denial is not None:
                return denial

        profile_incomplete = False
        if caller.role == RoleChoices.PATIENT:
            profile = self.profile_initializer(caller)
            profile_incomplete = profile.is_incomplete

        metrics.authorization_decisions_total.labels(outcome='allowed', reason='-').inc()
        return Decision(
            allowed=True,
            caller=caller,
            required_roles=required_roles,
            caller_role=caller.role,
            landing_page=landing_page_for(caller.role),
            profile_incomplete=profile_incomplete,
        )

    def _check_staff_profile(self, caller, required_roles):
        if not caller.employee_id:
            return self._deny(
                caller, DenialReason.STAFF_PROFILE_INCOMPLETE, required_roles,
                detail={'missing_field': 'employee_id'},
            )
        if not caller.position:
            return self._deny(
                caller, DenialReason.STAFF_PROFILE_INCOMPLETE, required_roles,
                detail={'missing_field': 'position'},
            )
        if caller.position in settings.LICENSED_STAFF_POSITIONS:
            if not caller.license_number:
                return self._deny(caller, DenialReason.LICENSE_MISSING, required_roles)
            if caller.license_expiry is not None and caller.license_expiry <= timezone.localdate():
                return self._deny(
                    caller, DenialReason.LICENSE_EXPIRED, required_roles,
                    detail={'license_expiry': caller.license_expiry.isoformat()},
                )
        return None

    def _deny_inactive(self, caller, required_roles):
        self.audit_writer.write(
            actor_id=caller.pk,
            actor_role=caller.role,
            action='access_denied_account_suspended',
            target_id=caller.pk,
            detail={'status': caller.status, 'required_roles': list(required_roles)},
            target_collection='auth_user',
        )
        terminated = self.session_terminator(caller)
        self.audit_writer.write(
            actor_id=caller.pk,
            actor_role=caller.role,
            action='forced_logout',
            target_id=caller.pk,
            detail={'status': caller.status, 'terminated_sessions': terminated},
            target_collection='auth_user',
        )
        metrics.forced_logouts_total.inc()
        log_forced_logout(caller, terminated)
        return self._deny(caller, DenialReason.ACCOUNT_SUSPENDED, required_roles)

    def _deny(self, caller, reason, required_roles, landing_page=None, detail=None):
        metrics.authorization_decisions_total.labels(outcome='denied', reason=reason.value).inc()
        log_authorization_denied(
            caller,
            reason.value,
            caller_role=caller.role,
            required_roles=list(required_roles),
        )
        return Decision(
            allowed=False,
            caller=caller,
            reason=reason,
            required_roles=required_roles,
            caller_role=caller.role,
            landing_page=landing_page,
            detail=detail or {},
        )


def authorize_session(session_token, required_roles=(), require_complete_profile=False, gate=None):
    """
    Resolve the session token and run the role gate.

    Args:
        session_token: Raw JWT access token (may be None)
        required_roles: Roles allowed into the operation; empty means any role
        require_complete_profile: Enforce staff profile and license checks
        gate: RoleGate to use (defaults to one built from settings)

    Returns:
        Decision
    """
    caller = resolve_identity(session_token)
    gate = gate or RoleGate()
    return gate.authorize(
        caller,
        required_roles=required_roles,
        require_complete_profile=require_complete_profile,
    )
