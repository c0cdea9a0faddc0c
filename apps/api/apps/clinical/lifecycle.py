"""
Appointment state machine.

    scheduled -> confirmed -> checked_in -> in_progress -> completed
        |            |            |
        +------------+--> cancelled (scheduled/confirmed only)
        +------------+------------+--> no_show (after scheduled start)

completed, cancelled and no_show are terminal. The machine never coerces:
every (state, action) pair outside the table raises InvalidTransition.
"""
from types import MappingProxyType

from django.conf import settings
from django.db import models
from django.utils import timezone

from apps.authz.models import RoleChoices
from apps.authz.permission_table import Action
from apps.clinical.models import AppointmentStatusChoices, TERMINAL_STATUSES
from apps.core.exceptions import CancellationWindowClosed, InvalidTransition

S = AppointmentStatusChoices


class LifecycleAction(models.TextChoices):
    CONFIRM = 'confirm', 'Confirm'
    CHECK_IN = 'check_in', 'Check In'
    START = 'start', 'Start'
    COMPLETE = 'complete', 'Complete'
    CANCEL = 'cancel', 'Cancel'
    NO_SHOW = 'no_show', 'No Show'


# action -> (legal source states, target state)
TRANSITIONS = MappingProxyType({
    LifecycleAction.CONFIRM: ((S.SCHEDULED,), S.CONFIRMED),
    LifecycleAction.CHECK_IN: ((S.CONFIRMED,), S.CHECKED_IN),
    LifecycleAction.START: ((S.CHECKED_IN,), S.IN_PROGRESS),
    LifecycleAction.COMPLETE: ((S.IN_PROGRESS, S.CHECKED_IN), S.COMPLETED),
    LifecycleAction.CANCEL: ((S.SCHEDULED, S.CONFIRMED), S.CANCELLED),
    LifecycleAction.NO_SHOW: ((S.SCHEDULED, S.CONFIRMED, S.CHECKED_IN), S.NO_SHOW),
})

# action -> (permission for admin/staff, permission for the owning patient)
ACTION_PERMISSIONS = MappingProxyType({
    LifecycleAction.CONFIRM: (Action.CONFIRM_APPOINTMENTS, Action.CONFIRM_OWN_APPOINTMENTS),
    LifecycleAction.CHECK_IN: (Action.CHECK_IN_APPOINTMENTS, None),
    LifecycleAction.START: (Action.START_APPOINTMENTS, None),
    LifecycleAction.COMPLETE: (Action.COMPLETE_APPOINTMENTS, None),
    LifecycleAction.CANCEL: (Action.CANCEL_APPOINTMENTS, Action.CANCEL_OWN_APPOINTMENTS),
    LifecycleAction.NO_SHOW: (Action.MARK_NO_SHOW, None),
})


def required_permission(action, role):
    """Permission-table action a caller of `role` needs for a lifecycle action."""
    try:
        clinic_permission, own_permission = ACTION_PERMISSIONS[LifecycleAction(action)]
    except ValueError:
        return None
    if role == RoleChoices.PATIENT:
        return own_permission
    return clinic_permission


class AppointmentStateMachine:
    """
    Pure transition function plus the time-based rules around it.

    Policy values default to settings and can be overridden per instance;
    `now` is a zero-argument callable returning an aware datetime.
    """

    def __init__(self, now=None, cutoff_hours=None, staff_cancellation_override=None,
                 complete_from_checked_in=None):
        self.now = now or timezone.now
        self.cutoff_hours = (
            settings.APPOINTMENT_CANCELLATION_CUTOFF_HOURS
            if cutoff_hours is None else cutoff_hours
        )
        self.staff_cancellation_override = (
            settings.APPOINTMENT_STAFF_CANCELLATION_OVERRIDE
            if staff_cancellation_override is None else staff_cancellation_override
        )
        self.complete_from_checked_in = (
            settings.APPOINTMENT_COMPLETE_FROM_CHECKED_IN
            if complete_from_checked_in is None else complete_from_checked_in
        )

    def next_state(self, current_state, action):
        """
        Target state of `action` from `current_state`.

        Raises:
            InvalidTransition: for every pair outside the transition table
        """
        try:
            action = LifecycleAction(action)
        except ValueError:
            raise InvalidTransition(current_state, action, rule='unknown_action')

        sources, target = TRANSITIONS[action]

        if current_state in TERMINAL_STATUSES:
            raise InvalidTransition(current_state, action.value, target.value, rule='terminal_state')

        if (action == LifecycleAction.COMPLETE
                and current_state == S.CHECKED_IN
                and not self.complete_from_checked_in):
            raise InvalidTransition(
                current_state, action.value, target.value, rule='complete_requires_in_progress'
            )

        if current_state not in sources:
            raise InvalidTransition(
                current_state, action.value, target.value, rule='illegal_source_state'
            )

        return target

    def hours_until_start(self, appointment):
        return (appointment.start_datetime - self.now()).total_seconds() / 3600

    def check_cancellation_window(self, appointment, actor_role):
        """
        Raise CancellationWindowClosed unless the start is more than the
        cutoff away. Admin/staff skip the check while the override is on.
        """
        if actor_role in (RoleChoices.ADMIN, RoleChoices.STAFF) and self.staff_cancellation_override:
            return
        remaining = self.hours_until_start(appointment)
        if remaining <= self.cutoff_hours:
            raise CancellationWindowClosed(self.cutoff_hours, remaining)

    def apply(self, appointment, action, actor_role, reason='', notes=''):
        """
        Move `appointment` through `action` in memory (caller saves).

        Args:
            appointment: Appointment instance
            action: LifecycleAction value
            actor_role: Role of the user requesting the transition
            reason: Cancellation reason
            notes: Completion notes

        Returns:
            (from_status, to_status)

        Raises:
            InvalidTransition: illegal pair, or no_show before the start
            CancellationWindowClosed: cancel inside the cutoff
        """
        from_status = appointment.status
        target = self.next_state(from_status, action)
        action = LifecycleAction(action)

        if action == LifecycleAction.NO_SHOW and self.now() < appointment.start_datetime:
            raise InvalidTransition(
                from_status, action.value, target.value, rule='no_show_before_start'
            )

        if action == LifecycleAction.CANCEL:
            self.check_cancellation_window(appointment, actor_role)
            appointment.cancellation_reason = reason or ''
            if reason:
                appointment.append_note(f"Cancelled: {reason}")

        if action == LifecycleAction.CHECK_IN:
            appointment.checked_in_at = self.now()

        if action == LifecycleAction.COMPLETE and notes:
            appointment.append_note(f"Completed: {notes}")

        appointment.status = target
        return from_status, target
