"""
Tests for the appointment state machine (no database).

Test Coverage:
1. Transition function is total over (state, action)
2. Cancellation cutoff: patients never bypass it, staff/admin do by default
3. no_show only after the scheduled start
4. Side effects: checked_in_at, cancellation reason, completion notes
"""
from datetime import date, datetime, time, timedelta

import pytest
from django.utils import timezone

from apps.authz.models import RoleChoices
from apps.clinical.lifecycle import TRANSITIONS, AppointmentStateMachine, LifecycleAction
from apps.clinical.models import Appointment, AppointmentStatusChoices
from apps.core.exceptions import CancellationWindowClosed, InvalidTransition

NOW = timezone.make_aware(datetime(2025, 3, 10, 8, 0))

LEGAL = {
    ('scheduled', 'confirm'): 'confirmed',
    ('confirmed', 'check_in'): 'checked_in',
    ('checked_in', 'start'): 'in_progress',
    ('in_progress', 'complete'): 'completed',
    ('checked_in', 'complete'): 'completed',
    ('scheduled', 'cancel'): 'cancelled',
    ('confirmed', 'cancel'): 'cancelled',
    ('scheduled', 'no_show'): 'no_show',
    ('confirmed', 'no_show'): 'no_show',
    ('checked_in', 'no_show'): 'no_show',
}


def machine(now=NOW, **policy):
    return AppointmentStateMachine(now=lambda: now, **policy)


def appointment_at(start, status=AppointmentStatusChoices.SCHEDULED, notes=''):
    local = timezone.localtime(start)
    return Appointment(
        date=local.date(),
        time=local.time().replace(second=0, microsecond=0),
        duration_minutes=30,
        status=status,
        notes=notes,
    )


class TestTransitionTable:

    @pytest.mark.parametrize('state', AppointmentStatusChoices.values)
    @pytest.mark.parametrize('action', LifecycleAction.values + ['archive', ''])
    def test_transition_function_is_total(self, state, action):
        expected = LEGAL.get((state, action))

        if expected is not None:
            assert machine().next_state(state, action) == expected
        else:
            with pytest.raises(InvalidTransition) as exc_info:
                machine().next_state(state, action)
            error = exc_info.value
            assert error.current_state == state
            assert error.rule
            assert error.status_code == 409

    def test_table_matches_documented_transitions(self):
        derived = {
            (str(source), str(action)): str(target)
            for action, (sources, target) in TRANSITIONS.items()
            for source in sources
        }
        assert derived == LEGAL

    @pytest.mark.parametrize('state', ['completed', 'cancelled', 'no_show'])
    def test_terminal_states_report_rule(self, state):
        with pytest.raises(InvalidTransition) as exc_info:
            machine().next_state(state, 'confirm')
        assert exc_info.value.rule == 'terminal_state'
        assert exc_info.value.as_dict()['current_state'] == state

    def test_unknown_action_rule(self):
        with pytest.raises(InvalidTransition) as exc_info:
            machine().next_state('scheduled', 'teleport')
        assert exc_info.value.rule == 'unknown_action'
        assert exc_info.value.action == 'teleport'

    def test_illegal_source_carries_target(self):
        with pytest.raises(InvalidTransition) as exc_info:
            machine().next_state('scheduled', 'start')
        assert exc_info.value.rule == 'illegal_source_state'
        assert exc_info.value.target_state == 'in_progress'

    def test_complete_from_checked_in_can_be_disabled(self):
        strict = machine(complete_from_checked_in=False)

        with pytest.raises(InvalidTransition) as exc_info:
            strict.next_state('checked_in', 'complete')

        assert exc_info.value.rule == 'complete_requires_in_progress'
        assert strict.next_state('in_progress', 'complete') == 'completed'


class TestCancellationWindow:

    def test_patient_cannot_cancel_23_hours_ahead(self):
        appointment = appointment_at(NOW + timedelta(hours=23))

        with pytest.raises(CancellationWindowClosed) as exc_info:
            machine().apply(appointment, 'cancel', RoleChoices.PATIENT, reason='Busy')

        assert exc_info.value.status_code == 403
        assert exc_info.value.error_code == 'CANCELLATION_WINDOW_CLOSED'
        assert exc_info.value.as_dict()['cutoff_hours'] == 24
        assert appointment.status == 'scheduled'

    @pytest.mark.parametrize('role', [RoleChoices.STAFF, RoleChoices.ADMIN])
    def test_staff_and_admin_bypass_cutoff(self, role):
        appointment = appointment_at(NOW + timedelta(hours=23))

        assert machine().apply(appointment, 'cancel', role, reason='Dentist ill') == ('scheduled', 'cancelled')

    def test_exactly_at_cutoff_is_closed(self):
        appointment = appointment_at(NOW + timedelta(hours=24))

        with pytest.raises(CancellationWindowClosed):
            machine().apply(appointment, 'cancel', RoleChoices.PATIENT, reason='Busy')

    def test_patient_can_cancel_before_cutoff(self):
        appointment = appointment_at(NOW + timedelta(hours=25), status='confirmed')

        assert machine().apply(appointment, 'cancel', RoleChoices.PATIENT, reason='Busy') == ('confirmed', 'cancelled')

    def test_staff_override_can_be_disabled(self):
        appointment = appointment_at(NOW + timedelta(hours=23))

        with pytest.raises(CancellationWindowClosed):
            machine(staff_cancellation_override=False).apply(appointment, 'cancel', RoleChoices.STAFF)

    def test_cutoff_is_configurable(self):
        appointment = appointment_at(NOW + timedelta(hours=3))

        machine(cutoff_hours=2).apply(appointment, 'cancel', RoleChoices.PATIENT, reason='Busy')

        assert appointment.status == 'cancelled'

    def test_cancel_records_reason(self):
        appointment = appointment_at(NOW + timedelta(days=3), notes='Bring x-rays')

        machine().apply(appointment, 'cancel', RoleChoices.PATIENT, reason='Moving away')

        assert appointment.cancellation_reason == 'Moving away'
        assert appointment.notes == 'Bring x-rays\nCancelled: Moving away'

    def test_hours_until_start(self):
        appointment = appointment_at(NOW + timedelta(hours=30))
        assert machine().hours_until_start(appointment) == pytest.approx(30)


class TestTimeRules:

    def test_no_show_before_start_is_rejected(self):
        appointment = appointment_at(NOW + timedelta(minutes=30), status='confirmed')

        with pytest.raises(InvalidTransition) as exc_info:
            machine().apply(appointment, 'no_show', RoleChoices.STAFF)

        assert exc_info.value.rule == 'no_show_before_start'
        assert appointment.status == 'confirmed'

    def test_no_show_after_start(self):
        appointment = appointment_at(NOW - timedelta(minutes=15), status='confirmed')

        assert machine().apply(appointment, 'no_show', RoleChoices.STAFF) == ('confirmed', 'no_show')

    def test_check_in_sets_timestamp(self):
        appointment = appointment_at(NOW + timedelta(minutes=10), status='confirmed')

        machine().apply(appointment, 'check_in', RoleChoices.STAFF)

        assert appointment.status == 'checked_in'
        assert appointment.checked_in_at == NOW

    def test_complete_appends_notes(self):
        appointment = appointment_at(NOW - timedelta(minutes=30), status='in_progress')

        machine().apply(appointment, 'complete', RoleChoices.STAFF, notes='Filling on 36')

        assert appointment.status == 'completed'
        assert appointment.notes == 'Completed: Filling on 36'

    def test_start_datetime_uses_clinic_timezone(self):
        appointment = Appointment(date=date(2025, 3, 10), time=time(9, 30), duration_minutes=45)

        assert appointment.start_datetime == timezone.make_aware(datetime(2025, 3, 10, 9, 30))
        assert appointment.end_minutes == 9 * 60 + 75
