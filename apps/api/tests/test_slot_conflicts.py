"""
Tests for the slot conflict resolver and free-slot calculation.
"""
from datetime import datetime, time, timedelta

import pytest
from django.utils import timezone

from apps.clinical.slots import (
    ConflictKind,
    available_slots,
    find_conflict,
    format_minutes,
    intervals_overlap,
    propose_slot,
)


class TestIntervals:

    def test_half_open_adjacency_does_not_overlap(self):
        assert intervals_overlap(600, 660, 660, 690) is False
        assert intervals_overlap(660, 690, 600, 660) is False

    def test_overlap_and_containment(self):
        assert intervals_overlap(600, 660, 630, 690) is True
        assert intervals_overlap(600, 720, 630, 660) is True

    def test_format_minutes(self):
        assert format_minutes(0) == '00:00'
        assert format_minutes(9 * 60 + 5) == '09:05'


@pytest.mark.django_db
class TestFindConflict:

    def test_free_slot_inside_window(self, dentist, patient_user, future_date, dentist_window):
        assert find_conflict(dentist.pk, patient_user.pk, future_date, time(9, 0), 30) is None

    def test_back_to_back_appointments_are_fine(self, dentist, patient_user, other_patient,
                                                future_date, dentist_window, make_appointment):
        make_appointment(patient_user, dentist, future_date, start=time(10, 0), duration_minutes=60)

        assert find_conflict(dentist.pk, other_patient.pk, future_date, time(11, 0), 30) is None
        assert find_conflict(dentist.pk, other_patient.pk, future_date, time(9, 30), 30) is None

    def test_doctor_busy_is_reported_before_patient_double_booking(
            self, dentist, patient_user, future_date, dentist_window, make_appointment):
        existing = make_appointment(patient_user, dentist, future_date, start=time(10, 0))

        conflict = find_conflict(dentist.pk, patient_user.pk, future_date, time(10, 15), 30)

        assert conflict.kind == ConflictKind.DOCTOR_BUSY
        assert conflict.conflicting_appointment_id == existing.pk
        assert conflict.as_dict() == {
            'conflict': 'doctor_busy',
            'date': future_date.isoformat(),
            'start_time': '10:15',
            'end_time': '10:45',
            'conflicting_appointment_id': str(existing.pk),
        }

    def test_patient_double_booked_with_other_doctor(self, dentist, other_dentist, patient_user,
                                                     future_date, dentist_window, make_appointment):
        existing = make_appointment(patient_user, other_dentist, future_date, start=time(10, 0))

        conflict = find_conflict(dentist.pk, patient_user.pk, future_date, time(10, 0), 30)

        assert conflict.kind == ConflictKind.PATIENT_DOUBLE_BOOKED
        assert conflict.conflicting_appointment_id == existing.pk

    def test_patient_conflict_before_availability(self, other_dentist, patient_user, future_date,
                                                  dentist, make_appointment):
        make_appointment(patient_user, dentist, future_date, start=time(10, 0))

        conflict = find_conflict(other_dentist.pk, patient_user.pk, future_date, time(10, 0), 30)

        assert conflict.kind == ConflictKind.PATIENT_DOUBLE_BOOKED

    @pytest.mark.parametrize('status', ['cancelled', 'no_show', 'completed'])
    def test_terminal_appointments_free_the_slot(self, dentist, patient_user, future_date,
                                                 dentist_window, make_appointment, status):
        make_appointment(patient_user, dentist, future_date, start=time(10, 0), status=status)

        assert find_conflict(dentist.pk, patient_user.pk, future_date, time(10, 0), 30) is None

    def test_no_window_means_outside_availability(self, dentist, patient_user, future_date):
        conflict = find_conflict(dentist.pk, patient_user.pk, future_date, time(10, 0), 30)

        assert conflict.kind == ConflictKind.OUTSIDE_AVAILABILITY
        assert conflict.conflicting_appointment_id is None

    def test_interval_must_fit_entirely_in_one_window(self, dentist, patient_user, future_date, make_window):
        make_window(dentist, future_date, time(9, 0), time(12, 0))
        make_window(dentist, future_date, time(13, 0), time(17, 0))

        assert find_conflict(dentist.pk, patient_user.pk, future_date, time(11, 30), 30) is None
        conflict = find_conflict(dentist.pk, patient_user.pk, future_date, time(11, 45), 30)
        assert conflict.kind == ConflictKind.OUTSIDE_AVAILABILITY

    def test_unavailable_window_is_ignored(self, dentist, patient_user, future_date, make_window):
        make_window(dentist, future_date, is_available=False)

        conflict = find_conflict(dentist.pk, patient_user.pk, future_date, time(10, 0), 30)

        assert conflict.kind == ConflictKind.OUTSIDE_AVAILABILITY

    def test_excluded_appointment_is_ignored(self, dentist, patient_user, future_date,
                                             dentist_window, make_appointment):
        existing = make_appointment(patient_user, dentist, future_date, start=time(10, 0))

        assert find_conflict(
            dentist.pk, patient_user.pk, future_date, time(10, 0), 30, exclude_appointment_id=existing.pk
        ) is None

    def test_propose_slot_is_read_only(self, dentist, patient_user, future_date, dentist_window):
        from apps.clinical.models import Appointment

        assert propose_slot(dentist.pk, patient_user.pk, future_date, time(10, 0), 30) is None
        assert not Appointment.objects.exists()


@pytest.mark.django_db
class TestAvailableSlots:

    def test_slots_skip_booked_interval(self, dentist, patient_user, future_date, make_window, make_appointment):
        make_window(dentist, future_date, time(9, 0), time(11, 0))
        make_appointment(patient_user, dentist, future_date, start=time(9, 30), duration_minutes=45)

        slots = available_slots(dentist.pk, future_date, duration_minutes=30)

        assert slots == [
            {'start': '09:00', 'end': '09:30'},
            {'start': '10:15', 'end': '10:45'},
        ]

    def test_no_windows_no_slots(self, dentist, future_date):
        assert available_slots(dentist.pk, future_date) == []

    def test_past_date_has_no_slots(self, dentist, make_window):
        yesterday = timezone.localdate() - timedelta(days=1)
        make_window(dentist, yesterday)

        assert available_slots(dentist.pk, yesterday) == []

    def test_today_skips_started_slots(self, dentist, make_window):
        day = timezone.localdate() + timedelta(days=1)
        make_window(dentist, day, time(9, 0), time(11, 0))
        now = timezone.make_aware(datetime.combine(day, time(9, 40)))

        slots = available_slots(dentist.pk, day, duration_minutes=30, now=now)

        assert slots[0] == {'start': '10:00', 'end': '10:30'}
        assert len(slots) == 2
