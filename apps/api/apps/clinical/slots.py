"""
Slot conflict resolver.

Intervals are half-open [start, end) in minutes since midnight on one date.
Checks run in a fixed order: doctor busy, patient double-booked, outside
availability. The first conflict found is returned.
"""
from dataclasses import dataclass
from datetime import time as time_class
from typing import Optional

from django.db import models
from django.utils import timezone

from apps.clinical.models import (
    ACTIVE_STATUSES,
    MINUTES_PER_DAY,
    Appointment,
    ScheduleWindow,
    minutes_since_midnight,
)
from apps.core.observability import metrics


class ConflictKind(models.TextChoices):
    DOCTOR_BUSY = 'doctor_busy', 'Doctor Busy'
    PATIENT_DOUBLE_BOOKED = 'patient_double_booked', 'Patient Double Booked'
    OUTSIDE_AVAILABILITY = 'outside_availability', 'Outside Availability'


def format_minutes(minutes):
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def intervals_overlap(start_a, end_a, start_b, end_b):
    """Half-open overlap: (start1 < end2) AND (start2 < end1)."""
    return start_a < end_b and start_b < end_a


@dataclass(frozen=True)
class Conflict:
    kind: str
    date: object
    start_time: object
    end_time: object
    conflicting_appointment_id: Optional[object] = None

    def as_dict(self):
        return {
            'conflict': self.kind,
            'date': self.date.isoformat(),
            'start_time': self.start_time.strftime('%H:%M'),
            'end_time': self.end_time.strftime('%H:%M'),
            'conflicting_appointment_id': (
                str(self.conflicting_appointment_id) if self.conflicting_appointment_id else None
            ),
        }


def _end_time(start_minutes, duration_minutes):
    end_minutes = start_minutes + duration_minutes
    if end_minutes >= MINUTES_PER_DAY:
        return time_class(23, 59)
    return time_class(end_minutes // 60, end_minutes % 60)


def _first_overlap(queryset, start_minutes, end_minutes):
    for appointment in queryset:
        if intervals_overlap(start_minutes, end_minutes,
                             appointment.start_minutes, appointment.end_minutes):
            return appointment
    return None


def find_conflict(doctor_id, patient_id, date, start_time, duration_minutes,
                  exclude_appointment_id=None):
    """
    First conflict for a proposed appointment, or None when the slot is free.

    Args:
        doctor_id: Staff user id
        patient_id: Patient user id
        date: Appointment date
        start_time: datetime.time of the start
        duration_minutes: Positive length of the appointment
        exclude_appointment_id: Appointment to ignore (e.g. the one being rescheduled)

    Returns:
        Conflict or None
    """
    start_minutes = minutes_since_midnight(start_time)
    end_minutes = start_minutes + duration_minutes
    end_time = _end_time(start_minutes, duration_minutes)

    active = Appointment.objects.filter(date=date, status__in=ACTIVE_STATUSES)
    if exclude_appointment_id:
        active = active.exclude(pk=exclude_appointment_id)

    conflict = None

    doctor_clash = _first_overlap(active.filter(doctor_id=doctor_id), start_minutes, end_minutes)
    if doctor_clash is not None:
        conflict = Conflict(ConflictKind.DOCTOR_BUSY.value, date, start_time, end_time, doctor_clash.pk)

    if conflict is None:
        patient_clash = _first_overlap(active.filter(patient_id=patient_id), start_minutes, end_minutes)
        if patient_clash is not None:
            conflict = Conflict(
                ConflictKind.PATIENT_DOUBLE_BOOKED.value, date, start_time, end_time, patient_clash.pk
            )

    if conflict is None:
        windows = ScheduleWindow.objects.filter(staff_id=doctor_id, date=date, is_available=True)
        if not any(window.contains(start_minutes, end_minutes) for window in windows):
            conflict = Conflict(ConflictKind.OUTSIDE_AVAILABILITY.value, date, start_time, end_time)

    if conflict is not None:
        metrics.slot_conflicts_total.labels(kind=conflict.kind).inc()
    return conflict


def propose_slot(doctor_id, patient_id, date, start_time, duration_minutes):
    """Read-only pre-check. None means the slot would be accepted right now."""
    return find_conflict(doctor_id, patient_id, date, start_time, duration_minutes)


def available_slots(doctor_id, date, duration_minutes=30, now=None):
    """
    Free slots of `duration_minutes` inside the doctor's available windows.

    Slots step by the duration from each window start; a slot overlapping
    an active appointment jumps to that appointment's end. Slots already
    started (for today) are skipped.

    Returns:
        List of dicts {'start': 'HH:MM', 'end': 'HH:MM'}
    """
    now = timezone.localtime(now or timezone.now())
    busy_periods = sorted(
        (appointment.start_minutes, appointment.end_minutes)
        for appointment in Appointment.objects.filter(
            doctor_id=doctor_id, date=date, status__in=ACTIVE_STATUSES
        )
    )

    if date < now.date():
        return []
    earliest = minutes_since_midnight(now) + 1 if date == now.date() else 0

    windows = ScheduleWindow.objects.filter(
        staff_id=doctor_id, date=date, is_available=True
    ).order_by('start_time')

    free_slots = []
    for window in windows:
        current = window.start_minutes
        while current + duration_minutes <= window.end_minutes:
            slot_end = current + duration_minutes

            if current < earliest:
                current += duration_minutes
                continue

            busy = next(
                (period for period in busy_periods
                 if intervals_overlap(current, slot_end, period[0], period[1])),
                None
            )
            if busy is not None:
                current = busy[1]
                continue

            free_slots.append({
                'start': format_minutes(current),
                'end': format_minutes(slot_end),
            })
            current = slot_end

    return free_slots
