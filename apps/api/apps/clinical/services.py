"""
Clinical commit operations: patient profile initialization, booking,
appointment transitions, rescheduling and schedule windows.

Every operation authorizes the actor first, then mutates inside
transaction.atomic() and writes one audit entry per mutation.
"""
import logging
from datetime import time as time_class
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404

from apps.authz.access import ensure_can_access_patient, ensure_can_act_on_appointment
from apps.authz.models import RoleChoices, UserStatusChoices
from apps.authz.permission_table import Action, has_permission
from apps.clinical.lifecycle import AppointmentStateMachine, LifecycleAction, required_permission
from apps.clinical.models import (
    MINUTES_PER_DAY,
    Appointment,
    PatientProfile,
    ScheduleWindow,
    Service,
    minutes_since_midnight,
)
from apps.clinical.slots import find_conflict
from apps.core.audit import audit
from apps.core.exceptions import DenialReason, Forbidden, InvalidRole, SlotConflict
from apps.core.observability import log_domain_event, metrics
from apps.core.observability.events import log_appointment_transition, log_slot_conflict

User = get_user_model()
logger = logging.getLogger(__name__)


def _require_permission(actor, action):
    if not has_permission(actor.role, action):
        raise Forbidden(DenialReason.ROLE_MISMATCH, required_permission=str(action), user_role=actor.role)


# ============================================================================
# PATIENT PROFILE
# ============================================================================

def ensure_patient_profile(user):
    """
    Return the patient's profile, creating it with placeholder values on
    first use. Idempotent; never fails for a patient user.

    Args:
        user: User with role=patient

    Returns:
        PatientProfile
    """
    profile, created = PatientProfile.objects.get_or_create(user=user)
    if created:
        logger.info(
            "Patient profile initialized with placeholders",
            extra={'patient_id': str(user.pk), 'profile_id': str(profile.pk)}
        )
    return profile


def _load_patient(patient_id):
    return get_object_or_404(User, pk=patient_id, role=RoleChoices.PATIENT)


def get_patient_profile(actor, patient_id):
    """
    Read a patient's profile, initializing it if needed.

    Raises:
        Forbidden: actor has no relationship with the patient
        Http404: patient_id is not a patient (admin/staff)
    """
    ensure_can_access_patient(actor, patient_id)
    return ensure_patient_profile(_load_patient(patient_id))


def update_patient_profile(actor, patient_id, changes):
    """
    Update profile fields. Patients edit their own profile; admins any.

    Args:
        actor: User performing the update
        patient_id: Patient user id
        changes: Validated field -> value mapping

    Returns:
        Updated PatientProfile
    """
    if actor.role == RoleChoices.PATIENT:
        _require_permission(actor, Action.EDIT_OWN_PROFILE)
    else:
        _require_permission(actor, Action.MANAGE_PATIENTS)
    ensure_can_access_patient(actor, patient_id)

    with transaction.atomic():
        patient = _load_patient(patient_id)
        profile = ensure_patient_profile(patient)
        profile = PatientProfile.objects.select_for_update().get(pk=profile.pk)
        was_incomplete = profile.is_incomplete
        for field, value in changes.items():
            setattr(profile, field, value)
        profile.save()
        audit(
            actor,
            'patient_profile_updated',
            profile,
            detail={
                'patient_id': str(patient.pk),
                'fields': sorted(changes),
                'completed': was_incomplete and not profile.is_incomplete,
            },
        )

    return profile


# ============================================================================
# BOOKING
# ============================================================================

def _load_participant(user_id, field, expected_role):
    try:
        user = User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValidationError):
        raise InvalidRole(field, expected_role)
    if user.role != expected_role or user.status != UserStatusChoices.ACTIVE:
        raise InvalidRole(field, expected_role, actual_role=user.role)
    return user


def _resolve_duration(service, duration_minutes):
    if duration_minutes is None:
        duration_minutes = service.duration_minutes if service is not None else 30
    if duration_minutes <= 0:
        raise ValidationError({'duration_minutes': 'Duration must be positive.'})
    return duration_minutes


def _check_same_day(start_time, duration_minutes):
    # Windows end at 23:59 at the latest, so minute 1440 is never bookable
    if minutes_since_midnight(start_time) + duration_minutes >= MINUTES_PER_DAY:
        raise ValidationError({'duration_minutes': 'Appointment must end before midnight.'})


def _authorize_booking(actor, patient_id):
    if actor.role == RoleChoices.PATIENT:
        if not settings.APPOINTMENT_PATIENT_SELF_BOOKING:
            raise Forbidden(DenialReason.ROLE_MISMATCH, message='Patients cannot book appointments directly.')
        _require_permission(actor, Action.REQUEST_APPOINTMENTS)
        if str(patient_id) != str(actor.pk):
            raise Forbidden(DenialReason.RESOURCE_ACCESS_DENIED)
        return
    _require_permission(actor, Action.CREATE_APPOINTMENTS)


def _book(actor, patient, doctor, date, start_time, duration_minutes, service=None,
          reason='', notes='', rescheduled_from=None):
    """Locked check-then-insert. Must run inside transaction.atomic()."""
    # Lock both participants in pk order
    list(
        User.objects.select_for_update()
        .filter(pk__in=[doctor.pk, patient.pk])
        .order_by('pk')
    )
    conflict = find_conflict(doctor.pk, patient.pk, date, start_time, duration_minutes)
    if conflict is not None:
        log_slot_conflict(conflict, doctor.pk, patient.pk)
        metrics.appointments_booked_total.labels(result='conflict').inc()
        raise SlotConflict(conflict)

    appointment = Appointment(
        patient=patient,
        doctor=doctor,
        service=service,
        date=date,
        time=start_time,
        duration_minutes=duration_minutes,
        reason=reason or '',
        notes=notes or '',
        rescheduled_from=rescheduled_from,
        created_by=actor,
    )
    try:
        with transaction.atomic():
            appointment.save()
    except IntegrityError:
        metrics.appointments_booked_total.labels(result='conflict').inc()
        logger.warning(
            "Appointment insert lost a race on the slot constraint",
            extra={'doctor_id': str(doctor.pk), 'patient_id': str(patient.pk), 'date': str(date)}
        )
        raise SlotConflict(message='The requested time slot was just taken. Please pick another slot.')

    audit(
        actor,
        'appointment_created',
        appointment,
        detail={
            'doctor_id': str(doctor.pk),
            'patient_id': str(patient.pk),
            'date': date.isoformat(),
            'time': start_time.strftime('%H:%M'),
            'duration_minutes': duration_minutes,
            'rescheduled_from': str(rescheduled_from.pk) if rescheduled_from else None,
        },
    )
    metrics.appointments_booked_total.labels(result='success').inc()
    log_domain_event(
        'appointment_created',
        entity_type='Appointment',
        entity_id=str(appointment.pk),
        entity_ids={'doctor_id': str(doctor.pk), 'patient_id': str(patient.pk)},
        date=date.isoformat(),
        duration_minutes=duration_minutes,
    )
    return appointment


@metrics.track_duration(metrics.booking_duration_seconds)
def create_appointment(
    actor,
    patient_id,
    doctor_id,
    date,
    start_time: time_class,
    duration_minutes: Optional[int] = None,
    service_id=None,
    reason: str = '',
    notes: str = '',
) -> Appointment:
    """
    Book a new `scheduled` appointment.

    Authorization runs first: admin/staff need create_appointments; a
    patient needs self-booking enabled and may only book for themselves.
    The slot check is re-run under row locks on the doctor and patient,
    and the partial unique constraints catch any insert that still races.

    Args:
        actor: User performing the booking
        patient_id: Patient user id
        doctor_id: Staff user id
        date: Appointment date
        start_time: Start time (seconds are ignored)
        duration_minutes: Length; defaults to the service's duration, else 30
        service_id: Optional Service id
        reason: Reason for visit
        notes: Initial notes

    Returns:
        Created Appointment

    Raises:
        Forbidden: actor may not book this appointment
        InvalidRole: doctor is not an active staff member or patient is not an active patient
        SlotConflict: doctor busy, patient double-booked, or outside availability
        ValidationError: bad duration or interval crossing midnight
    """
    _authorize_booking(actor, patient_id)

    doctor = _load_participant(doctor_id, 'doctor', RoleChoices.STAFF.value)
    patient = _load_participant(patient_id, 'patient', RoleChoices.PATIENT.value)

    service = None
    if service_id:
        service = Service.objects.filter(pk=service_id, is_active=True).first()
        if service is None:
            raise ValidationError({'service': 'Service not found or inactive.'})

    start_time = start_time.replace(second=0, microsecond=0)
    duration_minutes = _resolve_duration(service, duration_minutes)
    _check_same_day(start_time, duration_minutes)

    with transaction.atomic():
        return _book(
            actor, patient, doctor, date, start_time, duration_minutes,
            service=service, reason=reason, notes=notes,
        )


# ============================================================================
# TRANSITIONS
# ============================================================================

def _authorize_transition(actor, action):
    try:
        action = LifecycleAction(action)
    except ValueError:
        # Unknown actions are rejected by the state machine
        return
    permission = required_permission(action, actor.role)
    if permission is None:
        raise Forbidden(DenialReason.ROLE_MISMATCH, action=action.value, user_role=actor.role)
    _require_permission(actor, permission)


def transition_appointment(appointment_id, action, actor, reason='', notes='', machine=None):
    """
    Apply a lifecycle action to an appointment.

    Args:
        appointment_id: Appointment id
        action: LifecycleAction value (confirm, check_in, start, complete, cancel, no_show)
        actor: User requesting the transition
        reason: Cancellation reason
        notes: Completion notes
        machine: AppointmentStateMachine (defaults to settings-driven policy)

    Returns:
        Updated Appointment

    Raises:
        Forbidden: role or ownership check failed
        InvalidTransition: action not legal from the current state
        CancellationWindowClosed: cancellation inside the cutoff
        Http404: appointment does not exist (admin/staff)
    """
    ensure_can_act_on_appointment(actor, appointment_id)
    _authorize_transition(actor, action)
    machine = machine or AppointmentStateMachine()

    with transaction.atomic():
        appointment = get_object_or_404(Appointment.objects.select_for_update(), pk=appointment_id)
        try:
            from_status, to_status = machine.apply(
                appointment, action, actor.role, reason=reason, notes=notes
            )
        except Forbidden:
            metrics.appointment_transitions_total.labels(
                action=str(action), from_status=appointment.status, result='rejected'
            ).inc()
            raise

        appointment.save()
        audit(
            actor,
            f'appointment_{to_status}',
            appointment,
            detail={
                'action': str(action),
                'from_status': from_status,
                'to_status': to_status,
                'reason': reason or None,
            },
        )

    metrics.appointment_transitions_total.labels(
        action=str(action), from_status=from_status, result='success'
    ).inc()
    log_appointment_transition(appointment, from_status, to_status, str(action), actor=actor)
    return appointment


def reschedule_appointment(appointment_id, actor, new_date, new_time, duration_minutes=None,
                           reason='', machine=None):
    """
    Cancel an appointment and book its replacement atomically.

    The cancellation follows the same cutoff policy as a plain cancel; the
    new appointment points back at the cancelled one via rescheduled_from.

    Returns:
        The new Appointment

    Raises:
        Forbidden, InvalidTransition, CancellationWindowClosed, SlotConflict
        InvalidRole: doctor or patient is no longer active
    """
    ensure_can_act_on_appointment(actor, appointment_id)
    if actor.role == RoleChoices.PATIENT:
        _require_permission(actor, Action.RESCHEDULE_OWN_APPOINTMENTS)
    else:
        _require_permission(actor, Action.RESCHEDULE_APPOINTMENTS)
    machine = machine or AppointmentStateMachine()

    new_time = new_time.replace(second=0, microsecond=0)

    with transaction.atomic():
        original = get_object_or_404(Appointment.objects.select_for_update(), pk=appointment_id)
        doctor = _load_participant(original.doctor_id, 'doctor', RoleChoices.STAFF.value)
        patient = _load_participant(original.patient_id, 'patient', RoleChoices.PATIENT.value)
        duration = duration_minutes or original.duration_minutes
        _check_same_day(new_time, duration)

        cancel_reason = reason or f"Rescheduled to {new_date.isoformat()} {new_time.strftime('%H:%M')}"
        from_status, to_status = machine.apply(
            original, LifecycleAction.CANCEL, actor.role, reason=cancel_reason
        )
        original.save()
        audit(
            actor,
            'appointment_cancelled',
            original,
            detail={
                'action': 'reschedule',
                'from_status': from_status,
                'to_status': to_status,
                'reason': cancel_reason,
            },
        )

        replacement = _book(
            actor,
            patient,
            doctor,
            new_date,
            new_time,
            duration,
            service=original.service,
            reason=original.reason,
            rescheduled_from=original,
        )

    log_appointment_transition(original, from_status, to_status, 'reschedule', actor=actor)
    return replacement


def annotate_appointment(appointment_id, actor, note):
    """
    Append a line to an appointment's notes. Allowed in every state,
    including terminal ones.
    """
    ensure_can_act_on_appointment(actor, appointment_id)
    _require_permission(actor, Action.EDIT_APPOINTMENTS)
    if not note or not note.strip():
        raise ValidationError({'note': 'Note cannot be empty.'})

    with transaction.atomic():
        appointment = get_object_or_404(Appointment.objects.select_for_update(), pk=appointment_id)
        appointment.append_note(note.strip())
        appointment.save(update_fields=['notes', 'updated_at'])
        audit(actor, 'appointment_annotated', appointment, detail={'status': appointment.status})

    return appointment


# ============================================================================
# SCHEDULE WINDOWS
# ============================================================================

def _authorize_schedule(actor, staff_id):
    if actor.role == RoleChoices.ADMIN:
        _require_permission(actor, Action.MANAGE_SCHEDULES)
        return
    _require_permission(actor, Action.MANAGE_OWN_SCHEDULE)
    if str(staff_id) != str(actor.pk):
        raise Forbidden(DenialReason.RESOURCE_ACCESS_DENIED)


def create_schedule_window(actor, staff_id, date, start_time, end_time, is_available=True, notes=''):
    """
    Publish a working window for a staff member.

    Admins manage every schedule; staff only their own.

    Raises:
        Forbidden: actor may not manage this schedule
        InvalidRole: staff_id is not a staff member
        ValidationError: end before start, or overlap with an existing window
    """
    _authorize_schedule(actor, staff_id)

    with transaction.atomic():
        staff = User.objects.select_for_update().filter(pk=staff_id).first()
        if staff is None or staff.role != RoleChoices.STAFF:
            raise InvalidRole('staff', RoleChoices.STAFF.value, actual_role=getattr(staff, 'role', None))

        window = ScheduleWindow(
            staff=staff,
            date=date,
            start_time=start_time,
            end_time=end_time,
            is_available=is_available,
            notes=notes or '',
        )
        window.full_clean()
        window.save()
        audit(
            actor,
            'schedule_window_created',
            window,
            detail={
                'staff_id': str(staff.pk),
                'date': date.isoformat(),
                'time_range': f"{start_time.strftime('%H:%M')}-{end_time.strftime('%H:%M')}",
                'is_available': is_available,
            },
        )

    return window


def set_window_availability(window_id, actor, is_available, reason=''):
    """Mark a window available or unavailable; the reason is appended to notes."""
    with transaction.atomic():
        window = get_object_or_404(ScheduleWindow.objects.select_for_update(), pk=window_id)
        _authorize_schedule(actor, window.staff_id)

        window.is_available = is_available
        if reason:
            label = 'Available' if is_available else 'Unavailable'
            line = f"{label}: {reason}"
            window.notes = f"{window.notes}\n{line}" if window.notes else line
        window.save(update_fields=['is_available', 'notes', 'updated_at'])
        audit(
            actor,
            'schedule_window_availability_changed',
            window,
            detail={'is_available': is_available, 'reason': reason or None},
        )

    return window


def _ensure_window_modifiable(window, now=None):
    if not window.can_be_modified(now=now):
        raise ValidationError('This schedule window has already started and can no longer be changed.')


def update_schedule_window(window_id, actor, changes, now=None):
    """
    Edit a schedule window that has not started yet.

    Args:
        window_id: ScheduleWindow id
        actor: User performing the change
        changes: Validated field -> value mapping (staff_id, date,
            start_time, end_time, is_available, notes)
        now: Reference time (defaults to timezone.now())

    Returns:
        Updated ScheduleWindow

    Raises:
        Forbidden: actor may not manage the current or the new staff member's schedule
        InvalidRole: new staff_id is not a staff member
        ValidationError: window already started, end before start, or overlap
    """
    with transaction.atomic():
        window = get_object_or_404(ScheduleWindow.objects.select_for_update(), pk=window_id)
        _authorize_schedule(actor, window.staff_id)
        _ensure_window_modifiable(window, now=now)

        changes = dict(changes)
        updated_fields = sorted(changes)
        staff_id = changes.pop('staff_id', None)
        if staff_id is not None and str(staff_id) != str(window.staff_id):
            _authorize_schedule(actor, staff_id)
            staff = User.objects.filter(pk=staff_id).first()
            if staff is None or staff.role != RoleChoices.STAFF:
                raise InvalidRole('staff', RoleChoices.STAFF.value, actual_role=getattr(staff, 'role', None))
            window.staff = staff

        for field, value in changes.items():
            setattr(window, field, value)
        window.full_clean()
        window.save()
        audit(
            actor,
            'schedule_window_updated',
            window,
            detail={
                'updated_fields': updated_fields,
                'date': window.date.isoformat(),
                'time_range': f"{window.start_time.strftime('%H:%M')}-{window.end_time.strftime('%H:%M')}",
            },
        )

    return window


def delete_schedule_window(window_id, actor, now=None):
    """
    Delete a schedule window that has not started and holds no bookings.

    Cancelled and no-show appointments do not count as bookings.

    Raises:
        Forbidden: actor may not manage this schedule
        ValidationError: window already started or has booked appointments
    """
    with transaction.atomic():
        window = get_object_or_404(ScheduleWindow.objects.select_for_update(), pk=window_id)
        _authorize_schedule(actor, window.staff_id)
        _ensure_window_modifiable(window, now=now)

        booked = window.booked_appointments().count()
        if booked:
            raise ValidationError('Cannot delete a schedule window with existing appointments.')

        audit(
            actor,
            'schedule_window_deleted',
            window,
            detail={
                'staff_id': str(window.staff_id),
                'date': window.date.isoformat(),
                'time_range': f"{window.start_time.strftime('%H:%M')}-{window.end_time.strftime('%H:%M')}",
            },
        )
        window.delete()
