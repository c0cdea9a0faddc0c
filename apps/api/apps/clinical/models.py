"""
Clinical models: patient_profile, service, appointment, schedule_window, patient_record
"""
import uuid
from datetime import datetime, timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


MINUTES_PER_DAY = 24 * 60


# ============================================================================
# Enums
# ============================================================================

class GenderChoices(models.TextChoices):
    FEMALE = 'female', 'Female'
    MALE = 'male', 'Male'
    OTHER = 'other', 'Other'


class ServiceCategoryChoices(models.TextChoices):
    GENERAL = 'general', 'General Dentistry'
    PREVENTIVE = 'preventive', 'Preventive'
    RESTORATIVE = 'restorative', 'Restorative'
    COSMETIC = 'cosmetic', 'Cosmetic'
    ORTHODONTICS = 'orthodontics', 'Orthodontics'
    SURGERY = 'surgery', 'Oral Surgery'
    EMERGENCY = 'emergency', 'Emergency'


class AppointmentStatusChoices(models.TextChoices):
    """
    Appointment status. Transitions are owned by apps.clinical.lifecycle:
    - scheduled -> confirmed | cancelled | no_show
    - confirmed -> checked_in | cancelled | no_show
    - checked_in -> in_progress | completed | no_show
    - in_progress -> completed
    - completed, cancelled, no_show are terminal states
    """
    SCHEDULED = 'scheduled', 'Scheduled'
    CONFIRMED = 'confirmed', 'Confirmed'
    CHECKED_IN = 'checked_in', 'Checked In'
    IN_PROGRESS = 'in_progress', 'In Progress'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    NO_SHOW = 'no_show', 'No Show'


# BUSINESS RULE: Statuses that occupy a doctor's and a patient's time
ACTIVE_STATUSES = (
    AppointmentStatusChoices.SCHEDULED,
    AppointmentStatusChoices.CONFIRMED,
    AppointmentStatusChoices.CHECKED_IN,
    AppointmentStatusChoices.IN_PROGRESS,
)

TERMINAL_STATUSES = (
    AppointmentStatusChoices.COMPLETED,
    AppointmentStatusChoices.CANCELLED,
    AppointmentStatusChoices.NO_SHOW,
)


def minutes_since_midnight(value):
    return value.hour * 60 + value.minute


# ============================================================================
# Patient Profile
# ============================================================================

class PatientProfile(models.Model):
    """
    Clinical profile of a patient user (1:1).

    Created lazily by ensure_patient_profile with placeholder values; the
    emergency contact placeholder marks the profile as incomplete until
    the patient fills it in.
    """
    PLACEHOLDER_CONTACT = 'To be updated'
    DEFAULT_MEDICAL_HISTORY = 'No history recorded'
    DEFAULT_ALLERGIES = 'None known'
    DEFAULT_MEDICATIONS = 'None'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='patient_profile'
    )
    birthday = models.DateField(blank=True, null=True)
    gender = models.CharField(
        max_length=10,
        choices=GenderChoices.choices,
        blank=True,
        default=''
    )
    emergency_contact_name = models.CharField(max_length=255, default=PLACEHOLDER_CONTACT)
    emergency_contact_phone = models.CharField(max_length=30, default=PLACEHOLDER_CONTACT)
    emergency_contact_relationship = models.CharField(max_length=50, blank=True, default='')
    insurance_provider = models.CharField(max_length=255, blank=True, default='')
    insurance_number = models.CharField(max_length=100, blank=True, default='')
    medical_history = models.TextField(default=DEFAULT_MEDICAL_HISTORY)
    allergies = models.TextField(default=DEFAULT_ALLERGIES)
    current_medications = models.TextField(default=DEFAULT_MEDICATIONS)
    blood_type = models.CharField(max_length=5, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient_profile'
        verbose_name = 'Patient Profile'
        verbose_name_plural = 'Patient Profiles'

    def __str__(self):
        return f"Profile of {self.user}"

    @property
    def is_incomplete(self):
        name = (self.emergency_contact_name or '').strip()
        return not name or name == self.PLACEHOLDER_CONTACT


# ============================================================================
# Service
# ============================================================================

class Service(models.Model):
    """Bookable clinic service; supplies the default appointment duration."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    category = models.CharField(
        max_length=20,
        choices=ServiceCategoryChoices.choices,
        default=ServiceCategoryChoices.GENERAL
    )
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    duration_minutes = models.PositiveIntegerField(default=30)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'service'
        verbose_name = 'Service'
        verbose_name_plural = 'Services'
        indexes = [
            models.Index(fields=['is_active'], name='idx_service_active'),
        ]

    def __str__(self):
        return self.name


# ============================================================================
# Appointment
# ============================================================================

class Appointment(models.Model):
    """
    A patient's booking with a doctor (staff user) on one date.

    Fields:
    - id: UUID PK
    - patient: FK -> auth_user (role=patient)
    - doctor: FK -> auth_user (role=staff)
    - service: FK -> service nullable
    - date, time, duration_minutes: the half-open interval [time, time+duration)
    - status: see AppointmentStatusChoices
    - reason, notes, cancellation_reason
    - checked_in_at: set by the check_in transition
    - rescheduled_from: cancelled appointment this one replaces
    - created_by: FK -> auth_user nullable
    - created_at, updated_at

    BUSINESS RULES:
    1. Interval ends before midnight (no 24:00 end, no midnight crossing)
    2. No two active appointments of one doctor overlap
    3. No two active appointments of one patient overlap
    4. Status changes only through apps.clinical.lifecycle
    5. Terminal appointments only accept note annotations
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='patient_appointments'
    )
    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='doctor_appointments'
    )
    service = models.ForeignKey(
        Service,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name='appointments'
    )
    date = models.DateField()
    time = models.TimeField()
    duration_minutes = models.PositiveIntegerField(default=30)
    status = models.CharField(
        max_length=20,
        choices=AppointmentStatusChoices.choices,
        default=AppointmentStatusChoices.SCHEDULED
    )
    reason = models.TextField(blank=True, default='')
    notes = models.TextField(blank=True, default='')
    cancellation_reason = models.TextField(blank=True, default='')
    checked_in_at = models.DateTimeField(blank=True, null=True)
    rescheduled_from = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='rescheduled_to'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='created_appointments'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'appointment'
        verbose_name = 'Appointment'
        verbose_name_plural = 'Appointments'
        ordering = ['date', 'time']
        indexes = [
            models.Index(fields=['doctor', 'date'], name='idx_appointment_doctor_date'),
            models.Index(fields=['patient', 'date'], name='idx_appointment_patient_date'),
            models.Index(fields=['status'], name='idx_appointment_status'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['doctor', 'date', 'time'],
                condition=Q(status__in=['scheduled', 'confirmed', 'checked_in', 'in_progress']),
                name='uniq_active_appointment_doctor_slot',
            ),
            models.UniqueConstraint(
                fields=['patient', 'date', 'time'],
                condition=Q(status__in=['scheduled', 'confirmed', 'checked_in', 'in_progress']),
                name='uniq_active_appointment_patient_slot',
            ),
        ]

    def __str__(self):
        return f"Appointment {self.date} {self.time:%H:%M} - {self.patient}"

    @property
    def start_minutes(self):
        return minutes_since_midnight(self.time)

    @property
    def end_minutes(self):
        return self.start_minutes + self.duration_minutes

    @property
    def start_datetime(self):
        """Aware datetime of the scheduled start in the clinic's timezone."""
        return timezone.make_aware(datetime.combine(self.date, self.time))

    @property
    def end_datetime(self):
        return self.start_datetime + timedelta(minutes=self.duration_minutes)

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES

    def clean(self):
        """
        BUSINESS RULES:
        1. duration is positive
        2. the interval ends before midnight of the appointment's own date
        3. doctor is staff, patient is a patient
        """
        errors = {}

        if not self.duration_minutes or self.duration_minutes <= 0:
            errors['duration_minutes'] = 'Duration must be positive.'
        elif self.time is not None and self.end_minutes >= MINUTES_PER_DAY:
            errors['duration_minutes'] = 'Appointment must end before midnight.'

        if self.doctor_id and self.doctor.role != 'staff':
            errors['doctor'] = 'Doctor must be a staff member.'
        if self.patient_id and self.patient.role != 'patient':
            errors['patient'] = 'Patient must be a patient user.'

        if errors:
            raise ValidationError(errors)

    def append_note(self, line):
        """Append one line to the notes, keeping earlier content."""
        self.notes = f"{self.notes}\n{line}" if self.notes else line


# ============================================================================
# Schedule Window
# ============================================================================

class ScheduleWindow(models.Model):
    """
    Working window of a staff member on one date.

    BUSINESS RULES:
    - end_time > start_time
    - windows of one staff member on one date do not overlap
    - only windows with is_available=True accept bookings
    - only future windows (or today's, before they start) can be edited or deleted
    - a window with booked appointments cannot be deleted
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    staff = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='schedule_windows'
    )
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_available = models.BooleanField(default=True)
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'schedule_window'
        verbose_name = 'Schedule Window'
        verbose_name_plural = 'Schedule Windows'
        ordering = ['date', 'start_time']
        indexes = [
            models.Index(fields=['staff', 'date'], name='idx_schedule_staff_date'),
        ]

    def __str__(self):
        return f"{self.staff} {self.date} {self.start_time:%H:%M}-{self.end_time:%H:%M}"

    @property
    def start_minutes(self):
        return minutes_since_midnight(self.start_time)

    @property
    def end_minutes(self):
        return minutes_since_midnight(self.end_time)

    def contains(self, start_minutes, end_minutes):
        return self.start_minutes <= start_minutes and end_minutes <= self.end_minutes

    def can_be_modified(self, now=None):
        """Future windows, or today's windows that have not started yet."""
        now = timezone.localtime(now or timezone.now())
        if self.date != now.date():
            return self.date > now.date()
        return now.time() < self.start_time

    def booked_appointments(self):
        """Appointments of this staff member starting inside the window, cancellations and no-shows excluded."""
        return Appointment.objects.filter(
            doctor_id=self.staff_id,
            date=self.date,
            time__gte=self.start_time,
            time__lt=self.end_time,
        ).exclude(
            status__in=[AppointmentStatusChoices.CANCELLED, AppointmentStatusChoices.NO_SHOW]
        )

    def clean(self):
        errors = {}
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            errors['end_time'] = 'End time must be after start time.'
        elif self.staff_id and self.date and self.start_time and self.end_time:
            overlaps = ScheduleWindow.objects.filter(
                staff_id=self.staff_id,
                date=self.date,
            ).filter(
                Q(start_time__lt=self.end_time) & Q(end_time__gt=self.start_time)
            )
            if self.pk:
                overlaps = overlaps.exclude(pk=self.pk)
            if overlaps.exists():
                errors['start_time'] = 'Schedule window overlaps an existing window for this staff member.'
        if errors:
            raise ValidationError(errors)


# ============================================================================
# Patient Record
# ============================================================================

class PatientRecord(models.Model):
    """Clinical note authored by a staff member for a patient."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='patient_records'
    )
    appointment = models.ForeignKey(
        Appointment,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='patient_records'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='authored_patient_records'
    )
    treatment_notes = models.TextField(blank=True, default='')
    diagnosis = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patient_record'
        verbose_name = 'Patient Record'
        verbose_name_plural = 'Patient Records'
        indexes = [
            models.Index(fields=['patient'], name='idx_patient_record_patient'),
            models.Index(fields=['created_by'], name='idx_patient_record_author'),
        ]

    def __str__(self):
        return f"Record for {self.patient} by {self.created_by}"
