"""
Clinical serializers: appointments, lifecycle requests, slots,
schedule windows and patient profiles.

Write serializers only validate input shape; authorization, conflicts and
state changes live in apps.clinical.services.
"""
from django.utils import timezone
from rest_framework import serializers

from apps.clinical.lifecycle import LifecycleAction
from apps.clinical.models import Appointment, PatientProfile, ScheduleWindow
from apps.clinical.slots import format_minutes


# ============================================================================
# Appointments
# ============================================================================

class AppointmentSerializer(serializers.ModelSerializer):
    """Read serializer for appointments (list and detail)."""
    patient_id = serializers.UUIDField(read_only=True)
    doctor_id = serializers.UUIDField(read_only=True)
    service_id = serializers.UUIDField(read_only=True, allow_null=True)
    rescheduled_from_id = serializers.UUIDField(read_only=True, allow_null=True)
    doctor_name = serializers.CharField(source='doctor.name', read_only=True)
    service_name = serializers.CharField(source='service.name', read_only=True, default=None)
    end_time = serializers.SerializerMethodField()

    class Meta:
        model = Appointment
        fields = [
            'id',
            'patient_id',
            'doctor_id',
            'doctor_name',
            'service_id',
            'service_name',
            'date',
            'time',
            'end_time',
            'duration_minutes',
            'status',
            'reason',
            'notes',
            'cancellation_reason',
            'checked_in_at',
            'rescheduled_from_id',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_end_time(self, obj):
        return format_minutes(obj.end_minutes)


class AppointmentCreateSerializer(serializers.Serializer):
    """
    Input of POST /api/v1/clinical/appointments/.

    BUSINESS RULE: appointments are booked for today or later.
    """
    patient_id = serializers.UUIDField()
    doctor_id = serializers.UUIDField()
    date = serializers.DateField()
    time = serializers.TimeField()
    duration_minutes = serializers.IntegerField(required=False, min_value=1, allow_null=True, default=None)
    service_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_date(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError('Appointment date cannot be in the past.')
        return value


class TransitionSerializer(serializers.Serializer):
    """
    Input of POST /api/v1/clinical/appointments/{id}/transition/.

    `action` is a free string so unknown actions reach the state machine
    and come back as 409 INVALID_TRANSITION.
    """
    action = serializers.CharField(max_length=32)
    reason = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['action'] == LifecycleAction.CANCEL and not attrs['reason'].strip():
            raise serializers.ValidationError({'reason': 'A cancellation reason is required.'})
        return attrs


class RescheduleSerializer(serializers.Serializer):
    date = serializers.DateField()
    time = serializers.TimeField()
    duration_minutes = serializers.IntegerField(required=False, min_value=1, allow_null=True, default=None)
    reason = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_date(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError('Appointment date cannot be in the past.')
        return value


class AnnotateSerializer(serializers.Serializer):
    note = serializers.CharField(max_length=2000)


# ============================================================================
# Slots
# ============================================================================

class SlotProposalSerializer(serializers.Serializer):
    """Input of POST /api/v1/clinical/slots/propose/."""
    doctor_id = serializers.UUIDField()
    patient_id = serializers.UUIDField()
    date = serializers.DateField()
    time = serializers.TimeField()
    duration_minutes = serializers.IntegerField(min_value=1, default=30)


class AvailableSlotsQuerySerializer(serializers.Serializer):
    """Query params of GET /api/v1/clinical/slots/available/."""
    doctor_id = serializers.UUIDField()
    date = serializers.DateField()
    duration_minutes = serializers.IntegerField(min_value=1, default=30)


# ============================================================================
# Schedule windows
# ============================================================================

class ScheduleWindowSerializer(serializers.ModelSerializer):
    staff_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ScheduleWindow
        fields = [
            'id',
            'staff_id',
            'date',
            'start_time',
            'end_time',
            'is_available',
            'notes',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ScheduleWindowCreateSerializer(serializers.Serializer):
    staff_id = serializers.UUIDField()
    date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    is_available = serializers.BooleanField(required=False, default=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['end_time'] <= attrs['start_time']:
            raise serializers.ValidationError({'end_time': 'End time must be after start time.'})
        return attrs


class ScheduleWindowUpdateSerializer(serializers.Serializer):
    """Every field optional; the model's clean() re-checks the merged window."""
    staff_id = serializers.UUIDField(required=False)
    date = serializers.DateField(required=False)
    start_time = serializers.TimeField(required=False)
    end_time = serializers.TimeField(required=False)
    is_available = serializers.BooleanField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        start, end = attrs.get('start_time'), attrs.get('end_time')
        if start is not None and end is not None and end <= start:
            raise serializers.ValidationError({'end_time': 'End time must be after start time.'})
        return attrs


class WindowAvailabilitySerializer(serializers.Serializer):
    is_available = serializers.BooleanField()
    reason = serializers.CharField(required=False, allow_blank=True, default='')


# ============================================================================
# Patient profile
# ============================================================================

class PatientProfileSerializer(serializers.ModelSerializer):
    """
    Patient profile read/update.

    `profile_incomplete` stays true while the emergency contact still holds
    the placeholder written at first login.
    """
    patient_id = serializers.UUIDField(source='user_id', read_only=True)
    profile_incomplete = serializers.BooleanField(source='is_incomplete', read_only=True)

    class Meta:
        model = PatientProfile
        fields = [
            'id',
            'patient_id',
            'birthday',
            'gender',
            'emergency_contact_name',
            'emergency_contact_phone',
            'emergency_contact_relationship',
            'insurance_provider',
            'insurance_number',
            'medical_history',
            'allergies',
            'current_medications',
            'blood_type',
            'profile_incomplete',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'patient_id', 'profile_incomplete', 'created_at', 'updated_at']

    def validate_birthday(self, value):
        if value and value > timezone.localdate():
            raise serializers.ValidationError('Birthday cannot be in the future.')
        return value

    def validate_emergency_contact_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Emergency contact name is required.')
        return value.strip()
