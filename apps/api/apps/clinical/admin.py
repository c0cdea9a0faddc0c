from django.contrib import admin
from .models import Appointment, PatientProfile, PatientRecord, ScheduleWindow, Service


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'gender', 'insurance_provider', 'created_at']
    list_filter = ['gender']
    search_fields = ['user__email', 'user__name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    autocomplete_fields = ['user']

    fieldsets = (
        ('Patient', {
            'fields': ('id', 'user', 'birthday', 'gender', 'blood_type')
        }),
        ('Emergency Contact', {
            'fields': ('emergency_contact_name', 'emergency_contact_phone', 'emergency_contact_relationship')
        }),
        ('Insurance', {
            'fields': ('insurance_provider', 'insurance_number')
        }),
        ('Medical', {
            'fields': ('medical_history', 'allergies', 'current_medications')
        }),
        ('Audit', {
            'fields': ('created_at', 'updated_at')
        }),
    )


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ['name', 'category', 'price', 'duration_minutes', 'is_active']
    list_filter = ['category', 'is_active']
    search_fields = ['name']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    """Status is read-only here; lifecycle changes go through the API."""
    list_display = ['date', 'time', 'duration_minutes', 'doctor', 'patient', 'status']
    list_filter = ['status', 'date']
    search_fields = ['doctor__email', 'patient__email']
    readonly_fields = ['id', 'status', 'checked_in_at', 'rescheduled_from', 'created_by', 'created_at', 'updated_at']
    autocomplete_fields = ['doctor', 'patient', 'service']
    date_hierarchy = 'date'


@admin.register(ScheduleWindow)
class ScheduleWindowAdmin(admin.ModelAdmin):
    list_display = ['staff', 'date', 'start_time', 'end_time', 'is_available']
    list_filter = ['is_available', 'date']
    search_fields = ['staff__email', 'staff__name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    autocomplete_fields = ['staff']


@admin.register(PatientRecord)
class PatientRecordAdmin(admin.ModelAdmin):
    list_display = ['patient', 'created_by', 'appointment', 'created_at']
    search_fields = ['patient__email', 'created_by__email']
    readonly_fields = ['id', 'created_at', 'updated_at']
    autocomplete_fields = ['patient', 'created_by', 'appointment']
