"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Users by role (admin, dentist, hygienist, patients, suspended accounts)
- Authenticated API clients by role
- Schedule windows and appointments on future dates
"""
from datetime import time, timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from apps.authz.models import RoleChoices, StaffPositionChoices, User, UserStatusChoices
from apps.clinical.models import Appointment, ScheduleWindow


# ============================================================================
# Users
# ============================================================================

@pytest.fixture
def make_user(db):
    """
    Factory for users of any role.

    Usage:
        user = make_user(RoleChoices.STAFF, email='x@test.com', position='hygienist')
    """
    counter = {'n': 0}

    def _make(role=RoleChoices.PATIENT, **fields):
        counter['n'] += 1
        fields.setdefault('email', f"{role}{counter['n']}@test.com")
        fields.setdefault('name', f"Test {role} {counter['n']}")
        fields.setdefault('status', UserStatusChoices.ACTIVE)
        return User.objects.create_user(password='testpass123', role=role, **fields)

    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user(RoleChoices.ADMIN, email='admin@test.com', is_staff=True)


@pytest.fixture
def dentist(make_user):
    """Staff dentist with a complete profile and a license valid for a year."""
    return make_user(
        RoleChoices.STAFF,
        email='dentist@test.com',
        name='Dr. Test Dentist',
        employee_id='EMP-001',
        position=StaffPositionChoices.DENTIST,
        license_number='DDS-12345',
        license_expiry=timezone.localdate() + timedelta(days=365),
    )


@pytest.fixture
def other_dentist(make_user):
    return make_user(
        RoleChoices.STAFF,
        email='dentist2@test.com',
        employee_id='EMP-002',
        position=StaffPositionChoices.DENTIST,
        license_number='DDS-67890',
        license_expiry=timezone.localdate() + timedelta(days=365),
    )


@pytest.fixture
def hygienist(make_user):
    return make_user(
        RoleChoices.STAFF,
        email='hygienist@test.com',
        employee_id='EMP-003',
        position=StaffPositionChoices.HYGIENIST,
    )


@pytest.fixture
def patient_user(make_user):
    return make_user(RoleChoices.PATIENT, email='patient@test.com')


@pytest.fixture
def other_patient(make_user):
    return make_user(RoleChoices.PATIENT, email='patient2@test.com')


@pytest.fixture
def suspended_patient(make_user):
    return make_user(RoleChoices.PATIENT, email='suspended@test.com', status=UserStatusChoices.SUSPENDED)


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def dentist_client(dentist):
    return _client_for(dentist)


@pytest.fixture
def patient_client(patient_user):
    return _client_for(patient_user)


@pytest.fixture
def client_for():
    """Authenticated client for an arbitrary user."""
    return _client_for


# ============================================================================
# Scheduling
# ============================================================================

@pytest.fixture
def future_date():
    """A date one week ahead; far outside any cancellation cutoff."""
    return timezone.localdate() + timedelta(days=7)


@pytest.fixture
def make_window(db):
    def _make(staff, date, start=time(9, 0), end=time(17, 0), is_available=True):
        return ScheduleWindow.objects.create(
            staff=staff,
            date=date,
            start_time=start,
            end_time=end,
            is_available=is_available,
        )
    return _make


@pytest.fixture
def make_appointment(db):
    """Insert an appointment directly, bypassing booking checks."""
    def _make(patient, doctor, date, start=time(10, 0), duration_minutes=30, status='scheduled', **fields):
        return Appointment.objects.create(
            patient=patient,
            doctor=doctor,
            date=date,
            time=start,
            duration_minutes=duration_minutes,
            status=status,
            **fields
        )
    return _make


@pytest.fixture
def dentist_window(dentist, future_date, make_window):
    return make_window(dentist, future_date)
