"""
Tests for account administration: status changes and the admin bootstrap command.
"""
from io import StringIO

import pytest
from django.core.management import call_command
from rest_framework_simplejwt.tokens import RefreshToken

from apps.authz.models import RoleChoices, User, UserStatusChoices
from apps.authz.services import set_user_status
from apps.core.exceptions import Forbidden
from apps.core.models import AuditLog


@pytest.mark.django_db
class TestSetUserStatus:

    def test_staff_cannot_change_status(self, dentist, patient_user):
        with pytest.raises(Forbidden) as exc_info:
            set_user_status(dentist, patient_user.pk, UserStatusChoices.SUSPENDED)

        assert exc_info.value.error_code == 'ROLE_MISMATCH'
        patient_user.refresh_from_db()
        assert patient_user.status == UserStatusChoices.ACTIVE

    def test_sessions_end_only_when_leaving_active(self, admin_user, make_user):
        user = make_user(RoleChoices.PATIENT, status=UserStatusChoices.INACTIVE)
        RefreshToken.for_user(user)

        set_user_status(admin_user, user.pk, UserStatusChoices.SUSPENDED)

        entry = AuditLog.objects.get(action='user_status_changed')
        assert entry.detail['terminated_sessions'] == 0
        assert entry.detail['reason'] is None

    def test_inactive_is_terminal_for_sessions(self, admin_user, patient_user):
        RefreshToken.for_user(patient_user)
        RefreshToken.for_user(patient_user)

        set_user_status(admin_user, patient_user.pk, UserStatusChoices.INACTIVE, reason='Moved abroad')

        entry = AuditLog.objects.get(action='user_status_changed')
        assert entry.detail['terminated_sessions'] == 2
        assert entry.detail['reason'] == 'Moved abroad'
        assert entry.actor_role == 'admin'
        assert entry.target_collection == 'auth_user'


@pytest.mark.django_db
class TestEnsureAdminCommand:

    def test_creates_admin(self, monkeypatch):
        monkeypatch.setenv('CLINIC_ADMIN_EMAIL', 'boss@clinic.test')
        monkeypatch.setenv('CLINIC_ADMIN_PASSWORD', 'secret-pass')

        call_command('ensure_admin', stdout=StringIO())

        user = User.objects.get(email='boss@clinic.test')
        assert user.role == RoleChoices.ADMIN
        assert user.is_superuser is True
        assert user.check_password('secret-pass')

    def test_promotes_existing_user_and_is_idempotent(self, monkeypatch, make_user):
        make_user(RoleChoices.STAFF, email='boss@clinic.test', status=UserStatusChoices.SUSPENDED)
        monkeypatch.setenv('CLINIC_ADMIN_EMAIL', 'boss@clinic.test')

        call_command('ensure_admin', stdout=StringIO())
        out = StringIO()
        call_command('ensure_admin', stdout=out)

        user = User.objects.get(email='boss@clinic.test')
        assert user.role == RoleChoices.ADMIN
        assert user.status == UserStatusChoices.ACTIVE
        assert 'already exists' in out.getvalue()
        assert User.objects.filter(email='boss@clinic.test').count() == 1
