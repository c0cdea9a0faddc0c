"""
Tests for relationship-based resource access and request identity.
"""
import uuid
from types import SimpleNamespace

import pytest
from django.contrib.auth.models import AnonymousUser

from apps.authz.access import (
    can_access_patient,
    can_act_on_appointment,
    ensure_can_access_patient,
    ensure_can_act_on_appointment,
)
from apps.authz.identity import identity_from_request
from apps.clinical.models import PatientRecord
from apps.core.exceptions import DenialReason, Forbidden


@pytest.mark.django_db
class TestCanAccessPatient:

    def test_admin_accesses_any_patient(self, admin_user, patient_user):
        assert can_access_patient(admin_user, patient_user.pk) is True

    def test_patient_accesses_only_self(self, patient_user, other_patient):
        assert can_access_patient(patient_user, patient_user.pk) is True
        assert can_access_patient(patient_user, str(patient_user.pk)) is True
        assert can_access_patient(patient_user, other_patient.pk) is False

    def test_staff_without_relationship_is_denied(self, dentist, patient_user):
        assert can_access_patient(dentist, patient_user.pk) is False

    def test_staff_with_appointment_is_allowed(self, dentist, patient_user, future_date, make_appointment):
        make_appointment(patient_user, dentist, future_date)
        assert can_access_patient(dentist, patient_user.pk) is True

    def test_past_cancelled_appointment_still_counts(self, dentist, patient_user, future_date, make_appointment):
        make_appointment(patient_user, dentist, future_date, status='cancelled')
        assert can_access_patient(dentist, patient_user.pk) is True

    def test_staff_who_authored_record_is_allowed(self, hygienist, patient_user):
        PatientRecord.objects.create(patient=patient_user, created_by=hygienist, diagnosis='Gingivitis')
        assert can_access_patient(hygienist, patient_user.pk) is True

    def test_other_staffs_relationship_does_not_leak(self, dentist, other_dentist, patient_user,
                                                     future_date, make_appointment):
        make_appointment(patient_user, other_dentist, future_date)
        assert can_access_patient(dentist, patient_user.pk) is False

    def test_no_user(self, patient_user):
        assert can_access_patient(None, patient_user.pk) is False

    def test_ensure_raises_generic_denial(self, dentist, patient_user):
        with pytest.raises(Forbidden) as exc_info:
            ensure_can_access_patient(dentist, patient_user.pk)

        assert exc_info.value.reason == DenialReason.RESOURCE_ACCESS_DENIED
        assert exc_info.value.message == 'Access denied.'


@pytest.mark.django_db
class TestCanActOnAppointment:

    def test_admin_and_staff_act_on_any(self, admin_user, hygienist, patient_user, dentist,
                                        future_date, make_appointment):
        appointment = make_appointment(patient_user, dentist, future_date)

        assert can_act_on_appointment(admin_user, appointment.pk) is True
        assert can_act_on_appointment(hygienist, appointment.pk) is True

    def test_patient_acts_on_own_only(self, patient_user, other_patient, dentist, future_date, make_appointment):
        appointment = make_appointment(patient_user, dentist, future_date)

        assert can_act_on_appointment(patient_user, appointment.pk) is True
        assert can_act_on_appointment(other_patient, appointment.pk) is False

    def test_missing_and_foreign_look_identical_to_patients(self, patient_user, other_patient, dentist,
                                                            future_date, make_appointment):
        foreign = make_appointment(other_patient, dentist, future_date)

        with pytest.raises(Forbidden) as missing:
            ensure_can_act_on_appointment(patient_user, uuid.uuid4())
        with pytest.raises(Forbidden) as not_owned:
            ensure_can_act_on_appointment(patient_user, foreign.pk)

        assert missing.value.as_dict() == not_owned.value.as_dict()


@pytest.mark.django_db
class TestIdentityFromRequest:

    def test_authenticated_user(self, dentist):
        assert identity_from_request(SimpleNamespace(user=dentist)) == dentist

    def test_anonymous_user(self):
        assert identity_from_request(SimpleNamespace(user=AnonymousUser())) is None

    def test_request_without_user(self):
        assert identity_from_request(SimpleNamespace()) is None
