"""
Resource access evaluator: relationship-based checks on top of the role gate.

All functions are pure reads. Denials use one generic message so a patient
cannot tell a missing appointment from someone else's.
"""
from apps.authz.models import RoleChoices
from apps.clinical.models import Appointment, PatientRecord
from apps.core.exceptions import DenialReason, Forbidden
from apps.core.observability import metrics
from apps.core.observability.events import log_authorization_denied


def can_access_patient(user, patient_id):
    """
    Whether `user` may read data of the patient user `patient_id`.

    - admin: always
    - staff: has been the doctor on one of the patient's appointments, or
      authored one of the patient's records
    - patient: only their own data
    """
    if user is None or patient_id is None:
        return False

    if user.role == RoleChoices.ADMIN:
        return True

    if user.role == RoleChoices.STAFF:
        return (
            Appointment.objects.filter(doctor=user, patient_id=patient_id).exists()
            or PatientRecord.objects.filter(created_by=user, patient_id=patient_id).exists()
        )

    if user.role == RoleChoices.PATIENT:
        return str(user.pk) == str(patient_id)

    return False


def can_act_on_appointment(user, appointment_id):
    """
    Whether `user` may manage the appointment `appointment_id`.

    Admin and staff manage every appointment; a patient only their own.
    """
    if user is None or appointment_id is None:
        return False

    if user.role in (RoleChoices.ADMIN, RoleChoices.STAFF):
        return True

    if user.role == RoleChoices.PATIENT:
        return Appointment.objects.filter(pk=appointment_id, patient=user).exists()

    return False


def ensure_can_access_patient(user, patient_id):
    if not can_access_patient(user, patient_id):
        _deny(user, 'patient', patient_id)


def ensure_can_act_on_appointment(user, appointment_id):
    if not can_act_on_appointment(user, appointment_id):
        _deny(user, 'appointment', appointment_id)


def _deny(user, resource, resource_id):
    role = getattr(user, 'role', None) or '-'
    metrics.resource_access_denied_total.labels(resource=resource, role=role).inc()
    log_authorization_denied(
        user,
        DenialReason.RESOURCE_ACCESS_DENIED.value,
        resource=resource,
        resource_id=str(resource_id),
    )
    raise Forbidden(DenialReason.RESOURCE_ACCESS_DENIED)
