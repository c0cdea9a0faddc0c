"""
Static role -> action permission table.

The table is built once at import time and exposed read-only. There is no
runtime mutation path; unknown roles or actions are simply not permitted.
"""
from types import MappingProxyType

from django.db import models

from apps.authz.models import RoleChoices


class Action(models.TextChoices):
    # Administration
    MANAGE_USERS = 'manage_users'
    MANAGE_STAFF = 'manage_staff'
    MANAGE_PATIENTS = 'manage_patients'
    VIEW_ALL_APPOINTMENTS = 'view_all_appointments'
    MANAGE_SERVICES = 'manage_services'
    VIEW_FINANCIAL_RECORDS = 'view_financial_records'
    MANAGE_SCHEDULES = 'manage_schedules'
    VIEW_REPORTS = 'view_reports'
    MANAGE_SYSTEM_SETTINGS = 'manage_system_settings'

    # Clinical staff
    VIEW_PATIENTS = 'view_patients'
    CREATE_APPOINTMENTS = 'create_appointments'
    EDIT_APPOINTMENTS = 'edit_appointments'
    VIEW_PATIENT_RECORDS = 'view_patient_records'
    CREATE_PATIENT_RECORDS = 'create_patient_records'
    EDIT_PATIENT_RECORDS = 'edit_patient_records'
    VIEW_TREATMENT_PLANS = 'view_treatment_plans'
    CREATE_TREATMENT_PLANS = 'create_treatment_plans'
    EDIT_TREATMENT_PLANS = 'edit_treatment_plans'
    MANAGE_OWN_SCHEDULE = 'manage_own_schedule'
    VIEW_OWN_APPOINTMENTS = 'view_own_appointments'

    # Appointment lifecycle
    CONFIRM_APPOINTMENTS = 'confirm_appointments'
    CHECK_IN_APPOINTMENTS = 'check_in_appointments'
    START_APPOINTMENTS = 'start_appointments'
    COMPLETE_APPOINTMENTS = 'complete_appointments'
    CANCEL_APPOINTMENTS = 'cancel_appointments'
    MARK_NO_SHOW = 'mark_no_show'
    RESCHEDULE_APPOINTMENTS = 'reschedule_appointments'

    # Patient self-service
    VIEW_OWN_PROFILE = 'view_own_profile'
    EDIT_OWN_PROFILE = 'edit_own_profile'
    REQUEST_APPOINTMENTS = 'request_appointments'
    VIEW_OWN_RECORDS = 'view_own_records'
    VIEW_OWN_TREATMENT_PLANS = 'view_own_treatment_plans'
    VIEW_OWN_FINANCIAL_RECORDS = 'view_own_financial_records'
    CONFIRM_OWN_APPOINTMENTS = 'confirm_own_appointments'
    CANCEL_OWN_APPOINTMENTS = 'cancel_own_appointments'
    RESCHEDULE_OWN_APPOINTMENTS = 'reschedule_own_appointments'


_LIFECYCLE = frozenset({
    Action.CONFIRM_APPOINTMENTS,
    Action.CHECK_IN_APPOINTMENTS,
    Action.START_APPOINTMENTS,
    Action.COMPLETE_APPOINTMENTS,
    Action.CANCEL_APPOINTMENTS,
    Action.MARK_NO_SHOW,
    Action.RESCHEDULE_APPOINTMENTS,
})

PERMISSION_TABLE = MappingProxyType({
    RoleChoices.ADMIN.value: frozenset({
        Action.MANAGE_USERS,
        Action.MANAGE_STAFF,
        Action.MANAGE_PATIENTS,
        Action.VIEW_ALL_APPOINTMENTS,
        Action.MANAGE_SERVICES,
        Action.VIEW_FINANCIAL_RECORDS,
        Action.MANAGE_SCHEDULES,
        Action.VIEW_REPORTS,
        Action.MANAGE_SYSTEM_SETTINGS,
        Action.CREATE_APPOINTMENTS,
        Action.EDIT_APPOINTMENTS,
    }) | _LIFECYCLE,
    RoleChoices.STAFF.value: frozenset({
        Action.VIEW_PATIENTS,
        Action.CREATE_APPOINTMENTS,
        Action.EDIT_APPOINTMENTS,
        Action.VIEW_PATIENT_RECORDS,
        Action.CREATE_PATIENT_RECORDS,
        Action.EDIT_PATIENT_RECORDS,
        Action.VIEW_TREATMENT_PLANS,
        Action.CREATE_TREATMENT_PLANS,
        Action.EDIT_TREATMENT_PLANS,
        Action.MANAGE_OWN_SCHEDULE,
        Action.VIEW_OWN_APPOINTMENTS,
    }) | _LIFECYCLE,
    RoleChoices.PATIENT.value: frozenset({
        Action.VIEW_OWN_PROFILE,
        Action.EDIT_OWN_PROFILE,
        Action.VIEW_OWN_APPOINTMENTS,
        Action.REQUEST_APPOINTMENTS,
        Action.VIEW_OWN_RECORDS,
        Action.VIEW_OWN_TREATMENT_PLANS,
        Action.VIEW_OWN_FINANCIAL_RECORDS,
        Action.CONFIRM_OWN_APPOINTMENTS,
        Action.CANCEL_OWN_APPOINTMENTS,
        Action.RESCHEDULE_OWN_APPOINTMENTS,
    }),
})


def permissions_for(role) -> frozenset:
    """All actions granted to `role` (empty for unknown roles)."""
    return PERMISSION_TABLE.get(str(role) if role is not None else None, frozenset())


def has_permission(role, action) -> bool:
    """
    Check whether a role may perform an action.

    Args:
        role: Role name (RoleChoices value or plain string)
        action: Action name (Action value or plain string)

    Returns:
        True if the table grants the action, False otherwise
    """
    if role is None or action is None:
        return False
    return str(action) in permissions_for(role)
