"""
Domain events logging helpers.

Provides structured event logging for authorization and scheduling.
"""
from typing import Any, Dict, Optional

from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields: Any
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'appointment_transition')
        entity_type: Type of entity (e.g., 'Appointment', 'User')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, blocked, conflict, ...)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'appointment_transition',
            entity_type='Appointment',
            entity_id=str(appointment.id),
            entity_ids={'doctor_id': str(appointment.doctor_id)},
            from_status='scheduled',
            to_status='confirmed'
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'conflict']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_authorization_denied(user, reason, **extra):
    """Log a Role Gate or resource-access denial."""
    log_domain_event(
        'authorization_denied',
        entity_type='User',
        entity_id=str(user.pk) if user is not None else None,
        result='blocked',
        reason=reason,
        **extra
    )


def log_forced_logout(user, terminated_sessions):
    """Log that a non-active account had its sessions terminated."""
    log_domain_event(
        'forced_logout',
        entity_type='User',
        entity_id=str(user.pk),
        result='warning',
        status=user.status,
        terminated_sessions=terminated_sessions,
    )


def log_appointment_transition(appointment, from_status, to_status, action, actor=None, result='success'):
    """Log appointment status transition event."""
    log_domain_event(
        'appointment_transition',
        entity_type='Appointment',
        entity_id=str(appointment.pk),
        entity_ids={
            'doctor_id': str(appointment.doctor_id),
            'patient_id': str(appointment.patient_id),
        },
        result=result,
        action=action,
        from_status=from_status,
        to_status=to_status,
        actor_role=getattr(actor, 'role', None),
    )


def log_slot_conflict(conflict, doctor_id, patient_id):
    """Log a rejected booking or proposal."""
    log_domain_event(
        'slot_conflict',
        entity_type='Appointment',
        entity_id=str(conflict.conflicting_appointment_id) if conflict.conflicting_appointment_id else None,
        entity_ids={
            'doctor_id': str(doctor_id),
            'patient_id': str(patient_id),
        },
        result='conflict',
        kind=conflict.kind,
        date=str(conflict.date),
        start_time=str(conflict.start_time),
        end_time=str(conflict.end_time),
    )
