"""
Structured logging with PHI/PII protection.

Patient data (medical history, insurance, emergency contacts) and
credentials never reach the log stream.
"""
import json
import logging
from datetime import datetime, timezone

from .correlation import get_request_id, get_user_id, get_user_role


# Keys whose values are always replaced by [REDACTED]
SENSITIVE_FIELDS = {
    'password',
    'token',
    'access',
    'refresh',
    'session_token',
    'secret',
    'api_key',
    'name',
    'first_name',
    'last_name',
    'email',
    'phone',
    'address',
    'birthday',
    'medical_history',
    'allergies',
    'current_medications',
    'blood_type',
    'insurance_provider',
    'insurance_number',
    'emergency_contact_name',
    'emergency_contact_phone',
    'emergency_contact_relationship',
    'treatment_notes',
    'diagnosis',
    'notes',
    'license_number',
}

# Attributes every LogRecord has; not copied into the JSON payload
_RECORD_ATTRIBUTES = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
}


class CorrelationFilter(logging.Filter):
    """Injects request id, user id and role into every record."""

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        record.user_id = get_user_id() or '-'
        record.user_role = get_user_role() or '-'
        return True


class SanitizedJSONFormatter(logging.Formatter):
    """
    JSON formatter that redacts SENSITIVE_FIELDS at any nesting depth.
    """

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'request_id': getattr(record, 'request_id', '-'),
            'user_id': getattr(record, 'user_id', '-'),
            'user_role': getattr(record, 'user_role', '-'),
        }

        for key, value in record.__dict__.items():
            if key in log_data or key.startswith('_') or key in _RECORD_ATTRIBUTES:
                continue
            if key.lower() in SENSITIVE_FIELDS:
                log_data[key] = '[REDACTED]'
            else:
                log_data[key] = _sanitize_value(value)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def _sanitize_value(value):
    if isinstance(value, dict):
        return sanitize_dict(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(v) for v in value]
    return value


def sanitize_dict(data):
    """
    Return a copy of `data` with sensitive keys redacted.

    Non-dict input is returned unchanged.
    """
    if not isinstance(data, dict):
        return data
    return {
        key: '[REDACTED]' if str(key).lower() in SENSITIVE_FIELDS else _sanitize_value(value)
        for key, value in data.items()
    }


def get_sanitized_logger(name):
    """
    Get a logger with the correlation filter applied.

    Usage:
        logger = get_sanitized_logger(__name__)
        logger.info('Appointment created', extra={'appointment_id': str(appt.id)})
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationFilter) for f in logger.filters):
        logger.addFilter(CorrelationFilter())
    return logger
