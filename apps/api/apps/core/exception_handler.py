"""
DRF exception handler rendering the clinic error contract.

Domain errors become {success, error_code, message, retryable, ...};
Django ValidationErrors raised by model/service code become DRF 400s.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.core.exceptions import DomainError, Forbidden
from apps.core.observability import log_domain_event, metrics


def _validation_payload(exc):
    if hasattr(exc, 'message_dict'):
        return exc.message_dict
    return {'non_field_errors': exc.messages}


def clinic_exception_handler(exc, context):
    view = context.get('view')
    view_name = view.__class__.__name__ if view is not None else '-'

    if isinstance(exc, DomainError):
        if isinstance(exc, Forbidden):
            log_domain_event(
                'request_denied',
                entity_type='Request',
                result='blocked',
                reason=exc.reason.value,
                error_code=exc.error_code,
                view=view_name,
            )
        metrics.domain_errors_total.labels(error_code=exc.error_code).inc()
        return Response(exc.as_dict(), status=exc.status_code)

    if isinstance(exc, DjangoValidationError):
        exc = exceptions.ValidationError(detail=_validation_payload(exc))

    response = exception_handler(exc, context)
    if response is None:
        return None

    if response.status_code == status.HTTP_401_UNAUTHORIZED:
        # Keep simplejwt's detail but use the same envelope as domain errors
        response.data = {
            'success': False,
            'error_code': 'UNAUTHENTICATED',
            'message': 'Authentication required',
            'retryable': False,
            'detail': response.data,
        }
    return response
