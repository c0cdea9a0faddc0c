"""
Request correlation middleware.

Generates/propagates X-Request-ID and exposes it (plus the caller's id and
role) to the logging filter through thread-local storage.
"""
import logging
import time
import uuid
from threading import local

from django.utils.deprecation import MiddlewareMixin

_request_context = local()

logger = logging.getLogger(__name__)


def get_request_id():
    return getattr(_request_context, 'request_id', None)


def get_user_id():
    return getattr(_request_context, 'user_id', None)


def get_user_role():
    return getattr(_request_context, 'user_role', None)


def bind_user(user):
    """
    Attach the authenticated caller to the current request context.

    JWT authentication runs inside the DRF view, after the middleware, so
    the role gate binds the caller once it has been resolved.
    """
    if user is None:
        _request_context.user_id = None
        _request_context.user_role = None
        return
    _request_context.user_id = str(user.pk)
    _request_context.user_role = getattr(user, 'role', None)


class RequestCorrelationMiddleware(MiddlewareMixin):
    """
    - Generates/propagates X-Request-ID
    - Stores context in thread-local for logging
    - Adds the header to the response
    - Logs request duration
    """

    REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'

    def process_request(self, request):
        request_id = request.META.get(self.REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.request_id = request_id
        request.start_time = time.time()

        _request_context.request_id = request_id
        user = getattr(request, 'user', None)
        bind_user(user if user is not None and user.is_authenticated else None)

    def process_response(self, request, response):
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id

        if hasattr(request, 'start_time'):
            duration_ms = (time.time() - request.start_time) * 1000
            logger.info(
                'Request completed',
                extra={
                    'event': 'http_request_completed',
                    'path': request.path,
                    'method': request.method,
                    'status_code': response.status_code,
                    'duration_ms': round(duration_ms, 2),
                }
            )

        clear_request_context()
        return response

    def process_exception(self, request, exception):
        duration_ms = 0
        if hasattr(request, 'start_time'):
            duration_ms = (time.time() - request.start_time) * 1000

        logger.error(
            f'Request failed: {exception.__class__.__name__}',
            exc_info=True,
            extra={
                'event': 'http_request_exception',
                'path': request.path,
                'method': request.method,
                'exception_type': exception.__class__.__name__,
                'duration_ms': round(duration_ms, 2),
            }
        )


def clear_request_context():
    for attr in ('request_id', 'user_id', 'user_role'):
        if hasattr(_request_context, attr):
            delattr(_request_context, attr)
