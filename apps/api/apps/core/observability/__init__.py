"""
Observability for the clinic core.

Structured logging with PHI/PII protection, domain events, request
correlation and Prometheus metrics.
"""
from .metrics import metrics
from .events import log_domain_event
from .logging import get_sanitized_logger

__all__ = ['metrics', 'log_domain_event', 'get_sanitized_logger']
