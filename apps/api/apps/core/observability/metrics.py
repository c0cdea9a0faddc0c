"""
Prometheus metrics for the clinic core.
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram


class MetricsRegistry:
    """
    Central metrics registry.

    Provides typed access to all application metrics.
    """

    def __init__(self):
        self._setup_metrics()

    def _setup_metrics(self):
        # ===================================================================
        # HTTP / error metrics
        # ===================================================================
        self.domain_errors_total = Counter(
            'clinic_domain_errors_total',
            'Domain errors rendered by the API',
            ['error_code']
        )

        # ===================================================================
        # Authorization metrics
        # ===================================================================
        self.authorization_decisions_total = Counter(
            'clinic_authorization_decisions_total',
            'Role gate decisions',
            ['outcome', 'reason']  # outcome: allowed|denied|unauthenticated
        )

        self.forced_logouts_total = Counter(
            'clinic_forced_logouts_total',
            'Sessions terminated for non-active accounts'
        )

        self.resource_access_denied_total = Counter(
            'clinic_resource_access_denied_total',
            'Resource access evaluator denials',
            ['resource', 'role']
        )

        # ===================================================================
        # Scheduling metrics
        # ===================================================================
        self.appointments_booked_total = Counter(
            'clinic_appointments_booked_total',
            'Appointments created',
            ['result']  # success|conflict
        )

        self.appointment_transitions_total = Counter(
            'clinic_appointment_transitions_total',
            'Appointment status transitions',
            ['action', 'from_status', 'result']
        )

        self.slot_conflicts_total = Counter(
            'clinic_slot_conflicts_total',
            'Slot conflicts detected',
            ['kind']
        )

        self.booking_duration_seconds = Histogram(
            'clinic_booking_duration_seconds',
            'Duration of the locked booking commit',
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
        )

        # ===================================================================
        # Audit metrics
        # ===================================================================
        self.audit_entries_total = Counter(
            'clinic_audit_entries_total',
            'Audit entries written by the database writer',
            ['action']
        )

    def track_duration(self, histogram_metric):
        """
        Decorator to track function duration.

        Usage:
            @metrics.track_duration(metrics.booking_duration_seconds)
            def create_appointment(...):
                ...
        """
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    histogram_metric.observe(time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics = MetricsRegistry()
