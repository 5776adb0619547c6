"""
Prometheus metrics module for ToolShare.

This module exposes Prometheus-compatible metrics fed by the
@measure_operation service decorator and by the booking lifecycle.
"""

from threading import Lock
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with default process metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "toolshare_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "toolshare_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "toolshare_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_transitions_total = Counter(
    "toolshare_booking_transitions_total",
    "Booking status transitions applied",
    ["from_status", "to_status", "actor"],
    registry=REGISTRY,
)

booking_lock_total = Counter(
    "toolshare_booking_lock_total",
    "Per-booking mutex outcomes",
    ["operation", "outcome"],
    registry=REGISTRY,
)

auto_completed_bookings_total = Counter(
    "toolshare_auto_completed_bookings_total",
    "Bookings completed by the return grace-period sweep",
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _lock: Lock = Lock()

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingLifecycleService')
            operation: Operation/method name (e.g., 'cancel_booking')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_booking_transition(from_status: str, to_status: str, actor: str) -> None:
        booking_transitions_total.labels(
            from_status=from_status, to_status=to_status, actor=actor
        ).inc()

    @staticmethod
    def record_booking_lock(operation: str, outcome: str) -> None:
        booking_lock_total.labels(operation=operation, outcome=outcome).inc()

    @staticmethod
    def inc_auto_completed(count: int = 1) -> None:
        if count > 0:
            auto_completed_bookings_total.inc(count)

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format."""
        with PrometheusMetrics._lock:
            return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)


# Singleton instance
prometheus_metrics = PrometheusMetrics()
