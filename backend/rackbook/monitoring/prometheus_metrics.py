"""
Prometheus metrics module for rackbook.

Service operation timings come from the @measure_operation decorator; the
domain counters record validation outcomes so capacity pressure on a side
is visible without reading logs.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# rackbook metrics only; process and platform collectors stay off this registry
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "rackbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "rackbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "rackbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

capacity_checks_total = Counter(
    "rackbook_capacity_checks_total",
    "Capacity validations by outcome",
    ["side_id", "outcome"],  # valid | violation
    registry=REGISTRY,
)

closed_period_conflicts_total = Counter(
    "rackbook_closed_period_conflicts_total",
    "Recurring chains rejected because an occurrence falls inside a closure",
    ["side_id"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Records rackbook metrics and exposes them in exposition format."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """Observe one measured call; errors are also counted by exception type."""
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()

        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_capacity_check(side_id: int, is_valid: bool) -> None:
        outcome = "valid" if is_valid else "violation"
        capacity_checks_total.labels(side_id=str(side_id), outcome=outcome).inc()

    @staticmethod
    def record_closed_conflict(side_id: int) -> None:
        closed_period_conflicts_total.labels(side_id=str(side_id)).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Text exposition of every rackbook metric."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
