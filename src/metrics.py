"""Business metrics for the rentals service."""

from opentelemetry import metrics

from .logging_config import get_logger

logger = get_logger(__name__)

meter = metrics.get_meter(__name__)

# HTTP Request Metrics
http_request_duration = meter.create_histogram(
    name="http_request_duration_seconds",
    description="Duration of HTTP requests in seconds",
    unit="s",
)

http_requests_total = meter.create_counter(
    name="http_requests_total",
    description="Total number of HTTP requests",
)

http_request_errors = meter.create_counter(
    name="http_request_errors_total",
    description="Total number of HTTP request errors",
)

# Business Metrics
lease_requests_created_total = meter.create_counter(
    name="lease_requests_created_total",
    description="Total number of lease requests created",
)

status_transitions_total = meter.create_counter(
    name="status_transitions_total",
    description="Total number of lease request and lease status changes",
)

leases_created_total = meter.create_counter(
    name="leases_created_total",
    description="Total number of leases created",
)

history_append_failures_total = meter.create_counter(
    name="history_append_failures_total",
    description="History snapshots that could not be recorded",
)

product_cleanups_total = meter.create_counter(
    name="product_cleanups_total",
    description="Product deletion cascades handled",
)


def record_http_request(method: str, endpoint: str, status_code: int, duration: float):
    """Record HTTP request metrics."""
    labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}

    http_request_duration.record(duration, labels)
    http_requests_total.add(1, labels)

    if status_code >= 400:
        http_request_errors.add(1, labels)


def record_lease_request_created():
    lease_requests_created_total.add(1)


def record_status_transition(entity: str, from_status: str, to_status: str):
    """Record a status change of a lease request or lease."""
    status_transitions_total.add(
        1, {"entity": entity, "from": from_status, "to": to_status}
    )


def record_lease_created(source: str = "direct"):
    leases_created_total.add(1, {"source": source})


def record_history_append_failure():
    history_append_failures_total.add(1)


def record_product_cleanup(succeeded: bool):
    product_cleanups_total.add(1, {"succeeded": str(succeeded).lower()})


logger.debug("Business metrics instruments created")
