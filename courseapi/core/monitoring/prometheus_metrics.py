"""
Prometheus metrics for the course API.
Covers HTTP traffic, payment intents, subscription confirmations and webhooks.
"""

from prometheus_client import Counter, Histogram, CollectorRegistry, CONTENT_TYPE_LATEST, generate_latest
from fastapi import Response
import structlog

logger = structlog.get_logger(__name__)

# Create custom registry for our metrics
registry = CollectorRegistry()

# HTTP Metrics
http_requests_total = Counter(
    'courseapi_http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=registry
)

http_request_duration = Histogram(
    'courseapi_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float('inf')],
    registry=registry
)

# Payment Metrics
payment_intents_total = Counter(
    'courseapi_payment_intents_total',
    'Payment intents requested',
    ['outcome'],
    registry=registry
)

subscription_confirmations_total = Counter(
    'courseapi_subscription_confirmations_total',
    'Synchronous subscription confirmations',
    ['outcome'],
    registry=registry
)

# Webhook Metrics
webhook_events = Counter(
    'courseapi_webhook_events_total',
    'Total webhook events processed',
    ['event_type', 'status'],
    registry=registry
)


class MetricsCollector:
    """Centralized metrics collection and helper methods."""

    def __init__(self):
        self.registry = registry

    def get_metrics_response(self) -> Response:
        """Return Prometheus metrics as HTTP response."""
        metrics_data = generate_latest(self.registry)
        return Response(
            content=metrics_data,
            media_type=CONTENT_TYPE_LATEST
        )


# Global metrics collector instance
metrics = MetricsCollector()


def increment_http_requests(method: str, endpoint: str, status_code: str):
    """Increment HTTP request counter."""
    http_requests_total.labels(method=method, endpoint=endpoint, status_code=status_code).inc()


def observe_http_request_duration(method: str, endpoint: str, duration_seconds: float):
    """Record HTTP request duration."""
    http_request_duration.labels(method=method, endpoint=endpoint).observe(duration_seconds)


def increment_payment_intents(outcome: str):
    """Count a payment intent request by outcome (created, already_premium, upstream_error)."""
    payment_intents_total.labels(outcome=outcome).inc()


def increment_subscription_confirmations(outcome: str):
    """Count a confirmation attempt by outcome."""
    subscription_confirmations_total.labels(outcome=outcome).inc()
    logger.debug("subscription_confirmation_recorded", outcome=outcome)


def increment_webhook_events(event_type: str, status: str):
    """Increment webhook event counter."""
    webhook_events.labels(event_type=event_type, status=status).inc()
