"""
Monitoring and observability package for the course API.
"""

from .sentry_config import init_sentry, capture_payment_context
from .prometheus_metrics import (
    metrics,
    increment_http_requests,
    observe_http_request_duration,
    increment_payment_intents,
    increment_subscription_confirmations,
    increment_webhook_events,
)

__all__ = [
    "init_sentry",
    "capture_payment_context",
    "metrics",
    "increment_http_requests",
    "observe_http_request_duration",
    "increment_payment_intents",
    "increment_subscription_confirmations",
    "increment_webhook_events",
]
