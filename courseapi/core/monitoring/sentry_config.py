"""
Sentry integration for the course API.
Provides exception tracking and performance monitoring.
"""

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
import structlog

from courseapi.core.settings import settings

logger = structlog.get_logger(__name__)

_UNTRACKED_TRANSACTIONS = ["/healthz", "/metrics"]


def init_sentry() -> bool:
    """Initialize Sentry when a DSN is configured. Returns whether it was enabled."""
    if not settings.sentry_dsn:
        logger.info("Sentry DSN not configured, skipping Sentry initialization")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=settings.release_version,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        attach_stacktrace=True,
        send_default_pii=False,  # Don't send PII for privacy
        max_breadcrumbs=50,
        integrations=[
            FastApiIntegration(
                failed_request_status_codes={*range(500, 600)},
            ),
            SqlalchemyIntegration(),
            LoggingIntegration(level=None, event_level=None),
        ],
        before_send=_before_send_filter,
        before_send_transaction=_before_send_transaction_filter,
    )

    sentry_sdk.set_tag("service", "courseapi")

    logger.info(
        "sentry_initialized",
        environment=settings.environment,
        traces_sample_rate=settings.sentry_traces_sample_rate,
    )
    return True


def _before_send_filter(event, hint):
    """Scrub credentials and webhook signatures before sending to Sentry."""
    if "request" in event:
        headers = event.get("request", {}).get("headers", {})
        for header in ("authorization", "stripe-signature"):
            if header in headers:
                headers[header] = "[Filtered]"

    if event.get("transaction") in _UNTRACKED_TRANSACTIONS:
        return None

    return event


def _before_send_transaction_filter(event, hint):
    """Skip health check and scrape transactions."""
    if event.get("transaction") in _UNTRACKED_TRANSACTIONS:
        return None
    return event


def capture_payment_context(payment_intent_id: str, user_id: str = None):
    """Tag the current Sentry scope with payment identifiers."""
    scope = sentry_sdk.get_current_scope()
    scope.set_tag("payment_intent_id", payment_intent_id)
    if user_id:
        scope.set_user({"id": user_id})
