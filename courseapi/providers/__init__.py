# Payment provider package initialization

from functools import lru_cache

from courseapi.core.settings import settings
from .base import (
    PaymentIntent,
    PaymentIntentNotFoundError,
    PaymentIntentStatus,
    PaymentProvider,
    PaymentProviderError,
    WebhookEvent,
    WebhookSignatureError,
)
from .mock import MockPaymentProvider


@lru_cache()
def get_payment_provider() -> PaymentProvider:
    """Get the configured provider instance."""
    if settings.payment_provider == "mock":
        return MockPaymentProvider(webhook_tolerance=settings.stripe_webhook_tolerance)

    from .stripe_provider import StripePaymentProvider
    return StripePaymentProvider(
        api_key=settings.stripe_secret_key,
        webhook_tolerance=settings.stripe_webhook_tolerance,
    )


__all__ = [
    "PaymentIntent",
    "PaymentIntentNotFoundError",
    "PaymentIntentStatus",
    "PaymentProvider",
    "PaymentProviderError",
    "WebhookEvent",
    "WebhookSignatureError",
    "MockPaymentProvider",
    "get_payment_provider",
]
