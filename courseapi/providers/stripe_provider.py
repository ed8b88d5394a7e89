"""
Stripe payment provider.
"""
from typing import Dict

import stripe
import structlog

from courseapi.providers.base import (
    PaymentIntent,
    PaymentIntentNotFoundError,
    PaymentProvider,
    PaymentProviderError,
)

logger = structlog.get_logger(__name__)


class StripePaymentProvider(PaymentProvider):
    """Payment intents backed by the Stripe API."""

    def __init__(self, api_key: str, webhook_tolerance: int = 300):
        super().__init__(webhook_tolerance=webhook_tolerance)
        self.api_key = api_key

    @property
    def name(self) -> str:
        return "stripe"

    def create_intent(self, amount: int, currency: str, metadata: Dict[str, str]) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency=currency.lower(),
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.error("Stripe intent creation failed", error=str(e), amount=amount, currency=currency)
            raise PaymentProviderError(e.user_message or str(e), self.name)

        return PaymentIntent.from_dict(intent.to_dict())

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)
        except stripe.InvalidRequestError as e:
            if e.code == "resource_missing":
                raise PaymentIntentNotFoundError("No such payment_intent", self.name, intent_id)
            logger.error("Stripe intent retrieval failed", error=str(e), payment_intent_id=intent_id)
            raise PaymentProviderError(e.user_message or str(e), self.name, intent_id)
        except stripe.StripeError as e:
            logger.error("Stripe intent retrieval failed", error=str(e), payment_intent_id=intent_id)
            raise PaymentProviderError(e.user_message or str(e), self.name, intent_id)

        return PaymentIntent.from_dict(intent.to_dict())
