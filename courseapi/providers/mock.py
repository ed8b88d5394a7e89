"""
In-memory mock payment provider for development and tests.

Intents are kept in a dict and never leave the process. Webhook payloads can
be signed with ``sign_payload`` using the same scheme Stripe uses, so the
verification path is exercised end to end.
"""
import hashlib
import hmac
import json
import time
import uuid
from typing import Any, Dict, Optional

from courseapi.providers.base import (
    PaymentIntent,
    PaymentIntentNotFoundError,
    PaymentIntentStatus,
    PaymentProvider,
    PaymentProviderError,
)


class MockPaymentProvider(PaymentProvider):
    """Simple mock provider for testing and development."""

    def __init__(self, webhook_tolerance: int = 300):
        super().__init__(webhook_tolerance=webhook_tolerance)
        self.intents: Dict[str, PaymentIntent] = {}
        # Simulate provider outage
        self.outage = False

    @property
    def name(self) -> str:
        return "mock"

    def _check_available(self, intent_id: Optional[str] = None):
        if self.outage:
            raise PaymentProviderError("Provider unavailable", self.name, intent_id)

    def create_intent(self, amount: int, currency: str, metadata: Dict[str, str]) -> PaymentIntent:
        self._check_available()
        intent_id = f"pi_mock_{uuid.uuid4().hex[:24]}"
        intent = PaymentIntent(
            id=intent_id,
            status=PaymentIntentStatus.REQUIRES_PAYMENT_METHOD.value,
            amount=amount,
            currency=currency.lower(),
            client_secret=f"{intent_id}_secret_{uuid.uuid4().hex[:16]}",
            payment_method_types=["card"],
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        return intent

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        self._check_available(intent_id)
        intent = self.intents.get(intent_id)
        if intent is None:
            raise PaymentIntentNotFoundError("No such payment_intent", self.name, intent_id)
        return intent

    def set_status(self, intent_id: str, status: str, customer: Optional[str] = None) -> PaymentIntent:
        """Move a stored intent to ``status`` as if the client had paid (or not)."""
        intent = self.intents.get(intent_id)
        if intent is None:
            raise PaymentIntentNotFoundError("No such payment_intent", self.name, intent_id)
        intent.status = status
        if customer:
            intent.customer = customer
        return intent

    def build_event(self, event_type: str, intent: PaymentIntent) -> str:
        """Serialize a provider event carrying ``intent`` as its data object."""
        return json.dumps({
            "id": f"evt_mock_{uuid.uuid4().hex[:24]}",
            "object": "event",
            "type": event_type,
            "data": {"object": intent_to_dict(intent)},
        })

    @staticmethod
    def sign_payload(payload: str, secret: str, timestamp: Optional[int] = None) -> str:
        """Build a ``t=<ts>,v1=<hex>`` signature header for ``payload``."""
        timestamp = int(time.time()) if timestamp is None else timestamp
        signed = f"{timestamp}.{payload}".encode("utf-8")
        digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"


def intent_to_dict(intent: PaymentIntent) -> Dict[str, Any]:
    """Render an intent the way the provider serializes it in events."""
    return {
        "id": intent.id,
        "object": "payment_intent",
        "status": intent.status,
        "amount": intent.amount,
        "currency": intent.currency,
        "client_secret": intent.client_secret,
        "payment_method_types": list(intent.payment_method_types),
        "customer": intent.customer,
        "metadata": dict(intent.metadata),
    }
