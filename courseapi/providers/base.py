"""
Base provider interface for payment processors.
"""
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import stripe


class PaymentIntentStatus(str, Enum):
    """Provider-side payment intent status."""
    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    REQUIRES_ACTION = "requires_action"
    PROCESSING = "processing"
    REQUIRES_CAPTURE = "requires_capture"
    CANCELED = "canceled"
    SUCCEEDED = "succeeded"


@dataclass
class PaymentIntent:
    """Standardized view of a provider payment intent."""
    id: str
    status: str
    amount: int  # minor units
    currency: str
    client_secret: Optional[str] = None
    payment_method_types: List[str] = field(default_factory=list)
    customer: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def payment_method(self) -> str:
        return self.payment_method_types[0] if self.payment_method_types else "card"

    @property
    def succeeded(self) -> bool:
        return self.status == PaymentIntentStatus.SUCCEEDED.value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentIntent":
        """Build from a raw payment_intent object (e.g. a webhook payload)."""
        customer = data.get("customer")
        if isinstance(customer, dict):
            customer = customer.get("id")
        return cls(
            id=data["id"],
            status=data.get("status", ""),
            amount=int(data.get("amount") or 0),
            currency=data.get("currency") or "usd",
            client_secret=data.get("client_secret"),
            payment_method_types=list(data.get("payment_method_types") or []),
            customer=customer,
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class WebhookEvent:
    """Verified provider event."""
    id: str
    type: str
    data_object: Dict[str, Any] = field(default_factory=dict)


class PaymentProviderError(Exception):
    """Base payment provider error."""
    def __init__(self, message: str, provider: str, intent_id: Optional[str] = None):
        self.message = message
        self.provider = provider
        self.intent_id = intent_id
        super().__init__(f"{provider}: {message}")


class WebhookSignatureError(PaymentProviderError):
    """Webhook payload could not be authenticated."""
    pass


class PaymentIntentNotFoundError(PaymentProviderError):
    """Provider has no intent with the requested id."""
    pass


class PaymentProvider(ABC):
    """Abstract base class for payment providers."""

    def __init__(self, webhook_tolerance: int = 300):
        self.webhook_tolerance = webhook_tolerance

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        pass

    @abstractmethod
    def create_intent(self, amount: int, currency: str, metadata: Dict[str, str]) -> PaymentIntent:
        """
        Create a payment intent.

        Args:
            amount: Amount in minor currency units
            currency: ISO currency code
            metadata: Key/value pairs echoed back on the intent and its events

        Returns:
            PaymentIntent with id and client secret

        Raises:
            PaymentProviderError: On provider failure
        """
        pass

    @abstractmethod
    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        """
        Fetch the authoritative state of a payment intent.

        Raises:
            PaymentProviderError: On provider failure or unknown intent
        """
        pass

    def verify_signature(self, payload: Union[bytes, str], signature_header: str, secret: str) -> WebhookEvent:
        """
        Verify a webhook signature and parse the event.

        Uses the Stripe signing scheme (``t=<ts>,v1=<hmac-sha256>``) with the
        configured timestamp tolerance.

        Raises:
            WebhookSignatureError: Missing, stale or mismatched signature, or
                a payload that is not a JSON event
        """
        if not signature_header:
            raise WebhookSignatureError("Missing signature header", self.name)
        if not secret:
            raise WebhookSignatureError("Webhook secret is not configured", self.name)

        payload_text = payload.decode("utf-8") if isinstance(payload, bytes) else payload

        try:
            stripe.WebhookSignature.verify_header(
                payload_text, signature_header, secret, self.webhook_tolerance
            )
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(str(e), self.name)

        try:
            data = json.loads(payload_text)
        except json.JSONDecodeError:
            raise WebhookSignatureError("Invalid JSON payload", self.name)

        if not isinstance(data, dict):
            raise WebhookSignatureError("Invalid event payload", self.name)

        return WebhookEvent(
            id=data.get("id", ""),
            type=data.get("type", ""),
            data_object=(data.get("data") or {}).get("object") or {},
        )
