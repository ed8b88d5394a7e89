"""
Payment intent orchestration.

Drives a purchase from intent creation to premium access. There are two
confirmation paths for the same intent:

- ``confirm_subscription``: the client reports a finished payment and the
  provider is re-queried for the authoritative status;
- ``handle_webhook``: the provider pushes a signed event.

Both end in ``_apply_success``, which is built from conditional writes
(``SubscriptionLedger.promote`` and the transaction status lattice) so the
paths can run in any order, and any number of times, with the same result.
"""

from typing import Any, Dict, Optional, Union

from sqlmodel import Session
import structlog

from courseapi.core.config import (
    EVENT_PAYMENT_CANCELED,
    EVENT_PAYMENT_FAILED,
    EVENT_PAYMENT_SUCCEEDED,
    PAYMENT_INTENT_TYPE,
    SubscriptionTier,
    TransactionStatus,
    ZERO_DECIMAL_CURRENCIES,
)
from courseapi.core.exceptions import (
    AlreadySubscribedError,
    AuthorizationError,
    InvalidSignatureError,
    NotFoundError,
    PaymentNotSuccessfulError,
    UpstreamServiceError,
)
from courseapi.core.monitoring import (
    capture_payment_context,
    increment_payment_intents,
    increment_subscription_confirmations,
    increment_webhook_events,
)
from courseapi.core.settings import settings
from courseapi.db.models.user import User
from courseapi.providers.base import (
    PaymentIntent,
    PaymentIntentNotFoundError,
    PaymentProvider,
    PaymentProviderError,
    WebhookSignatureError,
)
from courseapi.api.services.catalog import CourseRepository
from courseapi.api.services.subscriptions import SubscriptionLedger
from courseapi.api.services.transactions import TransactionStore

logger = structlog.get_logger(__name__)

WEBHOOK_STATUS_BY_EVENT = {
    EVENT_PAYMENT_FAILED: TransactionStatus.FAILED,
    EVENT_PAYMENT_CANCELED: TransactionStatus.CANCELED,
}


def to_minor_units(amount: float, currency: str) -> int:
    """Convert a major-unit amount to the provider's integer amount."""
    if currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return int(round(amount))
    return int(round(amount * 100))


def from_minor_units(amount: int, currency: str) -> float:
    """Convert a provider amount back to major units (500 USD cents -> 5.0)."""
    if currency.lower() in ZERO_DECIMAL_CURRENCIES:
        return float(amount)
    return amount / 100


class PaymentOrchestrator:
    """
    Service coordinating the payment provider, transaction records and the
    subscription ledger.
    """

    def __init__(self, session: Session, provider: PaymentProvider, webhook_secret: Optional[str] = None):
        self.session = session
        self.provider = provider
        self.webhook_secret = settings.stripe_webhook_secret if webhook_secret is None else webhook_secret
        self.ledger = SubscriptionLedger(session)
        self.transactions = TransactionStore(session)
        self.courses = CourseRepository(session)

    def create_payment_intent(self, user: User) -> Dict[str, str]:
        """
        Open a provider intent for the course price and record it as pending.

        Raises:
            AlreadySubscribedError: User is already premium (no provider call)
            UpstreamServiceError: Provider call failed
        """
        if user.is_premium:
            increment_payment_intents("already_premium")
            raise AlreadySubscribedError()

        course = self.courses.get_active()
        if course is not None:
            amount, currency = course.price, course.currency
        else:
            currency = settings.course_currency
            amount = from_minor_units(settings.course_price_cents, currency)

        metadata = {
            "user_id": user.id,
            "user_email": user.email,
            "type": PAYMENT_INTENT_TYPE,
        }
        if course is not None:
            metadata["course_id"] = course.id

        try:
            intent = self.provider.create_intent(
                amount=to_minor_units(amount, currency),
                currency=currency.lower(),
                metadata=metadata,
            )
        except PaymentProviderError as e:
            increment_payment_intents("upstream_error")
            logger.error("Payment intent creation failed", user_id=user.id, error=e.message)
            raise UpstreamServiceError("Payment", e.message)

        self.transactions.create_pending(
            user_id=user.id,
            external_payment_id=intent.id,
            amount=amount,
            currency=currency,
            payment_method=intent.payment_method,
            metadata=self._transaction_metadata(intent),
        )

        increment_payment_intents("created")
        logger.info(
            "Payment intent created",
            user_id=user.id,
            payment_intent_id=intent.id,
            amount=intent.amount,
            currency=intent.currency
        )
        return {"client_secret": intent.client_secret, "payment_intent_id": intent.id}

    def confirm_subscription(self, user: User, payment_intent_id: str) -> Dict[str, Any]:
        """
        Re-query the provider and grant premium if the payment succeeded.

        Raises:
            NotFoundError: Provider has no intent with this id
            UpstreamServiceError: Provider call failed
            AuthorizationError: Intent was opened for a different user or is
                not a course purchase
            PaymentNotSuccessfulError: Provider status is not ``succeeded``
        """
        capture_payment_context(payment_intent_id, user.id)

        try:
            intent = self.provider.retrieve_intent(payment_intent_id)
        except PaymentIntentNotFoundError:
            increment_subscription_confirmations("not_found")
            logger.info("Payment intent not found", payment_intent_id=payment_intent_id)
            raise NotFoundError("Payment intent", payment_intent_id)
        except PaymentProviderError as e:
            increment_subscription_confirmations("upstream_error")
            logger.error("Payment intent retrieval failed", payment_intent_id=payment_intent_id, error=e.message)
            raise UpstreamServiceError("Payment", e.message)

        if intent.metadata.get("user_id") != user.id:
            increment_subscription_confirmations("forbidden")
            logger.warning(
                "Payment intent ownership mismatch",
                payment_intent_id=payment_intent_id,
                user_id=user.id
            )
            raise AuthorizationError("Payment intent does not belong to this user", code="PAYMENT_OWNERSHIP")

        if not self._is_course_purchase(intent):
            increment_subscription_confirmations("forbidden")
            logger.warning(
                "Payment intent is not a course purchase",
                payment_intent_id=payment_intent_id,
                intent_type=intent.metadata.get("type")
            )
            raise AuthorizationError("Payment intent is not a course purchase", code="PAYMENT_TYPE")

        if not intent.succeeded:
            increment_subscription_confirmations("not_successful")
            logger.info(
                "Payment not successful",
                payment_intent_id=payment_intent_id,
                payment_status=intent.status
            )
            raise PaymentNotSuccessfulError(intent.status)

        self._apply_success(user.id, intent)
        increment_subscription_confirmations("succeeded")

        return {
            "success": True,
            "subscription": SubscriptionTier.PREMIUM.value,
            "message": "Subscription activated successfully",
        }

    def handle_webhook(self, payload: Union[bytes, str], signature_header: Optional[str]) -> Dict[str, bool]:
        """
        Verify and apply a provider event.

        Raises:
            InvalidSignatureError: Signature missing, stale or wrong; nothing
                is parsed or written
        """
        try:
            event = self.provider.verify_signature(payload, signature_header or "", self.webhook_secret)
        except WebhookSignatureError as e:
            increment_webhook_events("unknown", "rejected")
            logger.warning("Webhook signature rejected", provider=self.provider.name, error=e.message)
            raise InvalidSignatureError()

        logger.info("Webhook received", event_id=event.id, event_type=event.type)

        handled = event.type == EVENT_PAYMENT_SUCCEEDED or event.type in WEBHOOK_STATUS_BY_EVENT
        intent = self._event_intent(event.data_object) if handled else None
        if intent is None:
            increment_webhook_events(event.type, "ignored")
            logger.info("Webhook event ignored", event_id=event.id, event_type=event.type)
            return {"received": True}

        if event.type == EVENT_PAYMENT_SUCCEEDED:
            self._handle_payment_succeeded(intent)
        else:
            self._handle_payment_closed(intent, WEBHOOK_STATUS_BY_EVENT[event.type])

        increment_webhook_events(event.type, "processed")
        return {"received": True}

    def _event_intent(self, data_object: Dict[str, Any]) -> Optional[PaymentIntent]:
        """Intent carried by a handled event type, or None for anything else."""
        if not data_object.get("id"):
            return None
        if data_object.get("object", "payment_intent") != "payment_intent":
            return None
        intent = PaymentIntent.from_dict(data_object)
        if not self._is_course_purchase(intent):
            logger.info(
                "Payment intent is not a course purchase",
                payment_intent_id=intent.id,
                intent_type=intent.metadata.get("type")
            )
            return None
        return intent if self._owner_of(intent) else None

    @staticmethod
    def _is_course_purchase(intent: PaymentIntent) -> bool:
        return intent.metadata.get("type") == PAYMENT_INTENT_TYPE

    def _owner_of(self, intent: PaymentIntent) -> Optional[User]:
        user_id = intent.metadata.get("user_id")
        if not user_id:
            logger.warning("Payment intent has no user metadata", payment_intent_id=intent.id)
            return None
        user = self.ledger.users.get(user_id)
        if user is None:
            logger.warning("Payment intent user not found", payment_intent_id=intent.id, user_id=user_id)
        return user

    def _handle_payment_succeeded(self, intent: PaymentIntent):
        self._apply_success(intent.metadata["user_id"], intent)

    def _handle_payment_closed(self, intent: PaymentIntent, status: TransactionStatus):
        self.transactions.record_outcome(
            status,
            user_id=intent.metadata["user_id"],
            external_payment_id=intent.id,
            amount=from_minor_units(intent.amount, intent.currency),
            currency=intent.currency,
            payment_method=intent.payment_method,
            metadata=self._transaction_metadata(intent),
        )

    def _apply_success(self, user_id: str, intent: PaymentIntent):
        promoted = self.ledger.promote(user_id, customer_id=intent.customer)
        transaction = self.transactions.record_succeeded(
            user_id=user_id,
            external_payment_id=intent.id,
            amount=from_minor_units(intent.amount, intent.currency),
            currency=intent.currency,
            payment_method=intent.payment_method,
            metadata=self._transaction_metadata(intent),
        )
        logger.info(
            "Payment applied",
            user_id=user_id,
            payment_intent_id=intent.id,
            promoted=promoted,
            transaction_status=transaction.status
        )

    @staticmethod
    def _transaction_metadata(intent: PaymentIntent) -> Dict[str, Any]:
        return {
            "course_id": intent.metadata.get("course_id"),
            "user_email": intent.metadata.get("user_email"),
        }
