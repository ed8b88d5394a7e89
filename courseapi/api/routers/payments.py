"""
Payments router: intent creation, synchronous confirmation, transaction
history and the provider webhook.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Request
from pydantic import AliasChoices, BaseModel, Field
from sqlmodel import Session
import structlog

from courseapi.core.exceptions import AuthorizationError, NotFoundError
from courseapi.core.security import get_current_active_user
from courseapi.db.session import get_session
from courseapi.db.models.user import User
from courseapi.providers import (
    MockPaymentProvider,
    PaymentIntentStatus,
    PaymentProvider,
    get_payment_provider,
)
from courseapi.api.services.payments import PaymentOrchestrator
from courseapi.api.services.transactions import TransactionStore

router = APIRouter(prefix="/payments", tags=["payments"])
logger = structlog.get_logger(__name__)


class PaymentIntentRequest(BaseModel):
    """Body carrying a provider payment intent id."""
    payment_intent_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("payment_intent_id", "paymentIntentId"),
    )


def get_payment_orchestrator(
    session: Session = Depends(get_session),
    provider: PaymentProvider = Depends(get_payment_provider)
) -> PaymentOrchestrator:
    return PaymentOrchestrator(session, provider)


@router.post("/create-payment-intent")
def create_payment_intent(
    current_user: User = Depends(get_current_active_user),
    orchestrator: PaymentOrchestrator = Depends(get_payment_orchestrator)
) -> Dict[str, str]:
    """Open a payment intent for the course and return its client secret."""
    return orchestrator.create_payment_intent(current_user)


@router.post("/confirm-subscription")
def confirm_subscription(
    body: PaymentIntentRequest,
    current_user: User = Depends(get_current_active_user),
    orchestrator: PaymentOrchestrator = Depends(get_payment_orchestrator)
) -> Dict[str, Any]:
    """Grant premium once the provider reports the intent as succeeded."""
    return orchestrator.confirm_subscription(current_user, body.payment_intent_id)


@router.get("/transactions")
def list_transactions(
    current_user: User = Depends(get_current_active_user),
    session: Session = Depends(get_session)
) -> List[Dict[str, Any]]:
    """Caller's transactions, newest first."""
    return [t.to_dict() for t in TransactionStore(session).list_for_user(current_user.id)]


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    orchestrator: PaymentOrchestrator = Depends(get_payment_orchestrator)
) -> Dict[str, bool]:
    """
    Handle payment provider events.

    The raw body is verified against the ``Stripe-Signature`` header before
    it is parsed; redelivered events are applied idempotently.
    """
    payload = await request.body()
    return orchestrator.handle_webhook(payload, stripe_signature)


@router.post("/mock/complete-payment")
def complete_mock_payment(
    body: PaymentIntentRequest,
    current_user: User = Depends(get_current_active_user),
    provider: PaymentProvider = Depends(get_payment_provider)
) -> Dict[str, str]:
    """Development only: mark a mock intent as paid so it can be confirmed."""
    if not isinstance(provider, MockPaymentProvider):
        raise NotFoundError("Endpoint")

    intent = provider.intents.get(body.payment_intent_id)
    if intent is None:
        raise NotFoundError("Payment intent", body.payment_intent_id)
    if intent.metadata.get("user_id") != current_user.id:
        raise AuthorizationError("Payment intent does not belong to this user", code="PAYMENT_OWNERSHIP")

    provider.set_status(intent.id, PaymentIntentStatus.SUCCEEDED.value)
    logger.info("Mock payment completed", payment_intent_id=intent.id, user_id=current_user.id)
    return {"payment_intent_id": intent.id, "status": intent.status}
