"""
Transaction record store.

One row per provider payment intent, keyed by ``external_payment_id``.
Uniqueness is left to the database index and status moves only forward along
``pending < failed < {succeeded, canceled}``, so both confirmation paths may
write the same record in any order.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
import structlog

from courseapi.core.config import (
    DEFAULT_TRANSACTION_DESCRIPTION,
    TRANSACTION_STATUS_RANK,
    TransactionStatus,
)
from courseapi.core.exceptions import DuplicatePaymentError
from courseapi.db.base import DocumentRepository, utc_now
from courseapi.db.models.transaction import Transaction
from courseapi.db.models.user import User

logger = structlog.get_logger(__name__)


def lower_ranked_statuses(target: TransactionStatus) -> List[str]:
    """Statuses a record may move from to reach ``target``."""
    rank = TRANSACTION_STATUS_RANK[target]
    return [status.value for status, value in TRANSACTION_STATUS_RANK.items() if value < rank]


class TransactionStore(DocumentRepository[Transaction]):
    """Transaction persistence and admin aggregates."""

    resource_name = "Transaction"

    def __init__(self, session: Session):
        super().__init__(session, Transaction)

    def create_pending(
        self,
        user_id: str,
        external_payment_id: str,
        amount: float,
        currency: str,
        payment_method: str = "card",
        metadata: Optional[Dict[str, Any]] = None,
        status: TransactionStatus = TransactionStatus.PENDING,
        description: str = DEFAULT_TRANSACTION_DESCRIPTION,
    ) -> Transaction:
        """
        Insert a new transaction record.

        Raises:
            DuplicatePaymentError: A record for ``external_payment_id`` exists
        """
        transaction = Transaction(
            user_id=user_id,
            external_payment_id=external_payment_id,
            amount=amount,
            currency=currency.upper(),
            status=status.value,
            payment_method=payment_method,
            description=description,
            payment_metadata=metadata or {},
        )
        try:
            transaction = self.put(transaction)
        except IntegrityError:
            self.session.rollback()
            logger.info("Duplicate transaction rejected", payment_intent_id=external_payment_id)
            raise DuplicatePaymentError(external_payment_id)

        logger.info(
            "Transaction created",
            transaction_id=transaction.id,
            payment_intent_id=external_payment_id,
            user_id=user_id,
            amount=amount,
            status=transaction.status
        )
        return transaction

    def update_status(
        self,
        external_payment_id: str,
        status: TransactionStatus,
        payment_method: Optional[str] = None,
    ) -> bool:
        """
        Advance a record to ``status`` if it currently ranks lower.

        Returns:
            True when a row changed; False for unknown ids, repeats and
            attempted regressions
        """
        values = {"status": status.value, "updated_at": utc_now()}
        if payment_method:
            values["payment_method"] = payment_method

        result = self.session.execute(
            update(Transaction)
            .where(
                Transaction.external_payment_id == external_payment_id,
                Transaction.status.in_(lower_ranked_statuses(status)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()

        changed = result.rowcount == 1
        logger.info(
            "Transaction status update",
            payment_intent_id=external_payment_id,
            target_status=status.value,
            applied=changed
        )
        return changed

    def record_outcome(
        self,
        status: TransactionStatus,
        user_id: str,
        external_payment_id: str,
        amount: float,
        currency: str,
        payment_method: str = "card",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        """
        Create the record at ``status`` or advance the existing one.

        A concurrent insert for the same payment id loses on the unique index
        and falls back to a status update.
        """
        if self.get_by_payment_id(external_payment_id) is None:
            try:
                return self.create_pending(
                    user_id=user_id,
                    external_payment_id=external_payment_id,
                    amount=amount,
                    currency=currency,
                    payment_method=payment_method,
                    metadata=metadata,
                    status=status,
                )
            except DuplicatePaymentError:
                pass

        self.update_status(external_payment_id, status, payment_method=payment_method)
        return self.get_by_payment_id(external_payment_id)

    def record_succeeded(self, **kwargs) -> Transaction:
        return self.record_outcome(TransactionStatus.SUCCEEDED, **kwargs)

    def get_by_payment_id(self, external_payment_id: str) -> Optional[Transaction]:
        return self.find_one(Transaction.external_payment_id == external_payment_id)

    def list_for_user(self, user_id: str) -> List[Transaction]:
        """User's transactions, newest first."""
        return self.find_many(
            Transaction.user_id == user_id,
            order_by=Transaction.created_at.desc()
        )

    # Admin aggregates

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(Transaction)).one()

    def succeeded_revenue(self) -> float:
        statement = select(func.coalesce(func.sum(Transaction.amount), 0.0)).where(
            Transaction.status == TransactionStatus.SUCCEEDED.value
        )
        return float(self.session.exec(statement).one())

    def recent(self, limit: int = 5) -> List[Transaction]:
        return self.find_many(order_by=Transaction.created_at.desc(), limit=limit)

    def list_with_users(self) -> List[Tuple[Transaction, Optional[User]]]:
        """Every transaction, newest first, paired with its user."""
        statement = (
            select(Transaction, User)
            .join(User, Transaction.user_id == User.id, isouter=True)
            .order_by(Transaction.created_at.desc())
        )
        return list(self.session.exec(statement).all())
