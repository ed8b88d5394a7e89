"""
Transaction model: the financial ledger of payment attempts.

One row per provider payment intent. ``external_payment_id`` is unique and is
the idempotency key for every write path; ``status`` is the only field that
moves after creation.
"""

import uuid
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import Column, JSON
from sqlmodel import Field, SQLModel

from courseapi.core.config import TransactionStatus, DEFAULT_TRANSACTION_DESCRIPTION
from courseapi.db.base import utc_now


class Transaction(SQLModel, table=True):
    """Payment attempt recorded against a user."""
    __tablename__ = "transactions"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        description="Unique transaction identifier"
    )

    user_id: str = Field(
        foreign_key="users.id",
        index=True,
        description="User who made the payment"
    )

    external_payment_id: str = Field(
        unique=True,
        index=True,
        description="Payment intent id issued by the provider (idempotency key)"
    )

    amount: float = Field(description="Amount in major currency units")
    currency: str = Field(default="USD")

    status: str = Field(
        default=TransactionStatus.PENDING.value,
        index=True,
        description="pending, succeeded, failed or canceled"
    )

    payment_method: str = Field(default="card")
    description: str = Field(default=DEFAULT_TRANSACTION_DESCRIPTION)

    payment_metadata: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column("metadata", JSON, nullable=False)
    )

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_dict(self) -> dict:
        """Convert transaction to dictionary for API responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "payment_intent_id": self.external_payment_id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "payment_method": self.payment_method,
            "description": self.description,
            "metadata": self.payment_metadata or {},
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat()
        }

