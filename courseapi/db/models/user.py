"""
User model for authentication and subscription state.

Subscription fields (``subscription``, ``subscription_date``,
``stripe_customer_id``) belong to the subscription ledger and are only
written through ``SubscriptionLedger.promote``.
"""
import uuid
from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel
from pydantic import EmailStr

from courseapi.core.config import SubscriptionTier, UserRole
from courseapi.db.base import utc_now


class UserBase(SQLModel):
    """Base user model with shared fields."""
    email: str = Field(unique=True, index=True)
    name: str = Field(default="")
    role: str = Field(default=UserRole.USER.value)
    subscription: str = Field(default=SubscriptionTier.FREE.value, index=True)
    subscription_date: Optional[datetime] = None
    stripe_customer_id: Optional[str] = None


class User(UserBase, table=True):
    """User database model."""
    __tablename__ = "users"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_premium(self) -> bool:
        return self.subscription == SubscriptionTier.PREMIUM.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def to_dict(self) -> dict:
        """Convert user to dictionary for API responses."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "subscription": self.subscription,
            "subscription_date": self.subscription_date.isoformat() if self.subscription_date else None,
            "created_at": self.created_at.isoformat()
        }


class UserUpdate(SQLModel):
    """Admin user update schema. Subscription is not editable here."""
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
