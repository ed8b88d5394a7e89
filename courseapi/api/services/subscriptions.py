"""
Subscription ledger: the per-user subscription state.

The only transition is ``free -> premium``. It is applied with a conditional
UPDATE so that the synchronous confirmation and the webhook can both call
``promote`` for the same purchase without double-writing the subscription
date.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
import structlog

from courseapi.core.config import SubscriptionTier
from courseapi.core.exceptions import ConflictError
from courseapi.db.base import DocumentRepository, utc_now
from courseapi.db.models.user import User

logger = structlog.get_logger(__name__)


class UserRepository(DocumentRepository[User]):
    resource_name = "User"

    def __init__(self, session: Session):
        super().__init__(session, User)


class SubscriptionLedger:
    """Reads and promotes user subscription state."""

    def __init__(self, session: Session):
        self.session = session
        self.users = UserRepository(session)

    def get_user(self, user_id: str) -> User:
        """Get user or raise NotFoundError."""
        return self.users.require(user_id)

    def get_subscription_state(self, user_id: str) -> SubscriptionTier:
        return SubscriptionTier(self.get_user(user_id).subscription)

    def is_premium(self, user_id: str) -> bool:
        return self.get_subscription_state(user_id) == SubscriptionTier.PREMIUM

    def promote(self, user_id: str, when: Optional[datetime] = None, customer_id: Optional[str] = None) -> bool:
        """
        Move a free user to premium.

        Args:
            user_id: User to promote
            when: Subscription date to record (defaults to now)
            customer_id: Provider customer reference, stored alongside

        Returns:
            True only for the call that performed the transition. Later calls
            match no row and leave ``subscription_date`` untouched.
        """
        when = when or utc_now()
        values = {
            "subscription": SubscriptionTier.PREMIUM.value,
            "subscription_date": when,
            "updated_at": utc_now(),
        }
        if customer_id:
            values["stripe_customer_id"] = customer_id

        result = self.session.execute(
            update(User)
            .where(User.id == user_id, User.subscription == SubscriptionTier.FREE.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()

        promoted = result.rowcount == 1
        if promoted:
            logger.info("User promoted to premium", user_id=user_id, subscription_date=when.isoformat())
        else:
            logger.info("Promotion skipped, user already premium or missing", user_id=user_id)

        return promoted

    # Admin reads

    def list_users(self, skip: int = 0, limit: int = 100) -> List[User]:
        statement = select(User).order_by(User.created_at.desc()).offset(skip).limit(limit)
        return list(self.session.exec(statement).all())

    def recent_users(self, limit: int = 5) -> List[User]:
        return self.list_users(limit=limit)

    def count_users(self) -> int:
        return self.session.exec(select(func.count()).select_from(User)).one()

    def count_premium(self) -> int:
        statement = select(func.count()).select_from(User).where(
            User.subscription == SubscriptionTier.PREMIUM.value
        )
        return self.session.exec(statement).one()

    def update_profile(self, user_id: str, changes: dict) -> User:
        """Admin profile edit. Subscription fields are never part of ``changes``."""
        def apply(user: User) -> None:
            for field, value in changes.items():
                setattr(user, field, value)

        try:
            user = self.users.update(user_id, apply)
        except IntegrityError:
            self.session.rollback()
            raise ConflictError("Email already registered", details={"email": changes.get("email")})
        logger.info("User updated", user_id=user_id, fields=sorted(changes))
        return user
