"""
Application configuration constants and enums.
"""
from enum import Enum


class UserRole(str, Enum):
    """User roles."""
    USER = "user"
    ADMIN = "admin"


class SubscriptionTier(str, Enum):
    """User subscription tier."""
    FREE = "free"
    PREMIUM = "premium"


class TransactionStatus(str, Enum):
    """Transaction record status."""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class Difficulty(str, Enum):
    """Question difficulty levels."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# Status lattice for transaction records: a write only lands when the stored
# status ranks strictly lower than the target.
TRANSACTION_STATUS_RANK = {
    TransactionStatus.PENDING: 0,
    TransactionStatus.FAILED: 1,
    TransactionStatus.SUCCEEDED: 2,
    TransactionStatus.CANCELED: 2,
}

# Payment intent metadata
PAYMENT_INTENT_TYPE = "course_subscription"
DEFAULT_TRANSACTION_DESCRIPTION = "Backend Developer Course - Premium Access"

# Provider webhook event types handled by the orchestrator
EVENT_PAYMENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_PAYMENT_FAILED = "payment_intent.payment_failed"
EVENT_PAYMENT_CANCELED = "payment_intent.canceled"

# Currencies the provider expresses without a minor unit
ZERO_DECIMAL_CURRENCIES = {
    "bif", "clp", "djf", "gnf", "jpy", "kmf", "krw", "mga",
    "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf",
}

# Default course document
DEFAULT_COURSE_TITLE = "Backend Developer Interview Questions"
DEFAULT_COURSE_DESCRIPTION = (
    "Comprehensive course covering backend development interview questions and answers"
)
DEFAULT_COURSE_PRICE = 5.0
DEFAULT_COURSE_CURRENCY = "USD"
DEFAULT_FREE_QUESTIONS_PER_SECTION = 1
