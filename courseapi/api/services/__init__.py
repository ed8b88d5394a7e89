"""
Services package for business logic components.

Routers and tests construct these with a database session; the entitlement
filter is a set of pure functions.
"""

from .catalog import CatalogService, CourseRepository
from .subscriptions import SubscriptionLedger
from .transactions import TransactionStore
from .payments import PaymentOrchestrator

__all__ = [
    'CatalogService',
    'CourseRepository',
    'PaymentOrchestrator',
    'SubscriptionLedger',
    'TransactionStore',
]
