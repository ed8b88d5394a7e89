#!/usr/bin/env python3
"""
Database initialization script for the course API.

Creates the tables and seeds development data:
- Admin, free and premium users (with bearer tokens printed for local use)
- The default course with three sections
- A sample succeeded transaction for the premium user
"""

import sys
from datetime import timedelta
from pathlib import Path

from sqlmodel import Session, select
import structlog

# Add the project root to the path so we can import our modules
sys.path.append(str(Path(__file__).parent.parent))

from courseapi.core.config import SubscriptionTier, TransactionStatus, UserRole
from courseapi.core.security import SecurityUtils
from courseapi.core.settings import settings
from courseapi.db.base import utc_now
from courseapi.db.session import create_db_and_tables, engine
from courseapi.db.models import Course, Question, Section, User
from courseapi.api.services.catalog import CatalogService
from courseapi.api.services.transactions import TransactionStore

logger = structlog.get_logger(__name__)

DEV_USERS = [
    {"name": "Admin User", "email": "admin@example.com", "role": UserRole.ADMIN, "subscription": SubscriptionTier.PREMIUM},
    {"name": "Free User", "email": "user@example.com", "role": UserRole.USER, "subscription": SubscriptionTier.FREE},
    {"name": "Premium User", "email": "premium@example.com", "role": UserRole.USER, "subscription": SubscriptionTier.PREMIUM},
]


def default_sections():
    """Starter catalog: one free and one premium question per section."""
    return [
        Section(
            id="design-patterns",
            title="Design Patterns",
            description="Common software design patterns and principles",
            icon="fas fa-layer-group",
            order=1,
            questions=[
                Question(
                    id="inversion-of-control",
                    title="Inversion of Control",
                    question="What is Inversion of Control and how does dependency injection implement it?",
                    answer=(
                        "Inversion of Control moves the creation and wiring of collaborators out of "
                        "the object that uses them. With dependency injection a container or caller "
                        "passes dependencies in, usually through the constructor, which keeps "
                        "components decoupled and easy to test."
                    ),
                    tags=["ioc", "dependency-injection"],
                    code_example=(
                        "class OrderService:\n"
                        "    def __init__(self, repository):\n"
                        "        self.repository = repository\n"
                    ),
                    is_free=True,
                ),
                Question(
                    id="singleton-pattern",
                    title="Singleton Pattern",
                    question="When is a singleton appropriate, and what are its drawbacks?",
                    answer=(
                        "A singleton guarantees a single shared instance, which suits process-wide "
                        "resources such as configuration or connection pools. It hides dependencies "
                        "and makes tests share state, so explicit injection is often preferred."
                    ),
                    tags=["singleton", "creational"],
                ),
            ],
        ),
        Section(
            id="databases",
            title="Databases",
            description="Database design, transactions and query performance",
            icon="fas fa-database",
            order=2,
            questions=[
                Question(
                    id="acid-properties",
                    title="ACID Properties",
                    question="Explain the ACID properties of a database transaction.",
                    answer=(
                        "Atomicity means all or nothing. Consistency keeps invariants valid between "
                        "commits. Isolation hides concurrent transactions from each other, and "
                        "durability keeps committed data across crashes."
                    ),
                    tags=["transactions", "sql"],
                    is_free=True,
                ),
                Question(
                    id="n+1-problem",
                    title="N+1 Problem",
                    question="What is the N+1 query problem and how do you fix it?",
                    answer=(
                        "Loading a list and then querying each item's relations issues one query plus "
                        "one per row. Eager loading with joins or batching related lookups with an "
                        "IN clause brings it back to a constant number of queries."
                    ),
                    tags=["orm", "performance"],
                ),
            ],
        ),
        Section(
            id="web-development",
            title="Web Development",
            description="APIs, protocols and web architecture",
            icon="fas fa-globe",
            order=3,
            questions=[
                Question(
                    id="rest-vs-soap",
                    title="REST vs SOAP",
                    question="Compare REST and SOAP web services.",
                    answer=(
                        "REST is an architectural style over HTTP verbs and resources, usually with "
                        "JSON. SOAP is an XML protocol with a formal contract (WSDL) and built-in "
                        "standards for security and transactions."
                    ),
                    difficulty="beginner",
                    tags=["rest", "soap", "api"],
                    is_free=True,
                ),
                Question(
                    id="api-versioning",
                    title="API Versioning",
                    question="What strategies exist for versioning a public HTTP API?",
                    answer=(
                        "Common options are a version in the URL path, a custom header, or content "
                        "negotiation through the Accept header. Whatever the choice, old versions "
                        "need a published deprecation window."
                    ),
                    tags=["api", "versioning"],
                ),
            ],
        ),
    ]


def seed_users(session: Session):
    """Create development users unless they already exist."""
    users = []
    for data in DEV_USERS:
        user = session.exec(select(User).where(User.email == data["email"])).first()
        if user:
            logger.info("Development user already exists", email=data["email"])
        else:
            premium = data["subscription"] == SubscriptionTier.PREMIUM
            user = User(
                name=data["name"],
                email=data["email"],
                role=data["role"].value,
                subscription=data["subscription"].value,
                subscription_date=utc_now() if premium else None,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            logger.info("Created development user", email=user.email, subscription=user.subscription)
        users.append(user)
    return users


def seed_course(session: Session) -> Course:
    catalog = CatalogService(session)
    course = catalog.courses.get_active()
    if course:
        logger.info("Active course already exists", course_id=course.id)
        return course

    course = Course()
    course.set_sections(default_sections())
    return catalog.publish_course(course)


def seed_transaction(session: Session, user: User, course: Course):
    store = TransactionStore(session)
    payment_id = "pi_seed_premium_user"
    if store.get_by_payment_id(payment_id):
        return
    store.create_pending(
        user_id=user.id,
        external_payment_id=payment_id,
        amount=course.price,
        currency=course.currency,
        metadata={"course_id": course.id, "user_email": user.email},
        status=TransactionStatus.SUCCEEDED,
    )


def main():
    print("Backend Interview Course - Database Initialization")
    print("=" * 50)

    create_db_and_tables()

    with Session(engine) as session:
        users = seed_users(session)
        course = seed_course(session)
        seed_transaction(session, users[2], course)

        print(f"\nCourse: {course.title}")
        print(f"- Questions: {course.total_questions} ({course.total_free_questions} free)")

        if settings.is_development:
            print("\nDevelopment bearer tokens (valid for 30 days):")
            for user in users:
                token = SecurityUtils.create_access_token({"sub": user.id}, timedelta(days=30))
                print(f"  - {user.email} ({user.role}, {user.subscription}): {token}")

    print("\nDatabase initialization complete!")


if __name__ == "__main__":
    main()
