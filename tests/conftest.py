"""
Shared fixtures: in-memory database, API client with the mock payment
provider, users with bearer tokens, and a seeded course.
"""

import os

# Environment must be in place before the settings module is imported
TEST_ENV = {
    "DATABASE_URL": "sqlite:///:memory:",
    "AUTO_CREATE_TABLES": "false",
    "JWT_SECRET": "test-jwt-secret",
    "PAYMENT_PROVIDER": "mock",
    "STRIPE_WEBHOOK_SECRET": "whsec_test_secret",
    "ENVIRONMENT": "testing",
    "SENTRY_DSN": "",
    "LOG_LEVEL": "WARNING",
}
for key, value in TEST_ENV.items():
    os.environ[key] = value

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from courseapi.core.config import SubscriptionTier, UserRole
from courseapi.core.security import SecurityUtils
from courseapi.db import models  # noqa: F401
from courseapi.db.models import Course, Question, Section, User
from courseapi.db.session import get_session
from courseapi.providers import MockPaymentProvider, get_payment_provider

WEBHOOK_SECRET = TEST_ENV["STRIPE_WEBHOOK_SECRET"]

# Create test engine
test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(scope="function")
def setup_test_database():
    """Setup test database for each test."""
    SQLModel.metadata.create_all(test_engine)

    yield test_engine

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def session(setup_test_database):
    """Get database session for testing."""
    with Session(setup_test_database) as session:
        yield session


@pytest.fixture
def mock_provider():
    """Fresh in-memory payment provider."""
    return MockPaymentProvider()


@pytest.fixture
def client(session, mock_provider):
    """API client sharing the test session and mock provider."""
    from courseapi.api.main import app

    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_payment_provider] = lambda: mock_provider

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def free_user(session):
    return TestHelpers.create_test_user(session, email="free@example.com")


@pytest.fixture
def premium_user(session):
    return TestHelpers.create_test_user(
        session, email="premium@example.com", subscription=SubscriptionTier.PREMIUM
    )


@pytest.fixture
def admin_user(session):
    return TestHelpers.create_test_user(session, email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def free_headers(free_user):
    return TestHelpers.auth_headers(free_user)


@pytest.fixture
def premium_headers(premium_user):
    return TestHelpers.auth_headers(premium_user)


@pytest.fixture
def admin_headers(admin_user):
    return TestHelpers.auth_headers(admin_user)


@pytest.fixture
def course(session):
    """Active course with two sections, stored out of display order."""
    course = Course(price=5.0, currency="USD")
    course.set_sections([
        Section(
            id="design-patterns",
            title="Design Patterns",
            order=2,
            questions=[
                TestHelpers.question("inversion-of-control", is_free=True),
                TestHelpers.question("singleton-pattern"),
            ],
        ),
        Section(
            id="databases",
            title="Databases",
            order=1,
            free_questions_count=1,
            questions=[
                TestHelpers.question("indexes"),
                TestHelpers.question("acid-properties", is_free=True),
                TestHelpers.question("sharding"),
                TestHelpers.question("n+1-problem", is_free=True),
                TestHelpers.question("replication"),
            ],
        ),
    ])
    session.add(course)
    session.commit()
    session.refresh(course)
    return course


class TestHelpers:
    """Helper utilities for tests."""

    __test__ = False

    @staticmethod
    def create_test_user(session, email="test@example.com", role=UserRole.USER,
                         subscription=SubscriptionTier.FREE):
        user = User(
            email=email,
            name=email.split("@")[0].title(),
            role=role.value,
            subscription=subscription.value,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    @staticmethod
    def auth_headers(user):
        token = SecurityUtils.create_access_token({"sub": user.id})
        return {"Authorization": f"Bearer {token}"}

    @staticmethod
    def question(question_id, is_free=False):
        return Question(
            id=question_id,
            title=question_id.replace("-", " ").title(),
            question=f"Explain {question_id}.",
            answer=f"Answer for {question_id}.",
            is_free=is_free,
        )

    @staticmethod
    def webhook_request(provider, event_type, intent, secret=WEBHOOK_SECRET):
        """Signed webhook body and headers for ``intent``."""
        payload = provider.build_event(event_type, intent)
        headers = {
            "Content-Type": "application/json",
            "Stripe-Signature": provider.sign_payload(payload, secret),
        }
        return payload, headers


# Custom markers for different test categories
def pytest_collection_modifyitems(config, items):
    """Add custom markers to tests."""
    for item in items:
        if "webhook" in item.name or "webhook" in str(item.fspath):
            item.add_marker(pytest.mark.webhook)

        if "payment" in str(item.fspath):
            item.add_marker(pytest.mark.payments)

        if "admin" in str(item.fspath):
            item.add_marker(pytest.mark.admin)
