"""
Shared fixtures for the QR feedback billing tests.

Environment variables are set before the application is imported so the
global settings pick up the test webhook secret and plan.
"""

import hashlib
import hmac
import json
import os
from datetime import datetime, timedelta
from typing import Optional

TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_WEBHOOK_SECRET = "test_webhook_secret_123"
TEST_PLAN_ID = "plan_test_pro"


def setup_test_environment():
    """Setup environment variables for testing."""
    env_vars = {
        "DATABASE_URL": TEST_DATABASE_URL,
        "JWT_SECRET": "test-jwt-secret",
        "RAZORPAY_WEBHOOK_SECRET": TEST_WEBHOOK_SECRET,
        "RAZORPAY_PLAN_ID": TEST_PLAN_ID,
        "BILLING_MODE": "mock",
        "ENVIRONMENT": "testing",
        "LOG_LEVEL": "DEBUG",
    }

    for key, value in env_vars.items():
        os.environ[key] = value


setup_test_environment()

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

import qrfeedback.db.models  # noqa: E402,F401
from qrfeedback.api.main import app  # noqa: E402
from qrfeedback.core.config import BillingConfig, PaymentStatus, PaymentType, utcnow  # noqa: E402
from qrfeedback.core.security import SecurityUtils  # noqa: E402
from qrfeedback.db.models.payment import Payment  # noqa: E402
from qrfeedback.db.models.qr import CustomURL, LogoImage, QrImage  # noqa: E402
from qrfeedback.db.models.user import User  # noqa: E402
from qrfeedback.db.session import get_session  # noqa: E402
from qrfeedback.gateway import MockGateway, get_billing_config, get_gateway  # noqa: E402

# Create test engine
test_engine = create_engine(
    TEST_DATABASE_URL,
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
def billing_config():
    return BillingConfig(webhook_secret=TEST_WEBHOOK_SECRET, plan_id=TEST_PLAN_ID)


@pytest.fixture
def gateway():
    """Fresh in-memory gateway per test."""
    return MockGateway()


@pytest.fixture
def client(session, gateway, billing_config):
    """Test client wired to the test session, mock gateway and billing config."""

    def override_session():
        yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_billing_config] = lambda: billing_config

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def test_user(session):
    """Create a test user for testing."""
    user = User(username="testuser", email="test@example.com")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def admin_user(session):
    user = User(username="admin", email="admin@example.com", role="admin")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def auth_headers(test_user):
    """Bearer token headers for the test user."""
    token = SecurityUtils.create_access_token(test_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user):
    token = SecurityUtils.create_access_token(admin_user.id)
    return {"Authorization": f"Bearer {token}"}


class TestHelpers:
    """Helper functions for tests."""

    @staticmethod
    def sign(body: bytes, secret: str = TEST_WEBHOOK_SECRET) -> str:
        """Razorpay style signature: hex HMAC-SHA256 of the raw body."""
        return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

    @staticmethod
    def post_webhook(client: TestClient, event: dict, secret: str = TEST_WEBHOOK_SECRET):
        body = json.dumps(event).encode("utf-8")
        return client.post(
            "/api/subscription-webhook",
            content=body,
            headers={
                "Content-Type": "application/json",
                "X-Razorpay-Signature": TestHelpers.sign(body, secret),
            },
        )

    @staticmethod
    def create_subscription_record(
        session: Session,
        user_id: str,
        status: str = PaymentStatus.CREATED.value,
        subscription_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        current_start: Optional[datetime] = None,
        current_end: Optional[datetime] = None,
        short_url: Optional[str] = None,
    ) -> Payment:
        """Insert a subscription record directly, bypassing the gateway."""
        created_at = created_at or utcnow()
        subscription_id = subscription_id or f"sub_test_{int(created_at.timestamp() * 1000)}"
        record = Payment(
            user_id=user_id,
            type=PaymentType.SUBSCRIPTION.value,
            status=status,
            subscription_id=subscription_id,
            plan_id=TEST_PLAN_ID,
            short_url=short_url or f"https://rzp.io/i/{subscription_id[4:]}",
            amount=199900,
            currency="INR",
            current_start=current_start,
            current_end=current_end,
            created_at=created_at,
            updated_at=created_at,
        )
        session.add(record)
        session.commit()
        session.refresh(record)
        return record

    @staticmethod
    def create_active_subscription(
        session: Session,
        user_id: str,
        remaining: timedelta = timedelta(days=30),
        subscription_id: Optional[str] = None,
    ) -> Payment:
        now = utcnow()
        return TestHelpers.create_subscription_record(
            session,
            user_id,
            status=PaymentStatus.ACTIVE.value,
            subscription_id=subscription_id,
            created_at=now - timedelta(days=1),
            current_start=now - timedelta(days=1),
            current_end=now + remaining,
        )

    @staticmethod
    def create_qr_with_custom_url(session: Session, user_id: str, qr_id: str = "qr_abc123", with_logo: bool = True):
        session.add(QrImage(
            user_id=user_id,
            image_url=f"https://cdn.example.com/qr/{qr_id}.png",
            s3_key=f"qr/{qr_id}.png",
            random_id=qr_id,
            data=f"https://feedback.example.com/{qr_id}",
        ))
        session.add(CustomURL(
            user_id=user_id,
            company_name="Acme Cafe",
            url="https://g.page/acme-cafe/review",
            redirect_from_rating=4,
        ))
        if with_logo:
            session.add(LogoImage(user_id=user_id, logo_url="https://cdn.example.com/logo/acme.png"))
        session.commit()
        return qr_id


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers."""
    for item in items:
        if "webhook" in item.nodeid:
            item.add_marker(pytest.mark.webhook)
        if "e2e" in item.nodeid:
            item.add_marker(pytest.mark.e2e)
