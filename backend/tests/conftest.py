"""Pytest configuration and fixtures for async testing."""
import json
import os
from decimal import Decimal
from typing import Any, AsyncGenerator
from uuid import uuid4

# Settings are read at import time
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import league_billing.models  # noqa: F401  (registers tables on Base.metadata)
from league_billing.api.deps import get_current_user, get_db, get_payment_gateway
from league_billing.auth.rbac import Role
from league_billing.database import Base
from league_billing.main import app
from league_billing.models.tier import LeagueTier
from utils.factories import TierFactory

# In-memory SQLite shared across connections of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
)

TestAsyncSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class FakeGateway:
    """
    In-memory payment gateway with the StripeAdapter interface.

    Orders start unpaid; tests move them along with mark_paid/mark_failed.
    """

    def __init__(self) -> None:
        self.orders: dict[str, dict[str, Any]] = {}
        self.created: list[dict[str, Any]] = []
        self.cancelled: list[str] = []
        self.fail_cancel: set[str] = set()

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        idempotency_key: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        order_id = f"pi_test_{uuid4().hex[:16]}"
        order = {
            "id": order_id,
            "amount": amount,
            "captured": None,
            "currency": currency.lower(),
            "status": "requires_payment_method",
            "receipt": receipt,
            "idempotency_key": idempotency_key,
            "metadata": metadata or {},
        }
        self.orders[order_id] = order
        self.created.append(order)
        return {
            "id": order_id,
            "amount": amount,
            "currency": currency.lower(),
            "status": order["status"],
            "client_secret": f"{order_id}_secret_test",
        }

    def mark_paid(self, order_id: str, amount: int | None = None) -> None:
        order = self.orders[order_id]
        order["status"] = "succeeded"
        order["captured"] = order["amount"] if amount is None else amount

    def mark_failed(self, order_id: str) -> None:
        self.orders[order_id]["status"] = "requires_payment_method"

    def mark_processing(self, order_id: str) -> None:
        self.orders[order_id]["status"] = "processing"

    async def verify_payment(self, order_id: str, payment_id: str | None = None) -> dict[str, Any]:
        order = self.orders[order_id]
        verified = order["status"] == "succeeded"
        return {
            "verified": verified,
            "status": order["status"],
            "amount": order["captured"] if verified else order["amount"],
            "payment_id": payment_id or f"ch_{order_id[8:]}",
        }

    async def cancel_order(self, order_id: str) -> dict[str, Any]:
        if order_id in self.fail_cancel:
            raise RuntimeError(f"Gateway unavailable for {order_id}")
        order = self.orders[order_id]
        # Stripe refuses to cancel intents that are captured or settling
        if order["status"] not in ("succeeded", "processing"):
            order["status"] = "canceled"
            self.cancelled.append(order_id)
        return {"id": order_id, "status": order["status"]}

    async def construct_webhook_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        if signature != "t=1,v1=valid":
            raise ValueError("Invalid signature")
        return json.loads(payload)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.

    Yields:
        AsyncSession: Database session for testing
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestAsyncSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def gateway() -> FakeGateway:
    """Fresh fake payment gateway."""
    return FakeGateway()


@pytest.fixture
def host_user() -> dict[str, str]:
    return {"sub": "user_host_1", "email": "host@example.com", "role": Role.HOST.value}


@pytest.fixture
def admin_user() -> dict[str, str]:
    return {"sub": "user_admin_1", "email": "admin@example.com", "role": Role.PLATFORM_ADMIN.value}


@pytest.fixture
def member_user() -> dict[str, str]:
    return {"sub": "user_member_1", "email": "member@example.com", "role": Role.MEMBER.value}


@pytest.fixture
def current_user(host_user: dict[str, str]) -> dict[str, str]:
    """
    User returned by the auth dependency in API tests.

    Tests switch roles by mutating this dict in place.
    """
    return dict(host_user)


@pytest_asyncio.fixture(scope="function")
async def async_client(
    db_session: AsyncSession,
    gateway: FakeGateway,
    current_user: dict[str, str],
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client bound to the test session and fake gateway.

    Yields:
        AsyncClient: HTTP client for testing
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_current_user() -> dict[str, str]:
        return current_user

    async def override_get_payment_gateway() -> FakeGateway:
        return gateway

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_payment_gateway] = override_get_payment_gateway

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _save_tier(db_session: AsyncSession, overrides: dict[str, Any]) -> LeagueTier:
    tier = TierFactory.build(overrides)
    db_session.add(tier)
    await db_session.commit()
    return tier


@pytest_asyncio.fixture
async def fixed_tier(db_session: AsyncSession) -> LeagueTier:
    """Starter tier: fixed ₹999 + 18% GST, up to 30 days and 100 participants."""
    return await _save_tier(
        db_session,
        {
            "name": "starter",
            "display_name": "Starter",
            "pricing_type": "fixed",
            "fixed_price": Decimal("999"),
            "max_days": 30,
            "max_participants": 100,
            "display_order": 1,
        },
    )


@pytest_asyncio.fixture
async def dynamic_tier(db_session: AsyncSession) -> LeagueTier:
    """Pro tier: ₹100 + ₹5/day + ₹2/participant + 18% GST, up to 90 days and 200 participants."""
    return await _save_tier(
        db_session,
        {
            "name": "pro",
            "display_name": "Pro",
            "pricing_type": "dynamic",
            "fixed_price": None,
            "base_fee": Decimal("100"),
            "per_day_rate": Decimal("5"),
            "per_participant_rate": Decimal("2"),
            "max_days": 90,
            "max_participants": 200,
            "display_order": 2,
            "is_featured": True,
        },
    )


@pytest_asyncio.fixture
async def inactive_tier(db_session: AsyncSession) -> LeagueTier:
    """Retired tier that no longer accepts new leagues."""
    return await _save_tier(
        db_session,
        {
            "name": "legacy",
            "display_name": "Legacy",
            "is_active": False,
            "display_order": 0,
        },
    )
