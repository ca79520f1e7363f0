"""
Test fixtures for the FinPay test suite.

This module provides shared fixtures used across all test files:

  - test_settings: Settings pointing at in-memory SQLite, HTTPS redirect off
  - db_engine / session_factory: Fresh, initialized database for each test
  - context: A FinPayContext over one session of that database
  - client: Async HTTP test client wired to the same database
  - user / card / transaction: Pre-persisted rows for relationship tests

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database — no state leaks between tests.
  - The engine is built with the application's own create_engine(), so
    PRAGMA foreign_keys is on and cascade/restrict/set-null behave exactly
    as they do in production.
  - In-memory SQLite shares a single connection between sessions, so tests
    commit before opening a second context to check what was persisted.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from finpay.config import Settings
from finpay.context import FinPayContext
from finpay.database import Base, create_engine, create_session_factory, init_db
from finpay.main import create_app
from finpay.models import CreditCard, Transaction, User


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def test_settings():
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        DATABASE_URL=TEST_DATABASE_URL,
        REQUIRE_HTTPS=False,
        _env_file=None,
    )


@pytest_asyncio.fixture
async def db_engine(test_settings):
    """Create a fresh async engine with all tables and seed rows for each test."""
    engine = create_engine(test_settings)
    await init_db(engine)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def context(session_factory):
    """Provide a FinPayContext bound to the test database."""
    async with session_factory() as session:
        yield FinPayContext(session)


@pytest_asyncio.fixture
async def client(test_settings, session_factory):
    """
    Async HTTP test client with the test database injected.

    ASGITransport does not run the lifespan, so the session factory the
    lifespan would have created is placed on app.state directly.
    """
    app = create_app(test_settings)
    app.state.session_factory = session_factory

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Pre-persisted rows
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def user(context):
    return await context.users.add(User(
        email="testuser@example.com",
        first_name="Test",
        last_name="User",
    ))


@pytest_asyncio.fixture
async def card(context, user):
    return await context.credit_cards.add(CreditCard(
        user_id=user.id,
        card_number_last_four="4242",
        card_holder_name="Test User",
        expiry_date=datetime.now(timezone.utc) + timedelta(days=3 * 365),
        card_type="Visa",
        credit_limit=Decimal("5000.00"),
        available_balance=Decimal("4957.50"),
        current_balance=Decimal("42.50"),
    ))


@pytest_asyncio.fixture
async def transaction(context, card):
    return await context.transactions.add(Transaction(
        card_id=card.id,
        amount=Decimal("42.50"),
        description="Dinner",
        category_id="cat-1",
        merchant_name="Trattoria",
    ))
