"""
Shared test configuration for the Goal Funding API
"""
import os
import uuid
from datetime import date
from decimal import Decimal

# Environment must be in place BEFORE goalfund.core.config is imported
SECRET_KEY_TEST = "goalfund-test-secret-" + "x" * 32
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", SECRET_KEY_TEST)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("INTENT_PARSER_API_KEY", "test-parser-key")

import jwt
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from goalfund.core.config import settings
from goalfund.core.database import Base
from goalfund.core.locks import reset_user_locks
from goalfund.crud.transaction import create_transaction_for_user
from goalfund.models import allocation, goal, settings as settings_model, transaction  # noqa: F401
from goalfund.schemas.transaction import TransactionCreate
from goalfund.utils import events


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def isolate_process_state():
    """Locks belong to an event loop and listeners are module-global"""
    reset_user_locks()
    events._listeners.clear()
    yield
    reset_user_locks()
    events._listeners.clear()


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def captured_events():
    received = []
    events.add_listener(received.append)
    return received


@pytest.fixture
def make_token():
    def _make(user_id) -> str:
        return jwt.encode({"sub": str(user_id)}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return _make


@pytest.fixture
def add_income(db):
    """Record a transaction for a user without allocating it"""
    async def _add(user_id, amount, description="Salary", on=date(2026, 1, 1), type_="income"):
        return await create_transaction_for_user(
            user_id,
            TransactionCreate(description=description, amount=Decimal(str(amount)), transaction_date=on, type=type_),
            db,
        )
    return _add
