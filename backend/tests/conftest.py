"""
Pytest configuration and shared fixtures.

Services run against an in-memory SQLite database (aiosqlite) with the real
models; the billing provider is a mock unless a test builds a BillingClient
on an httpx.MockTransport.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("BILLING_API_KEY", "sk_test_123")

import uuid
from typing import Sequence
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from deferred_billing.core.database import Base
from deferred_billing.models import AuditLog, PendingSelection, Property, User
from deferred_billing.models.enums import ServiceStatus
from deferred_billing.schemas.selection import SelectionInput
from deferred_billing.services.billing import BillingClient, CatalogEntry
from deferred_billing.services.selections import PendingSelectionStore


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def _add(session_factory, obj):
    async with session_factory() as db:
        async with db.begin():
            db.add(obj)
    return obj


@pytest.fixture
async def customer(session_factory):
    """Customer with a linked billing account"""
    return await _add(
        session_factory,
        User(id=uuid.uuid4(), email="test@example.com", billing_customer_id="cus_test123"),
    )


@pytest.fixture
async def unlinked_customer(session_factory):
    """Customer without a billing account"""
    return await _add(
        session_factory,
        User(id=uuid.uuid4(), email="nobilling@example.com", billing_customer_id=None),
    )


@pytest.fixture
async def pending_property(session_factory, customer):
    return await _add(
        session_factory,
        Property(
            id=uuid.uuid4(),
            user_id=customer.id,
            address="12 Elm Street, Springfield",
            service_status=ServiceStatus.PENDING_REVIEW,
        ),
    )


@pytest.fixture
async def unlinked_property(session_factory, unlinked_customer):
    return await _add(
        session_factory,
        Property(
            id=uuid.uuid4(),
            user_id=unlinked_customer.id,
            address="40 Oak Avenue, Springfield",
            service_status=ServiceStatus.PENDING_REVIEW,
        ),
    )


@pytest.fixture
def trash_and_recycling():
    return [
        SelectionInput(service_id="svc-trash", quantity=1, use_sticker=False),
        SelectionInput(service_id="svc-recycling", quantity=2, use_sticker=True),
    ]


@pytest.fixture
def seed_selections(session_factory):
    async def _seed(property_id, user_id, selections: Sequence[SelectionInput]):
        async with session_factory() as db:
            async with db.begin():
                await PendingSelectionStore(db).save(property_id, user_id, selections)
    return _seed


@pytest.fixture
def fetch_selections(session_factory):
    async def _fetch(property_id):
        async with session_factory() as db:
            return await PendingSelectionStore(db).fetch(property_id)
    return _fetch


@pytest.fixture
def audit_entries(session_factory):
    async def _entries(action=None):
        async with session_factory() as db:
            query = select(AuditLog).order_by(AuditLog.created_at)
            if action is not None:
                query = query.where(AuditLog.action == action)
            result = await db.execute(query)
            return list(result.scalars().all())
    return _entries


@pytest.fixture
def load_property(session_factory):
    async def _load(property_id):
        async with session_factory() as db:
            return await db.get(Property, property_id)
    return _load


@pytest.fixture
def billing():
    """Mock billing provider with a fully priced catalog"""
    client = MagicMock(spec=BillingClient)
    client.list_active_catalog = AsyncMock(
        return_value=[
            CatalogEntry(service_id="svc-trash", default_price="price_trash"),
            CatalogEntry(service_id="svc-recycling", default_price="price_recycling"),
        ]
    )
    client.create_subscription = AsyncMock(return_value="sub_new")
    return client


@pytest.fixture
def count_selections(session_factory):
    async def _count():
        async with session_factory() as db:
            result = await db.execute(select(PendingSelection))
            return len(result.scalars().all())
    return _count
