"""Service test fixtures — async DB, fake Rye cart API, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db and get_rye_client dependencies overridden for the test client
    - FakeRyeClient keeps remote carts in memory with Rye's response shapes
    - Assertions read through a fresh session (fetch) so they see committed state

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (row locks are a no-op there; the no-oversell rule itself is still exercised)
    - Fake over MockTransport here: route tests care about cart state, the
      transport layer has its own tests in tests/infrastructure
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from app.api.dependencies import get_rye_client
from app.db.base import Base
from app.infrastructure.database import get_db
from app.main import app
from app.models import Child, ChildItem, Drive, DriveItem, Item, Organization
from tests.services.fake_rye import FakeRyeClient


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def fetch(test_session_factory):
    """Run a select in a fresh session and return all scalars."""
    async def _fetch(statement):
        async with test_session_factory() as session:
            return list((await session.execute(statement)).scalars().all())
    return _fetch


@pytest.fixture
def fake_rye():
    return FakeRyeClient()


@pytest.fixture
async def client(test_session_factory, fake_rye):
    """FastAPI test client with DB and Rye dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rye_client] = lambda: fake_rye

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
async def seed(test_db):
    """One organization, drive and child; a coat needed by both, crayons by the drive.

    coat_need (drive, 3) and child_coat_need (child, 2) share the Shopify
    variant "v-coat"; crayon_need (drive, 5) is the Amazon product "B0CRAYON".
    """
    org = Organization(
        name="Hope Shelter", address="1 Main St", city="Springfield",
        state="IL", zip_code="62701", country="US", phone="+12175550100",
    )
    test_db.add(org)
    await test_db.flush()
    drive = Drive(org_id=org.id, name="Winter Drive")
    test_db.add(drive)
    await test_db.flush()
    child = Child(drive_id=drive.id, name="Sam")
    coat = Item(
        name="Rain Coat", marketplace="SHOPIFY", rye_product_id="p-coat",
        rye_variant_id="v-coat", price=Decimal("25.00"),
    )
    crayons = Item(
        name="Crayons", marketplace="AMAZON", rye_product_id="B0CRAYON",
        price=Decimal("4.99"),
    )
    test_db.add_all([child, coat, crayons])
    await test_db.flush()
    coat_need = DriveItem(
        drive_id=drive.id, item_id=coat.id, quantity=3,
        variant_display_name="Red coat, size L",
    )
    crayon_need = DriveItem(drive_id=drive.id, item_id=crayons.id, quantity=5)
    child_coat_need = ChildItem(child_id=child.id, item_id=coat.id, quantity=2)
    test_db.add_all([coat_need, crayon_need, child_coat_need])
    await test_db.commit()
    return SimpleNamespace(
        org=org, drive=drive, child=child, coat=coat, crayons=crayons,
        coat_need=coat_need, crayon_need=crayon_need, child_coat_need=child_coat_need,
    )


