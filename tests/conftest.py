import os

os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DB_TYPE", "sqlite")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_ACCESS_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import app.models  # noqa: F401
from app.core.db import Base, get_db, enable_sqlite_foreign_keys
from app.models.users.user_models import User
from app.models.catalog.tag_models import Tag
from app.models.catalog.unit_models import Unit
from main import app as api


@pytest.fixture()
async def session_factory(tmp_path):
    # file-backed so separate sessions really are separate connections
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        poolclass=NullPool,
    )
    event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_local = async_sessionmaker(
        engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    yield session_local

    await engine.dispose()


@pytest.fixture()
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def users(session_factory):
    async with session_factory() as session:
        accounts = {
            "admin": User(username="admin@example.com", full_name="Admin", role="admin"),
            "inventory": User(username="stores@example.com", full_name="Stores", role="inventory"),
            "viewer": User(username="viewer@example.com", full_name="Viewer", role="viewer"),
        }
        session.add_all(accounts.values())
        await session.commit()
        return accounts


@pytest.fixture()
async def catalog(session_factory, users):
    """Tag and unit ids per inventory type."""
    async with session_factory() as session:
        rows = {
            "teak": Tag(inventory_type="raw_material", tag_key="teak", display_name="Teak Wood"),
            "plywood": Tag(inventory_type="raw_material", tag_key="plywood", display_name="Plywood"),
            "old_foam": Tag(
                inventory_type="raw_material",
                tag_key="old_foam",
                display_name="Old Foam",
                is_active=False,
            ),
            "glue": Tag(inventory_type="recurring_product", tag_key="glue", display_name="Glue"),
            "chair": Tag(inventory_type="produced_goods", tag_key="chair", display_name="Chair"),
            "kg": Unit(inventory_type="raw_material", unit_key="kg", display_name="Kilogram", allows_decimal=True),
            "pcs": Unit(inventory_type="raw_material", unit_key="pcs", display_name="Pieces", allows_decimal=False),
            "bottle": Unit(
                inventory_type="recurring_product",
                unit_key="bottle",
                display_name="Bottle",
                allows_decimal=False,
            ),
            "units": Unit(
                inventory_type="produced_goods",
                unit_key="units",
                display_name="Units",
                allows_decimal=False,
            ),
        }
        session.add_all(rows.values())
        await session.commit()
        return {key: row.id for key, row in rows.items()}


@pytest.fixture()
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    api.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as ac:
        yield ac

    api.dependency_overrides.clear()

