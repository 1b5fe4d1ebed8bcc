import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["LOG_TO_FILE"] = "false"
os.environ["ENVIRONMENT"] = "test"

from types import SimpleNamespace
from typing import AsyncGenerator
from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.database import get_async_session
from app.core.security import create_access_token
from app.models.base import Base
from app.models.inventory.category import Category
from app.models.inventory.product import Product
from app.models.organization.warehouse import Warehouse
from app.models.purchase.product_supplier import ProductSupplier
from app.models.purchase.supplier import Supplier
from app.models.shared.enums import StockMovementType
from app.services.inventory.inventory_ledger import InventoryLedger
from main import app

TEST_DATABASE_URL = "sqlite+aiosqlite://"


def _sqlite_connect(dbapi_connection, connection_record):
    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    dbapi_connection.isolation_level = None


def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest.fixture
async def engine():
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(test_engine.sync_engine, "connect", _sqlite_connect)
    event.listen(test_engine.sync_engine, "begin", _sqlite_begin)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def catalog(session_factory):
    """Two warehouses, two suppliers and three products; ids only"""
    async with session_factory() as session:
        category = Category(name="General")
        session.add(category)
        await session.flush()

        main = Warehouse(name="Main Warehouse", code="MAIN", city="Dhaka")
        east = Warehouse(name="East Warehouse", code="EAST", city="Chittagong")
        acme = Supplier(supplier_code="ACME", name="Acme Supplies")
        beta = Supplier(supplier_code="BETA", name="Beta Trading")
        widget = Product(sku="WID-001", name="Widget", category_id=category.id, reorder_point=10, reorder_quantity=50)
        gadget = Product(sku="GAD-001", name="Gadget", category_id=category.id, reorder_point=5, reorder_quantity=20)
        gizmo = Product(sku="GIZ-001", name="Gizmo", category_id=category.id, reorder_point=0, reorder_quantity=0)
        session.add_all([main, east, acme, beta, widget, gadget, gizmo])
        await session.commit()

        return SimpleNamespace(
            category_id=category.id,
            main_id=main.id,
            east_id=east.id,
            acme_id=acme.id,
            beta_id=beta.id,
            widget_id=widget.id,
            gadget_id=gadget.id,
            gizmo_id=gizmo.id,
        )


@pytest.fixture
async def price_list(session_factory, catalog):
    """Acme is cheaper for widgets, Beta for gadgets"""
    async with session_factory() as session:
        session.add_all([
            ProductSupplier(product_id=catalog.widget_id, supplier_id=catalog.acme_id, unit_cost=Decimal("2.50"), lead_time_days=3),
            ProductSupplier(product_id=catalog.widget_id, supplier_id=catalog.beta_id, unit_cost=Decimal("3.00"), lead_time_days=1),
            ProductSupplier(product_id=catalog.gadget_id, supplier_id=catalog.acme_id, unit_cost=Decimal("9.00")),
            ProductSupplier(product_id=catalog.gadget_id, supplier_id=catalog.beta_id, unit_cost=Decimal("8.00"), lead_time_days=5),
        ])
        await session.commit()
    return catalog


async def receive_stock(session: AsyncSession, product_id: int, warehouse_id: int, quantity: int, reference_id: str = None):
    ledger = InventoryLedger(session)
    return await ledger.apply_movement(
        product_id, warehouse_id, StockMovementType.IN, quantity, reference_id=reference_id
    )


@pytest.fixture
def stock(session_factory):
    """Seed on-hand stock through the ledger in its own session"""
    async def _stock(product_id: int, warehouse_id: int, quantity: int):
        async with session_factory() as session:
            return await receive_stock(session, product_id, warehouse_id, quantity)
    return _stock


def _headers(user_id: int, username: str, role: str) -> dict:
    token = create_access_token(user_id, username=username, roles=[role])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict:
    return _headers(1, "admin", "ADMIN")


@pytest.fixture
def manager_headers() -> dict:
    return _headers(2, "manager", "MANAGER")


@pytest.fixture
def staff_headers() -> dict:
    return _headers(3, "staff", "STAFF")


@pytest.fixture
def viewer_headers() -> dict:
    return _headers(4, "viewer", "VIEWER")


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
