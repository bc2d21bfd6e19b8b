import os

os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DB_TYPE", "sqlite")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select, update
from sqlalchemy.pool import StaticPool

from app.core.db import build_engine, build_sessionmaker, create_tables, get_db
from app.models.masters.item_models import CatalogItem
from app.models.sales.sales_order_models import SalesOrderItem
from app.models.enums.item_category import ItemCategory
from app.schemas.masters.item_schemas import ItemCreate
from app.schemas.sales.sales_order_schemas import SalesOrderCreate, SalesOrderItemCreate
from app.schemas.purchasing.purchase_order_schemas import (
    PurchaseOrderCreate,
    PurchaseOrderItemCreate,
)
from app.services.masters.item_service import create_item
from app.services.sales.sales_order_service import create_sales_order
from app.services.purchasing.purchase_order_service import create_purchase_order

ACTOR = "tester"


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite://", "sqlite", poolclass=StaticPool)
    await create_tables(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def strict_matching(monkeypatch):
    monkeypatch.setattr("app.services.inventory.item_matcher.STRICT_LINE_MATCHING", True)


# -----------------
# FACTORIES
# -----------------
async def make_item(db, name, on_hand=0, category=ItemCategory.goods, description=None):
    out = await create_item(
        db,
        ItemCreate(name=name, on_hand=on_hand, category=category, description=description),
        ACTOR,
    )
    return out.id


async def make_sales_order(db, *lines, order_number=None):
    """``lines`` are (description, quantity) pairs."""
    return await create_sales_order(
        db,
        SalesOrderCreate(
            order_number=order_number,
            items=[
                SalesOrderItemCreate(description=desc, ordered_quantity=qty)
                for desc, qty in lines
            ],
        ),
        ACTOR,
    )


async def make_purchase_order(db, *lines, po_number=None):
    return await create_purchase_order(
        db,
        PurchaseOrderCreate(
            po_number=po_number,
            items=[
                PurchaseOrderItemCreate(description=desc, received_quantity=qty)
                for desc, qty in lines
            ],
        ),
        ACTOR,
    )


async def on_hand(db, item_id):
    item = await db.scalar(
        select(CatalogItem)
        .where(CatalogItem.id == item_id)
        .execution_options(populate_existing=True)
    )
    return item.on_hand


async def load_line(db, line_id):
    return await db.scalar(
        select(SalesOrderItem)
        .where(SalesOrderItem.id == line_id)
        .execution_options(populate_existing=True)
    )


async def backdate_line(db, line_id, created_at):
    await db.execute(
        update(SalesOrderItem)
        .where(SalesOrderItem.id == line_id)
        .values(created_at=created_at)
    )
    await db.commit()
