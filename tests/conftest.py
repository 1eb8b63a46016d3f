"""Pytest configuration and fixtures."""

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# Use in-memory SQLite for tests; must be set before the apps read config.
TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_JWT_SECRET = "test-jwt-secret-for-tableflow-suite"

os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["SECRET_KEY"] = "test-secret-key-for-tableflow-suite"
os.environ["JWT_SECRET_KEY"] = TEST_JWT_SECRET
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("STRICT_STATUS_TRANSITIONS", None)
os.environ.pop("TABLE_ACCESS_TTL_MINUTES", None)

import jwt
import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from tableflow.config import load_config
from tableflow.db import dispose_engine, get_session, init_db, init_engine
from tableflow.jwt_middleware import Actor
from tableflow.models import Base, MenuItem, Order, RestaurantTable
from tableflow.services.order_service import create_order

SAMPLE_CART = [{"id": 10, "qty": 2, "price": 5.00}]


@pytest.fixture(autouse=True)
def database():
    """Fresh in-memory database for every test."""
    dispose_engine()
    init_engine(load_config("tableflow-tests"))
    init_db(Base.metadata)
    yield
    dispose_engine()


@pytest.fixture
def cashier() -> Actor:
    return Actor(actor_id="cashier-1", role="cashier")


@pytest.fixture
def admin() -> Actor:
    return Actor(actor_id="admin-1", role="admin")


@pytest.fixture
def waiter() -> Actor:
    return Actor(actor_id="waiter-1", role="waiter")


@pytest.fixture
def kitchen() -> Actor:
    return Actor(actor_id="kitchen-1", role="kitchen")


@pytest.fixture
def menu_item() -> MenuItem:
    """A menu item priced at 5.00."""
    with get_session() as session:
        item = MenuItem(id=10, name="Tacos al pastor", category="mains", price=Decimal("5.00"))
        session.add(item)
    return item


@pytest.fixture
def place_order(cashier):
    """Create an order through the engine and return its serialized payload."""

    def _place(table_id=3, items=None, total="11.00", actor=cashier, **kwargs):
        response, status = create_order(
            table_id, items if items is not None else SAMPLE_CART, total, actor=actor, **kwargs
        )
        assert status == 201, response
        return response["data"]

    return _place


@pytest.fixture
def fetch_table():
    def _fetch(table_id: int) -> RestaurantTable | None:
        with get_session() as session:
            return session.get(RestaurantTable, table_id)

    return _fetch


@pytest.fixture
def fetch_order():
    """Load an order with its items, detached and fully populated."""

    def _fetch(order_id: str) -> Order | None:
        with get_session() as session:
            return session.execute(
                select(Order).where(Order.id == order_id).options(selectinload(Order.items))
            ).scalar_one_or_none()

    return _fetch


@pytest.fixture
def count_orders():
    def _count(table_id: int | None = None) -> int:
        with get_session() as session:
            stmt = select(func.count(Order.id))
            if table_id is not None:
                stmt = stmt.where(Order.table_id == table_id)
            return session.execute(stmt).scalar_one()

    return _count


def make_token(role: str, sub: str | None = None, secret: str = TEST_JWT_SECRET) -> str:
    payload = {
        "sub": sub or f"{role}-1",
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    """Build bearer headers for a staff role."""

    def _headers(role: str, sub: str | None = None) -> dict:
        return {"Authorization": f"Bearer {make_token(role, sub)}"}

    return _headers


@pytest.fixture
def staff_client():
    from staff_app.app import create_app

    app = create_app()
    app.config.update(TESTING=True)
    return app.test_client()


@pytest.fixture
def customer_client():
    from customer_app.app import create_app

    app = create_app()
    app.config.update(TESTING=True)
    return app.test_client()
