"""
SQLAlchemy ORM models for the order/table lifecycle engine.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from .constants import OPEN_ORDER_STATUSES, OrderStatus, TableStatus

_OPEN_STATUS_SQL = ", ".join(f"'{status.value}'" for status in sorted(OPEN_ORDER_STATUSES))
ACTIVE_ORDER_PER_TABLE_INDEX = "uq_orders_one_active_per_table"
OPEN_ASSIGNMENT_PER_TABLE_INDEX = "uq_waiter_assignments_open_table"


class JSONBType(TypeDecorator):
    """
    JSONB on PostgreSQL, JSON serialized into TEXT everywhere else.

    This allows tests to run with SQLite while production uses PostgreSQL JSONB.
    """

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        return json.dumps(value, default=str)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        if isinstance(value, str):
            return json.loads(value)
        return value

    @property
    def python_type(self):
        return object


JSONB_TYPE = JSONBType()


def _new_order_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class RestaurantTable(Base):
    """
    A physical table, identified by the number printed on its QR code.

    Rows are created lazily the first time an order references the table and
    are never deleted.
    """

    __tablename__ = "restaurant_tables"
    __table_args__ = (
        Index("ix_restaurant_tables_status", "status"),
        CheckConstraint(
            "status IN ('empty', 'occupied', 'needs_assistance', 'needs_bill')",
            name="ck_restaurant_tables_status",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=TableStatus.EMPTY.value
    )
    current_order_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    orders: Mapped[list[Order]] = relationship("Order", back_populates="table")

    @hybrid_property
    def is_empty(self) -> bool:
        return self.status == TableStatus.EMPTY.value


class MenuItem(Base):
    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_available: Mapped[bool] = mapped_column(default=True, nullable=False)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_status", "status"),
        Index("ix_orders_table_created", "table_id", "created_at"),
        # One non-terminal order per table; concurrent creators get exactly one winner.
        Index(
            ACTIVE_ORDER_PER_TABLE_INDEX,
            "table_id",
            unique=True,
            postgresql_where=text(f"status IN ({_OPEN_STATUS_SQL})"),
            sqlite_where=text(f"status IN ({_OPEN_STATUS_SQL})"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_order_id)
    table_id: Mapped[int] = mapped_column(ForeignKey("restaurant_tables.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=OrderStatus.PENDING.value
    )
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    paid_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    kitchen_received_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    ready_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    served_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    table: Mapped[RestaurantTable] = relationship("RestaurantTable", back_populates="orders")
    items: Mapped[list[OrderItem]] = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
    )

    @property
    def is_active(self) -> bool:
        return self.status in {status.value for status in OPEN_ORDER_STATUSES}

    @property
    def active_items(self) -> list[OrderItem]:
        return [item for item in self.items if item.voided_at is None]


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        Index("ix_order_items_order_id", "order_id"),
        Index("ix_order_items_menu_item_id", "menu_item_id"),
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), nullable=False)
    menu_item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # Snapshot of the quoted price; never refreshed from the menu.
    price_at_time: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    modifiers: Mapped[dict[str, Any] | None] = mapped_column(JSONB_TYPE, nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    voided_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    void_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    order: Mapped[Order] = relationship("Order", back_populates="items")

    @property
    def is_voided(self) -> bool:
        return self.voided_at is not None

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.price_at_time) * self.quantity


class WaiterAssignment(Base):
    """
    A waiter's claim on a table. Closed assignments keep their history.
    """

    __tablename__ = "waiter_assignments"
    __table_args__ = (
        Index("ix_waiter_assignments_waiter", "waiter_id", "unassigned_at"),
        Index(
            OPEN_ASSIGNMENT_PER_TABLE_INDEX,
            "table_id",
            unique=True,
            postgresql_where=text("unassigned_at IS NULL"),
            sqlite_where=text("unassigned_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    waiter_id: Mapped[str] = mapped_column(String(64), nullable=False)
    table_id: Mapped[int] = mapped_column(ForeignKey("restaurant_tables.id"), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    unassigned_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    table: Mapped[RestaurantTable] = relationship("RestaurantTable")


class AuditLog(Base):
    """Append-only record of every state-mutating action."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_actor_id", "actor_id"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        Index("ix_audit_logs_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    actor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    changes: Mapped[dict[str, Any] | None] = mapped_column(JSONB_TYPE, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
