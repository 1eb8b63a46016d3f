"""
Table state management.

Owns the table -> status -> current order mapping and the rule that a table
has at most one active order. The session-level helpers take the caller's
SQLAlchemy session so they join the order transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tableflow.audit import record_audit
from tableflow.constants import OPEN_ORDER_STATUSES, TABLE_REQUEST_STATUSES, TableStatus
from tableflow.datetime_utils import utcnow
from tableflow.db import get_session
from tableflow.error_catalog import TABLE_NOT_ACTIVE, TABLE_NOT_FOUND
from tableflow.logging_config import get_logger
from tableflow.models import Order, RestaurantTable
from tableflow.serializers import error_response, serialize_table, success_response

logger = get_logger(__name__)

_OPEN_STATUS_VALUES = [status.value for status in OPEN_ORDER_STATUSES]


class Occupancy(str, Enum):
    FREE = "free"
    OCCUPIED_ACTIVE = "occupied_active"
    OCCUPIED_STALE = "occupied_stale"


@dataclass(frozen=True)
class OccupancyCheck:
    state: Occupancy
    order_id: str | None = None

    @property
    def can_create_order(self) -> bool:
        return self.state != Occupancy.OCCUPIED_ACTIVE


def find_active_order(session: Session, table_id: int) -> Order | None:
    """Newest non-terminal order for the table, if any."""
    return (
        session.execute(
            select(Order)
            .where(Order.table_id == table_id, Order.status.in_(_OPEN_STATUS_VALUES))
            .order_by(Order.created_at.desc(), Order.started_at.desc())
        )
        .scalars()
        .first()
    )


def ensure_table_exists(session: Session, table_id: int) -> RestaurantTable:
    """
    Return the table row, creating it as ``empty`` on first reference.

    Two requests can race to create the same table. The insert runs inside a
    SAVEPOINT so the loser's duplicate-key error only rolls back the savepoint
    and the row created by the winner is used.
    """
    table = session.get(RestaurantTable, table_id)
    if table is not None:
        return table

    try:
        with session.begin_nested():
            table = RestaurantTable(id=table_id, status=TableStatus.EMPTY.value)
            session.add(table)
    except IntegrityError:
        logger.info("Table %s created by a concurrent request", table_id)
        table = session.get(RestaurantTable, table_id, populate_existing=True)
        if table is None:
            raise
        return table

    logger.info("Created table %s", table_id)
    return table


def check_occupancy(session: Session, table_id: int) -> OccupancyCheck:
    """
    Classify the table as free, held by an active order, or stale.

    Stale means the table row says occupied but no active order backs it (for
    example a crash between payment and release). New orders may proceed on a
    stale table; that is how inconsistent rows heal.
    """
    table = session.execute(
        select(RestaurantTable).where(RestaurantTable.id == table_id).with_for_update()
    ).scalar_one_or_none()

    active = find_active_order(session, table_id)
    if active is not None:
        return OccupancyCheck(Occupancy.OCCUPIED_ACTIVE, active.id)

    if table is not None and not table.is_empty:
        logger.warning(
            "Table %s is %s without an active order (current_order_id=%s); treating as stale",
            table_id,
            table.status,
            table.current_order_id,
        )
        return OccupancyCheck(Occupancy.OCCUPIED_STALE, table.current_order_id)

    return OccupancyCheck(Occupancy.FREE)


def occupy(session: Session, table_id: int, order_id: str) -> RestaurantTable:
    table = ensure_table_exists(session, table_id)
    table.status = TableStatus.OCCUPIED.value
    table.current_order_id = order_id
    table.updated_at = utcnow()
    return table


def release(session: Session, table_id: int, order_id: str | None = None) -> bool:
    """
    Mark the table empty. When ``order_id`` is given and the table already
    points at a different order, the table is left alone.
    """
    table = session.get(RestaurantTable, table_id)
    if table is None:
        return False

    if order_id and table.current_order_id not in (None, order_id):
        logger.warning(
            "Not releasing table %s: it now belongs to order %s, not %s",
            table_id,
            table.current_order_id,
            order_id,
        )
        return False

    table.status = TableStatus.EMPTY.value
    table.current_order_id = None
    table.updated_at = utcnow()
    return True


def list_tables() -> dict:
    """Floor view for cashiers: every table with its current order summary."""
    with get_session() as session:
        tables = session.execute(select(RestaurantTable).order_by(RestaurantTable.id)).scalars()
        result = []
        for table in tables:
            current = session.get(Order, table.current_order_id) if table.current_order_id else None
            result.append(serialize_table(table, current))
        return success_response(result)


def set_table_request(
    table_id: int, status: TableStatus, actor_id: str | None = None
) -> tuple[dict, HTTPStatus]:
    """
    Flag a table as needing assistance or the bill (or clear the flag back to
    occupied). Only tables with an active order can carry a flag.
    """
    if status not in TABLE_REQUEST_STATUSES:
        return error_response(f"Cannot set table status to {status.value}"), HTTPStatus.BAD_REQUEST

    with get_session() as session:
        table = session.get(RestaurantTable, table_id)
        if table is None:
            return error_response("Table not found", TABLE_NOT_FOUND), HTTPStatus.NOT_FOUND

        active = find_active_order(session, table_id)
        if active is None:
            return (
                error_response("The table has no active order", TABLE_NOT_ACTIVE),
                HTTPStatus.CONFLICT,
            )

        old_status = table.status
        table.status = status.value
        table.current_order_id = active.id
        table.updated_at = utcnow()
        payload = serialize_table(table)

    record_audit(
        "table.status",
        "table",
        table_id,
        {"old_status": old_status, "new_status": status.value},
        actor_id=actor_id,
    )
    return success_response(payload), HTTPStatus.OK
