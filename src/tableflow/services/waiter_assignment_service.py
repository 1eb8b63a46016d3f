"""
Service for waiter-table assignments.

A table has at most one open assignment (``unassigned_at IS NULL``); the
partial unique index on ``waiter_assignments`` settles concurrent claims.
"""

from __future__ import annotations

from http import HTTPStatus

from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tableflow.audit import record_audit
from tableflow.constants import OPEN_ORDER_STATUSES
from tableflow.datetime_utils import utcnow
from tableflow.db import get_session
from tableflow.error_catalog import TABLE_ALREADY_ASSIGNED, TABLE_NOT_ASSIGNED
from tableflow.logging_config import get_logger
from tableflow.models import Order, RestaurantTable, WaiterAssignment
from tableflow.serializers import (
    error_response,
    serialize_assignment,
    serialize_table,
    success_response,
)
from tableflow.services.table_service import ensure_table_exists

logger = get_logger(__name__)

ALREADY_ASSIGNED_MESSAGE = "This table was just assigned to another waiter"


def _open_assignment(session: Session, table_id: int) -> WaiterAssignment | None:
    return session.execute(
        select(WaiterAssignment).where(
            and_(
                WaiterAssignment.table_id == table_id,
                WaiterAssignment.unassigned_at.is_(None),
            )
        )
    ).scalar_one_or_none()


def is_table_assigned_to(waiter_id: str, table_id: int, session: Session | None = None) -> bool:
    """True when ``waiter_id`` holds the open assignment for ``table_id``."""
    if session is not None:
        assignment = _open_assignment(session, table_id)
        return assignment is not None and assignment.waiter_id == waiter_id

    with get_session() as own_session:
        assignment = _open_assignment(own_session, table_id)
        return assignment is not None and assignment.waiter_id == waiter_id


def assign_table(waiter_id: str, table_id: int) -> tuple[dict, HTTPStatus]:
    """
    Claim a table for a waiter. Claiming a table you already hold is a no-op.
    """
    try:
        with get_session() as session:
            ensure_table_exists(session, table_id)
            current = _open_assignment(session, table_id)
            if current is not None:
                if current.waiter_id == waiter_id:
                    return success_response(serialize_assignment(current)), HTTPStatus.OK
                return (
                    error_response(ALREADY_ASSIGNED_MESSAGE, TABLE_ALREADY_ASSIGNED),
                    HTTPStatus.CONFLICT,
                )

            assignment = WaiterAssignment(
                waiter_id=waiter_id, table_id=table_id, assigned_at=utcnow()
            )
            session.add(assignment)
            session.flush()
            payload = serialize_assignment(assignment)
    except IntegrityError:
        logger.info("Waiter %s lost assignment race for table %s", waiter_id, table_id)
        return (
            error_response(ALREADY_ASSIGNED_MESSAGE, TABLE_ALREADY_ASSIGNED),
            HTTPStatus.CONFLICT,
        )

    record_audit("table.assign", "table", table_id, {"waiter_id": waiter_id}, actor_id=waiter_id)
    return success_response(payload), HTTPStatus.CREATED


def unassign_table(
    waiter_id: str, table_id: int, *, force: bool = False
) -> tuple[dict, HTTPStatus]:
    """
    Close the waiter's open assignment on a table. ``force`` lets an admin
    close someone else's assignment.
    """
    with get_session() as session:
        current = _open_assignment(session, table_id)
        if current is None or (current.waiter_id != waiter_id and not force):
            return (
                error_response("The table is not assigned to you", TABLE_NOT_ASSIGNED),
                HTTPStatus.NOT_FOUND,
            )
        current.unassigned_at = utcnow()
        previous_waiter = current.waiter_id
        payload = serialize_assignment(current)

    record_audit(
        "table.unassign",
        "table",
        table_id,
        {"waiter_id": previous_waiter},
        actor_id=waiter_id,
    )
    return success_response(payload), HTTPStatus.OK


def list_waiter_tables(waiter_id: str) -> list[dict]:
    """Tables currently assigned to a waiter, with their current order summary."""
    with get_session() as session:
        rows = session.execute(
            select(WaiterAssignment, RestaurantTable)
            .join(RestaurantTable, WaiterAssignment.table_id == RestaurantTable.id)
            .where(
                and_(
                    WaiterAssignment.waiter_id == waiter_id,
                    WaiterAssignment.unassigned_at.is_(None),
                )
            )
            .order_by(RestaurantTable.id)
        ).all()

        result = []
        for assignment, table in rows:
            current = session.get(Order, table.current_order_id) if table.current_order_id else None
            data = serialize_table(table, current)
            data["assigned_at"] = serialize_assignment(assignment)["assigned_at"]
            result.append(data)
        return result


def list_available_tables() -> list[dict]:
    """
    Tables with an active order that no waiter has claimed yet.
    """
    open_statuses = [status.value for status in OPEN_ORDER_STATUSES]
    with get_session() as session:
        claimed = select(WaiterAssignment.table_id).where(WaiterAssignment.unassigned_at.is_(None))
        rows = session.execute(
            select(RestaurantTable, Order)
            .join(Order, Order.table_id == RestaurantTable.id)
            .where(
                and_(
                    Order.status.in_(open_statuses),
                    RestaurantTable.id.not_in(claimed),
                )
            )
            .order_by(RestaurantTable.id)
        ).all()
        return [serialize_table(table, order) for table, order in rows]
