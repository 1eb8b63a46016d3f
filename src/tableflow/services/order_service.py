"""
Order lifecycle: creation, status transitions, voids and reads.

Every public function returns ``(payload, HTTPStatus)``. Business rejections
(stale QR access, occupied table, void after cooking...) come back as error
payloads; only infrastructure failures raise.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from http import HTTPStatus

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from tableflow.audit import record_audit
from tableflow.constants import (
    KITCHEN_QUEUE_STATUSES,
    VOID_LOCKED_STATUSES,
    VOID_ROLES,
    OrderStatus,
    Roles,
)
from tableflow.datetime_utils import utcnow
from tableflow.db import get_session
from tableflow.device_session import TableAccessValidation
from tableflow.error_catalog import (
    INVALID_PAYLOAD,
    INVALID_STATUS,
    ITEM_NOT_FOUND,
    ORDER_NOT_FOUND,
    ROLE_FORBIDDEN,
    TABLE_NOT_ASSIGNED,
    TABLE_OCCUPIED,
    VOID_AFTER_COOKING,
    VOID_ORDER_CANCELLED,
)
from tableflow.jwt_middleware import Actor
from tableflow.logging_config import LoggerAdapter, get_logger
from tableflow.models import Order, OrderItem
from tableflow.serializers import (
    error_response,
    redirect_response,
    serialize_order,
    serialize_order_item,
    success_response,
)
from tableflow.services.access_validator import (
    DEFAULT_ACCESS_TTL_MINUTES,
    AccessOutcome,
    validate_table_access,
)
from tableflow.services.order_state_machine import OrderStateError, OrderStateMachine
from tableflow.services.table_service import (
    Occupancy,
    check_occupancy,
    ensure_table_exists,
    find_active_order,
    occupy,
    release,
)
from tableflow.services.waiter_assignment_service import is_table_assigned_to
from tableflow.validation import (
    ValidationError,
    to_money,
    validate_cart,
    validate_order_status,
    validate_table_id,
)

logger = get_logger(__name__)

TABLE_OCCUPIED_MESSAGE = "This table already has an active order"
VOID_AFTER_COOKING_MESSAGE = "Cannot void items after cooking has started"
VOID_ORDER_CANCELLED_MESSAGE = "Cannot void items on a cancelled order"
CENT = Decimal("0.01")


def _table_occupied(order_id: str | None) -> tuple[dict, HTTPStatus]:
    return (
        error_response(TABLE_OCCUPIED_MESSAGE, TABLE_OCCUPIED, {"order_id": order_id}),
        HTTPStatus.CONFLICT,
    )


def _recheck_after_conflict(table_id: int) -> str | None:
    """
    After an IntegrityError on insert, find out whether a concurrent request
    won the table. Returns the winning order id, or None if the conflict was
    something else.
    """
    with get_session() as session:
        occupancy = check_occupancy(session, table_id)
    if occupancy.state == Occupancy.OCCUPIED_ACTIVE:
        return occupancy.order_id
    return None


def create_order(
    table_id: int,
    items: list[dict],
    total,
    actor: Actor | None = None,
    validation: TableAccessValidation | None = None,
    *,
    access_ttl_minutes: int = DEFAULT_ACCESS_TTL_MINUTES,
) -> tuple[dict, HTTPStatus]:
    """
    Create an order for a table from a cart.

    ``validation`` is None for staff requests. Customer requests always carry
    it and go through the access validator first. Order row, item rows and the
    table occupancy are written in one transaction, so a failure in any of
    them leaves nothing behind.
    """
    try:
        table_id = validate_table_id(table_id)
        lines = validate_cart(items)
        total_price = to_money(total)
    except ValidationError as exc:
        return error_response(str(exc), INVALID_PAYLOAD), HTTPStatus.BAD_REQUEST

    log = LoggerAdapter(logger, {"table_id": table_id})

    decision = validate_table_access(table_id, validation, ttl_minutes=access_ttl_minutes)
    if not decision.allowed:
        if decision.outcome == AccessOutcome.REDIRECT:
            return redirect_response(decision.redirect_table_id), HTTPStatus.SEE_OTHER
        return error_response(decision.reason, decision.code), HTTPStatus.FORBIDDEN

    if actor and actor.role == Roles.WAITER.value:
        if not is_table_assigned_to(actor.actor_id, table_id):
            return (
                error_response("This table is not assigned to you", TABLE_NOT_ASSIGNED),
                HTTPStatus.FORBIDDEN,
            )

    actor_id = actor.actor_id if actor else None
    now = utcnow()

    try:
        with get_session() as session:
            ensure_table_exists(session, table_id)

            occupancy = check_occupancy(session, table_id)
            if occupancy.state == Occupancy.OCCUPIED_ACTIVE:
                log.info("Rejected order: table busy with order %s", occupancy.order_id)
                return _table_occupied(occupancy.order_id)

            order = Order(
                table_id=table_id,
                status=OrderStatus.PENDING.value,
                total_price=total_price,
                created_by=actor_id,
                started_at=now,
                created_at=now,
                updated_at=now,
                items=[
                    OrderItem(
                        menu_item_id=line["menu_item_id"],
                        quantity=line["quantity"],
                        price_at_time=line["price"],
                        modifiers=line["modifiers"],
                    )
                    for line in lines
                ],
            )
            session.add(order)
            session.flush()

            occupy(session, table_id, order.id)
            session.flush()
            payload = serialize_order(order)
    except IntegrityError:
        winner = _recheck_after_conflict(table_id)
        if winner is None:
            raise
        log.info("Lost table race to order %s", winner)
        return _table_occupied(winner)

    log.info(
        "Created order %s (%s lines, total %s, stale_table=%s)",
        payload["id"],
        len(lines),
        total_price,
        occupancy.state == Occupancy.OCCUPIED_STALE,
    )
    record_audit(
        "order.create",
        "order",
        payload["id"],
        {
            "table_id": table_id,
            "total_price": str(total_price),
            "items": len(lines),
            "customer": validation is not None,
        },
        actor_id=actor_id,
    )
    return success_response(payload), HTTPStatus.CREATED


def _fetch_order_items(session: Session, order_id: str) -> list[OrderItem]:
    return list(
        session.execute(
            select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
        )
        .scalars()
        .all()
    )


def get_active_order(table_id: int, include_voided: bool = True) -> tuple[dict, HTTPStatus]:
    """
    Newest non-terminal order for the table, or ``data=None``.

    Items are fetched separately; if that fetch fails the order is returned
    with an empty item list, since the client can simply retry.
    """
    try:
        table_id = validate_table_id(table_id)
    except ValidationError as exc:
        return error_response(str(exc), INVALID_PAYLOAD), HTTPStatus.BAD_REQUEST

    with get_session() as session:
        order = find_active_order(session, table_id)
        if order is None:
            return success_response(None, message="No active order"), HTTPStatus.OK

        try:
            with session.begin_nested():
                items = _fetch_order_items(session, order.id)
        except SQLAlchemyError as exc:
            logger.warning("Could not load items for order %s: %s", order.id, exc)
            items = []

        return (
            success_response(serialize_order(order, items=items, include_voided=include_voided)),
            HTTPStatus.OK,
        )


def get_order(order_id: str) -> tuple[dict, HTTPStatus]:
    """Back-office read: voided lines included."""
    with get_session() as session:
        order = session.execute(
            select(Order).where(Order.id == order_id).options(selectinload(Order.items))
        ).scalar_one_or_none()
        if order is None:
            return error_response("Order not found", ORDER_NOT_FOUND), HTTPStatus.NOT_FOUND
        return success_response(serialize_order(order)), HTTPStatus.OK


def update_status(
    order_id: str,
    new_status: str,
    actor: Actor | None = None,
    *,
    strict: bool = False,
) -> tuple[dict, HTTPStatus]:
    """
    Move an order to ``new_status``.

    Milestone timestamps are stamped only when empty, so repeating a call is
    harmless. Paying the order releases its table.
    """
    try:
        target = validate_order_status(new_status)
    except ValidationError as exc:
        return error_response(str(exc), INVALID_STATUS), HTTPStatus.BAD_REQUEST

    actor_id = actor.actor_id if actor else None

    with get_session() as session:
        order = session.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.items))
            .with_for_update(of=Order)
        ).scalar_one_or_none()
        if order is None:
            return error_response("Order not found", ORDER_NOT_FOUND), HTTPStatus.NOT_FOUND

        try:
            result = OrderStateMachine(strict=strict).apply(order, target, actor_id)
        except OrderStateError as exc:
            return error_response(str(exc), exc.code), HTTPStatus.CONFLICT

        table_released = False
        if target == OrderStatus.PAID:
            table_released = release(session, order.table_id, order.id)

        payload = serialize_order(order)

    logger.info(
        "Order %s: %s -> %s (stamped=%s)",
        order_id,
        result.old_status.value,
        result.new_status.value,
        result.stamped,
    )
    record_audit(
        "order.status",
        "order",
        order_id,
        {
            "old_status": result.old_status.value,
            "new_status": result.new_status.value,
            "table_released": table_released,
        },
        actor_id=actor_id,
    )
    return success_response(payload), HTTPStatus.OK


def void_order_item(item_id: int, reason: str, actor: Actor) -> tuple[dict, HTTPStatus]:
    """
    Soft-delete an order line.

    Cashiers may only void while the order is pending; admins may void at
    any time. The row stays for billing history.
    """
    if actor.role not in VOID_ROLES:
        return (
            error_response("Your role cannot void order items", ROLE_FORBIDDEN),
            HTTPStatus.FORBIDDEN,
        )

    reason = (reason or "").strip()
    if not reason:
        return error_response("A void reason is required", INVALID_PAYLOAD), HTTPStatus.BAD_REQUEST

    with get_session() as session:
        item = session.get(OrderItem, item_id, with_for_update=True)
        if item is None:
            return error_response("Order item not found", ITEM_NOT_FOUND), HTTPStatus.NOT_FOUND

        order_status = OrderStatus(item.order.status)
        if not actor.is_admin and order_status == OrderStatus.CANCELLED:
            return (
                error_response(VOID_ORDER_CANCELLED_MESSAGE, VOID_ORDER_CANCELLED),
                HTTPStatus.CONFLICT,
            )
        if not actor.is_admin and order_status in VOID_LOCKED_STATUSES:
            return (
                error_response(VOID_AFTER_COOKING_MESSAGE, VOID_AFTER_COOKING),
                HTTPStatus.FORBIDDEN,
            )

        if item.is_voided:
            return (
                success_response(serialize_order_item(item), message="Item already voided"),
                HTTPStatus.OK,
            )

        item.voided_at = utcnow()
        item.voided_by = actor.actor_id
        item.void_reason = reason
        order_id = item.order_id
        payload = serialize_order_item(item)

    record_audit(
        "order_item.void",
        "order_item",
        item_id,
        {"order_id": order_id, "order_status": order_status.value, "reason": reason},
        actor_id=actor.actor_id,
    )
    return success_response(payload), HTTPStatus.OK


def list_kitchen_orders() -> tuple[dict, HTTPStatus]:
    """Kitchen display queue, oldest first, voided lines hidden."""
    with get_session() as session:
        orders = (
            session.execute(
                select(Order)
                .where(Order.status.in_([status.value for status in KITCHEN_QUEUE_STATUSES]))
                .options(selectinload(Order.items))
                .order_by(Order.started_at.asc())
            )
            .scalars()
            .all()
        )
        data = [serialize_order(order, include_voided=False) for order in orders]
    return success_response(data), HTTPStatus.OK


def get_order_receipt(order_id: str) -> tuple[dict, HTTPStatus]:
    """
    Customer-facing receipt. Voided lines are left out and the quoted total is
    reduced in proportion to the voided share of the item subtotal.
    """
    with get_session() as session:
        order = session.execute(
            select(Order).where(Order.id == order_id).options(selectinload(Order.items))
        ).scalar_one_or_none()
        if order is None:
            return error_response("Order not found", ORDER_NOT_FOUND), HTTPStatus.NOT_FOUND

        gross = sum((item.line_total for item in order.items), Decimal("0"))
        voided = sum((item.line_total for item in order.items if item.is_voided), Decimal("0"))
        subtotal = gross - voided
        total = Decimal(order.total_price)
        if gross > 0 and voided > 0:
            total = (total * subtotal / gross).quantize(CENT, rounding=ROUND_HALF_UP)

        data = {
            "order_id": order.id,
            "table_id": order.table_id,
            "status": order.status,
            "items": [serialize_order_item(item) for item in order.active_items],
            "subtotal": float(subtotal.quantize(CENT)),
            "total": float(total),
        }
    return success_response(data), HTTPStatus.OK


def sweep_incomplete_orders(max_age_minutes: int) -> list[str]:
    """
    Cancel pending orders that have no billable items and are older than
    ``max_age_minutes``. Run by hand from the CLI; returns the cancelled ids.
    """
    cutoff = utcnow() - timedelta(minutes=max_age_minutes)
    machine = OrderStateMachine()

    with get_session() as session:
        candidates = (
            session.execute(
                select(Order)
                .where(
                    Order.status == OrderStatus.PENDING.value,
                    Order.started_at < cutoff,
                    ~Order.items.any(OrderItem.voided_at.is_(None)),
                )
                .options(selectinload(Order.items))
            )
            .scalars()
            .all()
        )
        cancelled = []
        for order in candidates:
            machine.apply(order, OrderStatus.CANCELLED)
            cancelled.append(order.id)

    for order_id in cancelled:
        logger.info("Cancelled incomplete order %s", order_id)
        record_audit(
            "order.auto_cancel",
            "order",
            order_id,
            {"old_status": OrderStatus.PENDING.value, "new_status": OrderStatus.CANCELLED.value},
        )
    return cancelled
