"""
Order state machine.

Keeps the status rules out of the service layer: which transitions are legal,
which milestone timestamps a status stamps, and the guard that keeps orders
without billable items in pending (or cancelled).

Transitions are permissive by default so staff can override (e.g. jump an
order from pending straight to paid). ``strict=True`` enforces the
forward-only table in ``ORDER_TRANSITIONS``.
"""

from __future__ import annotations

from dataclasses import dataclass

from tableflow.constants import (
    EMPTY_ORDER_STATUSES,
    ORDER_TRANSITIONS,
    STATUS_MILESTONES,
    OrderStatus,
)
from tableflow.datetime_utils import utcnow
from tableflow.error_catalog import INVALID_TRANSITION, ORDER_EMPTY
from tableflow.models import Order


class OrderStateError(Exception):
    """Error raised when a status change is refused."""

    def __init__(
        self,
        message: str,
        code: str,
        current_status: OrderStatus | None,
        target_status: OrderStatus | None,
    ):
        super().__init__(message)
        self.code = code
        self.current_status = current_status
        self.target_status = target_status


@dataclass
class TransitionResult:
    old_status: OrderStatus
    new_status: OrderStatus
    stamped: list[str]


class OrderStateMachine:
    """
    Applies status changes to an ``Order`` instance in place.

    Responsibilities:
    - Validate the transition (strict mode only)
    - Refuse to move an order without billable items past pending
    - Stamp milestone timestamps, never overwriting one already set
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def can_transition(self, current_status: OrderStatus, target_status: OrderStatus) -> bool:
        if current_status == target_status:
            return True
        if not self.strict:
            return True
        return target_status in ORDER_TRANSITIONS.get(current_status, set())

    def apply(
        self, order: Order, target_status: OrderStatus, actor_id: str | None = None
    ) -> TransitionResult:
        current_status = self._get_status(order)

        if not self.can_transition(current_status, target_status):
            raise OrderStateError(
                f"Invalid transition: {current_status.value} -> {target_status.value}",
                INVALID_TRANSITION,
                current_status,
                target_status,
            )

        if (
            target_status != current_status
            and target_status not in EMPTY_ORDER_STATUSES
            and not order.active_items
        ):
            raise OrderStateError(
                f"An order without items cannot move to {target_status.value}",
                ORDER_EMPTY,
                current_status,
                target_status,
            )

        now = utcnow()
        stamped = []
        for field in STATUS_MILESTONES.get(target_status, ()):
            if getattr(order, field) is None:
                setattr(order, field, now)
                stamped.append(field)

        if "paid_at" in stamped and actor_id:
            order.paid_by = actor_id
            stamped.append("paid_by")

        order.status = target_status.value
        order.updated_at = now
        return TransitionResult(current_status, target_status, stamped)

    def _get_status(self, order: Order) -> OrderStatus:
        try:
            return OrderStatus(order.status)
        except ValueError:
            return OrderStatus.PENDING
