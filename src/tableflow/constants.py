"""
Application constants and enums.
"""

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    COOKING = "cooking"
    READY = "ready"
    SERVED = "served"
    WAITING_PAYMENT = "waiting_payment"
    PAID = "paid"
    CANCELLED = "cancelled"


class TableStatus(str, Enum):
    EMPTY = "empty"
    OCCUPIED = "occupied"
    NEEDS_ASSISTANCE = "needs_assistance"
    NEEDS_BILL = "needs_bill"


class Roles(str, Enum):
    SYSTEM = "system"
    ADMIN = "admin"
    CASHIER = "cashier"
    WAITER = "waiter"
    KITCHEN = "kitchen"

    @classmethod
    def is_admin(cls, role: str | None) -> bool:
        return role in {cls.SYSTEM, cls.ADMIN}

    @classmethod
    def all_values(cls) -> set:
        return {member.value for member in cls}


OPEN_ORDER_STATUSES = {
    OrderStatus.PENDING,
    OrderStatus.COOKING,
    OrderStatus.READY,
    OrderStatus.SERVED,
    OrderStatus.WAITING_PAYMENT,
}

# Kitchen display shows orders waiting for or in preparation.
KITCHEN_QUEUE_STATUSES = {
    OrderStatus.PENDING,
    OrderStatus.COOKING,
}

# The only statuses an order without billable items may move to.
EMPTY_ORDER_STATUSES = {
    OrderStatus.PENDING,
    OrderStatus.CANCELLED,
}

# Once preparation starts a cashier can no longer void lines.
VOID_LOCKED_STATUSES = {
    OrderStatus.COOKING,
    OrderStatus.READY,
    OrderStatus.SERVED,
    OrderStatus.WAITING_PAYMENT,
    OrderStatus.PAID,
}

VOID_ROLES = {Roles.ADMIN.value, Roles.SYSTEM.value, Roles.CASHIER.value}

# Milestone timestamp columns stamped (once) when an order enters a status.
STATUS_MILESTONES = {
    OrderStatus.COOKING: ("kitchen_received_at",),
    OrderStatus.READY: ("ready_at",),
    OrderStatus.SERVED: ("served_at",),
    OrderStatus.PAID: ("paid_at", "completed_at"),
}

# Forward-only transitions, enforced only when STRICT_STATUS_TRANSITIONS is on.
ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.COOKING, OrderStatus.CANCELLED},
    OrderStatus.COOKING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.SERVED, OrderStatus.CANCELLED},
    OrderStatus.SERVED: {OrderStatus.WAITING_PAYMENT, OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.WAITING_PAYMENT: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: set(),
    OrderStatus.CANCELLED: set(),
}

TABLE_REQUEST_STATUSES = {
    TableStatus.OCCUPIED,
    TableStatus.NEEDS_ASSISTANCE,
    TableStatus.NEEDS_BILL,
}

MAX_ORDER_LINES = 50
ACCESS_LOG_SIZE = 10
RECENT_ATTEMPT_WINDOW_MS = 2 * 60 * 1000

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500
