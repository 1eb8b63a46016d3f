"""
Input validation utilities.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .constants import MAX_ORDER_LINES, OrderStatus


class ValidationError(Exception):
    """Raised when validation fails."""

    pass


def validate_table_id(table_id) -> int:
    """Table numbers are small positive integers printed on the QR code."""
    try:
        value = int(table_id)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid table number: {table_id!r}")
    if value < 1:
        raise ValidationError("Table number must be a positive integer")
    return value


def validate_order_status(status: str | None) -> OrderStatus:
    try:
        return OrderStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid order status: {status!r}. Expected one of: {allowed}")


def to_money(value) -> Decimal:
    """Coerce a cart amount into a two-decimal Decimal."""
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Invalid amount: {value!r}")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount.quantize(Decimal("0.01"))


def validate_cart(items: list[dict]) -> list[dict]:
    """
    Validate cart lines and normalize them to
    ``{"menu_item_id", "quantity", "price", "modifiers"}``.
    """
    if not items:
        raise ValidationError("The order must contain at least one item")
    if len(items) > MAX_ORDER_LINES:
        raise ValidationError(f"The order cannot contain more than {MAX_ORDER_LINES} items")

    normalized = []
    for line in items:
        menu_item_id = line.get("menu_item_id", line.get("id"))
        quantity = line.get("quantity", line.get("qty"))
        try:
            menu_item_id = int(menu_item_id)
            quantity = int(quantity)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid cart line: {line!r}")
        if quantity < 1:
            raise ValidationError("Item quantity must be at least 1")
        normalized.append(
            {
                "menu_item_id": menu_item_id,
                "quantity": quantity,
                "price": to_money(line.get("price")),
                "modifiers": line.get("modifiers") or {},
            }
        )
    return normalized
