"""
Serializers for consistent API responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from .models import AuditLog, Order, OrderItem, RestaurantTable, WaiterAssignment


def _safe_float(value) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_table(table: RestaurantTable, current_order: Order | None = None) -> dict[str, Any]:
    data = {
        "id": table.id,
        "status": table.status,
        "current_order_id": table.current_order_id,
        "updated_at": _iso(table.updated_at),
    }
    if current_order is not None:
        data["order"] = {
            "id": current_order.id,
            "status": current_order.status,
            "total_price": _safe_float(current_order.total_price),
            "created_at": _iso(current_order.created_at),
        }
    return data


def serialize_order_item(item: OrderItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "order_id": item.order_id,
        "menu_item_id": item.menu_item_id,
        "quantity": item.quantity,
        "price_at_time": _safe_float(item.price_at_time),
        "line_total": _safe_float(item.line_total),
        "modifiers": item.modifiers or {},
        "voided": item.is_voided,
        "voided_at": _iso(item.voided_at),
        "voided_by": item.voided_by,
        "void_reason": item.void_reason,
    }


def serialize_order(
    order: Order,
    items: list[OrderItem] | None = None,
    include_voided: bool = True,
) -> dict[str, Any]:
    """
    Serialize an order. ``items`` overrides the relationship so callers that
    fetched items separately (or failed to) control what is rendered.
    """
    if items is None:
        items = list(order.items)
    if not include_voided:
        items = [item for item in items if not item.is_voided]

    return {
        "id": order.id,
        "table_id": order.table_id,
        "status": order.status,
        "is_active": order.is_active,
        "total_price": _safe_float(order.total_price),
        "created_by": order.created_by,
        "paid_by": order.paid_by,
        "timestamps": {
            "started": _iso(order.started_at),
            "kitchen_received": _iso(order.kitchen_received_at),
            "ready": _iso(order.ready_at),
            "served": _iso(order.served_at),
            "paid": _iso(order.paid_at),
            "completed": _iso(order.completed_at),
        },
        "created_at": _iso(order.created_at),
        "updated_at": _iso(order.updated_at),
        "items": [serialize_order_item(item) for item in items],
    }


def serialize_assignment(assignment: WaiterAssignment) -> dict[str, Any]:
    return {
        "id": assignment.id,
        "waiter_id": assignment.waiter_id,
        "table_id": assignment.table_id,
        "assigned_at": _iso(assignment.assigned_at),
        "unassigned_at": _iso(assignment.unassigned_at),
    }


def serialize_audit_log(entry: AuditLog) -> dict[str, Any]:
    return {
        "id": entry.id,
        "actor_id": entry.actor_id,
        "action": entry.action,
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "changes": entry.changes or {},
        "ip_address": entry.ip_address,
        "user_agent": entry.user_agent,
        "created_at": _iso(entry.created_at),
    }


def success_response(data: Any, message: str | None = None) -> dict[str, Any]:
    """Create a standardized success response."""
    response = {"success": True, "status": "success", "data": data, "error": None}
    if message:
        response["message"] = message
    return response


def error_response(
    error: str, code: str | None = None, details: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Create a standardized error response."""
    response = {"success": False, "status": "error", "data": None, "error": error}
    if code:
        response["code"] = code
    if details:
        response["details"] = details
    return response


def redirect_response(table_id: int) -> dict[str, Any]:
    """
    Silent redirect to the table the device is locked to. Carries no error so
    the client navigates instead of alerting.
    """
    return {
        "success": False,
        "status": "redirect",
        "data": None,
        "error": None,
        "redirect_to_table": table_id,
    }
