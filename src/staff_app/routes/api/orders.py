"""
Orders API - order workflow for staff consoles.
"""

from flask import Blueprint, current_app, jsonify, request

from tableflow.constants import Roles
from tableflow.jwt_middleware import get_current_actor, jwt_required, role_required
from tableflow.schemas import CreateOrderRequest, UpdateStatusRequest, VoidItemRequest
from tableflow.services.order_service import (
    create_order,
    get_active_order,
    get_order,
    list_kitchen_orders,
    update_status,
    void_order_item,
)

# Create blueprint without url_prefix (inherited from parent)
orders_bp = Blueprint("orders", __name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@orders_bp.post("/tables/<int:table_id>/orders")
@role_required([Roles.CASHIER, Roles.WAITER])
def post_create_order(table_id: int):
    """
    Open an order for a table on behalf of a customer.

    Staff requests skip the QR access checks, so any validationData in the
    body is ignored.
    """
    payload = CreateOrderRequest.model_validate(request.get_json(silent=True) or {})
    response, status = create_order(
        table_id, payload.cart_lines(), payload.total, actor=get_current_actor()
    )
    return jsonify(response), status


@orders_bp.get("/tables/<int:table_id>/order")
@jwt_required
def get_table_order(table_id: int):
    include_voided = request.args.get("include_voided", "true").lower() in {"1", "true", "yes"}
    response, status = get_active_order(table_id, include_voided=include_voided)
    return jsonify(response), status


@orders_bp.get("/orders/<order_id>")
@jwt_required
def get_order_detail(order_id: str):
    response, status = get_order(order_id)
    return jsonify(response), status


@orders_bp.post("/orders/<order_id>/status")
@role_required([Roles.CASHIER, Roles.WAITER, Roles.KITCHEN])
def post_order_status(order_id: str):
    """
    Move an order through its lifecycle.

    Body:
        {"status": "cooking" | "ready" | "served" | "waiting_payment" | "paid" | "cancelled"}
    """
    payload = UpdateStatusRequest.model_validate(request.get_json(silent=True) or {})
    response, status = update_status(
        order_id,
        payload.status,
        actor=get_current_actor(),
        strict=current_app.config.get("STRICT_STATUS_TRANSITIONS", False),
    )
    return jsonify(response), status


@orders_bp.post("/order-items/<int:item_id>/void")
@jwt_required
def post_void_item(item_id: int):
    """
    Void a single order line. Role rules are enforced by the service.
    """
    payload = VoidItemRequest.model_validate(request.get_json(silent=True) or {})
    response, status = void_order_item(item_id, payload.reason, get_current_actor())
    return jsonify(response), status


@orders_bp.get("/kitchen/orders")
@role_required([Roles.KITCHEN, Roles.WAITER, Roles.CASHIER])
def get_kitchen_orders():
    """Kitchen display queue."""
    response, status = list_kitchen_orders()
    return jsonify(response), status, NO_CACHE_HEADERS
