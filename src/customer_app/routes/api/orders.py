"""
Orders endpoints for the customer API.
"""

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request

from customer_app.utils.customer_session import load_device_session, save_device_session
from tableflow.device_session import TableAccessValidation
from tableflow.schemas import CreateOrderRequest
from tableflow.services.order_service import (
    create_order,
    get_active_order,
    get_order_receipt,
)

orders_bp = Blueprint("client_orders", __name__)


@orders_bp.post("/tables/<int:table_id>/orders")
def create_order_endpoint(table_id: int):
    """
    Create an order from the cart sent by the menu view.

    The device hints come from ``validationData`` when the client sends them,
    otherwise from the device session. A table lock held in the session still
    applies when the body leaves ``originalTableId`` out. Customer orders are
    always checked.
    """
    payload = CreateOrderRequest.model_validate(request.get_json(silent=True) or {})
    device = load_device_session()

    if payload.validation is not None:
        validation = TableAccessValidation(
            fingerprint=payload.validation.device_fingerprint or device.fingerprint,
            table_access_timestamp=payload.validation.table_access_timestamp,
            original_table_id=payload.validation.original_table_id or device.original_table_id,
        )
    else:
        validation = device.to_validation_data(table_id)

    response, status = create_order(
        table_id,
        payload.cart_lines(),
        payload.total,
        validation=validation,
        access_ttl_minutes=current_app.config["TABLE_ACCESS_TTL_MINUTES"],
    )

    if status == HTTPStatus.CREATED:
        device.lock_to_table(table_id)
        save_device_session(device)

    return jsonify(response), status


@orders_bp.get("/tables/<int:table_id>/order")
def get_table_order(table_id: int):
    """Active order for the table, without voided lines."""
    response, status = get_active_order(table_id, include_voided=False)
    return jsonify(response), status


@orders_bp.get("/orders/<order_id>/receipt")
def get_receipt(order_id: str):
    response, status = get_order_receipt(order_id)
    return jsonify(response), status
