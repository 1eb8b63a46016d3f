"""
Table endpoints for the customer API: QR access and service requests.
"""

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify

from customer_app.utils.customer_session import load_device_session, save_device_session
from tableflow.constants import TableStatus
from tableflow.serializers import error_response, redirect_response, success_response
from tableflow.services.access_validator import AccessOutcome, validate_table_access
from tableflow.services.table_service import set_table_request
from tableflow.validation import ValidationError, validate_table_id

tables_bp = Blueprint("client_tables", __name__)


@tables_bp.get("/tables/<int:table_id>/access")
def record_access(table_id: int):
    """
    Called when the menu for a table is opened through its QR code.
    """
    try:
        table_id = validate_table_id(table_id)
    except ValidationError as e:
        return jsonify(error_response(str(e))), HTTPStatus.BAD_REQUEST

    device = load_device_session()
    record = device.record_table_access(table_id)
    save_device_session(device)

    return jsonify(
        success_response(
            {
                "table_id": table_id,
                "fingerprint": device.fingerprint,
                "accessed_at": record.timestamp,
                "original_table_id": device.original_table_id,
            }
        )
    ), HTTPStatus.OK


def _table_request(table_id: int, status: TableStatus):
    device = load_device_session()
    decision = validate_table_access(
        table_id,
        device.to_validation_data(table_id),
        ttl_minutes=current_app.config["TABLE_ACCESS_TTL_MINUTES"],
    )
    if not decision.allowed:
        if decision.outcome == AccessOutcome.REDIRECT:
            return jsonify(redirect_response(decision.redirect_table_id)), HTTPStatus.SEE_OTHER
        return jsonify(error_response(decision.reason, decision.code)), HTTPStatus.FORBIDDEN

    response, code = set_table_request(table_id, status)
    return jsonify(response), code


@tables_bp.post("/tables/<int:table_id>/assistance")
def call_waiter(table_id: int):
    return _table_request(table_id, TableStatus.NEEDS_ASSISTANCE)


@tables_bp.post("/tables/<int:table_id>/bill")
def request_bill(table_id: int):
    return _table_request(table_id, TableStatus.NEEDS_BILL)
