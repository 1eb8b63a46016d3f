"""
Tables API - cashier floor view and table request flags.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from tableflow.constants import Roles
from tableflow.jwt_middleware import get_current_actor, role_required
from tableflow.schemas import TableStatusRequest
from tableflow.services.table_service import list_tables, set_table_request

tables_bp = Blueprint("tables", __name__)


@tables_bp.get("/tables")
@role_required([Roles.CASHIER, Roles.WAITER])
def get_tables():
    return jsonify(list_tables()), HTTPStatus.OK


@tables_bp.post("/tables/<int:table_id>/status")
@role_required([Roles.CASHIER, Roles.WAITER])
def post_table_status(table_id: int):
    """
    Body:
        {"status": "needs_assistance" | "needs_bill" | "occupied"}
    """
    payload = TableStatusRequest.model_validate(request.get_json(silent=True) or {})
    actor = get_current_actor()
    response, status = set_table_request(
        table_id, payload.status, actor_id=actor.actor_id
    )
    return jsonify(response), status
