"""
Waiter table assignments.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from tableflow.constants import Roles
from tableflow.jwt_middleware import get_current_actor, role_required
from tableflow.serializers import success_response
from tableflow.services.waiter_assignment_service import (
    assign_table,
    list_available_tables,
    list_waiter_tables,
    unassign_table,
)

assignments_bp = Blueprint("assignments", __name__)


def _target_waiter_id() -> str:
    """Admins may act for another waiter via ``waiter_id``; waiters act for themselves."""
    actor = get_current_actor()
    if actor.is_admin:
        data = request.get_json(silent=True) or {}
        waiter_id = data.get("waiter_id") or request.args.get("waiter_id")
        if waiter_id:
            return str(waiter_id)
    return actor.actor_id


@assignments_bp.post("/tables/<int:table_id>/assignment")
@role_required(Roles.WAITER)
def post_assign_table(table_id: int):
    response, status = assign_table(_target_waiter_id(), table_id)
    return jsonify(response), status


@assignments_bp.delete("/tables/<int:table_id>/assignment")
@role_required(Roles.WAITER)
def delete_assign_table(table_id: int):
    actor = get_current_actor()
    response, status = unassign_table(_target_waiter_id(), table_id, force=actor.is_admin)
    return jsonify(response), status


@assignments_bp.get("/waiters/me/tables")
@role_required(Roles.WAITER)
def get_my_tables():
    actor = get_current_actor()
    return jsonify(success_response(list_waiter_tables(actor.actor_id))), HTTPStatus.OK


@assignments_bp.get("/tables/available")
@role_required(Roles.WAITER)
def get_available_tables():
    """Tables with an active order and nobody looking after them."""
    return jsonify(success_response(list_available_tables())), HTTPStatus.OK
