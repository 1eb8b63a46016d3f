"""
Audit log viewer for admins.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from tableflow.audit import list_audit_logs
from tableflow.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Roles
from tableflow.jwt_middleware import role_required
from tableflow.serializers import success_response

audit_logs_bp = Blueprint("audit_logs", __name__)


@audit_logs_bp.get("/audit-logs")
@role_required(Roles.ADMIN)
def get_audit_logs():
    limit = request.args.get("limit", DEFAULT_PAGE_SIZE, type=int)
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    entity_type = request.args.get("entity_type") or None
    entries = list_audit_logs(limit=limit, entity_type=entity_type)
    return jsonify(success_response(entries)), HTTPStatus.OK
