"""
Audit trail for state-mutating actions.

Two channels:
- ``init_audit_middleware`` logs one line per HTTP request.
- ``record_audit`` appends an ``AuditLog`` row for a business action.

Both follow the line format USER|ACTION|TYPE|CODE|RETVAL|SESSION|TIME and are
best-effort: a failure here is logged and never reaches the caller.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from flask import Flask, Response, g, has_request_context, request
from sqlalchemy import select

from .db import get_session
from .models import AuditLog
from .serializers import serialize_audit_log

logger = logging.getLogger("audit")


def _request_actor() -> str:
    actor = getattr(g, "current_actor", None)
    return actor.actor_id if actor else "ANONYMOUS"


def _request_trace_id() -> str:
    trace_id = request.headers.get("X-Request-ID") or "NO_SESSION"
    return trace_id[:8] + "..." if len(trace_id) > 20 else trace_id


def init_audit_middleware(app: Flask) -> None:
    """Register request timing and the per-request audit line."""

    @app.before_request
    def start_timer():
        g.start_time = time.time()

    @app.after_request
    def log_request(response: Response):
        try:
            duration = 0
            if hasattr(g, "start_time"):
                duration = int((time.time() - g.start_time) * 1000)

            status_code = response.status_code
            content_length = 0 if response.direct_passthrough else (response.content_length or 0)
            log_line = (
                f"{_request_actor()}|{request.method} {request.path}|RESPONSE|{status_code}|"
                f"{content_length} bytes|{_request_trace_id()}|{duration}ms"
            )

            if status_code >= 500:
                logger.error(log_line)
            elif status_code >= 400:
                logger.warning(log_line)
            else:
                logger.info(log_line)
        except Exception as e:
            logger.error(f"SYSTEM|AUDIT_FAIL|ERROR|500|{e!s}|UNKNOWN|0ms")

        return response


def record_audit(
    action: str,
    entity_type: str,
    entity_id: Any,
    changes: dict[str, Any] | None = None,
    actor_id: str | None = None,
) -> None:
    """
    Append an audit entry. ``actor_id=None`` means the system acted.

    Must be called after the primary transaction has committed: it opens its
    own session and swallows every error.
    """
    ip_address = None
    user_agent = None
    session_trace_id = "BACKGROUND"
    if has_request_context():
        ip_address = request.headers.get("X-Forwarded-For", request.remote_addr or "")
        ip_address = ip_address.split(",")[0].strip()[:45] or None
        user_agent = request.headers.get("User-Agent")
        session_trace_id = _request_trace_id()

    try:
        with get_session() as session:
            session.add(
                AuditLog(
                    actor_id=actor_id,
                    action=action,
                    entity_type=entity_type,
                    entity_id=str(entity_id),
                    changes=changes or {},
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
            )
        logger.info(
            f"{actor_id or 'SYSTEM'}|{action}|INTERNAL|OK|{entity_type}:{entity_id}|"
            f"{session_trace_id}|0ms"
        )
    except Exception as e:
        logger.error(f"{actor_id or 'SYSTEM'}|{action}|INTERNAL|FAIL|{e!s}|{session_trace_id}|0ms")


def list_audit_logs(limit: int = 500, entity_type: str | None = None) -> list[dict[str, Any]]:
    """Most recent entries first, for the back-office viewer."""
    with get_session() as session:
        stmt = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        if entity_type:
            stmt = stmt.where(AuditLog.entity_type == entity_type)
        entries = session.execute(stmt.limit(limit)).scalars().all()
        return [serialize_audit_log(entry) for entry in entries]
