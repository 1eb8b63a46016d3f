"""
JWT middleware for Flask.

Staff tokens are issued by the external identity provider; this module only
verifies them and exposes ``{actor_id, role}`` to the request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import jwt
from flask import current_app, g, jsonify, request

from .constants import Roles
from .error_catalog import AUTH_REQUIRED, ROLE_FORBIDDEN
from .serializers import error_response

if TYPE_CHECKING:
    from flask import Flask

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Actor:
    """The authenticated staff member behind a request."""

    actor_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return Roles.is_admin(self.role)


def _extract_role(payload: dict[str, Any]) -> str | None:
    role = payload.get("app_role")
    if not role:
        role = (payload.get("app_metadata") or {}).get("role")
    if not role:
        role = payload.get("role")
    return role if role in Roles.all_values() else None


def decode_actor(token: str, secret: str) -> Actor | None:
    """
    Decode a bearer token into an Actor.

    Returns None for tokens that verify but carry no usable subject or role.
    Raises ``jwt.InvalidTokenError`` (incl. expiry) for bad tokens.
    """
    payload = jwt.decode(
        token,
        secret,
        algorithms=[JWT_ALGORITHM],
        options={"verify_aud": False},
    )
    actor_id = payload.get("sub")
    role = _extract_role(payload)
    if not actor_id or not role:
        return None
    return Actor(actor_id=str(actor_id), role=role)


def _extract_token() -> str | None:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get("access_token")


def init_jwt_middleware(app: Flask) -> None:
    """
    Load the actor for every request into ``g.current_actor`` (None when the
    request is anonymous or the token is invalid).
    """

    @app.before_request
    def load_jwt_actor():
        g.current_actor = None

        token = _extract_token()
        if not token:
            return

        try:
            g.current_actor = decode_actor(token, current_app.config["JWT_SECRET_KEY"])
        except jwt.ExpiredSignatureError:
            logger.debug(f"Expired token on {request.path}")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token on {request.path}: {e}")


def get_current_actor() -> Actor | None:
    return getattr(g, "current_actor", None)


def jwt_required(f):
    """Decorator to require a valid staff token. Returns 401 otherwise."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not get_current_actor():
            return jsonify(
                error_response("Authentication required", AUTH_REQUIRED)
            ), HTTPStatus.UNAUTHORIZED
        return f(*args, **kwargs)

    return decorated_function


def role_required(required_roles: str | list[str]):
    """
    Decorator factory to require specific role(s). Admins always pass.
    """
    if isinstance(required_roles, str):
        required_roles = [required_roles]
    allowed = {getattr(role, "value", role) for role in required_roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = get_current_actor()
            if not actor:
                return jsonify(
                    error_response("Authentication required", AUTH_REQUIRED)
                ), HTTPStatus.UNAUTHORIZED

            if actor.is_admin or actor.role in allowed:
                return f(*args, **kwargs)

            roles_str = ", ".join(sorted(allowed))
            return jsonify(
                error_response(f"One of these roles is required: {roles_str}", ROLE_FORBIDDEN)
            ), HTTPStatus.FORBIDDEN

        return decorated_function

    return decorator
