"""
Factory for the staff-facing Flask API (cashier, waiter, kitchen, admin).

Staff authenticate with bearer JWTs issued by the identity provider.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from tableflow.audit import init_audit_middleware
from tableflow.config import load_config, validate_required_env_vars
from tableflow.db import init_db, init_engine
from tableflow.error_handlers import register_error_handlers
from tableflow.jwt_middleware import init_jwt_middleware
from tableflow.logging_config import configure_logging
from tableflow.models import Base

logger = logging.getLogger(__name__)

DEV_ORIGINS = [
    "http://localhost:6081",
    "http://127.0.0.1:6081",
]


def create_app() -> Flask:
    """
    Build the Flask application that powers the staff consoles.
    """
    app = Flask(__name__)

    init_audit_middleware(app)

    # Validate all required environment variables (fail-fast)
    validate_required_env_vars(skip_in_debug=False)

    config = load_config("tableflow-staff")

    configure_logging(config.app_name, config.log_level)

    # Initialize database engine first (before any DB queries)
    init_engine(config)
    init_db(Base.metadata)

    app.config["SECRET_KEY"] = config.secret_key
    app.config["JWT_SECRET_KEY"] = config.jwt_secret_key
    app.config["APP_NAME"] = config.app_name
    app.config["DEBUG_MODE"] = config.debug_mode
    app.config["DEBUG"] = config.flask_debug
    app.config["STRICT_STATUS_TRANSITIONS"] = config.strict_status_transitions

    init_jwt_middleware(app)
    register_error_handlers(app)

    # ProxyFix: Trust X-Forwarded-* headers from reverse proxy
    num_proxies = int(os.getenv("NUM_PROXIES", "0"))
    if num_proxies > 0:
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=num_proxies,
            x_proto=num_proxies,
            x_host=num_proxies,
            x_port=num_proxies,
        )

    from staff_app.routes.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    allowed_origins = config.cors_allowed_origins
    if config.debug_mode or not allowed_origins:
        allowed_origins = DEV_ORIGINS
    CORS(
        app,
        resources={r"/api/*": {"origins": allowed_origins, "supports_credentials": True}},
        supports_credentials=True,
    )

    @app.get("/health")
    def health():
        return jsonify(
            {
                "status": "ok",
                "app": config.app_name,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    logger.info("Staff API ready (strict transitions: %s)", config.strict_status_transitions)
    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "6081")))
