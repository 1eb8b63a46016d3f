"""
Factory for the customer-facing Flask application (QR table ordering).

Customers are anonymous; their device state lives in the signed cookie
session.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from tableflow.audit import init_audit_middleware
from tableflow.config import load_config, validate_required_env_vars
from tableflow.db import init_db, init_engine
from tableflow.error_handlers import register_error_handlers
from tableflow.logging_config import configure_logging
from tableflow.models import Base


def create_app() -> Flask:
    """
    Build and configure the Flask app for customers.
    """
    # Validate all required environment variables (fail-fast)
    validate_required_env_vars(skip_in_debug=False)

    app = Flask(__name__)
    config = load_config("tableflow-customers")

    configure_logging(config.app_name, config.log_level)

    # Initialize database engine first (before any DB queries)
    init_engine(config)
    init_db(Base.metadata)

    app.config["SECRET_KEY"] = config.secret_key
    app.config["APP_NAME"] = config.app_name
    app.config["DEBUG_MODE"] = config.debug_mode
    app.config["DEBUG"] = config.flask_debug
    app.config["TABLE_ACCESS_TTL_MINUTES"] = config.table_access_ttl_minutes
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(days=1)

    init_audit_middleware(app)
    register_error_handlers(app)

    num_proxies = int(os.getenv("NUM_PROXIES", "0"))
    if num_proxies > 0:
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=num_proxies,
            x_proto=num_proxies,
            x_host=num_proxies,
            x_port=num_proxies,
        )

    from customer_app.routes.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    allowed_origins = config.cors_allowed_origins
    if config.debug_mode or not allowed_origins:
        allowed_origins = [
            "http://localhost:6080",
            "http://127.0.0.1:6080",
        ]
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

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "6080")))
