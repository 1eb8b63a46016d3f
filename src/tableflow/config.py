"""
Utilities to centralize configuration handling across the tableflow services.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class AppConfig:
    """Simple container for application level settings."""

    app_name: str
    # PostgreSQL database
    db_host: str
    db_port: int
    db_user: str
    db_password: str
    db_name: str
    db_sslmode: str
    database_url: str
    # App settings
    secret_key: str
    jwt_secret_key: str
    log_level: str
    debug_mode: bool
    flask_debug: bool
    cors_allowed_origins: list[str]
    # Order engine settings
    table_access_ttl_minutes: int
    strict_status_transitions: bool
    incomplete_order_max_age_minutes: int

    @property
    def sqlalchemy_uri(self) -> str:
        """
        Build a SQLAlchemy URI.

        An explicit DATABASE_URL wins; otherwise a PostgreSQL URI using psycopg2
        is assembled from the POSTGRES_* settings.
        """
        if self.database_url:
            return self.database_url
        ssl_arg = f"?sslmode={self.db_sslmode}" if self.db_sslmode else ""
        return (
            f"postgresql+psycopg2://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}{ssl_arg}"
        )


def _read_env(name: str, default: str | None = None) -> str:
    """
    Internal helper to fetch environment variables with support for defaults.
    """
    value = os.getenv(name)
    if value is None:
        if default is None:
            raise RuntimeError(f"Missing required environment variable '{name}'")
        value = default
    return value


def read_bool(name: str, default: str = "false") -> bool:
    value = _read_env(name, default)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_list(name: str) -> list[str]:
    raw = _read_env(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def validate_required_env_vars(skip_in_debug: bool = False) -> None:
    """
    Validate that all required environment variables are set.

    Fails fast during startup rather than encountering errors on the first
    request.

    Args:
        skip_in_debug: If True, skip validation when DEBUG_MODE=true

    Raises:
        RuntimeError: If any required variable is missing or has an invalid value
    """
    if skip_in_debug and read_bool("DEBUG_MODE", "false"):
        return

    errors = []

    secret_key = os.getenv("SECRET_KEY", "")
    if not secret_key or secret_key in {"change-me-please", "super-secret-change-me"}:
        errors.append(
            "SECRET_KEY must be configured with a secure random value. "
            'Generate with: python3 -c "import secrets; print(secrets.token_urlsafe(32))"'
        )

    if not os.getenv("DATABASE_URL"):
        for name in ("POSTGRES_HOST", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB"):
            if not os.getenv(name):
                errors.append(f"{name} must be configured (or set DATABASE_URL)")

    ttl = os.getenv("TABLE_ACCESS_TTL_MINUTES", "")
    if ttl:
        try:
            if int(ttl) < 1:
                errors.append("TABLE_ACCESS_TTL_MINUTES must be a positive integer")
        except ValueError:
            errors.append(f"TABLE_ACCESS_TTL_MINUTES must be a valid integer, got: {ttl}")

    if errors:
        error_msg = "\nConfiguration Errors - Missing or invalid environment variables:\n"
        for error in errors:
            error_msg += f"  - {error}\n"
        raise RuntimeError(error_msg)


def load_config(app_name: str) -> AppConfig:
    """
    Produce an AppConfig instance populated from environment variables.

    Each app passes its desired `app_name` to keep logs easy to tell apart
    while still reusing the same config loader.
    """
    secret_key = _read_env("SECRET_KEY", "super-secret-change-me")
    return AppConfig(
        app_name=app_name,
        db_host=_read_env("POSTGRES_HOST", "tableflow-postgres"),
        db_port=int(_read_env("POSTGRES_PORT", "5432")),
        db_user=_read_env("POSTGRES_USER", "tableflow"),
        db_password=_read_env("POSTGRES_PASSWORD", "tableflow"),
        db_name=_read_env("POSTGRES_DB", "tableflow"),
        db_sslmode=_read_env("POSTGRES_SSLMODE", "disable"),
        database_url=_read_env("DATABASE_URL", ""),
        secret_key=secret_key,
        jwt_secret_key=_read_env("JWT_SECRET_KEY", secret_key),
        log_level=_read_env("LOG_LEVEL", "INFO"),
        debug_mode=read_bool("DEBUG_MODE", "false"),
        flask_debug=read_bool("FLASK_DEBUG", "false"),
        cors_allowed_origins=_read_list("CORS_ALLOWED_ORIGINS"),
        table_access_ttl_minutes=int(_read_env("TABLE_ACCESS_TTL_MINUTES", "10")),
        strict_status_transitions=read_bool("STRICT_STATUS_TRANSITIONS", "false"),
        incomplete_order_max_age_minutes=int(
            _read_env("INCOMPLETE_ORDER_MAX_AGE_MINUTES", "30")
        ),
    )
