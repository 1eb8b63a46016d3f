"""
Centralized error handlers for the tableflow Flask applications.

Both apps are JSON APIs, so every handler answers with the uniform
``error_response`` payload.
"""

from http import HTTPStatus

from flask import Flask, jsonify
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from tableflow.error_catalog import INVALID_PAYLOAD, SYSTEM_ERROR
from tableflow.logging_config import get_logger
from tableflow.serializers import error_response
from tableflow.validation import ValidationError

logger = get_logger(__name__)


def register_error_handlers(app: Flask) -> None:
    """
    Register centralized error handlers for the Flask app.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        logger.warning(f"Validation error: {e}")
        return jsonify(error_response(str(e), INVALID_PAYLOAD)), HTTPStatus.BAD_REQUEST

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_validation_error(e: PydanticValidationError):
        logger.warning(f"Pydantic validation error: {e}")
        details = e.errors(include_url=False, include_context=False, include_input=False)
        return (
            jsonify(error_response("Invalid request data", INVALID_PAYLOAD, {"details": details})),
            HTTPStatus.BAD_REQUEST,
        )

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e: SQLAlchemyError):
        logger.error(f"Database error: {e}", exc_info=True)
        return (
            jsonify(error_response("Database error", SYSTEM_ERROR)),
            HTTPStatus.INTERNAL_SERVER_ERROR,
        )

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        """Handle HTTP exceptions from Werkzeug."""
        logger.warning(f"HTTP exception {e.code}: {e.description}")
        return jsonify(error_response(e.description or str(e))), e.code

    @app.errorhandler(Exception)
    def handle_generic_exception(e: Exception):
        """Handle any unhandled exceptions."""
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return (
            jsonify(error_response("Internal server error", SYSTEM_ERROR)),
            HTTPStatus.INTERNAL_SERVER_ERROR,
        )

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify(error_response("Resource not found")), HTTPStatus.NOT_FOUND

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify(error_response("Method not allowed")), HTTPStatus.METHOD_NOT_ALLOWED
