"""
Staff API - Modular Blueprint Structure

Each module handles one resource; all of them hang off ``api_bp``.
"""

from flask import Blueprint

# Create main API blueprint
api_bp = Blueprint("api", __name__)

# Import and register sub-blueprints
from .assignments import assignments_bp
from .audit_logs import audit_logs_bp
from .orders import orders_bp
from .tables import tables_bp

api_bp.register_blueprint(orders_bp)
api_bp.register_blueprint(tables_bp)
api_bp.register_blueprint(assignments_bp)
api_bp.register_blueprint(audit_logs_bp)
