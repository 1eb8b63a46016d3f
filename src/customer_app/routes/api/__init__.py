"""
Customer API blueprints.
"""

from flask import Blueprint

api_bp = Blueprint("api", __name__)

from .orders import orders_bp
from .tables import tables_bp

api_bp.register_blueprint(tables_bp)
api_bp.register_blueprint(orders_bp)
