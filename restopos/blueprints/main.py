"""Main blueprint with the health check endpoint."""
from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from restopos.database import get_session
from restopos.tenant_db import get_tenant_stores

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """
    Health check endpoint that validates the directory database connection.

    Returns:
        200: Healthy (directory reachable)
        500: Unhealthy (directory error)
    """
    try:
        row = get_session().execute(text("SELECT 1 AS health_check")).fetchone()
    except SQLAlchemyError as e:
        current_app.logger.error(f"Health check failed: {e}")
        return jsonify({
            'status': 'unhealthy',
            'database': 'disconnected',
            'error': str(e),
        }), 500

    if not row or row[0] != 1:
        return jsonify({'status': 'unhealthy', 'database': 'error'}), 500

    return jsonify({
        'status': 'healthy',
        'database': 'connected',
        'tenant_stores_open': len(get_tenant_stores()),
    }), 200
