"""
Main Routes

FLOW OVERVIEW
- /api [GET]
  • Welcome payload with the API version.
- /api/status [GET]
  • Operational status and environment name.
- /health [GET]
  • JSON health check including a database ping.
- /metrics [GET]
  • Prometheus text exposition.
"""

from datetime import datetime

from flask import Blueprint, Response, current_app, jsonify
from sqlalchemy import text

from ..models import db
from ..utils.prom_metrics import CONTENT_TYPE_LATEST, metrics_latest

API_VERSION = '1.0.0'

main_bp = Blueprint('main', __name__)


@main_bp.route('/api')
def welcome():
    return jsonify({
        'success': True,
        'message': 'Welcome to the KINNECT API',
        'version': API_VERSION,
    })


@main_bp.route('/api/status')
def api_status():
    """API status endpoint"""
    return jsonify({
        'status': 'operational',
        'version': API_VERSION,
        'environment': current_app.config.get('ENV_NAME', 'development'),
    })


@main_bp.route('/health')
def health():
    """Health check endpoint"""
    try:
        db.session.execute(text('SELECT 1'))
        database = 'ok'
    except Exception as e:
        current_app.logger.error(f"Health check database ping failed: {e}")
        database = 'unavailable'
    status = 'healthy' if database == 'ok' else 'degraded'
    return jsonify({
        'status': status,
        'database': database,
        'timestamp': datetime.utcnow().isoformat(),
    }), 200 if status == 'healthy' else 503


@main_bp.route('/metrics')
def metrics():
    """Prometheus metrics endpoint."""
    output = metrics_latest()
    return Response(output, mimetype=CONTENT_TYPE_LATEST)
