"""
KINNECT Application Package

FLOW OVERVIEW
- create_app(test_config=None)
  • Build Flask app, apply config (test dict or env-based Config), init extensions (DB, Mail, CORS).
  • before_request: rate limiter and request timer; after_request: Prometheus request metrics.
  • Register blueprints: main (/api, /health, /metrics), users (/api/users), families (/api/families),
    events, posts and media (/api).
  • Register global JSON error handlers and create tables (ORM auto-sync).
"""

import logging
import time

from flask import Flask, g, request
from flask_cors import CORS

from .config import Config
from .models import db
from .routes import events_bp, families_bp, main_bp, media_bp, posts_bp, users_bp
from .utils.api_utils import rate_limiter
from .utils.notifications import mail
from .utils.prom_metrics import observe_request

logger = logging.getLogger(__name__)


def _register_request_hooks(app):
    @app.before_request
    def limit_and_time_request():
        g.request_started = time.perf_counter()
        return rate_limiter.check_request()

    @app.after_request
    def record_request_metrics(response):
        started = getattr(g, 'request_started', None)
        if started is not None:
            endpoint = request.url_rule.rule if request.url_rule else 'unmatched'
            observe_request(endpoint, request.method, response.status_code, time.perf_counter() - started)
        return response


def create_app(test_config=None):
    """Application factory pattern for production deployment"""
    app = Flask(__name__)

    # Configuration
    if test_config:
        # Use test configuration if provided
        app.config.update(test_config)
    else:
        # Use environment-based configuration
        app.config.from_object(Config())

    # Initialize extensions
    db.init_app(app)
    mail.init_app(app)
    CORS(
        app,
        resources={r"/api/*": {"origins": app.config.get('CORS_ORIGINS', '*')}},
        allow_headers=['Content-Type', 'Authorization'],
        methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
    )

    _register_request_hooks(app)

    # Register blueprints
    app.register_blueprint(main_bp)
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(families_bp, url_prefix='/api/families')
    app.register_blueprint(events_bp, url_prefix='/api')
    app.register_blueprint(posts_bp, url_prefix='/api')
    app.register_blueprint(media_bp, url_prefix='/api')

    # Register error handlers
    from .utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    with app.app_context():
        db.create_all()

    logger.info(f"KINNECT app created ({app.config.get('ENV_NAME', 'custom config')})")
    return app
