"""
Error Handlers

FLOW OVERVIEW
- register_error_handlers(app)
  • JSON bodies for 404/405/413/429 and unhandled 500s (session rolled back).
  • IntegrityError → 400 'A record with this information already exists'.
  • PyJWT ExpiredSignatureError / InvalidTokenError → 401.
"""

import logging

import jwt
from flask import jsonify, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .api_utils import server_error_response

logger = logging.getLogger(__name__)


def json_error(message, status_code):
    return jsonify({'success': False, 'message': message}), status_code


def register_error_handlers(app):
    """Register error handlers with the Flask app"""

    @app.errorhandler(404)
    def not_found(error):
        return json_error(f'Not Found - {request.path}', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return json_error(f'Method {request.method} not allowed on {request.path}', 405)

    @app.errorhandler(413)
    def payload_too_large(error):
        return json_error('Request body too large', 413)

    @app.errorhandler(IntegrityError)
    def integrity_error(error):
        from ..models import db
        db.session.rollback()
        logger.warning(f"Integrity error on {request.path}: {error.orig}")
        return json_error('A record with this information already exists', 400)

    @app.errorhandler(jwt.ExpiredSignatureError)
    def expired_token(error):
        return json_error('Your session has expired, please log in again', 401)

    @app.errorhandler(jwt.InvalidTokenError)
    def invalid_token(error):
        return json_error('Invalid token, please log in again', 401)

    @app.errorhandler(HTTPException)
    def http_error(error):
        return json_error(error.description or error.name, error.code)

    @app.errorhandler(500)
    def internal_error(error):
        from ..models import db
        db.session.rollback()
        original = getattr(error, 'original_exception', None) or error
        logger.error(f"Unhandled error on {request.method} {request.path}: {original}")
        return server_error_response(original)
