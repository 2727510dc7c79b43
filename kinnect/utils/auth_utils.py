"""
Authentication Utilities

FLOW OVERVIEW
- hash_password / verify_password
  • bcrypt hashing of user passwords.
- generate_jwt_token(user_id) / verify_jwt_token(token)
  • HS256 bearer tokens signed with JWT_SECRET, payload {'id': user_id}.
- authenticate_user(email, password)
  • Credential check used by login and account deletion.
- protect
  • Route decorator: requires 'Authorization: Bearer <token>' and sets g.current_user.
"""

import logging
from datetime import datetime, timedelta
from functools import wraps

import bcrypt
import jwt
from flask import current_app, g, jsonify, request

from ..models import db, User

logger = logging.getLogger(__name__)


def hash_password(password):
    """Hash a password using bcrypt"""
    salt = bcrypt.gensalt(rounds=current_app.config.get('BCRYPT_ROUNDS', 12))
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password, password_hash):
    """Verify a password against its hash"""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def generate_jwt_token(user_id, expires_in=None):
    """Generate a JWT token for user authentication"""
    if expires_in is None:
        expires_in = current_app.config.get('JWT_EXPIRES_IN', 30 * 24 * 3600)
    now = datetime.utcnow()
    payload = {
        'id': user_id,
        'exp': now + timedelta(seconds=expires_in),
        'iat': now,
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm='HS256')


def verify_jwt_token(token):
    """
    Verify and decode a JWT token.

    Raises:
        jwt.ExpiredSignatureError, jwt.InvalidTokenError
    """
    return jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=['HS256'])


def authenticate_user(email, password):
    """Authenticate user with email and password"""
    if not email or not password:
        return None
    user = User.query.filter_by(email=email.strip().lower()).first()
    if user and verify_password(password, user.password_hash):
        return user
    return None


def _unauthorized(message):
    return jsonify({'success': False, 'message': message}), 401


def protect(f):
    """Decorator to require a valid bearer token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = (request.headers.get('Authorization') or '').strip()
        if not auth_header.lower().startswith('bearer '):
            return _unauthorized('Not authorized, no token')

        token = auth_header.split(' ', 1)[1].strip()
        if not token:
            return _unauthorized('Not authorized, no token')

        try:
            payload = verify_jwt_token(token)
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected bearer token: {e}")
            return _unauthorized('Not authorized, token failed')

        user = db.session.get(User, payload.get('id')) if payload.get('id') else None
        if not user:
            return _unauthorized('Not authorized, token failed')

        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function
