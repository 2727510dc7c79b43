"""
User Routes

FLOW OVERVIEW
- /api/users/register [POST]
  • Validate body → reject duplicate email → create user → return profile + token.
- /api/users/login [POST]
  • Verify credentials → stamp last_login → return profile + token.
- /api/users/profile [GET, PUT, DELETE]
  • Bearer auth. Read / update own profile (new token on update) /
    delete own account after password re-confirmation (full cascade).
- /api/users [GET]
  • Bearer auth; list all users without password hashes.
"""

import logging

from flask import Blueprint, g
from sqlalchemy.exc import IntegrityError

from ..models import db, User
from ..utils.account_deletion import delete_user_account
from ..utils.api_utils import error_response, server_error_response, success_response
from ..utils.auth_utils import (
    authenticate_user, generate_jwt_token, hash_password, protect, verify_password,
)
from ..utils.validators import (
    InputValidator, validate_account_delete, validate_login, validate_profile_update,
    validate_register, validate_with,
)

logger = logging.getLogger(__name__)

users_bp = Blueprint('users', __name__)


def _auth_payload(user):
    return {
        'id': user.id,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'email': user.email,
        'token': generate_jwt_token(user.id),
    }


@users_bp.route('/register', methods=['POST'])
@validate_with(validate_register)
def register():
    """User registration endpoint"""
    data = g.body
    email = data['email'].strip().lower()

    if User.query.filter_by(email=email).first():
        return error_response('User already exists', 400)

    try:
        user = User(
            email=email,
            password_hash=hash_password(data['password']),
            first_name=data['firstName'].strip(),
            last_name=data['lastName'].strip(),
        )
        db.session.add(user)
        db.session.commit()
        logger.info(f"Registered user {user.id}")
        return success_response(201, user=_auth_payload(user))
    except IntegrityError:
        db.session.rollback()
        return error_response('User already exists', 400)
    except Exception as e:
        db.session.rollback()
        logger.exception("Registration failed")
        return server_error_response(e)


@users_bp.route('/login', methods=['POST'])
@validate_with(validate_login)
def login():
    """User login endpoint"""
    data = g.body
    user = authenticate_user(data['email'], data['password'])
    if not user:
        return error_response('Invalid email or password', 401)

    try:
        user.update_last_login()
        db.session.commit()
        return success_response(user=_auth_payload(user))
    except Exception as e:
        db.session.rollback()
        logger.exception("Login failed")
        return server_error_response(e)


@users_bp.route('/profile', methods=['GET'])
@protect
def get_profile():
    return success_response(user=g.current_user.to_dict())


@users_bp.route('/profile', methods=['PUT'])
@protect
@validate_with(validate_profile_update)
def update_profile():
    """Update own profile; returns a fresh token"""
    data = g.body
    user = g.current_user

    if data.get('email'):
        email = InputValidator.validate_email(data['email']).sanitized_value
        if email != user.email and User.query.filter_by(email=email).first():
            return error_response('Email is already in use', 400)
        user.email = email

    try:
        user.first_name = (data.get('firstName') or user.first_name).strip()
        user.last_name = (data.get('lastName') or user.last_name).strip()
        if 'phone' in data:
            user.phone = data['phone']
        if 'address' in data:
            user.address = data['address']
        if 'profileImage' in data:
            user.profile_image = data['profileImage']
        if data.get('dateOfBirth'):
            user.date_of_birth = InputValidator.validate_iso_date(data['dateOfBirth']).sanitized_value.date()
        if data.get('password'):
            user.password_hash = hash_password(data['password'])

        db.session.commit()
        payload = user.to_dict()
        payload['token'] = generate_jwt_token(user.id)
        return success_response(user=payload)
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Profile update failed for {user.id}")
        return server_error_response(e)


@users_bp.route('/profile', methods=['DELETE'])
@protect
@validate_with(validate_account_delete)
def delete_profile():
    """Permanently delete own account after password re-confirmation"""
    user = g.current_user
    if not verify_password(g.body['password'], user.password_hash):
        return error_response('Invalid password', 401)

    try:
        delete_user_account(user)
    except Exception as e:
        # delete_user_account already rolled back and logged
        return server_error_response(e)

    return success_response(message='Your account has been permanently deleted')


@users_bp.route('', methods=['GET'])
@protect
def list_users():
    users = User.query.order_by(User.created_at).all()
    return success_response(count=len(users), users=[user.to_dict() for user in users])
