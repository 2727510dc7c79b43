"""
Request Body Validation

FLOW OVERVIEW
- InputValidator
  • Field-level checks (email, UUID, URL, ISO-8601 dates, lengths, enums) returning ValidationResult.
- Resource validators (validate_register, validate_family, validate_event, validate_post, ...)
  • Check a whole JSON body and return a list of FieldError; empty list means valid.
- validate_with(validator)
  • Route decorator: parses the JSON body, runs the validator and answers
    400 {success: false, errors: [{field, message}]} on failure. The parsed
    body is available to the handler as g.body.
"""

import re
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

from flask import g, jsonify, request

from ..models import (
    ATTENDEE_STATUSES, EVENT_CATEGORIES, INVITATION_STATUSES, POST_PRIVACY_LEVELS,
    POST_TYPES, REACTIONS, is_valid_uuid,
)

FAMILY_ROLES = ('admin', 'member', 'viewer')
PRIVACY_LEVELS = ('private', 'public', 'friends')
RSVP_STATUSES = tuple(status for status in ATTENDEE_STATUSES if status != 'pending')
INVITATION_RESPONSES = tuple(status for status in INVITATION_STATUSES if status != 'pending')


@dataclass
class ValidationResult:
    """Result of validation operation"""
    is_valid: bool
    error_message: Optional[str] = None
    sanitized_value: Any = None


@dataclass
class FieldError:
    """A single failed field check, serialized into the 400 response"""
    field: str
    message: str

    def to_dict(self):
        return asdict(self)


class InputValidator:
    """Field-level validation helpers"""

    EMAIL_PATTERN = re.compile(
        r'^[a-zA-Z0-9.!#$%&\'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$'
    )

    URL_PATTERN = re.compile(r'^https?://[^\s/$.?#][^\s]*$', re.IGNORECASE)

    @classmethod
    def validate_email(cls, email: str) -> ValidationResult:
        """
        Validate email address

        Args:
            email: Email address to validate

        Returns:
            ValidationResult with validation status and lowercased value
        """
        if not email or not isinstance(email, str):
            return ValidationResult(False, "Please include a valid email")

        email = email.strip()
        if len(email) > 254 or not cls.EMAIL_PATTERN.match(email):
            return ValidationResult(False, "Please include a valid email")

        local_part = email.split('@')[0]
        if local_part.startswith('.') or local_part.endswith('.') or '..' in local_part:
            return ValidationResult(False, "Please include a valid email")

        return ValidationResult(True, sanitized_value=email.lower())

    @classmethod
    def validate_uuid(cls, value: str, label: str = 'ID') -> ValidationResult:
        if not is_valid_uuid(value):
            return ValidationResult(False, f"Invalid {label}")
        return ValidationResult(True, sanitized_value=value)

    @classmethod
    def validate_url(cls, value: str) -> ValidationResult:
        if not isinstance(value, str) or not cls.URL_PATTERN.match(value.strip()):
            return ValidationResult(False, "Must be a valid URL")
        return ValidationResult(True, sanitized_value=value.strip())

    @classmethod
    def validate_iso_date(cls, value: str) -> ValidationResult:
        """
        Parse an ISO-8601 date or datetime.

        Returns:
            ValidationResult whose sanitized_value is a naive UTC datetime
        """
        if not isinstance(value, str) or not value.strip():
            return ValidationResult(False, "Must be a valid ISO 8601 date")
        text = value.strip()
        if text.endswith('Z') or text.endswith('z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return ValidationResult(False, "Must be a valid ISO 8601 date")
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return ValidationResult(True, sanitized_value=parsed)

    @classmethod
    def validate_length(cls, value, min_length=None, max_length=None, label='Value') -> ValidationResult:
        if not isinstance(value, str):
            return ValidationResult(False, f"{label} must be a string")
        stripped = value.strip()
        if min_length is not None and max_length is not None and not (min_length <= len(stripped) <= max_length):
            return ValidationResult(False, f"{label} must be between {min_length} and {max_length} characters")
        if min_length is not None and len(stripped) < min_length:
            return ValidationResult(False, f"{label} must be at least {min_length} characters")
        if max_length is not None and len(stripped) > max_length:
            return ValidationResult(False, f"{label} cannot exceed {max_length} characters")
        return ValidationResult(True, sanitized_value=stripped)

    @classmethod
    def validate_choice(cls, value, choices, label='Value') -> ValidationResult:
        if value not in choices:
            return ValidationResult(False, f"{label} must be one of: {', '.join(choices)}")
        return ValidationResult(True, sanitized_value=value)


class _Collector:
    """Accumulates FieldErrors for one request body"""

    def __init__(self, data: Dict[str, Any]):
        self.data = data
        self.errors: List[FieldError] = []

    def present(self, field):
        return field in self.data and self.data[field] is not None

    def add(self, field, message):
        self.errors.append(FieldError(field, message))

    def require(self, field, message):
        value = self.data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            self.add(field, message)
            return False
        return True

    def check(self, field, result: ValidationResult):
        if not result.is_valid:
            self.add(field, result.error_message)
        return result.is_valid

    def require_string(self, field, message, label):
        if not self.require(field, message):
            return False
        return self.check(field, InputValidator.validate_length(self.data[field], label=label))

    def check_type(self, field, expected, message):
        if self.present(field) and not isinstance(self.data[field], expected):
            self.add(field, message)
            return False
        return True

    def check_string_list(self, field, message, min_items=0):
        value = self.data.get(field)
        if not isinstance(value, list) or len(value) < min_items:
            self.add(field, message)
            return False
        if not all(isinstance(item, str) for item in value):
            self.add(field, message)
            return False
        return True


# User validations

def validate_register(data):
    c = _Collector(data)
    c.check('email', InputValidator.validate_email(data.get('email')))
    password = data.get('password')
    if not isinstance(password, str) or len(password) < 6:
        c.add('password', 'Password must be at least 6 characters')
    if c.require('firstName', 'First name is required'):
        c.check('firstName', InputValidator.validate_length(data['firstName'], 1, 100, 'First name'))
    if c.require('lastName', 'Last name is required'):
        c.check('lastName', InputValidator.validate_length(data['lastName'], 1, 100, 'Last name'))
    return c.errors


def validate_login(data):
    c = _Collector(data)
    c.check('email', InputValidator.validate_email(data.get('email')))
    c.require_string('password', 'Password is required', 'Password')
    return c.errors


def validate_profile_update(data):
    c = _Collector(data)
    if c.present('email'):
        c.check('email', InputValidator.validate_email(data['email']))
    if c.present('password') and (not isinstance(data['password'], str) or len(data['password']) < 6):
        c.add('password', 'Password must be at least 6 characters')
    for field, label in (('firstName', 'First name'), ('lastName', 'Last name')):
        if field in data and not (isinstance(data[field], str) and data[field].strip()):
            c.add(field, f'{label} cannot be empty')
    if c.present('phone') and not isinstance(data['phone'], str):
        c.add('phone', 'Phone must be a string')
    if c.present('dateOfBirth'):
        c.check('dateOfBirth', InputValidator.validate_iso_date(data['dateOfBirth']))
    c.check_type('address', dict, 'Address must be an object')
    if c.present('profileImage'):
        c.check('profileImage', InputValidator.validate_url(data['profileImage']))
    return c.errors


def validate_account_delete(data):
    c = _Collector(data)
    c.require_string('password', 'Current password is required to delete your account', 'Password')
    return c.errors


# Family validations

def validate_family(data, partial=False):
    c = _Collector(data)
    if not partial or 'name' in data:
        if c.require('name', 'Family name is required'):
            c.check('name', InputValidator.validate_length(data['name'], 2, 100, 'Family name'))
    if c.present('description'):
        c.check('description', InputValidator.validate_length(data['description'], max_length=500, label='Description'))
    if c.present('settings'):
        if c.check_type('settings', dict, 'Settings must be an object'):
            privacy = data['settings'].get('privacyLevel')
            if privacy is not None:
                c.check('settings.privacyLevel', InputValidator.validate_choice(privacy, PRIVACY_LEVELS, 'Privacy level'))
    return c.errors


def validate_family_update(data):
    return validate_family(data, partial=True)


def validate_member_add(data):
    c = _Collector(data)
    c.check('email', InputValidator.validate_email(data.get('email')))
    if c.present('role'):
        c.check('role', InputValidator.validate_choice(data['role'], FAMILY_ROLES, 'Role'))
    c.check_type('permissions', list, 'Permissions must be an array')
    return c.errors


# Event validations

def validate_event(data, partial=False):
    c = _Collector(data)
    if not partial or 'title' in data:
        if c.require('title', 'Event title is required'):
            c.check('title', InputValidator.validate_length(data['title'], 2, 100, 'Title'))
    if c.present('description') and not isinstance(data['description'], str):
        c.add('description', 'Description must be a string')

    start = end = None
    if c.present('startDate'):
        result = InputValidator.validate_iso_date(data['startDate'])
        if c.check('startDate', result):
            start = result.sanitized_value
    if c.present('endDate'):
        result = InputValidator.validate_iso_date(data['endDate'])
        if c.check('endDate', result):
            end = result.sanitized_value
    if start and end and end <= start:
        c.add('endDate', 'End date must be after start date')

    if c.present('category'):
        c.check('category', InputValidator.validate_choice(data['category'], EVENT_CATEGORIES, 'Category'))
    c.check_type('location', dict, 'Location must be an object')
    c.check_type('recurring', dict, 'Recurring must be an object')
    c.check_type('reminders', list, 'Reminders must be an array')
    return c.errors


def validate_event_update(data):
    return validate_event(data, partial=True)


def validate_attendance(data):
    c = _Collector(data)
    if c.require('status', 'Status is required'):
        c.check('status', InputValidator.validate_choice(data['status'], RSVP_STATUSES, 'Status'))
    if c.present('userId'):
        c.check('userId', InputValidator.validate_uuid(data['userId'], 'user ID'))
    return c.errors


def validate_invitation(data):
    c = _Collector(data)
    if c.require('userId', 'User ID is required'):
        c.check('userId', InputValidator.validate_uuid(data['userId'], 'user ID'))
    if c.present('message') and not isinstance(data['message'], str):
        c.add('message', 'Message must be a string')
    return c.errors


def validate_invitation_response(data):
    c = _Collector(data)
    if c.require('status', 'Status is required'):
        c.check('status', InputValidator.validate_choice(data['status'], INVITATION_RESPONSES, 'Status'))
    return c.errors


# Post validations

def validate_post(data, partial=False):
    c = _Collector(data)
    if not partial or 'content' in data:
        c.require_string('content', 'Post content is required', 'Post content')
    if c.present('mediaUrls'):
        if c.check_type('mediaUrls', list, 'Media URLs must be an array'):
            if not all(InputValidator.validate_url(url).is_valid for url in data['mediaUrls']):
                c.add('mediaUrls', 'Media URLs must be valid URLs')
    if c.present('type'):
        c.check('type', InputValidator.validate_choice(data['type'], POST_TYPES, 'Type'))
    if c.present('privacy'):
        c.check('privacy', InputValidator.validate_choice(data['privacy'], POST_PRIVACY_LEVELS, 'Privacy'))
    c.check_type('tags', list, 'Tags must be an array')
    c.check_type('location', dict, 'Location must be an object')
    if not partial or 'familyIds' in data:
        c.check_string_list('familyIds', 'At least one family ID is required', min_items=1)
    if c.present('eventIds'):
        c.check_string_list('eventIds', 'Event IDs must be an array of strings')
    return c.errors


def validate_post_update(data):
    return validate_post(data, partial=True)


def validate_like(data):
    c = _Collector(data)
    if c.present('reaction'):
        c.check('reaction', InputValidator.validate_choice(data['reaction'], REACTIONS, 'Reaction'))
    return c.errors


def validate_comment(data):
    c = _Collector(data)
    if c.require('content', 'Comment content is required'):
        c.check('content', InputValidator.validate_length(data['content'], max_length=1000, label='Comment'))
    if c.present('mediaUrl'):
        c.check('mediaUrl', InputValidator.validate_url(data['mediaUrl']))
    if c.present('parentId'):
        c.check('parentId', InputValidator.validate_uuid(data['parentId'], 'parent comment ID'))
    return c.errors


def validation_error_response(errors: List[FieldError]):
    return jsonify({'success': False, 'errors': [error.to_dict() for error in errors]}), 400


def validate_with(validator: Callable[[Dict[str, Any]], List[FieldError]]):
    """Decorator running a body validator before the route handler"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = request.get_json(silent=True)
            if data is None:
                data = {}
            if not isinstance(data, dict):
                return validation_error_response([FieldError('body', 'Request body must be a JSON object')])
            errors = validator(data)
            if errors:
                return validation_error_response(errors)
            g.body = data
            return f(*args, **kwargs)
        return decorated_function
    return decorator
