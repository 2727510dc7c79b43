"""
Model Utilities

This module contains utility functions for the models package.
"""

import uuid


def generate_uuid():
    """Generate a new UUID4 primary key as a string"""
    return str(uuid.uuid4())


def is_valid_uuid(value):
    """Return True if value is a well-formed UUID string"""
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def isoformat(value):
    """Serialize a datetime for JSON output (None stays None)"""
    return value.isoformat() + 'Z' if value else None
