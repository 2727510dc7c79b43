"""
Routes Package

This package contains all Flask route blueprints.
"""

from .main import main_bp
from .users import users_bp
from .families import families_bp
from .events import events_bp
from .posts import posts_bp
from .media import media_bp

__all__ = [
    'main_bp',
    'users_bp',
    'families_bp',
    'events_bp',
    'posts_bp',
    'media_bp',
]
