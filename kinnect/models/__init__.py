"""
Database Models Package

FLOW OVERVIEW
- Centralizes SQLAlchemy DB instance and model imports for convenient usage.
- Exposes: db, User, Family, FamilyMember, Event, EventAttendee, EventInvitation,
  Post, PostFamily, PostEvent, Comment, Like, Media.
"""

from .database import db
from .user import User
from .family import Family, FamilyMember, ADMIN_PERMISSIONS, DEFAULT_MEMBER_PERMISSIONS, default_family_settings
from .event import Event, EventAttendee, EventInvitation, EVENT_CATEGORIES, ATTENDEE_STATUSES, INVITATION_STATUSES
from .post import Post, PostFamily, PostEvent, Comment, Like, POST_TYPES, POST_PRIVACY_LEVELS, REACTIONS
from .media import Media, MEDIA_TYPES
from .utils import generate_uuid, is_valid_uuid

__all__ = [
    'db',
    'User',
    'Family',
    'FamilyMember',
    'Event',
    'EventAttendee',
    'EventInvitation',
    'Post',
    'PostFamily',
    'PostEvent',
    'Comment',
    'Like',
    'Media',
    'ADMIN_PERMISSIONS',
    'DEFAULT_MEMBER_PERMISSIONS',
    'default_family_settings',
    'EVENT_CATEGORIES',
    'ATTENDEE_STATUSES',
    'INVITATION_STATUSES',
    'POST_TYPES',
    'POST_PRIVACY_LEVELS',
    'REACTIONS',
    'MEDIA_TYPES',
    'generate_uuid',
    'is_valid_uuid',
]
