"""
User Model

This module contains the User model: credentials and profile.
"""

from datetime import datetime
from .database import db
from .utils import generate_uuid, isoformat


class User(db.Model):
    """User model for authentication and profile management"""
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    date_of_birth = db.Column(db.Date)
    phone = db.Column(db.String(40))
    address = db.Column(db.JSON)
    profile_image = db.Column(db.String(500))
    role = db.Column(db.String(20), default='user')
    status = db.Column(db.String(20), default='active')  # active, inactive, suspended
    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __init__(self, email, password_hash, first_name, last_name, **profile):
        """Initialize a new user; email is stored lowercased"""
        self.id = generate_uuid()
        self.email = email.strip().lower()
        self.password_hash = password_hash
        self.first_name = first_name
        self.last_name = last_name
        self.role = 'user'
        self.status = 'active'
        for field, value in profile.items():
            setattr(self, field, value)

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'

    def is_active(self):
        """Check if user account is active"""
        return self.status == 'active'

    def update_last_login(self):
        """Stamp the login time; the caller commits"""
        self.last_login = datetime.utcnow()

    def to_summary(self):
        """Public fields shown when a user is embedded in another resource"""
        return {
            'id': self.id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'email': self.email,
            'profileImage': self.profile_image,
        }

    def to_dict(self):
        """Full profile without the password hash"""
        return {
            'id': self.id,
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'dateOfBirth': self.date_of_birth.isoformat() if self.date_of_birth else None,
            'phone': self.phone,
            'address': self.address,
            'profileImage': self.profile_image,
            'role': self.role,
            'status': self.status,
            'lastLogin': isoformat(self.last_login),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
