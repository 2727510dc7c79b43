"""
Family Models

This module contains the Family and FamilyMember models.
"""

from datetime import datetime
from .database import db
from .utils import generate_uuid, isoformat


DEFAULT_FAMILY_SETTINGS = {
    'privacyLevel': 'private',
    'notificationPreferences': {
        'events': True,
        'tasks': True,
        'documents': True,
    },
}

ADMIN_PERMISSIONS = ['view', 'edit', 'delete', 'invite']
DEFAULT_MEMBER_PERMISSIONS = ['view']


def default_family_settings():
    """Fresh copy of the default settings (JSON columns must not share dicts)"""
    return {
        'privacyLevel': DEFAULT_FAMILY_SETTINGS['privacyLevel'],
        'notificationPreferences': dict(DEFAULT_FAMILY_SETTINGS['notificationPreferences']),
    }


class Family(db.Model):
    """A group of users sharing events, posts and media"""
    __tablename__ = 'families'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    created_by = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    settings = db.Column(db.JSON, default=default_family_settings)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    creator = db.relationship('User', foreign_keys=[created_by])
    members = db.relationship('FamilyMember', viewonly=True, order_by='FamilyMember.joined_at')

    def admin_memberships(self, exclude_user_id=None, lock=False):
        """
        Admin membership rows of this family.

        Args:
            exclude_user_id: user to leave out of the result
            lock: read the rows with SELECT ... FOR UPDATE

        Returns:
            List of FamilyMember rows with role 'admin'
        """
        query = FamilyMember.query.filter_by(family_id=self.id, role='admin')
        if exclude_user_id:
            query = query.filter(FamilyMember.user_id != exclude_user_id)
        if lock:
            query = query.with_for_update()
        return query.order_by(FamilyMember.joined_at).all()

    def to_dict(self, include_members=False):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'createdBy': self.created_by,
            'settings': self.settings,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
        if include_members:
            data['members'] = [member.to_dict(include_user=True) for member in self.members]
        return data


class FamilyMember(db.Model):
    """Membership of a user in a family with a role and permissions"""
    __tablename__ = 'family_members'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    family_id = db.Column(db.String(36), db.ForeignKey('families.id'), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='member')  # admin, member, viewer
    permissions = db.Column(db.JSON, default=lambda: list(DEFAULT_MEMBER_PERMISSIONS))
    joined_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('family_id', 'user_id', name='unique_family_member'),
    )

    # Relationships
    family = db.relationship('Family')
    user = db.relationship('User')

    def is_admin(self):
        return self.role == 'admin'

    def to_dict(self, include_user=False):
        data = {
            'id': self.id,
            'familyId': self.family_id,
            'userId': self.user_id,
            'role': self.role,
            'permissions': self.permissions,
            'joinedAt': isoformat(self.joined_at),
        }
        if include_user and self.user:
            data['user'] = self.user.to_summary()
        return data
