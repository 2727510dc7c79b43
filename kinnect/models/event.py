"""
Event Models

This module contains the Event, EventAttendee and EventInvitation models.
"""

from datetime import datetime
from .database import db
from .utils import generate_uuid, isoformat


EVENT_CATEGORIES = ('general', 'birthday', 'holiday', 'appointment', 'social', 'other')
ATTENDEE_STATUSES = ('pending', 'attending', 'maybe', 'declined')
INVITATION_STATUSES = ('pending', 'accepted', 'declined')


class Event(db.Model):
    """A dated family event"""
    __tablename__ = 'events'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    family_id = db.Column(db.String(36), db.ForeignKey('families.id'), nullable=False)
    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    start_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    end_date = db.Column(db.DateTime)
    location = db.Column(db.JSON)
    category = db.Column(db.String(20), default='general')
    recurring = db.Column(db.JSON)
    reminders = db.Column(db.JSON, default=list)
    created_by_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    family = db.relationship('Family')
    creator = db.relationship('User', foreign_keys=[created_by_id])
    attendees = db.relationship('EventAttendee', viewonly=True, order_by='EventAttendee.created_at')

    def to_dict(self, include_attendees=False):
        data = {
            'id': self.id,
            'familyId': self.family_id,
            'title': self.title,
            'description': self.description,
            'startDate': isoformat(self.start_date),
            'endDate': isoformat(self.end_date),
            'location': self.location,
            'category': self.category,
            'recurring': self.recurring,
            'reminders': self.reminders or [],
            'createdById': self.created_by_id,
            'creator': self.creator.to_summary() if self.creator else None,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
        if include_attendees:
            data['attendees'] = [attendee.to_dict(include_user=True) for attendee in self.attendees]
        return data


class EventAttendee(db.Model):
    """RSVP state of a user for an event"""
    __tablename__ = 'event_attendees'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    event_id = db.Column(db.String(36), db.ForeignKey('events.id'), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('event_id', 'user_id', name='unique_event_attendee'),
    )

    user = db.relationship('User')

    def to_dict(self, include_user=False):
        data = {
            'id': self.id,
            'eventId': self.event_id,
            'userId': self.user_id,
            'status': self.status,
            'updatedAt': isoformat(self.updated_at),
        }
        if include_user and self.user:
            data['user'] = self.user.to_summary()
        return data


class EventInvitation(db.Model):
    """Invitation of a non-member to a family event"""
    __tablename__ = 'event_invitations'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    event_id = db.Column(db.String(36), db.ForeignKey('events.id'), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    invited_by = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending')
    message = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    event = db.relationship('Event')
    user = db.relationship('User', foreign_keys=[user_id])
    inviter = db.relationship('User', foreign_keys=[invited_by])

    def to_dict(self):
        return {
            'id': self.id,
            'eventId': self.event_id,
            'userId': self.user_id,
            'invitedBy': self.invited_by,
            'status': self.status,
            'message': self.message,
            'user': self.user.to_summary() if self.user else None,
            'inviter': self.inviter.to_summary() if self.inviter else None,
            'createdAt': isoformat(self.created_at),
        }
