"""
Post Models

This module contains Post, its family/event association rows (PostFamily,
PostEvent), threaded Comments and reaction Likes.
"""

from datetime import datetime
from .database import db
from .utils import generate_uuid, isoformat


POST_TYPES = ('regular', 'memory', 'milestone', 'announcement')
POST_PRIVACY_LEVELS = ('family', 'public', 'private')
REACTIONS = ('like', 'love', 'laugh', 'wow', 'sad', 'angry')
LIKE_TARGET_TYPES = ('post', 'comment')


class Post(db.Model):
    """A post shared with one or more families"""
    __tablename__ = 'posts'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    content = db.Column(db.Text, nullable=False)
    media_urls = db.Column(db.JSON, default=list)
    type = db.Column(db.String(20), default='regular')
    privacy = db.Column(db.String(20), default='family')
    tags = db.Column(db.JSON, default=list)
    location = db.Column(db.JSON)
    created_by_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    author = db.relationship('User', foreign_keys=[created_by_id])
    family_links = db.relationship('PostFamily', viewonly=True)
    event_links = db.relationship('PostEvent', viewonly=True)

    @property
    def family_ids(self):
        return [link.family_id for link in self.family_links]

    def likes_count(self):
        return Like.query.filter_by(target_type='post', target_id=self.id).count()

    def to_dict(self):
        return {
            'id': self.id,
            'content': self.content,
            'mediaUrls': self.media_urls or [],
            'type': self.type,
            'privacy': self.privacy,
            'tags': self.tags or [],
            'location': self.location,
            'createdById': self.created_by_id,
            'author': self.author.to_summary() if self.author else None,
            'families': [
                {'id': link.family.id, 'name': link.family.name}
                for link in self.family_links if link.family
            ],
            'events': [
                {'id': link.event.id, 'title': link.event.title, 'startDate': isoformat(link.event.start_date)}
                for link in self.event_links if link.event
            ],
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }


class PostFamily(db.Model):
    """Post to family association"""
    __tablename__ = 'post_families'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    post_id = db.Column(db.String(36), db.ForeignKey('posts.id'), nullable=False)
    family_id = db.Column(db.String(36), db.ForeignKey('families.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('post_id', 'family_id', name='unique_post_family'),
    )

    family = db.relationship('Family')


class PostEvent(db.Model):
    """Post to event association"""
    __tablename__ = 'post_events'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    post_id = db.Column(db.String(36), db.ForeignKey('posts.id'), nullable=False)
    event_id = db.Column(db.String(36), db.ForeignKey('events.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('post_id', 'event_id', name='unique_post_event'),
    )

    event = db.relationship('Event')


class Comment(db.Model):
    """Comment on a post; parent_id makes it a reply"""
    __tablename__ = 'comments'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    post_id = db.Column(db.String(36), db.ForeignKey('posts.id'), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    media_url = db.Column(db.String(500))
    parent_id = db.Column(db.String(36), db.ForeignKey('comments.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = db.relationship('User')
    replies = db.relationship('Comment', viewonly=True, order_by='Comment.created_at')

    def to_dict(self, include_replies=False):
        data = {
            'id': self.id,
            'postId': self.post_id,
            'userId': self.user_id,
            'content': self.content,
            'mediaUrl': self.media_url,
            'parentId': self.parent_id,
            'author': self.author.to_summary() if self.author else None,
            'createdAt': isoformat(self.created_at),
        }
        if include_replies:
            data['replies'] = [reply.to_dict() for reply in self.replies]
        return data


class Like(db.Model):
    """A user's reaction to a post or comment"""
    __tablename__ = 'likes'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    target_type = db.Column(db.String(20), nullable=False)  # post, comment
    target_id = db.Column(db.String(36), nullable=False)
    reaction = db.Column(db.String(20), nullable=False, default='like')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'target_type', 'target_id', name='unique_user_like'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'targetType': self.target_type,
            'targetId': self.target_id,
            'reaction': self.reaction,
        }
