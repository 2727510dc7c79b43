"""
Media Model

This module contains the Media model: metadata of a file held in object storage.
"""

from datetime import datetime
from .database import db
from .utils import generate_uuid, isoformat


MEDIA_TYPES = ('image', 'video', 'audio', 'document')


class Media(db.Model):
    """Uploaded file; bytes live in object storage, addressed by url/thumb_url"""
    __tablename__ = 'media'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    url = db.Column(db.String(1024), nullable=False)
    thumb_url = db.Column(db.String(1024))
    type = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    size = db.Column(db.Integer, nullable=False)
    mime_type = db.Column(db.String(100), nullable=False)
    # 'metadata' is reserved on declarative models
    media_metadata = db.Column('metadata', db.JSON, default=dict)
    uploaded_by_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    uploader = db.relationship('User')

    def storage_urls(self):
        """URLs of every stored object belonging to this record"""
        return [url for url in (self.url, self.thumb_url) if url]

    def to_dict(self):
        return {
            'id': self.id,
            'url': self.url,
            'thumbUrl': self.thumb_url,
            'type': self.type,
            'name': self.name,
            'size': self.size,
            'mimeType': self.mime_type,
            'metadata': self.media_metadata or {},
            'uploadedById': self.uploaded_by_id,
            'createdAt': isoformat(self.created_at),
        }
