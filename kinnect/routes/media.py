"""
Media Routes

FLOW OVERVIEW
- /api/media/upload [POST]
  • multipart 'file' (+ optional familyId, metadata JSON) → object storage (thumbnail for images)
    → Media row, plus a family Post when familyId is given, committed together.
    Stored objects are cleaned up if the database write fails.
- /api/media [GET]
  • Caller's uploads, paginated, optional ?type=.
- /api/families/<family_id>/media [GET]
  • Media referenced by the family's posts (members only).
- /api/media/<id> [DELETE]
  • Uploader only: strip the URL from posts, delete stored objects (failures logged), delete the row.
"""

import json
import logging

from flask import Blueprint, g, request

from ..models import db, Media, Post, PostFamily, is_valid_uuid
from ..utils.account_deletion import detach_media_url
from ..utils.api_utils import (
    error_response, get_pagination, server_error_response, success_response, total_pages,
)
from ..utils.auth_utils import protect
from ..utils.file_storage import (
    StorageError, StorageNotConfigured, UnsupportedFileError, delete_files, get_file_type_category, upload_file,
)
from ..utils.permissions import get_family, get_membership
from ..utils.prom_metrics import observe_media_upload

logger = logging.getLogger(__name__)

media_bp = Blueprint('media', __name__)


def _paginated_media(query):
    page, limit = get_pagination(default_limit=20)
    media_type = request.args.get('type')
    if media_type:
        query = query.filter(Media.type == media_type)
    count = query.count()
    items = query.order_by(Media.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return success_response(
        count=count,
        totalPages=total_pages(count, limit),
        currentPage=page,
        media=[item.to_dict() for item in items],
    )


def _discard_uploaded(record):
    """Best-effort removal of objects whose database row was never written"""
    try:
        delete_files([record['url'], record['thumbUrl']])
    except (StorageError, StorageNotConfigured) as e:
        logger.error(f"Orphaned upload left in storage ({record['url']}): {e}")


@media_bp.route('/media/upload', methods=['POST'])
@protect
def upload_media():
    """Upload one file; optionally share it to a family as a post"""
    user = g.current_user
    upload = request.files.get('file')
    if not upload or not upload.filename:
        return error_response('No file uploaded', 400)

    family_id = request.form.get('familyId') or None
    if family_id:
        if not get_family(family_id):
            return error_response('Family not found', 404)
        if not get_membership(family_id, user.id):
            return error_response('Not authorized to upload to this family', 403)

    try:
        metadata = json.loads(request.form.get('metadata') or '{}')
    except ValueError:
        return error_response('Metadata must be valid JSON', 400)
    if not isinstance(metadata, dict):
        return error_response('Metadata must be a JSON object', 400)

    data = upload.read()
    mime_type = upload.mimetype or 'application/octet-stream'
    try:
        record = upload_file(data, mime_type, user.id, upload.filename)
    except UnsupportedFileError as e:
        observe_media_upload(get_file_type_category(mime_type), 'rejected')
        return error_response(str(e), 400)
    except StorageNotConfigured as e:
        logger.error(f"Media upload unavailable: {e}")
        return error_response('Media storage is not configured', 503)
    except StorageError as e:
        observe_media_upload(get_file_type_category(mime_type), 'storage_error')
        logger.exception("Media upload to storage failed")
        return server_error_response(e, 'Error uploading file')

    try:
        media = Media(
            url=record['url'],
            thumb_url=record['thumbUrl'],
            type=record['type'],
            name=record['name'],
            size=record['size'],
            mime_type=record['mimeType'],
            media_metadata=metadata,
            uploaded_by_id=user.id,
        )
        db.session.add(media)

        post = None
        if family_id:
            post = Post(
                content=metadata.get('description') or f"{user.first_name} shared {record['type']}",
                media_urls=[record['url']],
                type='regular',
                privacy='family',
                tags=metadata.get('tags') if isinstance(metadata.get('tags'), list) else [],
                created_by_id=user.id,
            )
            db.session.add(post)
            db.session.flush()
            db.session.add(PostFamily(post_id=post.id, family_id=family_id))

        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception("Saving uploaded media failed")
        _discard_uploaded(record)
        observe_media_upload(record['type'], 'db_error')
        return server_error_response(e, 'Error uploading file')

    observe_media_upload(record['type'], 'success', record['size'])
    logger.info(f"User {user.id} uploaded {record['type']} {media.id}")
    payload = {'media': media.to_dict()}
    if post is not None:
        payload['post'] = post.to_dict()
    return success_response(201, **payload)


@media_bp.route('/media', methods=['GET'])
@protect
def list_user_media():
    return _paginated_media(Media.query.filter_by(uploaded_by_id=g.current_user.id))


@media_bp.route('/families/<family_id>/media', methods=['GET'])
@protect
def list_family_media(family_id):
    family = get_family(family_id)
    if not family:
        return error_response('Family not found', 404)
    if not get_membership(family.id, g.current_user.id):
        return error_response('Not authorized to view media for this family', 403)

    posts = Post.query.join(PostFamily, PostFamily.post_id == Post.id).filter(PostFamily.family_id == family.id).all()
    urls = {url for post in posts for url in (post.media_urls or [])}
    return _paginated_media(Media.query.filter(Media.url.in_(sorted(urls))))


@media_bp.route('/media/<media_id>', methods=['DELETE'])
@protect
def delete_media(media_id):
    media = db.session.get(Media, media_id) if is_valid_uuid(media_id) else None
    if not media:
        return error_response('Media not found', 404)
    if media.uploaded_by_id != g.current_user.id:
        return error_response('Not authorized to delete this media', 403)

    try:
        detach_media_url(media.url)

        try:
            delete_files(media.storage_urls())
        except (StorageError, StorageNotConfigured) as e:
            logger.warning(f"Could not delete stored objects for media {media.id}: {e}")

        db.session.delete(media)
        db.session.commit()
        return success_response(message='Media deleted successfully')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Media deletion failed for {media_id}")
        return server_error_response(e)
