"""
Post Routes

FLOW OVERVIEW
- /api/posts [POST]
  • Create a post shared with the caller's families (and optionally tagged to their events).
- /api/posts/<id> [GET, PUT, DELETE]
  • Read (family members, or anyone for public posts) with comments and reaction summary;
    author updates; author or an admin of a tagged family deletes.
- /api/posts/<id>/like [POST]
  • Add, change or toggle off the caller's reaction.
- /api/posts/<id>/comments [POST, GET]
  • Comment or reply (parent must belong to the same post) / paginated top-level comments with replies.
- /api/families/<family_id>/posts, /api/events/<event_id>/posts [GET]
  • Paginated feeds for members.
"""

import logging

from flask import Blueprint, g, request

from ..models import db, Comment, Event, Like, Post, PostEvent, PostFamily, is_valid_uuid
from ..utils.account_deletion import delete_posts
from ..utils.api_utils import (
    error_response, get_pagination, server_error_response, success_response, total_pages,
)
from ..utils.auth_utils import protect
from ..utils.permissions import (
    can_view_post, get_event, get_family, get_membership, is_admin_of_post_family, user_family_ids,
)
from ..utils.validators import (
    validate_comment, validate_like, validate_post, validate_post_update, validate_with,
)

logger = logging.getLogger(__name__)

posts_bp = Blueprint('posts', __name__)

UPDATABLE_FIELDS = {
    'content': 'content',
    'mediaUrls': 'media_urls',
    'type': 'type',
    'privacy': 'privacy',
    'tags': 'tags',
    'location': 'location',
}


def _get_post(post_id):
    if not is_valid_uuid(post_id):
        return None
    return db.session.get(Post, post_id)


def _check_associations(user_id, family_ids, event_ids):
    """Return an error response when the caller may not link these families/events"""
    own_families = user_family_ids(user_id)
    if not set(family_ids) <= own_families:
        return error_response('Not authorized to post to one or more of these families', 403)
    if event_ids:
        events = Event.query.filter(Event.id.in_(event_ids)).all() if all(map(is_valid_uuid, event_ids)) else []
        if len(events) != len(set(event_ids)) or any(event.family_id not in own_families for event in events):
            return error_response('Not authorized to tag one or more of these events', 403)
    return None


def _replace_links(post, family_ids=None, event_ids=None):
    if family_ids is not None:
        PostFamily.query.filter_by(post_id=post.id).delete(synchronize_session=False)
        for family_id in dict.fromkeys(family_ids):
            db.session.add(PostFamily(post_id=post.id, family_id=family_id))
    if event_ids is not None:
        PostEvent.query.filter_by(post_id=post.id).delete(synchronize_session=False)
        for event_id in dict.fromkeys(event_ids):
            db.session.add(PostEvent(post_id=post.id, event_id=event_id))


def _reaction_summary(post, user_id):
    own = Like.query.filter_by(user_id=user_id, target_type='post', target_id=post.id).first()
    return {
        'likesCount': post.likes_count(),
        'userLiked': own is not None,
        'userReaction': own.reaction if own else None,
    }


def _feed_response(query, default_limit=10):
    page, limit = get_pagination(default_limit=default_limit)
    post_type = request.args.get('type')
    if post_type:
        query = query.filter(Post.type == post_type)
    count = query.count()
    posts = query.order_by(Post.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    user_id = g.current_user.id
    items = []
    for post in posts:
        data = post.to_dict()
        data.update(_reaction_summary(post, user_id))
        data['commentsCount'] = Comment.query.filter_by(post_id=post.id).count()
        items.append(data)
    return success_response(
        count=count, totalPages=total_pages(count, limit), currentPage=page, posts=items,
    )


@posts_bp.route('/posts', methods=['POST'])
@protect
@validate_with(validate_post)
def create_post():
    """Create a post linked to families (and events) the caller belongs to"""
    data = g.body
    user = g.current_user
    family_ids = data['familyIds']
    event_ids = data.get('eventIds') or []

    denied = _check_associations(user.id, family_ids, event_ids)
    if denied:
        return denied

    try:
        post = Post(
            content=data['content'],
            media_urls=data.get('mediaUrls') or [],
            type=data.get('type') or 'regular',
            privacy=data.get('privacy') or 'family',
            tags=data.get('tags') or [],
            location=data.get('location'),
            created_by_id=user.id,
        )
        db.session.add(post)
        db.session.flush()
        _replace_links(post, family_ids, event_ids)
        db.session.commit()
        logger.info(f"Post {post.id} created by {user.id} in {len(family_ids)} families")
        return success_response(201, post=post.to_dict())
    except Exception as e:
        db.session.rollback()
        logger.exception("Post creation failed")
        return server_error_response(e)


@posts_bp.route('/posts/<post_id>', methods=['GET'])
@protect
def get_post(post_id):
    post = _get_post(post_id)
    if not post:
        return error_response('Post not found', 404)
    user_id = g.current_user.id
    if not can_view_post(post, user_id):
        return error_response('Not authorized to view this post', 403)

    comments = Comment.query.filter_by(post_id=post.id, parent_id=None).order_by(Comment.created_at.desc()).all()
    data = post.to_dict()
    data['comments'] = [comment.to_dict(include_replies=True) for comment in comments]
    data.update(_reaction_summary(post, user_id))
    return success_response(post=data)


@posts_bp.route('/posts/<post_id>', methods=['PUT'])
@protect
@validate_with(validate_post_update)
def update_post(post_id):
    post = _get_post(post_id)
    if not post:
        return error_response('Post not found', 404)
    user = g.current_user
    if post.created_by_id != user.id:
        return error_response('Not authorized to update this post', 403)

    data = g.body
    family_ids = data.get('familyIds')
    event_ids = data.get('eventIds')
    denied = _check_associations(user.id, family_ids or [], event_ids or [])
    if denied:
        return denied

    try:
        for field, attribute in UPDATABLE_FIELDS.items():
            if field in data and data[field] is not None:
                setattr(post, attribute, data[field])
        _replace_links(post, family_ids, event_ids)
        db.session.commit()
        return success_response(post=post.to_dict())
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Post update failed for {post_id}")
        return server_error_response(e)


@posts_bp.route('/posts/<post_id>', methods=['DELETE'])
@protect
def delete_post(post_id):
    post = _get_post(post_id)
    if not post:
        return error_response('Post not found', 404)
    user_id = g.current_user.id
    if post.created_by_id != user_id and not is_admin_of_post_family(post, user_id):
        return error_response('Not authorized to delete this post', 403)

    try:
        delete_posts([post.id])
        db.session.commit()
        return success_response(message='Post deleted successfully')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Post deletion failed for {post_id}")
        return server_error_response(e)


@posts_bp.route('/posts/<post_id>/like', methods=['POST'])
@protect
@validate_with(validate_like)
def like_post(post_id):
    """Add a reaction; the same reaction again removes it, a different one replaces it"""
    post = _get_post(post_id)
    if not post:
        return error_response('Post not found', 404)
    user_id = g.current_user.id
    if not can_view_post(post, user_id):
        return error_response('Not authorized to react to this post', 403)

    reaction = g.body.get('reaction') or 'like'
    try:
        existing = Like.query.filter_by(user_id=user_id, target_type='post', target_id=post.id).first()
        if existing and existing.reaction == reaction:
            db.session.delete(existing)
            message, is_liked = 'Reaction removed', False
        elif existing:
            existing.reaction = reaction
            message, is_liked = 'Reaction updated', True
        else:
            db.session.add(Like(user_id=user_id, target_type='post', target_id=post.id, reaction=reaction))
            message, is_liked = 'Post liked', True
        db.session.commit()
        return success_response(
            message=message,
            isLiked=is_liked,
            reaction=reaction if is_liked else None,
            likesCount=post.likes_count(),
        )
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Reaction failed for post {post_id}")
        return server_error_response(e)


@posts_bp.route('/posts/<post_id>/comments', methods=['POST'])
@protect
@validate_with(validate_comment)
def add_comment(post_id):
    post = _get_post(post_id)
    if not post:
        return error_response('Post not found', 404)
    user_id = g.current_user.id
    if not can_view_post(post, user_id):
        return error_response('Not authorized to comment on this post', 403)

    data = g.body
    parent_id = data.get('parentId')
    if parent_id:
        parent = db.session.get(Comment, parent_id)
        if not parent or parent.post_id != post.id:
            return error_response('Invalid parent comment ID', 400)

    try:
        comment = Comment(
            post_id=post.id,
            user_id=user_id,
            content=data['content'].strip(),
            media_url=data.get('mediaUrl'),
            parent_id=parent_id,
        )
        db.session.add(comment)
        db.session.commit()
        return success_response(201, comment=comment.to_dict())
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Comment failed for post {post_id}")
        return server_error_response(e)


@posts_bp.route('/posts/<post_id>/comments', methods=['GET'])
@protect
def list_comments(post_id):
    post = _get_post(post_id)
    if not post:
        return error_response('Post not found', 404)
    if not can_view_post(post, g.current_user.id):
        return error_response('Not authorized to view comments on this post', 403)

    page, limit = get_pagination(default_limit=20)
    query = Comment.query.filter_by(post_id=post.id, parent_id=None)
    count = query.count()
    comments = query.order_by(Comment.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return success_response(
        count=count,
        totalPages=total_pages(count, limit),
        currentPage=page,
        comments=[comment.to_dict(include_replies=True) for comment in comments],
    )


@posts_bp.route('/families/<family_id>/posts', methods=['GET'])
@protect
def list_family_posts(family_id):
    family = get_family(family_id)
    if not family:
        return error_response('Family not found', 404)
    if not get_membership(family.id, g.current_user.id):
        return error_response('Not authorized to view posts for this family', 403)

    query = Post.query.join(PostFamily, PostFamily.post_id == Post.id).filter(PostFamily.family_id == family.id)
    return _feed_response(query)


@posts_bp.route('/events/<event_id>/posts', methods=['GET'])
@protect
def list_event_posts(event_id):
    event = get_event(event_id)
    if not event:
        return error_response('Event not found', 404)
    if not get_membership(event.family_id, g.current_user.id):
        return error_response('Not authorized to view posts for this event', 403)

    query = Post.query.join(PostEvent, PostEvent.post_id == Post.id).filter(PostEvent.event_id == event.id)
    return _feed_response(query)
