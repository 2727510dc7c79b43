"""
Account Deletion Cascade

FLOW OVERVIEW
- delete_user_account(user)
  • Families the user created: hand ownership to another admin, or purge the family when none is left.
  • Remove the user's memberships, RSVPs, invitations, likes and comments.
  • Remove the user's posts with their comments, likes and family/event links.
  • Remove the user's media URLs from posts, the objects from storage, then the rows.
  • Remove the user and commit. Any exception rolls the whole session back and is re-raised.
- purge_family(family_id)
  • Delete a family with its events (attendees, invitations, post links), post links, posts shared
    with no other family, and memberships.
    Shared with DELETE /api/families/<id>. Does not commit.
"""

import logging

from ..models import (
    db, Comment, Event, EventAttendee, EventInvitation, Family, FamilyMember,
    Like, Media, Post, PostEvent, PostFamily,
)
from .file_storage import delete_files
from .prom_metrics import observe_account_deletion

logger = logging.getLogger(__name__)


def _ids(query):
    return [row[0] for row in query.all()]


def delete_events(event_ids):
    """Delete events together with their attendees, invitations and post links"""
    if not event_ids:
        return
    EventAttendee.query.filter(EventAttendee.event_id.in_(event_ids)).delete(synchronize_session=False)
    EventInvitation.query.filter(EventInvitation.event_id.in_(event_ids)).delete(synchronize_session=False)
    PostEvent.query.filter(PostEvent.event_id.in_(event_ids)).delete(synchronize_session=False)
    Event.query.filter(Event.id.in_(event_ids)).delete(synchronize_session=False)


def purge_family(family_id):
    """Remove a family and everything scoped to it (caller commits)"""
    event_ids = _ids(db.session.query(Event.id).filter_by(family_id=family_id))
    delete_events(event_ids)
    post_ids = _ids(db.session.query(PostFamily.post_id).filter_by(family_id=family_id))
    PostFamily.query.filter_by(family_id=family_id).delete(synchronize_session=False)
    # Posts shared only with this family have nowhere left to be seen
    still_linked = set(_ids(db.session.query(PostFamily.post_id).filter(PostFamily.post_id.in_(post_ids))))
    delete_posts([post_id for post_id in post_ids if post_id not in still_linked])
    FamilyMember.query.filter_by(family_id=family_id).delete(synchronize_session=False)
    Family.query.filter_by(id=family_id).delete(synchronize_session=False)
    logger.info(f"Purged family {family_id} ({len(event_ids)} events)")


def delete_comments(comment_ids):
    """Delete comments, their likes, and detach replies that survive them"""
    if not comment_ids:
        return
    Like.query.filter(
        Like.target_type == 'comment', Like.target_id.in_(comment_ids)
    ).delete(synchronize_session=False)
    Comment.query.filter(
        Comment.parent_id.in_(comment_ids), Comment.id.notin_(comment_ids)
    ).update({Comment.parent_id: None}, synchronize_session=False)
    Comment.query.filter(Comment.id.in_(comment_ids)).delete(synchronize_session=False)


def delete_posts(post_ids):
    """Delete posts with their comments, likes and association rows"""
    if not post_ids:
        return
    delete_comments(_ids(db.session.query(Comment.id).filter(Comment.post_id.in_(post_ids))))
    Like.query.filter(
        Like.target_type == 'post', Like.target_id.in_(post_ids)
    ).delete(synchronize_session=False)
    PostFamily.query.filter(PostFamily.post_id.in_(post_ids)).delete(synchronize_session=False)
    PostEvent.query.filter(PostEvent.post_id.in_(post_ids)).delete(synchronize_session=False)
    Post.query.filter(Post.id.in_(post_ids)).delete(synchronize_session=False)


def _resolve_created_families(user_id):
    """Reassign or purge every family created by the user"""
    reassigned, purged = 0, 0
    for family in Family.query.filter_by(created_by=user_id).all():
        other_admins = family.admin_memberships(exclude_user_id=user_id, lock=True)
        if other_admins:
            family.created_by = other_admins[0].user_id
            reassigned += 1
            logger.info(f"Family {family.id} ownership moved to {family.created_by}")
        else:
            purge_family(family.id)
            purged += 1
    db.session.flush()
    return reassigned, purged


def _reassign_created_events(user_id):
    """Events the user created in surviving families pass to the family owner"""
    for event in Event.query.filter_by(created_by_id=user_id).all():
        owner_id = db.session.query(Family.created_by).filter_by(id=event.family_id).scalar()
        if owner_id and owner_id != user_id:
            event.created_by_id = owner_id
        else:
            delete_events([event.id])
    db.session.flush()


def detach_media_url(url):
    """Remove a media URL from every post that references it"""
    referencing = Post.query.filter(db.cast(Post.media_urls, db.Text).contains(url)).all()
    for post in referencing:
        if url in (post.media_urls or []):
            post.media_urls = [item for item in post.media_urls if item != url]


def _delete_user_media(user_id):
    media_items = Media.query.filter_by(uploaded_by_id=user_id).all()
    for media in media_items:
        detach_media_url(media.url)
        # Storage failures propagate and abort the cascade
        delete_files(media.storage_urls())
        db.session.delete(media)
    return len(media_items)


def delete_user_account(user):
    """
    Permanently delete a user and every row that depends on them.

    All database work happens in the current session and is committed once at
    the end; on any exception the session is rolled back and the error re-raised.

    Args:
        user: the User to delete (password already verified by the caller)

    Returns:
        Dict with counts of reassigned/purged families, deleted posts and media
    """
    user_id = user.id
    try:
        reassigned, purged = _resolve_created_families(user_id)

        FamilyMember.query.filter_by(user_id=user_id).delete(synchronize_session=False)

        EventAttendee.query.filter_by(user_id=user_id).delete(synchronize_session=False)
        EventInvitation.query.filter(
            (EventInvitation.user_id == user_id) | (EventInvitation.invited_by == user_id)
        ).delete(synchronize_session=False)
        Like.query.filter_by(user_id=user_id).delete(synchronize_session=False)
        delete_comments(_ids(db.session.query(Comment.id).filter_by(user_id=user_id)))
        _reassign_created_events(user_id)

        post_ids = _ids(db.session.query(Post.id).filter_by(created_by_id=user_id))
        delete_posts(post_ids)

        media_count = _delete_user_media(user_id)

        db.session.delete(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        observe_account_deletion('failed')
        logger.exception(f"Account deletion for {user_id} rolled back")
        raise

    observe_account_deletion('deleted')
    logger.info(
        f"Deleted account {user_id}: {reassigned} families reassigned, {purged} purged, "
        f"{len(post_ids)} posts, {media_count} media"
    )
    return {
        'familiesReassigned': reassigned,
        'familiesDeleted': purged,
        'postsDeleted': len(post_ids),
        'mediaDeleted': media_count,
    }
