"""
Family Membership Permissions

Lookups shared by the route handlers to decide who may read or change
family-scoped resources (families, events, posts, media).
"""

from ..models import db, Family, FamilyMember, EventInvitation, PostFamily, Event, is_valid_uuid


def get_membership(family_id, user_id):
    """Return the FamilyMember row for (family, user) or None"""
    if not is_valid_uuid(family_id):
        return None
    return FamilyMember.query.filter_by(family_id=family_id, user_id=user_id).first()


def is_family_admin(family_id, user_id):
    membership = get_membership(family_id, user_id)
    return bool(membership and membership.is_admin())


def get_family(family_id):
    """Fetch a family by id; malformed ids resolve to None"""
    if not is_valid_uuid(family_id):
        return None
    return db.session.get(Family, family_id)


def get_event(event_id):
    if not is_valid_uuid(event_id):
        return None
    return db.session.get(Event, event_id)


def user_family_ids(user_id):
    """Ids of every family the user belongs to"""
    rows = db.session.query(FamilyMember.family_id).filter_by(user_id=user_id).all()
    return {row[0] for row in rows}


def can_manage_event(event, user_id):
    """Event creator or an admin of the event's family"""
    return event.created_by_id == user_id or is_family_admin(event.family_id, user_id)


def has_accepted_invitation(event_id, user_id):
    return EventInvitation.query.filter_by(
        event_id=event_id, user_id=user_id, status='accepted'
    ).first() is not None


def can_view_post(post, user_id):
    """Members of any tagged family may view; public posts are visible to everyone"""
    if post.privacy == 'public' or post.created_by_id == user_id:
        return True
    post_family_ids = {
        row[0] for row in db.session.query(PostFamily.family_id).filter_by(post_id=post.id).all()
    }
    return bool(post_family_ids & user_family_ids(user_id))


def is_admin_of_post_family(post, user_id):
    """True when the user administers any family the post is shared with"""
    return db.session.query(FamilyMember.id).join(
        PostFamily, PostFamily.family_id == FamilyMember.family_id
    ).filter(
        PostFamily.post_id == post.id,
        FamilyMember.user_id == user_id,
        FamilyMember.role == 'admin',
    ).first() is not None
