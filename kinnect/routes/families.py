"""
Family Routes

FLOW OVERVIEW
- /api/families [POST, GET]
  • Create a family (creator becomes admin member) / list the caller's families with role info.
- /api/families/<id> [GET, PUT, DELETE]
  • Members read (with member list); admins update; only the creator deletes (full purge).
- /api/families/<id>/members [POST]
  • Admin adds an existing user by email with a role and permissions.
- /api/families/<id>/members/<user_id> [DELETE]
  • Admin removes a member. The creator and the last admin cannot be removed;
    admin rows are read FOR UPDATE so concurrent removals serialize.
"""

import logging

from flask import Blueprint, g

from ..models import (
    db, Family, FamilyMember, User, ADMIN_PERMISSIONS, DEFAULT_MEMBER_PERMISSIONS,
    default_family_settings, is_valid_uuid,
)
from ..models.utils import isoformat
from ..utils.account_deletion import purge_family
from ..utils.api_utils import error_response, server_error_response, success_response
from ..utils.auth_utils import protect
from ..utils.permissions import get_family, get_membership, is_family_admin
from ..utils.validators import (
    validate_family, validate_family_update, validate_member_add, validate_with,
)

logger = logging.getLogger(__name__)

families_bp = Blueprint('families', __name__)


def _merge_settings(current, updates):
    merged = dict(current or default_family_settings())
    for key, value in (updates or {}).items():
        if key == 'notificationPreferences' and isinstance(value, dict):
            prefs = dict(merged.get('notificationPreferences') or {})
            prefs.update(value)
            merged[key] = prefs
        else:
            merged[key] = value
    return merged


@families_bp.route('', methods=['POST'])
@protect
@validate_with(validate_family)
def create_family():
    """Create a family and make the caller its admin"""
    data = g.body
    user = g.current_user
    try:
        family = Family(
            name=data['name'].strip(),
            description=data.get('description'),
            created_by=user.id,
            settings=_merge_settings(default_family_settings(), data.get('settings')),
        )
        db.session.add(family)
        db.session.flush()

        db.session.add(FamilyMember(
            family_id=family.id,
            user_id=user.id,
            role='admin',
            permissions=list(ADMIN_PERMISSIONS),
        ))
        db.session.commit()
        logger.info(f"User {user.id} created family {family.id}")
        return success_response(201, family=family.to_dict())
    except Exception as e:
        db.session.rollback()
        logger.exception("Family creation failed")
        return server_error_response(e)


@families_bp.route('', methods=['GET'])
@protect
def list_families():
    """Families the caller belongs to, with the caller's role"""
    memberships = FamilyMember.query.filter_by(user_id=g.current_user.id).order_by(FamilyMember.joined_at).all()
    families = []
    for membership in memberships:
        data = membership.family.to_dict()
        data['userRole'] = membership.role
        data['userPermissions'] = membership.permissions
        data['joinedAt'] = isoformat(membership.joined_at)
        families.append(data)
    return success_response(count=len(families), families=families)


@families_bp.route('/<family_id>', methods=['GET'])
@protect
def get_family_by_id(family_id):
    family = get_family(family_id)
    if not family:
        return error_response('Family not found', 404)

    membership = get_membership(family.id, g.current_user.id)
    if not membership:
        return error_response('Not authorized to access this family', 403)

    data = family.to_dict(include_members=True)
    data['userRole'] = membership.role
    data['userPermissions'] = membership.permissions
    return success_response(family=data)


@families_bp.route('/<family_id>', methods=['PUT'])
@protect
@validate_with(validate_family_update)
def update_family(family_id):
    """Admin-only update of name, description and settings"""
    family = get_family(family_id)
    if not family:
        return error_response('Family not found', 404)

    membership = get_membership(family.id, g.current_user.id)
    if not membership or not membership.is_admin():
        return error_response('Not authorized to update this family', 403)

    data = g.body
    try:
        if data.get('name'):
            family.name = data['name'].strip()
        if 'description' in data:
            family.description = data['description']
        if data.get('settings'):
            family.settings = _merge_settings(family.settings, data['settings'])
        db.session.commit()
        return success_response(family=family.to_dict())
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Family update failed for {family_id}")
        return server_error_response(e)


@families_bp.route('/<family_id>/members', methods=['POST'])
@protect
@validate_with(validate_member_add)
def add_member(family_id):
    """Admin adds an existing user to the family"""
    family = get_family(family_id)
    if not family:
        return error_response('Family not found', 404)

    if not is_family_admin(family.id, g.current_user.id):
        return error_response('Not authorized to add members to this family', 403)

    data = g.body
    user = User.query.filter_by(email=data['email'].strip().lower()).first()
    if not user:
        return error_response('User not found with this email', 404)

    if get_membership(family.id, user.id):
        return error_response('User is already a member of this family', 400)

    try:
        membership = FamilyMember(
            family_id=family.id,
            user_id=user.id,
            role=data.get('role') or 'member',
            permissions=data.get('permissions') or list(DEFAULT_MEMBER_PERMISSIONS),
        )
        db.session.add(membership)
        db.session.commit()
        logger.info(f"User {user.id} added to family {family.id} as {membership.role}")
        return success_response(201, membership=membership.to_dict(), user=user.to_summary())
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Adding member to family {family_id} failed")
        return server_error_response(e)


@families_bp.route('/<family_id>/members/<user_id>', methods=['DELETE'])
@protect
def remove_member(family_id, user_id):
    """Admin removes a member, guarding the creator and the last admin"""
    if not is_valid_uuid(family_id) or not is_valid_uuid(user_id):
        return error_response('User is not a member of this family', 404)

    family = get_family(family_id)
    if not family:
        return error_response('Family not found', 404)

    requester = get_membership(family.id, g.current_user.id)
    if not requester or not requester.is_admin():
        return error_response('Not authorized to remove members from this family', 403)

    try:
        target = get_membership(family.id, user_id)
        if not target:
            return error_response('User is not a member of this family', 404)

        if family.created_by == user_id:
            return error_response('Cannot remove the family creator', 400)

        if target.is_admin():
            admins = family.admin_memberships(lock=True)
            if len(admins) <= 1:
                db.session.rollback()
                return error_response('Cannot remove the last admin from the family', 400)

        db.session.delete(target)
        db.session.commit()
        logger.info(f"User {user_id} removed from family {family.id} by {g.current_user.id}")
        return success_response(message='Member removed from family')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Removing member from family {family_id} failed")
        return server_error_response(e)


@families_bp.route('/<family_id>', methods=['DELETE'])
@protect
def delete_family(family_id):
    """Creator-only deletion of the family and everything scoped to it"""
    family = get_family(family_id)
    if not family:
        return error_response('Family not found', 404)

    if family.created_by != g.current_user.id:
        return error_response('Only the family creator can delete it', 403)

    try:
        purge_family(family.id)
        db.session.commit()
        return success_response(message='Family deleted successfully')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Family deletion failed for {family_id}")
        return server_error_response(e)
