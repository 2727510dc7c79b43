"""
Event Routes

FLOW OVERVIEW
- /api/families/<family_id>/events [POST, GET]
  • Members create events (creator attending, other members pending) / list with date & category filters.
- /api/events [GET]
  • Events the caller created or is attending across all families.
- /api/events/<id> [GET, PUT, DELETE]
  • Members read; creator or family admin update/delete.
- /api/events/<id>/attendees [POST, GET]
  • RSVP for self (member or accepted invitee) or, as creator/admin, for someone else / list attendees.
- /api/events/<id>/invitations [POST, GET] and /<invitation_id> [PUT]
  • Creator/admin invite non-members (email notification) / invitee accepts or declines.
"""

import logging

from flask import Blueprint, g, request

from ..models import db, Event, EventAttendee, EventInvitation, FamilyMember, User
from ..utils.account_deletion import delete_events
from ..utils.api_utils import error_response, server_error_response, success_response
from ..utils.auth_utils import protect
from ..utils.notifications import send_event_invitation_email
from ..utils.permissions import (
    can_manage_event, get_event, get_family, get_membership, has_accepted_invitation,
)
from ..utils.validators import (
    InputValidator, validate_attendance, validate_event, validate_event_update,
    validate_invitation, validate_invitation_response, validate_with,
)

logger = logging.getLogger(__name__)

events_bp = Blueprint('events', __name__)

UPDATABLE_FIELDS = {
    'title': 'title',
    'description': 'description',
    'location': 'location',
    'category': 'category',
    'recurring': 'recurring',
    'reminders': 'reminders',
}


def _parse_date(value):
    return InputValidator.validate_iso_date(value).sanitized_value if value else None


def _apply_date_filters(query):
    """Apply ?startDate=&endDate=&category= to an Event query"""
    start = request.args.get('startDate')
    end = request.args.get('endDate')
    category = request.args.get('category')
    if start:
        parsed = _parse_date(start)
        if parsed:
            query = query.filter(Event.start_date >= parsed)
    if end:
        parsed = _parse_date(end)
        if parsed:
            query = query.filter(Event.start_date <= parsed)
    if category:
        query = query.filter(Event.category == category)
    return query


def _upsert_attendee(event_id, user_id, status):
    attendee = EventAttendee.query.filter_by(event_id=event_id, user_id=user_id).first()
    if attendee:
        attendee.status = status
    else:
        attendee = EventAttendee(event_id=event_id, user_id=user_id, status=status)
        db.session.add(attendee)
    return attendee


@events_bp.route('/families/<family_id>/events', methods=['POST'])
@protect
@validate_with(validate_event)
def create_event(family_id):
    """Create an event and an attendee row for every family member"""
    family = get_family(family_id)
    if not family:
        return error_response('Family not found', 404)

    user = g.current_user
    if not get_membership(family.id, user.id):
        return error_response('Not authorized to create events for this family', 403)

    data = g.body
    try:
        event = Event(
            family_id=family.id,
            title=data['title'].strip(),
            description=data.get('description'),
            location=data.get('location'),
            category=data.get('category') or 'general',
            recurring=data.get('recurring'),
            reminders=data.get('reminders') or [],
            created_by_id=user.id,
        )
        if data.get('startDate'):
            event.start_date = _parse_date(data['startDate'])
        if data.get('endDate'):
            event.end_date = _parse_date(data['endDate'])
        db.session.add(event)
        db.session.flush()

        member_ids = [row[0] for row in db.session.query(FamilyMember.user_id).filter_by(family_id=family.id).all()]
        for member_id in member_ids:
            status = 'attending' if member_id == user.id else 'pending'
            db.session.add(EventAttendee(event_id=event.id, user_id=member_id, status=status))

        db.session.commit()
        logger.info(f"Event {event.id} created in family {family.id} with {len(member_ids)} attendees")
        return success_response(201, event=event.to_dict(include_attendees=True))
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Event creation failed for family {family_id}")
        return server_error_response(e)


@events_bp.route('/families/<family_id>/events', methods=['GET'])
@protect
def list_family_events(family_id):
    family = get_family(family_id)
    if not family:
        return error_response('Family not found', 404)
    if not get_membership(family.id, g.current_user.id):
        return error_response('Not authorized to view events for this family', 403)

    query = _apply_date_filters(Event.query.filter_by(family_id=family.id))
    events = query.order_by(Event.start_date).all()
    return success_response(count=len(events), events=[event.to_dict() for event in events])


@events_bp.route('/events', methods=['GET'])
@protect
def list_my_events():
    """Events the caller created or is listed as attendee for"""
    user_id = g.current_user.id
    attending = db.session.query(EventAttendee.event_id).filter(
        EventAttendee.user_id == user_id, EventAttendee.status != 'declined'
    )
    query = Event.query.filter((Event.created_by_id == user_id) | (Event.id.in_(attending)))
    events = _apply_date_filters(query).order_by(Event.start_date).all()
    return success_response(count=len(events), events=[event.to_dict() for event in events])


@events_bp.route('/events/<event_id>', methods=['GET'])
@protect
def get_event_by_id(event_id):
    event = get_event(event_id)
    if not event:
        return error_response('Event not found', 404)
    if not get_membership(event.family_id, g.current_user.id):
        return error_response('Not authorized to view this event', 403)
    return success_response(event=event.to_dict(include_attendees=True))


@events_bp.route('/events/<event_id>', methods=['PUT'])
@protect
@validate_with(validate_event_update)
def update_event(event_id):
    event = get_event(event_id)
    if not event:
        return error_response('Event not found', 404)
    if not can_manage_event(event, g.current_user.id):
        return error_response('Not authorized to update this event', 403)

    data = g.body
    start = _parse_date(data['startDate']) if data.get('startDate') else event.start_date
    end = _parse_date(data['endDate']) if data.get('endDate') else event.end_date
    if start and end and end <= start:
        return error_response('End date must be after start date', 400)

    try:
        for field, attribute in UPDATABLE_FIELDS.items():
            if field in data:
                setattr(event, attribute, data[field])
        event.start_date = start
        event.end_date = end
        db.session.commit()
        return success_response(event=event.to_dict())
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Event update failed for {event_id}")
        return server_error_response(e)


@events_bp.route('/events/<event_id>', methods=['DELETE'])
@protect
def delete_event(event_id):
    event = get_event(event_id)
    if not event:
        return error_response('Event not found', 404)
    if not can_manage_event(event, g.current_user.id):
        return error_response('Not authorized to delete this event', 403)

    try:
        delete_events([event.id])
        db.session.commit()
        return success_response(message='Event deleted successfully')
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Event deletion failed for {event_id}")
        return server_error_response(e)


@events_bp.route('/events/<event_id>/attendees', methods=['POST'])
@protect
@validate_with(validate_attendance)
def update_attendance(event_id):
    """RSVP for the caller, or for another participant as creator/admin"""
    event = get_event(event_id)
    if not event:
        return error_response('Event not found', 404)

    caller_id = g.current_user.id
    caller_allowed = get_membership(event.family_id, caller_id) or has_accepted_invitation(event.id, caller_id)
    if not caller_allowed:
        return error_response('Not authorized to respond to this event', 403)

    data = g.body
    target_id = data.get('userId') or caller_id
    if target_id != caller_id:
        if not can_manage_event(event, caller_id):
            return error_response("Not authorized to update other users' attendance", 403)
        if not (get_membership(event.family_id, target_id) or has_accepted_invitation(event.id, target_id)):
            return error_response('User is not a member of this family or invited to this event', 400)

    try:
        attendee = _upsert_attendee(event.id, target_id, data['status'])
        db.session.commit()
        return success_response(attendee=attendee.to_dict(include_user=True))
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Attendance update failed for event {event_id}")
        return server_error_response(e)


@events_bp.route('/events/<event_id>/attendees', methods=['GET'])
@protect
def list_attendees(event_id):
    event = get_event(event_id)
    if not event:
        return error_response('Event not found', 404)
    if not get_membership(event.family_id, g.current_user.id):
        return error_response('Not authorized to view attendees for this event', 403)

    attendees = [attendee.to_dict(include_user=True) for attendee in event.attendees]
    return success_response(count=len(attendees), attendees=attendees)


@events_bp.route('/events/<event_id>/invitations', methods=['POST'])
@protect
@validate_with(validate_invitation)
def invite_user(event_id):
    """Invite a user outside the family to the event"""
    event = get_event(event_id)
    if not event:
        return error_response('Event not found', 404)

    inviter = g.current_user
    if not can_manage_event(event, inviter.id):
        return error_response('Not authorized to invite users to this event', 403)

    data = g.body
    invitee = db.session.get(User, data['userId'])
    if not invitee:
        return error_response('User not found', 404)
    if get_membership(event.family_id, invitee.id):
        return error_response('User is already a member of this family', 400)
    if EventInvitation.query.filter_by(event_id=event.id, user_id=invitee.id).first():
        return error_response('User has already been invited to this event', 400)

    try:
        invitation = EventInvitation(
            event_id=event.id,
            user_id=invitee.id,
            invited_by=inviter.id,
            status='pending',
            message=data.get('message'),
        )
        db.session.add(invitation)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Invitation failed for event {event_id}")
        return server_error_response(e)

    send_event_invitation_email(invitation, event, inviter, invitee)
    return success_response(201, invitation=invitation.to_dict())


@events_bp.route('/events/<event_id>/invitations', methods=['GET'])
@protect
def list_invitations(event_id):
    event = get_event(event_id)
    if not event:
        return error_response('Event not found', 404)
    if not can_manage_event(event, g.current_user.id):
        return error_response('Not authorized to view invitations for this event', 403)

    invitations = EventInvitation.query.filter_by(event_id=event.id).order_by(EventInvitation.created_at).all()
    return success_response(count=len(invitations), invitations=[inv.to_dict() for inv in invitations])


@events_bp.route('/events/<event_id>/invitations/<invitation_id>', methods=['PUT'])
@protect
@validate_with(validate_invitation_response)
def respond_to_invitation(event_id, invitation_id):
    """Invitee accepts or declines; accepting marks them attending"""
    event = get_event(event_id)
    invitation = db.session.get(EventInvitation, invitation_id) if event else None
    if not invitation or invitation.event_id != event.id:
        return error_response('Invitation not found', 404)
    if invitation.user_id != g.current_user.id:
        return error_response('Not authorized to respond to this invitation', 403)

    status = g.body['status']
    try:
        invitation.status = status
        if status == 'accepted':
            _upsert_attendee(event.id, invitation.user_id, 'attending')
        db.session.commit()
        return success_response(invitation=invitation.to_dict())
    except Exception as e:
        db.session.rollback()
        logger.exception(f"Invitation response failed for {invitation_id}")
        return server_error_response(e)
