"""
Email Notifications

Flask-Mail instance plus the event invitation email. Delivery is best
effort: failures are logged and reported as False, never raised.
"""

from flask import current_app
from flask_mail import Mail, Message
from markupsafe import escape

mail = Mail()


def send_event_invitation_email(invitation, event, inviter, invitee):
    """Send event invitation email to the invitee"""
    start = event.start_date.strftime('%B %d, %Y %H:%M') if event.start_date else 'TBD'
    msg = Message(
        f'{inviter.first_name} invited you to {event.title} - KINNECT',
        recipients=[invitee.email],
        sender=current_app.config.get('MAIL_DEFAULT_SENDER'),
    )
    msg.body = (
        f"Hi {invitee.first_name},\n\n"
        f"{inviter.full_name} invited you to \"{event.title}\" on {start}.\n"
        + (f"\n{invitation.message}\n" if invitation.message else "")
        + "\nOpen KINNECT to accept or decline the invitation.\n"
    )
    msg.html = f"""
    <html>
        <body>
            <h2>You're invited to {escape(event.title)}</h2>
            <p>{escape(inviter.full_name)} invited you to an event on {start}.</p>
            {f'<p>{escape(invitation.message)}</p>' if invitation.message else ''}
            <p>Open KINNECT to accept or decline the invitation.</p>
        </body>
    </html>
    """

    try:
        mail.send(msg)
        current_app.logger.info(f"Sent event invitation email to {invitee.email} for event {event.id}")
        return True
    except Exception as e:
        current_app.logger.error(f"Failed to send event invitation email: {e}")
        return False
