"""
Participant-side messaging: inbox, read receipts and replies.
"""

from typing import Dict, Any

import sqlalchemy as sa
import sqlalchemy.orm as so
from flask import current_app

from sportbook import db
from sportbook.audit import audit_log_create, audit_log_update
from sportbook.errors import (
    AuthenticationRequiredError, MessageNotFoundError, PermissionDeniedError, ValidationError
)
from sportbook.models import EventMessage, EventRegistration, Profile
from sportbook.utils import clean_text


def _require_user(user):
    if user is None or not getattr(user, 'is_authenticated', False):
        raise AuthenticationRequiredError('You must sign in to read messages')


def _confirmed_event_ids(user_id: int):
    return (
        sa.select(EventRegistration.event_id)
        .where(EventRegistration.user_id == user_id,
               EventRegistration.status == 'confirmed')
    )


def get_user_messages(user: Profile) -> list[EventMessage]:
    """
    Messages addressed to the profile plus general messages for events
    it holds a confirmed registration for, newest first.
    """
    _require_user(user)
    current_app.logger.info('Fetching user messages', extra={'user_id': user.id})

    return db.session.scalars(
        sa.select(EventMessage)
        .where(sa.or_(
            EventMessage.to_id == user.id,
            sa.and_(
                EventMessage.to_id.is_(None),
                EventMessage.type == 'general',
                EventMessage.event_id.in_(_confirmed_event_ids(user.id))
            )
        ))
        .options(so.joinedload(EventMessage.event),
                 so.joinedload(EventMessage.instructor))
        .order_by(EventMessage.sent_at.desc(), EventMessage.id.desc())
    ).all()


def can_read_message(user: Profile, message: EventMessage) -> bool:
    """True when the profile is the recipient or in a broadcast's audience."""
    if message.to_id is not None:
        return message.to_id == user.id
    if message.event_id is None:
        return False
    return db.session.scalar(
        sa.select(sa.func.count(EventRegistration.id))
        .where(EventRegistration.event_id == message.event_id,
               EventRegistration.user_id == user.id,
               EventRegistration.status == 'confirmed')
    ) > 0


def get_readable_message(user: Profile, message_id: int) -> EventMessage:
    _require_user(user)
    message = db.session.get(EventMessage, message_id)
    if message is None:
        raise MessageNotFoundError('Message not found')
    if not can_read_message(user, message):
        current_app.logger.warning(f"Profile {user.id} attempted to access message {message_id}")
        raise PermissionDeniedError('You cannot access this message')
    return message


def mark_message_as_read(user: Profile, message_id: int) -> EventMessage:
    """Set a message's status to 'read'."""
    message = get_readable_message(user, message_id)
    if message.status == 'read':
        return message

    old_status = message.status
    try:
        message.status = 'read'
        db.session.commit()
    except sa.exc.SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error marking message {message_id} as read: {str(e)}",
                                 extra={'user_id': user.id})
        raise

    audit_log_update('EventMessage', message.id, 'Marked message as read',
                     {'status': (old_status, 'read')}, user=user)
    return message


def reply_to_message(user: Profile, message_id: int, reply: str) -> EventMessage:
    """
    Reply privately to the sender of a message.

    The reply keeps the original event and instructor and points back to the
    original through parent_id.
    """
    original = get_readable_message(user, message_id)

    body = clean_text(reply)
    if not body:
        raise ValidationError('Reply cannot be empty')

    response = EventMessage(
        event_id=original.event_id,
        from_id=user.id,
        to_id=original.from_id if original.from_id is not None else original.instructor_id,
        instructor_id=original.instructor_id,
        message=body,
        type='private',
        parent_id=original.id
    )
    try:
        db.session.add(response)
        db.session.commit()
    except sa.exc.SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error replying to message {message_id}: {str(e)}",
                                 extra={'user_id': user.id})
        raise

    audit_log_create('EventMessage', response.id, f'Replied to message {message_id}', user=user)
    current_app.logger.info('Reply sent', extra={'data': {'parent_id': message_id}, 'user_id': user.id})
    return response


def serialize_message(message: EventMessage) -> Dict[str, Any]:
    """Format a message for the JSON API"""
    return {
        'id': message.id,
        'event_id': message.event_id,
        'event_title': message.event.title if message.event else None,
        'from_id': message.from_id,
        'to_id': message.to_id,
        'instructor_id': message.instructor_id,
        'instructor_name': message.instructor.name if message.instructor else None,
        'message': message.message,
        'type': message.type,
        'status': message.status,
        'parent_id': message.parent_id,
        'sent_at': message.sent_at.isoformat(),
    }
