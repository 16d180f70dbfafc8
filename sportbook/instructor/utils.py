"""
Instructor-side event management.

Every function receives the acting instructor explicitly and only works on
that instructor's own events.
"""

from datetime import datetime
from typing import Optional, Dict, Any

import sqlalchemy as sa
import sqlalchemy.orm as so
from flask import current_app

from sportbook import db
from sportbook.audit import (
    audit_log_create, audit_log_update, audit_log_delete,
    audit_log_bulk_operation, audit_log_security_event, get_model_changes
)
from sportbook.errors import (
    EventNotFoundError, PermissionDeniedError, ValidationError
)
from sportbook.events.utils import validate_event, build_event_fields
from sportbook.models import (
    Event, EventCancellation, EventChange, EventMessage, EventRegistration, Profile
)
from sportbook.ratings.utils import refresh_instructor_rating
from sportbook.utils import clean_text

INSTRUCTOR_MESSAGE_TYPES = ['general', 'change_notification', 'private']


def get_owned_event(instructor: Profile, event_id: int) -> Event:
    """
    Load an event and check the instructor owns it.

    Raises:
        EventNotFoundError: Event does not exist
        PermissionDeniedError: Event belongs to another instructor
    """
    event = db.session.get(Event, event_id)
    if event is None:
        raise EventNotFoundError('Event not found')
    if event.instructor_id != instructor.id:
        audit_log_security_event('ACCESS_DENIED',
                                 f'Attempt to manage event {event_id} owned by another instructor',
                                 user=instructor)
        raise PermissionDeniedError('You can only manage your own events')
    return event


def get_instructor_events(instructor: Profile) -> list[Event]:
    """All of the instructor's events with their registrations, earliest first."""
    current_app.logger.info('Fetching instructor events', extra={'data': {'instructor_id': instructor.id}})
    return db.session.scalars(
        sa.select(Event)
        .where(Event.instructor_id == instructor.id)
        .options(so.selectinload(Event.registrations).joinedload(EventRegistration.user))
        .order_by(Event.date.asc(), Event.id.asc())
    ).all()


def update_event(instructor: Profile, event_id: int, changes: Dict[str, Any]):
    """
    Apply an instructor's edit to an event.

    An EventChange record of the submitted values is stored alongside the update.

    Args:
        instructor: Owning instructor
        event_id: Event to change
        changes: Field values to change (only editable fields)

    Returns:
        Tuple of (event, change)

    Raises:
        ValidationError: Unknown fields, no changes, or the result is invalid
    """
    current_app.logger.info('Updating event', extra={'data': {'event_id': event_id, 'fields': sorted(changes)}})
    event = get_owned_event(instructor, event_id)

    editable = current_app.config.get('EDITABLE_EVENT_FIELDS', [])
    unknown = sorted(set(changes) - set(editable))
    if unknown:
        raise ValidationError(f"Fields cannot be changed: {', '.join(unknown)}")
    if not changes:
        raise ValidationError('No changes provided')

    # Validate the event as it would look after the change
    proposed = {field: getattr(event, field) for field in editable}
    proposed.update(changes)
    result = validate_event(proposed)
    if not result.is_valid:
        raise ValidationError(result.error)

    new_values = {field: value for field, value in build_event_fields(proposed).items() if field in changes}
    if new_values.get('max_participants') is not None and \
            new_values['max_participants'] < event.get_participant_count():
        raise ValidationError('Max participants cannot be lower than the current number of participants')

    old_values = get_model_changes(event, new_values)

    try:
        change = EventChange(
            event_id=event.id,
            instructor_id=instructor.id,
            changes={key: (value.isoformat() if isinstance(value, datetime) else value)
                     for key, value in new_values.items()},
            status='pending'
        )
        db.session.add(change)
        db.session.flush()

        for field, value in new_values.items():
            setattr(event, field, value)
        db.session.commit()
    except sa.exc.SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating event {event_id}: {str(e)}")
        raise

    audit_log_update('Event', event.id, f'Updated event: {event.title}', old_values, user=instructor)
    return event, change


def send_event_message(instructor: Profile, event_id: int, message: str,
                       type: str = 'general', to_user_id: Optional[int] = None) -> EventMessage:
    """
    Send a message to an event's participants, or to one participant.

    Raises:
        ValidationError: Empty message, unknown type, or private without recipient
    """
    current_app.logger.info('Sending event message', extra={'data': {'event_id': event_id, 'type': type}})
    event = get_owned_event(instructor, event_id)

    body = clean_text(message)
    if not body:
        raise ValidationError('Message cannot be empty')
    if type not in INSTRUCTOR_MESSAGE_TYPES:
        raise ValidationError(f'Invalid message type: {type}')
    if type == 'private' and to_user_id is None:
        raise ValidationError('Private messages need a recipient')
    if to_user_id is not None and db.session.get(Profile, to_user_id) is None:
        raise ValidationError('Recipient not found')

    event_message = EventMessage(
        event_id=event.id,
        from_id=instructor.id,
        to_id=to_user_id,
        instructor_id=instructor.id,
        message=body,
        type=type
    )
    try:
        db.session.add(event_message)
        db.session.commit()
    except sa.exc.SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error sending message for event {event_id}: {str(e)}")
        raise

    audit_log_create('EventMessage', event_message.id, f'Sent {type} message for event {event_id}',
                     user=instructor)
    return event_message


def get_event_messages(instructor: Profile, event_id: int) -> list[EventMessage]:
    """Messages for one of the instructor's events, newest first."""
    get_owned_event(instructor, event_id)
    return db.session.scalars(
        sa.select(EventMessage)
        .where(EventMessage.event_id == event_id)
        .options(so.joinedload(EventMessage.instructor))
        .order_by(EventMessage.sent_at.desc(), EventMessage.id.desc())
    ).all()


# Event cancellation
#
# Cancelling runs as three separately committed steps. The EventCancellation
# row records the last completed step, and every step is safe to repeat, so
# calling cancel_event again after a failure resumes where it stopped.

def _send_cancellation_messages(cancellation: EventCancellation, event: Optional[Event], instructor: Profile):
    already_sent = db.session.scalar(
        sa.select(sa.func.count(EventMessage.id))
        .where(EventMessage.event_id == cancellation.event_id,
               EventMessage.type == 'cancellation')
    )
    if not already_sent and event is not None:
        participant_ids = [reg.user_id for reg in event.registrations if reg.status == 'confirmed']
        # One row per participant so each notice survives the event row
        recipients = participant_ids or [None]
        for recipient_id in recipients:
            db.session.add(EventMessage(
                event_id=cancellation.event_id,
                from_id=cancellation.instructor_id,
                to_id=recipient_id,
                instructor_id=cancellation.instructor_id,
                message=cancellation.message,
                type='cancellation'
            ))
    cancellation.step = 'message_sent'
    db.session.commit()


def _cancel_registrations(cancellation: EventCancellation, event: Optional[Event], instructor: Profile):
    result = db.session.execute(
        sa.update(EventRegistration)
        .where(EventRegistration.event_id == cancellation.event_id)
        .values(status='cancelled')
        .execution_options(synchronize_session='fetch')
    )
    cancellation.step = 'registrations_cancelled'
    db.session.commit()
    audit_log_bulk_operation('BULK_UPDATE', 'EventRegistration', result.rowcount,
                             f'Cancelled registrations for event {cancellation.event_id}', user=instructor)


def _delete_event(cancellation: EventCancellation, event: Optional[Event], instructor: Profile):
    event = db.session.get(Event, cancellation.event_id)
    if event is not None:
        # Detach messages so they are kept when the event row goes
        db.session.execute(
            sa.update(EventMessage)
            .where(EventMessage.event_id == event.id)
            .values(event_id=None)
            .execution_options(synchronize_session='fetch')
        )
        db.session.delete(event)
        db.session.flush()
        # The event's ratings went with it
        refresh_instructor_rating(cancellation.instructor_id)
        owner = db.session.get(Profile, cancellation.instructor_id)
        if owner is not None:
            owner.total_events = max((owner.total_events or 0) - 1, 0)
    cancellation.step = 'completed'
    cancellation.completed_at = datetime.utcnow()
    db.session.commit()
    audit_log_delete('Event', cancellation.event_id, 'Deleted cancelled event', user=instructor)


CANCELLATION_STEPS = [
    ('message_sent', _send_cancellation_messages),
    ('registrations_cancelled', _cancel_registrations),
    ('completed', _delete_event),
]


def get_pending_cancellation(event_id: int) -> Optional[EventCancellation]:
    return db.session.scalar(
        sa.select(EventCancellation)
        .where(EventCancellation.event_id == event_id,
               EventCancellation.step != 'completed')
        .order_by(EventCancellation.id.desc())
    )


def cancel_event(instructor: Profile, event_id: int, message: str) -> EventCancellation:
    """
    Cancel an event: notify participants, cancel registrations, delete the event.

    A failed step raises and leaves the earlier steps committed; calling
    again resumes from the recorded step.

    Returns:
        The completed EventCancellation record
    """
    current_app.logger.info('Cancelling event', extra={'data': {'event_id': event_id}})

    cancellation = get_pending_cancellation(event_id)
    if cancellation is None:
        event = get_owned_event(instructor, event_id)
        body = clean_text(message)
        if not body:
            raise ValidationError('A cancellation message is required')
        cancellation = EventCancellation(event_id=event.id, instructor_id=instructor.id,
                                         message=body, step='pending')
        db.session.add(cancellation)
        db.session.commit()
    else:
        if cancellation.instructor_id != instructor.id:
            raise PermissionDeniedError('You can only manage your own events')
        current_app.logger.info(f"Resuming cancellation of event {event_id} from step '{cancellation.step}'")
        event = db.session.get(Event, event_id)

    for step, run_step in CANCELLATION_STEPS:
        if cancellation.has_reached(step):
            continue
        try:
            run_step(cancellation, event, instructor)
        except sa.exc.SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Error cancelling event {event_id} at step '{step}': {str(e)}",
                                     extra={'data': {'event_id': event_id, 'step': step}})
            raise

    current_app.logger.info('Event cancelled', extra={'data': {'event_id': event_id}})
    return cancellation
