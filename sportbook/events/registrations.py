"""
Event registration lifecycle: register, cancel, list.

Every function takes the acting profile explicitly.
"""

import sqlalchemy as sa
import sqlalchemy.orm as so
from flask import current_app

from sportbook import db
from sportbook.audit import audit_log_create, audit_log_delete
from sportbook.errors import (
    AlreadyRegisteredError, AuthenticationRequiredError, EventFullError,
    EventNotFoundError, RegistrationNotFoundError
)
from sportbook.models import Event, EventRegistration, Profile


def _require_user(user):
    if user is None or not getattr(user, 'is_authenticated', False):
        raise AuthenticationRequiredError('You must sign in to manage event registrations')


def count_active_registrations(event_id: int) -> int:
    """Number of registrations holding a seat on the event."""
    return db.session.scalar(
        sa.select(sa.func.count(EventRegistration.id))
        .where(EventRegistration.event_id == event_id,
               EventRegistration.status != 'cancelled')
    ) or 0


def get_registration(event_id: int, user_id: int):
    return db.session.scalar(
        sa.select(EventRegistration)
        .where(EventRegistration.event_id == event_id,
               EventRegistration.user_id == user_id)
    )


def register_for_event(user: Profile, event_id: int) -> EventRegistration:
    """
    Register a profile for an event.

    The event row is read FOR UPDATE (where supported) so concurrent
    registrations queue behind the capacity check, and the
    (event_id, user_id) unique constraint rejects a concurrent duplicate.

    Raises:
        AuthenticationRequiredError: No signed-in profile
        EventNotFoundError: Event does not exist
        EventFullError: Event is at max_participants
        AlreadyRegisteredError: Profile already holds a registration
    """
    _require_user(user)

    event = db.session.scalar(
        sa.select(Event).where(Event.id == event_id).with_for_update()
    )
    if event is None:
        db.session.rollback()
        raise EventNotFoundError('The event does not exist')

    if count_active_registrations(event_id) >= event.max_participants:
        db.session.rollback()
        current_app.logger.info(f"Registration rejected, event {event_id} is full",
                                extra={'user_id': user.id})
        raise EventFullError('The event is full')

    if get_registration(event_id, user.id) is not None:
        db.session.rollback()
        raise AlreadyRegisteredError('You are already registered for this event')

    registration = EventRegistration(event_id=event_id, user_id=user.id, status='confirmed')
    db.session.add(registration)
    try:
        db.session.commit()
    except sa.exc.IntegrityError:
        db.session.rollback()
        raise AlreadyRegisteredError('You are already registered for this event')
    except sa.exc.SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error registering for event {event_id}: {str(e)}",
                                 extra={'user_id': user.id})
        raise

    audit_log_create('EventRegistration', registration.id,
                     f'Registered for event {event_id}', user=user)
    current_app.logger.info('Successfully registered for event',
                            extra={'data': {'event_id': event_id}, 'user_id': user.id})
    return registration


def cancel_registration(user: Profile, event_id: int) -> bool:
    """
    Remove a profile's registration for an event.

    Raises:
        AuthenticationRequiredError: No signed-in profile
        RegistrationNotFoundError: Nothing to cancel; no write is made
    """
    if user is None or not getattr(user, 'is_authenticated', False):
        current_app.logger.error('Attempted to cancel registration without authentication')
        raise AuthenticationRequiredError('You must sign in to manage event registrations')

    current_app.logger.info('Cancelling registration',
                            extra={'data': {'event_id': event_id}, 'user_id': user.id})

    try:
        result = db.session.execute(
            sa.delete(EventRegistration)
            .where(EventRegistration.event_id == event_id,
                   EventRegistration.user_id == user.id)
            .execution_options(synchronize_session='fetch')
        )
        deleted = result.rowcount
        if not deleted:
            db.session.rollback()
            current_app.logger.error('No registration found to cancel',
                                     extra={'data': {'event_id': event_id}, 'user_id': user.id})
            raise RegistrationNotFoundError('No registration found to cancel')
        db.session.commit()
    except sa.exc.SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error cancelling registration for event {event_id}: {str(e)}",
                                 extra={'user_id': user.id})
        raise

    audit_log_delete('EventRegistration', f'{event_id}/{user.id}',
                     f'Cancelled registration for event {event_id}', user=user)
    current_app.logger.info('Registration cancelled successfully',
                            extra={'data': {'event_id': event_id}, 'user_id': user.id})
    return True


def get_registered_events(user: Profile) -> list[Event]:
    """Events the profile holds a confirmed registration for, earliest first."""
    _require_user(user)
    return db.session.scalars(
        sa.select(Event)
        .join(EventRegistration, EventRegistration.event_id == Event.id)
        .where(EventRegistration.user_id == user.id,
               EventRegistration.status == 'confirmed')
        .options(so.selectinload(Event.registrations))
        .order_by(Event.date.asc())
    ).all()
