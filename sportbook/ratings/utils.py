"""
Event ratings.

A profile rates an event once; the rating counts towards the event
instructor's average.
"""

from typing import Optional

import sqlalchemy as sa
from flask import current_app

from sportbook import db
from sportbook.audit import audit_log_create, audit_log_update, audit_log_delete
from sportbook.errors import (
    AlreadyRatedError, AuthenticationRequiredError, EventNotFoundError,
    PermissionDeniedError, RatingNotFoundError, ValidationError
)
from sportbook.models import Event, Profile, Rating
from sportbook.utils import clean_text

MIN_RATING = 1
MAX_RATING = 5


def _require_user(user):
    if user is None or not getattr(user, 'is_authenticated', False):
        raise AuthenticationRequiredError('You must sign in to rate events')


def _check_rating_value(rating):
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError('Rating must be a whole number')
    if rating < MIN_RATING or rating > MAX_RATING:
        raise ValidationError(f'Rating must be between {MIN_RATING} and {MAX_RATING}')


def _clean_comment(comment):
    if comment is None:
        return None
    return clean_text(comment) or None


def refresh_instructor_rating(instructor_id: int):
    """Recalculate an instructor's average rating. Caller commits."""
    instructor = db.session.get(Profile, instructor_id)
    if instructor is None:
        return
    average = db.session.scalar(
        sa.select(sa.func.avg(Rating.rating)).where(Rating.instructor_id == instructor_id)
    )
    instructor.rating = round(float(average), 2) if average is not None else None


def get_own_rating(user: Profile, rating_id: int) -> Rating:
    _require_user(user)
    rating = db.session.get(Rating, rating_id)
    if rating is None:
        raise RatingNotFoundError('Rating not found')
    if rating.user_id != user.id:
        raise PermissionDeniedError('You can only change your own ratings')
    return rating


def create_rating(user: Profile, event_id: int, rating: int, comment: Optional[str] = None) -> Rating:
    """
    Rate an event.

    Raises:
        EventNotFoundError: Event does not exist
        ValidationError: Rating outside 1-5
        AlreadyRatedError: Profile already rated this event
    """
    _require_user(user)
    _check_rating_value(rating)

    event = db.session.get(Event, event_id)
    if event is None:
        raise EventNotFoundError('Event not found')

    existing = db.session.scalar(
        sa.select(Rating).where(Rating.event_id == event_id, Rating.user_id == user.id)
    )
    if existing is not None:
        raise AlreadyRatedError('You have already rated this event')

    new_rating = Rating(
        event_id=event.id,
        user_id=user.id,
        instructor_id=event.instructor_id,
        rating=rating,
        comment=_clean_comment(comment)
    )
    try:
        db.session.add(new_rating)
        db.session.flush()
        refresh_instructor_rating(event.instructor_id)
        db.session.commit()
    except sa.exc.IntegrityError:
        db.session.rollback()
        raise AlreadyRatedError('You have already rated this event')
    except sa.exc.SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error rating event {event_id}: {str(e)}", extra={'user_id': user.id})
        raise

    audit_log_create('Rating', new_rating.id, f'Rated event {event_id}: {rating}', user=user)
    return new_rating


def update_rating(user: Profile, rating_id: int, rating: int, comment: Optional[str] = None) -> Rating:
    """Change the author's own rating and comment."""
    existing = get_own_rating(user, rating_id)
    _check_rating_value(rating)

    changes = {}
    if existing.rating != rating:
        changes['rating'] = (existing.rating, rating)
    new_comment = _clean_comment(comment)
    if existing.comment != new_comment:
        changes['comment'] = (existing.comment, new_comment)

    try:
        existing.rating = rating
        existing.comment = new_comment
        db.session.flush()
        refresh_instructor_rating(existing.instructor_id)
        db.session.commit()
    except sa.exc.SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error updating rating {rating_id}: {str(e)}", extra={'user_id': user.id})
        raise

    if changes:
        audit_log_update('Rating', existing.id, f'Updated rating for event {existing.event_id}',
                         changes, user=user)
    return existing


def delete_rating(user: Profile, rating_id: int) -> bool:
    """Delete the author's own rating."""
    existing = get_own_rating(user, rating_id)
    event_id = existing.event_id
    instructor_id = existing.instructor_id

    try:
        db.session.delete(existing)
        db.session.flush()
        refresh_instructor_rating(instructor_id)
        db.session.commit()
    except sa.exc.SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error deleting rating {rating_id}: {str(e)}", extra={'user_id': user.id})
        raise

    audit_log_delete('Rating', rating_id, f'Deleted rating for event {event_id}', user=user)
    return True


def serialize_rating(rating: Rating):
    return {
        'id': rating.id,
        'event_id': rating.event_id,
        'user_id': rating.user_id,
        'instructor_id': rating.instructor_id,
        'rating': rating.rating,
        'comment': rating.comment,
        'created_at': rating.created_at.isoformat(),
    }
