"""
Utility functions for event creation: validation and recurring events.
"""

import math
from datetime import datetime, date, time, timedelta
from typing import NamedTuple, Optional, Dict, Any

import sqlalchemy as sa
from flask import current_app

from sportbook import db
from sportbook.audit import audit_log_create
from sportbook.errors import PermissionDeniedError, ValidationError
from sportbook.models import Event, Profile
from sportbook.utils import add_months, parse_datetime, clean_text

REQUIRED_EVENT_FIELDS = [
    'title', 'description', 'activity_type', 'difficulty',
    'date', 'duration', 'location', 'latitude', 'longitude',
    'max_participants'
]


class ValidationResult(NamedTuple):
    is_valid: bool
    error: Optional[str] = None

    def to_dict(self):
        return {'is_valid': self.is_valid, 'error': self.error}


def _to_number(value, cast=float):
    """Cast to a finite number, or None."""
    try:
        number = cast(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def validate_event(data: Dict[str, Any], now: Optional[datetime] = None) -> ValidationResult:
    """
    Check event data before it is written.

    Never raises; the first problem found is reported.

    Args:
        data: Event fields as submitted
        now: Reference time for the future-date check

    Returns:
        ValidationResult(is_valid, error)
    """
    now = now or datetime.utcnow()

    for field in REQUIRED_EVENT_FIELDS:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            return ValidationResult(False, f'The field {field} is required')

    activity_types = current_app.config.get('ACTIVITY_TYPES', {}).values()
    if data['activity_type'] not in activity_types:
        return ValidationResult(False, 'Invalid activity type')

    difficulty_levels = current_app.config.get('DIFFICULTY_LEVELS', {}).values()
    if data['difficulty'] not in difficulty_levels:
        return ValidationResult(False, 'Invalid difficulty level')

    event_date = parse_datetime(data['date'])
    if event_date is None:
        return ValidationResult(False, 'Invalid event date')
    if event_date < now:
        return ValidationResult(False, 'The event date must be in the future')

    latitude = _to_number(data['latitude'])
    longitude = _to_number(data['longitude'])
    if latitude is None or longitude is None or not (-90 <= latitude <= 90) or not (-180 <= longitude <= 180):
        return ValidationResult(False, 'Invalid coordinates')

    if data.get('price') not in (None, ''):
        price = _to_number(data['price'])
        if price is None:
            return ValidationResult(False, 'Invalid price')
        if price < 0:
            return ValidationResult(False, 'The price cannot be negative')

    max_participants = _to_number(data['max_participants'], int)
    if max_participants is None or max_participants < 1:
        return ValidationResult(False, 'There must be at least one participant')

    duration = _to_number(data['duration'], int)
    if duration is None or duration < 1:
        return ValidationResult(False, 'The duration must be at least one minute')

    requirements = data.get('requirements')
    if requirements is not None and not isinstance(requirements, list):
        return ValidationResult(False, 'Requirements must be a list')

    return ValidationResult(True)


def parse_recurrence_end(value) -> Optional[datetime]:
    """
    Parse a recurrence end date.

    A bare date covers the whole day, so events later on that day are included.
    """
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return parse_datetime(value)
    if isinstance(value, date):
        return datetime.combine(value, time.max)
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            return datetime.combine(date.fromisoformat(value.strip()), time.max)
        except ValueError:
            return None
    return parse_datetime(value)


def next_occurrence(start: datetime, recurrence_type: str, index: int) -> datetime:
    """Date of the ``index``-th occurrence counted from ``start``."""
    if recurrence_type == 'daily':
        return start + timedelta(days=index)
    if recurrence_type == 'weekly':
        return start + timedelta(weeks=index)
    if recurrence_type == 'monthly':
        # Counted from the start so a 31st does not drift to the 28th
        return add_months(start, index)
    raise ValueError(f"Unknown recurrence type: {recurrence_type}")


def generate_recurring_events(base_event: Dict[str, Any], recurrence: Optional[Dict[str, Any]],
                              max_occurrences: Optional[int] = None) -> list[Dict[str, Any]]:
    """
    Expand an event template into one copy per occurrence.

    Args:
        base_event: Event fields; 'date' must be a datetime
        recurrence: {'type': 'none'|'daily'|'weekly'|'monthly', 'end_date': ...}
        max_occurrences: Upper bound on generated events

    Returns:
        List of event field dictionaries, earliest first

    Raises:
        ValidationError: Unknown type, missing or early end date, or too many occurrences
    """
    recurrence = recurrence or {}
    if not isinstance(recurrence, dict):
        raise ValidationError('Recurrence must be an object with type and end_date')
    recurrence_type = recurrence.get('type') or 'none'
    if max_occurrences is None:
        max_occurrences = current_app.config.get('MAX_RECURRING_EVENTS', 366)

    if recurrence_type == 'none':
        return [dict(base_event)]

    if recurrence_type not in ('daily', 'weekly', 'monthly'):
        raise ValidationError(f'Invalid recurrence type: {recurrence_type}')

    end_date = parse_recurrence_end(recurrence.get('end_date'))
    if end_date is None:
        raise ValidationError('Recurring events need an end date')

    start = base_event['date']
    if end_date < start:
        raise ValidationError('The recurrence end date cannot be before the event date')

    events = []
    index = 0
    current = start
    while current <= end_date:
        if len(events) >= max_occurrences:
            raise ValidationError(f'Recurrence would create more than {max_occurrences} events')
        events.append({**base_event, 'date': current})
        index += 1
        current = next_occurrence(start, recurrence_type, index)

    return events


def build_event_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert validated request data into Event column values."""
    price = data.get('price')
    return {
        'title': clean_text(data['title']),
        'description': clean_text(data['description']),
        'activity_type': data['activity_type'],
        'difficulty': data['difficulty'],
        'date': parse_datetime(data['date']),
        'duration': int(data['duration']),
        'location': clean_text(data['location']),
        'latitude': float(data['latitude']),
        'longitude': float(data['longitude']),
        'price': float(price) if price not in (None, '') else None,
        'max_participants': int(data['max_participants']),
        'requirements': [clean_text(item) for item in data.get('requirements') or []],
        'image_url': data.get('image_url') or None,
    }


def create_event(instructor: Profile, data: Dict[str, Any], now: Optional[datetime] = None) -> list[Event]:
    """
    Create an event, or one event per occurrence when it recurs.

    All occurrences are written in a single commit.

    Args:
        instructor: Profile creating the event
        data: Event fields plus an optional 'recurrence' descriptor

    Returns:
        List of created Event instances

    Raises:
        PermissionDeniedError: Profile is not an instructor
        ValidationError: Data failed validation or recurrence is invalid
    """
    if not instructor.is_instructor:
        raise PermissionDeniedError('Only instructors can create events')

    current_app.logger.info('Creating new event', extra={'data': {'title': data.get('title')}})

    result = validate_event(data, now)
    if not result.is_valid:
        current_app.logger.warning(f"Event validation failed: {result.error}")
        raise ValidationError(result.error)

    base_event = build_event_fields(data)
    base_event['instructor_id'] = instructor.id
    occurrences = generate_recurring_events(base_event, data.get('recurrence'))

    events = [Event(**fields) for fields in occurrences]
    try:
        db.session.add_all(events)
        instructor.total_events = (instructor.total_events or 0) + len(events)
        db.session.commit()
    except sa.exc.SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error creating event in database: {str(e)}")
        raise

    for event in events:
        audit_log_create('Event', event.id, f'Created event: {event.title} on {event.date.isoformat()}',
                         user=instructor)

    current_app.logger.info('Event created successfully',
                            extra={'data': {'event_ids': [event.id for event in events]}})
    return events
