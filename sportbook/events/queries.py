"""
Event search query composition.

Filters are translated into a single SQLAlchemy ``select()`` so matching,
ordering and range checks are all done by the database.
"""

import math
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

import sqlalchemy as sa
import sqlalchemy.orm as so
from flask import current_app

from sportbook import db
from sportbook.errors import EventNotFoundError
from sportbook.events.filters import EventFilters
from sportbook.models import Event, EventRegistration, Rating
from sportbook.utils import add_months

KM_PER_DEGREE = 111

# Keeps the longitude span finite at the poles
MIN_COS_LATITUDE = 0.01


def search_terms(search: Optional[str]) -> list[str]:
    """Lower-cased whitespace separated search tokens."""
    if not search:
        return []
    return search.lower().split()


def price_range_clause(price_range: Optional[str]):
    """SQL predicate for a price bucket; None for an unknown bucket."""
    if price_range == 'free':
        return sa.or_(Event.price.is_(None), Event.price == 0)
    if price_range == '0-10':
        return sa.and_(Event.price > 0, Event.price <= 10)
    if price_range == '10-20':
        return sa.and_(Event.price > 10, Event.price <= 20)
    if price_range == '20+':
        return Event.price > 20
    return None


def date_range_bounds(date_range: Optional[str], now: datetime) -> Optional[tuple[datetime, datetime]]:
    """
    Half-open [start, end) window for a date bucket, relative to ``now``.

    Args:
        date_range: 'today', 'tomorrow', 'week' or 'month'
        now: Reference time

    Returns:
        Tuple of (start, end) or None for an unknown bucket
    """
    tomorrow = now + timedelta(days=1)
    if date_range == 'today':
        return now, tomorrow
    if date_range == 'tomorrow':
        return tomorrow, tomorrow + timedelta(days=1)
    if date_range == 'week':
        return now, now + timedelta(days=7)
    if date_range == 'month':
        return now, add_months(now, 1)
    return None


def bounding_box(latitude: float, longitude: float, radius_km: float) -> Dict[str, float]:
    """
    Approximate a radius search as a latitude/longitude box.

    One degree of latitude is taken as 111 km; the longitude span is widened
    by 1/cos(latitude).
    """
    lat_diff = radius_km / KM_PER_DEGREE
    cos_lat = max(math.cos(math.radians(latitude)), MIN_COS_LATITUDE)
    lon_diff = radius_km / (KM_PER_DEGREE * cos_lat)
    return {
        'min_lat': max(latitude - lat_diff, -90.0),
        'max_lat': min(latitude + lat_diff, 90.0),
        'min_lon': max(longitude - lon_diff, -180.0),
        'max_lon': min(longitude + lon_diff, 180.0),
    }


def build_events_query(filters: Optional[EventFilters] = None, now: Optional[datetime] = None):
    """
    Build the event search statement for a filter selection.

    Only events starting at or after ``now`` are returned, earliest first.

    Args:
        filters: EventFilters instance (None means no filtering)
        now: Reference time, defaults to the current UTC time

    Returns:
        SQLAlchemy Select over Event
    """
    filters = filters or EventFilters()
    now = now or datetime.utcnow()

    query = sa.select(Event).options(so.selectinload(Event.registrations))

    for term in search_terms(filters.search):
        pattern = f'%{term}%'
        query = query.where(sa.or_(
            Event.title.ilike(pattern),
            Event.description.ilike(pattern),
            Event.location.ilike(pattern)
        ))

    if filters.activity_type:
        query = query.where(Event.activity_type == filters.activity_type)

    if filters.difficulty:
        query = query.where(Event.difficulty == filters.difficulty)

    price_clause = price_range_clause(filters.price_range)
    if price_clause is not None:
        query = query.where(price_clause)

    bounds = date_range_bounds(filters.date_range, now)
    if bounds:
        start, end = bounds
        query = query.where(Event.date >= start, Event.date < end)

    if filters.location:
        box = bounding_box(filters.location['latitude'],
                           filters.location['longitude'],
                           filters.location['radius'])
        query = query.where(
            Event.latitude >= box['min_lat'],
            Event.latitude <= box['max_lat'],
            Event.longitude >= box['min_lon'],
            Event.longitude <= box['max_lon']
        )

    return query.where(Event.date >= now).order_by(Event.date.asc(), Event.id.asc())


def get_events(filters: Optional[EventFilters] = None, now: Optional[datetime] = None) -> list[Event]:
    """
    Run the event search.

    Database errors are logged and re-raised.
    """
    filters = filters or EventFilters()
    current_app.logger.info('Fetching events with filters', extra={'data': filters.to_dict()})

    try:
        events = db.session.scalars(build_events_query(filters, now)).all()
    except sa.exc.SQLAlchemyError as e:
        current_app.logger.error(f"Error fetching events: {str(e)}", extra={'data': filters.to_dict()})
        raise

    current_app.logger.info('Events fetched successfully', extra={'data': {'count': len(events)}})
    return events


def get_event_by_id(event_id: int) -> Event:
    """
    Load a single event with its instructor, registrations and ratings.

    Raises:
        EventNotFoundError: No event with this id
    """
    event = db.session.scalar(
        sa.select(Event)
        .where(Event.id == event_id)
        .options(
            so.joinedload(Event.instructor),
            so.selectinload(Event.registrations),
            so.selectinload(Event.ratings).joinedload(Rating.user)
        )
    )
    if event is None:
        raise EventNotFoundError('Event not found')
    return event


def serialize_event(event: Event, detail: bool = False) -> Dict[str, Any]:
    """Format an event for the JSON API"""
    data = {
        'id': event.id,
        'instructor_id': event.instructor_id,
        'title': event.title,
        'description': event.description,
        'activity_type': event.activity_type,
        'difficulty': event.difficulty,
        'date': event.date.isoformat(),
        'duration': event.duration,
        'location': event.location,
        'latitude': event.latitude,
        'longitude': event.longitude,
        'price': event.price,
        'max_participants': event.max_participants,
        'participants': event.get_participant_count(),
        'is_free': event.is_free,
        'is_full': event.is_full(),
        'requirements': event.requirements or [],
        'image_url': event.image_url,
        'created_at': event.created_at.isoformat() if event.created_at else None,
        'updated_at': event.updated_at.isoformat() if event.updated_at else None,
    }

    if detail:
        data['activity_type_name'] = event.get_activity_type_name()
        instructor = event.instructor
        data['instructor'] = {
            'name': instructor.name,
            'rating': instructor.rating,
            'total_events': instructor.total_events,
            'bio': instructor.bio,
            'experience_years': instructor.experience_years,
            'certifications': instructor.certifications or [],
        } if instructor else None
        data['registrations'] = [
            {'user_id': reg.user_id, 'status': reg.status}
            for reg in event.registrations
        ]
        data['ratings'] = [
            {
                'rating': rating.rating,
                'comment': rating.comment,
                'user': {'name': rating.user.name} if rating.user else None,
            }
            for rating in event.ratings
        ]

    return data
