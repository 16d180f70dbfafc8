"""
Event filter state.

The current filter selection is a small key/value store kept per browser
session (the Flask ``session`` cookie), so two users never share filters.
"""

from typing import Any, Dict, Optional
from flask import current_app

SESSION_KEY = 'event_filters'


class EventFilters:
    """Filter selection consumed by the event query builder."""

    FIELDS = ('search', 'activity_type', 'difficulty', 'price_range', 'date_range', 'location')

    def __init__(self, search: str = '', activity_type: Optional[str] = None,
                 difficulty: Optional[str] = None, price_range: Optional[str] = None,
                 date_range: Optional[str] = None, location: Optional[Dict[str, float]] = None):
        self.search = search or ''
        self.activity_type = activity_type
        self.difficulty = difficulty
        self.price_range = price_range
        self.date_range = date_range
        self.location = location

    def __repr__(self):
        return f"<EventFilters {self.to_dict()}>"

    def __eq__(self, other):
        if not isinstance(other, EventFilters):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def _set(self, field: str, value: Any):
        current_app.logger.info(f"Setting {field} filter", extra={'data': {field: value}})
        setattr(self, field, value)

    def set_search(self, search: str):
        self._set('search', search or '')

    def set_activity_type(self, activity_type: Optional[str]):
        self._set('activity_type', activity_type)

    def set_difficulty(self, difficulty: Optional[str]):
        self._set('difficulty', difficulty)

    def set_price_range(self, price_range: Optional[str]):
        self._set('price_range', price_range)

    def set_date_range(self, date_range: Optional[str]):
        self._set('date_range', date_range)

    def set_location(self, location: Optional[Dict[str, float]]):
        self._set('location', location)

    def reset(self):
        current_app.logger.info('Resetting all filters')
        self.search = ''
        self.activity_type = None
        self.difficulty = None
        self.price_range = None
        self.date_range = None
        self.location = None

    def is_empty(self) -> bool:
        return not self.search and all(getattr(self, field) is None for field in self.FIELDS[1:])

    def to_dict(self) -> Dict[str, Any]:
        return {field: getattr(self, field) for field in self.FIELDS}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'EventFilters':
        data = data or {}
        return cls(**{field: data.get(field) for field in cls.FIELDS})

    def update(self, data: Dict[str, Any]):
        """Apply the given keys through their setters."""
        for field in self.FIELDS:
            if field in data:
                getattr(self, f'set_{field}')(data[field])


def load_filters(session) -> EventFilters:
    return EventFilters.from_dict(session.get(SESSION_KEY))


def save_filters(session, filters: EventFilters):
    session[SESSION_KEY] = filters.to_dict()


def clear_filters(session) -> EventFilters:
    filters = load_filters(session)
    filters.reset()
    session.pop(SESSION_KEY, None)
    return filters
