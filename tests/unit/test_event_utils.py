"""
Unit tests for event validation, recurrence expansion and creation.
"""
import pytest
from datetime import datetime
from unittest.mock import patch
import sqlalchemy as sa
from sportbook.models import Event
from sportbook.errors import PermissionDeniedError, ValidationError
from sportbook.events.utils import (
    validate_event, generate_recurring_events, parse_recurrence_end, create_event
)


NOW = datetime(2030, 1, 1, 8, 0)


def event_data(**overrides):
    data = {
        'title': 'Saturday Long Run',
        'description': 'Steady 15k along the river',
        'activity_type': 'running',
        'difficulty': 'intermediate',
        'date': '2030-01-06T09:00:00Z',
        'duration': 90,
        'location': 'Riverside',
        'latitude': 51.5,
        'longitude': -0.12,
        'price': 5,
        'max_participants': 12,
        'requirements': ['Trainers', 'Water'],
    }
    data.update(overrides)
    return data


@pytest.mark.unit
class TestValidateEvent:
    """Test validate_event rules and their order."""

    def test_valid_event(self, app):
        with app.app_context():
            result = validate_event(event_data(), now=NOW)
        assert result.is_valid is True
        assert result.error is None

    @pytest.mark.parametrize('field', [
        'title', 'description', 'activity_type', 'difficulty', 'date',
        'duration', 'location', 'latitude', 'longitude', 'max_participants'
    ])
    def test_missing_required_field(self, app, field):
        data = event_data()
        del data[field]
        with app.app_context():
            result = validate_event(data, now=NOW)
        assert result.is_valid is False
        assert result.error == f'The field {field} is required'

    def test_blank_string_is_missing(self, app):
        with app.app_context():
            result = validate_event(event_data(title='   '), now=NOW)
        assert result.error == 'The field title is required'

    def test_zero_coordinates_are_present(self, app):
        with app.app_context():
            result = validate_event(event_data(latitude=0, longitude=0), now=NOW)
        assert result.is_valid is True

    def test_past_date(self, app):
        with app.app_context():
            result = validate_event(event_data(date='2029-12-31T09:00:00Z'), now=NOW)
        assert result.is_valid is False
        assert result.error == 'The event date must be in the future'

    def test_invalid_coordinates(self, app):
        with app.app_context():
            assert validate_event(event_data(latitude=91), now=NOW).error == 'Invalid coordinates'
            assert validate_event(event_data(longitude=-181), now=NOW).error == 'Invalid coordinates'

    def test_negative_price(self, app):
        with app.app_context():
            result = validate_event(event_data(price=-1), now=NOW)
        assert result.error == 'The price cannot be negative'

    def test_non_finite_numbers_rejected(self, app):
        with app.app_context():
            assert validate_event(event_data(price='nan'), now=NOW).error == 'Invalid price'
            assert validate_event(event_data(price=float('inf')), now=NOW).error == 'Invalid price'
            assert validate_event(event_data(max_participants=float('nan')), now=NOW).error == \
                'There must be at least one participant'
            assert validate_event(event_data(duration=float('inf')), now=NOW).error == \
                'The duration must be at least one minute'

    def test_free_event_has_no_price(self, app):
        with app.app_context():
            assert validate_event(event_data(price=None), now=NOW).is_valid is True

    def test_zero_participants(self, app):
        with app.app_context():
            result = validate_event(event_data(max_participants=0), now=NOW)
        assert result.error == 'There must be at least one participant'

    def test_first_failure_is_reported(self, app):
        with app.app_context():
            result = validate_event(event_data(date='2000-01-01T00:00:00Z', price=-5), now=NOW)
        assert result.error == 'The event date must be in the future'

    def test_unknown_activity_type(self, app):
        with app.app_context():
            result = validate_event(event_data(activity_type='curling'), now=NOW)
        assert result.is_valid is False
        assert 'activity type' in result.error.lower()


@pytest.mark.unit
class TestRecurringEvents:
    """Test recurrence expansion."""

    def base(self, date):
        return {'title': 'Series', 'date': date}

    def test_no_recurrence_returns_single_copy(self, app):
        base = self.base(datetime(2030, 1, 1, 9))
        with app.app_context():
            events = generate_recurring_events(base, None)
            assert events == [base]
            assert events[0] is not base
            assert generate_recurring_events(base, {'type': 'none'}) == [base]

    def test_weekly_until_end_date(self, app):
        with app.app_context():
            events = generate_recurring_events(self.base(datetime(2024, 1, 1, 9)),
                                               {'type': 'weekly', 'end_date': '2024-01-15'})
        assert [e['date'] for e in events] == [
            datetime(2024, 1, 1, 9), datetime(2024, 1, 8, 9), datetime(2024, 1, 15, 9)
        ]

    def test_daily(self, app):
        with app.app_context():
            events = generate_recurring_events(self.base(datetime(2030, 3, 1, 18)),
                                               {'type': 'daily', 'end_date': '2030-03-05'})
        assert len(events) == 5
        assert all(e['title'] == 'Series' for e in events)

    def test_monthly_clamps_to_month_end(self, app):
        with app.app_context():
            events = generate_recurring_events(self.base(datetime(2030, 1, 31, 7)),
                                               {'type': 'monthly', 'end_date': '2030-04-30'})
        assert [e['date'] for e in events] == [
            datetime(2030, 1, 31, 7), datetime(2030, 2, 28, 7),
            datetime(2030, 3, 31, 7), datetime(2030, 4, 30, 7)
        ]

    def test_repeating_type_needs_end_date(self, app):
        with app.app_context():
            with pytest.raises(ValidationError):
                generate_recurring_events(self.base(datetime(2030, 1, 1)), {'type': 'weekly'})

    def test_end_before_start(self, app):
        with app.app_context():
            with pytest.raises(ValidationError):
                generate_recurring_events(self.base(datetime(2030, 1, 10)),
                                          {'type': 'daily', 'end_date': '2030-01-01'})

    def test_unknown_type(self, app):
        with app.app_context():
            with pytest.raises(ValidationError):
                generate_recurring_events(self.base(datetime(2030, 1, 1)),
                                          {'type': 'hourly', 'end_date': '2030-01-02'})

    def test_recurrence_must_be_object(self, app):
        with app.app_context():
            with pytest.raises(ValidationError):
                generate_recurring_events(self.base(datetime(2030, 1, 1)), 'weekly')

    def test_occurrence_cap(self, app):
        with app.app_context():
            with pytest.raises(ValidationError):
                generate_recurring_events(self.base(datetime(2030, 1, 1)),
                                          {'type': 'daily', 'end_date': '2030-12-31'},
                                          max_occurrences=10)

    def test_date_only_end_includes_whole_day(self):
        assert parse_recurrence_end('2030-01-15') == datetime(2030, 1, 15, 23, 59, 59, 999999)
        assert parse_recurrence_end('2030-01-15T10:00:00Z') == datetime(2030, 1, 15, 10)
        assert parse_recurrence_end(None) is None


@pytest.mark.unit
class TestCreateEvent:
    """Test event creation."""

    def test_create_single_event(self, db_session, instructor):
        with patch('sportbook.audit.setup_audit_logger'):
            events = create_event(instructor, event_data(), now=NOW)

        assert len(events) == 1
        event = db_session.get(Event, events[0].id)
        assert event.title == 'Saturday Long Run'
        assert event.instructor_id == instructor.id
        assert event.date == datetime(2030, 1, 6, 9, 0)
        assert event.requirements == ['Trainers', 'Water']
        assert instructor.total_events == 1

    def test_create_weekly_series(self, db_session, instructor):
        data = event_data(recurrence={'type': 'weekly', 'end_date': '2030-01-20'})
        with patch('sportbook.audit.setup_audit_logger'):
            events = create_event(instructor, data, now=NOW)

        assert [event.date.day for event in events] == [6, 13, 20]
        count = db_session.scalar(sa.select(sa.func.count(Event.id)))
        assert count == 3
        assert instructor.total_events == 3

    def test_invalid_data_writes_nothing(self, db_session, instructor):
        with pytest.raises(ValidationError) as exc_info:
            create_event(instructor, event_data(price=-3), now=NOW)

        assert exc_info.value.message == 'The price cannot be negative'
        assert db_session.scalar(sa.select(sa.func.count(Event.id))) == 0

    def test_invalid_recurrence_writes_nothing(self, db_session, instructor):
        data = event_data(recurrence={'type': 'weekly'})
        with pytest.raises(ValidationError):
            create_event(instructor, data, now=NOW)

        assert db_session.scalar(sa.select(sa.func.count(Event.id))) == 0

    def test_string_recurrence_writes_nothing(self, db_session, instructor):
        with pytest.raises(ValidationError):
            create_event(instructor, event_data(recurrence='weekly'), now=NOW)

        assert db_session.scalar(sa.select(sa.func.count(Event.id))) == 0

    def test_participant_cannot_create(self, db_session, test_user):
        with pytest.raises(PermissionDeniedError):
            create_event(test_user, event_data(), now=NOW)

    def test_markup_is_stripped(self, db_session, instructor):
        with patch('sportbook.audit.setup_audit_logger'):
            events = create_event(instructor, event_data(title='<b>Hill</b> Repeats'), now=NOW)
        assert events[0].title == 'Hill Repeats'
