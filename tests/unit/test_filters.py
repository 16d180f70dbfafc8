"""
Unit tests for event filter state and the filter form.
"""
import pytest
from werkzeug.datastructures import MultiDict
from sportbook.errors import ValidationError
from sportbook.events.filters import (
    EventFilters, SESSION_KEY, load_filters, save_filters, clear_filters
)
from sportbook.events.forms import EventFilterForm, filters_to_formdata


@pytest.mark.unit
class TestEventFilters:

    def test_defaults_are_empty(self):
        filters = EventFilters()
        assert filters.is_empty()
        assert filters.to_dict() == {
            'search': '', 'activity_type': None, 'difficulty': None,
            'price_range': None, 'date_range': None, 'location': None
        }

    def test_setters_log_changes(self, app):
        with app.app_context():
            filters = EventFilters()
            filters.set_activity_type('yoga')
            filters.set_search('sunrise')

        assert filters.activity_type == 'yoga'
        assert not filters.is_empty()
        messages = [entry['message'] for entry in app.extensions['log_buffer'].get_logs()]
        assert 'Setting activity_type filter' in messages
        assert 'Setting search filter' in messages

    def test_reset(self, app):
        with app.app_context():
            filters = EventFilters(search='run', price_range='free')
            filters.reset()
        assert filters == EventFilters()

    def test_update_only_touches_given_keys(self, app):
        with app.app_context():
            filters = EventFilters(search='run', difficulty='advanced')
            filters.update({'difficulty': None, 'date_range': 'week'})
        assert filters.search == 'run'
        assert filters.difficulty is None
        assert filters.date_range == 'week'

    def test_session_round_trip(self, app):
        session = {}
        location = {'latitude': 51.5, 'longitude': -0.12, 'radius': 5}
        with app.app_context():
            save_filters(session, EventFilters(search='swim', location=location))
            assert load_filters(session) == EventFilters(search='swim', location=location)

            cleared = clear_filters(session)

        assert cleared.is_empty()
        assert SESSION_KEY not in session


@pytest.mark.unit
class TestEventFilterForm:

    def test_valid_query(self, app):
        with app.test_request_context():
            form = EventFilterForm(formdata=MultiDict({
                'search': 'yoga', 'activity_type': 'yoga', 'price_range': '0-10',
                'latitude': '51.5', 'longitude': '-0.12', 'radius': '5'
            }))
            assert form.has_input()
            assert form.validate()
            filters = form.to_filters()

        assert filters.activity_type == 'yoga'
        assert filters.price_range == '0-10'
        assert filters.location == {'latitude': 51.5, 'longitude': -0.12, 'radius': 5.0}

    def test_unknown_choice_rejected(self, app):
        with app.test_request_context():
            form = EventFilterForm(formdata=MultiDict({'price_range': '100+'}))
            assert not form.validate()
            assert 'price_range' in form.errors

    def test_partial_location_rejected(self, app):
        with app.test_request_context():
            form = EventFilterForm(formdata=MultiDict({'latitude': '51.5'}))
            assert not form.validate()
            assert 'radius' in form.errors

    def test_no_input(self, app):
        with app.test_request_context():
            form = EventFilterForm(formdata=MultiDict())
            assert not form.has_input()

    def test_filters_to_formdata_flattens_location(self):
        formdata = filters_to_formdata({
            'search': 'run', 'difficulty': None,
            'location': {'latitude': 1, 'longitude': 2, 'radius': 3}
        })
        assert formdata.to_dict() == {'search': 'run', 'latitude': '1', 'longitude': '2', 'radius': '3'}

    def test_filters_to_formdata_rejects_bad_location(self):
        with pytest.raises(ValidationError):
            filters_to_formdata({'location': 'London'})
