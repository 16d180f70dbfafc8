"""
Forms for event search input.
"""

from flask import current_app
from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, FloatField
from werkzeug.datastructures import MultiDict
from wtforms.validators import Length, Optional, NumberRange

from sportbook.errors import ValidationError
from sportbook.events.filters import EventFilters


class EventFilterForm(FlaskForm):
    """Query-string filters for the event search"""
    search = StringField('Search', validators=[
        Optional(),
        Length(max=256, message='Search must be 256 characters or less')
    ])

    activity_type = SelectField('Activity Type', validators=[Optional()])

    difficulty = SelectField('Difficulty', validators=[Optional()])

    price_range = SelectField('Price', validators=[Optional()])

    date_range = SelectField('Date', validators=[Optional()])

    latitude = FloatField('Latitude', validators=[
        Optional(),
        NumberRange(min=-90, max=90, message='Latitude must be between -90 and 90')
    ])
    longitude = FloatField('Longitude', validators=[
        Optional(),
        NumberRange(min=-180, max=180, message='Longitude must be between -180 and 180')
    ])
    radius = FloatField('Radius (km)', validators=[
        Optional(),
        NumberRange(min=0.1, max=20000, message='Radius must be between 0.1 and 20000 km')
    ])

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('meta', {'csrf': False})
        super(EventFilterForm, self).__init__(*args, **kwargs)

        # Populate choices from config
        any_choice = [('', 'Any')]
        activity_types = current_app.config.get('ACTIVITY_TYPES', {})
        self.activity_type.choices = any_choice + [(v, k) for k, v in activity_types.items()]

        difficulty_levels = current_app.config.get('DIFFICULTY_LEVELS', {})
        self.difficulty.choices = any_choice + [(v, k) for k, v in difficulty_levels.items()]

        self.price_range.choices = any_choice + [(v, v) for v in current_app.config.get('PRICE_RANGES', [])]
        self.date_range.choices = any_choice + [(v, v) for v in current_app.config.get('DATE_RANGES', [])]

    def validate(self, extra_validators=None):
        if not super(EventFilterForm, self).validate(extra_validators=extra_validators):
            return False

        # A radius search needs all three values
        geo_fields = [self.latitude, self.longitude, self.radius]
        provided = [field for field in geo_fields if field.data is not None]
        if provided and len(provided) != len(geo_fields):
            for field in geo_fields:
                if field.data is None:
                    field.errors.append('Latitude, longitude and radius must be given together')
            return False
        return True

    def has_input(self):
        return any(field.raw_data for field in self)

    def to_filters(self) -> EventFilters:
        location = None
        if self.latitude.data is not None:
            location = {
                'latitude': self.latitude.data,
                'longitude': self.longitude.data,
                'radius': self.radius.data,
            }
        return EventFilters(
            search=self.search.data or '',
            activity_type=self.activity_type.data or None,
            difficulty=self.difficulty.data or None,
            price_range=self.price_range.data or None,
            date_range=self.date_range.data or None,
            location=location,
        )


def filters_to_formdata(values):
    """
    Flatten a filter dictionary into form data for EventFilterForm.

    Raises:
        ValidationError: 'location' is present but not an object
    """
    formdata = MultiDict()
    for key in ('search', 'activity_type', 'difficulty', 'price_range', 'date_range'):
        if values.get(key) is not None:
            formdata[key] = str(values[key])

    location = values.get('location')
    if location is not None:
        if not isinstance(location, dict):
            raise ValidationError('Location must be an object with latitude, longitude and radius')
        for key in ('latitude', 'longitude', 'radius'):
            if location.get(key) is not None:
                formdata[key] = str(location[key])
    return formdata
