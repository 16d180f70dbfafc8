import re

import sqlalchemy as sa
from flask import current_app
from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField, SelectField, TextAreaField, IntegerField
from wtforms.validators import (
    ValidationError, DataRequired, Email, Length, Optional, NumberRange
)

from sportbook import db
from sportbook.models import Profile


class PasswordComplexity:
    """
    WTForms validator: at least 8 characters with a letter and a number.
    """
    def __init__(self, message=None):
        self.message = message

    def __call__(self, form, field):
        password = field.data
        if not password:
            return  # Let DataRequired handle empty passwords

        if len(password) < 8:
            raise ValidationError(self.message or 'Password must be at least 8 characters long')
        if not re.search(r'[A-Za-z]', password):
            raise ValidationError(self.message or 'Password must contain at least one letter')
        if not re.search(r'\d', password):
            raise ValidationError(self.message or 'Password must contain at least one number')


class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email()])
    password = PasswordField('Password', validators=[DataRequired()])
    remember_me = BooleanField('Remember Me')

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('meta', {'csrf': False})
        super(LoginForm, self).__init__(*args, **kwargs)


class SignupForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), Email(), Length(max=120)])
    password = PasswordField('Password', validators=[DataRequired(), PasswordComplexity()])
    name = StringField('Name', validators=[DataRequired(), Length(min=1, max=128)])
    role = SelectField('Role', default='user')
    phone = StringField('Phone', validators=[Optional(), Length(max=20)])
    bio = TextAreaField('Bio', validators=[Optional(), Length(max=2000)])
    experience_years = IntegerField('Years of Experience', validators=[
        Optional(),
        NumberRange(min=0, max=80, message='Experience must be between 0 and 80 years')
    ])

    def __init__(self, *args, **kwargs):
        kwargs.setdefault('meta', {'csrf': False})
        super(SignupForm, self).__init__(*args, **kwargs)
        self.role.choices = [(role, role.title()) for role in current_app.config.get('USER_ROLES', ['user'])]

    def validate_email(self, email):
        profile = db.session.scalar(
            sa.select(Profile).where(sa.func.lower(Profile.email) == email.data.lower())
        )
        if profile is not None:
            raise ValidationError('An account with this email already exists.')
