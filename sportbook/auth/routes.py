"""
Authentication routes.
"""

import sqlalchemy as sa
from flask import jsonify, current_app
from flask_login import login_user, logout_user, current_user, login_required
from werkzeug.datastructures import MultiDict

from sportbook import db, limiter
from sportbook.audit import audit_log_authentication
from sportbook.auth import bp
from sportbook.auth.forms import LoginForm, SignupForm
from sportbook.auth.utils import create_profile, serialize_profile
from sportbook.errors import error_response
from sportbook.events.queries import serialize_event
from sportbook.events.registrations import get_registered_events
from sportbook.models import Profile
from sportbook.routes import get_json_body


def auth_rate_limit():
    return current_app.config.get('AUTH_RATE_LIMIT', '10 per minute')


def _form_data(data):
    return MultiDict({key: value for key, value in data.items() if not isinstance(value, (list, dict))})


@bp.route('/signup', methods=['POST'])
@limiter.limit(auth_rate_limit)
def signup():
    """
    Create a profile with email and password and sign it in
    """
    data = get_json_body()
    form = SignupForm(formdata=_form_data(data))
    if not form.validate():
        return error_response('Invalid sign-up data', 400, errors=form.errors)

    profile = create_profile(form, data)
    login_user(profile)
    audit_log_authentication('SIGNUP', profile.email, True)
    current_app.logger.info('Profile created', extra={'user_id': profile.id})

    return jsonify({'success': True, 'profile': serialize_profile(profile)}), 201


@bp.route('/login', methods=['POST'])
@limiter.limit(auth_rate_limit)
def login():
    """
    Password sign-in
    """
    form = LoginForm(formdata=_form_data(get_json_body()))
    if not form.validate():
        return error_response('Invalid login data', 400, errors=form.errors)

    email = form.email.data.strip().lower()
    profile = db.session.scalar(sa.select(Profile).where(Profile.email == email))

    if profile is None or not profile.check_password(form.password.data):
        audit_log_authentication('LOGIN', email, False)
        current_app.logger.warning(f"Failed login attempt for {email}")
        return error_response('Invalid email or password', 401)

    login_user(profile, remember=form.remember_me.data)
    audit_log_authentication('LOGIN', profile.email, True)

    return jsonify({'success': True, 'profile': serialize_profile(profile)})


@bp.route('/logout', methods=['POST'])
@login_required
def logout():
    audit_log_authentication('LOGOUT', current_user.email, True)
    logout_user()
    return jsonify({'success': True, 'message': 'You have been logged out successfully.'})


@bp.route('/session', methods=['GET'])
@login_required
def get_session():
    """
    Return the signed-in profile
    """
    return jsonify({'success': True, 'profile': serialize_profile(current_user)})


@bp.route('/profile', methods=['GET'])
@login_required
def profile():
    """
    Return the signed-in profile with the events it is registered for
    """
    events = get_registered_events(current_user)
    return jsonify({
        'success': True,
        'profile': serialize_profile(current_user),
        'registered_events': [serialize_event(event) for event in events]
    })
