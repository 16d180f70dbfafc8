# Utility functions and decorators shared by the blueprint routes

from functools import wraps
from flask import current_app, request
from flask_login import current_user

from sportbook.audit import audit_log_security_event
from sportbook.errors import PermissionDeniedError, ValidationError


def instructor_required(f):
    """
    Decorator to require the instructor role.
    Can be used in addition to @login_required.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return current_app.login_manager.unauthorized()
        if not current_user.is_instructor:
            current_app.logger.warning(f"Access denied for profile {current_user.id} to instructor-only resource {request.path}")
            audit_log_security_event('ACCESS_DENIED',
                                     f'Non-instructor attempted to access {request.path}',
                                     user=current_user)
            raise PermissionDeniedError('Instructor role required')
        return f(*args, **kwargs)
    return decorated_function


def get_json_body():
    """Return the request's JSON object or raise a 400."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('No data provided')
    return data
