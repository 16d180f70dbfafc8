from flask import jsonify
from werkzeug.exceptions import HTTPException

from sportbook import db


class SportbookError(Exception):
    """Base class for domain errors raised by the service functions."""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(SportbookError):
    status_code = 400


class AuthenticationRequiredError(SportbookError):
    status_code = 401


class PermissionDeniedError(SportbookError):
    status_code = 403


class EventNotFoundError(SportbookError):
    status_code = 404


class RegistrationNotFoundError(SportbookError):
    status_code = 404


class MessageNotFoundError(SportbookError):
    status_code = 404


class RatingNotFoundError(SportbookError):
    status_code = 404


class EventFullError(SportbookError):
    status_code = 409


class AlreadyRegisteredError(SportbookError):
    status_code = 409


class AlreadyRatedError(SportbookError):
    status_code = 409


def error_response(message, status_code, **extra):
    return jsonify({'success': False, 'error': message, **extra}), status_code


def register_error_handlers(app):
    """Register error handlers with the Flask application"""

    @app.errorhandler(SportbookError)
    def domain_error(error):
        if error.status_code >= 500:
            db.session.rollback()
        return error_response(error.message, error.status_code)

    @app.errorhandler(401)
    def unauthorized_error(error):
        return error_response('Authentication required', 401)

    @app.errorhandler(403)
    def forbidden_error(error):
        return error_response('Permission denied', 403)

    @app.errorhandler(404)
    def not_found_error(error):
        return error_response('Not found', 404)

    @app.errorhandler(429)
    def rate_limit_error(error):
        return error_response('Too many requests', 429)

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return error_response('An unexpected error occurred', 500)

    @app.errorhandler(Exception)
    def unhandled_error(error):
        if isinstance(error, HTTPException):
            return error_response(error.description, error.code)
        db.session.rollback()
        app.logger.exception(f"Unhandled error: {error}")
        return error_response('An unexpected error occurred', 500)
