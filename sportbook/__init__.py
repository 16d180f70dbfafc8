from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import logging
from logging.handlers import RotatingFileHandler
import os

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
login = LoginManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"]
)


def create_app(config_name='development'):
    """Application factory function"""
    app = Flask(__name__)

    # Load configuration
    from config import config
    app.config.from_object(config[config_name])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login.init_app(app)
    limiter.init_app(app)

    # Configure logging
    configure_logging(app)

    # Register middleware
    register_middleware(app)

    # Register blueprints/routes
    register_routes(app)

    return app


def configure_logging(app):
    """Configure logging for the application"""
    from sportbook.logs import LogBuffer, ErrorLogHandler

    # Ensure instance/logs directory exists
    logs_dir = os.path.join(app.instance_path, 'logs')
    if not os.path.exists(logs_dir):
        os.makedirs(logs_dir)

    # Always log to file (even in debug mode)
    app_log_path = os.path.join(logs_dir, 'app.log')
    file_handler = RotatingFileHandler(app_log_path, maxBytes=10240, backupCount=10)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'))
    file_handler.setLevel(logging.INFO)
    app.logger.addHandler(file_handler)

    # In-memory ring buffer backing the development log viewer
    log_buffer = LogBuffer(capacity=app.config['LOG_BUFFER_CAPACITY'])
    log_buffer.setLevel(logging.INFO)
    app.logger.addHandler(log_buffer)
    app.extensions['log_buffer'] = log_buffer

    # Set appropriate log level
    if app.debug:
        app.logger.setLevel(logging.DEBUG)
    else:
        app.logger.setLevel(logging.INFO)

    # Persist errors to the database outside development
    if app.config.get('PERSIST_ERROR_LOGS'):
        error_handler = ErrorLogHandler(app)
        error_handler.setLevel(logging.ERROR)
        app.logger.addHandler(error_handler)

    app.logger.info('Sportbook application startup')


def register_middleware(app):
    """Register middleware functions"""

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none'"
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        return response


def register_routes(app):
    """Register application routes via blueprints"""
    # Import and register blueprints
    from sportbook.auth import bp as auth_bp
    from sportbook.events import bp as events_bp
    from sportbook.instructor import bp as instructor_bp
    from sportbook.messages import bp as messages_bp
    from sportbook.ratings import bp as ratings_bp
    from sportbook.dev import bp as dev_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(instructor_bp)
    app.register_blueprint(messages_bp)
    app.register_blueprint(ratings_bp)
    app.register_blueprint(dev_bp)

    # Register error handlers
    from sportbook.errors import register_error_handlers
    register_error_handlers(app)

    # Import models to ensure they're loaded
    from sportbook import models
