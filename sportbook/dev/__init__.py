"""
Development log viewer, only served when LOG_VIEWER_ENABLED is set.
"""

from flask import Blueprint

bp = Blueprint('dev', __name__, url_prefix='/dev')

from sportbook.dev import routes
