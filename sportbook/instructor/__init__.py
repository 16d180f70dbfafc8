"""
Instructor blueprint: manage own events, message participants, cancel events.
"""

from flask import Blueprint

bp = Blueprint('instructor', __name__, url_prefix='/instructor')

from sportbook.instructor import routes
