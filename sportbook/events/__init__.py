"""
Events blueprint.

Public side of the booking service:
- Event search with filters (text, activity, difficulty, price, date, radius)
- Per-session filter state
- Event details and creation
- Registration and cancellation of attendance
"""

from flask import Blueprint

bp = Blueprint('events', __name__, url_prefix='/events')

from sportbook.events import routes
