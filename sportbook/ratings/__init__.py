"""
Ratings blueprint: participants rate the events they took part in.
"""

from flask import Blueprint

bp = Blueprint('ratings', __name__, url_prefix='/ratings')

from sportbook.ratings import routes
