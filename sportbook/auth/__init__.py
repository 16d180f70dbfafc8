"""
Auth blueprint: password sign-up and sign-in, session and profile.
"""

from flask import Blueprint

bp = Blueprint('auth', __name__, url_prefix='/auth')

from sportbook.auth import routes
