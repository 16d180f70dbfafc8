"""
Messages blueprint: a profile's inbox, read receipts and replies.
"""

from flask import Blueprint

bp = Blueprint('messages', __name__, url_prefix='/messages')

from sportbook.messages import routes
