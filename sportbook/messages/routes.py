from flask import jsonify
from flask_login import login_required, current_user

from sportbook.messages import bp
from sportbook.messages.utils import (
    get_user_messages, mark_message_as_read, reply_to_message, serialize_message
)
from sportbook.routes import get_json_body


@bp.route('/', methods=['GET'])
@login_required
def inbox():
    """
    List messages for the current profile, newest first
    """
    messages = get_user_messages(current_user)
    return jsonify({
        'success': True,
        'messages': [serialize_message(message) for message in messages]
    })


@bp.route('/<int:message_id>/read', methods=['POST'])
@login_required
def mark_read(message_id):
    message = mark_message_as_read(current_user, message_id)
    return jsonify({'success': True, 'message': serialize_message(message)})


@bp.route('/<int:message_id>/reply', methods=['POST'])
@login_required
def reply(message_id):
    """
    Reply privately to the sender of a message
    """
    data = get_json_body()
    response = reply_to_message(current_user, message_id, data.get('message', ''))
    return jsonify({'success': True, 'message': serialize_message(response)}), 201
