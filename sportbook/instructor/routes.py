"""
Instructor routes: own events, edits, participant messages and cancellation.
"""

from flask import jsonify
from flask_login import login_required, current_user

from sportbook.events.queries import serialize_event
from sportbook.instructor import bp
from sportbook.instructor.utils import (
    get_instructor_events, update_event, send_event_message,
    get_event_messages, cancel_event
)
from sportbook.messages.utils import serialize_message
from sportbook.routes import instructor_required, get_json_body


@bp.route('/events', methods=['GET'])
@login_required
@instructor_required
def list_events():
    """
    List the current instructor's events with their participants
    """
    events = get_instructor_events(current_user)

    events_data = []
    for event in events:
        data = serialize_event(event)
        data['registrations'] = [
            {
                'user_id': reg.user_id,
                'name': reg.user.name if reg.user else None,
                'email': reg.user.email if reg.user else None,
                'status': reg.status,
            }
            for reg in event.registrations
        ]
        events_data.append(data)

    return jsonify({'success': True, 'events': events_data})


@bp.route('/events/<int:event_id>', methods=['PATCH'])
@login_required
@instructor_required
def edit_event(event_id):
    """
    Change editable fields of an event
    """
    event, change = update_event(current_user, event_id, get_json_body())

    return jsonify({
        'success': True,
        'event': serialize_event(event),
        'change': {
            'id': change.id,
            'changes': change.changes,
            'status': change.status,
        }
    })


@bp.route('/events/<int:event_id>/messages', methods=['GET'])
@login_required
@instructor_required
def event_messages(event_id):
    messages = get_event_messages(current_user, event_id)
    return jsonify({
        'success': True,
        'messages': [serialize_message(message) for message in messages]
    })


@bp.route('/events/<int:event_id>/messages', methods=['POST'])
@login_required
@instructor_required
def send_message(event_id):
    """
    Send a message to an event's participants, or to one of them
    """
    data = get_json_body()
    message = send_event_message(
        current_user,
        event_id,
        data.get('message', ''),
        type=data.get('type', 'general'),
        to_user_id=data.get('to_user_id')
    )
    return jsonify({'success': True, 'message': serialize_message(message)}), 201


@bp.route('/events/<int:event_id>/cancel', methods=['POST'])
@login_required
@instructor_required
def cancel(event_id):
    """
    Cancel an event, notifying its participants
    """
    data = get_json_body()
    cancellation = cancel_event(current_user, event_id, data.get('message', ''))

    return jsonify({
        'success': True,
        'message': 'Event cancelled successfully',
        'cancellation': {
            'id': cancellation.id,
            'event_id': cancellation.event_id,
            'step': cancellation.step,
            'completed_at': cancellation.completed_at.isoformat() if cancellation.completed_at else None,
        }
    })
