"""
Event routes: search, filter state, details, creation and registration.
"""

from flask import jsonify, request, session, current_app
from flask_login import login_required, current_user

from sportbook.events import bp
from sportbook.events.filters import load_filters, save_filters, clear_filters
from sportbook.events.forms import EventFilterForm, filters_to_formdata
from sportbook.events.queries import get_events, get_event_by_id, serialize_event
from sportbook.events.registrations import register_for_event, cancel_registration
from sportbook.events.utils import validate_event, create_event
from sportbook.errors import error_response
from sportbook.routes import instructor_required, get_json_body


def _filter_form_errors(form):
    return error_response('Invalid filters', 400, errors=form.errors)


@bp.route('/', methods=['GET'])
def list_events():
    """
    Search upcoming events.

    Query-string filters take precedence; without any, the filters saved
    in the session are used.
    """
    form = EventFilterForm(formdata=request.args)
    if form.has_input():
        if not form.validate():
            return _filter_form_errors(form)
        filters = form.to_filters()
    else:
        filters = load_filters(session)

    events = get_events(filters)
    return jsonify({
        'success': True,
        'filters': filters.to_dict(),
        'events': [serialize_event(event) for event in events]
    })


@bp.route('/filters', methods=['GET'])
def get_filters():
    """Return the filters saved in the session"""
    return jsonify({'success': True, 'filters': load_filters(session).to_dict()})


@bp.route('/filters', methods=['PUT'])
def update_filters():
    """
    Merge new values into the session filters.

    Keys that are absent keep their saved value; null clears one.
    """
    data = get_json_body()

    filters = load_filters(session)
    merged = filters.to_dict()
    merged.update({key: value for key, value in data.items() if key in merged})

    form = EventFilterForm(formdata=filters_to_formdata(merged))
    if not form.validate():
        return _filter_form_errors(form)

    validated = form.to_filters().to_dict()
    filters.update({key: validated[key] for key in data if key in validated})
    save_filters(session, filters)

    return jsonify({'success': True, 'filters': filters.to_dict()})


@bp.route('/filters', methods=['DELETE'])
def reset_filters():
    """Clear the session filters"""
    filters = clear_filters(session)
    return jsonify({'success': True, 'filters': filters.to_dict()})


@bp.route('/<int:event_id>', methods=['GET'])
def event_details(event_id):
    """
    Get event details with instructor, registrations and ratings
    """
    event = get_event_by_id(event_id)
    data = serialize_event(event, detail=True)
    if current_user.is_authenticated:
        data['is_registered'] = any(reg.user_id == current_user.id and reg.status != 'cancelled'
                                    for reg in event.registrations)
    return jsonify({'success': True, 'event': data})


@bp.route('/validate', methods=['POST'])
@login_required
@instructor_required
def validate_event_data():
    """
    Validate event data without saving it
    """
    result = validate_event(get_json_body())
    return jsonify({'success': True, **result.to_dict()})


@bp.route('/', methods=['POST'])
@login_required
@instructor_required
def create_new_event():
    """
    Create an event (or a recurring series of events)
    """
    events = create_event(current_user, get_json_body())

    return jsonify({
        'success': True,
        'message': f'{len(events)} event(s) created successfully',
        'events': [serialize_event(event) for event in events]
    }), 201


@bp.route('/<int:event_id>/registration', methods=['POST'])
@login_required
def register(event_id):
    """
    Register the current profile for an event
    """
    registration = register_for_event(current_user, event_id)

    return jsonify({
        'success': True,
        'registration': {
            'id': registration.id,
            'event_id': registration.event_id,
            'user_id': registration.user_id,
            'status': registration.status,
            'created_at': registration.created_at.isoformat(),
        }
    }), 201


@bp.route('/<int:event_id>/registration', methods=['DELETE'])
@login_required
def cancel(event_id):
    """
    Cancel the current profile's registration for an event
    """
    cancel_registration(current_user, event_id)
    current_app.logger.debug(f"Registration for event {event_id} removed via API")

    return jsonify({
        'success': True,
        'message': 'Registration cancelled successfully'
    })
