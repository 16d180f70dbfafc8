from flask import abort, current_app, jsonify, request

from sportbook.dev import bp
from sportbook.errors import ValidationError

LOG_LEVELS = ['debug', 'info', 'warning', 'error', 'critical']


@bp.before_request
def require_log_viewer():
    if not current_app.config.get('LOG_VIEWER_ENABLED'):
        abort(404)


def get_log_buffer():
    return current_app.extensions['log_buffer']


@bp.route('/logs', methods=['GET'])
def list_logs():
    """
    Return buffered log entries, optionally filtered by level and user_id
    """
    log_buffer = get_log_buffer()
    level = request.args.get('level')
    user_id = request.args.get('user_id', type=int)

    if level is not None:
        if level.lower() not in LOG_LEVELS:
            raise ValidationError(f'Unknown log level: {level}')
        entries = log_buffer.get_logs_by_level(level)
        if user_id is not None:
            entries = [entry for entry in entries if entry['user_id'] == user_id]
    elif user_id is not None:
        entries = log_buffer.get_logs_by_user(user_id)
    else:
        entries = log_buffer.get_logs()

    return jsonify({'success': True, 'count': len(entries), 'logs': entries})


@bp.route('/logs', methods=['DELETE'])
def clear_logs():
    get_log_buffer().clear()
    return jsonify({'success': True, 'message': 'Logs cleared'})
