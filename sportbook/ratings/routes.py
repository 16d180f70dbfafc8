from flask import jsonify
from flask_login import login_required, current_user

from sportbook.errors import ValidationError
from sportbook.ratings import bp
from sportbook.ratings.utils import create_rating, update_rating, delete_rating, serialize_rating
from sportbook.routes import get_json_body


@bp.route('/', methods=['POST'])
@login_required
def rate_event():
    """
    Rate an event
    """
    data = get_json_body()
    if data.get('event_id') is None:
        raise ValidationError('event_id is required')

    rating = create_rating(current_user, data['event_id'], data.get('rating'), data.get('comment'))
    return jsonify({'success': True, 'rating': serialize_rating(rating)}), 201


@bp.route('/<int:rating_id>', methods=['PUT'])
@login_required
def edit_rating(rating_id):
    data = get_json_body()
    rating = update_rating(current_user, rating_id, data.get('rating'), data.get('comment'))
    return jsonify({'success': True, 'rating': serialize_rating(rating)})


@bp.route('/<int:rating_id>', methods=['DELETE'])
@login_required
def remove_rating(rating_id):
    delete_rating(current_user, rating_id)
    return jsonify({'success': True, 'message': 'Rating deleted successfully'})
