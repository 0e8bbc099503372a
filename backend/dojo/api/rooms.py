from flask import Blueprint, current_app, jsonify, request

from dojo.services.rooms.history import recent_battles

rooms = Blueprint('rooms', __name__)

MAX_HISTORY_LIMIT = 100


@rooms.route('/rooms/<string:room_code>', methods=['GET'])
def get_room_snapshot(room_code):
    room = current_app.extensions['dojo'].store.get_room(room_code.upper())
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    with room.lock:
        return jsonify(room.snapshot())


@rooms.route('/battles', methods=['GET'])
def list_battles():
    """Recent finished battles, newest first; ``userId`` narrows to one player."""
    user_id = request.args.get('userId')
    try:
        limit = int(request.args.get('limit', 20))
    except ValueError:
        return jsonify({'error': 'limit must be an integer'}), 400
    limit = max(1, min(limit, MAX_HISTORY_LIMIT))
    return jsonify([b.to_dict() for b in recent_battles(user_id, limit)])
