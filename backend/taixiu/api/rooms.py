from flask import Blueprint, jsonify

from taixiu import game_server
from taixiu.services.game.registry import sanitize_room_id

rooms = Blueprint('rooms', __name__)


@rooms.route('', methods=['GET'])
@rooms.route('/', methods=['GET'])
def list_rooms():
    return jsonify({'rooms': game_server.registry.list()})


@rooms.route('/<string:room_id>', methods=['GET'])
def get_room_state(room_id):
    """Snapshot of an existing room. Looking a room up never creates it."""
    room = game_server.registry.get(room_id)
    if room is None:
        return jsonify({'error': f'Room {sanitize_room_id(room_id)} not found'}), 404
    with room.lock:
        payload = room.snapshot(game_server.now())
    return jsonify(payload)
