from flask import Blueprint, current_app, jsonify

from royale.rooms import RoomNotFound

api = Blueprint('api', __name__)


def _registry():
    return current_app.extensions['room_registry']


@api.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'online', 'rooms': len(_registry())})


@api.route('/rooms/<string:code>', methods=['GET'])
def get_room(code):
    """
    Returns who is in a room and what each player last reported.
    """
    room = _registry().lookup(code)
    if room is None:
        return jsonify({'error': RoomNotFound.message}), 404
    return jsonify(room.snapshot())
