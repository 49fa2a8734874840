from flask import Blueprint, jsonify

from salpakan.socketio_events import get_sessions, room_name

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Salpakan game server!'})


@main.route('/health')
def health():
    return jsonify({'status': 'ok', 'rooms': len(get_sessions().sessions)})


@main.route('/rooms/<string:game_code>')
def room_state(game_code):
    session = get_sessions().get(room_name(game_code))
    if session is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(session.snapshot())
