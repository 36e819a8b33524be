from flask import Blueprint, jsonify, abort, current_app
from mheibes.services.game import sanitize_room

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Mheibes game server!'})

@main.route('/healthz')
def health():
    service = current_app.extensions['mheibes']
    return jsonify({'status': 'ok', 'rooms': len(service.registry)})

@main.route('/api/rooms/<string:code>')
def get_room_state(code):
    # Anonymous snapshot: same view as a viewer outside the hiding team
    room = current_app.extensions['mheibes'].registry.get(code)
    if room is None:
        abort(404)
    with room.lock:
        return jsonify(sanitize_room(room))
