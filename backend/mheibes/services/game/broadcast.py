from mheibes.models import Room
from .views import sanitize_room


class SocketIOTransport:
    """Thin adapter over the Flask-SocketIO server used by the game core.

    Works outside of a request context, so timers can push updates too.
    """

    def __init__(self, socketio, namespace='/'):
        self.socketio = socketio
        self.namespace = namespace

    def send(self, sid, event, data=None):
        if data is None:
            self.socketio.emit(event, to=sid, namespace=self.namespace)
        else:
            self.socketio.emit(event, data, to=sid, namespace=self.namespace)

    def enter(self, sid, code):
        self.socketio.server.enter_room(sid, code, namespace=self.namespace)

    def leave(self, sid, code):
        self.socketio.server.leave_room(sid, code, namespace=self.namespace)


class Broadcaster:
    def __init__(self, transport):
        self.transport = transport

    def send(self, sid, event, data=None):
        self.transport.send(sid, event, data)

    def room_update(self, room: Room) -> None:
        """Push each connected member their own view of the room."""
        for player in room.connected():
            self.transport.send(player.id, 'room_update', sanitize_room(room, player.id))

    def to_others(self, room: Room, sid, event, data=None) -> None:
        for player in room.connected():
            if player.id != sid:
                self.transport.send(player.id, event, data)
