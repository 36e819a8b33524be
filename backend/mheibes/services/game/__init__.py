"""Game domain services: rooms, phases, timers and views.

This package contains the game logic that the Socket.IO handlers and
HTTP routes call into, keeping transport concerns separated from the
core game mechanics.
"""

from .registry import RoomRegistry
from .timers import RoomTimers
from .phases import PhaseMachine, RoomError
from .views import sanitize_room
from .broadcast import Broadcaster, SocketIOTransport
from .sessions import GameService

__all__ = [
    'RoomRegistry',
    'RoomTimers',
    'PhaseMachine',
    'sanitize_room',
    'Broadcaster',
    'SocketIOTransport',
    'GameService',
    'RoomError',
]
