import threading
from typing import Dict, List, Optional

from mheibes.models import Room, generate_room_code


class RoomRegistry:
    """Owned store of live rooms keyed by room code."""

    def __init__(self, code_length=5, room_defaults=None):
        self.code_length = code_length
        self.room_defaults = dict(room_defaults or {})
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def create(self) -> Room:
        with self._lock:
            code = generate_room_code(self.code_length, taken=self._rooms)
            room = Room(code, **self.room_defaults)
            self._rooms[code] = room
        return room

    def get(self, code) -> Optional[Room]:
        if not code:
            return None
        return self._rooms.get(str(code).strip().upper())

    def destroy(self, code) -> Optional[Room]:
        with self._lock:
            return self._rooms.pop(code, None)

    def codes(self) -> List[str]:
        return list(self._rooms)

    def __contains__(self, code):
        return self.get(code) is not None

    def __len__(self):
        return len(self._rooms)
