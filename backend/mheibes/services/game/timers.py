import itertools
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple


class _Pending:
    __slots__ = ('room', 'name', 'token', 'deadline', 'callback')

    def __init__(self, room, name, token, deadline, callback):
        self.room = room
        self.name = name
        self.token = token
        self.deadline = deadline
        self.callback = callback


class RoomTimers:
    """Named single-shot timers, at most one per (room code, name).

    Arming a name replaces any timer already pending under it. A worker
    that wakes up after its timer was replaced or cancelled finds a
    different token (or none) and does nothing. Firing happens under the
    room lock, so a callback runs like any other event for its room.

    - ``spawn(fn, *args)`` starts a background worker (Socket.IO task)
    - ``sleep(seconds)`` is the cooperative sleep used by the worker
    - with ``enabled=False`` timers are only recorded; ``fire`` runs them
    """

    def __init__(self, spawn=None, sleep=None, clock=time.time, enabled=True, logger=None):
        self._spawn = spawn
        self._sleep = sleep or time.sleep
        self._clock = clock
        self.enabled = enabled
        self.logger = logger or logging.getLogger(__name__)
        self._pending: Dict[Tuple[str, str], _Pending] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    def arm(self, room, name: str, delay: float, callback: Callable[[], None]) -> float:
        """Schedule ``callback`` for ``room`` after ``delay`` seconds; returns the deadline."""
        key = (room.code, name)
        deadline = self._clock() + delay
        with self._lock:
            token = next(self._tokens)
            self._pending[key] = _Pending(room, name, token, deadline, callback)
        self.logger.info(f"[timer-set] room={room.code} name={name} delay={delay}s")
        if self.enabled and self._spawn is not None:
            self._spawn(self._worker, key, token, delay)
        return deadline

    def cancel(self, code: str, name: str) -> bool:
        with self._lock:
            entry = self._pending.pop((code, name), None)
        if entry is not None:
            self.logger.info(f"[timer-cancel] room={code} name={name}")
        return entry is not None

    def cancel_room(self, code: str) -> None:
        with self._lock:
            keys = [k for k in self._pending if k[0] == code]
            for key in keys:
                del self._pending[key]
        if keys:
            self.logger.info(f"[timer-cancel] room={code} names={[k[1] for k in keys]}")

    def pending(self, code: str) -> List[str]:
        with self._lock:
            return sorted(name for (c, name) in self._pending if c == code)

    def deadline(self, code: str, name: str) -> Optional[float]:
        entry = self._pending.get((code, name))
        return entry.deadline if entry else None

    def fire(self, code: str, name: str) -> bool:
        """Run a pending timer now. Returns False if nothing was pending."""
        entry = self._pending.get((code, name))
        if entry is None:
            return False
        return self._run((code, name), entry.token)

    def _worker(self, key, token, delay):
        self._sleep(delay)
        self._run(key, token)

    def _run(self, key, token) -> bool:
        entry = self._pending.get(key)
        if entry is None or entry.token != token:
            self.logger.info(f"[timer-abort] room={key[0]} name={key[1]} superseded")
            return False
        with entry.room.lock:
            with self._lock:
                current = self._pending.get(key)
                if current is None or current.token != token:
                    return False
                del self._pending[key]
            self.logger.info(f"[timer-fire] room={key[0]} name={key[1]}")
            entry.callback()
        return True
