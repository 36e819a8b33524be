import os
import sys
from collections import defaultdict
import pytest

# Ensure the backend root (containing the `mheibes` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from mheibes import create_app, socketio, build_game_service


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['*']
    ROOM_CODE_LENGTH = 5
    WIN_SCORE = 20
    COIN_DELAY_SEC = 2.5
    DISCONNECT_GRACE_SEC = 60
    DEFAULT_COUNTDOWN_SEC = 3
    DEFAULT_HIDE_TIMER_SEC = 0
    DEFAULT_MAX_ROUNDS = 0
    DEFAULT_TEAM_NAMES = {'A': 'Team A', 'B': 'Team B'}
    MAX_PLAYER_NAME_LEN = 20
    MAX_TEAM_NAME_LEN = 20
    # Timers are recorded but only run when a test fires them
    TIMERS_ENABLED = False


class RecordingTransport:
    """Stands in for Socket.IO: remembers every push and room membership."""

    def __init__(self):
        self.sent = []
        self.rooms = defaultdict(set)

    def send(self, sid, event, data=None):
        self.sent.append((sid, event, data))

    def enter(self, sid, code):
        self.rooms[code].add(sid)

    def leave(self, sid, code):
        self.rooms[code].discard(sid)

    def received(self, sid, event):
        return [data for to, name, data in self.sent if to == sid and name == event]

    def last_view(self, sid):
        views = self.received(sid, 'room_update')
        return views[-1] if views else None

    def clear(self):
        self.sent = []


class FirstChoice:
    """Deterministic stand-in for random.Random: picks ``seq[pick]``."""

    def __init__(self, pick=0):
        self.pick = pick

    def choice(self, seq):
        seq = list(seq)
        return seq[self.pick % len(seq)]


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def rng():
    return FirstChoice()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def service(flask_app, transport, rng, clock):
    svc = build_game_service(flask_app, transport=transport, rng=rng, clock=clock)
    flask_app.extensions['mheibes'] = svc
    return svc


@pytest.fixture()
def lobby(service):
    """Room with p1 (team A, host) and p2 (team B)."""
    room = service.create_room('p1', 'Ali')
    service.join_room('p2', 'Sara', room.code)
    return room


@pytest.fixture()
def lobby4(service):
    """Room with p1, p3 on team A and p2, p4 on team B; p1 is host."""
    room = service.create_room('p1', 'Ali')
    service.join_room('p2', 'Sara', room.code)
    service.join_room('p3', 'Omar', room.code)
    service.join_room('p4', 'Huda', room.code)
    return room


def play_to_search(service, room, owner='p1', hand='left', tayer='p2'):
    """Drive ``room`` from the lobby to ``search`` with team A hiding."""
    assert service.start_game(room.host)
    assert service.coin_toss(room.host)
    assert service.timers.fire(room.code, 'coin')
    hiding_leader = room.leader_of('A').id
    searching_leader = room.leader_of('B').id
    assert service.select_ring(hiding_leader, owner, hand)
    assert service.bat(hiding_leader)
    assert service.select_tayer(searching_leader, tayer)
    return room


@pytest.fixture()
def to_search(service):
    def _drive(room, **kwargs):
        return play_to_search(service, room, **kwargs)
    return _drive


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
    yield test_client
    try:
        test_client.disconnect()
    except Exception:
        pass
