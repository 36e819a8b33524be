import string
import random
import threading
from typing import Dict, List, Optional

TEAMS = ('A', 'B')
HANDS = ('left', 'right')

LOBBY = 'lobby'
COIN_TOSS = 'coin_toss'
COIN_RESULT = 'coin_result'
SELECT_RING = 'select_ring'
BAT = 'bat'
SELECT_TAYER = 'select_tayer'
SEARCH = 'search'
ROUND_END = 'round_end'
GAME_OVER = 'game_over'

# Phases during which the ring location is secret to the searching side
SECRET_PHASES = (SELECT_RING, BAT, SELECT_TAYER, SEARCH)


def other_team(team: str) -> str:
    return 'B' if team == 'A' else 'A'


def generate_room_code(length=5, taken=()):
    """Generate a short room code not present in ``taken``."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in taken:
            return code


def closed_hands():
    return {'left': 'closed', 'right': 'closed'}


class Player:
    def __init__(self, id, name, team='A', is_leader=False):
        self.id = id
        self.name = name
        self.team = team
        self.is_leader = is_leader
        self.disconnected = False

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'team': self.team,
            'isLeader': self.is_leader,
            'disconnected': self.disconnected,
        }


class Room:
    def __init__(self, code, team_names=None, max_rounds=0, countdown_secs=3, hide_timer_secs=0):
        self.code = code
        # Keyed by connection id; join order is the tie-breaker for reassignment
        self.players: Dict[str, Player] = {}
        self.host: Optional[str] = None
        self.phase = LOBBY
        self.team_names = dict(team_names or {'A': 'A', 'B': 'B'})
        self.scores = {'A': 0, 'B': 0}
        self.ring_team: Optional[str] = None
        self.hiding_team: Optional[str] = None
        self.searching_team: Optional[str] = None
        self.ring_owner: Optional[str] = None
        self.ring_hand: Optional[str] = None
        self.hands: Dict[str, Dict[str, str]] = {}
        self.tayer: Optional[str] = None
        self.round_number = 0
        self.max_rounds = max_rounds
        self.countdown_secs = countdown_secs
        self.hide_timer_secs = hide_timer_secs
        self.round_result: Optional[dict] = None
        self.coin_winner: Optional[str] = None
        self.winner: Optional[str] = None
        self.countdown_ends_at: Optional[int] = None
        self.hide_timer_ends_at: Optional[int] = None
        self.lock = threading.RLock()

    def members(self, team) -> List[Player]:
        return [p for p in self.players.values() if p.team == team]

    def connected(self, team=None) -> List[Player]:
        return [p for p in self.players.values()
                if not p.disconnected and (team is None or p.team == team)]

    def leader_of(self, team) -> Optional[Player]:
        for p in self.connected(team):
            if p.is_leader:
                return p
        return None

    def is_leader(self, pid, team) -> bool:
        player = self.players.get(pid)
        return bool(player and player.team == team and player.is_leader and not player.disconnected)

    def reset_round(self):
        self.ring_owner = None
        self.ring_hand = None
        self.tayer = None
        self.round_result = None
        self.hands = {}
        self.countdown_ends_at = None
        self.hide_timer_ends_at = None

    def reset_game(self):
        self.reset_round()
        self.phase = LOBBY
        self.scores = {'A': 0, 'B': 0}
        self.ring_team = None
        self.hiding_team = None
        self.searching_team = None
        self.round_number = 0
        self.coin_winner = None
        self.winner = None

    def to_dict(self):
        return {
            'code': self.code,
            'host': self.host,
            'players': {pid: p.to_dict() for pid, p in self.players.items()},
            'phase': self.phase,
            'teamNames': dict(self.team_names),
            'scores': dict(self.scores),
            'ringTeam': self.ring_team,
            'hidingTeam': self.hiding_team,
            'searchingTeam': self.searching_team,
            'ringOwner': self.ring_owner,
            'ringHand': self.ring_hand,
            'hands': {pid: dict(h) for pid, h in self.hands.items()},
            'tayer': self.tayer,
            'roundNumber': self.round_number,
            'maxRounds': self.max_rounds,
            'countdownSecs': self.countdown_secs,
            'hideTimerSecs': self.hide_timer_secs,
            'roundResult': dict(self.round_result) if self.round_result else None,
            'coinWinner': self.coin_winner,
            'winner': self.winner,
            'countdownEndsAt': self.countdown_ends_at,
            'hideTimerEndsAt': self.hide_timer_ends_at,
        }


def ensure_roles(room: Room) -> None:
    """Restore the leader and host invariants after a membership change.

    Each team with connected members ends up with exactly one connected
    leader: a current connected leader keeps the role, otherwise the
    earliest joined connected member gets it. A team whose members are
    all disconnected keeps at most one flagged leader so that a rejoining
    player finds the role where they left it.
    """
    for team in TEAMS:
        members = room.members(team)
        connected = [p for p in members if not p.disconnected]
        if connected:
            keep = next((p for p in connected if p.is_leader), connected[0])
        else:
            keep = next((p for p in members if p.is_leader), None)
        for p in members:
            p.is_leader = p is keep

    host = room.players.get(room.host) if room.host else None
    if host is None or host.disconnected:
        connected = room.connected()
        if connected:
            room.host = connected[0].id
        elif host is None:
            room.host = next(iter(room.players), None)
