import logging
import threading
from typing import Dict, Optional

from mheibes.models import Room, Player, TEAMS, LOBBY, ensure_roles
from .phases import RoomError


def disconnect_timer(pid) -> str:
    return f"dc_{pid}"


def clean_name(value, limit) -> str:
    if not isinstance(value, str):
        return ''
    return ' '.join(value.split())[:limit]


def _clamp(value, lo, hi, current):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return current
    return max(lo, min(hi, number))


class GameService:
    """Binds connections to rooms and runs every inbound event.

    Each event resolves the caller's room, holds the room lock while the
    change is validated and applied, then pushes ``room_update`` to the
    room. Events from a connection that is not in a room are ignored.
    """

    def __init__(self, registry, timers, broadcaster, phases, grace_sec=60,
                 max_player_name_len=20, max_team_name_len=20, logger=None):
        self.registry = registry
        self.timers = timers
        self.broadcaster = broadcaster
        self.phases = phases
        self.grace_sec = grace_sec
        self.max_player_name_len = max_player_name_len
        self.max_team_name_len = max_team_name_len
        self.logger = logger or logging.getLogger(__name__)
        self._bindings: Dict[str, str] = {}
        self._lock = threading.Lock()

    # ---- bindings ----

    def _bind(self, sid, room: Room) -> None:
        with self._lock:
            self._bindings[sid] = room.code
        self.broadcaster.transport.enter(sid, room.code)

    def _unbind(self, sid) -> Optional[str]:
        with self._lock:
            return self._bindings.pop(sid, None)

    def room_for(self, sid) -> Optional[Room]:
        return self.registry.get(self._bindings.get(sid))

    def _act(self, sid, action, *args) -> bool:
        room = self.room_for(sid)
        if room is None:
            return False
        with room.lock:
            if self.registry.get(room.code) is not room or sid not in room.players:
                return False
            changed = action(room, sid, *args)
            if changed:
                self.broadcaster.room_update(room)
        return changed

    def _leave_current(self, sid) -> None:
        room = self.room_for(sid)
        if room is None:
            return
        with room.lock:
            if sid in room.players:
                self._remove_player(room, sid)
                if room.players:
                    self.broadcaster.room_update(room)
        self._unbind(sid)
        self.broadcaster.transport.leave(sid, room.code)

    # ---- room lifecycle ----

    def create_room(self, sid, name) -> Optional[Room]:
        name = clean_name(name, self.max_player_name_len)
        if not name:
            return None
        self._leave_current(sid)
        room = self.registry.create()
        with room.lock:
            room.players[sid] = Player(sid, name, team='A', is_leader=True)
            room.host = sid
            self._bind(sid, room)
            self.logger.info(f"[room-create] room={room.code} host={sid}")
            self.broadcaster.send(sid, 'room_created', {'code': room.code})
            self.broadcaster.room_update(room)
        return room

    def join_room(self, sid, name, code) -> Optional[Room]:
        name = clean_name(name, self.max_player_name_len)
        if not name:
            return None
        room = self.registry.get(code)
        if room is None:
            raise RoomError('not_found')
        if sid in room.players:
            return room
        if room.phase != LOBBY:
            raise RoomError('started')
        self._leave_current(sid)
        with room.lock:
            if self.registry.get(room.code) is not room:
                raise RoomError('not_found')
            if room.phase != LOBBY:
                raise RoomError('started')
            team = 'A' if len(room.members('A')) <= len(room.members('B')) else 'B'
            room.players[sid] = Player(sid, name, team=team, is_leader=room.leader_of(team) is None)
            ensure_roles(room)
            self._bind(sid, room)
            self.logger.info(f"[room-join] room={room.code} player={sid} team={team}")
            self.broadcaster.send(sid, 'room_joined', {'code': room.code})
            self.broadcaster.to_others(room, sid, 'player_joined', {'name': name})
            self.broadcaster.room_update(room)
        return room

    def _remove_player(self, room: Room, pid) -> None:
        room.players.pop(pid, None)
        self.timers.cancel(room.code, disconnect_timer(pid))
        ensure_roles(room)
        self.phases.player_removed(room, pid)
        self.logger.info(f"[room-leave] room={room.code} player={pid} remaining={len(room.players)}")
        if not room.players:
            self._destroy(room)

    def _destroy(self, room: Room) -> None:
        self.timers.cancel_room(room.code)
        self.registry.destroy(room.code)
        self.logger.info(f"[room-destroy] room={room.code}")

    # ---- connection loss and recovery ----

    def disconnect(self, sid) -> None:
        code = self._unbind(sid)
        room = self.registry.get(code)
        if room is None:
            return
        with room.lock:
            player = room.players.get(sid)
            if player is None or player.disconnected:
                return
            player.disconnected = True
            ensure_roles(room)
            self.timers.arm(room, disconnect_timer(sid), self.grace_sec,
                            lambda: self._on_grace_expired(room, sid))
            self.logger.info(f"[disconnect] room={room.code} player={sid} grace={self.grace_sec}s")
            self.broadcaster.room_update(room)

    def _on_grace_expired(self, room: Room, pid) -> None:
        if self.registry.get(room.code) is not room:
            return
        player = room.players.get(pid)
        if player is None or not player.disconnected:
            self.logger.info(f"[timer-abort] room={room.code} player={pid} already back")
            return
        self._remove_player(room, pid)
        if room.players:
            self.broadcaster.room_update(room)

    def _find_seat(self, room: Room, name, old_id) -> Optional[Player]:
        player = room.players.get(old_id) if old_id else None
        if player is not None and player.disconnected:
            return player
        name = clean_name(name, self.max_player_name_len)
        if not name:
            return None
        return next((p for p in room.players.values() if p.disconnected and p.name == name), None)

    def try_rejoin(self, sid, name, code, old_id) -> Optional[Room]:
        """Restore a disconnected player's seat under a new connection id.

        The seat is found by the previous connection id, or failing that
        by display name among disconnected players (first in join order).
        A connection that is seated elsewhere only leaves its old room once
        a seat has been found; one already seated in this room is refused.
        """
        room = self.registry.get(code)
        if room is None:
            self.broadcaster.send(sid, 'rejoin_failed')
            return None
        with room.lock:
            found = self._find_seat(room, name, old_id) is not None
        current = self.room_for(sid)
        if found and current is not None and current is not room:
            self._leave_current(sid)
        with room.lock:
            player = self._find_seat(room, name, old_id)
            if (player is None or self.registry.get(room.code) is not room
                    or (sid in room.players and sid != player.id)):
                self.broadcaster.send(sid, 'rejoin_failed')
                return None
            old = player.id
            self.timers.cancel(room.code, disconnect_timer(old))
            self._unbind(old)
            self._remap(room, old, sid)
            player.disconnected = False
            ensure_roles(room)
            self._bind(sid, room)
            self.logger.info(f"[rejoin] room={room.code} player={old} -> {sid}")
            self.broadcaster.send(sid, 'rejoin_ok', {'code': room.code})
            self.broadcaster.room_update(room)
        return room

    @staticmethod
    def _remap(room: Room, old, new) -> None:
        room.players = {(new if pid == old else pid): p for pid, p in room.players.items()}
        room.players[new].id = new
        room.hands = {(new if pid == old else pid): h for pid, h in room.hands.items()}
        if room.host == old:
            room.host = new
        if room.tayer == old:
            room.tayer = new
        if room.ring_owner == old:
            room.ring_owner = new
        if room.round_result and room.round_result.get('ringOwner') == old:
            room.round_result['ringOwner'] = new

    # ---- lobby management ----

    def _switch_team(self, room: Room, sid, team) -> bool:
        player = room.players[sid]
        if room.phase != LOBBY or team not in TEAMS or player.team == team:
            return False
        player.is_leader = False
        player.team = team
        player.is_leader = room.leader_of(team) is None
        ensure_roles(room)
        return True

    def _rename_team(self, room: Room, sid, team, new_name) -> bool:
        if room.phase != LOBBY or team not in TEAMS or not room.is_leader(sid, team):
            return False
        new_name = clean_name(new_name, self.max_team_name_len)
        if not new_name or new_name == room.team_names.get(team):
            return False
        room.team_names[team] = new_name
        return True

    def _set_settings(self, room: Room, sid, max_rounds, countdown_secs, hide_timer_secs) -> bool:
        if room.phase != LOBBY or sid != room.host:
            return False
        room.max_rounds = _clamp(max_rounds, 0, 99, room.max_rounds)
        room.countdown_secs = _clamp(countdown_secs, 1, 30, room.countdown_secs)
        room.hide_timer_secs = _clamp(hide_timer_secs, 0, 120, room.hide_timer_secs)
        return True

    def _kick_player(self, room: Room, sid, target_id) -> bool:
        if sid != room.host or target_id == sid or target_id not in room.players:
            return False
        self._remove_player(room, target_id)
        self._unbind(target_id)
        self.broadcaster.transport.leave(target_id, room.code)
        self.broadcaster.send(target_id, 'kicked')
        self.logger.info(f"[kick] room={room.code} player={target_id}")
        return True

    def _transfer_host(self, room: Room, sid, target_id) -> bool:
        target = room.players.get(target_id)
        if sid != room.host or target is None or target.disconnected or target_id == sid:
            return False
        room.host = target_id
        return True

    # ---- inbound events ----

    def switch_team(self, sid, team) -> bool:
        return self._act(sid, self._switch_team, team)

    def rename_team(self, sid, team, new_name) -> bool:
        return self._act(sid, self._rename_team, team, new_name)

    def set_settings(self, sid, max_rounds=None, countdown_secs=None, hide_timer_secs=None) -> bool:
        return self._act(sid, self._set_settings, max_rounds, countdown_secs, hide_timer_secs)

    def kick_player(self, sid, target_id) -> bool:
        return self._act(sid, self._kick_player, target_id)

    def transfer_host(self, sid, target_id) -> bool:
        return self._act(sid, self._transfer_host, target_id)

    def start_game(self, sid) -> bool:
        return self._act(sid, self.phases.start_game)

    def coin_toss(self, sid) -> bool:
        return self._act(sid, self.phases.coin_toss)

    def select_ring(self, sid, target_id, hand) -> bool:
        return self._act(sid, self.phases.select_ring, target_id, hand)

    def bat(self, sid) -> bool:
        return self._act(sid, self.phases.bat)

    def select_tayer(self, sid, target_id) -> bool:
        return self._act(sid, self.phases.select_tayer, target_id)

    def tak(self, sid, target_id, hand) -> bool:
        return self._act(sid, self.phases.tak, target_id, hand)

    def jeeba(self, sid, target_id, hand) -> bool:
        return self._act(sid, self.phases.jeeba, target_id, hand)

    def play_again(self, sid) -> bool:
        return self._act(sid, self.phases.play_again)
