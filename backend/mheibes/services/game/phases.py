import logging
import random
import time

from mheibes.models import (
    Room, HANDS, TEAMS, other_team, closed_hands,
    LOBBY, COIN_TOSS, COIN_RESULT, SELECT_RING, BAT, SELECT_TAYER, SEARCH, ROUND_END, GAME_OVER,
)

TIMER_NEXT = 'next'
TIMER_HIDE = 'hide'
TIMER_COIN = 'coin'


class RoomError(Exception):
    """A failure reported back to the requesting connection as ``error_msg``."""

    def __init__(self, code):
        super().__init__(code)
        self.code = code


class PhaseMachine:
    """Transition rules for one room's game.

    Every action returns True when it changed the room and False when a
    guard failed; a failed guard leaves the room untouched. Callers hold
    the room lock and broadcast on True. Timer callbacks defined here
    re-check the phase and broadcast on their own.
    """

    def __init__(self, timers, broadcaster, win_score=20, coin_delay=2.5,
                 rng=None, clock=time.time, logger=None):
        self.timers = timers
        self.broadcaster = broadcaster
        self.win_score = win_score
        self.coin_delay = coin_delay
        self.rng = rng or random.Random()
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _set_phase(self, room: Room, phase: str) -> None:
        self.logger.info(f"[phase] room={room.code} {room.phase} -> {phase} round={room.round_number}")
        room.phase = phase

    # ---- lobby -> coin toss ----

    def start_game(self, room: Room, sid) -> bool:
        """Move the lobby to the coin toss.

        Raises RoomError when the host asks to start with teams that
        cannot play.
        """
        if room.phase != LOBBY or sid != room.host:
            return False
        if len(room.connected()) < 2:
            raise RoomError('min_players')
        if not room.connected('A') or not room.connected('B'):
            raise RoomError('need_both_teams')
        self._set_phase(room, COIN_TOSS)
        return True

    def coin_toss(self, room: Room, sid) -> bool:
        if room.phase != COIN_TOSS or sid != room.host:
            return False
        winner = self.rng.choice(TEAMS)
        room.coin_winner = winner
        room.ring_team = winner
        room.hiding_team = winner
        room.searching_team = other_team(winner)
        self._set_phase(room, COIN_RESULT)
        self.timers.arm(room, TIMER_COIN, self.coin_delay, lambda: self._on_coin(room))
        return True

    def _on_coin(self, room: Room) -> None:
        if room.phase != COIN_RESULT:
            self.logger.info(f"[timer-abort] room={room.code} coin phase={room.phase}")
            return
        room.round_number = 1
        self._enter_select_ring(room)
        self.broadcaster.room_update(room)

    # ---- hiding ----

    def _enter_select_ring(self, room: Room) -> None:
        room.reset_round()
        room.hands = {p.id: closed_hands() for p in room.members(room.hiding_team)}
        self.timers.cancel(room.code, TIMER_NEXT)
        if room.hide_timer_secs > 0:
            self.timers.arm(room, TIMER_HIDE, room.hide_timer_secs, lambda: self._on_hide_timeout(room))
            room.hide_timer_ends_at = self._now_ms() + room.hide_timer_secs * 1000
        else:
            self.timers.cancel(room.code, TIMER_HIDE)
        self._set_phase(room, SELECT_RING)

    def _on_hide_timeout(self, room: Room) -> None:
        if room.phase != SELECT_RING:
            self.logger.info(f"[timer-abort] room={room.code} hide phase={room.phase}")
            return
        candidates = room.connected(room.hiding_team) or room.members(room.hiding_team)
        if not candidates:
            return
        owner = self.rng.choice(candidates)
        self._place_ring(room, owner.id, self.rng.choice(HANDS))
        self.broadcaster.room_update(room)

    def _place_ring(self, room: Room, target_id, hand) -> None:
        self.timers.cancel(room.code, TIMER_HIDE)
        room.hide_timer_ends_at = None
        room.ring_owner = target_id
        room.ring_hand = hand
        if room.phase != BAT:
            self._set_phase(room, BAT)

    def select_ring(self, room: Room, sid, target_id, hand) -> bool:
        if room.phase not in (SELECT_RING, BAT):
            return False
        if not room.is_leader(sid, room.hiding_team) or hand not in HANDS:
            return False
        target = room.players.get(target_id)
        if target is None or target.team != room.hiding_team:
            return False
        self._place_ring(room, target_id, hand)
        return True

    def bat(self, room: Room, sid) -> bool:
        if room.phase != BAT or not room.is_leader(sid, room.hiding_team):
            return False
        self._set_phase(room, SELECT_TAYER)
        return True

    # ---- searching ----

    def select_tayer(self, room: Room, sid, target_id) -> bool:
        if room.phase != SELECT_TAYER or not room.is_leader(sid, room.searching_team):
            return False
        target = room.players.get(target_id)
        if target is None or target.team != room.searching_team or target.disconnected:
            return False
        room.tayer = target_id
        self._set_phase(room, SEARCH)
        return True

    def _can_probe(self, room: Room, sid, target_id, hand) -> bool:
        return (room.phase == SEARCH and sid is not None and sid == room.tayer
                and target_id in room.hands and hand in HANDS)

    def tak(self, room: Room, sid, target_id, hand) -> bool:
        if not self._can_probe(room, sid, target_id, hand):
            return False
        if room.hands[target_id][hand] == 'open':
            return False
        room.hands[target_id][hand] = 'open'
        if target_id == room.ring_owner and hand == room.ring_hand:
            room.scores[room.hiding_team] += 1
            room.ring_team = room.hiding_team
            self._end_round(room, room.hiding_team, 'tak_ring')
        return True

    def jeeba(self, room: Room, sid, target_id, hand) -> bool:
        if not self._can_probe(room, sid, target_id, hand):
            return False
        if room.ring_owner in room.hands:
            room.hands[room.ring_owner][room.ring_hand] = 'open'
        if target_id == room.ring_owner and hand == room.ring_hand:
            scorer, reason = room.searching_team, 'jeeba_correct'
        else:
            scorer, reason = room.hiding_team, 'jeeba_wrong'
        room.scores[scorer] += 1
        room.ring_team = scorer
        self._end_round(room, scorer, reason)
        return True

    # ---- round end / game over ----

    def _end_round(self, room: Room, winner, reason) -> None:
        room.round_result = {
            'winner': winner,
            'reason': reason,
            'ringOwner': room.ring_owner,
            'ringHand': room.ring_hand,
        }
        room.countdown_ends_at = self._now_ms() + room.countdown_secs * 1000
        self.logger.info(
            f"[round-end] room={room.code} round={room.round_number} reason={reason} "
            f"scores={room.scores['A']}-{room.scores['B']}"
        )
        self._set_phase(room, ROUND_END)
        self.timers.arm(room, TIMER_NEXT, room.countdown_secs, lambda: self._on_next(room))

    def _on_next(self, room: Room) -> None:
        if room.phase != ROUND_END:
            self.logger.info(f"[timer-abort] room={room.code} next phase={room.phase}")
            return
        self.advance_round(room)
        self.broadcaster.room_update(room)

    def game_finished(self, room: Room) -> bool:
        if max(room.scores.values()) >= self.win_score:
            return True
        return room.max_rounds > 0 and room.round_number >= room.max_rounds

    def advance_round(self, room: Room) -> None:
        if self.game_finished(room):
            self.finish_game(room)
            return
        room.hiding_team = room.ring_team
        room.searching_team = other_team(room.ring_team)
        room.round_number += 1
        self._enter_select_ring(room)

    def finish_game(self, room: Room) -> None:
        for name in (TIMER_NEXT, TIMER_HIDE, TIMER_COIN):
            self.timers.cancel(room.code, name)
        room.countdown_ends_at = None
        room.hide_timer_ends_at = None
        room.winner = 'A' if room.scores['A'] >= room.scores['B'] else 'B'
        self._set_phase(room, GAME_OVER)

    def play_again(self, room: Room, sid) -> bool:
        if room.phase != GAME_OVER or sid != room.host:
            return False
        room.reset_game()
        self.logger.info(f"[phase] room={room.code} reset to lobby")
        return True

    # ---- membership changes during a game ----

    def player_removed(self, room: Room, pid) -> None:
        """Keep the round playable after ``pid`` left the room for good."""
        room.hands.pop(pid, None)
        if room.phase in (LOBBY, GAME_OVER):
            return
        if not room.members('A') or not room.members('B'):
            self.finish_game(room)
            return
        if room.ring_owner == pid and room.phase in (BAT, SELECT_TAYER, SEARCH):
            self._enter_select_ring(room)
        elif room.tayer == pid and room.phase == SEARCH:
            room.tayer = None
            self._set_phase(room, SELECT_TAYER)
