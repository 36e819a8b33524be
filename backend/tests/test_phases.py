import pytest

from mheibes.services.game import RoomError


def test_start_game_requires_host(service, lobby):
    assert not service.start_game('p2')
    assert lobby.phase == 'lobby'
    assert service.start_game('p1')
    assert lobby.phase == 'coin_toss'


def test_start_game_needs_two_players(service):
    room = service.create_room('p1', 'Ali')
    with pytest.raises(RoomError) as exc:
        service.start_game('p1')
    assert exc.value.code == 'min_players'
    assert room.phase == 'lobby'


def test_start_game_needs_both_teams(service, lobby):
    service.switch_team('p2', 'A')
    with pytest.raises(RoomError) as exc:
        service.start_game('p1')
    assert exc.value.code == 'need_both_teams'
    assert lobby.phase == 'lobby'


def test_coin_toss_assigns_roles_and_auto_advances(service, lobby, rng):
    rng.pick = 1
    service.start_game('p1')
    assert not service.coin_toss('p2')
    assert service.coin_toss('p1')
    assert lobby.phase == 'coin_result'
    assert lobby.coin_winner == 'B'
    assert (lobby.hiding_team, lobby.searching_team, lobby.ring_team) == ('B', 'A', 'B')
    assert service.timers.pending(lobby.code) == ['coin']

    assert service.timers.fire(lobby.code, 'coin')
    assert lobby.phase == 'select_ring'
    assert lobby.round_number == 1
    assert lobby.hands == {'p2': {'left': 'closed', 'right': 'closed'}}


def test_coin_timer_is_stale_after_reset(service, lobby):
    service.start_game('p1')
    service.coin_toss('p1')
    lobby.phase = 'lobby'
    service.timers.fire(lobby.code, 'coin')
    assert lobby.phase == 'lobby'
    assert lobby.round_number == 0


def test_scenario_a_tak_on_ring_scores_hiding_team(service, lobby, to_search):
    to_search(lobby)
    assert lobby.phase == 'search'
    assert lobby.tayer == 'p2'

    assert service.tak('p2', 'p1', 'left')
    assert lobby.scores == {'A': 1, 'B': 0}
    assert lobby.phase == 'round_end'
    assert lobby.round_result == {'winner': 'A', 'reason': 'tak_ring', 'ringOwner': 'p1', 'ringHand': 'left'}
    assert lobby.hands['p1']['left'] == 'open'
    assert lobby.countdown_ends_at == 1000 * 1000 + 3000
    assert 'next' in service.timers.pending(lobby.code)


def test_tak_miss_opens_hand_and_keeps_searching(service, lobby, to_search):
    to_search(lobby)
    assert service.tak('p2', 'p1', 'right')
    assert lobby.phase == 'search'
    assert lobby.scores == {'A': 0, 'B': 0}
    assert lobby.hands['p1'] == {'left': 'closed', 'right': 'open'}
    # Same hand twice is ignored
    assert not service.tak('p2', 'p1', 'right')


def test_scenario_b_wrong_jeeba_scores_hiding_team(service, lobby, to_search):
    to_search(lobby)
    assert service.jeeba('p2', 'p1', 'right')
    assert lobby.scores == {'A': 1, 'B': 0}
    assert lobby.round_result['reason'] == 'jeeba_wrong'
    assert lobby.ring_team == 'A'
    # The true holder's hand is revealed
    assert lobby.hands['p1'] == {'left': 'open', 'right': 'closed'}


def test_correct_jeeba_scores_searching_team_and_swaps_roles(service, lobby, to_search):
    to_search(lobby)
    assert service.jeeba('p2', 'p1', 'left')
    assert lobby.scores == {'A': 0, 'B': 1}
    assert lobby.round_result['reason'] == 'jeeba_correct'
    assert lobby.ring_team == 'B'

    service.timers.fire(lobby.code, 'next')
    assert lobby.phase == 'select_ring'
    assert lobby.round_number == 2
    assert (lobby.hiding_team, lobby.searching_team) == ('B', 'A')
    assert lobby.ring_owner is None and lobby.tayer is None and lobby.round_result is None
    assert lobby.hands == {'p2': {'left': 'closed', 'right': 'closed'}}


def test_only_tayer_may_probe(service, lobby4, to_search):
    to_search(lobby4, tayer='p4')
    assert not service.tak('p2', 'p1', 'left')
    assert not service.jeeba('p1', 'p1', 'left')
    assert not service.tak('p4', 'p2', 'left')  # not a hiding-team hand
    assert not service.tak('p4', 'p1', 'middle')
    assert lobby4.phase == 'search'
    assert service.tak('p4', 'p1', 'left')


def test_select_ring_guards(service, lobby4):
    service.start_game('p1')
    service.coin_toss('p1')
    service.timers.fire(lobby4.code, 'coin')
    assert not service.select_ring('p3', 'p1', 'left')  # not the leader
    assert not service.select_ring('p2', 'p2', 'left')  # searching team
    assert not service.select_ring('p1', 'p2', 'left')  # target on other team
    assert not service.select_ring('p1', 'p3', 'thumb')
    assert lobby4.phase == 'select_ring'
    assert service.select_ring('p1', 'p3', 'right')
    assert lobby4.phase == 'bat'


def test_select_ring_again_before_bat_overwrites(service, lobby4):
    service.start_game('p1')
    service.coin_toss('p1')
    service.timers.fire(lobby4.code, 'coin')
    service.select_ring('p1', 'p1', 'left')
    scores = dict(lobby4.scores)
    assert service.select_ring('p1', 'p3', 'right')
    assert lobby4.phase == 'bat'
    assert (lobby4.ring_owner, lobby4.ring_hand) == ('p3', 'right')
    assert lobby4.scores == scores
    service.bat('p1')
    assert not service.select_ring('p1', 'p1', 'left')


def test_select_tayer_guards(service, lobby4):
    service.start_game('p1')
    service.coin_toss('p1')
    service.timers.fire(lobby4.code, 'coin')
    service.select_ring('p1', 'p1', 'left')
    assert not service.select_tayer('p2', 'p4')  # still in bat
    service.bat('p1')
    assert not service.select_tayer('p4', 'p4')  # not the leader
    assert not service.select_tayer('p2', 'p3')  # hiding team
    assert service.select_tayer('p2', 'p4')
    assert lobby4.tayer == 'p4'


def test_hide_timer_picks_ring_when_leader_waits(service, lobby):
    lobby.hide_timer_secs = 15
    service.start_game('p1')
    service.coin_toss('p1')
    service.timers.fire(lobby.code, 'coin')
    assert 'hide' in service.timers.pending(lobby.code)
    assert lobby.hide_timer_ends_at == 1000 * 1000 + 15000

    assert service.timers.fire(lobby.code, 'hide')
    assert lobby.phase == 'bat'
    assert (lobby.ring_owner, lobby.ring_hand) == ('p1', 'left')
    assert lobby.hide_timer_ends_at is None


def test_hide_timer_is_stale_once_ring_is_placed(service, lobby, transport):
    lobby.hide_timer_secs = 15
    service.start_game('p1')
    service.coin_toss('p1')
    service.timers.fire(lobby.code, 'coin')
    lobby.phase = 'bat'
    lobby.ring_owner, lobby.ring_hand = 'p1', 'right'
    transport.clear()
    assert service.timers.fire(lobby.code, 'hide')
    assert lobby.phase == 'bat'
    assert (lobby.ring_owner, lobby.ring_hand) == ('p1', 'right')
    assert transport.sent == []


def test_manual_ring_selection_cancels_hide_timer(service, lobby):
    lobby.hide_timer_secs = 15
    service.start_game('p1')
    service.coin_toss('p1')
    service.timers.fire(lobby.code, 'coin')
    service.select_ring('p1', 'p1', 'right')
    assert 'hide' not in service.timers.pending(lobby.code)
    assert not service.timers.fire(lobby.code, 'hide')
    assert lobby.ring_hand == 'right'


def test_scenario_d_win_score_ends_game(service, lobby, to_search):
    lobby.max_rounds = 50
    to_search(lobby)
    lobby.scores['B'] = 19
    service.jeeba('p2', 'p1', 'left')
    assert lobby.scores['B'] == 20
    assert lobby.phase == 'round_end'

    service.timers.fire(lobby.code, 'next')
    assert lobby.phase == 'game_over'
    assert lobby.winner == 'B'
    assert service.timers.pending(lobby.code) == []


def test_next_round_timer_is_stale_after_reset(service, lobby, to_search, transport):
    to_search(lobby)
    service.tak('p2', 'p1', 'left')
    assert lobby.phase == 'round_end'
    lobby.phase = 'lobby'
    transport.clear()
    assert service.timers.fire(lobby.code, 'next')
    assert lobby.phase == 'lobby'
    assert lobby.round_number == 1
    assert transport.sent == []


def test_max_rounds_ends_game_with_tie_to_team_a(service, lobby, to_search):
    lobby.max_rounds = 1
    to_search(lobby)
    lobby.scores['B'] = 1
    service.tak('p2', 'p1', 'left')
    assert lobby.scores == {'A': 1, 'B': 1}
    service.timers.fire(lobby.code, 'next')
    assert lobby.phase == 'game_over'
    assert lobby.winner == 'A'


def test_play_again_returns_to_lobby(service, lobby, to_search):
    lobby.max_rounds = 1
    to_search(lobby)
    service.tak('p2', 'p1', 'left')
    service.timers.fire(lobby.code, 'next')
    assert not service.play_again('p2')
    assert service.play_again('p1')
    assert lobby.phase == 'lobby'
    assert lobby.scores == {'A': 0, 'B': 0}
    assert lobby.round_number == 0
    assert lobby.hiding_team is None and lobby.winner is None
    assert set(lobby.players) == {'p1', 'p2'}
    assert lobby.max_rounds == 1


def test_hiding_and_searching_teams_stay_complementary(service, lobby, to_search):
    to_search(lobby)
    for _ in range(3):
        service.jeeba(lobby.tayer, lobby.ring_owner, lobby.ring_hand)
        service.timers.fire(lobby.code, 'next')
        assert {lobby.hiding_team, lobby.searching_team} == {'A', 'B'}
        leader = lobby.leader_of(lobby.hiding_team).id
        seeker = lobby.leader_of(lobby.searching_team).id
        service.select_ring(leader, leader, 'left')
        service.bat(leader)
        service.select_tayer(seeker, seeker)


def test_removed_ring_owner_sends_round_back_to_hiding(service, lobby4, to_search):
    to_search(lobby4, owner='p3', hand='right', tayer='p4')
    service.disconnect('p3')
    service.timers.fire(lobby4.code, 'dc_p3')
    assert lobby4.phase == 'select_ring'
    assert lobby4.ring_owner is None
    assert lobby4.hands == {'p1': {'left': 'closed', 'right': 'closed'}}
    assert lobby4.round_number == 1


def test_removed_tayer_sends_round_back_to_tayer_selection(service, lobby4, to_search):
    to_search(lobby4, tayer='p4')
    service.disconnect('p4')
    assert lobby4.tayer == 'p4'
    service.timers.fire(lobby4.code, 'dc_p4')
    assert lobby4.phase == 'select_tayer'
    assert lobby4.tayer is None
    assert service.select_tayer('p2', 'p2')


def test_team_emptied_mid_game_ends_game(service, lobby, to_search):
    to_search(lobby)
    service.tak('p2', 'p1', 'right')
    service.disconnect('p2')
    service.timers.fire(lobby.code, 'dc_p2')
    assert lobby.phase == 'game_over'
    assert lobby.winner == 'A'
