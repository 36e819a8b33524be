from flask import current_app, request
from flask_socketio import emit
from mheibes import socketio
from mheibes.services.game import GameService, RoomError


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _service() -> GameService:
    return current_app.extensions['mheibes']


def _payload(data) -> dict:
    return data if isinstance(data, dict) else {}


def handle_connect(auth=None):
    emit('connected', {'sid': _get_sid()})


def handle_disconnect(reason=None):
    _service().disconnect(_get_sid())


def handle_create_room(data=None):
    _service().create_room(_get_sid(), _payload(data).get('name'))


def handle_join_room(data=None):
    data = _payload(data)
    try:
        _service().join_room(_get_sid(), data.get('name'), data.get('code'))
    except RoomError as exc:
        emit('error_msg', {'code': exc.code})


def handle_try_rejoin(data=None):
    data = _payload(data)
    _service().try_rejoin(_get_sid(), data.get('name'), data.get('roomCode'), data.get('oldConnId'))


def handle_switch_team(data=None):
    _service().switch_team(_get_sid(), _payload(data).get('team'))


def handle_rename_team(data=None):
    data = _payload(data)
    _service().rename_team(_get_sid(), data.get('team'), data.get('newName'))


def handle_set_settings(data=None):
    data = _payload(data)
    _service().set_settings(
        _get_sid(),
        max_rounds=data.get('maxRounds'),
        countdown_secs=data.get('countdownSecs'),
        hide_timer_secs=data.get('hideTimerSecs'),
    )


def handle_kick_player(data=None):
    _service().kick_player(_get_sid(), _payload(data).get('targetId'))


def handle_transfer_host(data=None):
    _service().transfer_host(_get_sid(), _payload(data).get('targetId'))


def handle_start_game(data=None):
    try:
        _service().start_game(_get_sid())
    except RoomError as exc:
        emit('error_msg', {'code': exc.code})


def handle_coin_toss(data=None):
    _service().coin_toss(_get_sid())


def handle_select_ring(data=None):
    data = _payload(data)
    _service().select_ring(_get_sid(), data.get('targetId'), data.get('hand'))


def handle_bat(data=None):
    _service().bat(_get_sid())


def handle_select_tayer(data=None):
    _service().select_tayer(_get_sid(), _payload(data).get('targetId'))


def handle_tak(data=None):
    data = _payload(data)
    _service().tak(_get_sid(), data.get('targetId'), data.get('hand'))


def handle_jeeba(data=None):
    data = _payload(data)
    _service().jeeba(_get_sid(), data.get('targetId'), data.get('hand'))


def handle_play_again(data=None):
    _service().play_again(_get_sid())


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('create_room', handle_create_room, namespace=namespace)
    socketio.on_event('join_room', handle_join_room, namespace=namespace)
    socketio.on_event('try_rejoin', handle_try_rejoin, namespace=namespace)
    socketio.on_event('switch_team', handle_switch_team, namespace=namespace)
    socketio.on_event('rename_team', handle_rename_team, namespace=namespace)
    socketio.on_event('set_settings', handle_set_settings, namespace=namespace)
    socketio.on_event('kick_player', handle_kick_player, namespace=namespace)
    socketio.on_event('transfer_host', handle_transfer_host, namespace=namespace)
    socketio.on_event('start_game', handle_start_game, namespace=namespace)
    socketio.on_event('coin_toss', handle_coin_toss, namespace=namespace)
    socketio.on_event('select_ring', handle_select_ring, namespace=namespace)
    socketio.on_event('bat', handle_bat, namespace=namespace)
    socketio.on_event('select_tayer', handle_select_tayer, namespace=namespace)
    socketio.on_event('tak', handle_tak, namespace=namespace)
    socketio.on_event('jeeba', handle_jeeba, namespace=namespace)
    socketio.on_event('play_again', handle_play_again, namespace=namespace)
