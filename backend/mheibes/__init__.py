import time

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)


def build_game_service(flask_app, transport=None, rng=None, clock=None):
    """Wire the game services for ``flask_app`` and return the GameService."""
    from mheibes.services.game import (
        Broadcaster, GameService, PhaseMachine, RoomRegistry, RoomTimers, SocketIOTransport,
    )

    cfg = flask_app.config
    clock = clock or time.time
    registry = RoomRegistry(
        code_length=int(cfg.get('ROOM_CODE_LENGTH', 5)),
        room_defaults={
            'team_names': cfg.get('DEFAULT_TEAM_NAMES'),
            'max_rounds': int(cfg.get('DEFAULT_MAX_ROUNDS', 0)),
            'countdown_secs': int(cfg.get('DEFAULT_COUNTDOWN_SEC', 3)),
            'hide_timer_secs': int(cfg.get('DEFAULT_HIDE_TIMER_SEC', 0)),
        },
    )
    timers = RoomTimers(
        spawn=socketio.start_background_task,
        sleep=socketio.sleep,
        clock=clock,
        enabled=bool(cfg.get('TIMERS_ENABLED', True)),
        logger=flask_app.logger,
    )
    broadcaster = Broadcaster(transport or SocketIOTransport(socketio))
    phases = PhaseMachine(
        timers,
        broadcaster,
        win_score=int(cfg.get('WIN_SCORE', 20)),
        coin_delay=float(cfg.get('COIN_DELAY_SEC', 2.5)),
        rng=rng,
        clock=clock,
        logger=flask_app.logger,
    )
    return GameService(
        registry,
        timers,
        broadcaster,
        phases,
        grace_sec=float(cfg.get('DISCONNECT_GRACE_SEC', 60)),
        max_player_name_len=int(cfg.get('MAX_PLAYER_NAME_LEN', 20)),
        max_team_name_len=int(cfg.get('MAX_TEAM_NAME_LEN', 20)),
        logger=flask_app.logger,
    )


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    origins = flask_app.config.get('CORS_ORIGINS') or ['*']
    allowed_origins = '*' if '*' in origins else origins
    CORS(flask_app, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One game service per app; the room registry lives and dies with it
    flask_app.extensions['mheibes'] = build_game_service(flask_app)

    from mheibes.main import main
    flask_app.register_blueprint(main)

    from mheibes.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('rooms')
    def rooms_command():
        """Lists the live rooms of this process."""
        service = flask_app.extensions['mheibes']
        codes = service.registry.codes()
        if not codes:
            click.echo('No live rooms.')
            return
        for code in codes:
            room = service.registry.get(code)
            if room is None:
                continue
            click.echo(
                f"{code}  phase={room.phase}  players={len(room.players)}  "
                f"score={room.scores['A']}-{room.scores['B']}"
            )

    flask_app.cli.add_command(rooms_command)

    return flask_app
