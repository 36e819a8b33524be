import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of allowed origins for Socket.IO and CORS
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',') if o.strip()]
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '5'))
    # First team to reach this score wins
    WIN_SCORE = int(os.environ.get('WIN_SCORE', '20'))
    # Timers (seconds)
    COIN_DELAY_SEC = float(os.environ.get('COIN_DELAY_SEC', '2.5'))
    DISCONNECT_GRACE_SEC = float(os.environ.get('DISCONNECT_GRACE_SEC', '60'))
    # Per-room defaults, host can change them in the lobby
    DEFAULT_COUNTDOWN_SEC = int(os.environ.get('DEFAULT_COUNTDOWN_SEC', '3'))
    DEFAULT_HIDE_TIMER_SEC = int(os.environ.get('DEFAULT_HIDE_TIMER_SEC', '0'))
    DEFAULT_MAX_ROUNDS = int(os.environ.get('DEFAULT_MAX_ROUNDS', '0'))
    DEFAULT_TEAM_NAMES = {
        'A': os.environ.get('TEAM_A_NAME', 'الفريق الأول'),
        'B': os.environ.get('TEAM_B_NAME', 'الفريق الثاني'),
    }
    MAX_PLAYER_NAME_LEN = int(os.environ.get('MAX_PLAYER_NAME_LEN', '20'))
    MAX_TEAM_NAME_LEN = int(os.environ.get('MAX_TEAM_NAME_LEN', '20'))
    # Disable to record timers without running them (tests fire them by hand)
    TIMERS_ENABLED = os.environ.get('TIMERS_ENABLED', '1') not in ('0', 'false', 'False')
