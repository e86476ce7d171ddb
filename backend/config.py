import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///tapsprint.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Start sequence (ms): "on your mark" hold, then a random "set" hold in [min, max)
    ON_YOUR_MARK_MS = int(os.environ.get('ON_YOUR_MARK_MS', '1500'))
    SET_MIN_MS = int(os.environ.get('SET_MIN_MS', '1500'))
    SET_MAX_MS = int(os.environ.get('SET_MAX_MS', '3000'))
    # Periodic tick while playing (ms); drives tap-challenge timeout and display refresh
    TICK_INTERVAL_MS = int(os.environ.get('TICK_INTERVAL_MS', '10'))
    # How long same-side tap feedback stays visible (ms)
    INVALID_FEEDBACK_MS = int(os.environ.get('INVALID_FEEDBACK_MS', '200'))
    TIME_ATTACK_TARGET = int(os.environ.get('TIME_ATTACK_TARGET', '100'))
    TAP_CHALLENGE_LIMIT_MS = int(os.environ.get('TAP_CHALLENGE_LIMIT_MS', '10000'))
    # False start penalties: time attack blocks taps, tap challenge starts below zero
    FALSE_START_PENALTY_MS = int(os.environ.get('FALSE_START_PENALTY_MS', '3000'))
    FALSE_START_PENALTY_TAPS = int(os.environ.get('FALSE_START_PENALTY_TAPS', '10'))
    HISTORY_LIMIT = int(os.environ.get('HISTORY_LIMIT', '10'))
    # Minimum gap between tick-only state broadcasts (ms). 0 sends every tick.
    STATE_BROADCAST_INTERVAL_MS = int(os.environ.get('STATE_BROADCAST_INTERVAL_MS', '100'))
    # Optional: debounce start/reset commands (ms). 0 disables.
    CONTROLLER_DEBOUNCE_MS = int(os.environ.get('CONTROLLER_DEBOUNCE_MS', '0'))
    # Seconds to wait after the session owner disconnects before discarding the session
    OWNER_GRACE_SEC = float(os.environ.get('OWNER_GRACE_SEC', '2.0'))
