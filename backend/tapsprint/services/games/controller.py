"""Live session controllers and their in-process registry.

A ``SessionController`` owns one ``GameSession`` together with the services
it needs (scheduler, random source, record store, broadcast function). It
serializes player commands and timer callbacks under one lock, broadcasts
state to the session's Socket.IO room, and persists a record once per
finished attempt.
"""

import random
import string
import threading
from typing import Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from tapsprint import db, socketio
from .modes import Phase, TapSide
from .records import RecordData
from .scheduler import BackgroundScheduler, ManualScheduler
from .session import GameSession, SessionRules
from .store import RecordStore


_sessions: Dict[str, 'SessionController'] = {}


def generate_session_code(length=4):
    """Generate a unique, short session code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in _sessions:
            return code


def make_scheduler(app, lock):
    """Manual (test-driven) clock under TESTING, background timers otherwise."""
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return ManualScheduler()
    return BackgroundScheduler(socketio, lock=lock)


class SessionController:
    def __init__(self, app, code: str, finger_mode, mode_kind, scheduler=None, rng=None, store=None,
                 emit: Optional[Callable] = None):
        self.app = app
        self.code = code
        self.lock = getattr(scheduler, 'lock', None) or threading.RLock()
        self.scheduler = scheduler if scheduler is not None else make_scheduler(app, self.lock)
        if store is None:
            store = RecordStore(db.session, history_limit=int(app.config.get('HISTORY_LIMIT', 10)))
        self.store = store
        if emit is None:
            emit = socketio.emit
        self._emit = emit
        self.session = GameSession(
            finger_mode, mode_kind, self.scheduler, rng=rng, rules=SessionRules.from_config(app.config)
        )
        self.result: Optional[dict] = None
        # Last accepted time (ms) per debounced command, e.g. 'start'
        self.last_command_at: Dict[str, float] = {}
        self._broadcast_interval_ms = float(app.config.get('STATE_BROADCAST_INTERVAL_MS', 100))
        self._last_broadcast_at: Optional[float] = None
        self._last_signature = None
        self.session.subscribe(self._on_change)

    @property
    def room(self) -> str:
        return f"session:{self.code}"

    # ---- commands ----

    def start_sequence(self) -> None:
        with self.lock:
            self.session.start_sequence()

    def handle_tap(self, side: Optional[TapSide] = None) -> bool:
        with self.lock:
            return self.session.handle_tap(side)

    def reset(self) -> None:
        with self.lock:
            self.result = None
            self.session.reset()

    def dispose(self) -> None:
        with self.lock:
            self.session.dispose()

    def to_dict(self) -> dict:
        with self.lock:
            return {
                'session_code': self.code,
                'state': self.session.snapshot().to_dict(),
                'result': self.result,
            }

    # ---- change handling ----

    def _on_change(self, session: GameSession) -> None:
        snapshot = session.snapshot()
        if session.phase is Phase.FINISHED and self.result is None:
            self._record_result(session)

        # Phase and counter changes go out immediately; tick-only refreshes are throttled
        signature = (snapshot.phase, snapshot.tap_count, snapshot.invalid_tap_count,
                     snapshot.last_tap_was_invalid, snapshot.had_false_start)
        now = self.scheduler.now_ms()
        due = (
            self._last_broadcast_at is None
            or now - self._last_broadcast_at >= self._broadcast_interval_ms
        )
        if signature == self._last_signature and not due:
            return
        self._last_signature = signature
        self._last_broadcast_at = now
        self._emit('state_update', {'session_code': self.code, 'state': snapshot.to_dict()},
                   to=self.room, namespace='/ws')

    def _record_result(self, session: GameSession) -> None:
        record = RecordData.from_session(session)
        try:
            with self.app.app_context():
                best = self.store.save(record, session.mode_kind)
                history = self.store.get_history(session.finger_mode, session.mode_kind)
        except SQLAlchemyError as e:
            self.app.logger.error(f"[session-finish] session={self.code} record not saved: {e}", exc_info=True)
            self.result = {
                'record': record.to_dict(),
                'best': None,
                'history': [],
                'is_new_best': False,
                'diff_from_best': 0.0,
                'error': 'record not saved',
            }
        else:
            self.result = {
                'record': record.to_dict(),
                'best': best.to_dict() if best else None,
                'history': [r.to_dict() for r in history],
                'is_new_best': best == record,
                'diff_from_best': record.value - best.value if best else 0.0,
            }
        self.app.logger.info(
            f"[session-finish] session={self.code} value={record.value} new_best={self.result['is_new_best']}"
        )
        self._emit('session_finished', {'session_code': self.code, **self.result},
                   to=self.room, namespace='/ws')


# ---- registry ----

def create_session(app, finger_mode, mode_kind, **kwargs) -> SessionController:
    code = generate_session_code()
    controller = SessionController(app, code, finger_mode, mode_kind, **kwargs)
    _sessions[code] = controller
    app.logger.info(f"[session-create] session={code} fingers={int(controller.session.finger_mode)} "
                    f"mode={controller.session.mode_kind.value}")
    return controller


def get_session(code: str) -> Optional[SessionController]:
    if not code:
        return None
    return _sessions.get(code.upper())


def discard_session(code: str) -> bool:
    controller = _sessions.pop((code or '').upper(), None)
    if controller is None:
        return False
    controller.dispose()
    controller.app.logger.info(f"[session-discard] session={controller.code}")
    return True


def clear_sessions() -> None:
    for code in list(_sessions):
        discard_session(code)
