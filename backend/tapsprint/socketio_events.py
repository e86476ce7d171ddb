from flask_socketio import join_room, leave_room, emit
from tapsprint import socketio
from flask import current_app, request
from tapsprint.api.games import parse_side
from tapsprint.services.games.controller import discard_session, get_session
from typing import Dict, Any
import time


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # If this socket owned a session and no other owner remains, discard it
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    code = ctx.get('session_code')
    if ctx.get('is_session_owner') and code:
        _owner_count[code] = max(0, _owner_count.get(code, 0) - 1)
        # In tests, end immediately for determinism; in prod, allow grace period
        if current_app.config.get('TESTING'):
            if _owner_count.get(code, 0) == 0:
                _end_session(code)
            return
        _schedule_end_if_no_owner(code, float(current_app.config.get('OWNER_GRACE_SEC', 2.0)))


def handle_join_session(data):
    code = ((data or {}).get('session_code') or '').upper()
    is_session_owner = bool((data or {}).get('is_session_owner'))
    if not code:
        emit('error', {'message': 'session_code is required'})
        return
    controller = get_session(code)
    if controller is None:
        emit('error', {'message': 'Session not found'})
        return
    join_room(controller.room)
    _sid_to_ctx[_get_sid()] = {'session_code': code, 'is_session_owner': is_session_owner}
    if is_session_owner:
        _owner_count[code] = _owner_count.get(code, 0) + 1
        _cancel_scheduled_end(code)
    emit('joined', {'room': controller.room, **controller.to_dict()})


def handle_leave_session(data):
    code = ((data or {}).get('session_code') or '').upper()
    if not code:
        emit('error', {'message': 'session_code is required'})
        return
    room = f"session:{code}"
    leave_room(room)
    emit('left', {'room': room})
    # Explicit quit by the owner ends the session immediately
    ctx = _sid_to_ctx.get(_get_sid())
    if ctx and ctx.get('is_session_owner') and ctx.get('session_code') == code:
        _end_session(code)


def handle_tap(data):
    """Low-latency tap path; replies with tap_result to the sender only."""
    code = ((data or {}).get('session_code') or '').upper()
    controller = get_session(code)
    if controller is None:
        emit('error', {'message': 'Session not found'})
        return
    side, ok = parse_side((data or {}).get('side'), controller.session.finger_mode)
    if not ok:
        emit('error', {'message': 'side must be left or right'})
        return
    valid = controller.handle_tap(side)
    emit('tap_result', {'session_code': code, 'valid': valid, **controller.to_dict()})


def handle_ping(data):
    emit('pong', data or {})

# ---- Session owner lifecycle helpers ----

_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_owner_count: Dict[str, int] = {}
_end_deadline: Dict[str, float] = {}

def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]

def _end_session(code: str) -> None:
    """Notify room members, then discard the session and its timers."""
    socketio.emit('session_ended', {'session_code': code}, to=f"session:{code}", namespace='/ws')
    try:
        discard_session(code)
    finally:
        _owner_count.pop(code, None)
        _end_deadline.pop(code, None)

def _schedule_end_if_no_owner(code: str, delay_sec: float = 2.0) -> None:
    if _owner_count.get(code, 0) > 0:
        return
    _end_deadline[code] = time.time() + delay_sec

    def _runner(session_code: str, deadline: float):
        sleep_for = max(0.0, deadline - time.time())
        if sleep_for:
            socketio.sleep(sleep_for)
        if _owner_count.get(session_code, 0) == 0 and _end_deadline.get(session_code) == deadline:
            _end_session(session_code)

    socketio.start_background_task(_runner, code, _end_deadline[code])

def _cancel_scheduled_end(code: str) -> None:
    _end_deadline.pop(code, None)


def reset_socket_state() -> None:
    _sid_to_ctx.clear()
    _owner_count.clear()
    _end_deadline.clear()


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_session': handle_join_session,
        'leave_session': handle_leave_session,
        'tap': handle_tap,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
