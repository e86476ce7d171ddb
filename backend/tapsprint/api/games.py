from flask import Blueprint, jsonify, request, current_app
import time
from tapsprint.services.games.controller import create_session, discard_session, get_session
from tapsprint.services.games.modes import FingerMode, ModeKind, TapSide


games = Blueprint('games', __name__)


def _parse_finger_mode(value):
    try:
        return FingerMode(int(value))
    except (TypeError, ValueError):
        return None


def _parse_mode_kind(value):
    try:
        return ModeKind(str(value).lower())
    except ValueError:
        return None


def parse_side(value, finger_mode=FingerMode.ONE):
    """Returns (side, ok). Only one-finger taps may omit the side."""
    if value is None or value == '':
        return None, finger_mode is not FingerMode.TWO
    try:
        return TapSide(str(value).lower()), True
    except ValueError:
        return None, False


def _debounced(action: str, controller) -> bool:
    try:
        debounce_ms = int(current_app.config.get('CONTROLLER_DEBOUNCE_MS', 0))
    except (TypeError, ValueError):
        debounce_ms = 0
    if debounce_ms <= 0:
        return False
    now = time.time() * 1000.0
    last = controller.last_command_at.get(action, 0)
    if now - last < debounce_ms:
        return True
    controller.last_command_at[action] = now
    return False


def _not_found():
    return jsonify({'error': 'Session not found'}), 404


@games.route('/create', methods=['POST'])
def create():
    data = request.get_json(silent=True) or {}
    finger_mode = _parse_finger_mode(data.get('finger_mode', 1))
    if finger_mode is None:
        return jsonify({'error': 'finger_mode must be 1 or 2'}), 400
    mode_kind = _parse_mode_kind(data.get('mode_kind', ModeKind.TIME_ATTACK.value))
    if mode_kind is None:
        return jsonify({'error': 'mode_kind must be time_attack or tap_challenge'}), 400

    controller = create_session(current_app._get_current_object(), finger_mode, mode_kind)
    payload = controller.to_dict()
    payload['message'] = 'New session created!'
    return jsonify(payload), 201


@games.route('/<string:session_code>/state', methods=['GET'])
def get_state(session_code):
    controller = get_session(session_code)
    if controller is None:
        return _not_found()
    return jsonify(controller.to_dict())


@games.route('/<string:session_code>/start', methods=['POST'])
def start(session_code):
    controller = get_session(session_code)
    if controller is None:
        return _not_found()
    if _debounced('start', controller):
        return jsonify({'message': 'debounced'}), 202
    # Idempotent: starting outside the ready phase is ignored
    controller.start_sequence()
    return jsonify(controller.to_dict())


@games.route('/<string:session_code>/tap', methods=['POST'])
def tap(session_code):
    controller = get_session(session_code)
    if controller is None:
        return _not_found()
    data = request.get_json(silent=True) or {}
    side, ok = parse_side(data.get('side'), controller.session.finger_mode)
    if not ok:
        return jsonify({'error': 'side must be left or right'}), 400
    valid = controller.handle_tap(side)
    payload = controller.to_dict()
    payload['valid'] = valid
    return jsonify(payload)


@games.route('/<string:session_code>/reset', methods=['POST'])
def reset(session_code):
    controller = get_session(session_code)
    if controller is None:
        return _not_found()
    if _debounced('reset', controller):
        return jsonify({'message': 'debounced'}), 202
    controller.reset()
    return jsonify(controller.to_dict())


@games.route('/<string:session_code>/leave', methods=['POST'])
def leave(session_code):
    if not discard_session(session_code):
        return _not_found()
    return jsonify({'message': 'Session closed.'})
