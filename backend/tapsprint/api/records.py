from flask import Blueprint, jsonify, current_app
from tapsprint import db
from tapsprint.services.games.modes import FingerMode, ModeKind
from tapsprint.services.games.store import RecordStore


records = Blueprint('records', __name__)


def _board(finger_mode, mode_kind):
    try:
        return FingerMode(finger_mode), ModeKind(mode_kind)
    except ValueError:
        return None


def _store():
    return RecordStore(db.session, history_limit=int(current_app.config.get('HISTORY_LIMIT', 10)))


@records.route('/<int:finger_mode>/<string:mode_kind>/best', methods=['GET'])
def get_best(finger_mode, mode_kind):
    board = _board(finger_mode, mode_kind)
    if board is None:
        return jsonify({'error': 'Unknown board'}), 400
    best = _store().get_best(*board)
    return jsonify({'best': best.to_dict() if best else None})


@records.route('/<int:finger_mode>/<string:mode_kind>/history', methods=['GET'])
def get_history(finger_mode, mode_kind):
    board = _board(finger_mode, mode_kind)
    if board is None:
        return jsonify({'error': 'Unknown board'}), 400
    history = _store().get_history(*board)
    return jsonify({'history': [r.to_dict() for r in history]})
