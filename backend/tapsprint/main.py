from flask import Blueprint, current_app, jsonify

from tapsprint.services.games.session import SessionRules

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Tap Sprint game server!'})

@main.route('/rules')
def rules():
    """Timing rules clients need to render countdowns and targets."""
    r = SessionRules.from_config(current_app.config)
    return jsonify({
        'on_your_mark_ms': r.on_your_mark_ms,
        'set_range_ms': [r.set_min_ms, r.set_max_ms],
        'time_attack_target': r.time_attack_target,
        'tap_challenge_limit_ms': r.tap_challenge_limit_ms,
        'false_start_penalty_ms': r.false_start_penalty_ms,
        'false_start_penalty_taps': r.false_start_penalty_taps,
    })
