from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone

import pytest

from tapsprint import db
from tapsprint.services.games.modes import FingerMode, ModeKind
from tapsprint.services.games.records import RecordData
from tapsprint.services.games.store import RecordStore


BASE = datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_record(value, minutes=0, finger_mode=1, had_false_start=False):
    return RecordData(
        value=value,
        date=BASE + timedelta(minutes=minutes),
        had_false_start=had_false_start,
        finger_mode=finger_mode,
    )


@pytest.fixture()
def store(flask_app):
    return RecordStore(db.session, history_limit=10)


def test_record_serialization_shape():
    record = make_record(12.34, had_false_start=True, finger_mode=2)
    data = record.to_dict()
    assert data == {
        'value': 12.34,
        'date': '2026-10-01T12:00:00+00:00',
        'hadFalseStart': True,
        'usedTicket': False,
        'fingerMode': 2,
    }
    assert RecordData.from_dict(data) == record


def test_record_from_dict_accepts_naive_dates():
    record = RecordData.from_dict({
        'value': 42, 'date': '2026-10-01T12:00:00', 'hadFalseStart': False,
        'usedTicket': False, 'fingerMode': 1,
    })
    assert record.value == 42.0
    assert record.date.tzinfo is timezone.utc


def test_record_is_immutable():
    record = make_record(1.0)
    with pytest.raises(FrozenInstanceError):
        record.value = 2.0


def test_time_attack_best_is_lowest(store):
    assert store.get_best(1, ModeKind.TIME_ATTACK) is None
    first = make_record(15.2, 0)
    assert store.save(first, ModeKind.TIME_ATTACK) == first
    assert store.save(make_record(16.0, 1), ModeKind.TIME_ATTACK) == first
    faster = make_record(14.1, 2)
    assert store.save(faster, ModeKind.TIME_ATTACK) == faster
    assert store.get_best(1, ModeKind.TIME_ATTACK) == faster


def test_tap_challenge_best_is_highest(store):
    store.save(make_record(80, 0), ModeKind.TAP_CHALLENGE)
    better = make_record(95, 1)
    assert store.save(better, ModeKind.TAP_CHALLENGE) == better
    assert store.save(make_record(-3, 2, had_false_start=True), ModeKind.TAP_CHALLENGE) == better
    assert store.get_best(FingerMode.ONE, ModeKind.TAP_CHALLENGE).value == 95


def test_tie_keeps_earlier_best(store):
    first = make_record(50, 0)
    store.save(first, ModeKind.TAP_CHALLENGE)
    assert store.save(make_record(50, 1), ModeKind.TAP_CHALLENGE) == first
    assert store.get_best(1, ModeKind.TAP_CHALLENGE) == first


def test_boards_are_independent(store):
    store.save(make_record(10.0, 0, finger_mode=1), ModeKind.TIME_ATTACK)
    store.save(make_record(20.0, 1, finger_mode=2), ModeKind.TIME_ATTACK)
    store.save(make_record(70, 2, finger_mode=1), ModeKind.TAP_CHALLENGE)
    assert store.get_best(1, ModeKind.TIME_ATTACK).value == 10.0
    assert store.get_best(2, ModeKind.TIME_ATTACK).value == 20.0
    assert store.get_best(1, ModeKind.TAP_CHALLENGE).value == 70
    assert store.get_best(2, ModeKind.TAP_CHALLENGE) is None
    assert len(store.get_history(1, ModeKind.TIME_ATTACK)) == 1


def test_history_most_recent_first_and_capped(store):
    for i in range(12):
        store.save(make_record(10.0 + i, i), ModeKind.TIME_ATTACK)
    history = store.get_history(1, ModeKind.TIME_ATTACK)
    assert len(history) == 10
    assert [r.value for r in history] == [21.0 - i for i in range(10)]
    # The best survives even after dropping out of the history window
    assert store.get_best(1, ModeKind.TIME_ATTACK).value == 10.0


def test_show_records_cli(flask_app, store):
    store.save(make_record(12.5, 0), ModeKind.TIME_ATTACK)
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['show-records', '--finger-mode', '1', '--mode-kind', 'time_attack'])
    assert result.exit_code == 0
    assert 'best:' in result.output
    assert '12.50s' in result.output
