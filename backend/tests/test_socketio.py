from tapsprint.services.games.controller import get_session
from tapsprint.services.games.modes import Phase


def _create(client, **payload):
    return client.post('/api/games/create', json=payload).get_json()['session_code']


def _names(events):
    return [e['name'] for e in events]


def _to_playing(code):
    controller = get_session(code)
    controller.scheduler.advance(1500)
    while controller.session.phase is not Phase.PLAYING:
        controller.scheduler.advance(1)
    return controller.scheduler


def test_socket_connect_and_join(client, sio_client):
    assert sio_client.is_connected('/ws')
    sio_client.get_received('/ws')

    code = _create(client)
    sio_client.emit('join_session', {'session_code': code.lower()}, namespace='/ws')
    received = sio_client.get_received('/ws')
    joined = [e for e in received if e['name'] == 'joined']
    assert joined
    assert joined[0]['args'][0]['room'] == f'session:{code}'
    assert joined[0]['args'][0]['state']['phase'] == 'ready'


def test_join_unknown_session_errors(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_session', {'session_code': 'QQQQ'}, namespace='/ws')
    assert 'error' in _names(sio_client.get_received('/ws'))
    sio_client.emit('join_session', {}, namespace='/ws')
    assert 'error' in _names(sio_client.get_received('/ws'))


def test_ping_pong(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    pongs = [e for e in sio_client.get_received('/ws') if e['name'] == 'pong']
    assert pongs and pongs[0]['args'][0] == {'n': 1}


def test_phase_changes_are_broadcast(client, sio_client):
    code = _create(client)
    sio_client.emit('join_session', {'session_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post(f'/api/games/{code}/start')
    _to_playing(code)
    updates = [e['args'][0]['state']['phase'] for e in sio_client.get_received('/ws') if e['name'] == 'state_update']
    assert updates[:3] == ['on_your_mark', 'set', 'playing']


def test_tap_over_socket(client, sio_client):
    code = _create(client, finger_mode=2)
    sio_client.emit('join_session', {'session_code': code}, namespace='/ws')
    client.post(f'/api/games/{code}/start')
    _to_playing(code)
    sio_client.get_received('/ws')

    sio_client.emit('tap', {'session_code': code, 'side': 'right'}, namespace='/ws')
    sio_client.emit('tap', {'session_code': code, 'side': 'right'}, namespace='/ws')
    results = [e['args'][0] for e in sio_client.get_received('/ws') if e['name'] == 'tap_result']
    assert [r['valid'] for r in results] == [True, False]
    assert results[-1]['state']['tap_count'] == 1
    assert results[-1]['state']['invalid_tap_count'] == 1

    sio_client.emit('tap', {'session_code': code, 'side': 'up'}, namespace='/ws')
    assert 'error' in _names(sio_client.get_received('/ws'))


def test_finish_is_broadcast_once(client, sio_client):
    code = _create(client, mode_kind='tap_challenge')
    sio_client.emit('join_session', {'session_code': code}, namespace='/ws')
    client.post(f'/api/games/{code}/start')
    scheduler = _to_playing(code)
    for _ in range(5):
        sio_client.emit('tap', {'session_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    scheduler.advance(15000)
    finished = [e['args'][0] for e in sio_client.get_received('/ws') if e['name'] == 'session_finished']
    assert len(finished) == 1
    assert finished[0]['record']['value'] == 5.0
    assert finished[0]['is_new_best'] is True


def test_host_disconnect_ends_session(flask_app, client, sio_client):
    code = _create(client)

    from tapsprint import socketio as _sio
    host_client = _sio.test_client(flask_app, namespace='/ws')
    host_client.emit('join_session', {'session_code': code, 'is_session_owner': True}, namespace='/ws')

    sio_client.emit('join_session', {'session_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    host_client.disconnect(namespace='/ws')
    events = sio_client.get_received('/ws')
    assert 'session_ended' in _names(events)
    assert get_session(code) is None


def test_owner_leave_ends_session(client, sio_client):
    code = _create(client)
    sio_client.emit('join_session', {'session_code': code, 'is_session_owner': True}, namespace='/ws')
    sio_client.emit('leave_session', {'session_code': code}, namespace='/ws')
    assert 'left' in _names(sio_client.get_received('/ws'))
    assert get_session(code) is None


def test_two_finger_socket_tap_without_side_errors(client, sio_client):
    code = _create(client, finger_mode=2)
    client.post(f'/api/games/{code}/start')
    _to_playing(code)
    sio_client.get_received('/ws')

    sio_client.emit('tap', {'session_code': code}, namespace='/ws')
    names = _names(sio_client.get_received('/ws'))
    assert 'error' in names
    assert 'tap_result' not in names
    assert get_session(code).session.tap_count == 0
