from conftest import session_headers

from bingo.services import notify


def _connected(sio_client):
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    sio_client.get_received('/ws')  # flush
    return sio_client


def _names(events):
    return [e['name'] for e in events]


def _create_room(client, name='Host'):
    sid = f'sid-{name}'
    client.post('/api/players', json={'session_id': sid, 'name': name})
    res = client.post('/api/rooms', json={'name': 'Sockets'}, headers=session_headers(sid))
    return res.get_json()['room']


def test_socket_connect_and_subscribe(sio_client):
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert 'connected' in _names(received)
    assert any(e['name'] == 'pong' and e['args'][0] == {'n': 1} for e in received)

    sio_client.emit('subscribe', {'scope': 'room', 'id': 42}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert received[0]['name'] == 'subscribed'
    assert received[0]['args'][0] == {'channel': 'room:42'}


def test_bad_scope_is_reported(sio_client):
    _connected(sio_client)
    sio_client.emit('subscribe', {'scope': 'lobby', 'id': 1}, namespace='/ws')
    assert _names(sio_client.get_received('/ws')) == ['error']


def test_room_mutation_notifies_subscribers(sio_client, client):
    room = _create_room(client)
    _connected(sio_client)
    sio_client.emit('subscribe', {'scope': 'room', 'id': room['id']}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post('/api/players', json={'session_id': 'sid-Guest', 'name': 'Guest'})
    client.post('/api/rooms/join', json={'code': room['code']}, headers=session_headers('sid-Guest'))

    updates = [e for e in sio_client.get_received('/ws') if e['name'] == 'state_update']
    assert updates
    assert updates[0]['args'][0] == {'scope': 'room', 'id': room['id'], 'event': 'player_joined'}


def test_unsubscribed_socket_hears_nothing(sio_client, client):
    room = _create_room(client)
    _connected(sio_client)
    sio_client.emit('subscribe', {'scope': 'room', 'id': room['id']}, namespace='/ws')
    sio_client.emit('unsubscribe', {'scope': 'room', 'id': room['id']}, namespace='/ws')
    assert _names(sio_client.get_received('/ws')) == ['subscribed', 'unsubscribed']

    client.post(f"/api/rooms/{room['code']}/team", json={'team': 'red'}, headers=session_headers('sid-Host'))
    assert 'state_update' not in _names(sio_client.get_received('/ws'))


def test_registry_subscribe_and_release(app_ctx):
    seen = []
    token = notify.subscribe('game', 7, seen.append)
    other = notify.subscribe('game', 8, seen.append)
    assert notify.registry.listener_count('game', 7) == 1

    notify.registry.publish('game', 7, 'board_updated')
    assert seen == [{'scope': 'game', 'id': 7, 'event': 'board_updated'}]

    assert notify.unsubscribe(token) is True
    assert notify.unsubscribe(token) is False
    notify.registry.publish('game', 7, 'board_updated')
    assert len(seen) == 1
    assert notify.registry.listener_count() == 1
    notify.unsubscribe(other)
    assert notify.registry.listener_count() == 0


def test_failing_listener_does_not_block_others(app_ctx):
    seen = []

    def broken(payload):
        raise RuntimeError('boom')

    notify.subscribe('room', 1, broken)
    notify.subscribe('room', 1, seen.append)
    notify.publish_room(1, 'player_left')
    assert seen == [{'scope': 'room', 'id': 1, 'event': 'player_left'}]
