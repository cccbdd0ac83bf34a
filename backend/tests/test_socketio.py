from gofish import socketio

from conftest import register


def _events(sio, name):
    return [pkt for pkt in sio.get_received('/ws') if pkt['name'] == name]


def test_socket_connect_requires_login(flask_app):
    anonymous = socketio.test_client(flask_app, namespace='/ws')
    assert not anonymous.is_connected('/ws')


def test_socket_connect_and_join(flask_app, client, sio_client):
    assert sio_client.is_connected('/ws')
    sio_client.get_received('/ws')

    game_id = client.post('/api/games/create', json={}).get_json()['id']
    sio_client.emit('join_game', {'game_id': game_id}, namespace='/ws')

    joined = _events(sio_client, 'joined')
    assert joined and joined[0]['args'][0]['room'] == f'game:{game_id}'


def test_socket_join_refused_for_outsiders(flask_app, sio_client):
    other = flask_app.test_client()
    register(other, 'host')
    game_id = other.post('/api/games/create', json={}).get_json()['id']
    sio_client.get_received('/ws')

    sio_client.emit('join_game', {'game_id': game_id}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'error' for pkt in received)
    assert not any(pkt['name'] == 'joined' for pkt in received)


def test_game_events_reach_room(flask_app, client, sio_client):
    game_id = client.post('/api/games/create', json={}).get_json()['id']
    sio_client.emit('join_game', {'game_id': game_id}, namespace='/ws')
    sio_client.get_received('/ws')

    guest = flask_app.test_client()
    register(guest, 'guest')
    assert guest.post(f'/api/games/{game_id}/join').status_code == 200
    assert _events(sio_client, 'player:joined')

    started = client.post(f'/api/games/{game_id}/start').get_json()
    events = _events(sio_client, 'game:started')
    assert events[0]['args'][0] == {'game_id': game_id, 'first_player_id': started['first_player_id']}


def test_ping(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    assert _events(sio_client, 'pong')[0]['args'][0] == {'n': 1}
