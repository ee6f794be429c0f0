from taixiu import socketio
from taixiu.services.game.fairness import verify_commitment
from helpers import received


def test_socket_join_and_welcome(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    sio_client.get_received('/ws')

    sio_client.emit('command', {'type': 'JOIN', 'roomId': 'lobby', 'name': 'Ann'}, namespace='/ws')
    messages = received(sio_client)
    types = [m['type'] for m in messages]
    assert types[:2] == ['WELCOME', 'ROOM']
    assert 'CHAT' in types
    assert messages[0]['payload']['playerId']
    assert messages[1]['payload']['commit']


def test_socket_full_round(flask_app, sio_client, server, clock, dice):
    sio_client.emit('command', {'type': 'JOIN', 'roomId': 'lobby', 'name': 'Ann'}, namespace='/ws')
    welcome = received(sio_client, 'WELCOME')[0]['payload']

    sio_client.emit('command', {'type': 'BET', 'side': 'XIU', 'amount': 1200}, namespace='/ws')
    errors = received(sio_client, 'ERR')
    assert errors == [{'type': 'ERR', 'payload': {'message': 'Cược tối đa: 1000'}}]

    sio_client.emit('command', {'type': 'BET', 'side': 'XIU', 'amount': 500}, namespace='/ws')
    snap = received(sio_client, 'ROOM')[-1]['payload']
    assert snap['bets'] == [{'playerId': welcome['playerId'], 'side': 'XIU', 'amount': 500}]
    commit = snap['commit']

    room = server.registry.get('lobby')
    dice.script((2, 3, 4))
    clock.advance(18000)
    server.tick_room(room)
    assert received(sio_client, 'STATE') == [{'type': 'STATE', 'payload': {'state': 'ROLLING'}}]

    clock.advance(2500)
    server.tick_room(room)
    messages = received(sio_client)
    result = [m for m in messages if m['type'] == 'RESULT'][0]['payload']
    assert result['sum'] == 9 and result['side'] == 'XIU'
    assert result['commit'] == commit
    assert verify_commitment(result['revealedServerSeed'], commit)
    snap = [m for m in messages if m['type'] == 'ROOM'][-1]['payload']
    assert snap['players'][0]['balance'] == 1500
    assert snap['history'][0]['roundId'] == 1


def test_room_broadcast_reaches_other_members_only(flask_app, sio_client):
    other = socketio.test_client(flask_app, namespace='/ws')
    outsider = socketio.test_client(flask_app, namespace='/ws')
    try:
        sio_client.emit('command', {'type': 'JOIN', 'roomId': 'vip', 'name': 'Ann'}, namespace='/ws')
        other.emit('command', {'type': 'JOIN', 'roomId': 'vip', 'name': 'Bob'}, namespace='/ws')
        outsider.emit('command', {'type': 'JOIN', 'roomId': 'lobby', 'name': 'Cid'}, namespace='/ws')
        sio_client.get_received('/ws')
        outsider.get_received('/ws')

        other.emit('command', {'type': 'CHAT', 'text': 'chào'}, namespace='/ws')
        assert received(sio_client, 'CHAT') == [{'type': 'CHAT', 'payload': {'from': 'Bob', 'text': 'chào'}}]
        assert received(outsider, 'CHAT') == []

        other.disconnect(namespace='/ws')
        notices = received(sio_client, 'CHAT')
        assert notices[-1]['payload'] == {'system': True, 'text': 'Bob đã rời phòng.'}
    finally:
        outsider.disconnect(namespace='/ws')


def test_list_rooms_over_socket(sio_client):
    sio_client.emit('command', {'type': 'JOIN', 'roomId': 'alpha', 'name': 'Ann'}, namespace='/ws')
    sio_client.get_received('/ws')
    sio_client.emit('command', {'type': 'LIST_ROOMS'}, namespace='/ws')
    rooms = received(sio_client, 'ROOMS')[0]['payload']['rooms']
    assert rooms[0]['roomId'] == 'alpha'
    assert rooms[0]['playerCount'] == 1
    assert set(rooms[0]) == {'roomId', 'state', 'roundId', 'playerCount', 'createdAt'}


def test_garbage_envelope_keeps_connection_open(sio_client):
    sio_client.emit('command', 'not json at all', namespace='/ws')
    assert received(sio_client) == []
    assert sio_client.is_connected('/ws')
