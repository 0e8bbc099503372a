import time

from conftest import TestConfig
from dojo import create_app, socketio
from dojo.services.rooms.entities import RoomStatus


NS = '/ws'


def names(events):
    return [e['name'] for e in events]


def payloads(events, name):
    return [e['args'][0] for e in events if e['name'] == name]


def create_room(sio, user_id='alice', username='Alice'):
    ack = sio.emit('room:create', {'userId': user_id, 'username': username}, namespace=NS, callback=True)
    assert ack['success'] is True
    return ack['room']['code']


def test_socket_connect_and_create(sio_client):
    assert sio_client.is_connected(NS)
    code = create_room(sio_client)
    assert len(code) == 6


def test_guest_join_notifies_host(make_sio):
    host, guest = make_sio(), make_sio()
    code = create_room(host)

    ack = guest.emit('room:join', {'roomCode': code.lower(), 'userId': 'bob', 'username': 'Bob'},
                     namespace=NS, callback=True)
    assert ack['success'] is True
    assert [p['userId'] for p in ack['room']['participants']] == ['alice', 'bob']

    host_events = host.get_received(NS)
    assert payloads(host_events, 'room:participant-joined')[0]['userId'] == 'bob'
    assert payloads(host_events, 'room:chat-message')[-1]['message'] == 'Bob joined the room'
    # The joiner is not told about itself
    assert 'room:participant-joined' not in names(guest.get_received(NS))


def test_join_unknown_room_errors_only_to_caller(sio_client):
    ack = sio_client.emit('room:join', {'roomCode': 'ZZZZ99', 'userId': 'bob', 'username': 'Bob'},
                          namespace=NS, callback=True)
    assert ack == {'success': False, 'error': 'Room not found'}


def test_malformed_payload_fails_only_that_command(sio_client):
    ack = sio_client.emit('room:join', {'userId': 'bob'}, namespace=NS, callback=True)
    assert ack == {'success': False, 'error': 'Invalid payload: roomCode'}
    # Connection still serves later commands
    assert create_room(sio_client)


def test_full_battle_flow(make_sio, client):
    host, guest = make_sio(), make_sio()
    code = create_room(host)
    guest.emit('room:join', {'roomCode': code, 'userId': 'bob', 'username': 'Bob'}, namespace=NS, callback=True)

    sug = guest.emit('room:suggest-problem', {
        'roomCode': code, 'userId': 'bob', 'username': 'Bob',
        'url': 'https://leetcode.com/problems/two-sum/', 'slug': 'two-sum',
        'title': 'Two Sum', 'difficulty': 'Easy',
    }, namespace=NS, callback=True)
    assert sug['success'] is True
    assert host.emit('room:vote-problem', {'roomCode': code, 'userId': 'alice', 'suggestionId': sug['suggestion']['id']},
                     namespace=NS, callback=True) == {'success': True}
    locked = host.emit('room:lock-problem', {'roomCode': code, 'hostId': 'alice'}, namespace=NS, callback=True)
    assert locked['success'] is True
    assert locked['problem']['problemSlug'] == 'two-sum'

    guest.emit('room:ready', {'roomCode': code, 'userId': 'bob', 'isReady': True}, namespace=NS)
    host.get_received(NS)
    guest.get_received(NS)

    assert host.emit('room:start', {'roomCode': code, 'hostId': 'alice'}, namespace=NS, callback=True) == {'success': True}
    guest_events = guest.get_received(NS)
    assert payloads(guest_events, 'room:starting') == [{'countdown': 0}]
    started = payloads(guest_events, 'room:started')[0]
    assert started['problem']['problemTitle'] == 'Two Sum'
    assert started['startTime'] > 0

    guest.emit('room:solved', {'roomCode': code, 'userId': 'bob', 'solveTimeMs': 42000}, namespace=NS)
    host.emit('room:solved', {'roomCode': code, 'userId': 'alice', 'solveTimeMs': 41000}, namespace=NS)
    finished = payloads(host.get_received(NS), 'room:finished')
    assert len(finished) == 1
    assert finished[0]['winnerId'] == 'bob'
    assert [r['userId'] for r in finished[0]['rankings']] == ['bob', 'alice']

    history = client.get('/api/battles?userId=bob').get_json()
    assert history[0]['roomCode'] == code
    assert history[0]['winnerId'] == 'bob'
    assert history[0]['standings'][0] == {
        'userId': 'bob', 'username': 'Bob', 'rank': 1, 'solved': True, 'solveTime': 42000,
    }


def test_guest_disconnect_notifies_room(make_sio, flask_app):
    host, guest = make_sio(), make_sio()
    code = create_room(host)
    guest.emit('room:join', {'roomCode': code, 'userId': 'bob', 'username': 'Bob'}, namespace=NS, callback=True)
    host.get_received(NS)

    guest.disconnect(namespace=NS)
    events = host.get_received(NS)
    assert payloads(events, 'room:participant-left') == [{'userId': 'bob'}]
    room = flask_app.extensions['dojo'].store.get_room(code)
    assert list(room.participants) == ['alice']


def test_presence_and_invites(make_sio):
    alice, bob = make_sio(), make_sio()
    bob.emit('presence:online', {'userId': 'bob', 'username': 'Bob'}, namespace=NS)
    assert payloads(alice.get_received(NS), 'presence:update') == [['bob']]

    bob.get_received(NS)
    alice.emit('invite:send', {'toUserId': 'bob', 'roomCode': 'ABC234', 'fromUsername': 'Alice'}, namespace=NS)
    invites = payloads(bob.get_received(NS), 'invite:received')
    assert invites == [{
        'roomCode': 'ABC234',
        'from': {'username': 'Alice'},
        'message': 'Alice invited you to battle!',
    }]
    assert 'invite:received' not in names(alice.get_received(NS))


class CountdownConfig(TestConfig):
    TESTING = False
    START_COUNTDOWN_SEC = 1
    RECORD_BATTLES = False


def test_countdown_runs_in_background_task():
    app = create_app(CountdownConfig)
    host = socketio.test_client(app, flask_test_client=app.test_client(), namespace=NS)
    try:
        code = create_room(host)
        host.emit('room:suggest-problem', {
            'roomCode': code, 'userId': 'alice', 'username': 'Alice',
            'url': 'https://leetcode.com/problems/two-sum/', 'slug': 'two-sum',
            'title': 'Two Sum', 'difficulty': 'Easy',
        }, namespace=NS, callback=True)
        assert host.emit('room:lock-problem', {'roomCode': code, 'hostId': 'alice'},
                         namespace=NS, callback=True)['success'] is True
        host.get_received(NS)

        ack = host.emit('room:start', {'roomCode': code, 'hostId': 'alice'}, namespace=NS, callback=True)
        assert ack == {'success': True}
        room = app.extensions['dojo'].store.get_room(code)
        # Ack returns before the countdown elapses
        assert room.status == RoomStatus.STARTING
        assert room.start_time is None

        received = []
        deadline = time.time() + 3.0
        while time.time() < deadline:
            received += host.get_received(NS)
            if 'room:started' in names(received):
                break
            time.sleep(0.1)

        assert names(received).index('room:starting') < names(received).index('room:started')
        assert payloads(received, 'room:starting') == [{'countdown': 1}]
        assert room.status == RoomStatus.IN_PROGRESS
        assert room.start_time is not None
        assert payloads(received, 'room:started')[0]['startTime'] == room.start_time
    finally:
        if host.is_connected(NS):
            host.disconnect(namespace=NS)
