def test_index_and_health(client):
    assert 'Dojo' in client.get('/').get_json()['message']
    res = client.get('/health')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'ok', 'rooms': 0, 'onlineUsers': 0}


def test_room_snapshot_is_redacted(client, sio_client):
    ack = sio_client.emit('room:create', {
        'userId': 'alice', 'username': 'Alice', 'duration': 20, 'isHardcore': True,
        'problemSlug': 'two-sum', 'title': 'Two Sum', 'difficulty': 'Easy',
    }, namespace='/ws', callback=True)
    code = ack['room']['code']

    res = client.get(f'/api/rooms/{code.lower()}')
    assert res.status_code == 200
    room = res.get_json()
    assert room['code'] == code
    assert room['status'] == 'waiting'
    assert room['problemSlug'] == 'two-sum'
    assert room['duration'] == 20
    assert room['isHardcore'] is True
    assert room['participants'] == [
        {'userId': 'alice', 'username': 'Alice', 'isReady': True, 'solved': False}
    ]
    assert 'chat' not in room
    assert client.get('/health').get_json()['rooms'] == 1


def test_room_snapshot_unknown_code(client):
    res = client.get('/api/rooms/NOPE22')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Room not found'}


def test_room_gone_after_last_leave(client, sio_client):
    code = sio_client.emit('room:create', {'userId': 'alice', 'username': 'Alice'},
                           namespace='/ws', callback=True)['room']['code']
    sio_client.emit('room:leave', {'roomCode': code, 'userId': 'alice', 'username': 'Alice'}, namespace='/ws')
    assert client.get(f'/api/rooms/{code}').status_code == 404


def test_battle_history_empty_and_bad_limit(client):
    assert client.get('/api/battles').get_json() == []
    assert client.get('/api/battles?limit=abc').status_code == 400
