from sessionkeeper import socketio


def _connect_as(flask_app, username):
    http = flask_app.test_client()
    res = http.post('/api/login', json={'username': username, 'password': 'password'})
    assert res.status_code == 200
    sio = socketio.test_client(flask_app, flask_test_client=http, namespace='/ws')
    assert sio.is_connected('/ws')
    sio.get_received('/ws')  # flush the connect greeting
    return http, sio


def test_socket_connect_and_ping(sio_client):
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'connected' for pkt in received)

    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'pong' and pkt['args'][0] == {'n': 1} for pkt in received)


def test_anonymous_cannot_join_campaign(sio_client, world):
    sio_client.get_received('/ws')
    sio_client.emit('join_campaign', {'campaign_id': world['campaign']}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert [pkt['name'] for pkt in received] == ['error']


def test_non_member_cannot_join_campaign(flask_app, world, login):
    login('mallory')
    _, sio = _connect_as(flask_app, 'mallory')
    sio.emit('join_campaign', {'campaign_id': world['campaign']}, namespace='/ws')
    received = sio.get_received('/ws')
    assert received[0]['name'] == 'error'
    assert received[0]['args'][0]['message'] == 'Not a campaign member'
    sio.disconnect(namespace='/ws')


def test_members_receive_zone_and_session_broadcasts(flask_app, world):
    _, watcher = _connect_as(flask_app, 'bob')
    watcher.emit('join_campaign', {'campaign_id': world['campaign']}, namespace='/ws')
    joined = watcher.get_received('/ws')
    assert joined[0]['name'] == 'joined'
    assert joined[0]['args'][0]['room'] == f"campaign:{world['campaign']}"

    alice = flask_app.test_client()
    alice.post('/api/login', json={'username': 'alice', 'password': 'password'})
    url = f"/api/campaigns/{world['campaign']}/characters/{world['characters']['mira']}/zone"
    assert alice.put(url, json={'zone': 'close'}).status_code == 200

    gm = flask_app.test_client()
    gm.post('/api/login', json={'username': 'gm', 'password': 'password'})
    gm.post(f"/api/sessions/{world['session']}/start", json={'character_ids': [world['characters']['mira']]})

    received = watcher.get_received('/ws')
    names = [pkt['name'] for pkt in received]
    assert names == ['zone_updated', 'session_started']
    zone_payload = received[0]['args'][0]
    assert zone_payload['character_id'] == world['characters']['mira']
    assert zone_payload['zone'] == 'close'
    assert received[1]['args'][0]['session']['status'] == 'ACTIVE'

    watcher.emit('leave_campaign', {'campaign_id': world['campaign']}, namespace='/ws')
    assert watcher.get_received('/ws')[0]['name'] == 'left'
    alice.put(url, json={'zone': 'far'})
    assert watcher.get_received('/ws') == []
    watcher.disconnect(namespace='/ws')
