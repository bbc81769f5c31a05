def test_index_serves_client(client):
    res = client.get('/')
    assert res.status_code == 200
    assert b'2048 Royale' in res.data


def test_static_assets_served_from_root(client):
    res = client.get('/game.js')
    assert res.status_code == 200
    assert b'royale' in res.data


def test_health_counts_rooms(client, registry):
    res = client.get('/api/health')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'online', 'rooms': 0}
    registry.create()
    assert client.get('/api/health').get_json()['rooms'] == 1


def test_room_state(client, connect):
    host = connect()
    host.send({'type': 'create'}, namespace='/ws')
    code = host.get_received('/ws')[0]['args']['room']
    host.send({'type': 'state_update', 'grid': [[2, 0, 0, 0]] * 4, 'score': 4}, namespace='/ws')

    res = client.get(f'/api/rooms/{code.lower()}')
    assert res.status_code == 200
    state = res.get_json()
    assert state['room'] == code
    assert state['started'] is False
    assert len(state['players']) == 1
    assert state['players'][0]['score'] == 4
    assert state['players'][0]['grid'] == [[2, 0, 0, 0]] * 4


def test_unknown_room_state(client):
    res = client.get('/api/rooms/ZZZZZ')
    assert res.status_code == 404
    assert res.get_json() == {'error': 'Room introuvable'}
