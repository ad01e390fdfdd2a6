def _events(sio_client, name=None):
    received = sio_client.get_received('/ws')
    return [pkt for pkt in received if name is None or pkt['name'] == name]


def test_socket_connect_and_join(sio_client):
    assert sio_client.is_connected('/ws')
    assert _events(sio_client, 'connected')

    sio_client.emit('join_match', {'match_id': 'abc'}, namespace='/ws')
    joined = _events(sio_client, 'joined')
    assert joined
    assert joined[0]['args'][0] == {'match_id': 'abc', 'mode': 'push'}


def test_join_without_match_id_is_an_error(sio_client):
    _events(sio_client)
    sio_client.emit('join_match', {}, namespace='/ws')
    assert _events(sio_client, 'error')


def test_ping_pong(sio_client):
    _events(sio_client)
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    pongs = _events(sio_client, 'pong')
    assert pongs[0]['args'][0] == {'n': 1}


def test_state_update_after_join_and_answer(sio_client, alice, bob):
    match = alice.post('/api/matches').get_json()
    sio_client.emit('join_match', {'match_id': match['id']}, namespace='/ws')
    _events(sio_client)

    state = bob.post(f"/api/matches/{match['id']}/join").get_json()
    updates = _events(sio_client, 'state_update')
    assert updates
    # Notifications are thin; the client re-reads state over HTTP
    assert updates[0]['args'][0] == {'match_id': match['id']}

    question = state['current_question']
    alice.post(f"/api/matches/{match['id']}/answers",
               json={'question_id': question['id'], 'answer': question['correct_answer']})
    assert _events(sio_client, 'state_update')


def test_no_updates_for_other_matches(sio_client, alice, bob, carol):
    watched = alice.post('/api/matches').get_json()
    other = carol.post('/api/matches').get_json()
    sio_client.emit('join_match', {'match_id': watched['id']}, namespace='/ws')
    _events(sio_client)

    bob.post(f"/api/matches/{other['id']}/join")
    assert _events(sio_client, 'state_update') == []


def test_leave_stops_updates(sio_client, alice, bob):
    match = alice.post('/api/matches').get_json()
    sio_client.emit('join_match', {'match_id': match['id']}, namespace='/ws')
    sio_client.emit('leave_match', {'match_id': match['id']}, namespace='/ws')
    assert _events(sio_client, 'left')

    bob.post(f"/api/matches/{match['id']}/join")
    assert _events(sio_client, 'state_update') == []


def test_disconnect_releases_subscriptions(flask_app, sio_client):
    from quizduel import notifier

    sio_client.emit('join_match', {'match_id': 'm-1'}, namespace='/ws')
    assert notifier.subscriber_count('m-1') == 1
    sio_client.disconnect(namespace='/ws')
    assert notifier.subscriber_count('m-1') == 0
