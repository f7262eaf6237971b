from conftest import session_headers


def _player(client, name):
    sid = f'sid-{name}'
    res = client.post('/api/players', json={'session_id': sid, 'name': name})
    assert res.status_code == 200
    return res.get_json(), session_headers(sid)


def _room_with_players(client, count):
    host, host_headers = _player(client, 'Host')
    res = client.post('/api/rooms', json={'name': 'Friday bingo'}, headers=host_headers)
    assert res.status_code == 201
    code = res.get_json()['room']['code']
    members = [(host, host_headers)]
    for i in range(count - 1):
        player, headers = _player(client, f'P{i}')
        assert client.post('/api/rooms/join', json={'code': code}, headers=headers).status_code == 200
        members.append((player, headers))
    return code, members


def _fill_teams(client, code, members, ready=True):
    for i, (_, headers) in enumerate(members):
        side = 'red' if i % 2 == 0 else 'purple'
        assert client.post(f'/api/rooms/{code}/team', json={'team': side}, headers=headers).status_code == 200
        if ready:
            assert client.post(f'/api/rooms/{code}/ready', headers=headers).status_code == 200


def test_resolve_player_is_stable(client):
    first, _ = _player(client, 'Alice')
    res = client.post('/api/players', json={'session_id': 'sid-Alice', 'name': 'Alicia'})
    again = res.get_json()
    assert again['id'] == first['id']
    assert again['username'] == 'Alicia'

    me = client.get('/api/players/me', headers=session_headers('sid-Alice'))
    assert me.status_code == 200
    assert me.get_json()['id'] == first['id']


def test_each_request_acts_as_its_own_session(client):
    alice, alice_headers = _player(client, 'Alice')
    bob, bob_headers = _player(client, 'Bob')
    assert alice['id'] != bob['id']
    assert client.get('/api/players/me', headers=alice_headers).get_json()['id'] == alice['id']
    assert client.get('/api/players/me', headers=bob_headers).get_json()['id'] == bob['id']
    assert client.get('/api/players/me', headers=alice_headers).get_json()['id'] == alice['id']


def test_resolve_player_requires_handle(client):
    res = client.post('/api/players', json={'name': 'Nobody'})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'invalid'


def test_missing_session_header_is_401(client):
    res = client.post('/api/rooms', json={'name': 'x'})
    assert res.status_code == 401
    assert res.get_json()['code'] == 'unauthenticated'


def test_create_join_and_state(client):
    code, members = _room_with_players(client, 2)
    res = client.get(f'/api/rooms/{code.lower()}')
    assert res.status_code == 200
    state = res.get_json()
    assert state['room']['code'] == code
    assert state['room']['host_player_id'] == members[0][0]['id']
    assert [p['username'] for p in state['players']] == ['Host', 'P0']
    assert state['game'] is None
    assert state['eligibility']['strict'] is False


def test_join_with_lowercase_code_and_rejoin(client):
    code, members = _room_with_players(client, 1)
    guest, headers = _player(client, 'Guest')
    res = client.post('/api/rooms/join', json={'code': f'  {code.lower()} '}, headers=headers)
    assert res.status_code == 200
    res = client.post('/api/rooms/join', json={'code': code}, headers=headers)
    assert res.status_code == 200
    assert len(res.get_json()['players']) == 2


def test_join_unknown_code_is_404(client):
    _, headers = _player(client, 'Lost')
    res = client.post('/api/rooms/join', json={'code': 'ZZZZ'}, headers=headers)
    assert res.status_code == 404
    assert res.get_json()['code'] == 'not_found'


def test_seventh_player_is_rejected(client):
    code, _ = _room_with_players(client, 6)
    _, headers = _player(client, 'Late')
    res = client.post('/api/rooms/join', json={'code': code}, headers=headers)
    assert res.status_code == 409
    assert res.get_json()['code'] == 'full'
    state = client.get(f'/api/rooms/{code}').get_json()
    assert len(state['players']) == 6


def test_team_change_resets_ready_and_cap_holds(client):
    code, members = _room_with_players(client, 5)
    _fill_teams(client, code, members[:4])
    _, headers = members[0]
    res = client.post(f'/api/rooms/{code}/team', json={'team': 'purple'}, headers=headers)
    assert res.status_code == 200
    assert res.get_json()['is_ready'] is False
    assert res.get_json()['team'] == 'purple'

    # purple now has three; a fourth is refused
    _, extra_headers = members[4]
    res = client.post(f'/api/rooms/{code}/team', json={'team': 'purple'}, headers=extra_headers)
    assert res.status_code == 409

    res = client.post(f'/api/rooms/{code}/team', json={'team': 'green'}, headers=extra_headers)
    assert res.status_code == 400


def test_ready_toggles(client):
    code, members = _room_with_players(client, 1)
    _, headers = members[0]
    client.post(f'/api/rooms/{code}/team', json={'team': 'red'}, headers=headers)
    assert client.post(f'/api/rooms/{code}/ready', headers=headers).get_json()['is_ready'] is True
    assert client.post(f'/api/rooms/{code}/ready', headers=headers).get_json()['is_ready'] is False


def test_non_member_cannot_act_on_room(client):
    code, _ = _room_with_players(client, 1)
    _, outsider = _player(client, 'Outsider')
    res = client.post(f'/api/rooms/{code}/ready', headers=outsider)
    assert res.status_code == 403


def test_force_start_host_only(client):
    code, members = _room_with_players(client, 2)
    _fill_teams(client, code, members, ready=False)
    _, guest_headers = members[1]
    res = client.post(f'/api/rooms/{code}/start', json={'force': True}, headers=guest_headers)
    assert res.status_code == 403

    res = client.post(f'/api/rooms/{code}/start', json={}, headers=members[0][1])
    assert res.status_code == 409

    res = client.post(f'/api/rooms/{code}/start', json={'force': True}, headers=members[0][1])
    assert res.status_code == 200
    game = res.get_json()
    assert game['status'] == 'in_progress'
    assert game['current_turn'] == 'red'
    assert game['board_state'] == ['empty'] * 25


def test_challenge_play_and_resolve(client, flask_app):
    flask_app.config['MINI_GAMES'] = ['rps']
    code, members = _room_with_players(client, 6)
    _fill_teams(client, code, members)
    game = client.post(f'/api/rooms/{code}/start', headers=members[0][1]).get_json()
    reds = [h for i, (_, h) in enumerate(members) if i % 2 == 0]

    # purple is not on turn
    res = client.post(f"/api/games/{game['id']}/challenge", json={'square': 12}, headers=members[1][1])
    assert res.status_code == 403

    res = client.post(f"/api/games/{game['id']}/challenge", json={'square': 99}, headers=reds[0])
    assert res.status_code == 400

    res = client.post(f"/api/games/{game['id']}/challenge", json={'square': 12}, headers=reds[0])
    assert res.status_code == 201
    match = res.get_json()
    assert match['mini_game'] == 'rps'
    assert match['status'] == 'active'

    res = client.post(f"/api/games/{game['id']}/challenge", json={'square': 12}, headers=reds[1])
    assert res.status_code == 409
    assert res.get_json()['code'] == 'square_contested'

    by_id = {p['id']: h for p, h in members}
    red_headers = by_id[match['red_player']['id']]
    purple_headers = by_id[match['purple_player']['id']]
    client.post(f"/api/matches/{match['id']}/move", json={'choice': 'rock'}, headers=red_headers)

    # the pending choice never leaks
    peek = client.get(f"/api/matches/{match['id']}").get_json()
    assert 'rock' not in str(peek['game_state'])
    assert peek['game_state']['locked'] == ['red']

    res = client.post(f"/api/matches/{match['id']}/move", json={'choice': 'scissors'}, headers=purple_headers)
    assert res.get_json()['status'] == 'completed'
    assert res.get_json()['winner_team'] == 'red'

    state = client.get(f"/api/games/{game['id']}").get_json()
    assert state['board_state'][12] == 'red'
    assert state['current_turn'] == 'purple'
    assert state['active_matches'] == []

    # a late duplicate report changes nothing
    res = client.post(f"/api/matches/{match['id']}/resolve", json={'winner': 'purple'}, headers=purple_headers)
    assert res.status_code == 200
    assert res.get_json()['winner_team'] == 'red'
    assert client.get(f"/api/games/{game['id']}").get_json()['board_state'][12] == 'red'


def test_expire_is_refused_for_rps(client, flask_app):
    flask_app.config['MINI_GAMES'] = ['rps']
    code, members = _room_with_players(client, 2)
    _fill_teams(client, code, members, ready=False)
    game = client.post(f'/api/rooms/{code}/start', json={'force': True}, headers=members[0][1]).get_json()
    match = client.post(f"/api/games/{game['id']}/challenge", json={'square': 0}, headers=members[0][1]).get_json()
    res = client.post(f"/api/matches/{match['id']}/expire")
    assert res.status_code == 409


def test_unknown_game_and_match_are_404(client):
    assert client.get('/api/games/999').status_code == 404
    assert client.get('/api/matches/999').status_code == 404


def test_leave_transfers_host(client):
    code, members = _room_with_players(client, 3)
    host_headers = members[0][1]
    assert client.post(f'/api/rooms/{code}/leave', headers=host_headers).status_code == 200
    state = client.get(f'/api/rooms/{code}').get_json()
    assert state['room']['host_player_id'] == members[1][0]['id']
    assert len(state['players']) == 2
    # leaving twice is harmless
    assert client.post(f'/api/rooms/{code}/leave', headers=host_headers).status_code == 200
