"""HTTP surface tests using the Flask test client."""

import pytest

import app as app_module
from debouncer import ManualScheduler


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def client(scheduler):
    app_module.app.config['TESTING'] = True
    app_module.app.config['PROCTOR_SCHEDULER'] = scheduler
    app_module.STATE.clear()
    app_module.LAST_SEEN.clear()
    yield app_module.app.test_client()
    for session in app_module.STATE.values():
        session.close()
    app_module.STATE.clear()
    app_module.LAST_SEEN.clear()
    app_module.app.config.pop('PROCTOR_SCHEDULER', None)


def _start(client):
    r = client.post('/sessions')
    assert r.status_code == 201
    return r.get_json()['session_id']


class TestSessionLifecycle:
    """Tests for creating, reading, resetting and ending sessions."""

    def test_start_returns_at_rest_state(self, client):
        r = client.post('/sessions')
        data = r.get_json()
        assert r.status_code == 201
        assert data['session_id'] in app_module.STATE
        assert data['state']['status'] == 'normal'
        assert data['state']['is_active'] is True
        events = data['state']['events']
        assert [e['type'] for e in events] == ['status_change']
        assert events[0]['description'] == 'Proctoring session started'
        assert events[0]['severity'] == 'normal'

    def test_get_state(self, client):
        sid = _start(client)
        r = client.get(f'/sessions/{sid}')
        assert r.status_code == 200
        assert r.get_json()['suspicion_score'] == 0

    def test_unknown_session_404(self, client):
        for r in (client.get('/sessions/nope'),
                  client.post('/sessions/nope/signals', json={'face_count': 1}),
                  client.post('/sessions/nope/examiner'),
                  client.post('/sessions/nope/reset'),
                  client.delete('/sessions/nope')):
            assert r.status_code == 404
            assert r.get_json() == {'error': 'session not found'}

    def test_reset(self, client):
        sid = _start(client)
        client.post(f'/sessions/{sid}/signals', json={'face_count': 2})
        r = client.post(f'/sessions/{sid}/reset')
        data = r.get_json()
        assert data['status'] == 'normal'
        assert data['warning_count'] == 0
        assert data['events'] == []

    def test_end_forgets_session_and_cancels_timer(self, client, scheduler):
        sid = _start(client)
        client.post(f'/sessions/{sid}/signals', json={'head_pose': 'left'})
        r = client.delete(f'/sessions/{sid}')
        assert r.status_code == 200
        assert r.get_json()['status'] == 'ok'
        state = r.get_json()['state']
        assert [e['type'] for e in state['events']] == ['status_change', 'status_change']
        assert state['events'][0]['description'] == 'Proctoring session ended'
        assert state['is_active'] is False
        assert sid not in app_module.STATE
        assert scheduler.pending() == 0

    def test_examiner_toggle_adds_reasons(self, client):
        sid = _start(client)
        data = client.post(f'/sessions/{sid}/examiner').get_json()
        assert data['is_examiner_mode'] is True
        assert data['reasons'] == ['No suspicious activity detected.']
        data = client.post(f'/sessions/{sid}/examiner').get_json()
        assert data['is_examiner_mode'] is False
        assert 'reasons' not in data


class TestSignals:
    """Tests for POST /sessions/<id>/signals."""

    def test_multiple_faces(self, client):
        sid = _start(client)
        client.post(f'/sessions/{sid}/signals', json={'face_detected': True, 'face_count': 1})
        data = client.post(f'/sessions/{sid}/signals', json={'face_count': 3}).get_json()
        assert data['status'] == 'suspicious'
        assert data['suspicion_score'] == 25
        assert data['warning_count'] == 1
        assert [e['type'] for e in data['events']] == ['multiple_faces', 'status_change']

    def test_look_away_timer(self, client, scheduler):
        sid = _start(client)
        client.post(f'/sessions/{sid}/signals', json={'face_count': 1, 'head_pose': 'left'})
        scheduler.advance(3.0)
        data = client.get(f'/sessions/{sid}').get_json()
        assert data['status'] == 'warning'
        assert data['suspicion_score'] == 20
        assert data['events'][0]['type'] == 'head_pose'

    def test_audio_fields(self, client, scheduler):
        sid = _start(client)
        data = client.post(f'/sessions/{sid}/signals', json={'audio_level': 80}).get_json()
        assert data['audio_level'] == 80.0
        scheduler.advance(2.0)
        data = client.get(f'/sessions/{sid}').get_json()
        assert data['audio_detected'] is True

    def test_missing_body(self, client):
        sid = _start(client)
        r = client.post(f'/sessions/{sid}/signals', data='not json', content_type='text/plain')
        assert r.status_code == 400
        assert r.get_json() == {'error': 'missing'}

    def test_no_known_fields(self, client):
        sid = _start(client)
        r = client.post(f'/sessions/{sid}/signals', json={'blink': True})
        assert r.status_code == 400

    @pytest.mark.parametrize('payload', [
        {'head_pose': 'sideways'},
        {'eye_gaze': 'up'},
        {'face_count': -1},
        {'face_count': 'two'},
        {'face_count': True},
        {'face_detected': 'yes'},
        {'audio_level': 'loud'},
    ])
    def test_invalid_values_rejected(self, client, payload):
        sid = _start(client)
        r = client.post(f'/sessions/{sid}/signals', json=payload)
        assert r.status_code == 400
        assert r.get_json()['error'].startswith('invalid ')

    def test_bad_field_applies_nothing(self, client):
        sid = _start(client)
        r = client.post(f'/sessions/{sid}/signals', json={'face_count': 2, 'head_pose': 'sideways'})
        assert r.status_code == 400
        data = client.get(f'/sessions/{sid}').get_json()
        assert data['face_count'] == 0
        assert data['suspicion_score'] == 0

    def test_parse_error_keeps_cause(self):
        with pytest.raises(ValueError) as info:
            app_module.parse_signals({'head_pose': 'sideways'})
        assert str(info.value) == "invalid head_pose: 'sideways'"
        assert isinstance(info.value.__cause__, ValueError)
        assert info.value.__suppress_context__


class TestIdleEviction:
    """Tests for dropping sessions nobody talks to any more."""

    def test_idle_session_is_closed_and_forgotten(self, client, scheduler):
        sid = _start(client)
        client.post(f'/sessions/{sid}/signals', json={'head_pose': 'left'})
        session = app_module.STATE[sid]
        seen = app_module.LAST_SEEN[sid]

        evicted = app_module.evict_idle_sessions(now=seen + app_module.config.SESSION_IDLE_SECONDS + 1)

        assert evicted == [sid]
        assert sid not in app_module.STATE
        assert sid not in app_module.LAST_SEEN
        assert scheduler.pending() == 0
        assert session.snapshot()['events'][0]['description'] == 'Proctoring session ended'
        assert client.get(f'/sessions/{sid}').status_code == 404

    def test_recent_session_survives(self, client):
        sid = _start(client)
        seen = app_module.LAST_SEEN[sid]
        assert app_module.evict_idle_sessions(now=seen + 1) == []
        assert sid in app_module.STATE

    def test_requests_refresh_last_seen(self, client):
        sid = _start(client)
        app_module.LAST_SEEN[sid] = 0.0
        client.get(f'/sessions/{sid}')
        assert app_module.LAST_SEEN[sid] > 0.0
