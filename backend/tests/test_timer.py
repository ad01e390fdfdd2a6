import pytest

from conftest import TestConfig as BaseConfig
from quizduel.services.matches import timer


class ServerTimerConfig(BaseConfig):
    QUESTION_TIMER_MODE = 'server'
    ENABLE_TIMER_IN_TESTS = True
    QUESTION_DURATION_SEC = 0


@pytest.fixture(autouse=True)
def _reset_timer_keys():
    timer._scheduled_question_keys.clear()
    yield
    timer._scheduled_question_keys.clear()


def test_client_mode_leaves_advancing_to_players(alice, bob):
    match = alice.post('/api/matches').get_json()
    state = bob.post(f"/api/matches/{match['id']}/join").get_json()
    assert state['timer_mode'] == 'client'
    assert state['current_question_index'] == 0
    assert state['question_deadline'] is None


@pytest.mark.parametrize('config_class', [ServerTimerConfig])
def test_server_timer_runs_match_to_completion(alice, bob):
    match = alice.post('/api/matches').get_json()
    bob.post(f"/api/matches/{match['id']}/join")

    state = alice.get(f"/api/matches/{match['id']}/state").get_json()
    assert state['timer_mode'] == 'server'
    assert state['status'] == 'completed'
    assert state['current_question_index'] == 10
    assert state['question_deadline'] is None


@pytest.mark.parametrize('config_class', [ServerTimerConfig])
def test_timer_is_scheduled_once_per_question(flask_app, engine, alice, bob):
    match = alice.post('/api/matches').get_json()
    with flask_app.app_context():
        engine.join_match(match['id'], str(bob.user['id']), 'bob')
    timer._scheduled_question_keys.add((match['id'], 0))

    timer.schedule_question_timer(flask_app, match['id'])
    with flask_app.app_context():
        state = engine.get_game_state(match['id'])
    assert state.current_question_index == 0
    assert state.question_deadline is None
