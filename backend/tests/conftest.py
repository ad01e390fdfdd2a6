import os
import sys
import pytest

# Ensure the backend root (containing the `quizduel` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizduel import create_app, db, notifier, socketio
from quizduel.services.matches import get_engine
from quizduel.services.matches.notifier import ChangeNotifier
from quizduel.services.matches.question_bank import QuestionBank
from quizduel.services.matches.engine import SessionEngine
from quizduel.services.matches.store import MemoryMatchStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    QUESTIONS_PER_MATCH = 10
    QUESTION_DURATION_SEC = 30
    QUESTION_TIMER_MODE = 'client'
    NOTIFIER_MODE = 'push'
    POLL_INTERVAL_SEC = 5
    STORAGE_FALLBACK_ENABLED = True


USERS = ('alice', 'bob', 'carol')


@pytest.fixture()
def config_class():
    return TestConfig


@pytest.fixture()
def flask_app(config_class):
    application = create_app(config_class)
    with application.app_context():
        # Ensure models are imported so tables are created
        from quizduel.models import User
        db.create_all()
        for name in USERS:
            user = User(username=name)
            user.set_password('password')
            db.session.add(user)
        db.session.commit()
    # No app context stays pushed: each request gets its own, so logged-in
    # users do not leak between test clients through flask.g
    yield application
    notifier.close()
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def _login(flask_app, username):
    test_client = flask_app.test_client()
    res = test_client.post('/login', json={'username': username, 'password': 'password'})
    assert res.status_code == 200, res.get_json()
    test_client.user = res.get_json()['user']
    return test_client


@pytest.fixture()
def alice(flask_app):
    return _login(flask_app, 'alice')


@pytest.fixture()
def bob(flask_app):
    return _login(flask_app, 'bob')


@pytest.fixture()
def carol(flask_app):
    return _login(flask_app, 'carol')


@pytest.fixture()
def engine(flask_app):
    return get_engine(flask_app)


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def memory_notifier():
    n = ChangeNotifier(mode='push')
    yield n
    n.close()


@pytest.fixture()
def memory_engine(memory_notifier):
    """Engine over the in-memory store; no Flask app involved."""
    return SessionEngine(MemoryMatchStore(), QuestionBank(), memory_notifier, question_count=10)

