import os
import sys
import pytest

# Ensure the backend root (containing the `bingo` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from bingo import create_app, db, socketio
from bingo.services.board import PURPLE, RED


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    ROOM_CAPACITY = 6
    TEAM_SIZE = 3
    ROOM_CODE_LENGTH = 4
    ENFORCE_TEAM_CAP = True
    MINI_GAMES = ['rps', 'math_quiz', 'quick_tap']
    QUIZ_DURATION_SEC = 10
    REACTION_COUNTDOWN_SEC = 3
    REACTION_MIN_DELAY_MS = 500
    REACTION_MAX_DELAY_MS = 2000
    REACTION_WINDOW_SEC = 5
    CAS_MAX_ATTEMPTS = 5


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import bingo.models  # noqa: F401
        db.create_all()
    # No context stays pushed: each test-client request gets its own, so
    # Flask-Login resolves the player from that request's header
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()
    from bingo.services.notify import registry
    registry.clear()


@pytest.fixture()
def app_ctx(flask_app):
    """App context for tests that call services directly."""
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


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


def session_headers(session_id):
    return {'X-Session-Id': session_id}


@pytest.fixture()
def make_player(app_ctx):
    from bingo.services.players import resolve_or_create_player

    def _make(name, session_id=None):
        return resolve_or_create_player(session_id or f'session-{name}', name)

    return _make


@pytest.fixture()
def seeded_room(app_ctx, make_player):
    """Build a room with ``per_side`` players on each team.

    Returns (room, {'red': [...], 'purple': [...]}); the first red player
    is the host.
    """
    from bingo.services.rooms import create_room, join_room
    from bingo.services.teams import join_team, toggle_ready

    def _seed(per_side=3, ready=True, red=None, purple=None):
        counts = {RED: per_side if red is None else red, PURPLE: per_side if purple is None else purple}
        host = make_player('host')
        room = create_room('Test room', host)
        teams = {RED: [], PURPLE: []}
        first = True
        for side in (RED, PURPLE):
            for i in range(counts[side]):
                if first:
                    player, first = host, False
                else:
                    player = make_player(f'{side}{i}')
                    join_room(room.code, player)
                join_team(player, side)
                if ready:
                    toggle_ready(player)
                teams[side].append(player)
        return room, teams

    return _seed
