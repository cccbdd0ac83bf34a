import os
import sys
import threading

import pytest

# Ensure the backend root (containing the `gofish` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from gofish import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    # Keep bcrypt fast in tests
    BCRYPT_LOG_ROUNDS = 4
    MIN_PLAYERS = 2
    DEFAULT_MAX_PLAYERS = 4
    CHAT_HISTORY_LIMIT = 100
    LOG_LEVEL = 'DEBUG'


def _build_app(config_class):
    application = create_app(config_class)
    with application.app_context():
        # Ensure models are imported so tables are created
        import gofish.models  # noqa: F401
        from gofish.services.games.catalog import seed_cards
        db.create_all()
        seed_cards()
        db.session.commit()
    return application


@pytest.fixture()
def flask_app():
    """The application with no app context left pushed.

    Requests made through test clients push their own context, so Flask-Login
    state in ``g`` never leaks from one client to another.
    """
    application = _build_app(TestConfig)
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    """Pushed app context for tests that call services directly."""
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def file_app(tmp_path):
    """Application on a file SQLite database, shareable between threads."""
    class FileDbConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'gofish.db'}"

    application = _build_app(FileDbConfig)
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


def run_concurrently(application, calls):
    """Run each (func, args) in its own thread and app context, released together.

    Returns the results in call order; any exception is re-raised.
    """
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)
    errors = []

    def _run(i, func, args):
        try:
            with application.app_context():
                barrier.wait()
                results[i] = func(*args)
                db.session.remove()
        except Exception as exc:  # re-raised below
            errors.append(exc)

    threads = [threading.Thread(target=_run, args=(i, func, args)) for i, (func, args) in enumerate(calls)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    if errors:
        raise errors[0]
    return results


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_user(app_ctx):
    """Factory creating users directly in the database."""
    from gofish.models import User
    counter = {'n': 0}

    def _make(username=None):
        counter['n'] += 1
        username = username or f"player{counter['n']}"
        user = User(username=username, email=f'{username}@example.com')
        user.set_password('password')
        db.session.add(user)
        db.session.commit()
        return user.id

    return _make


@pytest.fixture()
def make_game(app_ctx, make_user):
    """Factory creating a lobby game seated with `n_players` fresh users.

    Returns (game_id, [user_ids]) with the creator first.
    """
    from gofish.models import Game, GamePlayer

    def _make(n_players=2, max_players=None):
        user_ids = [make_user() for _ in range(n_players)]
        game = Game(created_by=user_ids[0], max_players=max_players or max(n_players, 2))
        db.session.add(game)
        db.session.flush()
        for uid in user_ids:
            db.session.add(GamePlayer(game_id=game.id, user_id=uid))
        db.session.commit()
        return game.id, user_ids

    return _make


def give_cards(game_id, user_id, rank, count):
    """Move `count` deck cards of `rank` to `user_id` (test setup helper)."""
    from gofish.models import Card, GameCard, DECK_OWNER
    rows = (
        db.session.execute(
            db.select(GameCard)
            .join(Card, GameCard.card_id == Card.id)
            .where(GameCard.game_id == game_id, GameCard.owner_id == DECK_OWNER, Card.rank == rank)
            .order_by(GameCard.id)
            .limit(count)
        )
        .scalars()
        .all()
    )
    assert len(rows) == count
    for row in rows:
        row.owner_id = user_id
        row.position = None
    db.session.commit()
    return [row.id for row in rows]


def empty_deck(game_id, owner_id):
    """Hand every remaining deck card to `owner_id`."""
    from gofish.models import GameCard, DECK_OWNER
    db.session.execute(
        db.update(GameCard)
        .where(GameCard.game_id == game_id, GameCard.owner_id == DECK_OWNER)
        .values(owner_id=owner_id, position=None)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()


def register(client, username):
    res = client.post('/register', json={
        'username': username,
        'email': f'{username}@example.com',
        'password': 'password',
    })
    assert res.status_code == 201
    return res.get_json()['user']


@pytest.fixture()
def sio_client(flask_app, client):
    register(client, 'socketeer')
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=client,
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')
