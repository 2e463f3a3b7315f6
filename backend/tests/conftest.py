import os
import sys
import pytest

# Ensure the backend root (containing the `sessionkeeper` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from sessionkeeper import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    SOCKETIO_MESSAGE_QUEUE = None


class RecordingPublisher:
    def __init__(self):
        self.messages = []

    def publish(self, channel, event, payload):
        self.messages.append((channel, event, payload))


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import sessionkeeper.models  # noqa: F401
        db.create_all()
    # Requests push their own app context so Flask-Login never reuses a user across clients
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    with flask_app.app_context():
        yield flask_app


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def publisher(flask_app):
    """Swap the realtime handle for one that records what would be broadcast."""
    recorder = RecordingPublisher()
    flask_app.extensions['notification_fanout'].publisher = recorder
    return recorder


@pytest.fixture()
def login(flask_app):
    """Return a logged-in test client, registering the user if needed."""
    def _login(username):
        c = flask_app.test_client()
        res = c.post('/api/login', json={'username': username, 'password': 'password'})
        if res.status_code == 401:
            res = c.post('/api/register', json={'username': username, 'password': 'password'})
        assert res.status_code in (200, 201)
        c.user_id = res.get_json()['user']['id']
        return c
    return _login


@pytest.fixture()
def world(flask_app):
    """A campaign run by `gm` with two players, one character each, and a pending session.

    Returns plain ids so tests can use them with or without an app context.
    """
    from sessionkeeper.models import Campaign, CampaignMembership, Character, PlaySession, User

    with flask_app.app_context():
        users = {}
        for name in ('gm', 'alice', 'bob'):
            user = User(username=name)
            user.set_password('password')
            db.session.add(user)
            users[name] = user
        db.session.flush()

        campaign = Campaign(title='The Sunken Keep', owner_id=users['gm'].id)
        db.session.add(campaign)
        db.session.flush()
        db.session.add_all([
            CampaignMembership(user_id=users['gm'].id, campaign_id=campaign.id, role=CampaignMembership.ADMIN),
            CampaignMembership(user_id=users['alice'].id, campaign_id=campaign.id, role=CampaignMembership.MEMBER),
            CampaignMembership(user_id=users['bob'].id, campaign_id=campaign.id, role=CampaignMembership.MEMBER),
        ])

        mira = Character(name='Mira', campaign_id=campaign.id, user_id=users['alice'].id)
        tobin = Character(name='Tobin', campaign_id=campaign.id, user_id=users['bob'].id)
        session = PlaySession(campaign_id=campaign.id, name='Into the Keep', session_number=1)
        db.session.add_all([mira, tobin, session])
        db.session.commit()

        return {
            'users': {name: u.id for name, u in users.items()},
            'campaign': campaign.id,
            'characters': {'mira': mira.id, 'tobin': tobin.id},
            'session': session.id,
        }


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
