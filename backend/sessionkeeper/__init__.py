from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

REALTIME_NAMESPACE = '/ws'


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(
        flask_app,
        cors_allowed_origins=allowed_origins,
        message_queue=flask_app.config.get('SOCKETIO_MESSAGE_QUEUE'),
    )

    # One realtime handle per process, shared by every request through the fanout
    from sessionkeeper.services.notifications import NotificationFanout, SocketIOPublisher
    flask_app.extensions['notification_fanout'] = NotificationFanout(
        SocketIOPublisher(socketio, namespace=REALTIME_NAMESPACE)
    )

    from sessionkeeper.errors import register_error_handlers
    register_error_handlers(flask_app)

    # Import and register blueprints here
    from sessionkeeper.main import main
    flask_app.register_blueprint(main, url_prefix='/api')

    from sessionkeeper.api.campaigns import campaigns
    flask_app.register_blueprint(campaigns, url_prefix='/api/campaigns')

    from sessionkeeper.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api')

    from sessionkeeper.api.zones import zones
    flask_app.register_blueprint(zones, url_prefix='/api/campaigns')

    from sessionkeeper.api.notifications import notifications
    flask_app.register_blueprint(notifications, url_prefix='/api/notifications')

    # Register Socket.IO event handlers
    from sessionkeeper.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from sessionkeeper.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        from sessionkeeper.errors import Unauthorized
        error = Unauthorized('Authentication required')
        return jsonify(error.to_dict()), error.status_code

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from sessionkeeper.models import Campaign, CampaignMembership, Character, PlaySession, User
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users; the first one runs the demo campaign
            users = []
            for u in ['testuser1', 'testuser2', 'testuser3']:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)
                users.append(user)
            db.session.flush()

            campaign = Campaign(title='Demo Campaign', owner_id=users[0].id)
            db.session.add(campaign)
            db.session.flush()
            for i, user in enumerate(users):
                role = CampaignMembership.ADMIN if i == 0 else CampaignMembership.MEMBER
                db.session.add(CampaignMembership(user_id=user.id, campaign_id=campaign.id, role=role))
                if i > 0:
                    db.session.add(Character(name=f'Hero of {user.username}', campaign_id=campaign.id, user_id=user.id))
            db.session.add(PlaySession(campaign_id=campaign.id, name='Session 1', session_number=1))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
