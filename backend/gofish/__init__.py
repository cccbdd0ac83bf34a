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
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from gofish.main import main
    flask_app.register_blueprint(main)

    from gofish.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from gofish.api.chat import chat
    flask_app.register_blueprint(chat, url_prefix='/api/chat')

    # Handlers bind to the module-level socketio instance
    from gofish.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from gofish.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Login required'}), 401

    @click.command('seed-cards')
    def seed_cards_command():
        """Seeds the 52-card catalog if it is empty."""
        from gofish.services.games.catalog import seed_cards
        created = seed_cards()
        db.session.commit()
        print(f'Seeded {created} cards.')

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from gofish.services.games.catalog import seed_cards
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            seed_cards()

            # Seed users
            users = ['testuser1', 'testuser2', 'testuser3']
            for u in users:
                user = User(username=u, email=f'{u}@example.com')
                user.set_password('password')
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(seed_cards_command)
    flask_app.cli.add_command(db_reset_command)

    return flask_app
