from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

SESSION_HEADER = 'X-Session-Id'


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from bingo.api.players import players
    from bingo.api.rooms import rooms
    from bingo.api.games import games
    flask_app.register_blueprint(players, url_prefix='/api/players')
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')
    flask_app.register_blueprint(games, url_prefix='/api')

    from bingo.errors import register_error_handlers
    register_error_handlers(flask_app)

    from bingo.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Players are anonymous; the browser's durable session handle identifies them
    from bingo.models import Player

    @login_manager.user_loader
    def load_user(player_id):
        return db.session.get(Player, int(player_id))

    @login_manager.request_loader
    def load_user_from_request(request):
        session_id = request.headers.get(SESSION_HEADER)
        if not session_id:
            return None
        return Player.query.filter_by(session_id=session_id).first()

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': f'{SESSION_HEADER} header is required', 'code': 'unauthenticated'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
