from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
import os
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)
MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'migrations')

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db, directory=MIGRATIONS_DIR)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Battle-room state lives for the lifetime of this app instance
    from dojo.services.rooms.context import build_context
    flask_app.extensions['dojo'] = build_context(flask_app, socketio)

    # Import and register blueprints here
    from dojo.main import main
    flask_app.register_blueprint(main)

    from dojo.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api')

    # Register Socket.IO event handlers
    from dojo.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/ws'))

    @click.command('db-init')
    def db_init_command():
        """Creates the battle history tables."""
        import dojo.models  # noqa: F401
        with flask_app.app_context():
            db.create_all()
            print('Battle history tables created.')

    flask_app.cli.add_command(db_init_command)

    return flask_app
