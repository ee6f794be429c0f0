from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

from taixiu.server import GameServer

socketio = SocketIO(async_mode=None)
game_server = GameServer()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)
    game_server.init_app(flask_app, socketio)

    from taixiu.main import main
    flask_app.register_blueprint(main)

    from taixiu.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Register Socket.IO event handlers
    # Importing here ensures the handlers bind to the initialized socketio instance
    from taixiu.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    return flask_app
