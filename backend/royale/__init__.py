import os

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config

# Events from one client are handled in order on that client's worker
socketio = SocketIO(async_mode=None, async_handlers=False)


def create_app(config_class=Config):
    static_dir = os.path.abspath(getattr(config_class, 'STATIC_DIR', Config.STATIC_DIR))
    flask_app = Flask(__name__, static_folder=static_dir, static_url_path='')
    flask_app.config.from_object(config_class)
    flask_app.config['STATIC_DIR'] = static_dir

    origins = flask_app.config.get('CORS_ORIGINS', '*')
    CORS(flask_app, origins=origins)
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # One registry per application, shared by every connection handler
    from royale.rooms import RoomRegistry
    registry = RoomRegistry()
    flask_app.extensions['room_registry'] = registry

    from royale.main import main
    flask_app.register_blueprint(main)

    from royale.api import api
    flask_app.register_blueprint(api, url_prefix='/api')

    from royale.socketio_events import RelayHandler, register_socketio_handlers
    handler = RelayHandler(registry, socketio)
    flask_app.extensions['relay_handler'] = handler
    register_socketio_handlers(socketio, handler)

    if not os.path.isdir(static_dir):
        flask_app.logger.warning(f"Static directory not found: {static_dir}")

    return flask_app
