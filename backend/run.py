import click

from config import Config
from royale import create_app, socketio
from royale.socketio_events import NAMESPACE


@click.command()
@click.option('--host', default=Config.HOST, show_default=True, help='Interface to bind.')
@click.option('--port', default=Config.PORT, show_default=True, type=int, help='Port to listen on.')
@click.option('--static-dir', default=None, type=click.Path(file_okay=False),
              help='Directory holding the client assets.')
@click.option('--debug', is_flag=True, help='Enable Flask debug mode.')
def main(host, port, static_dir, debug):
    """Serve the 2048 Royale client and its relay endpoint.

    Development entry point: runs on Flask-SocketIO's built-in server. Deploy
    behind eventlet, gevent or gunicorn using ``royale.create_app`` instead.
    """
    config_class = Config
    if static_dir:
        config_class = type('CliConfig', (Config,), {'STATIC_DIR': static_dir})
    app = create_app(config_class)
    app.logger.setLevel('DEBUG' if debug else 'INFO')
    app.logger.info(f"2048 Royale server on http://{host}:{port}")
    app.logger.info(f"Relay on http://{host}:{port}/socket.io/ (Socket.IO namespace {NAMESPACE})")
    # A bind failure propagates and ends the process
    socketio.run(app, host=host, port=port, debug=debug, allow_unsafe_werkzeug=True)


if __name__ == '__main__':
    main()
