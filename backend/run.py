import socket
import sys

from stream_volume import create_app, socketio

app = create_app()


def _check_port(host, port):
    """Raise OSError if host:port cannot be bound."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        # same option the server sets, so a TIME_WAIT leftover is not a failure
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))


def main(flask_app=None):
    if flask_app is None:
        flask_app = app
    host = flask_app.config['HOST']
    port = flask_app.config['PORT']
    try:
        _check_port(host, port)
        flask_app.logger.info(f"[startup] stream volume API on http://{host}:{port} (health: /health)")
        # Use SocketIO server so overlays can subscribe to live updates
        socketio.run(flask_app, host=host, port=port, allow_unsafe_werkzeug=True)
    except OSError as exc:
        flask_app.logger.error(f"[startup] cannot listen on {host}:{port}: {exc}")
        sys.exit(1)


if __name__ == '__main__':
    main()
