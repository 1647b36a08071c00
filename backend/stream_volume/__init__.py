from flask import Flask, current_app, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config
from stream_volume.services.volume import StreamSession, ValidationError, describe
from stream_volume.services.volume.settings import MODES, SettingsStore

socketio = SocketIO(cors_allowed_origins='*', async_mode=None)


def _parse_origins(raw):
    if isinstance(raw, (list, tuple)):
        return list(raw)
    origins = [o.strip() for o in (raw or '').split(',') if o.strip()]
    if not origins or '*' in origins:
        return '*'
    return origins


def get_stream_session() -> StreamSession:
    """The StreamSession bound to the current app."""
    return current_app.extensions['stream_session']


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper())

    allowed_origins = _parse_origins(flask_app.config.get('CORS_ORIGINS', '*'))
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One session per app; a fresh app starts a fresh broadcast
    flask_app.extensions['stream_session'] = StreamSession.from_config(flask_app.config)

    from stream_volume.main import main
    flask_app.register_blueprint(main)

    from stream_volume.api.users import users
    flask_app.register_blueprint(users, url_prefix='/api/user')

    from stream_volume.api.tts import tts
    flask_app.register_blueprint(tts, url_prefix='/api/tts')

    from stream_volume.api.session import session_api
    flask_app.register_blueprint(session_api, url_prefix='/api')

    from stream_volume.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @flask_app.errorhandler(ValidationError)
    def handle_validation_error(exc):
        flask_app.logger.warning(f"[invalid] {exc}")
        return jsonify({'error': str(exc)}), 400

    @click.command('volume-preview')
    @click.option('--events', default=50, show_default=True, help='Highest counter value to show.')
    @click.option('--every', default=None, type=int, help='Row spacing (defaults to events per increment).')
    @click.option('--mode', type=click.Choice(MODES), default=None, help='Override the configured formula.')
    def volume_preview_command(events, every, mode):
        """Prints the volume curve for the configured settings."""
        store = SettingsStore.from_config(flask_app.config)
        if mode:
            store.update({'mode': mode})
        settings = store.get()
        step = every or (settings.events_per_increment if settings.mode == 'stepped' else 1)
        click.echo(f"mode={settings.mode} start={settings.start_volume} inc={settings.increment_per_event} "
                   f"min={settings.min_volume} max={settings.max_volume} per={settings.events_per_increment}")
        for counter in range(0, events + 1, max(1, step)):
            reading = describe(counter, settings)
            marker = ' (max)' if reading.at_max else ''
            click.echo(f"{counter:>6}  {reading.volume:.3f}  {reading.volume_percent:>3}%{marker}")

    flask_app.cli.add_command(volume_preview_command)

    return flask_app
