import logging

import click
from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from config import Config
from decider.services.ratelimit import SlidingWindowLimiter
from decider.services.sessions import SessionRegistry

socketio = SocketIO(async_mode=None)
registry = SessionRegistry()
create_limiter = SlidingWindowLimiter()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, supports_credentials=True, origins=origins)
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    registry.init_app(flask_app)
    create_limiter.configure(
        int(flask_app.config.get('CREATE_RATE_LIMIT', 5)),
        float(flask_app.config.get('CREATE_RATE_WINDOW_SEC', 60)),
    )

    from decider.main import main
    flask_app.register_blueprint(main)

    from decider.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from decider.socketio_events import register_socketio_handlers, reset_connections
    reset_connections()
    register_socketio_handlers()

    @click.command('sessions')
    def list_sessions_command():
        """Lists live sessions with their phase and connection state."""
        live = registry.all()
        if not live:
            click.echo('No live sessions.')
            return
        for s in live:
            connected = len(s.connected_ids())
            idle = 'idle since %.0f' % s.all_disconnected_at if s.all_disconnected_at else 'active'
            click.echo(f'{s.id}  "{s.name}"  phase={s.phase}  items={len(s.items)}  '
                       f'participants={len(s.participants)} connected={connected}  {idle}')

    flask_app.cli.add_command(list_sessions_command)

    return flask_app
