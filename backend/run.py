import sys

from decider import create_app, socketio
from decider.services.sessions.sweeper import start_sweeper

app = create_app()

if __name__ == '__main__':
    passwords = app.config.get('CREATION_PASSWORDS') or []
    if not passwords:
        app.logger.error('CREATION_PASSWORD environment variable is not set. Refusing to start.')
        sys.exit(1)
    short = [p for p in passwords if len(p) < 8]
    if short:
        app.logger.warning(f"{len(short)} password(s) are less than 8 characters. Consider using stronger passwords.")
    app.logger.info(f"Loaded {len(passwords)} creation password(s)")

    start_sweeper(app)
    # Use SocketIO server to enable websockets
    socketio.run(app, host=app.config['HOST'], port=app.config['PORT'], allow_unsafe_werkzeug=True)
