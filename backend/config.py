import os


def _split_env_list(value):
    return [p.strip() for p in (value or '').split(',') if p.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Shared secrets allowed to create sessions (comma separated)
    CREATION_PASSWORDS = _split_env_list(os.environ.get('CREATION_PASSWORD'))
    # Concurrent live sessions per creator IP. 0 disables.
    MAX_SESSIONS_PER_IP = int(os.environ.get('MAX_SESSIONS_PER_IP', '0'))
    # Sliding-window limit on creation attempts per IP
    CREATE_RATE_LIMIT = int(os.environ.get('CREATE_RATE_LIMIT', '5'))
    CREATE_RATE_WINDOW_SEC = int(os.environ.get('CREATE_RATE_WINDOW_SEC', '60'))
    # Idle expiry (seconds) once every connection to a session has closed
    SESSION_IDLE_TIMEOUT_SEC = int(os.environ.get('SESSION_IDLE_TIMEOUT_SEC', '300'))
    SWEEP_INTERVAL_SEC = int(os.environ.get('SWEEP_INTERVAL_SEC', '30'))
    # Item policy: cap per session (0 disables) and phase gating of add/remove/vote
    ITEM_CAP = int(os.environ.get('ITEM_CAP', '100'))
    PHASE_GATING = os.environ.get('PHASE_GATING', '1').lower() not in ('0', 'false', 'no')
    CORS_ORIGINS = _split_env_list(os.environ.get('CORS_ORIGINS')) or [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    HOST = os.environ.get('HOST', '::')
    PORT = int(os.environ.get('PORT', '3000'))
