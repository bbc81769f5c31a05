import os

BASEDIR = os.path.abspath(os.path.dirname(__file__))


def _split_origins(value):
    origins = [o.strip() for o in value.split(',') if o.strip()]
    if not origins or origins == ['*']:
        return '*'
    return origins


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '8080'))
    # Client assets (index.html, js, css) served at the root path
    STATIC_DIR = os.environ.get('STATIC_DIR') or os.path.join(BASEDIR, '..', 'static')
    CORS_ORIGINS = _split_origins(os.environ.get('CORS_ORIGINS', '*'))
    # Upper bound on waiting for a player's send lock before dropping a frame
    SEND_LOCK_TIMEOUT_SEC = float(os.environ.get('SEND_LOCK_TIMEOUT_SEC', '2.0'))
