import os


def _origins(raw):
    return [o.strip() for o in raw.split(',') if o.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    CORS_ORIGINS = _origins(os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173',
    ))
    # Room a socket lands in when it connects without a ?room= query
    DEFAULT_ROOM = os.environ.get('DEFAULT_ROOM', 'lobby')
    # Players needed before the countdown starts
    PARTY_SIZE = int(os.environ.get('PARTY_SIZE', '2'))
    # Countdown start time is now + this (ms)
    COUNTDOWN_DELAY_MS = int(os.environ.get('COUNTDOWN_DELAY_MS', '5000'))
