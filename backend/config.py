import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '3000'))
    # Comma separated; '*' lets any overlay origin call the API
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Initial volume settings (runtime-editable via PUT /api/settings)
    VOLUME_MODE = os.environ.get('VOLUME_MODE', 'stepped')
    VOLUME_COUNTER = os.environ.get('VOLUME_COUNTER', 'messages')
    BASE_VOLUME = float(os.environ.get('BASE_VOLUME', '0.5'))
    MAX_VOLUME = float(os.environ.get('MAX_VOLUME', '1.0'))
    MIN_VOLUME = float(os.environ.get('MIN_VOLUME', '0.1'))
    VOLUME_INCREMENT = float(os.environ.get('VOLUME_INCREMENT', '0.05'))
    EVENTS_PER_INCREMENT = int(os.environ.get('EVENTS_PER_INCREMENT', '10'))
    # Leaderboard length when no ?limit= is given, and the hard cap
    LEADERBOARD_SIZE = int(os.environ.get('LEADERBOARD_SIZE', '10'))
    LEADERBOARD_MAX = int(os.environ.get('LEADERBOARD_MAX', '100'))
