import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///dojo.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS', 'http://localhost:3000,https://localhost:3000'
        ).split(',') if o.strip()
    ]
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    # Room limits
    MAX_PARTICIPANTS = int(os.environ.get('MAX_PARTICIPANTS', '4'))
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    # Delay between host start and the race going live (seconds)
    START_COUNTDOWN_SEC = int(os.environ.get('START_COUNTDOWN_SEC', '3'))
    # Defaults applied to room:create payloads
    DEFAULT_DURATION_MIN = int(os.environ.get('DEFAULT_DURATION_MIN', '30'))
    DEFAULT_DIFFICULTY = os.environ.get('DEFAULT_DIFFICULTY', 'Medium')
    # Persist standings of finished battles
    RECORD_BATTLES = os.environ.get('RECORD_BATTLES', '1') not in ('0', 'false', 'False')
