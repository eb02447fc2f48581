# config.py
import os


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_bool(name, default=False):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


# session timing and thresholds
LOOK_AWAY_MS = _env_int('PROCTOR_LOOK_AWAY_MS', 3000)
WARNING_THRESHOLD = _env_int('PROCTOR_WARNING_THRESHOLD', 3)
EVENT_LOG_CAPACITY = _env_int('PROCTOR_EVENT_LOG_CAPACITY', 50)
AUDIO_THRESHOLD = _env_float('PROCTOR_AUDIO_THRESHOLD', 25.0)
AUDIO_SUSTAIN_MS = _env_int('PROCTOR_AUDIO_SUSTAIN_MS', 1500)
SESSION_IDLE_SECONDS = _env_float('PROCTOR_SESSION_IDLE_SECONDS', 3600.0)

# server
FLASK_SECRET = os.environ.get('FLASK_SECRET', 'replace_with_strong_key')
HOST = os.environ.get('PROCTOR_HOST', '0.0.0.0')
PORT = _env_int('PROCTOR_PORT', 5000)
DEBUG = _env_bool('PROCTOR_DEBUG')
LOG_LEVEL = os.environ.get('PROCTOR_LOG_LEVEL', 'INFO').upper()
