# app.py
import datetime
import logging
import threading
import time
import uuid

from flask import Flask, request, jsonify

import config
from proctoring_state import ProctoringSession
from proctoring_types import EyeGaze, HeadPose

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = config.FLASK_SECRET

STATE = {}   # in-memory ProctoringSession per session_id
LAST_SEEN = {}   # session_id -> time.monotonic() of the last request
STATE_LOCK = threading.Lock()


# ---------- helpers ----------
def _as_bool(value):
    if not isinstance(value, bool):
        raise TypeError('expected true or false')
    return value


def _as_count(value):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError('expected a non-negative integer')
    return value


def _as_level(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError('expected a number')
    return float(value)


# applied in this order for one /signals payload
SIGNAL_FIELDS = (
    ('face_detected', _as_bool, 'on_face_detected_changed'),
    ('face_count', _as_count, 'on_face_count_changed'),
    ('head_pose', HeadPose, 'on_head_pose_changed'),
    ('eye_gaze', EyeGaze, 'on_eye_gaze_changed'),
    ('audio_level', _as_level, 'on_audio_level_changed'),
    ('audio_detected', _as_bool, 'on_audio_detected_changed'),
)


def parse_signals(data):
    """Validate a signal payload up front so a bad field applies nothing."""
    updates = []
    for key, parse, handler in SIGNAL_FIELDS:
        if key not in data:
            continue
        try:
            updates.append((handler, parse(data[key])))
        except (ValueError, TypeError) as e:
            raise ValueError(f'invalid {key}: {data[key]!r}') from e
    return updates


def new_session_id():
    return datetime.datetime.now(datetime.timezone.utc).strftime('%Y%m%d%H%M%S') + "_" + uuid.uuid4().hex[:6]


def get_session(session_id):
    with STATE_LOCK:
        session = STATE.get(session_id)
        if session is not None:
            LAST_SEEN[session_id] = time.monotonic()
        return session


def evict_idle_sessions(now=None):
    """Close and forget sessions not seen for SESSION_IDLE_SECONDS."""
    now = time.monotonic() if now is None else now
    with STATE_LOCK:
        idle = [sid for sid, seen in LAST_SEEN.items() if now - seen > config.SESSION_IDLE_SECONDS]
        evicted = [(sid, STATE.pop(sid)) for sid in idle if sid in STATE]
        for sid in idle:
            del LAST_SEEN[sid]
    for sid, session in evicted:
        session.close()
        logger.info('session %s evicted after inactivity', sid)
    return [sid for sid, _ in evicted]


def session_not_found():
    return jsonify({'error': 'session not found'}), 404


# ---------- routes ----------
@app.route('/sessions', methods=['POST'])
def start_session():
    evict_idle_sessions()
    session_id = new_session_id()
    session = ProctoringSession(scheduler=app.config.get('PROCTOR_SCHEDULER'))
    session.start()
    with STATE_LOCK:
        STATE[session_id] = session
        LAST_SEEN[session_id] = time.monotonic()
    logger.info('session %s started', session_id)
    return jsonify({'session_id': session_id, 'state': session.snapshot()}), 201


@app.route('/sessions/<session_id>', methods=['GET'])
def get_state(session_id):
    session = get_session(session_id)
    if session is None:
        return session_not_found()
    return jsonify(session.snapshot())


@app.route('/sessions/<session_id>/signals', methods=['POST'])
def post_signals(session_id):
    session = get_session(session_id)
    if session is None:
        return session_not_found()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'missing'}), 400
    try:
        updates = parse_signals(data)
    except ValueError as e:
        logger.warning('session %s rejected signal update: %s', session_id, e)
        return jsonify({'error': str(e)}), 400
    if not updates:
        return jsonify({'error': 'missing'}), 400
    session.apply_signals(updates)
    return jsonify(session.snapshot())


@app.route('/sessions/<session_id>/examiner', methods=['POST'])
def toggle_examiner(session_id):
    session = get_session(session_id)
    if session is None:
        return session_not_found()
    session.toggle_examiner_mode()
    return jsonify(session.snapshot())


@app.route('/sessions/<session_id>/reset', methods=['POST'])
def reset_session(session_id):
    session = get_session(session_id)
    if session is None:
        return session_not_found()
    session.reset()
    return jsonify(session.snapshot())


@app.route('/sessions/<session_id>', methods=['DELETE'])
def end_session(session_id):
    with STATE_LOCK:
        session = STATE.pop(session_id, None)
        LAST_SEEN.pop(session_id, None)
    if session is None:
        return session_not_found()
    session.close()
    logger.info('session %s ended', session_id)
    return jsonify({'status': 'ok', 'state': session.snapshot()})


if __name__ == '__main__':
    logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG)
