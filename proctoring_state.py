# proctoring_state.py
import logging
import threading
import time

import config
from ai_reasoner import generate_reasons
from ai_scoring import Transition, SCORING_RULES, apply_rule
from debouncer import Debouncer, ThreadTimerScheduler
from event_log import EventLog
from proctoring_types import EyeGaze, HeadPose, ProctorStatus

logger = logging.getLogger(__name__)


class SessionState:
    """Everything the presentation layer sees about one monitored session."""

    def __init__(self, event_log_capacity=50):
        self.status = ProctorStatus.NORMAL
        self.face_detected = False
        self.face_count = 0
        self.head_pose = HeadPose.CENTER
        self.eye_gaze = EyeGaze.CENTER
        self.warning_count = 0
        self.suspicion_score = 0
        self.events = EventLog(event_log_capacity)
        self.is_examiner_mode = False
        self.look_away_start_time = None
        self.audio_level = 0.0
        self.audio_detected = False
        self.is_active = False

    def to_dict(self):
        return {
            'status': self.status.value,
            'face_detected': self.face_detected,
            'face_count': self.face_count,
            'head_pose': self.head_pose.value,
            'eye_gaze': self.eye_gaze.value,
            'warning_count': self.warning_count,
            'suspicion_score': self.suspicion_score,
            'events': self.events.to_list(),
            'is_examiner_mode': self.is_examiner_mode,
            'look_away_start_time': self.look_away_start_time,
            'audio_level': self.audio_level,
            'audio_detected': self.audio_detected,
            'is_active': self.is_active,
        }


class ProctoringSession:
    """Fuses sensor classifications into a status, score, warning count and event log.

    All signal updates and timer callbacks are serialised on one re-entrant
    lock. The look-away and audio debouncers are owned here and are always
    cancelled before state is cleared.
    """

    def __init__(self, scheduler=None, clock=None, look_away_ms=None, warning_threshold=None,
                 event_log_capacity=None, audio_threshold=None, audio_sustain_ms=None):
        self.scheduler = scheduler if scheduler is not None else ThreadTimerScheduler()
        self.clock = clock if clock is not None else time.time
        self.look_away_ms = config.LOOK_AWAY_MS if look_away_ms is None else look_away_ms
        self.warning_threshold = config.WARNING_THRESHOLD if warning_threshold is None else warning_threshold
        self.event_log_capacity = config.EVENT_LOG_CAPACITY if event_log_capacity is None else event_log_capacity
        self.audio_threshold = config.AUDIO_THRESHOLD if audio_threshold is None else audio_threshold
        self.audio_sustain_ms = config.AUDIO_SUSTAIN_MS if audio_sustain_ms is None else audio_sustain_ms

        self._lock = threading.RLock()
        self._look_away_timer = Debouncer(self.look_away_ms, self.scheduler, self._lock, name='look-away')
        self._audio_timer = Debouncer(self.audio_sustain_ms, self.scheduler, self._lock, name='audio')
        self.state = SessionState(self.event_log_capacity)

    # ---------- helpers ----------
    def _set_status(self, status):
        if status != self.state.status:
            logger.info('status %s -> %s', self.state.status.value, status.value)
            self.state.status = status

    def _apply(self, transition, description=None):
        rule = SCORING_RULES[transition]
        if rule.event is not None:
            self.state.events.append(rule.event, description, rule.severity)
        score, warnings, status = apply_rule(
            transition, self.state.suspicion_score, self.state.warning_count,
            self.state.status, self.warning_threshold)
        self.state.suspicion_score = score
        self.state.warning_count = warnings
        self._set_status(status)

    # ---------- signal updates ----------
    def on_face_detected_changed(self, detected):
        detected = bool(detected)
        with self._lock:
            if detected == self.state.face_detected:
                return
            if not detected:
                # logged only; face loss never escalates on its own
                self._apply(Transition.FACE_LOST, 'Face not detected - student may have left')
            self.state.face_detected = detected

    def on_face_count_changed(self, count):
        count = int(count)
        if count < 0:
            raise ValueError(f'face count must be non-negative, got {count}')
        with self._lock:
            if count == self.state.face_count:
                return
            if count > 1:
                self._apply(Transition.MULTIPLE_FACES, f'{count} faces detected - possible assistance')
            self.state.face_count = count

    def on_head_pose_changed(self, pose):
        pose = HeadPose(pose)
        with self._lock:
            if pose == self.state.head_pose:
                return
            if pose != HeadPose.CENTER:
                if self.state.look_away_start_time is None:
                    self._apply(Transition.LOOK_AWAY)
                    self.state.look_away_start_time = self.clock()
                    self._look_away_timer.arm(lambda: self._on_look_away_sustained(pose))
            else:
                self._look_away_timer.cancel()
                self.state.look_away_start_time = None
                if self.state.warning_count < self.warning_threshold:
                    self._set_status(ProctorStatus.NORMAL)
            self.state.head_pose = pose

    def _on_look_away_sustained(self, pose):
        seconds = self.look_away_ms / 1000.0
        self._apply(Transition.LOOK_AWAY_SUSTAINED, f'Looking {pose.value} for more than {seconds:g} seconds')
        self.increment_warning()

    def on_eye_gaze_changed(self, gaze):
        gaze = EyeGaze(gaze)
        with self._lock:
            if gaze == self.state.eye_gaze:
                return
            if gaze != EyeGaze.CENTER:
                self._apply(Transition.GAZE_AWAY)
            self.state.eye_gaze = gaze

    def on_audio_level_changed(self, level):
        level = min(100.0, max(0.0, float(level)))
        with self._lock:
            self.state.audio_level = level
            if level > self.audio_threshold:
                self._audio_timer.arm(lambda: self.on_audio_detected_changed(True))
            else:
                self._audio_timer.cancel()
                if level < self.audio_threshold * 0.5:
                    self.on_audio_detected_changed(False)

    def on_audio_detected_changed(self, detected):
        detected = bool(detected)
        with self._lock:
            if detected == self.state.audio_detected:
                return
            if detected:
                self._apply(Transition.AUDIO_SUSTAINED, 'Background noise or talking detected')
            self.state.audio_detected = detected

    def increment_warning(self):
        with self._lock:
            self._apply(Transition.WARNING_ISSUED)
            logger.info('warning %d/%d issued', self.state.warning_count, self.warning_threshold)

    def toggle_examiner_mode(self):
        with self._lock:
            self.state.is_examiner_mode = not self.state.is_examiner_mode
            return self.state.is_examiner_mode

    def apply_signals(self, updates):
        """Apply (handler name, value) pairs as one atomic batch."""
        with self._lock:
            for handler, value in updates:
                getattr(self, handler)(value)

    # ---------- lifecycle ----------
    def start(self):
        with self._lock:
            if self.state.is_active:
                return
            self._apply(Transition.SESSION_STARTED, 'Proctoring session started')
            self.state.is_active = True

    def stop(self):
        with self._lock:
            if not self.state.is_active:
                return
            self._apply(Transition.SESSION_ENDED, 'Proctoring session ended')
            self.state.is_active = False

    def cancel_timers(self):
        with self._lock:
            self._look_away_timer.cancel()
            self._audio_timer.cancel()

    def reset(self):
        with self._lock:
            self.cancel_timers()
            self.state = SessionState(self.event_log_capacity)
            logger.info('session reset')

    def close(self):
        with self._lock:
            self.cancel_timers()
            self.stop()
        logger.info('session closed')

    @property
    def timer_pending(self):
        return self._look_away_timer.pending

    def snapshot(self):
        with self._lock:
            snap = self.state.to_dict()
        if snap['is_examiner_mode']:
            snap['reasons'] = generate_reasons(snap, self.warning_threshold)
        return snap
