# ai_scoring.py
from collections import namedtuple
from enum import Enum

from proctoring_types import EventType, ProctorStatus

MAX_SCORE = 100


class Transition(Enum):
    FACE_LOST = "face_lost"
    MULTIPLE_FACES = "multiple_faces"
    LOOK_AWAY = "look_away"
    LOOK_AWAY_SUSTAINED = "look_away_sustained"
    GAZE_AWAY = "gaze_away"
    WARNING_ISSUED = "warning_issued"
    AUDIO_SUSTAINED = "audio_sustained"
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"


# forced_status wins over the threshold rule; event/severity are what gets logged
ScoringRule = namedtuple('ScoringRule', 'score_delta warning_delta forced_status event severity')

SCORING_RULES = {
    Transition.FACE_LOST: ScoringRule(0, 0, None, EventType.FACE_LOST, ProctorStatus.WARNING),
    Transition.MULTIPLE_FACES: ScoringRule(25, 1, ProctorStatus.SUSPICIOUS, EventType.MULTIPLE_FACES, ProctorStatus.SUSPICIOUS),
    Transition.LOOK_AWAY: ScoringRule(5, 0, None, None, None),
    Transition.LOOK_AWAY_SUSTAINED: ScoringRule(0, 0, None, EventType.HEAD_POSE, ProctorStatus.WARNING),
    Transition.GAZE_AWAY: ScoringRule(2, 0, None, None, None),
    Transition.WARNING_ISSUED: ScoringRule(15, 1, None, None, None),
    Transition.AUDIO_SUSTAINED: ScoringRule(0, 0, None, EventType.AUDIO_DETECTED, ProctorStatus.WARNING),
    Transition.SESSION_STARTED: ScoringRule(0, 0, None, EventType.STATUS_CHANGE, ProctorStatus.NORMAL),
    Transition.SESSION_ENDED: ScoringRule(0, 0, None, EventType.STATUS_CHANGE, ProctorStatus.NORMAL),
}


def clamp_score(score):
    if score < 0:
        return 0
    if score > MAX_SCORE:
        return MAX_SCORE
    return int(score)


def status_for_warnings(warning_count, threshold):
    if warning_count >= threshold:
        return ProctorStatus.SUSPICIOUS
    return ProctorStatus.WARNING


def apply_rule(transition, score, warning_count, status, warning_threshold=3):
    """Return (score, warning_count, status) after one transition.

    Score only moves up and is clamped to [0, 100]. A rule that adds warnings
    without forcing a status re-derives it from the threshold; rules that add
    nothing to the warning count leave status alone.
    """
    rule = SCORING_RULES[transition]
    score = clamp_score(score + rule.score_delta)
    warning_count += rule.warning_delta
    if rule.forced_status is not None:
        status = rule.forced_status
    elif rule.warning_delta:
        status = status_for_warnings(warning_count, warning_threshold)
    return score, warning_count, status
