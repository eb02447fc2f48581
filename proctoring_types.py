# proctoring_types.py
from enum import Enum


class ProctorStatus(Enum):
    NORMAL = "normal"
    WARNING = "warning"
    SUSPICIOUS = "suspicious"


class HeadPose(Enum):
    CENTER = "center"
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


class EyeGaze(Enum):
    CENTER = "center"
    LEFT = "left"
    RIGHT = "right"


class EventType(Enum):
    FACE_LOST = "face_lost"
    HEAD_POSE = "head_pose"
    EYE_GAZE = "eye_gaze"
    WARNING = "warning"
    STATUS_CHANGE = "status_change"
    MULTIPLE_FACES = "multiple_faces"
    AUDIO_DETECTED = "audio_detected"
