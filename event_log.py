# event_log.py
import datetime
import uuid
from collections import deque
from dataclasses import dataclass

from proctoring_types import EventType, ProctorStatus


@dataclass(frozen=True)
class Event:
    id: str
    timestamp: datetime.datetime
    type: EventType
    description: str
    severity: ProctorStatus

    def to_dict(self):
        return {
            'id': self.id,
            'timestamp': self.timestamp.isoformat(),
            'type': self.type.value,
            'description': self.description,
            'severity': self.severity.value,
        }


class EventLog:
    """Bounded, append-only record of session events, newest first."""

    def __init__(self, capacity=50):
        if capacity < 1:
            raise ValueError('capacity must be at least 1')
        self.capacity = capacity
        self._events = deque(maxlen=capacity)

    def append(self, type, description, severity):
        event = Event(
            id=uuid.uuid4().hex,
            timestamp=datetime.datetime.now(datetime.timezone.utc),
            type=EventType(type),
            description=description,
            severity=ProctorStatus(severity),
        )
        # appendleft on a full deque drops the oldest entry from the right
        self._events.appendleft(event)
        return event

    def __len__(self):
        return len(self._events)

    def __iter__(self):
        return iter(tuple(self._events))

    def to_list(self):
        return [e.to_dict() for e in self._events]
