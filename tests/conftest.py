import pytest

from debouncer import ManualScheduler
from proctoring_state import ProctoringSession


@pytest.fixture
def scheduler():
    return ManualScheduler(start=1000.0)


@pytest.fixture
def session(scheduler):
    return ProctoringSession(
        scheduler=scheduler,
        clock=scheduler.time,
        look_away_ms=3000,
        warning_threshold=3,
        event_log_capacity=50,
        audio_threshold=25.0,
        audio_sustain_ms=1500,
    )
