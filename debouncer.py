# debouncer.py
import heapq
import itertools
import logging
import threading

logger = logging.getLogger(__name__)


class ThreadTimerScheduler:
    """Runs callbacks on daemon timer threads. Returned handles support cancel()."""

    def call_later(self, delay, callback):
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class _ManualHandle:
    def __init__(self, due, seq, callback):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def __lt__(self, other):
        return (self.due, self.seq) < (other.due, other.seq)


class ManualScheduler:
    """Virtual-time scheduler. Nothing fires until advance() moves the clock."""

    def __init__(self, start=0.0):
        self.now = start
        self._queue = []
        self._seq = itertools.count()

    def time(self):
        return self.now

    def call_later(self, delay, callback):
        handle = _ManualHandle(self.now + delay, next(self._seq), callback)
        heapq.heappush(self._queue, handle)
        return handle

    def pending(self):
        return sum(1 for h in self._queue if not h.cancelled)

    def advance(self, seconds):
        target = self.now + seconds
        while self._queue and self._queue[0].due <= target:
            handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = handle.due
            handle.callback()
        self.now = target


class Debouncer:
    """Single-shot delayed callback: at most one pending at a time.

    arm() while a callback is pending is a no-op; callers that want to
    restart the delay must cancel() first. cancel() is safe when idle.
    If a lock is given, the callback runs while holding it, and a callback
    that was cancelled after its timer already fired is dropped.
    """

    def __init__(self, duration_ms, scheduler, lock=None, name='debouncer'):
        self.duration_ms = duration_ms
        self.scheduler = scheduler
        self.name = name
        self._lock = lock if lock is not None else threading.RLock()
        self._handle = None
        self._token = None

    @property
    def pending(self):
        return self._handle is not None

    def arm(self, callback, duration_ms=None):
        with self._lock:
            if self._handle is not None:
                return False
            delay_ms = self.duration_ms if duration_ms is None else duration_ms
            token = object()

            def fire():
                self._fire(token, callback)

            self._token = token
            self._handle = self.scheduler.call_later(delay_ms / 1000.0, fire)
            logger.debug('%s armed for %d ms', self.name, delay_ms)
            return True

    def cancel(self):
        with self._lock:
            if self._handle is None:
                return False
            self._handle.cancel()
            self._handle = None
            self._token = None
            logger.debug('%s cancelled', self.name)
            return True

    def _fire(self, token, callback):
        with self._lock:
            if self._handle is None or self._token is not token:
                logger.debug('%s dropped stale callback', self.name)
                return
            self._handle = None
            self._token = None
            logger.debug('%s fired', self.name)
            try:
                callback()
            except Exception:
                logger.exception('%s callback failed', self.name)
                raise
