"""
Attempt Timer
Countdown clock bound to a single attempt; emits tick and expiry events
"""
import logging
import threading
import time

from elearning.engine.errors import InvalidDuration

logger = logging.getLogger(__name__)

TICK = 'tick'
EXPIRE = 'expire'


def start_daemon_thread(target, *args):
    """Run target on a daemon thread (default background launcher)"""
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


class AttemptTimer:
    """
    Counts down from duration_minutes * 60 to zero, one second per tick.

    spawn launches the ticking loop in the background; pass spawn=None to
    drive the timer by calling tick() directly.
    """

    interval = 1

    def __init__(self, duration_minutes, spawn=start_daemon_thread, sleep=time.sleep):
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) \
                or duration_minutes <= 0:
            raise InvalidDuration(f'Invalid duration: {duration_minutes!r} minutes')

        self.duration_seconds = duration_minutes * 60
        self.remaining_seconds = self.duration_seconds
        self._spawn = spawn
        self._sleep = sleep
        self._lock = threading.Lock()
        self._started = False
        self._running = False
        self._expired = False
        self._listeners = {TICK: [], EXPIRE: []}

    @property
    def is_running(self):
        return self._running

    @property
    def has_expired(self):
        return self._expired

    def on(self, event, callback):
        """Subscribe to 'tick' (callback(remaining_seconds)) or 'expire' (callback())"""
        self._listeners[event].append(callback)
        return callback

    def start(self):
        with self._lock:
            if self._started:
                return
            self._started = True
            self._running = True

        if self._spawn is not None:
            self._spawn(self._run)

    def stop(self):
        with self._lock:
            self._running = False

    def tick(self):
        """Advance the countdown by one second"""
        with self._lock:
            if not self._running or self._expired:
                return
            self.remaining_seconds -= 1
            remaining = self.remaining_seconds
            expired_now = remaining <= 0
            if expired_now:
                self.remaining_seconds = 0
                remaining = 0
                self._expired = True
                self._running = False

        self._emit(TICK, remaining)
        if expired_now:
            logger.info('Attempt timer expired after %s seconds', self.duration_seconds)
            self._emit(EXPIRE)

    def _run(self):
        while self._running:
            self._sleep(self.interval)
            self.tick()

    def _emit(self, event, *args):
        for callback in list(self._listeners[event]):
            callback(*args)
