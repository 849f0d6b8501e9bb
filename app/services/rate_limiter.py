import math
import threading
import time


class RateLimiter:
    """
    Fixed-window request counter keyed by subject. One instance is created
    per application and shared by the request handlers.
    """

    def __init__(self, max_requests=10, window_seconds=60, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows = {}
        self._lock = threading.Lock()

    def check(self, identifier):
        """
        Count one request for `identifier`.

        Returns:
            tuple: (is_allowed, retry_after_seconds)
        """
        now = self._clock()
        with self._lock:
            count, reset_at = self._windows.get(identifier, (0, 0))
            if now >= reset_at:
                self._windows[identifier] = (1, now + self.window_seconds)
                return True, 0
            if count >= self.max_requests:
                return False, int(math.ceil(reset_at - now))
            self._windows[identifier] = (count + 1, reset_at)
            return True, 0

    def reset(self, identifier=None):
        with self._lock:
            if identifier is None:
                self._windows.clear()
            else:
                self._windows.pop(identifier, None)
