import logging
import time
from threading import Lock

from cachetools import TTLCache

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


class RateLimiter:
    """
    Fixed-window request counter keyed by client identifier.

    Entries expire ``window`` seconds after the first request of a window.
    At most ``maxsize`` identifiers are tracked; the least recently used one
    is evicted when a new identifier arrives at capacity.
    """

    def __init__(self, limit=10, window=60, maxsize=100, timer=time.monotonic):
        self.limit = limit
        self.window = window
        self._counters = TTLCache(maxsize=maxsize, ttl=window, timer=timer)
        self._lock = Lock()

    def check_and_increment(self, client_id):
        """Count a request for ``client_id`` and report whether it is allowed."""
        with self._lock:
            counter = self._counters.get(client_id)
            if counter is None:
                # Stored as a mutable cell so later increments keep the
                # expiry of the first request.
                counter = [0]
                self._counters[client_id] = counter
            counter[0] += 1
            count = counter[0]

        allowed = count <= self.limit
        if not allowed:
            logger.warning(f"Rate limit exceeded for {client_id} ({count} requests in window)")
        return allowed

    def count(self, client_id):
        with self._lock:
            counter = self._counters.get(client_id)
            return counter[0] if counter else 0

    def reset(self):
        with self._lock:
            self._counters.clear()

    def __len__(self):
        with self._lock:
            return len(self._counters)


def client_identifier(request):
    """
    Identify the caller by the first X-Forwarded-For address.

    Requests without the header all share the "unknown" bucket.
    """
    forwarded = request.headers.get('X-Forwarded-For', '')
    client = forwarded.split(',')[0].strip()
    return client or UNKNOWN_CLIENT
