"""
Duplicate-request suppression keyed by client and exact payload
"""
import hashlib
import threading
import time
from typing import Dict, Optional

from flashgen import config


def duplicate_key(client_id: str, payload: str) -> str:
    return hashlib.sha256(f"{client_id}:{payload}".encode("utf-8")).hexdigest()


class DuplicateSuppressor:
    """Flags a (client, payload) pair seen within ``window_seconds``.

    A window of 0 never expires entries, so a client can submit a given
    payload once per process lifetime.
    """

    def __init__(self, window_seconds: float = 60.0, clock=time.monotonic):
        self.window_seconds = window_seconds
        self._clock = clock
        self._seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _expired(self, first_seen: float, now: float) -> bool:
        return self.window_seconds > 0 and first_seen <= now - self.window_seconds

    def is_duplicate(self, client_id: str, payload: str, now: Optional[float] = None) -> bool:
        """True if already seen; otherwise records the pair and returns False."""
        if now is None:
            now = self._clock()
        key = duplicate_key(client_id, payload)

        with self._lock:
            first_seen = self._seen.get(key)
            if first_seen is not None and not self._expired(first_seen, now):
                return True
            self._seen[key] = now
            return False

    def prune(self, now: Optional[float] = None) -> int:
        if now is None:
            now = self._clock()
        with self._lock:
            stale = [key for key, first_seen in self._seen.items() if self._expired(first_seen, now)]
            for key in stale:
                del self._seen[key]
        return len(stale)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._seen)

    def reset(self) -> None:
        with self._lock:
            self._seen.clear()


duplicate_suppressor = DuplicateSuppressor(window_seconds=config.DUPLICATE_WINDOW_SECONDS)


def get_duplicate_suppressor() -> DuplicateSuppressor:
    return duplicate_suppressor
