"""
Fixed-window request counter keyed by identifier.

The limiter owns its state; the service layer creates one instance and
injects it wherever requests are admitted, so no counter lives at module
level.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 100
DEFAULT_WINDOW_MS = 15 * 60 * 1000


@dataclass
class _Window:
    count: int
    reset_at_ms: float


class RateLimiter:
    """
    Allows at most ``max_requests`` per identifier within ``window_ms``.

    The first request of an identifier opens a window; once the window has
    expired the next request opens a fresh one. Identifiers are independent.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def allow(
        self,
        identifier: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> bool:
        """Record a request for ``identifier`` and report whether it is allowed."""
        now_ms = self._now_ms()

        with self._lock:
            window = self._windows.get(identifier)

            if window is None or now_ms > window.reset_at_ms:
                self._windows[identifier] = _Window(count=1, reset_at_ms=now_ms + window_ms)
                return True

            if window.count >= max_requests:
                logger.warning("Rate limit exceeded for %s (%d requests)", identifier, window.count)
                return False

            window.count += 1
            return True

    def reset(self, identifier: Optional[str] = None) -> None:
        """Forget one identifier, or all of them."""
        with self._lock:
            if identifier is None:
                self._windows.clear()
            else:
                self._windows.pop(identifier, None)

    def purge_expired(self) -> int:
        """Drop expired windows and return how many were removed."""
        now_ms = self._now_ms()
        with self._lock:
            expired = [key for key, window in self._windows.items() if now_ms > window.reset_at_ms]
            for key in expired:
                del self._windows[key]
        return len(expired)
