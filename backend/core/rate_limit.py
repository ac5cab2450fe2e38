"""In-process fixed-window rate limiting.

Entries live only in this process's memory. They are lost on restart and are
not shared between replicas, so the limiter is best-effort abuse mitigation
(login attempts, outbound SMS) rather than a security boundary.
"""

import logging
import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable

from backend.core import config

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_WINDOW_MS = 60_000


def epoch_millis() -> int:
    return int(time.time() * 1000)


@dataclass
class RateLimitEntry:
    count: int
    reset_at_ms: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after: int | None = None


class RateLimitStore:
    def __init__(
        self,
        clock: Callable[[], int] = epoch_millis,
        sweep_threshold: int = config.RATE_LIMIT_SWEEP_THRESHOLD,
    ):
        self.clock = clock
        self.sweep_threshold = sweep_threshold
        self.entries: dict[str, RateLimitEntry] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self.entries)

    def check(
        self,
        key: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> RateLimitResult:
        with self._lock:
            now = self.clock()

            if len(self.entries) > self.sweep_threshold:
                self._sweep(now)

            entry = self.entries.get(key)
            if entry is None or entry.reset_at_ms < now:
                self.entries[key] = RateLimitEntry(count=1, reset_at_ms=now + window_ms)
                return RateLimitResult(allowed=True)

            if entry.count >= max_attempts:
                return RateLimitResult(
                    allowed=False,
                    retry_after=math.ceil((entry.reset_at_ms - now) / 1000),
                )

            entry.count += 1
            return RateLimitResult(allowed=True)

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self.entries.clear()
            else:
                self.entries.pop(key, None)

    def _sweep(self, now: int) -> None:
        expired = [key for key, entry in self.entries.items() if entry.reset_at_ms < now]
        for key in expired:
            del self.entries[key]
        logger.debug('Swept %d expired rate limit entries.', len(expired))


_default_store = RateLimitStore()


def get_rate_limit_store() -> RateLimitStore:
    return _default_store


def check_rate_limit(
    key: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    window_ms: int = DEFAULT_WINDOW_MS,
) -> RateLimitResult:
    return _default_store.check(key, max_attempts, window_ms)
