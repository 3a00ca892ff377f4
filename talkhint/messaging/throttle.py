"""
Flood protection for cross-frame messaging.

MessageDeduper suppresses exact repeats of a (origin, payload) pair while the
key is resident in a bounded FIFO set. RateLimiter is a hard circuit breaker
on the number of sends within a sliding one-second window; it exists to stop
feedback loops where a message handler emits a message that retriggers the
same handler.
"""

import json
import logging
import time
from collections import OrderedDict, deque
from typing import Any, Callable, Deque, Optional

from talkhint.config.constants import (
    DEDUPE_EVICTION_FRACTION,
    DEFAULT_DEDUPE_CAPACITY,
    DEFAULT_RATE_LIMIT_PER_SECOND,
    LOGGER_NAME,
    RATE_WINDOW_SECONDS,
)
from talkhint.errors import RateLimitExceeded

logger = logging.getLogger(LOGGER_NAME)


def safe_stringify(obj: Any) -> str:
    """
    Serialize a payload to JSON with sorted keys.

    Circular references are replaced with ``"[Circular]"`` and values that
    json cannot encode fall back to their ``repr``.
    """
    ancestors = set()

    def scrub(value: Any) -> Any:
        if isinstance(value, (dict, list, tuple)):
            marker = id(value)
            if marker in ancestors:
                return "[Circular]"
            ancestors.add(marker)
            try:
                if isinstance(value, dict):
                    return {str(k): scrub(v) for k, v in value.items()}
                return [scrub(v) for v in value]
            finally:
                ancestors.discard(marker)
        return value

    try:
        return json.dumps(scrub(obj), sort_keys=True, ensure_ascii=False, default=repr)
    except (TypeError, ValueError) as e:
        logger.error(f"Error in safe_stringify: {e}")
        return f"[Unstringifiable Object: {type(obj).__name__}]"


class MessageDeduper:
    """Insertion-ordered set of recently seen message keys."""

    def __init__(self, capacity: int = DEFAULT_DEDUPE_CAPACITY,
                 eviction_fraction: float = DEDUPE_EVICTION_FRACTION):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.eviction_count = max(1, int(capacity * eviction_fraction))
        self._seen: "OrderedDict[str, None]" = OrderedDict()

    @staticmethod
    def make_key(origin: Optional[str], payload: Any) -> str:
        return f"{origin or ''}|{safe_stringify(payload)}"

    def should_process(self, key: str) -> bool:
        """Record the key; False if it is already resident."""
        if key in self._seen:
            logger.debug(f"Duplicate message suppressed: {key[:120]}")
            return False
        self._seen[key] = None
        if len(self._seen) > self.capacity:
            for _ in range(self.eviction_count):
                self._seen.popitem(last=False)
            logger.debug(f"Dedupe cache trimmed to {len(self._seen)} entries")
        return True

    def clear(self) -> None:
        self._seen.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._seen

    def __len__(self) -> int:
        return len(self._seen)


class RateLimiter:
    """Sliding-window send counter."""

    def __init__(self, max_per_window: int = DEFAULT_RATE_LIMIT_PER_SECOND,
                 window_seconds: float = RATE_WINDOW_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        if max_per_window <= 0:
            raise ValueError("max_per_window must be positive")
        self.max_per_window = max_per_window
        self.window_seconds = window_seconds
        self._clock = clock
        self._timestamps: Deque[float] = deque()

    def check(self) -> None:
        """Count one send; raise RateLimitExceeded once the window is over the cap."""
        now = self._clock()
        while self._timestamps and now - self._timestamps[0] >= self.window_seconds:
            self._timestamps.popleft()
        self._timestamps.append(now)
        if len(self._timestamps) > self.max_per_window:
            raise RateLimitExceeded(len(self._timestamps), self.max_per_window,
                                    self.window_seconds)

    def should_send(self) -> bool:
        try:
            self.check()
        except RateLimitExceeded as e:
            logger.error(f"Rate limit exceeded, possible message loop: {e}")
            return False
        return True

    def reset(self) -> None:
        self._timestamps.clear()

    @property
    def current_count(self) -> int:
        return len(self._timestamps)
