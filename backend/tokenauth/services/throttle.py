"""In-memory request throttle for authentication entry points.

Each client key (normally the remote IP) owns a fixed-window counter with a
hard block: once a client exceeds ``limit`` requests inside
``refresh_period`` seconds it is refused for ``timeout_duration`` seconds.

Counters are created lazily and evicted by :meth:`RequestThrottle.sweep`,
which :meth:`RequestThrottle.allow` runs at most once per
``sweep_interval`` so the map stays bounded under address churn.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

log = logging.getLogger(__name__)


@dataclass
class ClientCounter:
    """Request tracking for a single client key."""

    window_start: float
    count: int = 0
    blocked_until: float = 0.0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def is_idle(self, now: float, refresh_period: float) -> bool:
        """Return ``True`` when neither the window nor a block is still running."""
        return now - self.window_start > refresh_period and now >= self.blocked_until


class RequestThrottle:
    """Per-key fixed-window counter with a block timeout.

    :param limit: Requests allowed per window.
    :param refresh_period: Window length in seconds.
    :param timeout_duration: Block length in seconds once ``limit`` is exceeded.
    :param enabled: When ``False`` every call is allowed and nothing is tracked.
    :param sweep_interval: Minimum seconds between automatic evictions.
    :param clock: Monotonic time source (seconds); injectable for tests.
    """

    def __init__(
        self,
        *,
        limit: int = 10,
        refresh_period: float = 60,
        timeout_duration: float = 30,
        enabled: bool = True,
        sweep_interval: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.limit = limit
        self.refresh_period = float(refresh_period)
        self.timeout_duration = float(timeout_duration)
        self.enabled = enabled
        self.sweep_interval = float(sweep_interval)
        self._clock = clock
        self._counters: dict[str, ClientCounter] = {}
        self._map_lock = threading.Lock()
        self._last_sweep = clock()

    # -------------------------- API ----------------------------

    def allow(self, key: str) -> bool:
        """Record one request from ``key`` and say whether it may proceed."""
        if not self.enabled:
            return True

        now = self._clock()
        self._maybe_sweep(now)
        while True:
            counter = self._counter_for(key, now)
            with counter.lock:
                if self._counters.get(key) is not counter:
                    # evicted by a concurrent sweep; retry with a fresh counter
                    continue
                return self._count(counter, key, now)

    def retry_after(self, key: str) -> float:
        """Seconds until ``key`` may retry (``0.0`` when it is not blocked)."""
        counter = self._counters.get(key)
        if counter is None:
            return 0.0
        with counter.lock:
            return max(0.0, counter.blocked_until - self._clock())

    def sweep(self) -> int:
        """Evict counters whose window and block have both expired.

        Counters whose lock is held by an in-flight request are skipped.

        :returns: Number of evicted keys.
        """
        now = self._clock()
        evicted = 0
        with self._map_lock:
            for key, counter in list(self._counters.items()):
                if not counter.lock.acquire(blocking=False):
                    continue
                try:
                    if counter.is_idle(now, self.refresh_period):
                        del self._counters[key]
                        evicted += 1
                finally:
                    counter.lock.release()
            self._last_sweep = now
        if evicted:
            log.debug("throttle.sweep evicted=%s remaining=%s", evicted, len(self._counters))
        return evicted

    def __len__(self) -> int:
        return len(self._counters)

    # ------------------------- helpers -------------------------

    def _counter_for(self, key: str, now: float) -> ClientCounter:
        counter = self._counters.get(key)
        if counter is not None:
            return counter
        with self._map_lock:
            return self._counters.setdefault(key, ClientCounter(window_start=now))

    def _count(self, counter: ClientCounter, key: str, now: float) -> bool:
        """Apply one request to ``counter``; the caller holds ``counter.lock``."""
        if now < counter.blocked_until:
            return False
        if counter.blocked_until:
            # block elapsed: start a fresh window
            counter.blocked_until = 0.0
            counter.count = 0
            counter.window_start = now
        if now - counter.window_start > self.refresh_period:
            counter.count = 0
            counter.window_start = now

        counter.count += 1
        if counter.count > self.limit:
            counter.blocked_until = now + self.timeout_duration
            log.warning(
                "throttle.blocked key=%s count=%s timeout=%ss",
                key,
                counter.count,
                self.timeout_duration,
                extra={"client_ip": key},
            )
            return False
        return True

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep >= self.sweep_interval:
            self.sweep()
