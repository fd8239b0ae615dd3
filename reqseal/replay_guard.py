# Copyright 2025 ReqSeal Project Contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""In-memory replay cache with TTL and a background sweeper.

Stores replay keys with an expiry instant. Expired keys are treated as absent
on lookup and are removed by a daemon thread every ``sweep_interval_ms``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from .exceptions import ConfigurationError
from .verifier import DEFAULT_ALLOWED_SKEW_MS, wall_clock_ms

logger = logging.getLogger(__name__)


class InMemoryReplayCache:
    """Thread-safe replay cache scoped to the current process."""

    def __init__(
        self,
        ttl_ms: int = DEFAULT_ALLOWED_SKEW_MS,
        sweep_interval_ms: int | None = None,
        clock: Callable[[], int] = wall_clock_ms,
        start_sweeper: bool = True,
    ) -> None:
        if ttl_ms <= 0:
            raise ConfigurationError("ttl_ms must be positive")
        self.ttl_ms = int(ttl_ms)
        self.sweep_interval_ms = int(sweep_interval_ms or ttl_ms)
        self.clock = clock

        self._store: dict[str, int] = {}
        self._lock = threading.RLock()
        self._shutdown_event = threading.Event()
        self._sweeper: threading.Thread | None = None

        if start_sweeper:
            self._start_sweeper()

    def _start_sweeper(self) -> None:
        self._sweeper = threading.Thread(target=self._sweep_loop, name="reqseal-replay-sweeper", daemon=True)
        self._sweeper.start()

    def _sweep_loop(self) -> None:
        interval = self.sweep_interval_ms / 1000
        while not self._shutdown_event.wait(interval):
            try:
                removed = self.cleanup()
                if removed:
                    logger.debug("Swept %d expired replay keys", removed)
            except Exception as e:
                # keep sweeping; a failed pass only delays eviction
                logger.error(f"Replay cache sweep error: {e}")

    def cleanup(self) -> int:
        """Remove expired keys and return how many were removed."""
        now = self.clock()
        with self._lock:
            expired = [key for key, expires_at in self._store.items() if expires_at <= now]
            for key in expired:
                del self._store[key]
        return len(expired)

    def has(self, key: str) -> bool:
        with self._lock:
            expires_at = self._store.get(key)
            if expires_at is None:
                return False
            if expires_at <= self.clock():
                del self._store[key]
                return False
            return True

    def add(self, key: str) -> None:
        with self._lock:
            self._store[key] = self.clock() + self.ttl_ms

    def check_and_add(self, key: str) -> bool:
        """Atomically store ``key``; False when it is already present."""
        with self._lock:
            if self.has(key):
                return False
            self.add(key)
            return True

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def shutdown(self) -> None:
        """Stop the sweeper and drop all keys."""
        self._shutdown_event.set()
        if self._sweeper is not None and self._sweeper.is_alive():
            self._sweeper.join(timeout=1.0)
        self.clear()
