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

"""Token verification: decode, freshness window and replay cache."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .codec import TokenCodec
from .exceptions import ConfigurationError, ExpiredTokenError, InvalidTokenError, ReplayDetectedError
from .metrics import record_verification

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_SKEW_MS = 30_000


def wall_clock_ms() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


class ReplayCache(Protocol):
    def has(self, key: str) -> bool: ...
    def add(self, key: str) -> None: ...


@runtime_checkable
class AtomicReplayCache(Protocol):
    def check_and_add(self, key: str) -> bool: ...


@dataclass(frozen=True)
class VerificationResult:
    timestamp: int
    token: str
    drift_ms: int


def replay_key(timestamp: int, token: str) -> str:
    return f"{timestamp}:{token}"


class Verifier:
    """Accepts or rejects tokens produced by a matching :class:`TokenCodec`.

    A token is accepted when it decodes, its timestamp is within
    ``allowed_skew_ms`` of now (inclusive), and, when a replay cache is
    configured, it has not been accepted before.

    The replay check uses ``check_and_add`` when the cache provides it. Caches
    that only offer ``has``/``add`` leave a window in which two concurrent
    requests with the same token can both be admitted.
    """

    def __init__(
        self,
        codec: TokenCodec,
        allowed_skew_ms: int = DEFAULT_ALLOWED_SKEW_MS,
        replay_cache: ReplayCache | AtomicReplayCache | None = None,
        clock: Callable[[], int] = wall_clock_ms,
    ):
        if allowed_skew_ms < 0:
            raise ConfigurationError("allowed_skew_ms must be non-negative")
        self.codec = codec
        self.allowed_skew_ms = allowed_skew_ms
        self.replay_cache = replay_cache
        self.clock = clock

    def verify(self, token: str, now: int | None = None) -> VerificationResult:
        """Verify ``token`` at instant ``now`` (defaults to the clock).

        Raises:
            InvalidTokenError: token does not decode under this table.
            ExpiredTokenError: timestamp outside the skew window.
            ReplayDetectedError: token already accepted.
        """
        try:
            timestamp = self.codec.decode(token)
        except InvalidTokenError:
            record_verification("invalid")
            raise

        if now is None:
            now = self.clock()

        drift = abs(now - timestamp)
        if drift > self.allowed_skew_ms:
            record_verification("expired")
            raise ExpiredTokenError("Token expired or not yet valid", timestamp, drift, self.allowed_skew_ms)

        if self.replay_cache is not None:
            key = replay_key(timestamp, token)
            if not self._remember(key):
                record_verification("replay")
                raise ReplayDetectedError("Replay detected", timestamp)

        record_verification("accepted")
        return VerificationResult(timestamp=timestamp, token=token, drift_ms=drift)

    def _remember(self, key: str) -> bool:
        """Store ``key``; False when it was already present."""
        cache = self.replay_cache
        if isinstance(cache, AtomicReplayCache):
            return cache.check_and_add(key)
        if cache.has(key):
            return False
        cache.add(key)
        return True
