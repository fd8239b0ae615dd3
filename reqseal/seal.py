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

"""High level entry point for issuing and verifying ReqSeal keys."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Mapping, Sequence

from .codec import DEFAULT_SEPARATOR, TokenCodec
from .config import ReqSealConfig
from .matrix import LookupTable
from .metrics import TOKENS_ISSUED
from .replay_guard import InMemoryReplayCache
from .replay_guard_redis import RedisReplayCache
from .verifier import DEFAULT_ALLOWED_SKEW_MS, ReplayCache, VerificationResult, Verifier, wall_clock_ms

logger = logging.getLogger(__name__)


class ReqSeal:
    """Issues timestamp keys and verifies them against the same table.

    Example::

        seal = ReqSeal(matrix, replay_cache=InMemoryReplayCache())
        key = seal.generate_key()
        seal.verify_key(key).timestamp
    """

    def __init__(
        self,
        matrix: LookupTable | Mapping[object, Sequence[str]],
        separator: str = DEFAULT_SEPARATOR,
        allowed_skew_ms: int = DEFAULT_ALLOWED_SKEW_MS,
        replay_cache: ReplayCache | None = None,
        clock: Callable[[], int] = wall_clock_ms,
        rng: random.Random | None = None,
        debug: bool = False,
    ):
        table = matrix if isinstance(matrix, LookupTable) else LookupTable.from_mapping(matrix)
        self.clock = clock
        self.codec = TokenCodec(table, separator=separator, rng=rng, debug=debug)
        self.verifier = Verifier(self.codec, allowed_skew_ms=allowed_skew_ms, replay_cache=replay_cache, clock=clock)

    @classmethod
    def from_config(
        cls,
        config: ReqSealConfig,
        clock: Callable[[], int] = wall_clock_ms,
        rng: random.Random | None = None,
    ) -> ReqSeal:
        return cls(
            config.load_table(),
            separator=config.separator,
            allowed_skew_ms=config.allowed_skew_ms,
            replay_cache=create_replay_cache(config, clock=clock),
            clock=clock,
            rng=rng,
            debug=config.debug,
        )

    @property
    def table(self) -> LookupTable:
        return self.codec.table

    def generate_key(self, now: int | None = None) -> str:
        """Encode ``now`` (default: the clock) into a fresh key."""
        timestamp = self.clock() if now is None else now
        key = self.codec.encode(timestamp)
        TOKENS_ISSUED.inc()
        return key

    def decode_key(self, key: str) -> int:
        return self.codec.decode(key)

    def verify_key(self, key: str, now: int | None = None) -> VerificationResult:
        return self.verifier.verify(key, now=now)

    def shutdown(self) -> None:
        """Release the replay cache's background resources, if it has any."""
        shutdown = getattr(self.verifier.replay_cache, "shutdown", None)
        if callable(shutdown):
            shutdown()
            logger.debug("Replay cache shut down")


def create_replay_cache(
    config: ReqSealConfig, clock: Callable[[], int] = wall_clock_ms
) -> InMemoryReplayCache | RedisReplayCache | None:
    """Replay cache described by ``config``, or None when disabled."""
    if not config.replay_cache_enabled:
        return None
    if config.redis_url:
        logger.info("Using Redis replay cache")
        return RedisReplayCache.from_url(config.redis_url, ttl_ms=config.cache_ttl_ms)
    return InMemoryReplayCache(
        ttl_ms=config.cache_ttl_ms,
        sweep_interval_ms=config.replay_sweep_interval_ms,
        clock=clock,
    )
