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

"""Redis-backed replay cache.

Uses ``SET NX PX`` to store replay keys with a TTL and reject duplicates
atomically across processes.
"""

from __future__ import annotations

from typing import Any, Protocol

from .exceptions import ConfigurationError
from .verifier import DEFAULT_ALLOWED_SKEW_MS


class _RedisLike(Protocol):
    def set(self, name: str, value: str, px: int | None = None, nx: bool = False) -> Any: ...
    def exists(self, *names: str) -> int: ...


class RedisReplayCache:
    def __init__(self, client: _RedisLike, ttl_ms: int = DEFAULT_ALLOWED_SKEW_MS, prefix: str = "reqseal:") -> None:
        if ttl_ms <= 0:
            raise ConfigurationError("ttl_ms must be positive")
        self.client = client
        self.ttl_ms = int(ttl_ms)
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, ttl_ms: int = DEFAULT_ALLOWED_SKEW_MS, prefix: str = "reqseal:") -> RedisReplayCache:
        import redis

        return cls(redis.Redis.from_url(url), ttl_ms=ttl_ms, prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def has(self, key: str) -> bool:
        return int(self.client.exists(self._key(key))) > 0

    def add(self, key: str) -> None:
        self.client.set(self._key(key), "1", px=self.ttl_ms)

    def check_and_add(self, key: str) -> bool:
        return bool(self.client.set(self._key(key), "1", px=self.ttl_ms, nx=True))
