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

"""
ReqSeal

Short-lived timestamp keys written through a shared substitution table, used to
reject replayed HTTP requests.
"""

from .codec import TokenCodec
from .config import ReqSealConfig
from .exceptions import (
    ConfigurationError,
    ExpiredTokenError,
    InvalidTokenError,
    MalformedTableError,
    RejectionReason,
    ReplayDetectedError,
    ReqSealError,
    TokenRejectedError,
    ValidationError,
)
from .matrix import DecodeIndex, LookupTable, build, build_index, load_table
from .replay_guard import InMemoryReplayCache
from .replay_guard_redis import RedisReplayCache
from .seal import ReqSeal, create_replay_cache
from .verifier import VerificationResult, Verifier

__version__ = "1.0.0"
__author__ = "ReqSeal Project Contributors"

__all__ = [
    # Entry points
    "ReqSeal",
    "ReqSealConfig",
    "create_replay_cache",
    # Core
    "LookupTable",
    "DecodeIndex",
    "build",
    "build_index",
    "load_table",
    "TokenCodec",
    "Verifier",
    "VerificationResult",
    # Replay caches
    "InMemoryReplayCache",
    "RedisReplayCache",
    # Exceptions
    "ReqSealError",
    "MalformedTableError",
    "ConfigurationError",
    "ValidationError",
    "TokenRejectedError",
    "InvalidTokenError",
    "ExpiredTokenError",
    "ReplayDetectedError",
    "RejectionReason",
]
