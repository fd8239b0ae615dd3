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
ReqSeal Exceptions

Custom exception classes for table construction, configuration and token
verification.
"""

from enum import Enum
from typing import Any, Dict, Optional


class RejectionReason(str, Enum):
    """Why a token was refused by the verifier."""

    INVALID = "invalid"
    EXPIRED = "expired"
    REPLAY = "replay"


class ReqSealError(Exception):
    """Base exception for ReqSeal errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class MalformedTableError(ReqSealError):
    """Raised when a lookup table violates its structural invariants."""
    pass


class ConfigurationError(ReqSealError):
    """Raised when there are configuration issues."""
    pass


class ValidationError(ReqSealError):
    """Raised when encoder input is not a non-negative decimal number."""

    def __init__(self, message: str, value: Any = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.value = value


class TokenRejectedError(ReqSealError):
    """Base class for every verification rejection."""

    reason: RejectionReason = RejectionReason.INVALID


class InvalidTokenError(TokenRejectedError):
    """Raised for any decode failure.

    The message never says which step failed, so a caller probing tokens
    cannot tell a wrong table from a truncated or tampered token.
    """

    reason = RejectionReason.INVALID

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class ExpiredTokenError(TokenRejectedError):
    """Raised when the embedded timestamp is outside the skew window."""

    reason = RejectionReason.EXPIRED

    def __init__(self, message: str, timestamp: int, drift_ms: int, allowed_skew_ms: int):
        super().__init__(message, {"drift_ms": drift_ms, "allowed_skew_ms": allowed_skew_ms})
        self.timestamp = timestamp
        self.drift_ms = drift_ms
        self.allowed_skew_ms = allowed_skew_ms


class ReplayDetectedError(TokenRejectedError):
    """Raised when a token has already been accepted once."""

    reason = RejectionReason.REPLAY

    def __init__(self, message: str, timestamp: int):
        super().__init__(message)
        self.timestamp = timestamp
