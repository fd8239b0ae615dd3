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

"""ReqSeal verification middleware.

Checks the ReqSeal key header on every request and rejects requests whose key
is missing, invalid, expired or replayed with HTTP 401. Keys travel as UTF-8
encoded header values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from .config import ReqSealConfig
from .errors import ErrorCode, error_response
from .exceptions import InvalidTokenError, RejectionReason, TokenRejectedError
from .seal import ReqSeal

logger = logging.getLogger(__name__)


def header_value_to_key(value: str) -> str:
    """Recover a key sent as UTF-8 from a header value.

    ASGI servers hand header bytes over as latin-1, so keys built from
    non-latin-1 tables must be re-decoded before they can be verified.
    """
    try:
        return value.encode("latin-1").decode("utf-8")
    except UnicodeError:
        raise InvalidTokenError() from None


@dataclass(frozen=True)
class ReqSealContext:
    """Attached to ``request.state.reqseal`` for accepted requests."""

    token: str
    timestamp: int


class ReqSealMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce ReqSeal keys on incoming requests."""

    def __init__(
        self,
        app,
        seal: ReqSeal,
        header_name: str = "x-reqseal-key",
        key_missing_message: str = "Missing ReqSeal key",
        key_invalid_message: str = "Invalid ReqSeal key",
        key_expired_message: str | None = None,
        bypass_paths: set[str] | None = None,
    ):
        super().__init__(app)
        self.seal = seal
        self.header_name = header_name.lower()
        self.key_missing_message = key_missing_message
        self.key_invalid_message = key_invalid_message
        self.key_expired_message = key_expired_message or key_invalid_message
        self.bypass_paths = set(bypass_paths or ())

    @classmethod
    def options_from_config(cls, config: ReqSealConfig) -> dict:
        """Keyword arguments for ``app.add_middleware`` except ``seal``."""
        return {
            "header_name": config.header_name,
            "key_missing_message": config.key_missing_message,
            "key_invalid_message": config.key_invalid_message,
            "key_expired_message": config.key_expired_message,
            "bypass_paths": set(config.bypass_paths),
        }

    async def dispatch(self, request: Request, call_next):
        """Verify the key header before handing the request on."""
        if request.url.path in self.bypass_paths:
            return await call_next(request)

        raw = request.headers.get(self.header_name)
        if not raw:
            return JSONResponse(
                status_code=401, content=error_response(ErrorCode.MISSING_TOKEN, self.key_missing_message)
            )

        try:
            key = header_value_to_key(raw)
            # replay caches may do network I/O
            result = await run_in_threadpool(self.seal.verify_key, key)
        except TokenRejectedError as e:
            logger.warning(
                f"ReqSeal key rejected for {request.method} {request.url.path}: {e.reason.value}",
                extra={"reason": e.reason.value, "path": request.url.path},
            )
            message = self.key_expired_message if e.reason is RejectionReason.EXPIRED else self.key_invalid_message
            return JSONResponse(status_code=401, content=error_response(ErrorCode.INVALID_TOKEN, message))

        request.state.reqseal = ReqSealContext(token=key, timestamp=result.timestamp)
        return await call_next(request)
