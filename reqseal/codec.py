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

"""Token encoder and decoder.

Wire format::

    <sauce><separator><chunk><chunk>...

    chunk = <digit symbol>                     fixed width (base_size)
            <len><value column symbols>        len in ASCII decimal
            <len><original position symbols>   len in ASCII decimal

The sauce is the metadata column written with its own column. Every chunk
carries one timestamp digit written with a random value column, the value
column written with the metadata column, and the digit's original position
written with the metadata column. Chunks are emitted in shuffled order.
"""

from __future__ import annotations

import logging
import random
from collections import defaultdict, deque

from .exceptions import InvalidTokenError, ReqSealError, ValidationError
from .matrix import DecodeIndex, LookupTable, build_index

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = ":"


def _digits_of(timestamp: int | str) -> str:
    if isinstance(timestamp, bool):
        raise ValidationError("Timestamp must be a number", timestamp)
    if isinstance(timestamp, int):
        if timestamp < 0:
            raise ValidationError("Timestamp must be non-negative", timestamp)
        return str(timestamp)
    if isinstance(timestamp, str) and timestamp and all("0" <= ch <= "9" for ch in timestamp):
        return timestamp
    raise ValidationError("Timestamp must be a non-negative integer or digit string", timestamp)


def _read_length(body: str, start: int) -> tuple[int, int]:
    """Parse the ASCII decimal run at ``start``; return (value, cursor after it)."""
    end = start
    while end < len(body) and "0" <= body[end] <= "9":
        end += 1
    if end == start:
        raise InvalidTokenError()
    return int(body[start:end]), end


class TokenCodec:
    """Encodes timestamps into tokens and decodes them back.

    Args:
        table: validated lookup table shared with the other side.
        separator: string between sauce and body; must not occur in any symbol.
        rng: source of randomness for the shuffle and column choices.
        debug: log timestamps and decode failure detail at DEBUG level.
    """

    def __init__(
        self,
        table: LookupTable,
        separator: str = DEFAULT_SEPARATOR,
        rng: random.Random | None = None,
        debug: bool = False,
    ):
        if not separator:
            raise ReqSealError("Separator must be a non-empty string")
        self.table = table
        self.index: DecodeIndex = build_index(table)
        self.separator = separator
        self.rng = rng or random.SystemRandom()
        self.debug = debug

    def _log(self, msg: str, *args) -> None:
        if self.debug:
            logger.debug(msg, *args)

    def encode(self, timestamp: int | str) -> str:
        """Encode ``timestamp`` (digits of a non-negative integer) into a token."""
        digits = _digits_of(timestamp)
        self._log("Encoding timestamp %s", digits)

        table = self.table
        columns = table.columns

        shuffled = list(digits)
        self.rng.shuffle(shuffled)

        # ascending queue of original positions per digit value
        positions: dict[str, deque[int]] = defaultdict(deque)
        for position, digit in enumerate(digits):
            positions[digit].append(position)

        meta_column = self.rng.randrange(columns)

        parts: list[str] = []
        for digit in shuffled:
            position = positions[digit].popleft()
            value_column = self.rng.randrange(columns)

            encoded_digit = table.symbol(digit, value_column)
            encoded_column = table.substitute(value_column, meta_column)
            encoded_position = table.substitute(position, meta_column)

            parts.append(encoded_digit)
            parts.append(str(len(encoded_column)))
            parts.append(encoded_column)
            parts.append(str(len(encoded_position)))
            parts.append(encoded_position)

        sauce = table.substitute(meta_column, meta_column)
        return f"{sauce}{self.separator}{''.join(parts)}"

    def decode(self, token: str) -> int:
        """Recover the timestamp embedded in ``token``.

        Raises:
            InvalidTokenError: for any failure, without saying which.
        """
        try:
            return int(self._decode_digits(token))
        except InvalidTokenError:
            self._log("Rejected token %r: unknown symbol or bad structure", token)
            raise
        except (ValueError, TypeError) as e:
            self._log("Rejected token %r: %s", token, e)
            raise InvalidTokenError() from None

    def _decode_digits(self, token: str) -> str:
        if not isinstance(token, str):
            raise InvalidTokenError()

        sauce, sep, body = token.partition(self.separator)
        if not sep or not sauce or not body:
            raise InvalidTokenError()

        index = self.index
        size = self.table.base_size

        meta_column = int(index.reverse(sauce))
        if meta_column >= self.table.columns:
            raise InvalidTokenError()
        # the sauce is always written with its own column
        if self.table.substitute(meta_column, meta_column) != sauce:
            raise InvalidTokenError()

        chunks: list[tuple[str, int]] = []
        cursor = 0
        while cursor < len(body):
            encoded_digit = body[cursor : cursor + size]
            if len(encoded_digit) != size:
                raise InvalidTokenError()
            cursor += size

            length, cursor = _read_length(body, cursor)
            encoded_column = body[cursor : cursor + length]
            if len(encoded_column) != length:
                raise InvalidTokenError()
            cursor += length

            length, cursor = _read_length(body, cursor)
            encoded_position = body[cursor : cursor + length]
            if len(encoded_position) != length:
                raise InvalidTokenError()
            cursor += length

            value_column = int(index.reverse(encoded_column, meta_column))
            digit = index.lookup(encoded_digit, value_column)
            position = int(index.reverse(encoded_position, meta_column))
            chunks.append((digit, position))

        recovered: list[str | None] = [None] * len(chunks)
        for digit, position in chunks:
            if position >= len(recovered) or recovered[position] is not None:
                raise InvalidTokenError()
            recovered[position] = digit

        return "".join(recovered)
