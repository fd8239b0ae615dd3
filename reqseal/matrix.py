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

"""Lookup table (substitution matrix) and its precomputed decode index.

A table maps every decimal digit to N symbols ("columns"). Every symbol has the
same length and no symbol may appear twice anywhere in the table::

    "1": ["A", "a", "B", "b", "C", "c"]
    "2": ["D", "d", "E", "e", "F", "f"]
    ...

The table is shared by the issuing and verifying sides and is never mutated
after construction.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

import yaml

from .exceptions import ConfigurationError, InvalidTokenError, MalformedTableError

logger = logging.getLogger(__name__)

DIGITS = tuple("0123456789")
_ASCII_DIGITS = frozenset(DIGITS)


@dataclass(frozen=True)
class LookupTable:
    """Validated, immutable digit substitution table."""

    rows: Mapping[str, tuple[str, ...]]
    columns: int
    base_size: int

    @classmethod
    def from_mapping(cls, mapping: Mapping[object, Sequence[str]]) -> LookupTable:
        """Validate ``mapping`` and freeze it.

        Raises:
            MalformedTableError: on any structural violation.
        """
        if not isinstance(mapping, Mapping):
            raise MalformedTableError("Lookup table must be a mapping of digit -> symbols")

        rows: dict[str, tuple[str, ...]] = {}
        for key, symbols in mapping.items():
            digit = str(key)
            if digit not in _ASCII_DIGITS:
                raise MalformedTableError(f"Unexpected table key {key!r}", {"key": key})
            if digit in rows:
                raise MalformedTableError(f"Digit {digit} appears more than once", {"digit": digit})
            if isinstance(symbols, (str, bytes)) or not isinstance(symbols, Sequence):
                raise MalformedTableError(f"Symbols for digit {digit} must be a list", {"digit": digit})
            rows[digit] = tuple(symbols)

        missing = [d for d in DIGITS if d not in rows]
        if missing:
            raise MalformedTableError("Lookup table is missing digits", {"missing": missing})

        columns = len(rows["0"])
        if columns < 1:
            raise MalformedTableError("Lookup table needs at least one column")

        base_size = None
        for digit in DIGITS:
            symbols = rows[digit]
            if len(symbols) != columns:
                raise MalformedTableError(
                    f"Digit {digit} has {len(symbols)} symbols, expected {columns}",
                    {"digit": digit},
                )
            for symbol in symbols:
                if not isinstance(symbol, str) or not symbol:
                    raise MalformedTableError(f"Empty or non-string symbol for digit {digit}", {"digit": digit})
                if base_size is None:
                    base_size = len(symbol)
                elif len(symbol) != base_size:
                    raise MalformedTableError(
                        f"Symbol {symbol!r} has length {len(symbol)}, expected {base_size}",
                        {"digit": digit},
                    )
                # length prefixes on the wire are ASCII digit runs
                if any(ch in _ASCII_DIGITS for ch in symbol):
                    raise MalformedTableError(f"Symbol {symbol!r} contains an ASCII digit", {"digit": digit})

        ordered = {digit: rows[digit] for digit in DIGITS}
        return cls(rows=MappingProxyType(ordered), columns=columns, base_size=base_size)

    def __hash__(self) -> int:
        return hash((tuple(self.rows.items()), self.columns, self.base_size))

    def symbol(self, digit: str, column: int) -> str:
        return self.rows[digit][column]

    def substitute(self, number: int | str, column: int) -> str:
        """Replace every decimal digit of ``number`` with its symbol in ``column``."""
        return "".join(self.rows[digit][column] for digit in str(number))

    def duplicates(self) -> list[str]:
        """Symbols that occur more than once across the whole table."""
        counts = Counter(symbol for symbols in self.rows.values() for symbol in symbols)
        return sorted(symbol for symbol, count in counts.items() if count > 1)

    def symbols(self) -> frozenset[str]:
        return frozenset(symbol for symbols in self.rows.values() for symbol in symbols)


@dataclass(frozen=True, eq=False)
class DecodeIndex:
    """Reverse lookup maps derived from a :class:`LookupTable`.

    ``by_column[c]`` maps a symbol of column ``c`` back to its digit.
    ``any_column`` maps a symbol from any column back to its digit and is only
    used for the sauce, whose column is not known yet.
    """

    table: LookupTable
    by_column: tuple[Mapping[str, str], ...]
    any_column: Mapping[str, str]

    def lookup(self, symbol: str, column: int) -> str:
        if not 0 <= column < len(self.by_column):
            raise InvalidTokenError()
        try:
            return self.by_column[column][symbol]
        except KeyError:
            raise InvalidTokenError() from None

    def lookup_any(self, symbol: str) -> str:
        try:
            return self.any_column[symbol]
        except KeyError:
            raise InvalidTokenError() from None

    def reverse(self, encoded: str, column: int | None = None) -> str:
        """Reverse a run of fixed-width symbols into its decimal digit string."""
        size = self.table.base_size
        if not encoded or len(encoded) % size:
            raise InvalidTokenError()
        parts = (encoded[i : i + size] for i in range(0, len(encoded), size))
        if column is None:
            return "".join(self.lookup_any(part) for part in parts)
        return "".join(self.lookup(part, column) for part in parts)


def build_index(table: LookupTable) -> DecodeIndex:
    """Precompute the reverse maps for ``table``.

    Collisions keep the first digit written; a table that repeats a symbol
    therefore decodes ambiguously instead of failing here.
    """
    by_column: list[dict[str, str]] = [{} for _ in range(table.columns)]
    any_column: dict[str, str] = {}

    for digit, symbols in table.rows.items():
        for column, symbol in enumerate(symbols):
            by_column[column].setdefault(symbol, digit)
            any_column.setdefault(symbol, digit)

    return DecodeIndex(
        table=table,
        by_column=tuple(MappingProxyType(m) for m in by_column),
        any_column=MappingProxyType(any_column),
    )


def build(mapping: Mapping[object, Sequence[str]]) -> DecodeIndex:
    """Validate a raw mapping and return its decode index."""
    return build_index(LookupTable.from_mapping(mapping))


def load_table(path: str | Path) -> LookupTable:
    """Load a lookup table from a YAML or JSON file."""
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            if path.suffix == ".json":
                data = json.load(f)
            elif path.suffix in (".yml", ".yaml"):
                data = yaml.safe_load(f)
            else:
                raise ConfigurationError(f"Unsupported table file format: {path}")
    except FileNotFoundError:
        raise ConfigurationError(f"Table file not found: {path}")
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid table file format: {e}")

    # allow either a bare table or a config document with a "matrix" key
    if isinstance(data, Mapping) and "matrix" in data:
        data = data["matrix"]

    table = LookupTable.from_mapping(data)
    logger.debug("Loaded lookup table from %s (%d columns)", path, table.columns)
    return table
