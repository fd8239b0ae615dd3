"""Pytest configuration and shared lookup tables."""

# Ensure project root on sys.path for imports
import os
import random
import string
import sys

import pytest

root = os.path.dirname(os.path.abspath(__file__))
proj = os.path.abspath(os.path.join(root, ".."))
if proj not in sys.path:
    sys.path.insert(0, proj)

from reqseal import LookupTable, TokenCodec  # noqa: E402

ASCII_MATRIX = {
    "1": ["A", "a", "B", "b", "C", "c"],
    "2": ["D", "d", "E", "e", "F", "f"],
    "3": ["G", "g", "H", "h", "I", "i"],
    "4": ["J", "j", "K", "k", "L", "l"],
    "5": ["M", "m", "N", "n", "O", "o"],
    "6": ["P", "p", "Q", "q", "R", "r"],
    "7": ["S", "s", "T", "t", "U", "u"],
    "8": ["V", "v", "W", "w", "X", "x"],
    "9": ["Y", "y", "Z", "z", "+", "-"],
    "0": ["/", "*", "=", "?", "!", "@"],
}

KANJI_MATRIX = {
    "1": ["一", "二", "三", "四", "五", "六"],
    "2": ["七", "八", "九", "十", "月", "火"],
    "3": ["水", "木", "金", "土", "日", "天"],
    "4": ["地", "人", "山", "川", "花", "鳥"],
    "5": ["風", "髪", "雪", "星", "空", "海"],
    "6": ["大", "小", "中", "上", "下", "左"],
    "7": ["右", "前", "後", "東", "西", "南"],
    "8": ["北", "国", "家", "町", "村", "道"],
    "9": ["力", "男", "女", "子", "学", "生"],
    "0": ["見", "聞", "言", "話", "読", "書"],
}


def wide_matrix(columns: int = 12) -> dict[str, list[str]]:
    """Two-character symbols: upper letter per digit, lower letter per column."""
    return {
        str(d): [string.ascii_uppercase[d] + string.ascii_lowercase[c] for c in range(columns)] for d in range(10)
    }


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def ascii_table() -> LookupTable:
    return LookupTable.from_mapping(ASCII_MATRIX)


@pytest.fixture
def kanji_table() -> LookupTable:
    return LookupTable.from_mapping(KANJI_MATRIX)


@pytest.fixture
def codec(ascii_table) -> TokenCodec:
    return TokenCodec(ascii_table, rng=random.Random(1234))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
