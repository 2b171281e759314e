"""A1-style cell references and ranges.

    parse_reference("C5")     -> (4, 2)
    parse_range("B5:D5")      -> CellRange(start_row=4, start_col=1, end_row=4, end_col=3)
    column_to_letters(27)     -> "AB"

All coordinates are zero-based; row numbers and column letters in the text
form are the 1-based ones a spreadsheet shows.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from mood_importer.errors import InvalidRange, InvalidReference

REFERENCE_RE = re.compile(r"^([A-Z]+)(\d+)$")


@dataclass(frozen=True)
class CellRange:
    start_row: int
    start_col: int
    end_row: int
    end_col: int

    def __post_init__(self) -> None:
        if min(self.start_row, self.start_col, self.end_row, self.end_col) < 0:
            raise ValueError("CellRange coordinates must be non-negative")
        # "A5:A1" reads the same block as "A1:A5"
        if self.start_row > self.end_row:
            start, end = self.end_row, self.start_row
            object.__setattr__(self, "start_row", start)
            object.__setattr__(self, "end_row", end)
        if self.start_col > self.end_col:
            start, end = self.end_col, self.start_col
            object.__setattr__(self, "start_col", start)
            object.__setattr__(self, "end_col", end)

    @property
    def spans_rows(self) -> bool:
        return self.end_row != self.start_row

    @property
    def spans_columns(self) -> bool:
        return self.end_col != self.start_col

    @property
    def is_single_cell(self) -> bool:
        return not self.spans_rows and not self.spans_columns

    def to_a1(self) -> str:
        start = format_reference(self.start_row, self.start_col)
        if self.is_single_cell:
            return start
        return f"{start}:{format_reference(self.end_row, self.end_col)}"


def letters_to_column(letters: str) -> int:
    """Bijective base-26 column letters to a zero-based index (A -> 0, AA -> 26)."""
    if not letters or not letters.isascii() or not letters.isalpha():
        raise InvalidReference(letters)
    result = 0
    for char in letters.upper():
        result = result * 26 + (ord(char) - ord("A") + 1)
    return result - 1


def column_to_letters(index: int) -> str:
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    letters = ""
    n = index + 1
    while n > 0:
        n, remainder = divmod(n - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def format_reference(row: int, col: int) -> str:
    return f"{column_to_letters(col)}{row + 1}"


def parse_reference(text: str) -> tuple[int, int]:
    """Return ``(row, col)`` for a reference like ``"BC42"``."""
    cleaned = (text or "").strip().upper()
    match = REFERENCE_RE.match(cleaned)
    if match is None:
        raise InvalidReference(text)
    row_number = int(match.group(2))
    if row_number < 1:
        raise InvalidReference(text)
    return row_number - 1, letters_to_column(match.group(1))


def parse_range(text: str) -> CellRange:
    cleaned = (text or "").strip().upper()
    if not cleaned:
        raise InvalidRange(text, "empty range")

    parts = cleaned.split(":")
    if len(parts) == 1:
        refs = [parts[0], parts[0]]
    elif len(parts) == 2:
        refs = parts
    else:
        raise InvalidRange(text, "expected REF or REF:REF")

    try:
        start_row, start_col = parse_reference(refs[0])
        end_row, end_col = parse_reference(refs[1])
    except InvalidReference as exc:
        raise InvalidRange(text, str(exc)) from exc

    return CellRange(start_row, start_col, end_row, end_col)
