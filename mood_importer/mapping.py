"""Which ranges of the sheet hold dates, moods and notes."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Optional

from mood_importer.cells import CellRange, column_to_letters, parse_range
from mood_importer.errors import InvalidMapping
from mood_importer.loader import RawGrid
from mood_importer.store import SEGMENTS

MOOD_FIELDS = ("morning_range", "midday_range", "evening_range")
NOTES_FIELDS = ("morning_notes_range", "midday_notes_range", "evening_notes_range")

HEADER_SCAN_ROWS = 3

DATE_HEADER_HINTS = ("date", "day")
SEGMENT_HEADER_HINTS = {
    "morning": ("morning", "am mood", "day mood", "am"),
    "midday": ("midday", "mid-day", "afternoon", "noon", "lunch"),
    "evening": ("evening", "night", "pm mood", "bedtime"),
}
NOTES_HEADER_HINTS = ("note", "notes", "comment", "journal", "memo")


@dataclass(frozen=True)
class MappingConfig:
    date_range: str
    date_format: str = ""
    morning_range: Optional[str] = None
    midday_range: Optional[str] = None
    evening_range: Optional[str] = None
    morning_notes_range: Optional[str] = None
    midday_notes_range: Optional[str] = None
    evening_notes_range: Optional[str] = None
    attach_notes_without_mood: bool = False

    def __post_init__(self) -> None:
        for name in MOOD_FIELDS + NOTES_FIELDS:
            value = getattr(self, name)
            if value is not None and not str(value).strip():
                object.__setattr__(self, name, None)
        object.__setattr__(self, "date_format", (self.date_format or "").strip())

        if not (self.date_range or "").strip():
            raise InvalidMapping("Date range is required")
        if all(getattr(self, name) is None for name in MOOD_FIELDS):
            raise InvalidMapping(
                "At least one mood range (morning, midday, or evening) must be specified"
            )

        # Parsed once here so a bad range fails before any file is read.
        object.__setattr__(self, "_date_cells", parse_range(self.date_range))
        object.__setattr__(
            self,
            "_mood_cells",
            tuple(_optional_range(getattr(self, name)) for name in MOOD_FIELDS),
        )
        object.__setattr__(
            self,
            "_notes_cells",
            tuple(_optional_range(getattr(self, name)) for name in NOTES_FIELDS),
        )

    @property
    def date_cells(self) -> CellRange:
        return self._date_cells

    @property
    def mood_cells(self) -> tuple[Optional[CellRange], ...]:
        """Parsed mood ranges indexed by segment (0 morning, 1 midday, 2 evening)."""
        return self._mood_cells

    @property
    def notes_cells(self) -> tuple[Optional[CellRange], ...]:
        return self._notes_cells

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "MappingConfig":
        if not isinstance(payload, dict):
            raise InvalidMapping("Mapping root must be a JSON object.")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise InvalidMapping(f"Unknown mapping keys: {unknown}")
        if "date_range" not in payload:
            raise InvalidMapping("Date range is required")
        for key, value in payload.items():
            if key == "attach_notes_without_mood":
                if not isinstance(value, bool):
                    raise InvalidMapping(f"{key} must be true or false")
            elif value is not None and not isinstance(value, str):
                raise InvalidMapping(f"{key} must be a string like \"A2:A31\"")
        return cls(**payload)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _optional_range(text: Optional[str]) -> Optional[CellRange]:
    if text is None:
        return None
    return parse_range(text)


def _column_range(col: int, first_row: int, last_row: int) -> str:
    letters = column_to_letters(col)
    return f"{letters}{first_row}:{letters}{last_row}"


def _segment_for_header(header: str) -> Optional[str]:
    words = header.replace("_", " ").replace("-", " ").split()
    for segment in SEGMENTS:
        for hint in SEGMENT_HEADER_HINTS[segment]:
            if " " in hint or "-" in hint:
                if hint in header:
                    return segment
            elif hint in words:
                return segment
    return None


def suggest_mapping(grid: RawGrid) -> dict[str, str]:
    """
    Guess ranges from header words in the first few rows.

    The header is the first of those rows with any recognised word; rows
    below it are data and are never matched. Each suggestion is a single
    column running from the row under the header to the last row of the
    sheet. Nothing is suggested for a field whose header is not recognised.
    """
    last_row = grid.row_count

    for row_idx in range(min(HEADER_SCAN_ROWS, grid.row_count)):
        first_data_row = row_idx + 2
        if first_data_row > last_row:
            break
        suggestions: dict[str, str] = {}
        for col_idx in range(grid.column_count):
            header = grid.cell(row_idx, col_idx).lower()
            if not header:
                continue
            column = _column_range(col_idx, first_data_row, last_row)
            is_notes = any(hint in header for hint in NOTES_HEADER_HINTS)
            segment = _segment_for_header(header)

            if is_notes:
                if segment is not None:
                    suggestions.setdefault(f"{segment}_notes_range", column)
                continue
            if segment is None and any(hint == header or hint in header.split() for hint in DATE_HEADER_HINTS):
                suggestions.setdefault("date_range", column)
                continue
            if segment is not None:
                suggestions.setdefault(f"{segment}_range", column)
        if suggestions:
            return suggestions

    return {}


def journal_preset(grid: RawGrid) -> MappingConfig:
    """
    Fixed layout of the journal-style export: a header row, then one day per row.

        A date (M/d/yyyy)   B morning notes   C day mood
        D midday notes      E night mood      F night notes

    The sheet has no midday rating, so midday notes are attached on their own.
    """
    if grid.row_count < 2:
        raise InvalidMapping("CSV file must have at least a header row and one data row")
    last = grid.row_count
    return MappingConfig(
        date_range=f"A2:A{last}",
        date_format="M/d/yyyy",
        morning_range=f"C2:C{last}",
        evening_range=f"E2:E{last}",
        morning_notes_range=f"B2:B{last}",
        midday_notes_range=f"D2:D{last}",
        evening_notes_range=f"F2:F{last}",
        attach_notes_without_mood=True,
    )


MAPPING_PRESETS = {
    "journal": journal_preset,
}
