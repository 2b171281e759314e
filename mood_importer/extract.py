"""Walk the mapped ranges of a grid and turn each day into a CandidateEntry."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from mood_importer.cells import CellRange, column_to_letters
from mood_importer.loader import RawGrid
from mood_importer.mapping import MappingConfig
from mood_importer.session import ImportSession
from mood_importer.values import parse_date, parse_mood


class Layout(str, Enum):
    ROW_BASED = "row"
    COLUMN_BASED = "column"


@dataclass
class CandidateEntry:
    date: date
    morning_mood: Optional[float] = None
    midday_mood: Optional[float] = None
    evening_mood: Optional[float] = None
    morning_notes: Optional[str] = None
    midday_notes: Optional[str] = None
    evening_notes: Optional[str] = None

    def mood_for(self, segment: int) -> Optional[float]:
        return (self.morning_mood, self.midday_mood, self.evening_mood)[segment]

    def notes_for(self, segment: int) -> Optional[str]:
        return (self.morning_notes, self.midday_notes, self.evening_notes)[segment]

    @property
    def has_mood(self) -> bool:
        return any(self.mood_for(segment) is not None for segment in range(3))


def classify(date_range: CellRange, mood_ranges: Iterable[Optional[CellRange]]) -> Layout:
    """Row-based when the date range or any mood range covers more than one row."""
    if date_range.spans_rows:
        return Layout.ROW_BASED
    if any(r is not None and r.spans_rows for r in mood_ranges):
        return Layout.ROW_BASED
    return Layout.COLUMN_BASED


def _build_entry(
    day: date,
    moods: list[Optional[float]],
    notes: list[str],
) -> Optional[CandidateEntry]:
    entry = CandidateEntry(
        date=day,
        morning_mood=moods[0],
        midday_mood=moods[1],
        evening_mood=moods[2],
        morning_notes=notes[0] or None,
        midday_notes=notes[1] or None,
        evening_notes=notes[2] or None,
    )
    return entry if entry.has_mood else None


def _span_label(kind: str, first: str, last: str) -> str:
    if first == last:
        return f"{kind} {first}"
    return f"{kind}s {first}-{last}"


def _extract_row_based(grid: RawGrid, config: MappingConfig, session: ImportSession) -> list[CandidateEntry]:
    dates = config.date_cells
    candidates: list[CandidateEntry] = []
    last_row = min(dates.end_row, grid.row_count - 1)

    for row in range(dates.start_row, last_row + 1):
        if session.cancelled:
            return candidates
        raw_date = grid.cell(row, dates.start_col)
        if not raw_date:
            continue
        day = parse_date(raw_date, config.date_format)
        if day is None:
            session.record(f'Row {row + 1}: Could not parse date "{raw_date}"')
            continue
        moods = [
            parse_mood(grid.cell(row, r.start_col)) if r is not None else None
            for r in config.mood_cells
        ]
        notes = [
            grid.cell(row, r.start_col) if r is not None else ""
            for r in config.notes_cells
        ]
        entry = _build_entry(day, moods, notes)
        if entry is not None:
            candidates.append(entry)

    if dates.end_row >= grid.row_count:
        first_missing = max(dates.start_row, grid.row_count)
        label = _span_label("Row", str(first_missing + 1), str(dates.end_row + 1))
        session.record(f"{label}: beyond the end of the sheet ({grid.row_count} rows)")
    return candidates


def _extract_column_based(grid: RawGrid, config: MappingConfig, session: ImportSession) -> list[CandidateEntry]:
    dates = config.date_cells
    candidates: list[CandidateEntry] = []

    if dates.start_row >= grid.row_count:
        session.record(
            f"Row {dates.start_row + 1}: date row is beyond the end of the sheet ({grid.row_count} rows)"
        )
        return candidates

    width = grid.column_count
    last_col = min(dates.end_col, width - 1)

    for col in range(dates.start_col, last_col + 1):
        if session.cancelled:
            return candidates
        raw_date = grid.cell(dates.start_row, col)
        if not raw_date:
            continue
        day = parse_date(raw_date, config.date_format)
        if day is None:
            session.record(f'Column {column_to_letters(col)}: Could not parse date "{raw_date}"')
            continue
        # k-th column of every range belongs to the k-th date
        offset = col - dates.start_col
        moods = [
            parse_mood(grid.cell(r.start_row, r.start_col + offset)) if r is not None else None
            for r in config.mood_cells
        ]
        notes = [
            grid.cell(r.start_row, r.start_col + offset) if r is not None else ""
            for r in config.notes_cells
        ]
        entry = _build_entry(day, moods, notes)
        if entry is not None:
            candidates.append(entry)

    if dates.end_col >= width:
        first_missing = max(dates.start_col, width)
        label = _span_label("Column", column_to_letters(first_missing), column_to_letters(dates.end_col))
        session.record(f"{label}: beyond the last column of the sheet ({width} columns)")
    return candidates


def extract(
    grid: RawGrid,
    config: MappingConfig,
    session: Optional[ImportSession] = None,
) -> list[CandidateEntry]:
    """
    Produce one CandidateEntry per day that has at least one mood rating.

    Problems with individual rows or columns are recorded on ``session`` and
    never raised.
    """
    if session is None:
        session = ImportSession(config)
    layout = classify(config.date_cells, config.mood_cells)
    if layout is Layout.ROW_BASED:
        return _extract_row_based(grid, config, session)
    return _extract_column_based(grid, config, session)
