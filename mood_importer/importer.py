"""
importer.py: run an import end to end and merge the results into a store

Public API:
    report = import_file("export.csv", config, store)
    report = import_text(csv_text, config, store)
    report = merge(candidates, store)

Merge policy: a segment that already has a rating is never overwritten and
counts as skipped. Segments with no stored rating get the imported rating and
note and count as imported. Whole-file failures come back as
``ImportReport(success=False, error=...)``; row-level problems are listed in
``report.errors`` and never stop the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from mood_importer.contracts import build_run_summary, wrap_payload
from mood_importer.errors import MoodImportError
from mood_importer.extract import CandidateEntry, classify, extract
from mood_importer.loader import RawGrid, load_grid, parse_text
from mood_importer.mapping import MappingConfig
from mood_importer.session import ImportSession, RunState
from mood_importer.store import SEGMENTS, MoodStore

MappingLike = Union[MappingConfig, dict]


@dataclass
class ImportReport:
    success: bool
    imported: int = 0
    skipped: int = 0
    total: int = 0
    errors: list[str] = field(default_factory=list)
    error: Optional[str] = None
    notes_attached: int = 0
    layout: Optional[str] = None
    parser_used: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def has_diagnostics(self) -> bool:
        return bool(self.errors)

    def to_dict(self, *, input_path: Optional[str] = None) -> dict[str, Any]:
        payload = {
            "success": self.success,
            "error": self.error,
            "imported": self.imported,
            "skipped": self.skipped,
            "total": self.total,
            "notes_attached": self.notes_attached,
            "layout": self.layout,
            "parser_used": self.parser_used,
            "cancelled": self.cancelled,
            "errors": list(self.errors),
        }
        if not self.success:
            status = "failed"
        elif self.errors:
            status = "partial"
        else:
            status = "ok"
        summary = build_run_summary(
            command="import",
            input_path=input_path,
            status=status,
            metrics={
                "imported": self.imported,
                "skipped": self.skipped,
                "total": self.total,
                "errors": len(self.errors),
            },
            warnings=self.warnings,
        )
        return wrap_payload("mood_import.report", payload, summary)


def _merge_rating(
    store: MoodStore,
    entry: CandidateEntry,
    segment: int,
    rating: float,
    note: Optional[str],
) -> bool:
    """Write one segment unless it already has a rating. Returns True if written."""
    existing = store.load_mood(entry.date, segment)
    if existing is not None and existing.get("rating") is not None:
        return False
    kept_note = note if note else (existing or {}).get("note", "")
    store.save_mood(entry.date, segment, rating, kept_note or "")
    return True


def _attach_note(store: MoodStore, entry: CandidateEntry, segment: int, note: str) -> bool:
    existing = store.load_mood(entry.date, segment)
    if existing is not None and existing.get("note"):
        return False
    rating = existing.get("rating") if existing is not None else None
    store.save_mood(entry.date, segment, rating, note)
    return True


def merge(
    candidates: list[CandidateEntry],
    store: MoodStore,
    *,
    attach_notes_without_mood: bool = False,
    session: Optional[ImportSession] = None,
) -> ImportReport:
    if session is None:
        session = ImportSession()

    report = ImportReport(success=True, total=len(candidates))
    for entry in candidates:
        if session.cancelled:
            break
        for segment in range(len(SEGMENTS)):
            rating = entry.mood_for(segment)
            note = entry.notes_for(segment)
            try:
                if rating is not None:
                    if _merge_rating(store, entry, segment, rating, note):
                        report.imported += 1
                    else:
                        report.skipped += 1
                elif attach_notes_without_mood and note:
                    if _attach_note(store, entry, segment, note):
                        report.notes_attached += 1
            except Exception as exc:
                session.record(
                    f"Failed to save data for {entry.date.isoformat()} ({SEGMENTS[segment]}): {exc}"
                )

    report.errors = session.errors
    return report


def _coerce_config(config: MappingLike) -> MappingConfig:
    if isinstance(config, MappingConfig):
        return config
    return MappingConfig.from_dict(config)


def _failed(session: ImportSession, exc: Exception) -> ImportReport:
    session.advance(RunState.PARSE_FAILED)
    return ImportReport(success=False, error=f"Import failed: {exc}", errors=list(session.errors))


def _run(grid: RawGrid, store: MoodStore, session: ImportSession) -> ImportReport:
    config = session.config
    session.advance(RunState.PARSED)

    session.advance(RunState.EXTRACTING)
    candidates = extract(grid, config, session)
    session.advance(RunState.EXTRACTED)

    session.advance(RunState.MERGING)
    report = merge(
        candidates,
        store,
        attach_notes_without_mood=config.attach_notes_without_mood,
        session=session,
    )
    if session.cancelled:
        session.record("Import cancelled before completion")
        report.cancelled = True
    session.advance(RunState.COMPLETED)

    report.layout = classify(config.date_cells, config.mood_cells).value
    report.parser_used = grid.parser_used
    report.warnings = list(grid.warnings)
    return report


def import_grid(
    grid: RawGrid,
    config: MappingLike,
    store: MoodStore,
    *,
    session: Optional[ImportSession] = None,
) -> ImportReport:
    """Import from a grid that has already been loaded (e.g. after a preview)."""
    session = session or ImportSession()
    session.advance(RunState.PARSING)
    try:
        session.config = _coerce_config(config)
    except MoodImportError as exc:
        return _failed(session, exc)
    return _run(grid, store, session)


def import_text(
    text: str,
    config: MappingLike,
    store: MoodStore,
    *,
    session: Optional[ImportSession] = None,
) -> ImportReport:
    session = session or ImportSession()
    session.advance(RunState.PARSING)
    try:
        session.config = _coerce_config(config)
        grid = parse_text(text)
    except MoodImportError as exc:
        return _failed(session, exc)
    return _run(grid, store, session)


def import_file(
    path: "str | Path",
    config: MappingLike,
    store: MoodStore,
    *,
    sheet_name: Optional[str] = None,
    session: Optional[ImportSession] = None,
) -> ImportReport:
    session = session or ImportSession()
    session.advance(RunState.PARSING)
    try:
        session.config = _coerce_config(config)
        grid = load_grid(path, sheet_name=sheet_name)
    except (MoodImportError, OSError) as exc:
        return _failed(session, exc)
    return _run(grid, store, session)
