"""Mood storage: one record per (calendar day, segment).

The importer only ever talks to a store through ``load_mood`` and
``save_mood``. Two implementations ship here: an in-memory dict for tests and
embedding, and a single JSON document on disk for the command line.
"""

from __future__ import annotations

import json
import os
import time
from datetime import date
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from mood_importer.contracts import utc_now_iso

SEGMENTS = ("morning", "midday", "evening")


@runtime_checkable
class MoodStore(Protocol):
    def load_mood(self, day: date, segment: int) -> Optional[dict[str, Any]]:
        """Return ``{"rating": float | None, "note": str, ...}`` or None if nothing is stored."""
        ...

    def save_mood(self, day: date, segment: int, rating: Optional[float], note: str) -> None:
        ...


def key_for(day: date, segment: int) -> str:
    if segment not in range(len(SEGMENTS)):
        raise ValueError(f"Segment must be 0, 1 or 2, got {segment!r}")
    return f"mood_{day.isoformat()}_{segment}"


def build_record(
    existing: Optional[dict[str, Any]],
    day: date,
    rating: Optional[float],
    note: str,
) -> dict[str, Any]:
    now = utc_now_iso()
    return {
        "rating": rating,
        "note": note,
        # first time the segment was logged survives later edits
        "timestamp": (existing or {}).get("timestamp") or now,
        "mood_date": day.isoformat(),
        "last_modified": now,
    }


class MemoryMoodStore:
    def __init__(self, records: Optional[dict[str, dict[str, Any]]] = None) -> None:
        self.records: dict[str, dict[str, Any]] = dict(records or {})

    def load_mood(self, day: date, segment: int) -> Optional[dict[str, Any]]:
        record = self.records.get(key_for(day, segment))
        return dict(record) if record is not None else None

    def save_mood(self, day: date, segment: int, rating: Optional[float], note: str) -> None:
        key = key_for(day, segment)
        self.records[key] = build_record(self.records.get(key), day, rating, note)


class JsonMoodStore:
    """
    All records in one JSON object keyed by ``mood_<yyyy-mm-dd>_<segment>``.

    Load:
    - missing/empty file -> empty store
    - corrupt file -> raw text backed up next to it, store starts empty
    Save:
    - write to temp file in same directory, fsync, os.replace to target
    """

    def __init__(self, path: "str | Path") -> None:
        self.path = Path(path)
        self._records: Optional[dict[str, dict[str, Any]]] = None

    @property
    def records(self) -> dict[str, dict[str, Any]]:
        if self._records is None:
            self._records = self._read()
        return self._records

    def _read(self) -> dict[str, dict[str, Any]]:
        if not self.path.exists():
            return {}
        txt = self.path.read_text(encoding="utf-8").strip()
        if not txt:
            return {}
        try:
            data = json.loads(txt)
        except json.JSONDecodeError:
            backup = self.path.with_name(f"{self.path.stem}.corrupt-{int(time.time())}.json")
            backup.write_text(txt, encoding="utf-8")
            return {}
        if not isinstance(data, dict):
            return {}
        return {key: value for key, value in data.items() if isinstance(value, dict)}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        payload = json.dumps(self.records, indent=2, sort_keys=True, ensure_ascii=False) + "\n"
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self.path)

    def load_mood(self, day: date, segment: int) -> Optional[dict[str, Any]]:
        record = self.records.get(key_for(day, segment))
        return dict(record) if record is not None else None

    def save_mood(self, day: date, segment: int, rating: Optional[float], note: str) -> None:
        key = key_for(day, segment)
        self.records[key] = build_record(self.records.get(key), day, rating, note)
        self._write()
