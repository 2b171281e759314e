"""Per-run state for one import.

A session is created for every run and handed to each stage, so nothing
about a run lives at module level. It owns the diagnostics list, the
cancellation flag, and the run's position in the pipeline:

    idle -> parsing -> parse_failed
                    -> parsed -> extracting -> extracted -> merging -> completed

States only move forward; no state is re-entered.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from mood_importer.mapping import MappingConfig


class RunState(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    PARSE_FAILED = "parse_failed"
    PARSED = "parsed"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    MERGING = "merging"
    COMPLETED = "completed"


_NEXT_STATES = {
    RunState.IDLE: {RunState.PARSING},
    RunState.PARSING: {RunState.PARSE_FAILED, RunState.PARSED},
    RunState.PARSED: {RunState.EXTRACTING},
    RunState.EXTRACTING: {RunState.EXTRACTED},
    RunState.EXTRACTED: {RunState.MERGING},
    RunState.MERGING: {RunState.COMPLETED},
    RunState.PARSE_FAILED: set(),
    RunState.COMPLETED: set(),
}


class ImportSession:
    def __init__(self, config: Optional["MappingConfig"] = None) -> None:
        self.config = config
        self.state = RunState.IDLE
        self.errors: list[str] = []
        self._cancel = threading.Event()

    def advance(self, state: RunState) -> None:
        if state not in _NEXT_STATES[self.state]:
            raise RuntimeError(f"Illegal import state change: {self.state.value} -> {state.value}")
        self.state = state

    def record(self, message: str) -> None:
        self.errors.append(message)

    def cancel(self) -> None:
        """Ask the run to stop before its next row, column or candidate. Safe from another thread."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def finished(self) -> bool:
        return self.state in (RunState.PARSE_FAILED, RunState.COMPLETED)
