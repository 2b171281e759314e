"""Structural failures raised by mood-importer.

Per-cell interpretation problems (a date that will not parse, a mood value
outside 1-10) are not errors: they come back as ``None`` or as diagnostic
strings on the import report. Everything here stops a run before extraction.
"""

from __future__ import annotations


class MoodImportError(ValueError):
    """Base class for whole-run failures."""


class InvalidReference(MoodImportError):
    def __init__(self, text: str) -> None:
        super().__init__(f"Invalid cell reference: {text!r}")
        self.text = text


class InvalidRange(MoodImportError):
    def __init__(self, text: str, reason: str = "") -> None:
        message = f"Invalid range format: {text!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.text = text


class InvalidMapping(MoodImportError):
    pass


class EmptyFile(MoodImportError):
    def __init__(self, source: str = "CSV file") -> None:
        super().__init__(f"{source} is empty")


class UnparsableFile(MoodImportError):
    def __init__(self, failures: list[str]) -> None:
        detail = "; ".join(failures)
        super().__init__(f"Could not parse file with any strategy: {detail}")
        self.failures = list(failures)


class UnsupportedFormat(MoodImportError):
    pass
