"""
loader.py: turn an exported mood spreadsheet into a grid of strings

Supports: .csv .tsv .txt .xlsx .xlsm

Public API:
    grid = load_grid("path/to/export.csv")
    grid = parse_text(raw_csv_text)
    grid.cell(row, col)   -> "" outside the sheet, never IndexError

Text files go through three strategies in order, stopping at the first one
that succeeds:
    1. pandas read_csv, C engine, strict about field counts and quoting
    2. csv.reader with strict=False (ragged rows, stray quotes)
    3. a character-scanning tokenizer that only understands commas, quotes
       and newlines
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import chardet
import pandas as pd

from mood_importer.errors import EmptyFile, UnparsableFile, UnsupportedFormat

# ── Format groups ──────────────────────────────────────────────────────────────
TEXT_FORMATS  = {".csv", ".tsv", ".txt"}
EXCEL_FORMATS = {".xlsx", ".xlsm"}
ALL_FORMATS   = TEXT_FORMATS | EXCEL_FORMATS

STRATEGY_STRICT  = "pandas"
STRATEGY_LENIENT = "csv"
STRATEGY_MANUAL  = "manual"
STRATEGY_WORKBOOK = "openpyxl"


@dataclass
class RawGrid:
    """Rectangular, read-only view of the parsed cells."""

    rows: list[list[str]]
    parser_used: str = STRATEGY_STRICT
    warnings: list[str] = field(default_factory=list)
    detected_encoding: Optional[str] = None
    sheet_name: Optional[str] = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return max((len(row) for row in self.rows), default=0)

    def cell(self, row: int, col: int) -> str:
        if row < 0 or col < 0 or row >= len(self.rows):
            return ""
        cells = self.rows[row]
        if col >= len(cells):
            return ""
        return cells[col].strip()


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> str:
    result = chardet.detect(raw)
    detected = result.get("encoding") or "utf-8"
    if detected.lower() == "ascii":
        return "utf-8"
    return detected


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line-by-line.

    Strategy per line:
      1. Try UTF-8
      2. Try preferred_encoding (chardet result)
      3. Try latin-1
      4. CP1252 with replace (never crashes)

    Also strips null bytes and a leading BOM.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc:
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    return "\n".join(decoded_lines).lstrip("\ufeff")


# ══════════════════════════════════════════════════════════════════════════════
# PARSE STRATEGIES
# ══════════════════════════════════════════════════════════════════════════════

def _parse_strict(text: str, delimiter: str) -> list[list[str]]:
    df = pd.read_csv(
        io.StringIO(text),
        sep=delimiter,
        quotechar='"',
        header=None,
        dtype=str,
        keep_default_na=False,
        na_filter=False,
        skip_blank_lines=False,
        engine="c",
    )
    df = df.fillna("")
    return [[str(value) for value in row] for row in df.itertuples(index=False, name=None)]


def _parse_lenient(text: str, delimiter: str) -> list[list[str]]:
    return [
        list(row)
        for row in csv.reader(io.StringIO(text), delimiter=delimiter, quotechar='"', strict=False)
    ]


def tokenize(text: str, delimiter: str = ",") -> list[list[str]]:
    """
    Scan character by character, tracking whether we are inside quotes.

    A newline inside quotes stays in the field; a doubled quote inside quotes
    is a literal quote. Rows whose fields are all blank are dropped.
    """
    rows: list[list[str]] = []
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False

    def end_row() -> None:
        fields.append("".join(current))
        current.clear()
        if any(value.strip() for value in fields):
            rows.append(list(fields))
        fields.clear()

    text = text.replace("\r\n", "\n").replace("\r", "\n")
    i = 0
    while i < len(text):
        char = text[i]
        if char == '"':
            if in_quotes and i + 1 < len(text) and text[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current))
            current.clear()
        elif char == "\n" and not in_quotes:
            end_row()
        else:
            current.append(char)
        i += 1

    if current or fields:
        end_row()
    return rows


_STRATEGIES = (
    (STRATEGY_STRICT, _parse_strict),
    (STRATEGY_LENIENT, _parse_lenient),
    (STRATEGY_MANUAL, tokenize),
)


def _rectangular(rows: list[list[str]]) -> list[list[str]]:
    width = max((len(row) for row in rows), default=0)
    return [[cell.strip() for cell in row] + [""] * (width - len(row)) for row in rows]


def parse_text(text: str, delimiter: str = ",") -> RawGrid:
    """
    Parse CSV text into a RawGrid.

    Raises:
        EmptyFile       if the text is blank.
        UnparsableFile  if all three strategies fail.
    """
    if not (text or "").strip():
        raise EmptyFile()

    failures: list[str] = []
    warnings: list[str] = []
    for name, strategy in _STRATEGIES:
        try:
            rows = strategy(text, delimiter)
        except Exception as exc:
            failures.append(f"{name}: {exc}")
            warnings.append(f"{name} parser failed ({exc}); falling back")
            continue
        return RawGrid(rows=_rectangular(rows), parser_used=name, warnings=warnings)

    raise UnparsableFile(failures)


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT LOADERS
# ══════════════════════════════════════════════════════════════════════════════

def _load_text(path: Path, suffix: str) -> RawGrid:
    raw = path.read_bytes()
    if not raw.strip():
        raise EmptyFile(f"File {path.name}")
    encoding = _detect_encoding(raw)
    text = _read_text_safely(raw, encoding)
    delimiter = "\t" if suffix == ".tsv" else ","
    grid = parse_text(text, delimiter=delimiter)
    grid.detected_encoding = encoding
    return grid


def _render_workbook_value(value: object) -> str:
    if value is None:
        return ""
    # time of day is dropped; a mood entry is keyed by calendar day
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _load_workbook(path: Path, sheet_name: Optional[str] = None) -> RawGrid:
    """Read one sheet of an .xlsx/.xlsm workbook with cached (data-only) values."""
    import openpyxl

    try:
        workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:
        raise UnparsableFile([f"{STRATEGY_WORKBOOK}: Could not read workbook: {exc}"]) from exc

    try:
        all_sheets = list(workbook.sheetnames)
        if sheet_name is None:
            chosen = all_sheets[0]
        elif sheet_name in all_sheets:
            chosen = sheet_name
        else:
            raise UnsupportedFormat(
                f"Sheet '{sheet_name}' not found. Available: {all_sheets}"
            )

        rows = [
            [_render_workbook_value(value) for value in values]
            for values in workbook[chosen].iter_rows(values_only=True)
        ]
    finally:
        workbook.close()

    if not any(cell.strip() for row in rows for cell in row):
        raise EmptyFile(f"Sheet '{chosen}'")

    warnings: list[str] = []
    if len(all_sheets) > 1:
        others = [s for s in all_sheets if s != chosen]
        warnings.append(
            f"Multiple sheets found ({len(all_sheets)} total); "
            f"used '{chosen}'. Ignored: {others}"
        )
    return RawGrid(
        rows=_rectangular(rows),
        parser_used=STRATEGY_WORKBOOK,
        warnings=warnings,
        sheet_name=chosen,
    )


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def load_grid(path: "str | Path", sheet_name: Optional[str] = None) -> RawGrid:
    """
    Load a supported file into a RawGrid.

    Raises:
        FileNotFoundError  if the file does not exist.
        UnsupportedFormat  if the suffix is not one we read.
        EmptyFile          if there is nothing in it.
        UnparsableFile     if every parse strategy failed.
    """
    path   = Path(path)
    suffix = path.suffix.lower()

    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if suffix not in ALL_FORMATS:
        supported = ", ".join(sorted(ALL_FORMATS))
        raise UnsupportedFormat(
            f"Unsupported format '{suffix or '[missing extension]'}'. Supported: {supported}"
        )

    if suffix in EXCEL_FORMATS:
        return _load_workbook(path, sheet_name)
    return _load_text(path, suffix)


def preview(grid: RawGrid, max_rows: int = 10, max_cols: int = 10) -> list[list[str]]:
    """Top-left block of the grid, for picking ranges by eye."""
    return [row[:max_cols] for row in grid.rows[:max_rows]]
