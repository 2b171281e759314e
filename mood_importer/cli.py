from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

from mood_importer import __version__ as TOOL_VERSION
from mood_importer.cells import column_to_letters
from mood_importer.contracts import build_run_summary, wrap_payload
from mood_importer.errors import (
    EmptyFile,
    InvalidMapping,
    InvalidRange,
    InvalidReference,
    UnparsableFile,
    UnsupportedFormat,
)
from mood_importer.importer import ImportReport, import_grid
from mood_importer.loader import RawGrid, load_grid, preview
from mood_importer.mapping import MAPPING_PRESETS, MappingConfig, suggest_mapping
from mood_importer.store import JsonMoodStore, MemoryMoodStore

SUPPORTED_MAPPING_SUFFIXES = {".json", ".yml", ".yaml"}
STORE_ENV = "MOOD_IMPORT_STORE"
DEFAULT_STORE_NAME = "mood-data.json"

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_PARTIAL = 6

MAPPING_TEMPLATE = {
    "date_range": "A2:A31",
    "date_format": "yyyy-MM-dd",
    "morning_range": "B2:B31",
    "midday_range": None,
    "evening_range": "C2:C31",
    "morning_notes_range": None,
    "midday_notes_range": None,
    "evening_notes_range": "D2:D31",
    "attach_notes_without_mood": False,
}


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class MoodImportArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload) + "\n")


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, (InvalidMapping, InvalidRange, InvalidReference, UnsupportedFormat)):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (EmptyFile, UnparsableFile, UnicodeDecodeError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def resolve_store_path(explicit: str | None) -> Path:
    if explicit:
        return Path(explicit)
    override = os.environ.get(STORE_ENV)
    if override:
        return Path(override)
    return Path.cwd() / DEFAULT_STORE_NAME


def load_mapping_file(mapping_path: Path) -> MappingConfig:
    if not mapping_path.exists():
        raise CliError(f"Mapping not found: {mapping_path}", EXIT_COMMAND_ERROR)
    suffix = mapping_path.suffix.lower()
    if suffix not in SUPPORTED_MAPPING_SUFFIXES:
        raise CliError("Mapping must be .json, .yml, or .yaml", EXIT_COMMAND_ERROR)
    if suffix in {".yml", ".yaml"}:
        raise CliError("YAML mappings are not supported yet. Use JSON for now.", EXIT_COMMAND_ERROR)
    try:
        payload = json.loads(mapping_path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise CliError(f"Could not read mapping: {exc}", EXIT_COMMAND_ERROR) from exc
    return MappingConfig.from_dict(payload)


def mapping_from_args(args: argparse.Namespace, grid: RawGrid) -> MappingConfig:
    chosen = [bool(args.mapping), bool(args.preset), bool(args.date_range)]
    if sum(chosen) == 0:
        raise CliError("Provide --mapping, --preset, or --date-range.", EXIT_COMMAND_ERROR)
    if sum(chosen) > 1:
        raise CliError("--mapping, --preset and --date-range are mutually exclusive.", EXIT_COMMAND_ERROR)

    if args.mapping:
        return load_mapping_file(Path(args.mapping))
    if args.preset:
        return MAPPING_PRESETS[args.preset](grid)
    return MappingConfig(
        date_range=args.date_range,
        date_format=args.date_format or "",
        morning_range=args.morning,
        midday_range=args.midday,
        evening_range=args.evening,
        morning_notes_range=args.morning_notes,
        midday_notes_range=args.midday_notes,
        evening_notes_range=args.evening_notes,
        attach_notes_without_mood=args.attach_notes,
    )


def render_preview_text(rows: list[list[str]], total_rows: int, total_cols: int, cell_width: int = 14) -> str:
    def fit(value: str) -> str:
        flat = value.replace("\n", " ")
        if len(flat) > cell_width:
            flat = flat[: cell_width - 1] + "…"
        return flat.ljust(cell_width)

    width = max((len(row) for row in rows), default=0)
    lines = [
        "mood-import preview",
        f"Sheet size: {total_rows} rows x {total_cols} columns",
        "",
        "     " + " ".join(fit(column_to_letters(col)) for col in range(width)),
    ]
    for idx, row in enumerate(rows, start=1):
        lines.append(f"{idx:>4} " + " ".join(fit(cell) for cell in row))
    return "\n".join(lines) + "\n"


def render_import_text(report: ImportReport, *, verbose: bool = False) -> str:
    if not report.success:
        return f"mood-import failed\n{report.error}\n"
    lines = [
        "mood-import",
        f"Layout: {report.layout}-based",
        f"Parser: {report.parser_used}",
        f"Entries found: {report.total}",
        f"Imported: {report.imported}",
        f"Skipped (already logged): {report.skipped}",
    ]
    if report.notes_attached:
        lines.append(f"Notes attached: {report.notes_attached}")
    if report.cancelled:
        lines.append("Cancelled before completion")
    if report.errors:
        lines.append(f"Problems: {len(report.errors)}")
        shown = report.errors if verbose else report.errors[:10]
        lines.extend(f"  - {message}" for message in shown)
        if len(shown) < len(report.errors):
            lines.append(f"  ... {len(report.errors) - len(shown)} more (use -v to list all)")
    return "\n".join(lines) + "\n"


def build_parser() -> argparse.ArgumentParser:
    parser = MoodImportArgumentParser(prog="mood-import", description="Import mood ratings from exported spreadsheets.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    preview_cmd = subparsers.add_parser("preview", help="Show the top-left corner of a file with A1 coordinates.")
    preview_cmd.add_argument("input", help="Input file path")
    preview_cmd.add_argument("--rows", type=int, default=10, help="Rows to show")
    preview_cmd.add_argument("--cols", type=int, default=10, help="Columns to show")
    preview_cmd.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name")
    preview_cmd.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    suggest = subparsers.add_parser("suggest", help="Suggest a mapping from header names.")
    suggest.add_argument("input", help="Input file path")
    suggest.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name")
    suggest.add_argument("--output", help="Write the suggestion as a mapping file")
    suggest.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    run = subparsers.add_parser("import", help="Import mood entries into the store.")
    run.add_argument("input", help="Input file path")
    run.add_argument("--mapping", help="Mapping file (.json)")
    run.add_argument("--preset", choices=sorted(MAPPING_PRESETS), help="Built-in layout")
    run.add_argument("--date-range", help="Range holding dates, e.g. A2:A31")
    run.add_argument("--date-format", help="Date pattern tried first, e.g. dd/MM/yyyy")
    run.add_argument("--morning", help="Morning mood range")
    run.add_argument("--midday", help="Midday mood range")
    run.add_argument("--evening", help="Evening mood range")
    run.add_argument("--morning-notes", help="Morning notes range")
    run.add_argument("--midday-notes", help="Midday notes range")
    run.add_argument("--evening-notes", help="Evening notes range")
    run.add_argument("--attach-notes", action="store_true", help="Store notes for segments that have no mood value")
    run.add_argument("--store", help=f"Mood store path (default: ${STORE_ENV} or ./{DEFAULT_STORE_NAME})")
    run.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name")
    run.add_argument("--dry-run", action="store_true", help="Report what would be imported without writing")
    run.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    run.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    run.add_argument("-v", "--verbose", action="store_true", help="List every problem")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter mapping file.")
    config_init.add_argument("--path", default="mood-mapping.json", help="Mapping output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def require_input(raw: str) -> Path:
    input_path = Path(raw)
    if not input_path.exists():
        raise CliError(f"File not found: {input_path}", EXIT_COMMAND_ERROR)
    return input_path


def run_preview(args: argparse.Namespace) -> int:
    try:
        input_path = require_input(args.input)
        grid = load_grid(input_path, sheet_name=args.sheet_name)
        rows = preview(grid, max_rows=args.rows, max_cols=args.cols)
        if args.json:
            summary = build_run_summary(
                command="preview",
                input_path=str(input_path),
                metrics={"rows": grid.row_count, "columns": grid.column_count},
                warnings=grid.warnings,
            )
            payload = wrap_payload(
                "mood_import.preview",
                {"rows": rows, "parser_used": grid.parser_used, "sheet_name": grid.sheet_name},
                summary,
            )
            maybe_emit_json_stdout(payload, True)
        else:
            print(render_preview_text(rows, grid.row_count, grid.column_count), end="")
            for warning in grid.warnings:
                eprint(f"warning: {warning}")
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_suggest(args: argparse.Namespace) -> int:
    try:
        input_path = require_input(args.input)
        grid = load_grid(input_path, sheet_name=args.sheet_name)
        suggestion = suggest_mapping(grid)
        if args.output:
            output_path = Path(args.output)
            if output_path.exists():
                raise CliError(f"Refusing to overwrite existing mapping: {output_path}", EXIT_COMMAND_ERROR)
            mapping: dict[str, Any] = {key: None for key in MAPPING_TEMPLATE if key.endswith("_range")}
            mapping.update(date_format="", attach_notes_without_mood=False)
            mapping.update(suggestion)
            write_json(output_path, mapping)
            eprint(f"Mapping written: {output_path}")
        if args.json:
            summary = build_run_summary(command="suggest", input_path=str(input_path), metrics={"fields": len(suggestion)})
            maybe_emit_json_stdout(wrap_payload("mood_import.suggest", {"mapping": suggestion}, summary), True)
        elif not suggestion:
            eprint("No recognisable headers found; pass ranges explicitly.")
        else:
            for key in sorted(suggestion):
                print(f"{key}: {suggestion[key]}")
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_import(args: argparse.Namespace) -> int:
    try:
        input_path = require_input(args.input)
        grid = load_grid(input_path, sheet_name=args.sheet_name)
        config = mapping_from_args(args, grid)

        store_path = resolve_store_path(args.store)
        persistent = JsonMoodStore(store_path)
        store = MemoryMoodStore(persistent.records) if args.dry_run else persistent

        report = import_grid(grid, config, store)
        payload = report.to_dict(input_path=str(input_path))
        if args.json:
            maybe_emit_json_stdout(payload, True)
        else:
            emit_human(render_import_text(report, verbose=args.verbose).rstrip(), quiet=args.quiet)
            if args.dry_run:
                emit_human("Dry run: nothing was written.", quiet=args.quiet)
            else:
                emit_human(f"Store: {store_path}", quiet=args.quiet)

        if not report.success:
            return EXIT_PARSE_FAILED
        if report.errors:
            return EXIT_PARTIAL
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_json(config_path, MAPPING_TEMPLATE)
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "preview":
            return run_preview(args)
        if args.command == "suggest":
            return run_suggest(args)
        if args.command == "import":
            return run_import(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
