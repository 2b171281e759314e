"""Shared versioned contracts for mood-importer JSON outputs."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any

from mood_importer import __version__ as TOOL_VERSION

CONTRACT_VERSIONS = {
    "mood_import.report": "1.0.0",
    "mood_import.preview": "1.0.0",
    "mood_import.suggest": "1.0.0",
}

STAMP_ENV = "MOOD_IMPORT_OUTPUT_STAMP"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def generated_at() -> str:
    return os.environ.get(STAMP_ENV) or utc_now_iso()


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    command: str,
    input_path: str | None,
    status: str = "ok",
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": "mood-import",
        "command": command,
        "status": status,
        "generated_at": generated_at(),
        "input_file": input_path,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }


def wrap_payload(name: str, payload: dict[str, Any], run_summary: dict[str, Any]) -> dict[str, Any]:
    contract = build_contract(name)
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        **payload,
        "run_summary": run_summary,
    }
