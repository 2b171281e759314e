from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
CLI = [sys.executable, "-m", "mood_importer.cli"]
FIXED_STAMP = "20260301T010203Z"
JOURNAL = "sample-data/journal_export.csv"
DAILY = "sample-data/daily_moods.csv"


def run_cli(*args: str, env: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    merged_env = dict(os.environ)
    merged_env["MOOD_IMPORT_OUTPUT_STAMP"] = FIXED_STAMP
    merged_env.pop("MOOD_IMPORT_STORE", None)
    if env:
        merged_env.update(env)
    return subprocess.run(
        [*CLI, *args],
        cwd=ROOT,
        capture_output=True,
        text=True,
        env=merged_env,
    )


class MoodImportCliTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.store = self.tmp / "moods.json"

    def tearDown(self):
        self._tmp.cleanup()

    def test_version(self):
        proc = run_cli("version")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertEqual(proc.stdout.strip(), "0.1.0")

    def test_import_with_ranges_then_rerun_skips(self):
        args = (
            "import", DAILY,
            "--date-range", "A2:A4",
            "--morning", "B2:B4",
            "--midday", "C2:C4",
            "--evening", "D2:D4",
            "--store", str(self.store),
        )
        first = run_cli(*args, "--json")
        self.assertEqual(first.returncode, 0, first.stderr)
        report = json.loads(first.stdout)
        self.assertEqual(report["contract"]["name"], "mood_import.report")
        self.assertEqual(report["imported"], 8)
        self.assertEqual(report["run_summary"]["generated_at"], FIXED_STAMP)
        stored = json.loads(self.store.read_text(encoding="utf-8"))
        self.assertEqual(stored["mood_2025-03-03_0"]["rating"], 7.5)

        second = run_cli(*args)
        self.assertEqual(second.returncode, 0, second.stderr)
        self.assertIn("Imported: 0", second.stderr)
        self.assertIn("Skipped (already logged): 8", second.stderr)

    def test_store_from_environment(self):
        proc = run_cli(
            "import", DAILY, "--date-range", "A2:A4", "--morning", "B2:B4", "-q",
            env={"MOOD_IMPORT_STORE": str(self.store)},
        )
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertEqual(proc.stderr.strip(), "")
        self.assertTrue(self.store.exists())

    def test_dry_run_writes_nothing(self):
        proc = run_cli(
            "import", DAILY, "--date-range", "A2:A4", "--morning", "B2:B4",
            "--store", str(self.store), "--dry-run",
        )
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("Imported: 3", proc.stderr)
        self.assertIn("Dry run", proc.stderr)
        self.assertFalse(self.store.exists())

    def test_journal_preset_is_partial(self):
        proc = run_cli("import", JOURNAL, "--preset", "journal", "--store", str(self.store), "--json")
        self.assertEqual(proc.returncode, 6, proc.stderr)
        report = json.loads(proc.stdout)
        self.assertEqual(report["imported"], 5)
        self.assertEqual(report["notes_attached"], 1)
        self.assertEqual(report["errors"], ['Row 6: Could not parse date "not a date"'])
        self.assertEqual(report["run_summary"]["status"], "partial")

    def test_mapping_file(self):
        mapping = self.tmp / "mapping.json"
        mapping.write_text(
            json.dumps({"date_range": "A2:A4", "evening_range": "D2:D4", "date_format": "yyyy-MM-dd"}),
            encoding="utf-8",
        )
        proc = run_cli("import", DAILY, "--mapping", str(mapping), "--store", str(self.store), "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertEqual(json.loads(proc.stdout)["imported"], 3)

    def test_bad_range_returns_exit_1(self):
        proc = run_cli("import", DAILY, "--date-range", "A2:", "--morning", "B2:B4", "--store", str(self.store))
        self.assertEqual(proc.returncode, 1)
        self.assertIn("Invalid range format", proc.stderr)

    def test_missing_mood_range_returns_exit_1(self):
        proc = run_cli("import", DAILY, "--date-range", "A2:A4", "--store", str(self.store))
        self.assertEqual(proc.returncode, 1)
        self.assertIn("At least one mood range", proc.stderr)

    def test_conflicting_mapping_sources_return_exit_1(self):
        proc = run_cli("import", JOURNAL, "--preset", "journal", "--date-range", "A2:A4", "--morning", "C2:C4")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("mutually exclusive", proc.stderr)

    def test_missing_file_returns_exit_1(self):
        proc = run_cli("import", "sample-data/nope.csv", "--preset", "journal", "--store", str(self.store))
        self.assertEqual(proc.returncode, 1)
        self.assertIn("File not found", proc.stderr)

    def test_empty_file_returns_exit_2(self):
        empty = self.tmp / "empty.csv"
        empty.write_text("", encoding="utf-8")
        proc = run_cli("import", str(empty), "--preset", "journal", "--store", str(self.store))
        self.assertEqual(proc.returncode, 2)
        self.assertIn("is empty", proc.stderr)

    def test_preview_json(self):
        proc = run_cli("preview", JOURNAL, "--rows", "2", "--cols", "3", "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["contract"]["name"], "mood_import.preview")
        self.assertEqual(payload["rows"][0], ["Date", "Morning Notes", "Day Mood"])
        self.assertEqual(len(payload["rows"]), 2)
        self.assertEqual(payload["run_summary"]["metrics"]["rows"], 6)

    def test_preview_text_shows_column_letters(self):
        proc = run_cli("preview", DAILY)
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("Sheet size: 4 rows x 5 columns", proc.stdout)
        self.assertIn("A ", proc.stdout)

    def test_suggest_json_and_output_file(self):
        proc = run_cli("suggest", JOURNAL, "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        mapping = json.loads(proc.stdout)["mapping"]
        self.assertEqual(mapping["morning_range"], "C2:C6")
        self.assertEqual(mapping["midday_notes_range"], "D2:D6")
        self.assertNotIn("midday_range", mapping)

        output = self.tmp / "suggested.json"
        proc = run_cli("suggest", JOURNAL, "--output", str(output))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        written = json.loads(output.read_text(encoding="utf-8"))
        self.assertEqual(written["date_range"], "A2:A6")
        self.assertIsNone(written["midday_range"])

        proc = run_cli("suggest", JOURNAL, "--output", str(output))
        self.assertEqual(proc.returncode, 1)
        self.assertIn("Refusing to overwrite", proc.stderr)

    def test_config_init_refuses_to_overwrite(self):
        path = self.tmp / "mood-mapping.json"
        first = run_cli("config", "init", "--path", str(path))
        self.assertEqual(first.returncode, 0, first.stderr)
        template = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(template["date_range"], "A2:A31")

        second = run_cli("config", "init", "--path", str(path))
        self.assertEqual(second.returncode, 1)
        self.assertIn("Refusing to overwrite", second.stderr)

    def test_unknown_command_returns_exit_1(self):
        proc = run_cli("explode")
        self.assertEqual(proc.returncode, 1)


if __name__ == "__main__":
    unittest.main()
