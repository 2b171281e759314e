import sys
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest import mock

import openpyxl

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from mood_importer import loader
from mood_importer.errors import EmptyFile, UnparsableFile, UnsupportedFormat
from mood_importer.loader import RawGrid, load_grid, parse_text, preview, tokenize

SAMPLES = ROOT / "sample-data"


class ParseTextTests(unittest.TestCase):
    def test_well_formed_text_uses_pandas(self):
        grid = parse_text("Date,Morning\n2025-01-01,7\n2025-01-02,8\n")
        self.assertEqual(grid.parser_used, "pandas")
        self.assertEqual(grid.warnings, [])
        self.assertEqual(grid.row_count, 3)
        self.assertEqual(grid.cell(0, 1), "Morning")
        self.assertEqual(grid.cell(2, 0), "2025-01-02")

    def test_values_stay_text(self):
        grid = parse_text("Date,Morning\n2025-01-01,07\nNA,\n")
        self.assertEqual(grid.cell(1, 1), "07")
        self.assertEqual(grid.cell(2, 0), "NA")
        self.assertEqual(grid.cell(2, 1), "")

    def test_quoted_field_with_comma_and_newline(self):
        grid = parse_text('Date,Notes\n2025-01-01,"slept badly,\nwoke at 4"\n2025-01-02,ok\n')
        self.assertEqual(grid.parser_used, "pandas")
        self.assertEqual(grid.row_count, 3)
        self.assertEqual(grid.cell(1, 1), "slept badly,\nwoke at 4")
        self.assertEqual(grid.cell(2, 1), "ok")

    def test_ragged_rows_fall_back_to_csv_module(self):
        grid = parse_text("Date,Morning\n2025-01-01,7,extra\n2025-01-02,8\n")
        self.assertEqual(grid.parser_used, "csv")
        self.assertEqual(len(grid.warnings), 1)
        self.assertIn("pandas parser failed", grid.warnings[0])
        self.assertEqual(grid.column_count, 3)
        # short rows are padded to the widest row
        self.assertEqual(grid.rows[0], ["Date", "Morning", ""])
        self.assertEqual(grid.cell(1, 2), "extra")

    def test_unterminated_quote_falls_back(self):
        grid = parse_text('Date,Notes\n2025-01-01,"never closed\n')
        self.assertNotEqual(grid.parser_used, "pandas")
        self.assertEqual(grid.cell(0, 0), "Date")
        self.assertTrue(grid.cell(1, 1).startswith("never closed"))

    def test_cells_are_trimmed(self):
        grid = parse_text("Date , Morning \n 2025-01-01 , 7 \n")
        self.assertEqual(grid.cell(0, 1), "Morning")
        self.assertEqual(grid.cell(1, 0), "2025-01-01")

    def test_blank_text_is_empty_file(self):
        for text in ("", "   ", "\n\n"):
            with self.subTest(text=text):
                with self.assertRaises(EmptyFile):
                    parse_text(text)

    def test_every_strategy_failing_raises(self):
        def boom(text, delimiter):
            raise ValueError("nope")

        strategies = (("pandas", boom), ("csv", boom), ("manual", boom))
        with mock.patch.object(loader, "_STRATEGIES", strategies):
            with self.assertRaises(UnparsableFile) as ctx:
                parse_text("a,b\n1,2\n")
        self.assertEqual(len(ctx.exception.failures), 3)
        self.assertIn("Could not parse file with any strategy", str(ctx.exception))

    def test_manual_strategy_is_last_resort(self):
        def boom(text, delimiter):
            raise ValueError("nope")

        strategies = (("pandas", boom), ("csv", boom), ("manual", tokenize))
        with mock.patch.object(loader, "_STRATEGIES", strategies):
            grid = parse_text('Date,Morning\n2025-01-01,"7"\n')
        self.assertEqual(grid.parser_used, "manual")
        self.assertEqual(len(grid.warnings), 2)
        self.assertEqual(grid.cell(1, 1), "7")


class TokenizeTests(unittest.TestCase):
    def test_quoted_newline_stays_in_one_row(self):
        rows = tokenize('a,"line one\nline two",c\nd,e,f\n')
        self.assertEqual(rows, [["a", "line one\nline two", "c"], ["d", "e", "f"]])

    def test_doubled_quote_is_literal(self):
        rows = tokenize('a,"say ""hi""",c\n')
        self.assertEqual(rows, [["a", 'say "hi"', "c"]])

    def test_blank_rows_are_dropped(self):
        rows = tokenize("a,b\n\n,\n c , d \r\n")
        self.assertEqual(rows, [["a", "b"], [" c ", " d "]])

    def test_last_row_without_newline(self):
        self.assertEqual(tokenize("a,b\n1,2"), [["a", "b"], ["1", "2"]])

    def test_other_delimiter(self):
        self.assertEqual(tokenize("a\tb\n", "\t"), [["a", "b"]])


class RawGridTests(unittest.TestCase):
    def test_cell_outside_grid_is_empty(self):
        grid = RawGrid(rows=[["a", "b"], ["c", "d"]])
        self.assertEqual(grid.cell(5, 0), "")
        self.assertEqual(grid.cell(0, 5), "")
        self.assertEqual(grid.cell(-1, 0), "")
        self.assertEqual(grid.cell(1, 1), "d")

    def test_preview_is_top_left_block(self):
        grid = RawGrid(rows=[[str(r * 10 + c) for c in range(12)] for r in range(15)])
        block = preview(grid, max_rows=3, max_cols=2)
        self.assertEqual(block, [["0", "1"], ["10", "11"], ["20", "21"]])
        self.assertEqual(len(preview(grid)), 10)
        self.assertEqual(len(preview(grid)[0]), 10)


class LoadGridTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_grid(self.tmp / "nope.csv")

    def test_unsupported_suffix(self):
        path = self.tmp / "moods.json"
        path.write_text("{}", encoding="utf-8")
        with self.assertRaises(UnsupportedFormat):
            load_grid(path)

    def test_empty_file(self):
        path = self.tmp / "empty.csv"
        path.write_bytes(b"")
        with self.assertRaises(EmptyFile):
            load_grid(path)

    def test_bom_is_stripped(self):
        path = self.tmp / "bom.csv"
        path.write_bytes("Date,Morning\n2025-01-01,7\n".encode("utf-8-sig"))
        grid = load_grid(path)
        self.assertEqual(grid.cell(0, 0), "Date")

    def test_latin1_bytes_are_decoded(self):
        path = self.tmp / "latin.csv"
        path.write_bytes("Date,Morning,Notes\n2025-01-01,7,café\n".encode("latin-1"))
        grid = load_grid(path)
        self.assertTrue(grid.cell(1, 2).startswith("caf"))
        self.assertEqual(grid.cell(1, 1), "7")
        self.assertIsNotNone(grid.detected_encoding)

    def test_tsv_uses_tabs(self):
        path = self.tmp / "moods.tsv"
        path.write_text("Date\tMorning\n2025-01-01\t7\n", encoding="utf-8")
        grid = load_grid(path)
        self.assertEqual(grid.cell(1, 1), "7")

    def test_journal_sample(self):
        grid = load_grid(SAMPLES / "journal_export.csv")
        self.assertEqual(grid.cell(0, 2), "Day Mood")
        self.assertEqual(grid.cell(1, 0), "6/15/2025")
        self.assertIn("\n", grid.cell(1, 1))

    def test_workbook_values_are_rendered_as_text(self):
        path = self.tmp / "moods.xlsx"
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.title = "Moods"
        sheet.append(["Date", "Morning", "Evening"])
        sheet.append([datetime(2025, 1, 1), 7, 7.5])
        sheet.append([datetime(2025, 1, 2), 8.0, None])
        other = workbook.create_sheet("Other")
        other.append(["ignored"])
        workbook.save(path)

        grid = load_grid(path)
        self.assertEqual(grid.parser_used, "openpyxl")
        self.assertEqual(grid.sheet_name, "Moods")
        self.assertEqual(grid.cell(1, 0), "2025-01-01")
        self.assertEqual(grid.cell(1, 1), "7")
        self.assertEqual(grid.cell(1, 2), "7.5")
        self.assertEqual(grid.cell(2, 1), "8")
        self.assertEqual(grid.cell(2, 2), "")
        self.assertEqual(len(grid.warnings), 1)
        self.assertIn("Multiple sheets", grid.warnings[0])

        other_grid = load_grid(path, sheet_name="Other")
        self.assertEqual(other_grid.cell(0, 0), "ignored")
        with self.assertRaises(UnsupportedFormat):
            load_grid(path, sheet_name="Missing")

    def test_workbook_timestamps_render_as_the_calendar_day(self):
        path = self.tmp / "stamped.xlsx"
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.append(["Date", "Morning"])
        sheet.append([datetime(2025, 1, 1, 8, 30), 7])
        sheet.append([datetime(2025, 1, 2, 23, 59, 59), 6])
        workbook.save(path)

        grid = load_grid(path)
        self.assertEqual(grid.cell(1, 0), "2025-01-01")
        self.assertEqual(grid.cell(2, 0), "2025-01-02")


if __name__ == "__main__":
    unittest.main()
