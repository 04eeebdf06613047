from __future__ import annotations

import contextlib
import io
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import main


CSV_TEXT = (
    "Hold Date,Plant,Cases Produced,Cases Reworked,Cost,Disposition,Root Cause\n"
    "2024-01-05,North,100,20,500,Rework,Mislabel\n"
    "2024-01-09,South,50,0,250,Scrapped,Seal\n"
)


def run_main(*argv: str) -> tuple[int, str]:
    out = io.StringIO()
    with mock.patch.object(main, "default_remote", return_value=None), contextlib.redirect_stdout(out):
        code = main.main(list(argv))
    return code, out.getvalue()


class MainTests(unittest.TestCase):
    def test_full_run_prints_dashboard_sections(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "holds.csv"
            path.write_text(CSV_TEXT, encoding="utf-8")
            code, output = run_main(str(path), "--granularity", "week")

        self.assertEqual(code, 0)
        self.assertIn("Successfully loaded 2 records", output)
        self.assertIn("DASHBOARD OUTPUTS", output)
        self.assertIn("Week of 01/01/2024", output)
        self.assertIn("Source: local", output)

    def test_location_filter(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "holds.csv"
            path.write_text(CSV_TEXT, encoding="utf-8")
            code, output = run_main(str(path), "--location", "South")
        self.assertEqual(code, 0)
        self.assertIn("Showing 1 of 2 records", output)

    def test_unreadable_file_exits_nonzero(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "items.csv"
            path.write_text("Item,Qty\nWidget,4\n", encoding="utf-8")
            code, output = run_main(str(path))
        self.assertEqual(code, 1)
        self.assertIn("date column", output)

    def test_missing_file_exits_nonzero(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            code, output = run_main(str(Path(tmpdir) / "typo.csv"))
        self.assertEqual(code, 1)
        self.assertIn("Could not read file typo.csv", output)

    def test_stored_batch_is_reused_and_cleared(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "holds.csv"
            path.write_text(CSV_TEXT, encoding="utf-8")
            store_dir = str(Path(tmpdir) / "store")

            self.assertEqual(run_main(str(path), "--store-dir", store_dir)[0], 0)
            code, output = run_main("--store-dir", store_dir)
            self.assertEqual(code, 0)
            self.assertIn("Using 2 stored records", output)

            self.assertEqual(run_main("--store-dir", store_dir, "--clear")[0], 0)
            code, output = run_main("--store-dir", store_dir)
            self.assertEqual(code, 1)
            self.assertIn("No data loaded", output)


if __name__ == "__main__":
    unittest.main()
