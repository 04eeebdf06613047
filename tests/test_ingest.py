from __future__ import annotations

import importlib.util
import io
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest import mock

import openpyxl

from rework_dashboard.config import DEFAULT_GOALS, MAX_FILE_SIZE_BYTES
from rework_dashboard.errors import FileTooLarge
from rework_dashboard.ingest import check_file_size, ingest_bytes, ingest_file, is_workbook
from rework_dashboard.kpis import compute_hold_metrics
from rework_dashboard.session import DashboardSession
from rework_dashboard.storage import MemoryStore


SIMPLE_CSV = (
    "Hold Date,Cases Produced,Cases Reworked,Cost,Disposition,Root Cause\n"
    "2024-01-05,100,20,500,Rework,Mislabel"
)


def workbook_bytes(sheets: dict[str, list[list]]) -> bytes:
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(name)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class CsvIngestTests(unittest.TestCase):
    def test_two_row_csv_end_to_end(self):
        session = DashboardSession()
        result = ingest_bytes(SIMPLE_CSV.encode("utf-8"), "holds.csv", session)

        self.assertEqual(result.status, "success")
        self.assertEqual(result.record_count, 1)
        self.assertEqual(result.message, "✓ Successfully loaded 1 records from holds.csv")
        record = session.records[0]
        self.assertEqual(record.hold_date, "2024-01-05")
        self.assertEqual(record.cases_produced, 100)
        self.assertEqual(record.cases_reworked, 20)
        self.assertEqual(record.cost_rework, 100.0)
        self.assertEqual(record.root_cause, "Mislabel")
        self.assertEqual(compute_hold_metrics(session.records)["rework_pct"], 20.0)

    def test_title_rows_above_header(self):
        text = "Quality Hold Export\nGenerated 2024-02-01\n\n" + SIMPLE_CSV
        session = DashboardSession()
        result = ingest_bytes(text.encode("utf-8"), "holds.csv", session)
        self.assertTrue(result.ok)
        self.assertEqual(session.records[0].root_cause, "Mislabel")

    def test_goals_only_csv_is_partial_success(self):
        session = DashboardSession()
        raw = b"Rework Cost Goal,Release Rate Goal\n6500000,45%\n"
        result = ingest_bytes(raw, "goals.csv", session)

        self.assertEqual(result.status, "partial")
        self.assertTrue(result.ok)
        self.assertEqual(result.severity, "info")
        self.assertEqual(result.display_seconds, 4)
        self.assertEqual(session.goals["rework_cost"], 6_500_000)
        self.assertEqual(session.goals["release_rate"], 45.0)
        self.assertEqual(session.goals["root_cause_assignment"], DEFAULT_GOALS["root_cause_assignment"])
        self.assertEqual(session.records, [])

    def test_csv_without_date_or_goals_is_an_error(self):
        session = DashboardSession()
        result = ingest_bytes(b"Item,Qty,Notes\nWidget,4,\n", "items.csv", session)
        self.assertEqual(result.status, "error")
        self.assertEqual(result.display_seconds, 10)
        self.assertIn("date column", result.message)

    def test_csv_row_goals_override_defaults(self):
        session = DashboardSession()
        raw = b"Hold Date,Cases Produced,Goal Release Rate\n2024-01-05,10,0.5\n2024-01-06,5,\n"
        ingest_bytes(raw, "holds.csv", session)
        self.assertEqual(session.goals["release_rate"], 50.0)
        self.assertEqual(session.goals["rework_cost"], DEFAULT_GOALS["rework_cost"])

    def test_csv_without_goal_columns_resets_goals(self):
        session = DashboardSession()
        session.set_goals({"release_rate": 70})
        ingest_bytes(SIMPLE_CSV.encode("utf-8"), "holds.csv", session)
        self.assertEqual(session.goals, DEFAULT_GOALS)

    def test_header_without_dated_rows_is_empty_result(self):
        session = DashboardSession()
        result = ingest_bytes(b"Hold Date,Cases Produced\n,10\n", "holds.csv", session)
        self.assertEqual(result.status, "error")
        self.assertIn("no dated data rows", result.message)

    def test_failed_ingest_keeps_previous_batch(self):
        session = DashboardSession()
        ingest_bytes(SIMPLE_CSV.encode("utf-8"), "holds.csv", session)
        result = ingest_bytes(b"Item,Qty\nWidget,4\n", "bad.csv", session)
        self.assertFalse(result.ok)
        self.assertEqual(len(session.records), 1)

    def test_unclosed_quote_runs_to_end_of_file(self):
        lines = [
            "Hold Date,Cases Produced,Cases Reworked,Cost,Disposition,Root Cause",
            '2024-01-05,100,20,500,Rework,"Mislabel',
        ]
        lines += ["2024-01-06,10,0,50,Released,Seal"] * 6000
        session = DashboardSession()
        result = ingest_bytes("\n".join(lines).encode("utf-8"), "holds.csv", session)

        self.assertEqual(result.status, "success")
        self.assertEqual(result.record_count, 1)
        self.assertTrue(session.records[0].root_cause.startswith("Mislabel"))

    def test_quota_exceeded_still_loads_in_memory(self):
        session = DashboardSession(MemoryStore(max_bytes=10))
        result = ingest_bytes(SIMPLE_CSV.encode("utf-8"), "holds.csv", session)
        self.assertEqual(result.status, "success")
        self.assertFalse(result.persisted)
        self.assertEqual(len(session.records), 1)
        self.assertIn("re-upload", result.warnings[0])


class WorkbookIngestTests(unittest.TestCase):
    def test_data_sheet_under_title_rows_with_goals_sheet(self):
        raw = workbook_bytes({
            "Goals": [["Metric", "Value"], ["Rework Cost", 5_000_000], ["Release Rate", 0.5]],
            "Hold Log": [
                ["Quality Hold Export"],
                ["Exported by MES"],
                ["Hold Date", "Plant", "Cases Produced", "Cases Reworked", "Cost", "Disposition", "Root Cause"],
                [datetime(2024, 1, 5), "North", 100, 20, 500, "Rework", "Mislabel"],
                [datetime(2024, 1, 8), "South", 50, 0, 250, "Scrap", "Seal"],
            ],
        })
        session = DashboardSession()
        result = ingest_bytes(raw, "holds.xlsx", session)

        self.assertEqual(result.status, "success")
        self.assertEqual(result.sheet_name, "Hold Log")
        self.assertEqual(result.record_count, 2)
        self.assertEqual(session.records[0].hold_date, "2024-01-05")
        self.assertEqual(session.records[1].location, "South")
        self.assertEqual(session.records[1].cost_scrap, 250.0)
        self.assertEqual(session.goals["rework_cost"], 5_000_000)
        self.assertEqual(session.goals["release_rate"], 50.0)

    def test_workbook_without_goals_keeps_active_goals(self):
        raw = workbook_bytes({"Data": [["Hold Date", "Cases Produced"], [datetime(2024, 1, 5), 10]]})
        session = DashboardSession()
        session.set_goals({"release_rate": 70})
        ingest_bytes(raw, "holds.xlsx", session)
        self.assertEqual(session.goals["release_rate"], 70.0)

    def test_workbook_without_data_sheet(self):
        raw = workbook_bytes({"Sheet1": [["Item", "Qty"], ["Widget", 4]]})
        result = ingest_bytes(raw, "items.xlsx", DashboardSession())
        self.assertEqual(result.status, "error")
        self.assertIn("No sheet", result.message)

    def test_corrupt_workbook(self):
        result = ingest_bytes(SIMPLE_CSV.encode("utf-8"), "holds.xlsx", DashboardSession())
        self.assertEqual(result.status, "error")
        self.assertIn("Could not read spreadsheet", result.message)

    @unittest.skipUnless(importlib.util.find_spec("xlrd"), "xlrd not installed")
    def test_corrupt_legacy_workbook(self):
        result = ingest_bytes(b"this is not an xls file at all" * 20, "holds.xls", DashboardSession())
        self.assertEqual(result.status, "error")
        self.assertIn("Could not read spreadsheet", result.message)


class FileSurfaceTests(unittest.TestCase):
    def test_format_is_decided_by_suffix(self):
        self.assertTrue(is_workbook("holds.XLSX"))
        self.assertTrue(is_workbook("holds.xlsm"))
        self.assertTrue(is_workbook("holds.xls"))
        self.assertFalse(is_workbook("holds.csv"))
        self.assertFalse(is_workbook("holds.txt"))

    def test_size_limit(self):
        check_file_size(MAX_FILE_SIZE_BYTES, "ok.csv")
        with self.assertRaises(FileTooLarge):
            check_file_size(MAX_FILE_SIZE_BYTES + 1, "big.csv")

    def test_oversized_file_is_rejected_before_reading(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "holds.csv"
            path.write_text(SIMPLE_CSV, encoding="utf-8")
            session = DashboardSession()
            with mock.patch("rework_dashboard.ingest.MAX_FILE_SIZE_BYTES", 10), \
                    mock.patch.object(Path, "read_bytes") as read_bytes:
                result = ingest_file(path, session)
            read_bytes.assert_not_called()
            self.assertEqual(result.status, "error")
            self.assertIn("File too large", result.message)
            self.assertEqual(session.records, [])

    def test_ingest_file_reads_from_disk(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "holds.csv"
            path.write_text(SIMPLE_CSV, encoding="utf-8")
            session = DashboardSession()
            result = ingest_file(path, session)
            self.assertTrue(result.ok)
            self.assertEqual(len(session.records), 1)

    def test_missing_file_is_an_error_result(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            session = DashboardSession()
            result = ingest_file(Path(tmpdir) / "does-not-exist.csv", session)
        self.assertEqual(result.status, "error")
        self.assertIn("Could not read file does-not-exist.csv", result.message)
        self.assertEqual(session.records, [])


if __name__ == "__main__":
    unittest.main()
