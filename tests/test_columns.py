from __future__ import annotations

import unittest

from rework_dashboard.config import COLUMN_RULES
from rework_dashboard.errors import MissingDateColumn
from rework_dashboard.loaders.columns import find_column, header_matches, resolve_columns


class HeaderMatchesTests(unittest.TestCase):
    def test_contains_mode_collapses_whitespace(self):
        self.assertTrue(header_matches("  Hold    Date ", "contains", (("hold date",),)))

    def test_compact_equals_requires_whole_header(self):
        self.assertTrue(header_matches("Cases Produced", "compact_equals", (("casesproduced",),)))
        self.assertFalse(header_matches("Cases Produced Total", "compact_equals", (("casesproduced",),)))

    def test_alnum_equals_drops_punctuation(self):
        self.assertTrue(header_matches("Mfg. Ord", "alnum_equals", (("mfgord",),)))
        self.assertTrue(header_matches("W/O", "alnum_equals", (("wo",),)))

    def test_excludes_disqualify(self):
        self.assertFalse(header_matches("Goal Root Cause", "contains", (("root cause",),), ("goal",)))

    def test_currency_mode_needs_a_sigil(self):
        self.assertTrue(header_matches("Scrap $", "currency_contains", (("scrap",),)))
        self.assertFalse(header_matches("Scrap Qty", "currency_contains", (("scrap",),)))

    def test_all_fragments_of_a_candidate_must_match(self):
        candidates = (("goal", "reworkcost"),)
        self.assertTrue(header_matches("Goal Rework Cost", "compact_contains", candidates))
        self.assertFalse(header_matches("Rework Cost", "compact_contains", candidates))


class FindColumnTests(unittest.TestCase):
    def test_earlier_rule_beats_leftmost_cell(self):
        headers = ["Date", "Production Date", "Hold Date"]
        self.assertEqual(find_column(headers, COLUMN_RULES["date"]), 2)

    def test_generic_date_falls_back_to_leftmost(self):
        headers = ["Plant", "Day", "Date"]
        self.assertEqual(find_column(headers, COLUMN_RULES["date"]), 1)

    def test_production_date_is_not_a_description(self):
        headers = ["Production Date", "Product", "Item Type"]
        self.assertEqual(find_column(headers, COLUMN_RULES["description"]), 1)

    def test_exact_cost_column_beats_currency_columns(self):
        headers = ["Scrap $", "Cost", "Rework $"]
        self.assertEqual(find_column(headers, COLUMN_RULES["cost"]), 1)

    def test_currency_scrap_column_used_without_cost(self):
        headers = ["Rework $", "Scrap $", "Goal Rework Cost $"]
        self.assertEqual(find_column(headers, COLUMN_RULES["cost"]), 1)

    def test_unmatched_field_is_minus_one(self):
        self.assertEqual(find_column(["Hold Date"], COLUMN_RULES["rework_lag"]), -1)


class ResolveColumnsTests(unittest.TestCase):
    def test_typical_export_header(self):
        header = [
            "Hold Date", "Mfg Order", "Production Date", "Description", "Item Type",
            "Plant Name", "Disposition", "Root Cause", "Cases Produced",
            "Cases Reworked", "Cost", "Cost Impact", "Rework Lag",
        ]
        columns = resolve_columns(header)
        self.assertEqual(columns["date"], 0)
        self.assertEqual(columns["hold_date"], 0)
        self.assertEqual(columns["mfg_order"], 1)
        self.assertEqual(columns["production_date"], 2)
        self.assertEqual(columns["description"], 3)
        self.assertEqual(columns["item_type"], 4)
        self.assertEqual(columns["plant_name"], 5)
        self.assertEqual(columns["disposition"], 6)
        self.assertEqual(columns["root_cause"], 7)
        self.assertEqual(columns["cases_produced"], 8)
        self.assertEqual(columns["cases_reworked"], 9)
        self.assertEqual(columns["cost"], 10)
        self.assertEqual(columns["cost_impact"], 11)
        self.assertEqual(columns["rework_lag"], 12)
        self.assertFalse(columns.has("work_order"))
        self.assertIn("work_order", columns.missing())

    def test_goal_columns_resolve_separately(self):
        header = ["Date", "Root Cause", "Goal Rework Cost", "Goal Release Rate", "Goal Root Cause Assignment"]
        columns = resolve_columns(header)
        self.assertEqual(columns["root_cause"], 1)
        self.assertEqual(columns["goal_rework_cost"], 2)
        self.assertEqual(columns["goal_release_rate"], 3)
        self.assertEqual(columns["goal_root_cause_assignment"], 4)

    def test_missing_date_column_raises(self):
        with self.assertRaises(MissingDateColumn):
            resolve_columns(["Item", "Qty", "Notes"])


if __name__ == "__main__":
    unittest.main()
