from __future__ import annotations

import math
import unittest
from datetime import datetime

import pandas as pd

from rework_dashboard.loaders.utils import (
    alnum_text,
    collapse_whitespace,
    compact_text,
    is_blank_row,
    normalise_count,
    normalise_number,
    normalise_percentage,
    normalise_rate,
    parse_flexible_date,
    strip_number_noise,
)


class NormaliseNumberTests(unittest.TestCase):
    def test_clean_input_is_unchanged(self):
        self.assertEqual(normalise_number("1234"), 1234)

    def test_currency_and_thousands_noise_is_stripped(self):
        self.assertEqual(normalise_number("$1,234.50"), 1234.50)
        self.assertEqual(normalise_number("  2,000 "), 2000)
        self.assertEqual(normalise_number("€ 75"), 75)
        self.assertEqual(normalise_number('"45%"'), 45)

    def test_non_numeric_text_returns_default(self):
        self.assertEqual(normalise_number("abc"), 0)
        self.assertTrue(math.isnan(normalise_number("abc", default=math.nan)))
        self.assertTrue(math.isnan(normalise_number("", default=math.nan)))

    def test_keeps_leading_minus_and_first_decimal_point(self):
        self.assertEqual(normalise_number("-12.5"), -12.5)
        self.assertEqual(normalise_number("1.2.3"), 1.23)

    def test_native_numbers_pass_through(self):
        self.assertEqual(normalise_number(7), 7.0)
        self.assertEqual(normalise_number(2.5), 2.5)
        self.assertEqual(normalise_number(None, default=-1.0), -1.0)

    def test_counts_are_non_negative_ints(self):
        self.assertEqual(normalise_count("1,200"), 1200)
        self.assertEqual(normalise_count("-5"), 0)
        self.assertEqual(normalise_count("n/a"), 0)
        self.assertEqual(normalise_count("12.9"), 12)

    def test_fraction_percentages_are_scaled(self):
        self.assertEqual(normalise_percentage(0.4, assume_decimal=True), 40.0)
        self.assertEqual(normalise_percentage(45.0, assume_decimal=True), 45.0)
        self.assertEqual(normalise_percentage(0.4), 0.4)

    def test_rates_scale_fractions_unless_marked_percent(self):
        self.assertEqual(normalise_rate("0.4"), 40.0)
        self.assertEqual(normalise_rate("1"), 100.0)
        self.assertEqual(normalise_rate("1%"), 1.0)
        self.assertEqual(normalise_rate("0.5 %"), 0.5)
        self.assertEqual(normalise_rate(45), 45.0)
        self.assertTrue(math.isnan(normalise_rate("")))

    def test_number_noise_is_stripped_from_text(self):
        self.assertEqual(strip_number_noise("$1,234 %"), "1234")
        self.assertEqual(strip_number_noise(" -0.5 "), "-0.5")


class TextNormalisationTests(unittest.TestCase):
    def test_header_text_forms(self):
        self.assertEqual(collapse_whitespace("  Hold   Date "), "hold date")
        self.assertEqual(compact_text("Cases  Produced"), "casesproduced")
        self.assertEqual(alnum_text("Mfg. Order #"), "mfgorder")

    def test_blank_row_detection(self):
        self.assertTrue(is_blank_row(["", "  ", None]))
        self.assertTrue(is_blank_row([]))
        self.assertFalse(is_blank_row(["", "x"]))


class ParseFlexibleDateTests(unittest.TestCase):
    def test_iso_date(self):
        self.assertEqual(parse_flexible_date("2024-01-05"), pd.Timestamp(2024, 1, 5))

    def test_us_date_with_two_digit_year(self):
        self.assertEqual(parse_flexible_date("3/7/24"), pd.Timestamp(2024, 3, 7))
        self.assertEqual(parse_flexible_date("12/31/2023"), pd.Timestamp(2023, 12, 31))

    def test_trailing_time_is_ignored(self):
        self.assertEqual(parse_flexible_date("2024-01-05 13:45:00"), pd.Timestamp(2024, 1, 5))

    def test_datetime_objects_are_normalised(self):
        self.assertEqual(parse_flexible_date(datetime(2024, 2, 1, 8, 30)), pd.Timestamp(2024, 2, 1))

    def test_unparseable_values_return_none(self):
        self.assertIsNone(parse_flexible_date(""))
        self.assertIsNone(parse_flexible_date(None))
        self.assertIsNone(parse_flexible_date("pending"))
        self.assertIsNone(parse_flexible_date("13/45/2024"))


if __name__ == "__main__":
    unittest.main()
