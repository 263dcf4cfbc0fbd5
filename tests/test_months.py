import unittest
from datetime import date

from roadmap_planner.months import Month, inclusive_month_count, next_n_months, parse_optional_month


class TestMonth(unittest.TestCase):
    def test_parse_formats(self):
        self.assertEqual(Month.parse("2025-03"), Month(2025, 3))
        self.assertEqual(Month.parse("2025-03-17"), Month(2025, 3))
        self.assertEqual(Month.parse(date(2025, 3, 31)), Month(2025, 3))
        self.assertEqual(str(Month(2025, 3)), "2025-03")

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            Month.parse("not a month")
        with self.assertRaises(ValueError):
            Month(2025, 13)

    def test_ordering_and_shift(self):
        self.assertLess(Month(2024, 12), Month(2025, 1))
        self.assertEqual(Month(2024, 11).shift(3), Month(2025, 2))
        self.assertEqual(Month(2024, 11).months_until(Month(2025, 2)), 3)
        self.assertEqual(inclusive_month_count(Month(2025, 1), Month(2025, 1)), 1)

    def test_next_n_months(self):
        months = next_n_months(3, "2025-11")
        self.assertEqual([str(m) for m in months], ["2025-11", "2025-12", "2026-01"])
        self.assertEqual(next_n_months(0, "2025-11"), [])

    def test_parse_optional_month(self):
        self.assertIsNone(parse_optional_month(None))
        self.assertIsNone(parse_optional_month(""))
        self.assertIsNone(parse_optional_month(float("nan")))
        self.assertEqual(parse_optional_month("2025-06"), Month(2025, 6))


if __name__ == "__main__":
    unittest.main()
