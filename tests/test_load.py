import unittest

from roadmap_planner.load import aggregate, over_capacity_months
from roadmap_planner.models import STATUS_DONE, CapacityRecord, Initiative, ScheduledInitiative
from roadmap_planner.months import Month


def _scheduled(id, effort, start, completion, mandatory=False):
    initiative = Initiative(id=id, name=id, effort=effort, is_mandatory=mandatory)
    return ScheduledInitiative(
        initiative=initiative,
        completion_month=Month.parse(completion) if completion else None,
        deadline_missed=False,
        start_month=Month.parse(start) if start else None,
        status=STATUS_DONE,
    )


def _capacity(*pairs):
    return [CapacityRecord(month=Month.parse(month), available_days=days) for month, days in pairs]


class TestLoadAggregator(unittest.TestCase):
    def setUp(self):
        self.capacity = _capacity(("2025-01", 20), ("2025-02", 20), ("2025-03", 20))

    def test_effort_spread_evenly_over_window(self):
        summaries = aggregate([_scheduled("a", 30, "2025-01", "2025-03")], self.capacity)
        self.assertEqual([s.total_load for s in summaries], [10.0, 10.0, 10.0])
        self.assertEqual([str(s.month) for s in summaries], ["2025-01", "2025-02", "2025-03"])

    def test_mandatory_and_optional_split(self):
        summaries = aggregate(
            [
                _scheduled("m", 10, "2025-01", "2025-01", mandatory=True),
                _scheduled("o", 10, "2025-01", "2025-02"),
            ],
            self.capacity,
        )
        january = summaries[0]
        self.assertEqual(january.total_load, 15.0)
        self.assertEqual(january.mandatory_load, 10.0)
        self.assertEqual(january.optional_load, 5.0)

    def test_items_without_window_or_effort_contribute_nothing(self):
        summaries = aggregate(
            [
                _scheduled("no-completion", 10, "2025-01", None),
                _scheduled("no-start", 10, None, "2025-01"),
                _scheduled("zero", 0, "2025-01", "2025-01"),
            ],
            self.capacity,
        )
        self.assertTrue(all(s.total_load == 0 for s in summaries))

    def test_inverted_window_is_skipped_and_logged(self):
        with self.assertLogs("roadmap_planner.load", level="WARNING"):
            summaries = aggregate([_scheduled("bad", 10, "2025-03", "2025-01")], self.capacity)
        self.assertTrue(all(s.total_load == 0 for s in summaries))

    def test_rounds_to_two_decimals(self):
        summaries = aggregate([_scheduled("a", 10, "2025-01", "2025-03")], self.capacity)
        self.assertEqual(summaries[0].total_load, 3.33)

    def test_follows_capacity_record_order(self):
        capacity = _capacity(("2025-02", 5), ("2025-01", 5))
        summaries = aggregate([_scheduled("a", 4, "2025-01", "2025-02")], capacity)
        self.assertEqual([str(s.month) for s in summaries], ["2025-02", "2025-01"])
        self.assertEqual([s.available_days for s in summaries], [5, 5])

    def test_window_beyond_capacity_only_counts_known_months(self):
        summaries = aggregate([_scheduled("a", 40, "2024-12", "2025-03")], self.capacity)
        self.assertEqual([s.total_load for s in summaries], [10.0, 10.0, 10.0])

    def test_idempotent(self):
        results = [_scheduled("a", 30, "2025-01", "2025-02"), _scheduled("b", 7, "2025-02", "2025-03")]
        self.assertEqual(aggregate(results, self.capacity), aggregate(results, self.capacity))

    def test_available_days_rounded_like_the_ledger(self):
        capacity = _capacity(("2025-01", -5), ("2025-02", 10.6))
        summaries = aggregate([_scheduled("a", 11, "2025-02", "2025-02")], capacity)
        self.assertEqual([s.available_days for s in summaries], [0, 11])
        self.assertEqual(over_capacity_months(summaries), [])

    def test_over_capacity_months(self):
        summaries = aggregate([_scheduled("a", 50, "2025-01", "2025-02")], self.capacity)
        flagged = over_capacity_months(summaries)
        self.assertEqual([str(s.month) for s in flagged], ["2025-01", "2025-02"])
        self.assertTrue(flagged[0].over_capacity)


if __name__ == "__main__":
    unittest.main()
