import json
import tempfile
import unittest
from datetime import date
from pathlib import Path

import pandas as pd

from roadmap_planner.io_utils import (
    capacity_records_from_df,
    fill_capacity_horizon,
    load_capacity,
    load_config,
    load_initiatives,
)
from roadmap_planner.models import ZERO_EFFORT_FIRST_AVAILABLE, CapacityRecord
from roadmap_planner.months import Month

INITIATIVES_CSV = """id,name,value_lever,uplift,confidence,effort,start_month,deadline_month,is_mandatory
1,Checkout revamp,Conversion,12.5,80,30,2025-02,2025-04,false
2,Audit trail,Compliance/Risk Mitigation,-3,140,-5,,,yes
3,Mystery,Moonshots,4,50,lots,,2025-06-30,0
"""


class TestLoaders(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def _write(self, name, text):
        path = self.root / name
        path.write_text(text)
        return path

    def test_load_initiatives_normalizes_boundary_values(self):
        with self.assertLogs("roadmap_planner.io_utils", level="WARNING"):
            df = load_initiatives(self._write("initiatives.csv", INITIATIVES_CSV))
        rows = df.set_index("id")
        self.assertEqual(rows.loc["1", "start_month"], Month(2025, 2))
        self.assertEqual(rows.loc["1", "deadline_month"], Month(2025, 4))
        self.assertFalse(rows.loc["1", "is_mandatory"])
        self.assertEqual(rows.loc["2", "uplift"], 0.0)
        self.assertEqual(rows.loc["2", "confidence"], 100.0)
        self.assertEqual(rows.loc["2", "effort"], 0.0)
        self.assertTrue(rows.loc["2", "is_mandatory"])
        self.assertTrue(pd.isna(rows.loc["2", "start_month"]))
        self.assertTrue(pd.isna(rows.loc["3", "effort"]))
        self.assertEqual(rows.loc["3", "deadline_month"], Month(2025, 6))
        self.assertEqual(rows.loc["3", "value_lever"], "Moonshots")

    def test_load_initiatives_header_only_is_empty(self):
        df = load_initiatives(self._write("initiatives.csv", "id,name,effort\n"))
        self.assertTrue(df.empty)
        with self.assertRaises(ValueError):
            load_initiatives(self._write("blank.csv", ""))

    def test_load_initiatives_requires_columns(self):
        with self.assertRaises(ValueError):
            load_initiatives(self._write("bad.csv", "id,name\n1,x\n"))

    def test_load_initiatives_rejects_duplicate_ids(self):
        with self.assertRaises(ValueError):
            load_initiatives(self._write("dupes.csv", "id,name,effort\n1,a,3\n1,b,4\n"))

    def test_load_initiatives_rejects_bad_month(self):
        with self.assertRaises(ValueError):
            load_initiatives(self._write("month.csv", "id,name,effort,start_month\n1,a,3,someday\n"))

    def test_load_capacity_csv_and_json(self):
        csv_df = load_capacity(self._write("capacity.csv", "month,available_days\n2025-01,18\n2025-02,20\n"))
        json_df = load_capacity(self._write(
            "capacity.json",
            json.dumps([{"month": "2025-01-01", "available_days": 18}, {"month": "2025-02", "available_days": 20}]),
        ))
        for df in (csv_df, json_df):
            records = capacity_records_from_df(df)
            self.assertEqual([str(r.month) for r in records], ["2025-01", "2025-02"])
            self.assertEqual([r.available_days for r in records], [18.0, 20.0])

    def test_load_capacity_rounds_and_clamps_days(self):
        df = load_capacity(self._write(
            "capacity.csv", "month,available_days\n2025-01,-5\n2025-02,10.6\n2025-03,10.5\n2025-04,\n"
        ))
        self.assertEqual(list(df["available_days"]), [0, 11, 11, 0])

    def test_load_capacity_empty_json(self):
        df = load_capacity(self._write("empty.json", "[]"))
        self.assertEqual(capacity_records_from_df(df), [])

    def test_load_capacity_rejects_non_numeric_days(self):
        with self.assertRaises(ValueError):
            load_capacity(self._write("bad.csv", "month,available_days\n2025-01,many\n"))

    def test_load_config_defaults_and_validation(self):
        cfg = load_config(self._write("config.json", json.dumps({"planning_start": "2025-01-15"})))
        self.assertEqual(cfg.planning_start, date(2025, 1, 15))
        self.assertEqual(cfg.first_month(), Month(2025, 1))
        self.assertEqual(cfg.horizon_months, 12)
        self.assertEqual(cfg.default_days_per_month, 20.0)
        cfg = load_config(self._write("config2.json", json.dumps({
            "planning_start": "2025-01-01",
            "zero_effort_policy": ZERO_EFFORT_FIRST_AVAILABLE,
        })))
        self.assertEqual(cfg.zero_effort_policy, ZERO_EFFORT_FIRST_AVAILABLE)
        for bad in (
            {"planning_start": "soon"},
            {"planning_start": "2025-01-01", "horizon_months": 0},
            {"planning_start": "2025-01-01", "default_days_per_month": -1},
            {"planning_start": "2025-01-01", "zero_effort_policy": "maybe"},
        ):
            with self.subTest(config=bad):
                with self.assertRaises(ValueError):
                    load_config(self._write("bad_config.json", json.dumps(bad)))


class TestCapacityHorizon(unittest.TestCase):
    def test_fills_gaps_with_default(self):
        recorded = [
            CapacityRecord(month=Month(2025, 2), available_days=5),
            CapacityRecord(month=Month(2024, 12), available_days=99),
        ]
        horizon = fill_capacity_horizon(recorded, "2025-01", 3, default_days=20)
        self.assertEqual([str(r.month) for r in horizon], ["2025-01", "2025-02", "2025-03"])
        self.assertEqual([r.available_days for r in horizon], [20.0, 5, 20.0])


if __name__ == "__main__":
    unittest.main()
