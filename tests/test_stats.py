import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import SessionRepository, SetLogRepository
from stats_service import StatisticsService
from test_db import build_day


class StatisticsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_stats.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        build_day(self.db_path)
        self.sessions = SessionRepository(self.db_path)
        self.sets = SetLogRepository(self.db_path)
        self.stats = StatisticsService(self.sets, self.sessions)

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def _session(self, day: str, bench: list[tuple[float, int]]) -> int:
        sid = self.sessions.create("plan-a", "day-a1", start_time=f"{day}T09:00:00")
        for i, (weight, reps) in enumerate(bench):
            self.sets.add(
                sid, "de-bench", weight, reps, timestamp=f"{day}T09:0{i}:00"
            )
        self.sessions.complete(sid)
        return sid

    def test_session_summary(self) -> None:
        sid = self._session("2024-01-01", [(60.0, 12), (50.0, 10)])
        self.sets.add(sid, "de-curl", 0.0, 8, external_load_kg=-5.0)
        summary = self.stats.session_summary(sid)
        self.assertEqual(summary["sets"], 3)
        self.assertEqual(summary["exercises"], 2)
        self.assertAlmostEqual(summary["volume"], 720.0 + 500.0 - 40.0)
        self.assertEqual(summary["best_set"]["weight_kg"], 60.0)
        self.assertEqual(summary["date"], "2024-01-01")

    def test_exercise_history_and_key_lifts(self) -> None:
        self._session("2024-01-01", [(60.0, 12), (50.0, 12)])
        self._session("2024-01-08", [(62.5, 10), (50.0, 12)])
        self._session("2024-01-15", [(65.0, 8)])
        history = self.stats.exercise_history("bench")
        self.assertEqual([h["date"] for h in history], ["2024-01-01", "2024-01-08", "2024-01-15"])
        self.assertEqual(history[0]["e1rm"], 84.0)
        self.assertEqual(history[1]["e1rm"], 83.3)
        self.assertEqual(history[2]["e1rm"], 82.3)

        stats = self.stats.key_lift_stats("bench")
        self.assertEqual(stats["best_e1rm"], 84.0)
        self.assertEqual(stats["last_weight"], 65.0)
        self.assertEqual(stats["last_reps"], 8)
        self.assertLess(self.stats.e1rm_trend("bench"), 0)

    def test_no_history(self) -> None:
        self.assertEqual(self.stats.exercise_history("curl"), [])
        self.assertEqual(
            self.stats.key_lift_stats("curl"),
            {"best_e1rm": None, "last_weight": None, "last_reps": None},
        )
        self.assertEqual(self.stats.e1rm_trend("curl"), 0.0)


if __name__ == "__main__":
    unittest.main()
