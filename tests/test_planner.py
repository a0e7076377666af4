import datetime
import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from rest_api import GymAPI
from models import ProgressionType, SetLog
from planner_service import PlannerService
from test_db import build_day


class PlannerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_planner.db"
        self.yaml_path = "test_planner.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        build_day(self.db_path)
        self.api = GymAPI(self.db_path, self.yaml_path)
        self.planner = self.api.planner

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_phase_for_week(self) -> None:
        self.assertEqual(PlannerService.phase_for_week(1), 1)
        self.assertEqual(PlannerService.phase_for_week(4), 1)
        self.assertEqual(PlannerService.phase_for_week(5), 2)
        self.assertEqual(PlannerService.phase_for_week(9), 3)
        self.assertEqual(PlannerService.phase_for_week(12), 3)
        with self.assertRaises(ValueError):
            PlannerService.phase_for_week(13)
        self.assertEqual(PlannerService.phase_label(2), "Phase 2 (8 reps)")

    def test_set_week_updates_triple_prescriptions(self) -> None:
        cycle = self.planner.set_week(6)
        self.assertEqual(cycle["phase"], 2)
        self.assertEqual(cycle["phase_reps"], 8)
        self.assertEqual(self.api.prescriptions.fetch("de-bench").current_phase_reps, 8)
        self.assertEqual(self.api.prescriptions.fetch("de-curl").current_phase_reps, 12)
        self.assertEqual(self.api.settings.get_int("current_week", 0), 6)

    def test_advance_wraps_after_week_twelve(self) -> None:
        self.planner.set_week(12)
        cycle = self.planner.advance_week()
        self.assertEqual(cycle["week"], 1)
        self.assertEqual(cycle["phase"], 1)
        self.planner.set_week(4)
        self.assertEqual(self.planner.advance_week()["phase"], 2)

    def test_restart_program(self) -> None:
        self.planner.set_week(10)
        cycle = self.planner.restart_program()
        self.assertEqual((cycle["week"], cycle["phase"]), (1, 1))
        self.assertEqual(self.api.prescriptions.fetch("de-bench").current_phase_reps, 12)

    def test_set_plan_requires_existing_plan(self) -> None:
        with self.assertRaises(ValueError):
            self.planner.set_plan("plan-z")

    def test_todays_day(self) -> None:
        sunday = datetime.date(2024, 1, 7)
        monday = datetime.date(2024, 1, 1)
        saturday = datetime.date(2024, 1, 6)
        self.assertIsNone(self.planner.todays_day(sunday))
        self.assertEqual(self.planner.todays_day(monday)["id"], "day-a1")
        # only day 1 exists in this plan, so day 5 resolves to nothing
        self.assertIsNone(self.planner.todays_day(saturday))

    def test_start_session_checks_plan(self) -> None:
        with self.assertRaises(ValueError):
            self.planner.start_session("day-a1", plan_id="plan-b")
        with self.assertRaises(ValueError):
            self.planner.start_session("day-x")
        sid = self.planner.start_session("day-a1")
        self.assertEqual(self.api.sessions.fetch_detail(sid)["plan_id"], "plan-a")

    def test_finish_session_establishes_baselines(self) -> None:
        sid = self.planner.start_session("day-a1")
        sets = [
            SetLog(1, "top", 60.0, 12, rep_quality="clean", prescription_id="de-bench"),
            SetLog(2, "backoff", 50.0, 12, prescription_id="de-bench"),
            SetLog(3, "backoff", 50.0, 11, prescription_id="de-bench"),
            SetLog(1, "working", 30.0, 10, prescription_id="de-curl"),
        ]
        result = self.planner.finish_session(sid, sets)
        self.assertEqual(len(result["set_ids"]), 4)
        self.assertEqual(result["baselines"], 3)
        baselines = self.api.baselines.fetch_for_prescription("de-bench", 12)
        self.assertEqual([(b.set_number, b.reps) for b in baselines], [(1, 12), (2, 12), (3, 11)])
        self.assertEqual(self.api.baselines.fetch_for_prescription("de-curl"), [])
        self.assertEqual(self.planner.establish_baselines(sid), [])


class ProgressionServiceTestCase(PlannerTestCase):
    def test_first_session_establishes_baseline(self) -> None:
        result = self.api.progression.suggestions_for("de-bench")
        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].type, ProgressionType.ESTABLISH_BASELINE)

    def test_suggestions_use_last_completed_session(self) -> None:
        sid = self.planner.start_session("day-a1")
        self.planner.finish_session(
            sid,
            [
                SetLog(1, "top", 60.0, 12, rep_quality="clean", prescription_id="de-bench"),
                SetLog(2, "backoff", 50.0, 12, rep_quality="clean", prescription_id="de-bench"),
            ],
        )
        second = self.planner.start_session("day-a1")
        self.api.sets.add(second, "de-bench", 60.0, 15, set_type="top", rep_quality="clean")
        self.api.sets.add(second, "de-bench", 50.0, 15, set_type="backoff", rep_quality="clean")
        before = self.api.progression.suggestions_for("de-bench")
        self.assertEqual([s.type for s in before], [ProgressionType.ADD_REPS] * 2)

        self.api.sessions.complete(second)
        after = self.api.progression.suggestions_for("de-bench")
        self.assertEqual([s.type for s in after], [ProgressionType.ADD_WEIGHT] * 2)
        self.assertAlmostEqual(after[0].target_weight, 62.5)
        self.assertEqual(after[0].target_reps, 12)

    def test_phase_change_ignores_old_baselines(self) -> None:
        self.api.baselines.establish("de-bench", "bench", 1, 60.0, 6, 12)
        self.planner.set_week(5)
        sid = self.planner.start_session("day-a1")
        self.planner.finish_session(
            sid, [SetLog(1, "top", 60.0, 9, rep_quality="clean", prescription_id="de-bench")]
        )
        # phase 2 baseline for set 1 is 9 reps now, the 6-rep phase-1 baseline is ignored
        result = self.api.progression.suggestions_for("de-bench")
        self.assertEqual(result[0].type, ProgressionType.ADD_REPS)
        self.assertEqual(result[0].target_reps, 10)

    def test_unknown_prescription(self) -> None:
        with self.assertRaises(ValueError):
            self.api.progression.suggestions_for("nope")


if __name__ == "__main__":
    unittest.main()
