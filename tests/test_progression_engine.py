import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from models import (
    Baseline,
    Confidence,
    Prescription,
    ProgressionType,
    SchemeType,
    SetLog,
)
from algorithms.progression_engine import ProgressionEngine, suggest_progression


def _set(n, set_type, weight, reps, quality="clean", **kwargs):
    return SetLog(
        set_number=n,
        set_type=set_type,
        weight_kg=weight,
        reps=reps,
        rep_quality=quality,
        **kwargs,
    )


class EmptyHistoryTest(unittest.TestCase):
    def test_every_scheme_establishes_baseline(self) -> None:
        presc = Prescription(id="p1")
        for scheme in SchemeType:
            result = suggest_progression(scheme, [], presc)
            self.assertEqual(len(result), 1, scheme)
            self.assertEqual(result[0].type, ProgressionType.ESTABLISH_BASELINE)
            self.assertEqual(result[0].confidence, Confidence.HIGH)
            self.assertIsNone(result[0].set_number)

    def test_scheme_accepts_string(self) -> None:
        result = ProgressionEngine.suggest("AMRAP", [], Prescription(id="p1"))
        self.assertEqual(result[0].short_message, "Set baseline")

    def test_unknown_scheme_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ProgressionEngine.suggest("SUPER_SLOW", [], Prescription(id="p1"))


class DoubleProgressionTest(unittest.TestCase):
    def setUp(self) -> None:
        self.presc = Prescription(id="p1", reps_min=8, reps_max=12)

    def test_all_sets_at_max_adds_weight(self) -> None:
        sets = [_set(i, "working", 40.0, 12) for i in (1, 2, 3)]
        result = suggest_progression(SchemeType.DOUBLE_PROGRESSION, sets, self.presc)
        self.assertEqual(len(result), 1)
        s = result[0]
        self.assertEqual(s.type, ProgressionType.ADD_WEIGHT)
        self.assertAlmostEqual(s.target_weight, 42.5)
        self.assertEqual(s.target_reps, 8)
        self.assertEqual(s.confidence, Confidence.HIGH)

    def test_average_below_max_adds_reps(self) -> None:
        sets = [
            _set(1, "working", 40.0, 10),
            _set(2, "working", 40.0, 9),
            _set(3, "working", 40.0, 8),
        ]
        result = suggest_progression(SchemeType.DOUBLE_PROGRESSION, sets, self.presc)
        self.assertEqual(result[0].type, ProgressionType.ADD_REPS)
        self.assertEqual(result[0].target_reps, 10)
        self.assertIn("9.0", result[0].message)

    def test_target_is_capped_at_max(self) -> None:
        sets = [_set(1, "working", 40.0, 12), _set(2, "working", 40.0, 11)]
        result = suggest_progression(SchemeType.DOUBLE_PROGRESSION, sets, self.presc)
        self.assertEqual(result[0].target_reps, 12)

    def test_sloppy_set_blocks_weight_increase(self) -> None:
        sets = [_set(1, "working", 40.0, 12), _set(2, "working", 40.0, 12, "sloppy")]
        result = suggest_progression(SchemeType.DOUBLE_PROGRESSION, sets, self.presc)
        self.assertEqual(result[0].type, ProgressionType.ADD_REPS)

    def test_no_working_sets(self) -> None:
        sets = [_set(1, "warmup", 20.0, 10)]
        result = suggest_progression(SchemeType.DOUBLE_PROGRESSION, sets, self.presc)
        self.assertEqual(result[0].type, ProgressionType.ESTABLISH_BASELINE)

    def test_pyramid_up_progresses_like_double(self) -> None:
        sets = [_set(i, "working", 40.0, 12) for i in (1, 2)]
        double = suggest_progression(SchemeType.DOUBLE_PROGRESSION, sets, self.presc)
        pyramid = suggest_progression(SchemeType.PYRAMID_UP, sets, self.presc)
        self.assertEqual(double, pyramid)


class TripleProgressionTest(unittest.TestCase):
    def setUp(self) -> None:
        self.presc = Prescription(
            id="p1",
            scheme=SchemeType.TOP_SET_BACKOFF_TRIPLE,
            reps_min=12,
            reps_max=12,
            current_phase_reps=12,
        )

    def _suggest(self, sets, baselines=None):
        return suggest_progression(
            SchemeType.TOP_SET_BACKOFF_TRIPLE, sets, self.presc, baselines
        )

    def test_three_clean_reps_over_baseline_adds_weight(self) -> None:
        result = self._suggest([_set(1, "top", 60.0, 15)])
        self.assertEqual(len(result), 1)
        s = result[0]
        self.assertEqual(s.type, ProgressionType.ADD_WEIGHT)
        self.assertAlmostEqual(s.target_weight, 62.5)
        self.assertEqual(s.target_reps, 12)
        self.assertEqual(s.set_number, 1)

    def test_sloppy_top_set_never_adds_weight(self) -> None:
        for reps in (8, 12, 15, 20):
            result = self._suggest([_set(1, "top", 60.0, reps, "sloppy")])
            self.assertEqual(result[0].type, ProgressionType.IMPROVE_QUALITY)
            self.assertEqual(result[0].confidence, Confidence.HIGH)

    def test_ok_quality_over_baseline_improves_quality(self) -> None:
        result = self._suggest([_set(1, "top", 60.0, 15, "ok")])
        self.assertEqual(result[0].type, ProgressionType.IMPROVE_QUALITY)
        self.assertEqual(result[0].confidence, Confidence.MEDIUM)

    def test_at_baseline_adds_rep(self) -> None:
        result = self._suggest([_set(1, "top", 60.0, 12)])
        self.assertEqual(result[0].type, ProgressionType.ADD_REPS)
        self.assertEqual(result[0].target_reps, 13)
        self.assertEqual(result[0].message, "Top set: Try for 13 reps at 60kg")

    def test_message_keeps_full_weight(self) -> None:
        result = self._suggest([_set(1, "top", 123456.25, 12)])
        self.assertEqual(result[0].message, "Top set: Try for 13 reps at 123456.25kg")

    def test_baseline_overrides_phase_reps(self) -> None:
        baselines = [Baseline(set_number=1, weight_kg=60.0, reps=10, phase_reps=12)]
        result = self._suggest([_set(1, "top", 60.0, 13)], baselines)
        self.assertEqual(result[0].type, ProgressionType.ADD_WEIGHT)
        self.assertEqual(result[0].target_reps, 10)

    def test_backoffs_numbered_from_two_and_sloppy_skipped(self) -> None:
        sets = [
            _set(1, "top", 60.0, 12),
            _set(2, "backoff", 50.0, 15),
            _set(3, "backoff", 50.0, 12, "sloppy"),
            _set(4, "backoff", 50.0, 11, "ok"),
        ]
        result = self._suggest(sets)
        self.assertEqual([s.set_number for s in result], [1, 2, 4])
        self.assertEqual(result[1].type, ProgressionType.ADD_WEIGHT)
        self.assertAlmostEqual(result[1].target_weight, 52.5)
        self.assertEqual(result[1].confidence, Confidence.MEDIUM)
        self.assertEqual(result[2].type, ProgressionType.ADD_REPS)
        self.assertEqual(result[2].target_reps, 12)
        self.assertEqual(result[2].message, "Set 4: Try for 12 reps")

    def test_no_top_or_backoff_sets(self) -> None:
        result = self._suggest([_set(1, "working", 60.0, 12)])
        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].type, ProgressionType.ESTABLISH_BASELINE)

    def test_only_sloppy_backoffs(self) -> None:
        result = self._suggest([_set(1, "backoff", 50.0, 12, "sloppy")])
        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].type, ProgressionType.IMPROVE_QUALITY)
        self.assertEqual(result[0].confidence, Confidence.LOW)


class DynamicDoubleProgressionTest(unittest.TestCase):
    def test_each_set_progresses_independently(self) -> None:
        presc = Prescription(id="p1", reps_min=8, reps_max=12)
        sets = [
            _set(3, "working", 30.0, 9, "sloppy"),
            _set(1, "working", 30.0, 12),
            _set(2, "backoff", 27.5, 12, "sloppy"),
        ]
        result = suggest_progression(
            SchemeType.DYNAMIC_DOUBLE_PROGRESSION, sets, presc
        )
        self.assertEqual([s.set_number for s in result], [1, 2, 3])
        self.assertEqual(result[0].type, ProgressionType.ADD_WEIGHT)
        self.assertAlmostEqual(result[0].target_weight, 32.5)
        self.assertEqual(result[0].target_reps, 8)
        self.assertEqual(result[1].type, ProgressionType.ADD_REPS)
        self.assertEqual(result[1].target_reps, 12)
        self.assertEqual(result[2].target_reps, 10)
        self.assertEqual(result[2].confidence, Confidence.MEDIUM)


class DropSetsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.presc = Prescription(id="p1", reps_min=12, reps_max=15)

    def test_top_set_at_max_adds_small_increment(self) -> None:
        sets = [_set(1, "top", 10.0, 15), _set(2, "drop", 7.5, 10)]
        result = suggest_progression(SchemeType.DROP_SETS, sets, self.presc)
        self.assertEqual(result[0].type, ProgressionType.ADD_WEIGHT)
        self.assertAlmostEqual(result[0].target_weight, 11.25)
        self.assertEqual(result[0].confidence, Confidence.MEDIUM)

    def test_otherwise_maintain(self) -> None:
        sets = [_set(1, "top", 10.0, 13)]
        result = suggest_progression(SchemeType.DROP_SETS, sets, self.presc)
        self.assertEqual(result[0].type, ProgressionType.MAINTAIN)
        self.assertEqual(result[0].confidence, Confidence.HIGH)

    def test_missing_top_set(self) -> None:
        sets = [_set(1, "drop", 7.5, 10)]
        result = suggest_progression(SchemeType.DROP_SETS, sets, self.presc)
        self.assertEqual(result[0].type, ProgressionType.ESTABLISH_BASELINE)


class AmrapTest(unittest.TestCase):
    def setUp(self) -> None:
        self.presc = Prescription(id="p1", reps_min=10, reps_max=20)

    def test_twenty_reps_adds_weight(self) -> None:
        sets = [_set(i + 1, "working", 0.0, r) for i, r in enumerate([18, 22, 19])]
        result = suggest_progression(SchemeType.AMRAP, sets, self.presc)
        self.assertEqual(result[0].type, ProgressionType.ADD_WEIGHT)

    def test_below_threshold_beats_max(self) -> None:
        sets = [_set(i + 1, "warmup", 0.0, r) for i, r in enumerate([14, 16, 15])]
        result = suggest_progression(SchemeType.AMRAP, sets, self.presc)
        self.assertEqual(result[0].type, ProgressionType.ADD_REPS)
        self.assertEqual(result[0].target_reps, 17)
        self.assertIn("avg: 15.0", result[0].message)


class RestPauseTest(unittest.TestCase):
    def test_first_rest_pause_set_is_used(self) -> None:
        presc = Prescription(id="p1", reps_min=15, reps_max=30)
        sets = [
            _set(1, "working", 80.0, 10),
            _set(2, "rest_pause", 80.0, 22),
            _set(3, "rest_pause", 80.0, 30),
        ]
        result = suggest_progression(SchemeType.REST_PAUSE, sets, presc)
        self.assertEqual(result[0].target_reps, 23)
        self.assertEqual(result[0].message, "Beat 22 total reps at 80kg")

    def test_missing_rest_pause_set(self) -> None:
        presc = Prescription(id="p1")
        result = suggest_progression(
            SchemeType.REST_PAUSE, [_set(1, "working", 80.0, 10)], presc
        )
        self.assertEqual(result[0].type, ProgressionType.ESTABLISH_BASELINE)


class ClusterSetTest(unittest.TestCase):
    def test_cluster_reps_are_summed(self) -> None:
        presc = Prescription(id="p1")
        sets = [
            _set(1, "working", 20.0, 4, modifiers=("cluster",)),
            _set(2, "working", 20.0, 5, modifiers=["cluster", "paused"]),
            _set(3, "working", 20.0, 9),
        ]
        result = suggest_progression(SchemeType.CLUSTER_SET, sets, presc)
        self.assertEqual(result[0].type, ProgressionType.ADD_REPS)
        self.assertEqual(result[0].target_reps, 14)
        self.assertEqual(result[0].confidence, Confidence.MEDIUM)

    def test_no_cluster_records(self) -> None:
        presc = Prescription(id="p1")
        result = suggest_progression(
            SchemeType.CLUSTER_SET, [_set(1, "working", 20.0, 5)], presc
        )
        self.assertEqual(result[0].type, ProgressionType.ESTABLISH_BASELINE)


class DeterminismTest(unittest.TestCase):
    def test_same_input_same_output_and_no_mutation(self) -> None:
        presc = Prescription(id="p1", scheme=SchemeType.TOP_SET_BACKOFF_TRIPLE)
        sets = [_set(1, "top", 60.0, 14, "ok"), _set(2, "backoff", 50.0, 12)]
        snapshot = list(sets)
        first = suggest_progression(presc.scheme, sets, presc)
        second = suggest_progression(presc.scheme, sets, presc)
        self.assertEqual(first, second)
        self.assertEqual(sets, snapshot)


if __name__ == "__main__":
    unittest.main()
