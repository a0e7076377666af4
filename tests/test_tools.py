import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import MathTools, WeightConverter
from models import SetLog


class MathToolsTestCase(unittest.TestCase):
    def test_e1rm(self) -> None:
        self.assertEqual(MathTools.e1rm(100, 1), 100)
        self.assertAlmostEqual(MathTools.e1rm(100, 10), 133.3333, places=3)
        self.assertAlmostEqual(MathTools.e1rm(60, 5), 70.0)
        self.assertEqual(MathTools.e1rm(80, 0), 80)

    def test_volume(self) -> None:
        sets = [(10, 100.0), (5, 150.0)]
        self.assertEqual(MathTools.volume(sets), 10 * 100.0 + 5 * 150.0)
        self.assertEqual(MathTools.volume([]), 0.0)

    def test_session_volume_nets_external_load(self) -> None:
        sets = [
            SetLog(1, "working", 50.0, 10),
            SetLog(2, "working", 0.0, 8, external_load_kg=-5.0),
        ]
        self.assertAlmostEqual(MathTools.session_volume(sets), 460.0)

    def test_best_set_is_stable(self) -> None:
        first = SetLog(1, "working", 100.0, 5)
        second = SetLog(2, "working", 100.0, 5)
        self.assertIs(MathTools.best_set([first, second]), first)
        heavier = SetLog(3, "working", 90.0, 10)
        self.assertIs(MathTools.best_set([first, heavier]), heavier)
        self.assertIsNone(MathTools.best_set([]))

    def test_best_set_uses_net_load(self) -> None:
        assisted = SetLog(1, "working", 0.0, 12, external_load_kg=-20.0)
        weighted = SetLog(2, "working", 0.0, 8, external_load_kg=10.0)
        self.assertIs(MathTools.best_set([assisted, weighted]), weighted)

    def test_average_and_trend(self) -> None:
        self.assertEqual(MathTools.average([]), 0.0)
        self.assertAlmostEqual(MathTools.average([9, 10, 8]), 9.0)
        self.assertEqual(MathTools.trend_slope([100.0]), 0.0)
        self.assertAlmostEqual(MathTools.trend_slope([100.0, 102.0, 104.0]), 2.0)


class WeightConverterTestCase(unittest.TestCase):
    def test_conversion_constant(self) -> None:
        self.assertAlmostEqual(WeightConverter.kg_to_lb(100), 220.462)
        self.assertAlmostEqual(WeightConverter.lb_to_kg(220.462), 100.0)

    def test_round_trip(self) -> None:
        for value in (0, 1, 225):
            self.assertAlmostEqual(
                WeightConverter.kg_to_lb(WeightConverter.lb_to_kg(value)),
                value,
                delta=1e-6,
            )
            self.assertAlmostEqual(
                WeightConverter.lb_to_kg(WeightConverter.kg_to_lb(value)),
                value,
                delta=1e-6,
            )

    def test_format_weight(self) -> None:
        self.assertEqual(WeightConverter.format_weight(100), "100 kg")
        self.assertEqual(WeightConverter.format_weight(62.5, "kg"), "62.5 kg")
        self.assertEqual(WeightConverter.format_weight(100, "lb"), "220.5 lb")
        with self.assertRaises(ValueError):
            WeightConverter.format_weight(100, "stone")


if __name__ == "__main__":
    unittest.main()
