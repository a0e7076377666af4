import os
import sys
import unittest
import yaml

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import YamlConfig
from db import SettingsRepository
from settings_schema import validate_settings


class SettingsTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_settings.db"
        self.yaml_path = "test_settings_sync.yaml"
        self._cleanup()

    def tearDown(self) -> None:
        self._cleanup()

    def _cleanup(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_defaults_written_to_yaml(self) -> None:
        repo = SettingsRepository(self.db_path, self.yaml_path)
        self.assertEqual(repo.get_text("weight_unit", ""), "kg")
        self.assertEqual(repo.get_int("current_week", 0), 1)
        with open(self.yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        self.assertEqual(data["current_plan_id"], "plan-a")
        self.assertEqual(data["current_phase"], 1)

    def test_yaml_edits_are_picked_up(self) -> None:
        repo = SettingsRepository(self.db_path, self.yaml_path)
        YamlConfig(self.yaml_path).save({"weight_unit": "lb", "current_week": 7})
        self.assertEqual(repo.get_text("weight_unit", "kg"), "lb")
        self.assertEqual(repo.get_int("current_week", 1), 7)

    def test_invalid_values_rejected(self) -> None:
        repo = SettingsRepository(self.db_path, self.yaml_path)
        with self.assertRaises(ValueError):
            repo.set_text("weight_unit", "stone")
        with self.assertRaises(ValueError):
            repo.set_int("current_week", 13)
        self.assertEqual(repo.get_text("weight_unit", ""), "kg")

    def test_invalid_yaml_rejected(self) -> None:
        with open(self.yaml_path, "w", encoding="utf-8") as f:
            f.write("- just\n- a list\n")
        with self.assertRaises(ValueError):
            SettingsRepository(self.db_path, self.yaml_path)

    def test_validate_settings(self) -> None:
        validate_settings({"weight_unit": "kg", "current_phase": 3})
        with self.assertRaises(ValueError):
            validate_settings({"current_phase": 4})


if __name__ == "__main__":
    unittest.main()
