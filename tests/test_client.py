import os
import sys
import unittest
from unittest import mock
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import IronLogClient
from rest_api import GymAPI
from seed_sample_data import seed


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_client.db"
        self.yaml_path = "test_client.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        seed(self.db_path, self.yaml_path)
        self.api = GymAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.test_client = TestClient(self.api.app)
        self.client = IronLogClient(base_url="http://testserver/")
        patcher_get = mock.patch("client.requests.get", self.test_client.get)
        patcher_post = mock.patch("client.requests.post", self.test_client.post)
        patcher_get.start()
        patcher_post.start()
        self.addCleanup(patcher_get.stop)
        self.addCleanup(patcher_post.stop)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_logging_round_trip(self) -> None:
        sid = self.client.start_session("day-a1", plan_id="plan-a")
        self.assertIsInstance(sid, int)
        self.client.log_set(sid, "de-day-a1-6", 0.0, 15, set_type="working", rep_quality="clean")
        self.client.log_set(sid, "de-day-a1-6", 0.0, 15, set_type="working", rep_quality="clean")
        result = self.client.finish_session(sid)
        self.assertEqual(result["status"], "completed")

        suggestions = self.client.suggestions("de-day-a1-6")
        self.assertEqual(suggestions[0]["type"], "add_weight")
        self.assertAlmostEqual(suggestions[0]["target_weight"], 2.5)

        stats = self.client.exercise_stats("pullup-bw")
        self.assertEqual(stats["last_reps"], 15)

    def test_errors_raise(self) -> None:
        with self.assertRaises(Exception):
            self.client.start_session("day-a1", plan_id="plan-b")
        with self.assertRaises(Exception):
            self.client.suggestions("missing")


if __name__ == "__main__":
    unittest.main()
