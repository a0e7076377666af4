import requests
from typing import Optional


class IronLogClient:
    """Simple REST client for the Iron Log API."""

    def __init__(self, base_url: str = "http://localhost:8000") -> None:
        self.base_url = base_url.rstrip("/")

    def start_session(self, day_id: str, plan_id: Optional[str] = None) -> int:
        params = {"day_id": day_id}
        if plan_id is not None:
            params["plan_id"] = plan_id
        resp = requests.post(f"{self.base_url}/sessions", params=params)
        resp.raise_for_status()
        return resp.json()["id"]

    def log_set(
        self,
        session_id: int,
        prescription_id: str,
        weight: float,
        reps: int,
        **params: str,
    ) -> int:
        resp = requests.post(
            f"{self.base_url}/sessions/{session_id}/sets",
            params={
                "prescription_id": prescription_id,
                "weight": weight,
                "reps": reps,
                **params,
            },
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def finish_session(self, session_id: int, sets: Optional[list[dict]] = None) -> dict:
        resp = requests.post(
            f"{self.base_url}/sessions/{session_id}/finish", json=sets or []
        )
        resp.raise_for_status()
        return resp.json()

    def suggestions(self, prescription_id: str) -> list[dict]:
        resp = requests.get(
            f"{self.base_url}/prescriptions/{prescription_id}/suggestions"
        )
        resp.raise_for_status()
        return resp.json()

    def exercise_stats(self, exercise_id: str) -> dict:
        resp = requests.get(f"{self.base_url}/exercises/{exercise_id}/stats")
        resp.raise_for_status()
        return resp.json()
