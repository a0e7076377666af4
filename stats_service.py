from __future__ import annotations
from typing import Dict, List

from db import SessionRepository, SetLogRepository
from algorithms.math_tools import MathTools


class StatisticsService:
    """Compute workout statistics for analysis."""

    KEY_LIFT_WINDOW = 10

    def __init__(
        self,
        set_repo: SetLogRepository,
        session_repo: SessionRepository,
    ) -> None:
        self.sets = set_repo
        self.sessions = session_repo

    def session_summary(self, session_id: int) -> Dict[str, object]:
        detail = self.sessions.fetch_detail(session_id)
        logged = self.sets.fetch_for_session(session_id)
        best = MathTools.best_set(logged)
        return {
            "session_id": session_id,
            "date": detail["date"],
            "completed": detail["completed"],
            "sets": len(logged),
            "exercises": len({s.exercise_id for s in logged}),
            "volume": round(MathTools.session_volume(logged), 2),
            "best_set": best.to_dict() if best is not None else None,
        }

    def exercise_history(
        self, exercise_id: str, limit: int = 20
    ) -> List[Dict[str, float | int | str]]:
        """Per-session best set and estimated 1RM, oldest first."""
        result: List[Dict[str, float | int | str]] = []
        for sets in self.sets.fetch_history(exercise_id, limit):
            best = MathTools.best_set(sets)
            if best is None:
                continue
            detail = self.sessions.fetch_detail(best.session_id)
            result.append(
                {
                    "session_id": best.session_id,
                    "date": detail["date"],
                    "weight": best.weight_kg,
                    "reps": best.reps,
                    "e1rm": round(MathTools.e1rm(best.effective_weight, best.reps), 1),
                    "volume": round(MathTools.session_volume(sets), 2),
                }
            )
        return result

    def key_lift_stats(self, exercise_id: str) -> Dict[str, float | int | None]:
        history = self.exercise_history(exercise_id, self.KEY_LIFT_WINDOW)
        if not history:
            return {"best_e1rm": None, "last_weight": None, "last_reps": None}
        last = history[-1]
        return {
            "best_e1rm": max(float(h["e1rm"]) for h in history),
            "last_weight": last["weight"],
            "last_reps": last["reps"],
        }

    def e1rm_trend(self, exercise_id: str, limit: int = 20) -> float:
        """Least-squares slope of e1RM per session."""
        values = [float(h["e1rm"]) for h in self.exercise_history(exercise_id, limit)]
        return round(MathTools.trend_slope(values), 3)
