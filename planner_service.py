from __future__ import annotations
import datetime
import logging
from typing import Iterable

from db import (
    BaselineRepository,
    PlanRepository,
    PrescriptionRepository,
    SessionRepository,
    SetLogRepository,
    SettingsRepository,
    WorkoutDayRepository,
)
from models import Baseline, SchemeType, SetLog, SetType

logger = logging.getLogger(__name__)


class PlannerService:
    """Handles the training cycle and the lifecycle of workout sessions."""

    WEEKS_PER_CYCLE = 12
    WEEKS_PER_PHASE = 4
    PHASE_REPS = {1: 12, 2: 8, 3: 5}

    def __init__(
        self,
        settings_repo: SettingsRepository,
        plan_repo: PlanRepository,
        day_repo: WorkoutDayRepository,
        prescription_repo: PrescriptionRepository,
        session_repo: SessionRepository,
        set_repo: SetLogRepository,
        baseline_repo: BaselineRepository,
    ) -> None:
        self.settings = settings_repo
        self.plans = plan_repo
        self.days = day_repo
        self.prescriptions = prescription_repo
        self.sessions = session_repo
        self.sets = set_repo
        self.baselines = baseline_repo

    @classmethod
    def phase_for_week(cls, week: int) -> int:
        if not 1 <= week <= cls.WEEKS_PER_CYCLE:
            raise ValueError(f"week must be between 1 and {cls.WEEKS_PER_CYCLE}")
        return (week - 1) // cls.WEEKS_PER_PHASE + 1

    @classmethod
    def phase_label(cls, phase: int) -> str:
        if phase not in cls.PHASE_REPS:
            raise ValueError("phase must be 1, 2 or 3")
        return f"Phase {phase} ({cls.PHASE_REPS[phase]} reps)"

    def current_plan_id(self) -> str:
        return self.settings.get_text("current_plan_id", "plan-a")

    def cycle(self) -> dict:
        week = self.settings.get_int("current_week", 1)
        phase = self.settings.get_int("current_phase", 1)
        return {
            "week": week,
            "phase": phase,
            "phase_reps": self.PHASE_REPS[phase],
            "label": self.phase_label(phase),
        }

    def set_week(self, week: int) -> dict:
        phase = self.phase_for_week(week)
        self.settings.set_int("current_week", week)
        self.settings.set_int("current_phase", phase)
        self.apply_phase_reps()
        logger.info("training week set to %d (phase %d)", week, phase)
        return self.cycle()

    def advance_week(self) -> dict:
        week = self.settings.get_int("current_week", 1) + 1
        if week > self.WEEKS_PER_CYCLE:
            week = 1
        return self.set_week(week)

    def restart_program(self) -> dict:
        return self.set_week(1)

    def set_plan(self, plan_id: str) -> None:
        self.plans.fetch_detail(plan_id)
        self.settings.set_text("current_plan_id", plan_id)
        self.apply_phase_reps()
        logger.info("current plan set to %s", plan_id)

    def apply_phase_reps(self) -> int:
        """Point triple-progression prescriptions of the current plan at the
        current phase's target reps."""
        phase = self.settings.get_int("current_phase", 1)
        return self.prescriptions.set_phase_reps(
            self.current_plan_id(), self.PHASE_REPS[phase]
        )

    def todays_day(self, date: datetime.date | None = None) -> dict | None:
        """Return the scheduled workout day for ``date`` or ``None`` on Sundays."""
        date = date or datetime.date.today()
        weekday = date.isoweekday()
        if weekday == 7:
            return None
        _pid, _prog, _name, days_per_week = self.plans.fetch_detail(
            self.current_plan_id()
        )
        day_number = min(weekday, days_per_week)
        for day_id, number, name, focus, duration in self.days.fetch_for_plan(
            self.current_plan_id()
        ):
            if number == day_number:
                return {
                    "id": day_id,
                    "day_number": number,
                    "name": name,
                    "focus": focus,
                    "estimated_duration": duration,
                }
        return None

    def start_session(
        self, day_id: str, plan_id: str | None = None, bodyweight_kg: float | None = None
    ) -> int:
        _did, day_plan, _num, _name, _focus, _dur = self.days.fetch_detail(day_id)
        if plan_id is not None and plan_id != day_plan:
            raise ValueError("day does not belong to plan")
        session_id = self.sessions.create(
            day_plan, day_id, bodyweight_kg=bodyweight_kg
        )
        logger.info("session %d started for %s", session_id, day_id)
        return session_id

    def finish_session(
        self, session_id: int, sets: Iterable[SetLog] = ()
    ) -> dict:
        set_ids = self.sessions.complete(session_id, sets)
        baselines = self.establish_baselines(session_id)
        return {"set_ids": set_ids, "baselines": len(baselines)}

    def establish_baselines(self, session_id: int) -> list[Baseline]:
        """Record missing baselines from a session's top and backoff sets."""
        detail = self.sessions.fetch_detail(session_id)
        created: list[Baseline] = []
        for presc in self.prescriptions.fetch_for_day(detail["day_id"]):
            if presc.scheme is not SchemeType.TOP_SET_BACKOFF_TRIPLE:
                continue
            logged = self.sets.fetch_for_session(session_id, presc.id)
            top = next((s for s in logged if s.set_type is SetType.TOP), None)
            backoffs = [s for s in logged if s.set_type is SetType.BACKOFF]
            numbered = [(1, top)] if top is not None else []
            numbered += [(i + 2, s) for i, s in enumerate(backoffs)]
            for set_number, s in numbered:
                if self.baselines.find(presc.id, set_number, presc.current_phase_reps):
                    continue
                created.append(
                    self.baselines.establish(
                        presc.id,
                        presc.exercise_id,
                        set_number,
                        s.weight_kg,
                        s.reps,
                        presc.current_phase_reps,
                    )
                )
        return created
