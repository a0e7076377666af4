import datetime
import os
from typing import Dict, List

from fastapi import APIRouter, Body, FastAPI, HTTPException

from config import APP_VERSION
from db import (
    AsyncSetLogRepository,
    BaselineRepository,
    ExerciseBlockRepository,
    ExerciseRepository,
    PlanRepository,
    PrescriptionRepository,
    ProgramRepository,
    SessionNoteRepository,
    SessionRepository,
    SetLogRepository,
    SettingsRepository,
    WorkoutDayRepository,
)
from models import Baseline, Prescription, SetLog
from algorithms.math_tools import MathTools
from algorithms.weight_converter import WeightConverter
from planner_service import PlannerService
from progression_service import ProgressionService
from stats_service import StatisticsService


def _http_error(e: ValueError) -> HTTPException:
    status = 404 if "not found" in str(e) else 400
    return HTTPException(status_code=status, detail=str(e))


def _set_from_dict(data: Dict, index: int = 0) -> SetLog:
    if "weight" not in data and "weight_kg" not in data:
        raise ValueError(f"set {index + 1} is missing its weight")
    return SetLog(
        set_number=int(data.get("set_number", index + 1)),
        set_type=data.get("set_type", "working"),
        weight_kg=float(data["weight"] if "weight" in data else data["weight_kg"]),
        reps=int(data["reps"]),
        rep_quality=data.get("rep_quality", "ok"),
        external_load_kg=float(data.get("external_load", data.get("external_load_kg", 0.0))),
        modifiers=tuple(data.get("modifiers", ())),
        rpe=data.get("rpe"),
        notes=data.get("notes", ""),
        prescription_id=data.get("prescription_id"),
    )


class GymAPI:
    """Provides REST endpoints for workout logging and progression."""

    def __init__(
        self,
        db_path: str = "workout.db",
        yaml_path: str = "settings.yaml",
    ) -> None:
        self.db_path = db_path
        self.settings = SettingsRepository(db_path, yaml_path)
        self.programs = ProgramRepository(db_path)
        self.plans = PlanRepository(db_path)
        self.days = WorkoutDayRepository(db_path)
        self.exercise_catalog = ExerciseRepository(db_path)
        self.blocks = ExerciseBlockRepository(db_path)
        self.prescriptions = PrescriptionRepository(db_path)
        self.sessions = SessionRepository(db_path)
        self.sets = SetLogRepository(db_path)
        self.async_sets = AsyncSetLogRepository(db_path)
        self.baselines = BaselineRepository(db_path)
        self.notes = SessionNoteRepository(db_path)
        self.progression = ProgressionService(
            self.prescriptions, self.sets, self.baselines
        )
        self.planner = PlannerService(
            self.settings,
            self.plans,
            self.days,
            self.prescriptions,
            self.sessions,
            self.sets,
            self.baselines,
        )
        self.statistics = StatisticsService(self.sets, self.sessions)
        self.app = FastAPI(
            title="Iron Log API",
            description="REST API for workout logging and progression suggestions",
            version=APP_VERSION,
        )
        self._setup_routes()

    def _setup_routes(self) -> None:
        program_router = APIRouter(tags=["Program"])
        session_router = APIRouter(prefix="/sessions", tags=["Sessions"])
        settings_router = APIRouter(prefix="/settings", tags=["Settings"])
        tools_router = APIRouter(prefix="/tools", tags=["Tools"])

        @self.app.get("/health")
        def health():
            return {"status": "ok", "version": APP_VERSION}

        @program_router.get("/programs")
        def list_programs():
            return [
                {"id": pid, "name": name, "description": desc}
                for pid, name, desc, _created in self.programs.fetch_all_programs()
            ]

        @program_router.get("/programs/{program_id}/plans")
        def list_plans(program_id: str):
            return [
                {"id": pid, "name": name, "days_per_week": days}
                for pid, name, days in self.plans.fetch_for_program(program_id)
            ]

        @program_router.get("/plans/{plan_id}/days")
        def list_days(plan_id: str):
            return [
                {
                    "id": did,
                    "day_number": number,
                    "name": name,
                    "focus": focus,
                    "estimated_duration": duration,
                }
                for did, number, name, focus, duration in self.days.fetch_for_plan(plan_id)
            ]

        @program_router.get(
            "/days/{day_id}/exercises",
            summary="List prescriptions",
            description="Prescribed exercises of a workout day in order.",
        )
        def list_day_exercises(day_id: str):
            try:
                self.days.fetch_detail(day_id)
            except ValueError as e:
                raise _http_error(e)
            names = {
                e["id"]: e["name"] for e in self.exercise_catalog.fetch_all_exercises()
            }
            result = []
            for p in self.prescriptions.fetch_for_day(day_id):
                item = p.to_dict()
                item["exercise_name"] = names.get(p.exercise_id, p.exercise_id)
                result.append(item)
            return result

        @program_router.get("/exercises")
        def list_exercises(category: str | None = None):
            return self.exercise_catalog.fetch_all_exercises(category)

        @program_router.get("/exercises/{exercise_id}")
        def get_exercise(exercise_id: str):
            try:
                return self.exercise_catalog.fetch_detail(exercise_id)
            except ValueError as e:
                raise _http_error(e)

        @program_router.get(
            "/exercises/{exercise_id}/history",
            summary="Exercise history",
            description="Best set and estimated 1RM per completed session, oldest first.",
        )
        def exercise_history(exercise_id: str, limit: int = 20):
            return self.statistics.exercise_history(exercise_id, limit)

        @program_router.get("/exercises/{exercise_id}/stats")
        def exercise_stats(exercise_id: str):
            stats = self.statistics.key_lift_stats(exercise_id)
            stats["trend"] = self.statistics.e1rm_trend(exercise_id)
            return stats

        @program_router.get(
            "/prescriptions/{prescription_id}/suggestions",
            summary="Progression suggestions",
            description="Suggestions for the next session derived from the last completed one.",
        )
        def get_suggestions(prescription_id: str):
            try:
                return [
                    s.to_dict()
                    for s in self.progression.suggestions_for(prescription_id)
                ]
            except ValueError as e:
                raise _http_error(e)

        @program_router.post(
            "/suggestions/preview",
            summary="Preview suggestions",
            description="Run the progression engine on supplied data without storing anything.",
        )
        def preview_suggestions(
            scheme: str = Body(...),
            prescription: Dict = Body(...),
            sets: List[Dict] = Body(...),
            baselines: List[Dict] = Body([]),
        ):
            try:
                presc = Prescription(**{"id": "preview", "scheme": scheme, **prescription})
                logs = [_set_from_dict(s, i) for i, s in enumerate(sets)]
                marks = [
                    Baseline(
                        set_number=int(b["set_number"]),
                        weight_kg=float(b.get("weight", b.get("weight_kg", 0.0))),
                        reps=int(b["reps"]),
                        phase_reps=int(b.get("phase_reps", presc.current_phase_reps)),
                    )
                    for b in baselines
                ]
                result = self.progression.preview(scheme, presc, logs, marks)
            except (KeyError, TypeError, ValueError) as e:
                raise HTTPException(status_code=400, detail=str(e))
            return [s.to_dict() for s in result]

        @program_router.get("/prescriptions/{prescription_id}/baselines")
        def list_baselines(prescription_id: str, phase_reps: int | None = None):
            return [
                b.to_dict()
                for b in self.baselines.fetch_for_prescription(prescription_id, phase_reps)
            ]

        @program_router.post("/prescriptions/{prescription_id}/baselines")
        def create_baseline(
            prescription_id: str,
            set_number: int,
            weight: float,
            reps: int,
            phase_reps: int | None = None,
        ):
            try:
                presc = self.prescriptions.fetch(prescription_id)
                baseline = self.baselines.establish(
                    presc.id,
                    presc.exercise_id,
                    set_number,
                    weight,
                    reps,
                    phase_reps or presc.current_phase_reps,
                )
            except ValueError as e:
                raise _http_error(e)
            return baseline.to_dict()

        @self.app.put("/sets/{set_id}")
        def update_set(
            set_id: int,
            weight: float | None = None,
            reps: int | None = None,
            set_type: str | None = None,
            rep_quality: str | None = None,
            external_load: float | None = None,
            rpe: int | None = None,
            notes: str | None = None,
        ):
            try:
                self.sets.update(
                    set_id,
                    weight_kg=weight,
                    reps=reps,
                    set_type=set_type,
                    rep_quality=rep_quality,
                    external_load_kg=external_load,
                    rpe=rpe,
                    notes=notes,
                )
            except ValueError as e:
                raise _http_error(e)
            return {"status": "updated"}

        @self.app.delete("/sets/{set_id}")
        async def delete_set(set_id: int):
            try:
                await self.async_sets.remove(set_id)
            except ValueError as e:
                raise _http_error(e)
            return {"status": "deleted"}

        @session_router.post(
            "",
            summary="Start session",
            description="Start a workout session for a day of a plan.",
        )
        def create_session(day_id: str, plan_id: str | None = None, bodyweight: float | None = None):
            try:
                session_id = self.planner.start_session(day_id, plan_id, bodyweight)
            except ValueError as e:
                raise _http_error(e)
            return {"id": session_id}

        @session_router.get("/{session_id}")
        def get_session(session_id: int):
            try:
                detail = self.sessions.fetch_detail(session_id)
            except ValueError as e:
                raise _http_error(e)
            detail["notes_by_exercise"] = [
                {"id": nid, "exercise_id": ex, "note": note}
                for nid, ex, note, _created in self.notes.fetch_for_session(session_id)
            ]
            return detail

        @session_router.get("/{session_id}/sets")
        async def list_session_sets(session_id: int, prescription_id: str | None = None):
            rows = await self.async_sets.fetch_for_session(session_id, prescription_id)
            return [s.to_dict() for s in rows]

        @session_router.post(
            "/{session_id}/sets",
            summary="Log set",
            description="Log a set; the set number is assigned per prescription.",
        )
        async def add_set(
            session_id: int,
            prescription_id: str,
            weight: float,
            reps: int,
            set_type: str = "working",
            rep_quality: str = "ok",
            external_load: float = 0.0,
            rpe: int | None = None,
            modifiers: str = "",
            notes: str = "",
        ):
            try:
                set_id = await self.async_sets.add(
                    session_id,
                    prescription_id,
                    weight,
                    reps,
                    set_type=set_type,
                    rep_quality=rep_quality,
                    external_load_kg=external_load,
                    rpe=rpe,
                    notes=notes,
                    modifiers=[m for m in modifiers.split(",") if m],
                )
            except ValueError as e:
                raise _http_error(e)
            logged = await self.async_sets.fetch_detail(set_id)
            return {"id": set_id, "set_number": logged.set_number}

        @session_router.post("/{session_id}/notes")
        def add_note(session_id: int, exercise_id: str, note: str):
            try:
                self.sessions.fetch_detail(session_id)
                nid = self.notes.add(session_id, exercise_id, note)
            except ValueError as e:
                raise _http_error(e)
            return {"id": nid}

        @session_router.post(
            "/{session_id}/finish",
            summary="Finish session",
            description="Store buffered sets and mark the session completed in one step.",
        )
        def finish_session(session_id: int, sets: List[Dict] = Body([])):
            try:
                logs = [_set_from_dict(s, i) for i, s in enumerate(sets)]
            except (KeyError, TypeError, ValueError) as e:
                raise HTTPException(status_code=400, detail=str(e))
            try:
                result = self.planner.finish_session(session_id, logs)
            except ValueError as e:
                raise _http_error(e)
            self.async_sets.release_session(session_id)
            return {"status": "completed", **result}

        @session_router.get("/{session_id}/summary")
        def session_summary(session_id: int):
            try:
                return self.statistics.session_summary(session_id)
            except ValueError as e:
                raise _http_error(e)

        @session_router.delete("/{session_id}")
        def delete_session(session_id: int):
            try:
                self.sessions.delete(session_id)
            except ValueError as e:
                raise _http_error(e)
            self.async_sets.release_session(session_id)
            return {"status": "deleted"}

        @settings_router.get("")
        def get_settings():
            data = self.settings.all_settings()
            data.update(self.planner.cycle())
            return data

        @settings_router.post("/week")
        def set_week(week: int):
            try:
                return self.planner.set_week(week)
            except ValueError as e:
                raise _http_error(e)

        @settings_router.post("/advance_week")
        def advance_week():
            return self.planner.advance_week()

        @settings_router.post("/restart")
        def restart_program():
            return self.planner.restart_program()

        @settings_router.post("/plan")
        def set_plan(plan_id: str):
            try:
                self.planner.set_plan(plan_id)
            except ValueError as e:
                raise _http_error(e)
            return {"current_plan_id": plan_id}

        @settings_router.post("/units")
        def set_units(unit: str):
            try:
                self.settings.set_text("weight_unit", unit)
            except ValueError as e:
                raise _http_error(e)
            return {"weight_unit": unit}

        @self.app.get(
            "/today",
            summary="Today's workout",
            description="Workout day scheduled for a date (default today) in the current plan.",
        )
        def today(date: str | None = None):
            try:
                day = datetime.date.fromisoformat(date) if date else None
                scheduled = self.planner.todays_day(day)
            except ValueError as e:
                raise _http_error(e)
            if scheduled is None:
                return {"rest_day": True, "day": None}
            return {"rest_day": False, "day": scheduled}

        @tools_router.get("/e1rm")
        def e1rm(weight: float, reps: int):
            return {"e1rm": MathTools.e1rm(weight, reps)}

        @tools_router.get("/convert")
        def convert(weight: float, unit: str = "kg"):
            try:
                if unit == "kg":
                    value = WeightConverter.kg_to_lb(weight)
                    target = "lb"
                elif unit == "lb":
                    value = WeightConverter.lb_to_kg(weight)
                    target = "kg"
                else:
                    raise ValueError(f"unknown unit {unit}")
            except ValueError as e:
                raise _http_error(e)
            return {"value": value, "unit": target}

        self.app.include_router(program_router)
        self.app.include_router(session_router)
        self.app.include_router(settings_router)
        self.app.include_router(tools_router)


api = GymAPI(os.environ.get("IRONLOG_DB", "workout.db"))
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
