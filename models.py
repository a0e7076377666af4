from __future__ import annotations
import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SchemeType(str, Enum):
    """Training schemes a prescription can be programmed with."""

    TOP_SET_BACKOFF_TRIPLE = "TOP_SET_BACKOFF_TRIPLE"
    DOUBLE_PROGRESSION = "DOUBLE_PROGRESSION"
    DYNAMIC_DOUBLE_PROGRESSION = "DYNAMIC_DOUBLE_PROGRESSION"
    DROP_SETS = "DROP_SETS"
    CLUSTER_SET = "CLUSTER_SET"
    AMRAP = "AMRAP"
    PYRAMID_UP = "PYRAMID_UP"
    REST_PAUSE = "REST_PAUSE"


class SetType(str, Enum):
    WARMUP = "warmup"
    TOP = "top"
    BACKOFF = "backoff"
    DROP = "drop"
    WORKING = "working"
    REST_PAUSE = "rest_pause"


class RepQuality(str, Enum):
    CLEAN = "clean"
    OK = "ok"
    SLOPPY = "sloppy"


class ProgressionType(str, Enum):
    ADD_REPS = "add_reps"
    IMPROVE_QUALITY = "improve_quality"
    ADD_WEIGHT = "add_weight"
    MAINTAIN = "maintain"
    ESTABLISH_BASELINE = "establish_baseline"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Prescription:
    """Prescribed sets/reps for one exercise on one workout day."""

    id: str
    scheme: SchemeType = SchemeType.DOUBLE_PROGRESSION
    day_id: str = ""
    exercise_id: str = ""
    order: int = 0
    sets_min: int = 2
    sets_max: int = 3
    reps_min: int = 8
    reps_max: int = 12
    current_phase_reps: int = 12
    rest_seconds: int = 120
    is_optional: bool = False
    notes: str = ""
    block_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "scheme", SchemeType(self.scheme))
        if self.reps_min > self.reps_max:
            raise ValueError("reps_min must not exceed reps_max")
        if self.sets_min > self.sets_max:
            raise ValueError("sets_min must not exceed sets_max")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "day_id": self.day_id,
            "exercise_id": self.exercise_id,
            "order": self.order,
            "scheme": self.scheme.value,
            "sets_min": self.sets_min,
            "sets_max": self.sets_max,
            "reps_min": self.reps_min,
            "reps_max": self.reps_max,
            "current_phase_reps": self.current_phase_reps,
            "rest_seconds": self.rest_seconds,
            "is_optional": self.is_optional,
            "notes": self.notes,
            "block_id": self.block_id,
        }


@dataclass(frozen=True)
class SetLog:
    """One logged set of one prescription within a session."""

    set_number: int
    set_type: SetType
    weight_kg: float
    reps: int
    rep_quality: RepQuality = RepQuality.OK
    external_load_kg: float = 0.0
    modifiers: tuple[str, ...] = ()
    rpe: Optional[int] = None
    tempo: Optional[str] = None
    notes: str = ""
    timestamp: Optional[datetime.datetime] = None
    id: Optional[int] = None
    session_id: Optional[int] = None
    exercise_id: Optional[str] = None
    prescription_id: Optional[str] = None
    block_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "set_type", SetType(self.set_type))
        object.__setattr__(self, "rep_quality", RepQuality(self.rep_quality))
        object.__setattr__(self, "modifiers", tuple(self.modifiers))

    @property
    def effective_weight(self) -> float:
        """Logged weight net of added resistance or assistance."""
        return self.weight_kg + self.external_load_kg

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "exercise_id": self.exercise_id,
            "prescription_id": self.prescription_id,
            "block_id": self.block_id,
            "set_number": self.set_number,
            "set_type": self.set_type.value,
            "weight_kg": self.weight_kg,
            "external_load_kg": self.external_load_kg,
            "reps": self.reps,
            "rpe": self.rpe,
            "rep_quality": self.rep_quality.value,
            "tempo": self.tempo,
            "notes": self.notes,
            "modifiers": list(self.modifiers),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


@dataclass(frozen=True)
class Baseline:
    """Reference performance for one set number of a prescription."""

    set_number: int
    weight_kg: float
    reps: int
    phase_reps: int
    prescription_id: Optional[str] = None
    exercise_id: Optional[str] = None
    established_at: Optional[datetime.datetime] = None
    id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "prescription_id": self.prescription_id,
            "exercise_id": self.exercise_id,
            "set_number": self.set_number,
            "weight_kg": self.weight_kg,
            "reps": self.reps,
            "phase_reps": self.phase_reps,
            "established_at": (
                self.established_at.isoformat() if self.established_at else None
            ),
        }


@dataclass(frozen=True)
class Suggestion:
    """A single progression hint produced by the engine."""

    type: ProgressionType
    message: str
    short_message: str
    confidence: Confidence
    reasoning: str
    target_reps: Optional[int] = None
    target_weight: Optional[float] = None
    set_number: Optional[int] = None

    def to_dict(self) -> dict:
        data = {
            "type": self.type.value,
            "message": self.message,
            "short_message": self.short_message,
            "confidence": self.confidence.value,
            "reasoning": self.reasoning,
        }
        if self.target_reps is not None:
            data["target_reps"] = self.target_reps
        if self.target_weight is not None:
            data["target_weight"] = self.target_weight
        if self.set_number is not None:
            data["set_number"] = self.set_number
        return data
