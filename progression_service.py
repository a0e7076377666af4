from __future__ import annotations
import logging
from typing import Iterable

from db import (
    BaselineRepository,
    PrescriptionRepository,
    SetLogRepository,
)
from models import Baseline, Prescription, SchemeType, SetLog, Suggestion
from algorithms.progression_engine import ProgressionEngine

logger = logging.getLogger(__name__)


class ProgressionService:
    """Generate next-session suggestions from logged history."""

    def __init__(
        self,
        prescription_repo: PrescriptionRepository,
        set_repo: SetLogRepository,
        baseline_repo: BaselineRepository,
    ) -> None:
        self.prescriptions = prescription_repo
        self.sets = set_repo
        self.baselines = baseline_repo

    def last_performance(self, prescription_id: str) -> list[SetLog]:
        prescription = self.prescriptions.fetch(prescription_id)
        return self.sets.fetch_last_for_exercise(
            prescription.exercise_id, prescription.id
        )

    def suggestions_for(self, prescription_id: str) -> list[Suggestion]:
        """Return engine suggestions for the stored prescription.

        Baselines are restricted to the prescription's current phase reps.
        """
        prescription = self.prescriptions.fetch(prescription_id)
        history = self.sets.fetch_last_for_exercise(
            prescription.exercise_id, prescription.id
        )
        baselines = self.baselines.fetch_for_prescription(
            prescription.id, prescription.current_phase_reps
        )
        suggestions = ProgressionEngine.suggest(
            prescription.scheme, history, prescription, baselines
        )
        logger.debug(
            "%d suggestions for prescription %s", len(suggestions), prescription.id
        )
        return suggestions

    @staticmethod
    def preview(
        scheme: SchemeType | str,
        prescription: Prescription,
        sets: Iterable[SetLog],
        baselines: Iterable[Baseline] = (),
    ) -> list[Suggestion]:
        """Run the engine on caller-supplied data without touching storage."""
        return ProgressionEngine.suggest(scheme, list(sets), prescription, baselines)
