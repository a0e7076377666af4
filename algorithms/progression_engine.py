"""Progression suggestions for the programmed training schemes.

Every scheme is a pure function of the last session's set logs for one
prescription. Suggestions come back as an ordered list; per-set suggestions
carry their ``set_number`` so callers never rely on list position.
"""
from __future__ import annotations
import logging
import math
from typing import Callable, Iterable, Optional, Sequence

from models import (
    Baseline,
    Confidence,
    Prescription,
    ProgressionType,
    RepQuality,
    SchemeType,
    SetLog,
    SetType,
    Suggestion,
)
from .math_tools import MathTools

logger = logging.getLogger(__name__)


def _num(value: float) -> str:
    """Format a number without a trailing ``.0``."""
    return f"{value:.12g}"


class ProgressionEngine(MathTools):
    """Maps a scheme and last performance to next-session targets."""

    WEIGHT_INCREMENT_KG: float = 2.5
    WEIGHT_INCREMENT_KG_SMALL: float = 1.25
    REPS_OVER_BASELINE_FOR_WEIGHT_INCREASE: int = 3
    AMRAP_WEIGHT_THRESHOLD: int = 20
    CLUSTER_REP_STEP: int = 5

    @classmethod
    def suggest(
        cls,
        scheme: SchemeType | str,
        last_performance: Sequence[SetLog],
        prescription: Prescription,
        baselines: Optional[Iterable[Baseline]] = None,
    ) -> list[Suggestion]:
        """Return ordered suggestions for the next session.

        ``scheme`` may be given as a string; values outside the closed set of
        schemes raise ``ValueError``.
        """
        scheme = SchemeType(scheme)
        sets = list(last_performance)
        if not sets:
            return [
                Suggestion(
                    type=ProgressionType.ESTABLISH_BASELINE,
                    message="First session! Establish your baseline performance.",
                    short_message="Set baseline",
                    confidence=Confidence.HIGH,
                    reasoning="No previous data exists for this exercise.",
                )
            ]
        handler = cls._handlers()[scheme]
        logger.debug(
            "suggesting %s for prescription %s from %d sets",
            scheme.value,
            prescription.id,
            len(sets),
        )
        if scheme is SchemeType.TOP_SET_BACKOFF_TRIPLE:
            return handler(sets, prescription, list(baselines or []))
        return handler(sets, prescription)

    @classmethod
    def _handlers(cls) -> dict[SchemeType, Callable[..., list[Suggestion]]]:
        # PYRAMID_UP has no dedicated rules yet and progresses like double progression.
        return {
            SchemeType.TOP_SET_BACKOFF_TRIPLE: cls._triple_progression,
            SchemeType.DOUBLE_PROGRESSION: cls._double_progression,
            SchemeType.DYNAMIC_DOUBLE_PROGRESSION: cls._dynamic_double_progression,
            SchemeType.DROP_SETS: cls._drop_sets,
            SchemeType.CLUSTER_SET: cls._cluster_set,
            SchemeType.AMRAP: cls._amrap,
            SchemeType.PYRAMID_UP: cls._double_progression,
            SchemeType.REST_PAUSE: cls._rest_pause,
        }

    @staticmethod
    def _baseline_reps(
        baselines: Sequence[Baseline], set_number: int, default: int
    ) -> int:
        for b in baselines:
            if b.set_number == set_number:
                return b.reps
        return default

    @classmethod
    def _triple_progression(
        cls,
        sets: list[SetLog],
        prescription: Prescription,
        baselines: list[Baseline],
    ) -> list[Suggestion]:
        """Reps, then quality, then weight on a top set with backoffs."""
        suggestions: list[Suggestion] = []
        top = next((s for s in sets if s.set_type is SetType.TOP), None)
        backoffs = [s for s in sets if s.set_type is SetType.BACKOFF]
        inc = cls.WEIGHT_INCREMENT_KG

        if top is not None:
            baseline_reps = cls._baseline_reps(
                baselines, 1, prescription.current_phase_reps
            )
            over = top.reps - baseline_reps
            if top.rep_quality is RepQuality.SLOPPY:
                suggestions.append(
                    Suggestion(
                        type=ProgressionType.IMPROVE_QUALITY,
                        message=f"Top set: Clean up technique at {_num(top.weight_kg)}kg × {top.reps}",
                        short_message="Clean up form",
                        confidence=Confidence.HIGH,
                        reasoning="Rep quality was marked as sloppy. Improving form before adding reps.",
                        set_number=1,
                    )
                )
            elif (
                over >= cls.REPS_OVER_BASELINE_FOR_WEIGHT_INCREASE
                and top.rep_quality is RepQuality.CLEAN
            ):
                new_weight = top.weight_kg + inc
                suggestions.append(
                    Suggestion(
                        type=ProgressionType.ADD_WEIGHT,
                        message=f"Top set: Add weight! Try {_num(new_weight)}kg × {baseline_reps}",
                        short_message=f"+{_num(inc)}kg",
                        confidence=Confidence.HIGH,
                        reasoning=f"Added {over} reps over baseline with clean form. Time to progress load.",
                        target_reps=baseline_reps,
                        target_weight=new_weight,
                        set_number=1,
                    )
                )
            elif top.rep_quality is RepQuality.OK and over >= 1:
                suggestions.append(
                    Suggestion(
                        type=ProgressionType.IMPROVE_QUALITY,
                        message=f"Top set: Make {top.reps} reps cleaner at {_num(top.weight_kg)}kg",
                        short_message="Improve quality",
                        confidence=Confidence.MEDIUM,
                        reasoning="Good reps, but quality can improve before adding more.",
                        set_number=1,
                    )
                )
            else:
                suggestions.append(
                    Suggestion(
                        type=ProgressionType.ADD_REPS,
                        message=f"Top set: Try for {top.reps + 1} reps at {_num(top.weight_kg)}kg",
                        short_message="+1 rep",
                        confidence=Confidence.HIGH,
                        reasoning="Building toward baseline + 3-4 reps before adding weight.",
                        target_reps=top.reps + 1,
                        set_number=1,
                    )
                )

        # backoff sets are physical sets 2, 3, 4, ...
        for index, s in enumerate(backoffs):
            set_num = index + 2
            baseline_reps = cls._baseline_reps(
                baselines, set_num, prescription.current_phase_reps
            )
            over = s.reps - baseline_reps
            if s.rep_quality is RepQuality.SLOPPY:
                continue
            if over >= cls.REPS_OVER_BASELINE_FOR_WEIGHT_INCREASE:
                new_weight = s.weight_kg + inc
                suggestions.append(
                    Suggestion(
                        type=ProgressionType.ADD_WEIGHT,
                        message=f"Set {set_num}: Add weight! Try {_num(new_weight)}kg",
                        short_message=f"Set {set_num}: +{_num(inc)}kg",
                        confidence=Confidence.MEDIUM,
                        reasoning="Backoff sets progress more quickly. Reps exceeded target.",
                        target_weight=new_weight,
                        set_number=set_num,
                    )
                )
            else:
                suggestions.append(
                    Suggestion(
                        type=ProgressionType.ADD_REPS,
                        message=f"Set {set_num}: Try for {s.reps + 1} reps",
                        short_message=f"Set {set_num}: +1 rep",
                        confidence=Confidence.MEDIUM,
                        reasoning="Continue building reps on backoff sets.",
                        target_reps=s.reps + 1,
                        set_number=set_num,
                    )
                )

        if suggestions:
            return suggestions
        if top is None and not backoffs:
            return [
                Suggestion(
                    type=ProgressionType.ESTABLISH_BASELINE,
                    message="Log a top set followed by 2-3 backoff sets",
                    short_message="Set baseline",
                    confidence=Confidence.HIGH,
                    reasoning="No top or backoff sets recorded",
                )
            ]
        return [
            Suggestion(
                type=ProgressionType.IMPROVE_QUALITY,
                message="Clean up the backoff sets before chasing more reps",
                short_message="Clean up form",
                confidence=Confidence.LOW,
                reasoning="Every backoff set was marked as sloppy.",
            )
        ]

    @classmethod
    def _double_progression(
        cls, sets: list[SetLog], prescription: Prescription
    ) -> list[Suggestion]:
        """Fill the rep range on every working set, then add weight."""
        working = [s for s in sets if s.set_type in (SetType.WORKING, SetType.TOP)]
        if not working:
            return [
                Suggestion(
                    type=ProgressionType.ESTABLISH_BASELINE,
                    message="No working sets recorded. Log your first session!",
                    short_message="Set baseline",
                    confidence=Confidence.HIGH,
                    reasoning="Missing performance data",
                )
            ]

        all_at_max = all(s.reps >= prescription.reps_max for s in working)
        none_sloppy = all(s.rep_quality is not RepQuality.SLOPPY for s in working)
        if all_at_max and none_sloppy:
            inc = cls.WEIGHT_INCREMENT_KG
            new_weight = working[0].weight_kg + inc
            return [
                Suggestion(
                    type=ProgressionType.ADD_WEIGHT,
                    message=(
                        f"All sets at {prescription.reps_max} reps! Add weight: "
                        f"{_num(new_weight)}kg × {prescription.reps_min}"
                    ),
                    short_message=f"+{_num(inc)}kg, reset reps",
                    confidence=Confidence.HIGH,
                    reasoning="All sets completed at top of rep range with good form.",
                    target_reps=prescription.reps_min,
                    target_weight=new_weight,
                )
            ]

        avg = cls.average(s.reps for s in working)
        target = min(math.ceil(avg) + 1, prescription.reps_max)
        return [
            Suggestion(
                type=ProgressionType.ADD_REPS,
                message=(
                    f"Work toward {len(working)}×{prescription.reps_max} "
                    f"(currently averaging {avg:.1f})"
                ),
                short_message=f"Target {target} reps each set",
                confidence=Confidence.HIGH,
                reasoning="Building toward top of rep range before increasing weight.",
                target_reps=target,
            )
        ]

    @classmethod
    def _dynamic_double_progression(
        cls, sets: list[SetLog], prescription: Prescription
    ) -> list[Suggestion]:
        """Double progression evaluated for each set on its own."""
        working = sorted(
            (
                s
                for s in sets
                if s.set_type in (SetType.WORKING, SetType.TOP, SetType.BACKOFF)
            ),
            key=lambda s: s.set_number,
        )
        inc = cls.WEIGHT_INCREMENT_KG
        suggestions: list[Suggestion] = []
        for s in working:
            n = s.set_number
            if s.reps >= prescription.reps_max and s.rep_quality is not RepQuality.SLOPPY:
                new_weight = s.weight_kg + inc
                suggestions.append(
                    Suggestion(
                        type=ProgressionType.ADD_WEIGHT,
                        message=f"Set {n}: Add weight → {_num(new_weight)}kg × {prescription.reps_min}",
                        short_message=f"Set {n}: +{_num(inc)}kg",
                        confidence=Confidence.HIGH,
                        reasoning=f"Set {n} hit {s.reps} reps (max: {prescription.reps_max}).",
                        target_reps=prescription.reps_min,
                        target_weight=new_weight,
                        set_number=n,
                    )
                )
            else:
                target = min(s.reps + 1, prescription.reps_max)
                suggestions.append(
                    Suggestion(
                        type=ProgressionType.ADD_REPS,
                        message=f"Set {n}: Try for {target} reps at {_num(s.weight_kg)}kg",
                        short_message=f"Set {n}: +1 rep",
                        confidence=Confidence.MEDIUM,
                        reasoning="Each set progresses toward top of rep range independently.",
                        target_reps=target,
                        set_number=n,
                    )
                )
        return suggestions

    @classmethod
    def _drop_sets(
        cls, sets: list[SetLog], prescription: Prescription
    ) -> list[Suggestion]:
        top = next((s for s in sets if s.set_type is SetType.TOP), None)
        if top is None:
            return [
                Suggestion(
                    type=ProgressionType.ESTABLISH_BASELINE,
                    message="Log your top set, then perform 2-3 drop sets immediately after",
                    short_message="Set baseline",
                    confidence=Confidence.HIGH,
                    reasoning="No top set recorded",
                )
            ]
        if top.reps >= prescription.reps_max and top.rep_quality is not RepQuality.SLOPPY:
            inc = cls.WEIGHT_INCREMENT_KG_SMALL
            new_weight = top.weight_kg + inc
            return [
                Suggestion(
                    type=ProgressionType.ADD_WEIGHT,
                    message=f"Top set crushed! Try {_num(new_weight)}kg next time",
                    short_message=f"+{_num(inc)}kg on top set",
                    confidence=Confidence.MEDIUM,
                    reasoning="Top set at max reps. Small weight increase for isolation work.",
                    target_weight=new_weight,
                )
            ]
        return [
            Suggestion(
                type=ProgressionType.MAINTAIN,
                message=f"Push the drop sets hard. Top set: {_num(top.weight_kg)}kg × {top.reps}",
                short_message="Push intensity",
                confidence=Confidence.HIGH,
                reasoning="Drop sets focus on intensity and pump, not strict progression.",
            )
        ]

    @classmethod
    def _amrap(cls, sets: list[SetLog], prescription: Prescription) -> list[Suggestion]:
        max_reps = max(s.reps for s in sets)
        avg = cls.average(s.reps for s in sets)
        if max_reps >= cls.AMRAP_WEIGHT_THRESHOLD:
            return [
                Suggestion(
                    type=ProgressionType.ADD_WEIGHT,
                    message=f"Hitting {cls.AMRAP_WEIGHT_THRESHOLD}+ reps! Time to add weight",
                    short_message="Add weight",
                    confidence=Confidence.HIGH,
                    reasoning=f"Reached {cls.AMRAP_WEIGHT_THRESHOLD} rep threshold for weighted progression.",
                )
            ]
        return [
            Suggestion(
                type=ProgressionType.ADD_REPS,
                message=f"Beat last time! Previous best: {max_reps} reps (avg: {avg:.1f})",
                short_message=f"Beat {max_reps} reps",
                confidence=Confidence.HIGH,
                reasoning="AMRAP progression: try to beat previous rep count.",
                target_reps=max_reps + 1,
            )
        ]

    @classmethod
    def _rest_pause(
        cls, sets: list[SetLog], prescription: Prescription
    ) -> list[Suggestion]:
        rp = next((s for s in sets if s.set_type is SetType.REST_PAUSE), None)
        if rp is None:
            return [
                Suggestion(
                    type=ProgressionType.ESTABLISH_BASELINE,
                    message="3-4s pause at bottom, half reps up. One rest pause allowed.",
                    short_message="Set baseline",
                    confidence=Confidence.HIGH,
                    reasoning="No rest pause set recorded",
                )
            ]
        return [
            Suggestion(
                type=ProgressionType.ADD_REPS,
                message=f"Beat {rp.reps} total reps at {_num(rp.weight_kg)}kg",
                short_message=f"Beat {rp.reps} reps",
                confidence=Confidence.HIGH,
                reasoning="Rest pause progression: accumulate more total reps over time.",
                target_reps=rp.reps + 1,
            )
        ]

    @classmethod
    def _cluster_set(
        cls, sets: list[SetLog], prescription: Prescription
    ) -> list[Suggestion]:
        cluster = [s for s in sets if "cluster" in s.modifiers]
        if not cluster:
            return [
                Suggestion(
                    type=ProgressionType.ESTABLISH_BASELINE,
                    message="3-5 minute cluster: 3-5 reps, 5-10s rest, repeat until song ends",
                    short_message="Set baseline",
                    confidence=Confidence.HIGH,
                    reasoning="No cluster set recorded",
                )
            ]
        total = sum(s.reps for s in cluster)
        return [
            Suggestion(
                type=ProgressionType.ADD_REPS,
                message=f"Beat {total} total cluster reps",
                short_message=f"Beat {total} total reps",
                confidence=Confidence.MEDIUM,
                reasoning="Cluster set progression: accumulate more total reps in the time block.",
                target_reps=total + cls.CLUSTER_REP_STEP,
            )
        ]


def suggest_progression(
    scheme: SchemeType | str,
    last_performance: Sequence[SetLog],
    prescription: Prescription,
    baselines: Optional[Iterable[Baseline]] = None,
) -> list[Suggestion]:
    """Module-level shortcut for :meth:`ProgressionEngine.suggest`."""
    return ProgressionEngine.suggest(scheme, last_performance, prescription, baselines)
