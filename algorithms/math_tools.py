from typing import Iterable, Optional, Sequence

import numpy as np

from models import SetLog


class MathTools:
    """Provides essential mathematical utilities for workout calculations."""

    EPLEY_DIVISOR: float = 30.0

    @classmethod
    def e1rm(cls, weight: float, reps: int) -> float:
        """Return the estimated one-rep max using the Epley formula.

        A single rep is returned as-is; zero reps collapse to ``weight``
        through the formula itself.
        """
        if reps == 1:
            return weight
        return weight * (1 + reps / cls.EPLEY_DIVISOR)

    @staticmethod
    def volume(sets: Iterable[tuple[int, float]]) -> float:
        """Compute training volume as the sum of reps times weight."""
        vol = 0.0
        for reps, weight in sets:
            vol += reps * weight
        return vol

    @staticmethod
    def session_volume(sets: Iterable[SetLog]) -> float:
        """Return volume of ``sets`` using net load (weight plus external load)."""
        return MathTools.volume((s.reps, s.weight_kg + s.external_load_kg) for s in sets)

    @classmethod
    def best_set(cls, sets: Iterable[SetLog]) -> Optional[SetLog]:
        """Return the set with the highest e1RM on net load.

        Ties keep the earlier set.
        """
        best: Optional[SetLog] = None
        best_e1rm = 0.0
        for s in sets:
            current = cls.e1rm(s.weight_kg + s.external_load_kg, s.reps)
            if best is None or current > best_e1rm:
                best = s
                best_e1rm = current
        return best

    @staticmethod
    def average(values: Iterable[float]) -> float:
        """Return the arithmetic mean of ``values`` or 0.0 when empty."""
        data = list(values)
        if not data:
            return 0.0
        return float(np.mean(np.array(data, dtype=float)))

    @staticmethod
    def trend_slope(values: Sequence[float]) -> float:
        """Return the least-squares slope of ``values`` per step."""
        if len(values) < 2:
            return 0.0
        x = np.arange(len(values), dtype=float)
        slope, _intercept = np.polyfit(x, np.array(values, dtype=float), 1)
        return float(slope)
