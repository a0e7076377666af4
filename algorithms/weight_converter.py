import math


class WeightConverter:
    """Utility for converting between kg and lb."""

    KG_TO_LB = 2.20462
    UNITS = ("kg", "lb")

    @staticmethod
    def kg_to_lb(kg: float) -> float:
        return kg * WeightConverter.KG_TO_LB

    @staticmethod
    def lb_to_kg(lb: float) -> float:
        return lb / WeightConverter.KG_TO_LB

    @staticmethod
    def format_weight(weight_kg: float, unit: str = "kg") -> str:
        """Render a stored kg value in the display unit.

        Pounds are rounded to the nearest half pound.
        """
        if unit not in WeightConverter.UNITS:
            raise ValueError(f"unknown unit: {unit}")
        if unit == "lb":
            lbs = math.floor(WeightConverter.kg_to_lb(weight_kg) * 2 + 0.5) / 2
            return f"{lbs:g} lb"
        return f"{weight_kg:g} kg"
