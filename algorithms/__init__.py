from .math_tools import MathTools
from .weight_converter import WeightConverter
from .progression_engine import ProgressionEngine, suggest_progression

__all__ = ["MathTools", "WeightConverter", "ProgressionEngine", "suggest_progression"]
