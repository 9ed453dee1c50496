"""Nutrition domain models."""

import math
from dataclasses import dataclass


def safe_number(value: object) -> float:
    """Return a finite non-negative float, or 0 for anything else."""
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        return 0.0
    try:
        number = float(value)
    except ValueError:
        return 0.0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


@dataclass(frozen=True)
class MacroBasis:
    """Macronutrients per 100 g of a food, before portion scaling."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float


@dataclass(frozen=True)
class MacroAmounts:
    """Absolute macronutrients for an eaten portion."""

    calories: int
    protein_g: int
    carbs_g: int
    fat_g: int
