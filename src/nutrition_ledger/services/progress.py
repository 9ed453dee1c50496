"""Progress of consumed macros against targets."""

import math

from nutrition_ledger.domain.profile import Targets
from nutrition_ledger.domain.stats import DailyAggregate, DayProgress, MacroProgress
from nutrition_ledger.services.scaling import round_half_away


def ratio(value: object, target: object) -> float:
    """Return ``value / target`` clamped to ``[0, 1]``.

    A missing, zero or negative target gives 0. Never returns NaN.
    """
    if not _is_finite_number(target) or target <= 0:
        return 0.0
    if not _is_finite_number(value):
        return 0.0
    return min(max(value / target, 0.0), 1.0)


def percent(value: object, target: object) -> int:
    """Return the clamped progress as a whole percentage."""
    return round_half_away(ratio(value, target) * 100)


def evaluate_day(aggregate: DailyAggregate, targets: Targets) -> DayProgress:
    """Compare a day's totals with the profile targets."""
    return DayProgress(
        calories=_progress(aggregate.calories, targets.target_calories),
        protein=_progress(aggregate.protein_g, targets.protein_g),
        carbs=_progress(aggregate.carbs_g, targets.carbs_g),
        fat=_progress(aggregate.fat_g, targets.fat_g),
        remaining_calories=max(targets.target_calories - aggregate.calories, 0),
    )


def _progress(value: int, target: int) -> MacroProgress:
    return MacroProgress(
        value=value,
        target=target,
        ratio=ratio(value, target),
        percent=percent(value, target),
    )


def _is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value)
