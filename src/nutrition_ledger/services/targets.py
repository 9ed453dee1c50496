"""Energy and macro target calculation.

BMR uses Mifflin-St Jeor and is rounded before the activity factor is
applied. An incomplete profile yields ``NEUTRAL_TARGETS`` so the dashboard
always has a denominator.
"""

import math

from nutrition_ledger.domain.estimates import GoalTargets
from nutrition_ledger.domain.profile import (
    ACTIVITY_FACTORS,
    DEFAULT_ACTIVITY_FACTOR,
    NEUTRAL_TARGETS,
    ProfileInput,
    Sex,
    Targets,
)
from nutrition_ledger.services.scaling import round_half_away, safe_number

_MALE_CONSTANT = 5
_FEMALE_CONSTANT = -161
_PROTEIN_G_PER_KG = 2
_FAT_SHARE = 0.25
_KCAL_PER_G_PROTEIN = 4
_KCAL_PER_G_CARBS = 4
_KCAL_PER_G_FAT = 9


def compute_targets(profile: ProfileInput) -> Targets:
    """Return BMR, TDEE, target calories and macros for a profile."""
    weight_kg = safe_number(profile.weight_kg)
    height_cm = safe_number(profile.height_cm)
    age = safe_number(profile.age)
    if not (weight_kg > 0 and height_cm > 0 and age > 0):
        return NEUTRAL_TARGETS

    bmr = compute_bmr(weight_kg, height_cm, age, profile.sex)
    tdee = round_half_away(bmr * normalize_activity_factor(profile.activity_factor))

    resolved = _usable_goal_targets(profile.goal_targets)
    if resolved is not None:
        target_calories = round_half_away(resolved.target_calories)
        if resolved.protein_g or resolved.carbs_g or resolved.fat_g:
            return Targets(
                bmr=bmr,
                tdee=tdee,
                target_calories=target_calories,
                protein_g=round_half_away(resolved.protein_g),
                carbs_g=round_half_away(resolved.carbs_g),
                fat_g=round_half_away(resolved.fat_g),
            )
    else:
        target_calories = tdee + _goal_delta(profile.goal_delta)

    protein_g, carbs_g, fat_g = default_macro_split(target_calories, weight_kg)
    return Targets(
        bmr=bmr,
        tdee=tdee,
        target_calories=target_calories,
        protein_g=protein_g,
        carbs_g=carbs_g,
        fat_g=fat_g,
    )


def compute_bmr(weight_kg: float, height_cm: float, age: float, sex: str) -> int:
    """Return the Mifflin-St Jeor basal metabolic rate, rounded."""
    constant = _MALE_CONSTANT if _is_male(sex) else _FEMALE_CONSTANT
    return round_half_away(10 * weight_kg + 6.25 * height_cm - 5 * age + constant)


def default_macro_split(target_calories: int, weight_kg: float) -> tuple[int, int, int]:
    """Return ``(protein_g, carbs_g, fat_g)`` for a calorie target."""
    protein_g = round_half_away(weight_kg * _PROTEIN_G_PER_KG)
    fat_g = round_half_away(target_calories * _FAT_SHARE / _KCAL_PER_G_FAT)
    remaining = (
        target_calories
        - protein_g * _KCAL_PER_G_PROTEIN
        - fat_g * _KCAL_PER_G_FAT
    )
    carbs_g = max(0, round_half_away(remaining / _KCAL_PER_G_CARBS))
    return protein_g, carbs_g, fat_g


def normalize_activity_factor(value: object) -> float:
    """Snap an activity factor to the nearest supported multiplier."""
    factor = safe_number(value)
    if factor <= 0:
        return DEFAULT_ACTIVITY_FACTOR
    return min(ACTIVITY_FACTORS, key=lambda allowed: abs(allowed - factor))


def _is_male(sex: object) -> bool:
    return isinstance(sex, str) and sex.strip().lower() == Sex.MALE


def _goal_delta(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    if not math.isfinite(value):
        return 0
    return round_half_away(value)


def _usable_goal_targets(goal_targets: GoalTargets | None) -> GoalTargets | None:
    if goal_targets is None or goal_targets.target_calories <= 0:
        return None
    return goal_targets
