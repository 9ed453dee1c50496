"""Portion scaling of per-100 g nutrition.

All rounding is half away from zero. Scaling never raises: values that are
not usable numbers count as 0 and unusable serving sizes fall back to 100 g.
"""

from decimal import ROUND_HALF_UP, Decimal

from nutrition_ledger.domain.meals import DEFAULT_SERVING_GRAMS
from nutrition_ledger.domain.nutrition import MacroAmounts, MacroBasis, safe_number


def round_half_away(value: float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def coerce_grams(value: object) -> int:
    """Coerce a serving size to a positive integer number of grams."""
    grams = round_half_away(safe_number(value))
    return grams if grams > 0 else DEFAULT_SERVING_GRAMS


def scale(basis: MacroBasis, grams: object) -> MacroAmounts:
    """Scale per-100 g values to ``grams``."""
    portion = Decimal(coerce_grams(grams))
    return MacroAmounts(
        calories=_scale_field(basis.calories, portion),
        protein_g=_scale_field(basis.protein_g, portion),
        carbs_g=_scale_field(basis.carbs_g, portion),
        fat_g=_scale_field(basis.fat_g, portion),
    )


def rescale_by_ratio(
    amounts: MacroAmounts, old_grams: object, new_grams: object
) -> MacroAmounts:
    """Rescale absolute amounts by ``new_grams / old_grams``.

    Only for records that lost their per-100 g basis; repeated edits through
    this path compound rounding error.
    """
    old = Decimal(coerce_grams(old_grams))
    new = Decimal(coerce_grams(new_grams))
    return MacroAmounts(
        calories=_ratio_field(amounts.calories, new, old),
        protein_g=_ratio_field(amounts.protein_g, new, old),
        carbs_g=_ratio_field(amounts.carbs_g, new, old),
        fat_g=_ratio_field(amounts.fat_g, new, old),
    )


def _scale_field(value: object, portion: Decimal) -> int:
    per_100g = Decimal(str(safe_number(value)))
    return round_half_away(per_100g * portion / 100)


def _ratio_field(value: object, new: Decimal, old: Decimal) -> int:
    current = Decimal(str(safe_number(value)))
    return round_half_away(current * new / old)
