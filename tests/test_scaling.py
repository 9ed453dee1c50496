"""Tests for portion scaling."""

from decimal import Decimal

from nutrition_ledger.domain.estimates import GoalTargets, NutritionEstimate
from nutrition_ledger.domain.nutrition import MacroAmounts, MacroBasis
from nutrition_ledger.services.scaling import (
    coerce_grams,
    rescale_by_ratio,
    round_half_away,
    safe_number,
    scale,
)


def test_scale_pasta_portion_rounds_halves_up() -> None:
    basis = MacroBasis(calories=150, protein_g=5, carbs_g=20, fat_g=5)

    amounts = scale(basis, 250)

    assert amounts == MacroAmounts(calories=375, protein_g=13, carbs_g=50, fat_g=13)


def test_scale_at_100_grams_is_identity() -> None:
    basis = MacroBasis(calories=97, protein_g=9, carbs_g=4, fat_g=5)

    assert scale(basis, 100) == MacroAmounts(97, 9, 4, 5)


def test_scale_defaults_invalid_grams_to_100() -> None:
    basis = MacroBasis(calories=200, protein_g=10, carbs_g=30, fat_g=4)

    for grams in (0, -50, None, "abc", float("nan"), True):
        assert scale(basis, grams) == MacroAmounts(200, 10, 30, 4)


def test_scale_treats_unusable_basis_values_as_zero() -> None:
    basis = MacroBasis(
        calories=float("nan"), protein_g=-3, carbs_g=float("inf"), fat_g=10
    )

    assert scale(basis, 50) == MacroAmounts(0, 0, 0, 5)


def test_round_half_away_from_zero() -> None:
    assert round_half_away(0.5) == 1
    assert round_half_away(2.5) == 3
    assert round_half_away(2.4999) == 2
    assert round_half_away(Decimal("12.5")) == 13
    assert round_half_away(-2.5) == -3


def test_coerce_grams() -> None:
    assert coerce_grams(249.6) == 250
    assert coerce_grams("180") == 180
    assert coerce_grams(0.4) == 100
    assert coerce_grams(None) == 100


def test_safe_number() -> None:
    assert safe_number("3.5") == 3.5
    assert safe_number(-1) == 0.0
    assert safe_number(False) == 0.0
    assert safe_number([1]) == 0.0


def test_estimate_models_coerce_like_safe_number() -> None:
    raw = [" 12.5 ", "nan", float("inf"), -4, True, None, 30]

    for value in raw:
        estimate = NutritionEstimate.model_validate({"calories": value})
        goal = GoalTargets.model_validate({"protein_g": value})
        assert estimate.calories == safe_number(value)
        assert goal.protein_g == safe_number(value)

    fallback = NutritionEstimate.model_validate({"quantity_grams": "-1"})
    assert fallback.quantity_grams == 100


def test_rescale_by_ratio_for_records_without_basis() -> None:
    amounts = MacroAmounts(calories=375, protein_g=13, carbs_g=50, fat_g=13)

    rescaled = rescale_by_ratio(amounts, 250, 100)

    assert rescaled == MacroAmounts(calories=150, protein_g=5, carbs_g=20, fat_g=5)
