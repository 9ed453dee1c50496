"""Models for AI and barcode nutrition estimates."""

from pydantic import BaseModel, field_validator

from nutrition_ledger.domain.nutrition import MacroBasis, safe_number


class NutritionEstimate(BaseModel):
    """Unscaled estimate returned by the estimator.

    Macro values are per 100 g. Missing or non-numeric fields become 0.
    """

    name: str = "Unknown meal"
    quantity_grams: float = 100
    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    note: str = ""
    date: str | None = None
    time: str | None = None

    @field_validator("calories", "protein_g", "carbs_g", "fat_g", mode="before")
    @classmethod
    def _coerce_macro(cls, value: object) -> float:
        return safe_number(value)

    @field_validator("quantity_grams", mode="before")
    @classmethod
    def _coerce_quantity(cls, value: object) -> float:
        return safe_number(value) or 100.0

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: object) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return "Unknown meal"

    @field_validator("note", mode="before")
    @classmethod
    def _coerce_note(cls, value: object) -> str:
        return value.strip() if isinstance(value, str) else ""

    @field_validator("date", "time", mode="before")
    @classmethod
    def _coerce_hint(cls, value: object) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @property
    def basis(self) -> MacroBasis:
        """Return the per-100 g basis of the estimate."""
        return MacroBasis(
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
        )


class GoalTargets(BaseModel):
    """Targets proposed for a free-text goal description."""

    target_calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    explanation: str = ""

    @field_validator(
        "target_calories", "protein_g", "carbs_g", "fat_g", mode="before"
    )
    @classmethod
    def _coerce_number(cls, value: object) -> float:
        return safe_number(value)

    @field_validator("explanation", mode="before")
    @classmethod
    def _coerce_explanation(cls, value: object) -> str:
        return value.strip() if isinstance(value, str) else ""


class Recipe(BaseModel):
    """Recipe suggestion attached to coach advice."""

    name: str
    content: str
    why: str


class CoachAdvice(BaseModel):
    """Daily motivational tip with a recipe."""

    tip: str
    recipe: Recipe
