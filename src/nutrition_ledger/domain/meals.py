"""Domain models for meal logging."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from nutrition_ledger.domain.nutrition import MacroAmounts, MacroBasis

DEFAULT_SERVING_GRAMS = 100


@dataclass(frozen=True)
class NewMeal:
    """A confirmed meal that has not been persisted yet."""

    name: str
    serving_grams: int
    basis: MacroBasis | None
    amounts: MacroAmounts
    note: str
    timestamp: datetime
    image_ref: str | None = None


@dataclass(frozen=True)
class MealRecord:
    """A persisted meal.

    ``amounts`` holds the absolute values for ``serving_grams``. ``basis`` keeps
    the per-100 g values the amounts were scaled from; it is ``None`` only for
    rows written before the basis was stored.
    """

    id: UUID
    owner_id: UUID
    name: str
    serving_grams: int
    basis: MacroBasis | None
    amounts: MacroAmounts
    note: str
    timestamp: datetime
    image_ref: str | None = None


@dataclass(frozen=True)
class MealUpdate:
    """Fields changed by an explicit user edit."""

    serving_grams: float | None = None
    timestamp: datetime | None = None
    name: str | None = None
    note: str | None = None
