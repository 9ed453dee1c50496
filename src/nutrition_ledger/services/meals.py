"""Meal logging service."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from nutrition_ledger.domain.meals import MealRecord, MealUpdate, NewMeal
from nutrition_ledger.domain.nutrition import MacroBasis
from nutrition_ledger.errors import CollaboratorError, NotFoundError
from nutrition_ledger.services.scaling import coerce_grams, rescale_by_ratio, scale
from nutrition_ledger.services.timestamps import ensure_not_future

if TYPE_CHECKING:
    from nutrition_ledger.services.estimator import EstimatorService

_logger = logging.getLogger(__name__)


class MealRepository(Protocol):
    """Persistence interface for meals."""

    def create_meal(self, owner_id: UUID, meal: NewMeal) -> UUID:
        """Create a meal and return its id."""

    def get_meal(self, meal_id: UUID) -> MealRecord | None:
        """Return a meal by id, if present."""

    def list_meals_in_range(
        self, owner_id: UUID, start: datetime, end: datetime
    ) -> list[MealRecord]:
        """Return meals with ``start <= timestamp < end``."""

    def update_meal(self, meal: MealRecord) -> None:
        """Overwrite the editable fields of a meal."""

    def delete_meal(self, meal_id: UUID) -> None:
        """Delete a meal."""


@dataclass
class MealLogService:
    """Service that scales and persists meals."""

    repository: MealRepository
    estimator: "EstimatorService | None" = None
    reject_future_entries: bool = True

    def log_meal(  # noqa: PLR0913
        self,
        owner_id: UUID,
        *,
        name: str,
        basis: MacroBasis,
        grams: object,
        timestamp: datetime,
        note: str = "",
        image_ref: str | None = None,
        now: datetime | None = None,
    ) -> MealRecord:
        """Scale a per-100 g basis to the serving and persist the meal."""
        if self.reject_future_entries:
            ensure_not_future(timestamp, now)
        serving_grams = coerce_grams(grams)
        meal = NewMeal(
            name=name.strip() or "Unknown meal",
            serving_grams=serving_grams,
            basis=basis,
            amounts=scale(basis, serving_grams),
            note=note,
            timestamp=timestamp,
            image_ref=image_ref,
        )
        meal_id = self.repository.create_meal(owner_id, meal)
        _logger.info("Meal logged: owner=%s meal=%s", owner_id, meal_id)
        return MealRecord(
            id=meal_id,
            owner_id=owner_id,
            name=meal.name,
            serving_grams=meal.serving_grams,
            basis=meal.basis,
            amounts=meal.amounts,
            note=meal.note,
            timestamp=meal.timestamp,
            image_ref=meal.image_ref,
        )

    def get_meal(self, owner_id: UUID, meal_id: UUID) -> MealRecord:
        """Return a meal owned by ``owner_id``."""
        meal = self.repository.get_meal(meal_id)
        if meal is None or meal.owner_id != owner_id:
            raise NotFoundError(f"Meal {meal_id} not found")
        return meal

    async def update_meal(
        self,
        owner_id: UUID,
        meal_id: UUID,
        update: MealUpdate,
        *,
        refresh_note: bool = False,
        now: datetime | None = None,
    ) -> MealRecord:
        """Apply a user edit, rescaling and re-dating the meal."""
        meal = self.get_meal(owner_id, meal_id)
        updated = meal
        if update.timestamp is not None:
            if self.reject_future_entries:
                ensure_not_future(update.timestamp, now)
            updated = replace(updated, timestamp=update.timestamp)
        if update.name is not None and update.name.strip():
            updated = replace(updated, name=update.name.strip())
        if update.note is not None:
            updated = replace(updated, note=update.note)
        if update.serving_grams is not None:
            updated = _rescaled(updated, coerce_grams(update.serving_grams))
            if refresh_note and updated.serving_grams != meal.serving_grams:
                updated = replace(updated, note=await self._refreshed_note(updated))
        self.repository.update_meal(updated)
        return updated

    def delete_meal(self, owner_id: UUID, meal_id: UUID) -> None:
        """Delete a meal owned by ``owner_id``."""
        self.get_meal(owner_id, meal_id)
        self.repository.delete_meal(meal_id)
        _logger.info("Meal deleted: owner=%s meal=%s", owner_id, meal_id)

    async def _refreshed_note(self, meal: MealRecord) -> str:
        if self.estimator is None:
            return meal.note
        try:
            return await self.estimator.portion_note(meal.name, meal.serving_grams)
        except CollaboratorError:
            _logger.warning("Keeping previous note for meal %s", meal.id)
            return meal.note


def _rescaled(meal: MealRecord, grams: int) -> MealRecord:
    if meal.basis is not None:
        amounts = scale(meal.basis, grams)
    else:
        amounts = rescale_by_ratio(meal.amounts, meal.serving_grams, grams)
    return replace(meal, serving_grams=grams, amounts=amounts)
