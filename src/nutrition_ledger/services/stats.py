"""Daily and range aggregation of meals and weights."""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta, tzinfo
from uuid import UUID

from nutrition_ledger.domain.meals import MealRecord
from nutrition_ledger.domain.profile import NEUTRAL_TARGETS, Targets
from nutrition_ledger.domain.stats import (
    ChartPoint,
    DailyAggregate,
    DayProgress,
    PeriodSummary,
)
from nutrition_ledger.domain.weights import WeightSample
from nutrition_ledger.services.meals import MealRepository
from nutrition_ledger.services.profiles import ProfileRepository
from nutrition_ledger.services.progress import evaluate_day
from nutrition_ledger.services.scaling import round_half_away
from nutrition_ledger.services.timestamps import local_day_bounds, local_day_key
from nutrition_ledger.services.weights import WeightRepository

DECEMBER = 12


@dataclass(frozen=True)
class DayView:
    """Everything the dashboard shows for one day."""

    aggregate: DailyAggregate
    targets: Targets
    progress: DayProgress
    meals: list[MealRecord]


@dataclass
class StatsService:
    """Service for computing dashboards in the viewer's timezone."""

    meal_repository: MealRepository
    weight_repository: WeightRepository
    profile_repository: ProfileRepository

    def get_day(self, owner_id: UUID, day: date, tz: tzinfo) -> DayView:
        """Return the day's meals, totals and progress against targets."""
        start, end = local_day_bounds(day, tz)
        meals = self.meal_repository.list_meals_in_range(
            owner_id, start.astimezone(UTC), end.astimezone(UTC)
        )
        meals = sorted(meals, key=lambda meal: meal.timestamp)
        weights = self.weight_repository.list_weights(
            owner_id, start.astimezone(UTC), end.astimezone(UTC)
        )
        aggregate = aggregate_day(meals, day, tz, weights)
        targets = self._targets(owner_id)
        return DayView(
            aggregate=aggregate,
            targets=targets,
            progress=evaluate_day(aggregate, targets),
            meals=meals,
        )

    def get_week(
        self, owner_id: UUID, tz: tzinfo, now: datetime | None = None
    ) -> PeriodSummary:
        """Return week-to-date totals and averages."""
        today = (now or datetime.now(tz=UTC)).astimezone(tz).date()
        start = today - timedelta(days=today.weekday())
        return self._period(owner_id, start, 7, tz)

    def get_month(
        self, owner_id: UUID, tz: tzinfo, now: datetime | None = None
    ) -> PeriodSummary:
        """Return month-to-date totals and averages."""
        today = (now or datetime.now(tz=UTC)).astimezone(tz).date()
        start = today.replace(day=1)
        if start.month == DECEMBER:
            end = start.replace(year=start.year + 1, month=1)
        else:
            end = start.replace(month=start.month + 1)
        return self._period(owner_id, start, (end - start).days, tz)

    def get_chart(
        self,
        owner_id: UUID,
        tz: tzinfo,
        days: int = 30,
        now: datetime | None = None,
    ) -> list[ChartPoint]:
        """Return the merged calories and weight series for the last days."""
        today = (now or datetime.now(tz=UTC)).astimezone(tz).date()
        first_day = today - timedelta(days=max(days, 1) - 1)
        start, _ = local_day_bounds(first_day, tz)
        _, end = local_day_bounds(today, tz)
        meals = self.meal_repository.list_meals_in_range(
            owner_id, start.astimezone(UTC), end.astimezone(UTC)
        )
        weights = self.weight_repository.list_weights(
            owner_id, start.astimezone(UTC), end.astimezone(UTC)
        )
        return merge_range_for_chart(group_meals_by_day(meals, tz), weights, tz)

    def _period(
        self, owner_id: UUID, start_day: date, days: int, tz: tzinfo
    ) -> PeriodSummary:
        start, _ = local_day_bounds(start_day, tz)
        _, end = local_day_bounds(start_day + timedelta(days=days - 1), tz)
        meals = self.meal_repository.list_meals_in_range(
            owner_id, start.astimezone(UTC), end.astimezone(UTC)
        )
        return aggregate_range(meals, start_day, days, tz)

    def _targets(self, owner_id: UUID) -> Targets:
        profile = self.profile_repository.get_profile(owner_id)
        return profile.targets if profile else NEUTRAL_TARGETS


def aggregate_day(
    meals: Iterable[MealRecord],
    day: date | datetime,
    tz: tzinfo,
    weights: Iterable[WeightSample] = (),
) -> DailyAggregate:
    """Sum the meals whose timestamp falls on the local calendar day."""
    key = _day_key(day, tz)
    calories = protein_g = carbs_g = fat_g = count = 0
    for meal in meals:
        if local_day_key(meal.timestamp, tz) != key:
            continue
        calories += meal.amounts.calories
        protein_g += meal.amounts.protein_g
        carbs_g += meal.amounts.carbs_g
        fat_g += meal.amounts.fat_g
        count += 1
    return DailyAggregate(
        day=key,
        calories=calories,
        protein_g=protein_g,
        carbs_g=carbs_g,
        fat_g=fat_g,
        count=count,
        weight_kg=latest_weights_by_day(weights, tz).get(key),
    )


def aggregate_range(
    meals: Iterable[MealRecord], start_day: date, days: int, tz: tzinfo
) -> PeriodSummary:
    """Aggregate ``days`` consecutive local days and average them."""
    meal_list = list(meals)
    daily = [
        aggregate_day(meal_list, start_day + timedelta(days=offset), tz)
        for offset in range(days)
    ]
    total_days = max(len(daily), 1)
    return PeriodSummary(
        daily=daily,
        avg_calories=sum(entry.calories for entry in daily) / total_days,
        avg_protein_g=sum(entry.protein_g for entry in daily) / total_days,
        avg_carbs_g=sum(entry.carbs_g for entry in daily) / total_days,
        avg_fat_g=sum(entry.fat_g for entry in daily) / total_days,
    )


def group_meals_by_day(
    meals: Iterable[MealRecord], tz: tzinfo
) -> dict[str, DailyAggregate]:
    """Return one aggregate per local day that has at least one meal."""
    by_day: dict[str, list[MealRecord]] = {}
    for meal in meals:
        by_day.setdefault(local_day_key(meal.timestamp, tz), []).append(meal)
    return {
        key: aggregate_day(day_meals, date.fromisoformat(key), tz)
        for key, day_meals in by_day.items()
    }


def latest_weights_by_day(
    weights: Iterable[WeightSample], tz: tzinfo
) -> dict[str, float]:
    """Return the most recent weight of each local day."""
    latest: dict[str, WeightSample] = {}
    for sample in weights:
        key = local_day_key(sample.timestamp, tz)
        current = latest.get(key)
        if current is None or sample.timestamp >= current.timestamp:
            latest[key] = sample
    return {key: sample.kilograms for key, sample in latest.items()}


def merge_range_for_chart(
    nutrition_by_day: Mapping[str | date, DailyAggregate | Mapping[str, object]],
    weights: Iterable[WeightSample],
    tz: tzinfo,
) -> list[ChartPoint]:
    """Merge daily calories and weights into one date-sorted series.

    Every date present in either source yields one point carrying only the
    values that exist for it. Nothing is interpolated.
    """
    calories_by_day = {
        _day_key(key, tz): _calories_of(entry)
        for key, entry in nutrition_by_day.items()
    }
    weight_by_day = latest_weights_by_day(weights, tz)
    return [
        ChartPoint(
            date=key,
            calories=calories_by_day.get(key),
            weight=weight_by_day.get(key),
        )
        for key in sorted(calories_by_day.keys() | weight_by_day.keys())
    ]


def _calories_of(entry: DailyAggregate | Mapping[str, object]) -> int | None:
    if isinstance(entry, DailyAggregate):
        return entry.calories
    value = entry.get("calories")
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if not math.isfinite(value):
        return None
    return round_half_away(value)


def _day_key(day: str | date | datetime, tz: tzinfo) -> str:
    if isinstance(day, str):
        return day
    if isinstance(day, datetime):
        return local_day_key(day, tz)
    return day.isoformat()
