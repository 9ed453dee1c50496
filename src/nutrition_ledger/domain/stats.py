"""Domain models for statistics."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DailyAggregate:
    """Totals for one local calendar day."""

    day: str
    calories: int
    protein_g: int
    carbs_g: int
    fat_g: int
    count: int
    weight_kg: float | None = None


@dataclass(frozen=True)
class PeriodSummary:
    """Daily aggregates for a period with per-day averages."""

    daily: list[DailyAggregate]
    avg_calories: float
    avg_protein_g: float
    avg_carbs_g: float
    avg_fat_g: float


@dataclass(frozen=True)
class ChartPoint:
    """One date of the combined calories and weight series."""

    date: str
    calories: int | None = None
    weight: float | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize without the series that have no value on this date."""
        payload: dict[str, object] = {"date": self.date}
        if self.calories is not None:
            payload["calories"] = self.calories
        if self.weight is not None:
            payload["weight"] = self.weight
        return payload


@dataclass(frozen=True)
class MacroProgress:
    """Progress of one macro against its target."""

    value: int
    target: int
    ratio: float
    percent: int


@dataclass(frozen=True)
class DayProgress:
    """Progress of a day against the profile targets."""

    calories: MacroProgress
    protein: MacroProgress
    carbs: MacroProgress
    fat: MacroProgress
    remaining_calories: int
