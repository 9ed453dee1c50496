"""Domain models for the physiological profile and its targets."""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from nutrition_ledger.domain.estimates import GoalTargets

ACTIVITY_FACTORS: tuple[float, ...] = (1.2, 1.375, 1.55, 1.725, 1.9)
DEFAULT_ACTIVITY_FACTOR = 1.55


class Sex(StrEnum):
    """Sex used by the Mifflin-St Jeor equation."""

    MALE = "male"
    FEMALE = "female"


@dataclass(frozen=True)
class Targets:
    """Energy and macro targets derived from a profile."""

    bmr: int
    tdee: int
    target_calories: int
    protein_g: int
    carbs_g: int
    fat_g: int


NEUTRAL_TARGETS = Targets(
    bmr=0,
    tdee=0,
    target_calories=2000,
    protein_g=150,
    carbs_g=250,
    fat_g=65,
)


@dataclass(frozen=True)
class ProfileInput:
    """User-entered profile fields; the source of truth for targets."""

    weight_kg: float | None
    height_cm: float | None
    age: int | None
    sex: str = Sex.MALE
    activity_factor: float = DEFAULT_ACTIVITY_FACTOR
    goal_delta: int = 0
    goal_description: str | None = None
    goal_targets: GoalTargets | None = None


@dataclass(frozen=True)
class Profile:
    """A saved profile with its cached targets."""

    owner_id: UUID
    inputs: ProfileInput
    targets: Targets
    version: int = 1
