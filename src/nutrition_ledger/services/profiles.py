"""Profile service with cached targets."""

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from nutrition_ledger.domain.profile import (
    DEFAULT_ACTIVITY_FACTOR,
    NEUTRAL_TARGETS,
    Profile,
    ProfileInput,
    Sex,
    Targets,
)
from nutrition_ledger.errors import NotFoundError
from nutrition_ledger.services.targets import compute_targets

if TYPE_CHECKING:
    from nutrition_ledger.services.estimator import EstimatorService

_logger = logging.getLogger(__name__)


class ProfileRepository(Protocol):
    """Persistence interface for the single profile document of a user."""

    def get_profile(self, owner_id: UUID) -> Profile | None:
        """Return the profile, if saved."""

    def save_profile(self, profile: Profile) -> None:
        """Create or replace the profile."""


@dataclass
class ProfileService:
    """Service that keeps derived targets in sync with profile inputs."""

    repository: ProfileRepository
    estimator: "EstimatorService | None" = None

    def get_profile(self, owner_id: UUID) -> Profile | None:
        """Return the saved profile, if any."""
        return self.repository.get_profile(owner_id)

    def get_targets(self, owner_id: UUID) -> Targets:
        """Return cached targets, or neutral defaults without a profile."""
        profile = self.repository.get_profile(owner_id)
        return profile.targets if profile else NEUTRAL_TARGETS

    def save_profile(self, owner_id: UUID, inputs: ProfileInput) -> Profile:
        """Persist inputs and recompute the cached targets."""
        existing = self.repository.get_profile(owner_id)
        profile = Profile(
            owner_id=owner_id,
            inputs=inputs,
            targets=compute_targets(inputs),
            version=existing.version + 1 if existing else 1,
        )
        self.repository.save_profile(profile)
        _logger.info(
            "Profile saved: owner=%s version=%s target=%s",
            owner_id,
            profile.version,
            profile.targets.target_calories,
        )
        return profile

    def save_measurements(  # noqa: PLR0913
        self,
        owner_id: UUID,
        *,
        weight_kg: float | None,
        height_cm: float | None,
        age: int | None,
        sex: str = Sex.MALE,
        activity_factor: float = DEFAULT_ACTIVITY_FACTOR,
        goal_delta: int | None = None,
    ) -> Profile:
        """Save edited body measurements.

        Without ``goal_delta`` the stored goal (manual delta or AI targets) is
        kept. An explicit ``goal_delta`` replaces any AI-resolved goal.
        """
        existing = self.repository.get_profile(owner_id)
        inputs = ProfileInput(
            weight_kg=weight_kg,
            height_cm=height_cm,
            age=age,
            sex=sex,
            activity_factor=activity_factor,
        )
        if goal_delta is not None:
            inputs = replace(inputs, goal_delta=goal_delta)
        elif existing is not None:
            inputs = replace(
                inputs,
                goal_delta=existing.inputs.goal_delta,
                goal_description=existing.inputs.goal_description,
                goal_targets=existing.inputs.goal_targets,
            )
        return self.save_profile(owner_id, inputs)

    async def apply_goal_description(
        self, owner_id: UUID, description: str
    ) -> Profile:
        """Resolve a free-text goal into targets and save them."""
        existing = self.repository.get_profile(owner_id)
        if existing is None:
            raise NotFoundError(f"Profile for {owner_id} not found")
        if self.estimator is None:
            raise RuntimeError("Goal interpretation requires an estimator")
        goal_targets = await self.estimator.goal_targets(description, existing.inputs)
        inputs = replace(
            existing.inputs,
            goal_description=description.strip(),
            goal_targets=goal_targets,
        )
        return self.save_profile(owner_id, inputs)
