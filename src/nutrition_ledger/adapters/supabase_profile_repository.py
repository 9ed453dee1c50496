"""Supabase repository for profiles."""

from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from nutrition_ledger.domain.estimates import GoalTargets
from nutrition_ledger.domain.profile import (
    DEFAULT_ACTIVITY_FACTOR,
    NEUTRAL_TARGETS,
    Profile,
    ProfileInput,
    Sex,
    Targets,
)
from nutrition_ledger.services.profiles import ProfileRepository

_COLUMNS = (
    "owner_id, weight_kg, height_cm, age, sex, activity_factor, goal_delta, "
    "goal_description, goal_targets, targets, version"
)


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for the single profile row of a user."""

    client: Client

    def get_profile(self, owner_id: UUID) -> Profile | None:
        """Return the profile row, if present."""
        response = (
            self.client.table("profiles")
            .select(_COLUMNS)
            .eq("owner_id", str(owner_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def save_profile(self, profile: Profile) -> None:
        """Insert or replace the profile row."""
        inputs = profile.inputs
        self.client.table("profiles").upsert(
            {
                "owner_id": str(profile.owner_id),
                "weight_kg": inputs.weight_kg,
                "height_cm": inputs.height_cm,
                "age": inputs.age,
                "sex": str(inputs.sex),
                "activity_factor": inputs.activity_factor,
                "goal_delta": inputs.goal_delta,
                "goal_description": inputs.goal_description,
                "goal_targets": inputs.goal_targets.model_dump()
                if inputs.goal_targets
                else None,
                "targets": asdict(profile.targets),
                "version": profile.version,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="owner_id",
        ).execute()


def _parse_row(row: dict[str, object]) -> Profile:
    goal_targets_raw = row.get("goal_targets")
    targets_raw = row.get("targets")
    inputs = ProfileInput(
        weight_kg=_optional_float(row.get("weight_kg")),
        height_cm=_optional_float(row.get("height_cm")),
        age=int(row["age"]) if row.get("age") is not None else None,
        sex=str(row.get("sex") or Sex.MALE),
        activity_factor=float(row.get("activity_factor") or DEFAULT_ACTIVITY_FACTOR),
        goal_delta=int(row.get("goal_delta") or 0),
        goal_description=row.get("goal_description") or None,
        goal_targets=GoalTargets.model_validate(goal_targets_raw)
        if isinstance(goal_targets_raw, dict)
        else None,
    )
    return Profile(
        owner_id=UUID(str(row["owner_id"])),
        inputs=inputs,
        targets=Targets(**targets_raw)
        if isinstance(targets_raw, dict)
        else NEUTRAL_TARGETS,
        version=int(row.get("version") or 1),
    )


def _optional_float(value: object) -> float | None:
    return float(value) if value is not None else None
