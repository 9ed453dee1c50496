"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from nutrition_ledger.adapters.supabase_capture_repository import (
    SupabaseCaptureRepository,
)
from nutrition_ledger.adapters.supabase_meal_repository import SupabaseMealRepository
from nutrition_ledger.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from nutrition_ledger.adapters.supabase_weight_repository import (
    SupabaseWeightRepository,
)
from nutrition_ledger.domain.captures import CaptureStatus
from nutrition_ledger.domain.meals import NewMeal
from nutrition_ledger.domain.nutrition import MacroAmounts, MacroBasis
from nutrition_ledger.domain.profile import NEUTRAL_TARGETS, Profile, ProfileInput
from nutrition_ledger.errors import CollaboratorError
from nutrition_ledger.services.targets import compute_targets


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {
            "select": [],
            "insert": [],
            "update": [],
            "upsert": [],
            "delete": [],
        }
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    last_on_conflict: str | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        return self

    def upsert(self, payload, on_conflict: str = "") -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "upsert"
        self.last_payload = payload
        self.last_on_conflict = on_conflict
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def in_(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, _column: str, desc: bool = False) -> "FakeTable":
        return self

    def gte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((f"{column}>=", value))
        return self

    def lt(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((f"{column}<", value))
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def test_supabase_meal_repository_roundtrip() -> None:
    client = FakeSupabaseClient()
    meals_table = client.table("meals")
    meal_id = str(uuid4())
    owner_id = uuid4()
    meals_table.queue("insert", [{"id": meal_id}])
    meals_table.queue(
        "select",
        [
            {
                "id": meal_id,
                "owner_id": str(owner_id),
                "name": "Pasta",
                "serving_grams": 250,
                "calories_per_100g": 150,
                "protein_per_100g": 5,
                "carbs_per_100g": 20,
                "fat_per_100g": 5,
                "calories": 375,
                "protein_g": 13,
                "carbs_g": 50,
                "fat_g": 13,
                "note": "Balanced.",
                "logged_at": "2024-03-10T11:00:00+00:00",
                "image_ref": None,
            }
        ],
    )

    repository = SupabaseMealRepository(client)
    created_id = repository.create_meal(
        owner_id,
        NewMeal(
            name="Pasta",
            serving_grams=250,
            basis=MacroBasis(150, 5, 20, 5),
            amounts=MacroAmounts(375, 13, 50, 13),
            note="Balanced.",
            timestamp=datetime(2024, 3, 10, 11, 0, tzinfo=UTC),
        ),
    )
    fetched = repository.get_meal(created_id)

    assert str(created_id) == meal_id
    assert isinstance(meals_table.last_payload, dict)
    assert meals_table.last_payload["calories_per_100g"] == 150
    assert fetched is not None
    assert fetched.basis == MacroBasis(150, 5, 20, 5)
    assert fetched.amounts == MacroAmounts(375, 13, 50, 13)
    assert fetched.timestamp == datetime(2024, 3, 10, 11, 0, tzinfo=UTC)


def test_supabase_meal_repository_legacy_row_and_range() -> None:
    client = FakeSupabaseClient()
    meals_table = client.table("meals")
    owner_id = uuid4()
    meals_table.queue(
        "select",
        [
            {
                "id": str(uuid4()),
                "owner_id": str(owner_id),
                "name": "Old meal",
                "serving_grams": 200,
                "calories_per_100g": None,
                "calories": 400,
                "protein_g": 20,
                "carbs_g": 40,
                "fat_g": 10,
                "note": None,
                "logged_at": "2024-03-10T08:00:00",
            }
        ],
    )

    repository = SupabaseMealRepository(client)
    meals = repository.list_meals_in_range(
        owner_id,
        datetime(2024, 3, 10, tzinfo=UTC),
        datetime(2024, 3, 11, tzinfo=UTC),
    )

    assert meals[0].basis is None
    assert meals[0].timestamp.tzinfo is UTC
    assert ("logged_at>=", "2024-03-10T00:00:00+00:00") in meals_table.last_filters
    assert ("logged_at<", "2024-03-11T00:00:00+00:00") in meals_table.last_filters


def test_supabase_meal_repository_insert_failure() -> None:
    client = FakeSupabaseClient()
    repository = SupabaseMealRepository(client)

    with pytest.raises(CollaboratorError):
        repository.create_meal(
            uuid4(),
            NewMeal(
                name="Pasta",
                serving_grams=100,
                basis=None,
                amounts=MacroAmounts(150, 5, 20, 5),
                note="",
                timestamp=datetime(2024, 3, 10, tzinfo=UTC),
            ),
        )


def test_supabase_weight_repository() -> None:
    client = FakeSupabaseClient()
    weights_table = client.table("weights")
    owner_id = uuid4()
    row = {
        "id": str(uuid4()),
        "owner_id": str(owner_id),
        "kilograms": 70.4,
        "measured_at": "2024-03-10T07:00:00+00:00",
    }
    weights_table.queue("insert", [row])
    weights_table.queue("select", [row])

    repository = SupabaseWeightRepository(client)
    created = repository.create_weight(
        owner_id, 70.4, datetime(2024, 3, 10, 7, 0, tzinfo=UTC)
    )
    history = repository.list_weights(owner_id)
    repository.update_weight(created.id, 70.1, created.timestamp)

    assert created.kilograms == 70.4
    assert history == [created]
    assert weights_table.last_payload == {
        "kilograms": 70.1,
        "measured_at": "2024-03-10T07:00:00+00:00",
    }


def test_supabase_profile_repository_roundtrip() -> None:
    client = FakeSupabaseClient()
    profiles_table = client.table("profiles")
    owner_id = uuid4()
    inputs = ProfileInput(weight_kg=70, height_cm=175, age=30, goal_delta=-500)
    profile = Profile(
        owner_id=owner_id,
        inputs=inputs,
        targets=compute_targets(inputs),
        version=3,
    )

    repository = SupabaseProfileRepository(client)
    repository.save_profile(profile)
    saved_row = dict(profiles_table.last_payload)  # type: ignore[call-overload]
    profiles_table.queue("select", [saved_row])
    fetched = repository.get_profile(owner_id)

    assert profiles_table.last_on_conflict == "owner_id"
    assert saved_row["targets"]["target_calories"] == 2056
    assert fetched is not None
    assert fetched.targets == profile.targets
    assert fetched.inputs.goal_delta == -500
    assert fetched.version == 3


def test_supabase_profile_repository_missing_targets() -> None:
    client = FakeSupabaseClient()
    owner_id = uuid4()
    client.table("profiles").queue(
        "select", [{"owner_id": str(owner_id), "targets": None}]
    )

    repository = SupabaseProfileRepository(client)
    fetched = repository.get_profile(owner_id)

    assert fetched is not None
    assert fetched.targets == NEUTRAL_TARGETS
    assert fetched.version == 1


def test_supabase_capture_repository() -> None:
    client = FakeSupabaseClient()
    captures_table = client.table("capture_sessions")
    capture_id = str(uuid4())
    owner_id = uuid4()
    captures_table.queue(
        "insert",
        [
            {
                "id": capture_id,
                "owner_id": str(owner_id),
                "status": "ANALYZING",
                "context_json": {"source": "text"},
            }
        ],
    )
    captures_table.queue(
        "select",
        [
            {
                "id": capture_id,
                "owner_id": str(owner_id),
                "status": "AWAITING_CONFIRMATION",
                "context_json": None,
            }
        ],
    )

    repository = SupabaseCaptureRepository(client)
    created = repository.create_capture(
        owner_id, CaptureStatus.ANALYZING, {"source": "text"}
    )
    open_captures = repository.list_open_captures(owner_id)
    repository.update_capture(created.id, CaptureStatus.CANCELLED, {})

    assert created.status == CaptureStatus.ANALYZING
    assert open_captures[0].is_pending
    assert open_captures[0].context == {}
    assert (
        "status",
        ["ANALYZING", "AWAITING_CONFIRMATION"],
    ) in captures_table.last_filters
    assert isinstance(captures_table.last_payload, dict)
    assert captures_table.last_payload["status"] == "CANCELLED"
