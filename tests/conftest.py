"""Shared test fixtures."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from uuid import UUID, uuid4

import pytest

from nutrition_ledger.adapters.openfoodfacts_client import ProductClient
from nutrition_ledger.config import Settings
from nutrition_ledger.containers import AppContainer
from nutrition_ledger.domain.captures import OPEN_STATUSES, CaptureRecord, CaptureStatus
from nutrition_ledger.domain.meals import MealRecord, NewMeal
from nutrition_ledger.domain.profile import Profile
from nutrition_ledger.domain.weights import WeightSample
from nutrition_ledger.services.advice import AdviceService
from nutrition_ledger.services.cache import InMemoryCache
from nutrition_ledger.services.captures import CaptureRepository, CaptureService
from nutrition_ledger.services.estimator import EstimatorClient, EstimatorService
from nutrition_ledger.services.meals import MealLogService, MealRepository
from nutrition_ledger.services.profiles import ProfileRepository, ProfileService
from nutrition_ledger.services.stats import StatsService
from nutrition_ledger.services.weights import WeightRepository, WeightService

OWNER_ID = UUID("00000000-0000-0000-0000-000000000001")


def default_payloads() -> dict[str, dict[str, object]]:
    return {
        "estimate_image": {
            "name": "Pasta al pomodoro",
            "quantity_grams": 250,
            "calories": 150,
            "protein_g": 5,
            "carbs_g": 20,
            "fat_g": 5,
            "note": "Balanced pasta dish.",
            "date": None,
            "time": None,
        },
        "estimate_text": {
            "name": "Porridge",
            "quantity_grams": 200,
            "calories": 70,
            "protein_g": 2.5,
            "carbs_g": 12,
            "fat_g": 1.5,
            "note": "Slow carbs.",
            "date": None,
            "time": None,
        },
        "goal_targets": {
            "target_calories": 1800,
            "protein_g": 140,
            "carbs_g": 180,
            "fat_g": 60,
            "explanation": "A moderate deficit.",
        },
        "portion_note": {"note": "A generous portion."},
        "coach_advice": {
            "tip": "Drink water before lunch.",
            "recipe": {
                "name": "Chickpea salad",
                "content": "Chickpeas, tomatoes and olive oil.",
                "why": "Fits your remaining calories.",
            },
        },
    }


@dataclass
class FakeEstimatorClient(EstimatorClient):
    """Fake LLM client returning payloads keyed by schema name."""

    payloads: dict[str, dict[str, object]] = field(default_factory=default_payloads)
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)
    before_return: Callable[[], Awaitable[None]] | None = None

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
        image_data_url: str | None = None,
    ) -> dict[str, object]:
        self.calls.append(
            {
                "model": model,
                "prompt": prompt,
                "schema_name": schema_name,
                "image_data_url": image_data_url,
            }
        )
        if self.before_return is not None:
            hook = self.before_return
            self.before_return = None
            await hook()
        if self.error is not None:
            raise self.error
        return dict(self.payloads[schema_name])


@dataclass
class FakeProductClient(ProductClient):
    """Fake Open Food Facts client with in-memory products."""

    products: dict[str, dict[str, object]] = field(
        default_factory=lambda: {
            "8001505005707": {
                "product_name": "Greek yogurt",
                "brands": "Fage",
                "nutriments": {
                    "energy-kcal_100g": 97,
                    "proteins_100g": 9,
                    "carbohydrates_100g": 3.9,
                    "fat_100g": 5,
                },
            }
        }
    )
    lookups: list[str] = field(default_factory=list)
    error: Exception | None = None

    async def get_product(self, code: str) -> dict[str, object] | None:
        self.lookups.append(code)
        if self.error is not None:
            raise self.error
        return self.products.get(code)


@dataclass
class InMemoryMealRepository(MealRepository):
    """In-memory meal repository for tests."""

    meals: dict[UUID, MealRecord] = field(default_factory=dict)

    def create_meal(self, owner_id: UUID, meal: NewMeal) -> UUID:
        meal_id = uuid4()
        self.meals[meal_id] = MealRecord(
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
        return meal_id

    def get_meal(self, meal_id: UUID) -> MealRecord | None:
        return self.meals.get(meal_id)

    def list_meals_in_range(
        self, owner_id: UUID, start: datetime, end: datetime
    ) -> list[MealRecord]:
        return [
            meal
            for meal in self.meals.values()
            if meal.owner_id == owner_id and start <= meal.timestamp < end
        ]

    def update_meal(self, meal: MealRecord) -> None:
        self.meals[meal.id] = meal

    def delete_meal(self, meal_id: UUID) -> None:
        self.meals.pop(meal_id, None)


@dataclass
class InMemoryWeightRepository(WeightRepository):
    """In-memory weight repository for tests."""

    samples: dict[UUID, WeightSample] = field(default_factory=dict)

    def create_weight(
        self, owner_id: UUID, kilograms: float, timestamp: datetime
    ) -> WeightSample:
        sample = WeightSample(
            id=uuid4(), owner_id=owner_id, kilograms=kilograms, timestamp=timestamp
        )
        self.samples[sample.id] = sample
        return sample

    def get_weight(self, weight_id: UUID) -> WeightSample | None:
        return self.samples.get(weight_id)

    def list_weights(
        self,
        owner_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[WeightSample]:
        samples = [
            sample
            for sample in self.samples.values()
            if sample.owner_id == owner_id
            and (start is None or sample.timestamp >= start)
            and (end is None or sample.timestamp < end)
        ]
        return sorted(samples, key=lambda sample: sample.timestamp)

    def update_weight(
        self, weight_id: UUID, kilograms: float, timestamp: datetime
    ) -> None:
        self.samples[weight_id] = replace(
            self.samples[weight_id], kilograms=kilograms, timestamp=timestamp
        )

    def delete_weight(self, weight_id: UUID) -> None:
        self.samples.pop(weight_id, None)


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile repository for tests."""

    profiles: dict[UUID, Profile] = field(default_factory=dict)

    def get_profile(self, owner_id: UUID) -> Profile | None:
        return self.profiles.get(owner_id)

    def save_profile(self, profile: Profile) -> None:
        self.profiles[profile.owner_id] = profile


@dataclass
class InMemoryCaptureRepository(CaptureRepository):
    """In-memory capture repository for tests."""

    captures: dict[UUID, CaptureRecord] = field(default_factory=dict)

    def create_capture(
        self, owner_id: UUID, status: CaptureStatus, context: dict[str, object]
    ) -> CaptureRecord:
        capture = CaptureRecord(
            id=uuid4(), owner_id=owner_id, status=status, context=dict(context)
        )
        self.captures[capture.id] = capture
        return capture

    def get_capture(self, capture_id: UUID) -> CaptureRecord | None:
        return self.captures.get(capture_id)

    def list_open_captures(self, owner_id: UUID) -> list[CaptureRecord]:
        return [
            capture
            for capture in self.captures.values()
            if capture.owner_id == owner_id and capture.status in OPEN_STATUSES
        ]

    def update_capture(
        self, capture_id: UUID, status: CaptureStatus, context: dict[str, object]
    ) -> None:
        self.captures[capture_id] = replace(
            self.captures[capture_id], status=status, context=dict(context)
        )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        openai_api_key="openai-key",
    )


@pytest.fixture
def estimator_client() -> FakeEstimatorClient:
    return FakeEstimatorClient()


@pytest.fixture
def product_client() -> FakeProductClient:
    return FakeProductClient()


@pytest.fixture
def meal_repository() -> InMemoryMealRepository:
    return InMemoryMealRepository()


@pytest.fixture
def weight_repository() -> InMemoryWeightRepository:
    return InMemoryWeightRepository()


@pytest.fixture
def profile_repository() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def capture_repository() -> InMemoryCaptureRepository:
    return InMemoryCaptureRepository()


@pytest.fixture
def estimator_service(
    estimator_client: FakeEstimatorClient, product_client: FakeProductClient
) -> EstimatorService:
    return EstimatorService(
        client=estimator_client,
        product_client=product_client,
        cache=InMemoryCache(),
        model="gpt-5.2",
        reasoning_effort="low",
        store=False,
    )


@pytest.fixture
def meal_service(
    meal_repository: InMemoryMealRepository, estimator_service: EstimatorService
) -> MealLogService:
    return MealLogService(repository=meal_repository, estimator=estimator_service)


@pytest.fixture
def capture_service(
    capture_repository: InMemoryCaptureRepository,
    estimator_service: EstimatorService,
    meal_service: MealLogService,
) -> CaptureService:
    return CaptureService(
        repository=capture_repository,
        estimator=estimator_service,
        meal_service=meal_service,
    )


@pytest.fixture
def profile_service(
    profile_repository: InMemoryProfileRepository,
    estimator_service: EstimatorService,
) -> ProfileService:
    return ProfileService(repository=profile_repository, estimator=estimator_service)


@pytest.fixture
def stats_service(
    meal_repository: InMemoryMealRepository,
    weight_repository: InMemoryWeightRepository,
    profile_repository: InMemoryProfileRepository,
) -> StatsService:
    return StatsService(
        meal_repository=meal_repository,
        weight_repository=weight_repository,
        profile_repository=profile_repository,
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    estimator_service: EstimatorService,
    meal_service: MealLogService,
    capture_service: CaptureService,
    weight_repository: InMemoryWeightRepository,
    profile_service: ProfileService,
    stats_service: StatsService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        estimator_service=estimator_service,
        meal_log_service=meal_service,
        capture_service=capture_service,
        weight_service=WeightService(weight_repository),
        profile_service=profile_service,
        stats_service=stats_service,
        advice_service=AdviceService(
            estimator=estimator_service,
            profile_service=profile_service,
            stats_service=stats_service,
        ),
        close_resources=close_resources,
    )
