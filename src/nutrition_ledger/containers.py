"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutrition_ledger.adapters.openai_estimator_client import OpenAIEstimatorClient
from nutrition_ledger.adapters.openfoodfacts_client import HttpxOpenFoodFactsClient
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
from nutrition_ledger.config import Settings
from nutrition_ledger.services.advice import AdviceService
from nutrition_ledger.services.cache import InMemoryCache
from nutrition_ledger.services.captures import CaptureService
from nutrition_ledger.services.estimator import EstimatorService
from nutrition_ledger.services.meals import MealLogService
from nutrition_ledger.services.profiles import ProfileService
from nutrition_ledger.services.stats import StatsService
from nutrition_ledger.services.weights import WeightService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    estimator_service: EstimatorService
    meal_log_service: MealLogService
    capture_service: CaptureService
    weight_service: WeightService
    profile_service: ProfileService
    stats_service: StatsService
    advice_service: AdviceService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    meal_repository = SupabaseMealRepository(supabase_client)
    weight_repository = SupabaseWeightRepository(supabase_client)
    profile_repository = SupabaseProfileRepository(supabase_client)
    capture_repository = SupabaseCaptureRepository(supabase_client)

    openai_client = OpenAIEstimatorClient.create(resolved_settings.openai_api_key)
    product_client = HttpxOpenFoodFactsClient.create(
        resolved_settings.openfoodfacts_base_url
    )
    estimator_service = EstimatorService(
        client=openai_client,
        product_client=product_client,
        cache=InMemoryCache(),
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    meal_log_service = MealLogService(
        repository=meal_repository,
        estimator=estimator_service,
        reject_future_entries=resolved_settings.reject_future_entries,
    )
    capture_service = CaptureService(
        repository=capture_repository,
        estimator=estimator_service,
        meal_service=meal_log_service,
    )
    weight_service = WeightService(
        repository=weight_repository,
        reject_future_entries=resolved_settings.reject_future_entries,
    )
    profile_service = ProfileService(
        repository=profile_repository, estimator=estimator_service
    )
    stats_service = StatsService(
        meal_repository=meal_repository,
        weight_repository=weight_repository,
        profile_repository=profile_repository,
    )
    advice_service = AdviceService(
        estimator=estimator_service,
        profile_service=profile_service,
        stats_service=stats_service,
    )

    async def close_resources() -> None:
        await product_client.close()
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        estimator_service=estimator_service,
        meal_log_service=meal_log_service,
        capture_service=capture_service,
        weight_service=weight_service,
        profile_service=profile_service,
        stats_service=stats_service,
        advice_service=advice_service,
        close_resources=close_resources,
    )
