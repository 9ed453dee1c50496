"""Daily coach advice cached per local day and profile version."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from uuid import UUID

from nutrition_ledger.domain.estimates import CoachAdvice, Recipe
from nutrition_ledger.errors import CollaboratorError
from nutrition_ledger.services.cache import AdviceKey, DailyAdviceCache
from nutrition_ledger.services.estimator import EstimatorService
from nutrition_ledger.services.profiles import ProfileService
from nutrition_ledger.services.stats import StatsService

_logger = logging.getLogger(__name__)

FALLBACK_ADVICE = CoachAdvice(
    tip="Every healthy meal is a building block for the new you. Keep going!",
    recipe=Recipe(
        name="Balance snack",
        content=(
            "Greek yogurt with a handful of walnuts and a pinch of cinnamon. "
            "Quick and nourishing!"
        ),
        why="Steady energy without feeling heavy.",
    ),
)


@dataclass
class AdviceService:
    """Service returning at most one generated advice per owner and day."""

    estimator: EstimatorService
    profile_service: ProfileService
    stats_service: StatsService
    cache: DailyAdviceCache = field(default_factory=DailyAdviceCache)

    async def get_daily_advice(
        self, owner_id: UUID, tz: tzinfo, now: datetime | None = None
    ) -> CoachAdvice:
        """Return today's advice, generating it on the first request.

        A failed generation returns ``FALLBACK_ADVICE`` without caching it, so
        the next request tries again.
        """
        today = (now or datetime.now(tz=UTC)).astimezone(tz).date()
        profile = self.profile_service.get_profile(owner_id)
        key = AdviceKey(
            day=today.isoformat(),
            profile_version=profile.version if profile else 0,
        )
        cached = self.cache.get(owner_id, key)
        if cached is not None:
            return cached

        view = self.stats_service.get_day(owner_id, today, tz)
        goal_description = profile.inputs.goal_description if profile else None
        try:
            advice = await self.estimator.coach_advice(
                goal_description,
                view.targets.target_calories,
                view.aggregate.calories,
            )
        except CollaboratorError:
            _logger.warning("Serving fallback advice: owner=%s", owner_id)
            return FALLBACK_ADVICE
        self.cache.put(owner_id, key, advice)
        return advice
