"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import UTC, date, datetime, tzinfo
from uuid import UUID
from zoneinfo import ZoneInfo

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from nutrition_ledger.api.models import (
    BarcodeCaptureRequest,
    ConfirmCaptureRequest,
    GoalRequest,
    ImageCaptureRequest,
    MealPatchRequest,
    ProfileRequest,
    QuickWeightRequest,
    TextCaptureRequest,
    WeightRequest,
    advice_payload,
    capture_payload,
    day_payload,
    localize,
    meal_payload,
    profile_payload,
    weight_payload,
)
from nutrition_ledger.app_logging import configure_logging
from nutrition_ledger.config import parse_timezone
from nutrition_ledger.containers import AppContainer
from nutrition_ledger.domain.meals import MealUpdate
from nutrition_ledger.errors import (
    CollaboratorError,
    FutureEntryError,
    InvalidEntryError,
    LedgerError,
    NotFoundError,
    ProductNotFoundError,
    StaleCaptureError,
)
from nutrition_ledger.services.timestamps import local_day_bounds

_ERROR_STATUS: tuple[tuple[type[LedgerError], int], ...] = (
    (ProductNotFoundError, status.HTTP_404_NOT_FOUND),
    (CollaboratorError, status.HTTP_502_BAD_GATEWAY),
    (FutureEntryError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidEntryError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (StaleCaptureError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
)


async def require_owner(x_owner_id: UUID | None = Header(default=None)) -> UUID:
    """Return the owner id supplied by the identity provider."""
    if x_owner_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Owner-Id header",
        )
    return x_owner_id


async def viewer_timezone(
    request: Request, x_timezone: str | None = Header(default=None)
) -> ZoneInfo:
    """Return the viewer's timezone, falling back to the configured default."""
    container: AppContainer = request.app.state.container
    return parse_timezone(x_timezone, container.settings.default_timezone)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(LedgerError)
    async def ledger_error(request: Request, exc: LedgerError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/captures/text")
    async def capture_text(
        payload: TextCaptureRequest,
        request: Request,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Estimate a described meal."""
        state_container: AppContainer = request.app.state.container
        capture = await state_container.capture_service.start_text(
            owner_id,
            payload.description,
            payload.reference_date or _today(tz),
            tz,
        )
        return capture_payload(capture)

    @app.post("/captures/image")
    async def capture_image(
        payload: ImageCaptureRequest,
        request: Request,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Estimate a photographed meal."""
        state_container: AppContainer = request.app.state.container
        capture = await state_container.capture_service.start_image(
            owner_id,
            payload.image,
            payload.reference_date or _today(tz),
            tz,
            image_ref=payload.image_ref,
        )
        return capture_payload(capture)

    @app.post("/captures/barcode")
    async def capture_barcode(
        payload: BarcodeCaptureRequest,
        request: Request,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Look up a scanned product."""
        state_container: AppContainer = request.app.state.container
        capture = await state_container.capture_service.start_barcode(
            owner_id,
            payload.code,
            payload.reference_date or _today(tz),
            tz,
        )
        return capture_payload(capture)

    @app.get("/captures/{capture_id}")
    async def get_capture(
        capture_id: UUID, request: Request, owner_id: UUID = Depends(require_owner)
    ) -> dict[str, object]:
        """Return a capture session."""
        state_container: AppContainer = request.app.state.container
        return capture_payload(
            state_container.capture_service.get_capture(owner_id, capture_id)
        )

    @app.post("/captures/{capture_id}/confirm")
    async def confirm_capture(
        capture_id: UUID,
        payload: ConfirmCaptureRequest,
        request: Request,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Persist a pending capture as a meal."""
        state_container: AppContainer = request.app.state.container
        meal = await state_container.capture_service.confirm(
            owner_id,
            capture_id,
            grams=payload.grams,
            timestamp=localize(payload.timestamp, tz),
            name=payload.name,
            note=payload.note,
            refresh_note=payload.refresh_note,
        )
        return meal_payload(meal, tz)

    @app.post("/captures/{capture_id}/cancel")
    async def cancel_capture(
        capture_id: UUID, request: Request, owner_id: UUID = Depends(require_owner)
    ) -> dict[str, str]:
        """Abandon a capture."""
        state_container: AppContainer = request.app.state.container
        state_container.capture_service.cancel(owner_id, capture_id)
        return {"status": "cancelled"}

    @app.get("/meals")
    async def list_meals(
        request: Request,
        day: date | None = None,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Return the meals of a local day, oldest first."""
        state_container: AppContainer = request.app.state.container
        view = state_container.stats_service.get_day(owner_id, day or _today(tz), tz)
        return {"meals": [meal_payload(meal, tz) for meal in view.meals]}

    @app.patch("/meals/{meal_id}")
    async def update_meal(
        meal_id: UUID,
        payload: MealPatchRequest,
        request: Request,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Rescale, rename or re-date a meal."""
        state_container: AppContainer = request.app.state.container
        meal = await state_container.meal_log_service.update_meal(
            owner_id,
            meal_id,
            MealUpdate(
                serving_grams=payload.serving_grams,
                timestamp=localize(payload.timestamp, tz),
                name=payload.name,
                note=payload.note,
            ),
            refresh_note=payload.refresh_note,
        )
        return meal_payload(meal, tz)

    @app.delete("/meals/{meal_id}")
    async def delete_meal(
        meal_id: UUID, request: Request, owner_id: UUID = Depends(require_owner)
    ) -> dict[str, str]:
        """Delete a meal."""
        state_container: AppContainer = request.app.state.container
        state_container.meal_log_service.delete_meal(owner_id, meal_id)
        return {"status": "deleted"}

    @app.get("/days/{day}")
    async def day_view(
        day: date,
        request: Request,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Return a day's totals and progress against targets."""
        state_container: AppContainer = request.app.state.container
        view = state_container.stats_service.get_day(owner_id, day, tz)
        return day_payload(view, tz)

    @app.get("/summary/week")
    async def week_summary(
        request: Request,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Return week-to-date totals."""
        state_container: AppContainer = request.app.state.container
        return asdict(state_container.stats_service.get_week(owner_id, tz))

    @app.get("/summary/month")
    async def month_summary(
        request: Request,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Return month-to-date totals."""
        state_container: AppContainer = request.app.state.container
        return asdict(state_container.stats_service.get_month(owner_id, tz))

    @app.get("/charts")
    async def chart(
        request: Request,
        days: int = Query(default=30, ge=1, le=366),
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Return the merged calories and weight series."""
        state_container: AppContainer = request.app.state.container
        points = state_container.stats_service.get_chart(owner_id, tz, days=days)
        return {"points": [point.to_dict() for point in points]}

    @app.get("/weights")
    async def list_weights(
        request: Request,
        start: date | None = None,
        end: date | None = None,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Return the weight history between two local days, inclusive."""
        state_container: AppContainer = request.app.state.container
        start_at = local_day_bounds(start, tz)[0].astimezone(UTC) if start else None
        end_at = local_day_bounds(end, tz)[1].astimezone(UTC) if end else None
        samples = state_container.weight_service.history(owner_id, start_at, end_at)
        return {"weights": [weight_payload(sample, tz) for sample in samples]}

    @app.post("/weights")
    async def add_weight(
        payload: WeightRequest,
        request: Request,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Append a weight sample to the history."""
        state_container: AppContainer = request.app.state.container
        sample = state_container.weight_service.add_sample(
            owner_id, payload.kilograms, localize(payload.timestamp, tz)
        )
        return weight_payload(sample, tz)

    @app.post("/weights/quick")
    async def quick_weight(
        payload: QuickWeightRequest,
        request: Request,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Record the weight of a day, replacing that day's sample."""
        state_container: AppContainer = request.app.state.container
        sample = state_container.weight_service.quick_log(
            owner_id, payload.kilograms, payload.day or _today(tz), tz
        )
        return weight_payload(sample, tz)

    @app.delete("/weights/{weight_id}")
    async def delete_weight(
        weight_id: UUID, request: Request, owner_id: UUID = Depends(require_owner)
    ) -> dict[str, str]:
        """Delete a weight sample."""
        state_container: AppContainer = request.app.state.container
        state_container.weight_service.delete_sample(owner_id, weight_id)
        return {"status": "deleted"}

    @app.get("/profile")
    async def get_profile(
        request: Request, owner_id: UUID = Depends(require_owner)
    ) -> dict[str, object]:
        """Return the saved profile and its targets."""
        state_container: AppContainer = request.app.state.container
        profile = state_container.profile_service.get_profile(owner_id)
        if profile is None:
            raise NotFoundError(f"Profile for {owner_id} not found")
        return profile_payload(profile)

    @app.put("/profile")
    async def save_profile(
        payload: ProfileRequest,
        request: Request,
        owner_id: UUID = Depends(require_owner),
    ) -> dict[str, object]:
        """Save body measurements and recompute targets."""
        state_container: AppContainer = request.app.state.container
        profile = state_container.profile_service.save_measurements(
            owner_id,
            weight_kg=payload.weight_kg,
            height_cm=payload.height_cm,
            age=payload.age,
            sex=payload.sex,
            activity_factor=payload.activity_factor,
            goal_delta=payload.goal_delta,
        )
        return profile_payload(profile)

    @app.post("/profile/goal")
    async def set_goal(
        payload: GoalRequest,
        request: Request,
        owner_id: UUID = Depends(require_owner),
    ) -> dict[str, object]:
        """Resolve a free-text goal into targets."""
        state_container: AppContainer = request.app.state.container
        profile = await state_container.profile_service.apply_goal_description(
            owner_id, payload.description
        )
        return profile_payload(profile)

    @app.get("/advice/daily")
    async def daily_advice(
        request: Request,
        owner_id: UUID = Depends(require_owner),
        tz: ZoneInfo = Depends(viewer_timezone),
    ) -> dict[str, object]:
        """Return today's coach advice."""
        state_container: AppContainer = request.app.state.container
        advice = await state_container.advice_service.get_daily_advice(owner_id, tz)
        return advice_payload(advice)

    return app


def _status_for(exc: LedgerError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


def _today(tz: tzinfo) -> date:
    return datetime.now(tz=tz).date()
