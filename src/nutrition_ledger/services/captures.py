"""Capture sessions guarding estimates until the user confirms them."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, tzinfo
from typing import Protocol
from uuid import UUID

from nutrition_ledger.domain.captures import (
    OPEN_STATUSES,
    CaptureRecord,
    CaptureSource,
    CaptureStatus,
)
from nutrition_ledger.domain.estimates import NutritionEstimate
from nutrition_ledger.domain.meals import MealRecord
from nutrition_ledger.errors import CollaboratorError, NotFoundError, StaleCaptureError
from nutrition_ledger.services.estimator import EstimatorService
from nutrition_ledger.services.meals import MealLogService
from nutrition_ledger.services.scaling import coerce_grams
from nutrition_ledger.services.timestamps import TimestampHint, resolve_timestamp

_logger = logging.getLogger(__name__)


class CaptureRepository(Protocol):
    """Persistence interface for capture sessions."""

    def create_capture(
        self, owner_id: UUID, status: CaptureStatus, context: dict[str, object]
    ) -> CaptureRecord:
        """Create a capture and return it."""

    def get_capture(self, capture_id: UUID) -> CaptureRecord | None:
        """Return a capture by id, if present."""

    def list_open_captures(self, owner_id: UUID) -> list[CaptureRecord]:
        """Return the captures of an owner that are analyzing or pending."""

    def update_capture(
        self, capture_id: UUID, status: CaptureStatus, context: dict[str, object]
    ) -> None:
        """Update a capture status and context."""


@dataclass
class CaptureService:
    """State machine for the estimate, confirm and persist flow.

    Each start supersedes the owner's open captures. The capture id is the
    flow token: an estimate that arrives after its capture stopped analyzing
    is stored but never becomes pending.
    """

    repository: CaptureRepository
    estimator: EstimatorService
    meal_service: MealLogService

    async def start_text(
        self,
        owner_id: UUID,
        description: str,
        reference: date,
        tz: tzinfo,
        now: datetime | None = None,
    ) -> CaptureRecord:
        """Estimate a described meal and hold it for confirmation."""
        return await self._start(
            owner_id,
            CaptureSource.TEXT,
            reference,
            tz,
            lambda reference_at: self.estimator.estimate_from_text(
                description, reference_at
            ),
            context={"description": description.strip()},
            now=now,
        )

    async def start_image(  # noqa: PLR0913
        self,
        owner_id: UUID,
        image_bytes: bytes,
        reference: date,
        tz: tzinfo,
        image_ref: str | None = None,
        now: datetime | None = None,
    ) -> CaptureRecord:
        """Estimate a photographed meal and hold it for confirmation."""
        return await self._start(
            owner_id,
            CaptureSource.IMAGE,
            reference,
            tz,
            lambda _: self.estimator.estimate_from_image(image_bytes),
            context={"image_ref": image_ref},
            now=now,
        )

    async def start_barcode(
        self,
        owner_id: UUID,
        code: str,
        reference: date,
        tz: tzinfo,
        now: datetime | None = None,
    ) -> CaptureRecord:
        """Look up a scanned product and hold it for confirmation."""
        return await self._start(
            owner_id,
            CaptureSource.BARCODE,
            reference,
            tz,
            lambda _: self.estimator.estimate_from_barcode(code),
            context={"barcode": code.strip()},
            now=now,
        )

    def get_capture(self, owner_id: UUID, capture_id: UUID) -> CaptureRecord:
        """Return a capture owned by ``owner_id``."""
        capture = self.repository.get_capture(capture_id)
        if capture is None or capture.owner_id != owner_id:
            raise NotFoundError(f"Capture {capture_id} not found")
        return capture

    async def confirm(  # noqa: PLR0913
        self,
        owner_id: UUID,
        capture_id: UUID,
        *,
        grams: object = None,
        timestamp: datetime | None = None,
        name: str | None = None,
        note: str | None = None,
        refresh_note: bool = False,
        now: datetime | None = None,
    ) -> MealRecord:
        """Persist the pending estimate with the user's corrections.

        With ``refresh_note`` and no explicit note, the note is rewritten for
        the confirmed portion. The estimate note is kept if that fails.
        """
        capture = self.get_capture(owner_id, capture_id)
        if not capture.is_pending:
            raise StaleCaptureError(
                f"Capture {capture_id} is {capture.status}, not awaiting confirmation"
            )
        context = dict(capture.context)
        estimate = NutritionEstimate.model_validate(context.get("estimate") or {})
        resolved = resolve_timestamp(
            datetime.fromisoformat(str(context["timestamp"])), override=timestamp
        )
        meal_name = name.strip() if name and name.strip() else estimate.name
        serving = grams if grams is not None else estimate.quantity_grams
        if note is None:
            note = estimate.note
            if refresh_note:
                note = await self._portion_note(meal_name, serving, fallback=note)
        meal = self.meal_service.log_meal(
            owner_id,
            name=meal_name,
            basis=estimate.basis,
            grams=serving,
            timestamp=resolved,
            note=note,
            image_ref=_optional_str(context.get("image_ref")),
            now=now,
        )
        context["meal_id"] = str(meal.id)
        self.repository.update_capture(capture_id, CaptureStatus.COMPLETED, context)
        return meal

    def cancel(self, owner_id: UUID, capture_id: UUID) -> None:
        """Abandon an open capture."""
        capture = self.get_capture(owner_id, capture_id)
        if capture.status not in OPEN_STATUSES:
            raise StaleCaptureError(f"Capture {capture_id} is {capture.status}")
        self.repository.update_capture(
            capture_id, CaptureStatus.CANCELLED, dict(capture.context)
        )

    async def _start(  # noqa: PLR0913
        self,
        owner_id: UUID,
        source: CaptureSource,
        reference: date,
        tz: tzinfo,
        estimate_call: Callable[[datetime], Awaitable[NutritionEstimate]],
        *,
        context: dict[str, object],
        now: datetime | None,
    ) -> CaptureRecord:
        current = now or datetime.now(tz=UTC)
        reference_at = datetime.combine(reference, time.min, tzinfo=tz)
        self._supersede_open(owner_id)
        context = {"source": str(source), **context}
        capture = self.repository.create_capture(
            owner_id, CaptureStatus.ANALYZING, context
        )

        try:
            estimate = await estimate_call(reference_at)
        except CollaboratorError as exc:
            context["error"] = str(exc)
            self.repository.update_capture(capture.id, CaptureStatus.FAILED, context)
            raise

        timestamp = resolve_timestamp(
            reference_at,
            TimestampHint(date=estimate.date, time=estimate.time),
            now=current,
        )
        context["estimate"] = estimate.model_dump()
        context["timestamp"] = timestamp.isoformat()

        latest = self.repository.get_capture(capture.id)
        if latest is None or latest.status != CaptureStatus.ANALYZING:
            status = latest.status if latest is not None else CaptureStatus.SUPERSEDED
            self.repository.update_capture(capture.id, status, context)
            _logger.info(
                "Discarding late estimate: capture=%s status=%s", capture.id, status
            )
            raise StaleCaptureError(f"Capture {capture.id} is {status}")

        self.repository.update_capture(
            capture.id, CaptureStatus.AWAITING_CONFIRMATION, context
        )
        _logger.info(
            "Capture ready: owner=%s capture=%s source=%s",
            owner_id,
            capture.id,
            source,
        )
        return CaptureRecord(
            id=capture.id,
            owner_id=owner_id,
            status=CaptureStatus.AWAITING_CONFIRMATION,
            context=context,
        )

    async def _portion_note(self, name: str, grams: object, *, fallback: str) -> str:
        try:
            return await self.estimator.portion_note(name, coerce_grams(grams))
        except CollaboratorError:
            _logger.warning("Keeping estimate note for %s", name)
            return fallback

    def _supersede_open(self, owner_id: UUID) -> None:
        for capture in self.repository.list_open_captures(owner_id):
            self.repository.update_capture(
                capture.id, CaptureStatus.SUPERSEDED, dict(capture.context)
            )


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) and value else None
