"""Body weight history service."""

import logging
import math
from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo
from typing import Protocol
from uuid import UUID

from nutrition_ledger.domain.weights import WeightSample
from nutrition_ledger.errors import InvalidEntryError, NotFoundError
from nutrition_ledger.services.timestamps import (
    TimestampHint,
    ensure_not_future,
    local_day_bounds,
    resolve_timestamp,
)

_logger = logging.getLogger(__name__)


class WeightRepository(Protocol):
    """Persistence interface for weight samples."""

    def create_weight(
        self, owner_id: UUID, kilograms: float, timestamp: datetime
    ) -> WeightSample:
        """Create a weight sample and return it."""

    def get_weight(self, weight_id: UUID) -> WeightSample | None:
        """Return a weight sample by id, if present."""

    def list_weights(
        self,
        owner_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[WeightSample]:
        """Return samples with ``start <= timestamp < end``, oldest first."""

    def update_weight(
        self, weight_id: UUID, kilograms: float, timestamp: datetime
    ) -> None:
        """Update a weight sample."""

    def delete_weight(self, weight_id: UUID) -> None:
        """Delete a weight sample."""


@dataclass
class WeightService:
    """Service for logging body weight."""

    repository: WeightRepository
    reject_future_entries: bool = True

    def quick_log(
        self,
        owner_id: UUID,
        kilograms: float,
        day: date,
        tz: tzinfo,
        now: datetime | None = None,
    ) -> WeightSample:
        """Record the weight of a local day, replacing that day's sample."""
        current = now or datetime.now(tz=UTC)
        timestamp = resolve_timestamp(
            current.astimezone(tz),
            TimestampHint(date=day.isoformat()),
            now=current,
        )
        self._check_policy(timestamp, current)
        kilograms = _normalize_kilograms(kilograms)
        start, end = local_day_bounds(day, tz)
        existing = self.repository.list_weights(
            owner_id, start.astimezone(UTC), end.astimezone(UTC)
        )
        if existing:
            sample = existing[-1]
            self.repository.update_weight(sample.id, kilograms, timestamp)
            _logger.info("Weight replaced: owner=%s day=%s", owner_id, day)
            return WeightSample(
                id=sample.id,
                owner_id=owner_id,
                kilograms=kilograms,
                timestamp=timestamp,
            )
        return self.repository.create_weight(owner_id, kilograms, timestamp)

    def add_sample(
        self,
        owner_id: UUID,
        kilograms: float,
        timestamp: datetime,
        now: datetime | None = None,
    ) -> WeightSample:
        """Append a sample to the detailed history."""
        self._check_policy(timestamp, now)
        return self.repository.create_weight(
            owner_id, _normalize_kilograms(kilograms), timestamp
        )

    def history(
        self,
        owner_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[WeightSample]:
        """Return the weight history, oldest first."""
        samples = self.repository.list_weights(owner_id, start, end)
        return sorted(samples, key=lambda sample: sample.timestamp)

    def delete_sample(self, owner_id: UUID, weight_id: UUID) -> None:
        """Delete a sample owned by ``owner_id``."""
        sample = self.repository.get_weight(weight_id)
        if sample is None or sample.owner_id != owner_id:
            raise NotFoundError(f"Weight {weight_id} not found")
        self.repository.delete_weight(weight_id)

    def _check_policy(self, timestamp: datetime, now: datetime | None) -> None:
        if self.reject_future_entries:
            ensure_not_future(timestamp, now)


def _normalize_kilograms(value: float) -> float:
    if not math.isfinite(value) or value <= 0:
        raise InvalidEntryError(f"Weight must be a positive number, got {value}")
    return round(float(value), 1)
