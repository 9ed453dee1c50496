"""Domain models for body weight history."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class WeightSample:
    """A body weight measurement."""

    id: UUID
    owner_id: UUID
    kilograms: float
    timestamp: datetime
