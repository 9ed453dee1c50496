"""Domain models for meal capture sessions."""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID


class CaptureStatus(StrEnum):
    """Lifecycle of a capture session."""

    ANALYZING = "ANALYZING"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    SUPERSEDED = "SUPERSEDED"
    FAILED = "FAILED"


OPEN_STATUSES = frozenset(
    {CaptureStatus.ANALYZING, CaptureStatus.AWAITING_CONFIRMATION}
)


class CaptureSource(StrEnum):
    """How the meal was described."""

    IMAGE = "image"
    TEXT = "text"
    BARCODE = "barcode"


@dataclass(frozen=True)
class CaptureRecord:
    """Represents a persisted capture session."""

    id: UUID
    owner_id: UUID
    status: CaptureStatus
    context: dict[str, object]

    @property
    def is_pending(self) -> bool:
        """Return True while the capture awaits confirmation."""
        return self.status == CaptureStatus.AWAITING_CONFIRMATION
