"""Supabase-backed capture session repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from nutrition_ledger.domain.captures import OPEN_STATUSES, CaptureRecord, CaptureStatus
from nutrition_ledger.errors import CollaboratorError
from nutrition_ledger.services.captures import CaptureRepository


@dataclass
class SupabaseCaptureRepository(CaptureRepository):
    """Supabase implementation for capture sessions."""

    client: Client

    def create_capture(
        self, owner_id: UUID, status: CaptureStatus, context: dict[str, object]
    ) -> CaptureRecord:
        """Create a capture row and return it."""
        response = (
            self.client.table("capture_sessions")
            .insert(
                {
                    "owner_id": str(owner_id),
                    "status": str(status),
                    "context_json": context,
                }
            )
            .execute()
        )
        if not response.data:
            raise CollaboratorError("supabase", "Failed to create capture")
        return _parse_row(response.data[0])

    def get_capture(self, capture_id: UUID) -> CaptureRecord | None:
        """Return a capture by id, if present."""
        response = (
            self.client.table("capture_sessions")
            .select("id, owner_id, status, context_json")
            .eq("id", str(capture_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def list_open_captures(self, owner_id: UUID) -> list[CaptureRecord]:
        """Return analyzing or pending captures, newest first."""
        response = (
            self.client.table("capture_sessions")
            .select("id, owner_id, status, context_json")
            .eq("owner_id", str(owner_id))
            .in_("status", sorted(str(status) for status in OPEN_STATUSES))
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]

    def update_capture(
        self, capture_id: UUID, status: CaptureStatus, context: dict[str, object]
    ) -> None:
        """Update capture status and context."""
        self.client.table("capture_sessions").update(
            {
                "status": str(status),
                "context_json": context,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).eq("id", str(capture_id)).execute()


def _parse_row(row: dict[str, object]) -> CaptureRecord:
    context = row.get("context_json")
    return CaptureRecord(
        id=UUID(str(row["id"])),
        owner_id=UUID(str(row["owner_id"])),
        status=CaptureStatus(str(row["status"])),
        context=context if isinstance(context, dict) else {},
    )
