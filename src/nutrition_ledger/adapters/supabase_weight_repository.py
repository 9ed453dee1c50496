"""Supabase repository for body weight samples."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from nutrition_ledger.domain.weights import WeightSample
from nutrition_ledger.errors import CollaboratorError
from nutrition_ledger.services.weights import WeightRepository


@dataclass
class SupabaseWeightRepository(WeightRepository):
    """Supabase implementation for weight samples."""

    client: Client

    def create_weight(
        self, owner_id: UUID, kilograms: float, timestamp: datetime
    ) -> WeightSample:
        """Create a weight row and return it."""
        response = (
            self.client.table("weights")
            .insert(
                {
                    "owner_id": str(owner_id),
                    "kilograms": kilograms,
                    "measured_at": timestamp.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise CollaboratorError("supabase", "Failed to create weight")
        return _parse_row(response.data[0])

    def get_weight(self, weight_id: UUID) -> WeightSample | None:
        """Return a weight sample by id, if present."""
        response = (
            self.client.table("weights")
            .select("id, owner_id, kilograms, measured_at")
            .eq("id", str(weight_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def list_weights(
        self,
        owner_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[WeightSample]:
        """Return weight samples, oldest first."""
        query = (
            self.client.table("weights")
            .select("id, owner_id, kilograms, measured_at")
            .eq("owner_id", str(owner_id))
        )
        if start is not None:
            query = query.gte("measured_at", start.isoformat())
        if end is not None:
            query = query.lt("measured_at", end.isoformat())
        response = query.order("measured_at", desc=False).execute()
        return [_parse_row(row) for row in response.data or []]

    def update_weight(
        self, weight_id: UUID, kilograms: float, timestamp: datetime
    ) -> None:
        """Update a weight row."""
        self.client.table("weights").update(
            {"kilograms": kilograms, "measured_at": timestamp.isoformat()}
        ).eq("id", str(weight_id)).execute()

    def delete_weight(self, weight_id: UUID) -> None:
        """Delete a weight row."""
        self.client.table("weights").delete().eq("id", str(weight_id)).execute()


def _parse_row(row: dict[str, object]) -> WeightSample:
    measured_at = datetime.fromisoformat(str(row["measured_at"]))
    if measured_at.tzinfo is None:
        measured_at = measured_at.replace(tzinfo=UTC)
    return WeightSample(
        id=UUID(str(row["id"])),
        owner_id=UUID(str(row["owner_id"])),
        kilograms=float(row.get("kilograms") or 0.0),
        timestamp=measured_at,
    )
