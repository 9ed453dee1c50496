"""Supabase repository for meals."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from nutrition_ledger.domain.meals import MealRecord, NewMeal
from nutrition_ledger.domain.nutrition import MacroAmounts, MacroBasis
from nutrition_ledger.errors import CollaboratorError
from nutrition_ledger.services.meals import MealRepository

_COLUMNS = (
    "id, owner_id, name, serving_grams, calories_per_100g, protein_per_100g, "
    "carbs_per_100g, fat_per_100g, calories, protein_g, carbs_g, fat_g, note, "
    "logged_at, image_ref"
)


@dataclass
class SupabaseMealRepository(MealRepository):
    """Supabase implementation for meals."""

    client: Client

    def create_meal(self, owner_id: UUID, meal: NewMeal) -> UUID:
        """Create a meal row and return its id."""
        response = (
            self.client.table("meals")
            .insert(
                {
                    "owner_id": str(owner_id),
                    "name": meal.name,
                    "serving_grams": meal.serving_grams,
                    **_basis_columns(meal.basis),
                    **_amount_columns(meal.amounts),
                    "note": meal.note,
                    "logged_at": meal.timestamp.isoformat(),
                    "image_ref": meal.image_ref,
                }
            )
            .execute()
        )
        if not response.data:
            raise CollaboratorError("supabase", "Failed to create meal")
        return UUID(response.data[0]["id"])

    def get_meal(self, meal_id: UUID) -> MealRecord | None:
        """Return a meal by id, if present."""
        response = (
            self.client.table("meals")
            .select(_COLUMNS)
            .eq("id", str(meal_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def list_meals_in_range(
        self, owner_id: UUID, start: datetime, end: datetime
    ) -> list[MealRecord]:
        """Return meals logged in ``[start, end)``."""
        response = (
            self.client.table("meals")
            .select(_COLUMNS)
            .eq("owner_id", str(owner_id))
            .gte("logged_at", start.isoformat())
            .lt("logged_at", end.isoformat())
            .order("logged_at", desc=False)
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]

    def update_meal(self, meal: MealRecord) -> None:
        """Overwrite the editable fields of a meal row."""
        self.client.table("meals").update(
            {
                "name": meal.name,
                "serving_grams": meal.serving_grams,
                **_amount_columns(meal.amounts),
                "note": meal.note,
                "logged_at": meal.timestamp.isoformat(),
            }
        ).eq("id", str(meal.id)).execute()

    def delete_meal(self, meal_id: UUID) -> None:
        """Delete a meal row."""
        self.client.table("meals").delete().eq("id", str(meal_id)).execute()


def _basis_columns(basis: MacroBasis | None) -> dict[str, object]:
    return {
        "calories_per_100g": basis.calories if basis else None,
        "protein_per_100g": basis.protein_g if basis else None,
        "carbs_per_100g": basis.carbs_g if basis else None,
        "fat_per_100g": basis.fat_g if basis else None,
    }


def _amount_columns(amounts: MacroAmounts) -> dict[str, object]:
    return {
        "calories": amounts.calories,
        "protein_g": amounts.protein_g,
        "carbs_g": amounts.carbs_g,
        "fat_g": amounts.fat_g,
    }


def _parse_row(row: dict[str, object]) -> MealRecord:
    basis = None
    if row.get("calories_per_100g") is not None:
        basis = MacroBasis(
            calories=float(row.get("calories_per_100g") or 0.0),
            protein_g=float(row.get("protein_per_100g") or 0.0),
            carbs_g=float(row.get("carbs_per_100g") or 0.0),
            fat_g=float(row.get("fat_per_100g") or 0.0),
        )
    logged_at = datetime.fromisoformat(str(row["logged_at"]))
    if logged_at.tzinfo is None:
        logged_at = logged_at.replace(tzinfo=UTC)
    return MealRecord(
        id=UUID(str(row["id"])),
        owner_id=UUID(str(row["owner_id"])),
        name=str(row.get("name") or ""),
        serving_grams=int(row.get("serving_grams") or 100),
        basis=basis,
        amounts=MacroAmounts(
            calories=int(row.get("calories") or 0),
            protein_g=int(row.get("protein_g") or 0),
            carbs_g=int(row.get("carbs_g") or 0),
            fat_g=int(row.get("fat_g") or 0),
        ),
        note=str(row.get("note") or ""),
        timestamp=logged_at,
        image_ref=row.get("image_ref") or None,
    )
