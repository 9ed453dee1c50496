"""Nutrition estimates from images, text and barcodes."""

import base64
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol, TypeVar

from pydantic import ValidationError

from nutrition_ledger.domain.estimates import CoachAdvice, GoalTargets, NutritionEstimate
from nutrition_ledger.domain.profile import ProfileInput
from nutrition_ledger.errors import CollaboratorError, ProductNotFoundError
from nutrition_ledger.services.cache import Cache

if TYPE_CHECKING:
    from nutrition_ledger.adapters.openfoodfacts_client import ProductClient

_logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", NutritionEstimate, GoalTargets, CoachAdvice)

_NULLABLE_STRING: dict[str, object] = {"anyOf": [{"type": "string"}, {"type": "null"}]}

ESTIMATE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "quantity_grams": {"type": "number", "minimum": 0},
        "calories": {"type": "number", "minimum": 0},
        "protein_g": {"type": "number", "minimum": 0},
        "carbs_g": {"type": "number", "minimum": 0},
        "fat_g": {"type": "number", "minimum": 0},
        "note": {"type": "string"},
        "date": _NULLABLE_STRING,
        "time": _NULLABLE_STRING,
    },
    "required": [
        "name",
        "quantity_grams",
        "calories",
        "protein_g",
        "carbs_g",
        "fat_g",
        "note",
        "date",
        "time",
    ],
    "additionalProperties": False,
}

GOAL_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "target_calories": {"type": "integer", "minimum": 0},
        "protein_g": {"type": "integer", "minimum": 0},
        "carbs_g": {"type": "integer", "minimum": 0},
        "fat_g": {"type": "integer", "minimum": 0},
        "explanation": {"type": "string"},
    },
    "required": ["target_calories", "protein_g", "carbs_g", "fat_g", "explanation"],
    "additionalProperties": False,
}

NOTE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {"note": {"type": "string"}},
    "required": ["note"],
    "additionalProperties": False,
}

ADVICE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "tip": {"type": "string"},
        "recipe": {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "content": {"type": "string"},
                "why": {"type": "string"},
            },
            "required": ["name", "content", "why"],
            "additionalProperties": False,
        },
    },
    "required": ["tip", "recipe"],
    "additionalProperties": False,
}

_PER_100G_INSTRUCTIONS = (
    "Report calories, protein_g, carbs_g and fat_g per 100 g of the food, "
    "not for the whole portion. Put the estimated portion weight in "
    "quantity_grams. Keep note to at most two sentences about the "
    "nutritional quality of the meal."
)


class EstimatorClient(Protocol):
    """Interface for LLM structured completions."""

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
        image_data_url: str | None = None,
    ) -> dict[str, object]:
        """Return the JSON object produced for ``schema``."""


@dataclass
class EstimatorService:
    """Service that prepares prompts and validates estimator results.

    Every collaborator failure, including output that does not match the
    expected shape, surfaces as ``CollaboratorError``.
    """

    client: EstimatorClient
    product_client: "ProductClient"
    cache: Cache
    model: str
    reasoning_effort: str | None
    store: bool
    product_ttl_seconds: int = 86400

    async def estimate_from_image(self, image_bytes: bytes) -> NutritionEstimate:
        """Estimate the meal shown in an image."""
        prompt = (
            "Identify the main dish in the image and estimate its nutrition. "
            + _PER_100G_INSTRUCTIONS
            + " Set date and time to null."
        )
        raw = await self._complete(
            "estimate_image",
            prompt=prompt,
            schema=ESTIMATE_SCHEMA,
            image_data_url=_to_data_url(image_bytes),
        )
        estimate = _validate(NutritionEstimate, raw, "estimate_image")
        return estimate.model_copy(update={"date": None, "time": None})

    async def estimate_from_text(
        self, description: str, reference: datetime
    ) -> NutritionEstimate:
        """Estimate a described meal and any date or time it mentions."""
        prompt = (
            f'Estimate the nutrition of this meal description: "{description.strip()}". '
            f"Today is {reference.strftime('%A %Y-%m-%d')}. "
            + _PER_100G_INSTRUCTIONS
            + " If the description mentions when the meal was eaten "
            "(for example 'yesterday', 'this morning', 'at 7'), set date to "
            "YYYY-MM-DD and time to HH:MM relative to today; otherwise null."
        )
        raw = await self._complete("estimate_text", prompt=prompt, schema=ESTIMATE_SCHEMA)
        return _validate(NutritionEstimate, raw, "estimate_text")

    async def estimate_from_barcode(self, code: str) -> NutritionEstimate:
        """Look up a packaged product by barcode; values are per 100 g."""
        code = code.strip()
        if not code:
            raise ProductNotFoundError(code)
        cache_key = f"off:product:{code}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, NutritionEstimate):
            return cached

        try:
            product = await self.product_client.get_product(code)
        except Exception as exc:
            _logger.exception("Barcode lookup failed: code=%s", code)
            raise CollaboratorError("openfoodfacts", str(exc)) from exc
        if product is None:
            raise ProductNotFoundError(code)

        estimate = _estimate_from_product(product)
        self.cache.set(cache_key, estimate, ttl_seconds=self.product_ttl_seconds)
        _logger.info("Barcode resolved: code=%s name=%s", code, estimate.name)
        return estimate

    async def goal_targets(
        self, description: str, inputs: ProfileInput
    ) -> GoalTargets:
        """Translate a free-text fitness goal into calorie and macro targets."""
        profile = json.dumps(
            {
                "weight_kg": inputs.weight_kg,
                "height_cm": inputs.height_cm,
                "age": inputs.age,
                "sex": str(inputs.sex),
                "activity_factor": inputs.activity_factor,
            }
        )
        prompt = (
            f'The user states this fitness goal: "{description.strip()}". '
            f"Current profile: {profile}. "
            "Compute BMR with Mifflin-St Jeor and TDEE as BMR times the activity "
            "factor, choose a healthy deficit or surplus (at most 0.5-1 kg per "
            "week), then suggest macros: protein 1.8-2.2 g/kg, fat 20-30% of "
            "calories, carbs the remainder. Explain in at most three sentences."
        )
        raw = await self._complete("goal_targets", prompt=prompt, schema=GOAL_SCHEMA)
        return _validate(GoalTargets, raw, "goal_targets")

    async def portion_note(self, name: str, grams: int) -> str:
        """Return a short comment on a meal at a new portion size."""
        prompt = (
            f'The user changed the portion of "{name}" to {grams} g. '
            "Write a new short nutritional comment for this exact portion in at "
            "most two sentences. Warn if the portion looks excessive and point "
            "it out if it looks too small."
        )
        raw = await self._complete("portion_note", prompt=prompt, schema=NOTE_SCHEMA)
        note = raw.get("note")
        if not isinstance(note, str) or not note.strip():
            raise CollaboratorError("openai", "portion_note returned no note")
        return note.strip()

    async def coach_advice(
        self,
        goal_description: str | None,
        target_calories: int,
        calories_consumed: int,
    ) -> CoachAdvice:
        """Return a motivational tip and a recipe for the rest of the day."""
        context = json.dumps(
            {
                "goal": goal_description,
                "target_calories": target_calories,
                "calories_consumed": calories_consumed,
                "remaining": target_calories - calories_consumed,
            }
        )
        prompt = (
            "You are a friendly, encouraging nutrition coach. "
            f"User context: {context}. "
            "Give a short motivational tip (at most two sentences) based on the "
            "goal, and propose a quick healthy recipe that fits the remaining "
            "calories, explaining why it suits the user today."
        )
        raw = await self._complete("coach_advice", prompt=prompt, schema=ADVICE_SCHEMA)
        return _validate(CoachAdvice, raw, "coach_advice")

    async def _complete(
        self,
        action: str,
        *,
        prompt: str,
        schema: dict[str, object],
        image_data_url: str | None = None,
    ) -> dict[str, object]:
        try:
            raw = await self.client.complete(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=prompt,
                schema=schema,
                schema_name=action,
                image_data_url=image_data_url,
            )
        except Exception as exc:
            _logger.exception("Estimator %s failed", action)
            raise CollaboratorError("openai", f"{action} failed: {exc}") from exc
        if not isinstance(raw, dict):
            raise CollaboratorError("openai", f"{action} returned a non-object")
        return raw


def _validate(
    model: type[ModelT], raw: dict[str, object], action: str
) -> ModelT:
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        _logger.warning("Estimator %s returned malformed data: %s", action, exc)
        raise CollaboratorError("openai", f"{action} returned malformed data") from exc


def _estimate_from_product(product: dict[str, object]) -> NutritionEstimate:
    nutriments = product.get("nutriments")
    if not isinstance(nutriments, dict):
        nutriments = {}
    name = product.get("product_name")
    brands = product.get("brands")
    name_text = name.strip() if isinstance(name, str) else ""
    brands_text = brands.strip() if isinstance(brands, str) else ""
    scanned = " ".join(part for part in (brands_text, name_text) if part)
    return NutritionEstimate(
        name=name_text or "Unknown product",
        quantity_grams=100,
        calories=nutriments.get("energy-kcal_100g"),
        protein_g=nutriments.get("proteins_100g"),
        carbs_g=nutriments.get("carbohydrates_100g"),
        fat_g=nutriments.get("fat_100g"),
        note=f"Scanned product: {scanned or 'unknown'}. Values per 100 g.",
    )


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
