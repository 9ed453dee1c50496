"""Pydantic request models and JSON serializers for the HTTP API."""

from dataclasses import asdict
from datetime import date, datetime, tzinfo

from pydantic import Base64Bytes, BaseModel, Field

from nutrition_ledger.domain.captures import CaptureRecord
from nutrition_ledger.domain.estimates import CoachAdvice, NutritionEstimate
from nutrition_ledger.domain.meals import MealRecord
from nutrition_ledger.domain.profile import DEFAULT_ACTIVITY_FACTOR, Profile, Sex
from nutrition_ledger.domain.weights import WeightSample
from nutrition_ledger.services.scaling import scale
from nutrition_ledger.services.stats import DayView


class TextCaptureRequest(BaseModel):
    """Free-text meal description."""

    description: str = Field(min_length=1)
    reference_date: date | None = None


class ImageCaptureRequest(BaseModel):
    """Base64-encoded meal photo."""

    image: Base64Bytes
    image_ref: str | None = None
    reference_date: date | None = None


class BarcodeCaptureRequest(BaseModel):
    """Scanned product barcode."""

    code: str = Field(min_length=1)
    reference_date: date | None = None


class ConfirmCaptureRequest(BaseModel):
    """User corrections applied when confirming a capture."""

    grams: float | None = None
    timestamp: datetime | None = None
    name: str | None = None
    note: str | None = None
    refresh_note: bool = False


class MealPatchRequest(BaseModel):
    """Explicit edit of a saved meal."""

    serving_grams: float | None = None
    timestamp: datetime | None = None
    name: str | None = None
    note: str | None = None
    refresh_note: bool = False


class WeightRequest(BaseModel):
    """Detailed weight sample."""

    kilograms: float = Field(gt=0, allow_inf_nan=False)
    timestamp: datetime


class QuickWeightRequest(BaseModel):
    """Weight of a calendar day; defaults to today."""

    kilograms: float = Field(gt=0, allow_inf_nan=False)
    day: date | None = None


class ProfileRequest(BaseModel):
    """Profile form; ``goal_delta`` omitted keeps the stored goal."""

    weight_kg: float | None = None
    height_cm: float | None = None
    age: int | None = None
    sex: str = Sex.MALE
    activity_factor: float = DEFAULT_ACTIVITY_FACTOR
    goal_delta: int | None = None


class GoalRequest(BaseModel):
    """Free-text fitness goal."""

    description: str = Field(min_length=1)


def localize(value: datetime | None, tz: tzinfo) -> datetime | None:
    """Interpret naive request datetimes in the viewer's timezone."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=tz)


def meal_payload(meal: MealRecord, tz: tzinfo) -> dict[str, object]:
    """Serialize a meal with its timestamp in the viewer's timezone."""
    return {
        "id": str(meal.id),
        "name": meal.name,
        "serving_grams": meal.serving_grams,
        "basis": asdict(meal.basis) if meal.basis else None,
        **asdict(meal.amounts),
        "note": meal.note,
        "timestamp": meal.timestamp.astimezone(tz).isoformat(),
        "image_ref": meal.image_ref,
    }


def capture_payload(capture: CaptureRecord) -> dict[str, object]:
    """Serialize a capture with a preview of the scaled amounts."""
    context = capture.context
    payload: dict[str, object] = {
        "id": str(capture.id),
        "status": str(capture.status),
        "source": context.get("source"),
        "timestamp": context.get("timestamp"),
        "estimate": context.get("estimate"),
    }
    raw_estimate = context.get("estimate")
    if isinstance(raw_estimate, dict):
        estimate = NutritionEstimate.model_validate(raw_estimate)
        payload["preview"] = asdict(scale(estimate.basis, estimate.quantity_grams))
    return payload


def weight_payload(sample: WeightSample, tz: tzinfo) -> dict[str, object]:
    """Serialize a weight sample."""
    return {
        "id": str(sample.id),
        "kilograms": sample.kilograms,
        "timestamp": sample.timestamp.astimezone(tz).isoformat(),
    }


def profile_payload(profile: Profile) -> dict[str, object]:
    """Serialize a profile with its cached targets."""
    inputs = profile.inputs
    return {
        "weight_kg": inputs.weight_kg,
        "height_cm": inputs.height_cm,
        "age": inputs.age,
        "sex": str(inputs.sex),
        "activity_factor": inputs.activity_factor,
        "goal_delta": inputs.goal_delta,
        "goal_description": inputs.goal_description,
        "goal_targets": inputs.goal_targets.model_dump()
        if inputs.goal_targets
        else None,
        "targets": asdict(profile.targets),
        "version": profile.version,
    }


def day_payload(view: DayView, tz: tzinfo) -> dict[str, object]:
    """Serialize the dashboard of a day."""
    return {
        "totals": asdict(view.aggregate),
        "targets": asdict(view.targets),
        "progress": asdict(view.progress),
        "meals": [meal_payload(meal, tz) for meal in view.meals],
    }


def advice_payload(advice: CoachAdvice) -> dict[str, object]:
    """Serialize coach advice."""
    return advice.model_dump()
