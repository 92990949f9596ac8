"""Workout form capture and validation."""

from __future__ import annotations

import math
from dataclasses import dataclass

from mapty.workout.model import WORKOUT_TYPES, InvalidMetricError, derived_metric


class ValidationError(ValueError):
    """Raised when submitted workout inputs are invalid."""


@dataclass(frozen=True)
class WorkoutForm:
    """Raw values as reported by the view; any of them may be missing."""

    kind: str
    distance: object = None
    duration: object = None
    cadence: object = None
    elevation: object = None


@dataclass(frozen=True)
class WorkoutInput:
    kind: str
    distance_km: float
    duration_min: float
    extra: float


def validate_workout_form(form: WorkoutForm) -> WorkoutInput:
    if form.kind not in WORKOUT_TYPES:
        raise ValidationError(f"Unknown workout type '{form.kind}'")

    distance_km = _parse_number_field(raw=form.distance, label="Distance")
    duration_min = _parse_number_field(raw=form.duration, label="Duration")
    if distance_km <= 0:
        raise ValidationError("Distance must be a positive number")
    if duration_min <= 0:
        raise ValidationError("Duration must be a positive number")
    try:
        derived_metric(form.kind, distance_km, duration_min)
    except InvalidMetricError as exc:
        raise ValidationError("Distance and duration are out of range") from exc

    if form.kind == "running":
        extra = _parse_number_field(raw=form.cadence, label="Cadence")
        if extra <= 0:
            raise ValidationError("Cadence must be a positive number")
        if not extra.is_integer():
            raise ValidationError("Cadence must be a whole number of steps per minute")
    else:
        extra = _parse_number_field(raw=form.elevation, label="Elevation gain")
        if extra < 0:
            raise ValidationError("Elevation gain must not be negative")

    return WorkoutInput(
        kind=form.kind,
        distance_km=distance_km,
        duration_min=duration_min,
        extra=extra,
    )


def _parse_number_field(*, raw: object, label: str) -> float:
    if raw is None or isinstance(raw, bool):
        raise ValidationError(f"{label} is required")
    if isinstance(raw, str) and raw.strip() == "":
        raise ValidationError(f"{label} is required")
    try:
        value = float(str(raw).strip())
    except ValueError as exc:
        raise ValidationError(f"{label} must be a number") from exc
    if not math.isfinite(value):
        raise ValidationError(f"{label} must be a finite number")
    return value
