"""Workout domain models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, ClassVar, Literal
from uuid import uuid4

WorkoutKind = Literal["running", "cycling"]
Coordinates = tuple[float, float]

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


class InvalidMetricError(ValueError):
    """Raised when a workout is built with metrics that cannot describe a real workout."""


def _new_workout_id() -> str:
    return uuid4().hex


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _build_description(kind: str, created_at: datetime) -> str:
    return f"{kind.capitalize()} on {MONTH_NAMES[created_at.month - 1]} {created_at.day}"


def _pace(distance_km: float, duration_min: float) -> float:
    # min/km
    return duration_min / distance_km


def _speed(distance_km: float, duration_min: float) -> float:
    # km/h
    return distance_km * 60 / duration_min


_DERIVED_METRICS: dict[str, Callable[[float, float], float]] = {
    "running": _pace,
    "cycling": _speed,
}


def derived_metric(kind: str, distance_km: float, duration_min: float) -> float:
    """Pace for running, speed for cycling; must be a positive finite number."""
    compute = _DERIVED_METRICS.get(kind)
    if compute is None:
        raise InvalidMetricError(f"Unknown workout kind '{kind}'")
    value = compute(distance_km, duration_min)
    if not math.isfinite(value) or value <= 0:
        raise InvalidMetricError(
            f"distance_km={distance_km!r} and duration_min={duration_min!r} "
            f"give no usable {'pace' if kind == 'running' else 'speed'}"
        )
    return value


@dataclass
class InteractionCounter:
    count: int = 0


@dataclass(frozen=True, kw_only=True, eq=False)
class Workout:
    coordinates: Coordinates
    distance_km: float
    duration_min: float
    id: str = field(default_factory=_new_workout_id)
    created_at: datetime = field(default_factory=_local_now)
    interactions: InteractionCounter = field(default_factory=InteractionCounter, repr=False)
    description: str = field(init=False)

    kind: ClassVar[WorkoutKind]

    def __post_init__(self) -> None:
        object.__setattr__(self, "description", _build_description(self.kind, self.created_at))

    @property
    def click_count(self) -> int:
        return self.interactions.count


@dataclass(frozen=True, kw_only=True, eq=False)
class Running(Workout):
    cadence: int
    pace: float = field(init=False)

    kind: ClassVar[WorkoutKind] = "running"

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(
            self, "pace", derived_metric(self.kind, self.distance_km, self.duration_min)
        )


@dataclass(frozen=True, kw_only=True, eq=False)
class Cycling(Workout):
    elevation_gain_m: float
    speed: float = field(init=False)

    kind: ClassVar[WorkoutKind] = "cycling"

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(
            self, "speed", derived_metric(self.kind, self.distance_km, self.duration_min)
        )


WORKOUT_TYPES: dict[str, type[Running] | type[Cycling]] = {
    "running": Running,
    "cycling": Cycling,
}

# Name of the variant-specific input for each kind.
EXTRA_FIELDS: dict[str, str] = {
    "running": "cadence",
    "cycling": "elevation",
}

WORKOUT_ICONS: dict[str, str] = {
    "running": "🏃‍♂️",
    "cycling": "🚴‍♀️",
}


def create_workout(
    kind: str,
    coordinates: Coordinates,
    distance_km: float,
    duration_min: float,
    extra: float,
    *,
    workout_id: str | None = None,
    created_at: datetime | None = None,
    click_count: int = 0,
) -> Workout:
    """Build a fully-formed workout of the requested kind.

    ``extra`` is the cadence (a whole number of steps/min) for running and
    the elevation gain for cycling. ``workout_id``, ``created_at`` and
    ``click_count`` are only passed when rebuilding a stored workout.
    """
    if kind not in WORKOUT_TYPES:
        raise InvalidMetricError(f"Unknown workout kind '{kind}'")
    # Negated comparisons also reject NaN.
    if not distance_km > 0:
        raise InvalidMetricError("distance_km must be > 0")
    if not duration_min > 0:
        raise InvalidMetricError("duration_min must be > 0")
    if click_count < 0:
        raise InvalidMetricError("click_count must be >= 0")

    common: dict[str, object] = {
        "coordinates": (float(coordinates[0]), float(coordinates[1])),
        "distance_km": float(distance_km),
        "duration_min": float(duration_min),
        "interactions": InteractionCounter(int(click_count)),
    }
    if workout_id is not None:
        common["id"] = workout_id
    if created_at is not None:
        common["created_at"] = created_at

    if kind == "running":
        cadence = float(extra)
        if not cadence.is_integer() or cadence <= 0:
            raise InvalidMetricError("cadence must be a positive whole number")
        return Running(cadence=int(cadence), **common)  # type: ignore[arg-type]
    return Cycling(elevation_gain_m=float(extra), **common)  # type: ignore[arg-type]


def register_interaction(workout: Workout) -> None:
    workout.interactions.count += 1


def describe(workout: Workout) -> str:
    return workout.description
