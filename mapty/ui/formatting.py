"""View models for workout markers and list entries."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape

from mapty.workout.model import WORKOUT_ICONS, Cycling, Running, Workout


@dataclass(frozen=True)
class WorkoutDetail:
    icon: str
    value: str
    unit: str


@dataclass(frozen=True)
class WorkoutListEntry:
    id: str
    kind: str
    title: str
    details: tuple[WorkoutDetail, ...]


def _fmt_number(value: float, digits: int = 1) -> str:
    return f"{value:.{digits}f}"


def _fmt_plain(value: float) -> str:
    # 5.0 -> "5", 5.25 -> "5.25"
    return f"{value:g}"


def workout_icon(workout: Workout) -> str:
    return WORKOUT_ICONS[workout.kind]


def build_list_entry(workout: Workout) -> WorkoutListEntry:
    details = [
        WorkoutDetail(workout_icon(workout), _fmt_plain(workout.distance_km), "km"),
        WorkoutDetail("⏱", _fmt_plain(workout.duration_min), "min"),
    ]
    if isinstance(workout, Running):
        details.append(WorkoutDetail("⚡️", _fmt_number(workout.pace), "min/km"))
        details.append(WorkoutDetail("🦶🏼", _fmt_plain(workout.cadence), "spm"))
    elif isinstance(workout, Cycling):
        details.append(WorkoutDetail("⚡️", _fmt_number(workout.speed), "km/h"))
        details.append(WorkoutDetail("⛰", _fmt_plain(workout.elevation_gain_m), "m"))
    return WorkoutListEntry(
        id=workout.id,
        kind=workout.kind,
        title=workout.description,
        details=tuple(details),
    )


def popup_content(workout: Workout) -> str:
    return f"{workout_icon(workout)} {escape(workout.description)}"


def marker_style_class(workout: Workout) -> str:
    return f"{workout.kind}-popup"
