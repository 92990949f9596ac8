"""Local persistence for recorded workouts."""

from __future__ import annotations

import json
import logging
import math
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Protocol

from mapty.workout.model import Cycling, Running, Workout, create_workout

logger = logging.getLogger(__name__)

STORAGE_KEY = "workout"


class PersistenceReadError(ValueError):
    """Raised when stored workout data cannot be decoded."""


class PersistenceWriteError(RuntimeError):
    """Raised when the storage backend refuses a write."""


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


def _default_storage_dir() -> Path:
    return Path.home() / ".mapty" / "storage"


class LocalStorage:
    """String key-value store backed by one JSON file per key."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self._root = base_dir or _default_storage_dir()

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        safe = re.sub(r"[^a-zA-Z0-9_-]+", "-", key.strip()).strip("-")
        return self._root / f"{safe or 'default'}.json"

    def get_item(self, key: str) -> str | None:
        target = self._path_for(key)
        if not target.exists():
            return None
        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.debug("Could not read %s", target, exc_info=True)
            return None

    def set_item(self, key: str, value: str) -> None:
        target = self._path_for(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = target.with_suffix(".tmp")
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(target)
        except OSError as exc:
            raise PersistenceWriteError(f"Unable to write {target}: {exc}") from exc

    def remove_item(self, key: str) -> None:
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceWriteError(f"Unable to remove '{key}': {exc}") from exc


def workout_to_record(workout: Workout) -> dict[str, Any]:
    record: dict[str, Any] = {
        "kind": workout.kind,
        "id": workout.id,
        "createdAtISO": workout.created_at.isoformat(),
        "coordinates": [workout.coordinates[0], workout.coordinates[1]],
        "distanceKm": workout.distance_km,
        "durationMin": workout.duration_min,
        "clickCount": workout.click_count,
        "description": workout.description,
    }
    if isinstance(workout, Running):
        record["pace"] = workout.pace
        record["cadence"] = workout.cadence
    elif isinstance(workout, Cycling):
        record["speed"] = workout.speed
        record["elevationGainM"] = workout.elevation_gain_m
    return record


def workout_from_record(record: object) -> Workout:
    if not isinstance(record, dict):
        raise PersistenceReadError("Workout record must be an object")

    kind = record.get("kind")
    extra_key = {"running": "cadence", "cycling": "elevationGainM"}.get(str(kind))
    if extra_key is None:
        raise PersistenceReadError(f"Unknown workout kind {kind!r}")

    workout_id = record.get("id")
    if not isinstance(workout_id, str) or not workout_id:
        raise PersistenceReadError("Workout field 'id' must be a non-empty string")

    coords = record.get("coordinates")
    if not isinstance(coords, list) or len(coords) != 2:
        raise PersistenceReadError("Workout field 'coordinates' must be [lat, lng]")

    try:
        created_at = datetime.fromisoformat(str(record["createdAtISO"]))
        return create_workout(
            str(kind),
            (_number(coords[0]), _number(coords[1])),
            _number(record["distanceKm"]),
            _number(record["durationMin"]),
            _number(record[extra_key]),
            workout_id=workout_id,
            created_at=created_at,
            click_count=_count(record.get("clickCount", 0)),
        )
    except PersistenceReadError:
        raise
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        # Includes InvalidMetricError for non-positive stored metrics.
        raise PersistenceReadError(f"Invalid workout record: {exc}") from exc


def _number(raw: object) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise PersistenceReadError(f"Expected a number, got {raw!r}")
    try:
        value = float(raw)
    except OverflowError as exc:
        raise PersistenceReadError(f"Number out of range: {exc}") from exc
    if not math.isfinite(value):
        raise PersistenceReadError(f"Expected a finite number, got {raw!r}")
    return value


def _count(raw: object) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        raise PersistenceReadError(f"Expected a non-negative integer, got {raw!r}")
    return raw


def save_workouts(workouts: Iterable[Workout], storage: KeyValueStorage) -> None:
    payload = [workout_to_record(workout) for workout in workouts]
    storage.set_item(STORAGE_KEY, json.dumps(payload, ensure_ascii=True))
    logger.info("Saved %d workout(s)", len(payload))


def _decode_workouts(raw: str) -> list[Workout]:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise PersistenceReadError(f"Invalid JSON: {exc}") from exc
    if data is None:
        return []
    if not isinstance(data, list):
        raise PersistenceReadError("Stored workouts must be an array")
    workouts = [workout_from_record(item) for item in data]
    if len({workout.id for workout in workouts}) != len(workouts):
        raise PersistenceReadError("Stored workouts contain duplicate ids")
    return workouts


def load_workouts(storage: KeyValueStorage) -> list[Workout]:
    raw = storage.get_item(STORAGE_KEY)
    if raw is None:
        return []
    try:
        return _decode_workouts(raw)
    except PersistenceReadError:
        logger.debug("Ignoring unreadable stored workouts", exc_info=True)
        return []


def clear_workouts(storage: KeyValueStorage) -> None:
    storage.remove_item(STORAGE_KEY)
