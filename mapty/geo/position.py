"""One-shot position queries."""

from __future__ import annotations

import asyncio
from typing import Protocol

from mapty.workout.model import Coordinates


class PositionUnavailableError(RuntimeError):
    """Raised when the current position cannot be determined."""


class PositionProvider(Protocol):
    async def get_current_position(self) -> Coordinates: ...


class FixedPositionProvider:
    """Resolves with preconfigured coordinates (CLI override, tests)."""

    def __init__(self, coordinates: Coordinates, delay_sec: float = 0.0) -> None:
        self._coordinates = (float(coordinates[0]), float(coordinates[1]))
        self._delay_sec = delay_sec

    async def get_current_position(self) -> Coordinates:
        await asyncio.sleep(self._delay_sec)
        return self._coordinates


class UnavailablePositionProvider:
    """Used when no geolocation capability exists at all."""

    def __init__(self, reason: str = "Geolocation is not available") -> None:
        self._reason = reason

    async def get_current_position(self) -> Coordinates:
        raise PositionUnavailableError(self._reason)


def validate_coordinates(latitude: float, longitude: float) -> Coordinates:
    if not -90.0 <= latitude <= 90.0:
        raise PositionUnavailableError(f"Latitude out of range: {latitude}")
    if not -180.0 <= longitude <= 180.0:
        raise PositionUnavailableError(f"Longitude out of range: {longitude}")
    return (float(latitude), float(longitude))
