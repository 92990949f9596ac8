"""Browser geolocation through the connected NiceGUI client."""

from __future__ import annotations

import logging

from nicegui import ui

from mapty.geo.position import PositionUnavailableError, validate_coordinates
from mapty.workout.model import Coordinates

logger = logging.getLogger(__name__)

_GEOLOCATION_JS = """
new Promise((resolve) => {
  if (!("geolocation" in navigator)) {
    resolve({error: "Geolocation is not supported by this browser"});
    return;
  }
  navigator.geolocation.getCurrentPosition(
    (pos) => resolve({latitude: pos.coords.latitude, longitude: pos.coords.longitude}),
    (err) => resolve({error: err.message || "Permission denied"}),
    {timeout: %d},
  );
})
"""


class BrowserPositionProvider:
    def __init__(self, timeout_sec: float = 30.0) -> None:
        self._timeout_sec = timeout_sec

    async def get_current_position(self) -> Coordinates:
        code = _GEOLOCATION_JS % int(self._timeout_sec * 1000)
        try:
            # Leave the browser its own timeout before giving up on the round trip.
            result = await ui.run_javascript(code, timeout=self._timeout_sec + 2.0)
        except TimeoutError as exc:
            raise PositionUnavailableError("Timed out waiting for the browser position") from exc

        if not isinstance(result, dict):
            raise PositionUnavailableError("Browser returned no position")
        if "error" in result:
            raise PositionUnavailableError(str(result["error"]))
        try:
            latitude = float(result["latitude"])
            longitude = float(result["longitude"])
        except (KeyError, TypeError, ValueError) as exc:
            raise PositionUnavailableError(f"Malformed browser position: {result!r}") from exc
        logger.debug("Browser position %.5f, %.5f", latitude, longitude)
        return validate_coordinates(latitude, longitude)
