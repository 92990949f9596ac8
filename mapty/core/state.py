"""Shared runtime state for a mapping session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from mapty.workout.model import Coordinates

SessionPhase = Literal[
    "initializing",
    "awaiting_position",
    "map_ready",
    "form_open",
    "terminal",
]


@dataclass
class SessionState:
    phase: SessionPhase = "initializing"
    position: Coordinates | None = None
    position_error: str | None = None
    pending_coordinates: Coordinates | None = None

    @property
    def map_ready(self) -> bool:
        return self.phase in ("map_ready", "form_open")
