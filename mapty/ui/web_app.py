"""NiceGUI web UI for Mapty."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from nicegui import ui

from mapty.core.controller import DEFAULT_ZOOM_LEVEL, SessionController
from mapty.geo.position import FixedPositionProvider, PositionProvider
from mapty.ui.formatting import WorkoutListEntry
from mapty.ui.geolocation import BrowserPositionProvider
from mapty.ui.view import (
    FormSubmitHandler,
    KindChangeHandler,
    ListInteractionHandler,
    MapClickHandler,
    NotifyLevel,
)
from mapty.workout.form import WorkoutForm
from mapty.workout.model import Coordinates
from mapty.workout.store import LocalStorage

logger = logging.getLogger(__name__)

_NOTIFY_COLORS: dict[str, str] = {
    "info": "info",
    "warning": "warning",
    "error": "negative",
}

_HEAD_HTML = """
<style>
  :root {
    --mp-dark-1: #2d3439;
    --mp-dark-2: #42484d;
    --mp-light: #ececec;
    --mp-running: #00c46a;
    --mp-cycling: #ffb545;
  }
  body {
    background: var(--mp-dark-1);
    color: var(--mp-light);
    font-family: "Manrope", Arial, sans-serif;
  }
  .mp-sidebar {
    background: var(--mp-dark-1);
  }
  .workout {
    background: var(--mp-dark-2);
    border-radius: 5px;
    cursor: pointer;
  }
  .workout--running { border-left: 5px solid var(--mp-running); }
  .workout--cycling { border-left: 5px solid var(--mp-cycling); }
  .running-popup .leaflet-popup-content-wrapper { border-left: 5px solid var(--mp-running); }
  .cycling-popup .leaflet-popup-content-wrapper { border-left: 5px solid var(--mp-cycling); }
</style>
"""


class LeafletMapView:
    """Map, form and workout list rendered with NiceGUI elements."""

    def __init__(self) -> None:
        self._map_click_handler: MapClickHandler | None = None
        self._form_submit_handler: FormSubmitHandler | None = None
        self._list_handler: ListInteractionHandler | None = None
        self._kind_handler: KindChangeHandler | None = None
        self._markers: list[Any] = []

        with ui.row().classes("w-full h-screen no-wrap gap-0"):
            with ui.column().classes("mp-sidebar w-[420px] h-full p-4 gap-3 overflow-auto"):
                ui.label("Mapty").classes("text-h5")
                with ui.card().classes("w-full workout") as self._form:
                    with ui.grid(columns=2).classes("w-full gap-2"):
                        self._kind_select = ui.select(
                            {"running": "Running", "cycling": "Cycling"},
                            value="running",
                            label="Type",
                        )
                        self._distance_input = ui.number("Distance", placeholder="km")
                        self._duration_input = ui.number("Duration", placeholder="min")
                        self._cadence_input = ui.number("Cadence", placeholder="step/min")
                        self._elevation_input = ui.number("Elev Gain", placeholder="meters")
                    self._submit_btn = ui.button("OK")
                self._elevation_input.set_visibility(False)
                self._form.set_visibility(False)
                self._list = ui.column().classes("w-full gap-2")
            self._map = ui.leaflet(zoom=DEFAULT_ZOOM_LEVEL).classes("grow h-full")
        self._map.set_visibility(False)

        self._map.on("map-click", self._on_leaflet_click)
        self._kind_select.on_value_change(self._on_kind_value)
        self._submit_btn.on_click(self._on_submit)
        for element in (
            self._distance_input,
            self._duration_input,
            self._cadence_input,
            self._elevation_input,
        ):
            element.on("keydown.enter", self._on_submit)

    def center_on(self, coordinates: Coordinates, zoom_level: int) -> None:
        if not self._map.visible:
            self._map.set_visibility(True)
            self._map.run_map_method("invalidateSize")
        self._map.run_map_method(
            "setView",
            [coordinates[0], coordinates[1]],
            zoom_level,
            {"animate": True, "pan": {"duration": 1}},
        )

    def place_marker(self, coordinates: Coordinates, popup_html: str, style_class: str) -> None:
        marker = self._map.marker(latlng=coordinates)
        marker.run_method(
            "bindPopup",
            popup_html,
            {
                "maxWidth": 250,
                "minWidth": 100,
                "autoClose": False,
                "closeOnClick": False,
                "className": style_class,
            },
        )
        marker.run_method("openPopup")
        self._markers.append(marker)

    def show_form(self, focus_field: str) -> None:
        self._form.set_visibility(True)
        self._input_for(focus_field).run_method("focus")

    def hide_form(self) -> None:
        for element in (
            self._distance_input,
            self._duration_input,
            self._cadence_input,
            self._elevation_input,
        ):
            element.value = None
        self._form.set_visibility(False)

    def toggle_input_visibility(self, field: str) -> None:
        self._cadence_input.set_visibility(field == "cadence")
        self._elevation_input.set_visibility(field == "elevation")

    def render_list_entry(self, entry: WorkoutListEntry) -> None:
        with self._list:
            card = ui.card().classes(f"w-full workout workout--{entry.kind}")
            with card:
                ui.label(entry.title).classes("text-subtitle1 text-weight-bold")
                with ui.row().classes("gap-4"):
                    for detail in entry.details:
                        ui.label(f"{detail.icon} {detail.value} {detail.unit}")
        # Newest entries on top, like a feed.
        card.move(target_index=0)
        card.on("click", lambda _, workout_id=entry.id: self._on_entry_click(workout_id))

    def clear(self) -> None:
        for marker in self._markers:
            self._map.remove_layer(marker)
        self._markers.clear()
        self._list.clear()
        self.hide_form()

    def notify(self, message: str, level: NotifyLevel = "info") -> None:
        ui.notify(message, color=_NOTIFY_COLORS.get(level, "info"))

    def on_map_click(self, handler: MapClickHandler) -> None:
        self._map_click_handler = handler

    def on_form_submit(self, handler: FormSubmitHandler) -> None:
        self._form_submit_handler = handler

    def on_list_interaction(self, handler: ListInteractionHandler) -> None:
        self._list_handler = handler

    def on_kind_change(self, handler: KindChangeHandler) -> None:
        self._kind_handler = handler

    def _input_for(self, field: str) -> ui.number:
        return {
            "distance": self._distance_input,
            "duration": self._duration_input,
            "cadence": self._cadence_input,
            "elevation": self._elevation_input,
        }.get(field, self._distance_input)

    def _on_leaflet_click(self, event: Any) -> None:
        latlng = event.args.get("latlng") or {}
        if self._map_click_handler is None or "lat" not in latlng:
            return
        self._map_click_handler((float(latlng["lat"]), float(latlng["lng"])))

    def _on_kind_value(self, event: Any) -> None:
        if self._kind_handler is not None:
            self._kind_handler(str(event.value))

    def _on_submit(self) -> None:
        if self._form_submit_handler is None:
            return
        self._form_submit_handler(
            WorkoutForm(
                kind=str(self._kind_select.value or "running"),
                distance=self._distance_input.value,
                duration=self._duration_input.value,
                cadence=self._cadence_input.value,
                elevation=self._elevation_input.value,
            )
        )

    def _on_entry_click(self, workout_id: str) -> None:
        if self._list_handler is not None:
            self._list_handler(workout_id)


def run_web_ui(
    *,
    storage_dir: Path | None = None,
    host: str = "127.0.0.1",
    port: int = 8089,
    zoom_level: int = DEFAULT_ZOOM_LEVEL,
    fixed_position: Coordinates | None = None,
    geo_timeout_sec: float = 30.0,
) -> int:
    storage = LocalStorage(storage_dir)
    logger.info("Storing workouts under %s", storage.root)

    @ui.page("/")
    async def index() -> None:
        ui.add_head_html(_HEAD_HTML)
        view = LeafletMapView()
        provider: PositionProvider
        if fixed_position is not None:
            provider = FixedPositionProvider(fixed_position)
        else:
            provider = BrowserPositionProvider(timeout_sec=geo_timeout_sec)
        controller = SessionController(view, provider, storage, zoom_level=zoom_level)

        with ui.footer().classes("bg-transparent justify-end"):
            ui.button("Reset", on_click=controller.reset).props("flat dense color=grey")

        await ui.context.client.connected()
        await controller.start()

    ui.run(host=host, port=port, reload=False, title="Mapty", show=False)
    return 0
