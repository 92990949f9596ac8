"""Boundary between the session controller and whatever draws the map."""

from __future__ import annotations

from typing import Callable, Literal, Protocol

from mapty.ui.formatting import WorkoutListEntry
from mapty.workout.form import WorkoutForm
from mapty.workout.model import Coordinates

NotifyLevel = Literal["info", "warning", "error"]

MapClickHandler = Callable[[Coordinates], None]
FormSubmitHandler = Callable[[WorkoutForm], object]
ListInteractionHandler = Callable[[str], None]
KindChangeHandler = Callable[[str], None]


class MapView(Protocol):
    def center_on(self, coordinates: Coordinates, zoom_level: int) -> None: ...

    def place_marker(self, coordinates: Coordinates, popup_html: str, style_class: str) -> None: ...

    def show_form(self, focus_field: str) -> None: ...

    def hide_form(self) -> None: ...

    def toggle_input_visibility(self, field: str) -> None: ...

    def render_list_entry(self, entry: WorkoutListEntry) -> None: ...

    def clear(self) -> None: ...

    def notify(self, message: str, level: NotifyLevel = "info") -> None: ...

    def on_map_click(self, handler: MapClickHandler) -> None: ...

    def on_form_submit(self, handler: FormSubmitHandler) -> None: ...

    def on_list_interaction(self, handler: ListInteractionHandler) -> None: ...

    def on_kind_change(self, handler: KindChangeHandler) -> None: ...
