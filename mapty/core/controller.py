"""Session controller driving the click-to-record workflow."""

from __future__ import annotations

import logging

from mapty.core.state import SessionState
from mapty.geo.position import PositionProvider, PositionUnavailableError
from mapty.ui.formatting import build_list_entry, marker_style_class, popup_content
from mapty.ui.view import MapView
from mapty.workout.form import ValidationError, WorkoutForm, validate_workout_form
from mapty.workout.model import (
    EXTRA_FIELDS,
    Coordinates,
    Workout,
    create_workout,
    register_interaction,
)
from mapty.workout.store import (
    KeyValueStorage,
    PersistenceWriteError,
    clear_workouts,
    load_workouts,
    save_workouts,
)

logger = logging.getLogger(__name__)

DEFAULT_ZOOM_LEVEL = 13


class SessionController:
    """Owns the workout collection and sequences position, form and storage.

    Handlers are registered on the view at construction. Every handler runs
    to completion synchronously; the position query in :meth:`start` is the
    only await.
    """

    def __init__(
        self,
        view: MapView,
        position_provider: PositionProvider,
        storage: KeyValueStorage,
        *,
        zoom_level: int = DEFAULT_ZOOM_LEVEL,
    ) -> None:
        self._view = view
        self._position_provider = position_provider
        self._storage = storage
        self._zoom_level = zoom_level
        self._workouts: list[Workout] = []
        # Markers need a centered map; loaded workouts wait here until then.
        self._pending_markers: list[Workout] = []
        self.state = SessionState()
        # Bumped by every start/reset; a start that resumes under an older value is stale.
        self._generation = 0

        view.on_map_click(self.handle_map_click)
        view.on_form_submit(self.handle_form_submit)
        view.on_list_interaction(self.handle_list_interaction)
        view.on_kind_change(self.handle_kind_change)

    @property
    def workouts(self) -> tuple[Workout, ...]:
        return tuple(self._workouts)

    async def start(self) -> None:
        self._generation += 1
        generation = self._generation
        self.state = SessionState(phase="awaiting_position")
        self._load_persisted()

        try:
            position = await self._position_provider.get_current_position()
        except PositionUnavailableError as exc:
            if generation != self._generation:
                return
            logger.warning("Position unavailable: %s", exc)
            self.state.position_error = str(exc)
            self._view.notify("Could not get your position!", "error")
            return

        if generation != self._generation:
            logger.debug("Discarding position from a superseded start")
            return
        self.state.position = position
        self._view.center_on(position, self._zoom_level)
        self.state.phase = "map_ready"
        pending, self._pending_markers = self._pending_markers, []
        for workout in pending:
            self._render_marker(workout)
        logger.info("Map ready at %.5f, %.5f", position[0], position[1])

    def handle_map_click(self, coordinates: Coordinates) -> None:
        if not self.state.map_ready:
            return
        self.state.pending_coordinates = coordinates
        self.state.phase = "form_open"
        self._view.show_form("distance")

    def handle_kind_change(self, kind: str) -> None:
        field = EXTRA_FIELDS.get(kind)
        if field is not None:
            self._view.toggle_input_visibility(field)

    def handle_form_submit(self, form: WorkoutForm) -> Workout | None:
        coordinates = self.state.pending_coordinates
        if self.state.phase != "form_open" or coordinates is None:
            return None

        try:
            data = validate_workout_form(form)
        except ValidationError as exc:
            self._view.notify(f"Inputs have to be positive numbers! {exc}", "error")
            return None

        workout = create_workout(
            data.kind,
            coordinates,
            data.distance_km,
            data.duration_min,
            data.extra,
        )
        self._workouts.append(workout)
        self._render_marker(workout)
        self._view.render_list_entry(build_list_entry(workout))
        self._view.hide_form()
        self.state.pending_coordinates = None
        self.state.phase = "map_ready"
        self._persist()
        return workout

    def handle_list_interaction(self, workout_id: str) -> None:
        workout = next((w for w in self._workouts if w.id == workout_id), None)
        if workout is None:
            return
        register_interaction(workout)
        if self.state.map_ready:
            self._view.center_on(workout.coordinates, self._zoom_level)
        self._persist()

    async def reset(self) -> None:
        """Wipe stored workouts and start the session over."""
        self._generation += 1
        self.state.phase = "terminal"
        try:
            clear_workouts(self._storage)
        except PersistenceWriteError as exc:
            logger.warning("Could not clear stored workouts: %s", exc)
            self._view.notify("Could not clear saved workouts", "warning")
        self._workouts.clear()
        self._pending_markers.clear()
        self._view.clear()
        await self.start()

    def _load_persisted(self) -> None:
        loaded = load_workouts(self._storage)
        self._workouts = list(loaded)
        self._pending_markers = list(loaded)
        for workout in loaded:
            self._view.render_list_entry(build_list_entry(workout))
        if loaded:
            logger.info("Loaded %d stored workout(s)", len(loaded))

    def _render_marker(self, workout: Workout) -> None:
        self._view.place_marker(
            workout.coordinates,
            popup_content(workout),
            marker_style_class(workout),
        )

    def _persist(self) -> None:
        try:
            save_workouts(self._workouts, self._storage)
        except PersistenceWriteError as exc:
            logger.warning("Could not save workouts: %s", exc)
            self._view.notify("Workout kept for this session but could not be saved", "warning")
