from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from mapty.core.controller import SessionController
from mapty.geo.position import FixedPositionProvider, UnavailablePositionProvider
from mapty.ui.formatting import WorkoutListEntry
from mapty.workout.form import WorkoutForm
from mapty.workout.model import Running, create_workout
from mapty.workout.store import (
    STORAGE_KEY,
    LocalStorage,
    PersistenceWriteError,
    load_workouts,
    save_workouts,
)


class RecordingView:
    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.entries: list[WorkoutListEntry] = []
        self.markers: list[tuple[tuple[float, float], str, str]] = []
        self.notices: list[tuple[str, str]] = []
        self.handlers: dict[str, Any] = {}

    def center_on(self, coordinates: tuple[float, float], zoom_level: int) -> None:
        self.calls.append(("center_on", (coordinates, zoom_level)))

    def place_marker(self, coordinates: tuple[float, float], popup_html: str, style_class: str) -> None:
        self.calls.append(("place_marker", coordinates))
        self.markers.append((coordinates, popup_html, style_class))

    def show_form(self, focus_field: str) -> None:
        self.calls.append(("show_form", focus_field))

    def hide_form(self) -> None:
        self.calls.append(("hide_form", None))

    def toggle_input_visibility(self, field: str) -> None:
        self.calls.append(("toggle_input_visibility", field))

    def render_list_entry(self, entry: WorkoutListEntry) -> None:
        self.calls.append(("render_list_entry", entry.id))
        self.entries.append(entry)

    def clear(self) -> None:
        self.calls.append(("clear", None))
        self.entries.clear()
        self.markers.clear()

    def notify(self, message: str, level: str = "info") -> None:
        self.notices.append((message, level))

    def on_map_click(self, handler: Any) -> None:
        self.handlers["map_click"] = handler

    def on_form_submit(self, handler: Any) -> None:
        self.handlers["form_submit"] = handler

    def on_list_interaction(self, handler: Any) -> None:
        self.handlers["list_interaction"] = handler

    def on_kind_change(self, handler: Any) -> None:
        self.handlers["kind_change"] = handler

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


class FailingStorage(LocalStorage):
    def set_item(self, key: str, value: str) -> None:
        raise PersistenceWriteError("disk full")


HOME = (38.72, -9.14)


def _started(tmp_path: Path, view: RecordingView | None = None) -> tuple[SessionController, RecordingView]:
    view = view or RecordingView()
    controller = SessionController(view, FixedPositionProvider(HOME), LocalStorage(tmp_path))
    asyncio.run(controller.start())
    return controller, view


def _running_form(**overrides: Any) -> WorkoutForm:
    values: dict[str, Any] = {"kind": "running", "distance": 5.2, "duration": 24, "cadence": 178}
    values.update(overrides)
    return WorkoutForm(**values)


def test_construction_registers_view_handlers(tmp_path: Path) -> None:
    view = RecordingView()
    SessionController(view, FixedPositionProvider(HOME), LocalStorage(tmp_path))

    assert set(view.handlers) == {"map_click", "form_submit", "list_interaction", "kind_change"}


def test_start_centers_map(tmp_path: Path) -> None:
    controller, view = _started(tmp_path)

    assert controller.state.phase == "map_ready"
    assert controller.state.position == HOME
    assert view.calls[0] == ("center_on", (HOME, 13))


def test_click_and_submit_creates_running_workout(tmp_path: Path) -> None:
    controller, view = _started(tmp_path)

    view.handlers["map_click"]((38.75, -9.10))
    assert controller.state.phase == "form_open"
    assert ("show_form", "distance") in view.calls

    workout = view.handlers["form_submit"](_running_form())

    assert isinstance(workout, Running)
    assert workout.coordinates == (38.75, -9.10)
    assert abs(workout.pace - 4.615) < 1e-3
    assert controller.workouts == (workout,)
    assert controller.state.phase == "map_ready"
    assert controller.state.pending_coordinates is None
    assert view.names()[-3:] == ["place_marker", "render_list_entry", "hide_form"]
    assert view.markers[-1][2] == "running-popup"

    stored = load_workouts(LocalStorage(tmp_path))
    assert [w.id for w in stored] == [workout.id]


def test_invalid_submission_keeps_form_open(tmp_path: Path) -> None:
    controller, view = _started(tmp_path)
    view.handlers["map_click"]((1.0, 2.0))

    for form in (
        _running_form(distance=0),
        _running_form(distance=-5),
        _running_form(duration=float("nan")),
    ):
        assert view.handlers["form_submit"](form) is None
        assert controller.state.phase == "form_open"
        assert controller.state.pending_coordinates == (1.0, 2.0)

    assert controller.workouts == ()
    assert len(view.notices) == 3
    assert all(level == "error" for _, level in view.notices)
    assert LocalStorage(tmp_path).get_item(STORAGE_KEY) is None

    # The user can fix the input and resubmit.
    workout = view.handlers["form_submit"](_running_form())
    assert workout is not None
    assert workout.coordinates == (1.0, 2.0)


def test_submit_without_map_click_is_ignored(tmp_path: Path) -> None:
    controller, view = _started(tmp_path)

    assert view.handlers["form_submit"](_running_form()) is None
    assert controller.workouts == ()


def test_cycling_submission_and_kind_toggle(tmp_path: Path) -> None:
    controller, view = _started(tmp_path)

    view.handlers["kind_change"]("cycling")
    assert ("toggle_input_visibility", "elevation") in view.calls
    view.handlers["kind_change"]("running")
    assert ("toggle_input_visibility", "cadence") in view.calls

    view.handlers["map_click"]((1.0, 2.0))
    workout = view.handlers["form_submit"](
        WorkoutForm(kind="cycling", distance=27, duration=95, elevation=523)
    )

    assert workout is not None
    assert workout.kind == "cycling"
    assert controller.workouts[-1] is workout


def test_insertion_order_is_preserved(tmp_path: Path) -> None:
    controller, view = _started(tmp_path)
    created = []
    for distance in (3, 7, 5):
        view.handlers["map_click"]((1.0, 2.0))
        created.append(view.handlers["form_submit"](_running_form(distance=distance)))

    assert [w.id for w in controller.workouts] == [w.id for w in created]
    assert [w.id for w in load_workouts(LocalStorage(tmp_path))] == [w.id for w in created]


def test_loaded_workouts_render_list_first_and_markers_once_map_ready(tmp_path: Path) -> None:
    storage = LocalStorage(tmp_path)
    stored = [
        create_workout("running", (1.0, 1.0), 5, 25, 170),
        create_workout("cycling", (2.0, 2.0), 20, 60, 100),
    ]
    save_workouts(stored, storage)

    controller, view = _started(tmp_path)

    names = view.names()
    assert names[:2] == ["render_list_entry", "render_list_entry"]
    assert names[2] == "center_on"
    assert names[3:] == ["place_marker", "place_marker"]
    assert [w.id for w in controller.workouts] == [w.id for w in stored]

    # A later click does not re-flush the loaded markers.
    view.handlers["map_click"]((3.0, 3.0))
    view.handlers["form_submit"](_running_form())
    assert len(view.markers) == 3


def test_position_failure_is_reported_and_map_never_centers(tmp_path: Path) -> None:
    save_workouts([create_workout("running", (1.0, 1.0), 5, 25, 170)], LocalStorage(tmp_path))
    view = RecordingView()
    controller = SessionController(
        view, UnavailablePositionProvider("denied"), LocalStorage(tmp_path)
    )

    asyncio.run(controller.start())

    assert controller.state.phase == "awaiting_position"
    assert controller.state.position_error == "denied"
    assert view.notices == [("Could not get your position!", "error")]
    assert "center_on" not in view.names()
    assert "place_marker" not in view.names()
    # Stored history is still listed.
    assert len(view.entries) == 1

    view.handlers["map_click"]((1.0, 2.0))
    assert controller.state.phase == "awaiting_position"
    assert "show_form" not in view.names()


def test_list_interaction_pans_and_counts_clicks(tmp_path: Path) -> None:
    controller, view = _started(tmp_path)
    view.handlers["map_click"]((5.0, 6.0))
    workout = view.handlers["form_submit"](_running_form())

    view.handlers["list_interaction"](workout.id)
    view.handlers["list_interaction"](workout.id)

    assert view.calls[-1] == ("center_on", ((5.0, 6.0), 13))
    assert workout.click_count == 2
    assert load_workouts(LocalStorage(tmp_path))[0].click_count == 2


def test_list_interaction_unknown_id_is_noop(tmp_path: Path) -> None:
    controller, view = _started(tmp_path)
    before = list(view.calls)
    state_before = (controller.state.phase, controller.state.pending_coordinates)

    view.handlers["list_interaction"]("missing-id")

    assert view.calls == before
    assert (controller.state.phase, controller.state.pending_coordinates) == state_before
    assert view.notices == []


def test_write_failure_keeps_workout_in_memory(tmp_path: Path) -> None:
    view = RecordingView()
    controller = SessionController(view, FixedPositionProvider(HOME), FailingStorage(tmp_path))
    asyncio.run(controller.start())

    view.handlers["map_click"]((1.0, 2.0))
    workout = view.handlers["form_submit"](_running_form())

    assert workout is not None
    assert controller.workouts == (workout,)
    assert controller.state.phase == "map_ready"
    assert view.notices[-1][1] == "warning"


def test_reset_clears_store_and_collection(tmp_path: Path) -> None:
    controller, view = _started(tmp_path)
    for _ in range(2):
        view.handlers["map_click"]((1.0, 2.0))
        view.handlers["form_submit"](_running_form())
    assert len(controller.workouts) == 2

    asyncio.run(controller.reset())

    assert controller.workouts == ()
    assert LocalStorage(tmp_path).get_item(STORAGE_KEY) is None
    assert load_workouts(LocalStorage(tmp_path)) == []
    assert "clear" in view.names()
    assert view.entries == []
    assert controller.state.phase == "map_ready"


def test_submission_without_finite_speed_keeps_form_open(tmp_path: Path) -> None:
    controller, view = _started(tmp_path)
    view.handlers["map_click"]((1.0, 2.0))

    workout = view.handlers["form_submit"](
        WorkoutForm(kind="cycling", distance=10, duration="5e-324", elevation=0)
    )

    assert workout is None
    assert controller.workouts == ()
    assert controller.state.phase == "form_open"
    assert view.notices[-1][1] == "error"


class GatedPositionProvider:
    """First query waits for ``release``; later ones resolve immediately."""

    def __init__(self) -> None:
        self.release: asyncio.Event | None = None
        self.calls = 0

    async def get_current_position(self) -> tuple[float, float]:
        self.calls += 1
        if self.calls == 1:
            assert self.release is not None
            await self.release.wait()
            return (10.0, 10.0)
        return HOME


def test_reset_during_pending_position_ignores_stale_start(tmp_path: Path) -> None:
    view = RecordingView()
    provider = GatedPositionProvider()
    controller = SessionController(view, provider, LocalStorage(tmp_path))

    async def _run() -> None:
        provider.release = asyncio.Event()
        first = asyncio.create_task(controller.start())
        await asyncio.sleep(0)
        assert controller.state.phase == "awaiting_position"

        await controller.reset()
        provider.release.set()
        await first

    asyncio.run(_run())

    centers = [args for name, args in view.calls if name == "center_on"]
    assert centers == [(HOME, 13)]
    assert controller.state.position == HOME
    assert controller.state.phase == "map_ready"
