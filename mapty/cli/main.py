"""Command line entrypoint for Mapty."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from mapty.core.controller import DEFAULT_ZOOM_LEVEL
from mapty.geo.position import PositionUnavailableError, validate_coordinates
from mapty.ui.formatting import build_list_entry
from mapty.workout.store import LocalStorage, PersistenceWriteError, clear_workouts, load_workouts


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mapty workout map")
    parser.add_argument("--host", default="127.0.0.1", help="Host bind for the web UI")
    parser.add_argument("--port", type=int, default=8089, help="Port for the web UI")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding saved workouts (default: ~/.mapty/storage)",
    )
    parser.add_argument(
        "--zoom",
        type=int,
        default=DEFAULT_ZOOM_LEVEL,
        help="Map zoom level used when centering",
    )
    parser.add_argument("--lat", type=float, default=None, help="Fixed start latitude")
    parser.add_argument("--lng", type=float, default=None, help="Fixed start longitude")
    parser.add_argument(
        "--geo-timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for the browser position",
    )
    parser.add_argument("--list", action="store_true", help="Print saved workouts and exit")
    parser.add_argument("--reset", action="store_true", help="Delete all saved workouts and exit")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def run_list(storage: LocalStorage) -> int:
    workouts = load_workouts(storage)
    if not workouts:
        print("No saved workouts")
        return 0

    for workout in workouts:
        entry = build_list_entry(workout)
        details = "  ".join(f"{d.value} {d.unit}" for d in entry.details)
        lat, lng = workout.coordinates
        print(f"{entry.title:<24} {details}  @ {lat:.4f},{lng:.4f}  [{workout.id}]")
    return 0


def run_reset(storage: LocalStorage) -> int:
    try:
        clear_workouts(storage)
    except PersistenceWriteError as exc:
        print(f"Could not reset saved workouts: {exc}")
        return 1
    print("Saved workouts cleared")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    storage = LocalStorage(args.data_dir)
    if args.reset:
        return run_reset(storage)
    if args.list:
        return run_list(storage)

    fixed_position = None
    if (args.lat is None) != (args.lng is None):
        parser.error("--lat and --lng must be given together")
    if args.lat is not None:
        try:
            fixed_position = validate_coordinates(args.lat, args.lng)
        except PositionUnavailableError as exc:
            parser.error(str(exc))

    from mapty.ui.web_app import run_web_ui

    return run_web_ui(
        storage_dir=args.data_dir,
        host=args.host,
        port=args.port,
        zoom_level=args.zoom,
        fixed_position=fixed_position,
        geo_timeout_sec=max(1.0, args.geo_timeout),
    )


if __name__ == "__main__":
    raise SystemExit(main())
