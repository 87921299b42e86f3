"""Module entry point for `python -m bastion`."""

from __future__ import annotations

import argparse
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console

from bastion.app import (
    apply_edits,
    build_map,
    configure_logging,
    render_report,
    resolve_starting_cash,
)
from bastion.sim.cells import Coord


def parse_coord(value: str) -> Coord:
    try:
        raw_x, raw_y = value.split(",")
        return int(raw_x), int(raw_y)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Expected a cell as X,Y, got {value!r}."
        ) from None


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Inspect a tower-defense map, its routes and tower placements."
    )
    parser.add_argument(
        "--map-dir",
        type=Path,
        default=None,
        help="Map folder containing map.json (defaults to $BASTION_MAP_DIR or maps/default).",
    )
    parser.add_argument(
        "--place",
        type=parse_coord,
        action="append",
        default=[],
        metavar="X,Y",
        help="Try to build a tower at X,Y. May be repeated.",
    )
    parser.add_argument(
        "--remove",
        type=parse_coord,
        action="append",
        default=[],
        metavar="X,Y",
        help="Remove the tower at X,Y before placing. May be repeated.",
    )
    parser.add_argument(
        "--tower-type",
        default="cannon",
        help="Tower type id to build with --place.",
    )
    parser.add_argument(
        "--cash",
        type=int,
        default=None,
        help="Starting cash (defaults to $BASTION_STARTING_CASH or 100).",
    )
    parser.add_argument(
        "--no-paths",
        action="store_true",
        help="Do not overlay spawn-to-base routes.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (defaults to $BASTION_LOG_LEVEL or WARNING).",
    )
    args = parser.parse_args(argv)

    try:
        configure_logging(args.log_level)
        cash = resolve_starting_cash(args.cash)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    try:
        loaded = build_map(args.map_dir)
    except (FileNotFoundError, ValueError, ValidationError) as exc:
        raise SystemExit(f"Could not load map: {exc}") from exc

    if args.tower_type not in loaded.registry:
        raise SystemExit(
            f"Unknown tower type {args.tower_type!r}. "
            f"Known types: {', '.join(loaded.registry.type_ids())}."
        )

    records = apply_edits(
        loaded,
        place=args.place,
        remove=args.remove,
        tower_type=args.tower_type,
        cash=cash,
    )
    Console().print(render_report(loaded, records, show_paths=not args.no_paths))


if __name__ == "__main__":
    main()
