"""Application entry for loading a map and applying tower edits."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from rich.console import Group, RenderableType
from rich.logging import RichHandler
from rich.table import Table
from rich.text import Text

from bastion.render.map_view import render_map_panel, spawn_paths
from bastion.sim.cells import Coord
from bastion.sim.economy import CashLedger
from bastion.sim.map_loader import DEFAULT_MAP_DIR, LoadedMap, MapPaths, load_map
from bastion.sim.placement import PlacementController

DEFAULT_STARTING_CASH = 100
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class EditRecord:
    action: str
    coord: Coord
    outcome: str


def resolve_map_dir(map_dir: Path | None = None) -> Path:
    if map_dir is not None:
        return map_dir
    env_dir = os.getenv("BASTION_MAP_DIR")
    return Path(env_dir) if env_dir else DEFAULT_MAP_DIR


def resolve_starting_cash(cash: int | None = None) -> int:
    if cash is not None:
        return cash
    raw = os.getenv("BASTION_STARTING_CASH")
    if not raw:
        return DEFAULT_STARTING_CASH
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(
            f"BASTION_STARTING_CASH must be an integer, got {raw!r}."
        ) from exc


def configure_logging(level: str | None = None) -> None:
    resolved = (level or os.getenv("BASTION_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    if not isinstance(logging.getLevelName(resolved), int):
        raise ValueError(f"Unknown log level {resolved!r}.")
    logging.basicConfig(
        level=resolved,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


def build_map(map_dir: Path | None = None) -> LoadedMap:
    return load_map(paths=MapPaths(base_dir=resolve_map_dir(map_dir)))


def apply_edits(
    loaded: LoadedMap,
    *,
    place: Sequence[Coord] = (),
    remove: Sequence[Coord] = (),
    tower_type: str = "cannon",
    cash: int | None = None,
) -> list[EditRecord]:
    ledger = CashLedger(resolve_starting_cash(cash))
    controller = PlacementController(loaded.grid_map, loaded.registry, ledger)
    records: list[EditRecord] = []

    for x, y in remove:
        removed = controller.remove(x, y)
        records.append(
            EditRecord("remove", (x, y), "removed" if removed else "no tower")
        )
    for x, y in place:
        if not controller.is_placing:
            controller.select(tower_type)
        result = controller.attempt(x, y)
        records.append(EditRecord("place", (x, y), result.outcome.value))
    return records


def render_report(
    loaded: LoadedMap, records: list[EditRecord], *, show_paths: bool = True
) -> RenderableType:
    grid_map = loaded.grid_map
    paths = spawn_paths(grid_map) if show_paths else []
    panel = render_map_panel(grid_map, title=loaded.config.name, paths=paths)

    summary = Table(show_header=False)
    summary.add_column("Field")
    summary.add_column("Value")
    summary.add_row("Size", f"{grid_map.width}x{grid_map.height}")
    base = grid_map.base_coord
    summary.add_row("Base", f"{base[0]}, {base[1]}" if base else "None")
    summary.add_row(
        "Spawns",
        "; ".join(f"{x}, {y}" for x, y in grid_map.spawn_coords) or "None",
    )
    if show_paths:
        blocked = len(grid_map.spawn_coords) - len(paths)
        lengths = ", ".join(str(len(path) - 1) for path in paths) or "-"
        summary.add_row("Route steps", lengths)
        if blocked:
            summary.add_row("Blocked spawns", str(blocked))

    if not records:
        return Group(panel, summary)

    edits = Table(title="Edits", show_header=True, header_style="bold")
    edits.add_column("Action")
    edits.add_column("Cell")
    edits.add_column("Outcome")
    for record in records:
        style = "green" if record.outcome in ("placed", "removed") else "red"
        edits.add_row(
            record.action,
            f"{record.coord[0]}, {record.coord[1]}",
            Text(record.outcome, style=style),
        )
    return Group(panel, summary, edits)
