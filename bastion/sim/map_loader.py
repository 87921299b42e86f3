"""Load map layouts from JSON + ASCII grids."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from bastion.sim.cells import TILE_SYMBOLS, CellState
from bastion.sim.contracts import CellChangedHandler, StructureChangedHandler, TowerStats
from bastion.sim.grid_map import GridMap
from bastion.sim.towers import TowerRegistry, default_registry

DEFAULT_MAP_DIR = Path("maps/default")


@dataclass(frozen=True)
class MapPaths:
    base_dir: Path = DEFAULT_MAP_DIR

    @property
    def map_json(self) -> Path:
        return self.base_dir / "map.json"


class MapConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = "Untitled"
    map_file: str
    cell_size: float = Field(40, gt=0)
    tower_types: dict[str, TowerStats] = Field(default_factory=dict)


@dataclass(frozen=True)
class LoadedMap:
    config: MapConfig
    grid_map: GridMap
    registry: TowerRegistry


def load_map_config(*, paths: MapPaths | None = None) -> MapConfig:
    paths = paths or MapPaths()
    return MapConfig.model_validate(_load_json(paths.map_json))


def load_map(
    *,
    paths: MapPaths | None = None,
    on_cell_changed: Iterable[CellChangedHandler] = (),
    on_structure_changed: Iterable[StructureChangedHandler] = (),
) -> LoadedMap:
    paths = paths or MapPaths()
    config = load_map_config(paths=paths)
    rows = _read_rows(paths.base_dir / config.map_file)
    grid_map = _build_grid_map(
        rows,
        cell_size=config.cell_size,
        on_cell_changed=on_cell_changed,
        on_structure_changed=on_structure_changed,
    )
    return LoadedMap(
        config=config,
        grid_map=grid_map,
        registry=_build_registry(config),
    )


def parse_rows(text: str) -> list[list[CellState]]:
    lines = text.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        raise ValueError("Map grid is empty.")

    width = len(lines[0])
    rows: list[list[CellState]] = []
    base_count = 0
    for y, line in enumerate(lines):
        if len(line) != width:
            raise ValueError(
                f"Map row {y} has width {len(line)}, expected {width}."
            )
        row: list[CellState] = []
        for x, symbol in enumerate(line):
            state = TILE_SYMBOLS.get(symbol)
            if state is None:
                raise ValueError(f"Unknown map symbol {symbol!r} at ({x}, {y}).")
            if state is CellState.BASE:
                base_count += 1
            row.append(state)
        rows.append(row)
    if base_count > 1:
        raise ValueError(f"Map defines {base_count} bases, expected at most one.")
    return rows


def _read_rows(path: Path) -> list[list[CellState]]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Missing map grid file: {path}") from exc
    return parse_rows(text)


def _build_grid_map(
    rows: list[list[CellState]],
    *,
    cell_size: float,
    on_cell_changed: Iterable[CellChangedHandler],
    on_structure_changed: Iterable[StructureChangedHandler],
) -> GridMap:
    grid_map = GridMap(
        len(rows[0]),
        len(rows),
        cell_size,
        on_cell_changed=on_cell_changed,
        on_structure_changed=on_structure_changed,
    )
    for y, row in enumerate(rows):
        for x, state in enumerate(row):
            if state is CellState.BASE:
                grid_map.register_base(x, y)
            elif state is CellState.SPAWN:
                grid_map.register_spawn(x, y)
            elif state is CellState.OBSTACLE:
                grid_map.register_obstacle(x, y)
            elif state is CellState.TOWER:
                grid_map.set_cell_state(x, y, CellState.TOWER)
    return grid_map


def _build_registry(config: MapConfig) -> TowerRegistry:
    if not config.tower_types:
        return default_registry()
    registry = TowerRegistry()
    for type_id, stats in config.tower_types.items():
        registry.register(type_id, stats)
    return registry


def _load_json(path: Path) -> dict:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Missing map data file: {path}") from exc
    return json.loads(text)
