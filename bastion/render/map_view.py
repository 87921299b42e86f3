"""Shared helpers for rendering the grid map and viewports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from bastion.sim.cells import STATE_SYMBOLS, CellState, Coord
from bastion.sim.grid_map import GridMap

CELL_STYLES = {
    CellState.EMPTY: "grey70",
    CellState.TOWER: "bright_yellow",
    CellState.OBSTACLE: "grey50",
    CellState.BASE: "bold green3",
    CellState.SPAWN: "bold red",
}

PATH_SYMBOL = "*"
PATH_STYLE = "bright_cyan"
VALID_PLACEMENT_STYLE = "reverse green"
BLOCKED_PLACEMENT_STYLE = "reverse red"


@dataclass(frozen=True)
class Viewport:
    x: int
    y: int
    width: int
    height: int


def compute_viewport(
    map_width: int,
    map_height: int,
    view_width: int,
    view_height: int,
    *,
    center: Coord | None = None,
) -> Viewport:
    view_width = max(1, min(map_width, view_width))
    view_height = max(1, min(map_height, view_height))

    if center is not None:
        origin_x = center[0] - view_width // 2
        origin_y = center[1] - view_height // 2
    else:
        origin_x, origin_y = 0, 0

    origin_x = _clamp(origin_x, 0, max(0, map_width - view_width))
    origin_y = _clamp(origin_y, 0, max(0, map_height - view_height))

    return Viewport(x=origin_x, y=origin_y, width=view_width, height=view_height)


def render_map_lines(
    grid_map: GridMap,
    *,
    paths: Iterable[Iterable[Coord]] = (),
    hover: Coord | None = None,
    can_place: bool | None = None,
    viewport: Viewport | None = None,
) -> list[Text]:
    viewport = viewport or Viewport(0, 0, grid_map.width, grid_map.height)
    grid = [[""] * grid_map.width for _ in range(grid_map.height)]
    styles = [[""] * grid_map.width for _ in range(grid_map.height)]
    for x, y, state in grid_map.iter_cells():
        grid[y][x] = STATE_SYMBOLS[state]
        styles[y][x] = CELL_STYLES[state]

    for path in paths:
        for x, y in path:
            # Keep base and spawn glyphs at the path ends.
            if grid_map.cell_state(x, y) is CellState.EMPTY:
                grid[y][x] = PATH_SYMBOL
                styles[y][x] = PATH_STYLE

    if hover is not None and grid_map.is_valid_coord(*hover):
        hx, hy = hover
        valid = grid_map.can_place_tower(hx, hy) if can_place is None else can_place
        styles[hy][hx] = VALID_PLACEMENT_STYLE if valid else BLOCKED_PLACEMENT_STYLE

    lines: list[Text] = []
    for y in range(viewport.y, viewport.y + viewport.height):
        line = Text()
        for x in range(viewport.x, viewport.x + viewport.width):
            line.append(grid[y][x], style=styles[y][x])
        lines.append(line)
    return lines


def render_map_panel(
    grid_map: GridMap,
    *,
    title: str = "Map",
    paths: Iterable[Iterable[Coord]] = (),
    hover: Coord | None = None,
) -> Panel:
    lines = render_map_lines(grid_map, paths=paths, hover=hover)
    return Panel(Group(*lines), title=title, expand=False)


def spawn_paths(grid_map: GridMap) -> list[tuple[Coord, ...]]:
    """Cached spawn-to-base routes, skipping spawns that cannot reach the base."""
    goal = grid_map.base_coord
    if goal is None:
        return []
    paths = []
    for sx, sy in grid_map.spawn_coords:
        path = grid_map.find_path(sx, sy, goal[0], goal[1])
        if path is not None:
            paths.append(path)
    return paths


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))
