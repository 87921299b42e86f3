"""Grid map: cell states, terrain registration, cached pathing and placement checks."""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from bastion.sim.cells import (
    BUILDABLE,
    OUT_OF_BOUNDS,
    PATHING_PASSABLE,
    CellState,
    Coord,
    OutOfBounds,
)
from bastion.sim.contracts import (
    CellChanged,
    CellChangedHandler,
    StructureChanged,
    StructureChangedHandler,
    StructureKind,
)
from bastion.sim.pathfinding import Path, PathFinder, SearchStats

logger = logging.getLogger(__name__)

PathKey = tuple[Coord, Coord]


class InvalidCoordinateError(ValueError):
    def __init__(self, x: int, y: int) -> None:
        super().__init__(f"Coordinate ({x}, {y}) is outside the grid.")
        self.x = x
        self.y = y


@dataclass(frozen=True)
class Placement:
    x: int
    y: int
    owner: Any = None

    @property
    def coord(self) -> Coord:
        return (self.x, self.y)


class PathCache:
    """Memoized search results keyed by (start, end); None records "no path"."""

    def __init__(self) -> None:
        self._entries: dict[PathKey, Path | None] = {}

    def __contains__(self, key: PathKey) -> bool:
        return key in self._entries

    def __getitem__(self, key: PathKey) -> Path | None:
        return self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

    def store(self, key: PathKey, path: Path | None) -> None:
        self._entries[key] = path

    def clear(self) -> None:
        self._entries.clear()


class GridMap:
    """Fixed-size grid of cell states with A* pathing and tower placement rules.

    Base and spawn cells written through any mutation are kept in the
    placement registry, so the grid never holds more than one base cell and
    the spawn list always matches the spawn cells on the grid.

    Placement checks only verify that every spawn still reaches the base.
    Walkers already on the map are not consulted; a committed tower can leave
    one without a route (see ``RouteTracker.stranded``).
    """

    def __init__(
        self,
        width: int,
        height: int,
        cell_size: float,
        *,
        on_cell_changed: Iterable[CellChangedHandler] = (),
        on_structure_changed: Iterable[StructureChangedHandler] = (),
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}.")
        if cell_size <= 0:
            raise ValueError(f"Cell size must be positive, got {cell_size}.")
        self._width = width
        self._height = height
        self._cell_size = cell_size
        self._cells = [[CellState.EMPTY] * width for _ in range(height)]
        self._cache = PathCache()
        self._pathfinder = PathFinder(self._is_pathing_passable)
        self._base: Placement | None = None
        self._spawns: list[Placement] = []
        self._tower_owners: dict[Coord, Any] = {}
        self._cell_handlers: list[CellChangedHandler] = list(on_cell_changed)
        self._structure_handlers: list[StructureChangedHandler] = list(
            on_structure_changed
        )
        logger.debug(
            "GridMap initialized: %dx%d grid, cell size %s.", width, height, cell_size
        )

    # --- Dimensions and accessors ---

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def world_width(self) -> float:
        return self._width * self._cell_size

    @property
    def world_height(self) -> float:
        return self._height * self._cell_size

    @property
    def base(self) -> Placement | None:
        return self._base

    @property
    def base_coord(self) -> Coord | None:
        return self._base.coord if self._base else None

    @property
    def spawns(self) -> tuple[Placement, ...]:
        return tuple(self._spawns)

    @property
    def spawn_coords(self) -> list[Coord]:
        return [spawn.coord for spawn in self._spawns]

    @property
    def path_cache_size(self) -> int:
        return len(self._cache)

    @property
    def search_stats(self) -> SearchStats:
        return self._pathfinder.stats

    def tower_owner(self, x: int, y: int) -> Any:
        return self._tower_owners.get((x, y))

    def iter_cells(self) -> Iterator[tuple[int, int, CellState]]:
        for y, row in enumerate(self._cells):
            for x, state in enumerate(row):
                yield x, y, state

    def subscribe_cell_changed(self, handler: CellChangedHandler) -> None:
        self._cell_handlers.append(handler)

    def subscribe_structure_changed(self, handler: StructureChangedHandler) -> None:
        self._structure_handlers.append(handler)

    # --- Cell queries ---

    def is_valid_coord(self, x: int, y: int) -> bool:
        return 0 <= x < self._width and 0 <= y < self._height

    def cell_state(self, x: int, y: int) -> CellState | OutOfBounds:
        if not self.is_valid_coord(x, y):
            return OUT_OF_BOUNDS
        return self._cells[y][x]

    def is_passable(self, x: int, y: int, *, for_pathing: bool = True) -> bool:
        """Pathing lets walkers cross base and spawn tiles; building needs an empty tile."""
        if not self.is_valid_coord(x, y):
            return False
        allowed = PATHING_PASSABLE if for_pathing else BUILDABLE
        return self._cells[y][x] in allowed

    def _is_pathing_passable(self, x: int, y: int) -> bool:
        return self.is_passable(x, y, for_pathing=True)

    # --- Mutation ---

    def set_cell_state(self, x: int, y: int, state: CellState) -> None:
        if not self.is_valid_coord(x, y):
            logger.debug("Ignoring write of %s outside grid at (%d, %d).", state, x, y)
            return
        state = CellState(state)
        owner = self._owner_at((x, y)) if self._cells[y][x] is state else None
        self._write(x, y, state, owner=owner)

    def register_base(self, x: int, y: int, owner: Any = None) -> None:
        if not self.is_valid_coord(x, y):
            raise InvalidCoordinateError(x, y)
        self._write(x, y, CellState.BASE, owner=owner)
        logger.info("Base set at (%d, %d).", x, y)

    def register_spawn(self, x: int, y: int, owner: Any = None) -> None:
        if not self.is_valid_coord(x, y):
            raise InvalidCoordinateError(x, y)
        self._write(x, y, CellState.SPAWN, owner=owner)
        logger.info("Spawn added at (%d, %d).", x, y)

    def register_obstacle(self, x: int, y: int) -> bool:
        if self.cell_state(x, y) is not CellState.EMPTY:
            return False
        self._write(x, y, CellState.OBSTACLE)
        logger.debug("Obstacle added at (%d, %d).", x, y)
        return True

    def invalidate_path_cache(self) -> None:
        self._cache.clear()

    # --- Tower placement ---

    def can_place_tower(self, x: int, y: int) -> bool:
        if not self.is_passable(x, y, for_pathing=False):
            logger.debug(
                "Tower placement denied at (%d, %d): cell is %s.",
                x,
                y,
                self.cell_state(x, y),
            )
            return False
        if self._base is None:
            logger.error("No base registered, cannot check tower placement.")
            return False

        goal_x, goal_y = self._base.coord
        with self._speculative_cell(x, y, CellState.TOWER):
            for spawn in self._spawns:
                path = self.find_path(
                    spawn.x, spawn.y, goal_x, goal_y, bypass_cache=True
                )
                if path is None:
                    logger.debug(
                        "Tower placement denied at (%d, %d): blocks spawn (%d, %d).",
                        x,
                        y,
                        spawn.x,
                        spawn.y,
                    )
                    return False
        return True

    def place_tower(self, x: int, y: int, owner: Any = None) -> bool:
        if not self.can_place_tower(x, y):
            return False
        self._write(x, y, CellState.TOWER, owner=owner)
        logger.info("Tower placed at (%d, %d).", x, y)
        self._emit_structure_changed(
            StructureChanged(kind=StructureKind.PLACED, x=x, y=y)
        )
        return True

    def remove_tower(self, x: int, y: int) -> bool:
        if self.cell_state(x, y) is not CellState.TOWER:
            return False
        self._write(x, y, CellState.EMPTY)
        logger.info("Tower removed at (%d, %d).", x, y)
        self._emit_structure_changed(
            StructureChanged(kind=StructureKind.REMOVED, x=x, y=y)
        )
        return True

    # --- Pathfinding ---

    def find_path(
        self,
        start_x: int,
        start_y: int,
        end_x: int,
        end_y: int,
        *,
        bypass_cache: bool = False,
    ) -> Path | None:
        """Shortest 4-directional path from start to end inclusive, or None.

        Bypassed calls neither read nor write the cache.
        """
        if not (
            self.is_valid_coord(start_x, start_y) and self.is_valid_coord(end_x, end_y)
        ):
            return None
        key: PathKey = ((start_x, start_y), (end_x, end_y))
        if not bypass_cache and key in self._cache:
            return self._cache[key]

        path = self._pathfinder.find_path(key[0], key[1])
        if not bypass_cache:
            self._cache.store(key, path)
        return path

    # --- Coordinate conversion ---

    def grid_to_world(
        self, x: int, y: int, *, centered: bool = False
    ) -> tuple[float, float]:
        offset = self._cell_size / 2 if centered else 0
        return (x * self._cell_size + offset, y * self._cell_size + offset)

    def world_to_grid(self, world_x: float, world_y: float) -> Coord:
        return (
            math.floor(world_x / self._cell_size),
            math.floor(world_y / self._cell_size),
        )

    # --- Internals ---

    @contextmanager
    def _speculative_cell(self, x: int, y: int, state: CellState) -> Iterator[None]:
        """Write one cell without cache or notification side effects, then restore it."""
        saved = self._cells[y][x]
        self._cells[y][x] = state
        try:
            yield
        finally:
            self._cells[y][x] = saved

    def _write(self, x: int, y: int, state: CellState, *, owner: Any = None) -> None:
        coord = (x, y)
        if state is CellState.BASE and self._base and self._base.coord != coord:
            previous_base = self._base
            self._write(previous_base.x, previous_base.y, CellState.EMPTY)

        previous = self._cells[y][x]
        self._cells[y][x] = state
        self._sync_registry(coord, previous, state, owner)
        self.invalidate_path_cache()
        self._emit_cell_changed(CellChanged(x=x, y=y, state=state))

    def _sync_registry(
        self, coord: Coord, previous: CellState, state: CellState, owner: Any
    ) -> None:
        if previous is CellState.BASE and state is not CellState.BASE:
            self._base = None
        if previous is CellState.SPAWN and state is not CellState.SPAWN:
            self._spawns = [spawn for spawn in self._spawns if spawn.coord != coord]
        if previous is CellState.TOWER and state is not CellState.TOWER:
            self._tower_owners.pop(coord, None)

        if state is CellState.BASE:
            self._base = Placement(coord[0], coord[1], owner)
        elif state is CellState.SPAWN:
            entry = Placement(coord[0], coord[1], owner)
            for index, spawn in enumerate(self._spawns):
                if spawn.coord == coord:
                    self._spawns[index] = entry
                    break
            else:
                self._spawns.append(entry)
        elif state is CellState.TOWER:
            self._tower_owners[coord] = owner

    def _owner_at(self, coord: Coord) -> Any:
        if self._base and self._base.coord == coord:
            return self._base.owner
        for spawn in self._spawns:
            if spawn.coord == coord:
                return spawn.owner
        return self._tower_owners.get(coord)

    def _emit_cell_changed(self, event: CellChanged) -> None:
        for handler in self._cell_handlers:
            handler(event)

    def _emit_structure_changed(self, event: StructureChanged) -> None:
        for handler in self._structure_handlers:
            handler(event)
