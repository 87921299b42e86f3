"""Cell states and tile symbols shared by the grid map and its loaders."""

from __future__ import annotations

from enum import Enum

Coord = tuple[int, int]


class CellState(str, Enum):
    EMPTY = "empty"
    TOWER = "tower"
    OBSTACLE = "obstacle"
    BASE = "base"
    SPAWN = "spawn"


class OutOfBounds:
    """Sentinel returned by cell queries outside the grid."""

    _instance: "OutOfBounds | None" = None

    def __new__(cls) -> "OutOfBounds":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "OUT_OF_BOUNDS"

    def __bool__(self) -> bool:
        return False


OUT_OF_BOUNDS = OutOfBounds()

PATHING_PASSABLE: frozenset[CellState] = frozenset(
    {CellState.EMPTY, CellState.BASE, CellState.SPAWN}
)
BUILDABLE: frozenset[CellState] = frozenset({CellState.EMPTY})

TILE_SYMBOLS: dict[str, CellState] = {
    ".": CellState.EMPTY,
    "T": CellState.TOWER,
    "#": CellState.OBSTACLE,
    "B": CellState.BASE,
    "S": CellState.SPAWN,
}

STATE_SYMBOLS: dict[CellState, str] = {
    state: symbol for symbol, state in TILE_SYMBOLS.items()
}


def manhattan(a: Coord, b: Coord) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])
