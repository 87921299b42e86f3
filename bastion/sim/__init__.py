"""Map core and the collaborators that build on it."""

from bastion.sim.cells import OUT_OF_BOUNDS, CellState, Coord
from bastion.sim.contracts import (
    CellChanged,
    StructureChanged,
    StructureKind,
    TowerStats,
)
from bastion.sim.economy import CashLedger
from bastion.sim.grid_map import GridMap, InvalidCoordinateError, PathCache, Placement
from bastion.sim.pathfinding import PathFinder, PathNode
from bastion.sim.placement import (
    PlacementController,
    PlacementOutcome,
    PlacementResult,
)
from bastion.sim.routes import RouteTracker, Walker
from bastion.sim.towers import Tower, TowerRegistry, default_registry

__all__ = [
    "CashLedger",
    "CellChanged",
    "CellState",
    "Coord",
    "GridMap",
    "InvalidCoordinateError",
    "OUT_OF_BOUNDS",
    "PathCache",
    "PathFinder",
    "PathNode",
    "Placement",
    "PlacementController",
    "PlacementOutcome",
    "PlacementResult",
    "RouteTracker",
    "StructureChanged",
    "StructureKind",
    "Tower",
    "TowerRegistry",
    "TowerStats",
    "Walker",
    "default_registry",
]
