"""Routes for walkers already on the map, refreshed when towers change."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bastion.sim.contracts import StructureChanged
from bastion.sim.grid_map import GridMap
from bastion.sim.pathfinding import Path

logger = logging.getLogger(__name__)


@dataclass
class Walker:
    walker_id: str
    x: int
    y: int
    route: Path | None = None


class RouteTracker:
    def __init__(self, grid_map: GridMap) -> None:
        self._map = grid_map
        self._walkers: dict[str, Walker] = {}
        grid_map.subscribe_structure_changed(self._on_structure_changed)

    def add(self, walker_id: str, x: int, y: int) -> Walker:
        if walker_id in self._walkers:
            raise ValueError(f"Walker {walker_id!r} is already tracked.")
        walker = Walker(walker_id=walker_id, x=x, y=y)
        walker.route = self._route_for(walker)
        self._walkers[walker_id] = walker
        return walker

    def move(self, walker_id: str, x: int, y: int) -> Path | None:
        walker = self._walkers[walker_id]
        walker.x = x
        walker.y = y
        walker.route = self._route_for(walker)
        return walker.route

    def remove(self, walker_id: str) -> None:
        self._walkers.pop(walker_id, None)

    def route(self, walker_id: str) -> Path | None:
        return self._walkers[walker_id].route

    def walkers(self) -> list[Walker]:
        return list(self._walkers.values())

    def stranded(self) -> list[str]:
        return sorted(
            walker_id
            for walker_id, walker in self._walkers.items()
            if walker.route is None
        )

    def _route_for(self, walker: Walker) -> Path | None:
        goal = self._map.base_coord
        if goal is None:
            return None
        return self._map.find_path(walker.x, walker.y, goal[0], goal[1])

    def _on_structure_changed(self, event: StructureChanged) -> None:
        for walker in self._walkers.values():
            walker.route = self._route_for(walker)
        stranded = self.stranded()
        if stranded:
            logger.warning(
                "%s at (%d, %d) left walkers without a route: %s",
                event.kind.value,
                event.x,
                event.y,
                ", ".join(stranded),
            )
