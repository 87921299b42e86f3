"""Grid-based pathfinding (A*)."""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable

from bastion.sim.cells import Coord, manhattan

Path = tuple[Coord, ...]
Passable = Callable[[int, int], bool]

# Up, down, left, right. No diagonal movement.
NEIGHBOR_OFFSETS: tuple[Coord, ...] = ((0, -1), (0, 1), (-1, 0), (1, 0))


@dataclass(eq=False)
class PathNode:
    """Search node; the parent links form the tree used to rebuild a path."""

    x: int
    y: int
    parent: PathNode | None = None
    g: int = 0
    h: int = 0
    f: int = field(init=False)

    def __post_init__(self) -> None:
        self.f = self.g + self.h

    @property
    def coord(self) -> Coord:
        return (self.x, self.y)

    def relax(self, parent: PathNode, g: int) -> None:
        self.parent = parent
        self.g = g
        self.f = g + self.h


@dataclass
class SearchStats:
    searches: int = 0
    expansions: int = 0


class PathFinder:
    def __init__(self, passable: Passable) -> None:
        self._passable = passable
        self.stats = SearchStats()

    def find_path(self, start: Coord, goal: Coord) -> Path | None:
        """Return the cells from start to goal inclusive, or None.

        The start cell is never checked for passability, so walkers standing
        on a spawn (or anywhere else) can always leave it.
        """
        self.stats.searches += 1
        sequence = itertools.count()
        start_node = PathNode(start[0], start[1], g=0, h=manhattan(start, goal))

        open_heap: list[tuple[int, int, PathNode]] = []
        heapq.heappush(open_heap, (start_node.f, next(sequence), start_node))
        best: dict[Coord, PathNode] = {start: start_node}
        closed: set[Coord] = set()

        while open_heap:
            f, _, current = heapq.heappop(open_heap)
            if current.coord in closed or f != current.f:
                continue
            if current.coord == goal:
                return self._reconstruct_path(current)

            closed.add(current.coord)
            self.stats.expansions += 1

            for neighbor in self._neighbors(current.coord, closed):
                tentative = current.g + 1
                node = best.get(neighbor)
                if node is None:
                    node = PathNode(
                        neighbor[0],
                        neighbor[1],
                        parent=current,
                        g=tentative,
                        h=manhattan(neighbor, goal),
                    )
                    best[neighbor] = node
                elif tentative < node.g:
                    node.relax(current, tentative)
                else:
                    continue
                heapq.heappush(open_heap, (node.f, next(sequence), node))

        return None

    def _neighbors(self, current: Coord, closed: set[Coord]) -> list[Coord]:
        x, y = current
        candidates = [(x + dx, y + dy) for dx, dy in NEIGHBOR_OFFSETS]
        return [
            pos
            for pos in candidates
            if pos not in closed and self._passable(pos[0], pos[1])
        ]

    @staticmethod
    def _reconstruct_path(node: PathNode) -> Path:
        path: list[Coord] = []
        current: PathNode | None = node
        while current is not None:
            path.append(current.coord)
            current = current.parent
        path.reverse()
        return tuple(path)
