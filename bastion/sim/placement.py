"""Tower placement mode: selection, hover validity and committed builds."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from bastion.sim.economy import CashLedger
from bastion.sim.grid_map import GridMap
from bastion.sim.towers import Tower, TowerRegistry

logger = logging.getLogger(__name__)


class PlacementOutcome(str, Enum):
    PLACED = "placed"
    NOT_PLACING = "not_placing"
    OUT_OF_BOUNDS = "out_of_bounds"
    BLOCKED = "blocked"
    INSUFFICIENT_CASH = "insufficient_cash"


@dataclass(frozen=True)
class PlacementResult:
    outcome: PlacementOutcome
    x: int
    y: int
    tower: Tower | None = None

    @property
    def placed(self) -> bool:
        return self.outcome == PlacementOutcome.PLACED


class PlacementController:
    def __init__(
        self, grid_map: GridMap, registry: TowerRegistry, ledger: CashLedger
    ) -> None:
        self._map = grid_map
        self._registry = registry
        self._ledger = ledger
        self._selected: str | None = None
        self._hover: tuple[int, int] | None = None
        self._hover_valid = False
        self._towers: list[Tower] = []

    @property
    def selected(self) -> str | None:
        return self._selected

    @property
    def is_placing(self) -> bool:
        return self._selected is not None

    @property
    def hover_valid(self) -> bool:
        return self._hover_valid

    @property
    def towers(self) -> tuple[Tower, ...]:
        return tuple(self._towers)

    def select(self, type_id: str) -> None:
        self._registry.get(type_id)
        self._selected = type_id
        self._refresh_hover()

    def cancel(self) -> None:
        self._selected = None
        self._hover = None
        self._hover_valid = False

    def hover(self, x: int, y: int) -> bool:
        if self._hover != (x, y):
            self._hover = (x, y)
            self._refresh_hover()
        return self._hover_valid

    def attempt(self, x: int, y: int) -> PlacementResult:
        if self._selected is None:
            return PlacementResult(PlacementOutcome.NOT_PLACING, x, y)
        if not self._map.is_valid_coord(x, y):
            return PlacementResult(PlacementOutcome.OUT_OF_BOUNDS, x, y)

        type_id = self._selected
        cost = self._registry.stats(type_id).cost
        if not self._map.can_place_tower(x, y):
            return PlacementResult(PlacementOutcome.BLOCKED, x, y)
        if not self._ledger.has_enough(cost):
            logger.info("Not enough cash for %s (cost %d).", type_id, cost)
            self.cancel()
            return PlacementResult(PlacementOutcome.INSUFFICIENT_CASH, x, y)

        tower = self._registry.create(type_id, x, y)
        if not self._map.place_tower(x, y, owner=tower):
            return PlacementResult(PlacementOutcome.BLOCKED, x, y)
        if cost > 0:
            self._ledger.spend(cost)
        self._towers.append(tower)
        logger.info("Placed %s at (%d, %d).", type_id, x, y)

        if not self._ledger.has_enough(cost):
            self.cancel()
        else:
            self._refresh_hover()
        return PlacementResult(PlacementOutcome.PLACED, x, y, tower=tower)

    def remove(self, x: int, y: int) -> bool:
        tower = self._map.tower_owner(x, y)
        if not self._map.remove_tower(x, y):
            return False
        self._towers = [item for item in self._towers if item is not tower]
        self._refresh_hover()
        return True

    def _refresh_hover(self) -> None:
        if self._selected is None or self._hover is None:
            self._hover_valid = False
            return
        x, y = self._hover
        self._hover_valid = self._map.is_valid_coord(x, y) and self._map.can_place_tower(
            x, y
        )
