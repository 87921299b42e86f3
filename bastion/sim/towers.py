"""Tower types, registered up front and built by type id."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from bastion.sim.cells import Coord
from bastion.sim.contracts import TowerStats


@dataclass(frozen=True)
class Tower:
    type_id: str
    x: int
    y: int
    stats: TowerStats

    @property
    def coord(self) -> Coord:
        return (self.x, self.y)


TowerFactory = Callable[[str, int, int, TowerStats], Tower]


@dataclass(frozen=True)
class TowerType:
    type_id: str
    factory: TowerFactory
    stats: TowerStats


class TowerRegistry:
    def __init__(self) -> None:
        self._types: dict[str, TowerType] = {}

    def register(
        self,
        type_id: str,
        stats: TowerStats | dict[str, Any],
        factory: TowerFactory = Tower,
    ) -> TowerType:
        if not type_id or not type_id.strip():
            raise ValueError("Tower type id must be a non-empty string.")
        if type_id in self._types:
            raise ValueError(f"Tower type {type_id!r} is already registered.")
        if not callable(factory):
            raise ValueError(f"Tower type {type_id!r} factory is not callable.")
        if not isinstance(stats, TowerStats):
            stats = TowerStats.model_validate(stats)
        tower_type = TowerType(type_id=type_id, factory=factory, stats=stats)
        self._types[type_id] = tower_type
        return tower_type

    def get(self, type_id: str) -> TowerType:
        try:
            return self._types[type_id]
        except KeyError:
            raise KeyError(f"Unknown tower type {type_id!r}.") from None

    def stats(self, type_id: str) -> TowerStats:
        return self.get(type_id).stats

    def create(self, type_id: str, x: int, y: int) -> Tower:
        tower_type = self.get(type_id)
        return tower_type.factory(type_id, x, y, tower_type.stats)

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._types

    def type_ids(self) -> list[str]:
        return sorted(self._types)


def default_registry() -> TowerRegistry:
    registry = TowerRegistry()
    registry.register(
        "cannon",
        TowerStats(
            name="Cannon Tower",
            cost=50,
            range_cells=2.5,
            damage=25,
            fire_rate=1.0,
            color="grey50",
        ),
    )
    return registry
