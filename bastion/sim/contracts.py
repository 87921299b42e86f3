"""Notification payloads and tower stats shared with map collaborators."""

from __future__ import annotations

from enum import Enum
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field

from bastion.sim.cells import CellState


class CellChanged(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    x: int
    y: int
    state: CellState


class StructureKind(str, Enum):
    PLACED = "placed"
    REMOVED = "removed"


class StructureChanged(BaseModel):
    """Coarse notice that a tower was placed or removed; holders of paths re-route."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: StructureKind
    x: int
    y: int


CellChangedHandler = Callable[[CellChanged], None]
StructureChangedHandler = Callable[[StructureChanged], None]


class TowerStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    cost: int = Field(50, ge=0)
    range_cells: float = Field(2.5, gt=0, description="Firing radius in cells")
    damage: int = Field(25, ge=0)
    fire_rate: float = Field(1.0, gt=0, description="Shots per second")
    color: str = "grey50"
