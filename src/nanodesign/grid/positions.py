"""Grid identifiers and positions of helices on grids."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Union

from ..errors import SerializationError


@dataclass(frozen=True, order=True)
class FreeGridId:
    """A grid stored in the design's free grids collection."""

    id: int

    def to_payload(self) -> Dict[str, Any]:
        return {"FreeGrid": self.id}

    def __str__(self) -> str:
        return f"FreeGrid({self.id})"


@dataclass(frozen=True, order=True)
class BezierPathGridId:
    """The grid materialized at vertex ``vertex_id`` of bezier path ``path_id``."""

    path_id: int
    vertex_id: int

    def to_payload(self) -> Dict[str, Any]:
        return {"BezierPathGrid": {"path_id": self.path_id, "vertex_id": self.vertex_id}}

    def __str__(self) -> str:
        return f"BezierPathGrid({self.path_id}, {self.vertex_id})"


GridId = Union[FreeGridId, BezierPathGridId]


def grid_id_sort_key(grid_id: GridId):
    if isinstance(grid_id, FreeGridId):
        return (0, grid_id.id, 0)
    return (1, grid_id.path_id, grid_id.vertex_id)


def grid_id_from_payload(payload: Any) -> GridId:
    """Decode a grid id. Bare integers are free grid ids written by older versions."""
    if isinstance(payload, bool):
        raise SerializationError(f"Invalid grid id {payload!r}")
    if isinstance(payload, int):
        return FreeGridId(payload)
    if isinstance(payload, dict):
        if "FreeGrid" in payload:
            return FreeGridId(int(payload["FreeGrid"]))
        if "BezierPathGrid" in payload:
            body = payload["BezierPathGrid"]
            try:
                return BezierPathGridId(int(body["path_id"]), int(body["vertex_id"]))
            except (KeyError, TypeError, ValueError) as exc:
                raise SerializationError(f"Invalid bezier path grid id {body!r}") from exc
    raise SerializationError(f"Invalid grid id {payload!r}")


def as_grid_id(value: Union[GridId, int]) -> GridId:
    if isinstance(value, (FreeGridId, BezierPathGridId)):
        return value
    return FreeGridId(int(value))


@dataclass(frozen=True)
class GridPosition:
    grid: GridId
    x: int
    y: int

    def to_payload(self) -> Dict[str, Any]:
        return {"grid": self.grid.to_payload(), "x": self.x, "y": self.y}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "GridPosition":
        return cls(grid_id_from_payload(payload["grid"]), int(payload["x"]), int(payload["y"]))


@dataclass(frozen=True)
class HelixGridPosition:
    """Where a helix is pinned: a grid position, the axis index crossing the grid and a roll."""

    grid: GridId
    x: int
    y: int
    axis_pos: int = 0
    roll: float = 0.0

    @classmethod
    def from_grid_id_x_y(cls, grid: Union[GridId, int], x: int, y: int) -> "HelixGridPosition":
        return cls(as_grid_id(grid), x, y)

    def light(self) -> GridPosition:
        return GridPosition(self.grid, self.x, self.y)

    def with_roll(self, roll: float | None) -> "HelixGridPosition":
        return replace(self, roll=self.roll if roll is None else roll)

    def moved_to(self, grid: GridId, x: int, y: int) -> "HelixGridPosition":
        return replace(self, grid=grid, x=x, y=y)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "grid": self.grid.to_payload(),
            "x": self.x,
            "y": self.y,
            "axis_pos": self.axis_pos,
            "roll": self.roll,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "HelixGridPosition":
        return cls(
            grid=grid_id_from_payload(payload["grid"]),
            x=int(payload["x"]),
            y=int(payload["y"]),
            axis_pos=int(payload.get("axis_pos", 0)),
            roll=float(payload.get("roll", 0.0)),
        )


__all__ = [
    "FreeGridId",
    "BezierPathGridId",
    "GridId",
    "grid_id_sort_key",
    "grid_id_from_payload",
    "as_grid_id",
    "GridPosition",
    "HelixGridPosition",
]
