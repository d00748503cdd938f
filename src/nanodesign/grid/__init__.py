"""Grids on which helices are pinned."""

from __future__ import annotations

from .positions import (
    BezierPathGridId,
    FreeGridId,
    GridId,
    GridPosition,
    HelixGridPosition,
    as_grid_id,
    grid_id_from_payload,
    grid_id_sort_key,
)
from .lattice import CircleEdge, Edge, GridDivision, HoneyEdge, HoneycombGrid, SquareEdge, SquareGrid
from .hyperboloid import Hyperboloid
from .model import Grid, GridType, grid_type_from_payload, with_twist

__all__ = [
    "BezierPathGridId",
    "FreeGridId",
    "GridId",
    "GridPosition",
    "HelixGridPosition",
    "as_grid_id",
    "grid_id_from_payload",
    "grid_id_sort_key",
    "CircleEdge",
    "Edge",
    "GridDivision",
    "HoneyEdge",
    "HoneycombGrid",
    "SquareEdge",
    "SquareGrid",
    "Hyperboloid",
    "Grid",
    "GridType",
    "grid_type_from_payload",
    "with_twist",
]
