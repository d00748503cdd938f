"""All the grids of a design, and which helix sits where."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Set

import numpy as np

from ..bezier_plane import BezierPath, BezierPlane
from ..errors import GridDoesNotExist
from ..linalg import Rotor
from ..parameters import Parameters
from .lattice import Edge
from .model import Grid
from .positions import FreeGridId, GridId, GridPosition, HelixGridPosition, grid_id_sort_key

LOGGER = logging.getLogger(__name__)


class GridData:
    """
    Read-only index over the free grids of a design and the grids materialized along its
    bezier paths. Helices are only read through their ``grid_position`` attribute.
    """

    def __init__(
        self,
        free_grids: Mapping[int, Grid],
        helices: Mapping[int, Any],
        parameters: Parameters,
        bezier_paths: Optional[Mapping[int, BezierPath]] = None,
        bezier_planes: Optional[Mapping[int, BezierPlane]] = None,
    ) -> None:
        self.parameters = parameters
        self.grids: Dict[GridId, Grid] = {FreeGridId(g_id): grid for g_id, grid in free_grids.items()}
        planes = bezier_planes or {}
        for path_id, path in (bezier_paths or {}).items():
            self.grids.update(path.grids(path_id, planes))
        self.pos_to_helix: Dict[GridPosition, int] = {}
        self.helix_to_pos: Dict[int, HelixGridPosition] = {}
        for h_id in sorted(helices):
            position = getattr(helices[h_id], "grid_position", None)
            if position is None:
                continue
            self.helix_to_pos[h_id] = position
            light = position.light()
            if light in self.pos_to_helix:
                LOGGER.debug("helix %s shares %s with helix %s", h_id, light, self.pos_to_helix[light])
                continue
            self.pos_to_helix[light] = h_id
        LOGGER.debug("GridData grids=%s pinned_helices=%s", len(self.grids), len(self.helix_to_pos))

    def grid_ids(self):
        return sorted(self.grids, key=grid_id_sort_key)

    def get_grid(self, grid_id: GridId) -> Grid:
        grid = self.grids.get(grid_id)
        if grid is None:
            raise GridDoesNotExist(grid_id)
        return grid

    def pos_to_space(self, position: GridPosition) -> np.ndarray:
        return self.get_grid(position.grid).position_helix(self.parameters, position.x, position.y)

    def orientation(self, grid_id: GridId) -> Rotor:
        return self.get_grid(grid_id).orientation

    def translation_to_edge(self, pos1: GridPosition, pos2: GridPosition) -> Optional[Edge]:
        """The edge from ``pos1`` to ``pos2``, or None when they are on different grids."""
        if pos1.grid != pos2.grid:
            return None
        grid = self.grids.get(pos1.grid)
        if grid is None:
            return None
        return grid.translation_to_edge(pos1.x, pos1.y, pos2.x, pos2.y)

    def translate_by_edge(self, position: GridPosition, edge: Edge) -> Optional[GridPosition]:
        grid = self.grids.get(position.grid)
        if grid is None:
            return None
        moved = grid.translate_by_edge(position.x, position.y, edge)
        if moved is None:
            return None
        return GridPosition(position.grid, moved[0], moved[1])

    def helix_at(self, position: GridPosition) -> Optional[int]:
        return self.pos_to_helix.get(position)

    def is_position_free(self, position: GridPosition, ignored: Iterable[int] = ()) -> bool:
        helix = self.pos_to_helix.get(position)
        return helix is None or helix in set(ignored)

    def get_helices_on_grid(self, grid_id: GridId) -> Set[int]:
        if grid_id not in self.grids:
            raise GridDoesNotExist(grid_id)
        return {h_id for pos, h_id in self.pos_to_helix.items() if pos.grid == grid_id}

    def attach_to(self, helix: Any, grid_id: GridId) -> Optional[HelixGridPosition]:
        """Grid position of ``grid_id`` closest to a straight helix."""
        return self.get_grid(grid_id).find_helix_position(self.parameters, helix, grid_id)


__all__ = ["GridData"]
