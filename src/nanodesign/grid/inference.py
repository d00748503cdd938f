"""Fit a square or honeycomb grid to a group of straight helices."""

from __future__ import annotations

import logging
import math
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from ..config import EngineConfig, load_engine_config
from ..errors import NotEnoughHelices
from ..linalg import UNIT_X, Rotor, as_vec3, normalized
from ..parameters import Parameters
from .lattice import HoneycombGrid, SquareGrid
from .model import Grid

LOGGER = logging.getLogger(__name__)

MIN_HELICES_TO_MAKE_GRID = 4

Line = Tuple[np.ndarray, np.ndarray]


def error_helix(grid: Grid, parameters: Parameters, origin, direction) -> float:
    """Squared distance between where an axis crosses the grid and the closest lattice point."""
    intersection = grid.real_intersection(origin, direction)
    if intersection is None:
        return math.inf
    x, y = grid.interpolate_helix(parameters, origin, direction)
    return float(np.sum((intersection - grid.position_helix(parameters, x, y)) ** 2))


def error_group(grid: Grid, parameters: Parameters, lines: Sequence[Line]) -> float:
    return sum(error_helix(grid, parameters, origin, direction) for origin, direction in lines)


def _axis_lines(helices: Sequence[Any], parameters: Parameters) -> List[Line]:
    lines = []
    for helix in helices:
        line = helix.axis_line(parameters)
        if line is not None:
            lines.append(line)
    return lines


def _best_rotation(
    position, orientation: Rotor, grid_type, parameters: Parameters, lines: Sequence[Line], rotations: int
) -> Tuple[Grid, float]:
    best: Optional[Grid] = None
    best_err = math.inf
    for i in range(rotations):
        angle = i * (math.pi / 2.0) / rotations
        grid = Grid(as_vec3(position), (orientation * Rotor.from_rotation_yz(angle)).normalized(), grid_type)
        err = error_group(grid, parameters, lines)
        if best is None or err < best_err:
            best, best_err = grid, err
    return best, best_err


def find_grid_for_group(
    helices: Sequence[Any],
    parameters: Parameters,
    config: Optional[EngineConfig] = None,
) -> Grid:
    """
    Best square or honeycomb grid for ``helices``; the first helix leads.

    The grid is perpendicular to the leader's axis. Honeycomb candidates are centered on the
    leader or one of its eight lattice neighbours; square candidates on the leader. Each
    candidate is tried under rotations spanning a quarter turn around the axis, and the
    candidate with the least summed squared residual wins.
    """
    if len(helices) < MIN_HELICES_TO_MAKE_GRID:
        raise NotEnoughHelices(len(helices), MIN_HELICES_TO_MAKE_GRID)
    config = config or load_engine_config()
    rotations = max(1, config.grid_inference_rotations)
    leader = helices[0]
    line = leader.axis_line(parameters)
    direction = UNIT_X if line is None else normalized(line[1])
    leader_position = np.asarray(leader.position, dtype=float) if line is None else line[0]
    orientation = Rotor.from_rotation_between(UNIT_X, direction)
    lines = _axis_lines(helices, parameters)

    hex_grid = Grid(as_vec3(leader_position), orientation, HoneycombGrid())
    hex_err = error_group(hex_grid, parameters, lines)
    best_hex = hex_grid
    for dx in (-1, 0, 1):
        for dy in (-1, 0, 1):
            center = hex_grid.position_helix(parameters, dx, dy)
            grid, err = _best_rotation(center, orientation, HoneycombGrid(), parameters, lines, rotations)
            if err < hex_err:
                best_hex, hex_err = grid, err
                LOGGER.debug("honeycomb candidate offset=(%s, %s) err=%.6f", dx, dy, err)

    square_grid, square_err = _best_rotation(leader_position, orientation, SquareGrid(), parameters, lines, rotations)
    LOGGER.debug("grid inference honeycomb_err=%.6f square_err=%.6f", hex_err, square_err)
    if square_err < hex_err:
        return square_grid
    return best_hex


__all__ = ["MIN_HELICES_TO_MAKE_GRID", "error_helix", "error_group", "find_grid_for_group"]
