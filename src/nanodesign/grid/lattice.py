"""Square and honeycomb lattices, and the edges used to move between their positions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from ..linalg import Rotor, Vec2
from ..parameters import Parameters

SQRT_3 = math.sqrt(3.0)


@dataclass(frozen=True)
class SquareEdge:
    x: int
    y: int


@dataclass(frozen=True)
class HoneyEdge:
    """``start_parity`` records whether the source position had equal x and y parities."""

    x: int
    y: int
    start_parity: bool


@dataclass(frozen=True)
class CircleEdge:
    shift: int


Edge = Union[SquareEdge, HoneyEdge, CircleEdge]


class GridDivision:
    """
    A lattice of helix positions in the (y, z) plane of a grid.

    ``origin_helix`` maps integer coordinates to the plane and ``interpolate`` finds the
    lattice position closest to a point of the plane.
    """

    tag = ""
    twist: Optional[float] = None

    def origin_helix(self, parameters: Parameters, x: int, y: int) -> Vec2:
        raise NotImplementedError

    def interpolate(self, parameters: Parameters, x: float, y: float) -> Tuple[int, int]:
        raise NotImplementedError

    def translation_to_edge(self, x1: int, y1: int, x2: int, y2: int) -> Edge:
        raise NotImplementedError

    def translate_by_edge(self, x: int, y: int, edge: Edge) -> Optional[Tuple[int, int]]:
        raise NotImplementedError

    def orientation_helix(self, parameters: Parameters, x: int, y: int) -> Rotor:
        return Rotor.identity()

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if self.twist is not None:
            body["twist"] = self.twist
        return {self.tag: body}


@dataclass(frozen=True)
class SquareGrid(GridDivision):
    twist: Optional[float] = None

    tag = "Square"

    def origin_helix(self, parameters: Parameters, x: int, y: int) -> Vec2:
        d = parameters.inter_center_gap
        return (x * d, y * d)

    def interpolate(self, parameters: Parameters, x: float, y: float) -> Tuple[int, int]:
        d = parameters.inter_center_gap
        return (int(round(x / d)), int(round(y / d)))

    def translation_to_edge(self, x1: int, y1: int, x2: int, y2: int) -> Edge:
        return SquareEdge(x2 - x1, y2 - y1)

    def translate_by_edge(self, x: int, y: int, edge: Edge) -> Optional[Tuple[int, int]]:
        if isinstance(edge, SquareEdge):
            return (x + edge.x, y + edge.y)
        return None


@dataclass(frozen=True)
class HoneycombGrid(GridDivision):
    """
    Brick lattice. Columns are ``sqrt(3) r`` apart and rows ``3 r`` apart, with ``r`` the
    distance between a helix axis and the middle of the gap to its neighbour. Positions whose
    x and y parities differ are shifted by ``r``.
    """

    twist: Optional[float] = None

    tag = "Honeycomb"

    @staticmethod
    def _r(parameters: Parameters) -> float:
        return parameters.inter_helix_gap / 2.0 + parameters.helix_radius

    def origin_helix(self, parameters: Parameters, x: int, y: int) -> Vec2:
        r = self._r(parameters)
        upper = 3.0 * r * y
        lower = upper + r
        return (x * r * SQRT_3, lower if abs(x) % 2 != abs(y) % 2 else upper)

    def interpolate(self, parameters: Parameters, x: float, y: float) -> Tuple[int, int]:
        r = self._r(parameters)
        first_guess = (int(round(x / (r * SQRT_3))), int(math.floor(y / (3.0 * r))))

        def dist(guess: Tuple[int, int]) -> float:
            ox, oy = self.origin_helix(parameters, *guess)
            return (ox - x) ** 2 + (oy - y) ** 2

        best = first_guess
        best_dist = dist(first_guess)
        for dx in (-2, -1, 0, 1, 2):
            for dy in (-2, -1, 0, 1, 2):
                guess = (first_guess[0] + dx, first_guess[1] + dy)
                d = dist(guess)
                if d < best_dist:
                    best = guess
                    best_dist = d
        return best

    def translation_to_edge(self, x1: int, y1: int, x2: int, y2: int) -> Edge:
        return HoneyEdge(x2 - x1, y2 - y1, abs(x1) % 2 == abs(y1) % 2)

    def translate_by_edge(self, x: int, y: int, edge: Edge) -> Optional[Tuple[int, int]]:
        if not isinstance(edge, HoneyEdge):
            return None
        return (x + edge.x, y + edge.y)


__all__ = [
    "SquareEdge",
    "HoneyEdge",
    "CircleEdge",
    "Edge",
    "GridDivision",
    "SquareGrid",
    "HoneycombGrid",
]
