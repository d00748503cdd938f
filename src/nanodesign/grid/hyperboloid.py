"""Hyperboloid grids: N helices joining two rings, the second ring rotated by a shift angle."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ..linalg import UNIT_X, Rotor, Vec2, as_vec3
from ..parameters import Parameters
from .lattice import CircleEdge, Edge, GridDivision


@dataclass(frozen=True)
class Hyperboloid(GridDivision):
    """
    ``radius`` is the number of helices, ``shift`` the angle between the two rings and
    ``length`` the number of nucleotides between the rings. ``radius_shift`` in [0, 1]
    interpolates the ring radius between the radius at which the helices touch at the waist
    (0) and the radius at which they touch on the rings (1).
    """

    radius: int
    shift: float
    length: float
    radius_shift: float
    forced_radius: Optional[float] = None

    tag = "Hyperboloid"

    def center_radius(self, parameters: Parameters) -> float:
        """Radius at which ``radius`` helices exactly touch each other."""
        if self.forced_radius is not None:
            return self.forced_radius
        angle = math.pi / self.radius
        return (parameters.helix_radius + parameters.inter_helix_gap / 2.0) / math.sin(angle)

    def sheet_radii(self, parameters: Parameters) -> Tuple[float, float]:
        """Ring radii making the helices touch at the waist, and on the rings."""
        center = self.center_radius(parameters)
        # a chord between angles theta and theta + shift passes at R sqrt(2 + 2 cos(shift)) / 2
        # from the axis at its middle
        waist = 2.0 * center / math.sqrt(2.0 + 2.0 * math.cos(self.shift))
        return (waist, center)

    def ring_radius(self, parameters: Parameters) -> float:
        waist, center = self.sheet_radii(parameters)
        return (1.0 - self.radius_shift) * waist + self.radius_shift * center

    def grid_radius(self, parameters: Parameters) -> float:
        """Radius of the disc covering the rings and the helices on them."""
        return self.ring_radius(parameters) + parameters.helix_radius + parameters.inter_helix_gap / 2.0

    def contains_point(self, parameters: Parameters, x: float, y: float) -> bool:
        r = self.grid_radius(parameters)
        return abs(x) <= r and abs(y) <= r

    def _theta(self, i: int) -> float:
        return 2.0 * math.pi * (i % self.radius) / self.radius

    def origin(self, i: int, parameters: Parameters) -> np.ndarray:
        r = self.ring_radius(parameters)
        theta = self._theta(i)
        return np.array([0.0, r * math.sin(theta), r * math.cos(theta)])

    def destination(self, i: int, parameters: Parameters) -> np.ndarray:
        r = self.ring_radius(parameters)
        theta = self._theta(i) + self.shift
        return np.array([self.length * parameters.z_step, r * math.sin(theta), r * math.cos(theta)])

    def origin_helix(self, parameters: Parameters, x: int, y: int) -> Vec2:
        origin = self.origin(x, parameters)
        return (float(origin[1]), float(origin[2]))

    def orientation_helix(self, parameters: Parameters, x: int, y: int) -> Rotor:
        return Rotor.from_rotation_between(UNIT_X, self.destination(x, parameters) - self.origin(x, parameters))

    def interpolate(self, parameters: Parameters, x: float, y: float) -> Tuple[int, int]:
        angle = 2.0 * math.pi / self.radius
        i = int(round(math.atan2(x, y) / angle)) % self.radius
        return (i, 0)

    def translation_to_edge(self, x1: int, y1: int, x2: int, y2: int) -> Edge:
        return CircleEdge((x2 - x1) % self.radius)

    def translate_by_edge(self, x: int, y: int, edge: Edge) -> Optional[Tuple[int, int]]:
        if isinstance(edge, CircleEdge):
            return ((x + edge.shift) % self.radius, y)
        return None

    def make_helices(self, parameters: Parameters) -> Tuple[List[Tuple[Tuple[float, float, float], Rotor]], int]:
        """Origin and orientation of each helix of the ring, and the number of nucleotides per helix."""
        helices = []
        for i in range(self.radius):
            origin = self.origin(i, parameters)
            orientation = Rotor.from_rotation_between(UNIT_X, self.destination(i, parameters) - origin)
            helices.append((as_vec3(origin), orientation))
        return helices, int(self.length)

    def modify_shift(self, new_shift: float, parameters: Parameters) -> "Hyperboloid":
        """Change the shift while keeping the current center radius."""
        forced = self.forced_radius if self.forced_radius is not None else self.center_radius(parameters)
        return replace(self, shift=new_shift, forced_radius=forced)

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "radius": self.radius,
            "shift": self.shift,
            "length": self.length,
            "radius_shift": self.radius_shift,
        }
        if self.forced_radius is not None:
            body["forced_radius"] = self.forced_radius
        return {self.tag: body}

    @classmethod
    def from_payload(cls, body: Dict[str, Any]) -> "Hyperboloid":
        forced = body.get("forced_radius")
        return cls(
            radius=int(body["radius"]),
            shift=float(body.get("shift", 0.0)),
            length=float(body.get("length", 0.0)),
            radius_shift=float(body.get("radius_shift", 0.0)),
            forced_radius=None if forced is None else float(forced),
        )


__all__ = ["Hyperboloid"]
