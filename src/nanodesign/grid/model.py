"""Grids: a lattice placed in space by a position and an orientation."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

import numpy as np

from ..curves.twist import TwistDescriptor
from ..errors import SerializationError
from ..linalg import UNIT_X, UNIT_Y, UNIT_Z, Rotor, Vec2, Vec3, as_vec3
from ..parameters import Parameters
from .hyperboloid import Hyperboloid
from .lattice import Edge, GridDivision, HoneycombGrid, SquareGrid
from .positions import GridId, HelixGridPosition

GridType = GridDivision

_PARALLEL_EPSILON = 1e-3


def grid_type_from_payload(payload: Any) -> GridType:
    """
    Decode a grid type.

    The current form is a single-key mapping such as ``{"Square": {"twist": 0.1}}``. The bare
    tags ``"Square"`` and ``"Honeycomb"`` written by older versions are accepted too.
    """
    if isinstance(payload, str):
        if payload == "Square":
            return SquareGrid()
        if payload == "Honeycomb":
            return HoneycombGrid()
        raise SerializationError(f"Unknown grid type {payload!r}")
    if not isinstance(payload, dict) or len(payload) != 1:
        raise SerializationError(f"Invalid grid type {payload!r}")
    (tag, body), = payload.items()
    body = body or {}
    try:
        if tag in ("Square", "Honeycomb"):
            twist = body.get("twist")
            twist = None if twist is None else float(twist)
            return SquareGrid(twist) if tag == "Square" else HoneycombGrid(twist)
        if tag == "Hyperboloid":
            return Hyperboloid.from_payload(body)
    except (KeyError, TypeError, ValueError) as exc:
        raise SerializationError(f"Invalid {tag} grid type: {exc}") from exc
    raise SerializationError(f"Unknown grid type {tag!r}")


def with_twist(grid_type: GridType, twist: Optional[float]) -> GridType:
    if isinstance(grid_type, (SquareGrid, HoneycombGrid)):
        return replace(grid_type, twist=twist)
    return grid_type


@dataclass(frozen=True)
class Grid:
    """
    Helices of a grid are parallel to the grid's x axis. Lattice coordinates ``(u, v)`` given by
    ``origin_helix`` are laid along the grid's y and z axes.
    """

    position: Vec3
    orientation: Rotor
    grid_type: GridType
    invisible: bool = False

    def axis_helix(self) -> np.ndarray:
        return self.orientation.rotate(UNIT_X)

    def _plane_axes(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.orientation.rotate(UNIT_Y), self.orientation.rotate(UNIT_Z)

    def origin_helix(self, parameters: Parameters, x: int, y: int) -> Vec2:
        return self.grid_type.origin_helix(parameters, x, y)

    def position_helix(self, parameters: Parameters, x: int, y: int) -> np.ndarray:
        u, v = self.grid_type.origin_helix(parameters, x, y)
        return np.asarray(self.position, dtype=float) + self.orientation.rotate((0.0, u, v))

    def position_helix_in_grid_coordinates(self, parameters: Parameters, x: int, y: int) -> np.ndarray:
        u, v = self.grid_type.origin_helix(parameters, x, y)
        return np.array([0.0, u, v])

    def orientation_helix(self, parameters: Parameters, x: int, y: int) -> Rotor:
        return (self.orientation * self.grid_type.orientation_helix(parameters, x, y)).normalized()

    def interpolate(self, parameters: Parameters, x: float, y: float) -> Tuple[int, int]:
        return self.grid_type.interpolate(parameters, x, y)

    def translation_to_edge(self, x1: int, y1: int, x2: int, y2: int) -> Edge:
        return self.grid_type.translation_to_edge(x1, y1, x2, y2)

    def translate_by_edge(self, x: int, y: int, edge: Edge) -> Optional[Tuple[int, int]]:
        return self.grid_type.translate_by_edge(x, y, edge)

    def angle_axis(self, axis) -> float:
        """Angle between the grid plane and ``axis``."""
        direction = np.asarray(axis, dtype=float)
        direction = direction / np.linalg.norm(direction)
        return math.asin(min(1.0, abs(float(direction @ self.axis_helix()))))

    def ray_intersection(self, origin, direction) -> Optional[float]:
        """``d`` such that ``origin + d * direction`` lies on the grid plane."""
        normal = self.axis_helix()
        direction = np.asarray(direction, dtype=float)
        denom = float(direction @ normal)
        if abs(denom) < _PARALLEL_EPSILON:
            return None
        return float((np.asarray(self.position) - np.asarray(origin, dtype=float)) @ normal) / denom

    def real_intersection(self, origin, direction) -> Optional[np.ndarray]:
        d = self.ray_intersection(origin, direction)
        if d is None:
            return None
        return np.asarray(origin, dtype=float) + d * np.asarray(direction, dtype=float)

    def line_intersection(self, origin, direction) -> Optional[Vec2]:
        """Lattice-plane coordinates of the intersection between the grid and a line."""
        intersection = self.real_intersection(origin, direction)
        if intersection is None:
            return None
        y_axis, z_axis = self._plane_axes()
        offset = intersection - np.asarray(self.position)
        return (float(offset @ y_axis), float(offset @ z_axis))

    def project_point(self, point) -> np.ndarray:
        normal = self.axis_helix()
        point = np.asarray(point, dtype=float)
        return point + float((np.asarray(self.position) - point) @ normal) * normal

    def interpolate_helix(self, parameters: Parameters, origin, axis) -> Optional[Tuple[int, int]]:
        intersection = self.line_intersection(origin, axis)
        if intersection is None:
            return None
        return self.grid_type.interpolate(parameters, *intersection)

    def find_helix_position(self, parameters: Parameters, helix: Any, grid_id: GridId) -> Optional[HelixGridPosition]:
        """
        Grid position closest to the axis of a straight ``helix``.

        The returned roll is the extra rotation that keeps the helix's nucleotides where they
        are once the helix takes the grid's orientation.
        """
        line = helix.axis_line(parameters)
        if line is None:
            return None
        origin, direction = line
        position = self.interpolate_helix(parameters, origin, direction)
        if position is None:
            return None
        x, y = position
        intersection = self.position_helix(parameters, x, y)
        axis_pos = int(round(float((intersection - origin) @ direction) / float(direction @ direction)))
        nucl = helix.space_pos(parameters, axis_pos, True)
        offset = self.project_point(nucl) - intersection
        y_axis, z_axis = self._plane_axes()
        radius = parameters.helix_radius
        # offset = (-cos(theta) R, sin(theta) R) in the grid plane
        theta = math.atan2(float(offset @ z_axis) / radius, -float(offset @ y_axis) / radius)
        shifted = axis_pos + getattr(helix, "initial_nt_index", 0)
        roll = theta - 2.0 * math.pi * shifted / parameters.bases_per_turn - helix.roll
        roll = (roll + math.pi) % (2.0 * math.pi) - math.pi
        return HelixGridPosition(grid_id, x, y, axis_pos, roll)

    def make_curve(self, parameters: Parameters, x: int, y: int, length: float) -> Optional[TwistDescriptor]:
        """Twisted grids carry their helices on twist curves; straight grids return None."""
        twist = self.grid_type.twist
        if not twist:
            return None
        u, v = self.grid_type.origin_helix(parameters, x, y)
        return TwistDescriptor(
            theta0=math.atan2(u, v),
            omega=twist,
            position=self.position,
            orientation=self.orientation,
            length_x=1.0,
            radius=math.hypot(u, v),
            t_min=0.0,
            t_max=length,
        )

    def with_grid_type(self, grid_type: GridType) -> "Grid":
        return replace(self, grid_type=grid_type)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "position": list(self.position),
            "orientation": list(self.orientation.as_tuple()),
            "grid_type": self.grid_type.to_payload(),
            "invisible": self.invisible,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Grid":
        try:
            return cls(
                position=as_vec3(payload["position"]),
                orientation=Rotor(*(float(c) for c in payload["orientation"])),
                grid_type=grid_type_from_payload(payload["grid_type"]),
                invisible=bool(payload.get("invisible", False)),
            )
        except (KeyError, TypeError) as exc:
            raise SerializationError(f"Invalid grid: {exc}") from exc


__all__ = ["GridType", "Grid", "grid_type_from_payload", "with_twist"]
