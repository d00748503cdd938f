"""Bezier planes, and the 2D bezier paths drawn on them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from .curves.bezier import PiecewiseBezier
from .curves.instantiator import instantiate_bezier_ends
from .errors import CouldNotGetPlane, CouldNotGetVertex, InsufficientVertices
from .grid.model import Grid, GridType, grid_type_from_payload
from .grid.positions import BezierPathGridId
from .linalg import UNIT_X, UNIT_Y, UNIT_Z, Rotor, Vec2, Vec3, as_vec2, as_vec3

LOGGER = logging.getLogger(__name__)

_PARALLEL_EPSILON = 1e-3


@dataclass(frozen=True)
class BezierPlaneIntersection:
    x: float
    y: float
    depth: float


@dataclass(frozen=True)
class BezierPlane:
    """
    A plane of normal ``orientation * x``. The 2D point ``(x, y)`` of the plane is
    ``position + x * (orientation * y_axis) + y * (orientation * z_axis)``.
    """

    position: Vec3
    orientation: Rotor

    def normal(self) -> np.ndarray:
        return self.orientation.rotate(UNIT_X)

    def to_3d(self, point: Vec2) -> np.ndarray:
        x, y = point
        return np.asarray(self.position, dtype=float) + self.vector_to_3d((x, y))

    def vector_to_3d(self, vector: Vec2) -> np.ndarray:
        x, y = vector
        return x * self.orientation.rotate(UNIT_Y) + y * self.orientation.rotate(UNIT_Z)

    def ray_intersection(self, origin, direction) -> Optional[BezierPlaneIntersection]:
        normal = self.normal()
        direction = np.asarray(direction, dtype=float)
        denom = float(direction @ normal)
        if abs(denom) < _PARALLEL_EPSILON:
            return None
        origin = np.asarray(origin, dtype=float)
        depth = float((np.asarray(self.position) - origin) @ normal) / denom
        offset = origin + depth * direction - np.asarray(self.position)
        return BezierPlaneIntersection(
            x=float(offset @ self.orientation.rotate(UNIT_Y)),
            y=float(offset @ self.orientation.rotate(UNIT_Z)),
            depth=depth,
        )

    def to_payload(self) -> Dict[str, Any]:
        return {"position": list(self.position), "orientation": list(self.orientation.as_tuple())}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BezierPlane":
        return cls(as_vec3(payload["position"]), Rotor(*(float(c) for c in payload["orientation"])))


def ray_bezier_plane_intersection(
    planes: Mapping[int, BezierPlane], origin, direction
) -> Optional[Tuple[int, BezierPlaneIntersection]]:
    """Nearest plane hit by the ray, ignoring planes behind its origin."""
    best: Optional[Tuple[int, BezierPlaneIntersection]] = None
    for plane_id, plane in planes.items():
        hit = plane.ray_intersection(origin, direction)
        if hit is None or hit.depth < 0.0:
            continue
        if best is None or hit.depth < best[1].depth:
            best = (plane_id, hit)
    return best


@dataclass(frozen=True)
class BezierVertex:
    """
    A vertex of a bezier path. ``vector_in`` and ``vector_out`` are the optional control
    offsets in plane coordinates: the control points are ``position - vector_in`` and
    ``position + vector_out``.
    """

    plane_id: int
    position: Vec2
    vector_in: Optional[Vec2] = None
    vector_out: Optional[Vec2] = None
    grid_translation: Vec3 = (0.0, 0.0, 0.0)
    angle_with_plane: float = 0.0

    def space_position(self, planes: Mapping[int, BezierPlane]) -> np.ndarray:
        return _plane(planes, self.plane_id).to_3d(self.position)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "plane_id": self.plane_id,
            "position": list(self.position),
            "grid_translation": list(self.grid_translation),
            "angle_with_plane": self.angle_with_plane,
        }
        if self.vector_in is not None:
            payload["vector_in"] = list(self.vector_in)
        if self.vector_out is not None:
            payload["vector_out"] = list(self.vector_out)
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BezierVertex":
        vector_in = payload.get("vector_in")
        vector_out = payload.get("vector_out")
        return cls(
            plane_id=int(payload["plane_id"]),
            position=as_vec2(payload["position"]),
            vector_in=None if vector_in is None else as_vec2(vector_in),
            vector_out=None if vector_out is None else as_vec2(vector_out),
            grid_translation=as_vec3(payload.get("grid_translation", (0.0, 0.0, 0.0))),
            angle_with_plane=float(payload.get("angle_with_plane", 0.0)),
        )


def _plane(planes: Mapping[int, BezierPlane], plane_id: int) -> BezierPlane:
    plane = planes.get(plane_id)
    if plane is None:
        raise CouldNotGetPlane(plane_id)
    return plane


@dataclass(frozen=True)
class BezierPath:
    vertices: Tuple[BezierVertex, ...] = ()
    cyclic: bool = False
    grid_type: Optional[GridType] = None

    def add_vertex(self, vertex: BezierVertex) -> Tuple["BezierPath", int]:
        return replace(self, vertices=self.vertices + (vertex,)), len(self.vertices)

    def vertex(self, vertex_id: int) -> BezierVertex:
        if not 0 <= vertex_id < len(self.vertices):
            raise CouldNotGetVertex(vertex_id)
        return self.vertices[vertex_id]

    def _with_vertex(self, vertex_id: int, vertex: BezierVertex) -> "BezierPath":
        vertices = list(self.vertices)
        vertices[vertex_id] = vertex
        return replace(self, vertices=tuple(vertices))

    def set_vertex_position(self, vertex_id: int, position: Vec2) -> "BezierPath":
        return self._with_vertex(vertex_id, replace(self.vertex(vertex_id), position=as_vec2(position)))

    def set_vertex_tangents(
        self, vertex_id: int, vector_in: Optional[Vec2], vector_out: Optional[Vec2]
    ) -> "BezierPath":
        vertex = self.vertex(vertex_id)
        return self._with_vertex(
            vertex_id,
            replace(
                vertex,
                vector_in=None if vector_in is None else as_vec2(vector_in),
                vector_out=None if vector_out is None else as_vec2(vector_out),
            ),
        )

    def set_cyclic(self, cyclic: bool) -> "BezierPath":
        return replace(self, cyclic=cyclic)

    def set_grid_type(self, grid_type: Optional[GridType]) -> "BezierPath":
        return replace(self, grid_type=grid_type)

    def path_curve(self, planes: Mapping[int, BezierPlane]) -> PiecewiseBezier:
        """The path as a piecewise bezier curve in space."""
        if not self.vertices:
            raise InsufficientVertices()
        positions = []
        vectors_in: List[Optional[np.ndarray]] = []
        vectors_out: List[Optional[np.ndarray]] = []
        for vertex in self.vertices:
            plane = _plane(planes, vertex.plane_id)
            positions.append(plane.to_3d(vertex.position))
            vectors_in.append(None if vertex.vector_in is None else plane.vector_to_3d(vertex.vector_in))
            vectors_out.append(None if vertex.vector_out is None else plane.vector_to_3d(vertex.vector_out))
        ends = instantiate_bezier_ends(positions, vectors_in, vectors_out, cyclic=self.cyclic)
        return PiecewiseBezier(ends, cyclic=self.cyclic, has_own_frame=True)

    def vertex_frames(self, planes: Mapping[int, BezierPlane]) -> List[Rotor]:
        """
        Orientation at each vertex: the x axis follows the path and the frame is the plane's
        orientation rotated as little as possible, then by ``angle_with_plane`` around the path.
        """
        if len(self.vertices) < 2:
            return [_plane(planes, v.plane_id).orientation for v in self.vertices]
        curve = self.path_curve(planes)
        frames = []
        for i, vertex in enumerate(self.vertices):
            plane = _plane(planes, vertex.plane_id)
            tangent = np.asarray(curve.speed(float(min(i, curve.nb_segments))), dtype=float)
            if not np.all(np.isfinite(tangent)) or float(np.linalg.norm(tangent)) < 1e-9:
                frames.append(plane.orientation)
                continue
            align = Rotor.from_rotation_between(plane.normal(), tangent)
            twist = Rotor.from_axis_angle(tangent, vertex.angle_with_plane)
            frames.append((twist * align * plane.orientation).normalized())
        return frames

    def grids(self, path_id: int, planes: Mapping[int, BezierPlane]) -> Dict[BezierPathGridId, Grid]:
        """One grid per vertex when the path carries a grid type."""
        if self.grid_type is None or not self.vertices:
            return {}
        frames = self.vertex_frames(planes)
        grids = {}
        for vertex_id, (vertex, frame) in enumerate(zip(self.vertices, frames)):
            position = vertex.space_position(planes) + frame.rotate(vertex.grid_translation)
            grids[BezierPathGridId(path_id, vertex_id)] = Grid(as_vec3(position), frame, self.grid_type)
        return grids

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "vertices": [v.to_payload() for v in self.vertices],
            "cyclic": self.cyclic,
        }
        if self.grid_type is not None:
            payload["grid_type"] = self.grid_type.to_payload()
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BezierPath":
        grid_type = payload.get("grid_type")
        return cls(
            vertices=tuple(BezierVertex.from_payload(v) for v in payload.get("vertices", [])),
            cyclic=bool(payload.get("cyclic", False)),
            grid_type=None if grid_type is None else grid_type_from_payload(grid_type),
        )


__all__ = [
    "BezierPlaneIntersection",
    "BezierPlane",
    "ray_bezier_plane_intersection",
    "BezierVertex",
    "BezierPath",
]
