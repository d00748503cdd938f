"""Helices: straight or curved double helices, optionally pinned to a grid."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from .config import EngineConfig
from .curves.descriptor import (
    CurveDescriptor,
    GridReader,
    PiecewiseBezierDescriptor,
    build_curve,
    curve_descriptor_from_payload,
    curve_descriptor_to_payload,
    curve_tag,
)
from .curves.discretization import InstantiatedCurve, discretize
from .curves.twist import TwistDescriptor
from .grid.model import Grid
from .grid.positions import GridId, HelixGridPosition
from .linalg import UNIT_X, Rotor, Vec2, Vec3, as_vec2, as_vec3, normalized, perpendicular_basis
from .nucl import Nucl
from .parameters import Parameters

LOGGER = logging.getLogger(__name__)

# Frame of a straight helix in its own coordinates: the tangent is the x axis.
_STRAIGHT_FRAME = perpendicular_basis(UNIT_X)


def frame_to_rotor(frame: np.ndarray) -> Rotor:
    """Orientation mapping a straight helix's frame onto ``frame``."""
    frame = np.asarray(frame, dtype=float)
    return Rotor.from_matrix(np.column_stack((frame[:, 2], frame[:, 0], frame[:, 1])))


@dataclass(frozen=True)
class Isometry2:
    """Placement of a helix in the flat layout."""

    translation: Vec2 = (0.0, 0.0)
    angle: float = 0.0

    def to_payload(self) -> Dict[str, Any]:
        return {"translation": list(self.translation), "angle": self.angle}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Isometry2":
        return cls(as_vec2(payload.get("translation", (0.0, 0.0))), float(payload.get("angle", 0.0)))


@dataclass(frozen=True)
class VirtualNucl:
    """A nucleotide expressed on its helix's support helix."""

    nucl: Nucl

    def compl(self) -> "VirtualNucl":
        return VirtualNucl(self.nucl.compl())


@dataclass(frozen=True)
class Helix:
    """
    A double helix.

    Nucleotide ``n`` of a straight helix sits on the axis point ``position + orientation * (n *
    z_step, 0, 0)``. A helix with a ``curve`` follows the discretized curve instead; curves
    without their own frame are expressed in the helix's frame. The instantiated curve is
    cached on the helix and keyed by the identity of its descriptor.
    """

    position: Vec3 = (0.0, 0.0, 0.0)
    orientation: Rotor = field(default_factory=Rotor.identity)
    grid_position: Optional[HelixGridPosition] = None
    curve: Optional[CurveDescriptor] = None
    isometry2d: Optional[Isometry2] = None
    symmetry: Vec2 = (1.0, 1.0)
    visible: bool = True
    roll: float = 0.0
    locked_for_simulations: bool = False
    initial_nt_index: int = 0
    support_helix: Optional[int] = None
    _curve_cache: Any = field(default=None, init=False, compare=False, repr=False)

    @classmethod
    def new(cls, position, orientation: Optional[Rotor] = None) -> "Helix":
        return cls(position=as_vec3(position), orientation=orientation or Rotor.identity())

    @classmethod
    def from_grid(
        cls,
        grid: Grid,
        grid_id: GridId,
        x: int,
        y: int,
        parameters: Parameters,
        twist_length: Optional[float] = None,
    ) -> "Helix":
        """A helix pinned at ``(x, y)``; twisted grids give it a twist curve."""
        position = grid.position_helix(parameters, x, y)
        curve = None
        if twist_length is not None:
            curve = grid.make_curve(parameters, x, y, twist_length)
        return cls(
            position=as_vec3(position),
            orientation=grid.orientation_helix(parameters, x, y),
            grid_position=HelixGridPosition(grid_id, x, y),
            curve=curve,
        )

    @classmethod
    def from_curve(cls, curve: CurveDescriptor) -> "Helix":
        return cls(curve=curve)

    def _evolve(self, **changes: Any) -> "Helix":
        helix = replace(self, **changes)
        object.__setattr__(helix, "_curve_cache", self._curve_cache)
        return helix

    def instantiated_curve(
        self,
        parameters: Parameters,
        grid_reader: Optional[GridReader] = None,
        config: Optional[EngineConfig] = None,
    ) -> Optional[InstantiatedCurve]:
        if self.curve is None:
            return None
        grid_key = _grid_key(self.curve, grid_reader)
        cache = self._curve_cache
        if cache is not None:
            source, cached_parameters, cached_grid_key, instantiated = cache
            if source is self.curve and cached_parameters == parameters and cached_grid_key == grid_key:
                return instantiated
            LOGGER.warning("Discarding stale %s curve cache", curve_tag(self.curve))
        curve = build_curve(self.curve, parameters, grid_reader)
        instantiated = discretize(curve, parameters, config, source=self.curve)
        object.__setattr__(self, "_curve_cache", (self.curve, parameters, grid_key, instantiated))
        return instantiated

    def nb_curve_nucls(self, parameters: Parameters, grid_reader: Optional[GridReader] = None) -> int:
        curve = self.instantiated_curve(parameters, grid_reader)
        return 0 if curve is None else curve.nb_points()

    def curve_range(self, parameters: Parameters, grid_reader: Optional[GridReader] = None) -> Optional[Tuple[int, int]]:
        """Half-open range of nucleotide indices sampled on the curve."""
        curve = self.instantiated_curve(parameters, grid_reader)
        if curve is None:
            return None
        lo, hi = curve.range()
        return (lo - self.initial_nt_index, hi - self.initial_nt_index)

    def total_roll(self) -> float:
        grid_roll = self.grid_position.roll if self.grid_position is not None else 0.0
        return self.roll + grid_roll

    def roll_at_pos(self, n: int, parameters: Parameters) -> float:
        return self.total_roll() + 2.0 * math.pi * n / parameters.bases_per_turn

    def theta(self, n: int, forward: bool, parameters: Parameters) -> float:
        """Angle of nucleotide ``n`` around the axis."""
        shift = 0.0 if forward else parameters.groove_angle
        return self.roll_at_pos(n, parameters) + shift

    def _axis_and_frame(
        self, parameters: Parameters, n: int, grid_reader: Optional[GridReader]
    ) -> Tuple[np.ndarray, np.ndarray]:
        # n already includes initial_nt_index
        curve = self.instantiated_curve(parameters, grid_reader)
        if curve is not None and curve.nb_points() > 0:
            axis = curve.axis_at(n)
            frame = curve.frame_at(n)
            if axis is None:
                lo, hi = curve.range()
                edge = lo if n < lo else hi - 1
                frame = curve.frame_at(edge)
                axis = curve.axis_at(edge) + frame[:, 2] * (n - edge) * parameters.z_step
            if curve.has_own_frame:
                return np.asarray(axis, dtype=float), np.asarray(frame, dtype=float)
            matrix = self.orientation.matrix()
            return np.asarray(self.position, dtype=float) + matrix @ axis, matrix @ frame
        matrix = self.orientation.matrix()
        axis = np.asarray(self.position, dtype=float) + matrix @ np.array([n * parameters.z_step, 0.0, 0.0])
        return axis, matrix @ _STRAIGHT_FRAME

    def axis_position(self, parameters: Parameters, n: int, grid_reader: Optional[GridReader] = None) -> np.ndarray:
        axis, _ = self._axis_and_frame(parameters, n + self.initial_nt_index, grid_reader)
        return axis

    def frame_at(self, parameters: Parameters, n: int, grid_reader: Optional[GridReader] = None) -> np.ndarray:
        _, frame = self._axis_and_frame(parameters, n + self.initial_nt_index, grid_reader)
        return frame

    def shifted_space_pos(
        self,
        parameters: Parameters,
        n: int,
        forward: bool,
        shift: float,
        grid_reader: Optional[GridReader] = None,
    ) -> np.ndarray:
        """Position of nucleotide ``n`` with its angle around the axis shifted by ``shift``."""
        n = n + self.initial_nt_index
        theta = self.theta(n, forward, parameters) + shift
        axis, frame = self._axis_and_frame(parameters, n, grid_reader)
        r = parameters.helix_radius
        point = axis + frame @ np.array([-math.cos(theta) * r, math.sin(theta) * r, 0.0])
        if not forward:
            point = point + frame[:, 2] * parameters.inclination
        return point

    def space_pos(
        self, parameters: Parameters, n: int, forward: bool, grid_reader: Optional[GridReader] = None
    ) -> np.ndarray:
        return self.shifted_space_pos(parameters, n, forward, 0.0, grid_reader)

    def normal_at_pos(
        self, parameters: Parameters, n: int, forward: bool, grid_reader: Optional[GridReader] = None
    ) -> np.ndarray:
        """Unit tangent of the axis at nucleotide ``n``."""
        return self.frame_at(parameters, n, grid_reader)[:, 2]

    def axis_line(self, parameters: Parameters) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """Point of nucleotide 0 and the axis step between two nucleotides; None for curved helices."""
        if self.curve is not None:
            return None
        origin = self.axis_position(parameters, 0)
        return origin, self.axis_position(parameters, 1) - origin

    def ideal_neighbour(
        self, parameters: Parameters, n: int, forward: bool, grid_reader: Optional[GridReader] = None
    ) -> "Helix":
        """A straight helix whose nucleotide 0 makes an ideal cross-over with nucleotide ``n`` of self."""
        axis, frame = self._axis_and_frame(parameters, n + self.initial_nt_index, grid_reader)
        direction = normalized(self.space_pos(parameters, n, forward, grid_reader) - axis)
        position = axis + parameters.inter_center_gap * direction
        neighbour = Helix(position=as_vec3(position), orientation=frame_to_rotor(frame))
        target = self.theta(n + self.initial_nt_index, forward, parameters) + math.pi
        return replace(neighbour, roll=target - neighbour.theta(0, forward, parameters))

    def translated(self, translation) -> "Helix":
        translation = np.asarray(translation, dtype=float)
        curve = self.curve
        if isinstance(curve, TwistDescriptor):
            curve = replace(curve, position=as_vec3(np.asarray(curve.position) + translation))
        return self._evolve(position=as_vec3(np.asarray(self.position) + translation), curve=curve)

    def rotated_around(self, rotation: Rotor, origin) -> "Helix":
        origin = np.asarray(origin, dtype=float)

        def move(point) -> Vec3:
            return as_vec3(origin + rotation.rotate(np.asarray(point, dtype=float) - origin))

        curve = self.curve
        if isinstance(curve, TwistDescriptor):
            curve = replace(
                curve,
                position=move(curve.position),
                orientation=(rotation * curve.orientation).normalized(),
            )
        return self._evolve(
            position=move(self.position),
            orientation=(rotation * self.orientation).normalized(),
            curve=curve,
        )

    def with_roll(self, roll: float) -> "Helix":
        return self._evolve(roll=roll)

    def with_grid_position(self, grid_position: Optional[HelixGridPosition]) -> "Helix":
        return self._evolve(grid_position=grid_position)

    def with_curve(self, curve: Optional[CurveDescriptor]) -> "Helix":
        return self._evolve(curve=curve)

    def with_changes(self, **changes: Any) -> "Helix":
        return self._evolve(**changes)

    def placed_on_grid(self, grid: Grid, parameters: Parameters, twist_length: Optional[float] = None) -> "Helix":
        """
        Origin and orientation read from the grid position. Nucleotide ``axis_pos`` sits on the
        grid plane. Twisted grids give their helices a twist curve.
        """
        gp = self.grid_position
        if gp is None:
            return self
        twist_curve = grid.make_curve(parameters, gp.x, gp.y, twist_length) if twist_length is not None else None
        if twist_curve is not None:
            # placement then comes from the curve
            if twist_curve == self.curve:
                return self
            return self._evolve(curve=twist_curve)
        curve = None if isinstance(self.curve, TwistDescriptor) else self.curve
        orientation = grid.orientation_helix(parameters, gp.x, gp.y)
        step = orientation.rotate(UNIT_X) * parameters.z_step
        position = as_vec3(grid.position_helix(parameters, gp.x, gp.y) - step * gp.axis_pos)
        if position == self.position and orientation.is_close(self.orientation) and curve is self.curve:
            return self
        return self._evolve(position=position, orientation=orientation, curve=curve)

    def with_derived_placement(
        self, parameters: Parameters, grid_reader: Optional[GridReader] = None
    ) -> "Helix":
        """Take origin and orientation from the first sample of an own-frame curve."""
        curve = self.instantiated_curve(parameters, grid_reader)
        if curve is None or not curve.has_own_frame or curve.nb_points() == 0:
            return self
        idx = min(curve.nucl_t0, curve.nb_points() - 1)
        position = as_vec3(curve.positions[idx])
        orientation = frame_to_rotor(curve.frames[idx])
        if position == self.position and orientation.is_close(self.orientation):
            return self
        return self._evolve(position=position, orientation=orientation)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "position": list(self.position),
            "orientation": list(self.orientation.as_tuple()),
            "visible": self.visible,
            "roll": self.roll,
            "symmetry": list(self.symmetry),
            "locked_for_simulations": self.locked_for_simulations,
            "initial_nt_index": self.initial_nt_index,
        }
        if self.grid_position is not None:
            payload["grid_position"] = self.grid_position.to_payload()
        if self.curve is not None:
            payload["curve"] = curve_descriptor_to_payload(self.curve)
        if self.isometry2d is not None:
            payload["isometry2d"] = self.isometry2d.to_payload()
        if self.support_helix is not None:
            payload["support_helix"] = self.support_helix
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Helix":
        grid_position = payload.get("grid_position")
        curve = payload.get("curve")
        isometry = payload.get("isometry2d")
        support = payload.get("support_helix")
        return cls(
            position=as_vec3(payload.get("position", (0.0, 0.0, 0.0))),
            orientation=Rotor(*(float(c) for c in payload.get("orientation", (1.0, 0.0, 0.0, 0.0)))),
            grid_position=None if grid_position is None else HelixGridPosition.from_payload(grid_position),
            curve=None if curve is None else curve_descriptor_from_payload(curve),
            isometry2d=None if isometry is None else Isometry2.from_payload(isometry),
            symmetry=as_vec2(payload.get("symmetry", (1.0, 1.0))),
            visible=bool(payload.get("visible", True)),
            roll=float(payload.get("roll", 0.0)),
            locked_for_simulations=bool(payload.get("locked_for_simulations", False)),
            initial_nt_index=int(payload.get("initial_nt_index", 0)),
            support_helix=None if support is None else int(support),
        )


def _grid_key(curve: CurveDescriptor, grid_reader: Optional[GridReader]):
    if grid_reader is None or not isinstance(curve, PiecewiseBezierDescriptor):
        return None
    key = []
    for point in curve.points:
        key.append(tuple(float(c) for c in grid_reader.pos_to_space(point.position)))
        key.append(grid_reader.orientation(point.position.grid).as_tuple())
    return tuple(key)


def map_to_virtual_nucl(nucl: Nucl, helices: Mapping[int, Helix]) -> Optional[VirtualNucl]:
    """
    Nucleotides of helices sharing a support helix map to the same virtual nucleotide when they
    sit at the same position of that support helix.
    """
    helix = helices.get(nucl.helix)
    if helix is None:
        return None
    support = helix.support_helix if helix.support_helix is not None else nucl.helix
    if support not in helices:
        return None
    return VirtualNucl(Nucl(support, nucl.position + helix.initial_nt_index, nucl.forward))


__all__ = ["Helix", "Isometry2", "VirtualNucl", "frame_to_rotor", "map_to_virtual_nucl"]
