"""Serializable curve descriptors and their instantiation into curves."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple, Union

import numpy as np

from ..errors import SerializationError
from ..grid.positions import GridId, GridPosition
from ..linalg import Rotor, as_vec3
from ..parameters import Parameters
from .base import Curve
from .bezier import BezierEndCoordinates, CubicBezier, CubicBezierConstructor, PiecewiseBezier
from .instantiator import instantiate_bezier_ends
from .revolution import InterpolatedChebyshev, InterpolatedChebyshevDescriptor, Revolution, RevolutionDescriptor
from .spirals import SphereLikeSpiral, SphereLikeSpiralDescriptor, TubeSpiral, TubeSpiralDescriptor
from .torus import Torus, TorusDescriptor, TwistedTorus, TwistedTorusDescriptor
from .twist import SuperTwist, SuperTwistDescriptor, Twist, TwistDescriptor

LOGGER = logging.getLogger(__name__)


class GridReader(Protocol):
    """What a piecewise bezier needs to know about grids to place its vertices."""

    def pos_to_space(self, position: GridPosition) -> np.ndarray: ...

    def orientation(self, grid: GridId) -> Rotor: ...

    def translate_by_edge(self, position: GridPosition, edge: Any) -> Optional[GridPosition]: ...


@dataclass(frozen=True)
class BezierEnd:
    """A vertex of a grid-bound piecewise bezier: a grid position and the tangent scaling on each side."""

    position: GridPosition
    inward_coeff: float = 1.0
    outward_coeff: float = 1.0

    def to_payload(self) -> Dict[str, Any]:
        return {
            "position": self.position.to_payload(),
            "inward_coeff": self.inward_coeff,
            "outward_coeff": self.outward_coeff,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BezierEnd":
        return cls(
            position=GridPosition.from_payload(payload["position"]),
            inward_coeff=float(payload.get("inward_coeff", 1.0)),
            outward_coeff=float(payload.get("outward_coeff", 1.0)),
        )


@dataclass(frozen=True)
class PiecewiseBezierDescriptor:
    points: Tuple[BezierEnd, ...]
    t_min: Optional[float] = None
    t_max: Optional[float] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"points": [p.to_payload() for p in self.points]}
        if self.t_min is not None:
            payload["t_min"] = self.t_min
        if self.t_max is not None:
            payload["t_max"] = self.t_max
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PiecewiseBezierDescriptor":
        t_min = payload.get("t_min")
        t_max = payload.get("t_max")
        return cls(
            points=tuple(BezierEnd.from_payload(p) for p in payload.get("points", [])),
            t_min=None if t_min is None else float(t_min),
            t_max=None if t_max is None else float(t_max),
        )


CurveDescriptor = Union[
    CubicBezierConstructor,
    PiecewiseBezierDescriptor,
    SphereLikeSpiralDescriptor,
    TubeSpiralDescriptor,
    TwistDescriptor,
    SuperTwistDescriptor,
    RevolutionDescriptor,
    InterpolatedChebyshevDescriptor,
    TorusDescriptor,
    TwistedTorusDescriptor,
]

_TAGS: Dict[type, str] = {
    CubicBezierConstructor: "Bezier",
    PiecewiseBezierDescriptor: "PiecewiseBezier",
    SphereLikeSpiralDescriptor: "SphereLikeSpiral",
    TubeSpiralDescriptor: "TubeSpiral",
    TwistDescriptor: "Twist",
    SuperTwistDescriptor: "SuperTwist",
    RevolutionDescriptor: "Revolution",
    InterpolatedChebyshevDescriptor: "InterpolatedChebyshev",
    TorusDescriptor: "Torus",
    TwistedTorusDescriptor: "TwistedTorus",
}

_DECODERS: Dict[str, Callable[[Mapping[str, Any]], Any]] = {
    "Bezier": CubicBezierConstructor.from_payload,
    "PiecewiseBezier": PiecewiseBezierDescriptor.from_payload,
    "SphereLikeSpiral": SphereLikeSpiralDescriptor.from_payload,
    "TubeSpiral": TubeSpiralDescriptor.from_payload,
    "Twist": TwistDescriptor.from_payload,
    "SuperTwist": SuperTwistDescriptor.from_payload,
    "Revolution": RevolutionDescriptor.from_payload,
    # older files name the revolution descriptor after its interpolation
    "InterpolatedCurve": RevolutionDescriptor.from_payload,
    "InterpolatedChebyshev": InterpolatedChebyshevDescriptor.from_payload,
    "Torus": TorusDescriptor.from_payload,
    "TwistedTorus": TwistedTorusDescriptor.from_payload,
}


def curve_tag(descriptor: CurveDescriptor) -> str:
    try:
        return _TAGS[type(descriptor)]
    except KeyError as exc:
        raise TypeError(f"Not a curve descriptor: {descriptor!r}") from exc


def curve_descriptor_to_payload(descriptor: CurveDescriptor) -> Dict[str, Any]:
    return {curve_tag(descriptor): descriptor.to_payload()}


def curve_descriptor_from_payload(payload: Mapping[str, Any]) -> CurveDescriptor:
    if not isinstance(payload, Mapping) or len(payload) != 1:
        raise SerializationError(f"A curve descriptor must be a single-key mapping, got {payload!r}")
    (tag, body), = payload.items()
    decoder = _DECODERS.get(tag)
    if decoder is None:
        raise SerializationError(f"Unknown curve descriptor {tag!r}")
    try:
        return decoder(body)
    except SerializationError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise SerializationError(f"Invalid {tag} descriptor: {exc}") from exc


def _piecewise_bezier(descriptor: PiecewiseBezierDescriptor, grid_reader: Optional[GridReader]) -> PiecewiseBezier:
    if grid_reader is None:
        raise ValueError("A grid reader is required to instantiate a piecewise bezier on grids")
    positions = [np.asarray(grid_reader.pos_to_space(end.position), dtype=float) for end in descriptor.points]
    defaults = instantiate_bezier_ends(positions)
    ends = []
    for end, default in zip(descriptor.points, defaults):
        axis = grid_reader.orientation(end.position.grid).axis(0)
        vectors = []
        for vector, coeff in ((default.vector_in, end.inward_coeff), (default.vector_out, end.outward_coeff)):
            vector = np.asarray(vector, dtype=float)
            if not np.all(np.isfinite(vector)):
                vectors.append(vector)
                continue
            norm = float(np.linalg.norm(vector))
            sign = -1.0 if float(vector @ axis) < 0.0 else 1.0
            vectors.append(axis * norm * sign * coeff)
        ends.append(BezierEndCoordinates(default.position, as_vec3(vectors[0]), as_vec3(vectors[1])))
    return PiecewiseBezier(ends, t_min=descriptor.t_min, t_max=descriptor.t_max, has_own_frame=True)


def build_curve(
    descriptor: CurveDescriptor,
    parameters: Parameters,
    grid_reader: Optional[GridReader] = None,
) -> Curve:
    """Instantiate the analytic curve described by ``descriptor``."""
    if isinstance(descriptor, CubicBezierConstructor):
        return CubicBezier(descriptor)
    if isinstance(descriptor, PiecewiseBezierDescriptor):
        return _piecewise_bezier(descriptor, grid_reader)
    if isinstance(descriptor, SphereLikeSpiralDescriptor):
        return SphereLikeSpiral(descriptor, parameters)
    if isinstance(descriptor, TubeSpiralDescriptor):
        return TubeSpiral(descriptor, parameters)
    if isinstance(descriptor, TwistDescriptor):
        return Twist(descriptor)
    if isinstance(descriptor, SuperTwistDescriptor):
        return SuperTwist(descriptor, parameters)
    if isinstance(descriptor, RevolutionDescriptor):
        return Revolution(descriptor)
    if isinstance(descriptor, InterpolatedChebyshevDescriptor):
        return InterpolatedChebyshev(descriptor)
    if isinstance(descriptor, TorusDescriptor):
        return Torus(descriptor, parameters)
    if isinstance(descriptor, TwistedTorusDescriptor):
        return TwistedTorus(descriptor, parameters)
    raise TypeError(f"Not a curve descriptor: {descriptor!r}")


def descriptor_t_min(descriptor: CurveDescriptor) -> Optional[float]:
    if isinstance(descriptor, (PiecewiseBezierDescriptor, TwistDescriptor)):
        return descriptor.t_min
    return None


def descriptor_t_max(descriptor: CurveDescriptor) -> Optional[float]:
    if isinstance(descriptor, (PiecewiseBezierDescriptor, TwistDescriptor)):
        return descriptor.t_max
    return None


def set_t_min(descriptor: CurveDescriptor, new_t_min: float) -> Tuple[CurveDescriptor, bool]:
    """Extend the curve backwards. Returns the new descriptor and whether it changed."""
    if not isinstance(descriptor, (PiecewiseBezierDescriptor, TwistDescriptor)):
        return descriptor, False
    if descriptor.t_min is not None and descriptor.t_min <= new_t_min:
        return descriptor, False
    return replace(descriptor, t_min=new_t_min), True


def set_t_max(descriptor: CurveDescriptor, new_t_max: float) -> Tuple[CurveDescriptor, bool]:
    """Extend the curve forwards. Returns the new descriptor and whether it changed."""
    if not isinstance(descriptor, (PiecewiseBezierDescriptor, TwistDescriptor)):
        return descriptor, False
    if descriptor.t_max is not None and descriptor.t_max >= new_t_max:
        return descriptor, False
    return replace(descriptor, t_max=new_t_max), True


def grid_positions_involved(descriptor: CurveDescriptor) -> Tuple[GridPosition, ...]:
    if isinstance(descriptor, PiecewiseBezierDescriptor):
        return tuple(p.position for p in descriptor.points)
    return ()


def translate_descriptor(descriptor: CurveDescriptor, edge: Any, grid_reader: GridReader) -> Optional[CurveDescriptor]:
    """Move every vertex of a grid-bound piecewise bezier along ``edge``; None if one cannot move."""
    if not isinstance(descriptor, PiecewiseBezierDescriptor):
        return None
    points = []
    for point in descriptor.points:
        moved = grid_reader.translate_by_edge(point.position, edge)
        if moved is None:
            LOGGER.debug("translate_descriptor could not move %s by %s", point.position, edge)
            return None
        points.append(replace(point, position=moved))
    return replace(descriptor, points=tuple(points))


__all__ = [
    "GridReader",
    "BezierEnd",
    "PiecewiseBezierDescriptor",
    "CurveDescriptor",
    "curve_tag",
    "curve_descriptor_to_payload",
    "curve_descriptor_from_payload",
    "build_curve",
    "descriptor_t_min",
    "descriptor_t_max",
    "set_t_min",
    "set_t_max",
    "grid_positions_involved",
    "translate_descriptor",
]
