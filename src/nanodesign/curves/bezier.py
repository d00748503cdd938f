"""Cubic bezier curves, single segment and piecewise."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..linalg import Vec3, as_vec3
from .base import Curve, CurveBounds


@dataclass(frozen=True)
class CubicBezierConstructor:
    start: Vec3
    control1: Vec3
    control2: Vec3
    end: Vec3

    def to_payload(self) -> Dict[str, Any]:
        return {
            "start": list(self.start),
            "control1": list(self.control1),
            "control2": list(self.control2),
            "end": list(self.end),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CubicBezierConstructor":
        return cls(
            start=as_vec3(payload["start"]),
            control1=as_vec3(payload["control1"]),
            control2=as_vec3(payload["control2"]),
            end=as_vec3(payload["end"]),
        )


def _polynomial(start, control1, control2, end) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Coefficients ``q0 + t q1 + t^2 q2 + t^3 q3`` of a cubic bezier segment."""
    p0 = np.asarray(start, dtype=float)
    c1 = np.asarray(control1, dtype=float)
    c2 = np.asarray(control2, dtype=float)
    p1 = np.asarray(end, dtype=float)
    q0 = p0
    q1 = 3.0 * (c1 - p0)
    q2 = 3.0 * (c2 - 2.0 * c1 + p0)
    q3 = (p1 - p0) + 3.0 * (c1 - c2)
    return q0, q1, q2, q3


class CubicBezier(Curve):
    """A single cubic bezier segment, ``t`` in [0, 1]."""

    def __init__(self, constructor: CubicBezierConstructor) -> None:
        self.constructor = constructor
        self._q = _polynomial(constructor.start, constructor.control1, constructor.control2, constructor.end)

    def position(self, t):
        q0, q1, q2, q3 = self._q
        t = np.asarray(t, dtype=float)[..., None]
        return q0 + t * (q1 + t * (q2 + t * q3))

    def speed(self, t):
        _, q1, q2, q3 = self._q
        t = np.asarray(t, dtype=float)[..., None]
        return q1 + t * (2.0 * q2 + 3.0 * t * q3)

    def acceleration(self, t):
        _, _, q2, q3 = self._q
        t = np.asarray(t, dtype=float)[..., None]
        return 2.0 * q2 + 6.0 * t * q3

    def inflection_points(self) -> Tuple[float, ...]:
        """Times in [0, 1] where speed and acceleration are colinear."""
        _, q1, q2, q3 = self._q
        # speed x acceleration = 6 (q2 x q3) t^2 + 6 (q1 x q3) t + 2 (q1 x q2)
        a = 6.0 * np.cross(q2, q3)
        b = 6.0 * np.cross(q1, q3)
        c = 2.0 * np.cross(q1, q2)
        roots = []
        for coeffs in zip(a, b, c):
            if all(abs(x) < 1e-12 for x in coeffs):
                continue
            roots.append({round(float(r.real), 9) for r in np.roots(coeffs) if abs(r.imag) < 1e-9})
        if not roots:
            return ()
        common = set.intersection(*roots)
        return tuple(sorted(t for t in common if 0.0 <= t <= 1.0))


@dataclass(frozen=True)
class BezierEndCoordinates:
    """
    An instantiated vertex of a piecewise bezier curve.

    Both tangents point along the direction of travel, so the control point before the
    vertex is ``position - vector_in`` and the one after it is ``position + vector_out``.
    """

    position: Vec3
    vector_in: Vec3
    vector_out: Vec3

    def control_in(self) -> np.ndarray:
        return np.asarray(self.position) - np.asarray(self.vector_in)

    def control_out(self) -> np.ndarray:
        return np.asarray(self.position) + np.asarray(self.vector_out)


class PiecewiseBezier(Curve):
    """
    Chain of cubic segments through ``ends``.

    Segment ``k`` joins ``P_k`` to ``P_{k+1}`` with control points ``P_k + vector_out_k`` and
    ``P_{k+1} - vector_in_{k+1}``, so that the curve is C1 at every vertex. The integer part
    of ``t`` selects the segment. Cyclic curves have one extra segment closing the loop.
    Times outside ``[0, nb_segments]`` extrapolate the first or last segment.
    """

    def __init__(
        self,
        ends: Sequence[BezierEndCoordinates],
        cyclic: bool = False,
        t_min: Optional[float] = None,
        t_max: Optional[float] = None,
        has_own_frame: bool = True,
    ) -> None:
        self.ends = tuple(ends)
        self.cyclic = cyclic and len(self.ends) > 1
        self._t_min = t_min
        self._t_max = t_max
        self.has_own_frame = has_own_frame
        points = list(self.ends)
        if self.cyclic:
            points.append(self.ends[0])
        self.nb_segments = max(len(points) - 1, 0)
        if self.nb_segments == 0:
            only = np.asarray(points[0].position if points else (0.0, 0.0, 0.0), dtype=float)
            zero = np.zeros(3)
            self._coeffs = np.array([[only, zero, zero, zero]])
        else:
            self._coeffs = np.array(
                [
                    _polynomial(a.position, a.control_out(), b.control_in(), b.position)
                    for a, b in zip(points[:-1], points[1:])
                ]
            )

    def _segment(self, t):
        t = np.asarray(t, dtype=float)
        last = max(self.nb_segments - 1, 0)
        idx = np.clip(np.floor(t), 0, last).astype(int)
        u = t - idx
        coeffs = self._coeffs[idx]
        return coeffs, u[..., None]

    def position(self, t):
        coeffs, u = self._segment(t)
        q0, q1, q2, q3 = (coeffs[..., i, :] for i in range(4))
        return q0 + u * (q1 + u * (q2 + u * q3))

    def speed(self, t):
        coeffs, u = self._segment(t)
        q1, q2, q3 = (coeffs[..., i, :] for i in range(1, 4))
        return q1 + u * (2.0 * q2 + 3.0 * u * q3)

    def acceleration(self, t):
        coeffs, u = self._segment(t)
        q2, q3 = coeffs[..., 2, :], coeffs[..., 3, :]
        return 2.0 * q2 + 6.0 * u * q3

    def t_min(self) -> float:
        return 0.0 if self._t_min is None else float(self._t_min)

    def t_max(self) -> float:
        return float(self.nb_segments) if self._t_max is None else float(self._t_max)

    def bounds(self) -> CurveBounds:
        return CurveBounds.FINITE

    def subdivision_for_t(self, t: float) -> Optional[int]:
        if self.nb_segments == 0:
            return 0
        return int(min(max(math.floor(t), 0), self.nb_segments - 1))

    def bezier_points(self) -> Tuple[Vec3, ...]:
        """Vertices and control points, in drawing order."""
        points = []
        for end in self.ends:
            points.append(as_vec3(end.control_in()))
            points.append(end.position)
            points.append(as_vec3(end.control_out()))
        return tuple(points)


__all__ = [
    "CubicBezierConstructor",
    "CubicBezier",
    "BezierEndCoordinates",
    "PiecewiseBezier",
]
