"""Revolution surfaces: a 2D section swept around the z axis, reparameterized by Chebyshev polynomials."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple, Union

import numpy as np
from numpy.polynomial import chebyshev

from ..errors import SerializationError
from .base import Curve, CurveBounds, stack_xyz

LOGGER = logging.getLogger(__name__)

TAU = 2.0 * math.pi
INTERPOLATION_ERROR = 1e-4
MAX_INTERPOLATION_DEGREE = 64


@dataclass(frozen=True)
class EllipseProfile:
    semi_minor_axis: float
    semi_major_axis: float

    def point(self, s):
        """Point of the ellipse at ``s`` in [0, 1), as an array of shape (..., 2)."""
        u = TAU * np.asarray(s, dtype=float)
        return np.stack((self.semi_minor_axis * np.cos(u), self.semi_major_axis * np.sin(u)), axis=-1)

    def to_payload(self) -> Dict[str, Any]:
        return {"Ellipse": {"semi_minor_axis": self.semi_minor_axis, "semi_major_axis": self.semi_major_axis}}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "EllipseProfile":
        body = payload.get("Ellipse")
        if not isinstance(body, Mapping):
            raise SerializationError(f"Unknown 2D curve {payload!r}")
        return cls(float(body["semi_minor_axis"]), float(body["semi_major_axis"]))


@dataclass(frozen=True)
class PointsValues:
    points: Tuple[float, ...]
    values: Tuple[float, ...]

    def to_payload(self) -> Dict[str, Any]:
        return {"PointsValues": {"points": list(self.points), "values": list(self.values)}}


@dataclass(frozen=True)
class ChebyshevCoeffs:
    coeffs: Tuple[float, ...]
    interval: Tuple[float, float]

    def to_payload(self) -> Dict[str, Any]:
        return {"Chebyshev": {"coeffs": list(self.coeffs), "interval": list(self.interval)}}


InterpolationDescriptor = Union[PointsValues, ChebyshevCoeffs]


def interpolation_from_payload(payload: Mapping[str, Any]) -> InterpolationDescriptor:
    if "PointsValues" in payload:
        body = payload["PointsValues"]
        return PointsValues(tuple(float(p) for p in body["points"]), tuple(float(v) for v in body["values"]))
    if "Chebyshev" in payload:
        body = payload["Chebyshev"]
        low, high = (float(x) for x in body["interval"])
        return ChebyshevCoeffs(tuple(float(c) for c in body["coeffs"]), (low, high))
    raise SerializationError(f"Unknown interpolation descriptor {payload!r}")


def interpolate_points(points, values, max_error: float = INTERPOLATION_ERROR) -> chebyshev.Chebyshev:
    """Least-squares Chebyshev fit of increasing degree until the residual is below ``max_error``."""
    x = np.asarray(points, dtype=float)
    y = np.asarray(values, dtype=float)
    if x.size == 0:
        raise ValueError("Cannot interpolate an empty set of points")
    if x.size == 1:
        return chebyshev.Chebyshev([float(y[0])], domain=[x[0] - 0.5, x[0] + 0.5])
    domain = [float(x.min()), float(x.max())]
    max_degree = min(x.size - 1, MAX_INTERPOLATION_DEGREE)
    fit = None
    for degree in range(1, max_degree + 1):
        fit = chebyshev.Chebyshev.fit(x, y, degree, domain=domain)
        error = float(np.max(np.abs(fit(x) - y)))
        if error <= max_error:
            LOGGER.debug("interpolate_points degree=%s error=%.2e", degree, error)
            return fit
    LOGGER.debug("interpolate_points reached max degree %s", max_degree)
    return fit


def build_interpolator(descriptor: InterpolationDescriptor) -> chebyshev.Chebyshev:
    if isinstance(descriptor, ChebyshevCoeffs):
        return chebyshev.Chebyshev(list(descriptor.coeffs), domain=list(descriptor.interval))
    return interpolate_points(descriptor.points, descriptor.values)


def _wrap_near(value, reference):
    """Shift ``value`` by whole units so that it lies within half a unit of ``reference``."""
    return reference + np.mod(value - reference + 0.5, 1.0) - 0.5


class SmoothInterpolatedSection:
    """
    Abscissa along the section as a function of t, one interpolator per unit of t.

    Near the boundary between two consecutive interpolators the abscissa is a linear blend of
    both over a window of width ``smoothening`` on each side.
    """

    def __init__(self, interpolators: List[chebyshev.Chebyshev], smoothening: float, half_turn: bool) -> None:
        if not interpolators:
            raise ValueError("At least one interpolator is required")
        self.interpolators = interpolators
        self.smoothening = smoothening
        self.shift = 0.5 if half_turn else 0.0

    def _evaluate(self, indices: np.ndarray, x: np.ndarray) -> np.ndarray:
        out = np.empty_like(x)
        for k, poly in enumerate(self.interpolators):
            mask = indices == k
            if np.any(mask):
                out[mask] = poly(x[mask])
        return out

    def abscissa(self, t):
        t = np.asarray(t, dtype=float)
        scalar = t.ndim == 0
        t = np.atleast_1d(t)
        n = len(self.interpolators)
        u = np.mod(t, 1.0)
        idx = np.mod(np.floor(t).astype(int), n)
        result = self._evaluate(idx, u)

        a = self.smoothening
        if a > 0.0:
            low = u < a
            if np.any(low):
                v = (1.0 + u[low] / a) / 2.0
                v1 = np.mod(self._evaluate((idx[low] - 1) % n, 1.0 - a + v * a) + self.shift, 1.0)
                v2 = np.mod(self._evaluate(idx[low], v * a), 1.0)
                v1 = _wrap_near(v1, v2)
                result[low] = (1.0 - v) * v1 + v * v2
            high = (u > 1.0 - a) & ~low
            if np.any(high):
                v = (u[high] - (1.0 - a)) / a / 2.0
                v1 = np.mod(self._evaluate(idx[high], 1.0 - a + v * a), 1.0)
                v2 = np.mod(self._evaluate((idx[high] + 1) % n, v * a) - self.shift, 1.0)
                v2 = _wrap_near(v2, v1)
                result[high] = (1.0 - v) * v1 + v * v2
        return result[0] if scalar else result

    def t_max(self) -> float:
        return float(len(self.interpolators))


@dataclass(frozen=True)
class RevolutionDescriptor:
    curve: EllipseProfile
    half_turns_count: int
    revolution_radius: float
    curve_scale_factor: float
    interpolation: Tuple[InterpolationDescriptor, ...]
    chebyshev_smoothening: float = 0.0

    def to_payload(self) -> Dict[str, Any]:
        return {
            "curve": self.curve.to_payload(),
            "half_turns_count": self.half_turns_count,
            "revolution_radius": self.revolution_radius,
            "curve_scale_factor": self.curve_scale_factor,
            "interpolation": [item.to_payload() for item in self.interpolation],
            "chebyshev_smoothening": self.chebyshev_smoothening,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RevolutionDescriptor":
        return cls(
            curve=EllipseProfile.from_payload(payload["curve"]),
            half_turns_count=int(payload.get("half_turns_count", 0)),
            revolution_radius=float(payload["revolution_radius"]),
            curve_scale_factor=float(payload.get("curve_scale_factor", 1.0)),
            interpolation=tuple(interpolation_from_payload(item) for item in payload.get("interpolation", [])),
            chebyshev_smoothening=float(payload.get("chebyshev_smoothening", 0.0)),
        )


class Revolution(Curve):
    """
    The section is rotated by ``pi * half_turns_count`` over each turn around the z axis.
    One unit of t is one turn; there is one turn per interpolator.
    """

    def __init__(self, descriptor: RevolutionDescriptor) -> None:
        self.descriptor = descriptor
        interpolators = [build_interpolator(item) for item in descriptor.interpolation]
        self.section = SmoothInterpolatedSection(
            interpolators,
            descriptor.chebyshev_smoothening,
            half_turn=descriptor.half_turns_count % 2 != 0,
        )

    def section_rotation_angle(self, t):
        return math.pi * self.descriptor.half_turns_count * np.mod(np.asarray(t, dtype=float), 1.0)

    def curve_point_to_3d(self, section_point, revolution_angle, section_angle):
        d = self.descriptor
        px = section_point[..., 0]
        py = section_point[..., 1]
        x = d.revolution_radius + d.curve_scale_factor * (px * np.cos(section_angle) - py * np.sin(section_angle))
        y = d.curve_scale_factor * (px * np.sin(section_angle) + py * np.cos(section_angle))
        return stack_xyz(np.cos(revolution_angle) * x, np.sin(revolution_angle) * x, y)

    def position(self, t):
        t = np.asarray(t, dtype=float)
        s = self.section.abscissa(t)
        point = self.descriptor.curve.point(np.mod(s, 1.0))
        return self.curve_point_to_3d(point, TAU * t, self.section_rotation_angle(t))

    def bounds(self) -> CurveBounds:
        return CurveBounds.FINITE

    def t_max(self) -> float:
        return self.section.t_max()

    def subdivision_for_t(self, t: float):
        return int(math.floor(min(self.t_max(), t)))

    def full_turn_at_t(self):
        return self.section.t_max()


@dataclass(frozen=True)
class InterpolatedChebyshevDescriptor:
    """A 2D profile traversed at the abscissa given by one Chebyshev reparameterization."""

    curve: EllipseProfile
    interpolation: InterpolationDescriptor
    scale: float = 1.0

    def to_payload(self) -> Dict[str, Any]:
        return {"curve": self.curve.to_payload(), "interpolation": self.interpolation.to_payload(), "scale": self.scale}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "InterpolatedChebyshevDescriptor":
        return cls(
            curve=EllipseProfile.from_payload(payload["curve"]),
            interpolation=interpolation_from_payload(payload["interpolation"]),
            scale=float(payload.get("scale", 1.0)),
        )


class InterpolatedChebyshev(Curve):
    def __init__(self, descriptor: InterpolatedChebyshevDescriptor) -> None:
        self.descriptor = descriptor
        self.interpolator = build_interpolator(descriptor.interpolation)

    def position(self, t):
        s = self.interpolator(np.asarray(t, dtype=float))
        point = self.descriptor.curve.point(np.mod(s, 1.0)) * self.descriptor.scale
        return stack_xyz(point[..., 0], point[..., 1], 0.0)

    def t_min(self) -> float:
        return float(self.interpolator.domain[0])

    def t_max(self) -> float:
        return float(self.interpolator.domain[1])


__all__ = [
    "EllipseProfile",
    "PointsValues",
    "ChebyshevCoeffs",
    "InterpolationDescriptor",
    "interpolation_from_payload",
    "interpolate_points",
    "build_interpolator",
    "SmoothInterpolatedSection",
    "RevolutionDescriptor",
    "Revolution",
    "InterpolatedChebyshevDescriptor",
    "InterpolatedChebyshev",
]
