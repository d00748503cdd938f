"""Helicoidal curves: a single twist, and helices wound around a twisted bundle axis."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional

import numpy as np

from ..linalg import Rotor, Vec3, as_vec3
from ..parameters import Parameters
from .base import Curve, CurveBounds, stack_xyz

TAU = 2.0 * math.pi


def twist_to_omega(twist: float, parameters: Parameters) -> float:
    """Angular speed, per unit of t, of a grid twisted by ``twist`` radians per nucleotide."""
    return twist / parameters.z_step


def nb_turn_per_100_nt_to_omega(nb_turn: float, parameters: Parameters) -> float:
    return TAU * nb_turn / (100.0 * parameters.z_step)


def omega_to_nb_turn_per_100_nt(omega: float, parameters: Parameters) -> float:
    return omega * 100.0 * parameters.z_step / TAU


@dataclass(frozen=True)
class TwistDescriptor:
    """
    A helix turning around the x axis of ``orientation``.

    At time t the point is ``orientation * (length_x t, r sin(theta), r cos(theta)) + position``
    with ``theta = theta0 + omega t``.
    """

    theta0: float
    omega: float
    position: Vec3 = (0.0, 0.0, 0.0)
    orientation: Rotor = Rotor()
    length_x: float = 1.0
    radius: float = 0.0
    t_min: Optional[float] = None
    t_max: Optional[float] = None

    def with_t_min(self, t_min: float) -> "TwistDescriptor":
        return replace(self, t_min=t_min)

    def with_t_max(self, t_max: float) -> "TwistDescriptor":
        return replace(self, t_max=t_max)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "theta0": self.theta0,
            "omega": self.omega,
            "position": list(self.position),
            "orientation": list(self.orientation.as_tuple()),
            "length_x": self.length_x,
            "radius": self.radius,
        }
        if self.t_min is not None:
            payload["t_min"] = self.t_min
        if self.t_max is not None:
            payload["t_max"] = self.t_max
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TwistDescriptor":
        t_min = payload.get("t_min")
        t_max = payload.get("t_max")
        return cls(
            theta0=float(payload.get("theta0", 0.0)),
            omega=float(payload.get("omega", 0.0)),
            position=as_vec3(payload.get("position", (0.0, 0.0, 0.0))),
            orientation=Rotor(*(float(c) for c in payload.get("orientation", (1.0, 0.0, 0.0, 0.0)))),
            length_x=float(payload.get("length_x", 1.0)),
            radius=float(payload.get("radius", 0.0)),
            t_min=None if t_min is None else float(t_min),
            t_max=None if t_max is None else float(t_max),
        )


class Twist(Curve):
    has_own_frame = True

    def __init__(self, descriptor: TwistDescriptor) -> None:
        self.descriptor = descriptor
        self._matrix = descriptor.orientation.matrix()
        self._position = np.asarray(descriptor.position, dtype=float)

    def _theta(self, t):
        return self.descriptor.theta0 + self.descriptor.omega * np.asarray(t, dtype=float)

    def position(self, t):
        d = self.descriptor
        theta = self._theta(t)
        local = stack_xyz(d.length_x * np.asarray(t, dtype=float), d.radius * np.sin(theta), d.radius * np.cos(theta))
        return local @ self._matrix.T + self._position

    def speed(self, t):
        d = self.descriptor
        theta = self._theta(t)
        w = d.radius * d.omega
        local = stack_xyz(np.full_like(theta, d.length_x), w * np.cos(theta), -w * np.sin(theta))
        return local @ self._matrix.T

    def acceleration(self, t):
        d = self.descriptor
        theta = self._theta(t)
        w2 = d.radius * d.omega * d.omega
        local = stack_xyz(np.zeros_like(theta), -w2 * np.sin(theta), -w2 * np.cos(theta))
        return local @ self._matrix.T

    def bounds(self) -> CurveBounds:
        return CurveBounds.BI_INFINITE

    def t_min(self) -> float:
        return 0.0 if self.descriptor.t_min is None else self.descriptor.t_min

    def t_max(self) -> float:
        return 1.0 if self.descriptor.t_max is None else self.descriptor.t_max


@dataclass(frozen=True)
class SuperTwistDescriptor:
    """
    Helix ``helix_idx`` of a bundle of ``nb_helices`` helices wound around a helicoidal axis.

    The bundle axis is ``(r cos(omega t), r sin(omega t), delta t)``.
    """

    r: float
    delta: float
    omega: float
    nb_helices: int
    helix_idx: int
    t_min: Optional[float] = None
    t_max: Optional[float] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "r": self.r,
            "delta": self.delta,
            "omega": self.omega,
            "nb_helices": self.nb_helices,
            "helix_idx": self.helix_idx,
        }
        if self.t_min is not None:
            payload["t_min"] = self.t_min
        if self.t_max is not None:
            payload["t_max"] = self.t_max
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SuperTwistDescriptor":
        t_min = payload.get("t_min")
        t_max = payload.get("t_max")
        return cls(
            r=float(payload["r"]),
            delta=float(payload["delta"]),
            omega=float(payload["omega"]),
            nb_helices=int(payload["nb_helices"]),
            helix_idx=int(payload.get("helix_idx", 0)),
            t_min=None if t_min is None else float(t_min),
            t_max=None if t_max is None else float(t_max),
        )


class SuperTwist(Curve):
    has_own_frame = True

    def __init__(self, descriptor: SuperTwistDescriptor, parameters: Parameters) -> None:
        self.descriptor = descriptor
        self.parameters = parameters

    def position(self, t):
        d = self.descriptor
        t = np.asarray(t, dtype=float)
        ct = np.cos(t * d.omega)
        st = np.sin(t * d.omega)
        axis = stack_xyz(d.r * ct, d.r * st, d.delta * t)

        ds = math.hypot(d.r * d.omega, d.delta)
        tangent = stack_xyz(-d.r * d.omega * st, d.r * d.omega * ct, np.full_like(t, d.delta)) / ds
        normal = stack_xyz(-ct, -st, np.zeros_like(t))
        binormal = np.cross(tangent, normal)

        gap = self.parameters.inter_center_gap
        omega_bundle = TAU * ds / (d.nb_helices * gap)
        bundle_radius = gap / 2.0 / math.sin(math.pi / d.nb_helices)
        angle = omega_bundle * t + d.helix_idx * TAU / d.nb_helices
        return (
            axis
            + (bundle_radius * np.cos(angle))[..., None] * normal
            + (bundle_radius * np.sin(angle))[..., None] * binormal
        )

    def bounds(self) -> CurveBounds:
        return CurveBounds.BI_INFINITE

    def t_min(self) -> float:
        return 0.0 if self.descriptor.t_min is None else min(self.descriptor.t_min, 0.0)

    def t_max(self) -> float:
        return 1.0 if self.descriptor.t_max is None else max(self.descriptor.t_max, 1.0)


__all__ = [
    "twist_to_omega",
    "nb_turn_per_100_nt_to_omega",
    "omega_to_nb_turn_per_100_nt",
    "TwistDescriptor",
    "Twist",
    "SuperTwistDescriptor",
    "SuperTwist",
]
