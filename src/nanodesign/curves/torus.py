"""Helices wound on tori whose section is an ellipse, possibly twisting as it revolves."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from ..parameters import Parameters
from .base import Curve, CurveBounds, stack_xyz
from .revolution import EllipseProfile

TAU = 2.0 * math.pi
ARC_TABLE_SIZE = 4096
ARC_TABLE_REFINEMENT = 16
ELLIPSE_SYMMETRY_ORDER = 2


class EllipseArc:
    """
    Arc length along the ellipse ``(x_axis cos phi, y_axis sin phi)`` and its inverse.

    The inverse is read from a table of cumulative lengths integrated with the trapezoid rule.
    """

    def __init__(self, x_axis: float, y_axis: float) -> None:
        if x_axis <= 0.0 or y_axis <= 0.0:
            raise ValueError(f"Ellipse axes must be positive, got {x_axis} and {y_axis}")
        self.x_axis = x_axis
        self.y_axis = y_axis
        fine = np.linspace(0.0, TAU, ARC_TABLE_SIZE * ARC_TABLE_REFINEMENT + 1)
        speeds = self.speed(fine)
        steps = (speeds[1:] + speeds[:-1]) / 2.0 * (fine[1] - fine[0])
        cumulative = np.concatenate(([0.0], np.cumsum(steps)))
        self._phis = fine[::ARC_TABLE_REFINEMENT]
        self._arcs = cumulative[::ARC_TABLE_REFINEMENT]
        self.perimeter = float(self._arcs[-1])

    def speed(self, phi):
        """Norm of the derivative of the ellipse point with respect to ``phi``."""
        phi = np.asarray(phi, dtype=float)
        return np.hypot(self.x_axis * np.sin(phi), self.y_axis * np.cos(phi))

    def speed_derivative(self, phi):
        phi = np.asarray(phi, dtype=float)
        return (self.x_axis**2 - self.y_axis**2) * np.sin(phi) * np.cos(phi) / self.speed(phi)

    def phi_at(self, s):
        """Angle parameter at arc length ``s``, taken modulo the perimeter."""
        return np.interp(np.mod(np.asarray(s, dtype=float), self.perimeter), self._arcs, self._phis)


def revolve_section(
    theta,
    phi,
    dphi,
    ddphi,
    axes: Tuple[float, float],
    kappa: float,
    big_radius: float,
):
    """
    Point of an ellipse section rotated by ``kappa * theta`` in its own plane, then carried
    around the y axis at angle ``theta`` and distance ``big_radius``.

    ``phi`` is the angle parameter on the section and ``dphi``, ``ddphi`` its first two
    derivatives with respect to ``theta``. Returns the point and its first two derivatives
    with respect to ``theta``.
    """
    theta = np.asarray(theta, dtype=float)
    a, b = axes
    cos_phi, sin_phi = np.cos(phi), np.sin(phi)
    z = a * cos_phi + 1j * b * sin_phi
    dz_dphi = -a * sin_phi + 1j * b * cos_phi
    dz = dz_dphi * dphi
    ddz = -z * dphi**2 + dz_dphi * ddphi

    spin = np.exp(1j * kappa * theta)
    w = z * spin
    dw = (dz + 1j * kappa * z) * spin
    ddw = (ddz + 2j * kappa * dz - kappa**2 * z) * spin

    u, v = w.real, w.imag
    du, dv = dw.real, dw.imag
    ddu, ddv = ddw.real, ddw.imag
    rho = u + big_radius
    ct, st = np.cos(theta), np.sin(theta)

    point = stack_xyz(rho * ct, v, rho * st)
    d_point = stack_xyz(du * ct - rho * st, dv, du * st + rho * ct)
    dd_point = stack_xyz(
        ddu * ct - 2.0 * du * st - rho * ct,
        ddv,
        ddu * st + 2.0 * du * ct - rho * st,
    )
    return point, d_point, dd_point


def half_gap(parameters: Parameters) -> float:
    return parameters.helix_radius + parameters.inter_helix_gap / 2.0


@dataclass(frozen=True)
class TorusDescriptor:
    theta0: float
    half_nb_helix: int
    big_radius: float

    def to_payload(self) -> Dict[str, Any]:
        return {"theta0": self.theta0, "half_nb_helix": self.half_nb_helix, "big_radius": self.big_radius}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TorusDescriptor":
        return cls(
            theta0=float(payload.get("theta0", 0.0)),
            half_nb_helix=int(payload["half_nb_helix"]),
            big_radius=float(payload["big_radius"]),
        )


class Torus(Curve):
    """
    One helix of a torus with a 2:1 elliptic section that makes a half turn per revolution.

    The section perimeter fits ``2 * half_nb_helix`` helices. ``theta0`` picks the helix: it
    shifts the starting arc length on the section.
    """

    def __init__(self, descriptor: TorusDescriptor, parameters: Parameters) -> None:
        if descriptor.half_nb_helix <= 0:
            raise ValueError("A torus needs at least one pair of helices")
        self.descriptor = descriptor
        self.ellipse = EllipseArc(2.0, 1.0)
        gap = half_gap(parameters)
        perimeter = 4.0 * gap * descriptor.half_nb_helix
        self.scale = perimeter / self.ellipse.perimeter
        self.omega = TAU * descriptor.half_nb_helix
        self.s_per_theta = (perimeter / 2.0 - 4.0 * gap) / TAU
        self.s0 = 4.0 * gap * descriptor.theta0 / TAU

    def _evaluate(self, t):
        theta = self.omega * np.asarray(t, dtype=float)
        phi = self.ellipse.phi_at((self.s0 + self.s_per_theta * theta) / self.scale)
        dphi = self.s_per_theta / self.scale / self.ellipse.speed(phi)
        ddphi = -(dphi**2) * self.ellipse.speed_derivative(phi) / self.ellipse.speed(phi)
        axes = (2.0 * self.scale, self.scale)
        return revolve_section(theta, phi, dphi, ddphi, axes, 0.5, self.descriptor.big_radius)

    def position(self, t):
        return self._evaluate(t)[0]

    def speed(self, t):
        return self.omega * self._evaluate(t)[1]

    def acceleration(self, t):
        return self.omega**2 * self._evaluate(t)[2]

    def bounds(self) -> CurveBounds:
        return CurveBounds.FINITE

    def t_max(self) -> float:
        return 1.1


@dataclass(frozen=True)
class TwistedTorusDescriptor:
    """
    Helices spread evenly along an elliptic section revolving around the y axis.

    The section turns ``symmetry_per_turn`` half turns per revolution, and each helix moves
    ``helix_index_shift_per_turn`` places along the section per revolution.
    """

    curve: EllipseProfile
    symmetry_per_turn: int
    big_radius: float
    number_of_helix_per_section: int
    helix_index_shift_per_turn: int
    initial_curvilinear_abscissa: float = 0.0
    initial_index_shift: int = 0

    def to_payload(self) -> Dict[str, Any]:
        return {
            "curve": self.curve.to_payload(),
            # key spelled as in existing design files
            "symetry_per_turn": self.symmetry_per_turn,
            "big_radius": self.big_radius,
            "number_of_helix_per_section": self.number_of_helix_per_section,
            "helix_index_shift_per_turn": self.helix_index_shift_per_turn,
            "initial_curvilinear_abscissa": self.initial_curvilinear_abscissa,
            "initial_index_shift": self.initial_index_shift,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TwistedTorusDescriptor":
        symmetry = payload.get("symetry_per_turn", payload.get("half_twist_count_per_turn"))
        if symmetry is None:
            symmetry = payload["symmetry_per_turn"]
        return cls(
            curve=EllipseProfile.from_payload(payload["curve"]),
            symmetry_per_turn=int(symmetry),
            big_radius=float(payload["big_radius"]),
            number_of_helix_per_section=int(payload["number_of_helix_per_section"]),
            helix_index_shift_per_turn=int(payload.get("helix_index_shift_per_turn", 0)),
            initial_curvilinear_abscissa=float(payload.get("initial_curvilinear_abscissa", 0.0)),
            initial_index_shift=int(payload.get("initial_index_shift", 0)),
        )


class TwistedTorus(Curve):
    """
    After ``nb_turn_per_helix`` revolutions a helix is back where it started: each revolution
    moves every helix by the section's symmetry plus its own index shift, and the helix closes
    once that shift is a multiple of the number of helices.
    """

    def __init__(self, descriptor: TwistedTorusDescriptor, parameters: Parameters) -> None:
        n = descriptor.number_of_helix_per_section
        if n <= 0:
            raise ValueError("A twisted torus needs at least one helix per section")
        self.descriptor = descriptor
        profile = descriptor.curve
        self.ellipse = EllipseArc(profile.semi_major_axis, profile.semi_minor_axis)
        self.gap = half_gap(parameters)
        self.scale = 2.0 * self.gap * n / self.ellipse.perimeter
        total_shift = descriptor.helix_index_shift_per_turn + int(
            n * descriptor.symmetry_per_turn / ELLIPSE_SYMMETRY_ORDER
        )
        self.nb_turn_per_helix = n // math.gcd(n, total_shift)
        self.omega = TAU * self.nb_turn_per_helix

    def objective_s(self, theta):
        """Arc length on the scaled section reached after turning by ``theta``."""
        d = self.descriptor
        return d.initial_curvilinear_abscissa + 2.0 * self.gap * (
            d.helix_index_shift_per_turn * np.asarray(theta, dtype=float) / TAU + d.initial_index_shift
        )

    def _evaluate(self, t):
        d = self.descriptor
        theta = self.omega * np.asarray(t, dtype=float)
        phi = self.ellipse.phi_at(self.objective_s(theta) / self.scale)
        ds = 2.0 * self.gap * d.helix_index_shift_per_turn / TAU / self.scale
        dphi = ds / self.ellipse.speed(phi)
        ddphi = -(dphi**2) * self.ellipse.speed_derivative(phi) / self.ellipse.speed(phi)
        axes = (self.scale * self.ellipse.x_axis, self.scale * self.ellipse.y_axis)
        kappa = d.symmetry_per_turn / ELLIPSE_SYMMETRY_ORDER
        return revolve_section(theta, phi, dphi, ddphi, axes, kappa, d.big_radius)

    def position(self, t):
        return self._evaluate(t)[0]

    def speed(self, t):
        return self.omega * self._evaluate(t)[1]

    def acceleration(self, t):
        return self.omega**2 * self._evaluate(t)[2]

    def bounds(self) -> CurveBounds:
        return CurveBounds.FINITE

    def subdivision_for_t(self, t: float) -> Optional[int]:
        return int(math.floor(self.nb_turn_per_helix * t))

    def full_turn_at_t(self) -> Optional[float]:
        return 1.0


__all__ = [
    "EllipseArc",
    "revolve_section",
    "TorusDescriptor",
    "Torus",
    "TwistedTorusDescriptor",
    "TwistedTorus",
]
