"""Spirals drawn on a sphere or on a tube."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import numpy as np

from ..parameters import Parameters
from .base import Curve, CurveBounds, stack_xyz

TAU = 2.0 * math.pi


class SphereOrientation(str, Enum):
    CLOCKWISE = "Clockwise"
    COUNTER_CLOCKWISE = "CounterClockwise"

    @property
    def sign(self) -> float:
        return 1.0 if self is SphereOrientation.COUNTER_CLOCKWISE else -1.0


@dataclass(frozen=True)
class SphereLikeSpiralDescriptor:
    theta_0: float
    radius: float
    minimum_diameter: Optional[float] = None
    number_of_helices: int = 2
    orientation: SphereOrientation = SphereOrientation.COUNTER_CLOCKWISE

    def to_payload(self) -> Dict[str, Any]:
        return {
            "theta_0": self.theta_0,
            "radius": self.radius,
            "minimum_diameter": self.minimum_diameter,
            "number_of_helices": self.number_of_helices,
            "orientation": self.orientation.value,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SphereLikeSpiralDescriptor":
        diameter = payload.get("minimum_diameter")
        return cls(
            theta_0=float(payload.get("theta_0", 0.0)),
            radius=float(payload["radius"]),
            minimum_diameter=None if diameter is None else float(diameter),
            number_of_helices=int(payload.get("number_of_helices", 2)),
            orientation=SphereOrientation(payload.get("orientation", SphereOrientation.COUNTER_CLOCKWISE.value)),
        )


class SphereLikeSpiral(Curve):
    """
    A spiral going from the north pole to the south pole of a sphere.

    The latitude ``phi = pi t`` grows linearly while the longitude turns fast enough for
    ``number_of_helices`` interleaved spirals to stay one inter-helix distance apart.
    """

    def __init__(self, descriptor: SphereLikeSpiralDescriptor, parameters: Parameters) -> None:
        self.descriptor = descriptor
        self.parameters = parameters

    @property
    def radius(self) -> float:
        return self.descriptor.radius

    def dist_turn(self) -> float:
        return self.descriptor.number_of_helices * self.parameters.inter_center_gap

    def nb_turn(self) -> float:
        """Signed number of turns around the polar axis over ``t`` in [0, 1]."""
        return math.pi * self.radius / self.dist_turn() * self.descriptor.orientation.sign

    def _angles(self, t):
        t = np.asarray(t, dtype=float)
        phi = math.pi * t
        theta = self.nb_turn() * TAU * t + self.descriptor.theta_0
        return phi, theta

    def position(self, t):
        phi, theta = self._angles(t)
        r = self.radius
        return stack_xyz(r * np.cos(theta) * np.sin(phi), r * np.sin(theta) * np.sin(phi), r * np.cos(phi))

    def speed(self, t):
        phi, theta = self._angles(t)
        r = self.radius
        w = self.nb_turn() * TAU
        x = r * (math.pi * np.cos(phi) * np.cos(theta) - w * np.sin(phi) * np.sin(theta))
        y = r * (math.pi * np.cos(phi) * np.sin(theta) + w * np.sin(phi) * np.cos(theta))
        z = -r * math.pi * np.sin(phi)
        return stack_xyz(x, y, z)

    def acceleration(self, t):
        phi, theta = self._angles(t)
        r = self.radius
        w = self.nb_turn() * TAU
        p = math.pi
        x = r * (
            -(p * p + w * w) * np.sin(phi) * np.cos(theta)
            - 2.0 * p * w * np.cos(phi) * np.sin(theta)
        )
        y = r * (
            -(p * p + w * w) * np.sin(phi) * np.sin(theta)
            + 2.0 * p * w * np.cos(phi) * np.cos(theta)
        )
        z = -r * p * p * np.cos(phi)
        return stack_xyz(x, y, z)

    def bounds(self) -> CurveBounds:
        return CurveBounds.FINITE

    def t_min(self) -> float:
        # diameter = 2 r sin(pi t)
        diameter = self.descriptor.minimum_diameter
        if diameter is None or self.radius <= 0:
            return 0.0
        normalized = diameter / self.radius
        if normalized > 2.0:
            return 0.0
        return math.asin(normalized / 2.0) / math.pi

    def t_max(self) -> float:
        return 1.0 - self.t_min()

    def subdivision_for_t(self, t: float) -> Optional[int]:
        return int(abs(self.nb_turn()) * t * math.pi / 2.0 + self.descriptor.theta_0 / TAU)

    def full_turn_at_t(self) -> Optional[float]:
        return self.t_max()

    def first_theta(self) -> float:
        return self.nb_turn() * TAU * self.t_min() + self.descriptor.theta_0

    def last_theta(self) -> float:
        return self.nb_turn() * TAU * self.t_max() + self.descriptor.theta_0


@dataclass(frozen=True)
class TubeSpiralDescriptor:
    theta_0: float
    radius: float
    height: float = 0.0
    number_of_helices: int = 2

    def to_payload(self) -> Dict[str, Any]:
        return {
            "theta_0": self.theta_0,
            "radius": self.radius,
            "height": self.height,
            "number_of_helices": self.number_of_helices,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TubeSpiralDescriptor":
        return cls(
            theta_0=float(payload.get("theta_0", 0.0)),
            radius=float(payload["radius"]),
            height=float(payload.get("height", 0.0)),
            number_of_helices=int(payload.get("number_of_helices", 2)),
        )


class TubeSpiral(Curve):
    """A helix wound on a cylinder of axis z, pitched so that the wound helices touch."""

    def __init__(self, descriptor: TubeSpiralDescriptor, parameters: Parameters) -> None:
        self.descriptor = descriptor
        self.parameters = parameters

    def inclination(self) -> float:
        slice_width = self.descriptor.radius * math.sin(math.pi / self.descriptor.number_of_helices)
        ratio = self.parameters.inter_center_gap / slice_width
        return math.asin(min(1.0, ratio))

    def dist_turn(self) -> float:
        return self.descriptor.number_of_helices * self.parameters.inter_center_gap / math.cos(self.inclination())

    def nb_turn(self) -> float:
        return self.descriptor.height / self.dist_turn()

    def _theta(self, t):
        t = np.asarray(t, dtype=float)
        return self.nb_turn() * TAU * t + self.descriptor.theta_0

    def position(self, t):
        theta = self._theta(t)
        r = self.descriptor.radius
        return stack_xyz(r * np.cos(theta), r * np.sin(theta), self.descriptor.height * np.asarray(t, dtype=float))

    def speed(self, t):
        theta = self._theta(t)
        r = self.descriptor.radius
        w = self.nb_turn() * TAU
        return stack_xyz(-r * w * np.sin(theta), r * w * np.cos(theta), np.full_like(theta, self.descriptor.height))

    def acceleration(self, t):
        theta = self._theta(t)
        r = self.descriptor.radius
        w = self.nb_turn() * TAU
        return stack_xyz(-r * w * w * np.cos(theta), -r * w * w * np.sin(theta), np.zeros_like(theta))

    def bounds(self) -> CurveBounds:
        return CurveBounds.FINITE

    def subdivision_for_t(self, t: float) -> Optional[int]:
        return int(self.nb_turn() * t * math.pi + self.descriptor.theta_0 / TAU)


__all__ = [
    "SphereOrientation",
    "SphereLikeSpiralDescriptor",
    "SphereLikeSpiral",
    "TubeSpiralDescriptor",
    "TubeSpiral",
]
