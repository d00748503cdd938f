"""Common contract for analytic curves."""

from __future__ import annotations

from enum import Enum
from typing import Optional

import numpy as np

EPSILON_DERIVATIVE = 1e-6


class CurveBounds(str, Enum):
    """Interval in which ``t`` may be taken."""

    FINITE = "Finite"
    POSITIVE_INFINITE = "PositiveInfinite"
    BI_INFINITE = "BiInfinite"


def stack_xyz(x, y, z) -> np.ndarray:
    """Stack coordinates (scalars or arrays of the same shape) on a trailing axis of size 3."""
    return np.stack(np.broadcast_arrays(x, y, z), axis=-1).astype(float)


class Curve:
    """
    A curve maps a real parameter ``t`` to a point of the helix frame.

    ``position``, ``speed`` and ``acceleration`` accept either a float or a numpy array of
    times and return arrays whose last axis holds the coordinates. Subclasses must provide
    ``position``; derivatives fall back to central differences.
    """

    #: True when positions are already expressed in world coordinates.
    has_own_frame = False

    def position(self, t):
        raise NotImplementedError

    def speed(self, t):
        t = np.asarray(t, dtype=float)
        h = EPSILON_DERIVATIVE
        return (self.position(t + h / 2.0) - self.position(t - h / 2.0)) / h

    def acceleration(self, t):
        t = np.asarray(t, dtype=float)
        h = 1e-4
        return (self.position(t + h) + self.position(t - h) - 2.0 * self.position(t)) / (h * h)

    def bounds(self) -> CurveBounds:
        return CurveBounds.FINITE

    def t_min(self) -> float:
        return 0.0

    def t_max(self) -> float:
        return 1.0

    def subdivision_for_t(self, t: float) -> Optional[int]:
        return None

    def full_turn_at_t(self) -> Optional[float]:
        return None

    def curvature(self, t: float) -> float:
        """Inverse of the radius of the osculating circle at ``t``."""
        speed = np.asarray(self.speed(t), dtype=float)
        norm = float(np.linalg.norm(speed))
        if norm == 0.0:
            return 0.0
        numerator = float(np.linalg.norm(np.cross(speed, self.acceleration(t))))
        return numerator / norm**3


__all__ = ["CurveBounds", "Curve", "stack_xyz", "EPSILON_DERIVATIVE"]
