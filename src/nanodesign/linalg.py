"""Small vector and rotation helpers shared by curves, grids and helices."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np

Vec2 = Tuple[float, float]
Vec3 = Tuple[float, float, float]

EPSILON = 1e-6

UNIT_X = np.array([1.0, 0.0, 0.0])
UNIT_Y = np.array([0.0, 1.0, 0.0])
UNIT_Z = np.array([0.0, 0.0, 1.0])


def vec3(values: Iterable[float]) -> np.ndarray:
    array = np.asarray(tuple(values) if not isinstance(values, np.ndarray) else values, dtype=float)
    if array.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {array.shape}")
    return array


def as_vec3(values: Iterable[float]) -> Vec3:
    x, y, z = (float(v) for v in values)
    return (x, y, z)


def as_vec2(values: Iterable[float]) -> Vec2:
    x, y = (float(v) for v in values)
    return (x, y)


def normalized(vector: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        return np.zeros_like(vector, dtype=float)
    return np.asarray(vector, dtype=float) / norm


def perpendicular_basis(vector: Sequence[float]) -> np.ndarray:
    """
    Return an orthonormal basis whose third column is ``vector`` normalized.

    The first column is chosen among the unit x and unit y axes, whichever is the least
    aligned with ``vector``. A (near) zero vector yields the identity matrix.
    """

    v = np.asarray(vector, dtype=float)
    norm = float(np.linalg.norm(v))
    if norm < EPSILON:
        return np.eye(3)
    axis_z = v / norm
    axis_x = UNIT_Y if abs(axis_z[0]) >= 0.9 else UNIT_X
    axis_y = normalized(np.cross(axis_z, axis_x))
    axis_x = normalized(np.cross(axis_y, axis_z))
    return np.column_stack((axis_x, axis_y, axis_z))


@dataclass(frozen=True)
class Rotor:
    """A rotation of 3D space stored as a unit quaternion ``w + xi + yj + zk``."""

    w: float = 1.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def identity(cls) -> "Rotor":
        return cls(1.0, 0.0, 0.0, 0.0)

    @classmethod
    def from_axis_angle(cls, axis: Sequence[float], angle: float) -> "Rotor":
        direction = normalized(np.asarray(axis, dtype=float))
        if not np.any(direction):
            return cls.identity()
        half = angle / 2.0
        s = math.sin(half)
        return cls(math.cos(half), *(float(c) * s for c in direction))

    @classmethod
    def from_rotation_yz(cls, angle: float) -> "Rotor":
        """Rotation around the x axis, taking y towards z."""
        return cls.from_axis_angle(UNIT_X, angle)

    @classmethod
    def from_rotation_xz(cls, angle: float) -> "Rotor":
        """Rotation around the y axis, taking x towards z."""
        return cls.from_axis_angle(UNIT_Y, -angle)

    @classmethod
    def from_rotation_xy(cls, angle: float) -> "Rotor":
        """Rotation around the z axis, taking x towards y."""
        return cls.from_axis_angle(UNIT_Z, angle)

    @classmethod
    def from_rotation_between(cls, source: Sequence[float], target: Sequence[float]) -> "Rotor":
        a = normalized(np.asarray(source, dtype=float))
        b = normalized(np.asarray(target, dtype=float))
        if not np.any(a) or not np.any(b):
            return cls.identity()
        dot = float(np.dot(a, b))
        if dot < -1.0 + 1e-12:
            axis = perpendicular_basis(a)[:, 0]
            return cls.from_axis_angle(axis, math.pi)
        cross = np.cross(a, b)
        return cls(1.0 + dot, *(float(c) for c in cross)).normalized()

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "Rotor":
        m = np.asarray(matrix, dtype=float)
        trace = m[0, 0] + m[1, 1] + m[2, 2]
        if trace > 0.0:
            s = 2.0 * math.sqrt(trace + 1.0)
            w = 0.25 * s
            x = (m[2, 1] - m[1, 2]) / s
            y = (m[0, 2] - m[2, 0]) / s
            z = (m[1, 0] - m[0, 1]) / s
        elif m[0, 0] > m[1, 1] and m[0, 0] > m[2, 2]:
            s = 2.0 * math.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2])
            w = (m[2, 1] - m[1, 2]) / s
            x = 0.25 * s
            y = (m[0, 1] + m[1, 0]) / s
            z = (m[0, 2] + m[2, 0]) / s
        elif m[1, 1] > m[2, 2]:
            s = 2.0 * math.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2])
            w = (m[0, 2] - m[2, 0]) / s
            x = (m[0, 1] + m[1, 0]) / s
            y = 0.25 * s
            z = (m[1, 2] + m[2, 1]) / s
        else:
            s = 2.0 * math.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1])
            w = (m[1, 0] - m[0, 1]) / s
            x = (m[0, 2] + m[2, 0]) / s
            y = (m[1, 2] + m[2, 1]) / s
            z = 0.25 * s
        return cls(float(w), float(x), float(y), float(z)).normalized()

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.w, self.x, self.y, self.z)

    def normalized(self) -> "Rotor":
        norm = math.sqrt(self.w**2 + self.x**2 + self.y**2 + self.z**2)
        if norm == 0.0:
            return Rotor.identity()
        return Rotor(self.w / norm, self.x / norm, self.y / norm, self.z / norm)

    def reversed(self) -> "Rotor":
        return Rotor(self.w, -self.x, -self.y, -self.z)

    def __mul__(self, other: "Rotor") -> "Rotor":
        """Composition: ``(a * b).rotate(v) == a.rotate(b.rotate(v))``."""
        if not isinstance(other, Rotor):
            return NotImplemented
        w1, x1, y1, z1 = self.as_tuple()
        w2, x2, y2, z2 = other.as_tuple()
        return Rotor(
            w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
            w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
            w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        )

    def matrix(self) -> np.ndarray:
        w, x, y, z = self.normalized().as_tuple()
        return np.array(
            [
                [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
                [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
                [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
            ]
        )

    def rotate(self, vector: Sequence[float] | np.ndarray) -> np.ndarray:
        """Rotate a vector, or an array of vectors stacked on the last axis."""
        return np.asarray(vector, dtype=float) @ self.matrix().T

    def axis(self, index: int) -> np.ndarray:
        return self.matrix()[:, index]

    def is_close(self, other: "Rotor", tol: float = 1e-9) -> bool:
        dot = abs(sum(a * b for a, b in zip(self.normalized().as_tuple(), other.normalized().as_tuple())))
        return dot > 1.0 - tol


__all__ = [
    "Vec2",
    "Vec3",
    "EPSILON",
    "UNIT_X",
    "UNIT_Y",
    "UNIT_Z",
    "vec3",
    "as_vec3",
    "as_vec2",
    "normalized",
    "perpendicular_basis",
    "Rotor",
]
