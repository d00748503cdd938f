"""Arc-length discretization of curves and frame propagation."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import numpy as np

from ..config import EngineConfig, load_engine_config
from ..errors import CurveDiscretizationFailed, DiscretizationFailure
from ..linalg import EPSILON, perpendicular_basis
from ..parameters import Parameters
from .base import Curve

LOGGER = logging.getLogger(__name__)

_BISECTION_STEPS = 40


@dataclass(eq=False)
class InstantiatedCurve:
    """
    Sampled axis of a curve.

    ``positions[i]`` is the axis point of the i-th sample and ``frames[i]`` an orthonormal
    matrix whose third column is the tangent and whose first two columns span the base-pair
    plane. Consecutive samples are ``z_step`` apart. Nucleotide ``n`` of a helix following the
    curve lives on sample ``n + nucl_t0``.
    """

    source: Any
    positions: np.ndarray
    frames: np.ndarray
    times: np.ndarray
    curvature: np.ndarray
    nucl_t0: int = 0
    segment_starts: Tuple[int, ...] = ()
    has_own_frame: bool = False
    z_step: float = field(default=0.0)

    def nb_points(self) -> int:
        return int(self.positions.shape[0])

    def range(self) -> Tuple[int, int]:
        """Half-open range of nucleotide indices covered by the samples."""
        return (-self.nucl_t0, self.nb_points() - self.nucl_t0)

    def _index(self, n: int) -> Optional[int]:
        idx = n + self.nucl_t0
        if 0 <= idx < self.nb_points():
            return idx
        return None

    def axis_at(self, n: int) -> Optional[np.ndarray]:
        idx = self._index(n)
        return None if idx is None else self.positions[idx]

    def frame_at(self, n: int) -> Optional[np.ndarray]:
        idx = self._index(n)
        return None if idx is None else self.frames[idx]

    def t_at(self, n: int) -> Optional[float]:
        idx = self._index(n)
        return None if idx is None else float(self.times[idx])

    def nucl_position(self, n: int, forward: bool, theta: float, parameters: Parameters) -> Optional[np.ndarray]:
        idx = self._index(n)
        if idx is None:
            return None
        frame = self.frames[idx]
        r = parameters.helix_radius
        offset = frame @ np.array([-math.cos(theta) * r, math.sin(theta) * r, 0.0])
        point = self.positions[idx] + offset
        if not forward:
            point = point + frame[:, 2] * parameters.inclination
        return point

    def length(self) -> float:
        if self.nb_points() < 2:
            return 0.0
        return float(np.linalg.norm(np.diff(self.positions, axis=0), axis=1).sum())


def _fail(reason: DiscretizationFailure, detail: str) -> CurveDiscretizationFailed:
    LOGGER.debug("discretization failed reason=%s detail=%s", reason.value, detail)
    return CurveDiscretizationFailed(reason, detail)


def _initial_frame(curve: Curve, t: float) -> np.ndarray:
    speed = np.asarray(curve.speed(t), dtype=float)
    if float(speed @ speed) >= EPSILON:
        return perpendicular_basis(speed)
    acceleration = np.asarray(curve.acceleration(t), dtype=float)
    if float(acceleration @ acceleration) < EPSILON:
        return np.eye(3)
    basis = perpendicular_basis(acceleration)
    return basis[:, [2, 1, 0]]


def _propagate_frame(curve: Curve, t: float, previous: np.ndarray) -> np.ndarray:
    """Parallel transport of ``previous`` to the tangent at ``t``."""
    speed = np.asarray(curve.speed(t), dtype=float)
    norm = float(np.linalg.norm(speed))
    if norm * norm < EPSILON:
        return previous
    forward = speed / norm
    up = np.cross(forward, previous[:, 0])
    up_norm = float(np.linalg.norm(up))
    if up_norm < EPSILON:
        return perpendicular_basis(forward)
    up = up / up_norm
    right = np.cross(up, forward)
    return np.column_stack((right, up, forward))


def _check_finite(values: np.ndarray, what: str) -> None:
    if not np.all(np.isfinite(values)):
        raise _fail(DiscretizationFailure.NUMERIC_OVERFLOW, f"non finite {what}")


def estimate_length(curve: Curve, t_min: float, t_max: float, substeps: int) -> float:
    """Sum of chord lengths over ``substeps`` samples per unit of t."""
    count = max(2, int(math.ceil((t_max - t_min) * substeps)))
    ts = np.linspace(t_min, t_max, count + 1)
    points = np.asarray(curve.position(ts), dtype=float)
    _check_finite(points, "positions")
    return float(np.linalg.norm(np.diff(points, axis=0), axis=1).sum())


def _emission_times(curve: Curve, ts: np.ndarray, points: np.ndarray, z_step: float, window: int) -> List[float]:
    emitted = [float(ts[0])]
    current = points[0]
    lower_t = float(ts[0])
    i = 1
    total = len(ts)
    while i < total:
        stop = min(total, i + window)
        distances = np.linalg.norm(points[i:stop] - current, axis=1)
        reached = np.nonzero(distances >= z_step)[0]
        if reached.size == 0:
            i = stop
            continue
        j = i + int(reached[0])
        lo = max(lower_t, float(ts[j - 1]))
        hi = float(ts[j])
        for _ in range(_BISECTION_STEPS):
            mid = 0.5 * (lo + hi)
            if float(np.linalg.norm(np.asarray(curve.position(mid)) - current)) < z_step:
                lo = mid
            else:
                hi = mid
        emitted.append(hi)
        current = np.asarray(curve.position(hi), dtype=float)
        lower_t = hi
        i = j if float(ts[j]) > hi else j + 1
    return emitted


def discretize(
    curve: Curve,
    parameters: Parameters,
    config: EngineConfig | None = None,
    source: Any = None,
) -> InstantiatedCurve:
    """
    Sample ``curve`` every ``parameters.z_step`` of chord length.

    Raises ``CurveDiscretizationFailed`` when the interval is empty, when the curve has no
    length, or when it would produce more than ``config.max_curve_points`` samples.
    """

    config = config or load_engine_config()
    z_step = parameters.z_step
    t_min = float(curve.t_min())
    t_max = float(curve.t_max())
    if not (math.isfinite(t_min) and math.isfinite(t_max)):
        raise _fail(DiscretizationFailure.NUMERIC_OVERFLOW, f"bounds [{t_min}, {t_max}]")
    if t_max <= t_min:
        raise _fail(DiscretizationFailure.EMPTY_INTERVAL, f"t_min={t_min} t_max={t_max}")
    if z_step <= 0.0:
        raise _fail(DiscretizationFailure.DEGENERATE_SPEED, f"z_step={z_step}")

    length = estimate_length(curve, t_min, t_max, config.discretization_substeps)
    if length < EPSILON:
        raise _fail(DiscretizationFailure.DEGENERATE_SPEED, f"length={length}")
    target = max(1, int(round(length / z_step)))
    if target > config.max_curve_points:
        raise _fail(DiscretizationFailure.NUMERIC_OVERFLOW, f"{target} points requested")

    coarse = max(2, int(math.ceil((t_max - t_min) * config.discretization_substeps)))
    fine = max(coarse, target * config.fine_sampling_factor)
    ts = np.linspace(t_min, t_max, fine + 1)
    points = np.asarray(curve.position(ts), dtype=float)
    _check_finite(points, "positions")

    times = _emission_times(curve, ts, points, z_step, window=4 * config.fine_sampling_factor + 2)
    positions = np.asarray(curve.position(np.asarray(times)), dtype=float)

    frames = np.empty((len(times), 3, 3))
    frame = _initial_frame(curve, times[0])
    frames[0] = frame
    for k, t in enumerate(times[1:], start=1):
        frame = _propagate_frame(curve, t, frame)
        frames[k] = frame
    _check_finite(frames, "frames")

    curvature = np.array([curve.curvature(t) for t in times])

    nucl_t0 = 0
    if t_min < 0.0:
        nucl_t0 = next((k for k, t in enumerate(times) if t >= 0.0), len(times))

    segment_starts: List[int] = []
    current_segment = None
    for k, t in enumerate(times):
        segment = curve.subdivision_for_t(t)
        if segment is None:
            break
        if segment != current_segment:
            segment_starts.append(k)
            current_segment = segment

    LOGGER.debug(
        "discretize curve=%s length=%.3f target=%s points=%s",
        type(curve).__name__,
        length,
        target,
        len(times),
    )
    return InstantiatedCurve(
        source=source,
        positions=positions,
        frames=frames,
        times=np.asarray(times),
        curvature=curvature,
        nucl_t0=nucl_t0,
        segment_starts=tuple(segment_starts),
        has_own_frame=bool(curve.has_own_frame),
        z_step=z_step,
    )


__all__ = ["InstantiatedCurve", "discretize", "estimate_length"]
