"""Fill in the missing tangents of a piecewise bezier curve."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from ..errors import InsufficientVertices
from ..linalg import Vec3
from .bezier import BezierEndCoordinates

DEFAULT_TANGENT_NORM = 1.0 / 3.0

LOGGER = logging.getLogger(__name__)


def _coords(vector: np.ndarray) -> tuple:
    return tuple(float(c) for c in vector)


def _pick(vectors: Optional[Sequence[Optional[Vec3]]], index: int) -> Optional[np.ndarray]:
    if vectors is None or index >= len(vectors) or vectors[index] is None:
        return None
    return np.asarray(vectors[index], dtype=float)


def _end(position: np.ndarray, vector_in: np.ndarray, vector_out: np.ndarray) -> BezierEndCoordinates:
    return BezierEndCoordinates(_coords(position), _coords(vector_in), _coords(vector_out))


def instantiate_bezier_ends(
    positions: Sequence[Vec3],
    vectors_in: Optional[Sequence[Optional[Vec3]]] = None,
    vectors_out: Optional[Sequence[Optional[Vec3]]] = None,
    cyclic: bool = False,
) -> List[BezierEndCoordinates]:
    """
    Build the ends of a piecewise bezier curve from its vertices.

    Explicit tangents are kept as given. Missing tangents of a vertex default to a third of
    the vector joining its two neighbours. The endpoints of an open path mirror the inward
    control point of their neighbour.

    Raises ``InsufficientVertices`` when ``positions`` is empty.
    """

    points = [np.asarray(p, dtype=float) for p in positions]
    n = len(points)
    if n == 0:
        raise InsufficientVertices()
    LOGGER.debug("instantiate_bezier_ends n=%s cyclic=%s", n, cyclic)

    if n == 1:
        nan = np.full(points[0].shape, np.nan)
        vin = _pick(vectors_in, 0)
        vout = _pick(vectors_out, 0)
        return [_end(points[0], nan if vin is None else vin, nan if vout is None else vout)]

    if n == 2:
        default = (points[1] - points[0]) * DEFAULT_TANGENT_NORM
        ends = []
        for i in range(2):
            vin = _pick(vectors_in, i)
            vout = _pick(vectors_out, i)
            ends.append(_end(points[i], default if vin is None else vin, default if vout is None else vout))
        return ends

    if cyclic:
        triples = [((i - 1) % n, i, (i + 1) % n) for i in range(n)]
    else:
        triples = [(i - 1, i, i + 1) for i in range(1, n - 1)]

    ends = []
    for prev, idx, nxt in triples:
        default = (points[nxt] - points[prev]) * DEFAULT_TANGENT_NORM
        vin = _pick(vectors_in, idx)
        vout = _pick(vectors_out, idx)
        ends.append(_end(points[idx], default if vin is None else vin, default if vout is None else vout))

    if cyclic:
        return ends

    second = ends[0]
    control = second.control_in()
    default_first = (control - points[0]) / 2.0
    vin = _pick(vectors_in, 0)
    vout = _pick(vectors_out, 0)
    first = _end(points[0], default_first if vin is None else vin, default_first if vout is None else vout)

    second_to_last = ends[-1]
    control = second_to_last.control_out()
    default_last = (points[-1] - control) / 2.0
    vin = _pick(vectors_in, n - 1)
    vout = _pick(vectors_out, n - 1)
    last = _end(points[-1], default_last if vin is None else vin, default_last if vout is None else vout)

    return [first, *ends, last]


__all__ = ["instantiate_bezier_ends", "DEFAULT_TANGENT_NORM"]
