"""3D positions of the unpaired nucleotides of insertions."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Tuple

import numpy as np

from .linalg import as_vec3
from .parameters import Parameters
from .strands import Insertion, Strand

LOGGER = logging.getLogger(__name__)

EPSILON_ENDS = 0.05
NB_STEP = 1000
DT_STEP = 1e-2
K_SPRING = 1.0
FRICTION = 0.1
MASS_NUCL = 1.0
SEED = 0


@dataclass(frozen=True)
class InsertionEnd:
    position: np.ndarray
    up_vec: np.ndarray


@dataclass(frozen=True)
class CircleArc:
    center: np.ndarray
    up: np.ndarray
    right: np.ndarray
    radius: float
    start_angle: float
    bigger_than_half_circle: bool

    def position(self, t):
        t = np.asarray(t, dtype=float)[..., None]
        if self.bigger_than_half_circle:
            angle = (math.pi - self.start_angle) * (1.0 - t) + t * (self.start_angle - math.pi)
        else:
            angle = self.start_angle * (1.0 - t) - t * self.start_angle
        return self.center + self.radius * (self.up * np.cos(angle) - self.right * np.sin(angle))


def chord_length(d: float, h: float, increasing: bool, nb_nucl: int) -> float:
    """Chord between consecutive points when ``nb_nucl`` points split the arc through both ends."""
    r = math.hypot(d, h)
    half = math.atan2(d, h)
    total = 2.0 * math.pi - 2.0 * half if increasing else 2.0 * half
    return 2.0 * r * math.sin(total / (nb_nucl + 1) / 2.0)


def circle_arc(prime5: InsertionEnd, prime3: InsertionEnd, nb_nucl: int, parameters: Parameters) -> Optional[CircleArc]:
    """
    The arc from ``prime5`` to ``prime3`` on which ``nb_nucl`` points are one ``dist_ac`` apart.

    The arc bulges towards the mean of the two up vectors. None when that direction is
    undefined or the insertion is too short to leave the straight line.
    """
    mean_up = (prime5.up_vec + prime3.up_vec) / 2.0
    edge = prime3.position - prime5.position
    edge_len = float(np.linalg.norm(edge))
    if np.linalg.norm(mean_up) < 1e-3 or edge_len < 1e-6:
        return None
    mean_up = mean_up / np.linalg.norm(mean_up)
    right = edge / edge_len
    bisector = mean_up - right * float(mean_up @ right)
    if np.linalg.norm(bisector) < 1e-6:
        return None
    bisector = bisector / np.linalg.norm(bisector)

    dist_ac = parameters.dist_ac()
    objective = dist_ac * nb_nucl
    if objective < edge_len:
        return None
    d = edge_len / 2.0
    increasing = objective > math.pi * edge_len
    if increasing:
        a, b = 0.0, 2.0 * math.sqrt((2.0 * objective) ** 2 - d ** 2)
    else:
        a, b = 0.0, 10.0 * d
        if chord_length(d, b, False, nb_nucl) > dist_ac:
            return None
    c = (a + b) / 2.0
    while b - a > 1e-3:
        if (chord_length(d, c, increasing, nb_nucl) > dist_ac) == increasing:
            b = c
        else:
            a = c
        c = (a + b) / 2.0

    origin = (prime5.position + prime3.position) / 2.0
    center = origin + bisector * c if increasing else origin - bisector * c
    return CircleArc(
        center=center,
        up=bisector,
        right=right,
        radius=float(np.linalg.norm(center - prime5.position)),
        start_angle=math.atan2(d, c),
        bigger_than_half_circle=increasing,
    )


def instantiate_insertion(
    prime5: InsertionEnd, prime3: InsertionEnd, nb_nucl: int, parameters: Parameters
) -> np.ndarray:
    """
    Positions of the ``nb_nucl`` nucleotides of an insertion, of shape (nb_nucl, 3).

    They start on a circle arc (or the straight segment) between the two ends, slightly
    jittered, and relax as a chain of damped springs whose rest length is ``dist_ac``.
    """
    rng = np.random.default_rng(SEED)
    dist_ac = parameters.dist_ac()
    t = np.arange(1, nb_nucl + 1, dtype=float) / (nb_nucl + 1)
    noise = rng.standard_normal((nb_nucl, 3)) * dist_ac / math.sqrt(3.0) / 10.0
    arc = circle_arc(prime5, prime3, nb_nucl, parameters)
    if arc is not None:
        points = arc.position(t) + noise
    else:
        points = prime3.position * t[:, None] + prime5.position * (1.0 - t[:, None]) + noise

    speed = np.zeros_like(points)
    for _ in range(NB_STEP):
        chain = np.vstack((prime5.position, points, prime3.position))
        segments = chain[1:] - chain[:-1]
        lengths = np.linalg.norm(segments, axis=1)
        tension = K_SPRING * segments * (lengths - dist_ac)[:, None]
        forces = tension[1:] - tension[:-1] - speed * FRICTION / MASS_NUCL
        speed += DT_STEP * forces / MASS_NUCL
        points += speed * DT_STEP
    return points


def _is_up_to_date(insertion: Insertion, ends: Tuple[np.ndarray, np.ndarray]) -> bool:
    if insertion.instantiation is None or insertion.ends is None:
        return False
    if len(insertion.instantiation) != insertion.nb_nucl:
        return False
    return all(
        np.linalg.norm(np.asarray(old, dtype=float) - new) < EPSILON_ENDS for old, new in zip(insertion.ends, ends)
    )


def update_strand_insertions(strand: Strand, helices: Mapping, parameters: Parameters, grid_reader=None) -> Strand:
    """Recompute the insertions of ``strand`` whose flanking nucleotides moved; returns ``strand`` if none did."""
    domains = list(strand.domains)
    indices = [k for k, d in enumerate(domains) if isinstance(d, Insertion)]
    changed = False
    for k, (before, after, nb_nucl) in zip(indices, strand.insertion_points()):
        if before is None or after is None:
            LOGGER.warning("Insertion %s of a strand is not flanked by two helix domains", k)
            continue
        ends = []
        for nucl in (before, after):
            helix = helices.get(nucl.helix)
            if helix is None:
                break
            position = helix.space_pos(parameters, nucl.position, nucl.forward, grid_reader)
            up_vec = position - helix.axis_position(parameters, nucl.position, grid_reader)
            ends.append(InsertionEnd(position, up_vec))
        if len(ends) != 2:
            LOGGER.warning("Could not get the space position of the ends of insertion %s", k)
            continue
        insertion = domains[k]
        if _is_up_to_date(insertion, (ends[0].position, ends[1].position)):
            continue
        points = instantiate_insertion(ends[0], ends[1], nb_nucl, parameters)
        domains[k] = replace(
            insertion,
            instantiation=tuple(as_vec3(p) for p in points),
            ends=(as_vec3(ends[0].position), as_vec3(ends[1].position)),
        )
        changed = True
    if not changed:
        return strand
    LOGGER.debug("refreshed %s insertions of a strand", len(indices))
    return replace(strand, domains=tuple(domains))


__all__ = [
    "InsertionEnd",
    "CircleArc",
    "chord_length",
    "circle_arc",
    "instantiate_insertion",
    "update_strand_insertions",
]
