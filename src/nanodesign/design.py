"""The design container: helices, strands, grids and bezier paths held in copy-on-write maps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

import numpy as np

from .bezier_plane import BezierPath, BezierPlane
from .collection import Mutator, SharedMap
from .config import EngineConfig, load_engine_config
from .errors import (
    AdjacentJunctionMismatch,
    CouldNotGetPath,
    CouldNotGetPlane,
    GridCollision,
    HelixDoesNotExist,
    InvariantViolation,
    MalformedDomain,
    StrandDoesNotExist,
)
from .grid.data import GridData
from .grid.model import Grid
from .helices import Helix
from .nucl import Nucl
from .parameters import DEFAULT, Parameters
from .insertions import update_strand_insertions
from .strands import HelixDomain, Insertion, JunctionKind, Strand, sanitize_domains, set_sequence
from .xover_ids import XoverIds, check_xover_ids, reconcile_xover_ids

LOGGER = logging.getLogger(__name__)

_MAP_FIELDS = ("helices", "strands", "free_grids", "bezier_planes", "bezier_paths", "groups")


@dataclass
class Design:
    """
    A design snapshot.

    Every collection is a ``SharedMap`` shared with the snapshots this one was copied from.
    Edits go through ``mutate``, which swaps a new map in and leaves the old one to its other
    holders. Comparing two snapshots is cheap when they share their maps.
    """

    helices: SharedMap[int, Helix] = field(default_factory=SharedMap)
    strands: SharedMap[int, Strand] = field(default_factory=SharedMap)
    free_grids: SharedMap[int, Grid] = field(default_factory=SharedMap)
    bezier_planes: SharedMap[int, BezierPlane] = field(default_factory=SharedMap)
    bezier_paths: SharedMap[int, BezierPath] = field(default_factory=SharedMap)
    parameters: Parameters = DEFAULT
    groups: SharedMap[int, bool] = field(default_factory=SharedMap)
    anchors: FrozenSet[Nucl] = frozenset()
    scaffold_id: Optional[int] = None
    scaffold_sequence: Optional[str] = None
    scaffold_shift: Optional[int] = None
    xover_ids: XoverIds = field(default_factory=XoverIds)
    no_phantoms: FrozenSet[int] = frozenset()
    small_spheres: FrozenSet[int] = frozenset()
    checked_xovers: FrozenSet[int] = frozenset()
    _grid_data: Optional[GridData] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for name in _MAP_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, SharedMap):
                setattr(self, name, SharedMap(value))
        self.anchors = frozenset(self.anchors)
        self.no_phantoms = frozenset(self.no_phantoms)
        self.small_spheres = frozenset(self.small_spheres)
        self.checked_xovers = frozenset(self.checked_xovers)

    def copy(self) -> "Design":
        """A new snapshot sharing every map with self."""
        return replace(self, xover_ids=self.xover_ids.copy())

    def snapshot(self) -> "Design":
        """A frozen view for readers; later edits of self never show through it."""
        return self.copy()

    def mutate(self, name: str) -> Mutator:
        """Write access to one collection, swapped in when the ``with`` block exits cleanly."""
        if name not in _MAP_FIELDS:
            raise AttributeError(f"{name!r} is not a collection of the design")

        def commit(new_map: SharedMap) -> None:
            setattr(self, name, new_map)
            self._grid_data = None

        return getattr(self, name).mutate(commit)

    def set_parameters(self, parameters: Parameters) -> None:
        self.parameters = parameters
        self._grid_data = None

    def grid_data(self) -> GridData:
        if self._grid_data is None:
            self._grid_data = GridData(
                self.free_grids,
                self.helices,
                self.parameters,
                self.bezier_paths,
                self.bezier_planes,
            )
        return self._grid_data

    def get_helix(self, h_id: int) -> Helix:
        helix = self.helices.get(h_id)
        if helix is None:
            raise HelixDoesNotExist(h_id)
        return helix

    def get_strand(self, s_id: int) -> Strand:
        strand = self.strands.get(s_id)
        if strand is None:
            raise StrandDoesNotExist(s_id)
        return strand

    def get_path(self, path_id: int) -> BezierPath:
        path = self.bezier_paths.get(path_id)
        if path is None:
            raise CouldNotGetPath(path_id)
        return path

    def get_plane(self, plane_id: int) -> BezierPlane:
        plane = self.bezier_planes.get(plane_id)
        if plane is None:
            raise CouldNotGetPlane(plane_id)
        return plane

    def get_nucl_position(self, nucl: Nucl) -> Optional[np.ndarray]:
        helix = self.helices.get(nucl.helix)
        if helix is None:
            return None
        return helix.space_pos(self.parameters, nucl.position, nucl.forward, self.grid_data())

    def iter_strand_nucls(self) -> Iterable[Nucl]:
        for s_id in sorted(self.strands):
            yield from self.strands[s_id].iter_nucls()

    def get_pairs_of_close_nucleotides(self, epsilon: float) -> List[Tuple[Nucl, Nucl, np.ndarray]]:
        """Nucleotides of distinct helices closer than ``epsilon``, with their middle point."""
        nucls = []
        positions = []
        for nucl in self.iter_strand_nucls():
            position = self.get_nucl_position(nucl)
            if position is not None:
                nucls.append(nucl)
                positions.append(position)
        ret = []
        if not nucls:
            return ret
        points = np.asarray(positions, dtype=float)
        helices = np.array([n.helix for n in nucls])
        for i in range(len(nucls) - 1):
            distances = np.linalg.norm(points[i + 1 :] - points[i], axis=1)
            close = np.nonzero((distances < epsilon) & (helices[i + 1 :] != helices[i]))[0]
            for j in close + i + 1:
                ret.append((nucls[i], nucls[j], (points[i] + points[j]) / 2.0))
        return ret

    def scaffold(self) -> Optional[Strand]:
        if self.scaffold_id is None:
            return None
        return self.strands.get(self.scaffold_id)

    def sequence_map(self) -> Dict[Nucl, str]:
        """Base of every nucleotide bound by the scaffold sequence."""
        if self.scaffold_id is None or not self.scaffold_sequence:
            return {}
        return set_sequence(self.strands, self.scaffold_id, self.scaffold_sequence, self.scaffold_shift or 0)

    def helices_on_grid(self, grid_id) -> List[int]:
        return sorted(self.grid_data().get_helices_on_grid(grid_id))

    def reconcile_strands(self) -> None:
        """Recompute the junctions of every strand and the cross-over ids they refer to."""
        reconciled = reconcile_xover_ids(self.strands, self.xover_ids)
        changed = {s_id: s for s_id, s in reconciled.items() if s is not self.strands[s_id]}
        if changed:
            with self.mutate("strands") as strands:
                strands.update(changed)
        self.checked_xovers = frozenset(x for x in self.checked_xovers if self.xover_ids.get_pair(x) is not None)

    def update_curves(self, config: Optional[EngineConfig] = None) -> bool:
        """
        Place pinned helices on their grids and refresh the instantiated curves. Helices whose
        curve carries its own frame take their origin and orientation from it. Returns True
        when a helix or an insertion changed.
        """
        config = config or load_engine_config()
        data = self.grid_data()
        updated: Dict[int, Helix] = {}
        for h_id, helix in self.helices.items():
            new = helix
            gp = helix.grid_position
            if gp is not None and gp.grid in data.grids:
                new = new.placed_on_grid(data.grids[gp.grid], self.parameters, config.twist_length)
            new.instantiated_curve(self.parameters, data, config)
            new = new.with_derived_placement(self.parameters, data)
            if new is not helix:
                updated[h_id] = new
        if updated:
            LOGGER.debug("update_curves moved %s helices", len(updated))
            with self.mutate("helices") as helices:
                helices.update(updated)
        return self.update_insertions() or bool(updated)

    def update_insertions(self) -> bool:
        """Recompute the positions of insertions whose flanking nucleotides moved."""
        data = self.grid_data()
        changed: Dict[int, Strand] = {}
        for s_id, strand in self.strands.items():
            if not any(isinstance(d, Insertion) for d in strand.domains):
                continue
            new = update_strand_insertions(strand, self.helices, self.parameters, data)
            if new is not strand:
                changed[s_id] = new
        if not changed:
            return False
        with self.mutate("strands") as strands:
            strands.update(changed)
        return True

    def next_strand_id(self) -> int:
        return self.strands.next_id

    def summary(self) -> Dict[str, Any]:
        scaffold = self.scaffold()
        return {
            "helices": len(self.helices),
            "strands": len(self.strands),
            "free_grids": len(self.free_grids),
            "bezier_planes": len(self.bezier_planes),
            "bezier_paths": len(self.bezier_paths),
            "xovers": len(self.xover_ids),
            "anchors": len(self.anchors),
            "scaffold_id": self.scaffold_id,
            "scaffold_length": None if scaffold is None else scaffold.length(),
            "scaffold_sequence_length": None if self.scaffold_sequence is None else len(self.scaffold_sequence),
        }


def validate_design(design: Design) -> List[str]:
    """Every invariant violation of ``design``, as messages; empty when the design is sound."""
    problems = []
    for check in (_check_adjacent, _check_xover_ids, _check_grid_positions, _check_domains):
        try:
            check(design)
        except InvariantViolation as exc:
            problems.append(f"{type(exc).__name__}: {exc}")
    return problems


def assert_invariants(design: Design) -> None:
    """Raise the first invariant violation found in ``design``."""
    _check_domains(design)
    _check_adjacent(design)
    _check_xover_ids(design)
    _check_grid_positions(design)


def _check_adjacent(design: Design) -> None:
    for s_id, strand in design.strands.items():
        for k, junction in enumerate(strand.junctions):
            if junction.kind is not JunctionKind.ADJACENT:
                continue
            pair = strand.junction_pair(k)
            if pair is not None and not pair[0].is_neighbour(pair[1]):
                raise AdjacentJunctionMismatch(f"strand {s_id} junction {k} joins {pair[0]} and {pair[1]}")


def _check_xover_ids(design: Design) -> None:
    check_xover_ids(design.strands, design.xover_ids)


def _check_grid_positions(design: Design) -> None:
    seen: Dict[Any, int] = {}
    for h_id in sorted(design.helices):
        gp = design.helices[h_id].grid_position
        if gp is None:
            continue
        light = gp.light()
        if light in seen:
            raise GridCollision(f"helices {seen[light]} and {h_id} are both at {light}")
        seen[light] = h_id


def _check_domains(design: Design) -> None:
    for s_id, strand in design.strands.items():
        for domain in strand.domains:
            if isinstance(domain, HelixDomain) and domain.start > domain.end:
                raise MalformedDomain(f"strand {s_id} has domain {domain}")
        if sanitize_domains(strand.domains, strand.cyclic) != sanitize_domains(
            sanitize_domains(strand.domains, strand.cyclic), strand.cyclic
        ):
            raise MalformedDomain(f"sanitizing strand {s_id} is not idempotent")


__all__ = ["Design", "validate_design", "assert_invariants"]
