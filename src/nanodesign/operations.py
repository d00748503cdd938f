"""
Operations on designs.

Every operation takes a design and returns a new one; the input is never modified. An
operation that fails raises an ``OperationError`` and leaves nothing behind.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union

from .bezier_plane import BezierPath, BezierPlane, BezierVertex
from .config import EngineConfig, load_engine_config
from .curves.descriptor import PiecewiseBezierDescriptor
from .design import Design, assert_invariants
from .errors import (
    CouldNotGetPlane,
    GridDoesNotExist,
    GridIsNotEmpty,
    GridPositionAlreadyUsed,
    HelixCollisionDuringTranslation,
    HelixIsNotPiecewiseBezier,
    HelixNotEmpty,
    InsufficientBezierPoints,
    NuclNotOnStrand,
    OperationError,
)
from .grid.hyperboloid import Hyperboloid
from .grid.inference import find_grid_for_group
from .grid.model import Grid, GridType, with_twist
from .grid.positions import FreeGridId, GridId, GridPosition, HelixGridPosition, as_grid_id
from .helices import Helix
from .linalg import Rotor, Vec2, Vec3, as_vec3
from .nucl import Nucl
from .parameters import Parameters
from .strands import HelixDomain, Strand, get_strand_nucl, infer_junctions, uses_helix

LOGGER = logging.getLogger(__name__)

GridRef = Union[GridId, int]


def _finish(design: Design, config: Optional[EngineConfig]) -> Design:
    config = config or load_engine_config()
    design.reconcile_strands()
    design.update_curves(config)
    if config.strict_invariants:
        assert_invariants(design)
    return design


def _free_grid(design: Design, grid_id: int) -> Grid:
    grid = design.free_grids.get(grid_id)
    if grid is None:
        raise GridDoesNotExist(FreeGridId(grid_id))
    return grid


# helices and grids


def add_helix(design: Design, helix: Helix, config: Optional[EngineConfig] = None) -> Tuple[Design, int]:
    new = design.copy()
    with new.mutate("helices") as helices:
        h_id = helices.push(helix)
    LOGGER.debug("add_helix id=%s", h_id)
    return _finish(new, config), h_id


def rm_helices(design: Design, helix_ids: Iterable[int], config: Optional[EngineConfig] = None) -> Design:
    """Remove helices that no strand goes through."""
    helix_ids = sorted(set(helix_ids))
    new = design.copy()
    for h_id in helix_ids:
        new.get_helix(h_id)
        if uses_helix(new.strands, h_id):
            raise HelixNotEmpty(h_id)
    with new.mutate("helices") as helices:
        for h_id in helix_ids:
            del helices[h_id]
    new.no_phantoms = new.no_phantoms - set(helix_ids)
    new.small_spheres = new.small_spheres - set(helix_ids)
    return _finish(new, config)


def set_helix_roll(design: Design, helix_id: int, roll: float, config: Optional[EngineConfig] = None) -> Design:
    """Set the roll of a helix and of the helices it supports."""
    new = design.copy()
    new.get_helix(helix_id)
    with new.mutate("helices") as helices:
        for h_id, helix in list(helices.items()):
            if h_id == helix_id or helix.support_helix == helix_id:
                helices[h_id] = helix.with_roll(roll)
    return _finish(new, config)


def add_grid(
    design: Design,
    grid: Grid,
    with_helices: bool = False,
    config: Optional[EngineConfig] = None,
) -> Tuple[Design, int]:
    """Add a free grid. ``with_helices`` fills a hyperboloid grid with its ring of helices."""
    new = design.copy()
    with new.mutate("free_grids") as grids:
        g_id = grids.push(grid)
    if with_helices and isinstance(grid.grid_type, Hyperboloid):
        with new.mutate("helices") as helices:
            for i in range(grid.grid_type.radius):
                helices.push(Helix(grid_position=HelixGridPosition(FreeGridId(g_id), i, 0)))
    LOGGER.debug("add_grid id=%s type=%s", g_id, grid.grid_type.tag)
    return _finish(new, config), g_id


def rm_grid(design: Design, grid_id: int, config: Optional[EngineConfig] = None) -> Design:
    _free_grid(design, grid_id)
    pinned = design.helices_on_grid(FreeGridId(grid_id))
    if pinned:
        raise GridIsNotEmpty(FreeGridId(grid_id), pinned)
    new = design.copy()
    with new.mutate("free_grids") as grids:
        del grids[grid_id]
    return _finish(new, config)


def set_grid_twist(
    design: Design, grid_id: int, twist: Optional[float], config: Optional[EngineConfig] = None
) -> Design:
    """Twist a square or honeycomb grid; its helices follow twist curves."""
    grid = _free_grid(design, grid_id)
    new = design.copy()
    with new.mutate("free_grids") as grids:
        grids[grid_id] = grid.with_grid_type(with_twist(grid.grid_type, twist))
    return _finish(new, config)


def attach_helix_to_grid(
    design: Design,
    helix_id: int,
    grid_id: GridRef,
    x: int,
    y: int,
    config: Optional[EngineConfig] = None,
) -> Design:
    """Pin a helix at ``(x, y)``; a helix already pinned keeps its axis offset and roll."""
    grid_id = as_grid_id(grid_id)
    new = design.copy()
    helix = new.get_helix(helix_id)
    data = new.grid_data()
    data.get_grid(grid_id)
    position = GridPosition(grid_id, x, y)
    occupant = data.helix_at(position)
    if occupant is not None and occupant != helix_id:
        raise GridPositionAlreadyUsed(position, occupant)
    old = helix.grid_position
    grid_position = old.moved_to(grid_id, x, y) if old is not None else HelixGridPosition(grid_id, x, y)
    with new.mutate("helices") as helices:
        helices[helix_id] = helix.with_grid_position(grid_position)
    LOGGER.debug("attach_helix_to_grid helix=%s position=%s", helix_id, position)
    return _finish(new, config)


def detach_helix(design: Design, helix_id: int, config: Optional[EngineConfig] = None) -> Design:
    new = design.copy()
    helix = new.get_helix(helix_id)
    if helix.grid_position is None:
        return new
    with new.mutate("helices") as helices:
        helices[helix_id] = helix.with_grid_position(None)
    return _finish(new, config)


def attach_bezier_vertex_to_grid(
    design: Design,
    helix_id: int,
    vertex: int,
    grid_id: GridRef,
    x: int,
    y: int,
    config: Optional[EngineConfig] = None,
) -> Design:
    """Move vertex ``vertex`` of the grid-bound piecewise bezier followed by a helix."""
    grid_id = as_grid_id(grid_id)
    new = design.copy()
    helix = new.get_helix(helix_id)
    curve = helix.curve
    if not isinstance(curve, PiecewiseBezierDescriptor):
        raise HelixIsNotPiecewiseBezier(helix_id)
    if not 0 <= vertex < len(curve.points):
        raise InsufficientBezierPoints(vertex, len(curve.points))
    data = new.grid_data()
    data.get_grid(grid_id)
    position = GridPosition(grid_id, x, y)
    occupant = data.helix_at(position)
    if occupant is not None and occupant != helix_id:
        raise GridPositionAlreadyUsed(position, occupant)
    points = list(curve.points)
    points[vertex] = replace(points[vertex], position=position)
    with new.mutate("helices") as helices:
        helices[helix_id] = helix.with_curve(replace(curve, points=tuple(points)))
    return _finish(new, config)


def _snap(design: Design, moved: Dict[int, Helix]) -> Dict[int, Helix]:
    """Pin moved helices to the nearest position of their grid, keeping their roll."""
    data = design.grid_data()
    parameters = design.parameters
    taken: Dict[GridPosition, int] = {}
    for h_id in sorted(moved):
        helix = moved[h_id]
        old = helix.grid_position
        if old is None or old.grid not in data.grids:
            continue
        candidate = data.grids[old.grid].find_helix_position(parameters, helix, old.grid)
        if candidate is None:
            LOGGER.debug("helix %s cannot be snapped to %s", h_id, old.grid)
            continue
        candidate = candidate.with_roll(old.roll)
        light = candidate.light()
        occupant = data.helix_at(light)
        if occupant is not None and occupant not in moved:
            raise HelixCollisionDuringTranslation(h_id, occupant)
        if light in taken:
            raise HelixCollisionDuringTranslation(h_id, taken[light])
        taken[light] = h_id
        moved[h_id] = helix.with_grid_position(candidate)
    return moved


def _detach(moved: Dict[int, Helix]) -> Dict[int, Helix]:
    return {h_id: h if h.grid_position is None else h.with_grid_position(None) for h_id, h in moved.items()}


def translate_helices(
    design: Design,
    helix_ids: Iterable[int],
    translation: Sequence[float],
    snap: bool = False,
    config: Optional[EngineConfig] = None,
) -> Design:
    """
    Translate helices. With ``snap`` pinned helices move to the nearest position of their
    grid; without it they leave their grid.
    """
    new = design.copy()
    moved = {h_id: new.get_helix(h_id).translated(translation) for h_id in helix_ids}
    moved = _snap(new, moved) if snap else _detach(moved)
    with new.mutate("helices") as helices:
        helices.update(moved)
    return _finish(new, config)


def rotate_helices(
    design: Design,
    helix_ids: Iterable[int],
    rotation: Rotor,
    origin: Sequence[float],
    snap: bool = False,
    config: Optional[EngineConfig] = None,
) -> Design:
    """Rotate helices around ``origin``; ``snap`` as for ``translate_helices``."""
    new = design.copy()
    moved = {h_id: new.get_helix(h_id).rotated_around(rotation, origin) for h_id in helix_ids}
    moved = _snap(new, moved) if snap else _detach(moved)
    with new.mutate("helices") as helices:
        helices.update(moved)
    return _finish(new, config)


def make_grid_from_helices(
    design: Design, helix_ids: Sequence[int], config: Optional[EngineConfig] = None
) -> Tuple[Design, int]:
    """Infer a grid fitting the helices, add it and pin them to it. The first helix leads."""
    config = config or load_engine_config()
    new = design.copy()
    helices = [new.get_helix(h_id) for h_id in helix_ids]
    grid = find_grid_for_group(helices, new.parameters, config)
    with new.mutate("free_grids") as grids:
        g_id = grids.push(grid)
    grid_id = FreeGridId(g_id)
    taken: Dict[GridPosition, int] = {}
    pinned: Dict[int, Helix] = {}
    for h_id, helix in zip(helix_ids, helices):
        position = grid.find_helix_position(new.parameters, helix, grid_id)
        if position is None:
            LOGGER.warning("helix %s does not cross the new grid; left unpinned", h_id)
            continue
        if position.light() in taken:
            LOGGER.warning(
                "helix %s lands on %s with helix %s; left unpinned", h_id, position.light(), taken[position.light()]
            )
            continue
        taken[position.light()] = h_id
        pinned[h_id] = helix.with_grid_position(position)
    with new.mutate("helices") as helices_map:
        helices_map.update(pinned)
    LOGGER.debug("make_grid_from_helices grid=%s pinned=%s", g_id, len(pinned))
    return _finish(new, config), g_id


def copy_grid(
    design: Design,
    grid_id: int,
    position: Vec3,
    orientation: Rotor,
    config: Optional[EngineConfig] = None,
) -> Tuple[Design, int]:
    """Duplicate a grid with its helices and the strands lying only on them."""
    source = _free_grid(design, grid_id)
    new = design.copy()
    with new.mutate("free_grids") as grids:
        new_gid = grids.push(Grid(as_vec3(position), orientation, source.grid_type))
    on_grid = new.helices_on_grid(FreeGridId(grid_id))
    helix_map: Dict[int, int] = {}
    with new.mutate("helices") as helices:
        for h_id in on_grid:
            old = helices[h_id]
            gp = old.grid_position
            copy = Helix(grid_position=gp.moved_to(FreeGridId(new_gid), gp.x, gp.y), roll=old.roll)
            helix_map[h_id] = helices.push(copy)
    with new.mutate("strands") as strands:
        for s_id, strand in list(strands.items()):
            helix_domains = list(strand.helix_domains())
            if not helix_domains or any(d.helix not in helix_map for d in helix_domains):
                continue
            domains = tuple(
                replace(d, helix=helix_map[d.helix]) if isinstance(d, HelixDomain) else d for d in strand.domains
            )
            strands.push(replace(strand, domains=domains, junctions=infer_junctions(domains, strand.cyclic), name=None))
    LOGGER.debug("copy_grid %s -> %s helices=%s", grid_id, new_gid, len(helix_map))
    return _finish(new, config), new_gid


def set_parameters(design: Design, parameters: Parameters, config: Optional[EngineConfig] = None) -> Design:
    new = design.copy()
    new.set_parameters(parameters)
    return _finish(new, config)


# strands


def add_strand(design: Design, strand: Strand, config: Optional[EngineConfig] = None) -> Tuple[Design, int]:
    new = design.copy()
    with new.mutate("strands") as strands:
        s_id = strands.push(strand.sanitized())
    LOGGER.debug("add_strand id=%s domains=%s", s_id, len(strand.domains))
    return _finish(new, config), s_id


def rm_strand(design: Design, strand_id: int, config: Optional[EngineConfig] = None) -> Design:
    new = design.copy()
    new.get_strand(strand_id)
    with new.mutate("strands") as strands:
        del strands[strand_id]
    if strand_id in new.groups:
        with new.mutate("groups") as groups:
            del groups[strand_id]
    if new.scaffold_id == strand_id:
        new.scaffold_id = None
    return _finish(new, config)


def set_scaffold(design: Design, strand_id: Optional[int], config: Optional[EngineConfig] = None) -> Design:
    new = design.copy()
    if strand_id is not None:
        new.get_strand(strand_id)
    new.scaffold_id = strand_id
    return _finish(new, config)


def set_scaffold_sequence(
    design: Design, sequence: Optional[str], shift: int = 0, config: Optional[EngineConfig] = None
) -> Design:
    new = design.copy()
    new.scaffold_sequence = sequence
    new.scaffold_shift = shift
    return _finish(new, config)


def set_group(design: Design, strand_id: int, group: Optional[bool], config: Optional[EngineConfig] = None) -> Design:
    """Put a strand in a cross-over group; None takes it out."""
    new = design.copy()
    new.get_strand(strand_id)
    with new.mutate("groups") as groups:
        if group is None:
            groups.pop(strand_id, None)
        else:
            groups[strand_id] = group
    return _finish(new, config)


def add_anchor(design: Design, nucl: Nucl, config: Optional[EngineConfig] = None) -> Design:
    new = design.copy()
    new.anchors = new.anchors | {nucl}
    return _finish(new, config)


def remove_anchor(design: Design, nucl: Nucl, config: Optional[EngineConfig] = None) -> Design:
    new = design.copy()
    new.anchors = new.anchors - {nucl}
    return _finish(new, config)


def _find_strand(design: Design, nucl: Nucl) -> int:
    s_id = get_strand_nucl(design.strands, nucl)
    if s_id is None:
        raise NuclNotOnStrand(nucl)
    return s_id


def _merge(prime5: Strand, prime3: Strand) -> Strand:
    try:
        return prime5.merge(prime3)
    except ValueError as exc:
        raise OperationError(str(exc)) from exc


def _make_cyclic(strand: Strand) -> Strand:
    return replace(strand, cyclic=True).sanitized(dict(strand.identified_xovers()))


def _predecessor(strand: Strand, nucl: Nucl) -> Optional[Nucl]:
    """The nucleotide before ``nucl`` along the strand; wraps on cyclic strands."""
    previous = None
    for current in strand.iter_nucls():
        if current == nucl:
            break
        previous = current
    if previous is None and strand.cyclic:
        nucls = list(strand.iter_nucls())
        return nucls[-1] if len(nucls) > 1 else None
    return previous


def split_strand(design: Design, nucl: Nucl, config: Optional[EngineConfig] = None) -> Tuple[Design, Optional[int]]:
    """
    Cut the strand going through ``nucl`` after it. Returns the id of the 3' part, which is
    None when the strand was cyclic (it is opened in place) or when ``nucl`` was its 3' end.
    """
    new = design.copy()
    s_id = _find_strand(new, nucl)
    left, right = new.strands[s_id].split_at(nucl)
    new_id = None
    with new.mutate("strands") as strands:
        strands[s_id] = left
        if right is not None:
            new_id = strands.push(right)
    return _finish(new, config), new_id


def merge_strands(design: Design, prime5_id: int, prime3_id: int, config: Optional[EngineConfig] = None) -> Design:
    """Join the 3' end of ``prime5_id`` to the 5' end of ``prime3_id``; the same id twice closes a cycle."""
    new = design.copy()
    prime5 = new.get_strand(prime5_id)
    prime3 = new.get_strand(prime3_id)
    with new.mutate("strands") as strands:
        if prime5_id == prime3_id:
            if prime5.cyclic:
                raise OperationError(f"Strand {prime5_id} is already cyclic")
            strands[prime5_id] = _make_cyclic(prime5)
        else:
            strands[prime5_id] = _merge(prime5, prime3)
            del strands[prime3_id]
    if new.scaffold_id == prime3_id:
        new.scaffold_id = prime5_id
    return _finish(new, config)


def cross_cut(
    design: Design,
    source_id: int,
    target_id: int,
    nucl: Nucl,
    target_3prime: bool,
    config: Optional[EngineConfig] = None,
) -> Design:
    """
    Cut the target strand at ``nucl`` and make a cross-over from the source strand to the part
    holding ``nucl``.

    With ``target_3prime`` the 3' end of the source joins ``nucl``, which starts the 3' part
    of the target. Otherwise ``nucl``, ending the 5' part of the target, joins the 5' end of
    the source. The merged strand keeps the source id; the rest of the target keeps the
    target id.
    """
    new = design.copy()
    source = new.get_strand(source_id)
    target = new.get_strand(target_id)
    if not target.has_nucl(nucl):
        raise NuclNotOnStrand(nucl)
    if source.cyclic:
        raise OperationError(f"Strand {source_id} is cyclic and has no free end")
    cut = _predecessor(target, nucl) if target_3prime else nucl
    if cut is None and target.cyclic:
        left, right = replace(target, cyclic=False).sanitized(dict(target.identified_xovers())), None
    elif cut is None:
        left, right = None, target
    else:
        left, right = target.split_at(cut)

    with new.mutate("strands") as strands:
        if source_id == target_id:
            cycle, rest = (right, left) if target_3prime else (left, right)
            strands[source_id] = _make_cyclic(cycle)
            if rest is not None:
                strands.push(rest)
        elif target.cyclic:
            strands[source_id] = _merge(source, left) if target_3prime else _merge(left, source)
            del strands[target_id]
        else:
            if target_3prime:
                strands[source_id] = _merge(source, right)
                rest = left
            else:
                strands[source_id] = _merge(left, source)
                rest = right
            if rest is None:
                del strands[target_id]
            else:
                strands[target_id] = rest
    if new.scaffold_id == target_id and target_id not in new.strands:
        new.scaffold_id = source_id
    LOGGER.debug("cross_cut source=%s target=%s nucl=%s target_3prime=%s", source_id, target_id, nucl, target_3prime)
    return _finish(new, config)


# bezier planes and paths


def add_bezier_plane(design: Design, plane: BezierPlane, config: Optional[EngineConfig] = None) -> Tuple[Design, int]:
    new = design.copy()
    with new.mutate("bezier_planes") as planes:
        plane_id = planes.push(plane)
    return _finish(new, config), plane_id


def _check_planes(design: Design, vertices: Iterable[BezierVertex]) -> None:
    for vertex in vertices:
        if vertex.plane_id not in design.bezier_planes:
            raise CouldNotGetPlane(vertex.plane_id)


def create_bezier_path(
    design: Design,
    vertices: Sequence[BezierVertex] = (),
    cyclic: bool = False,
    grid_type: Optional[GridType] = None,
    config: Optional[EngineConfig] = None,
) -> Tuple[Design, int]:
    _check_planes(design, vertices)
    new = design.copy()
    with new.mutate("bezier_paths") as paths:
        path_id = paths.push(BezierPath(tuple(vertices), cyclic, grid_type))
    return _finish(new, config), path_id


def add_bezier_vertex(
    design: Design, path_id: int, vertex: BezierVertex, config: Optional[EngineConfig] = None
) -> Tuple[Design, int]:
    path = design.get_path(path_id)
    _check_planes(design, [vertex])
    new = design.copy()
    path, vertex_id = path.add_vertex(vertex)
    with new.mutate("bezier_paths") as paths:
        paths[path_id] = path
    return _finish(new, config), vertex_id


def move_bezier_vertex(
    design: Design, path_id: int, vertex_id: int, position: Vec2, config: Optional[EngineConfig] = None
) -> Design:
    path = design.get_path(path_id).set_vertex_position(vertex_id, position)
    new = design.copy()
    with new.mutate("bezier_paths") as paths:
        paths[path_id] = path
    return _finish(new, config)


def set_bezier_path_grid_type(
    design: Design, path_id: int, grid_type: Optional[GridType], config: Optional[EngineConfig] = None
) -> Design:
    """Materialize one grid per vertex of the path, or none when ``grid_type`` is None."""
    path = design.get_path(path_id)
    if grid_type is None:
        for h_id, helix in design.helices.items():
            gp = helix.grid_position
            if gp is not None and getattr(gp.grid, "path_id", None) == path_id:
                raise GridIsNotEmpty(gp.grid, [h_id])
    new = design.copy()
    with new.mutate("bezier_paths") as paths:
        paths[path_id] = path.set_grid_type(grid_type)
    return _finish(new, config)


__all__ = [
    "add_helix",
    "rm_helices",
    "set_helix_roll",
    "add_grid",
    "rm_grid",
    "set_grid_twist",
    "attach_helix_to_grid",
    "detach_helix",
    "attach_bezier_vertex_to_grid",
    "translate_helices",
    "rotate_helices",
    "make_grid_from_helices",
    "copy_grid",
    "set_parameters",
    "add_strand",
    "rm_strand",
    "set_scaffold",
    "set_scaffold_sequence",
    "set_group",
    "add_anchor",
    "remove_anchor",
    "split_strand",
    "merge_strands",
    "cross_cut",
    "add_bezier_plane",
    "create_bezier_path",
    "add_bezier_vertex",
    "move_bezier_vertex",
    "set_bezier_path_grid_type",
]
