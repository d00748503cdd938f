import logging

import numpy as np
import pytest

from nanodesign import operations as ops
from nanodesign.bezier_plane import BezierPlane, BezierVertex
from nanodesign.config import EngineConfig
from nanodesign.curves.twist import TwistDescriptor
from nanodesign.design import Design
from nanodesign.errors import (
    CouldNotGetPlane,
    GridIsNotEmpty,
    GridPositionAlreadyUsed,
    HelixCollisionDuringTranslation,
    HelixNotEmpty,
    NotEnoughHelices,
    NuclNotOnStrand,
    OperationError,
)
from nanodesign.grid import BezierPathGridId, FreeGridId, Grid, HelixGridPosition, HoneycombGrid, Hyperboloid, SquareGrid
from nanodesign.helices import Helix
from nanodesign.linalg import Rotor
from nanodesign.nucl import Nucl
from nanodesign.parameters import DEFAULT
from nanodesign.strands import HelixDomain, Strand


def origin_grid(grid_type=None) -> Grid:
    return Grid((0.0, 0.0, 0.0), Rotor.identity(), grid_type or SquareGrid())


def pinned_design(*coords) -> Design:
    """A square grid with one helix pinned at each of ``coords``."""
    design, g_id = ops.add_grid(Design(), origin_grid())
    for x, y in coords:
        design, _ = ops.add_helix(design, Helix(grid_position=HelixGridPosition(FreeGridId(g_id), x, y)))
    return design


def test_operations_leave_their_input_alone():
    design = Design()
    after, h_id = ops.add_helix(design, Helix())
    after, _ = ops.add_strand(after, Strand.init(h_id, 0, True))
    assert len(design.helices) == 0
    assert len(design.strands) == 0
    assert len(after.helices) == 1
    assert len(after.strands) == 1


def test_pinned_helices_are_placed():
    design = pinned_design((0, 0), (0, 1))
    assert np.allclose(design.helices[0].position, (0.0, 0.0, 0.0))
    assert np.allclose(design.helices[1].position, (0.0, 0.0, 2.65))


def test_attach_and_detach():
    design = pinned_design((0, 0))
    design, h_id = ops.add_helix(design, Helix.new((5.0, 5.0, 5.0)))
    with pytest.raises(GridPositionAlreadyUsed):
        ops.attach_helix_to_grid(design, h_id, 0, 0, 0)
    design = ops.attach_helix_to_grid(design, h_id, 0, 1, 0)
    assert design.helices_on_grid(FreeGridId(0)) == [0, h_id]
    assert np.allclose(design.helices[h_id].position, (0.0, 2.65, 0.0))
    design = ops.detach_helix(design, h_id)
    assert design.helices[h_id].grid_position is None
    assert design.helices_on_grid(FreeGridId(0)) == [0]


def test_snapped_translation_moves_along_the_grid():
    design = pinned_design((0, 0))
    moved = ops.translate_helices(design, [0], (0.0, 2.7, 0.0), snap=True)
    gp = moved.helices[0].grid_position
    assert (gp.grid, gp.x, gp.y) == (FreeGridId(0), 1, 0)
    assert np.allclose(moved.helices[0].position, (0.0, 2.65, 0.0))


def test_snapped_translation_refuses_collisions():
    design = pinned_design((0, 0), (1, 0))
    with pytest.raises(HelixCollisionDuringTranslation):
        ops.translate_helices(design, [0], (0.0, 2.65, 0.0), snap=True)
    # both helices moving together is fine
    moved = ops.translate_helices(design, [0, 1], (0.0, 2.65, 0.0), snap=True)
    assert [(moved.helices[h].grid_position.x, moved.helices[h].grid_position.y) for h in (0, 1)] == [(1, 0), (2, 0)]


def test_free_translation_leaves_the_grid():
    design = pinned_design((0, 0))
    moved = ops.translate_helices(design, [0], (1.0, 2.0, 3.0))
    assert moved.helices[0].grid_position is None
    assert np.allclose(moved.helices[0].position, (1.0, 2.0, 3.0))
    assert design.helices[0].grid_position is not None


def test_rotation_without_snap():
    design, h_id = ops.add_helix(Design(), Helix.new((1.0, 0.0, 0.0)))
    rotated = ops.rotate_helices(design, [h_id], Rotor.from_axis_angle((0.0, 0.0, 1.0), np.pi / 2.0), (0.0, 0.0, 0.0))
    assert np.allclose(rotated.helices[h_id].position, (0.0, 1.0, 0.0))


def test_grids_and_helices_in_use_cannot_be_removed():
    design = pinned_design((0, 0))
    with pytest.raises(GridIsNotEmpty):
        ops.rm_grid(design, 0)
    design, _ = ops.add_strand(design, Strand.init(0, 0, True))
    with pytest.raises(HelixNotEmpty):
        ops.rm_helices(design, [0])
    design = ops.rm_strand(design, 0)
    design = ops.rm_helices(design, [0])
    design = ops.rm_grid(design, 0)
    assert len(design.free_grids) == 0
    design, g_id = ops.add_grid(design, origin_grid())
    assert g_id == 1


def test_helix_roll():
    design = pinned_design((0, 0))
    design = ops.set_helix_roll(design, 0, 0.5)
    assert design.helices[0].roll == 0.5


def test_grid_twist_gives_helices_twist_curves():
    design = pinned_design((1, 0))
    twisted = ops.set_grid_twist(design, 0, 0.05)
    assert isinstance(twisted.helices[0].curve, TwistDescriptor)
    straight = ops.set_grid_twist(twisted, 0, None)
    assert straight.helices[0].curve is None


def test_hyperboloid_grid_with_helices():
    grid = origin_grid(Hyperboloid(radius=10, shift=0.0, length=30.0, radius_shift=0.2))
    design, g_id = ops.add_grid(Design(), grid, with_helices=True)
    assert design.helices_on_grid(FreeGridId(g_id)) == list(range(10))
    assert sorted(h.grid_position.x for h in design.helices.values()) == list(range(10))


def test_make_grid_from_honeycomb_helices():
    lattice = origin_grid(HoneycombGrid())
    coords = [(0, 0), (1, 0), (0, 1), (1, 1)]
    design = Design(helices={i: Helix.new(lattice.position_helix(DEFAULT, x, y)) for i, (x, y) in enumerate(coords)})
    design, g_id = ops.make_grid_from_helices(design, [0, 1, 2, 3])
    assert isinstance(design.free_grids[g_id].grid_type, HoneycombGrid)
    assert design.helices_on_grid(FreeGridId(g_id)) == [0, 1, 2, 3]
    with pytest.raises(NotEnoughHelices):
        ops.make_grid_from_helices(design, [0, 1, 2])


def test_copy_grid_copies_helices_and_their_strands():
    design = pinned_design((0, 0), (0, 1))
    design, free_helix = ops.add_helix(design, Helix.new((0.0, 20.0, 0.0)))
    design, _ = ops.add_strand(design, Strand.from_domains([HelixDomain(0, 0, 8, True)]))
    design, _ = ops.add_strand(design, Strand.from_domains([HelixDomain(free_helix, 0, 8, True)]))
    design, new_gid = ops.copy_grid(design, 0, (10.0, 0.0, 0.0), Rotor.identity())
    assert new_gid == 1
    assert design.helices_on_grid(FreeGridId(1)) == [3, 4]
    assert np.allclose(design.helices[3].position, (10.0, 0.0, 0.0))
    assert np.allclose(design.helices[4].position, (10.0, 0.0, 2.65))
    assert len(design.strands) == 3
    assert design.strands[2].domains == (HelixDomain(3, 0, 8, True),)


def test_split_then_merge():
    design, s_id = ops.add_strand(Design(), Strand.from_domains([HelixDomain(0, 0, 10, True)]))
    design, right = ops.split_strand(design, Nucl(0, 4, True))
    assert right == 1
    assert design.strands[s_id].domains == (HelixDomain(0, 0, 5, True),)
    assert design.strands[right].domains == (HelixDomain(0, 5, 10, True),)
    design = ops.merge_strands(design, s_id, right)
    assert list(design.strands) == [s_id]
    assert design.strands[s_id].domains == (HelixDomain(0, 0, 10, True),)
    design, new_id = ops.add_strand(design, Strand.init(1, 0, True))
    assert new_id == 2
    with pytest.raises(NuclNotOnStrand):
        ops.split_strand(design, Nucl(5, 0, True))


def test_closing_and_opening_a_cycle():
    domains = [HelixDomain(0, 0, 10, True), HelixDomain(1, 0, 10, False)]
    design, s_id = ops.add_strand(Design(), Strand.from_domains(domains))
    assert len(design.xover_ids) == 1
    design = ops.merge_strands(design, s_id, s_id)
    assert design.strands[s_id].cyclic
    assert len(design.xover_ids) == 2
    with pytest.raises(OperationError):
        ops.merge_strands(design, s_id, s_id)
    design, new_id = ops.split_strand(design, Nucl(1, 0, False))
    assert new_id is None
    assert not design.strands[s_id].cyclic
    assert design.strands[s_id].domains == tuple(domains)
    assert len(design.xover_ids) == 1


def test_cross_cut_to_the_3prime_part():
    design, source = ops.add_strand(Design(), Strand.from_domains([HelixDomain(1, 0, 5, True)]))
    design, target = ops.add_strand(design, Strand.from_domains([HelixDomain(0, 0, 10, True)]))
    design = ops.cross_cut(design, source, target, Nucl(0, 5, True), True)
    assert design.strands[source].domains == (HelixDomain(1, 0, 5, True), HelixDomain(0, 5, 10, True))
    assert design.strands[target].domains == (HelixDomain(0, 0, 5, True),)
    assert len(design.xover_ids) == 1


def test_cross_cut_from_the_5prime_part():
    design, source = ops.add_strand(Design(), Strand.from_domains([HelixDomain(1, 0, 5, True)]))
    design, target = ops.add_strand(design, Strand.from_domains([HelixDomain(0, 0, 10, True)]))
    design = ops.cross_cut(design, source, target, Nucl(0, 4, True), False)
    assert design.strands[source].domains == (HelixDomain(0, 0, 5, True), HelixDomain(1, 0, 5, True))
    assert design.strands[target].domains == (HelixDomain(0, 5, 10, True),)
    with pytest.raises(NuclNotOnStrand):
        ops.cross_cut(design, source, target, Nucl(0, 0, True), True)


def test_scaffold_group_and_anchors():
    design, s_id = ops.add_strand(Design(), Strand.from_domains([HelixDomain(0, 0, 4, True)]))
    design = ops.set_scaffold(design, s_id)
    design = ops.set_scaffold_sequence(design, "ACGT", shift=1)
    assert design.sequence_map()[Nucl(0, 0, True)] == "C"
    design = ops.set_group(design, s_id, True)
    assert design.groups[s_id] is True
    design = ops.set_group(design, s_id, None)
    assert s_id not in design.groups
    design = ops.add_anchor(design, Nucl(0, 1, True))
    assert Nucl(0, 1, True) in design.anchors
    design = ops.remove_anchor(design, Nucl(0, 1, True))
    assert not design.anchors
    design = ops.rm_strand(design, s_id)
    assert design.scaffold_id is None


def test_bezier_path_operations():
    design, p0 = ops.add_bezier_plane(Design(), BezierPlane((0.0, 0.0, 0.0), Rotor.identity()))
    design, p1 = ops.add_bezier_plane(design, BezierPlane((10.0, 0.0, 0.0), Rotor.identity()))
    with pytest.raises(CouldNotGetPlane):
        ops.create_bezier_path(design, [BezierVertex(7, (0.0, 0.0))])
    design, path_id = ops.create_bezier_path(design, [BezierVertex(p0, (0.0, 0.0))])
    design, vertex_id = ops.add_bezier_vertex(design, path_id, BezierVertex(p1, (1.0, 0.0)))
    assert vertex_id == 1
    design = ops.move_bezier_vertex(design, path_id, vertex_id, (0.0, 0.0))
    assert design.get_path(path_id).vertex(1).position == (0.0, 0.0)

    design = ops.set_bezier_path_grid_type(design, path_id, SquareGrid())
    grid_id = BezierPathGridId(path_id, 1)
    design, h_id = ops.add_helix(design, Helix())
    design = ops.attach_helix_to_grid(design, h_id, grid_id, 0, 0)
    assert np.allclose(design.helices[h_id].position, (10.0, 0.0, 0.0))
    with pytest.raises(GridIsNotEmpty):
        ops.set_bezier_path_grid_type(design, path_id, None)


def test_strict_invariants_accept_sound_operations():
    config = EngineConfig(strict_invariants=True)
    domains = [HelixDomain(0, 0, 10, True), HelixDomain(1, 0, 10, False)]
    design, s_id = ops.add_strand(Design(), Strand.from_domains(domains), config=config)
    design, _ = ops.split_strand(design, Nucl(0, 9, True), config=config)
    assert len(design.strands) == 2
    assert len(design.xover_ids) == 0


def test_set_parameters_moves_pinned_helices():
    design = pinned_design((0, 0), (0, 1))
    wider = DEFAULT.with_changes(inter_helix_gap=3.0 - 2.0 * DEFAULT.helix_radius)
    moved = ops.set_parameters(design, wider)
    assert moved.parameters.inter_center_gap == pytest.approx(3.0)
    assert np.allclose(moved.helices[1].position, (0.0, 0.0, 3.0))
    assert np.allclose(design.helices[1].position, (0.0, 0.0, DEFAULT.inter_center_gap))


def test_attach_bezier_vertex_to_grid():
    from nanodesign.curves import BezierEnd, PiecewiseBezierDescriptor
    from nanodesign.errors import HelixIsNotPiecewiseBezier, InsufficientBezierPoints
    from nanodesign.grid import GridPosition

    design, g0 = ops.add_grid(Design(), origin_grid())
    design, g1 = ops.add_grid(design, Grid((10.0, 0.0, 0.0), Rotor.identity(), SquareGrid()))
    curve = PiecewiseBezierDescriptor(
        (BezierEnd(GridPosition(FreeGridId(g0), 0, 0)), BezierEnd(GridPosition(FreeGridId(g1), 0, 0)))
    )
    design, bezier_id = ops.add_helix(design, Helix.from_curve(curve))
    design, straight_id = ops.add_helix(design, Helix())

    with pytest.raises(HelixIsNotPiecewiseBezier):
        ops.attach_bezier_vertex_to_grid(design, straight_id, 0, FreeGridId(g0), 1, 0)
    with pytest.raises(InsufficientBezierPoints):
        ops.attach_bezier_vertex_to_grid(design, bezier_id, 2, FreeGridId(g0), 1, 0)

    moved = ops.attach_bezier_vertex_to_grid(design, bezier_id, 1, FreeGridId(g1), 1, 0)
    points = moved.helices[bezier_id].curve.points
    assert points[0].position == GridPosition(FreeGridId(g0), 0, 0)
    assert points[1].position == GridPosition(FreeGridId(g1), 1, 0)
    assert design.helices[bezier_id].curve is curve


def test_make_grid_warns_about_colliding_helices(caplog):
    lattice = origin_grid(HoneycombGrid())
    coords = [(0, 0), (1, 0), (0, 1), (1, 1), (1, 1)]
    design = Design(helices={i: Helix.new(lattice.position_helix(DEFAULT, x, y)) for i, (x, y) in enumerate(coords)})
    with caplog.at_level(logging.WARNING, logger="nanodesign.operations"):
        design, g_id = ops.make_grid_from_helices(design, [0, 1, 2, 3, 4])
    assert design.helices_on_grid(FreeGridId(g_id)) == [0, 1, 2, 3]
    assert design.helices[4].grid_position is None
    assert any("helix 4 lands on" in record.getMessage() for record in caplog.records)
