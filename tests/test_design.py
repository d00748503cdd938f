import numpy as np
import pytest

from nanodesign.collection import SharedMap
from nanodesign.design import Design, assert_invariants, validate_design
from nanodesign.errors import (
    AdjacentJunctionMismatch,
    CouldNotGetPath,
    GridCollision,
    HelixDoesNotExist,
    JunctionIdMismatch,
    MalformedDomain,
    StrandDoesNotExist,
)
from nanodesign.grid import FreeGridId, Grid, HelixGridPosition, SquareGrid
from nanodesign.helices import Helix
from nanodesign.linalg import Rotor
from nanodesign.nucl import Nucl
from nanodesign.operations import add_helix, add_strand
from nanodesign.strands import DomainJunction, HelixDomain, Strand


def test_maps_are_coerced():
    design = Design(helices={0: Helix()}, anchors=[Nucl(0, 0, True)])
    assert isinstance(design.helices, SharedMap)
    assert design.anchors == frozenset({Nucl(0, 0, True)})


def test_copy_shares_maps_until_mutated():
    design = Design(helices={0: Helix()})
    snapshot = design.snapshot()
    assert snapshot.helices is design.helices
    assert snapshot == design
    with design.mutate("helices") as helices:
        helices.push(Helix.new((1.0, 0.0, 0.0)))
    assert len(design.helices) == 2
    assert len(snapshot.helices) == 1
    assert snapshot.strands is design.strands
    assert snapshot != design


def test_failed_mutation_leaves_design_unchanged():
    design = Design(helices={0: Helix()})
    before = design.helices
    with pytest.raises(KeyError):
        with design.mutate("helices") as helices:
            helices.push(Helix())
            del helices[42]
    assert design.helices is before


def test_mutate_rejects_unknown_collection():
    with pytest.raises(AttributeError):
        Design().mutate("parameters")


def test_ids_are_never_reused():
    design, first = add_helix(Design(), Helix())
    with design.mutate("helices") as helices:
        del helices[first]
    design, second = add_helix(design, Helix())
    assert second == first + 1


def test_getters_raise_typed_errors():
    design = Design()
    with pytest.raises(HelixDoesNotExist):
        design.get_helix(0)
    with pytest.raises(StrandDoesNotExist):
        design.get_strand(0)
    with pytest.raises(CouldNotGetPath):
        design.get_path(0)


def test_nucl_position_and_close_pairs():
    helices = {0: Helix.new((0.0, 0.0, 0.0)), 1: Helix.new((0.0, 2.0 * 0.93, 0.0))}
    design = Design(helices=helices)
    assert design.get_nucl_position(Nucl(5, 0, True)) is None
    assert np.allclose(design.get_nucl_position(Nucl(0, 0, True)), (0.0, -0.93, 0.0))
    design, _ = add_strand(design, Strand.init(0, 0, False))
    design, _ = add_strand(design, Strand.init(1, 0, True))
    pairs = design.get_pairs_of_close_nucleotides(5.0)
    assert [(a, b) for a, b, _ in pairs] == [(Nucl(0, 0, False), Nucl(1, 0, True))]
    assert design.get_pairs_of_close_nucleotides(0.01) == []


def test_scaffold_and_sequence_map():
    design, s_id = add_strand(Design(), Strand.from_domains([HelixDomain(0, 0, 4, True)]))
    design.scaffold_id = s_id
    design.scaffold_sequence = "ACGT"
    assert design.scaffold().length() == 4
    assert design.sequence_map()[Nucl(0, 3, False)] == "A"
    assert design.summary()["scaffold_length"] == 4


def test_update_curves_places_pinned_helices():
    grid = Grid((0.0, 0.0, 0.0), Rotor.identity(), SquareGrid())
    design = Design(
        free_grids={0: grid},
        helices={0: Helix(grid_position=HelixGridPosition(FreeGridId(0), 0, 1))},
    )
    assert design.update_curves()
    assert np.allclose(design.helices[0].position, (0.0, 0.0, 2.65))
    assert not design.update_curves()
    assert design.helices_on_grid(FreeGridId(0)) == [0]


def test_sound_design_validates():
    design, _ = add_strand(Design(), Strand.from_domains([HelixDomain(0, 0, 10, True), HelixDomain(1, 0, 10, False)]))
    assert validate_design(design) == []
    assert_invariants(design)


def test_invariant_violations_are_reported():
    bad_adjacent = Strand(
        (HelixDomain(0, 0, 10, True), HelixDomain(1, 0, 10, False)),
        (DomainJunction.adjacent(), DomainJunction.prime3()),
    )
    with pytest.raises(AdjacentJunctionMismatch):
        assert_invariants(Design(strands={0: bad_adjacent}))

    unknown_id = Strand(
        (HelixDomain(0, 0, 10, True), HelixDomain(1, 0, 10, False)),
        (DomainJunction.identified(3), DomainJunction.prime3()),
    )
    with pytest.raises(JunctionIdMismatch):
        assert_invariants(Design(strands={0: unknown_id}))

    reversed_domain = Strand((HelixDomain(0, 5, 2, True),), (DomainJunction.prime3(),))
    with pytest.raises(MalformedDomain):
        assert_invariants(Design(strands={0: reversed_domain}))

    shared_spot = {
        0: Helix(grid_position=HelixGridPosition(FreeGridId(0), 1, 1)),
        1: Helix(grid_position=HelixGridPosition(FreeGridId(0), 1, 1)),
    }
    problems = validate_design(Design(helices=shared_spot, strands={0: bad_adjacent}))
    assert len(problems) == 2
    assert problems[0].startswith("AdjacentJunctionMismatch")
    with pytest.raises(GridCollision):
        assert_invariants(Design(helices=shared_spot))
