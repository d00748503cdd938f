import pytest

from nanodesign.design import Design
from nanodesign.errors import JunctionIdMismatch
from nanodesign.nucl import Nucl
from nanodesign.operations import add_strand, rm_strand
from nanodesign.strands import DomainJunction, HelixDomain, Strand
from nanodesign.xover_ids import XoverIds, check_xover_ids, reconcile_xover_ids

PAIR_A = (Nucl(0, 9, True), Nucl(1, 9, False))
PAIR_B = (Nucl(2, 9, True), Nucl(3, 9, False))
PAIR_C = (Nucl(4, 9, True), Nucl(5, 9, False))


def two_helix_strand(first: int, second: int) -> Strand:
    return Strand.from_domains([HelixDomain(first, 0, 10, True), HelixDomain(second, 0, 10, False)])


def test_ids_are_the_smallest_free_integers():
    ids = XoverIds()
    assert ids.get_or_allocate(PAIR_A) == 0
    assert ids.get_or_allocate(PAIR_B) == 1
    assert ids.get_or_allocate(PAIR_A) == 0
    assert ids.remove(0) == PAIR_A
    assert ids.get_or_allocate(PAIR_C) == 0
    assert ids.get_pair(1) == PAIR_B
    assert ids.get_id(PAIR_C) == 0
    assert len(ids) == 2


def test_insert_at_and_update():
    ids = XoverIds()
    assert ids.insert_at(PAIR_A, 7)
    assert ids.insert_at(PAIR_A, 7)
    assert not ids.insert_at(PAIR_B, 7)
    assert not ids.insert_at(PAIR_A, 8)
    assert ids.update(PAIR_A, PAIR_C) == 7
    assert ids.get_pair(7) == PAIR_C
    assert PAIR_A not in ids


def test_import_rejects_duplicates():
    ids = XoverIds()
    ids.import_existing([(0, PAIR_A)])
    with pytest.raises(JunctionIdMismatch):
        ids.import_existing([(1, PAIR_A)])


def test_copy_is_independent():
    ids = XoverIds()
    ids.get_or_allocate(PAIR_A)
    clone = ids.copy()
    clone.get_or_allocate(PAIR_B)
    assert len(ids) == 1
    assert clone != ids


def test_id_survives_edits_of_other_strands():
    design, first = add_strand(Design(), two_helix_strand(1, 2))
    assert design.strands[first].junctions[0] == DomainJunction.identified(0)

    design, second = add_strand(design, two_helix_strand(3, 4))
    assert design.strands[first].junctions[0] == DomainJunction.identified(0)
    assert design.strands[second].junctions[0] == DomainJunction.identified(1)

    design = rm_strand(design, second)
    assert design.strands[first].junctions[0] == DomainJunction.identified(0)
    assert len(design.xover_ids) == 1
    check_xover_ids(design.strands, design.xover_ids)


def test_reconcile_restores_stored_ids():
    stored = two_helix_strand(0, 1).with_junctions([DomainJunction.identified(5), DomainJunction.prime3()])
    ids = XoverIds()
    result = reconcile_xover_ids({0: stored}, ids)
    assert result[0] is stored
    assert ids.get_pair(5) == PAIR_A


def test_reconcile_reallocates_conflicting_ids():
    first = two_helix_strand(0, 1).with_junctions([DomainJunction.identified(2), DomainJunction.prime3()])
    second = two_helix_strand(2, 3).with_junctions([DomainJunction.identified(2), DomainJunction.prime3()])
    ids = XoverIds()
    result = reconcile_xover_ids({0: first, 1: second}, ids)
    assert result[0].junctions[0] == DomainJunction.identified(2)
    assert result[1].junctions[0] == DomainJunction.identified(0)
    check_xover_ids(result, ids)


def test_reconcile_drops_ids_of_removed_xovers():
    ids = XoverIds()
    ids.get_or_allocate(PAIR_B)
    result = reconcile_xover_ids({0: two_helix_strand(0, 1)}, ids)
    assert ids.get_pair(0) == PAIR_A
    assert ids.get_id(PAIR_B) is None
    assert result[0].junctions[0] == DomainJunction.identified(0)


def test_check_detects_mismatch():
    strand = two_helix_strand(0, 1).with_junctions([DomainJunction.identified(0), DomainJunction.prime3()])
    ids = XoverIds()
    ids.insert_at(PAIR_B, 0)
    with pytest.raises(JunctionIdMismatch):
        check_xover_ids({0: strand}, ids)
