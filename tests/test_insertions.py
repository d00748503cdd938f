import numpy as np

from nanodesign import operations as ops
from nanodesign.design import Design
from nanodesign.helices import Helix
from nanodesign.insertions import InsertionEnd, circle_arc, instantiate_insertion
from nanodesign.nucl import Nucl
from nanodesign.parameters import DEFAULT
from nanodesign.strands import HelixDomain, Insertion, Strand, sanitize_domains


def looped_design():
    design, _ = ops.add_helix(Design(), Helix())
    strand = Strand.from_domains([HelixDomain(0, 0, 10, True), Insertion(4), HelixDomain(0, 10, 20, True)])
    return ops.add_strand(design, strand)


def test_insertion_is_placed_between_its_flanking_nucleotides():
    design, s_id = looped_design()
    insertion = design.strands[s_id].domains[1]
    assert isinstance(insertion, Insertion)
    assert insertion.instantiation is not None
    points = np.array(insertion.instantiation)
    assert points.shape == (4, 3)
    assert np.all(np.isfinite(points))

    prime5 = design.get_nucl_position(Nucl(0, 9, True))
    prime3 = design.get_nucl_position(Nucl(0, 10, True))
    dist_ac = DEFAULT.dist_ac()
    for i, point in enumerate(points):
        assert np.linalg.norm(point - prime5) <= (i + 1) * dist_ac + 0.5
        assert np.linalg.norm(point - prime3) <= (4 - i) * dist_ac + 0.5
    assert np.linalg.norm(points[0] - prime5) < np.linalg.norm(points[0] - prime3)


def test_insertions_are_kept_until_their_ends_move():
    design, s_id = looped_design()
    before = design.strands[s_id].domains[1].instantiation
    again = design.copy()
    assert again.update_curves() is False
    assert again.strands[s_id].domains[1].instantiation == before

    moved = ops.translate_helices(design, [0], (0.0, 5.0, 0.0))
    after = np.array(moved.strands[s_id].domains[1].instantiation)
    assert np.allclose(after, np.array(before) + (0.0, 5.0, 0.0), atol=1e-6)


def test_merged_insertions_keep_their_positions():
    first = Insertion(2, ((0.0, 0.0, 0.0), (1.0, 0.0, 0.0)))
    second = Insertion(1, ((2.0, 0.0, 0.0),))
    domains = sanitize_domains([HelixDomain(0, 0, 4, True), first, second, HelixDomain(1, 0, 4, False)], cyclic=False)
    assert domains[1] == Insertion(3, ((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (2.0, 0.0, 0.0)))


def test_circle_arc_joins_both_ends_and_bulges_up():
    up = np.array([0.0, 1.0, 0.0])
    prime5 = InsertionEnd(np.zeros(3), up)
    prime3 = InsertionEnd(np.array([1.0, 0.0, 0.0]), up)
    for nb_nucl in (3, 8):
        arc = circle_arc(prime5, prime3, nb_nucl, DEFAULT)
        assert arc is not None
        assert arc.bigger_than_half_circle == (nb_nucl * DEFAULT.dist_ac() > np.pi)
        assert np.allclose(arc.position(0.0), prime5.position, atol=1e-9)
        assert np.allclose(arc.position(1.0), prime3.position, atol=1e-9)
        assert arc.position(0.5)[1] > 0.0


def test_short_insertion_falls_back_to_the_segment():
    up = np.array([0.0, 1.0, 0.0])
    prime5 = InsertionEnd(np.zeros(3), up)
    prime3 = InsertionEnd(np.array([5.0, 0.0, 0.0]), up)
    assert circle_arc(prime5, prime3, 2, DEFAULT) is None
    points = instantiate_insertion(prime5, prime3, 2, DEFAULT)
    assert points.shape == (2, 3)
    assert np.all(np.diff(points[:, 0]) > 0.0)
