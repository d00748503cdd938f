import math

import numpy as np
import pytest

from nanodesign.errors import GridDoesNotExist, NotEnoughHelices, SerializationError
from nanodesign.grid import (
    FreeGridId,
    Grid,
    GridPosition,
    HelixGridPosition,
    HoneycombGrid,
    Hyperboloid,
    SquareEdge,
    SquareGrid,
    grid_id_from_payload,
    grid_type_from_payload,
)
from nanodesign.grid.data import GridData
from nanodesign.grid.inference import find_grid_for_group
from nanodesign.helices import Helix
from nanodesign.linalg import UNIT_X, Rotor
from nanodesign.parameters import DEFAULT, OLD_ENSNANO


def origin_grid(grid_type) -> Grid:
    return Grid((0.0, 0.0, 0.0), Rotor.identity(), grid_type)


def test_square_grid_placement():
    grid = origin_grid(SquareGrid())
    assert np.allclose(grid.position_helix(OLD_ENSNANO, 0, 0), (0.0, 0.0, 0.0))
    assert np.allclose(grid.position_helix(OLD_ENSNANO, 1, 0), (0.0, 2.65, 0.0))
    assert np.allclose(grid.position_helix(OLD_ENSNANO, 0, 1), (0.0, 0.0, 2.65))


def test_grid_placement_follows_position_and_orientation():
    grid = Grid((1.0, 2.0, 3.0), Rotor.from_rotation_xy(math.pi / 2.0), SquareGrid())
    assert np.allclose(grid.axis_helix(), (0.0, 1.0, 0.0))
    assert np.allclose(grid.position_helix(DEFAULT, 1, 0), (1.0 - 2.65, 2.0, 3.0))


@pytest.mark.parametrize("grid_type", [SquareGrid(), HoneycombGrid()])
def test_interpolate_inverts_origin_helix(grid_type):
    for x in range(-3, 4):
        for y in range(-3, 4):
            u, v = grid_type.origin_helix(DEFAULT, x, y)
            assert grid_type.interpolate(DEFAULT, u, v) == (x, y)


def test_honeycomb_neighbours_are_one_gap_apart():
    grid = origin_grid(HoneycombGrid())
    center = grid.position_helix(DEFAULT, 0, 0)
    for x, y in [(1, 0), (-1, 0), (0, -1)]:
        distance = np.linalg.norm(grid.position_helix(DEFAULT, x, y) - center)
        assert distance == pytest.approx(DEFAULT.inter_center_gap)


def test_hyperboloid_ring():
    hyperboloid = Hyperboloid(radius=10, shift=0.0, length=30.0, radius_shift=0.0)
    for i in range(10):
        u, v = hyperboloid.origin_helix(DEFAULT, i, 0)
        assert hyperboloid.interpolate(DEFAULT, u, v) == (i, 0)
        assert hyperboloid.orientation_helix(DEFAULT, i, 0).is_close(Rotor.identity())
    first = np.array(hyperboloid.origin_helix(DEFAULT, 0, 0))
    second = np.array(hyperboloid.origin_helix(DEFAULT, 1, 0))
    assert np.linalg.norm(second - first) == pytest.approx(DEFAULT.inter_center_gap)


def test_hyperboloid_shift_tilts_helices():
    hyperboloid = Hyperboloid(radius=12, shift=0.4, length=40.0, radius_shift=0.5)
    waist, center = hyperboloid.sheet_radii(DEFAULT)
    assert waist > center
    axis = hyperboloid.orientation_helix(DEFAULT, 3, 0).rotate(UNIT_X)
    assert axis[0] < 1.0
    moved = hyperboloid.modify_shift(0.8, DEFAULT)
    assert moved.center_radius(DEFAULT) == pytest.approx(hyperboloid.center_radius(DEFAULT))


def test_grid_types_accept_legacy_tags():
    assert grid_type_from_payload("Square") == SquareGrid()
    assert grid_type_from_payload("Honeycomb") == HoneycombGrid()
    assert grid_type_from_payload({"Square": {"twist": 0.1}}) == SquareGrid(0.1)
    assert SquareGrid(0.1).to_payload() == {"Square": {"twist": 0.1}}
    with pytest.raises(SerializationError):
        grid_type_from_payload("Hexagonal")


def test_grid_ids_accept_bare_integers():
    assert grid_id_from_payload(3) == FreeGridId(3)
    assert grid_id_from_payload({"FreeGrid": 3}) == FreeGridId(3)
    with pytest.raises(SerializationError):
        grid_id_from_payload(True)


def test_square_edges():
    grid = origin_grid(SquareGrid())
    edge = grid.translation_to_edge(0, 0, 2, -1)
    assert edge == SquareEdge(2, -1)
    assert grid.translate_by_edge(1, 1, edge) == (3, 0)


def test_find_helix_position_on_square_grid():
    grid = origin_grid(SquareGrid())
    helix = Helix.new((0.0, 2.65, 0.0))
    position = grid.find_helix_position(DEFAULT, helix, FreeGridId(0))
    assert (position.x, position.y, position.axis_pos) == (1, 0, 0)
    assert position.roll == pytest.approx(0.0, abs=1e-9)


def test_grid_data_indexes_pinned_helices():
    helices = {
        0: Helix(grid_position=HelixGridPosition(FreeGridId(0), 0, 0)),
        1: Helix(grid_position=HelixGridPosition(FreeGridId(0), 1, 0)),
        2: Helix(),
    }
    data = GridData({0: origin_grid(SquareGrid())}, helices, DEFAULT)
    assert data.helix_at(GridPosition(FreeGridId(0), 1, 0)) == 1
    assert data.get_helices_on_grid(FreeGridId(0)) == {0, 1}
    assert data.is_position_free(GridPosition(FreeGridId(0), 1, 0), ignored=[1])
    with pytest.raises(GridDoesNotExist):
        data.get_helices_on_grid(FreeGridId(4))


def test_grid_inference_needs_four_helices():
    helices = [Helix.new((0.0, 2.65 * i, 0.0)) for i in range(3)]
    with pytest.raises(NotEnoughHelices) as excinfo:
        find_grid_for_group(helices, DEFAULT)
    assert (excinfo.value.actual, excinfo.value.needed) == (3, 4)


def test_grid_inference_recognizes_honeycomb():
    lattice = origin_grid(HoneycombGrid())
    coords = [(0, 0), (1, 0), (0, 1), (1, 1)]
    helices = [Helix.new(lattice.position_helix(DEFAULT, x, y)) for x, y in coords]
    grid = find_grid_for_group(helices, DEFAULT)
    assert isinstance(grid.grid_type, HoneycombGrid)
    found = [grid.find_helix_position(DEFAULT, h, FreeGridId(0)) for h in helices]
    assert len({(p.x, p.y) for p in found}) == 4


def test_hyperboloid_make_helices():
    hyperboloid = Hyperboloid(radius=6, shift=0.0, length=20.0, radius_shift=0.0)
    helices, length = hyperboloid.make_helices(DEFAULT)
    assert length == 20
    assert len(helices) == 6
    for i, (origin, orientation) in enumerate(helices):
        assert np.allclose(origin, hyperboloid.origin(i, DEFAULT))
        assert np.allclose(orientation.rotate(UNIT_X), UNIT_X)
