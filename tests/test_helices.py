import math

import numpy as np
import pytest

from nanodesign.curves import TubeSpiralDescriptor
from nanodesign.curves.twist import TwistDescriptor
from nanodesign.grid import FreeGridId, Grid, HelixGridPosition, SquareGrid
from nanodesign.helices import Helix, VirtualNucl, map_to_virtual_nucl
from nanodesign.linalg import UNIT_X, Rotor
from nanodesign.nucl import Nucl
from nanodesign.parameters import DEFAULT


def test_straight_helix_nucleotides():
    helix = Helix.new((0.0, 0.0, 0.0))
    assert np.allclose(helix.axis_position(DEFAULT, 3), (3 * DEFAULT.z_step, 0.0, 0.0))
    assert np.allclose(helix.space_pos(DEFAULT, 0, True), (0.0, -DEFAULT.helix_radius, 0.0))
    step = helix.space_pos(DEFAULT, 1, True) - helix.space_pos(DEFAULT, 0, True)
    assert np.linalg.norm(step) == pytest.approx(DEFAULT.dist_ac())


def test_backward_strand_is_shifted_by_groove_and_inclination():
    helix = Helix.new((0.0, 0.0, 0.0))
    point = helix.space_pos(DEFAULT, 0, False)
    assert point[0] == pytest.approx(DEFAULT.inclination)
    assert math.hypot(point[1], point[2]) == pytest.approx(DEFAULT.helix_radius)
    forward = helix.space_pos(DEFAULT, 0, True)
    cos_angle = float(forward[1:] @ point[1:]) / DEFAULT.helix_radius**2
    assert math.acos(cos_angle) == pytest.approx(DEFAULT.groove_angle)


def test_roll_turns_nucleotides_around_axis():
    helix = Helix.new((0.0, 0.0, 0.0)).with_roll(math.pi)
    assert np.allclose(helix.space_pos(DEFAULT, 0, True), (0.0, DEFAULT.helix_radius, 0.0))


def test_orientation_and_translation():
    helix = Helix.new((1.0, 0.0, 0.0), Rotor.from_rotation_xy(math.pi / 2.0))
    assert np.allclose(helix.axis_position(DEFAULT, 1), (1.0, DEFAULT.z_step, 0.0))
    moved = helix.translated((0.0, 0.0, 2.0))
    assert moved.position == pytest.approx((1.0, 0.0, 2.0))
    turned = Helix.new((1.0, 0.0, 0.0)).rotated_around(Rotor.from_rotation_xy(math.pi), (0.0, 0.0, 0.0))
    assert np.allclose(turned.position, (-1.0, 0.0, 0.0))
    assert np.allclose(turned.orientation.rotate(UNIT_X), -UNIT_X)


def test_curved_helix_follows_its_curve():
    helix = Helix.from_curve(TubeSpiralDescriptor(theta_0=0.0, radius=5.0, height=10.0))
    curve = helix.instantiated_curve(DEFAULT)
    assert curve is helix.instantiated_curve(DEFAULT)
    assert helix.nb_curve_nucls(DEFAULT) == curve.nb_points()
    for n in (0, 10, curve.nb_points() - 1):
        axis = helix.axis_position(DEFAULT, n)
        assert np.allclose(axis, curve.positions[n])
        distance = np.linalg.norm(helix.space_pos(DEFAULT, n, True) - axis)
        assert distance == pytest.approx(DEFAULT.helix_radius)
    assert helix.axis_line(DEFAULT) is None


def test_curve_range_shifts_with_initial_index():
    helix = Helix.from_curve(TubeSpiralDescriptor(theta_0=0.0, radius=5.0, height=10.0))
    lo, hi = helix.curve_range(DEFAULT)
    shifted = helix.with_changes(initial_nt_index=4)
    assert shifted.curve_range(DEFAULT) == (lo - 4, hi - 4)
    assert Helix.new((0.0, 0.0, 0.0)).curve_range(DEFAULT) is None


def test_ideal_neighbour_sits_one_gap_away():
    helix = Helix.new((0.0, 0.0, 0.0))
    neighbour = helix.ideal_neighbour(DEFAULT, 5, True)
    distance = np.linalg.norm(np.asarray(neighbour.position) - helix.axis_position(DEFAULT, 5))
    assert distance == pytest.approx(DEFAULT.inter_center_gap)


def test_placed_on_grid_reads_grid_position():
    grid = Grid((0.0, 0.0, 0.0), Rotor.identity(), SquareGrid())
    helix = Helix(grid_position=HelixGridPosition(FreeGridId(0), 1, 0, axis_pos=2))
    placed = helix.placed_on_grid(grid, DEFAULT)
    assert np.allclose(placed.position, (-2 * DEFAULT.z_step, 2.65, 0.0))
    assert np.allclose(placed.axis_position(DEFAULT, 2), (0.0, 2.65, 0.0))
    assert placed.placed_on_grid(grid, DEFAULT) is placed
    assert Helix().placed_on_grid(grid, DEFAULT) == Helix()


def test_twisted_grid_gives_twist_curve():
    grid = Grid((0.0, 0.0, 0.0), Rotor.identity(), SquareGrid(twist=0.05))
    helix = Helix(grid_position=HelixGridPosition(FreeGridId(0), 1, 0))
    placed = helix.placed_on_grid(grid, DEFAULT, twist_length=10.0)
    assert isinstance(placed.curve, TwistDescriptor)
    assert placed.curve.radius == pytest.approx(2.65)
    assert placed.placed_on_grid(grid, DEFAULT, twist_length=10.0) is placed


def test_total_roll_adds_grid_roll():
    helix = Helix(grid_position=HelixGridPosition(FreeGridId(0), 0, 0, roll=0.5), roll=0.25)
    assert helix.total_roll() == pytest.approx(0.75)


def test_virtual_nucl_of_supported_helix():
    helices = {0: Helix(), 1: Helix(support_helix=0, initial_nt_index=5)}
    assert map_to_virtual_nucl(Nucl(1, 2, True), helices) == VirtualNucl(Nucl(0, 7, True))
    assert map_to_virtual_nucl(Nucl(0, 2, False), helices) == VirtualNucl(Nucl(0, 2, False))
    assert map_to_virtual_nucl(Nucl(9, 0, True), helices) is None


def test_helix_payload_round_trip():
    helix = Helix(
        position=(1.0, 2.0, 3.0),
        orientation=Rotor.from_rotation_xy(0.3),
        grid_position=HelixGridPosition(FreeGridId(2), 1, -1, axis_pos=3, roll=0.1),
        curve=TubeSpiralDescriptor(theta_0=0.0, radius=5.0, height=10.0),
        roll=0.2,
        initial_nt_index=4,
        support_helix=7,
    )
    assert Helix.from_payload(helix.to_payload()) == helix
