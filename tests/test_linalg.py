import math

import numpy as np
import pytest

from nanodesign.linalg import UNIT_X, UNIT_Y, UNIT_Z, Rotor, normalized, perpendicular_basis, vec3


def test_vec3_rejects_wrong_shape():
    with pytest.raises(ValueError):
        vec3([1.0, 2.0])


def test_normalized_zero_vector_stays_zero():
    assert not np.any(normalized(np.zeros(3)))


@pytest.mark.parametrize("direction", [UNIT_X, UNIT_Y, UNIT_Z, np.array([1.0, 2.0, -3.0])])
def test_perpendicular_basis_is_orthonormal(direction):
    basis = perpendicular_basis(direction)
    assert np.allclose(basis.T @ basis, np.eye(3))
    assert np.allclose(basis[:, 2], normalized(direction))
    assert np.linalg.det(basis) == pytest.approx(1.0)


def test_rotation_planes():
    quarter = math.pi / 2.0
    assert np.allclose(Rotor.from_rotation_xy(quarter).rotate(UNIT_X), UNIT_Y)
    assert np.allclose(Rotor.from_rotation_yz(quarter).rotate(UNIT_Y), UNIT_Z)
    assert np.allclose(Rotor.from_rotation_xz(quarter).rotate(UNIT_X), UNIT_Z)


def test_composition_order():
    a = Rotor.from_rotation_xy(0.3)
    b = Rotor.from_rotation_yz(1.1)
    v = np.array([0.2, -1.0, 0.5])
    assert np.allclose((a * b).rotate(v), a.rotate(b.rotate(v)))


def test_rotation_between_and_matrix_round_trip():
    source = np.array([1.0, 1.0, 0.0])
    target = np.array([0.0, 0.0, -2.0])
    rotor = Rotor.from_rotation_between(source, target)
    assert np.allclose(rotor.rotate(normalized(source)), normalized(target))
    assert Rotor.from_matrix(rotor.matrix()).is_close(rotor)


def test_rotation_between_opposite_vectors():
    rotor = Rotor.from_rotation_between(UNIT_X, -UNIT_X)
    assert np.allclose(rotor.rotate(UNIT_X), -UNIT_X)


def test_reversed_undoes_rotation():
    rotor = Rotor.from_axis_angle([1.0, 2.0, 3.0], 0.7)
    v = np.array([3.0, -1.0, 2.0])
    assert np.allclose(rotor.reversed().rotate(rotor.rotate(v)), v)
