import numpy as np
import pytest

from errors import SingularSystem
from sparse_system import FactorizedSystem, SystemBuilder


def test_duplicate_triplets_are_summed():
    builder = SystemBuilder(2)
    builder.add(0, 0, 1.0)
    builder.add(0, 0, 2.0)
    builder.add([0, 1], [1, 0], [-1.0, -1.0])
    builder.add(1, 1, 2.0)

    A = builder.to_csc().toarray()

    assert builder.num_entries() == 5
    assert np.array_equal(A, [[3.0, -1.0], [-1.0, 2.0]])


def test_factorized_solve_per_axis_and_block():
    builder = SystemBuilder(3)
    builder.add([0, 1, 2], [0, 1, 2], [4.0, 5.0, 6.0])
    builder.add([0, 1], [1, 0], [1.0, 1.0])
    system = builder.factorize()

    b = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0], [7.0, 8.0, 9.0]])
    x = system.solve(b)
    dense = system.matrix.toarray()

    assert np.allclose(dense @ x, b)
    for axis in range(3):
        assert np.allclose(system.solve(b[:, axis]), x[:, axis])


def test_singular_matrix_is_reported():
    builder = SystemBuilder(2)
    builder.add(0, 0, 1.0)

    with pytest.raises(SingularSystem):
        builder.factorize()


def test_rhs_size_mismatch():
    builder = SystemBuilder(2)
    builder.add([0, 1], [0, 1], [1.0, 1.0])
    system = builder.factorize()

    with pytest.raises(ValueError):
        system.solve(np.ones(3))


def test_system_keeps_its_matrix():
    builder = SystemBuilder(1)
    builder.add(0, 0, 2.0)
    system = FactorizedSystem(builder.to_csc())

    assert system.size == 1
    assert np.allclose(system.solve(np.array([4.0])), [2.0])
