import numpy as np
import pytest

from viscoplastic.tensors import (
    deviator,
    effective_strain_rate,
    finite_strain_tensor_names,
    flatten_tensor,
    nth_basis_for_symmetric_tensors,
    project_deviatoric,
    second_invariant,
    unflatten_tensor,
    unrolled_to_component_indices,
)


@pytest.mark.parametrize("dim", [2, 3])
def test_deviator_is_trace_free(dim):
    rng = np.random.default_rng(dim)
    a = rng.normal(size=(dim, dim))
    t = a + a.T
    assert np.trace(deviator(t)) == pytest.approx(0.0, abs=1e-12)


@pytest.mark.parametrize("dim", [2, 3])
def test_deviatoric_projector_matches_deviator(dim):
    rng = np.random.default_rng(10 + dim)
    a = rng.normal(size=(dim, dim))
    t = a + a.T
    np.testing.assert_allclose(project_deviatoric(t), deviator(t), atol=1e-12)


def test_pure_shear_effective_strain_rate():
    sr = np.array([[2e-15, 0.0], [0.0, -2e-15]])
    assert effective_strain_rate(sr) == pytest.approx(2e-15)
    assert second_invariant(sr) == pytest.approx(4e-30)


def test_unrolled_ordering():
    assert [unrolled_to_component_indices(k, 2) for k in range(3)] == [(0, 0), (1, 1), (0, 1)]
    assert [unrolled_to_component_indices(k, 3) for k in range(6)] == [
        (0, 0), (1, 1), (2, 2), (0, 1), (0, 2), (1, 2)
    ]


def test_off_diagonal_basis_is_symmetric():
    e = nth_basis_for_symmetric_tensors(4, 3)
    expected = np.zeros((3, 3))
    expected[0, 2] = expected[2, 0] = 1.0
    np.testing.assert_array_equal(e, expected)


def test_row_major_storage():
    t = unflatten_tensor([1.0, 2.0, 3.0, 4.0], 2)
    np.testing.assert_array_equal(t, [[1.0, 2.0], [3.0, 4.0]])
    np.testing.assert_array_equal(flatten_tensor(t), [1.0, 2.0, 3.0, 4.0])
    assert finite_strain_tensor_names(2) == ("s11", "s12", "s21", "s22")
    with pytest.raises(ValueError):
        unflatten_tensor([1.0, 2.0], 2)
