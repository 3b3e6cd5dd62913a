import numpy as np
import pytest

from viscoplastic.averaging import (
    AveragingScheme,
    average_value,
    averaging_p,
    derivative_of_weighted_p_norm_average,
    parse_averaging_scheme,
    weighted_p_norm_average,
)


def test_harmonic_two_phase_closed_form():
    eta = average_value([0.3, 0.7], [1e20, 1e22], AveragingScheme.HARMONIC)
    assert eta == pytest.approx(1.0 / (0.3 / 1e20 + 0.7 / 1e22), rel=1e-12)


@pytest.mark.parametrize("scheme", list(AveragingScheme))
def test_discrete_schemes_stay_within_bounds(scheme):
    rng = np.random.default_rng(3)
    for _ in range(100):
        n = int(rng.integers(1, 6))
        f = rng.dirichlet(np.ones(n))
        v = 10.0 ** rng.uniform(17, 28, size=n)
        avg = average_value(f, v, scheme)
        assert v.min() * (1 - 1e-12) <= avg <= v.max() * (1 + 1e-12)


def test_maximum_composition_tie_goes_to_first_phase():
    assert average_value([0.4, 0.4, 0.2], [1.0, 2.0, 3.0], AveragingScheme.MAXIMUM_COMPOSITION) == 1.0


def test_zero_fraction_phases_do_not_affect_harmonic_or_geometric():
    f = [0.5, 0.0, 0.5]
    v = [1e20, 1e-30, 1e22]
    assert average_value(f, v, AveragingScheme.HARMONIC) == pytest.approx(
        average_value([0.5, 0.5], [1e20, 1e22], AveragingScheme.HARMONIC)
    )
    assert average_value(f, v, AveragingScheme.GEOMETRIC) == pytest.approx(1e21, rel=1e-12)


def test_p_norm_special_cases_match_discrete_schemes():
    w = np.array([0.2, 0.5, 0.3])
    v = np.array([1e19, 3e20, 2e22])
    assert weighted_p_norm_average(w, v, -1.0) == pytest.approx(average_value(w, v, AveragingScheme.HARMONIC))
    assert weighted_p_norm_average(w, v, 0.0) == pytest.approx(average_value(w, v, AveragingScheme.GEOMETRIC))
    assert weighted_p_norm_average(w, v, 1.0) == pytest.approx(average_value(w, v, AveragingScheme.ARITHMETIC))
    assert weighted_p_norm_average(w, v, 1000.0) == v.max()
    assert weighted_p_norm_average(w, v, -1000.0) == v.min()


def test_p_norm_extremes_ignore_zero_weights():
    w = [0.0, 0.5, 0.5]
    v = [1e-5, 2.0, 3.0]
    assert weighted_p_norm_average(w, v, -2000.0) == 2.0
    assert weighted_p_norm_average([0.5, 0.5, 0.0], [1.0, 2.0, 99.0], 1e4) == 2.0


def test_general_p_norm():
    w = np.array([0.25, 0.75])
    v = np.array([2.0, 4.0])
    assert weighted_p_norm_average(w, v, 2.0) == pytest.approx(np.sqrt(0.25 * 4.0 + 0.75 * 16.0))


@pytest.mark.parametrize("p", [-1.0, 0.0, 1.0, 2.0, 0.5, -3.0])
def test_p_norm_derivative_matches_finite_difference(p):
    w = np.array([0.2, 0.3, 0.5])
    a = np.array([1.0, 2.5, 0.7])
    k = np.array([1.0, -0.5, 2.0])
    x0 = 1.3

    def values(x):
        return a * x ** k

    avg = weighted_p_norm_average(w, values(x0), p)
    dv = a * k * x0 ** (k - 1.0)
    d = derivative_of_weighted_p_norm_average(avg, w, values(x0), list(dv), p)

    h = 1e-6
    fd = (weighted_p_norm_average(w, values(x0 + h), p) - weighted_p_norm_average(w, values(x0 - h), p)) / (2 * h)
    assert d == pytest.approx(fd, rel=1e-6)


def test_p_norm_derivative_of_extremes_picks_selected_entry():
    w = [0.2, 0.8]
    v = [5.0, 1.0]
    dv = [np.full((2, 2), 7.0), np.full((2, 2), -1.0)]
    np.testing.assert_array_equal(derivative_of_weighted_p_norm_average(5.0, w, v, dv, 1000.0), dv[0])
    np.testing.assert_array_equal(derivative_of_weighted_p_norm_average(1.0, w, v, dv, -1000.0), dv[1])


def test_tensor_valued_derivatives_keep_shape():
    w = [0.5, 0.5]
    v = [1e20, 1e21]
    dv = [np.eye(2) * 1e35, np.ones((2, 2)) * 2e35]
    avg = weighted_p_norm_average(w, v, -1.0)
    d = derivative_of_weighted_p_norm_average(avg, w, v, dv, -1.0)
    assert d.shape == (2, 2)
    expected = avg ** 2 * (0.5 * dv[0] / 1e40 + 0.5 * dv[1] / 1e42)
    np.testing.assert_allclose(d, expected)


def test_scheme_to_p_mapping():
    assert averaging_p(AveragingScheme.HARMONIC) == -1.0
    assert averaging_p(AveragingScheme.GEOMETRIC) == 0.0
    assert averaging_p(AveragingScheme.ARITHMETIC) == 1.0
    assert averaging_p(AveragingScheme.MAXIMUM_COMPOSITION) == 1000.0


def test_scheme_aliases_and_unknown():
    assert parse_averaging_scheme("Harmonic average") is AveragingScheme.HARMONIC
    assert parse_averaging_scheme("maximum composition") is AveragingScheme.MAXIMUM_COMPOSITION
    assert parse_averaging_scheme("geometric") is AveragingScheme.GEOMETRIC
    with pytest.raises(ValueError, match="viscosity_averaging_scheme"):
        parse_averaging_scheme("median")
