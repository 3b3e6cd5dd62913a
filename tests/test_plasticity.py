import math

import pytest

from viscoplastic.plasticity import (
    YieldMechanism,
    clamp_viscosity,
    drucker_prager_yield_stress,
    limit_viscosity,
    parse_yield_mechanism,
    stress_limiter_viscosity,
)


def test_zero_friction_reduces_to_von_mises():
    C = 20e6
    assert drucker_prager_yield_stress(C, 0.0, 5e8, 2, 1e12) == pytest.approx(C)
    assert drucker_prager_yield_stress(C, 0.0, 5e8, 3, 1e12) == pytest.approx(2.0 * C / math.sqrt(3.0))
    # pressure independent
    assert drucker_prager_yield_stress(C, 0.0, 0.0, 3, 1e12) == drucker_prager_yield_stress(C, 0.0, 1e9, 3, 1e12)


@pytest.mark.parametrize("dim", [2, 3])
def test_yield_stress_increases_with_pressure(dim):
    phi = math.radians(30.0)
    values = [drucker_prager_yield_stress(20e6, phi, p, dim, 1e12) for p in (0.0, 1e7, 1e8, 1e9)]
    assert all(b > a for a, b in zip(values, values[1:]))


def test_tensile_pressure_treated_as_zero():
    phi = math.radians(30.0)
    assert drucker_prager_yield_stress(20e6, phi, -5e8, 2, 1e12) == drucker_prager_yield_stress(20e6, phi, 0.0, 2, 1e12)


def test_yield_stress_is_capped():
    assert drucker_prager_yield_stress(1e20, 0.0, 0.0, 2, 1e9) == 1e9


def test_drucker_prager_rescales_to_yield_surface():
    eta, yielding = limit_viscosity(YieldMechanism.DRUCKER_PRAGER, 1e22, 1e7, 1e-14, 1e-15, 1.0)
    assert yielding
    assert eta == pytest.approx(1e7 / (2.0 * 1e-14))

    eta, yielding = limit_viscosity(YieldMechanism.DRUCKER_PRAGER, 1e18, 1e7, 1e-14, 1e-15, 1.0)
    assert not yielding
    assert eta == 1e18


def test_stress_limiter_is_harmonic_with_creep_viscosity():
    sigma_y, edot, ref = 1e8, 1e-14, 1e-15
    eta_lim = stress_limiter_viscosity(sigma_y, edot, ref, 2.0)
    assert eta_lim == pytest.approx(sigma_y / (2 * ref) * (edot / ref) ** (0.5 - 1.0))
    eta, _ = limit_viscosity(YieldMechanism.STRESS_LIMITER, 1e22, sigma_y, edot, ref, 2.0)
    assert eta == pytest.approx(1.0 / (1.0 / eta_lim + 1.0 / 1e22))
    assert eta < min(eta_lim, 1e22)


def test_clamp_handles_infinities():
    assert clamp_viscosity(math.inf, 1e17, 1e28) == 1e28
    assert clamp_viscosity(-math.inf, 1e17, 1e28) == 1e17
    assert clamp_viscosity(0.0, 1e17, 1e28) == 1e17
    assert clamp_viscosity(1e20, 1e17, 1e28) == 1e20


def test_yield_mechanism_parsing():
    assert parse_yield_mechanism("drucker") is YieldMechanism.DRUCKER_PRAGER
    assert parse_yield_mechanism("stress limiter") is YieldMechanism.STRESS_LIMITER
    with pytest.raises(ValueError, match="yield_mechanism"):
        parse_yield_mechanism("tresca")
