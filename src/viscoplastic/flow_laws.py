"""Viscous creep laws (diffusion, dislocation, composite).

Units: prefactors in Pa^-n m^m s^-1, activation energies in J/mol,
activation volumes in m^3/mol, pressure in Pa, temperature in K.
"""

from __future__ import annotations

import math
import sys
from enum import Enum
from typing import Union

import numpy as np

from viscoplastic.tensors import effective_strain_rate


GAS_CONSTANT = 8.3144621  # J / (mol K)

# math.exp overflows above this argument
_EXP_OVERFLOW = 709.78


class ViscousFlowLaw(Enum):
    DIFFUSION = "diffusion"
    DISLOCATION = "dislocation"
    COMPOSITE = "composite"


_FLOW_LAW_ALIASES = {
    "diffusion": ViscousFlowLaw.DIFFUSION,
    "diffusion creep": ViscousFlowLaw.DIFFUSION,
    "dislocation": ViscousFlowLaw.DISLOCATION,
    "dislocation creep": ViscousFlowLaw.DISLOCATION,
    "composite": ViscousFlowLaw.COMPOSITE,
}


def parse_flow_law(value: Union[str, ViscousFlowLaw]) -> ViscousFlowLaw:
    if isinstance(value, ViscousFlowLaw):
        return value
    key = str(value).strip().lower().replace("_", " ")
    if key not in _FLOW_LAW_ALIASES:
        raise ValueError(
            f"Unknown viscous_flow_law='{value}'. Expected one of {[v.value for v in ViscousFlowLaw]}."
        )
    return _FLOW_LAW_ALIASES[key]


def safe_exp(x: float) -> float:
    """``exp(x)`` returning +inf instead of raising on overflow."""
    if x > _EXP_OVERFLOW:
        return math.inf
    return math.exp(x)


def _check_temperature(temperature: float) -> None:
    if not temperature > 0.0:
        raise ValueError(f"Temperature must be positive, got T={temperature!r} K")


# -----------------------------------------------------------------------------
# Strain-rate invariant
# -----------------------------------------------------------------------------


def strain_rate_invariant(
    strain_rate: np.ndarray,
    min_strain_rate: float,
    reference_strain_rate: float,
    first_timestep: bool = False,
) -> float:
    """Effective (deviatoric) strain rate with a lower floor.

    On the first time step an all-zero strain rate is replaced by the
    reference strain rate, since no velocity solution exists yet.
    """
    if first_timestep and float(np.linalg.norm(strain_rate)) <= sys.float_info.min:
        return float(reference_strain_rate)
    return max(effective_strain_rate(strain_rate), float(min_strain_rate))


# -----------------------------------------------------------------------------
# Creep laws
# -----------------------------------------------------------------------------


def diffusion_viscosity(
    prefactor: float,
    grain_size_exponent: float,
    activation_energy: float,
    activation_volume: float,
    grain_size: float,
    pressure: float,
    temperature: float,
) -> float:
    """``0.5 / A * exp((E + P V) / (R T)) * d**m`` (independent of strain rate)."""
    _check_temperature(temperature)
    arrhenius = safe_exp((activation_energy + pressure * activation_volume) / (GAS_CONSTANT * temperature))
    return 0.5 / prefactor * arrhenius * grain_size ** grain_size_exponent


def dislocation_viscosity(
    prefactor: float,
    stress_exponent: float,
    activation_energy: float,
    activation_volume: float,
    strain_rate_ii: float,
    pressure: float,
    temperature: float,
) -> float:
    """``0.5 * A**(-1/n) * exp((E + P V) / (n R T)) * edot_ii**((1 - n) / n)``."""
    _check_temperature(temperature)
    n = stress_exponent
    arrhenius = safe_exp((activation_energy + pressure * activation_volume) / (n * GAS_CONSTANT * temperature))
    return 0.5 * prefactor ** (-1.0 / n) * arrhenius * strain_rate_ii ** ((1.0 - n) / n)


def composite_viscosity(viscosity_diffusion: float, viscosity_dislocation: float) -> float:
    """Harmonic combination ``eta_diff * eta_disl / (eta_diff + eta_disl)``.

    Written as ``1 / (1/a + 1/b)`` so that an infinite component reduces to
    the other one instead of producing NaN. Two infinite components give +inf.
    """
    a = float(viscosity_diffusion)
    b = float(viscosity_dislocation)
    if a == 0.0 or b == 0.0:
        return 0.0
    if math.isinf(a) and math.isinf(b):
        return math.inf
    return 1.0 / (1.0 / a + 1.0 / b)


def pre_yield_viscosity(
    flow_law: ViscousFlowLaw,
    *,
    prefactor_diffusion: float,
    grain_size_exponent_diffusion: float,
    activation_energy_diffusion: float,
    activation_volume_diffusion: float,
    prefactor_dislocation: float,
    stress_exponent_dislocation: float,
    activation_energy_dislocation: float,
    activation_volume_dislocation: float,
    grain_size: float,
    strain_rate_ii: float,
    pressure: float,
    temperature: float,
) -> float:
    """Creep viscosity for the selected flow law (before weakening/yielding)."""
    if flow_law is ViscousFlowLaw.DIFFUSION:
        return diffusion_viscosity(
            prefactor_diffusion, grain_size_exponent_diffusion,
            activation_energy_diffusion, activation_volume_diffusion,
            grain_size, pressure, temperature,
        )
    if flow_law is ViscousFlowLaw.DISLOCATION:
        return dislocation_viscosity(
            prefactor_dislocation, stress_exponent_dislocation,
            activation_energy_dislocation, activation_volume_dislocation,
            strain_rate_ii, pressure, temperature,
        )
    if flow_law is ViscousFlowLaw.COMPOSITE:
        eta_diff = diffusion_viscosity(
            prefactor_diffusion, grain_size_exponent_diffusion,
            activation_energy_diffusion, activation_volume_diffusion,
            grain_size, pressure, temperature,
        )
        eta_disl = dislocation_viscosity(
            prefactor_dislocation, stress_exponent_dislocation,
            activation_energy_dislocation, activation_volume_dislocation,
            strain_rate_ii, pressure, temperature,
        )
        return composite_viscosity(eta_diff, eta_disl)
    raise ValueError(f"Unsupported flow law {flow_law!r}")
