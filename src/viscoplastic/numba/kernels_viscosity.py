"""Numba kernels for the isostrain per-phase viscosities.

The kernels are stateless and work on a packed ``(n_phases, N_PARAM_COLS)``
float table (see :func:`pack_phase_params`) plus plain floats/ints, so they
compile in ``nopython`` mode. Model selectors are passed as integer codes.

``error_model="numpy"`` keeps IEEE semantics: overflow gives +inf and the
final clamp brings it back into the viscosity bounds.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np
from numba import njit

from viscoplastic.flow_laws import GAS_CONSTANT, ViscousFlowLaw
from viscoplastic.parameters import PhaseParameters
from viscoplastic.plasticity import YieldMechanism


# -----------------------------------------------------------------------------
# Packed parameter layout
# -----------------------------------------------------------------------------

COL_PREF_DIFF = 0
COL_M_DIFF = 1
COL_E_DIFF = 2
COL_V_DIFF = 3
COL_PREF_DISL = 4
COL_N_DISL = 5
COL_E_DISL = 6
COL_V_DISL = 7
COL_FRICTION = 8
COL_COHESION = 9
COL_N_LIMITER = 10
COL_START_PLASTIC = 11
COL_END_PLASTIC = 12
COL_START_VISCOUS = 13
COL_END_VISCOUS = 14
COL_COHESION_FACTOR = 15
COL_FRICTION_FACTOR = 16
COL_PREFACTOR_FACTOR = 17
COL_SLOT = 18
N_PARAM_COLS = 19

FLOW_DIFFUSION = 0
FLOW_DISLOCATION = 1
FLOW_COMPOSITE = 2

YIELD_DRUCKER_PRAGER = 0
YIELD_STRESS_LIMITER = 1


def flow_law_code(flow_law: ViscousFlowLaw) -> int:
    return {
        ViscousFlowLaw.DIFFUSION: FLOW_DIFFUSION,
        ViscousFlowLaw.DISLOCATION: FLOW_DISLOCATION,
        ViscousFlowLaw.COMPOSITE: FLOW_COMPOSITE,
    }[flow_law]


def yield_mechanism_code(mechanism: YieldMechanism) -> int:
    return {
        YieldMechanism.DRUCKER_PRAGER: YIELD_DRUCKER_PRAGER,
        YieldMechanism.STRESS_LIMITER: YIELD_STRESS_LIMITER,
    }[mechanism]


def pack_phase_params(params: PhaseParameters, slots: Optional[Sequence[int]] = None) -> np.ndarray:
    """Pack the per-phase parameters into a contiguous float table.

    ``slots`` selects (and orders) the parameter entries, e.g. background
    plus the unmasked fields; the slot index is stored in ``COL_SLOT``.
    """
    idx = np.arange(params.n_phases) if slots is None else np.asarray(slots, dtype=np.int64)
    table = np.empty((idx.size, N_PARAM_COLS), dtype=np.float64)
    table[:, COL_PREF_DIFF] = params.prefactors_for_diffusion_creep[idx]
    table[:, COL_M_DIFF] = params.grain_size_exponents_for_diffusion_creep[idx]
    table[:, COL_E_DIFF] = params.activation_energies_for_diffusion_creep[idx]
    table[:, COL_V_DIFF] = params.activation_volumes_for_diffusion_creep[idx]
    table[:, COL_PREF_DISL] = params.prefactors_for_dislocation_creep[idx]
    table[:, COL_N_DISL] = params.stress_exponents_for_dislocation_creep[idx]
    table[:, COL_E_DISL] = params.activation_energies_for_dislocation_creep[idx]
    table[:, COL_V_DISL] = params.activation_volumes_for_dislocation_creep[idx]
    table[:, COL_FRICTION] = params.angles_of_internal_friction[idx]
    table[:, COL_COHESION] = params.cohesions[idx]
    table[:, COL_N_LIMITER] = params.stress_limiter_exponents[idx]
    table[:, COL_START_PLASTIC] = params.start_plastic_strain_weakening_intervals[idx]
    table[:, COL_END_PLASTIC] = params.end_plastic_strain_weakening_intervals[idx]
    table[:, COL_START_VISCOUS] = params.start_prefactor_strain_weakening_intervals[idx]
    table[:, COL_END_VISCOUS] = params.end_prefactor_strain_weakening_intervals[idx]
    table[:, COL_COHESION_FACTOR] = params.cohesion_strain_weakening_factors[idx]
    table[:, COL_FRICTION_FACTOR] = params.friction_strain_weakening_factors[idx]
    table[:, COL_PREFACTOR_FACTOR] = params.prefactor_strain_weakening_factors[idx]
    table[:, COL_SLOT] = idx
    return table


# -----------------------------------------------------------------------------
# Kernels
# -----------------------------------------------------------------------------


@njit(cache=True, error_model="numpy")
def _fraction_of_interval(strain_ii: float, start: float, end: float) -> float:
    clamped = min(max(strain_ii, start), end)
    return (clamped - start) / (end - start)


@njit(cache=True, error_model="numpy")
def isostrain_viscosities_numba(
    edot_ii: float,
    pressure: float,
    temperature: float,
    grain_size: float,
    plastic_strain_ii: float,
    viscous_strain_ii: float,
    weaken_plastic: bool,
    weaken_viscous: bool,
    table: np.ndarray,
    flow_law: int,
    yield_mechanism: int,
    dim: int,
    reference_strain_rate: float,
    max_yield_stress: float,
    min_viscosity: float,
    max_viscosity: float,
    spcrust_slot: int,
    max_spcrust_viscosity: float,
    spcrust_pressure_min: float,
    spcrust_pressure_max: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Per-phase viscosities and yielding flags (1.0 / 0.0).

    ``spcrust_slot`` is the parameter slot whose creep viscosity is capped
    below ``spcrust_pressure_max`` (-1 disables the cap).
    """
    n = table.shape[0]
    viscosities = np.empty(n, dtype=np.float64)
    yielding = np.zeros(n, dtype=np.float64)
    RT = GAS_CONSTANT * temperature

    for j in range(n):
        row = table[j]

        eta_diff = (
            0.5 / row[COL_PREF_DIFF]
            * math.exp((row[COL_E_DIFF] + pressure * row[COL_V_DIFF]) / RT)
            * grain_size ** row[COL_M_DIFF]
        )
        n_disl = row[COL_N_DISL]
        eta_disl = (
            0.5 * row[COL_PREF_DISL] ** (-1.0 / n_disl)
            * math.exp((row[COL_E_DISL] + pressure * row[COL_V_DISL]) / (n_disl * RT))
            * edot_ii ** ((1.0 - n_disl) / n_disl)
        )

        if flow_law == FLOW_DIFFUSION:
            eta = eta_diff
        elif flow_law == FLOW_DISLOCATION:
            eta = eta_disl
        else:
            if eta_diff == 0.0 or eta_disl == 0.0:
                eta = 0.0
            elif math.isinf(eta_diff) and math.isinf(eta_disl):
                eta = math.inf
            else:
                eta = 1.0 / (1.0 / eta_diff + 1.0 / eta_disl)

        cohesion = row[COL_COHESION]
        phi = row[COL_FRICTION]
        if weaken_plastic:
            f = _fraction_of_interval(plastic_strain_ii, row[COL_START_PLASTIC], row[COL_END_PLASTIC])
            cohesion = cohesion * (1.0 - f * (1.0 - row[COL_COHESION_FACTOR]))
            phi = phi * (1.0 - f * (1.0 - row[COL_FRICTION_FACTOR]))
        if weaken_viscous:
            f = _fraction_of_interval(viscous_strain_ii, row[COL_START_VISCOUS], row[COL_END_VISCOUS])
            eta = eta * (1.0 - f * (1.0 - row[COL_PREFACTOR_FACTOR]))

        if spcrust_slot >= 0 and int(row[COL_SLOT]) == spcrust_slot:
            if pressure <= spcrust_pressure_min:
                eta = min(max_spcrust_viscosity, eta)
            elif pressure < spcrust_pressure_max:
                cap = max_spcrust_viscosity * 10.0 ** (
                    (pressure - spcrust_pressure_min)
                    * (math.log10(max_viscosity) - math.log10(max_spcrust_viscosity))
                    / (spcrust_pressure_max - spcrust_pressure_min)
                )
                eta = min(cap, eta)

        s = math.sin(phi)
        c = math.cos(phi)
        p = max(pressure, 0.0)
        if dim == 3:
            sigma_y = (6.0 * cohesion * c + 6.0 * p * s) / (math.sqrt(3.0) * (3.0 + s))
        else:
            sigma_y = cohesion * c + p * s
        sigma_y = min(sigma_y, max_yield_stress)

        eta_dp = eta
        if 2.0 * eta * edot_ii >= sigma_y:
            eta_dp = sigma_y / (2.0 * edot_ii)
            yielding[j] = 1.0

        if yield_mechanism == YIELD_STRESS_LIMITER:
            eta_lim = (
                sigma_y / (2.0 * reference_strain_rate)
                * (edot_ii / reference_strain_rate) ** (1.0 / row[COL_N_LIMITER] - 1.0)
            )
            if eta_lim == 0.0 or eta == 0.0:
                eta_y = 0.0
            else:
                eta_y = 1.0 / (1.0 / eta_lim + 1.0 / eta)
        else:
            eta_y = eta_dp

        viscosities[j] = min(max(eta_y, min_viscosity), max_viscosity)

    return viscosities, yielding
