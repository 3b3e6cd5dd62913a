"""Numba kernels for the per-phase viscosity pipeline."""

from .kernels_viscosity import (
    isostrain_viscosities_numba,
    pack_phase_params,
    flow_law_code,
    yield_mechanism_code,
)

__all__ = [
    "isostrain_viscosities_numba",
    "pack_phase_params",
    "flow_law_code",
    "yield_mechanism_code",
]
