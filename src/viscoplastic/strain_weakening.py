"""Strain weakening of cohesion, friction angle and the creep prefactor.

A strain measure ``e_ii`` is clamped into ``[start, end]`` and mapped to the
fraction ``f in [0, 1]`` of the weakening interval. Each weakened quantity is
then ``value * (1 - f * (1 - factor))``: unchanged below ``start`` and reduced
to ``value * factor`` above ``end``.
"""

from __future__ import annotations

from enum import Enum
from typing import Tuple, Union

import numpy as np

from viscoplastic.tensors import second_invariant, symmetrize, unflatten_tensor


class StrainWeakeningMode(Enum):
    NONE = "none"
    TOTAL_STRAIN = "total_strain"
    PLASTIC_VISCOUS_STRAIN = "plastic_viscous_strain"
    FINITE_STRAIN_TENSOR = "finite_strain_tensor"


_MODE_ALIASES = {
    "none": StrainWeakeningMode.NONE,
    "off": StrainWeakeningMode.NONE,
    "total_strain": StrainWeakeningMode.TOTAL_STRAIN,
    "total": StrainWeakeningMode.TOTAL_STRAIN,
    "plastic_viscous_strain": StrainWeakeningMode.PLASTIC_VISCOUS_STRAIN,
    "plastic_viscous": StrainWeakeningMode.PLASTIC_VISCOUS_STRAIN,
    "finite_strain_tensor": StrainWeakeningMode.FINITE_STRAIN_TENSOR,
    "finite_strain": StrainWeakeningMode.FINITE_STRAIN_TENSOR,
}


def parse_weakening_mode(value: Union[str, StrainWeakeningMode, None]) -> StrainWeakeningMode:
    if value is None:
        return StrainWeakeningMode.NONE
    if isinstance(value, StrainWeakeningMode):
        return value
    key = str(value).strip().lower().replace("-", "_").replace(" ", "_").replace("+", "_")
    if key not in _MODE_ALIASES:
        raise ValueError(
            f"Unknown strain_weakening='{value}'. "
            f"Expected one of {[m.value for m in StrainWeakeningMode]}."
        )
    return _MODE_ALIASES[key]


def weakening_fraction(strain_ii: float, start: float, end: float) -> float:
    """Fraction of the interval ``[start, end]`` covered by ``strain_ii``."""
    clamped = min(max(float(strain_ii), start), end)
    return (clamped - start) / (end - start)


def weaken_plastic_parameters(
    strain_ii: float,
    cohesion: float,
    friction_angle: float,
    start: float,
    end: float,
    cohesion_factor: float,
    friction_factor: float,
) -> Tuple[float, float]:
    """Return the weakened ``(cohesion, friction_angle)``."""
    f = weakening_fraction(strain_ii, start, end)
    return (
        cohesion * (1.0 - f * (1.0 - cohesion_factor)),
        friction_angle * (1.0 - f * (1.0 - friction_factor)),
    )


def viscous_weakening_factor(strain_ii: float, start: float, end: float, prefactor_factor: float) -> float:
    """Multiplier applied to the pre-yield viscosity."""
    f = weakening_fraction(strain_ii, start, end)
    return 1.0 - f * (1.0 - prefactor_factor)


def finite_strain_invariant(components, dim: int) -> float:
    """Strain measure of a finite strain tensor stored row-major.

    ``F`` is rebuilt from ``dim*dim`` values, ``L = sym(F F^T)`` and the
    result is ``|I2(L)|``.
    """
    F = unflatten_tensor(components, dim)
    L = symmetrize(F @ F.T)
    return abs(second_invariant(L))


def finite_strain_reaction(velocity_gradient: np.ndarray, components, dim: int, timestep: float) -> np.ndarray:
    """Increment of the row-major finite strain tensor over one step: ``dt * (grad_u . F)``."""
    F = unflatten_tensor(components, dim)
    return float(timestep) * (np.asarray(velocity_gradient, dtype=float) @ F)
