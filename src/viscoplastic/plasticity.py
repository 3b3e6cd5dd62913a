"""Drucker-Prager yielding, the stress-limiter rheology and viscosity bounds."""

from __future__ import annotations

import math
from enum import Enum
from typing import Tuple, Union


class YieldMechanism(Enum):
    DRUCKER_PRAGER = "drucker_prager"
    STRESS_LIMITER = "stress_limiter"


_YIELD_ALIASES = {
    "drucker_prager": YieldMechanism.DRUCKER_PRAGER,
    "drucker": YieldMechanism.DRUCKER_PRAGER,
    "dp": YieldMechanism.DRUCKER_PRAGER,
    "stress_limiter": YieldMechanism.STRESS_LIMITER,
    "limiter": YieldMechanism.STRESS_LIMITER,
}


def parse_yield_mechanism(value: Union[str, YieldMechanism]) -> YieldMechanism:
    if isinstance(value, YieldMechanism):
        return value
    key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    if key not in _YIELD_ALIASES:
        raise ValueError(
            f"Unknown yield_mechanism='{value}'. Expected one of {[m.value for m in YieldMechanism]}."
        )
    return _YIELD_ALIASES[key]


def drucker_prager_yield_stress(
    cohesion: float,
    friction_angle: float,
    pressure: float,
    dim: int,
    max_yield_stress: float,
) -> float:
    """Yield stress of the Drucker-Prager criterion (friction angle in radians).

    In 3-D the cone circumscribes the Mohr-Coulomb surface; in 2-D (plane
    strain) the criterion reduces to ``C cos(phi) + P sin(phi)``. Tensile
    pressures are treated as zero. The result is capped at
    ``max_yield_stress``.
    """
    s = math.sin(friction_angle)
    c = math.cos(friction_angle)
    p = max(float(pressure), 0.0)
    if dim == 3:
        sigma_y = (6.0 * cohesion * c + 6.0 * p * s) / (math.sqrt(3.0) * (3.0 + s))
    elif dim == 2:
        sigma_y = cohesion * c + p * s
    else:
        raise ValueError(f"Unsupported dimension dim={dim} (expected 2 or 3)")
    return min(sigma_y, float(max_yield_stress))


def stress_limiter_viscosity(
    yield_stress: float,
    strain_rate_ii: float,
    reference_strain_rate: float,
    limiter_exponent: float,
) -> float:
    """``sigma_y / (2 edot_ref) * (edot_ii / edot_ref)**(1/n_lim - 1)``."""
    return (
        yield_stress / (2.0 * reference_strain_rate)
        * (strain_rate_ii / reference_strain_rate) ** (1.0 / limiter_exponent - 1.0)
    )


def limit_viscosity(
    mechanism: YieldMechanism,
    pre_yield_viscosity: float,
    yield_stress: float,
    strain_rate_ii: float,
    reference_strain_rate: float,
    limiter_exponent: float,
) -> Tuple[float, bool]:
    """Apply the yield mechanism to a creep viscosity.

    Returns
    -------
    viscosity, yielding
        ``yielding`` reports whether the viscous stress ``2 eta edot_ii``
        reaches the yield stress. It is evaluated with the Drucker-Prager test
        regardless of ``mechanism``.
    """
    yielding = 2.0 * pre_yield_viscosity * strain_rate_ii >= yield_stress

    if mechanism is YieldMechanism.DRUCKER_PRAGER:
        if yielding:
            return yield_stress / (2.0 * strain_rate_ii), True
        return pre_yield_viscosity, False

    if mechanism is YieldMechanism.STRESS_LIMITER:
        eta_lim = stress_limiter_viscosity(
            yield_stress, strain_rate_ii, reference_strain_rate, limiter_exponent
        )
        if eta_lim == 0.0 or pre_yield_viscosity == 0.0:
            return 0.0, yielding
        return 1.0 / (1.0 / eta_lim + 1.0 / pre_yield_viscosity), yielding

    raise ValueError(f"Unsupported yield mechanism {mechanism!r}")


def clamp_viscosity(viscosity: float, min_viscosity: float, max_viscosity: float) -> float:
    """Clamp into ``[min_viscosity, max_viscosity]`` (+/-inf clamp as well)."""
    return min(max(float(viscosity), float(min_viscosity)), float(max_viscosity))
