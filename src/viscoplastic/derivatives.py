"""Viscosity derivatives with respect to strain rate and pressure.

The strain-rate derivative is returned as a (dim, dim) gradient ``D`` such
that ``d eta ~= D : d strain_rate`` for a symmetric perturbation. Closed-form
expressions are available for a single power law; the visco-plastic model
uses one-sided finite differences of its per-phase pipeline.
"""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np

from viscoplastic.averaging import (
    AveragingScheme,
    averaging_p,
    derivative_of_weighted_p_norm_average,
)
from viscoplastic.tensors import (
    n_independent_components,
    nth_basis_for_symmetric_tensors,
    project_deviatoric,
    unrolled_to_component_indices,
)


FINITE_DIFFERENCE_ACCURACY = 1e-7


def power_law_strain_rate_derivative(
    viscosity: float,
    strain_rate: np.ndarray,
    strain_rate_ii: float,
    stress_exponent: float,
    deviatoric: bool,
) -> np.ndarray:
    """``d eta / d edot`` for ``eta = A**(-1/n) * edot_ii**(1/n - 1)``.

    ``strain_rate`` is the tensor entering ``edot_ii`` (already the deviator
    when ``deviatoric`` is set); the result is then projected onto the
    deviatoric subspace.
    """
    d = 2.0 * (1.0 / stress_exponent - 1.0) * viscosity / (strain_rate_ii * strain_rate_ii) * np.asarray(strain_rate, dtype=float)
    if deviatoric:
        d = project_deviatoric(d)
    return d


def finite_difference_strain_rate_derivatives(
    evaluate: Callable[[np.ndarray], np.ndarray],
    strain_rate: np.ndarray,
    base_values: Sequence[float],
    min_strain_rate: float,
) -> np.ndarray:
    """Per-phase strain-rate derivatives by forward differences.

    Parameters
    ----------
    evaluate
        Maps a strain-rate tensor to the per-phase viscosities.
    base_values
        ``evaluate(strain_rate)`` (already computed by the caller).

    Returns
    -------
    (n_phases, dim, dim) array.
    """
    sr = np.asarray(strain_rate, dtype=float)
    dim = sr.shape[0]
    base = np.asarray(base_values, dtype=float)
    out = np.zeros((base.size, dim, dim), dtype=float)

    for k in range(n_independent_components(dim)):
        i, j = unrolled_to_component_indices(k, dim)
        h = max(abs(sr[i, j]), float(min_strain_rate)) * FINITE_DIFFERENCE_ACCURACY
        perturbed = sr + h * nth_basis_for_symmetric_tensors(k, dim)
        diff = np.asarray(evaluate(perturbed), dtype=float) - base
        with np.errstate(invalid="ignore"):
            d = np.where(diff != 0.0, diff / h, 0.0)
        if i == j:
            out[:, i, i] = d
        else:
            # both (i, j) and (j, i) were perturbed
            out[:, i, j] = 0.5 * d
            out[:, j, i] = 0.5 * d
    return out


def finite_difference_pressure_derivatives(
    evaluate: Callable[[float], np.ndarray],
    pressure: float,
    base_values: Sequence[float],
) -> np.ndarray:
    """Per-phase pressure derivatives; zero at ``pressure == 0``."""
    base = np.asarray(base_values, dtype=float)
    h = abs(float(pressure)) * FINITE_DIFFERENCE_ACCURACY
    if h == 0.0:
        return np.zeros_like(base)
    diff = np.asarray(evaluate(float(pressure) + h), dtype=float) - base
    with np.errstate(invalid="ignore"):
        return np.where(diff != 0.0, diff / h, 0.0)


def average_derivatives(
    volume_fractions: Sequence[float],
    values: Sequence[float],
    averaged_value: float,
    derivatives: Sequence,
    scheme: AveragingScheme,
):
    """Derivative of the averaged viscosity from per-phase derivatives."""
    return derivative_of_weighted_p_norm_average(
        averaged_value, volume_fractions, values, list(derivatives), averaging_p(scheme)
    )
