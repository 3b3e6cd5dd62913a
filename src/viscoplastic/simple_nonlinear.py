"""Single power-law material model with closed-form Newton derivatives.

Per phase::

    eta = clamp(A**(-1/n) * edot_ii**(1/n - 1), eta_min, eta_max)
    edot_ii = 2 * max(sqrt(0.5 * edot : edot), edot_min**2)

where ``edot`` is the strain rate or its deviator. Phases are combined with a
weighted p-norm average.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from viscoplastic.averaging import derivative_of_weighted_p_norm_average, weighted_p_norm_average
from viscoplastic.config import SimpleNonlinearConfig
from viscoplastic.derivatives import power_law_strain_rate_derivative
from viscoplastic.exceptions import ConfigurationError, check_finite
from viscoplastic.fields import CompositionalFields
from viscoplastic.material_point import MaterialModelDerivatives, MaterialModelInputs, MaterialModelOutputs
from viscoplastic.parameters import PowerLawPhaseParameters
from viscoplastic.tensors import deviator
from viscoplastic.volume_fractions import compute_volume_fractions


class SimpleNonlinear:
    def __init__(
        self,
        config: SimpleNonlinearConfig,
        fields: Optional[CompositionalFields] = None,
        dim: int = 2,
    ):
        if dim not in (2, 3):
            raise ConfigurationError(f"dim must be 2 or 3, got {dim}")
        self.config = config
        self.fields = fields if fields is not None else CompositionalFields.from_names(config.compositional_fields)
        self.dim = int(dim)
        self.params = PowerLawPhaseParameters.from_mapping(config.per_phase_values(), self.fields.n_phases)
        if np.any(self.params.min_viscosities > self.params.max_viscosities):
            raise ConfigurationError("simple nonlinear: min_viscosities exceed max_viscosities")

    def reference_viscosity(self) -> float:
        return float(self.config.reference_viscosity)

    def is_compressible(self) -> bool:
        return False

    @property
    def min_strain_rate(self) -> float:
        return float(np.min(self.params.min_strain_rates))

    @property
    def n_compositional_fields(self) -> int:
        return self.fields.n_fields

    def phase_viscosities(self, strain_rate: np.ndarray):
        """Per-phase viscosities, their strain-rate derivatives and ``edot``.

        The derivative of a phase is zero when its strain rate sits on the
        floor or its viscosity on a bound.
        """
        p = self.params
        edot = deviator(strain_rate) if self.config.use_deviator_of_strain_rate else np.asarray(strain_rate, dtype=float)
        edot_ii_strict = float(np.sqrt(0.5 * np.sum(edot * edot)))

        n = p.n_phases
        viscosities = np.empty(n, dtype=float)
        derivatives = np.zeros((n, self.dim, self.dim), dtype=float)
        for c in range(n):
            floor = p.min_strain_rates[c] * p.min_strain_rates[c]
            edot_ii = 2.0 * max(edot_ii_strict, floor)
            n_inv = 1.0 / p.stress_exponents[c]
            eta = p.viscosity_prefactors[c] ** (-n_inv) * edot_ii ** (n_inv - 1.0)
            eta = max(min(eta, p.max_viscosities[c]), p.min_viscosities[c])
            viscosities[c] = eta
            if edot_ii_strict > floor and p.min_viscosities[c] < eta < p.max_viscosities[c]:
                derivatives[c] = power_law_strain_rate_derivative(
                    eta, edot, edot_ii, p.stress_exponents[c], self.config.use_deviator_of_strain_rate
                )
        return viscosities, derivatives

    def evaluate(self, inputs: MaterialModelInputs, outputs: MaterialModelOutputs) -> None:
        cfg = self.config
        p = self.params
        derivatives = outputs.get_additional_output(MaterialModelDerivatives)
        if derivatives is not None:
            derivatives.check_dim(self.dim)

        for q, point in enumerate(inputs.points):
            comp = point.composition
            if comp.size + 1 != p.n_phases:
                raise ValueError(
                    f"Number of compositional fields + 1 ({comp.size + 1}) does not match "
                    f"the number of per-phase values ({p.n_phases})"
                )
            T = point.temperature
            fractions = compute_volume_fractions(comp)

            density = float(np.sum(fractions * p.densities * (1.0 - p.thermal_expansivities * (T - cfg.reference_temperature))))
            check_finite(density, f"density at point {q}")
            outputs.densities[q] = density
            outputs.thermal_expansion_coefficients[q] = float(np.sum(fractions * p.thermal_expansivities))
            outputs.specific_heat[q] = float(np.sum(fractions * p.heat_capacities))
            outputs.thermal_conductivities[q] = float(
                np.sum(fractions * p.thermal_diffusivities * p.heat_capacities * p.densities)
            )

            if point.strain_rate is not None:
                viscosities, dvisc = self.phase_viscosities(point.strain_rate)
                check_finite(viscosities, f"phase viscosities at point {q}")
                viscosity = weighted_p_norm_average(fractions, viscosities, cfg.viscosity_averaging_p)
                check_finite(viscosity, f"viscosity at point {q}")
                outputs.viscosities[q] = viscosity

                if derivatives is not None:
                    d = derivative_of_weighted_p_norm_average(
                        viscosity, fractions, viscosities, list(dvisc), cfg.viscosity_averaging_p
                    )
                    check_finite(d, f"viscosity derivative wrt strain rate at point {q}")
                    derivatives.viscosity_derivative_wrt_strain_rate[q] = d
                    derivatives.viscosity_derivative_wrt_pressure[q] = 0.0

            outputs.compressibilities[q] = 0.0
            outputs.entropy_derivative_pressure[q] = 0.0
            outputs.entropy_derivative_temperature[q] = 0.0
            outputs.reaction_terms[q, :] = 0.0
            outputs.plastic_yielding[q] = False
