"""Multi-phase visco-plastic material model.

Each phase (background + compositional fields) gets a creep viscosity
(diffusion, dislocation or composite), optionally strain-weakened, limited
by Drucker-Prager yielding or the stress limiter and clamped to the global
viscosity bounds. All phases see the same strain rate (isostrain); the bulk
viscosity is an average over the volume fractions.

Strain-tracking fields (``plastic_strain``, ``viscous_strain``,
``total_strain`` or the finite strain tensor ``s11 ...``) are excluded from
the volume fractions. Their growth per time step is returned as reaction
terms.
"""

from __future__ import annotations

import math
import warnings
from typing import Callable, List, Optional, Tuple

import numpy as np

from viscoplastic.averaging import AveragingScheme, average_value
from viscoplastic.config import ViscoPlasticConfig
from viscoplastic.derivatives import (
    average_derivatives,
    finite_difference_pressure_derivatives,
    finite_difference_strain_rate_derivatives,
)
from viscoplastic.exceptions import ConfigurationError, check_finite
from viscoplastic.fields import CompositionalFields
from viscoplastic.flow_laws import pre_yield_viscosity, strain_rate_invariant
from viscoplastic.material_point import (
    EvaluationPoint,
    MaterialModelDerivatives,
    MaterialModelInputs,
    MaterialModelOutputs,
    PlasticAdditionalOutputs,
)
from viscoplastic.numba.kernels_viscosity import (
    flow_law_code,
    isostrain_viscosities_numba,
    pack_phase_params,
    yield_mechanism_code,
)
from viscoplastic.parameters import PhaseParameters
from viscoplastic.plasticity import clamp_viscosity, drucker_prager_yield_stress, limit_viscosity
from viscoplastic.strain_weakening import (
    StrainWeakeningMode,
    finite_strain_invariant,
    finite_strain_reaction,
    viscous_weakening_factor,
    weaken_plastic_parameters,
)
from viscoplastic.tensors import finite_strain_tensor_names, flatten_tensor
from viscoplastic.volume_fractions import compute_volume_fractions


SPCRUST = "spcrust"


class ViscoPlastic:
    """Visco-plastic material model.

    Parameters
    ----------
    config
        Model options (shared, not modified).
    fields
        Compositional field layout. Defaults to ``config.compositional_fields``.
    dim
        Spatial dimension (2 or 3).
    reference_density
        Optional callable ``position -> density``. When given, the thermal
        conductivity uses it instead of the local density.
    """

    def __init__(
        self,
        config: ViscoPlasticConfig,
        fields: Optional[CompositionalFields] = None,
        dim: int = 2,
        reference_density: Optional[Callable[[np.ndarray], float]] = None,
    ):
        if dim not in (2, 3):
            raise ConfigurationError(f"dim must be 2 or 3, got {dim}")
        self.config = config
        self.fields = fields if fields is not None else CompositionalFields.from_names(config.compositional_fields)
        self.dim = int(dim)
        self.reference_density = reference_density

        self.params = PhaseParameters.from_mapping(config.per_phase_values(), self.fields.n_phases)
        self._check_fields()
        self._check_weakening_intervals()

        self.composition_mask = self._composition_mask()
        # parameter slot of each phase returned by compute_volume_fractions
        self.phase_slots = np.concatenate(
            ([0], np.flatnonzero(self.composition_mask) + 1)
        ).astype(np.int64)

        self._spcrust_slot = (
            self.fields.index_for_name(SPCRUST) + 1
            if (config.use_fixed_spcrust_viscosity or config.use_spcrust_density_change)
            else -1
        )

        self._table = None
        if config.use_numba:
            self._table = pack_phase_params(self.params, self.phase_slots)

    # ------------------------------------------------------------------
    # Setup checks
    # ------------------------------------------------------------------

    def _check_fields(self) -> None:
        cfg = self.config
        mode = cfg.strain_weakening
        f = self.fields

        def _require(name: str, why: str) -> None:
            if not f.name_exists(name):
                raise ConfigurationError(f"{why} requires a compositional field called '{name}'")

        if mode is StrainWeakeningMode.TOTAL_STRAIN:
            _require("total_strain", "strain_weakening='total_strain'")
        elif mode is StrainWeakeningMode.PLASTIC_VISCOUS_STRAIN:
            if cfg.use_plastic_strain_weakening:
                _require("plastic_strain", "use_plastic_strain_weakening")
            if cfg.use_viscous_strain_weakening:
                _require("viscous_strain", "use_viscous_strain_weakening")
        elif mode is StrainWeakeningMode.FINITE_STRAIN_TENSOR:
            n_comp = self.dim * self.dim
            if f.n_fields < n_comp:
                raise ConfigurationError(
                    f"strain_weakening='finite_strain_tensor' needs at least {n_comp} compositional "
                    f"fields in {self.dim}D, got {f.n_fields}"
                )
            names = finite_strain_tensor_names(self.dim)
            for name in names:
                _require(name, "strain_weakening='finite_strain_tensor'")
            first = f.index_for_name(names[0])
            for k, name in enumerate(names):
                if f.index_for_name(name) != first + k:
                    raise ConfigurationError(
                        f"Finite strain tensor fields must be consecutive and ordered as {list(names)}"
                    )

        if cfg.use_fixed_spcrust_viscosity:
            _require(SPCRUST, "use_fixed_spcrust_viscosity")
        if cfg.use_spcrust_density_change:
            _require(SPCRUST, "use_spcrust_density_change")

    def _active_weakening(self) -> Tuple[bool, bool]:
        """Whether the ``(plastic, viscous)`` weakening is in use."""
        cfg = self.config
        mode = cfg.strain_weakening
        if mode is StrainWeakeningMode.NONE:
            return False, False
        if mode is StrainWeakeningMode.PLASTIC_VISCOUS_STRAIN:
            return bool(cfg.use_plastic_strain_weakening), bool(cfg.use_viscous_strain_weakening)
        return True, True

    def _check_weakening_intervals(self) -> None:
        plastic, viscous = self._active_weakening()
        p = self.params
        checks = []
        factors = []
        if plastic:
            checks.append(
                (p.start_plastic_strain_weakening_intervals, p.end_plastic_strain_weakening_intervals, "plastic")
            )
            factors += [p.cohesion_strain_weakening_factors, p.friction_strain_weakening_factors]
        if viscous:
            checks.append(
                (p.start_prefactor_strain_weakening_intervals, p.end_prefactor_strain_weakening_intervals, "prefactor")
            )
            factors.append(p.prefactor_strain_weakening_factors)

        for start, end, what in checks:
            bad = np.flatnonzero(end <= start)
            if bad.size:
                raise ConfigurationError(
                    f"{what} strain weakening interval must have start < end (phase(s) {bad.tolist()})"
                )

        if factors and np.all(np.concatenate(factors) == 1.0):
            warnings.warn(
                "Strain weakening is enabled but every weakening factor is 1; "
                "no weakening will take place.",
                RuntimeWarning,
                stacklevel=3,
            )

    def _composition_mask(self) -> np.ndarray:
        mask = np.ones(self.fields.n_fields, dtype=bool)
        cfg = self.config
        mode = cfg.strain_weakening
        if mode is StrainWeakeningMode.TOTAL_STRAIN:
            mask[self.fields.index_for_name("total_strain")] = False
        elif mode is StrainWeakeningMode.PLASTIC_VISCOUS_STRAIN:
            if cfg.use_plastic_strain_weakening:
                mask[self.fields.index_for_name("plastic_strain")] = False
            if cfg.use_viscous_strain_weakening:
                mask[self.fields.index_for_name("viscous_strain")] = False
        elif mode is StrainWeakeningMode.FINITE_STRAIN_TENSOR:
            first = self._finite_strain_first_index()
            mask[first:first + self.dim * self.dim] = False
        return mask

    def _finite_strain_first_index(self) -> int:
        return self.fields.index_for_name(finite_strain_tensor_names(self.dim)[0])

    # ------------------------------------------------------------------
    # Model queries
    # ------------------------------------------------------------------

    @property
    def min_strain_rate(self) -> float:
        return float(self.config.minimum_strain_rate)

    def reference_viscosity(self) -> float:
        return float(self.config.reference_viscosity)

    def is_compressible(self) -> bool:
        return False

    @property
    def n_compositional_fields(self) -> int:
        return self.fields.n_fields

    # ------------------------------------------------------------------
    # Volume fractions / strain measures
    # ------------------------------------------------------------------

    def volume_fractions(self, composition: np.ndarray) -> np.ndarray:
        return compute_volume_fractions(composition, self.composition_mask)

    def strain_invariants(self, composition: np.ndarray) -> Tuple[Optional[float], Optional[float]]:
        """Strain measures driving ``(plastic, viscous)`` weakening.

        None means the corresponding weakening is inactive.
        """
        cfg = self.config
        mode = cfg.strain_weakening
        comp = composition
        if mode is StrainWeakeningMode.NONE:
            return None, None
        if mode is StrainWeakeningMode.TOTAL_STRAIN:
            e = float(comp[self.fields.index_for_name("total_strain")])
            return e, e
        if mode is StrainWeakeningMode.PLASTIC_VISCOUS_STRAIN:
            plastic = (
                float(comp[self.fields.index_for_name("plastic_strain")])
                if cfg.use_plastic_strain_weakening else None
            )
            viscous = (
                float(comp[self.fields.index_for_name("viscous_strain")])
                if cfg.use_viscous_strain_weakening else None
            )
            return plastic, viscous
        first = self._finite_strain_first_index()
        e = finite_strain_invariant(comp[first:first + self.dim * self.dim], self.dim)
        return e, e

    def _spcrust_density_change(self, pressure: float) -> float:
        cfg = self.config
        lo = cfg.spcrust_density_pressure_min
        hi = cfg.spcrust_density_pressure_max
        if lo < pressure < hi:
            return (pressure - lo) * cfg.spcrust_density_change / (hi - lo)
        if pressure >= hi:
            return float(cfg.spcrust_density_change)
        return 0.0

    def _spcrust_viscosity_cap(self, viscosity: float, pressure: float) -> float:
        cfg = self.config
        lo = cfg.spcrust_viscosity_pressure_min
        hi = cfg.spcrust_viscosity_pressure_max
        if pressure <= lo:
            return min(cfg.maximum_spcrust_viscosity, viscosity)
        if pressure < hi:
            cap = cfg.maximum_spcrust_viscosity * 10.0 ** (
                (pressure - lo)
                * (math.log10(cfg.maximum_viscosity) - math.log10(cfg.maximum_spcrust_viscosity))
                / (hi - lo)
            )
            return min(cap, viscosity)
        return viscosity

    # ------------------------------------------------------------------
    # Per-phase viscosities
    # ------------------------------------------------------------------

    def isostrain_viscosities(
        self,
        pressure: float,
        temperature: float,
        composition: np.ndarray,
        strain_rate: np.ndarray,
        first_timestep: bool = False,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Viscosity and yielding flag (1.0 / 0.0) of every phase.

        The phases are ordered like :meth:`volume_fractions`.
        """
        if not temperature > 0.0:
            raise ValueError(f"Temperature must be positive, got T={temperature!r} K")
        cfg = self.config
        edot_ii = strain_rate_invariant(
            strain_rate, cfg.minimum_strain_rate, cfg.reference_strain_rate, first_timestep
        )
        plastic_ii, viscous_ii = self.strain_invariants(composition)

        if self._table is not None:
            spcrust_slot = self._spcrust_slot if cfg.use_fixed_spcrust_viscosity else -1
            return isostrain_viscosities_numba(
                float(edot_ii), float(pressure), float(temperature), float(cfg.grain_size),
                0.0 if plastic_ii is None else float(plastic_ii),
                0.0 if viscous_ii is None else float(viscous_ii),
                plastic_ii is not None, viscous_ii is not None,
                self._table,
                flow_law_code(cfg.viscous_flow_law),
                yield_mechanism_code(cfg.yield_mechanism),
                self.dim,
                float(cfg.reference_strain_rate),
                float(cfg.maximum_yield_stress),
                float(cfg.minimum_viscosity),
                float(cfg.maximum_viscosity),
                int(spcrust_slot),
                float(cfg.maximum_spcrust_viscosity),
                float(cfg.spcrust_viscosity_pressure_min),
                float(cfg.spcrust_viscosity_pressure_max),
            )

        p = self.params
        n = self.phase_slots.size
        viscosities = np.empty(n, dtype=float)
        yielding = np.zeros(n, dtype=float)
        for j, slot in enumerate(self.phase_slots):
            eta = pre_yield_viscosity(
                cfg.viscous_flow_law,
                prefactor_diffusion=p.prefactors_for_diffusion_creep[slot],
                grain_size_exponent_diffusion=p.grain_size_exponents_for_diffusion_creep[slot],
                activation_energy_diffusion=p.activation_energies_for_diffusion_creep[slot],
                activation_volume_diffusion=p.activation_volumes_for_diffusion_creep[slot],
                prefactor_dislocation=p.prefactors_for_dislocation_creep[slot],
                stress_exponent_dislocation=p.stress_exponents_for_dislocation_creep[slot],
                activation_energy_dislocation=p.activation_energies_for_dislocation_creep[slot],
                activation_volume_dislocation=p.activation_volumes_for_dislocation_creep[slot],
                grain_size=cfg.grain_size,
                strain_rate_ii=edot_ii,
                pressure=pressure,
                temperature=temperature,
            )

            cohesion = float(p.cohesions[slot])
            phi = float(p.angles_of_internal_friction[slot])
            if plastic_ii is not None:
                cohesion, phi = weaken_plastic_parameters(
                    plastic_ii, cohesion, phi,
                    p.start_plastic_strain_weakening_intervals[slot],
                    p.end_plastic_strain_weakening_intervals[slot],
                    p.cohesion_strain_weakening_factors[slot],
                    p.friction_strain_weakening_factors[slot],
                )
            if viscous_ii is not None:
                eta *= viscous_weakening_factor(
                    viscous_ii,
                    p.start_prefactor_strain_weakening_intervals[slot],
                    p.end_prefactor_strain_weakening_intervals[slot],
                    p.prefactor_strain_weakening_factors[slot],
                )

            if cfg.use_fixed_spcrust_viscosity and slot == self._spcrust_slot:
                eta = self._spcrust_viscosity_cap(eta, pressure)

            sigma_y = drucker_prager_yield_stress(cohesion, phi, pressure, self.dim, cfg.maximum_yield_stress)
            eta, is_yielding = limit_viscosity(
                cfg.yield_mechanism, eta, sigma_y, edot_ii,
                cfg.reference_strain_rate, p.stress_limiter_exponents[slot],
            )
            viscosities[j] = clamp_viscosity(eta, cfg.minimum_viscosity, cfg.maximum_viscosity)
            yielding[j] = 1.0 if is_yielding else 0.0
        return viscosities, yielding

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def create_additional_named_outputs(self, outputs: MaterialModelOutputs) -> PlasticAdditionalOutputs:
        """Attach a :class:`PlasticAdditionalOutputs` slot if missing."""
        slot = outputs.get_additional_output(PlasticAdditionalOutputs)
        if slot is None:
            slot = PlasticAdditionalOutputs(outputs.n_points)
            outputs.add_additional_output(slot)
        return slot

    def evaluate(self, inputs: MaterialModelInputs, outputs: MaterialModelOutputs) -> None:
        cfg = self.config
        scheme: AveragingScheme = cfg.viscosity_averaging_scheme
        derivatives = outputs.get_additional_output(MaterialModelDerivatives)
        if derivatives is not None:
            derivatives.check_dim(self.dim)
        plastic_out = outputs.get_additional_output(PlasticAdditionalOutputs)
        first_timestep = inputs.timestep_number == 0
        p = self.params
        slots = self.phase_slots

        if outputs.n_points != inputs.n_points:
            raise ValueError(f"outputs sized for {outputs.n_points} points, inputs have {inputs.n_points}")

        for q, point in enumerate(inputs.points):
            comp = self._composition_of(point)
            T = point.temperature
            P = point.pressure
            fractions = self.volume_fractions(comp)

            delta_rho = np.zeros(slots.size)
            if cfg.use_spcrust_density_change:
                delta_rho[slots == self._spcrust_slot] = self._spcrust_density_change(P)
            alpha = p.thermal_expansivities[slots]
            density = float(np.sum(fractions * (p.densities[slots] + delta_rho) * (1.0 - alpha * (T - cfg.reference_temperature))))
            expansivity = float(np.sum(fractions * alpha))
            heat_capacity = float(np.sum(fractions * p.heat_capacities[slots]))
            diffusivity = float(np.sum(fractions * p.thermal_diffusivities[slots]))
            check_finite(density, f"density at point {q}")

            plastic_yielding = False
            if point.strain_rate is not None:
                viscosities, yielding = self.isostrain_viscosities(P, T, comp, point.strain_rate, first_timestep)
                viscosity = average_value(fractions, viscosities, scheme)
                check_finite(viscosity, f"viscosity at point {q}")
                outputs.viscosities[q] = viscosity
                plastic_yielding = average_value(fractions, yielding, AveragingScheme.MAXIMUM_COMPOSITION) != 0.0

                if derivatives is not None:
                    self._fill_derivatives(derivatives, q, point, comp, fractions, viscosities, viscosity, first_timestep)

            outputs.densities[q] = density
            outputs.thermal_expansion_coefficients[q] = expansivity
            outputs.specific_heat[q] = heat_capacity
            rho_k = density if self.reference_density is None else float(self.reference_density(point.position))
            outputs.thermal_conductivities[q] = diffusivity * heat_capacity * rho_k
            outputs.compressibilities[q] = 0.0
            outputs.entropy_derivative_pressure[q] = 0.0
            outputs.entropy_derivative_temperature[q] = 0.0
            outputs.plastic_yielding[q] = plastic_yielding
            outputs.reaction_terms[q, :] = 0.0

            if (
                cfg.uses_strain_weakening
                and cfg.strain_weakening is not StrainWeakeningMode.FINITE_STRAIN_TENSOR
                and inputs.timestep_number > 0
                and point.strain_rate is not None
            ):
                self._fill_strain_reactions(outputs, q, point, plastic_yielding, inputs.timestep)

            if plastic_out is not None:
                self._fill_plastic_outputs(plastic_out, q, comp, fractions, plastic_yielding)

        if (
            cfg.strain_weakening is StrainWeakeningMode.FINITE_STRAIN_TENSOR
            and inputs.timestep_number > 0
        ):
            self._fill_finite_strain_reactions(inputs, outputs)

    def _composition_of(self, point: EvaluationPoint) -> np.ndarray:
        comp = point.composition
        if comp.size != self.fields.n_fields:
            raise ValueError(
                f"Point has {comp.size} compositional values, model expects {self.fields.n_fields}"
            )
        return comp

    def _fill_derivatives(
        self,
        derivatives: MaterialModelDerivatives,
        q: int,
        point: EvaluationPoint,
        comp: np.ndarray,
        fractions: np.ndarray,
        viscosities: np.ndarray,
        viscosity: float,
        first_timestep: bool,
    ) -> None:
        T = point.temperature
        P = point.pressure
        scheme = self.config.viscosity_averaging_scheme

        d_sr = finite_difference_strain_rate_derivatives(
            lambda sr: self.isostrain_viscosities(P, T, comp, sr, first_timestep)[0],
            point.strain_rate,
            viscosities,
            self.config.minimum_strain_rate,
        )
        d_p = finite_difference_pressure_derivatives(
            lambda pp: self.isostrain_viscosities(pp, T, comp, point.strain_rate, first_timestep)[0],
            P,
            viscosities,
        )

        d_eta_d_sr = average_derivatives(fractions, viscosities, viscosity, list(d_sr), scheme)
        d_eta_d_p = average_derivatives(fractions, viscosities, viscosity, list(d_p), scheme)
        check_finite(d_eta_d_sr, f"viscosity derivative wrt strain rate at point {q}")
        check_finite(d_eta_d_p, f"viscosity derivative wrt pressure at point {q}")
        derivatives.viscosity_derivative_wrt_strain_rate[q] = d_eta_d_sr
        derivatives.viscosity_derivative_wrt_pressure[q] = d_eta_d_p

    def _fill_strain_reactions(
        self,
        outputs: MaterialModelOutputs,
        q: int,
        point: EvaluationPoint,
        plastic_yielding: bool,
        timestep: float,
    ) -> None:
        cfg = self.config
        edot_ii = strain_rate_invariant(point.strain_rate, cfg.minimum_strain_rate, cfg.reference_strain_rate)
        e_ii = edot_ii * timestep
        if cfg.strain_weakening is StrainWeakeningMode.TOTAL_STRAIN:
            outputs.reaction_terms[q, self.fields.index_for_name("total_strain")] = e_ii
            return
        if cfg.use_plastic_strain_weakening and plastic_yielding:
            outputs.reaction_terms[q, self.fields.index_for_name("plastic_strain")] = e_ii
        if cfg.use_viscous_strain_weakening and not plastic_yielding:
            outputs.reaction_terms[q, self.fields.index_for_name("viscous_strain")] = e_ii

    def _fill_finite_strain_reactions(self, inputs: MaterialModelInputs, outputs: MaterialModelOutputs) -> None:
        first = self._finite_strain_first_index()
        n_comp = self.dim * self.dim
        for q, point in enumerate(inputs.points):
            if point.strain_rate is None or point.velocity_gradient is None:
                continue
            increment = finite_strain_reaction(
                point.velocity_gradient, point.composition[first:first + n_comp], self.dim, inputs.timestep
            )
            outputs.reaction_terms[q, first:first + n_comp] = flatten_tensor(increment)

    def _fill_plastic_outputs(
        self,
        plastic_out: PlasticAdditionalOutputs,
        q: int,
        comp: np.ndarray,
        fractions: np.ndarray,
        plastic_yielding: bool,
    ) -> None:
        p = self.params
        plastic_ii, _ = self.strain_invariants(comp)
        cohesion = 0.0
        phi = 0.0
        for f, slot in zip(fractions, self.phase_slots):
            c_j = float(p.cohesions[slot])
            phi_j = float(p.angles_of_internal_friction[slot])
            if plastic_ii is not None:
                c_j, phi_j = weaken_plastic_parameters(
                    plastic_ii, c_j, phi_j,
                    p.start_plastic_strain_weakening_intervals[slot],
                    p.end_plastic_strain_weakening_intervals[slot],
                    p.cohesion_strain_weakening_factors[slot],
                    p.friction_strain_weakening_factors[slot],
                )
            cohesion += f * c_j
            phi += f * phi_j
        plastic_out.cohesions[q] = cohesion
        plastic_out.friction_angles[q] = phi * 180.0 / math.pi
        plastic_out.yielding[q] = 1.0 if plastic_yielding else 0.0

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    def evaluate_points(
        self,
        points: List[EvaluationPoint],
        timestep_number: int = 0,
        timestep: float = 0.0,
        with_derivatives: bool = False,
        with_plastic_outputs: bool = False,
    ) -> MaterialModelOutputs:
        """Allocate outputs, evaluate and return them."""
        inputs = MaterialModelInputs(points=list(points), timestep_number=timestep_number, timestep=timestep)
        outputs = MaterialModelOutputs(inputs.n_points, self.fields.n_fields)
        if with_derivatives:
            outputs.request_derivatives(self.dim)
        if with_plastic_outputs:
            self.create_additional_named_outputs(outputs)
        self.evaluate(inputs, outputs)
        return outputs
