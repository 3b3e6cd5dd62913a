"""Configuration objects for the material models.

Both configs are plain dataclasses with defaults. Selector strings are
normalised in ``__post_init__`` (aliases accepted); unknown selectors and
inconsistent bounds raise :class:`~viscoplastic.exceptions.ConfigurationError`.
Checks that need the compositional-field layout are done when the model is
built (see :mod:`viscoplastic.material_factory`).

Configs round-trip through ``to_dict`` / ``from_dict`` and can be stored as
JSON or YAML.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Union

import numpy as np
import yaml

from viscoplastic.averaging import AveragingScheme, parse_averaging_scheme
from viscoplastic.exceptions import ConfigurationError
from viscoplastic.flow_laws import ViscousFlowLaw, parse_flow_law
from viscoplastic.parameters import PhaseParameters, PowerLawPhaseParameters
from viscoplastic.plasticity import YieldMechanism, parse_yield_mechanism
from viscoplastic.strain_weakening import StrainWeakeningMode, parse_weakening_mode


PerPhase = Union[float, List[float]]


def _parse(parser, value):
    try:
        return parser(value)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from None


def _plain(value: Any) -> Any:
    """Convert enums / numpy values into YAML- and JSON-friendly objects."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, (np.floating, np.integer)):
        return value.item()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class _ConfigIO:
    """to_dict / from_dict and JSON / YAML helpers shared by the configs."""

    model_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"model": self.model_name}
        for f in fields(self):  # type: ignore[arg-type]
            data[f.name] = _plain(getattr(self, f.name))
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        data = dict(data)
        data.pop("model", None)
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown option(s) for {cls.__name__}: {unknown}")
        return cls(**data)

    def save_json(self, filepath: str) -> None:
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def save_yaml(self, filepath: str) -> None:
        with open(filepath, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def load_json(cls, filepath: str):
        with open(filepath, "r") as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def load_yaml(cls, filepath: str):
        with open(filepath, "r") as f:
            return cls.from_dict(yaml.safe_load(f) or {})


def _check_viscosity_bounds(lo: float, hi: float, what: str) -> None:
    if not (lo > 0.0 and hi > 0.0):
        raise ConfigurationError(f"{what}: viscosity bounds must be positive (min={lo}, max={hi})")
    if lo > hi:
        raise ConfigurationError(f"{what}: minimum viscosity {lo} exceeds maximum viscosity {hi}")


# -----------------------------------------------------------------------------
# Visco-plastic model
# -----------------------------------------------------------------------------


@dataclass
class ViscoPlasticConfig(_ConfigIO):
    """Options of :class:`~viscoplastic.visco_plastic.ViscoPlastic`.

    Per-phase options take one value (applied to every phase) or one value
    for the background plus one per compositional field. Friction angles are
    given in degrees.
    """

    model_name = "visco plastic"

    compositional_fields: List[str] = field(default_factory=list)

    reference_temperature: float = 293.0
    minimum_strain_rate: float = 1.0e-20
    reference_strain_rate: float = 1.0e-15
    minimum_viscosity: float = 1.0e17
    maximum_viscosity: float = 1.0e28
    reference_viscosity: float = 1.0e22
    grain_size: float = 1.0e-3
    maximum_yield_stress: float = 1.0e12

    viscosity_averaging_scheme: Union[str, AveragingScheme] = "harmonic"
    viscous_flow_law: Union[str, ViscousFlowLaw] = "composite"
    yield_mechanism: Union[str, YieldMechanism] = "drucker_prager"
    strain_weakening: Union[str, StrainWeakeningMode] = "none"
    use_plastic_strain_weakening: bool = True
    use_viscous_strain_weakening: bool = True

    # subducting-plate crust ("spcrust" field)
    use_fixed_spcrust_viscosity: bool = False
    maximum_spcrust_viscosity: float = 1.0e28
    spcrust_viscosity_pressure_min: float = 0.0
    spcrust_viscosity_pressure_max: float = 0.0
    use_spcrust_density_change: bool = False
    spcrust_density_change: float = 0.0
    spcrust_density_pressure_min: float = 0.0
    spcrust_density_pressure_max: float = 0.0

    use_numba: bool = False

    densities: PerPhase = 3300.0
    thermal_expansivities: PerPhase = 3.5e-5
    heat_capacities: PerPhase = 1.25e3
    thermal_diffusivities: PerPhase = 0.8e-6

    prefactors_for_diffusion_creep: PerPhase = 1.5e-15
    grain_size_exponents_for_diffusion_creep: PerPhase = 3.0
    activation_energies_for_diffusion_creep: PerPhase = 375.0e3
    activation_volumes_for_diffusion_creep: PerPhase = 6.0e-6

    prefactors_for_dislocation_creep: PerPhase = 1.1e-16
    stress_exponents_for_dislocation_creep: PerPhase = 3.5
    activation_energies_for_dislocation_creep: PerPhase = 530.0e3
    activation_volumes_for_dislocation_creep: PerPhase = 1.4e-5

    angles_of_internal_friction: PerPhase = 0.0
    cohesions: PerPhase = 1.0e20
    stress_limiter_exponents: PerPhase = 1.0

    start_plastic_strain_weakening_intervals: PerPhase = 0.0
    end_plastic_strain_weakening_intervals: PerPhase = 1.0
    start_prefactor_strain_weakening_intervals: PerPhase = 0.0
    end_prefactor_strain_weakening_intervals: PerPhase = 1.0
    cohesion_strain_weakening_factors: PerPhase = 1.0
    friction_strain_weakening_factors: PerPhase = 1.0
    prefactor_strain_weakening_factors: PerPhase = 1.0

    def __post_init__(self) -> None:
        self.compositional_fields = [str(n) for n in (self.compositional_fields or [])]
        self.viscosity_averaging_scheme = _parse(parse_averaging_scheme, self.viscosity_averaging_scheme)
        self.viscous_flow_law = _parse(parse_flow_law, self.viscous_flow_law)
        self.yield_mechanism = _parse(parse_yield_mechanism, self.yield_mechanism)
        self.strain_weakening = _parse(parse_weakening_mode, self.strain_weakening)

        _check_viscosity_bounds(self.minimum_viscosity, self.maximum_viscosity, "visco plastic")
        if not self.minimum_strain_rate > 0.0:
            raise ConfigurationError(f"minimum_strain_rate must be positive, got {self.minimum_strain_rate}")
        if not self.reference_strain_rate > 0.0:
            raise ConfigurationError(f"reference_strain_rate must be positive, got {self.reference_strain_rate}")
        if not self.grain_size > 0.0:
            raise ConfigurationError(f"grain_size must be positive, got {self.grain_size}")
        if (
            self.strain_weakening is StrainWeakeningMode.PLASTIC_VISCOUS_STRAIN
            and not (self.use_plastic_strain_weakening or self.use_viscous_strain_weakening)
        ):
            raise ConfigurationError(
                "strain_weakening='plastic_viscous_strain' needs use_plastic_strain_weakening "
                "and/or use_viscous_strain_weakening"
            )
        for kind in ("viscosity", "density"):
            lo = getattr(self, f"spcrust_{kind}_pressure_min")
            hi = getattr(self, f"spcrust_{kind}_pressure_max")
            if hi < lo:
                raise ConfigurationError(
                    f"spcrust_{kind}_pressure_max ({hi}) must not be below spcrust_{kind}_pressure_min ({lo})"
                )

    @property
    def uses_strain_weakening(self) -> bool:
        return self.strain_weakening is not StrainWeakeningMode.NONE

    def per_phase_values(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(PhaseParameters)}


# -----------------------------------------------------------------------------
# Simple nonlinear (power-law) model
# -----------------------------------------------------------------------------


@dataclass
class SimpleNonlinearConfig(_ConfigIO):
    """Options of :class:`~viscoplastic.simple_nonlinear.SimpleNonlinear`."""

    model_name = "simple nonlinear"

    compositional_fields: List[str] = field(default_factory=list)

    reference_temperature: float = 293.0
    reference_viscosity: float = 1.0e22
    viscosity_averaging_p: float = -1.0
    use_deviator_of_strain_rate: bool = True

    min_strain_rates: PerPhase = 1.4e-20
    min_viscosities: PerPhase = 1.0e10
    max_viscosities: PerPhase = 1.0e28
    viscosity_prefactors: PerPhase = 1.0e-37
    stress_exponents: PerPhase = 3.0
    densities: PerPhase = 3300.0
    thermal_expansivities: PerPhase = 3.5e-5
    heat_capacities: PerPhase = 1.25e3
    thermal_diffusivities: PerPhase = 0.8e-6

    def __post_init__(self) -> None:
        self.compositional_fields = [str(n) for n in (self.compositional_fields or [])]
        lo = np.atleast_1d(np.asarray(self.min_viscosities, dtype=float))
        hi = np.atleast_1d(np.asarray(self.max_viscosities, dtype=float))
        if np.any(lo <= 0.0) or np.any(hi <= 0.0):
            raise ConfigurationError("simple nonlinear: viscosity bounds must be positive")
        if lo.size == hi.size and np.any(lo > hi):
            raise ConfigurationError("simple nonlinear: min_viscosities exceed max_viscosities")

    def per_phase_values(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(PowerLawPhaseParameters)}


# -----------------------------------------------------------------------------
# Loading by model name
# -----------------------------------------------------------------------------

CONFIG_CLASSES = {
    "visco plastic": ViscoPlasticConfig,
    "simple nonlinear": SimpleNonlinearConfig,
}


def config_class_for(name: str):
    key = str(name).strip().lower().replace("_", " ").replace("-", " ")
    if key not in CONFIG_CLASSES:
        raise ConfigurationError(f"Unknown material model='{name}'. Expected one of {sorted(CONFIG_CLASSES)}.")
    return CONFIG_CLASSES[key]


def config_from_dict(data: Dict[str, Any]):
    """Build the config selected by ``data['model']`` (default: visco plastic)."""
    return config_class_for(data.get("model", "visco plastic")).from_dict(data)


def load_config(filepath: str):
    """Load a JSON or YAML config file (by extension; YAML otherwise)."""
    with open(filepath, "r") as f:
        if str(filepath).lower().endswith(".json"):
            data = json.load(f)
        else:
            data = yaml.safe_load(f) or {}
    return config_from_dict(data)
