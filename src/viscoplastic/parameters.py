"""Per-phase parameter arrays.

Every per-phase quantity is stored as a read-only float array with one entry
for the background material followed by one entry per compositional field.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Mapping, Sequence, Union

import numpy as np

from viscoplastic.exceptions import ConfigurationError


ListLike = Union[float, Sequence[float], np.ndarray]


def possibly_extend_from_1_to_N(values: ListLike, n: int, name: str) -> np.ndarray:
    """Broadcast a single value to ``n`` entries, or check the length is ``n``.

    Raises
    ------
    ConfigurationError
        If ``values`` has neither 1 nor ``n`` entries.
    """
    arr = np.atleast_1d(np.asarray(values, dtype=float)).reshape(-1)
    if arr.size == 1:
        return np.full(n, float(arr[0]), dtype=float)
    if arr.size != n:
        raise ConfigurationError(
            f"Length of '{name}' list ({arr.size}) must be one or equal to the number "
            f"of compositional fields + 1 ({n})."
        )
    return arr.astype(float, copy=True)


def _read_only(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class PhaseParameters:
    """Per-phase parameters of the visco-plastic model.

    ``angles_of_internal_friction`` is stored in radians.
    """

    densities: np.ndarray
    thermal_expansivities: np.ndarray
    heat_capacities: np.ndarray
    thermal_diffusivities: np.ndarray

    # diffusion creep (stress exponent 1)
    prefactors_for_diffusion_creep: np.ndarray
    grain_size_exponents_for_diffusion_creep: np.ndarray
    activation_energies_for_diffusion_creep: np.ndarray
    activation_volumes_for_diffusion_creep: np.ndarray

    # dislocation creep
    prefactors_for_dislocation_creep: np.ndarray
    stress_exponents_for_dislocation_creep: np.ndarray
    activation_energies_for_dislocation_creep: np.ndarray
    activation_volumes_for_dislocation_creep: np.ndarray

    # plasticity
    angles_of_internal_friction: np.ndarray
    cohesions: np.ndarray
    stress_limiter_exponents: np.ndarray

    # strain weakening
    start_plastic_strain_weakening_intervals: np.ndarray
    end_plastic_strain_weakening_intervals: np.ndarray
    start_prefactor_strain_weakening_intervals: np.ndarray
    end_prefactor_strain_weakening_intervals: np.ndarray
    cohesion_strain_weakening_factors: np.ndarray
    friction_strain_weakening_factors: np.ndarray
    prefactor_strain_weakening_factors: np.ndarray

    @property
    def n_phases(self) -> int:
        return int(self.densities.size)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], n_phases: int) -> "PhaseParameters":
        """Build from a mapping of option name -> scalar or list.

        Friction angles are expected in degrees.
        """
        kwargs = {}
        for f in fields(cls):
            if f.name not in values:
                raise ConfigurationError(f"Missing per-phase option '{f.name}'")
            arr = possibly_extend_from_1_to_N(values[f.name], n_phases, f.name)
            if f.name == "angles_of_internal_friction":
                arr = arr * (math.pi / 180.0)
            kwargs[f.name] = _read_only(arr)
        return cls(**kwargs)


@dataclass(frozen=True)
class PowerLawPhaseParameters:
    """Per-phase parameters of the single power-law model."""

    min_strain_rates: np.ndarray
    min_viscosities: np.ndarray
    max_viscosities: np.ndarray
    viscosity_prefactors: np.ndarray
    stress_exponents: np.ndarray
    densities: np.ndarray
    thermal_expansivities: np.ndarray
    heat_capacities: np.ndarray
    thermal_diffusivities: np.ndarray

    @property
    def n_phases(self) -> int:
        return int(self.densities.size)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], n_phases: int) -> "PowerLawPhaseParameters":
        kwargs = {}
        for f in fields(cls):
            if f.name not in values:
                raise ConfigurationError(f"Missing per-phase option '{f.name}'")
            kwargs[f.name] = _read_only(possibly_extend_from_1_to_N(values[f.name], n_phases, f.name))
        return cls(**kwargs)
