"""Evaluation-point inputs and material-property outputs.

Inputs are an ordered list of :class:`EvaluationPoint` plus the time-step
context. Outputs hold one value per point in NumPy arrays; optional output
slots (derivatives, named plasticity outputs) live in a registry keyed by
their class and are only filled when present.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import numpy as np


@dataclass
class EvaluationPoint:
    """Field values at one point.

    ``strain_rate`` is a symmetric (dim, dim) array or None when the caller
    has no velocity solution (viscosity is then not evaluated).
    ``velocity_gradient`` is only needed for finite-strain-tensor tracking.
    """

    temperature: float
    pressure: float
    composition: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=float))
    strain_rate: Optional[np.ndarray] = None
    position: Optional[np.ndarray] = None
    velocity_gradient: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        self.temperature = float(self.temperature)
        self.pressure = float(self.pressure)
        self.composition = np.asarray(self.composition, dtype=float).reshape(-1)
        if self.strain_rate is not None:
            self.strain_rate = np.asarray(self.strain_rate, dtype=float)
        if self.velocity_gradient is not None:
            self.velocity_gradient = np.asarray(self.velocity_gradient, dtype=float)


@dataclass
class MaterialModelInputs:
    points: List[EvaluationPoint] = field(default_factory=list)
    timestep_number: int = 0
    timestep: float = 0.0

    @property
    def n_points(self) -> int:
        return len(self.points)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    @classmethod
    def from_arrays(
        cls,
        temperature: Sequence[float],
        pressure: Sequence[float],
        composition: Optional[np.ndarray] = None,
        strain_rate: Optional[np.ndarray] = None,
        position: Optional[np.ndarray] = None,
        velocity_gradient: Optional[np.ndarray] = None,
        timestep_number: int = 0,
        timestep: float = 0.0,
    ) -> "MaterialModelInputs":
        """Build inputs from per-point arrays (first axis = point)."""
        T = np.asarray(temperature, dtype=float).reshape(-1)
        P = np.asarray(pressure, dtype=float).reshape(-1)
        if T.shape != P.shape:
            raise ValueError(f"temperature {T.shape} and pressure {P.shape} differ in shape")
        n = T.size
        comp = np.zeros((n, 0)) if composition is None else np.asarray(composition, dtype=float).reshape(n, -1)
        pts = []
        for q in range(n):
            pts.append(
                EvaluationPoint(
                    temperature=T[q],
                    pressure=P[q],
                    composition=comp[q],
                    strain_rate=None if strain_rate is None else strain_rate[q],
                    position=None if position is None else position[q],
                    velocity_gradient=None if velocity_gradient is None else velocity_gradient[q],
                )
            )
        return cls(points=pts, timestep_number=int(timestep_number), timestep=float(timestep))


# -----------------------------------------------------------------------------
# Outputs
# -----------------------------------------------------------------------------


@dataclass
class MaterialOutput:
    """Snapshot of the properties at one point."""

    density: float
    viscosity: float
    thermal_expansion_coefficient: float
    specific_heat: float
    thermal_conductivity: float
    compressibility: float
    entropy_derivative_pressure: float
    entropy_derivative_temperature: float
    reaction_terms: np.ndarray
    plastic_yielding: bool


class AdditionalOutputs:
    """Base class of the optional output slots."""

    def __init__(self, n_points: int):
        self.n_points = int(n_points)


class MaterialModelDerivatives(AdditionalOutputs):
    """Viscosity derivatives needed by a Newton solver.

    ``viscosity_derivative_wrt_strain_rate[q]`` is the (dim, dim) gradient D
    with ``d eta ~= D : d strain_rate``.
    """

    def __init__(self, n_points: int, dim: int):
        super().__init__(n_points)
        self.dim = int(dim)
        self.viscosity_derivative_wrt_strain_rate = np.zeros((n_points, dim, dim), dtype=float)
        self.viscosity_derivative_wrt_pressure = np.zeros(n_points, dtype=float)

    def check_dim(self, dim: int) -> None:
        """Raise if the slot was not allocated for ``dim``-dimensional tensors."""
        shape = self.viscosity_derivative_wrt_strain_rate.shape
        if self.dim != dim or shape[1:] != (dim, dim):
            raise ValueError(
                f"MaterialModelDerivatives slot holds {shape[1:]} strain-rate derivatives "
                f"(dim={self.dim}), the material model is {dim}-D"
            )


class NamedAdditionalOutputs(AdditionalOutputs):
    names: Sequence[str] = ()

    def get_nth_output(self, idx: int) -> np.ndarray:
        raise NotImplementedError


class PlasticAdditionalOutputs(NamedAdditionalOutputs):
    """Bulk cohesion [Pa], friction angle [deg] and yielding flag (0/1)."""

    names = ("current_cohesions", "current_friction_angles", "plastic_yielding")

    def __init__(self, n_points: int):
        super().__init__(n_points)
        self.cohesions = np.full(n_points, np.nan)
        self.friction_angles = np.full(n_points, np.nan)
        self.yielding = np.full(n_points, np.nan)

    def get_nth_output(self, idx: int) -> np.ndarray:
        if idx == 0:
            return self.cohesions
        if idx == 1:
            return self.friction_angles
        if idx == 2:
            return self.yielding
        raise IndexError(f"PlasticAdditionalOutputs has {len(self.names)} outputs, requested #{idx}")


SlotT = TypeVar("SlotT", bound=AdditionalOutputs)


class MaterialModelOutputs:
    def __init__(self, n_points: int, n_compositional_fields: int):
        self.n_points = int(n_points)
        self.n_compositional_fields = int(n_compositional_fields)
        self.densities = np.full(n_points, np.nan)
        self.viscosities = np.full(n_points, np.nan)
        self.thermal_expansion_coefficients = np.full(n_points, np.nan)
        self.specific_heat = np.full(n_points, np.nan)
        self.thermal_conductivities = np.full(n_points, np.nan)
        self.compressibilities = np.zeros(n_points)
        self.entropy_derivative_pressure = np.zeros(n_points)
        self.entropy_derivative_temperature = np.zeros(n_points)
        self.reaction_terms = np.zeros((n_points, n_compositional_fields))
        self.plastic_yielding = np.zeros(n_points, dtype=bool)
        self.additional_outputs: Dict[Type[AdditionalOutputs], AdditionalOutputs] = {}

    @classmethod
    def for_inputs(cls, inputs: MaterialModelInputs, n_compositional_fields: int) -> "MaterialModelOutputs":
        return cls(inputs.n_points, n_compositional_fields)

    def __len__(self) -> int:
        return self.n_points

    def __getitem__(self, q: int) -> MaterialOutput:
        return MaterialOutput(
            density=float(self.densities[q]),
            viscosity=float(self.viscosities[q]),
            thermal_expansion_coefficient=float(self.thermal_expansion_coefficients[q]),
            specific_heat=float(self.specific_heat[q]),
            thermal_conductivity=float(self.thermal_conductivities[q]),
            compressibility=float(self.compressibilities[q]),
            entropy_derivative_pressure=float(self.entropy_derivative_pressure[q]),
            entropy_derivative_temperature=float(self.entropy_derivative_temperature[q]),
            reaction_terms=np.array(self.reaction_terms[q], copy=True),
            plastic_yielding=bool(self.plastic_yielding[q]),
        )

    # ---- optional slots ----

    def get_additional_output(self, kind: Type[SlotT]) -> Optional[SlotT]:
        return self.additional_outputs.get(kind)  # type: ignore[return-value]

    def add_additional_output(self, slot: AdditionalOutputs) -> None:
        if slot.n_points != self.n_points:
            raise ValueError(f"Output slot sized for {slot.n_points} points, outputs have {self.n_points}")
        self.additional_outputs[type(slot)] = slot

    def request_derivatives(self, dim: int) -> MaterialModelDerivatives:
        """Create the derivative slot if it is not present yet and return it."""
        slot = self.get_additional_output(MaterialModelDerivatives)
        if slot is None:
            slot = MaterialModelDerivatives(self.n_points, dim)
            self.add_additional_output(slot)
        return slot

    def as_dict(self) -> Dict[str, Any]:
        """Flat column dict (one entry per point) for export."""
        cols: Dict[str, Any] = {
            "density": self.densities,
            "viscosity": self.viscosities,
            "thermal_expansivity": self.thermal_expansion_coefficients,
            "specific_heat": self.specific_heat,
            "thermal_conductivity": self.thermal_conductivities,
            "plastic_yielding": self.plastic_yielding.astype(int),
        }
        for k in range(self.n_compositional_fields):
            cols[f"reaction_{k}"] = self.reaction_terms[:, k]
        for slot in self.additional_outputs.values():
            if isinstance(slot, NamedAdditionalOutputs):
                for i, name in enumerate(slot.names):
                    cols[name] = slot.get_nth_output(i)
            elif isinstance(slot, MaterialModelDerivatives):
                cols["dviscosity_dpressure"] = slot.viscosity_derivative_wrt_pressure
        return cols
