"""1-D depth profiles of evaluation points.

A profile samples a geotherm (a linear conductive lid that is capped by the
mantle adiabat), lithostatic pressure ``rho g z`` and a uniform pure-shear
strain rate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from viscoplastic.material_point import EvaluationPoint


@dataclass
class DepthProfile:
    """Sampling of a depth column.

    Units: depths in m, temperatures in K, gradients in K/m.
    """

    max_depth: float = 300.0e3
    n_points: int = 61
    surface_temperature: float = 273.0
    thermal_gradient: float = 0.01
    mantle_potential_temperature: float = 1573.0
    adiabatic_gradient: float = 0.3e-3
    density: float = 3300.0
    gravity: float = 9.81
    strain_rate: float = 1.0e-15
    # compositional field values per point (same everywhere)
    composition: List[float] = field(default_factory=list)

    def depths(self) -> np.ndarray:
        return np.linspace(0.0, float(self.max_depth), int(self.n_points))

    def temperatures(self, depths: np.ndarray) -> np.ndarray:
        """Conductive lid capped by the mantle adiabat."""
        lid = self.surface_temperature + self.thermal_gradient * depths
        mantle = self.mantle_potential_temperature + self.adiabatic_gradient * depths
        return np.minimum(lid, mantle)

    def pressures(self, depths: np.ndarray) -> np.ndarray:
        return self.density * self.gravity * depths

    def strain_rate_tensor(self, dim: int) -> np.ndarray:
        """Pure shear ``diag(e, -e[, 0])`` whose effective strain rate is ``e``."""
        sr = np.zeros((dim, dim), dtype=float)
        sr[0, 0] = self.strain_rate
        sr[1, 1] = -self.strain_rate
        return sr

    def build_points(self, dim: int = 2, n_fields: Optional[int] = None) -> Tuple[np.ndarray, List[EvaluationPoint]]:
        """Return ``(depths, points)``."""
        comp = np.asarray(self.composition, dtype=float).reshape(-1)
        if n_fields is not None and comp.size != n_fields:
            if comp.size == 0:
                comp = np.zeros(n_fields, dtype=float)
            else:
                raise ValueError(f"Profile composition has {comp.size} values, model has {n_fields} fields")
        z = self.depths()
        T = self.temperatures(z)
        P = self.pressures(z)
        sr = self.strain_rate_tensor(dim)
        pts = []
        for q in range(z.size):
            position = np.zeros(dim, dtype=float)
            position[-1] = -z[q]
            pts.append(
                EvaluationPoint(
                    temperature=T[q],
                    pressure=P[q],
                    composition=comp.copy(),
                    strain_rate=sr.copy(),
                    position=position,
                )
            )
        return z, pts

    @classmethod
    def from_dict(cls, data: Dict) -> "DepthProfile":
        return cls(**dict(data))
