"""Run-time info printing utilities."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Optional

import numba
import numpy as np

from viscoplastic.config import SimpleNonlinearConfig, ViscoPlasticConfig
from viscoplastic.material_point import MaterialModelOutputs, PlasticAdditionalOutputs


def _fmt_pa(x: float) -> str:
    x = float(x)
    if abs(x) >= 1e9:
        return f"{x/1e9:.3g} GPa"
    if abs(x) >= 1e6:
        return f"{x/1e6:.3g} MPa"
    if abs(x) >= 1e3:
        return f"{x/1e3:.3g} kPa"
    return f"{x:.3g} Pa"


def _fmt_visc(x: Optional[float]) -> str:
    if x is None or not math.isfinite(float(x)) or x <= 0.0:
        return "n/a"
    return f"1e{math.log10(float(x)):.2f} Pa s"


def print_run_header(tag: str) -> None:
    # UTC so logs are comparable across machines
    ts = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S %Z")
    print(f"\n[run] {tag}  start={ts}")


def print_material_summary(config, dim: int, n_fields: int) -> None:
    if isinstance(config, SimpleNonlinearConfig):
        print(f"[material] (simple nonlinear) dim={dim}  fields={n_fields}  p={config.viscosity_averaging_p:g}")
        print(
            f"[material] deviatoric strain rate={'yes' if config.use_deviator_of_strain_rate else 'no'}"
            f"  reference viscosity={_fmt_visc(config.reference_viscosity)}"
        )
        return

    if isinstance(config, ViscoPlasticConfig):
        print(
            f"[material] (visco plastic) dim={dim}  fields={n_fields}"
            f"  flow law={config.viscous_flow_law.value}  yield={config.yield_mechanism.value}"
        )
        print(
            f"[material] averaging={config.viscosity_averaging_scheme.value}"
            f"  bounds=[{_fmt_visc(config.minimum_viscosity)}, {_fmt_visc(config.maximum_viscosity)}]"
            f"  max yield stress={_fmt_pa(config.maximum_yield_stress)}"
        )
        print(f"[material] strain weakening={config.strain_weakening.value}")
        if config.use_fixed_spcrust_viscosity or config.use_spcrust_density_change:
            print(
                f"[material] spcrust: fixed viscosity={'yes' if config.use_fixed_spcrust_viscosity else 'no'}"
                f"  density change={'yes' if config.use_spcrust_density_change else 'no'}"
            )
        print(f"[numba] requested={'yes' if config.use_numba else 'no'}  version={numba.__version__}")
        return

    print(f"[material] ({type(config).__name__}) dim={dim}  fields={n_fields}")


def print_profile_summary(depths: np.ndarray, outputs: MaterialModelOutputs) -> None:
    eta = outputs.viscosities
    finite = np.isfinite(eta)
    if finite.any():
        i_min = int(np.nanargmin(np.where(finite, eta, np.nan)))
        i_max = int(np.nanargmax(np.where(finite, eta, np.nan)))
        print(
            f"[profile] n={len(depths)}  eta_min={_fmt_visc(eta[i_min])} at {depths[i_min]/1e3:.1f} km"
            f"  eta_max={_fmt_visc(eta[i_max])} at {depths[i_max]/1e3:.1f} km"
        )
    else:
        print(f"[profile] n={len(depths)}  (no viscosities evaluated)")
    n_yield = int(np.count_nonzero(outputs.plastic_yielding))
    print(f"[profile] yielding points={n_yield}/{len(depths)}")
    plastic = outputs.get_additional_output(PlasticAdditionalOutputs)
    if plastic is not None and n_yield:
        idx = np.flatnonzero(outputs.plastic_yielding)
        print(f"[profile] first yielding depth={depths[idx[0]]/1e3:.1f} km  cohesion={_fmt_pa(plastic.cohesions[idx[0]])}")
