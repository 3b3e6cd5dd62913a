"""
Depth-profile driver.

Evaluates a material model along a 1-D depth column and writes the result
as a CSV table (and optionally a plot).

Usage:
    viscoplastic-profile --config model.yaml --out results/profile.csv
    viscoplastic-profile --config model.yaml --dim 3 --plot results/profile.png
    viscoplastic-profile --write-default-config model.yaml
"""

from __future__ import annotations

import argparse
import sys
import time
from dataclasses import asdict
from typing import List, Optional

import yaml

from viscoplastic.config import ViscoPlasticConfig, config_from_dict
from viscoplastic.exceptions import ConfigurationError
from viscoplastic.material_factory import make_material_model
from viscoplastic.material_point import MaterialModelInputs, MaterialModelOutputs
from viscoplastic.output.export import export_profile_csv, profile_dataframe
from viscoplastic.profiles import DepthProfile
from viscoplastic.utils.run_info import print_material_summary, print_profile_summary, print_run_header


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="viscoplastic-profile",
        description="Evaluate a visco-plastic material model along a depth profile.",
    )
    parser.add_argument("--config", type=str, help="YAML/JSON file with 'model' and a 'profile' section")
    parser.add_argument("--dim", type=int, default=2, choices=(2, 3), help="Spatial dimension")
    parser.add_argument("--out", type=str, default="profile.csv", help="CSV output path")
    parser.add_argument("--plot", type=str, default=None, help="Save a depth plot to this path")
    parser.add_argument("--use-numba", action="store_true", help="Use the Numba per-phase kernel")
    parser.add_argument("--derivatives", action="store_true", help="Also compute viscosity derivatives")
    parser.add_argument("--timestep-number", type=int, default=1, help="Time-step number passed to the model")
    parser.add_argument("--timestep", type=float, default=0.0, help="Time-step length [s] (reaction terms)")
    parser.add_argument(
        "--write-default-config", type=str, default=None, metavar="PATH",
        help="Write a default visco plastic config (with profile section) and exit",
    )
    return parser


def _read_document(path: str) -> dict:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def write_default_config(path: str) -> None:
    data = ViscoPlasticConfig().to_dict()
    data["profile"] = asdict(DepthProfile())
    with open(path, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    print(f"[run] default config written to {path}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.write_default_config:
        write_default_config(args.write_default_config)
        return 0

    print_run_header("depth profile")

    # JSON is a subset of YAML, so one loader covers both
    document = _read_document(args.config) if args.config else {}
    profile = DepthProfile.from_dict(document.pop("profile", {}) or {})
    try:
        config = config_from_dict(document)
        if args.use_numba and isinstance(config, ViscoPlasticConfig):
            config.use_numba = True
        model = make_material_model(config, dim=args.dim)
    except ConfigurationError as exc:
        print(f"[run] configuration error: {exc}", file=sys.stderr)
        return 2

    n_fields = model.n_compositional_fields
    print_material_summary(config, args.dim, n_fields)

    depths, points = profile.build_points(dim=args.dim, n_fields=n_fields)
    inputs = MaterialModelInputs(points=points, timestep_number=args.timestep_number, timestep=args.timestep)
    outputs = MaterialModelOutputs(inputs.n_points, n_fields)
    if args.derivatives:
        outputs.request_derivatives(args.dim)
    if hasattr(model, "create_additional_named_outputs"):
        model.create_additional_named_outputs(outputs)

    t0 = time.time()
    model.evaluate(inputs, outputs)
    print(f"[run] evaluated {inputs.n_points} points in {time.time() - t0:.3f} s")
    print_profile_summary(depths, outputs)

    df = profile_dataframe(outputs, points, depths)
    path = export_profile_csv(df, args.out)
    print(f"[export] {path}")

    if args.plot:
        from viscoplastic.output.plotting import plot_profile

        plot_profile(df, title=f"{config.model_name} ({args.dim}D)", filename=args.plot)
        print(f"[export] {args.plot}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
