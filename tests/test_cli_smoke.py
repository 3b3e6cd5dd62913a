import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest
import yaml

from viscoplastic.cli import main
from viscoplastic.config import ViscoPlasticConfig
from viscoplastic.output.export import profile_dataframe
from viscoplastic.output.plotting import plot_profile
from viscoplastic.profiles import DepthProfile
from viscoplastic.visco_plastic import ViscoPlastic


def test_depth_profile_points():
    profile = DepthProfile(max_depth=100e3, n_points=11)
    depths, points = profile.build_points(dim=2, n_fields=1)
    assert len(points) == 11
    assert depths[0] == 0.0 and depths[-1] == 100e3
    assert points[0].temperature == profile.surface_temperature
    assert points[-1].pressure == profile.density * profile.gravity * 100e3
    assert all(pt.composition.shape == (1,) for pt in points)
    np.testing.assert_allclose(np.trace(points[0].strain_rate), 0.0)


def test_profile_dataframe_and_plot(tmp_path):
    model = ViscoPlastic(ViscoPlasticConfig(cohesions=20e6, angles_of_internal_friction=20.0))
    depths, points = DepthProfile(n_points=21).build_points(dim=2, n_fields=0)
    outputs = model.evaluate_points(points, timestep_number=1, with_derivatives=True, with_plastic_outputs=True)
    df = profile_dataframe(outputs, points, depths)
    for col in ("depth_km", "temperature_K", "viscosity", "density", "current_cohesions", "dviscosity_dpressure"):
        assert col in df.columns
    assert len(df) == 21
    assert df["viscosity"].between(1e17, 1e28).all()

    fig = plot_profile(df, filename=tmp_path / "profile.png")
    assert (tmp_path / "profile.png").exists()
    assert len(fig.axes) == 2


@pytest.mark.slow
def test_cli_writes_csv(tmp_path):
    cfg_path = tmp_path / "model.yaml"
    assert main(["--write-default-config", str(cfg_path)]) == 0
    doc = yaml.safe_load(cfg_path.read_text())
    assert doc["model"] == "visco plastic"
    doc["profile"]["n_points"] = 9
    cfg_path.write_text(yaml.safe_dump(doc))

    out = tmp_path / "out" / "profile.csv"
    plot = tmp_path / "out" / "profile.png"
    assert main(["--config", str(cfg_path), "--out", str(out), "--plot", str(plot), "--derivatives"]) == 0
    df = pd.read_csv(out)
    assert len(df) == 9
    assert {"depth_km", "viscosity", "plastic_yielding"} <= set(df.columns)
    assert plot.exists()


def test_cli_reports_configuration_errors(tmp_path, capsys):
    cfg_path = tmp_path / "bad.yaml"
    cfg_path.write_text(yaml.safe_dump({"model": "visco plastic", "viscous_flow_law": "peierls"}))
    assert main(["--config", str(cfg_path)]) == 2
    assert "configuration error" in capsys.readouterr().err
