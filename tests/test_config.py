import numpy as np
import pytest

from viscoplastic import make_material_model
from viscoplastic.averaging import AveragingScheme
from viscoplastic.config import (
    SimpleNonlinearConfig,
    ViscoPlasticConfig,
    config_from_dict,
    load_config,
)
from viscoplastic.exceptions import ConfigurationError
from viscoplastic.flow_laws import ViscousFlowLaw
from viscoplastic.parameters import PhaseParameters, possibly_extend_from_1_to_N
from viscoplastic.plasticity import YieldMechanism
from viscoplastic.simple_nonlinear import SimpleNonlinear
from viscoplastic.strain_weakening import StrainWeakeningMode
from viscoplastic.visco_plastic import ViscoPlastic


def test_defaults_parse_selectors():
    cfg = ViscoPlasticConfig()
    assert cfg.viscosity_averaging_scheme is AveragingScheme.HARMONIC
    assert cfg.viscous_flow_law is ViscousFlowLaw.COMPOSITE
    assert cfg.yield_mechanism is YieldMechanism.DRUCKER_PRAGER
    assert cfg.strain_weakening is StrainWeakeningMode.NONE
    assert not cfg.uses_strain_weakening


@pytest.mark.parametrize(
    "kw",
    [
        dict(viscosity_averaging_scheme="median"),
        dict(viscous_flow_law="peierls"),
        dict(yield_mechanism="von mises"),
        dict(strain_weakening="damage"),
        dict(minimum_viscosity=1e25, maximum_viscosity=1e20),
        dict(minimum_viscosity=0.0),
        dict(minimum_strain_rate=0.0),
        dict(grain_size=-1.0),
        dict(strain_weakening="plastic_viscous_strain", use_plastic_strain_weakening=False, use_viscous_strain_weakening=False),
        dict(spcrust_density_pressure_min=2e9, spcrust_density_pressure_max=1e9),
    ],
)
def test_invalid_options_raise(kw):
    with pytest.raises(ConfigurationError):
        ViscoPlasticConfig(**kw)


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        ViscoPlasticConfig(viscous_flow_law="peierls")


def test_possibly_extend_from_1_to_N():
    np.testing.assert_array_equal(possibly_extend_from_1_to_N(2.0, 3, "x"), [2.0, 2.0, 2.0])
    np.testing.assert_array_equal(possibly_extend_from_1_to_N([1.0, 2.0], 2, "x"), [1.0, 2.0])
    with pytest.raises(ConfigurationError, match="'x'"):
        possibly_extend_from_1_to_N([1.0, 2.0], 3, "x")


def test_friction_angles_are_stored_in_radians():
    params = PhaseParameters.from_mapping(ViscoPlasticConfig(angles_of_internal_friction=30.0).per_phase_values(), 1)
    assert params.angles_of_internal_friction[0] == pytest.approx(np.pi / 6.0)


def test_unknown_option_rejected():
    with pytest.raises(ConfigurationError, match="Unknown option"):
        ViscoPlasticConfig.from_dict({"minimum_viscosity": 1e18, "maximum_viscosity_typo": 1.0})


@pytest.mark.parametrize("suffix", [".json", ".yaml"])
def test_save_load_roundtrip(tmp_path, suffix):
    cfg = ViscoPlasticConfig(
        compositional_fields=["crust", "total_strain"],
        densities=[3300.0, 2800.0, 3300.0],
        viscosity_averaging_scheme="geometric",
        strain_weakening="total_strain",
        cohesion_strain_weakening_factors=0.5,
    )
    path = tmp_path / f"model{suffix}"
    if suffix == ".json":
        cfg.save_json(path)
    else:
        cfg.save_yaml(path)
    loaded = load_config(path)
    assert isinstance(loaded, ViscoPlasticConfig)
    assert loaded.to_dict() == cfg.to_dict()
    assert loaded.viscosity_averaging_scheme is AveragingScheme.GEOMETRIC


def test_model_name_dispatch_and_factory():
    cfg = config_from_dict({"model": "simple nonlinear", "stress_exponents": 1.0})
    assert isinstance(cfg, SimpleNonlinearConfig)
    assert isinstance(make_material_model(cfg), SimpleNonlinear)
    assert isinstance(make_material_model({"minimum_viscosity": 1e18}), ViscoPlastic)
    with pytest.raises(ConfigurationError, match="Unknown material model"):
        config_from_dict({"model": "steinberger"})
