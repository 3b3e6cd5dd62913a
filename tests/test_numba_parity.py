import numpy as np
import pytest

from viscoplastic.config import ViscoPlasticConfig
from viscoplastic.material_point import EvaluationPoint
from viscoplastic.numba.kernels_viscosity import N_PARAM_COLS, COL_SLOT, pack_phase_params
from viscoplastic.parameters import PhaseParameters
from viscoplastic.visco_plastic import ViscoPlastic


def _pair(**kw):
    py = ViscoPlastic(ViscoPlasticConfig(use_numba=False, **kw))
    nb = ViscoPlastic(ViscoPlasticConfig(use_numba=True, **kw))
    return py, nb


def _random_states(n_fields, n=40, seed=0):
    rng = np.random.default_rng(seed)
    for _ in range(n):
        s = 10.0 ** rng.uniform(-17, -12)
        sr = np.array([[s, 0.4 * s], [0.4 * s, -0.7 * s]])
        yield (
            rng.uniform(-5e7, 1.5e10),
            rng.uniform(400.0, 2200.0),
            rng.uniform(0.0, 1.5, size=n_fields),
            sr,
        )


def test_pack_phase_params_layout():
    params = PhaseParameters.from_mapping(ViscoPlasticConfig(cohesions=[1e7, 2e7, 3e7]).per_phase_values(), 3)
    table = pack_phase_params(params, [0, 2])
    assert table.shape == (2, N_PARAM_COLS)
    np.testing.assert_array_equal(table[:, COL_SLOT], [0, 2])


@pytest.mark.parametrize("flow_law", ["diffusion", "dislocation", "composite"])
@pytest.mark.parametrize("yield_mechanism", ["drucker_prager", "stress_limiter"])
def test_numba_matches_python(flow_law, yield_mechanism):
    kw = dict(
        compositional_fields=["crust"],
        viscous_flow_law=flow_law,
        yield_mechanism=yield_mechanism,
        cohesions=[20e6, 5e6],
        angles_of_internal_friction=[30.0, 10.0],
        stress_limiter_exponents=[5.0, 2.0],
    )
    py, nb = _pair(**kw)
    for P, T, comp, sr in _random_states(1):
        comp = np.minimum(comp, 1.0)
        v_py, y_py = py.isostrain_viscosities(P, T, comp, sr)
        v_nb, y_nb = nb.isostrain_viscosities(P, T, comp, sr)
        np.testing.assert_allclose(v_nb, v_py, rtol=1e-10)
        np.testing.assert_array_equal(y_nb, y_py)


def test_numba_matches_python_with_weakening():
    kw = dict(
        compositional_fields=["plastic_strain", "viscous_strain", "crust"],
        strain_weakening="plastic_viscous_strain",
        cohesions=[20e6, 20e6, 20e6, 5e6],
        angles_of_internal_friction=20.0,
        cohesion_strain_weakening_factors=0.25,
        friction_strain_weakening_factors=0.5,
        prefactor_strain_weakening_factors=0.1,
        start_plastic_strain_weakening_intervals=0.1,
        end_plastic_strain_weakening_intervals=1.0,
    )
    py, nb = _pair(**kw)
    for P, T, comp, sr in _random_states(3, seed=1):
        v_py, y_py = py.isostrain_viscosities(P, T, comp, sr)
        v_nb, y_nb = nb.isostrain_viscosities(P, T, comp, sr)
        np.testing.assert_allclose(v_nb, v_py, rtol=1e-10)
        np.testing.assert_array_equal(y_nb, y_py)


def test_numba_matches_python_with_spcrust_cap():
    kw = dict(
        compositional_fields=["spcrust"],
        use_fixed_spcrust_viscosity=True,
        maximum_spcrust_viscosity=1e20,
        spcrust_viscosity_pressure_min=2e9,
        spcrust_viscosity_pressure_max=6e9,
    )
    py, nb = _pair(**kw)
    for P, T, comp, sr in _random_states(1, seed=2):
        comp = np.minimum(comp, 1.0)
        v_py, _ = py.isostrain_viscosities(P, T, comp, sr)
        v_nb, _ = nb.isostrain_viscosities(P, T, comp, sr)
        np.testing.assert_allclose(v_nb, v_py, rtol=1e-10)


@pytest.mark.slow
def test_numba_model_evaluation_matches_python():
    py, nb = _pair(compositional_fields=["crust"], cohesions=[20e6, 2e6])
    pts = [
        EvaluationPoint(temperature=T, pressure=P, composition=np.minimum(c, 1.0), strain_rate=sr)
        for P, T, c, sr in _random_states(1, n=10, seed=3)
    ]
    out_py = py.evaluate_points(pts, timestep_number=1, with_derivatives=True)
    out_nb = nb.evaluate_points(pts, timestep_number=1, with_derivatives=True)
    np.testing.assert_allclose(out_nb.viscosities, out_py.viscosities, rtol=1e-10)
    np.testing.assert_array_equal(out_nb.plastic_yielding, out_py.plastic_yielding)


@pytest.mark.parametrize("flow_law", ["diffusion", "dislocation", "composite"])
def test_numba_matches_python_when_creep_overflows(flow_law):
    py, nb = _pair(viscous_flow_law=flow_law)
    sr = np.array([[1e-15, 0.0], [0.0, -1e-15]])
    v_py, y_py = py.isostrain_viscosities(0.0, 1.0, np.zeros(0), sr)
    v_nb, y_nb = nb.isostrain_viscosities(0.0, 1.0, np.zeros(0), sr)
    np.testing.assert_allclose(v_nb, v_py, rtol=1e-12)
    np.testing.assert_array_equal(y_nb, y_py)
    assert y_py[0] == 1.0
