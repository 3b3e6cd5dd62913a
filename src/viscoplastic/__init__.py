"""viscoplastic package: point-wise visco-plastic material properties."""

from .averaging import (
    AveragingScheme,
    average_value,
    averaging_p,
    derivative_of_weighted_p_norm_average,
    weighted_p_norm_average,
)
from .config import SimpleNonlinearConfig, ViscoPlasticConfig, load_config
from .exceptions import ConfigurationError, NonFiniteValueError
from .fields import CompositionalFields
from .flow_laws import ViscousFlowLaw
from .material_factory import make_material_model
from .material_point import (
    EvaluationPoint,
    MaterialModelDerivatives,
    MaterialModelInputs,
    MaterialModelOutputs,
    PlasticAdditionalOutputs,
)
from .plasticity import YieldMechanism
from .simple_nonlinear import SimpleNonlinear
from .strain_weakening import StrainWeakeningMode
from .visco_plastic import ViscoPlastic
from .volume_fractions import compute_volume_fractions

__all__ = [
    "AveragingScheme", "average_value", "averaging_p",
    "weighted_p_norm_average", "derivative_of_weighted_p_norm_average",
    "ViscoPlasticConfig", "SimpleNonlinearConfig", "load_config",
    "ConfigurationError", "NonFiniteValueError",
    "CompositionalFields",
    "ViscousFlowLaw", "YieldMechanism", "StrainWeakeningMode",
    "make_material_model",
    "EvaluationPoint", "MaterialModelInputs", "MaterialModelOutputs",
    "MaterialModelDerivatives", "PlasticAdditionalOutputs",
    "SimpleNonlinear", "ViscoPlastic",
    "compute_volume_fractions",
]
