"""Material model factory.

Drivers select the material model from the config type (or a model name plus
a config dict). This module centralizes that mapping.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Union

import numpy as np

from viscoplastic.config import SimpleNonlinearConfig, ViscoPlasticConfig, config_from_dict
from viscoplastic.exceptions import ConfigurationError
from viscoplastic.fields import CompositionalFields
from viscoplastic.simple_nonlinear import SimpleNonlinear
from viscoplastic.visco_plastic import ViscoPlastic


MaterialModel = Union[ViscoPlastic, SimpleNonlinear]


def make_material_model(
    config: Union[ViscoPlasticConfig, SimpleNonlinearConfig, Dict[str, Any]],
    fields: Optional[CompositionalFields] = None,
    dim: int = 2,
    reference_density: Optional[Callable[[np.ndarray], float]] = None,
) -> MaterialModel:
    """Instantiate the material model described by ``config``.

    A plain dict is first turned into a config using its ``model`` key.
    """
    if isinstance(config, dict):
        config = config_from_dict(config)

    if isinstance(config, ViscoPlasticConfig):
        return ViscoPlastic(config, fields=fields, dim=dim, reference_density=reference_density)

    if isinstance(config, SimpleNonlinearConfig):
        if reference_density is not None:
            raise ConfigurationError("The simple nonlinear model does not use a reference density profile")
        return SimpleNonlinear(config, fields=fields, dim=dim)

    raise ConfigurationError(f"Unsupported material model config type {type(config).__name__}")
