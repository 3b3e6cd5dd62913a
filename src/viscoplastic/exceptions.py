"""Exception types raised by the material models."""

from __future__ import annotations

import math
from typing import Iterable, Union

import numpy as np


class ConfigurationError(ValueError):
    """Invalid or inconsistent model configuration (raised at setup time)."""


class NonFiniteValueError(FloatingPointError):
    """A computed material property or derivative is NaN or infinite."""


def check_finite(value: Union[float, np.ndarray, Iterable[float]], what: str) -> None:
    """Raise :class:`NonFiniteValueError` if ``value`` contains NaN/inf."""
    if np.isscalar(value):
        if not math.isfinite(float(value)):
            raise NonFiniteValueError(f"{what} is not finite (value={value!r})")
        return
    arr = np.asarray(value, dtype=float)
    if not np.isfinite(arr).all():
        raise NonFiniteValueError(f"{what} contains non-finite entries")
