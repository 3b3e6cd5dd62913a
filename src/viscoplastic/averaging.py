"""Averaging of per-phase properties.

Two families are provided:

* Discrete schemes selected by :class:`AveragingScheme`
  (:func:`average_value`).
* The weighted p-norm mean ``(sum_i w_i v_i**p)**(1/p)`` and its derivative
  (:func:`weighted_p_norm_average`,
  :func:`derivative_of_weighted_p_norm_average`), used for the viscosity
  derivatives. Each discrete scheme maps to a p value via :func:`averaging_p`.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import List, Sequence, Union

import numpy as np


# |p| at or above this is treated as min/max
P_NORM_LIMIT = 1000.0


class AveragingScheme(Enum):
    ARITHMETIC = "arithmetic"
    HARMONIC = "harmonic"
    GEOMETRIC = "geometric"
    MAXIMUM_COMPOSITION = "maximum_composition"


_SCHEME_ALIASES = {
    "arithmetic": AveragingScheme.ARITHMETIC,
    "arithmetic average": AveragingScheme.ARITHMETIC,
    "harmonic": AveragingScheme.HARMONIC,
    "harmonic average": AveragingScheme.HARMONIC,
    "geometric": AveragingScheme.GEOMETRIC,
    "geometric average": AveragingScheme.GEOMETRIC,
    "maximum_composition": AveragingScheme.MAXIMUM_COMPOSITION,
    "maximum composition": AveragingScheme.MAXIMUM_COMPOSITION,
    "max": AveragingScheme.MAXIMUM_COMPOSITION,
}


def parse_averaging_scheme(value: Union[str, AveragingScheme]) -> AveragingScheme:
    if isinstance(value, AveragingScheme):
        return value
    key = str(value).strip().lower().replace("-", " ")
    key = key if key in _SCHEME_ALIASES else key.replace(" ", "_")
    if key not in _SCHEME_ALIASES:
        raise ValueError(
            f"Unknown viscosity_averaging_scheme='{value}'. "
            f"Expected one of {[s.value for s in AveragingScheme]}."
        )
    return _SCHEME_ALIASES[key]


def averaging_p(scheme: AveragingScheme) -> float:
    """p value of the weighted p-norm equivalent to ``scheme``."""
    if scheme is AveragingScheme.HARMONIC:
        return -1.0
    if scheme is AveragingScheme.GEOMETRIC:
        return 0.0
    if scheme is AveragingScheme.ARITHMETIC:
        return 1.0
    if scheme is AveragingScheme.MAXIMUM_COMPOSITION:
        return P_NORM_LIMIT
    raise ValueError(f"No p-norm equivalent for averaging scheme {scheme!r}")


# -----------------------------------------------------------------------------
# Discrete schemes
# -----------------------------------------------------------------------------


def average_value(
    volume_fractions: Sequence[float],
    values: Sequence[float],
    scheme: AveragingScheme,
) -> float:
    """Average ``values`` weighted by ``volume_fractions``.

    ``MAXIMUM_COMPOSITION`` returns the value of the phase with the largest
    fraction; ties go to the first such phase.
    """
    f = np.asarray(volume_fractions, dtype=float)
    v = np.asarray(values, dtype=float)
    if f.shape != v.shape:
        raise ValueError(f"volume fractions {f.shape} and values {v.shape} differ in shape")

    if scheme is AveragingScheme.ARITHMETIC:
        return float(np.sum(f * v))

    if scheme is AveragingScheme.HARMONIC:
        # zero-fraction phases never contribute, whatever their value
        active = f > 0.0
        with np.errstate(divide="ignore"):
            s = float(np.sum(f[active] / v[active]))
        return 1.0 / s if s != 0.0 else math.inf

    if scheme is AveragingScheme.GEOMETRIC:
        active = f > 0.0
        return float(np.exp(np.sum(f[active] * np.log(v[active]))))

    if scheme is AveragingScheme.MAXIMUM_COMPOSITION:
        return float(v[int(np.argmax(f))])

    raise ValueError(f"Unsupported averaging scheme {scheme!r}")


# -----------------------------------------------------------------------------
# Weighted p-norm
# -----------------------------------------------------------------------------


def weighted_p_norm_average(weights: Sequence[float], values: Sequence[float], p: float) -> float:
    w = np.asarray(weights, dtype=float)
    v = np.asarray(values, dtype=float)
    if w.shape != v.shape:
        raise ValueError(f"weights {w.shape} and values {v.shape} differ in shape")

    if p <= -P_NORM_LIMIT:
        return float(np.min(v[w != 0.0]))
    if p >= P_NORM_LIMIT:
        return float(np.max(v[w != 0.0]))

    active = w != 0.0
    w = w[active]
    v = v[active]

    if p == -1.0:
        return 1.0 / float(np.sum(w / v))
    if p == 0.0:
        return float(np.prod(v ** w))
    if p == 1.0:
        return float(np.sum(w * v))
    return float(np.sum(w * v ** p) ** (1.0 / p))


def derivative_of_weighted_p_norm_average(
    averaged_value: float,
    weights: Sequence[float],
    values: Sequence[float],
    derivatives: Sequence[Union[float, np.ndarray]],
    p: float,
) -> Union[float, np.ndarray]:
    """Chain rule for :func:`weighted_p_norm_average`.

    ``derivatives[i]`` is the derivative of ``values[i]`` with respect to some
    quantity; it may be a scalar or an array (e.g. a dim x dim tensor). The
    result has the same shape as one entry of ``derivatives``.
    """
    w = np.asarray(weights, dtype=float)
    v = np.asarray(values, dtype=float)
    d: List[np.ndarray] = [np.asarray(di, dtype=float) for di in derivatives]
    if not (w.size == v.size == len(d)):
        raise ValueError("weights, values and derivatives must have the same length")

    zero = np.zeros_like(d[0]) if d else 0.0

    if p <= -P_NORM_LIMIT or p >= P_NORM_LIMIT:
        active = np.flatnonzero(w != 0.0)
        pick = np.argmin(v[active]) if p <= -P_NORM_LIMIT else np.argmax(v[active])
        return _as_result(d[int(active[int(pick)])].copy())

    out = zero
    if p == -1.0:
        for wi, vi, di in zip(w, v, d):
            if wi != 0.0:
                out = out + wi * di / (vi * vi)
        return _as_result(averaged_value * averaged_value * out)

    if p == 0.0:
        for wi, vi, di in zip(w, v, d):
            if wi != 0.0:
                out = out + wi * di / vi
        return _as_result(averaged_value * out)

    if p == 1.0:
        for wi, di in zip(w, d):
            out = out + wi * di
        return _as_result(out)

    s = 0.0
    for wi, vi, di in zip(w, v, d):
        if wi != 0.0:
            s += wi * vi ** p
            out = out + wi * vi ** (p - 1.0) * di
    return _as_result(s ** (1.0 / p - 1.0) * out)


def _as_result(x):
    x = np.asarray(x, dtype=float)
    return float(x) if x.ndim == 0 else x
