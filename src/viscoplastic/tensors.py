"""Small symmetric-tensor helpers (dim = 2 or 3).

All tensors are plain ``(dim, dim)`` NumPy arrays. The contraction used
throughout is ``A:B = sum_ij A_ij B_ij`` and the second invariant is
``I2(T) = 0.5 * T:T`` (so for a deviatoric strain rate ``sqrt(|I2|)`` is the
usual effective strain rate).
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


# -----------------------------------------------------------------------------
# Basic operations
# -----------------------------------------------------------------------------


def double_contract(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.sum(np.asarray(a) * np.asarray(b)))


def trace(t: np.ndarray) -> float:
    return float(np.trace(np.asarray(t)))


def deviator(t: np.ndarray) -> np.ndarray:
    """Deviatoric part ``t - tr(t)/dim * I`` (dim taken from ``t``)."""
    t = np.asarray(t, dtype=float)
    dim = t.shape[0]
    return t - (np.trace(t) / dim) * np.eye(dim)


def second_invariant(t: np.ndarray) -> float:
    t = np.asarray(t, dtype=float)
    return 0.5 * float(np.sum(t * t))


def symmetrize(t: np.ndarray) -> np.ndarray:
    t = np.asarray(t, dtype=float)
    return 0.5 * (t + t.T)


def effective_strain_rate(strain_rate: np.ndarray) -> float:
    """``sqrt(|I2(dev(strain_rate))|)`` without any floor."""
    return float(np.sqrt(abs(second_invariant(deviator(strain_rate)))))


# -----------------------------------------------------------------------------
# Symmetric basis (unrolled component ordering)
# -----------------------------------------------------------------------------

_UNROLLED = {
    2: ((0, 0), (1, 1), (0, 1)),
    3: ((0, 0), (1, 1), (2, 2), (0, 1), (0, 2), (1, 2)),
}


def n_independent_components(dim: int) -> int:
    return dim * (dim + 1) // 2


def unrolled_to_component_indices(k: int, dim: int) -> Tuple[int, int]:
    """Map the k-th independent component to its ``(i, j)`` with ``i <= j``."""
    try:
        return _UNROLLED[dim][k]
    except KeyError:
        raise ValueError(f"Unsupported dimension dim={dim} (expected 2 or 3)")


def nth_basis_for_symmetric_tensors(k: int, dim: int) -> np.ndarray:
    """Unit-magnitude symmetric basis tensor for component k.

    Off-diagonal components set both ``(i, j)`` and ``(j, i)`` to one.
    """
    i, j = unrolled_to_component_indices(k, dim)
    e = np.zeros((dim, dim), dtype=float)
    e[i, j] = 1.0
    e[j, i] = 1.0
    return e


# -----------------------------------------------------------------------------
# Deviatoric projector
# -----------------------------------------------------------------------------


def deviator_tensor(dim: int) -> np.ndarray:
    """Rank-4 projector ``P`` with ``P : T == deviator(T)`` for symmetric T."""
    eye = np.eye(dim)
    sym_id = 0.5 * (np.einsum("ik,jl->ijkl", eye, eye) + np.einsum("il,jk->ijkl", eye, eye))
    return sym_id - np.einsum("ij,kl->ijkl", eye, eye) / dim


def project_deviatoric(t: np.ndarray) -> np.ndarray:
    """Apply the deviatoric projector: ``t : P``."""
    t = np.asarray(t, dtype=float)
    return np.tensordot(t, deviator_tensor(t.shape[0]), axes=2)


# -----------------------------------------------------------------------------
# Row-major storage of a full (non-symmetric) tensor in scalar fields
# -----------------------------------------------------------------------------


def unflatten_tensor(values, dim: int) -> np.ndarray:
    """Rebuild a dim x dim tensor from ``dim*dim`` values in row-major order.

    For dim=2 the order is ``s11, s12, s21, s22``.
    """
    v = np.asarray(values, dtype=float)
    if v.size < dim * dim:
        raise ValueError(f"Need {dim * dim} components to build a {dim}x{dim} tensor, got {v.size}")
    out = np.empty((dim, dim), dtype=float)
    for i in range(dim):
        for j in range(dim):
            out[i, j] = v[i * dim + j]
    return out


def flatten_tensor(t: np.ndarray) -> np.ndarray:
    """Inverse of :func:`unflatten_tensor`."""
    t = np.asarray(t, dtype=float)
    dim = t.shape[0]
    out = np.empty(dim * dim, dtype=float)
    for i in range(dim):
        for j in range(dim):
            out[i * dim + j] = t[i, j]
    return out


def finite_strain_tensor_names(dim: int) -> Tuple[str, ...]:
    """Field names holding the finite strain tensor: ``s11, s12, s21, s22, ...``."""
    return tuple(f"s{i + 1}{j + 1}" for i in range(dim) for j in range(dim))
