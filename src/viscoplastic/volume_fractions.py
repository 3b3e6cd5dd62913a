"""Per-phase volume fractions from compositional field values."""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


def compute_volume_fractions(
    composition: Sequence[float],
    mask: Optional[Sequence[bool]] = None,
) -> np.ndarray:
    """Return ``[background, phase_1, ...]`` fractions summing to one.

    Only fields with ``mask[i] == True`` participate (all fields when ``mask``
    is None); the result has ``n_unmasked + 1`` entries. Field values are
    clipped to [0, 1]. If the clipped values add up to at least one they are
    normalised and the background gets nothing, otherwise the background
    fills the remainder.
    """
    c = np.asarray(composition, dtype=float).reshape(-1)
    if mask is not None:
        m = np.asarray(mask, dtype=bool).reshape(-1)
        if m.size != c.size:
            raise ValueError(f"mask has {m.size} entries but composition has {c.size}")
        c = c[m]

    x = np.clip(c, 0.0, 1.0)
    total = float(np.sum(x))

    fractions = np.empty(x.size + 1, dtype=float)
    if total >= 1.0:
        fractions[0] = 0.0
        fractions[1:] = x / total
    else:
        fractions[0] = 1.0 - total
        fractions[1:] = x
    return fractions
