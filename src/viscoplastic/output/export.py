"""
Export Module

Functions for exporting evaluated material properties to CSV / Excel.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from viscoplastic.material_point import EvaluationPoint, MaterialModelOutputs


def profile_dataframe(
    outputs: MaterialModelOutputs,
    points: Optional[Sequence[EvaluationPoint]] = None,
    depths: Optional[np.ndarray] = None,
) -> pd.DataFrame:
    """
    Collect outputs (and optionally the input state) into a DataFrame.

    Args:
        outputs: Evaluated material outputs
        points: Evaluation points (adds temperature / pressure columns)
        depths: Depth of each point in m (adds a 'depth_km' column)

    Returns:
        DataFrame with one row per point
    """
    cols = {}
    if depths is not None:
        cols["depth_km"] = np.asarray(depths, dtype=float) / 1e3
    if points is not None:
        cols["temperature_K"] = [pt.temperature for pt in points]
        cols["pressure_Pa"] = [pt.pressure for pt in points]
    cols.update(outputs.as_dict())
    return pd.DataFrame(cols)


def export_profile_csv(df: pd.DataFrame, filename: Union[str, Path] = "profile.csv") -> str:
    """Write ``df`` to CSV and return the path."""
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return str(path)


def export_profile_excel(df: pd.DataFrame, filename: Union[str, Path] = "profile.xlsx") -> str:
    """Write ``df`` to an Excel sheet (needs openpyxl) and return the path."""
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path) as writer:
        df.to_excel(writer, sheet_name="Profile", index=False)
    return str(path)
