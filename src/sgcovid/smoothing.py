"""
===========================================================
smoothing.py
Last Updated: 2026-10-19
===========================================================

Description:
    Simple smoothers for daily case series: trailing/centered
    moving average and LOESS.

Notes:
    - Windows run over row order, not calendar adjacency; a gap
      in the dates is not filled in.
    - LOESS uses statsmodels' lowess with x = days since the
      first date (or row position when no dates are given).
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
from typing import Optional
import numpy as np
import pandas as pd
from statsmodels.nonparametric.smoothers_lowess import lowess


def moving_average(values: pd.Series, window: int = 7, center: bool = False) -> pd.Series:
    """Rolling mean over `window` rows (min_periods=1, so the head is not NaN)."""
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")
    as_float = pd.Series(values.to_numpy(dtype=float, na_value=np.nan), index=values.index)
    return as_float.rolling(window, center=center, min_periods=1).mean()


def loess(values: pd.Series, dates: Optional[pd.Series] = None, frac: float = 0.1) -> pd.Series:
    """
    LOESS-smoothed copy of `values`, aligned on the input index.

    Missing values are skipped in the fit and stay missing in the output.
    """
    if not 0 < frac <= 1:
        raise ValueError(f"frac must be in (0, 1], got {frac}")
    y = pd.Series(
        pd.to_numeric(values, errors="coerce").to_numpy(dtype=float, na_value=np.nan),
        index=values.index,
    )
    if dates is not None:
        d = pd.to_datetime(dates)
        x = (d - d.iloc[0]).dt.days.astype(float)
    else:
        x = pd.Series(np.arange(len(y), dtype=float), index=y.index)

    mask = y.notna().to_numpy() & x.notna().to_numpy()
    out = pd.Series(np.nan, index=values.index, dtype=float)
    if mask.sum() < 2:
        return out
    fitted = lowess(y.to_numpy()[mask], x.to_numpy()[mask], frac=frac, return_sorted=False)
    out[mask] = fitted
    return out
