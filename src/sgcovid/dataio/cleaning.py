"""
===========================================================
cleaning.py
Last Updated: 2026-10-19
===========================================================

Description:
    Numeric coercion and missing-value imputation for the daily
    table produced by loaders.load_sg_covid.

Notes:
    - Policy: a missing numeric value is treated as zero reported
      cases. Which cells were filled is kept in the `imputed`
      mask so real data gaps are not masked in comparisons.
    - Values that fail to coerce are counted per column, never
      raised; they end up missing and are then zero-filled.
    - No row or column is dropped, the input is not mutated.
    - Cleaning an already-clean table is a no-op.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable
import pandas as pd

from sgcovid.constants import NUMERIC_COLUMNS

logger = logging.getLogger(__name__)


@dataclass
class CleaningReport:
    """
    Output of clean_numeric.

    Attributes:
    -----------
    table: pd.DataFrame
        Cleaned copy of the input
    missing_before: int
        Missing cells across numeric columns before zero-filling
    zeros_after: int
        Zero-valued cells across numeric columns after cleaning
    imputed: pd.DataFrame
        Boolean mask (numeric columns only), True where a zero was filled in
    coercion_failures: Dict[str, int]
        Non-empty values per designated column that were not numeric
    """

    table: pd.DataFrame
    missing_before: int
    zeros_after: int
    imputed: pd.DataFrame
    coercion_failures: Dict[str, int] = field(default_factory=dict)

    def summary(self) -> str:
        failures = {c: n for c, n in self.coercion_failures.items() if n}
        return (
            f"rows={len(self.table)} missing_before={self.missing_before} "
            f"zeros_after={self.zeros_after} imputed={int(self.imputed.to_numpy().sum())} "
            f"coercion_failures={failures or 'none'}"
        )


def clean_numeric(
    df: pd.DataFrame,
    numeric_columns: Iterable[str] = NUMERIC_COLUMNS,
) -> CleaningReport:
    """
    Coerce designated columns to float and zero-fill every numeric column.

    Parameters
    ----------
    df : pd.DataFrame
        Loaded daily table
    numeric_columns : iterable of str
        Columns that must be numeric (coerced with pd.to_numeric)

    Returns
    -------
    CleaningReport
    """
    designated = list(numeric_columns)
    absent = [c for c in designated if c not in df.columns]
    if absent:
        raise KeyError(f"Columns to coerce not found: {absent}. Available: {list(df.columns)}")

    out = df.copy()
    failures: Dict[str, int] = {}
    for col in designated:
        coerced, n_bad = _coerce_float(out[col])
        out[col] = coerced
        failures[col] = n_bad

    num_cols = out.select_dtypes(include="number").columns
    missing = out[num_cols].isna()
    missing_before = int(missing.to_numpy().sum())

    out[num_cols] = out[num_cols].fillna(0)
    zeros_after = int((out[num_cols] == 0).to_numpy().sum())

    report = CleaningReport(
        table=out,
        missing_before=missing_before,
        zeros_after=zeros_after,
        coercion_failures=failures,
        imputed=missing,
    )
    logger.info("Cleaned table: %s", report.summary())
    return report


def _coerce_float(values: pd.Series):
    # strip thousands separators and percent signs before coercing
    if pd.api.types.is_numeric_dtype(values):
        return values.astype(float), 0
    text = values.astype(object).where(values.notna())
    stripped = text.map(lambda v: v.replace(",", "").rstrip("%").strip() if isinstance(v, str) else v)
    coerced = pd.to_numeric(stripped, errors="coerce").astype(float)
    present = stripped.notna() & (stripped.astype(str) != "")
    n_bad = int((present & coerced.isna()).sum())
    return coerced, n_bad
