"""
===========================================================
metrics.py
Last Updated: 2026-10-19
===========================================================

Description:
    Derived metrics for the cleaned daily table:
      - density-adjusted case rates per population group
      - monthly aggregates (count domain) with the month's phase
      - log-scaled severity scores (deaths / ICU / hospitalised)
      - per-group z-score normalized rates

Notes:
    - "Undefined" is pd.NA in a nullable Float64 column. It never
      compares equal to 0 and is never turned into NaN.
    - Density rate = count / population * 100_000 / land area,
      with population and land area looked up by the record's
      year and population group.
    - Monthly rates are converted once from the monthly count sum;
      daily rates are never averaged or summed.
    - Severity and z-score raise UndefinedMetricError instead of
      producing NaN when the denominator is zero.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import json
import logging
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple
import numpy as np
import pandas as pd
from scipy import stats

from sgcovid.constants import (
    CASE_COLUMNS,
    DENSITY_CONSTANTS,
    GROUPS,
    RATE_COLUMNS,
    SEVERITY_COLUMNS,
)
from sgcovid.errors import UndefinedMetricError
from sgcovid.phases import PhaseTimeline, mode_phase

logger = logging.getLogger(__name__)

PER_CAPITA = 100_000

# ---- Year-keyed constants -------------------------------------------------

@dataclass(frozen=True)
class GroupConstants:
    population: int
    land_area_km2: float


@dataclass(frozen=True)
class DensityConstants:
    """
    year -> population group -> GroupConstants.

    Supplied as configuration; add a year with from_json / from_mapping
    instead of editing code.
    """
    table: Mapping[int, Mapping[str, GroupConstants]]

    def __post_init__(self):
        if not self.table:
            raise ValueError("Density constants table is empty")
        for year, groups in self.table.items():
            absent = [g for g in GROUPS if g not in groups]
            if absent:
                raise ValueError(f"Year {year}: missing constants for group(s) {absent}")
            for group, c in groups.items():
                if c.population <= 0 or c.land_area_km2 <= 0:
                    raise ValueError(
                        f"Year {year}, group '{group}': population and land area must be positive"
                    )

    @classmethod
    def from_mapping(cls, mapping: Mapping) -> "DensityConstants":
        """
        Accepts {year: {group: (population, area)}} or
        {year: {group: {"population": ..., "land_area_km2": ...}}}; year keys may be strings.
        """
        table: Dict[int, Dict[str, GroupConstants]] = {}
        for year, groups in mapping.items():
            table[int(year)] = {}
            for group, value in groups.items():
                if isinstance(value, Mapping):
                    pop, area = value["population"], value["land_area_km2"]
                else:
                    pop, area = value
                table[int(year)][str(group)] = GroupConstants(int(pop), float(area))
        return cls(table)

    @classmethod
    def from_json(cls, path: str | Path) -> "DensityConstants":
        with open(path, "r") as f:
            return cls.from_mapping(json.load(f))

    @property
    def years(self) -> Tuple[int, ...]:
        return tuple(sorted(self.table))

    def get(self, year: int, group: str) -> Optional[GroupConstants]:
        return self.table.get(int(year), {}).get(group)


DEFAULT_DENSITY_CONSTANTS = DensityConstants.from_mapping(DENSITY_CONSTANTS)

# ---- Density rate ---------------------------------------------------------

def density_rate(
    counts: pd.Series,
    dates: pd.Series,
    group: str,
    constants: DensityConstants = DEFAULT_DENSITY_CONSTANTS,
) -> pd.Series:
    """
    Density-adjusted rate per row for one population group.

    Rows whose year has no constants (or whose count is missing) are pd.NA.
    """
    if group not in GROUPS:
        raise ValueError(f"Unknown population group '{group}', expected one of {GROUPS}")
    years = pd.to_datetime(dates).dt.year
    population = years.map({y: constants.table[y][group].population for y in constants.years})
    area = years.map({y: constants.table[y][group].land_area_km2 for y in constants.years})

    rate = (
        counts.astype("Float64")
        / population.astype("Float64")
        * PER_CAPITA
        / area.astype("Float64")
    )
    n_unknown = int(population.isna().sum())
    if n_unknown:
        logger.debug("%s rate undefined for %d row(s): year outside %s", group, n_unknown, constants.years)
    return rate.rename(RATE_COLUMNS.get(group))


def add_density_rates(
    df: pd.DataFrame,
    constants: DensityConstants = DEFAULT_DENSITY_CONSTANTS,
    date_column: str = "date",
) -> pd.DataFrame:
    """Copy of df with one rate column per population group (dorm_rate, community_rate)."""
    out = df.copy()
    for group, count_col in CASE_COLUMNS.items():
        out[RATE_COLUMNS[group]] = density_rate(out[count_col], out[date_column], group, constants)
    return out

# ---- Monthly aggregate ----------------------------------------------------

def monthly_aggregate(
    df: pd.DataFrame,
    start,
    end,
    count_columns: Sequence[str] = tuple(CASE_COLUMNS.values()),
    phase_column: Optional[str] = "phase",
    timeline: Optional[PhaseTimeline] = None,
    constants: Optional[DensityConstants] = None,
    date_column: str = "date",
) -> pd.DataFrame:
    """
    Sum daily counts per calendar month within [start, end] (inclusive).

    Parameters
    ----------
    df : pd.DataFrame
        Daily table
    start, end : date-like
        Inclusive window
    count_columns : sequence of str
        Raw count columns to sum
    phase_column : str, optional
        Categorical column whose per-month mode is reported as `phase`
    timeline : PhaseTimeline, optional
        If given, phases come from the timeline instead of `phase_column`
    constants : DensityConstants, optional
        If given, adds density rates converted from the monthly sums
        (one per count column that belongs to a population group) and
        `rates_complete`

    Returns
    -------
    pd.DataFrame
        One row per month from start's month to end's month, including
        months without data (zero sums, n_days = 0, phase None).
    """
    lo, hi = pd.Timestamp(start).normalize(), pd.Timestamp(end).normalize()
    if hi < lo:
        raise ValueError(f"end {hi.date()} is before start {lo.date()}")
    cols = list(count_columns)

    days = pd.to_datetime(df[date_column]).dt.normalize()
    window = df.loc[(days >= lo) & (days <= hi)]
    period = days[window.index].dt.to_period("M")
    months = pd.period_range(lo, hi, freq="M")

    sums = (
        window.groupby(period)[cols].sum()
        .reindex(months, fill_value=0)
        .astype(df[cols].dtypes.to_dict())
    )
    n_days = window.groupby(period).size().reindex(months, fill_value=0)

    out = pd.DataFrame({"month": months.to_timestamp()})
    for col in cols:
        out[col] = sums[col].array
    out["n_days"] = n_days.to_numpy().astype(int)

    labels = None
    if timeline is not None:
        labels = timeline.annotate(window[date_column])
    elif phase_column is not None and phase_column in df.columns:
        labels = window[phase_column]
    if labels is not None:
        modes = {p: mode_phase(g) for p, g in labels.groupby(period, sort=False)}
        out["phase"] = pd.Series([modes.get(m) for m in months], dtype=object)

    if constants is not None:
        group_of = {v: k for k, v in CASE_COLUMNS.items()}
        rate_cols = []
        for col in cols:
            group = group_of.get(col)
            if group is None:
                continue
            out[RATE_COLUMNS[group]] = density_rate(out[col], out["month"], group, constants)
            rate_cols.append(RATE_COLUMNS[group])
        out["rates_complete"] = out[rate_cols].notna().all(axis=1).astype(bool) if rate_cols else True
    return out

# ---- Severity score -------------------------------------------------------

def severity_scores(
    df: pd.DataFrame,
    start=None,
    end=None,
    columns: Sequence[str] = SEVERITY_COLUMNS,
    date_column: str = "date",
) -> pd.DataFrame:
    """
    log(1 + total) per outcome over the window, rescaled so the largest reads 100.

    Returns columns: measure, total, log_total, score.
    Raises UndefinedMetricError when every total is zero.
    """
    window = _window(df, start, end, date_column)
    totals = window[list(columns)].sum().astype(float)
    if (totals < 0).any():
        raise ValueError(f"Negative outcome totals: {totals[totals < 0].to_dict()}")

    log_totals = np.log1p(totals)
    peak = log_totals.max()
    if not peak > 0:
        raise UndefinedMetricError(
            f"No severity signal: {list(columns)} all sum to zero in the window"
        )
    return pd.DataFrame({
        "measure": list(columns),
        "total": totals.to_numpy(),
        "log_total": log_totals.to_numpy(),
        "score": (log_totals / peak * 100).to_numpy(),
    })


def severity_by_period(
    df: pd.DataFrame,
    periods: Mapping[str, Tuple],
    columns: Sequence[str] = SEVERITY_COLUMNS,
    date_column: str = "date",
) -> pd.DataFrame:
    """Severity scores per named (start, end) window, stacked with a `period` column."""
    frames = []
    for name, (start, end) in periods.items():
        block = severity_scores(df, start, end, columns, date_column)
        block.insert(0, "period", name)
        frames.append(block)
    return pd.concat(frames, ignore_index=True)

# ---- Per-group z-score ----------------------------------------------------

def rates_long(
    df: pd.DataFrame,
    rate_columns: Mapping[str, str] = RATE_COLUMNS,
    date_column: str = "date",
) -> pd.DataFrame:
    """Melt per-group rate columns into (date, group, rate) rows."""
    wide = df[[date_column] + list(rate_columns.values())]
    wide = wide.rename(columns={v: k for k, v in rate_columns.items()})
    return wide.melt(id_vars=date_column, var_name="group", value_name="rate")


def zscore_by_group(
    df: pd.DataFrame,
    value_column: str = "rate",
    group_column: str = "group",
    strict: bool = True,
    out_column: str = "zscore",
) -> pd.DataFrame:
    """
    Copy of df with (value - group mean) / group std, per group.

    Uses the sample standard deviation over the group's defined values;
    undefined inputs stay undefined. A group with fewer than two defined
    values or no variance raises UndefinedMetricError, or, with
    strict=False, is left as pd.NA with a RuntimeWarning.
    """
    out = df.copy()
    z = pd.Series(pd.NA, index=df.index, dtype="Float64")
    for name, sub in df.groupby(group_column, sort=False):
        defined = sub[value_column].astype("Float64").dropna()
        try:
            z.loc[defined.index] = _zscore(defined.to_numpy(dtype=float), name)
        except UndefinedMetricError as e:
            if strict:
                raise
            warnings.warn(str(e), RuntimeWarning)
    out[out_column] = z
    return out


def _zscore(values: np.ndarray, group) -> np.ndarray:
    if len(values) < 2:
        raise UndefinedMetricError(
            f"Group '{group}': z-score needs at least 2 defined values, got {len(values)}",
            group=group,
        )
    if np.all(values == values[0]):
        raise UndefinedMetricError(
            f"Group '{group}': zero variance, z-score is undefined", group=group
        )
    return stats.zscore(values, ddof=1)

# ---- Internal helpers -----------------------------------------------------

def _window(df: pd.DataFrame, start, end, date_column: str) -> pd.DataFrame:
    days = pd.to_datetime(df[date_column]).dt.normalize()
    mask = pd.Series(True, index=df.index)
    if start is not None:
        mask &= days >= pd.Timestamp(start).normalize()
    if end is not None:
        mask &= days <= pd.Timestamp(end).normalize()
    return df.loc[mask]
