"""
===========================================================
pipeline.py
Last Updated: 2026-10-19
===========================================================

Description:
    One report run: load -> clean -> derive metrics -> annotate
    phases, returning every derived table for the figures.

Example Usage:
    python -m sgcovid.pipeline data/covid19_sg.csv --out figures/

    from sgcovid.pipeline import PipelineConfig, run_pipeline
    result = run_pipeline(PipelineConfig(source="data/covid19_sg.csv"))
    result.monthly.head()

Notes:
    - Every call loads the source afresh; nothing is cached between
      runs, so separate runs can go in parallel.
    - Each stage returns a new table; earlier tables are kept on
      the result unchanged.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple
import pandas as pd

from sgcovid.constants import CASE_COLUMNS, NUMERIC_COLUMNS, SEVERITY_COLUMNS
from sgcovid.dataio.cleaning import CleaningReport, clean_numeric
from sgcovid.dataio.loaders import load_sg_covid
from sgcovid.errors import UndefinedMetricError
from sgcovid.metrics import (
    DEFAULT_DENSITY_CONSTANTS,
    DensityConstants,
    add_density_rates,
    monthly_aggregate,
    rates_long,
    severity_by_period,
    zscore_by_group,
)
from sgcovid.phases import DEFAULT_PHASES, PhaseTimeline
from sgcovid.smoothing import loess, moving_average

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    """
    Configuration for one report run
    """
    source: str | Path = "data/covid19_sg.csv"
    # analysis window (inclusive); None means the whole table
    start: Optional[str] = "2020-01-23"
    end: Optional[str] = "2021-12-31"
    numeric_columns: Tuple[str, ...] = NUMERIC_COLUMNS
    # trailing moving-average window, in rows
    smooth: int = 7
    # LOESS span for the z-score trend
    loess_frac: float = 0.1
    constants: DensityConstants = DEFAULT_DENSITY_CONSTANTS
    timeline: PhaseTimeline = DEFAULT_PHASES
    # named windows for the severity comparison; default is one per calendar year
    severity_periods: Optional[Dict[str, Tuple[str, str]]] = None
    # zero-variance groups raise when strict, are left undefined otherwise
    strict_zscore: bool = True
    # output directory for figures; None to skip rendering
    save_to: Optional[Path] = None


@dataclass
class PipelineResult:
    loaded: pd.DataFrame
    cleaning: CleaningReport
    daily: pd.DataFrame
    monthly: pd.DataFrame
    severity: Optional[pd.DataFrame]
    zscores: pd.DataFrame
    config: PipelineConfig = field(repr=False, default=None)

    @property
    def cleaned(self) -> pd.DataFrame:
        return self.cleaning.table

    def summary(self) -> str:
        lo, hi = self.daily["date"].min(), self.daily["date"].max()
        lines = [
            "Singapore COVID-19 trends",
            "=" * 50,
            f"Days in window: {len(self.daily)} ({lo.date()} -> {hi.date()})",
            f"Missing cells before cleaning: {self.cleaning.missing_before}",
            f"Zero cells after cleaning: {self.cleaning.zeros_after}",
            f"Months aggregated: {len(self.monthly)}",
        ]
        for group, col in CASE_COLUMNS.items():
            lines.append(f"Total {group} cases: {int(self.daily[col].sum()):,}")
        if self.severity is not None:
            lines.append("Severity scores:")
            for row in self.severity.itertuples(index=False):
                lines.append(f"  {row.period:<10} {row.measure:<14} {row.score:6.1f}")
        return "\n".join(lines)

# ---- Public API -----------------------------------------------------------

def run_pipeline(config: PipelineConfig = PipelineConfig()) -> PipelineResult:
    """
    Run every stage for one report and return the derived tables.
    """
    loaded = load_sg_covid(config.source)
    cleaning = clean_numeric(loaded, config.numeric_columns)
    if cleaning.missing_before:
        logger.info("%d missing numeric cell(s) treated as zero", cleaning.missing_before)

    daily = _window(cleaning.table, config.start, config.end)
    if daily.empty:
        raise ValueError(f"No records between {config.start} and {config.end}")
    daily = _derive_daily(daily, config)

    lo, hi = daily["date"].min(), daily["date"].max()
    monthly = monthly_aggregate(
        daily, lo, hi,
        timeline=config.timeline,
        constants=config.constants,
    )

    periods = config.severity_periods or {
        str(y): (f"{y}-01-01", f"{y}-12-31") for y in sorted(daily["date"].dt.year.unique())
    }
    try:
        severity = severity_by_period(daily, periods, SEVERITY_COLUMNS)
    except UndefinedMetricError as e:
        logger.warning("Severity comparison skipped: %s", e)
        severity = None

    zscores = zscore_by_group(rates_long(daily), strict=config.strict_zscore)
    zscores["zscore_loess"] = float("nan")
    for _, g in zscores.groupby("group", sort=False):
        zscores.loc[g.index, "zscore_loess"] = loess(g["zscore"], g["date"], frac=config.loess_frac)

    result = PipelineResult(
        loaded=loaded,
        cleaning=cleaning,
        daily=daily,
        monthly=monthly,
        severity=severity,
        zscores=zscores,
        config=config,
    )
    if config.save_to:
        # figures pull in matplotlib, only needed when rendering
        from sgcovid.utils.figures import render_report
        render_report(result, config.save_to)
    return result

# ---- Internal helpers -----------------------------------------------------

def _window(df: pd.DataFrame, start: Optional[str], end: Optional[str]) -> pd.DataFrame:
    sub = df
    if start:
        sub = sub[sub["date"] >= pd.to_datetime(start)]
    if end:
        sub = sub[sub["date"] <= pd.to_datetime(end)]
    return sub.reset_index(drop=True)


def _derive_daily(df: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    out = add_density_rates(df, config.constants)
    for col in CASE_COLUMNS.values():
        out[f"{col}_ma"] = moving_average(out[col], window=config.smooth)
    # the published Phase column is patchy; the timeline is authoritative
    out["phase_timeline"] = config.timeline.annotate(out["date"])
    return out

# ---- Command line ---------------------------------------------------------

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="sgcovid",
        description="Derive Singapore COVID-19 trend tables and render the report figures.",
    )
    parser.add_argument("source", help="CSV path or URL of the daily dataset")
    parser.add_argument("--start", default=PipelineConfig.start, help="first day (YYYY-MM-DD)")
    parser.add_argument("--end", default=PipelineConfig.end, help="last day (YYYY-MM-DD)")
    parser.add_argument("--smooth", type=int, default=PipelineConfig.smooth, help="moving-average window")
    parser.add_argument("--constants", help="JSON file of year -> group -> population / land area")
    parser.add_argument("--phases", help="JSON file of phase intervals")
    parser.add_argument("--out", type=Path, help="directory for figures (omit to skip rendering)")
    parser.add_argument("--lenient", action="store_true",
                        help="leave zero-variance z-score groups undefined instead of failing")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = PipelineConfig(
        source=args.source,
        start=args.start,
        end=args.end,
        smooth=args.smooth,
        strict_zscore=not args.lenient,
        save_to=args.out,
    )
    if args.constants:
        config.constants = DensityConstants.from_json(args.constants)
    if args.phases:
        config.timeline = PhaseTimeline.from_json(args.phases)

    result = run_pipeline(config)
    print(result.summary())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
