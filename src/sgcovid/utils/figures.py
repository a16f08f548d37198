"""
===========================================================
figures.py
Last Updated: 2026-10-19
===========================================================
Report figures for the Singapore COVID-19 trends pipeline
==========================================================

Daily case series with moving averages, monthly grouped bars
labelled with the month's phase, a severity radar chart and
the z-score normalized trend with phase shading.

Each plot takes the tables from pipeline.run_pipeline, returns
its Axes and saves to `save_path` when one is given.

License: MIT
===========================================================
"""

from __future__ import annotations
from pathlib import Path
from typing import List, Optional
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.axes import Axes

from sgcovid.constants import CASE_COLUMNS, DORM, COMMUNITY
from sgcovid.phases import PhaseTimeline

# set style
sns.set_style("whitegrid")
sns.set_context("paper", font_scale=1.2)
plt.rcParams['figure.dpi'] = 150
plt.rcParams['savefig.dpi'] = 300

GROUP_COLORS = {DORM: "#d1495b", COMMUNITY: "#00798c"}
GROUP_LABELS = {DORM: "Dormitory residents", COMMUNITY: "Community"}
MEASURE_LABELS = {"daily_deaths": "Deaths", "icu": "ICU", "hospitalised": "Hospitalised"}


def _finish(ax: Axes, save_path: Optional[Path]) -> Axes:
    if save_path:
        Path(save_path).parent.mkdir(parents=True, exist_ok=True)
        ax.figure.tight_layout()
        ax.figure.savefig(save_path, bbox_inches='tight')
    return ax


def plot_daily_cases(daily: pd.DataFrame,
                     ax: Optional[Axes] = None,
                     save_path: Optional[Path] = None) -> Axes:
    """
    Daily dormitory and community cases with their moving averages.

    Expects the `<count>_ma` columns added by the pipeline.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(12, 5))

    for group, col in CASE_COLUMNS.items():
        color = GROUP_COLORS[group]
        ax.bar(daily["date"], daily[col].astype(float), color=color, alpha=0.25, width=1.0)
        ax.plot(daily["date"], daily[f"{col}_ma"], color=color, linewidth=2,
                label=f"{GROUP_LABELS[group]} (moving average)")

    ax.set_xlabel("Date")
    ax.set_ylabel("Daily cases")
    ax.set_title("Daily COVID-19 cases, dormitory vs community")
    ax.legend()
    return _finish(ax, save_path)


def plot_monthly_cases(monthly: pd.DataFrame,
                       ax: Optional[Axes] = None,
                       save_path: Optional[Path] = None) -> Axes:
    """Grouped monthly bars; the month's dominant phase is written above each pair."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(14, 6))

    x = np.arange(len(monthly))
    width = 0.4
    tops = np.zeros(len(monthly))
    for i, (group, col) in enumerate(CASE_COLUMNS.items()):
        values = monthly[col].astype(float).to_numpy()
        ax.bar(x + (i - 0.5) * width, values, width, color=GROUP_COLORS[group],
               label=GROUP_LABELS[group])
        tops = np.maximum(tops, values)

    if "phase" in monthly.columns:
        pad = tops.max() * 0.02 if len(tops) and tops.max() > 0 else 1.0
        for xi, top, phase in zip(x, tops, monthly["phase"]):
            if isinstance(phase, str) and phase:
                ax.text(xi, top + pad, phase, rotation=90, ha="center", va="bottom", fontsize=7)

    ax.set_xticks(x)
    ax.set_xticklabels(monthly["month"].dt.strftime("%b %Y"), rotation=45, ha="right")
    ax.set_ylabel("Monthly cases")
    ax.set_title("Monthly COVID-19 cases by population group")
    ax.legend()
    return _finish(ax, save_path)


def plot_severity_radar(severity: pd.DataFrame,
                        save_path: Optional[Path] = None) -> Axes:
    """
    Radar chart of severity scores (0-100), one polygon per period.
    """
    if "period" not in severity.columns:
        severity = severity.assign(period="all")
    measures = list(dict.fromkeys(severity["measure"]))
    angles = np.linspace(0, 2 * np.pi, len(measures), endpoint=False).tolist()
    angles += angles[:1]

    fig, ax = plt.subplots(figsize=(6, 6), subplot_kw={"polar": True})
    palette = sns.color_palette("deep", severity["period"].nunique())
    for color, (period, block) in zip(palette, severity.groupby("period", sort=False)):
        scores = block.set_index("measure").loc[measures, "score"].tolist()
        scores += scores[:1]
        ax.plot(angles, scores, color=color, linewidth=2, label=str(period))
        ax.fill(angles, scores, color=color, alpha=0.2)

    ax.set_xticks(angles[:-1])
    ax.set_xticklabels([MEASURE_LABELS.get(m, m) for m in measures])
    ax.set_ylim(0, 100)
    ax.set_title("Outcome severity (log-scaled, max = 100)")
    ax.legend(loc="upper right", bbox_to_anchor=(1.3, 1.1))
    return _finish(ax, save_path)


def plot_zscore_trend(zscores: pd.DataFrame,
                      timeline: Optional[PhaseTimeline] = None,
                      ax: Optional[Axes] = None,
                      save_path: Optional[Path] = None) -> Axes:
    """
    Z-score normalized density rates per group, LOESS curve on top,
    phases shaded in the background.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(14, 6))

    if timeline is not None and len(zscores):
        lo = zscores["date"].min()
        hi = zscores["date"].max() + pd.Timedelta(days=1)
        shades = sns.color_palette("pastel", len(timeline.names))
        shade_of = dict(zip(timeline.names, shades))
        for span in timeline.phase_spans(lo, hi):
            ax.axvspan(span.start, span.end, color=shade_of[span.name], alpha=0.3, linewidth=0)
            ax.text(span.start, 1.0, span.name, transform=ax.get_xaxis_transform(),
                    rotation=90, va="top", fontsize=7)

    for group, block in zscores.groupby("group", sort=False):
        color = GROUP_COLORS.get(group)
        z = block["zscore"].to_numpy(dtype=float, na_value=np.nan)
        ax.plot(block["date"], z, color=color, alpha=0.35, linewidth=1)
        if "zscore_loess" in block.columns:
            ax.plot(block["date"], block["zscore_loess"], color=color, linewidth=2.5,
                    label=f"{GROUP_LABELS.get(group, group)} (LOESS)")

    ax.axhline(0, color="black", linewidth=0.8)
    ax.set_xlabel("Date")
    ax.set_ylabel("Z-score of density-adjusted rate")
    ax.set_title("Normalized case-rate trends by population group")
    if ax.get_legend_handles_labels()[0]:
        ax.legend()
    return _finish(ax, save_path)


def render_report(result, out_dir: str | Path) -> List[Path]:
    """
    Write every figure for a PipelineResult into `out_dir`; returns the paths.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = []

    def _save(name, draw):
        path = out_dir / name
        ax = draw(path)
        plt.close(ax.figure)
        paths.append(path)

    _save("daily_cases.png", lambda p: plot_daily_cases(result.daily, save_path=p))
    _save("monthly_cases.png", lambda p: plot_monthly_cases(result.monthly, save_path=p))
    if result.severity is not None:
        _save("severity_radar.png", lambda p: plot_severity_radar(result.severity, save_path=p))
    timeline = result.config.timeline if result.config is not None else None
    _save("zscore_trend.png", lambda p: plot_zscore_trend(result.zscores, timeline, save_path=p))
    return paths
