import matplotlib.pyplot as plt
import pandas as pd
import pytest

from sgcovid.constants import COMMUNITY, DORM
from sgcovid.phases import PhaseTimeline
from sgcovid.utils.figures import (
    plot_daily_cases,
    plot_monthly_cases,
    plot_severity_radar,
    plot_zscore_trend,
)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


def test_daily_cases_draws_one_average_per_group():
    daily = pd.DataFrame({
        "date": pd.date_range("2021-01-01", periods=5, freq="D"),
        "dorm_cases": pd.array([1, 2, 3, 4, 5], dtype="Int64"),
        "community_cases": pd.array([0, 1, 0, 1, 0], dtype="Int64"),
        "dorm_cases_ma": [1.0, 1.5, 2.0, 2.5, 3.0],
        "community_cases_ma": [0.0, 0.5, 0.3, 0.5, 0.4],
    })
    ax = plot_daily_cases(daily)
    assert len(ax.get_lines()) == 2


@pytest.mark.parametrize("no_phase", [None, float("nan"), pd.NA, ""])
def test_monthly_cases_labels_phases(tmp_path, no_phase):
    monthly = pd.DataFrame({
        "month": pd.to_datetime(["2021-01-01", "2021-02-01"]),
        "dorm_cases": [10, 0],
        "community_cases": [5, 0],
        "phase": pd.Series(["Phase 3", no_phase], dtype=object),
    })
    path = tmp_path / "monthly.png"
    ax = plot_monthly_cases(monthly, save_path=path)
    assert path.exists()
    assert [t.get_text() for t in ax.texts] == ["Phase 3"]


def test_severity_radar_one_polygon_per_period():
    severity = pd.DataFrame({
        "period": ["2020"] * 3 + ["2021"] * 3,
        "measure": ["daily_deaths", "icu", "hospitalised"] * 2,
        "score": [20.0, 60.0, 100.0, 30.0, 70.0, 100.0],
    })
    ax = plot_severity_radar(severity)
    assert len(ax.get_lines()) == 2
    assert ax.get_ylim() == (0, 100)


def test_zscore_trend_shades_phases():
    timeline = PhaseTimeline.from_records([
        ("2021-01-01", "2021-01-03", "A"),
        ("2021-01-03", "2021-02-01", "B"),
    ])
    dates = pd.date_range("2021-01-01", periods=4, freq="D")
    zscores = pd.DataFrame({
        "date": list(dates) * 2,
        "group": [DORM] * 4 + [COMMUNITY] * 4,
        "zscore": pd.array([-1.0, 0.0, 1.0, None, 1.0, 0.0, -1.0, 0.0], dtype="Float64"),
        "zscore_loess": [-1.0, 0.0, 1.0, float("nan"), 1.0, 0.0, -1.0, 0.0],
    })
    ax = plot_zscore_trend(zscores, timeline)
    assert [t.get_text() for t in ax.texts] == ["A", "B"]
    # raw + LOESS per group
    assert len(ax.get_lines()) == 2 * 2 + 1
