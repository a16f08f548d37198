import numpy as np
import pandas as pd
import pytest

from sgcovid.smoothing import loess, moving_average


def test_moving_average_uses_row_order():
    values = pd.Series([1, 2, 3, 4, 5])
    out = moving_average(values, window=3)
    assert out.tolist() == pytest.approx([1.0, 1.5, 2.0, 3.0, 4.0])


def test_moving_average_centered():
    out = moving_average(pd.Series([0, 3, 0, 3, 0]), window=3, center=True)
    assert out.tolist() == pytest.approx([1.5, 1.0, 2.0, 1.0, 1.5])


def test_moving_average_nullable_ints():
    out = moving_average(pd.Series(pd.array([2, 4], dtype="Int64")), window=2)
    assert out.tolist() == pytest.approx([2.0, 3.0])


def test_moving_average_window_checked():
    with pytest.raises(ValueError):
        moving_average(pd.Series([1.0]), window=0)


def test_loess_follows_a_smooth_curve():
    dates = pd.Series(pd.date_range("2021-01-01", periods=60, freq="D"))
    values = pd.Series(np.sin(np.arange(60) / 10.0))
    out = loess(values, dates, frac=0.15)
    assert out.to_numpy() == pytest.approx(values.to_numpy(), abs=0.1)


def test_loess_keeps_missing_values_missing():
    values = pd.Series(pd.array([1.0, 3.0, None, 2.0, 5.0, 4.0], dtype="Float64"))
    out = loess(values, frac=0.8)
    assert out.isna().tolist() == [False, False, True, False, False, False]


def test_loess_frac_checked():
    with pytest.raises(ValueError):
        loess(pd.Series([1.0, 2.0]), frac=0)
