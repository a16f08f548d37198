import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest


def make_raw_frame(start: str = "2020-12-01", days: int = 62) -> pd.DataFrame:
    """Raw (all-text) rows shaped like the published Singapore dataset."""
    dates = pd.date_range(start, periods=days, freq="D")
    rows = []
    for i, d in enumerate(dates):
        rows.append({
            "Date": d.strftime("%Y-%m-%d"),
            "Daily Confirmed": str(10 + i % 9),
            "Daily Imported": str(i % 4),
            "Daily Local transmission": str(6 + i % 5),
            "Local cases residing in dorms MOH report": str((i * 7) % 23),
            "Local cases not residing in doms MOH report": "" if i == 3 else str((i * 3) % 11),
            "Daily Deaths": "1" if i % 10 == 0 else "0",
            "Intensive Care Unit (ICU)": str(i % 5),
            "Still Hospitalised": str(40 + i % 7),
            "Perc population completed at least one dose": "" if i < 40 else f"{(i - 40) * 0.5:.1f}",
            "Perc population completed vaccination": "" if i < 50 else f"{(i - 50) * 0.2:.1f}%",
            "Phase": "Phase 2" if d < pd.Timestamp("2020-12-28") else "Phase 3",
        })
    return pd.DataFrame(rows)


@pytest.fixture
def raw_frame():
    return make_raw_frame()


@pytest.fixture
def raw_csv(tmp_path, raw_frame):
    path = tmp_path / "covid19_sg.csv"
    raw_frame.to_csv(path, index=False)
    return path


@pytest.fixture
def write_csv(tmp_path):
    """Write literal CSV text and return its path."""
    def _write(text: str, name: str = "data.csv"):
        path = tmp_path / name
        path.write_text(text)
        return path
    return _write
