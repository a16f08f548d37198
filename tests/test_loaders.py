import pandas as pd
import pytest

from sgcovid.dataio import loaders
from sgcovid.dataio.loaders import load_sg_covid
from sgcovid.errors import MalformedInputError

SMALL_TYPES = {"Date": "date", "Cases": "integer", "Pct": "float", "Phase": "string"}


def test_load_declares_types_and_renames(raw_csv):
    df = load_sg_covid(raw_csv)
    assert len(df) == 62
    assert df["date"].is_monotonic_increasing
    assert pd.api.types.is_datetime64_any_dtype(df["date"])
    assert str(df["dorm_cases"].dtype) == "Int64"
    assert str(df["community_cases"].dtype) == "Int64"
    # string columns are left for the cleaner
    assert df["pct_one_dose"].dtype == object
    assert df["phase"].iloc[0] == "Phase 2"


def test_blank_numeric_cell_is_missing_not_malformed(raw_csv):
    df = load_sg_covid(raw_csv)
    assert pd.isna(df.loc[3, "community_cases"])
    assert df["community_cases"].isna().sum() == 1


def test_rows_are_sorted_by_date(write_csv):
    path = write_csv(
        "Date,Cases,Pct,Phase\n"
        "2020-06-03,3,1.5,Phase 1\n"
        "2020-06-01,1,,Phase 1\n"
        "2020-06-02,2,0.5,Phase 1\n"
    )
    df = load_sg_covid(path, SMALL_TYPES, rename=False)
    assert df["Cases"].tolist() == [1, 2, 3]
    assert df["Pct"].dtype == float
    assert list(df.index) == [0, 1, 2]


def test_unparseable_date_reports_row_and_column(write_csv):
    path = write_csv(
        "Date,Cases,Pct,Phase\n"
        "2020-06-01,1,0.5,Phase 1\n"
        "01/06/2020,2,0.5,Phase 1\n"
    )
    with pytest.raises(MalformedInputError) as exc:
        load_sg_covid(path, SMALL_TYPES, rename=False)
    assert exc.value.row == 2
    assert exc.value.column == "Date"
    assert exc.value.value == "01/06/2020"


def test_blank_date_is_malformed(write_csv):
    path = write_csv("Date,Cases,Pct,Phase\n,1,0.5,Phase 1\n")
    with pytest.raises(MalformedInputError) as exc:
        load_sg_covid(path, SMALL_TYPES, rename=False)
    assert exc.value.row == 1


def test_non_integral_value_in_integer_column(write_csv):
    path = write_csv(
        "Date,Cases,Pct,Phase\n"
        "2020-06-01,1,0.5,Phase 1\n"
        "2020-06-02,2,0.5,Phase 1\n"
        "2020-06-03,2.5,0.5,Phase 1\n"
    )
    with pytest.raises(MalformedInputError, match="Cases") as exc:
        load_sg_covid(path, SMALL_TYPES, rename=False)
    assert exc.value.row == 3


def test_text_in_float_column(write_csv):
    path = write_csv("Date,Cases,Pct,Phase\n2020-06-01,1,NA,Phase 1\n")
    with pytest.raises(MalformedInputError) as exc:
        load_sg_covid(path, SMALL_TYPES, rename=False)
    assert exc.value.column == "Pct"


@pytest.mark.parametrize("token", ["null", "N/A", "NaN", "None", "NULL", "nan"])
def test_missing_value_words_are_malformed_not_missing(write_csv, token):
    path = write_csv(f"Date,Cases,Pct,Phase\n2020-06-01,{token},0.5,Phase 1\n")
    with pytest.raises(MalformedInputError) as exc:
        load_sg_covid(path, SMALL_TYPES, rename=False)
    assert exc.value.row == 1
    assert exc.value.column == "Cases"
    assert exc.value.value == token


def test_string_column_keeps_missing_value_words(write_csv):
    path = write_csv(
        "Date,Cases,Pct,Phase\n"
        "2020-06-01,1,0.5,None\n"
        "2020-06-02,1,0.5,NA\n"
        "2020-06-03,1,0.5,\n"
    )
    df = load_sg_covid(path, SMALL_TYPES, rename=False)
    assert df["Phase"].tolist()[:2] == ["None", "NA"]
    assert pd.isna(df["Phase"].iloc[2])


def test_negative_count_is_malformed(write_csv):
    path = write_csv(
        "Date,Cases,Pct,Phase\n"
        "2020-06-01,1,0.5,Phase 1\n"
        "2020-06-02,-3,0.5,Phase 1\n"
    )
    with pytest.raises(MalformedInputError, match="non-negative") as exc:
        load_sg_covid(path, SMALL_TYPES, rename=False)
    assert exc.value.row == 2
    assert exc.value.value == "-3"


def test_negative_float_is_allowed(write_csv):
    path = write_csv("Date,Cases,Pct,Phase\n2020-06-01,0,-0.5,Phase 1\n")
    df = load_sg_covid(path, SMALL_TYPES, rename=False)
    assert df["Pct"].tolist() == [-0.5]


def test_duplicate_date(write_csv):
    path = write_csv(
        "Date,Cases,Pct,Phase\n"
        "2020-06-01,1,0.5,Phase 1\n"
        "2020-06-01,2,0.5,Phase 1\n"
    )
    with pytest.raises(MalformedInputError, match="duplicate"):
        load_sg_covid(path, SMALL_TYPES, rename=False)


def test_missing_declared_column(write_csv):
    path = write_csv("Date,Cases\n2020-06-01,1\n")
    with pytest.raises(MalformedInputError) as exc:
        load_sg_covid(path, SMALL_TYPES, rename=False)
    assert exc.value.column == "Pct"


def test_header_whitespace_is_stripped(write_csv):
    path = write_csv(" Date , Cases ,Pct,Phase\n2020-06-01,1,0.5,Phase 1\n")
    df = load_sg_covid(path, SMALL_TYPES, rename=False)
    assert "Cases" in df.columns


def test_bad_declaration():
    with pytest.raises(ValueError):
        load_sg_covid("unused.csv", {"Date": "date", "Cases": "decimal"})
    with pytest.raises(ValueError):
        load_sg_covid("unused.csv", {"Cases": "integer"})


def test_missing_local_file():
    with pytest.raises(FileNotFoundError):
        load_sg_covid("does/not/exist.csv", SMALL_TYPES)


class _FakeResponse:
    def __init__(self, status_code, content):
        self.status_code = status_code
        self.content = content


def test_url_source(monkeypatch):
    body = b"Date,Cases,Pct,Phase\n2020-06-01,4,0.5,Phase 1\n"
    monkeypatch.setattr(loaders.requests, "get", lambda *a, **k: _FakeResponse(200, body))
    df = load_sg_covid("https://example.org/covid19_sg.csv", SMALL_TYPES, rename=False)
    assert df["Cases"].tolist() == [4]


def test_url_http_error(monkeypatch):
    monkeypatch.setattr(loaders.requests, "get", lambda *a, **k: _FakeResponse(404, b""))
    with pytest.raises(RuntimeError, match="HTTP 404"):
        load_sg_covid("https://example.org/missing.csv", SMALL_TYPES)
