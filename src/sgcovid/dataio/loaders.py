"""
===========================================================
loaders.py
Last Updated: 2026-10-19
===========================================================

Description:
    Loader for the Singapore COVID-19 daily case-tracking CSV.
    Reads a local file or URL, declares column types and returns
    a typed daily table sorted by date.

Notes:
    - Only empty cells are missing values ("NA", "null" and the
      like are text), the cleaner deals with them.
    - Anything else that does not parse in a date / float /
      integer column aborts the load (MalformedInputError with
      the 1-based data row and the column name).
    - Integer columns hold counts and must be non-negative.
    - "string" columns are loaded as-is (stripped); coercion of
      those is the cleaner's job.
    - Dates must be present and unique.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import io
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional
import numpy as np
import pandas as pd
import requests

from sgcovid.constants import COLUMN_RENAMES, RAW_COLUMN_TYPES
from sgcovid.errors import MalformedInputError

logger = logging.getLogger(__name__)

COLUMN_KINDS = ("date", "float", "integer", "string")
DATE_FORMAT = "%Y-%m-%d"

# ---- Public API -----------------------------------------------------------

def load_sg_covid(
    source: str | Path,
    column_types: Optional[Mapping[str, str]] = None,
    rename: bool = True,
    timeout_s: int = 30,
) -> pd.DataFrame:
    """
    Load the daily case-tracking table and apply the column-type declaration.

    Parameters
    ----------
    source : str | Path
        Local CSV path or http(s) URL.
    column_types : mapping, optional
        Column name -> one of "date", "float", "integer", "string".
        Defaults to the public Singapore dataset schema. Exactly one
        column must be declared as "date"; it is the table key.
    rename : bool
        Rename known raw headers to the canonical snake_case schema.
    timeout_s : int
        Network timeout for URL sources.

    Returns
    -------
    pd.DataFrame
        One row per date, ascending, RangeIndex. Integer columns use the
        nullable Int64 dtype, floats float64, dates datetime64[ns].

    Raises
    ------
    MalformedInputError
        Declared column missing, unparseable value, duplicate date.
    """
    types = dict(RAW_COLUMN_TYPES if column_types is None else column_types)
    _check_declaration(types)

    raw = _read_csv_robust(source, timeout_s)
    missing = [c for c in types if c not in raw.columns]
    if missing:
        raise MalformedInputError(
            f"Declared column(s) not found in header: {missing}. "
            f"Available: {list(raw.columns)}",
            column=missing[0],
        )

    df = raw.copy()
    for col, kind in types.items():
        df[col] = _parse_column(raw[col], col, kind)

    date_col = next(c for c, k in types.items() if k == "date")
    _check_unique_dates(df, date_col)

    df = df.sort_values(date_col, kind="mergesort").reset_index(drop=True)
    if rename:
        df = df.rename(columns={k: v for k, v in COLUMN_RENAMES.items() if k in df.columns})

    logger.info("Loaded %d rows x %d columns from %s", len(df), df.shape[1], source)
    return df

# ---------- Robust CSV reader -----------------------------------------------

def _read_csv_robust(source: str | Path, timeout_s: int = 30) -> pd.DataFrame:
    """
    Read every cell as text from a local path or URL.
    """
    src = str(source)

    p = Path(src)
    if p.exists():
        try:
            df = pd.read_csv(p, dtype=str, keep_default_na=False, na_values=[""])
        except pd.errors.EmptyDataError as e:
            raise RuntimeError(f"File exists but is empty: {p}") from e
        return _standardize_columns(df)

    if not src.startswith(("http://", "https://")):
        raise FileNotFoundError(f"No such file: {src}")

    headers = {"User-Agent": "Mozilla/5.0 (sgcovid-loader)"}
    try:
        resp = requests.get(src, headers=headers, timeout=timeout_s)
    except requests.RequestException as e:
        raise RuntimeError(f"Failed to fetch URL: {src}\n{e}") from e

    if resp.status_code != 200:
        raise RuntimeError(f"HTTP {resp.status_code} fetching {src}")

    content = resp.content or b""
    try:
        df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False, na_values=[""])
    except pd.errors.EmptyDataError as e:
        raise RuntimeError("Response contained no CSV data.") from e
    return _standardize_columns(df)

# ---- Internal helpers -----------------------------------------------------

def _standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    # strip stray whitespace in the published headers
    df.columns = pd.Index([str(c).strip() for c in df.columns])
    return df


def _check_declaration(types: Dict[str, str]) -> None:
    bad = {c: k for c, k in types.items() if k not in COLUMN_KINDS}
    if bad:
        raise ValueError(f"Unsupported column type(s) {bad}; expected one of {COLUMN_KINDS}")
    dates = [c for c, k in types.items() if k == "date"]
    if len(dates) != 1:
        raise ValueError(f"Exactly one 'date' column must be declared, got {dates}")


def _blank_to_na(values: pd.Series) -> pd.Series:
    stripped = values.str.strip()
    return stripped.mask(stripped == "", np.nan)


def _parse_column(values: pd.Series, col: str, kind: str) -> pd.Series:
    text = _blank_to_na(values.astype(object))
    present = text.notna()

    if kind == "string":
        return text
    if kind == "date":
        parsed = pd.to_datetime(text, format=DATE_FORMAT, errors="coerce")
        ok = parsed.notna()
        # the date is the table key, a blank one is as bad as a garbled one
        present = pd.Series(True, index=text.index)
    else:
        parsed = pd.to_numeric(text, errors="coerce")
        ok = parsed.notna() & np.isfinite(parsed.fillna(0.0))
        if kind == "integer":
            # integer columns are counts
            ok &= (parsed.fillna(0.0) % 1 == 0) & (parsed.fillna(0.0) >= 0)

    bad = present & ~ok
    if bad.any():
        idx = bad.idxmax()
        expected = "non-negative integer" if kind == "integer" else kind
        raise MalformedInputError(
            f"Row {idx + 1}, column '{col}': cannot parse {text[idx]!r} as {expected}",
            row=int(idx) + 1,
            column=col,
            value=text[idx],
        )

    if kind == "integer":
        return parsed.astype("Int64")
    if kind == "float":
        return parsed.astype(float)
    return parsed


def _check_unique_dates(df: pd.DataFrame, date_col: str) -> None:
    dup = df[date_col].duplicated(keep="first") & df[date_col].notna()
    if dup.any():
        idx = dup.idxmax()
        raise MalformedInputError(
            f"Row {idx + 1}, column '{date_col}': duplicate date {df[date_col][idx].date()}",
            row=int(idx) + 1,
            column=date_col,
            value=df[date_col][idx],
        )
