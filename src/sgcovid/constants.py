"""
===========================================================
constants.py
Last Updated: 2026-10-19
===========================================================

Description:
    Static configuration for the Singapore COVID-19 dataset:
    raw column schema, canonical column names, year-keyed
    population / land-area constants per population group,
    and Singapore's pandemic response phase table.

Notes:
    - Population figures are mid-year estimates; the dormitory
      group covers foreign workers residing in purpose-built
      and factory-converted dormitories.
    - New years can be supplied without code change through
      DensityConstants.from_json (see metrics.py).
-----------------------------------------------------------
License: MIT
===========================================================
"""

from typing import Dict, List, Tuple

# ---- Population groups ------------------------------------------------------

DORM = "dormitory"
COMMUNITY = "community"
GROUPS = (DORM, COMMUNITY)

# ---- Raw dataset schema -----------------------------------------------------

# column name -> declared type ("date" | "float" | "integer" | "string")
RAW_COLUMN_TYPES: Dict[str, str] = {
    "Date": "date",
    "Daily Confirmed": "integer",
    "Daily Imported": "integer",
    "Daily Local transmission": "integer",
    "Local cases residing in dorms MOH report": "integer",
    "Local cases not residing in doms MOH report": "integer",
    "Daily Deaths": "integer",
    "Intensive Care Unit (ICU)": "integer",
    "Still Hospitalised": "integer",
    "Perc population completed at least one dose": "string",
    "Perc population completed vaccination": "string",
    "Phase": "string",
}

COLUMN_RENAMES: Dict[str, str] = {
    "Date": "date",
    "Daily Confirmed": "daily_confirmed",
    "Daily Imported": "daily_imported",
    "Daily Local transmission": "daily_local",
    "Local cases residing in dorms MOH report": "dorm_cases",
    "Local cases not residing in doms MOH report": "community_cases",
    "Daily Deaths": "daily_deaths",
    "Intensive Care Unit (ICU)": "icu",
    "Still Hospitalised": "hospitalised",
    "Perc population completed at least one dose": "pct_one_dose",
    "Perc population completed vaccination": "pct_full_vaccinated",
    "Phase": "phase",
}

# columns the cleaner must coerce to numeric (vaccination percentages are
# published with stray text such as "12%" on a few early rows)
NUMERIC_COLUMNS: Tuple[str, ...] = ("pct_one_dose", "pct_full_vaccinated")

# raw case-count column per population group
CASE_COLUMNS: Dict[str, str] = {
    DORM: "dorm_cases",
    COMMUNITY: "community_cases",
}

RATE_COLUMNS: Dict[str, str] = {
    DORM: "dorm_rate",
    COMMUNITY: "community_rate",
}

SEVERITY_COLUMNS: Tuple[str, ...] = ("daily_deaths", "icu", "hospitalised")

# ---- Year-keyed density constants ------------------------------------------

# year -> group -> (population, land area in km^2)
DENSITY_CONSTANTS: Dict[int, Dict[str, Tuple[int, float]]] = {
    2020: {
        DORM: (311_100, 5.0),
        COMMUNITY: (5_374_700, 723.5),
    },
    2021: {
        DORM: (295_000, 5.0),
        COMMUNITY: (5_158_600, 723.6),
    },
}

# ---- Phase timeline ---------------------------------------------------------

# (start inclusive, end exclusive, phase name); contiguous by construction
PHASE_TABLE: List[Tuple[str, str, str]] = [
    ("2020-01-23", "2020-04-07", "Pre-Circuit Breaker"),
    ("2020-04-07", "2020-06-02", "Circuit Breaker"),
    ("2020-06-02", "2020-06-19", "Phase 1"),
    ("2020-06-19", "2020-12-28", "Phase 2"),
    ("2020-12-28", "2021-05-16", "Phase 3"),
    ("2021-05-16", "2021-06-14", "Phase 2 (Heightened Alert)"),
    ("2021-06-14", "2021-07-22", "Phase 3 (Heightened Alert)"),
    ("2021-07-22", "2021-08-19", "Phase 2 (Heightened Alert)"),
    ("2021-08-19", "2021-09-27", "Preparatory Stage"),
    ("2021-09-27", "2021-11-22", "Stabilisation Phase"),
    ("2021-11-22", "2022-04-26", "Transition Phase"),
]
