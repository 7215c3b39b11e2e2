"""
===========================================================
reshape.py
Author: Veronica Scerra
Last Updated: 2026-02-03
===========================================================

Description:
    Wide-to-long reshaping of cumulative case tables.
    The raw table carries one row per state and one column per
    calendar date; the output has one row per (state, date) with
    the cumulative count in 'cumulative_cases'.

Example Usage:
    from caserates.reshape import wide_to_long
    long_df = wide_to_long(raw_df)

Notes:
    - Date columns are those whose name begins with a digit.
    - Column names must be YYYYMMDD or YYYY-MM-DD.
    - Identifier lookup tolerates case/whitespace differences.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
import re
from typing import Dict, Iterable, List, Optional
import pandas as pd

from .errors import MalformedDateColumn

logger = logging.getLogger(__name__)

DEFAULT_ID_COLUMNS: Dict[str, str] = {
    "fips": "GEOID",
    "NAME": "state_name",
    "population": "population",
}

_DATE_COLUMN = re.compile(r"^\d")
_YMD = re.compile(r"^(\d{4})-?(\d{2})-?(\d{2})$")


def parse_date_column(name: str) -> pd.Timestamp:
    """
    Parse a wide-table column name into a calendar date.

    "20200315" and "2020-03-15" both give Timestamp('2020-03-15').
    Anything else (including impossible dates such as "20201345")
    raises MalformedDateColumn.
    """
    m = _YMD.match(str(name).strip())
    if m is None:
        raise MalformedDateColumn(str(name))
    year, month, day = (int(g) for g in m.groups())
    try:
        return pd.Timestamp(year=year, month=month, day=day)
    except ValueError as e:
        raise MalformedDateColumn(str(name)) from e


def select_date_columns(columns: Iterable) -> List[str]:
    """Return the column names that begin with a digit, in table order"""
    return [str(c) for c in columns if _DATE_COLUMN.match(str(c).strip())]


def _standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    df.columns = pd.Index([str(c).strip() for c in df.columns])
    return df


def _normalize_geoid(values: pd.Series) -> pd.Series:
    # numeric codes lose their leading zero (1 -> "01"); state FIPS are 2 digits
    if pd.api.types.is_float_dtype(values):
        values = values.astype("Int64")
    text = values.astype("string").str.strip()
    return text.where(~text.str.fullmatch(r"\d+").fillna(False), text.str.zfill(2))


def _find_col(columns, expected_name: str) -> str:
    """
    Tolerant column lookup: exact match first, then case/space-insensitive.
    """
    names = [str(c) for c in columns]
    for name in names:
        if name == expected_name:
            return name
    exp = expected_name.strip().lower()
    for name in names:
        if name.strip().lower() == exp:
            return name
    raise KeyError(f"Expected column '{expected_name}' not found. Available: {names}")


def wide_to_long(
    raw: pd.DataFrame,
    id_columns: Optional[Dict[str, str]] = None,
) -> pd.DataFrame:
    """
    Convert a wide cumulative-count table into one row per entity per date.

    Parameters
    ----------
    raw : pd.DataFrame
        One row per entity; identifier columns plus one column per date.
    id_columns : dict, optional
        Mapping of raw identifier column -> canonical name. Defaults to
        fips -> GEOID, NAME -> state_name, population -> population.

    Returns
    -------
    pd.DataFrame
        Columns: GEOID, state_name, population, date (datetime64[ns]),
        cumulative_cases (Int64). Row count is entities x date columns.

    Raises
    ------
    MalformedDateColumn
        If a column beginning with a digit is not a parseable date.
    KeyError
        If an identifier column is missing.
    """
    id_columns = dict(DEFAULT_ID_COLUMNS if id_columns is None else id_columns)
    df = _standardize_columns(raw.copy())

    renames = {_find_col(df.columns, src): dst for src, dst in id_columns.items()}
    date_cols = select_date_columns(df.columns)
    # parse every header up front so a bad one fails before melting
    dates = {c: parse_date_column(c) for c in date_cols}

    wide = df[list(renames) + date_cols].rename(columns=renames)
    id_vars = list(renames.values())
    long_df = wide.melt(
        id_vars=id_vars,
        value_vars=date_cols,
        var_name="date",
        value_name="cumulative_cases",
    )
    long_df["date"] = pd.to_datetime(long_df["date"].map(dates))
    long_df["cumulative_cases"] = (
        pd.to_numeric(long_df["cumulative_cases"], errors="coerce").round().astype("Int64")
    )
    if "GEOID" in long_df.columns:
        long_df["GEOID"] = _normalize_geoid(long_df["GEOID"])
    if "population" in long_df.columns:
        long_df["population"] = pd.to_numeric(long_df["population"], errors="coerce")

    logger.info(
        "Reshaped %d entities x %d date columns into %d rows",
        len(wide), len(date_cols), len(long_df),
    )
    return long_df.reset_index(drop=True)
