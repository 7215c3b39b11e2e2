"""
===========================================================
temporal.py
Author: Veronica Scerra
Last Updated: 2026-02-03
===========================================================

Description:
    Calendar features for long case tables: year, day_of_year,
    week_of_year and month.

Notes:
    - "simple" weeks count 7-day blocks from January 1st:
      week = (day_of_year - 1) // 7 + 1, so Jan 1-7 is week 1
      and Dec 30/31 can fall in week 53. Weeks never straddle
      a year boundary.
    - "iso" weeks follow ISO-8601 (Monday start; early January
      can belong to week 52/53 of the previous year); 'year' is
      then the ISO year.
    - Whichever convention is chosen, the weekly aggregator groups
      on the same 'week_of_year' column.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from typing import Literal
import pandas as pd

from .errors import UnparsableDate

logger = logging.getLogger(__name__)

WeekConvention = Literal["simple", "iso"]


def _parse_dates(values: pd.Series) -> pd.Series:
    if pd.api.types.is_datetime64_any_dtype(values):
        return values
    parsed = pd.to_datetime(values, format="ISO8601", errors="coerce")
    bad = values[parsed.isna() & values.notna()]
    if len(bad):
        raise UnparsableDate(bad.astype(str).unique().tolist())
    return parsed


def week_of_year(dates: pd.Series, convention: WeekConvention = "simple") -> pd.Series:
    """Week number (1..53) of each date under the given convention"""
    if convention == "simple":
        return ((dates.dt.dayofyear - 1) // 7 + 1).astype("int64")
    elif convention == "iso":
        return dates.dt.isocalendar().week.astype("int64")
    else:
        raise ValueError("convention must be 'simple' or 'iso'")


def add_calendar_features(
    df: pd.DataFrame,
    week_convention: WeekConvention = "simple",
) -> pd.DataFrame:
    """
    Parse 'date' and add year, day_of_year, week_of_year and month.

    Parameters
    ----------
    df : pd.DataFrame
        Long table with a 'date' column (datetime64 or ISO date strings).
    week_convention : {"simple", "iso"}
        Week numbering rule; see module notes.

    Returns
    -------
    pd.DataFrame
        Copy of `df` with 'date' as datetime64 and the calendar columns.

    Raises
    ------
    UnparsableDate
        If any non-null 'date' value cannot be parsed.
    """
    out = df.copy()
    out["date"] = _parse_dates(out["date"])
    if out["date"].isna().any():
        raise UnparsableDate(["<missing>"] * int(out["date"].isna().sum()))

    if week_convention == "iso":
        # ISO year keeps (year, week_of_year) consistent across Jan 1st
        out["year"] = out["date"].dt.isocalendar().year.astype("int64")
    else:
        out["year"] = out["date"].dt.year.astype("int64")
    out["day_of_year"] = out["date"].dt.dayofyear.astype("int64")
    out["week_of_year"] = week_of_year(out["date"], week_convention)
    out["month"] = out["date"].dt.month.astype("int64")
    logger.debug("Added calendar features (%s weeks) to %d rows", week_convention, len(out))
    return out
