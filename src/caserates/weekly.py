"""
===========================================================
weekly.py
Author: Veronica Scerra
Last Updated: 2026-02-05
===========================================================

Description:
    Roll daily rate records up to one row per entity per week.

Notes:
    - weekly_rate_per_100k is the SUM of the daily rates, not
      weekly_new_cases / population * 1e5. The two agree only
      when population is identical on every row of the week.
    - A week with any undefined daily rate is dropped whole.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from typing import List
import pandas as pd

logger = logging.getLogger(__name__)

WEEK_KEYS: List[str] = ["GEOID", "state_name", "week_of_year"]


def aggregate_weekly(df: pd.DataFrame, by_year: bool = False) -> pd.DataFrame:
    """
    Group daily rows by (GEOID, state_name, week_of_year) and aggregate.

    Parameters
    ----------
    df : pd.DataFrame
        Output of compute_rates with calendar features.
    by_year : bool
        Also key on 'year', for tables spanning more than one year.

    Returns
    -------
    pd.DataFrame
        Columns: [year,] GEOID, state_name, week_of_year, population,
        weekly_new_cases, weekly_rate_per_100k.
    """
    keys = (["year"] if by_year else []) + WEEK_KEYS
    work = df[keys + ["population", "daily_new_cases_clamped", "daily_rate_per_100k"]].copy()
    work["_undefined"] = work["daily_rate_per_100k"].isna()

    weekly = (
        work.groupby(keys, sort=True)
        .agg(
            population=("population", "mean"),
            weekly_new_cases=("daily_new_cases_clamped", "sum"),
            weekly_rate_per_100k=("daily_rate_per_100k", "sum"),
            _undefined=("_undefined", "any"),
        )
        .reset_index()
    )

    dropped = int(weekly["_undefined"].sum())
    if dropped:
        logger.warning("Dropped %d entity-week(s) with undefined daily rates", dropped)
    weekly = weekly.loc[~weekly["_undefined"]].drop(columns="_undefined")
    weekly["weekly_new_cases"] = weekly["weekly_new_cases"].astype("int64")

    logger.info("Aggregated %d daily rows into %d weekly rows", len(df), len(weekly))
    return weekly.reset_index(drop=True)
