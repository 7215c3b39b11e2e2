"""
===========================================================
rates.py
Author: Veronica Scerra
Last Updated: 2026-02-05
===========================================================

Description:
    Per-entity incidence and rates per 100k from cumulative counts.

    For each GEOID (sorted by date here, not assumed):
      daily_new_cases          first difference of cumulative_cases;
                               the first date of an entity is 0
      daily_new_cases_clamped  max(daily_new_cases, 0)
      daily_rate_per_100k      clamped / population * 1e5
      cumulative_rate_per_100k cumulative_cases / population * 1e5

Notes:
    - Downward revisions stay visible in daily_new_cases but are
      floored to 0 in the clamped column and in every rate.
    - Zero or missing population leaves NaN rates on those rows
      only and emits UndefinedRateWarning.
    - A missing cumulative count leaves that row undefined; the next
      observed row is differenced against the last observed count.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
import warnings
import numpy as np
import pandas as pd

from .errors import UndefinedRateWarning

logger = logging.getLogger(__name__)

PER_CAPITA_SCALE = 100_000


def _per_100k(values: pd.Series, population: pd.Series) -> pd.Series:
    num = values.to_numpy(dtype="float64", na_value=np.nan)
    den = population.where(population > 0).to_numpy(dtype="float64", na_value=np.nan)
    return pd.Series(num / den * PER_CAPITA_SCALE, index=values.index)


def compute_rates(df: pd.DataFrame, entity_col: str = "GEOID") -> pd.DataFrame:
    """
    Derive daily incidence and per-100k rates for every entity.

    Parameters
    ----------
    df : pd.DataFrame
        Long table with entity_col, 'date', 'cumulative_cases', 'population'.
    entity_col : str
        Column identifying an entity; differences never cross entities.

    Returns
    -------
    pd.DataFrame
        Rows sorted by (entity, date) with the four derived columns added.
    """
    out = df.sort_values([entity_col, "date"], kind="mergesort").reset_index(drop=True)
    population = pd.to_numeric(out["population"], errors="coerce")
    cumulative = out["cumulative_cases"].astype("Int64")

    entity = out[entity_col]
    observed = cumulative.notna()
    # difference against the last observed count so a gap only affects its own row
    carried = cumulative.groupby(entity, sort=False, dropna=False).ffill()
    daily = carried.groupby(entity, sort=False, dropna=False).diff().astype("Int64")
    first_obs = observed & (observed.astype(int).groupby(entity, sort=False, dropna=False).cumsum() == 1)
    daily[first_obs] = 0
    daily[~observed] = pd.NA

    out["daily_new_cases"] = daily
    out["daily_new_cases_clamped"] = daily.clip(lower=0)
    out["daily_rate_per_100k"] = _per_100k(out["daily_new_cases_clamped"], population)
    out["cumulative_rate_per_100k"] = _per_100k(cumulative, population)

    undefined = ~(population > 0)
    if undefined.any():
        names = out.loc[undefined, entity_col].astype(str).unique().tolist()
        msg = (
            f"Population is zero or missing for {int(undefined.sum())} row(s) "
            f"({', '.join(names[:5])}); rates left undefined"
        )
        logger.warning(msg)
        warnings.warn(msg, UndefinedRateWarning, stacklevel=2)

    n_negative = int((daily < 0).sum())
    if n_negative:
        logger.info("Floored %d negative daily differences to 0", n_negative)
    return out
