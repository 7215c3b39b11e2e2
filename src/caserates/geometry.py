"""
===========================================================
geometry.py
Author: Veronica Scerra
Last Updated: 2026-02-09
===========================================================

Description:
    Attach state boundary polygons to weekly aggregates and
    pick the single week a choropleth is drawn for.

Notes:
    - Join key is 'state_name', exact and case-sensitive.
      Unmatched names are logged, never raised.
    - Alaska and Hawaii are removed after the join; they sit
      outside the contiguous-US projection used for the map.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional
import geopandas as gpd
import pandas as pd

logger = logging.getLogger(__name__)

EXCLUDED_STATES = frozenset({"Alaska", "Hawaii"})


def find_join_mismatches(
    weekly: pd.DataFrame,
    boundaries: pd.DataFrame,
    key: str = "state_name",
) -> Dict[str, List[str]]:
    """
    Names present on only one side of the join.

    Returns a dict with 'missing_geometry' (in case data, not in
    boundaries) and 'missing_cases' (in boundaries, not in case data).
    """
    case_names = set(weekly[key].dropna().astype(str))
    geo_names = set(boundaries[key].dropna().astype(str))
    return {
        "missing_geometry": sorted(case_names - geo_names),
        "missing_cases": sorted(geo_names - case_names),
    }


def join_geometry(
    weekly: pd.DataFrame,
    boundaries: gpd.GeoDataFrame,
    excluded: Optional[Iterable[str]] = None,
    key: str = "state_name",
) -> gpd.GeoDataFrame:
    """
    Left-join weekly case rows onto boundary polygons by state name.

    Parameters
    ----------
    weekly : pd.DataFrame
        Output of aggregate_weekly.
    boundaries : gpd.GeoDataFrame
        One polygon per state with a 'state_name' column.
    excluded : iterable of str, optional
        Names removed after the join. Defaults to EXCLUDED_STATES.

    Returns
    -------
    gpd.GeoDataFrame
        One row per (state polygon, week); states without case data keep
        a single row with null case fields. CRS is that of `boundaries`.
    """
    excluded = EXCLUDED_STATES if excluded is None else frozenset(excluded)

    mismatches = find_join_mismatches(weekly, boundaries, key=key)
    for side, names in mismatches.items():
        if names:
            logger.warning("Join mismatch (%s): %s", side, ", ".join(names))

    # shared columns (GEOID): case value where matched, boundary value otherwise
    shared = [c for c in boundaries.columns if c in weekly.columns and c != key]
    joined = boundaries.merge(weekly, on=key, how="left", suffixes=("_boundary", ""))
    for col in shared:
        joined[col] = joined[col].astype(object).where(joined[col].notna(), joined[f"{col}_boundary"])
    joined = joined.drop(columns=[f"{c}_boundary" for c in shared])
    joined = gpd.GeoDataFrame(joined, geometry=boundaries.geometry.name, crs=boundaries.crs)

    before = len(joined)
    joined = joined.loc[~joined[key].isin(excluded)].reset_index(drop=True)
    logger.info(
        "Joined %d weekly rows onto %d boundaries; removed %d excluded row(s)",
        len(weekly), len(boundaries), before - len(joined),
    )
    return joined


def latest_week(
    joined: pd.DataFrame,
    value_col: str = "weekly_rate_per_100k",
    week_col: str = "week_of_year",
) -> pd.DataFrame:
    """
    Restrict a joined table to its most recent week.

    Rows without case data are dropped. When a 'year' column is present
    the latest (year, week) pair is used.
    """
    present = joined.loc[joined[value_col].notna()]
    if present.empty:
        return present
    if "year" in present.columns:
        last = present[["year", week_col]].drop_duplicates().sort_values(["year", week_col]).iloc[-1]
        mask = (present["year"] == last["year"]) & (present[week_col] == last[week_col])
    else:
        mask = present[week_col] == present[week_col].max()
    return present.loc[mask].reset_index(drop=True)
