"""
===========================================================
boundaries.py
Author: Veronica Scerra
Last Updated: 2026-02-10
===========================================================

Description:
    US state boundary polygons from the Census Bureau cartographic
    boundary files, projected for mapping.

Notes:
    - Default projection is EPSG:5070 (NAD83 / Conus Albers).
    - Output columns: GEOID, STUSPS, state_name, geometry.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import logging
import tempfile
from pathlib import Path
from typing import Literal
import geopandas as gpd
import requests

from caserates.errors import FetchFailure

logger = logging.getLogger(__name__)

Resolution = Literal["500k", "5m", "20m"]

CENSUS_CB_URL = "https://www2.census.gov/geo/tiger/GENZ{year}/shp/cb_{year}_us_state_{resolution}.zip"
CONUS_ALBERS_EPSG = 5070


def boundary_url(year: int = 2020, resolution: Resolution = "20m") -> str:
    if resolution not in ("500k", "5m", "20m"):
        raise ValueError("resolution must be '500k', '5m' or '20m'")
    return CENSUS_CB_URL.format(year=year, resolution=resolution)


def _standardize(gdf: gpd.GeoDataFrame, crs_epsg: int | None) -> gpd.GeoDataFrame:
    gdf = gdf.rename(columns={"NAME": "state_name"})
    keep = [c for c in ("GEOID", "STUSPS", "state_name") if c in gdf.columns]
    if "state_name" not in keep:
        raise FetchFailure(f"Boundary file has no NAME column. Available: {list(gdf.columns)}")
    gdf = gdf[keep + [gdf.geometry.name]]
    if crs_epsg is not None:
        gdf = gdf.to_crs(epsg=crs_epsg)
    return gdf.reset_index(drop=True)


def load_state_boundaries(path: str | Path, crs_epsg: int | None = CONUS_ALBERS_EPSG) -> gpd.GeoDataFrame:
    """Read a local boundary file (shapefile, zipped shapefile, GeoPackage)"""
    p = Path(path)
    if not p.exists():
        raise FetchFailure(f"File not found: {p}", source=str(p))
    src = f"zip://{p}" if p.suffix.lower() == ".zip" else str(p)
    return _standardize(gpd.read_file(src), crs_epsg)


def fetch_state_boundaries(
    year: int = 2020,
    resolution: Resolution = "20m",
    crs_epsg: int | None = CONUS_ALBERS_EPSG,
    timeout_s: int = 60,
) -> gpd.GeoDataFrame:
    """
    Download state cartographic boundaries and project them.

    Parameters
    ----------
    year : int
        Boundary vintage.
    resolution : {"500k", "5m", "20m"}
        Generalization level of the Census file.
    crs_epsg : int or None
        Target EPSG code; None keeps the source CRS (NAD83 geographic).
    timeout_s : int
        Download timeout in seconds.

    Returns
    -------
    gpd.GeoDataFrame
        One row per state/territory.
    """
    url = boundary_url(year, resolution)
    logger.debug("GET %s", url)
    try:
        resp = requests.get(url, timeout=timeout_s)
    except requests.RequestException as e:
        raise FetchFailure(f"Failed to fetch URL: {url}\n{e}", source=url) from e
    if resp.status_code != 200:
        raise FetchFailure(f"HTTP {resp.status_code} fetching {url}", source=url)

    with tempfile.TemporaryDirectory() as tmp:
        zip_path = Path(tmp) / Path(url).name
        zip_path.write_bytes(resp.content)
        try:
            gdf = gpd.read_file(f"zip://{zip_path}")
        except Exception as e:
            raise FetchFailure(f"Could not read boundary archive from {url}", source=url) from e

    logger.info("Fetched %d state boundaries (%s, %s)", len(gdf), year, resolution)
    return _standardize(gdf, crs_epsg)
