"""
Shared fixtures: a small wide case table and box-shaped state boundaries.
"""
import matplotlib

matplotlib.use("Agg")

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box


@pytest.fixture
def wide_cases():
    """Three states, four consecutive days (one column per date)."""
    return pd.DataFrame(
        {
            "fips": ["01", "02", "06"],
            "NAME": ["Alabama", "Alaska", "California"],
            "population": [100000, 50000, 200000],
            "20200313": [10, 1, 20],
            "20200314": [10, 3, 30],
            "20200315": [15, 4, 30],
            "20200316": [12, 6, 50],
        }
    )


@pytest.fixture
def state_boundaries():
    """Unit squares for a few states, already in the projected CRS."""
    names = ["Alabama", "Alaska", "California", "Hawaii", "Texas"]
    return gpd.GeoDataFrame(
        {
            "GEOID": ["01", "02", "06", "15", "48"],
            "STUSPS": ["AL", "AK", "CA", "HI", "TX"],
            "state_name": names,
        },
        geometry=[box(i, 0, i + 1, 1) for i in range(len(names))],
        crs="EPSG:5070",
    )
