"""
===========================================================
pipeline.py
Author: Veronica Scerra
Last Updated: 2026-02-14
===========================================================

Description:
    End-to-end preparation of state COVID-19 case rates:
    fetch -> reshape -> calendar features -> rates -> weekly
    aggregate -> join with state boundaries.

Example Usage:
    from caserates.pipeline import CaseRatesConfig, run_pipeline
    result = run_pipeline(CaseRatesConfig())
    result.weekly.head()

    python -m caserates.pipeline --out figures/

Notes:
    - Fetchers are plain callables and can be swapped for local
      readers or retry wrappers; the pipeline itself never retries.
    - Any FetchFailure / date error aborts the run.
-----------------------------------------------------------
License: MIT
===========================================================
"""

from __future__ import annotations
import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Tuple
import geopandas as gpd
import pandas as pd

from dataio.boundaries import CONUS_ALBERS_EPSG, Resolution, fetch_state_boundaries
from dataio.dataverse import DEFAULT_SERVER, fetch_dataverse_file, load_case_table, read_case_table

from .geometry import EXCLUDED_STATES, join_geometry
from .rates import compute_rates
from .reshape import DEFAULT_ID_COLUMNS, wide_to_long
from .temporal import WeekConvention, add_calendar_features
from .weekly import aggregate_weekly

logger = logging.getLogger(__name__)


@dataclass
class CaseRatesConfig:
    """
    Configuration for fetching and preparing state case rates
    """
    # dataset
    dataset_id: str = "doi:10.7910/DVN/HIDLTK"
    filename: str = "us_state_confirmed_case.tab"
    server: str = DEFAULT_SERVER
    original_format: bool = False
    # read this file instead of fetching when set
    local_path: Optional[Path] = None
    id_columns: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ID_COLUMNS))
    # calendar
    week_convention: WeekConvention = "simple"
    weekly_by_year: bool = False
    # boundaries
    boundary_year: int = 2020
    boundary_resolution: Resolution = "20m"
    crs_epsg: int = CONUS_ALBERS_EPSG
    excluded_states: Tuple[str, ...] = tuple(sorted(EXCLUDED_STATES))
    # networking
    timeout_s: int = 60
    # directory for intermediate outputs. If None, do not save
    save_to: Optional[Path] = None


@dataclass
class PipelineResult:
    daily: pd.DataFrame
    weekly: pd.DataFrame
    joined: gpd.GeoDataFrame


TableFetcher = Callable[[CaseRatesConfig], pd.DataFrame]
BoundaryFetcher = Callable[[CaseRatesConfig], gpd.GeoDataFrame]


def fetch_case_table(config: CaseRatesConfig) -> pd.DataFrame:
    """Default table collaborator: local file if configured, else Dataverse"""
    if config.local_path is not None:
        return load_case_table(config.local_path)
    content = fetch_dataverse_file(
        config.dataset_id,
        config.filename,
        server=config.server,
        original=config.original_format,
        timeout_s=config.timeout_s,
    )
    return read_case_table(content, config.filename)


def fetch_boundaries(config: CaseRatesConfig) -> gpd.GeoDataFrame:
    return fetch_state_boundaries(
        year=config.boundary_year,
        resolution=config.boundary_resolution,
        crs_epsg=config.crs_epsg,
        timeout_s=config.timeout_s,
    )


def prepare_case_rates(raw: pd.DataFrame, config: Optional[CaseRatesConfig] = None) -> pd.DataFrame:
    """
    Reshape a wide case table and derive calendar features and rates.

    Returns the daily long table (one row per state per date).
    """
    config = config or CaseRatesConfig()
    long_df = wide_to_long(raw, config.id_columns)
    long_df = add_calendar_features(long_df, config.week_convention)
    return compute_rates(long_df)


def _save_outputs(result: PipelineResult, out_dir: Path) -> None:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    result.daily.to_csv(out_dir / "daily_case_rates.csv", index=False)
    result.weekly.to_csv(out_dir / "weekly_case_rates.csv", index=False)
    result.joined.to_file(out_dir / "weekly_case_rates.gpkg", driver="GPKG")
    logger.info("Saved intermediate outputs to %s", out_dir)


def run_pipeline(
    config: Optional[CaseRatesConfig] = None,
    fetch_table: Optional[TableFetcher] = None,
    fetch_geometry: Optional[BoundaryFetcher] = None,
) -> PipelineResult:
    """
    Run every stage once and return the daily, weekly and joined tables.

    Parameters
    ----------
    config : CaseRatesConfig, optional
        Pipeline options; defaults are the Harvard CGA state file.
    fetch_table : callable, optional
        config -> wide DataFrame. Defaults to fetch_case_table.
    fetch_geometry : callable, optional
        config -> GeoDataFrame with 'state_name'. Defaults to fetch_boundaries.
    """
    config = config or CaseRatesConfig()
    fetch_table = fetch_table or fetch_case_table
    fetch_geometry = fetch_geometry or fetch_boundaries

    raw = fetch_table(config)
    logger.info("Case table: %d rows x %d columns", *raw.shape)
    daily = prepare_case_rates(raw, config)
    if not config.weekly_by_year and daily["year"].nunique() > 1:
        logger.warning(
            "Data spans years %s but weeks are grouped without the year; "
            "same-numbered weeks will be merged (set weekly_by_year=True)",
            sorted(daily["year"].unique().tolist()),
        )
    weekly = aggregate_weekly(daily, by_year=config.weekly_by_year)

    boundaries = fetch_geometry(config)
    joined = join_geometry(weekly, boundaries, excluded=config.excluded_states)

    result = PipelineResult(daily=daily, weekly=weekly, joined=joined)
    if config.save_to:
        _save_outputs(result, config.save_to)
    return result


# ---- CLI -------------------------------------------------------------------

def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render state COVID-19 case-rate charts and map")
    parser.add_argument("--out", type=Path, default=Path("figures"), help="Output directory for PNGs")
    parser.add_argument("--local-path", type=Path, default=None, help="Read the case table from a local file")
    parser.add_argument("--week-convention", choices=["simple", "iso"], default="simple")
    parser.add_argument("--by-year", action="store_true", help="Keep the same week number of different years apart")
    parser.add_argument("--states", nargs="*", default=None, help="Restrict charts to these states")
    parser.add_argument("--save-tables", action="store_true", help="Also write CSV/GeoPackage outputs")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def run_cli(argv: Optional[Sequence[str]] = None) -> PipelineResult:
    """Parse arguments, run the pipeline and write the three figures"""
    from .utils.visualizations import (
        CUMULATIVE_RATE_CHART,
        DAILY_RATE_CHART,
        plot_choropleth,
        plot_faceted_trends,
        save_figure,
    )

    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg = CaseRatesConfig(
        local_path=args.local_path,
        week_convention=args.week_convention,
        weekly_by_year=args.by_year,
        save_to=args.out / "tables" if args.save_tables else None,
    )
    result = run_pipeline(cfg)

    save_figure(plot_faceted_trends(result.daily, DAILY_RATE_CHART, args.states), args.out / "daily_rate_by_state.png")
    save_figure(plot_faceted_trends(result.daily, CUMULATIVE_RATE_CHART, args.states), args.out / "cumulative_rate_by_state.png")
    save_figure(plot_choropleth(result.joined), args.out / "weekly_rate_map.png")

    print(result.weekly.head())
    print(f"\nDaily rows: {len(result.daily):,}  Weekly rows: {len(result.weekly):,}")
    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    run_cli(argv)
    return 0


if __name__ == "__main__":
    sys.exit(main())
