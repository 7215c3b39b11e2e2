"""
Tests for the end-to-end pipeline with in-memory collaborators.
"""
import logging
import sys
from unittest.mock import patch

import geopandas as gpd
import pandas as pd
import pytest

from caserates.errors import FetchFailure
from caserates.pipeline import (
    CaseRatesConfig,
    fetch_case_table,
    main,
    prepare_case_rates,
    run_cli,
    run_pipeline,
)


def test_default_config():
    cfg = CaseRatesConfig()

    assert cfg.week_convention == "simple"
    assert cfg.crs_epsg == 5070
    assert set(cfg.excluded_states) == {"Alaska", "Hawaii"}
    assert cfg.id_columns == {"fips": "GEOID", "NAME": "state_name", "population": "population"}


def test_prepare_case_rates(wide_cases):
    daily = prepare_case_rates(wide_cases)

    assert len(daily) == 12
    alabama = daily[daily["state_name"] == "Alabama"]
    assert alabama["daily_new_cases_clamped"].tolist() == [0, 0, 5, 0]
    assert {"day_of_year", "week_of_year", "month", "daily_rate_per_100k"} <= set(daily.columns)


def test_run_pipeline_with_injected_collaborators(wide_cases, state_boundaries):
    result = run_pipeline(
        CaseRatesConfig(),
        fetch_table=lambda cfg: wide_cases,
        fetch_geometry=lambda cfg: state_boundaries,
    )

    # Mar 13-16 2020 all fall in simple week 11
    assert len(result.weekly) == 3
    assert set(result.weekly["week_of_year"]) == {11}
    al = result.weekly[result.weekly["state_name"] == "Alabama"].iloc[0]
    assert al["weekly_new_cases"] == 5
    assert isinstance(result.joined, gpd.GeoDataFrame)
    assert "Alaska" not in set(result.joined["state_name"])


def test_iso_weeks_split_the_fixture(wide_cases, state_boundaries):
    result = run_pipeline(
        CaseRatesConfig(week_convention="iso"),
        fetch_table=lambda cfg: wide_cases,
        fetch_geometry=lambda cfg: state_boundaries,
    )

    # Mon Mar 16 starts ISO week 12
    assert sorted(set(result.weekly["week_of_year"])) == [11, 12]


def test_fetch_failure_aborts(state_boundaries):
    def failing(cfg):
        raise FetchFailure("unreachable")

    with pytest.raises(FetchFailure):
        run_pipeline(fetch_table=failing, fetch_geometry=lambda cfg: state_boundaries)


def test_saves_intermediate_outputs(wide_cases, state_boundaries, tmp_path):
    run_pipeline(
        CaseRatesConfig(save_to=tmp_path),
        fetch_table=lambda cfg: wide_cases,
        fetch_geometry=lambda cfg: state_boundaries,
    )

    for name in ("daily_case_rates.csv", "weekly_case_rates.csv", "weekly_case_rates.gpkg"):
        assert (tmp_path / name).exists()


def test_fetch_case_table_reads_local_path(wide_cases, tmp_path):
    path = tmp_path / "cases.csv"
    wide_cases.to_csv(path, index=False)

    raw = fetch_case_table(CaseRatesConfig(local_path=path))

    assert raw.shape == wide_cases.shape


def test_cli_renders_figures(wide_cases, state_boundaries, tmp_path):
    path = tmp_path / "cases.csv"
    wide_cases.to_csv(path, index=False)
    out = tmp_path / "figures"

    with patch("caserates.pipeline.fetch_state_boundaries", return_value=state_boundaries):
        result = run_cli(["--out", str(out), "--local-path", str(path), "--states", "Alabama", "California"])

    assert len(result.weekly) == 3
    for name in ("daily_rate_by_state.png", "cumulative_rate_by_state.png", "weekly_rate_map.png"):
        assert (out / name).exists()


def test_console_entry_point_exits_cleanly(wide_cases, state_boundaries, tmp_path):
    path = tmp_path / "cases.csv"
    wide_cases.to_csv(path, index=False)

    with patch("caserates.pipeline.fetch_state_boundaries", return_value=state_boundaries):
        with pytest.raises(SystemExit) as exc:
            sys.exit(main(["--out", str(tmp_path / "figures"), "--local-path", str(path)]))

    assert exc.value.code == 0


def test_zero_padded_fips_survive_a_csv_round_trip(state_boundaries, tmp_path):
    path = tmp_path / "cases.csv"
    path.write_text("fips,NAME,population,20200313,20200314\n01,Alabama,100000,10,12\n06,California,200000,20,30\n")

    result = run_pipeline(
        CaseRatesConfig(local_path=path),
        fetch_geometry=lambda cfg: state_boundaries,
    )

    assert set(result.daily["GEOID"]) == {"01", "06"}
    assert set(result.weekly["GEOID"]) == {"01", "06"}
    assert result.joined.loc[result.joined["state_name"] == "Alabama", "GEOID"].tolist() == ["01"]


def test_warns_when_weeks_of_different_years_merge(state_boundaries, caplog):
    raw = pd.DataFrame(
        {
            "fips": ["01"],
            "NAME": ["Alabama"],
            "population": [100000],
            "2020-01-01": [1],
            "2021-01-01": [5],
        }
    )

    with caplog.at_level(logging.WARNING, logger="caserates.pipeline"):
        run_pipeline(fetch_table=lambda cfg: raw, fetch_geometry=lambda cfg: state_boundaries)
    assert "same-numbered weeks will be merged" in caplog.text

    caplog.clear()
    with caplog.at_level(logging.WARNING, logger="caserates.pipeline"):
        run_pipeline(
            CaseRatesConfig(weekly_by_year=True),
            fetch_table=lambda cfg: raw,
            fetch_geometry=lambda cfg: state_boundaries,
        )
    assert "same-numbered weeks" not in caplog.text
