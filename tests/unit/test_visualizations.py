"""
Tests for chart and map rendering.
"""
import matplotlib.pyplot as plt
import pytest

from caserates.geometry import join_geometry
from caserates.pipeline import prepare_case_rates
from caserates.utils.visualizations import (
    CUMULATIVE_RATE_CHART,
    MapSpec,
    plot_choropleth,
    plot_faceted_trends,
    save_figure,
)
from caserates.weekly import aggregate_weekly


@pytest.fixture
def daily(wide_cases):
    return prepare_case_rates(wide_cases)


@pytest.fixture
def joined(daily, state_boundaries):
    return join_geometry(aggregate_weekly(daily), state_boundaries)


def test_faceted_trends_one_panel_per_state(daily):
    fig = plot_faceted_trends(daily)

    titles = sorted(ax.get_title() for ax in fig.axes if ax.get_title())
    assert titles == ["Alabama", "Alaska", "California"]
    plt.close(fig)


def test_faceted_trends_state_filter(daily):
    fig = plot_faceted_trends(daily, CUMULATIVE_RATE_CHART, states=["California"])

    assert [ax.get_title() for ax in fig.axes if ax.get_title()] == ["California"]
    assert fig._suptitle.get_text() == "Cumulative cases per 100k"
    plt.close(fig)


def test_faceted_trends_unknown_state(daily):
    with pytest.raises(ValueError):
        plot_faceted_trends(daily, states=["Atlantis"])


def test_choropleth_title_names_latest_week(joined):
    fig = plot_choropleth(joined)

    assert fig.axes[0].get_title() == "New cases per 100k, week 11"
    plt.close(fig)


def test_choropleth_custom_spec(joined):
    spec = MapSpec(fill="weekly_new_cases", title="Cases, week {week}", legend_label="Cases", cmap="magma")

    fig = plot_choropleth(joined, spec, week=11)

    assert fig.axes[0].get_title() == "Cases, week 11"
    plt.close(fig)


def test_choropleth_week_without_data(joined):
    with pytest.raises(ValueError):
        plot_choropleth(joined, week=40)


def test_save_figure(daily, tmp_path):
    path = save_figure(plot_faceted_trends(daily), tmp_path / "out" / "trends.png")

    assert path.exists()
    assert path.stat().st_size > 0
