"""
===========================================================
visualizations.py
Author: Veronica Scerra
Last Updated: 2026-02-12
===========================================================
Visualization module for state case rates
==========================================

Faceted time-series charts of daily records and a single-week
choropleth of weekly rates. Each plot is driven by a small
declarative spec (fields, facet, color scale, title, caption).

License: MIT
===========================================================
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
import geopandas as gpd

from ..geometry import latest_week

logger = logging.getLogger(__name__)

# set style
sns.set_style("whitegrid")
sns.set_context("paper", font_scale=1.1)

CAPTION = "Data: Harvard CGA US COVID-19 daily cases; boundaries: US Census Bureau"


@dataclass
class ChartSpec:
    """Line chart faceted by entity"""
    y: str
    title: str
    ylabel: str
    x: str = "date"
    facet: str = "state_name"
    xlabel: str = "Date"
    caption: str = CAPTION
    color: str = "#d62728"
    col_wrap: int = 8
    height: float = 1.6
    aspect: float = 1.3
    sharey: bool = True


@dataclass
class MapSpec:
    """Choropleth of one week; title may use {week}"""
    fill: str
    title: str
    legend_label: str
    caption: str = CAPTION
    cmap: str = "viridis"
    edgecolor: str = "white"
    figsize: tuple = (11, 7)


DAILY_RATE_CHART = ChartSpec(
    y="daily_rate_per_100k",
    title="Daily new cases per 100k",
    ylabel="Cases per 100k",
)
CUMULATIVE_RATE_CHART = ChartSpec(
    y="cumulative_rate_per_100k",
    title="Cumulative cases per 100k",
    ylabel="Cases per 100k",
    color="#1f77b4",
)
WEEKLY_RATE_MAP = MapSpec(
    fill="weekly_rate_per_100k",
    title="New cases per 100k, week {week}",
    legend_label="Cases per 100k",
)


def plot_faceted_trends(
    daily: pd.DataFrame,
    spec: ChartSpec = DAILY_RATE_CHART,
    states: Optional[Sequence[str]] = None,
) -> plt.Figure:
    """
    Small-multiple line charts, one panel per value of spec.facet.

    Parameters
    ----------
    daily : DataFrame
        Daily rate records (output of compute_rates).
    spec : ChartSpec
        Fields and labels to draw.
    states : sequence of str, optional
        Restrict to these facet values.

    Returns
    -------
    fig : Figure
    """
    data = daily if states is None else daily.loc[daily[spec.facet].isin(states)]
    if data.empty:
        raise ValueError("Nothing to plot: no rows for the requested states")

    n_panels = data[spec.facet].nunique()
    g = sns.relplot(
        data=data,
        x=spec.x,
        y=spec.y,
        col=spec.facet,
        col_wrap=min(spec.col_wrap, n_panels),
        kind="line",
        color=spec.color,
        height=spec.height,
        aspect=spec.aspect,
        facet_kws={"sharey": spec.sharey},
    )
    g.set_titles("{col_name}")
    g.set_axis_labels(spec.xlabel, spec.ylabel)
    for ax in g.axes.flat:
        plt.setp(ax.xaxis.get_majorticklabels(), rotation=45, ha="right")

    fig = g.figure
    fig.suptitle(spec.title, fontsize=14, fontweight="bold")
    fig.text(0.99, 0.005, spec.caption, ha="right", va="bottom", fontsize=8, color="gray")
    fig.tight_layout(rect=(0, 0.02, 1, 0.97))
    return fig


def plot_choropleth(
    joined: gpd.GeoDataFrame,
    spec: MapSpec = WEEKLY_RATE_MAP,
    week: Optional[int] = None,
) -> plt.Figure:
    """
    Choropleth of one week of the joined weekly table.

    If `week` is None the most recent week with data is drawn.
    """
    if week is None:
        data = latest_week(joined, value_col=spec.fill)
    else:
        data = joined.loc[(joined["week_of_year"] == week) & joined[spec.fill].notna()]
    if data.empty:
        raise ValueError("Nothing to map: no rows with data for the requested week")
    shown_week = int(data["week_of_year"].iloc[0])

    fig, ax = plt.subplots(figsize=spec.figsize)
    gpd.GeoDataFrame(data, geometry=joined.geometry.name, crs=joined.crs).plot(
        column=spec.fill,
        cmap=spec.cmap,
        edgecolor=spec.edgecolor,
        linewidth=0.4,
        legend=True,
        legend_kwds={"label": spec.legend_label, "shrink": 0.6},
        ax=ax,
    )
    ax.set_title(spec.title.format(week=shown_week), fontsize=14, fontweight="bold")
    ax.set_axis_off()
    fig.text(0.99, 0.01, spec.caption, ha="right", va="bottom", fontsize=8, color="gray")
    return fig


def save_figure(fig: plt.Figure, path: str | Path) -> Path:
    """Write a figure to disk (parent dirs created) and close it"""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(p, bbox_inches="tight")
    plt.close(fig)
    logger.info("Figure saved to %s", p)
    return p
