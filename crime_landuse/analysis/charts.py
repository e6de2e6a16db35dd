"""
Crime Land Use - Charts

Bar charts for the descriptive tables. Each function takes a table produced
by ``crime_landuse.analysis.aggregations`` and returns a matplotlib Figure.
"""

from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from matplotlib.figure import Figure

logger = logging.getLogger(__name__)

sns.set_theme(style="whitegrid")


def plot_category_frequency(table: pd.DataFrame, top_n: int = 10) -> Figure:
    """Horizontal bar chart of the most frequent categories."""
    data = table.head(top_n)
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.barplot(data=data, x="count", y="category", ax=ax, color="steelblue")
    for patch, pct in zip(ax.patches, data["percent"]):
        ax.annotate(
            f"{pct:.1f}%",
            (patch.get_width(), patch.get_y() + patch.get_height() / 2),
            xytext=(3, 0),
            textcoords="offset points",
            va="center",
            fontsize=8,
        )
    ax.set_title(f"Top {len(data)} Crime Categories")
    ax.set_xlabel("Incidents")
    ax.set_ylabel("")
    fig.tight_layout()
    return fig


def plot_by_hour_range(table: pd.DataFrame) -> Figure:
    """Grouped bars of incidents per hour range and category."""
    fig, ax = plt.subplots(figsize=(14, 6))
    sns.barplot(data=table, x="hour_range", y="count", hue="category", ax=ax)
    ax.set_title("Incidents by Time of Day")
    ax.set_xlabel("Hour range")
    ax.set_ylabel("Incidents")
    ax.tick_params(axis="x", rotation=90)
    fig.tight_layout()
    return fig


def plot_by_weekday(table: pd.DataFrame) -> Figure:
    """Grouped bars of incidents per weekday and category."""
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.barplot(data=table, x="day_of_week", y="count", hue="category", ax=ax)
    ax.set_title("Incidents by Day of Week")
    ax.set_xlabel("")
    ax.set_ylabel("Incidents")
    fig.tight_layout()
    return fig


def plot_by_land_use(table: pd.DataFrame) -> Figure:
    """Grouped horizontal bars of incidents per land-use category and crime category."""
    fig, ax = plt.subplots(figsize=(12, 7))
    sns.barplot(data=table, x="count", y="land_use_category", hue="category", ax=ax)
    ax.set_title("Incidents by Land Use of Nearest Parcel")
    ax.set_xlabel("Incidents")
    ax.set_ylabel("")
    fig.tight_layout()
    return fig


def plot_error_curve(curve: pd.DataFrame) -> Figure:
    """Out-of-bag error against forest size, one line per error column."""
    long = curve.melt(id_vars="n_estimators", var_name="series", value_name="error")
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.lineplot(data=long, x="n_estimators", y="error", hue="series", ax=ax)
    ax.set_title("Out-of-Bag Error by Number of Trees")
    ax.set_xlabel("Trees")
    ax.set_ylabel("Error")
    fig.tight_layout()
    return fig


def save_figure(fig: Figure, path: Path, dpi: int = 120) -> Path:
    """Save a figure and release it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi)
    plt.close(fig)
    logger.info(f"Saved chart to {path}")
    return path
