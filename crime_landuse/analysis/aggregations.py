"""
Crime Land Use - Descriptive Aggregations

Frequency tables over incidents or joined records, suitable for charting:
    - category_frequency: (category, count, percent) sorted by count
    - counts_by_hour_range: (hour_range, category, count)
    - counts_by_weekday: (day_of_week, category, count)
    - counts_by_land_use: (category, land_use_category, count)

All functions are pure; percentages are taken over the full input, not only
over the rows that survive a top-N cut.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pandas as pd

from crime_landuse.datasets.incidents.preprocess import HOUR_RANGES

logger = logging.getLogger(__name__)

WEEKDAY_ORDER = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _require(df: pd.DataFrame, columns: list[str]) -> None:
    missing = set(columns) - set(df.columns)
    if missing:
        raise ValueError(f"Missing columns for aggregation: {missing}")


def category_frequency(df: pd.DataFrame, top_n: int | None = None) -> pd.DataFrame:
    """
    Count incidents per category with their share of the total.

    Args:
        df: Incidents with a ``category`` column
        top_n: Keep only the N most frequent categories

    Returns:
        DataFrame with columns category, count, percent
    """
    _require(df, ["category"])
    counts = df["category"].value_counts()
    total = int(counts.sum())

    table = counts.rename_axis("category").reset_index(name="count")
    table["percent"] = table["count"] / total * 100 if total else 0.0
    table = table.sort_values(["count", "category"], ascending=[False, True], kind="stable")

    if top_n is not None:
        table = table.head(top_n)
    return table.reset_index(drop=True)


def _count_by(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    _require(df, columns)
    missing = int(df[columns].isna().any(axis=1).sum())
    if missing > 0:
        logger.warning(f"Leaving out {missing} rows with a missing {' or '.join(columns)}")
    return df.groupby(columns, observed=True).size().reset_index(name="count")


def counts_by_hour_range(df: pd.DataFrame) -> pd.DataFrame:
    """Count incidents per (hour_range, category), ordered by hour range."""
    table = _count_by(df, ["hour_range", "category"])
    table["hour_range"] = pd.Categorical(table["hour_range"], categories=HOUR_RANGES, ordered=True)
    return table.sort_values(["hour_range", "category"]).reset_index(drop=True)


def counts_by_weekday(df: pd.DataFrame) -> pd.DataFrame:
    """Count incidents per (day_of_week, category), Monday first."""
    table = _count_by(df, ["day_of_week", "category"])
    table["day_of_week"] = pd.Categorical(
        table["day_of_week"], categories=WEEKDAY_ORDER, ordered=True
    )
    return table.sort_values(["day_of_week", "category"]).reset_index(drop=True)


def counts_by_land_use(df: pd.DataFrame) -> pd.DataFrame:
    """Count joined records per (category, land_use_category), largest first within category."""
    table = _count_by(df, ["category", "land_use_category"])
    return table.sort_values(
        ["category", "count", "land_use_category"], ascending=[True, False, True]
    ).reset_index(drop=True)


@dataclass
class DescriptiveTables:
    """The four descriptive tables of the report."""

    category_frequency: pd.DataFrame
    by_hour_range: pd.DataFrame
    by_weekday: pd.DataFrame
    by_land_use: pd.DataFrame

    def items(self) -> list[tuple[str, pd.DataFrame]]:
        return [
            ("category_frequency", self.category_frequency),
            ("by_hour_range", self.by_hour_range),
            ("by_weekday", self.by_weekday),
            ("by_land_use", self.by_land_use),
        ]


def describe(
    incidents: pd.DataFrame, joined: pd.DataFrame, top_n: int | None = None
) -> DescriptiveTables:
    """
    Build all descriptive tables.

    Category frequency is computed over every cleaned incident; the time and
    land-use breakdowns over the joined target-category records.
    """
    tables = DescriptiveTables(
        category_frequency=category_frequency(incidents, top_n=top_n),
        by_hour_range=counts_by_hour_range(joined),
        by_weekday=counts_by_weekday(joined),
        by_land_use=counts_by_land_use(joined),
    )
    logger.info(
        "Built descriptive tables",
        extra={name: len(table) for name, table in tables.items()},
    )
    return tables
