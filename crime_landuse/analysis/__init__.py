"""Descriptive frequency tables and their charts."""

from crime_landuse.analysis.aggregations import (
    DescriptiveTables,
    category_frequency,
    counts_by_hour_range,
    counts_by_land_use,
    counts_by_weekday,
    describe,
)

__all__ = [
    "DescriptiveTables",
    "category_frequency",
    "counts_by_hour_range",
    "counts_by_weekday",
    "counts_by_land_use",
    "describe",
]
