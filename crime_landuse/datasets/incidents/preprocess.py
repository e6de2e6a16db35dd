"""
Crime Land Use - Incident Preprocessor

Cleans NYPD complaint records into the incident set used by the report.

Transformations:
    - Column renaming to standardized names
    - Drop rows missing coordinates, date or time
    - Hour extraction from HH:MM:SS text (24:00:00 folds to hour 0)
    - Day-of-week and hour-range derivation
    - Borough and inclusive date-window filtering
    - Category aggregation through ordered (pattern, label) rules
    - Point geometry construction

Usage:
    from crime_landuse.datasets.incidents.preprocess import IncidentPreprocessor

    preprocessor = IncidentPreprocessor()
    result = preprocessor.run(raw_df, execution_date="2024-01-15")
    incidents = preprocessor.get_data()
"""

from __future__ import annotations

import logging
from typing import Any

import geopandas as gpd
import pandas as pd

from crime_landuse.datasets.base import BasePreprocessor
from crime_landuse.shared.config import CategoryRule, Settings

logger = logging.getLogger(__name__)

HOUR_RANGES = [f"{h:02d}-{h + 1:02d}" for h in range(24)]


def fold_hour(hour: int) -> int:
    """Fold hour 24 (reported as 24:00:00) onto hour 0."""
    return 0 if hour == 24 else hour


def hour_range_label(hour: int) -> str:
    """
    Map an hour of day to its one-hour range label.

    0 -> "00-01", 23 -> "23-24"; 24 is an alias of 0.
    """
    hour = fold_hour(int(hour))
    if not 0 <= hour <= 23:
        raise ValueError(f"Hour out of range: {hour}")
    return HOUR_RANGES[hour]


def aggregate_categories(
    categories: pd.Series,
    rules: list[CategoryRule],
    label_renames: dict[str, str] | None = None,
    unmatched_label: str | None = None,
) -> pd.Series:
    """
    Collapse free-text categories into coarse labels.

    Every rule is tested against the original upper-cased text; when several
    patterns match, the rule listed last wins. Renames are applied to the
    resulting labels. Text that matches no rule is passed through unchanged,
    or replaced by ``unmatched_label`` when one is given. Values that already
    are canonical labels are left alone, so applying this twice is a no-op.
    """
    label_renames = label_renames or {}
    canonical = {label_renames.get(r.label, r.label) for r in rules}
    if unmatched_label is not None:
        canonical.add(unmatched_label)

    text = categories.astype("string").str.upper().str.strip()
    result = text.copy()
    matched = pd.Series(False, index=text.index)
    # Labels from an earlier pass are final
    settled = text.isin(canonical).fillna(False).astype(bool)

    for rule in rules:
        hit = text.str.contains(rule.pattern.upper(), regex=False, na=False).astype(bool)
        hit &= ~settled
        result = result.mask(hit, rule.label)
        matched |= hit

    result = result.replace(label_renames)

    if unmatched_label is not None:
        keep = matched | result.isin(canonical).fillna(False).astype(bool)
        result = result.where(keep, unmatched_label)

    return result


class IncidentPreprocessor(BasePreprocessor):
    """
    Preprocessor for NYPD complaint records.

    Output is a GeoDataFrame of points in the configured incident CRS.
    """

    # Column mapping from raw names (CSV export and SODA API) to standardized names
    COLUMN_MAPPINGS = {
        "CMPLNT_NUM": "incident_id",
        "CMPLNT_FR_DT": "occurred_date",
        "CMPLNT_FR_TM": "occurred_time",
        "PD_DESC": "category",
        "BORO_NM": "borough",
        "Latitude": "latitude",
        "Longitude": "longitude",
        "cmplnt_num": "incident_id",
        "cmplnt_fr_dt": "occurred_date",
        "cmplnt_fr_tm": "occurred_time",
        "pd_desc": "category",
        "boro_nm": "borough",
    }

    DTYPE_MAPPINGS = {
        "incident_id": "string",
        "occurred_date": "datetime",
        "occurred_time": "string",
        "category": "string",
        "borough": "string",
        "latitude": "float",
        "longitude": "float",
    }

    REQUIRED_COLUMNS = [
        "incident_id",
        "category",
        "occurred_date",
        "day_of_week",
        "weekday",
        "hour",
        "hour_range",
        "geometry",
    ]

    OUTPUT_COLUMNS = REQUIRED_COLUMNS

    def __init__(self, config: Settings | None = None):
        """Initialize incident preprocessor."""
        super().__init__(config)

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "incidents"

    def get_required_columns(self) -> list[str]:
        """Return required output columns."""
        return self.REQUIRED_COLUMNS

    def get_column_mappings(self) -> dict[str, str]:
        """Return column name mappings."""
        return self.COLUMN_MAPPINGS

    def get_dtype_mappings(self) -> dict[str, str]:
        """Return data type mappings."""
        return self.DTYPE_MAPPINGS

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Apply incident-specific transformations.

        Args:
            df: Raw DataFrame with renamed columns

        Returns:
            Cleaned GeoDataFrame
        """
        df = self.drop_missing(df, ["longitude", "latitude", "occurred_date", "occurred_time"])
        df = self._process_time(df)
        df = self._filter_borough(df)
        df = self._filter_date_window(df)
        df = self._derive_temporal_features(df)
        df = self._aggregate_categories(df)
        gdf = self._build_geometry(df)
        return gdf[self.OUTPUT_COLUMNS].reset_index(drop=True)

    def _process_time(self, df: pd.DataFrame) -> pd.DataFrame:
        """Extract the hour from HH:MM[:SS] text; unparsable times are dropped."""
        hours = pd.to_numeric(
            df["occurred_time"].str.extract(r"^\s*(\d{1,2}):", expand=False),
            errors="coerce",
        )
        df["hour"] = hours
        df = self.filter_rows(df, hours.between(0, 24), "invalid_time")
        df["hour"] = df["hour"].astype(int).map(fold_hour)
        self.log_transformation("extract_hour")
        return df

    def _filter_borough(self, df: pd.DataFrame) -> pd.DataFrame:
        """Keep incidents in the configured borough."""
        df = self.drop_missing(df, ["borough"])
        borough = self.config.incidents.borough.strip().upper()
        in_borough = df["borough"].str.strip().str.upper() == borough
        return self.filter_rows(df, in_borough, "outside_borough")

    def _filter_date_window(self, df: pd.DataFrame) -> pd.DataFrame:
        """Keep incidents dated inside the inclusive window."""
        start = pd.Timestamp(self.config.incidents.start_date)
        end = pd.Timestamp(self.config.incidents.end_date)
        day = df["occurred_date"].dt.normalize()
        if day.dt.tz is not None:
            day = day.dt.tz_localize(None)
        return self.filter_rows(df, day.between(start, end), "outside_date_window")

    def _derive_temporal_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """Add day name, ISO weekday index (Monday=1) and hour range."""
        df["day_of_week"] = df["occurred_date"].dt.day_name()
        df["weekday"] = df["occurred_date"].dt.dayofweek + 1
        df["hour_range"] = df["hour"].map(hour_range_label)
        self.log_transformation("derive_temporal_features")
        return df

    def _aggregate_categories(self, df: pd.DataFrame) -> pd.DataFrame:
        """Rewrite free-text categories to their coarse labels."""
        incidents = self.config.incidents
        df["category"] = df["category"].fillna("UNKNOWN")
        df["category"] = aggregate_categories(
            df["category"],
            incidents.category_rules,
            incidents.label_renames,
            incidents.unmatched_label,
        )
        self.log_transformation("aggregate_categories")
        return df

    def _build_geometry(self, df: pd.DataFrame) -> gpd.GeoDataFrame:
        """Build point geometry from longitude/latitude."""
        gdf = gpd.GeoDataFrame(
            df,
            geometry=gpd.points_from_xy(df["longitude"], df["latitude"]),
            crs=self.config.incidents.crs,
        )
        self.log_transformation("build_point_geometry")
        return gdf


# =============================================================================
# Convenience Functions
# =============================================================================


def preprocess_incidents(
    df: pd.DataFrame,
    execution_date: str,
    config: Settings | None = None,
) -> dict[str, Any]:
    """
    Convenience function for preprocessing incident data.

    Returns the result dictionary.
    """
    preprocessor = IncidentPreprocessor(config)
    result = preprocessor.run(df, execution_date)
    return result.to_dict()
