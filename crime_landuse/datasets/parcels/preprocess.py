"""
Crime Land Use - Parcel Preprocessor

Cleans MapPLUTO tax-lot polygons into the parcel set used by the spatial join.

Transformations:
    - Reprojection to the incident coordinate reference
    - Drop rows missing a land-use code or geometry
    - Borough filtering
    - Land-use code -> category lookup (unmapped codes yield a missing category)
"""

from __future__ import annotations

import logging
from typing import Any

import geopandas as gpd
import pandas as pd

from crime_landuse.datasets.base import BasePreprocessor
from crime_landuse.shared.config import Settings

logger = logging.getLogger(__name__)


class ParcelPreprocessor(BasePreprocessor):
    """Preprocessor for MapPLUTO parcel polygons."""

    COLUMN_MAPPINGS = {
        "BBL": "parcel_id",
        "Borough": "borough",
        "LandUse": "land_use_code",
        "bbl": "parcel_id",
        "landuse": "land_use_code",
    }

    DTYPE_MAPPINGS = {
        "parcel_id": "string",
        "borough": "string",
        "land_use_code": "int",
    }

    REQUIRED_COLUMNS = ["parcel_id", "land_use_code", "land_use_category", "geometry"]

    def get_dataset_name(self) -> str:
        return "parcels"

    def get_column_mappings(self) -> dict[str, str]:
        return self.COLUMN_MAPPINGS

    def get_dtype_mappings(self) -> dict[str, str]:
        return self.DTYPE_MAPPINGS

    def get_required_columns(self) -> list[str]:
        return self.REQUIRED_COLUMNS

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply parcel transformations."""
        if not isinstance(df, gpd.GeoDataFrame):
            raise TypeError("Parcel data must be a GeoDataFrame with polygon geometry")

        df = self._reproject(df)
        df = self.drop_missing(df, ["land_use_code"])
        df = self.filter_rows(
            df, df.geometry.notna() & ~df.geometry.is_empty, "missing_geometry"
        )
        df = self._filter_borough(df)
        df = self._map_land_use(df)

        columns = ["parcel_id", "borough", "land_use_code", "land_use_category", "geometry"]
        return df[[c for c in columns if c in df.columns]].reset_index(drop=True)

    def _reproject(self, df: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        """Reproject parcels to the incident CRS."""
        target_crs = self.config.incidents.crs
        if df.crs is None:
            logger.warning(f"Parcels have no CRS, assuming {target_crs}")
            df = df.set_crs(target_crs)
        else:
            df = df.to_crs(target_crs)
        self.log_transformation(f"reproject_to_{target_crs}")
        return df

    def _filter_borough(self, df: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        """Keep parcels in the configured borough."""
        df = self.drop_missing(df, ["borough"])
        code = self.config.parcels.borough_code.strip().upper()
        in_borough = df["borough"].str.strip().str.upper() == code
        return self.filter_rows(df, in_borough, "outside_borough")

    def _map_land_use(self, df: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        """Cast the land-use code to int and attach its category name."""
        labels = self.config.parcels.land_use_labels
        df["land_use_code"] = df["land_use_code"].astype("int64")
        df["land_use_category"] = df["land_use_code"].map(labels)

        unmapped = int(df["land_use_category"].isna().sum())
        if unmapped > 0:
            logger.warning(f"Found {unmapped} parcels with unmapped land-use codes")
        self.log_transformation("map_land_use_category")
        return df


def preprocess_parcels(
    df: gpd.GeoDataFrame, execution_date: str, config: Settings | None = None
) -> dict[str, Any]:
    """Convenience function for preprocessing parcels."""
    preprocessor = ParcelPreprocessor(config)
    result = preprocessor.run(df, execution_date)
    return result.to_dict()
