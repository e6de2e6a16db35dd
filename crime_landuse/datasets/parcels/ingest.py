"""
Crime Land Use - Parcel Ingester

Reads the MapPLUTO tax-lot shapefile archive. This is a snapshot dataset,
so the date window is ignored.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any

import geopandas as gpd

from crime_landuse.datasets.base import BaseIngester
from crime_landuse.shared.config import Settings, get_dataset_config

logger = logging.getLogger(__name__)

DATASET_CONFIG = get_dataset_config("parcels")
SOURCE_CONFIG = DATASET_CONFIG.get("source", {})
SOURCE_URL = SOURCE_CONFIG.get("url")
PRIMARY_KEY = SOURCE_CONFIG.get("primary_key", "BBL")

COLUMNS = ["BBL", "Borough", "LandUse", "geometry"]


class ParcelIngester(BaseIngester):
    """Ingester for MapPLUTO parcels."""

    def __init__(self, config: Settings | None = None, source: str | Path | None = None):
        super().__init__(config)
        self.source = str(source or SOURCE_URL)

    def get_dataset_name(self) -> str:
        return "parcels"

    def get_primary_key(self) -> str:
        return PRIMARY_KEY

    def get_api_endpoint(self) -> str:
        return self.source

    def fetch_data(self, since: date | None = None, until: date | None = None) -> gpd.GeoDataFrame:
        """Read parcel polygons from the configured archive or path."""
        if not self.source or self.source == "None":
            raise ValueError("No parcel source configured")

        logger.info(f"Reading parcels from {self.source}")
        gdf = gpd.read_file(self.source)

        available = [c for c in COLUMNS if c in gdf.columns]
        gdf = gdf[available]
        logger.info(f"Read {len(gdf)} parcels (crs={gdf.crs})")
        return gdf


def ingest_parcels(
    execution_date: str, config: Settings | None = None, source: str | Path | None = None
) -> dict[str, Any]:
    """Convenience function for ingesting parcels."""
    ingester = ParcelIngester(config, source=source)
    result = ingester.run(execution_date)
    return result.to_dict()
