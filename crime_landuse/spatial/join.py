"""
Crime Land Use - Spatial Joiner

Attaches to each target-category incident the land use of its nearest parcel.

The result has one row per joined incident with:
    - every incident column (category, day_of_week, weekday, hour, hour_range, ...)
    - parcel_id, land_use_code, land_use_category of the nearest parcel
    - category_id from the fixed target lookup

Incidents for which no parcel can be located are dropped and counted.
"""

from __future__ import annotations

import logging
from typing import Any

import geopandas as gpd

from crime_landuse.shared.config import Settings, get_config
from crime_landuse.shared.exceptions import ConfigurationError
from crime_landuse.spatial.index import ParcelIndex

logger = logging.getLogger(__name__)

PARCEL_COLUMNS = ["parcel_id", "land_use_code", "land_use_category"]


class SpatialJoiner:
    """Nearest-parcel join for incidents restricted to the target categories."""

    def __init__(self, config: Settings | None = None):
        self.config = config or get_config()
        self.stats: dict[str, Any] = {}

    @property
    def category_ids(self) -> dict[str, int]:
        return self.config.targets.category_ids

    def check_targets(self) -> None:
        """Fail when a target is not a label the category rules can produce."""
        incidents = self.config.incidents
        labels = {incidents.label_renames.get(r.label, r.label) for r in incidents.category_rules}
        unknown = sorted(set(self.category_ids) - labels)
        if unknown:
            raise ConfigurationError(
                f"Target categories {unknown} are not produced by any category rule"
            )

    def restrict_to_targets(self, incidents: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        """Keep incidents whose category is one of the target categories."""
        return incidents[incidents["category"].isin(list(self.category_ids))].copy()

    def join(self, incidents: gpd.GeoDataFrame, parcels: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
        """
        Join target incidents to their nearest parcel.

        Args:
            incidents: Cleaned incidents (point geometry)
            parcels: Cleaned parcels (polygon geometry)

        Returns:
            GeoDataFrame of joined records
        """
        missing = {"category", "geometry"} - set(incidents.columns)
        if missing:
            raise ConfigurationError(f"Incidents are missing columns: {missing}")
        missing = set(PARCEL_COLUMNS) - set(parcels.columns)
        if missing:
            raise ConfigurationError(f"Parcels are missing columns: {missing}")
        self.check_targets()

        targets = self.restrict_to_targets(incidents)

        spatial = self.config.spatial
        index = ParcelIndex(parcels, spatial.projected_crs, spatial.max_distance)
        positions, parcel_positions = index.nearest_indices(targets.geometry)

        joined = targets.iloc[positions].reset_index(drop=True)
        matched = index.parcels.iloc[parcel_positions].reset_index(drop=True)
        for col in PARCEL_COLUMNS:
            joined[col] = matched[col].to_numpy()
        joined["land_use_code"] = joined["land_use_code"].astype("int64")
        joined["category_id"] = joined["category"].map(self.category_ids).astype("int64")

        self.stats = {
            "rows_input": len(incidents),
            "rows_target": len(targets),
            "rows_joined": len(joined),
            "join_misses": len(targets) - len(joined),
        }
        if self.stats["join_misses"] > 0:
            logger.warning(
                f"{self.stats['join_misses']} incidents had no parcel within reach and were dropped"
            )
        logger.info(
            f"Joined {len(joined)} of {len(targets)} target incidents to parcels",
            extra=self.stats,
        )

        return joined


def join_nearest_parcels(
    incidents: gpd.GeoDataFrame,
    parcels: gpd.GeoDataFrame,
    config: Settings | None = None,
) -> gpd.GeoDataFrame:
    """Convenience function for the nearest-parcel join."""
    return SpatialJoiner(config).join(incidents, parcels)
