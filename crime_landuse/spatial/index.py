"""
Crime Land Use - Parcel Spatial Index

R-tree (shapely STRtree) over parcel polygons in a projected CRS, so that
nearest-parcel lookups cost roughly log(parcels) instead of a full scan.

Usage:
    index = ParcelIndex(parcels, projected_crs="EPSG:2263")
    parcel = index.nearest(Point(-73.98, 40.75), crs="EPSG:4326")
"""

from __future__ import annotations

import logging

import geopandas as gpd
import numpy as np
import pandas as pd
from shapely import STRtree
from shapely.geometry.base import BaseGeometry

logger = logging.getLogger(__name__)


class ParcelIndex:
    """Nearest-parcel lookup backed by an STRtree."""

    def __init__(
        self,
        parcels: gpd.GeoDataFrame,
        projected_crs: str,
        max_distance: float | None = None,
    ):
        """
        Build the index.

        Args:
            parcels: Parcel polygons with a CRS set
            projected_crs: Planar CRS in which distances are measured
            max_distance: Lookups farther than this (in projected CRS units)
                find no parcel
        """
        if parcels.crs is None:
            raise ValueError("Parcels must have a CRS")

        self.parcels = parcels.reset_index(drop=True)
        self.projected_crs = projected_crs
        self.max_distance = max_distance
        self._geometries = self.parcels.geometry.to_crs(projected_crs).to_numpy()
        self._tree = STRtree(self._geometries)

        logger.debug(f"Built parcel index over {len(self.parcels)} polygons")

    def __len__(self) -> int:
        return len(self.parcels)

    def _project(self, geometries: gpd.GeoSeries) -> np.ndarray:
        if geometries.crs is None:
            raise ValueError("Query geometries must have a CRS")
        return geometries.to_crs(self.projected_crs).to_numpy()

    def nearest(self, point: BaseGeometry, crs: str) -> pd.Series | None:
        """
        Find the parcel nearest to a single geometry.

        Returns:
            The parcel row, or None when no parcel lies within max_distance
        """
        projected = self._project(gpd.GeoSeries([point], crs=crs))[0]
        hits = self._tree.query_nearest(
            projected, max_distance=self.max_distance, all_matches=False
        )
        if len(hits) == 0:
            return None
        return self.parcels.iloc[int(hits[0])]

    def nearest_indices(self, geometries: gpd.GeoSeries) -> tuple[np.ndarray, np.ndarray]:
        """
        Find the nearest parcel for many geometries at once.

        Ties are broken by the tree's traversal order. Geometries with no
        parcel within max_distance (or empty geometries) are omitted.

        Returns:
            (input positions, parcel positions), two aligned integer arrays
        """
        if len(geometries) == 0 or len(self.parcels) == 0:
            empty = np.array([], dtype=np.intp)
            return empty, empty

        pairs = self._tree.query_nearest(
            self._project(geometries), max_distance=self.max_distance, all_matches=False
        )
        return pairs[0], pairs[1]
