"""
Crime Land Use - Spatial Utilities

- ParcelIndex: STRtree-backed nearest-parcel lookup
- SpatialJoiner: attaches nearest-parcel land use to target incidents
"""

from crime_landuse.spatial.index import ParcelIndex
from crime_landuse.spatial.join import SpatialJoiner, join_nearest_parcels

__all__ = ["ParcelIndex", "SpatialJoiner", "join_nearest_parcels"]
