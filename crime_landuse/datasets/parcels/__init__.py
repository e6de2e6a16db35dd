"""
Crime Land Use - Parcel Dataset

MapPLUTO tax lots with land-use codes.
"""

from crime_landuse.datasets.parcels.ingest import ParcelIngester, ingest_parcels
from crime_landuse.datasets.parcels.preprocess import ParcelPreprocessor, preprocess_parcels

__all__ = [
    "ParcelIngester",
    "ParcelPreprocessor",
    "ingest_parcels",
    "preprocess_parcels",
]
