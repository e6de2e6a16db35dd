"""
Crime Land Use - Incident Dataset

NYPD complaint records.

Components:
    - IncidentIngester: Fetches complaint records from NYC Open Data
    - IncidentPreprocessor: Cleans, filters and categorizes incidents

Usage:
    from crime_landuse.datasets.incidents import IncidentIngester, IncidentPreprocessor

    ingester = IncidentIngester()
    result = ingester.run(execution_date="2024-01-15")
    raw_df = ingester.get_data()

    preprocessor = IncidentPreprocessor()
    result = preprocessor.run(raw_df, execution_date="2024-01-15")
    incidents = preprocessor.get_data()
"""

from crime_landuse.datasets.incidents.ingest import IncidentIngester, ingest_incidents
from crime_landuse.datasets.incidents.preprocess import (
    HOUR_RANGES,
    IncidentPreprocessor,
    aggregate_categories,
    hour_range_label,
    preprocess_incidents,
)

__all__ = [
    "IncidentIngester",
    "IncidentPreprocessor",
    "ingest_incidents",
    "preprocess_incidents",
    "aggregate_categories",
    "hour_range_label",
    "HOUR_RANGES",
]
