"""
Crime Land Use - Base Classes for Datasets

Abstract base classes that all dataset implementations inherit from.
These provide a consistent interface for:
- Data ingestion (BaseIngester)
- Data preprocessing (BasePreprocessor)
- Feature building (BaseFeatureBuilder)

Usage:
    from crime_landuse.datasets.base import BaseIngester, BasePreprocessor, BaseFeatureBuilder

    class IncidentIngester(BaseIngester):
        def fetch_data(self, since=None, until=None) -> pd.DataFrame:
            ...
"""

from crime_landuse.datasets.base.feature_builder import (
    BaseFeatureBuilder,
    FeatureBuildResult,
    FeatureDefinition,
)
from crime_landuse.datasets.base.ingester import BaseIngester, IngestionResult
from crime_landuse.datasets.base.preprocessor import BasePreprocessor, PreprocessingResult

__all__ = [
    "BaseIngester",
    "IngestionResult",
    "BasePreprocessor",
    "PreprocessingResult",
    "BaseFeatureBuilder",
    "FeatureBuildResult",
    "FeatureDefinition",
]
