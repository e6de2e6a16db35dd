"""
Crime Land Use - Base Feature Builder

Abstract base class for feature builders that turn joined records into a
numeric model table. Provides a consistent interface for:
- Feature computation
- Per-feature statistics
- Validation against feature definitions

Usage:
    class CrimeFeatureEncoder(BaseFeatureBuilder):
        def build_features(self, df: pd.DataFrame) -> pd.DataFrame:
            ...
        def get_feature_definitions(self) -> list[FeatureDefinition]:
            ...
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from crime_landuse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)


@dataclass
class FeatureDefinition:
    """Definition of a computed feature."""

    name: str
    description: str
    dtype: str
    source_columns: list[str]
    nullable: bool = False
    min_value: float | None = None
    max_value: float | None = None


@dataclass
class FeatureBuildResult:
    """Result of a feature building operation."""

    dataset: str
    execution_date: str
    rows_input: int
    rows_output: int
    features_computed: int
    duration_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None
    feature_stats: dict[str, dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for logging."""
        return {
            "dataset": self.dataset,
            "execution_date": self.execution_date,
            "rows_input": self.rows_input,
            "rows_output": self.rows_output,
            "features_computed": self.features_computed,
            "duration_seconds": self.duration_seconds,
            "success": self.success,
            "error_message": self.error_message,
            "feature_stats": self.feature_stats,
        }


class BaseFeatureBuilder(ABC):
    """
    Abstract base class for feature building.

    Subclasses must implement:
    - build_features(): Compute features from joined data
    - get_dataset_name(): Return the dataset name
    - get_feature_definitions(): Return list of feature definitions
    - get_label_column(): Return the column carried through as the label
    """

    def __init__(self, config: Settings | None = None):
        """
        Initialize the feature builder.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()
        self._feature_stats: dict[str, dict[str, Any]] = {}

    @abstractmethod
    def build_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Build features from joined data.

        Args:
            df: Joined DataFrame

        Returns:
            DataFrame with computed features
        """
        pass

    @abstractmethod
    def get_dataset_name(self) -> str:
        """Get the dataset name."""
        pass

    @abstractmethod
    def get_feature_definitions(self) -> list[FeatureDefinition]:
        """
        Get list of feature definitions.

        Returns:
            List of FeatureDefinition objects describing each feature
        """
        pass

    @abstractmethod
    def get_label_column(self) -> str:
        """Get the label column that passes through unencoded."""
        pass

    def run(
        self,
        df: pd.DataFrame,
        execution_date: str,
    ) -> FeatureBuildResult:
        """
        Run the feature building pipeline.

        Args:
            df: Joined DataFrame
            execution_date: Execution date in YYYY-MM-DD format

        Returns:
            FeatureBuildResult with details about the feature building
        """
        start_time = time.time()
        dataset_name = self.get_dataset_name()
        rows_input = len(df)

        logger.info(
            f"Starting feature building for {dataset_name}",
            extra={
                "dataset": dataset_name,
                "execution_date": execution_date,
                "rows_input": rows_input,
            },
        )

        try:
            self._feature_stats = {}

            features_df = self.build_features(df)
            self._compute_feature_stats(features_df)
            self._validate_features(features_df)

            duration = time.time() - start_time

            result = FeatureBuildResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_input=rows_input,
                rows_output=len(features_df),
                features_computed=len(features_df.columns),
                duration_seconds=duration,
                success=True,
                feature_stats=self._feature_stats,
            )

            logger.info(
                f"Feature building complete for {dataset_name}: "
                f"{len(features_df)} rows, {len(features_df.columns)} features",
                extra=result.to_dict(),
            )

            # Store features
            self._data = features_df

            return result

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"Feature building failed for {dataset_name}: {e}",
                extra={"dataset": dataset_name, "error": str(e)},
                exc_info=True,
            )

            return FeatureBuildResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_input=rows_input,
                rows_output=0,
                features_computed=0,
                duration_seconds=duration,
                success=False,
                error_message=str(e),
            )

    def get_data(self) -> pd.DataFrame | None:
        """Get the most recently built features."""
        return getattr(self, "_data", None)

    def _compute_feature_stats(self, df: pd.DataFrame) -> None:
        """Compute statistics for each feature."""
        for col in df.columns:
            stats: dict[str, Any] = {
                "dtype": str(df[col].dtype),
                "null_count": int(df[col].isna().sum()),
                "null_ratio": float(df[col].isna().mean()) if len(df) else 0.0,
            }

            if pd.api.types.is_numeric_dtype(df[col]):
                non_null = df[col].dropna()
                if len(non_null) > 0:
                    stats.update(
                        {
                            "mean": float(non_null.mean()),
                            "min": float(non_null.min()),
                            "max": float(non_null.max()),
                        }
                    )
            else:
                stats["unique_count"] = int(df[col].nunique())

            self._feature_stats[col] = stats

    def _validate_features(self, df: pd.DataFrame) -> None:
        """Validate features against definitions."""
        definitions = {f.name: f for f in self.get_feature_definitions()}

        for col in df.columns:
            if col not in definitions:
                continue

            defn = definitions[col]

            if not defn.nullable and df[col].isna().any():
                logger.warning(f"Feature '{col}' has null values but is marked as non-nullable")

            if pd.api.types.is_numeric_dtype(df[col]):
                if defn.min_value is not None and (df[col] < defn.min_value).any():
                    logger.warning(f"Feature '{col}' has values below minimum {defn.min_value}")
                if defn.max_value is not None and (df[col] > defn.max_value).any():
                    logger.warning(f"Feature '{col}' has values above maximum {defn.max_value}")

    # ==========================================================================
    # Common Feature Building Utilities
    # ==========================================================================

    def one_hot_encode(self, df: pd.DataFrame, col: str, prefix: str) -> pd.DataFrame:
        """
        Replace ``col`` with one 0/1 indicator column per distinct observed value.

        Indicator columns are named ``<prefix>_<value>`` and ordered by value.
        """
        values = df[col]
        if values.isna().any():
            raise ValueError(f"Cannot one-hot encode '{col}': it has missing values")

        dummies = pd.get_dummies(values, prefix=prefix, prefix_sep="_", dtype="int64")
        dummies = dummies[sorted(dummies.columns, key=lambda c: _indicator_sort_key(c, prefix))]
        return pd.concat([df.drop(columns=[col]), dummies], axis=1)


def _indicator_sort_key(column: str, prefix: str) -> tuple[int, Any]:
    raw = column[len(prefix) + 1 :]
    try:
        return (0, int(raw))
    except ValueError:
        return (1, raw)
