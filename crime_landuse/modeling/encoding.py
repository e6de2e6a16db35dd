"""
Crime Land Use - Feature Encoder

Turns joined records into the model table: the category_id label plus one
0/1 indicator column per distinct observed hour (``hour_<h>``) and land-use
code (``land_use_<code>``). Values unseen in the input get no column, so a
table encoded from new data must go through ``align_columns`` before it is
scored by a model fitted on another encoding.

Usage:
    encoder = CrimeFeatureEncoder()
    result = encoder.run(joined_df, execution_date="2024-01-15")
    encoded = encoder.get_data()
"""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from crime_landuse.datasets.base import BaseFeatureBuilder, FeatureDefinition
from crime_landuse.shared.config import Settings
from crime_landuse.shared.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

LABEL_COLUMN = "category_id"

# source column -> indicator prefix
ENCODED_COLUMNS = {
    "hour": "hour",
    "land_use_code": "land_use",
}


class CrimeFeatureEncoder(BaseFeatureBuilder):
    """One-hot encoder for hour and land-use code."""

    def __init__(self, config: Settings | None = None):
        super().__init__(config)

    def get_dataset_name(self) -> str:
        return "crime_features"

    def get_label_column(self) -> str:
        return LABEL_COLUMN

    def get_feature_definitions(self) -> list[FeatureDefinition]:
        ids = list(self.config.targets.category_ids.values())
        return [
            FeatureDefinition(
                name=LABEL_COLUMN,
                description="Target crime category identifier",
                dtype="int",
                source_columns=["category"],
                min_value=min(ids),
                max_value=max(ids),
            ),
        ]

    def build_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """Encode hour and land-use code; keep the label unencoded."""
        columns = [LABEL_COLUMN, *ENCODED_COLUMNS]
        missing = set(columns) - set(df.columns)
        if missing:
            raise ConfigurationError(f"Cannot encode, missing columns: {missing}")

        table = pd.DataFrame(df[columns]).reset_index(drop=True)
        for col in columns:
            table[col] = table[col].astype("int64")

        for col, prefix in ENCODED_COLUMNS.items():
            table = self.one_hot_encode(table, col, prefix)

        logger.debug(f"Encoded columns: {list(table.columns)}")
        return table


def feature_columns(encoded: pd.DataFrame, label: str = LABEL_COLUMN) -> list[str]:
    """Indicator columns of an encoded table, in table order."""
    return [c for c in encoded.columns if c != label]


def indicator_groups(encoded: pd.DataFrame) -> dict[str, list[str]]:
    """Indicator columns grouped by the source column they encode."""
    return {
        source: [c for c in encoded.columns if c.startswith(f"{prefix}_")]
        for source, prefix in ENCODED_COLUMNS.items()
    }


def align_columns(
    encoded: pd.DataFrame, columns: list[str], label: str = LABEL_COLUMN
) -> pd.DataFrame:
    """
    Reconcile an encoded table with a reference indicator column set.

    Indicators missing from ``encoded`` are added as 0; indicators not in
    ``columns`` are dropped (rows that only had such a value end up with all
    zeros for that source column). The label is kept first when present.
    """
    unknown = [c for c in feature_columns(encoded, label) if c not in columns]
    if unknown:
        logger.warning(f"Dropping indicators unseen in the reference encoding: {unknown}")

    aligned = encoded.reindex(columns=columns, fill_value=0).astype("int64")
    if label in encoded.columns:
        aligned.insert(0, label, encoded[label].to_numpy())
    return aligned


def encode_features(
    df: pd.DataFrame, execution_date: str, config: Settings | None = None
) -> dict[str, Any]:
    """Convenience function for encoding joined records."""
    encoder = CrimeFeatureEncoder(config)
    result = encoder.run(df, execution_date)
    return result.to_dict()
