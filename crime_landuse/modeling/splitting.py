"""
Crime Land Use - Dataset Splitter

Seeded partition of the encoded table into train / validation / test:

1. Shuffle; the first ``train_fraction`` of rows form the train pool, the
   rest the test set.
2. Remove ``rebalance_count`` randomly chosen majority-class rows from the
   train pool.
3. Shuffle the rebalanced pool and split it into final-train and validation
   (``validation_fraction`` of the pool goes to validation).

The test set is never touched by rebalancing. The same seed and input give
identical index sets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from crime_landuse.modeling.encoding import LABEL_COLUMN
from crime_landuse.shared.config import SplitConfig
from crime_landuse.shared.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class SplitDatasets:
    """Train/validation/test partitions and the index labels behind them."""

    train: pd.DataFrame
    validation: pd.DataFrame
    test: pd.DataFrame
    pool_index: np.ndarray
    removed_index: np.ndarray
    majority_class: Any

    @property
    def train_index(self) -> np.ndarray:
        return self.train.index.to_numpy()

    @property
    def validation_index(self) -> np.ndarray:
        return self.validation.index.to_numpy()

    @property
    def test_index(self) -> np.ndarray:
        return self.test.index.to_numpy()

    def summary(self, label: str = LABEL_COLUMN) -> dict[str, Any]:
        """Sizes and class counts of each partition."""
        return {
            "pool": len(self.pool_index),
            "removed": len(self.removed_index),
            "majority_class": self.majority_class,
            "train": len(self.train),
            "validation": len(self.validation),
            "test": len(self.test),
            "train_classes": self.train[label].value_counts().sort_index().to_dict(),
            "test_classes": self.test[label].value_counts().sort_index().to_dict(),
        }


def _fraction_split(positions: np.ndarray, fraction: float) -> tuple[np.ndarray, np.ndarray]:
    cut = int(np.floor(len(positions) * fraction))
    return positions[:cut], positions[cut:]


def majority_class(labels: pd.Series) -> Any:
    """Most frequent label; ties go to the smallest label."""
    counts = labels.value_counts().sort_index()
    return counts.idxmax()


def split_dataset(
    encoded: pd.DataFrame,
    seed: int,
    train_fraction: float = 0.8,
    validation_fraction: float = 0.2,
    rebalance_count: int = 0,
    label: str = LABEL_COLUMN,
) -> SplitDatasets:
    """
    Partition an encoded table.

    Args:
        encoded: Model table with a label column
        seed: Seed for every random draw in the split
        train_fraction: Share of rows in the train pool
        validation_fraction: Share of the rebalanced pool held out for validation
        rebalance_count: Majority-class rows removed from the train pool
        label: Label column

    Returns:
        SplitDatasets
    """
    if label not in encoded.columns:
        raise ConfigurationError(f"Label column '{label}' not found")
    if len(encoded) == 0:
        raise ConfigurationError("Cannot split an empty table")
    for name, value in (("train_fraction", train_fraction), ("validation_fraction", validation_fraction)):
        if not 0 < value < 1:
            raise ConfigurationError(f"{name} must be between 0 and 1, got {value}")
    if rebalance_count < 0:
        raise ConfigurationError(f"rebalance_count must be >= 0, got {rebalance_count}")

    rng = np.random.default_rng(seed)
    index = encoded.index.to_numpy()

    order = rng.permutation(len(encoded))
    pool_pos, test_pos = _fraction_split(order, train_fraction)

    pool_labels = encoded[label].iloc[pool_pos]
    if len(pool_labels) == 0:
        raise ConfigurationError("Train pool is empty; increase train_fraction or add rows")
    majority = majority_class(pool_labels)

    removed_pos = np.array([], dtype=order.dtype)
    if rebalance_count > 0:
        candidates = pool_pos[(pool_labels == majority).to_numpy()]
        if rebalance_count > len(candidates):
            raise ConfigurationError(
                f"rebalance_count {rebalance_count} exceeds the {len(candidates)} "
                f"majority-class ({majority}) rows in the train pool"
            )
        removed_pos = rng.choice(candidates, size=rebalance_count, replace=False)

    kept_pos = pool_pos[~np.isin(pool_pos, removed_pos)]
    kept_pos = rng.permutation(kept_pos)
    train_pos, validation_pos = _fraction_split(kept_pos, 1 - validation_fraction)

    for name, positions in (("final-train", train_pos), ("validation", validation_pos), ("test", test_pos)):
        if len(positions) == 0:
            raise ConfigurationError(f"The {name} partition is empty")

    splits = SplitDatasets(
        train=encoded.iloc[train_pos],
        validation=encoded.iloc[validation_pos],
        test=encoded.iloc[test_pos],
        pool_index=index[pool_pos],
        removed_index=index[removed_pos],
        majority_class=majority,
    )
    logger.info("Split encoded table", extra=splits.summary(label))
    return splits


def split_from_config(
    encoded: pd.DataFrame, config: SplitConfig, label: str = LABEL_COLUMN
) -> SplitDatasets:
    """Split using a SplitConfig section."""
    return split_dataset(
        encoded,
        seed=config.seed,
        train_fraction=config.train_fraction,
        validation_fraction=config.validation_fraction,
        rebalance_count=config.rebalance_count,
        label=label,
    )
