"""
Unit tests for the dataset splitter.
"""

import numpy as np
import pandas as pd
import pytest

from crime_landuse.modeling.splitting import majority_class, split_dataset, split_from_config
from crime_landuse.shared.config import SplitConfig
from crime_landuse.shared.exceptions import ConfigurationError


class TestSplitDataset:
    """Test cases for split_dataset."""

    def test_partition_sizes(self, encoded_table):
        """Test 80/20 test split and 80/20 validation split of the pool."""
        splits = split_dataset(encoded_table, seed=1)
        assert len(splits.test) == 40
        assert len(splits.pool_index) == 160
        assert len(splits.train) == 128
        assert len(splits.validation) == 32

    def test_disjoint_and_complete(self, encoded_table):
        """Test the partitions are disjoint and cover the rows that were not removed."""
        splits = split_dataset(encoded_table, seed=3, rebalance_count=10)
        train, validation, test = (
            set(splits.train_index),
            set(splits.validation_index),
            set(splits.test_index),
        )
        removed = set(splits.removed_index)

        assert not train & validation
        assert not train & test
        assert not validation & test
        assert not removed & (train | validation | test)
        assert train | validation | test | removed == set(encoded_table.index)

    def test_reproducible(self, encoded_table):
        """Test the same seed gives identical index sets."""
        first = split_dataset(encoded_table, seed=5, rebalance_count=20)
        second = split_dataset(encoded_table, seed=5, rebalance_count=20)
        np.testing.assert_array_equal(first.train_index, second.train_index)
        np.testing.assert_array_equal(first.validation_index, second.validation_index)
        np.testing.assert_array_equal(first.test_index, second.test_index)
        np.testing.assert_array_equal(first.removed_index, second.removed_index)

    def test_seed_changes_split(self, encoded_table):
        first = split_dataset(encoded_table, seed=1)
        second = split_dataset(encoded_table, seed=2)
        assert set(first.test_index) != set(second.test_index)

    def test_rebalance_removes_majority_from_pool_only(self, encoded_table):
        """Test removed rows are majority-class rows taken from the train pool."""
        no_rebalance = split_dataset(encoded_table, seed=4)
        splits = split_dataset(encoded_table, seed=4, rebalance_count=25)

        assert len(splits.removed_index) == 25
        assert set(splits.removed_index) <= set(splits.pool_index)
        removed_labels = encoded_table.loc[splits.removed_index, "category_id"]
        assert (removed_labels == splits.majority_class).all()
        assert len(splits.train) + len(splits.validation) == 160 - 25
        # the test set does not depend on rebalancing
        np.testing.assert_array_equal(splits.test_index, no_rebalance.test_index)

    def test_rebalance_exceeds_majority(self, encoded_table):
        """Test asking to remove more rows than the majority class has."""
        with pytest.raises(ConfigurationError, match="exceeds"):
            split_dataset(encoded_table, seed=1, rebalance_count=10_000)

    def test_empty_table(self, encoded_table):
        with pytest.raises(ConfigurationError):
            split_dataset(encoded_table.iloc[:0], seed=1)

    def test_too_small_for_every_partition(self, encoded_table):
        """Test tiny tables that leave a partition empty are rejected."""
        with pytest.raises(ConfigurationError, match="empty"):
            split_dataset(encoded_table.iloc[:2], seed=1)

    @pytest.mark.parametrize("fraction", [0, 1, 1.2])
    def test_bad_fraction(self, encoded_table, fraction):
        with pytest.raises(ConfigurationError):
            split_dataset(encoded_table, seed=1, train_fraction=fraction)

    def test_missing_label(self, encoded_table):
        with pytest.raises(ConfigurationError):
            split_dataset(encoded_table.drop(columns="category_id"), seed=1)

    def test_summary(self, encoded_table):
        summary = split_dataset(encoded_table, seed=1).summary()
        assert summary["test"] == 40
        assert sum(summary["test_classes"].values()) == 40

    def test_split_from_config(self, encoded_table):
        config = SplitConfig(seed=9, rebalance_count=5)
        splits = split_from_config(encoded_table, config)
        assert len(splits.removed_index) == 5
        expected = split_dataset(encoded_table, seed=9, rebalance_count=5)
        np.testing.assert_array_equal(splits.train_index, expected.train_index)


class TestMajorityClass:
    """Test cases for majority_class."""

    def test_most_frequent(self):
        assert majority_class(pd.Series([1, 2, 2, 3])) == 2

    def test_tie_goes_to_smallest(self):
        assert majority_class(pd.Series([3, 3, 2, 2, 1])) == 2
