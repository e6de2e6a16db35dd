"""
Crime Land Use - Modeling

- CrimeFeatureEncoder: one-hot hour and land-use indicators
- split_dataset: seeded train/validation/test partition with rebalancing
- RandomForestTrainer: baseline, max_features sweep, tree-count curve, final fit
"""

from crime_landuse.modeling.classifier import (
    ModelEvaluation,
    RandomForestTrainer,
    TuningResult,
    confusion_table,
)
from crime_landuse.modeling.encoding import CrimeFeatureEncoder, align_columns
from crime_landuse.modeling.splitting import SplitDatasets, split_dataset, split_from_config

__all__ = [
    "CrimeFeatureEncoder",
    "align_columns",
    "SplitDatasets",
    "split_dataset",
    "split_from_config",
    "RandomForestTrainer",
    "ModelEvaluation",
    "TuningResult",
    "confusion_table",
]
