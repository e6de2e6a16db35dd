"""
Crime Land Use - Random Forest Trainer and Tuner

Steps, all seeded explicitly:
    - Baseline: forest with library defaults fitted on final-train, scored on test.
    - Feature-count sweep: for every max_features from 1 to the number of
      indicator columns, grow a forest on the validation set and score it by
      its out-of-bag error averaged over forest sizes and classes. Sizes are
      sampled every ``curve_step`` trees (plus the full size); curve_step=1
      averages over every tree count. Fitting and scoring both use the
      validation rows, so the ranking reflects OOB error on that subset only,
      not error on held-out data.
    - Tree-count exploration: OOB error curve for the selected max_features on
      a large forest (diagnostic).
    - Final: forest with the selected max_features and the configured tree
      count fitted on final-train, scored on test.

Confusion matrices have actual classes as rows and predicted classes as
columns.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.metrics import confusion_matrix

from crime_landuse.modeling.encoding import LABEL_COLUMN, feature_columns
from crime_landuse.shared.config import ModelingConfig
from crime_landuse.shared.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

OVERALL_ERROR = "oob"


@dataclass
class ModelEvaluation:
    """A fitted forest and its test-set scores."""

    model: RandomForestClassifier
    features: list[str]
    confusion: pd.DataFrame
    accuracy: float
    params: dict[str, Any] = field(default_factory=dict)

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Predict category ids for an encoded table with the same indicators."""
        return self.model.predict(X[self.features])


@dataclass
class TuningResult:
    """Outcome of the feature-count sweep and tree-count exploration."""

    ranking: pd.DataFrame
    best_max_features: int
    error_curve: pd.DataFrame | None = None

    def top(self, k: int = 3) -> pd.DataFrame:
        return self.ranking.head(k).reset_index(drop=True)


# =============================================================================
# Helpers
# =============================================================================


def split_xy(df: pd.DataFrame, label: str = LABEL_COLUMN) -> tuple[pd.DataFrame, pd.Series]:
    """Separate indicator columns from the label, validating both."""
    if label not in df.columns:
        raise ConfigurationError(f"Label column '{label}' not found")
    features = feature_columns(df, label)
    if not features:
        raise ConfigurationError("No feature columns to train on")
    if len(df) == 0:
        raise ConfigurationError("Cannot train on an empty table")
    y = df[label]
    if y.nunique() < 2:
        raise ConfigurationError(
            f"Label needs at least 2 distinct classes, found {sorted(y.unique().tolist())}"
        )
    return df[features], y


def confusion_table(
    actual: pd.Series | np.ndarray,
    predicted: pd.Series | np.ndarray,
    label_names: dict[Any, str] | None = None,
) -> pd.DataFrame:
    """
    Confusion matrix as a DataFrame: rows = actual, columns = predicted.

    Every class seen in either input gets a row and a column, so row sums are
    the actual class counts and column sums the predicted class counts.
    """
    actual = np.asarray(actual)
    predicted = np.asarray(predicted)
    labels = sorted(set(actual.tolist()) | set(predicted.tolist()))
    matrix = confusion_matrix(actual, predicted, labels=labels)

    names = [label_names.get(v, v) for v in labels] if label_names else labels
    table = pd.DataFrame(matrix, index=names, columns=names)
    table.index.name = "actual"
    table.columns.name = "predicted"
    return table


def accuracy_from_confusion(table: pd.DataFrame) -> float:
    total = table.to_numpy().sum()
    return float(np.trace(table.to_numpy()) / total) if total else 0.0


def _oob_errors(forest: RandomForestClassifier, y: np.ndarray) -> dict[str, float]:
    """Overall and per-class OOB error, ignoring rows no tree left out."""
    decision = forest.oob_decision_function_
    scored = np.isfinite(decision).all(axis=1) & (decision.sum(axis=1) > 0)
    actual = y[scored]
    predicted = forest.classes_[np.argmax(decision[scored], axis=1)]

    errors = {OVERALL_ERROR: float(np.mean(predicted != actual)) if len(actual) else np.nan}
    for cls in forest.classes_:
        mask = actual == cls
        errors[str(cls)] = float(np.mean(predicted[mask] != cls)) if mask.any() else np.nan
    return errors


def _forest_sizes(n_estimators: int, step: int) -> list[int]:
    sizes = list(range(step, n_estimators + 1, step))
    if not sizes or sizes[-1] != n_estimators:
        sizes.append(n_estimators)
    return sizes


def oob_error_curve(
    X: pd.DataFrame,
    y: pd.Series,
    max_features: int,
    n_estimators: int,
    seed: int,
    step: int = 25,
    n_jobs: int | None = None,
) -> pd.DataFrame:
    """
    Grow one forest incrementally and record its OOB error at each size.

    Returns:
        DataFrame with n_estimators, the overall ``oob`` error and one error
        column per class
    """
    if n_estimators <= 0 or step <= 0:
        raise ConfigurationError("n_estimators and step must be positive")

    sizes = _forest_sizes(n_estimators, step)
    forest = RandomForestClassifier(
        n_estimators=sizes[0],
        max_features=max_features,
        oob_score=True,
        warm_start=True,
        random_state=seed,
        n_jobs=n_jobs,
    )
    y_values = y.to_numpy()

    rows = []
    for size in sizes:
        forest.set_params(n_estimators=size)
        with warnings.catch_warnings():
            # small forests leave some rows without OOB votes; they are skipped
            warnings.simplefilter("ignore", UserWarning)
            forest.fit(X, y_values)
        rows.append({"n_estimators": size, **_oob_errors(forest, y_values)})

    return pd.DataFrame(rows)


def curve_score(curve: pd.DataFrame) -> float:
    """Mean of every error cell of a curve (all forest sizes, overall and per class)."""
    values = curve.drop(columns=["n_estimators"]).to_numpy(dtype=float)
    return float(np.nanmean(values))


# =============================================================================
# Trainer
# =============================================================================


class RandomForestTrainer:
    """Baseline fit, hyperparameter sweep, tree-count exploration and final fit."""

    def __init__(
        self,
        config: ModelingConfig | None = None,
        label_names: dict[Any, str] | None = None,
        label: str = LABEL_COLUMN,
    ):
        self.config = config or ModelingConfig()
        self.label_names = label_names
        self.label = label

    @property
    def seed(self) -> int:
        return self.config.seed

    def _evaluate(
        self, model: RandomForestClassifier, features: list[str], test: pd.DataFrame, params: dict
    ) -> ModelEvaluation:
        X_test, y_test = test[features], test[self.label]
        predicted = model.predict(X_test)
        table = confusion_table(y_test, predicted, self.label_names)
        evaluation = ModelEvaluation(
            model=model,
            features=features,
            confusion=table,
            accuracy=accuracy_from_confusion(table),
            params=params,
        )
        logger.info(
            f"Test accuracy {evaluation.accuracy:.4f}",
            extra={"params": params, "test_rows": len(test)},
        )
        return evaluation

    def _check_test(self, test: pd.DataFrame, features: list[str]) -> None:
        missing = set(features) - set(test.columns)
        if missing:
            raise ConfigurationError(f"Test table lacks indicator columns: {sorted(missing)}")
        if len(test) == 0:
            raise ConfigurationError("Test table is empty")

    def feature_count_candidates(self, n_features: int) -> list[int]:
        """Candidate max_features values, bounded by the available columns."""
        if n_features <= 0:
            raise ConfigurationError("No feature columns to sweep over")
        limit = self.config.max_features_limit
        if limit is not None and limit <= 0:
            raise ConfigurationError(f"max_features_limit must be positive, got {limit}")
        upper = n_features if limit is None else min(limit, n_features)
        return list(range(1, upper + 1))

    def _check_max_features(self, max_features: int, n_features: int) -> None:
        if max_features <= 0:
            raise ConfigurationError(f"max_features must be positive, got {max_features}")
        if max_features > n_features:
            raise ConfigurationError(
                f"max_features {max_features} exceeds the {n_features} available feature columns"
            )

    def fit_baseline(self, train: pd.DataFrame, test: pd.DataFrame) -> ModelEvaluation:
        """Fit a forest with library-default hyperparameters and score it on test."""
        X, y = split_xy(train, self.label)
        features = list(X.columns)
        self._check_test(test, features)

        model = RandomForestClassifier(random_state=self.seed, n_jobs=self.config.n_jobs)
        model.fit(X, y)
        params = {
            "max_features": model.max_features,
            "n_estimators": model.n_estimators,
        }
        logger.info("Fitted baseline forest", extra={"params": params, "train_rows": len(train)})
        return self._evaluate(model, features, test, params)

    def sweep_max_features(self, validation: pd.DataFrame) -> pd.DataFrame:
        """
        Score every candidate max_features by OOB error on the validation set.

        Returns:
            DataFrame (max_features, oob_error) sorted by ascending error
        """
        X, y = split_xy(validation, self.label)
        rows = []
        for m in self.feature_count_candidates(X.shape[1]):
            curve = oob_error_curve(
                X,
                y,
                max_features=m,
                n_estimators=self.config.sweep_n_estimators,
                seed=self.seed,
                step=self.config.curve_step,
                n_jobs=self.config.n_jobs,
            )
            score = curve_score(curve)
            logger.debug(f"max_features={m}: oob_error={score:.4f}")
            rows.append({"max_features": m, "oob_error": score})

        ranking = pd.DataFrame(rows).sort_values(
            ["oob_error", "max_features"], kind="stable", na_position="last"
        )
        return ranking.reset_index(drop=True)

    def explore_tree_counts(self, validation: pd.DataFrame, max_features: int) -> pd.DataFrame:
        """OOB error curve for a large forest on the validation set."""
        X, y = split_xy(validation, self.label)
        self._check_max_features(max_features, X.shape[1])
        curve = oob_error_curve(
            X,
            y,
            max_features=max_features,
            n_estimators=self.config.exploration_n_estimators,
            seed=self.seed,
            step=self.config.curve_step,
            n_jobs=self.config.n_jobs,
        )
        if self.label_names:
            curve = curve.rename(columns={str(k): v for k, v in self.label_names.items()})
        return curve

    def tune(self, validation: pd.DataFrame) -> TuningResult:
        """Run the sweep, pick the lowest-error max_features and explore tree counts."""
        ranking = self.sweep_max_features(validation)
        best = int(ranking["max_features"].iloc[0])
        logger.info(
            f"Selected max_features={best}",
            extra={"ranking": ranking.head(self.config.top_k).to_dict("records")},
        )
        curve = self.explore_tree_counts(validation, best)
        return TuningResult(ranking=ranking, best_max_features=best, error_curve=curve)

    def fit_final(
        self,
        train: pd.DataFrame,
        test: pd.DataFrame,
        max_features: int,
        n_estimators: int | None = None,
    ) -> ModelEvaluation:
        """Fit the tuned forest on final-train and score it on test."""
        X, y = split_xy(train, self.label)
        features = list(X.columns)
        self._check_max_features(max_features, len(features))
        self._check_test(test, features)

        n_estimators = n_estimators or self.config.final_n_estimators
        model = RandomForestClassifier(
            n_estimators=n_estimators,
            max_features=max_features,
            random_state=self.seed,
            n_jobs=self.config.n_jobs,
        )
        model.fit(X, y)
        params = {"max_features": max_features, "n_estimators": n_estimators}
        logger.info("Fitted final forest", extra={"params": params, "train_rows": len(train)})
        return self._evaluate(model, features, test, params)
