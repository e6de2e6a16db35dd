"""
Crime Land Use - Report Pipeline

Runs every stage of the report on already-fetched raw data:

    incidents ─┐
               ├─ nearest-parcel join ─┬─ descriptive tables (+ charts)
    parcels ───┘                       └─ encode ─ split ─ baseline / tune / final forest

Usage:
    from crime_landuse.pipeline import run_report, save_report

    report = run_report(raw_incidents, raw_parcels, execution_date="2024-01-15")
    save_report(report, Path("reports"))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import geopandas as gpd
import pandas as pd

from crime_landuse.analysis import charts
from crime_landuse.analysis.aggregations import DescriptiveTables, describe
from crime_landuse.datasets.incidents.preprocess import IncidentPreprocessor
from crime_landuse.datasets.parcels.preprocess import ParcelPreprocessor
from crime_landuse.modeling.classifier import ModelEvaluation, RandomForestTrainer, TuningResult
from crime_landuse.modeling.encoding import CrimeFeatureEncoder
from crime_landuse.modeling.splitting import SplitDatasets, split_from_config
from crime_landuse.shared.config import Settings, get_config
from crime_landuse.spatial.join import SpatialJoiner

logger = logging.getLogger(__name__)


class PipelineStageError(RuntimeError):
    """Raised when a stage runner reports failure."""

    def __init__(self, stage: str, message: str | None):
        self.stage = stage
        super().__init__(f"Stage '{stage}' failed: {message}")


@dataclass
class ReportResult:
    """Every artifact produced by one report run."""

    incidents: gpd.GeoDataFrame
    parcels: gpd.GeoDataFrame
    joined: gpd.GeoDataFrame
    tables: DescriptiveTables
    encoded: pd.DataFrame
    splits: SplitDatasets
    baseline: ModelEvaluation
    tuning: TuningResult
    final: ModelEvaluation
    stages: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def model(self):
        """The tuned forest."""
        return self.final.model


def _check(stage: str, result: Any) -> None:
    if not result.success:
        raise PipelineStageError(stage, result.error_message)


def run_report(
    raw_incidents: pd.DataFrame,
    raw_parcels: gpd.GeoDataFrame,
    config: Settings | None = None,
    execution_date: str | None = None,
) -> ReportResult:
    """
    Run the full report on raw incident records and raw parcel polygons.

    Raises:
        PipelineStageError: a preprocessing or encoding stage failed
        ConfigurationError: the data cannot support a split or a model fit
    """
    config = config or get_config()
    execution_date = execution_date or datetime.now(UTC).strftime("%Y-%m-%d")
    stages: dict[str, dict[str, Any]] = {}

    incident_pre = IncidentPreprocessor(config)
    result = incident_pre.run(raw_incidents, execution_date)
    stages["incidents"] = result.to_dict()
    _check("incidents", result)
    incidents = incident_pre.get_data()

    parcel_pre = ParcelPreprocessor(config)
    result = parcel_pre.run(raw_parcels, execution_date)
    stages["parcels"] = result.to_dict()
    _check("parcels", result)
    parcels = parcel_pre.get_data()

    joiner = SpatialJoiner(config)
    joined = joiner.join(incidents, parcels)
    stages["join"] = dict(joiner.stats)

    tables = describe(incidents, joined)

    encoder = CrimeFeatureEncoder(config)
    result = encoder.run(joined, execution_date)
    stages["encoding"] = result.to_dict()
    _check("encoding", result)
    encoded = encoder.get_data()

    splits = split_from_config(encoded, config.split)
    stages["split"] = splits.summary()

    label_names = {v: k for k, v in config.targets.category_ids.items()}
    trainer = RandomForestTrainer(config.modeling, label_names=label_names)
    baseline = trainer.fit_baseline(splits.train, splits.test)
    tuning = trainer.tune(splits.validation)
    final = trainer.fit_final(splits.train, splits.test, tuning.best_max_features)

    logger.info(
        f"Report complete: baseline accuracy {baseline.accuracy:.4f}, "
        f"tuned accuracy {final.accuracy:.4f}",
        extra={"best_max_features": tuning.best_max_features},
    )

    return ReportResult(
        incidents=incidents,
        parcels=parcels,
        joined=joined,
        tables=tables,
        encoded=encoded,
        splits=splits,
        baseline=baseline,
        tuning=tuning,
        final=final,
        stages=stages,
    )


def save_report(
    report: ReportResult, output_dir: Path, config: Settings | None = None
) -> list[Path]:
    """Write the report tables as CSV and the charts as images."""
    config = config or get_config()
    output_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []

    for name, table in report.tables.items():
        path = output_dir / f"{name}.csv"
        table.to_csv(path, index=False)
        written.append(path)

    report.baseline.confusion.to_csv(output_dir / "confusion_baseline.csv")
    report.final.confusion.to_csv(output_dir / "confusion_final.csv")
    report.tuning.top(config.modeling.top_k).to_csv(
        output_dir / "max_features_ranking.csv", index=False
    )
    written += [
        output_dir / "confusion_baseline.csv",
        output_dir / "confusion_final.csv",
        output_dir / "max_features_ranking.csv",
    ]

    fmt, dpi = config.output.figure_format, config.output.figure_dpi
    figures = {
        "category_frequency": charts.plot_category_frequency(report.tables.category_frequency),
        "by_hour_range": charts.plot_by_hour_range(report.tables.by_hour_range),
        "by_weekday": charts.plot_by_weekday(report.tables.by_weekday),
        "by_land_use": charts.plot_by_land_use(report.tables.by_land_use),
    }
    if report.tuning.error_curve is not None:
        figures["oob_error_curve"] = charts.plot_error_curve(report.tuning.error_curve)

    for name, fig in figures.items():
        written.append(charts.save_figure(fig, output_dir / f"{name}.{fmt}", dpi=dpi))

    logger.info(f"Wrote {len(written)} report files to {output_dir}")
    return written
