"""
Crime / Land Use Report Script
Fetches NYPD complaints and MapPLUTO parcels, runs the report and writes
tables and charts to the report directory.
"""

import argparse
import logging
from datetime import UTC, datetime
from pathlib import Path

import geopandas as gpd
import pandas as pd

from crime_landuse.datasets.incidents import IncidentIngester
from crime_landuse.datasets.parcels import ParcelIngester
from crime_landuse.pipeline import run_report, save_report
from crime_landuse.shared.config import get_config

logger = logging.getLogger(__name__)


def setup_logging(level: str, fmt: str, log_dir: str) -> None:
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[logging.FileHandler(Path(log_dir) / "report.log"), logging.StreamHandler()],
    )


def load_incidents(ingester: IncidentIngester, path: str | None, execution_date: str) -> pd.DataFrame:
    """Read incidents from a local CSV, or fetch them from the API."""
    if path:
        logger.info(f"Reading incidents from {path}")
        return pd.read_csv(path, dtype=str)

    result = ingester.run(execution_date)
    if not result.success:
        raise RuntimeError(f"Incident ingestion failed: {result.error_message}")
    return ingester.get_data()


def load_parcels(ingester: ParcelIngester, execution_date: str) -> gpd.GeoDataFrame:
    result = ingester.run(execution_date)
    if not result.success:
        raise RuntimeError(f"Parcel ingestion failed: {result.error_message}")
    return ingester.get_data()


def main() -> None:
    parser = argparse.ArgumentParser(description="Crime frequency and land-use report")
    parser.add_argument("--env", choices=["dev", "prod"], default=None)
    parser.add_argument("--incidents-csv", help="Local NYPD complaint CSV instead of the API")
    parser.add_argument("--parcels", help="Local MapPLUTO shapefile or archive")
    parser.add_argument("--output-dir", help="Override the report directory")
    args = parser.parse_args()

    config = get_config(args.env)
    setup_logging(config.logging.level, config.logging.format, config.logging.log_dir)
    execution_date = datetime.now(UTC).strftime("%Y-%m-%d")

    raw_incidents = load_incidents(IncidentIngester(config), args.incidents_csv, execution_date)
    raw_parcels = load_parcels(ParcelIngester(config, source=args.parcels), execution_date)

    report = run_report(raw_incidents, raw_parcels, config, execution_date)

    output_dir = Path(args.output_dir or config.output.report_dir)
    save_report(report, output_dir, config)

    print("\n=== Report ===")
    print(report.tables.category_frequency.head(10).to_string(index=False))
    print("\nBaseline confusion (rows=actual, cols=predicted):")
    print(report.baseline.confusion.to_string())
    print(f"Baseline accuracy: {report.baseline.accuracy:.4f}")
    print(f"\nTop {config.modeling.top_k} max_features by OOB error:")
    print(report.tuning.top(config.modeling.top_k).to_string(index=False))
    print("\nTuned confusion (rows=actual, cols=predicted):")
    print(report.final.confusion.to_string())
    print(f"Tuned accuracy: {report.final.accuracy:.4f}")
    print(f"\nFiles written to {output_dir}")


if __name__ == "__main__":
    main()
