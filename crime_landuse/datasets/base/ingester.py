"""
Crime Land Use - Base Ingester

Abstract base class for all dataset ingesters. Provides a consistent interface
for fetching raw data from public sources with:
- Optional date window filtering
- Error handling
- Structured result reporting

Usage:
    class IncidentIngester(BaseIngester):
        def fetch_data(self, since=None, until=None) -> pd.DataFrame:
            ...
        def get_primary_key(self) -> str:
            return "cmplnt_num"
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import pandas as pd

from crime_landuse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    """Result of a data ingestion operation."""

    dataset: str
    execution_date: str
    rows_fetched: int
    window_start: date | None
    window_end: date | None
    duration_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for logging."""
        return {
            "dataset": self.dataset,
            "execution_date": self.execution_date,
            "rows_fetched": self.rows_fetched,
            "window_start": self.window_start.isoformat() if self.window_start else None,
            "window_end": self.window_end.isoformat() if self.window_end else None,
            "duration_seconds": self.duration_seconds,
            "success": self.success,
            "error_message": self.error_message,
            "metadata": self.metadata,
        }


class BaseIngester(ABC):
    """
    Abstract base class for dataset ingestion.

    Subclasses must implement:
    - fetch_data(): Fetch data from the source
    - get_primary_key(): Return the primary key field
    - get_dataset_name(): Return the dataset name
    """

    def __init__(self, config: Settings | None = None):
        """
        Initialize the ingester.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()

    @abstractmethod
    def fetch_data(self, since: date | None = None, until: date | None = None) -> pd.DataFrame:
        """
        Fetch data from the source.

        Args:
            since: Inclusive start of the date window, if the source is dated
            until: Inclusive end of the date window

        Returns:
            DataFrame containing the fetched data
        """
        pass

    @abstractmethod
    def get_primary_key(self) -> str:
        """
        Get the primary key field name.

        Returns:
            Column name that uniquely identifies each record
        """
        pass

    @abstractmethod
    def get_dataset_name(self) -> str:
        """
        Get the dataset name.

        Returns:
            Dataset name (e.g., "incidents", "parcels")
        """
        pass

    def get_api_endpoint(self) -> str | None:
        """
        Get the API endpoint for this dataset (optional).

        Returns:
            API endpoint URL or None if not applicable
        """
        return None

    def run(
        self,
        execution_date: str,
        since: date | None = None,
        until: date | None = None,
    ) -> IngestionResult:
        """
        Run the ingestion process.

        Args:
            execution_date: Execution date in YYYY-MM-DD format
            since: Inclusive start of the date window
            until: Inclusive end of the date window

        Returns:
            IngestionResult with details about the ingestion
        """
        start_time = time.time()
        dataset_name = self.get_dataset_name()

        logger.info(
            f"Starting ingestion for {dataset_name}",
            extra={
                "dataset": dataset_name,
                "execution_date": execution_date,
                "window_start": since.isoformat() if since else None,
                "window_end": until.isoformat() if until else None,
            },
        )

        try:
            df = self.fetch_data(since=since, until=until)

            duration = time.time() - start_time
            result = IngestionResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_fetched=len(df),
                window_start=since,
                window_end=until,
                duration_seconds=duration,
                success=True,
                metadata={
                    "primary_key": self.get_primary_key(),
                    "endpoint": self.get_api_endpoint(),
                    "columns": list(df.columns),
                },
            )

            logger.info(
                f"Ingestion complete for {dataset_name}: {len(df)} rows",
                extra=result.to_dict(),
            )

            # Store the dataframe for downstream access
            self._data = df

            return result

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"Ingestion failed for {dataset_name}: {e}",
                extra={"dataset": dataset_name, "error": str(e)},
                exc_info=True,
            )

            return IngestionResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_fetched=0,
                window_start=since,
                window_end=until,
                duration_seconds=duration,
                success=False,
                error_message=str(e),
            )

    def get_data(self) -> pd.DataFrame | None:
        """Get the most recently fetched data."""
        return getattr(self, "_data", None)

    def validate_schema(self, df: pd.DataFrame, required: list[str]) -> tuple[bool, list[str]]:
        """
        Perform basic schema validation on fetched data.

        Args:
            df: DataFrame to validate
            required: Columns the raw data must carry

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []

        pk = self.get_primary_key()
        if pk not in df.columns:
            errors.append(f"Primary key column '{pk}' not found")

        for col in required:
            if col not in df.columns:
                errors.append(f"Required column '{col}' not found")

        if len(df) == 0:
            errors.append("DataFrame is empty")

        return len(errors) == 0, errors
