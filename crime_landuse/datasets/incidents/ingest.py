"""
Crime Land Use - Incident Ingester

Fetches NYPD complaint records from the NYC Open Data (Socrata) API.

Data Source:
    NYPD Complaint Data Historic
    https://data.cityofnewyork.us/Public-Safety/NYPD-Complaint-Data-Historic/qgea-i56i

Configuration:
    Endpoint settings from configs/environments/*.yaml (apis.nyc_open_data),
    resource and field names from configs/datasets/incidents.yaml

Usage:
    from crime_landuse.datasets.incidents.ingest import IncidentIngester

    ingester = IncidentIngester()
    result = ingester.run(execution_date="2024-01-15", since=date(2018, 1, 1))
    df = ingester.get_data()
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import pandas as pd
import requests

from crime_landuse.datasets.base import BaseIngester
from crime_landuse.shared.config import Settings, get_dataset_config

logger = logging.getLogger(__name__)

# =============================================================================
# Dataset Configuration (loaded from incidents.yaml)
# =============================================================================
DATASET_CONFIG = get_dataset_config("incidents")

API_CONFIG = DATASET_CONFIG.get("api", {})
RESOURCE_ID = API_CONFIG.get("resource_id", "qgea-i56i")
DATE_FIELD = API_CONFIG.get("date_field", "cmplnt_fr_dt")
BOROUGH_FIELD = API_CONFIG.get("borough_field", "boro_nm")

INGESTION_CONFIG = DATASET_CONFIG.get("ingestion", {})
PRIMARY_KEY = INGESTION_CONFIG.get("primary_key", "cmplnt_num")
FIELDS = INGESTION_CONFIG.get(
    "fields",
    [
        "cmplnt_num",
        "cmplnt_fr_dt",
        "cmplnt_fr_tm",
        "ofns_desc",
        "pd_desc",
        "boro_nm",
        "latitude",
        "longitude",
    ],
)


class IncidentIngester(BaseIngester):
    """
    Ingester for NYPD complaint records.

    Pages through the SODA endpoint with $limit/$offset, filtered to the
    configured borough and date window.
    """

    def __init__(self, config: Settings | None = None):
        """Initialize incident ingester."""
        super().__init__(config)
        api = self.config.apis.nyc_open_data
        self.api_url = f"{api.base_url}/{RESOURCE_ID}.json"
        self.batch_size = api.batch_size
        self.timeout = api.timeout_seconds

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "incidents"

    def get_primary_key(self) -> str:
        """Return the primary key field."""
        return PRIMARY_KEY

    def get_api_endpoint(self) -> str:
        """Get the API endpoint for incident data."""
        return self.api_url

    def _build_where(self, since: date, until: date) -> str:
        """Build the SoQL $where clause for the borough and date window."""
        borough = self.config.incidents.borough.upper()
        return (
            f"{DATE_FIELD} >= '{since.isoformat()}T00:00:00' "
            f"AND {DATE_FIELD} <= '{until.isoformat()}T23:59:59' "
            f"AND {BOROUGH_FIELD} = '{borough}'"
        )

    def _fetch_page(self, where: str, offset: int) -> list[dict]:
        """
        Fetch one page of incident records.

        Args:
            where: SoQL filter
            offset: Pagination offset

        Returns:
            List of record dictionaries
        """
        headers = {}
        if self.config.socrata_app_token:
            headers["X-App-Token"] = self.config.socrata_app_token

        response = requests.get(
            self.api_url,
            params={
                "$select": ",".join(FIELDS),
                "$where": where,
                "$order": f"{PRIMARY_KEY} ASC",
                "$limit": self.batch_size,
                "$offset": offset,
            },
            headers=headers,
            timeout=self.timeout,
        )

        if response.status_code != 200:
            raise RuntimeError(f"HTTP {response.status_code}: {response.text[:200]}")

        records = response.json()
        if not isinstance(records, list):
            raise ValueError(f"API error: {records}")
        return records

    def fetch_data(self, since: date | None = None, until: date | None = None) -> pd.DataFrame:
        """
        Fetch incident records from NYC Open Data.

        Args:
            since: Inclusive start date (config window start if None)
            until: Inclusive end date (config window end if None)

        Returns:
            DataFrame with raw complaint records
        """
        since = since or self.config.incidents.start_date
        until = until or self.config.incidents.end_date
        where = self._build_where(since, until)

        logger.info(f"Fetching incidents from {since} to {until}")

        all_records: list[dict] = []
        offset = 0
        while True:
            records = self._fetch_page(where, offset)
            all_records.extend(records)
            logger.debug(f"Fetched {len(records)} records at offset {offset}")

            if len(records) < self.batch_size:
                break
            offset += self.batch_size

        df = pd.DataFrame(all_records, columns=FIELDS if not all_records else None)
        valid, errors = self.validate_schema(df, FIELDS)
        if not valid:
            if df.empty:
                logger.warning(f"No incident records between {since} and {until}")
            else:
                raise ValueError(f"Schema validation failed: {errors}")
        logger.info(f"Fetched {len(df)} incident records")
        return df


# =============================================================================
# Convenience Functions
# =============================================================================


def ingest_incidents(
    execution_date: str,
    since: date | None = None,
    until: date | None = None,
    config: Settings | None = None,
) -> dict[str, Any]:
    """Convenience function for ingesting incident data."""
    ingester = IncidentIngester(config)
    result = ingester.run(execution_date, since=since, until=until)
    return result.to_dict()
