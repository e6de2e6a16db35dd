"""
Unit tests for ParcelIngester.
"""

from unittest.mock import patch

import pytest

from crime_landuse.datasets.parcels.ingest import ParcelIngester, ingest_parcels
from crime_landuse.shared.config import Settings


class TestParcelIngester:
    """Test cases for ParcelIngester class."""

    @pytest.fixture
    def ingester(self):
        """Create a ParcelIngester reading a local archive."""
        return ParcelIngester(Settings(environment="dev"), source="/data/MapPLUTO.zip")

    def test_get_dataset_name(self, ingester):
        """Test dataset name is correct."""
        assert ingester.get_dataset_name() == "parcels"

    def test_get_primary_key(self, ingester):
        """Test primary key is correct."""
        assert ingester.get_primary_key() == "BBL"

    def test_default_source_from_dataset_config(self):
        """Test the archive URL comes from the dataset config when no source is given."""
        ingester = ParcelIngester(Settings(environment="dev"))
        assert ingester.get_api_endpoint().startswith("https://")

    @patch("crime_landuse.datasets.parcels.ingest.gpd.read_file")
    def test_fetch_data_keeps_needed_columns(self, mock_read, ingester, raw_parcels):
        """Test only the parcel id, borough, land use and geometry are kept."""
        raw_parcels["ZipCode"] = "10001"
        raw_parcels["NumFloors"] = 5
        mock_read.return_value = raw_parcels

        gdf = ingester.fetch_data()

        mock_read.assert_called_once_with("/data/MapPLUTO.zip")
        assert list(gdf.columns) == ["BBL", "Borough", "LandUse", "geometry"]
        assert len(gdf) == 3

    @patch("crime_landuse.datasets.parcels.ingest.gpd.read_file")
    def test_run_success(self, mock_read, ingester, raw_parcels):
        """Test a full ingestion run ignores the date window."""
        mock_read.return_value = raw_parcels
        result = ingester.run(execution_date="2024-01-15")
        assert result.success
        assert result.rows_fetched == 3

    @patch("crime_landuse.datasets.parcels.ingest.gpd.read_file")
    def test_run_failure(self, mock_read, ingester):
        """Test read errors are reported."""
        mock_read.side_effect = OSError("No such file")
        result = ingester.run(execution_date="2024-01-15")
        assert not result.success
        assert "No such file" in result.error_message

    @patch("crime_landuse.datasets.parcels.ingest.gpd.read_file")
    def test_ingest_parcels_function(self, mock_read, raw_parcels):
        """Test convenience function returns the result dict."""
        mock_read.return_value = raw_parcels
        result = ingest_parcels("2024-01-15", Settings(environment="dev"), source="parcels.shp")
        assert result["success"]
