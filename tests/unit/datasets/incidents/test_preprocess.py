"""
Unit tests for IncidentPreprocessor.

Tests complaint cleaning, temporal features and category aggregation.
"""

import geopandas as gpd
import pandas as pd
import pytest

from crime_landuse.datasets.incidents.preprocess import (
    HOUR_RANGES,
    IncidentPreprocessor,
    aggregate_categories,
    fold_hour,
    hour_range_label,
    preprocess_incidents,
)
from crime_landuse.shared.config import CategoryRule, IncidentsConfig, Settings
from tests.conftest import make_raw_incidents


class TestHourRanges:
    """Test cases for hour range labelling."""

    def test_every_hour_has_a_range(self):
        """Test hours 0-23 map onto 24 distinct labels in order."""
        labels = [hour_range_label(h) for h in range(24)]
        assert labels == HOUR_RANGES
        assert len(set(labels)) == 24

    def test_boundaries(self):
        """Test the first and last ranges."""
        assert hour_range_label(0) == "00-01"
        assert hour_range_label(23) == "23-24"

    def test_hour_24_is_midnight(self):
        """Test 24 folds onto 0."""
        assert fold_hour(24) == 0
        assert hour_range_label(24) == "00-01"

    @pytest.mark.parametrize("hour", [-1, 25, 99])
    def test_out_of_range(self, hour):
        """Test invalid hours raise."""
        with pytest.raises(ValueError):
            hour_range_label(hour)


class TestAggregateCategories:
    """Test cases for category aggregation."""

    @pytest.fixture
    def rules(self):
        return IncidentsConfig().category_rules

    @pytest.fixture
    def renames(self):
        return {"HARASSMENT,SUBD": "HARASSMENT"}

    def test_substring_rules(self, rules, renames):
        """Test free text collapses onto coarse labels."""
        raw = pd.Series(
            [
                "LARCENY,PETIT FROM STORE-SHOPL",
                "ASSAULT 3",
                "HARASSMENT,SUBD 3,4,5",
                "SEXUAL ABUSE",
                "ROBBERY,OPEN AREA UNCLASSIFIED",
            ]
        )
        result = aggregate_categories(raw, rules, renames)
        assert result.tolist() == ["LARCENY", "ASSAULT", "HARASSMENT", "SEX CRIMES", "ROBBERY"]

    def test_case_insensitive(self, rules, renames):
        """Test lower-case text is matched."""
        result = aggregate_categories(pd.Series(["larceny,grand by dishonest emp"]), rules, renames)
        assert result.tolist() == ["LARCENY"]

    def test_last_matching_rule_wins(self):
        """Test the later rule takes precedence when several patterns match."""
        rules = [
            CategoryRule(pattern="LARCENY", label="LARCENY"),
            CategoryRule(pattern="VEHICLE", label="VEHICLE"),
        ]
        result = aggregate_categories(pd.Series(["LARCENY,GRAND OF VEHICLE"]), rules)
        assert result.tolist() == ["VEHICLE"]

    def test_rules_see_original_text(self):
        """Test a rewritten label is not re-matched by later rules."""
        rules = [
            CategoryRule(pattern="FRAUD", label="LARCENY"),
            CategoryRule(pattern="LARCENY", label="THEFT"),
        ]
        result = aggregate_categories(pd.Series(["FRAUDULENT ACCOSTING"]), rules)
        assert result.tolist() == ["LARCENY"]

    def test_unmatched_passthrough(self, rules, renames):
        """Test text matching no rule is kept as is."""
        result = aggregate_categories(pd.Series(["INTOXICATED DRIVING,ALCOHOL"]), rules, renames)
        assert result.tolist() == ["INTOXICATED DRIVING,ALCOHOL"]

    def test_unmatched_label(self, rules, renames):
        """Test an explicit bucket replaces unmatched text but keeps canonical labels."""
        raw = pd.Series(["INTOXICATED DRIVING,ALCOHOL", "HARASSMENT", "ASSAULT 2"])
        result = aggregate_categories(raw, rules, renames, unmatched_label="OTHER")
        assert result.tolist() == ["OTHER", "HARASSMENT", "ASSAULT"]

    @pytest.mark.parametrize("unmatched_label", [None, "OTHER"])
    def test_idempotent(self, rules, renames, unmatched_label):
        """Test aggregating already aggregated labels changes nothing."""
        raw = pd.Series(
            [
                "LARCENY,PETIT FROM BUILDING",
                "HARASSMENT,SUBD 1,CIVILIAN",
                "SEXUAL ABUSE 3,2",
                "MENACING,UNCLASSIFIED",
                "CONTROLLED SUBSTANCE,POSSESS.",
            ]
        )
        once = aggregate_categories(raw, rules, renames, unmatched_label)
        twice = aggregate_categories(once, rules, renames, unmatched_label)
        pd.testing.assert_series_equal(once, twice)

    def test_idempotent_when_label_contains_later_pattern(self):
        """Test a canonical label is not rewritten by a later rule it contains."""
        rules = [
            CategoryRule(pattern="SEXUAL", label="SEX CRIMES"),
            CategoryRule(pattern="CRIMES", label="OTHER CRIMES"),
        ]
        raw = pd.Series(["SEXUAL ABUSE 3,2", "HATE CRIMES,MISC"])
        once = aggregate_categories(raw, rules)
        twice = aggregate_categories(once, rules)
        assert once.tolist() == ["SEX CRIMES", "OTHER CRIMES"]
        pd.testing.assert_series_equal(once, twice)


class TestIncidentPreprocessor:
    """Test cases for IncidentPreprocessor class."""

    @pytest.fixture
    def preprocessor(self):
        """Create an IncidentPreprocessor with default settings."""
        return IncidentPreprocessor(Settings(environment="dev"))

    def test_get_dataset_name(self, preprocessor):
        """Test dataset name is correct."""
        assert preprocessor.get_dataset_name() == "incidents"

    def test_get_column_mappings(self, preprocessor):
        """Test raw CSV and API names are both mapped."""
        mappings = preprocessor.get_column_mappings()
        assert mappings["CMPLNT_NUM"] == "incident_id"
        assert mappings["cmplnt_num"] == "incident_id"
        assert mappings["PD_DESC"] == "category"

    def test_run_success(self, preprocessor, raw_incidents):
        """Test successful preprocessing run."""
        result = preprocessor.run(raw_incidents, execution_date="2024-01-15")
        assert result.success
        assert result.rows_input == 5
        assert result.rows_output == 5

        df = preprocessor.get_data()
        assert isinstance(df, gpd.GeoDataFrame)
        assert df.crs.to_epsg() == 4326
        assert list(df.columns) == IncidentPreprocessor.OUTPUT_COLUMNS
        assert df["category"].tolist() == [
            "LARCENY",
            "HARASSMENT",
            "ASSAULT",
            "BURGLARY",
            "LARCENY",
        ]

    def test_temporal_features(self, preprocessor):
        """Test day name, ISO weekday index and hour range."""
        raw = make_raw_incidents(
            categories=["ASSAULT 3", "ASSAULT 3"],
            hours=[0, 23],
            parcel_positions=[0, 0],
            dates=["03/05/2018", "03/04/2018"],
        )
        preprocessor.run(raw, execution_date="2024-01-15")
        df = preprocessor.get_data()

        assert df["day_of_week"].tolist() == ["Monday", "Sunday"]
        assert df["weekday"].tolist() == [1, 7]
        assert df["hour"].tolist() == [0, 23]
        assert df["hour_range"].tolist() == ["00-01", "23-24"]

    def test_midnight_as_24(self, preprocessor, raw_incidents):
        """Test 24:00:00 is read as hour 0."""
        raw_incidents.loc[0, "CMPLNT_FR_TM"] = "24:00:00"
        preprocessor.run(raw_incidents, execution_date="2024-01-15")
        df = preprocessor.get_data()
        assert df.loc[0, "hour"] == 0
        assert df.loc[0, "hour_range"] == "00-01"

    def test_drops_missing_fields(self, preprocessor, raw_incidents):
        """Test rows missing coordinates, date or time are dropped and counted."""
        raw_incidents.loc[0, "Latitude"] = None
        raw_incidents.loc[1, "CMPLNT_FR_DT"] = None
        raw_incidents.loc[2, "CMPLNT_FR_TM"] = None

        result = preprocessor.run(raw_incidents, execution_date="2024-01-15")

        assert result.success
        assert result.rows_output == 2
        assert result.drop_reasons["missing_latitude"] == 1
        assert result.drop_reasons["missing_occurred_date"] == 1
        assert result.drop_reasons["missing_occurred_time"] == 1

    def test_drops_unparsable_time(self, preprocessor, raw_incidents):
        """Test times that are not HH:MM:SS are dropped."""
        raw_incidents.loc[0, "CMPLNT_FR_TM"] = "noon"
        raw_incidents.loc[1, "CMPLNT_FR_TM"] = "31:00:00"

        result = preprocessor.run(raw_incidents, execution_date="2024-01-15")
        assert result.rows_output == 3
        assert result.drop_reasons["invalid_time"] == 2

    def test_date_window_inclusive(self, preprocessor):
        """Test both ends of the window are kept and dates outside are dropped."""
        raw = make_raw_incidents(
            categories=["ASSAULT 3"] * 4,
            hours=[10] * 4,
            parcel_positions=[0] * 4,
            dates=["12/31/2017", "01/01/2018", "12/31/2018", "01/01/2019"],
        )
        result = preprocessor.run(raw, execution_date="2024-01-15")
        df = preprocessor.get_data()

        assert result.drop_reasons["outside_date_window"] == 2
        assert df["occurred_date"].dt.strftime("%Y-%m-%d").tolist() == [
            "2018-01-01",
            "2018-12-31",
        ]

    def test_filters_borough(self, preprocessor, raw_incidents):
        """Test incidents in other boroughs are dropped."""
        raw_incidents.loc[[0, 1], "BORO_NM"] = "BROOKLYN"
        result = preprocessor.run(raw_incidents, execution_date="2024-01-15")
        assert result.rows_output == 3
        assert result.drop_reasons["outside_borough"] == 2

    def test_missing_borough_column_fails(self, preprocessor, raw_incidents):
        """Test incidents without a borough column are not kept unfiltered."""
        raw_incidents.loc[[0, 1], "BORO_NM"] = "BROOKLYN"
        result = preprocessor.run(raw_incidents.drop(columns=["BORO_NM"]), "2024-01-15")
        assert not result.success
        assert "borough" in result.error_message
        assert result.rows_output == 0

    def test_drops_missing_borough(self, preprocessor, raw_incidents):
        """Test incidents with a blank borough are dropped."""
        raw_incidents.loc[0, "BORO_NM"] = None
        result = preprocessor.run(raw_incidents, execution_date="2024-01-15")
        assert result.rows_output == 4
        assert result.drop_reasons["missing_borough"] == 1

    def test_missing_category_becomes_unknown(self, preprocessor, raw_incidents):
        """Test a missing description is kept as UNKNOWN."""
        raw_incidents.loc[0, "PD_DESC"] = None
        preprocessor.run(raw_incidents, execution_date="2024-01-15")
        assert preprocessor.get_data().loc[0, "category"] == "UNKNOWN"

    def test_api_column_names(self, preprocessor):
        """Test records in SODA API layout are accepted."""
        raw = pd.DataFrame(
            {
                "cmplnt_num": ["1", "2"],
                "cmplnt_fr_dt": ["2018-06-01T00:00:00.000", "2018-06-02T00:00:00.000"],
                "cmplnt_fr_tm": ["08:15:00", "19:45:00"],
                "ofns_desc": ["PETIT LARCENY", "ASSAULT 3 & RELATED OFFENSES"],
                "pd_desc": ["LARCENY,PETIT FROM STORE-SHOPL", "ASSAULT 3"],
                "boro_nm": ["MANHATTAN", "MANHATTAN"],
                "latitude": ["40.75", "40.76"],
                "longitude": ["-73.99", "-73.98"],
            }
        )
        result = preprocessor.run(raw, execution_date="2024-01-15")
        assert result.success
        assert preprocessor.get_data()["hour"].tolist() == [8, 19]

    def test_run_missing_column_fails(self, preprocessor, raw_incidents):
        """Test the run reports failure when a needed column is absent."""
        result = preprocessor.run(raw_incidents.drop(columns=["Latitude"]), "2024-01-15")
        assert not result.success
        assert "latitude" in result.error_message

    def test_preprocess_incidents_function(self, raw_incidents):
        """Test convenience function returns the result dict."""
        result = preprocess_incidents(raw_incidents, "2024-01-15", Settings(environment="dev"))
        assert result["success"]
        assert result["dataset"] == "incidents"
