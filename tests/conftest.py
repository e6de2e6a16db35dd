"""
Crime Land Use - Pytest Configuration and Fixtures

Shared fixtures for all tests:
- Configuration fixtures
- Synthetic incidents and parcels around midtown Manhattan
"""

import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import geopandas as gpd
import matplotlib
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box

# Set test environment
os.environ["CL_ENVIRONMENT"] = "dev"
matplotlib.use("Agg")

# Parcel centers (lon, lat) and their land-use codes
PARCEL_CENTERS = [
    ((-73.9900, 40.7500), 1),
    ((-73.9800, 40.7600), 3),
    ((-73.9700, 40.7700), 9),
]
PARCEL_HALF_SIZE = 0.0004


def make_raw_parcels(centers=PARCEL_CENTERS, borough: str = "MN") -> gpd.GeoDataFrame:
    """Square parcels in raw MapPLUTO column layout (EPSG:4326)."""
    return gpd.GeoDataFrame(
        {
            "BBL": [f"10000{i:05d}" for i in range(len(centers))],
            "Borough": [borough] * len(centers),
            "LandUse": [None if code is None else f"{code:02d}" for _, code in centers],
        },
        geometry=[
            box(x - PARCEL_HALF_SIZE, y - PARCEL_HALF_SIZE, x + PARCEL_HALF_SIZE, y + PARCEL_HALF_SIZE)
            for (x, y), _ in centers
        ],
        crs="EPSG:4326",
    )


def make_raw_incidents(
    categories: list[str],
    hours: list[int],
    parcel_positions: list[int],
    dates: list[str] | None = None,
    borough: str = "MANHATTAN",
) -> pd.DataFrame:
    """Complaint records in raw CSV column layout, each placed inside a parcel."""
    n = len(categories)
    dates = dates or [f"03/{(i % 28) + 1:02d}/2018" for i in range(n)]
    return pd.DataFrame(
        {
            "CMPLNT_NUM": [str(100000 + i) for i in range(n)],
            "CMPLNT_FR_DT": dates,
            "CMPLNT_FR_TM": [f"{h:02d}:30:00" for h in hours],
            "PD_DESC": categories,
            "BORO_NM": [borough] * n,
            "Latitude": [PARCEL_CENTERS[p][0][1] + 0.0001 for p in parcel_positions],
            "Longitude": [PARCEL_CENTERS[p][0][0] + 0.0001 for p in parcel_positions],
        }
    )


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def configs_dir(project_root: Path) -> Path:
    """Get the configs directory."""
    return project_root / "configs"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> Any:
    """Get test configuration."""
    from crime_landuse.shared.config import get_config, reload_config

    # Ensure fresh config for tests
    reload_config("dev")
    return get_config("dev")


@pytest.fixture
def settings() -> Any:
    """Settings from model defaults with forests small enough for unit tests."""
    from crime_landuse.shared.config import ModelingConfig, Settings

    return Settings(
        environment="dev",
        modeling=ModelingConfig(
            sweep_n_estimators=20,
            exploration_n_estimators=30,
            final_n_estimators=20,
            curve_step=10,
        ),
    )


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def raw_parcels() -> gpd.GeoDataFrame:
    """Three raw parcels with land-use codes 1, 3 and 9."""
    return make_raw_parcels()


@pytest.fixture
def raw_incidents() -> pd.DataFrame:
    """A few raw complaint records across several categories."""
    return make_raw_incidents(
        categories=[
            "LARCENY,PETIT FROM STORE-SHOPL",
            "HARASSMENT,SUBD 3,4,5",
            "ASSAULT 3",
            "BURGLARY,RESIDENCE,DAY",
            "LARCENY,GRAND FROM PERSON",
        ],
        hours=[1, 13, 22, 9, 17],
        parcel_positions=[0, 1, 2, 0, 1],
    )


@pytest.fixture
def synthetic_raw_incidents() -> pd.DataFrame:
    """
    A larger seeded sample where crime type depends on hour and parcel,
    big enough to split and train on.
    """
    rng = np.random.default_rng(7)
    n = 240
    parcel_positions = rng.integers(0, 3, size=n).tolist()
    hours = rng.integers(0, 24, size=n).tolist()
    names = ["LARCENY,PETIT FROM BUILDING", "HARASSMENT,SUBD 1,CIVILIAN", "ASSAULT 3"]
    categories = []
    for p, h in zip(parcel_positions, hours):
        if rng.random() < 0.2:
            categories.append(names[int(rng.integers(0, 3))])
        elif h < 8:
            categories.append(names[2])
        else:
            categories.append(names[p % 2])
    dates = [f"{(i % 12) + 1:02d}/{(i % 28) + 1:02d}/2018" for i in range(n)]
    return make_raw_incidents(categories, hours, parcel_positions, dates=dates)


@pytest.fixture
def encoded_table() -> pd.DataFrame:
    """A seeded encoded table with 3 classes, 4 hour and 3 land-use indicators."""
    rng = np.random.default_rng(11)
    n = 200
    hours = rng.choice([1, 9, 14, 22], size=n)
    codes = rng.choice([1, 3, 9], size=n)
    labels = np.where(hours == 1, 3, np.where(codes == 3, 2, 1))
    noise = rng.random(n) < 0.15
    labels[noise] = rng.choice([1, 2, 3], size=int(noise.sum()))
    table = pd.DataFrame({"category_id": labels.astype("int64")})
    for h in [1, 9, 14, 22]:
        table[f"hour_{h}"] = (hours == h).astype("int64")
    for c in [1, 3, 9]:
        table[f"land_use_{c}"] = (codes == c).astype("int64")
    return table


# =============================================================================
# Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_nyc_open_data_api(mocker: Any) -> Any:
    """Mock NYC Open Data (SODA) API responses."""
    mock_response = mocker.MagicMock()
    mock_response.status_code = 200
    mock_response.json.return_value = [
        {"cmplnt_num": "1", "cmplnt_fr_dt": "2018-03-01T00:00:00.000", "pd_desc": "ASSAULT 3"},
        {"cmplnt_num": "2", "cmplnt_fr_dt": "2018-03-02T00:00:00.000", "pd_desc": "ASSAULT 3"},
    ]
    mocker.patch("requests.get", return_value=mock_response)
    return mock_response


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def cleanup_env() -> Generator[None, None, None]:
    """Clean up environment variables after each test."""
    original_env = os.environ.copy()
    yield
    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)
