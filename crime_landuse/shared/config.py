"""
Crime Land Use - Configuration Loader

Pydantic-based configuration management with:
- Environment-based configuration (dev/prod)
- YAML file loading with inheritance
- Environment variables for settings the YAML leaves unset
- Type validation via Pydantic

Usage:
    from crime_landuse.shared.config import get_config

    config = get_config()  # Uses CL_ENVIRONMENT env var
    config = get_config("dev")  # Explicit environment

    # Access config values
    borough = config.incidents.borough
    seed = config.split.seed
"""

from __future__ import annotations

import os
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# =============================================================================
# Configuration Models
# =============================================================================


class ProjectConfig(BaseModel):
    """Project metadata configuration."""

    name: str = "crime-landuse"
    version: str = "0.1.0"
    description: str = "Crime frequency by time and land use, with a crime-type classifier"


class APIConfig(BaseModel):
    """API configuration."""

    base_url: str
    timeout_seconds: int = 60
    batch_size: int = 50000


class APIsConfig(BaseModel):
    """All API configurations."""

    nyc_open_data: APIConfig = Field(
        default_factory=lambda: APIConfig(
            base_url="https://data.cityofnewyork.us/resource",
            timeout_seconds=120,
            batch_size=50000,
        )
    )


class CategoryRule(BaseModel):
    """Substring pattern and the canonical label it rewrites to."""

    pattern: str
    label: str


def _default_category_rules() -> list[CategoryRule]:
    pairs = [
        ("LARCENY", "LARCENY"),
        ("ASSAULT", "ASSAULT"),
        ("HARASSMENT,SUBD", "HARASSMENT,SUBD"),
        ("THEFT", "THEFT"),
        ("BURGLARY", "BURGLARY"),
        ("ROBBERY", "ROBBERY"),
        ("MISCHIEF", "MISCHIEF"),
        ("TRESPASS", "TRESPASS"),
        ("FORGERY", "FORGERY"),
        ("CONTROLLED SUBSTANCE", "CONTROLLED SUBSTANCE"),
        ("WEAPONS", "WEAPONS"),
        ("SEXUAL", "SEX CRIMES"),
    ]
    return [CategoryRule(pattern=p, label=label) for p, label in pairs]


class IncidentsConfig(BaseModel):
    """Incident cleaning configuration."""

    borough: str = "MANHATTAN"
    start_date: date = date(2018, 1, 1)
    end_date: date = date(2018, 12, 31)
    crs: str = "EPSG:4326"
    category_rules: list[CategoryRule] = Field(default_factory=_default_category_rules)
    label_renames: dict[str, str] = Field(
        default_factory=lambda: {"HARASSMENT,SUBD": "HARASSMENT"}
    )
    # None passes unmatched category text through unchanged
    unmatched_label: str | None = None

    @model_validator(mode="after")
    def validate_window(self) -> IncidentsConfig:
        """Validate the date window."""
        if self.start_date > self.end_date:
            raise ValueError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )
        return self


def _default_land_use_labels() -> dict[int, str]:
    return {
        1: "One & Two Family Buildings",
        2: "Multi-Family Walk-Up Buildings",
        3: "Multi-Family Elevator Buildings",
        4: "Mixed Residential & Commercial Buildings",
        5: "Commercial & Office Buildings",
        6: "Industrial & Manufacturing",
        7: "Transportation & Utility",
        8: "Public Facilities & Institutions",
        9: "Open Space & Outdoor Recreation",
        10: "Parking Facilities",
        11: "Vacant Land",
    }


# MapPLUTO borough codes keyed by NYPD borough name
BOROUGH_CODES = {
    "MANHATTAN": "MN",
    "BRONX": "BX",
    "BROOKLYN": "BK",
    "QUEENS": "QN",
    "STATEN ISLAND": "SI",
}


class ParcelsConfig(BaseModel):
    """Parcel cleaning configuration."""

    # None derives the code from incidents.borough
    borough_code: str | None = None
    land_use_labels: dict[int, str] = Field(default_factory=_default_land_use_labels)


class SpatialConfig(BaseModel):
    """Spatial join configuration."""

    # NY State Plane Long Island (feet), used for distances
    projected_crs: str = "EPSG:2263"
    max_distance: float | None = Field(default=None, gt=0)


class TargetsConfig(BaseModel):
    """Target crime categories and their numeric identifiers."""

    category_ids: dict[str, int] = Field(
        default_factory=lambda: {"LARCENY": 1, "HARASSMENT": 2, "ASSAULT": 3}
    )

    @field_validator("category_ids")
    @classmethod
    def validate_ids(cls, v: dict[str, int]) -> dict[str, int]:
        """Require at least two targets with distinct identifiers."""
        if len(v) < 2:
            raise ValueError("At least two target categories are required")
        if len(set(v.values())) != len(v):
            raise ValueError(f"Target identifiers must be distinct: {v}")
        return v


class SplitConfig(BaseModel):
    """Train/validation/test split configuration."""

    seed: int = 1
    train_fraction: float = Field(default=0.8, gt=0, lt=1)
    validation_fraction: float = Field(default=0.2, gt=0, lt=1)
    rebalance_count: int = Field(default=0, ge=0)


class ModelingConfig(BaseModel):
    """Random forest training and tuning configuration."""

    seed: int = 1
    sweep_n_estimators: int = Field(default=500, gt=0)
    exploration_n_estimators: int = Field(default=1000, gt=0)
    final_n_estimators: int = Field(default=500, gt=0)
    curve_step: int = Field(default=25, gt=0)
    top_k: int = Field(default=3, gt=0)
    max_features_limit: int | None = Field(default=None, gt=0)
    n_jobs: int | None = None


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_dir: str = "logs"


class OutputConfig(BaseModel):
    """Report output configuration."""

    report_dir: str = "reports"
    figure_format: Literal["png", "svg", "pdf"] = "png"
    figure_dpi: int = 120


# =============================================================================
# Main Settings Class
# =============================================================================


class Settings(BaseSettings):
    """
    Main configuration class for the crime/land-use report.

    Loads configuration from:
    1. YAML files in configs/environments/
    2. Environment variables

    Values passed in (the merged YAML) take precedence; environment variables
    fill the sections the YAML leaves out.
    """

    model_config = SettingsConfigDict(
        env_prefix="CL_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Environment
    environment: Literal["dev", "prod"] = "dev"

    # Configuration sections
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    apis: APIsConfig = Field(default_factory=APIsConfig)
    incidents: IncidentsConfig = Field(default_factory=IncidentsConfig)
    parcels: ParcelsConfig = Field(default_factory=ParcelsConfig)
    spatial: SpatialConfig = Field(default_factory=SpatialConfig)
    targets: TargetsConfig = Field(default_factory=TargetsConfig)
    split: SplitConfig = Field(default_factory=SplitConfig)
    modeling: ModelingConfig = Field(default_factory=ModelingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    # Optional app token for higher Socrata rate limits
    socrata_app_token: str | None = Field(default=None, alias="SOCRATA_APP_TOKEN")

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"dev", "prod"}
        if v not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v

    @model_validator(mode="after")
    def validate_borough_code(self) -> Settings:
        """Derive the parcel borough code, or reject one that disagrees with the incident borough."""
        borough = self.incidents.borough.strip().upper()
        expected = BOROUGH_CODES.get(borough)
        code = self.parcels.borough_code
        if code is None:
            if expected is None:
                raise ValueError(
                    f"Unknown borough {borough!r}; set parcels.borough_code explicitly"
                )
            self.parcels.borough_code = expected
        elif expected is not None and code.strip().upper() != expected:
            raise ValueError(
                f"parcels.borough_code {code!r} does not match incident borough "
                f"{borough!r} (expected {expected!r})"
            )
        return self


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _get_config_dir() -> Path:
    """Get the configuration directory path."""
    # Try relative path from the project root
    config_dir = Path(__file__).parent.parent.parent / "configs"
    if config_dir.exists():
        return config_dir

    # Try from current working directory
    config_dir = Path.cwd() / "configs"
    if config_dir.exists():
        return config_dir

    raise FileNotFoundError(
        "Could not find configs directory. Ensure you're running from the project root."
    )


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_config_for_environment(environment: str) -> dict[str, Any]:
    """Load and merge configuration for a specific environment."""
    config_dir = _get_config_dir()
    env_dir = config_dir / "environments"

    # Load base config
    base_config = _load_yaml_file(env_dir / "base.yaml")

    # Load environment-specific config
    env_config = _load_yaml_file(env_dir / f"{environment}.yaml")

    # Remove inheritance marker if present
    env_config.pop("_inherit", None)

    merged = _deep_merge(base_config, env_config)
    merged["environment"] = environment

    return merged


@lru_cache(maxsize=4)
def get_config(environment: str | None = None) -> Settings:
    """
    Get configuration for the specified environment.

    Args:
        environment: Environment name (dev, prod).
                    If None, uses CL_ENVIRONMENT env var, defaulting to "dev".

    Returns:
        Settings: Validated configuration object.
    """
    if environment is None:
        environment = os.getenv("CL_ENVIRONMENT", "dev")

    yaml_config = _load_config_for_environment(environment)

    # Create Settings object (also loads env vars)
    return Settings(**yaml_config)


def reload_config(environment: str | None = None) -> Settings:
    """
    Reload configuration, clearing the cache.

    Useful for testing or when config files have changed.
    """
    get_config.cache_clear()
    return get_config(environment)


def get_dataset_config(dataset: str) -> dict[str, Any]:
    """
    Load the per-dataset YAML file (configs/datasets/<dataset>.yaml).

    Returns an empty dict when the file does not exist.
    """
    try:
        config_dir = _get_config_dir()
    except FileNotFoundError:
        return {}
    return _load_yaml_file(config_dir / "datasets" / f"{dataset}.yaml")
