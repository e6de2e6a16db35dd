from crime_landuse.shared.config import Settings, get_config, get_dataset_config
from crime_landuse.shared.exceptions import ConfigurationError

__all__ = [
    "get_config",
    "get_dataset_config",
    "Settings",
    "ConfigurationError",
]
