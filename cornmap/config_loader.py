"""
Configuration Loader for the cornmap pipeline

Usage:
    from cornmap.config_loader import Config

    config = Config()
    stats_csv = config.get_input_path("stats_csv")
    county_col = config.get_column_name("stats_county")
    dpi = config.get_visualization_setting("map_dpi")
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from loguru import logger

from .errors import ConfigError

PACKAGE_CONFIG = Path(__file__).parent / "config.yaml"


def is_url(location: Union[str, Path]) -> bool:
    """True for http(s) locations, which are passed through untouched."""
    return str(location).lower().startswith(("http://", "https://"))


class Config:
    """Configuration manager for the choropleth pipeline."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "columns": {
            "stats_county": "County",
            "stats_value": "Value",
            "boundary_county": "NAME",
        },
        "stats": {"timeout": 30},
        "visualization": {
            "map_dpi": 200,
            "figure_max_width": 12,
            "colormap": "YlGn",
            "missing_color": "#f8f8f8",
            "missing_hatch": "///",
            "outline_color": "#333333",
            "annotate_top": 0,
        },
        "system": {"output_crs": "EPSG:4326"},
        "logging": {"level": "INFO"},
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        project_root_override: Optional[Union[str, Path]] = None,
    ):
        """
        Initialize configuration manager.

        Args:
            config_file: Path to config file. If None, looks for:
                        1. Environment variable CORNMAP_CONFIG_PATH
                        2. config.yaml in current directory
                        3. the config.yaml shipped inside the package
            project_root_override: Directory that relative input/output paths resolve against
        """
        if config_file is None:
            env_config = os.environ.get("CORNMAP_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
                logger.debug("Using config.yaml from current directory")
            else:
                config_file = PACKAGE_CONFIG
                logger.debug("Using packaged cornmap/config.yaml")

        self.config_path = Path(config_file).resolve()
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        if project_root_override:
            self.project_root = Path(project_root_override).resolve()
            logger.debug(f"Using project root override: {self.project_root}")
        else:
            self.project_root = self._find_project_root()

        logger.debug(f"Loading config from: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        with open(self.config_path, "r") as f:
            self.data = yaml.safe_load(f) or {}

    def _find_project_root(self) -> Path:
        """Simple project root detection."""
        # If config is inside the package, project root is its parent
        if self.config_path.parent.name == "cornmap":
            return self.config_path.parent.parent
        return self.config_path.parent

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation, falling back to DEFAULTS.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found in config or DEFAULTS

        Returns:
            Configuration value
        """
        for source in (self.data, self.DEFAULTS):
            value: Any = source
            for key in key_path.split("."):
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    value = None
                    break
            if value is not None:
                return value
        return default

    def get_input_path(self, filename_key: str) -> Union[str, Path]:
        """Get an input location; URLs are returned as-is, paths join the project root."""
        location = self.data.get("input_files", {}).get(filename_key)
        if not location:
            raise ConfigError(f"Input file '{filename_key}' not found in config: input_files")
        if is_url(location):
            return location
        return self.project_root / location

    def get_output_path(self, filename_key: str) -> Path:
        """Get an output file path, creating its parent directory."""
        relative_path = self.data.get("output", {}).get(filename_key)
        if not relative_path:
            raise ConfigError(f"Output file '{filename_key}' not found in config: output")
        output_path = self.project_root / relative_path
        output_path.parent.mkdir(parents=True, exist_ok=True)
        return output_path

    def get_column_name(self, column_key: str) -> str:
        """Get column name with defaults."""
        result = self.get(f"columns.{column_key}")
        if isinstance(result, str):
            return result
        raise ConfigError(f"Column '{column_key}' not found in config or defaults")

    def get_visualization_setting(self, setting_key: str) -> Any:
        return self.get(f"visualization.{setting_key}")

    def get_system_setting(self, setting_key: str) -> Any:
        return self.get(f"system.{setting_key}")

    def print_config_summary(self) -> None:
        """Log a summary of the current configuration."""
        logger.debug("📋 Configuration Summary")
        logger.debug("=" * 50)
        logger.debug(f"Project: {self.get('project_name', 'Unknown')}")
        logger.debug(f"Description: {self.get('description', 'No description')}")
        logger.debug(f"Config file: {self.config_path}")
        logger.debug(f"Region: {self.get('region.state', 'Unknown')}")

        logger.debug("📊 Input Files:")
        for key, location in self.data.get("input_files", {}).items():
            if is_url(location):
                logger.debug(f"  🌐 {key}: {location}")
            else:
                exists = "✅" if (self.project_root / location).exists() else "❌"
                logger.debug(f"  {exists} {key}: {location}")
