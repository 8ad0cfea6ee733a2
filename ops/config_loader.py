"""
Configuration Loader for the Mumbai Ward Maps pipeline

This module provides a centralized way to load and access configuration
settings from the config.yaml file.

Usage:
    from ops import Config

    config = Config()
    sheet_id, gid = config.get_sheet_config("2017")
    output_dir = config.get_output_dir("html")
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml  # type: ignore[import-untyped]
from loguru import logger

from processing.errors import ConfigMissing

PACKAGE_CONFIG = Path(__file__).parent / "config.yaml"


class Config:
    """Configuration manager for the ward map pipeline."""

    # Default values that can be overridden in config
    DEFAULTS: Dict[str, Any] = {
        "api": {"base_url": "http://localhost:5000"},
        "refresh": {"interval_seconds": 15},
        "http": {"timeout": 30},
        "geometry": {"location": "data/bmc_{year}_cleaned.geojson"},
        "attributes": {
            "default_source": "spreadsheet",
            "local_location": "data/bmc_{year}_attributes.json",
            "spreadsheet_url": (
                "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv&gid={gid}"
            ),
            "relay_location": "{api_base_url}/api/geojson/{year}",
        },
        "map": {
            "center": [19.076, 72.8777],
            "zoom": 11,
            "tiles": None,
            "fill_mode": "party",
            "device": "auto",
        },
        "style": {
            "base": {"color": "black", "weight": 1, "opacity": 1, "fillOpacity": 0.7},
            "default_ward_color": "#FFF",
            "unknown_party_color": "#cccccc",
            "population_highlight_color": "#ff8000",
            "population_bands": [
                {"above": 1000000, "color": "#FF8C00"},
                {"above": 500000, "color": "#FFA07A"},
                {"above": None, "color": "#5092a5"},
            ],
        },
        "parties": {
            "colors": {},
            "gradients": {},
            "logos": {},
            "default_logo": "/logos/default.png",
        },
        "gradient_definitions": {},
        "directories": {"data": "data", "html": "html"},
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
                        1. Environment variable WARDMAP_CONFIG_PATH
                        2. config.yaml in current directory
                        3. config.yaml shipped with the ops package
            project_root_override: Override project root detection (useful for temp configs)
        """
        if config_file is None:
            env_config = os.environ.get("WARDMAP_CONFIG_PATH")
            if env_config and Path(env_config).exists():
                config_file = env_config
                logger.debug(f"Using config from environment: {config_file}")
            elif Path("config.yaml").exists():
                config_file = "config.yaml"
            elif PACKAGE_CONFIG.exists():
                config_file = PACKAGE_CONFIG
                logger.debug("Using packaged ops/config.yaml")
            else:
                raise FileNotFoundError(
                    "No config.yaml found. Check current directory or set WARDMAP_CONFIG_PATH"
                )

        self.config_path = Path(config_file).resolve()
        self.config_dir = self.config_path.parent

        if project_root_override:
            self.project_root = Path(project_root_override).resolve()
            logger.debug(f"Using project root override: {self.project_root}")
        elif os.environ.get("PROJECT_ROOT_OVERRIDE"):
            self.project_root = Path(os.environ["PROJECT_ROOT_OVERRIDE"]).resolve()
            logger.debug(f"Using project root from environment: {self.project_root}")
        else:
            self.project_root = self._find_project_root()

        logger.debug(f"Loading config from: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")

        with open(self.config_path, "r", encoding="utf-8") as f:
            self.data = yaml.safe_load(f) or {}

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation with intelligent defaults.

        Args:
            key_path: Dot-separated path to the configuration value
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key_path.split(".")

        value: Any = self.data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                value = None
                break

        if value is None:
            value = self.DEFAULTS
            for key in keys:
                if isinstance(value, dict) and key in value:
                    value = value[key]
                else:
                    return default
            if value is None:
                return default

        return value

    # Years and per-year sources
    def get_years(self) -> List[str]:
        """Configured election years, in file order."""
        years = self.data.get("years") or {}
        return [str(year) for year in years]

    def get_default_year(self) -> str:
        default_year = self.data.get("default_year")
        if default_year is not None:
            return str(default_year)
        years = self.get_years()
        if not years:
            raise ConfigMissing("?", "No election years configured")
        return years[0]

    def get_year_config(self, year: Any) -> Dict[str, Any]:
        """Per-year block; raises ConfigMissing for an unconfigured year."""
        years = self.data.get("years") or {}
        for key, value in years.items():
            if str(key) == str(year):
                return dict(value or {})
        raise ConfigMissing(year)

    def get_source_kind(self, year: Any) -> str:
        year_config = self.get_year_config(year)
        return str(year_config.get("source") or self.get("attributes.default_source"))

    def get_sheet_config(self, year: Any) -> Tuple[str, str]:
        """(sheet_id, gid) for a spreadsheet-backed year."""
        year_config = self.get_year_config(year)
        sheet_id = year_config.get("sheet_id")
        gid = year_config.get("gid")
        if not sheet_id or gid is None or gid == "":
            raise ConfigMissing(year, f"Year {year} has no sheet_id/gid configured")
        return str(sheet_id), str(gid)

    def get_api_base_url(self) -> str:
        """Relay API base URL; WARDMAP_API_URL overrides the config value."""
        base_url = os.environ.get("WARDMAP_API_URL") or self.get("api.base_url")
        return str(base_url).rstrip("/")

    def get_refresh_interval(self) -> float:
        return float(self.get("refresh.interval_seconds"))

    def get_http_timeout(self) -> float:
        return float(self.get("http.timeout"))

    def resolve_location(self, template: str, **fields: Any) -> str:
        """
        Format a location template. Relative file paths are resolved against
        the project root; URLs are returned unchanged.
        """
        fields.setdefault("api_base_url", self.get_api_base_url())
        location = template.format(**fields)
        if location.startswith(("http://", "https://")):
            return location
        path = Path(location)
        if not path.is_absolute():
            path = self.project_root / path
        return str(path)

    # Styling tables
    def get_party_colors(self) -> Dict[str, str]:
        return dict(self.get("parties.colors", {}))

    def get_party_gradients(self) -> Dict[str, str]:
        return dict(self.get("parties.gradients", {}))

    def get_gradient_definitions(self) -> Dict[str, Any]:
        return dict(self.get("gradient_definitions", {}))

    def get_party_logos(self) -> Dict[str, str]:
        return dict(self.get("parties.logos", {}))

    def get_default_logo(self) -> str:
        return str(self.get("parties.default_logo"))

    def get_default_ward_color(self) -> str:
        return str(self.get("style.default_ward_color"))

    def get_unknown_party_color(self) -> str:
        return str(self.get("style.unknown_party_color"))

    def get_base_style(self) -> Dict[str, Any]:
        return dict(self.get("style.base"))

    def get_population_bands(self) -> List[Dict[str, Any]]:
        return list(self.get("style.population_bands"))

    def get_map_setting(self, setting_key: str) -> Any:
        """Get map setting with intelligent defaults."""
        return self.get(f"map.{setting_key}")

    def get_output_dir(self, dir_key: str) -> Path:
        """
        Get full path to an output directory, creating it if needed.

        Args:
            dir_key: Directory key ('html' or 'data')

        Returns:
            Full path to the directory
        """
        if dir_key not in ("html", "data"):
            raise ValueError(f"Unknown directory key: {dir_key}")
        directory = self.project_root / self.get(f"directories.{dir_key}", dir_key)
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def get_map_output_path(self, year: Any) -> Path:
        return self.get_output_dir("html") / f"bmc_{year}_wards.html"

    def print_config_summary(self) -> None:
        """Print a summary of the current configuration."""
        logger.debug("📋 Configuration Summary")
        logger.debug("=" * 50)
        logger.debug(f"Project: {self.get('project_name', 'Unknown')}")
        logger.debug(f"Config file: {self.config_path}")
        logger.debug(f"Project root: {self.project_root}")
        logger.debug(f"API base URL: {self.get_api_base_url()}")
        logger.debug(f"Refresh interval: {self.get_refresh_interval()}s")

        logger.debug("🗓️ Years:")
        for year in self.get_years():
            logger.debug(f"  {year}: {self.get_source_kind(year)}")

    def _find_project_root(self) -> Path:
        """Find the project root directory by looking for characteristic files/directories."""
        current = self.config_path.parent

        project_markers = ["data", "ops", "processing", "mapping", "pyproject.toml", ".git"]

        for _ in range(5):  # Limit to 5 levels up
            markers_found = sum(1 for marker in project_markers if (current / marker).exists())

            if markers_found >= 2:
                return current

            parent = current.parent
            if parent == current:
                break
            current = parent

        # Fallback: if config is in ops/, project root is parent
        if self.config_path.parent.name == "ops":
            return self.config_path.parent.parent

        logger.warning(
            f"Could not reliably detect project root, using config directory: {self.config_path.parent}"
        )
