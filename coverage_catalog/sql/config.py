"""
Configuration for the Coverage Catalog.

Provides the dataclass holding the store location, the store timezone
and optional overrides of the default query texts, with loaders for
dictionaries, YAML files and environment variables.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from coverage_catalog.sql.queries import DEFAULT_QUERIES
from coverage_catalog.sql.temporal import resolve_timezone


@dataclass
class CatalogConfig:
    """
    Complete configuration for a coverage catalog.

    Attributes:
        database_path: Path to the SQLite catalog (in-memory if None)
        timezone: IANA name of the timezone the store writes dates in
        queries: Query texts overriding the defaults, keyed by query name
        create_schema: Create missing catalog tables when opening
    """

    database_path: Optional[str] = None
    timezone: str = "UTC"
    queries: Dict[str, str] = field(default_factory=dict)
    create_schema: bool = True

    def __post_init__(self):
        """Validate configuration."""
        unknown = sorted(set(self.queries) - set(DEFAULT_QUERIES))
        if unknown:
            raise ValueError(f"Unknown query names: {', '.join(unknown)}")
        try:
            resolve_timezone(self.timezone)
        except Exception as e:
            raise ValueError(f"Unknown timezone: {self.timezone}") from e

    def query(self, name: str) -> str:
        """Get the query text for name, override first."""
        return self.queries.get(name, DEFAULT_QUERIES[name])

    def get_database_path(self) -> Optional[Path]:
        """Get expanded database path."""
        if self.database_path is None:
            return None
        return Path(os.path.expanduser(self.database_path))

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "CatalogConfig":
        """
        Create configuration from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            CatalogConfig instance
        """
        return cls(
            database_path=config_dict.get("database_path"),
            timezone=config_dict.get("timezone", "UTC"),
            queries=dict(config_dict.get("queries") or {}),
            create_schema=config_dict.get("create_schema", True),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "CatalogConfig":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            CatalogConfig instance
        """
        path = Path(yaml_path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(path, "r") as f:
            config_dict = yaml.safe_load(f) or {}

        # Extract catalog section if present
        if "catalog" in config_dict:
            config_dict = config_dict["catalog"]

        return cls.from_dict(config_dict)

    @classmethod
    def from_environment(cls) -> "CatalogConfig":
        """
        Create configuration from environment variables.

        Environment variables override default values:
        - COVERAGE_CATALOG_DATABASE
        - COVERAGE_CATALOG_TIMEZONE

        Returns:
            CatalogConfig instance
        """
        config = cls()
        config.apply_environment()
        return config

    def apply_environment(self) -> None:
        """Apply environment variable overrides in place."""
        if os.environ.get("COVERAGE_CATALOG_DATABASE"):
            self.database_path = os.environ["COVERAGE_CATALOG_DATABASE"]

        if os.environ.get("COVERAGE_CATALOG_TIMEZONE"):
            timezone = os.environ["COVERAGE_CATALOG_TIMEZONE"]
            resolve_timezone(timezone)
            self.timezone = timezone

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "database_path": self.database_path,
            "timezone": self.timezone,
            "queries": dict(self.queries),
            "create_schema": self.create_schema,
        }


def load_config(
    yaml_path: Optional[str] = None,
    use_environment: bool = True,
) -> CatalogConfig:
    """
    Load catalog configuration with fallbacks.

    Attempts to load configuration in order:
    1. From specified YAML path (if provided)
    2. From default config paths
    3. Fall back to defaults
    Environment variables are applied on top when use_environment is set.

    Args:
        yaml_path: Optional explicit path to YAML config
        use_environment: Whether to apply environment variable overrides

    Returns:
        CatalogConfig instance
    """
    config = None

    if yaml_path:
        config = CatalogConfig.from_yaml(yaml_path)

    if config is None:
        default_paths = [
            Path("config/catalog.yaml"),
            Path.home() / ".coverage_catalog" / "catalog.yaml",
        ]
        for path in default_paths:
            if path.exists():
                config = CatalogConfig.from_yaml(str(path))
                break

    if config is None:
        config = CatalogConfig()

    if use_environment:
        config.apply_environment()

    return config
