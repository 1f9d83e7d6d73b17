"""
Configuration management for the H.4.1 pipeline.

Provides centralized configuration for paths, fetch settings, reconciliation
rules, and logging. Supports loading from YAML files.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

BASE_URL = "https://www.federalreserve.gov/releases/h41/"
FEED_URL = "https://www.federalreserve.gov/feeds/h41.html"


@dataclass
class PathsConfig:
    """Directory paths configuration."""
    output_dir: Path = Path("data/h41_reports")

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)


@dataclass
class FetchConfig:
    """Network settings for release discovery and retrieval."""
    user_agent: str = "FedH41Parser/1.0 (contact: research@example.com)"
    timeout: float = 30
    delay: float = 0.4
    base_url: str = BASE_URL
    index_url: str = BASE_URL
    feed_url: str = FEED_URL


@dataclass
class ReconcileConfig:
    """Totals reconciliation rules."""
    tolerance: float = 1.0  # Absolute, in millions of dollars
    check_item_sums: bool = True
    check_total_identity: bool = True
    zero_totals_fatal: bool = True


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str | None = None


@dataclass
class Config:
    """Main configuration container."""
    paths: PathsConfig = field(default_factory=PathsConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        paths = PathsConfig(**data.get("paths", {}))
        fetch = FetchConfig(**data.get("fetch", {}))
        reconcile = ReconcileConfig(**data.get("reconcile", {}))
        logging_cfg = LoggingConfig(**data.get("logging", {}))
        return cls(paths=paths, fetch=fetch, reconcile=reconcile, logging=logging_cfg)

    def to_dict(self) -> dict[str, Any]:
        """Convert Config to dictionary."""
        return {
            "paths": {
                "output_dir": str(self.paths.output_dir),
            },
            "fetch": {
                "user_agent": self.fetch.user_agent,
                "timeout": self.fetch.timeout,
                "delay": self.fetch.delay,
                "base_url": self.fetch.base_url,
                "index_url": self.fetch.index_url,
                "feed_url": self.fetch.feed_url,
            },
            "reconcile": {
                "tolerance": self.reconcile.tolerance,
                "check_item_sums": self.reconcile.check_item_sums,
                "check_total_identity": self.reconcile.check_total_identity,
                "zero_totals_fatal": self.reconcile.zero_totals_fatal,
            },
            "logging": {
                "level": self.logging.level,
                "file": self.logging.file,
            },
        }


def load_config(path: Path | str | None = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        path: Path to config file. If None, uses default config.

    Returns:
        Config object with loaded or default settings.
    """
    if path is None:
        return Config()

    path = Path(path)
    if not path.exists():
        logger.info("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return Config.from_dict(data)


def save_config(config: Config, path: Path | str) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Config object to save
        path: Path to save config file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)


def setup_logging(config: LoggingConfig | None = None, name: str = "fed_h41") -> logging.Logger:
    """
    Configure the package logger if no handler is attached yet.

    Args:
        config: Level and optional log file. Defaults to INFO on the console.
        name: Logger namespace; reused to avoid duplicate handlers.

    Returns:
        The package logger.
    """
    config = config or LoggingConfig()
    pkg_logger = logging.getLogger(name)

    if not pkg_logger.handlers:
        pkg_logger.setLevel(config.level.upper())

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
        pkg_logger.addHandler(console_handler)

        if config.file:
            log_path = Path(config.file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            pkg_logger.addHandler(file_handler)

    return pkg_logger


# Default config file location
DEFAULT_CONFIG_PATH = Path("config.yaml")
