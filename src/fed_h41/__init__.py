"""
Fed H.4.1 extraction and normalization pipeline.

Modules:
    dates: Closest-release date resolution and date string helpers
    fetcher: Release discovery and HTML download
    locator: Table location in release pages
    extractor: Row extraction and Table 1 classification
    reconciler: Totals reconciliation
    adapter: Canonical report schema and report comparison
    pipeline: End-to-end runs for one or two dates
    config: Configuration management and logging setup
    cli: Command-line interface
"""

from .adapter import adapt_to_canonical, compare_reports
from .config import Config, load_config, save_config, setup_logging
from .dates import iso_from_yyyymmdd, resolve_release_date, yyyymmdd_from_iso
from .errors import (
    AdapterFailure,
    FetchFailure,
    H41Error,
    ReconciliationFailure,
    ResolutionFailure,
    StructuralDriftFailure,
)
from .fetcher import create_session, discover_releases, fetch_release
from .pipeline import ReleasePipeline, compare_releases, parse_factors_table, parse_report

__version__ = "0.1.0"

__all__ = [
    # dates
    "resolve_release_date",
    "yyyymmdd_from_iso",
    "iso_from_yyyymmdd",
    # fetcher
    "create_session",
    "discover_releases",
    "fetch_release",
    # pipeline
    "parse_report",
    "parse_factors_table",
    "ReleasePipeline",
    "compare_releases",
    # adapter
    "adapt_to_canonical",
    "compare_reports",
    # config
    "Config",
    "load_config",
    "save_config",
    "setup_logging",
    # errors
    "H41Error",
    "ResolutionFailure",
    "FetchFailure",
    "StructuralDriftFailure",
    "ReconciliationFailure",
    "AdapterFailure",
]
