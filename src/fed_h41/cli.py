"""
Command-line interface for the H.4.1 pipeline.

Provides commands for listing releases, building canonical reports,
comparing two releases, and exporting a date range to JSON files.
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from tqdm import tqdm

from .adapter import adapt_to_canonical
from .config import Config, load_config, save_config, setup_logging, DEFAULT_CONFIG_PATH
from .errors import H41Error
from .fetcher import create_session, discover_releases, pdf_url
from .models import RawDocument
from .pipeline import ReleasePipeline, compare_releases, parse_factors_table, parse_report

logger = logging.getLogger(__name__)


def _dump(data: dict, output: str | None) -> None:
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if output:
        path = Path(output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        print(f"Wrote {path}")
    else:
        print(text)


def cmd_dates(args: argparse.Namespace, config: Config) -> int:
    """List known release dates, newest first."""
    session = create_session(config.fetch.user_agent)
    releases = discover_releases(session, config.fetch)
    if not releases:
        print("No releases found")
        return 1
    for date in list(releases)[:args.limit]:
        print(f"{date}  {releases[date].url}")
    return 0


def cmd_report(args: argparse.Namespace, config: Config) -> int:
    """Build the canonical report for one date."""
    outcome = ReleasePipeline(config).run(args.date, include_diagnostics=args.debug)
    _dump(outcome.report, args.output)
    for warning in outcome.result.warnings:
        logger.warning("%s", warning)
    return 0 if outcome.result.ok else 1


def cmd_factors(args: argparse.Namespace, config: Config) -> int:
    """Print Table 1 for one date."""
    pipeline = ReleasePipeline(config)
    date = pipeline.resolve(args.date)
    doc = pipeline.fetch(date)
    factors = parse_factors_table(doc.html, config, strict=args.strict)

    print(f"=== Factors affecting reserve balances, {date} ===")
    for title, items in (("Supplying", factors.supplying), ("Absorbing", factors.absorbing)):
        print(f"\n{title}:")
        for item in items:
            weekly = "n/a" if item.weekly_change is None else f"{item.weekly_change:+,}"
            print(f"  {item.label:<55} {item.value:>12,}  {weekly:>10}")
    reserves = factors.totals.reserve_balances
    print(f"\nReserve balances: {reserves.value:,}" if reserves else "\nReserve balances: missing")
    print(f"Integrity: {'ok' if factors.integrity.ok else 'FAILED'}")
    for failure in factors.integrity.failures:
        print(f"  {failure}")
    return 0 if factors.integrity.ok else 1


def cmd_parse(args: argparse.Namespace, config: Config) -> int:
    """Parse a saved release page."""
    path = Path(args.file)
    doc = RawDocument(html=path.read_text(encoding="utf-8"), url=args.url or path.as_uri(), release_date=args.date)
    result = parse_report(doc, config)
    report = adapt_to_canonical(
        result,
        args.date,
        doc.url,
        pdf_url=pdf_url(args.date, config.fetch.base_url),
        include_diagnostics=args.debug,
    )
    _dump(report, args.output)
    return 0 if result.ok else 1


def cmd_compare(args: argparse.Namespace, config: Config) -> int:
    """Compare two releases row by row."""
    comparison = compare_releases(args.from_date, args.to_date, config)
    if args.output:
        _dump(comparison, args.output)
    else:
        print(f"=== {comparison['from']['reportDate']} -> {comparison['to']['reportDate']} ===")
        for change in comparison["changes"]:
            if change["direction"] == "neutral" and not args.all:
                continue
            pct = "" if change["deltaPercent"] is None else f" ({change['deltaPercent']:+.2f}%)"
            print(f"  [{change['section']}] {change['label']}: {change['delta']:+,}{pct}")
    for warning in comparison["warnings"]:
        logger.warning("%s", warning)
    return 0 if comparison["ok"] else 1


def cmd_export(args: argparse.Namespace, config: Config) -> int:
    """Write canonical reports for every release in a date range."""
    pipeline = ReleasePipeline(config)
    dates = [
        d for d in sorted(pipeline.known_releases())
        if (not args.since or d >= args.since) and (not args.until or d <= args.until)
    ]
    if not dates:
        print("No releases in range")
        return 1

    output_dir = config.paths.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    failed = 0
    for date in tqdm(dates, desc="Exporting releases"):
        path = output_dir / f"{date}.json"
        if path.exists() and not args.force:
            continue
        try:
            outcome = pipeline.run(date)
        except H41Error as exc:
            logger.error("Failed %s -> %s", date, exc)
            failed += 1
            continue
        if not outcome.result.ok:
            logger.warning("Release %s did not parse cleanly; not written", date)
            failed += 1
            continue
        path.write_text(json.dumps(outcome.report, indent=2, ensure_ascii=False), encoding="utf-8")
        time.sleep(config.fetch.delay)

    print(f"Exported {len(dates) - failed} of {len(dates)} releases to {output_dir}")
    return 0 if not failed else 1


def cmd_init_config(args: argparse.Namespace, config: Config) -> int:
    """Initialize a config file with defaults."""
    output_path = Path(args.output) if args.output else DEFAULT_CONFIG_PATH

    if output_path.exists() and not args.force:
        print(f"Config file already exists: {output_path}")
        print("Use --force to overwrite")
        return 1

    save_config(Config(), output_path)
    print(f"Created config file: {output_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="fed-h41",
        description="Fed H.4.1 pipeline - fetch, parse and normalize weekly balance sheet releases",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file (default: config.yaml if exists)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    dates_parser = subparsers.add_parser("dates", help="List known release dates")
    dates_parser.add_argument("-n", "--limit", type=int, default=20, help="Number of dates to show")

    report_parser = subparsers.add_parser("report", help="Build the canonical report for a date")
    report_parser.add_argument("date", help="Requested date (YYYY-MM-DD)")
    report_parser.add_argument("--debug", action="store_true", help="Include parse diagnostics")
    report_parser.add_argument("-o", "--output", default=None, help="Write JSON to this file")

    factors_parser = subparsers.add_parser("factors", help="Print the factors table for a date")
    factors_parser.add_argument("date", help="Requested date (YYYY-MM-DD)")
    factors_parser.add_argument("--strict", action="store_true", help="Fail with an error when totals do not reconcile")

    parse_parser = subparsers.add_parser("parse", help="Parse a saved release HTML file")
    parse_parser.add_argument("file", help="Path to the HTML file")
    parse_parser.add_argument("--date", required=True, help="Release date of the file (YYYY-MM-DD)")
    parse_parser.add_argument("--url", default=None, help="Source URL to record")
    parse_parser.add_argument("--debug", action="store_true", help="Include parse diagnostics")
    parse_parser.add_argument("-o", "--output", default=None, help="Write JSON to this file")

    compare_parser = subparsers.add_parser("compare", help="Compare two releases")
    compare_parser.add_argument("from_date", help="Earlier date (YYYY-MM-DD)")
    compare_parser.add_argument("to_date", help="Later date (YYYY-MM-DD)")
    compare_parser.add_argument("--all", action="store_true", help="Also show unchanged rows")
    compare_parser.add_argument("-o", "--output", default=None, help="Write JSON to this file")

    export_parser = subparsers.add_parser("export", help="Export reports for a date range")
    export_parser.add_argument("--since", default=None, help="First date (YYYY-MM-DD)")
    export_parser.add_argument("--until", default=None, help="Last date (YYYY-MM-DD)")
    export_parser.add_argument("-f", "--force", action="store_true", help="Overwrite existing files")

    init_parser = subparsers.add_parser("init", help="Create default config file")
    init_parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output path for config file",
    )
    init_parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Overwrite existing config file",
    )

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    # Load config
    config_path = args.config
    if config_path is None and DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH
    config = load_config(config_path)
    setup_logging(config.logging)

    handlers = {
        "dates": cmd_dates,
        "report": cmd_report,
        "factors": cmd_factors,
        "parse": cmd_parse,
        "compare": cmd_compare,
        "export": cmd_export,
        "init": cmd_init_config,
    }
    try:
        return handlers[args.command](args, config)
    except H41Error as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
