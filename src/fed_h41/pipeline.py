"""
End-to-end H.4.1 pipeline.

Date resolution, fetch, table location, row extraction, reconciliation and
schema adaptation run strictly in that order for one requested date. Two
dates can be compared by running two independent pipelines concurrently.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

import requests

from .adapter import adapt_to_canonical, compare_reports
from .config import Config, ReconcileConfig
from .dates import resolve_release_date
from .errors import FetchFailure, ReconciliationFailure, ResolutionFailure, StructuralDriftFailure
from .extractor import (
    VALUE_ONLY_LAYOUT,
    extract_consolidated,
    extract_factors,
    extract_lending,
    extract_line_items,
    extract_maturity,
    extract_meta,
    extract_regional,
    summarize_maturity,
)
from .fetcher import create_session, discover_releases, fetch_release, pdf_url
from .locator import DEFAULT_MATCHERS, FACTORS, TableMatcher, locate_table, locate_tables
from .models import (
    RECONCILIATION,
    STRUCTURAL_DRIFT,
    TABLE_NOT_FOUND,
    ConsolidatedStatement,
    Diagnostic,
    FactorsTable,
    Integrity,
    LineItem,
    Overview,
    ParseResult,
    RawDocument,
    ReleaseLink,
    ReportMeta,
    TableSection,
)
from .reconciler import reconcile

logger = logging.getLogger(__name__)


def _find(items: tuple[LineItem, ...], label: str) -> LineItem | None:
    return next((item for item in items if item.label == label), None)


def build_overview(factors: FactorsTable, consolidated: ConsolidatedStatement | None = None) -> Overview:
    """Headline figures; total assets come from the consolidated statement when present."""
    return Overview(
        total_assets=consolidated.total_assets if consolidated else None,
        securities_held=_find(factors.supplying, "Securities held outright"),
        reserves=factors.totals.reserve_balances,
        tga=_find(factors.absorbing, "U.S. Treasury, General Account"),
        rrp=_find(factors.absorbing, "Reverse repurchase agreements"),
        currency=_find(factors.absorbing, "Currency in circulation"),
        treasury=_find(factors.supplying, "U.S. Treasury securities"),
        mbs=_find(factors.supplying, "Mortgage-backed securities"),
    )


def _build_factors(
    section: TableSection,
    meta: ReportMeta,
    config: ReconcileConfig,
) -> tuple[FactorsTable, list[Diagnostic]]:
    extraction = extract_factors(section)
    diagnostics = list(extraction.diagnostics)
    drifted = any(d.kind == STRUCTURAL_DRIFT for d in diagnostics)

    if drifted:
        integrity = Integrity(ok=False, failures=("not reconciled: structural drift in factors table",))
    else:
        integrity = reconcile(extraction.supplying, extraction.absorbing, extraction.totals, config)
        diagnostics.extend(
            Diagnostic(RECONCILIATION, "factors", failure, fatal=True) for failure in integrity.failures
        )

    factors = FactorsTable(
        supplying=extraction.supplying,
        absorbing=extraction.absorbing,
        totals=extraction.totals,
        integrity=integrity,
        release_date=meta.release_date,
        week_ended=meta.week_ended,
    )
    return factors, diagnostics


def parse_report(
    doc: RawDocument,
    config: Config | None = None,
    matchers: tuple[TableMatcher, ...] = DEFAULT_MATCHERS,
) -> ParseResult:
    """
    Parse every table of a fetched release.

    A missing optional table adds a non-fatal "table not found" diagnostic
    and leaves its section empty. A missing factors table, structural drift
    or a reconciliation failure makes the result not ok.

    Args:
        doc: Fetched release
        config: Reconciliation settings
        matchers: Tables to locate

    Returns:
        ParseResult whose warnings must be surfaced verbatim.
    """
    config = config or Config()
    located = locate_tables(doc.html, matchers)
    diagnostics: list[Diagnostic] = []
    for matcher in matchers:
        section = located[matcher.name]
        if not section.found:
            diagnostics.append(Diagnostic(TABLE_NOT_FOUND, matcher.name, section.reason, fatal=matcher.mandatory))

    meta = extract_meta(doc.html)
    missing = TableSection.missing("", "", "not requested")
    factors = None
    if located.get("factors", missing).found:
        factors, factor_diagnostics = _build_factors(located["factors"], meta, config.reconcile)
        diagnostics.extend(factor_diagnostics)

    consolidated = None
    if located.get("consolidated", missing).found:
        consolidated = extract_consolidated(located["consolidated"])

    maturity = extract_maturity(located.get("maturity", missing))
    sections: dict[str, Any] = {
        "meta": meta,
        "overview": build_overview(factors, consolidated) if factors else None,
        "factors": factors,
        "memorandum": extract_line_items(located.get("memorandum", missing)),
        "lending": extract_lending(located.get("factors", missing), located.get("memorandum", missing), diagnostics),
        "maturity": maturity,
        "maturity_buckets": summarize_maturity(maturity),
        "consolidated": consolidated,
        "regional": extract_regional(located.get("regional", missing), diagnostics),
        "fr_notes": extract_line_items(located.get("fr_notes", missing), VALUE_ONLY_LAYOUT),
    }

    ok = not any(d.fatal for d in diagnostics)
    for d in diagnostics:
        (logger.error if d.fatal else logger.warning)("%s", d)
    logger.info("Parsed release %s: ok=%s, %d warnings", doc.release_date, ok, len(diagnostics))

    return ParseResult(
        ok=ok,
        sections=sections,
        diagnostics=tuple(diagnostics),
        release_date=doc.release_date,
        source_url=doc.url,
        located=located,
    )


def parse_factors_table(raw_html: str, config: Config | None = None, strict: bool = False) -> FactorsTable:
    """
    Parse only Table 1.

    Args:
        raw_html: Release HTML
        config: Reconciliation settings
        strict: Raise on reconciliation failures instead of reporting them

    Returns:
        FactorsTable with 13 supplying and 4 absorbing items. Unless strict,
        reconciliation problems are reported through integrity.ok.

    Raises:
        StructuralDriftFailure: The table is missing or its rows do not match the known layout.
        ReconciliationFailure: strict is set and the totals do not reconcile.
    """
    config = config or Config()
    section = locate_table(raw_html, FACTORS)
    if not section.found:
        raise StructuralDriftFailure(section.reason)

    factors, diagnostics = _build_factors(section, extract_meta(raw_html), config.reconcile)
    drift = [d.message for d in diagnostics if d.kind == STRUCTURAL_DRIFT]
    if drift:
        raise StructuralDriftFailure("; ".join(drift))
    if strict and not factors.integrity.ok:
        raise ReconciliationFailure("; ".join(factors.integrity.failures))
    return factors


@dataclass(frozen=True)
class PipelineOutcome:
    requested: str
    resolved: str
    result: ParseResult
    report: dict[str, Any]


class ReleasePipeline:
    """
    One pipeline instance per requested date.

    Instances hold their own session and share nothing, so several can run
    in parallel threads.
    """

    def __init__(self, config: Config | None = None, session: requests.Session | None = None):
        self.config = config or Config()
        self.session = session or create_session(self.config.fetch.user_agent)
        self._known: dict[str, ReleaseLink] | None = None

    def known_releases(self) -> dict[str, ReleaseLink]:
        if self._known is None:
            self._known = discover_releases(self.session, self.config.fetch)
        return self._known

    def resolve(self, requested: str) -> str:
        return resolve_release_date(requested, list(self.known_releases()))

    def fetch(self, date: str) -> RawDocument:
        return fetch_release(self.session, date, self.config.fetch, self.known_releases())

    def run(self, requested: str, include_diagnostics: bool = False) -> PipelineOutcome:
        """
        Produce the canonical report for the release closest to requested.

        Raises:
            ResolutionFailure: No release dates are known and the requested date could not be fetched.
            FetchFailure: The resolved release could not be fetched.
            AdapterFailure: The release has no factors table.
        """
        known = self.known_releases()
        resolved = resolve_release_date(requested, list(known))
        if resolved != requested:
            logger.info("Resolved %s to release %s", requested, resolved)

        try:
            doc = fetch_release(self.session, resolved, self.config.fetch, known)
        except FetchFailure as exc:
            if not known:
                raise ResolutionFailure(
                    f"no known release dates and no release could be fetched for {requested}"
                ) from exc
            raise

        result = parse_report(doc, self.config)
        link = known.get(resolved)
        report = adapt_to_canonical(
            result,
            resolved,
            doc.url,
            pdf_url=link.pdf_url if link else pdf_url(resolved, self.config.fetch.base_url),
            updated_at=doc.fetched_at,
            include_diagnostics=include_diagnostics,
        )
        return PipelineOutcome(requested=requested, resolved=resolved, result=result, report=report)


def compare_releases(
    from_date: str,
    to_date: str,
    config: Config | None = None,
    session_factory: Callable[[], requests.Session] | None = None,
) -> dict[str, Any]:
    """
    Run two independent pipelines in parallel and diff their reports.

    Args:
        from_date: Earlier requested date
        to_date: Later requested date
        config: Shared read-only configuration
        session_factory: Builds one session per pipeline; defaults to create_session

    Returns:
        Dict with both report metas, combined ok/warnings and per-row changes.
    """
    config = config or Config()
    factory = session_factory or (lambda: create_session(config.fetch.user_agent))

    def run(date: str) -> PipelineOutcome:
        return ReleasePipeline(config, factory()).run(date)

    with ThreadPoolExecutor(max_workers=2) as executor:
        older_future = executor.submit(run, from_date)
        newer_future = executor.submit(run, to_date)
        older = older_future.result()
        newer = newer_future.result()

    return {
        "from": older.report["meta"],
        "to": newer.report["meta"],
        "ok": older.result.ok and newer.result.ok,
        "warnings": list(older.result.warnings) + list(newer.result.warnings),
        "changes": compare_reports(older.report, newer.report),
    }
