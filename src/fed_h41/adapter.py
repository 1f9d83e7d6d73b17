"""
Canonical report schema.

adapt_to_canonical maps a ParseResult into the plain dict consumed by every
downstream caller. The mapping is total: every key is always present, with
None or empty lists for sections the release did not provide. It reads no
clock, so adapting the same result twice gives identical output.
"""

from typing import Any

from .errors import AdapterFailure
from .extractor import MATURITY_BUCKETS
from .models import (
    ConsolidatedStatement,
    FactorsTable,
    LendingTables,
    LineItem,
    MaturityBucket,
    MaturityRow,
    Number,
    Overview,
    ParseResult,
    RegionalTable,
    ReportMeta,
)

KEY_SUPPLY_LABELS = (
    "Securities held outright",
    "Repurchase agreements",
    "Loans",
    "Central bank liquidity swaps",
)
KEY_ABSORB_LABELS = (
    "Currency in circulation",
    "Reverse repurchase agreements",
    "U.S. Treasury, General Account",
)

UP = "up"
DOWN = "down"
NEUTRAL = "neutral"


def percent(part: Number | None, whole: Number | None) -> float | None:
    """part / whole * 100 rounded to 2 places; None when undefined."""
    if part is None or not whole:
        return None
    return round(part / whole * 100, 2)


def change_percent(value: Number, change: Number | None) -> float | None:
    """Change relative to the prior value (value - change)."""
    if change is None:
        return None
    return percent(change, value - change)


def _row(item: LineItem | None) -> dict[str, Any] | None:
    return item.to_dict() if item is not None else None


def _rows(items) -> list[dict[str, Any]]:
    return [item.to_dict() for item in items or ()]


def _metric(item: LineItem | None) -> dict[str, Any] | None:
    if item is None:
        return None
    return {
        "label": item.label,
        "value": item.value,
        "weeklyChange": item.weekly_change,
        "weeklyChangePercent": change_percent(item.value, item.weekly_change),
        "yearlyChange": item.yearly_change,
        "yearlyChangePercent": change_percent(item.value, item.yearly_change),
    }


def _composition(overview: Overview) -> dict[str, Any]:
    total = overview.total_assets.value if overview.total_assets else None
    treasury = overview.treasury.value if overview.treasury else None
    mbs = overview.mbs.value if overview.mbs else None
    other = None
    if total is not None and treasury is not None and mbs is not None:
        other = total - treasury - mbs
    return {
        "treasury": {"value": treasury, "percent": percent(treasury, total)},
        "mbs": {"value": mbs, "percent": percent(mbs, total)},
        "other": {"value": other, "percent": percent(other, total)},
    }


def _overview(overview: Overview) -> dict[str, Any]:
    return {
        "totalAssets": _metric(overview.total_assets),
        "securitiesHeld": _metric(overview.securities_held),
        "reserves": _metric(overview.reserves),
        "tga": _metric(overview.tga),
        "rrp": _metric(overview.rrp),
        "currency": _metric(overview.currency),
        "assetComposition": _composition(overview),
    }


def _factors(factors: FactorsTable) -> dict[str, Any]:
    totals = factors.totals
    return {
        "supplying": _rows(factors.supplying),
        "absorbing": _rows(factors.absorbing),
        "totals": {
            "totalSupplying": _row(totals.total_supplying),
            "totalAbsorbingExReserves": _row(totals.total_absorbing_ex_reserves),
            "reserveBalances": _row(totals.reserve_balances),
        },
        "integrity": factors.integrity.to_dict(),
    }


def _summary(factors: FactorsTable) -> dict[str, Any]:
    supply = {item.label: item for item in factors.supplying}
    absorb = {item.label: item for item in factors.absorbing}
    key_absorb = [absorb[label].to_dict() for label in KEY_ABSORB_LABELS if label in absorb]
    if factors.totals.reserve_balances is not None:
        key_absorb.append(factors.totals.reserve_balances.to_dict())
    return {
        "keySupply": [supply[label].to_dict() for label in KEY_SUPPLY_LABELS if label in supply],
        "keyAbsorb": key_absorb,
    }


def _maturity(
    rows: tuple[MaturityRow, ...] | None,
    buckets: tuple[MaturityBucket, ...] | None,
) -> dict[str, Any]:
    buckets = buckets or ()
    whole = sum(b.value for b in buckets)
    return {
        "buckets": [
            {"range": b.range, "value": b.value, "percent": percent(b.value, whole)}
            for b in buckets
        ],
        "tableRows": [
            {
                "label": row.label,
                "buckets": dict(zip(MATURITY_BUCKETS, row.buckets)),
                "total": row.total,
            }
            for row in rows or ()
        ],
    }


def _lending(tables: LendingTables | None) -> dict[str, Any]:
    tables = tables or LendingTables()
    return {
        "loansTable": _rows(tables.loans),
        "securitiesLendingTable": _rows(tables.securities_lending),
    }


def _consolidated(statement: ConsolidatedStatement | None) -> dict[str, Any]:
    statement = statement or ConsolidatedStatement()
    return {
        "assets": _rows(statement.assets),
        "liabilities": _rows(statement.liabilities),
        "capital": _rows(statement.capital),
        "totals": {
            "assets": _row(statement.total_assets),
            "liabilities": _row(statement.total_liabilities),
        },
    }


def _regional(table: RegionalTable | None) -> dict[str, Any]:
    table = table or RegionalTable()
    return {
        "columns": list(table.columns),
        "rows": [
            {"label": row.label, "values": dict(zip(table.columns, row.values))}
            for row in table.rows
        ],
    }


def _diagnostics(parsed: ParseResult) -> dict[str, Any]:
    return {
        "tables": {
            name: {
                "found": section.found,
                "heading": section.heading,
                "fragments": len(section.fragments),
                "reason": section.reason,
            }
            for name, section in parsed.located.items()
        },
        "items": [d.to_dict() for d in parsed.diagnostics],
    }


def adapt_to_canonical(
    parsed: ParseResult,
    date: str,
    source_url: str,
    *,
    pdf_url: str | None = None,
    updated_at: str | None = None,
    include_diagnostics: bool = False,
) -> dict[str, Any]:
    """
    Map a parse result to the canonical report.

    Args:
        parsed: Result of parse_report
        date: Release date the report answers for
        source_url: URL the HTML was read from
        pdf_url: PDF edition of the release, referenced only
        updated_at: Timestamp stamped by the caller
        include_diagnostics: Fill the diagnostics field instead of leaving it None

    Returns:
        JSON-serializable canonical report.

    Raises:
        AdapterFailure: overview or factors is missing.
    """
    sections = parsed.sections
    overview = sections.get("overview")
    factors = sections.get("factors")
    if overview is None:
        raise AdapterFailure("mandatory section 'overview' is missing")
    if factors is None:
        raise AdapterFailure("mandatory section 'factors' is missing")

    meta = sections.get("meta") or ReportMeta()
    return {
        "meta": {
            "reportDate": date,
            "weekEnded": meta.week_ended,
            "sourceUrl": source_url,
            "pdfUrl": pdf_url,
            "updatedAt": updated_at,
        },
        "ok": parsed.ok,
        "warnings": list(parsed.warnings),
        "overview": _overview(overview),
        "factors": _factors(factors),
        "summary": _summary(factors),
        "memorandum": _rows(sections.get("memorandum")),
        "loansAndLending": _lending(sections.get("lending")),
        "maturity": _maturity(sections.get("maturity"), sections.get("maturity_buckets")),
        "consolidatedStatement": _consolidated(sections.get("consolidated")),
        "regionalFed": _regional(sections.get("regional")),
        "frNotes": _rows(sections.get("fr_notes")),
        "diagnostics": _diagnostics(parsed) if include_diagnostics else None,
    }


def _direction(delta: Number) -> str:
    if delta > 0:
        return UP
    if delta < 0:
        return DOWN
    return NEUTRAL


def _labeled(report: dict[str, Any]) -> dict[str, list[dict[str, Any]]]:
    statement = report.get("consolidatedStatement") or {}
    factors = report.get("factors") or {}
    lending = report.get("loansAndLending") or {}
    return {
        "supplying": factors.get("supplying") or [],
        "absorbing": factors.get("absorbing") or [],
        "assets": statement.get("assets") or [],
        "liabilities": statement.get("liabilities") or [],
        "capital": statement.get("capital") or [],
        "memorandum": report.get("memorandum") or [],
        "loans": lending.get("loansTable") or [],
        "securitiesLending": lending.get("securitiesLendingTable") or [],
        "frNotes": report.get("frNotes") or [],
    }


def compare_reports(older: dict[str, Any], newer: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Row-by-row changes between two canonical reports.

    Rows are joined on identical labels within the same section; labels
    present in only one report are left out.
    """
    changes = []
    newer_sections = _labeled(newer)
    for section, rows in _labeled(older).items():
        by_label = {row["label"]: row for row in newer_sections[section]}
        for row in rows:
            match = by_label.get(row["label"])
            if match is None or row["value"] is None or match["value"] is None:
                continue
            delta = match["value"] - row["value"]
            changes.append({
                "section": section,
                "label": row["label"],
                "from": row["value"],
                "to": match["value"],
                "delta": delta,
                "deltaPercent": percent(delta, row["value"]),
                "direction": _direction(delta),
            })
    return changes
