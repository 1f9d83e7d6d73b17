"""
Data records passed between pipeline stages.

Every stage consumes its input and returns new frozen values; nothing here is
mutated after construction.
"""

from dataclasses import dataclass, field
from typing import Any

Number = int | float

# Diagnostic kinds
TABLE_NOT_FOUND = "TableNotFound"
STRUCTURAL_DRIFT = "StructuralDriftFailure"
RECONCILIATION = "ReconciliationFailure"
ROW_SKIPPED = "RowSkipped"


@dataclass(frozen=True)
class ReleaseLink:
    """One entry of the release discovery source."""
    date: str
    url: str
    pdf_url: str | None = None


@dataclass(frozen=True)
class RawDocument:
    """Fetched release HTML and the release date it answers for."""
    html: str
    url: str
    release_date: str
    fetched_at: str | None = None


@dataclass(frozen=True)
class TableSection:
    """
    A located table, or the reason it could not be located.

    fragments holds the HTML of each <table> element belonging to the
    section; a table split under a "(continued)" heading has more than one.
    """
    name: str
    title: str
    found: bool
    fragments: tuple[str, ...] = ()
    heading: str | None = None
    reason: str | None = None

    @classmethod
    def missing(cls, name: str, title: str, reason: str) -> "TableSection":
        return cls(name=name, title=title, found=False, reason=reason)


@dataclass(frozen=True)
class RawRow:
    label: str
    cells: tuple[Number | None, ...]

    def has_numbers(self) -> bool:
        return any(c is not None for c in self.cells)


@dataclass(frozen=True)
class LineItem:
    """
    One extracted row. weekly_change and yearly_change are None when the
    source did not report them, which is not the same as zero.
    """
    label: str
    value: Number
    weekly_change: Number | None = None
    yearly_change: Number | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "value": self.value,
            "weeklyChange": self.weekly_change,
            "yearlyChange": self.yearly_change,
        }


@dataclass(frozen=True)
class Totals:
    """Officially labeled summary rows of Table 1."""
    total_supplying: LineItem | None = None
    total_absorbing_ex_reserves: LineItem | None = None
    reserve_balances: LineItem | None = None


@dataclass(frozen=True)
class Integrity:
    ok: bool
    calculated_reserve_balances: Number | None = None
    reported_reserve_balances: Number | None = None
    delta: Number | None = None
    failures: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "calculatedReserveBalances": self.calculated_reserve_balances,
            "reportedReserveBalances": self.reported_reserve_balances,
            "delta": self.delta,
            "failures": list(self.failures),
        }


@dataclass(frozen=True)
class FactorsTable:
    """Table 1 split into supplying and absorbing groups plus its totals."""
    supplying: tuple[LineItem, ...]
    absorbing: tuple[LineItem, ...]
    totals: Totals
    integrity: Integrity
    release_date: str | None = None
    week_ended: str | None = None


@dataclass(frozen=True)
class ReportMeta:
    release_date: str | None = None
    week_ended: str | None = None


@dataclass(frozen=True)
class Overview:
    """Headline figures drawn from Tables 1 and 5."""
    total_assets: LineItem | None = None
    securities_held: LineItem | None = None
    reserves: LineItem | None = None
    tga: LineItem | None = None
    rrp: LineItem | None = None
    currency: LineItem | None = None
    treasury: LineItem | None = None
    mbs: LineItem | None = None


@dataclass(frozen=True)
class MaturityRow:
    """Holdings of one security type split by remaining maturity."""
    label: str
    buckets: tuple[Number | None, ...]
    total: Number | None


@dataclass(frozen=True)
class MaturityBucket:
    """Securities holdings in one maturity range, summed over security types."""
    range: str
    value: Number


@dataclass(frozen=True)
class LendingTables:
    """
    Loans drawn from Table 1 and securities lending from the memorandum table.

    Rows a release does not carry are absent rather than zero.
    """
    loans: tuple[LineItem, ...] = ()
    securities_lending: tuple[LineItem, ...] = ()


@dataclass(frozen=True)
class ConsolidatedStatement:
    assets: tuple[LineItem, ...] = ()
    liabilities: tuple[LineItem, ...] = ()
    capital: tuple[LineItem, ...] = ()
    total_assets: LineItem | None = None
    total_liabilities: LineItem | None = None


@dataclass(frozen=True)
class RegionalRow:
    label: str
    values: tuple[Number | None, ...]


@dataclass(frozen=True)
class RegionalTable:
    """Statement of condition of each Reserve Bank (Table 6)."""
    columns: tuple[str, ...] = ()
    rows: tuple[RegionalRow, ...] = ()


@dataclass(frozen=True)
class Diagnostic:
    """A typed parse finding. Fatal diagnostics make the parse result not ok."""
    kind: str
    section: str
    message: str
    fatal: bool = False

    def __str__(self) -> str:
        return f"{self.kind} [{self.section}]: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "section": self.section,
            "message": self.message,
            "fatal": self.fatal,
        }


@dataclass(frozen=True)
class ParseResult:
    """
    Outcome of parsing one release.

    Callers must not cache a result that is not ok or that carries warnings,
    and must surface warnings verbatim.
    """
    ok: bool
    sections: dict[str, Any] = field(default_factory=dict)
    diagnostics: tuple[Diagnostic, ...] = ()
    release_date: str | None = None
    source_url: str | None = None
    located: dict[str, TableSection] = field(default_factory=dict)

    @property
    def warnings(self) -> tuple[str, ...]:
        return tuple(str(d) for d in self.diagnostics)

    @property
    def cacheable(self) -> bool:
        return self.ok and not self.diagnostics

    def diagnostics_of(self, kind: str) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]
