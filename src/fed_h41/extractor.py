"""
Row extraction for located H.4.1 tables.

Rows are read from the table HTML in document order. The first cell holding
text is the label; the remaining cells are parsed as numbers. Column roles
(value, weekly change, yearly change) come from a fixed positional layout per
table, never from header text.

A cell that does not parse is None, never zero. Rows without any numeric
cell are headers and are skipped.
"""

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from .dates import normalize_date
from .models import (
    ROW_SKIPPED,
    STRUCTURAL_DRIFT,
    ConsolidatedStatement,
    Diagnostic,
    LendingTables,
    LineItem,
    MaturityBucket,
    MaturityRow,
    Number,
    RawRow,
    RegionalRow,
    RegionalTable,
    ReportMeta,
    TableSection,
    Totals,
)
from .text import clean_label, collapse_whitespace, normalize_label

NUMBER_RE = re.compile(r"^[+-]?\d+(?:\.\d+)?$")
NOT_REPORTED = {"", "-", "--", "—", "–", "...", "…", "n.a.", "na", "n/a", "(x)", "*"}
LETTER_RE = re.compile(r"[A-Za-z]")

RELEASE_DATE_RE = re.compile(r"Release Date:\s*([A-Z][a-z]+\.?\s+\d{1,2},\s*\d{4})")
WEEK_ENDED_RE = re.compile(r"Week ended\s+([A-Z][a-z]+\.?\s+\d{1,2},\s*\d{4})", re.I)

EXPECTED_SUPPLYING = 13
EXPECTED_ABSORBING = 4


def parse_number(text: str | None) -> Number | None:
    """
    Parse a table cell into a number.

    Handles thousands separators, non-breaking and inner spaces ("+ 5,220"),
    the Unicode minus sign, and parenthesized negatives ("(1,234)").

    Returns:
        int or float, or None when the cell is blank or not numeric.
    """
    if text is None:
        return None
    raw = collapse_whitespace(text).replace("−", "-")
    if raw.lower() in NOT_REPORTED:
        return None

    negative = False
    if raw.startswith("(") and raw.endswith(")"):
        negative = True
        raw = raw[1:-1]

    raw = raw.replace(",", "").replace(" ", "")
    if not NUMBER_RE.match(raw):
        return None

    value: Number = float(raw) if "." in raw else int(raw)
    return -value if negative else value


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------

def _cell_texts(tr) -> list[str]:
    return [collapse_whitespace(c.get_text(" ", strip=True)) for c in tr.find_all(["th", "td"])]


def _split_row(texts: list[str]) -> RawRow | None:
    for i, text in enumerate(texts):
        if LETTER_RE.search(text) and parse_number(text) is None:
            label = clean_label(text)
            if label:
                return RawRow(label=label, cells=tuple(parse_number(t) for t in texts[i + 1:]))
            return None
    return None


def _table_rows(table):
    for tr in table.find_all("tr"):
        row = _split_row(_cell_texts(tr))
        if row is not None:
            yield row


def iter_rows(section: TableSection):
    """Yield every labeled row of a section, header rows included."""
    for fragment in section.fragments:
        yield from _table_rows(BeautifulSoup(fragment, "html.parser"))


def extract_rows(section: TableSection) -> list[RawRow]:
    """Ordered data rows of a section; empty when the section was not found."""
    if not section.found:
        return []
    return [row for row in iter_rows(section) if row.has_numbers()]


@dataclass(frozen=True)
class RowLayout:
    """Positions of the column roles among a row's numeric cells."""
    value_col: int = 0
    weekly_col: int | None = 1
    yearly_col: int | None = 2


FULL_LAYOUT = RowLayout()
VALUE_ONLY_LAYOUT = RowLayout(weekly_col=None, yearly_col=None)


def _cell(row: RawRow, col: int | None) -> Number | None:
    if col is None or col >= len(row.cells):
        return None
    return row.cells[col]


def to_line_item(row: RawRow, layout: RowLayout = FULL_LAYOUT, label: str | None = None) -> LineItem | None:
    """Apply a layout to a row. None when the value cell is missing or not numeric."""
    value = _cell(row, layout.value_col)
    if value is None:
        return None
    return LineItem(
        label=label or row.label,
        value=value,
        weekly_change=_cell(row, layout.weekly_col),
        yearly_change=_cell(row, layout.yearly_col),
    )


def extract_line_items(section: TableSection, layout: RowLayout = FULL_LAYOUT) -> tuple[LineItem, ...]:
    items = (to_line_item(row, layout) for row in extract_rows(section))
    return tuple(item for item in items if item is not None)


# ---------------------------------------------------------------------------
# Table 1: factors affecting reserve balances
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LabelRule:
    """
    Canonical row matcher.

    A row matches when its normalized label equals one of the phrases or
    starts with one followed by more words, and contains none of excludes.
    """
    key: str
    label: str
    phrases: tuple[str, ...]
    excludes: tuple[str, ...] = ()

    def matches(self, label: str) -> bool:
        key = normalize_label(label)
        if any(normalize_label(e) in key for e in self.excludes):
            return False
        for phrase in self.phrases:
            p = normalize_label(phrase)
            if key == p or key.startswith(p + " "):
                return True
        return False


SUPPLYING_RULES: tuple[LabelRule, ...] = (
    LabelRule("reserve_bank_credit", "Reserve Bank credit", ("Reserve Bank credit",)),
    LabelRule("securities_held_outright", "Securities held outright", ("Securities held outright",)),
    LabelRule("treasury_securities", "U.S. Treasury securities", ("U.S. Treasury securities", "Treasury securities")),
    LabelRule("bills", "Bills", ("Bills",)),
    LabelRule("notes_bonds_nominal", "Notes and bonds, nominal", ("Notes and bonds, nominal",)),
    LabelRule(
        "notes_bonds_inflation_indexed",
        "Notes and bonds, inflation-indexed",
        ("Notes and bonds, inflation-indexed",),
    ),
    LabelRule("mortgage_backed_securities", "Mortgage-backed securities", ("Mortgage-backed securities",)),
    LabelRule("repurchase_agreements", "Repurchase agreements", ("Repurchase agreements",), excludes=("reverse",)),
    LabelRule("loans", "Loans", ("Loans",)),
    LabelRule("btfp", "Bank Term Funding Program", ("Bank Term Funding Program",)),
    LabelRule("liquidity_swaps", "Central bank liquidity swaps", ("Central bank liquidity swaps",)),
    LabelRule("gold_stock", "Gold stock", ("Gold stock",)),
    LabelRule(
        "sdr_certificate_account",
        "Special drawing rights certificate account",
        ("Special drawing rights certificate account",),
    ),
)

ABSORBING_RULES: tuple[LabelRule, ...] = (
    LabelRule("currency_in_circulation", "Currency in circulation", ("Currency in circulation",)),
    LabelRule(
        "reverse_repurchase_agreements",
        "Reverse repurchase agreements",
        ("Reverse repurchase agreements",),
        excludes=("foreign official", "with foreign", "with others"),
    ),
    LabelRule(
        "deposits_other_than_reserves",
        "Deposits with F.R. Banks, other than reserve balances",
        ("Deposits with F.R. Banks, other than reserve balances",),
    ),
    LabelRule(
        "treasury_general_account",
        "U.S. Treasury, General Account",
        ("U.S. Treasury, General Account", "Treasury General Account"),
    ),
)

TOTAL_SUPPLYING = LabelRule(
    "total_supplying", "Total factors supplying reserve funds", ("Total factors supplying reserve funds",)
)
TOTAL_ABSORBING = LabelRule(
    "total_absorbing_ex_reserves",
    "Total factors, other than reserve balances, absorbing reserve funds",
    ("Total factors, other than reserve balances, absorbing reserve funds",),
)
RESERVE_BALANCES = LabelRule(
    "reserve_balances",
    "Reserve balances with Federal Reserve Banks",
    ("Reserve balances with Federal Reserve Banks",),
)
TOTAL_RULES = (TOTAL_SUPPLYING, TOTAL_ABSORBING, RESERVE_BALANCES)


@dataclass(frozen=True)
class FactorsExtraction:
    supplying: tuple[LineItem, ...]
    absorbing: tuple[LineItem, ...]
    totals: Totals
    diagnostics: tuple[Diagnostic, ...] = ()


def _collect(
    rows: list[RawRow],
    rules: tuple[LabelRule, ...],
    section: str,
    diagnostics: list[Diagnostic],
) -> dict[str, LineItem]:
    """First match per rule; a later non-zero match replaces a zero one."""
    matched: dict[str, LineItem] = {}
    for row in rows:
        rule = next((r for r in rules if r.matches(row.label)), None)
        if rule is None:
            continue
        item = to_line_item(row, FULL_LAYOUT, label=rule.label)
        if item is None:
            diagnostics.append(Diagnostic(ROW_SKIPPED, section, f"'{row.label}' has no numeric value"))
            continue
        current = matched.get(rule.key)
        if current is None or (current.value == 0 and item.value != 0):
            matched[rule.key] = item
    return matched


def _check_count(
    group: str,
    rules: tuple[LabelRule, ...],
    matched: dict[str, LineItem],
    expected: int,
    diagnostics: list[Diagnostic],
) -> None:
    if len(matched) == expected:
        return
    missing = [r.label for r in rules if r.key not in matched]
    diagnostics.append(Diagnostic(
        STRUCTURAL_DRIFT,
        "factors",
        f"expected {expected} {group} items, found {len(matched)} (missing: {', '.join(missing)})",
        fatal=True,
    ))


def extract_factors(section: TableSection) -> FactorsExtraction:
    """
    Split Table 1 into supplying items, absorbing items and totals.

    Supplying items are taken from rows before the total-supplying row and
    absorbing items from rows between it and the total-absorbing row. Totals
    are matched anywhere in the table, independently of the items.
    """
    diagnostics: list[Diagnostic] = []
    rows = extract_rows(section)
    if not rows:
        diagnostics.append(Diagnostic(STRUCTURAL_DRIFT, "factors", "no data rows in factors table", fatal=True))
        return FactorsExtraction((), (), Totals(), tuple(diagnostics))

    total_rows: dict[str, tuple[int, RawRow]] = {}
    for i, row in enumerate(rows):
        for rule in TOTAL_RULES:
            if rule.key not in total_rows and rule.matches(row.label):
                total_rows[rule.key] = (i, row)

    supplying_end = total_rows.get(TOTAL_SUPPLYING.key, (len(rows), None))[0]
    absorbing_end = total_rows.get(TOTAL_ABSORBING.key, (len(rows), None))[0]
    supplying_rows = rows[:supplying_end]
    absorbing_rows = rows[supplying_end + 1:absorbing_end] if supplying_end < len(rows) else []

    supplying = _collect(supplying_rows, SUPPLYING_RULES, "factors", diagnostics)
    absorbing = _collect(absorbing_rows, ABSORBING_RULES, "factors", diagnostics)
    _check_count("supplying", SUPPLYING_RULES, supplying, EXPECTED_SUPPLYING, diagnostics)
    _check_count("absorbing", ABSORBING_RULES, absorbing, EXPECTED_ABSORBING, diagnostics)

    totals: dict[str, LineItem | None] = {}
    for rule in TOTAL_RULES:
        found = total_rows.get(rule.key)
        item = to_line_item(found[1], FULL_LAYOUT, label=rule.label) if found else None
        if item is None:
            diagnostics.append(Diagnostic(
                STRUCTURAL_DRIFT, "factors", f"total row not found: '{rule.label}'", fatal=True
            ))
        totals[rule.key] = item

    return FactorsExtraction(
        supplying=tuple(supplying[r.key] for r in SUPPLYING_RULES if r.key in supplying),
        absorbing=tuple(absorbing[r.key] for r in ABSORBING_RULES if r.key in absorbing),
        totals=Totals(
            total_supplying=totals[TOTAL_SUPPLYING.key],
            total_absorbing_ex_reserves=totals[TOTAL_ABSORBING.key],
            reserve_balances=totals[RESERVE_BALANCES.key],
        ),
        diagnostics=tuple(diagnostics),
    )


# ---------------------------------------------------------------------------
# Optional tables
# ---------------------------------------------------------------------------

def extract_consolidated(section: TableSection) -> ConsolidatedStatement:
    """Table 5: assets up to Total assets, liabilities up to Total liabilities, then capital."""
    assets: list[LineItem] = []
    liabilities: list[LineItem] = []
    capital: list[LineItem] = []
    total_assets = None
    total_liabilities = None
    current = assets

    for row in extract_rows(section):
        item = to_line_item(row)
        if item is None:
            continue
        key = normalize_label(row.label)
        if key == "total assets" and total_assets is None:
            total_assets = item
            current = liabilities
        elif key == "total liabilities" and total_liabilities is None:
            total_liabilities = item
            current = capital
        else:
            current.append(item)

    return ConsolidatedStatement(
        assets=tuple(assets),
        liabilities=tuple(liabilities),
        capital=tuple(capital),
        total_assets=total_assets,
        total_liabilities=total_liabilities,
    )


MATURITY_BUCKETS = (
    "Within 15 days",
    "16 days to 90 days",
    "91 days to 1 year",
    "Over 1 year to 5 years",
    "Over 5 years to 10 years",
    "Over 10 years",
)
MATURITY_SUBROWS = {"holdings", "weekly changes"}
HOLDINGS = "holdings"
_BUCKET_KEYS = {normalize_label(b) for b in MATURITY_BUCKETS}


def extract_maturity(section: TableSection) -> tuple[MaturityRow, ...]:
    """
    Table 2: six maturity buckets followed by the total.

    Holdings / weekly-changes sub-rows are prefixed with the group label of
    the header row above them. The group carries over into a continued
    fragment, whose repeated column header is skipped.
    """
    if not section.found:
        return ()
    width = len(MATURITY_BUCKETS)
    rows: list[MaturityRow] = []
    group = None
    for row in iter_rows(section):
        if not row.has_numbers():
            if normalize_label(row.label) not in _BUCKET_KEYS:
                group = row.label
            continue
        if len(row.cells) < width + 1:
            continue
        label = row.label
        if group and normalize_label(label) in MATURITY_SUBROWS:
            label = f"{group}: {label}"
        rows.append(MaturityRow(label=label, buckets=tuple(row.cells[:width]), total=row.cells[width]))
    return tuple(rows)


def summarize_maturity(rows: tuple[MaturityRow, ...]) -> tuple[MaturityBucket, ...]:
    """Holdings per maturity range, summed over the Holdings rows of every security group."""
    holdings = [r for r in rows if normalize_label(r.label.rsplit(":", 1)[-1]) == HOLDINGS]
    buckets = []
    for i, name in enumerate(MATURITY_BUCKETS):
        reported = [r.buckets[i] for r in holdings if r.buckets[i] is not None]
        if reported:
            buckets.append(MaturityBucket(range=name, value=sum(reported)))
    return tuple(buckets)


def _fragment_header(table) -> tuple[str, ...] | None:
    """Column names from the first header row of one table fragment."""
    for tr in table.find_all("tr"):
        texts = _cell_texts(tr)
        names = [t for t in texts[1:] if t]
        if any(parse_number(t) is not None for t in names):
            return None
        if len(names) >= 2:
            return tuple(clean_label(t) for t in names)
    return None


def extract_regional(section: TableSection, diagnostics: list[Diagnostic] | None = None) -> RegionalTable:
    """
    Table 6: one value per Reserve Bank for each row.

    Releases split this table by columns, each fragment carrying the row
    labels and a subset of the banks. Every fragment is read against its own
    header and rows are merged by label; the n-th occurrence of a label in one
    fragment joins the n-th occurrence in the others. A fragment whose header
    cannot be read, or does not match its row width, is left out and reported.

    Args:
        section: Located regional table
        diagnostics: Receives a non-fatal diagnostic per fragment left out

    Returns:
        RegionalTable with columns in order of first appearance.
    """
    if not section.found:
        return RegionalTable()

    columns: list[str] = []
    labels: dict[tuple[str, int], str] = {}
    merged: dict[tuple[str, int], dict[str, Number | None]] = {}
    for index, fragment in enumerate(section.fragments, start=1):
        table = BeautifulSoup(fragment, "html.parser")
        rows = [row for row in _table_rows(table) if row.has_numbers()]
        if not rows:
            continue
        header = _fragment_header(table)
        width = max(len(r.cells) for r in rows)
        if header is None or len(header) != width:
            found = "no header row" if header is None else f"{len(header)} names for {width} value columns"
            if diagnostics is not None:
                diagnostics.append(Diagnostic(
                    STRUCTURAL_DRIFT,
                    "regional",
                    f"fragment {index} left out: column header unreadable ({found})",
                ))
            continue

        columns.extend(name for name in header if name not in columns)
        seen: dict[str, int] = {}
        for row in rows:
            name = normalize_label(row.label)
            key = (name, seen.get(name, 0))
            seen[name] = key[1] + 1
            labels.setdefault(key, row.label)
            values = merged.setdefault(key, {})
            for column, value in zip(header, row.cells):
                values.setdefault(column, value)

    return RegionalTable(
        columns=tuple(columns),
        rows=tuple(
            RegionalRow(label=labels[key], values=tuple(values.get(c) for c in columns))
            for key, values in merged.items()
        ),
    )


# ---------------------------------------------------------------------------
# Loans and securities lending
# ---------------------------------------------------------------------------

LOAN_RULES: tuple[LabelRule, ...] = (
    LabelRule("primary_credit", "Primary credit", ("Primary credit",)),
    LabelRule("btfp", "Bank Term Funding Program", ("Bank Term Funding Program",)),
    LabelRule("loans", "Loans", ("Loans",)),
)
SECURITIES_LENDING_RULES: tuple[LabelRule, ...] = (
    LabelRule("overnight", "Overnight facility", ("Overnight facility",)),
    LabelRule("term", "Term facility", ("Term facility",)),
    LabelRule("securities_lent", "Securities lent to dealers", ("Securities lent to dealers",)),
)


def extract_lending(
    factors: TableSection,
    memorandum: TableSection,
    diagnostics: list[Diagnostic] | None = None,
) -> LendingTables:
    """
    Loans from Table 1 and securities lending from Table 1A.

    Rows keep the order of LOAN_RULES and SECURITIES_LENDING_RULES; the
    reported "Loans" and "Securities lent to dealers" rows are the totals.
    """
    diagnostics = diagnostics if diagnostics is not None else []
    loans = _collect(extract_rows(factors), LOAN_RULES, "lending", diagnostics)
    lent = _collect(extract_rows(memorandum), SECURITIES_LENDING_RULES, "lending", diagnostics)
    return LendingTables(
        loans=tuple(loans[r.key] for r in LOAN_RULES if r.key in loans),
        securities_lending=tuple(lent[r.key] for r in SECURITIES_LENDING_RULES if r.key in lent),
    )


def extract_meta(html: str) -> ReportMeta:
    """Release date and week-ended date from the page text."""
    text = collapse_whitespace(BeautifulSoup(html, "html.parser").get_text(" "))
    release = RELEASE_DATE_RE.search(text)
    week = WEEK_ENDED_RE.search(text)
    return ReportMeta(
        release_date=normalize_date(release.group(1)) if release else None,
        week_ended=normalize_date(week.group(1)) if week else None,
    )
