"""Pytest configuration for fed_h41 tests.

This module provides:
- A builder for synthetic H.4.1 release pages (valid, drifted, recased,
  zero totals, tables omitted or split under a "(continued)" heading)
- A fake requests session serving canned pages by URL
"""

from collections.abc import Callable

import pytest
import requests

from fed_h41.config import Config

BASE = "https://www.federalreserve.gov/releases/h41/"

TABLE1_HEADER = (
    "",
    "Week ended Jan 7, 2026",
    "Change from week ended Dec 31, 2025",
    "Change from week ended Jan 8, 2025",
)

SUPPLYING_ROWS = [
    ("Reserve Bank credit", "6,581,447", "+ 5,220", "- 1,021,338"),
    ("Securities held outright(1)", "6,236,410", "- 4,254", "- 1,010,112"),
    ("U.S. Treasury securities", "4,191,222", "- 801", "- 215,660"),
    ("Bills(2)", "195,537", "0", "- 2,110"),
    ("Notes and bonds, nominal(2)", "3,711,930", "- 801", "- 190,344"),
    ("Notes and bonds, inflation-indexed(2)", "283,755", "0", "- 23,206"),
    ("Inflation compensation(3)", "98,120", "+ 45", "+ 1,220"),
    ("Federal agency debt securities(2)", "2,347", "0", "0"),
    ("Mortgage-backed securities(4)", "2,045,188", "- 3,453", "- 794,452"),
    ("Repurchase agreements(5)", "1,002", "+ 1,002", "+ 1,002"),
    ("Foreign official", "0", "0", "0"),
    ("Others", "1,002", "+ 1,002", "+ 1,002"),
    ("Loans", "8,463", "(1,234)", "- 5,001"),
    ("Primary credit", "2,110", "+ 15", "- 1,001"),
    ("Bank Term Funding Program", "0", "0", "- 160,981"),
    ("Float", "- 212", "+ 31", "+ 48"),
    ("Central bank liquidity swaps(6)", "152", "+ 2", "- 12"),
    ("Other Federal Reserve assets(7)", "35,014", "+ 890", "- 2,210"),
    ("Foreign currency denominated assets(8)", "18,341", "+ 211", "+ 1,002"),
    ("Gold stock", "11,041", "0", "0"),
    ("Special drawing rights certificate account", "10,200", "0", "0"),
    ("Treasury currency outstanding(9)", "53,210", "+ 14", "+ 402"),
    ("Total factors supplying reserve funds", "23,276,347", "+ 5,234", "- 1,020,936"),
]

ABSORBING_ROWS = [
    ("Currency in circulation(9)", "2,412,031", "+ 2,114", "+ 40,020"),
    ("Reverse repurchase agreements(10)", "372,118", "+ 12,004", "- 98,210"),
    ("Foreign official and international accounts", "351,220", "+ 4", "- 40,118"),
    ("Others", "20,898", "+ 12,000", "- 58,092"),
    ("Treasury cash holdings", "312", "+ 3", "- 88"),
    ("Deposits with F.R. Banks, other than reserve balances", "1,002,417", "- 9,100", "+ 98,110"),
    ("U.S. Treasury, General Account", "837,540", "- 11,310", "+ 70,002"),
    ("Foreign official", "9,712", "0", "- 11"),
    ("Other(11)", "155,165", "+ 2,210", "+ 28,119"),
    ("Other liabilities and capital(12)", "220,004", "+ 102", "+ 1,331"),
    ("Total factors, other than reserve balances, absorbing reserve funds", "4,624,106", "+ 5,120", "- 12,011"),
    ("Reserve balances with Federal Reserve Banks", "18,652,241", "+ 114", "- 1,008,925"),
]

MEMORANDUM_ROWS = [
    ("Securities held in custody for foreign official and international accounts", "2,955,102", "- 3,110", "- 21,350"),
    ("Marketable U.S. Treasury securities(1)", "2,694,507", "- 2,998", "+ 12,771"),
    ("Securities lent to dealers", "31,402", "+ 1,500", "- 4,122"),
    ("Overnight facility(2)", "31,402", "+ 1,500", "- 4,122"),
    ("Term facility", "0", "0", "0"),
]

MATURITY_HEADER = (
    "",
    "Within 15 days",
    "16 days to 90 days",
    "91 days to 1 year",
    "Over 1 year to 5 years",
    "Over 5 years to 10 years",
    "Over 10 years",
    "All",
)
MATURITY_ROWS = [
    ("Loans", "8,100", "300", "63", "0", "0", "0", "8,463"),
    ("U.S. Treasury securities(1)",),
    ("Holdings", "95,120", "310,442", "512,004", "1,502,338", "720,101", "1,051,217", "4,191,222"),
    ("Weekly changes", "+ 1,002", "- 2,310", "0", "+ 516", "- 12", "+ 3", "- 801"),
    ("Mortgage-backed securities(2)",),
    ("Holdings", "0", "12", "1,415", "25,330", "110,900", "1,907,531", "2,045,188"),
    ("Weekly changes", "0", "0", "- 2", "- 31", "- 120", "- 4,101", "- 4,254"),
]

CONSOLIDATED_HEADER = (
    "Assets, liabilities, and capital",
    "Wednesday Jan 7, 2026",
    "Change since Wednesday Dec 31, 2025",
    "Change since Wednesday Jan 8, 2025",
)
CONSOLIDATED_ROWS = [
    ("Assets",),
    ("Gold certificate account", "11,037", "0", "0"),
    ("Special drawing rights certificate account", "10,200", "0", "0"),
    ("Coin", "1,121", "- 8", "- 95"),
    ("Securities, unamortized premiums and discounts, repurchase agreements, and loans", "6,560,117", "+ 4,010", "- 591,232"),
    ("Other assets", "42,882", "+ 1,500", "+ 2,001"),
    ("Total assets", "6,625,357", "+ 5,502", "- 589,326"),
    ("Liabilities",),
    ("Federal Reserve notes, net of F.R. Bank holdings", "2,368,540", "+ 2,114", "+ 40,020"),
    ("Reverse repurchase agreements", "372,118", "+ 12,004", "- 98,210"),
    ("Deposits", "3,834,213", "- 9,100", "- 410,555"),
    ("Other liabilities and accrued dividends", "6,400", "+ 20", "- 1,000"),
    ("Total liabilities", "6,581,271", "+ 5,038", "- 469,745"),
    ("Capital",),
    ("Capital paid in", "37,252", "+ 3", "+ 1,200"),
    ("Surplus", "6,834", "0", "0"),
    ("Total capital", "44,086", "+ 3", "+ 1,200"),
]

REGIONAL_HEADER = (
    "",
    "Total",
    "Boston",
    "New York",
    "Philadelphia",
    "Cleveland",
    "Richmond",
    "Atlanta",
    "Chicago",
    "St. Louis",
    "Minneapolis",
    "Kansas City",
    "Dallas",
    "San Francisco",
)
REGIONAL_ROWS = [
    ("Gold certificate account", "11,037", "408", "3,781", "402", "553", "826", "1,397",
     "1,044", "314", "189", "279", "975", "869"),
    ("Total assets", "6,625,357", "201,442", "2,990,125", "190,331", "280,117", "470,002", "490,550",
     "410,880", "160,223", "110,440", "170,031", "410,992", "740,224"),
]

FR_NOTES_HEADER = ("Federal Reserve Agents' accounts", "Wednesday Jan 7, 2026")
FR_NOTES_ROWS = [
    ("Federal Reserve notes outstanding", "2,810,331"),
    ("Less: Notes held by F.R. Banks not subject to collateralization", "441,791"),
    ("Federal Reserve notes to be collateralized", "2,368,540"),
    ("Collateral held against Federal Reserve notes", "2,368,540"),
    ("Gold certificate account", "11,037"),
    ("Special drawing rights certificate account", "5,200"),
    ("U.S. Treasury, agency debt, and mortgage-backed securities pledged(1)", "2,352,303"),
]


def _table(header: tuple, rows: list[tuple]) -> str:
    head = "<tr>" + "".join(f"<th>{h}</th>" for h in header) + "</tr>"
    body = "".join("<tr>" + "".join(f"<td>{c}</td>" for c in row) + "</tr>" for row in rows)
    return f'<table class="statistics">{head}{body}</table>'


REGIONAL_SPLIT = 7


def _split_table(name: str, title: str, header: tuple, rows: list[tuple]) -> list[str]:
    """Render a table as two fragments, the second under a "(continued)" heading."""
    if name == "regional":
        cut = REGIONAL_SPLIT + 1
        first = _table(header[:cut], [row[:cut] for row in rows])
        second = _table((header[0], *header[cut:]), [(row[0], *row[cut:]) for row in rows])
    else:
        cut = len(rows) // 2
        first = _table(header, rows[:cut])
        second = _table(header, rows[cut:])
    return [f"<h4>{title}</h4>", first, f"<h4>{title} (continued)</h4>", second]


def _apply(rows: list[tuple], drop: set[str], replace: dict[str, tuple], label_case: Callable[[str], str] | None) -> list[tuple]:
    out = []
    for row in rows:
        label = row[0]
        if label in drop:
            continue
        if label in replace:
            row = (label, *replace[label])
        if label_case:
            row = (label_case(row[0]), *row[1:])
        out.append(row)
    return out


def build_release_html(
    drop: set[str] | None = None,
    replace: dict[str, tuple] | None = None,
    omit: set[str] | None = None,
    label_case: Callable[[str], str] | None = None,
    split_factors: bool = True,
    split: set[str] | None = None,
) -> str:
    """
    Render a release page; drop/replace act on Table 1 rows by their original label.

    Optional tables named in split are rendered as two fragments. Regional is
    split by columns (Total through Atlanta, then Chicago onward), the others
    by rows.
    """
    drop = drop or set()
    replace = replace or {}
    omit = omit or set()
    split = split or set()
    supplying = _apply(SUPPLYING_ROWS, drop, replace, label_case)
    absorbing = _apply(ABSORBING_ROWS, drop, replace, label_case)

    parts = [
        "<h2>H.4.1 Factors Affecting Reserve Balances</h2>",
        "<p>Release Date: January 8, 2026</p>",
        "<h4>1. Factors Affecting Reserve Balances of Depository Institutions</h4>",
    ]
    if split_factors:
        parts.append(_table(TABLE1_HEADER, supplying))
        parts.append("<h4>1. Factors Affecting Reserve Balances of Depository Institutions (continued)</h4>")
        parts.append(_table(TABLE1_HEADER, absorbing))
    else:
        parts.append(_table(TABLE1_HEADER, supplying + absorbing))

    optional = {
        "memorandum": ("1A. Memorandum Items", TABLE1_HEADER, MEMORANDUM_ROWS),
        "maturity": (
            "2. Maturity Distribution of Securities, Loans, and Selected Other Assets and Liabilities, January 7, 2026",
            MATURITY_HEADER,
            MATURITY_ROWS,
        ),
        "consolidated": (
            "5. Consolidated Statement of Condition of All Federal Reserve Banks",
            CONSOLIDATED_HEADER,
            CONSOLIDATED_ROWS,
        ),
        "regional": (
            "6. Statement of Condition of Each Federal Reserve Bank, January 7, 2026",
            REGIONAL_HEADER,
            REGIONAL_ROWS,
        ),
        "fr_notes": (
            "7. Collateral Held against Federal Reserve Notes: Federal Reserve Agents' Accounts",
            FR_NOTES_HEADER,
            FR_NOTES_ROWS,
        ),
    }
    for name, (title, header, rows) in optional.items():
        if name in omit:
            continue
        if name in split:
            parts.extend(_split_table(name, title, header, rows))
            continue
        parts.append(f"<h4>{title}</h4>")
        parts.append(_table(header, rows))

    return (
        "<!DOCTYPE html><html><head><title>FRB: H.4.1 Release</title>"
        "<script>var title = 'Factors Affecting Reserve Balances';</script></head><body>"
        '<nav><a href="/releases/h41/">H.4.1</a></nav>'
        '<div id="content">' + "".join(parts) + "</div>"
        "<footer>Board of Governors of the Federal Reserve System</footer>"
        "</body></html>"
    )


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, text: str = "", status_code: int = 200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Serves canned responses by URL; unknown URLs answer 404."""

    def __init__(self, pages: dict[str, FakeResponse | Exception] | None = None):
        self.pages = pages or {}
        self.headers: dict[str, str] = {}
        self.calls: list[tuple[str, float | None]] = []

    def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        self.calls.append((url, timeout))
        page = self.pages.get(url)
        if page is None:
            return FakeResponse("Not found", 404)
        if isinstance(page, Exception):
            raise page
        return page

    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]


def feed_text(*stamps: str) -> str:
    items = "".join(
        f'<item><link>https://www.federalreserve.gov/releases/h41/{s}/</link></item>' for s in stamps
    )
    return f"<rss><channel>{items}</channel></rss>"


@pytest.fixture
def config() -> Config:
    """Default configuration."""
    return Config()


@pytest.fixture
def release_html() -> str:
    """A valid release page with every table present."""
    return build_release_html()


@pytest.fixture
def make_release_html() -> Callable[..., str]:
    """Builder for release page variants."""
    return build_release_html


@pytest.fixture
def make_session() -> Callable[..., FakeSession]:
    """Builder for fake sessions."""
    return FakeSession


@pytest.fixture
def make_response() -> Callable[..., FakeResponse]:
    return FakeResponse


@pytest.fixture
def make_feed() -> Callable[..., str]:
    return feed_text
