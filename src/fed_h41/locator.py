"""
Table location in H.4.1 release pages.

Each logical table has one TableMatcher. A matcher searches the page's main
content for a short heading-like element containing one of its titles, then
takes the nearest table after that heading. When anchors are given, the
candidate must contain a row starting with one of them. Tables split under a
"(continued)" heading are merged into the same section.

A matcher that finds nothing returns a TableSection with found=False and a
reason. Matchers are independent: a drift in one table never affects another.
"""

from dataclasses import dataclass

from bs4 import BeautifulSoup, Comment, Tag

from .models import TableSection
from .text import collapse_whitespace, normalize_label

STRIP_TAGS = ["script", "style", "nav", "footer", "header", "form", "noscript"]

# CSS selectors to try for main content extraction (in priority order)
CONTENT_SELECTORS = [
    "div#article",
    "div#content",
    "div.col-xs-12.col-sm-8",
    "main",
    "article",
    "div#contentwrapper",
]

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "caption", "p", "div", "span", "strong", "b", "th", "td"]
MAX_HEADING_CHARS = 200
CONTINUED_MARKER = "continued"


def _pick_main_node(soup: BeautifulSoup):
    """Try to isolate the primary content block; fall back to <body>."""
    for selector in CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node and node.find("table"):
            return node
    return soup.body or soup


def parse_document(html: str) -> Tag:
    """Parse release HTML and return its main content node, without scripts or navigation."""
    soup = BeautifulSoup(html, "html.parser")
    for comment in soup.find_all(string=lambda t: isinstance(t, Comment)):
        comment.extract()
    for tag in soup.find_all(STRIP_TAGS):
        tag.decompose()
    return _pick_main_node(soup)


def _row_labels(table: Tag) -> list[str]:
    labels = []
    for tr in table.find_all("tr"):
        cell = tr.find(["th", "td"])
        if cell:
            labels.append(normalize_label(cell.get_text(" ", strip=True)))
    return labels


def _table_for_heading(node: Tag) -> Tag | None:
    if node.name in ("caption", "th", "td"):
        enclosing = node.find_parent("table")
        if enclosing:
            return enclosing
    return node.find_next("table")


@dataclass(frozen=True)
class TableMatcher:
    """
    Locates one logical table.

    Attributes:
        name: Section key used throughout the pipeline
        titles: Lower-case title fragments searched in headings
        anchors: Row labels, one of which the table must contain
        mandatory: Whether a missing table makes the parse fail
    """
    name: str
    titles: tuple[str, ...]
    anchors: tuple[str, ...] = ()
    mandatory: bool = False

    @property
    def title(self) -> str:
        return self.titles[0]

    def _headings(self, root: Tag) -> list[tuple[Tag, str]]:
        found = []
        for node in root.find_all(HEADING_TAGS):
            if node.find("table"):
                continue
            text = collapse_whitespace(node.get_text(" ", strip=True))
            if not text or len(text) > MAX_HEADING_CHARS:
                continue
            lower = text.lower()
            if any(t in lower for t in self.titles):
                found.append((node, text))
        return found

    def _verified(self, table: Tag) -> bool:
        if not self.anchors:
            return True
        keys = [normalize_label(a) for a in self.anchors]
        return any(label.startswith(k) for label in _row_labels(table) for k in keys)

    def locate(self, root: Tag) -> TableSection:
        """Find this matcher's table under root."""
        headings = self._headings(root)
        if not headings:
            return TableSection.missing(self.name, self.title, f"table not found: no heading containing '{self.title}'")

        primary = None
        heading_text = None
        for node, text in headings:
            table = _table_for_heading(node)
            if table is not None and self._verified(table):
                primary = table
                heading_text = text
                break
        if primary is None:
            return TableSection.missing(
                self.name,
                self.title,
                f"table not found: heading '{headings[0][1]}' is not followed by a matching table",
            )

        tables = [primary]
        for node, text in headings:
            if CONTINUED_MARKER not in text.lower():
                continue
            table = _table_for_heading(node)
            if table is None or any(table is t for t in tables):
                continue
            tables.append(table)

        return TableSection(
            name=self.name,
            title=self.title,
            found=True,
            fragments=tuple(str(t) for t in tables),
            heading=heading_text,
        )


FACTORS = TableMatcher(
    name="factors",
    titles=("factors affecting reserve balances",),
    anchors=("reserve bank credit", "total factors supplying reserve funds"),
    mandatory=True,
)
MEMORANDUM = TableMatcher(
    name="memorandum",
    titles=("memorandum items",),
    anchors=("securities held in custody", "securities lent to dealers"),
)
MATURITY = TableMatcher(
    name="maturity",
    titles=("maturity distribution",),
    anchors=("u.s. treasury securities", "treasury securities", "mortgage-backed securities"),
)
CONSOLIDATED = TableMatcher(
    name="consolidated",
    titles=("consolidated statement of condition",),
    anchors=("gold certificate account", "total assets"),
)
REGIONAL = TableMatcher(
    name="regional",
    titles=("statement of condition of each federal reserve bank",),
    anchors=("total assets", "gold certificate account"),
)
FR_NOTES = TableMatcher(
    name="fr_notes",
    titles=("collateral held against federal reserve notes",),
    anchors=("federal reserve notes outstanding",),
)

DEFAULT_MATCHERS: tuple[TableMatcher, ...] = (FACTORS, MEMORANDUM, MATURITY, CONSOLIDATED, REGIONAL, FR_NOTES)


def locate_tables(html: str, matchers: tuple[TableMatcher, ...] = DEFAULT_MATCHERS) -> dict[str, TableSection]:
    """
    Locate every table of a release page.

    Args:
        html: Raw release HTML
        matchers: One matcher per logical table

    Returns:
        Mapping of section name to TableSection, found or not.
    """
    root = parse_document(html)
    return {m.name: m.locate(root) for m in matchers}


def locate_table(html: str, matcher: TableMatcher) -> TableSection:
    return matcher.locate(parse_document(html))
