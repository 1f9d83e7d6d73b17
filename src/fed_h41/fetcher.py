"""
H.4.1 release discovery and download.

Discovers published release dates from the Fed's H.4.1 feed, falling back to
the release index page, and fetches the HTML of one release with a fixed
retry order. Nothing is written to disk here.
"""

import logging
import re
from datetime import datetime, timezone
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from .config import FetchConfig
from .dates import iso_from_yyyymmdd, yyyymmdd_from_iso
from .errors import FetchFailure
from .models import RawDocument, ReleaseLink

logger = logging.getLogger(__name__)

FEED_LINK_RE = re.compile(r"/releases/h41/(\d{8})/", re.I)
INDEX_LINK_RE = re.compile(r"(?:^|/)(\d{8})/(?:default\.htm)?$", re.I)

RELEASE_KEYWORDS = [
    "h.4.1",
    "factors affecting reserve balances",
    "consolidated statement of condition",
    "reserve bank credit",
]
MIN_KEYWORDS = 2


def create_session(user_agent: str = FetchConfig.user_agent) -> requests.Session:
    """Create a configured requests session."""
    session = requests.Session()
    session.headers.update({
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    })
    return session


def release_url(date: str, base_url: str = FetchConfig.base_url) -> str:
    return urljoin(base_url, f"{yyyymmdd_from_iso(date)}/default.htm")


def pdf_url(date: str, base_url: str = FetchConfig.base_url) -> str:
    return urljoin(base_url, f"{yyyymmdd_from_iso(date)}/h41.pdf")


def _link_for(stamp: str, base_url: str, url: str | None = None) -> ReleaseLink | None:
    try:
        date = iso_from_yyyymmdd(stamp)
    except ValueError:
        return None
    return ReleaseLink(date=date, url=url or release_url(date, base_url), pdf_url=pdf_url(date, base_url))


def collect_from_feed(session: requests.Session, config: FetchConfig) -> list[ReleaseLink]:
    """Scan the H.4.1 feed for release paths."""
    resp = session.get(config.feed_url, timeout=config.timeout)
    resp.raise_for_status()
    links = []
    for stamp in FEED_LINK_RE.findall(resp.text):
        link = _link_for(stamp, config.base_url)
        if link:
            links.append(link)
    return links


def collect_from_index(session: requests.Session, config: FetchConfig) -> list[ReleaseLink]:
    """Scrape the release index page for anchors whose path embeds a date."""
    resp = session.get(config.index_url, timeout=config.timeout)
    resp.raise_for_status()
    soup = BeautifulSoup(resp.text, "html.parser")
    links = []
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        match = INDEX_LINK_RE.search(href)
        if not match:
            continue
        link = _link_for(match.group(1), config.base_url, urljoin(config.index_url, href))
        if link:
            links.append(link)
    return links


def deduplicate_links(links: list[ReleaseLink]) -> dict[str, ReleaseLink]:
    """Collapse links into one date -> link mapping, newest first."""
    by_date: dict[str, ReleaseLink] = {}
    for link in links:
        by_date.setdefault(link.date, link)
    return {date: by_date[date] for date in sorted(by_date, reverse=True)}


def discover_releases(session: requests.Session, config: FetchConfig) -> dict[str, ReleaseLink]:
    """
    Discover published releases.

    The feed is tried first; the index page is scraped only if the feed
    yields nothing. A network failure in either source is logged and treated
    as an empty result.

    Args:
        session: Configured requests session
        config: Fetch settings

    Returns:
        Mapping of ISO release date to its link, newest first.
    """
    links: list[ReleaseLink] = []
    try:
        links = collect_from_feed(session, config)
    except requests.RequestException as exc:
        logger.warning("Feed %s failed: %s", config.feed_url, exc)

    if not links:
        logger.info("Feed yielded no releases; falling back to index page...")
        try:
            links = collect_from_index(session, config)
        except requests.RequestException as exc:
            logger.warning("Index %s failed: %s", config.index_url, exc)

    releases = deduplicate_links(links)
    logger.info("Discovered %d releases", len(releases))
    return releases


def validate_release_html(html: str) -> bool:
    """True when the page carries enough H.4.1 keywords to be a real release."""
    lower = html.lower()
    return sum(1 for k in RELEASE_KEYWORDS if k in lower) >= MIN_KEYWORDS


def candidate_urls(date: str, config: FetchConfig, known: dict[str, ReleaseLink] | None = None) -> list[str]:
    """URLs to try for one release, in order."""
    urls = []
    if known and date in known:
        urls.append(known[date].url)
    urls.append(release_url(date, config.base_url))
    urls.append(urljoin(config.base_url, f"{yyyymmdd_from_iso(date)}/"))
    return list(dict.fromkeys(urls))


def _get_release_page(session: requests.Session, url: str, timeout: float) -> str:
    try:
        resp = session.get(url, timeout=timeout)
    except requests.RequestException as exc:
        raise FetchFailure(FetchFailure.NETWORK_ERROR, str(exc), url=url) from exc
    if not 200 <= resp.status_code < 300:
        raise FetchFailure.http_error(resp.status_code, url)
    html = resp.text or ""
    if not html.strip():
        raise FetchFailure(FetchFailure.EMPTY_BODY, f"empty response from {url}", url=url, status=resp.status_code)
    if not validate_release_html(html):
        raise FetchFailure(
            FetchFailure.UNEXPECTED_HTML,
            f"page at {url} does not look like an H.4.1 release",
            url=url,
            status=resp.status_code,
        )
    return html


def _index_lists_date(session: requests.Session, date: str, config: FetchConfig) -> bool | None:
    """Whether the index page links to the release; None if the index is unavailable."""
    try:
        resp = session.get(config.index_url, timeout=config.timeout)
    except requests.RequestException as exc:
        logger.warning("Index %s failed: %s", config.index_url, exc)
        return None
    if not 200 <= resp.status_code < 300:
        return None
    return f"{yyyymmdd_from_iso(date)}/" in (resp.text or "")


def fetch_release(
    session: requests.Session,
    date: str,
    config: FetchConfig,
    known: dict[str, ReleaseLink] | None = None,
    attempts: int = 2,
) -> RawDocument:
    """
    Fetch the HTML of the release published on date.

    Each candidate URL is tried up to attempts times; a 404 moves straight to
    the next candidate. When every candidate fails, the index page decides
    whether the release exists at all.

    Args:
        session: Configured requests session
        date: Resolved ISO release date
        config: Fetch settings; timeout applies to every request
        known: Discovered releases, used for the preferred URL
        attempts: Tries per candidate URL

    Returns:
        RawDocument for the release.

    Raises:
        FetchFailure: No valid release page could be retrieved.
        ValueError: attempts is less than 1.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    last_failure: FetchFailure | None = None
    for url in candidate_urls(date, config, known):
        for attempt in range(1, attempts + 1):
            try:
                html = _get_release_page(session, url, config.timeout)
            except FetchFailure as exc:
                logger.warning("Attempt %d for %s failed: %s", attempt, url, exc)
                last_failure = exc
                if exc.status == 404:
                    break
                continue
            logger.info("Fetched release %s from %s", date, url)
            return RawDocument(
                html=html,
                url=url,
                release_date=date,
                fetched_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
            )

    if _index_lists_date(session, date, config) is False:
        raise FetchFailure(
            FetchFailure.NO_RELEASE_FOR_DATE,
            f"no H.4.1 release published for {date}",
            url=config.index_url,
        )
    raise last_failure
