"""
Exception types for the H.4.1 pipeline.

Fetch and resolution failures end a pipeline run. Structural drift and
reconciliation problems found while parsing a full report are recorded as
diagnostics instead. parse_factors_table raises StructuralDriftFailure, and
ReconciliationFailure when called with strict=True.
"""


class H41Error(Exception):
    """Base class for all pipeline errors."""


class ResolutionFailure(H41Error):
    """No known release dates were available to resolve the requested date."""


class FetchFailure(H41Error):
    """Network error, non-2xx status, empty body, or a page that is not a release."""

    NO_RELEASE_FOR_DATE = "NO_RELEASE_FOR_DATE"
    NETWORK_ERROR = "NETWORK_ERROR"
    EMPTY_BODY = "EMPTY_BODY"
    UNEXPECTED_HTML = "UNEXPECTED_HTML"

    def __init__(self, code: str, message: str, url: str | None = None, status: int | None = None):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.url = url
        self.status = status

    @classmethod
    def http_error(cls, status: int, url: str) -> "FetchFailure":
        return cls(f"HTTP_ERROR_{status}", f"status {status} for {url}", url=url, status=status)


class StructuralDriftFailure(H41Error):
    """Expected table or row counts were not matched."""


class ReconciliationFailure(H41Error):
    """Item rows do not reconcile with the published totals."""


class AdapterFailure(H41Error):
    """A mandatory canonical field could not be populated."""
