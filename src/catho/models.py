# src/catho/models.py
"""
Typed shapes shared across the crawler.

Raw payloads coming from Catho stay plain dicts (we read them defensively,
field by field). The record we emit is a TypedDict, so at runtime it is also
just a dict and serializes straight to JSON.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Literal, Optional, Tuple, TypedDict

# Raw payloads as embedded in the page; no schema is enforced on them.
RawListingPayload = Dict[str, Any]
RawDetailPayload = Dict[str, Any]
StructuredMetadata = Dict[str, Any]


@dataclass(frozen=True)
class SearchParameters:
    """
    What one crawl run searches for.

    Only `page` moves during a run; use `for_page()` to get the copy for the
    next listing page.
    """

    keyword: str = ""
    location: str = ""
    page: int = 1
    # User-supplied Catho URL, reused verbatim for pagination
    direct_url: Optional[str] = None
    # Path segments after /vagas/ of a direct URL, kept as-is
    path_segments: Tuple[str, ...] = ()

    def for_page(self, page: int) -> "SearchParameters":
        return replace(self, page=page)


class CanonicalJobRecord(TypedDict):
    """One normalized job, as written to the dataset."""

    # Catho job id, unique within a run
    id: str

    # Resolved job title (required)
    title: str

    # Employer/advertiser name; "Confidencial" only when nothing else exists
    company: Optional[str]

    # "City, UF"
    location: Optional[str]

    # Currency string or Catho's salary band text
    salary: Optional[str]

    # e.g. "Efetivo – CLT"
    employment_type: Optional[str]

    # Plain-text description
    description: Optional[str]

    # HTML description when a detail or JSON-LD source supplied one
    description_html: Optional[str]

    # Comma-separated benefits (detail pages only, usually)
    benefits: Optional[str]

    date_posted: Optional[str]

    # Always rebuilt from id + title slug
    url: str
    apply_url: str

    # Which page kind produced the record
    source: Literal["listing", "detail"]

    # ISO-8601 UTC timestamp
    fetched_at: str


@dataclass
class RunSummary:
    jobs_saved: int
    results_wanted: int
    pages_processed: int
    details_fetched: int
    skipped_for_location: int
    skipped_duplicates: int
    parse_failures: int
    errors: int
    runtime_seconds: float

    @property
    def jobs_per_second(self) -> float:
        if self.runtime_seconds <= 0:
            return 0.0
        return self.jobs_saved / self.runtime_seconds

    def to_dict(self) -> Dict[str, Any]:
        """Output summary in the dataset's key-value store format."""
        return {
            "jobsSaved": self.jobs_saved,
            "resultsWanted": self.results_wanted,
            "pagesProcessed": self.pages_processed,
            "detailsFetched": self.details_fetched,
            "skippedForLocation": self.skipped_for_location,
            "skippedDuplicates": self.skipped_duplicates,
            "parseFailures": self.parse_failures,
            "errors": self.errors,
            "runtimeSeconds": round(self.runtime_seconds, 2),
            "success": self.jobs_saved > 0,
        }
