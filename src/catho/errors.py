# src/catho/errors.py
"""
Exceptions raised by the crawler.

Only ConfigError is fatal before a run starts. The rest are caught by the
crawler (counted, logged) except NoResultsError, which is the run-level
failure handed back to the caller once everything has drained.
"""

from __future__ import annotations
from typing import Any


class CathoError(Exception):
    """Base class for every error this package raises on purpose."""


class ConfigError(CathoError):
    """Run configuration could not be read or parsed."""


class FetchError(CathoError):
    """The fetch layer gave up on a URL (after its own retries)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class ExtractionMiss(CathoError):
    """A page was fetched but carried no inline job payload at all."""

    def __init__(self, url: str):
        super().__init__(f"No __NEXT_DATA__ payload on {url}")
        self.url = url


class NoResultsError(CathoError):
    """The run finished without saving a single record."""

    def __init__(self, summary: Any):
        super().__init__("No results scraped. Check input parameters and proxy configuration.")
        self.summary = summary
