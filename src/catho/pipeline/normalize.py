# src/catho/pipeline/normalize.py
"""
Text normalization helpers used by URL building, location matching and
record extraction.

Everything here is a pure function on strings: no I/O, no state.
"""
from __future__ import annotations
import re
import unicodedata
from typing import Optional

from bs4 import BeautifulSoup

_NOT_SLUG = re.compile(r"[^a-z0-9\s-]")
_NOT_COMPARE = re.compile(r"[^a-z0-9\s,]")
_SPACE_OR_HYPHEN_RUN = re.compile(r"[\s-]+")
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")
_WHITESPACE_RUN = re.compile(r"\s+")


def strip_accents(text: str) -> str:
    # "São Paulo" -> "Sao Paulo"
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def to_slug(text: Optional[str]) -> str:
    """
    URL-safe slug for search paths: "São José dos Campos" -> "sao-jose-dos-campos".

    Characters outside [a-z0-9 -] are dropped (not replaced), then runs of
    spaces/hyphens become a single hyphen. Applying it twice changes nothing.
    """
    if not text:
        return ""
    s = strip_accents(text.lower())
    s = _NOT_SLUG.sub("", s)
    s = _SPACE_OR_HYPHEN_RUN.sub("-", s)
    return s.strip("-")


def title_slug(text: Optional[str]) -> str:
    """
    Slug used in job URLs. Unlike to_slug, punctuation becomes a separator:
    "Analista/Dev Pleno" -> "analista-dev-pleno".
    """
    if not text:
        return ""
    s = strip_accents(text.lower())
    return _NON_ALNUM_RUN.sub("-", s).strip("-")


def normalize_for_compare(text: Optional[str]) -> str:
    """Lower-case, accent-free, only letters/digits/spaces/commas. Never for display."""
    if not text:
        return ""
    s = strip_accents(text.lower())
    return _NOT_COMPARE.sub("", s).strip()


def clean_text(value) -> Optional[str]:
    # Payload values may be numbers, None or whitespace-only strings
    if value is None:
        return None
    s = _WHITESPACE_RUN.sub(" ", str(value)).strip()
    return s or None


def html_to_text(html: Optional[str]) -> Optional[str]:
    """Strip tags (and script/style bodies) and collapse whitespace."""
    if not html:
        return None
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return clean_text(soup.get_text(" "))
