# src/catho/pipeline/filter.py
"""
Location filter for search results.

Catho mixes sponsored and "nearby" jobs into city searches, so every job's
free-text location is checked against the requested one. There is no list of
cities to match against; the comparison is a loose text heuristic.
"""
from __future__ import annotations
import re
from typing import Optional

from catho.clients.catho import STATE_ABBREVIATIONS
from catho.pipeline.normalize import normalize_for_compare

_STATES = "|".join(STATE_ABBREVIATIONS)
_STATE_AT_END = re.compile(rf"(?:^|[\s,]+)(?:{_STATES})$")
_STATE_AT_START = re.compile(rf"^(?:{_STATES})\b[\s,]*")
_SEPARATORS = re.compile(r"[-/]")
_SPACES = re.compile(r"\s+")


def _requested_city(requested: str) -> str:
    # "sao-paulo-sp", "São Paulo, SP", "sp/sao-paulo" -> "sao paulo"
    # Separators become spaces before normalizing, which would otherwise drop them.
    s = normalize_for_compare(_SEPARATORS.sub(" ", requested))
    s = _STATE_AT_END.sub("", s)
    s = _STATE_AT_START.sub("", s)
    return _SPACES.sub(" ", s).strip()


def matches_location(job_location: Optional[str], requested: Optional[str]) -> bool:
    """
    True when `job_location` ("City, UF") plausibly is the requested place.

    Deliberately permissive: substring containment either way counts as a match,
    so "Santo André" passes a request for "André". Short or ambiguous city names
    can therefore let a few neighbours through.
    """
    if not requested:
        return True
    if not job_location:
        return False

    req_city = _requested_city(requested)
    job_city = normalize_for_compare(job_location).split(",", 1)[0].strip()

    if job_city == req_city:
        return True
    if job_city in req_city or req_city in job_city:
        return True
    return _SPACES.sub("-", job_city) == _SPACES.sub("-", req_city)
