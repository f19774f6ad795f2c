# src/catho/pipeline/page.py
"""
Pull the inline JSON payloads out of a rendered Catho page.

Catho is a Next.js site: the listing array and the job-page data both live in
<script id="__NEXT_DATA__">. Job pages also carry schema.org JobPosting blocks
in <script type="application/ld+json">.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

log = logging.getLogger(__name__)

# Where a job page keeps its own record inside __NEXT_DATA__. Tried in order.
DETAIL_PAYLOAD_PATHS = (
    ("props", "pageProps", "jobAdData"),
    ("props", "pageProps", "jobAd"),
    ("props", "pageProps", "job"),
    ("props", "pageProps", "jobData"),
)


def dig(data: Any, *path: str) -> Any:
    """Walk nested dicts, returning None as soon as a key is missing."""
    cur = data
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def select_text(html: str, selector: str) -> Optional[str]:
    if not html:
        return None
    node = BeautifulSoup(html, "html.parser").select_one(selector)
    if node is None:
        return None
    return node.string if node.string is not None else node.get_text()


def parse_next_data(html: str) -> Optional[Dict[str, Any]]:
    raw = select_text(html, "script#__NEXT_DATA__")
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        log.warning("Failed to parse __NEXT_DATA__: %s", e)
        return None
    return data if isinstance(data, dict) else None


def _flatten_ld(data: Any) -> Iterable[Dict[str, Any]]:
    if isinstance(data, list):
        for item in data:
            yield from _flatten_ld(item)
    elif isinstance(data, dict):
        graph = data.get("@graph")
        if isinstance(graph, list):
            yield from _flatten_ld(graph)
        else:
            yield data


def parse_structured_blocks(html: str) -> List[Dict[str, Any]]:
    """Every JSON-LD object on the page, with @graph containers and lists flattened."""
    if not html:
        return []
    soup = BeautifulSoup(html, "html.parser")
    out: List[Dict[str, Any]] = []
    for script in soup.find_all("script", type="application/ld+json"):
        text = script.string or script.get_text()
        if not text or not text.strip():
            continue
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            # Broken JSON-LD is common and never fatal; it is only a fallback source
            log.debug("Skipping unparseable ld+json block")
            continue
        out.extend(_flatten_ld(data))
    return out


def find_job_posting(blocks: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for block in blocks:
        kind = block.get("@type")
        kinds = kind if isinstance(kind, list) else [kind]
        if "JobPosting" in kinds:
            return block
    return None


def listing_jobs(next_data: Optional[Dict[str, Any]]) -> List[Any]:
    """
    The job array of a search page; `data` is either the list or {"jobs": [...]}.
    Entries are returned untouched (malformed ones count as parse failures later).
    """
    data = dig(next_data, "props", "pageProps", "jobSearch", "jobSearchResult", "data")
    if isinstance(data, list):
        return list(data)
    if isinstance(data, dict) and isinstance(data.get("jobs"), list):
        return list(data["jobs"])
    return []


def detail_payload(next_data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for path in DETAIL_PAYLOAD_PATHS:
        found = dig(next_data, *path)
        if isinstance(found, dict) and found:
            return found
    return None
