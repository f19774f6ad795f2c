# src/catho/clients/catho.py

"""
Everything that knows about Catho URLs and HTTP.

- Build search/pagination URLs from keyword + location + page (or reuse a URL
  the user pasted), and parse such URLs back.
- Guess a location filter from a pasted URL's path (best effort, see
  infer_location_filter).
- Fetch pages with httpx; transient failures are retried here with tenacity so
  the crawler only ever sees "got the page" or FetchError.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple
from urllib.parse import parse_qs, urlsplit

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from catho.errors import ExtractionMiss, FetchError
from catho.models import SearchParameters
from catho.pipeline.normalize import title_slug, to_slug
from catho.pipeline.page import parse_next_data, parse_structured_blocks, select_text

log = logging.getLogger(__name__)

BASE_URL = "https://www.catho.com.br/vagas/"

# The 27 Brazilian federative units (26 states + DF)
STATE_ABBREVIATIONS = (
    "sp", "rj", "mg", "ba", "pr", "rs", "sc", "go", "df", "ce", "pe", "pa", "ma", "mt",
    "ms", "es", "pb", "rn", "al", "se", "pi", "am", "ro", "ac", "ap", "rr", "to",
)
_STATE_SUFFIX = re.compile(r"-(%s)$" % "|".join(STATE_ABBREVIATIONS), re.IGNORECASE)
_VAGAS_PREFIX = re.compile(r"^/vagas/?")


# ---- URL building / parsing ---------------------------------------------------

def build_search_url(params: SearchParameters) -> str:
    """
    Search URL for one listing page.

    Catho paths:
      /vagas/keyword/            keyword only
      /vagas/keyword/city-uf/    keyword + location
      /vagas/city-uf/            location only
    The page number always goes in ?page=N, and only when N > 1.
    """
    query = f"?page={params.page}" if params.page > 1 else ""

    if params.direct_url:
        clean = params.direct_url.split("?", 1)[0].split("#", 1)[0].rstrip("/") + "/"
        return clean + query

    keyword_slug = to_slug(params.keyword)
    location_slug = to_slug(params.location)

    path = BASE_URL
    if keyword_slug and location_slug:
        path += f"{keyword_slug}/{location_slug}/"
    elif keyword_slug:
        path += f"{keyword_slug}/"
    elif location_slug:
        path += f"{location_slug}/"
    return path + query


def _page_number(raw: Optional[str]) -> int:
    try:
        page = int(raw or "1")
    except ValueError:
        return 1
    return page if page >= 1 else 1


def parse_search_url(url: str) -> SearchParameters:
    """
    Read page number, `q` keyword and the raw path segments out of a Catho URL.

    The path is not interpreted as keyword/location here: the URL itself stays
    the source of truth and is reused unchanged for pagination. A malformed URL
    gives back the empty default instead of raising.
    """
    try:
        parts = urlsplit(url)
    except (TypeError, ValueError, AttributeError):
        return SearchParameters()
    if not parts.scheme or not parts.netloc:
        return SearchParameters()

    query = parse_qs(parts.query)
    keyword = (query.get("q") or [""])[0]
    page = _page_number((query.get("page") or [None])[0])

    path = _VAGAS_PREFIX.sub("", parts.path).rstrip("/")
    segments = tuple(s for s in path.split("/") if s)

    return SearchParameters(
        keyword=keyword,
        location="",
        page=page,
        direct_url=url,
        path_segments=segments,
    )


def is_direct_search_url(url: Optional[str]) -> bool:
    return bool(url) and "catho.com.br/vagas" in url


def infer_location_filter(segments: Sequence[str]) -> str:
    """
    Best-effort guess of the location a pasted URL searches for.

      /vagas/sp/sao-jose-dos-campos/          -> "sao-jose-dos-campos"
      /vagas/administrativo/campinas-sp/      -> "campinas-sp"
      /vagas/campinas-sp/                     -> "campinas-sp"
      /vagas/administrativo/                  -> "" (cannot tell)

    A two-segment keyword URL without location would be misread; that is the
    price of not having a vocabulary of cities.
    """
    if not segments:
        return ""
    if len(segments) >= 2 and segments[0].lower() in STATE_ABBREVIATIONS:
        return segments[1]
    if len(segments) >= 2:
        return segments[-1]
    if _STATE_SUFFIX.search(segments[0]):
        return segments[0]
    return ""


def build_job_url(job_id: str, title: str) -> str:
    return f"{BASE_URL}{title_slug(title)}/{job_id}/"


# ---- Fetching ------------------------------------------------------------------

@dataclass
class PageSnapshot:
    """A fetched page: its final URL, status and HTML."""

    url: str
    html: str
    status_code: int = 200
    _next_data: Any = field(default=None, init=False, repr=False)

    def extract(self, selector: str) -> Optional[str]:
        return select_text(self.html, selector)

    def next_data(self) -> Optional[Dict[str, Any]]:
        if self._next_data is None:
            self._next_data = parse_next_data(self.html) or {}
        return self._next_data or None

    def require_next_data(self) -> Dict[str, Any]:
        data = self.next_data()
        if data is None:
            raise ExtractionMiss(self.url)
        return data

    def structured_blocks(self) -> List[Dict[str, Any]]:
        return parse_structured_blocks(self.html)


class Fetcher(Protocol):
    async def fetch(self, url: str) -> PageSnapshot: ...


def _default_headers() -> Dict[str, str]:
    return {
        "User-Agent": "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
    }


def _is_transient(exc: BaseException) -> bool:
    # Network trouble, rate limiting and server errors are worth another try; a 404 is not.
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.TransportError)


class CathoClient:
    """
    Async page fetcher. Use as a context manager:

        async with CathoClient(proxy=...) as client:
            page = await client.fetch(url)
    """

    def __init__(
        self,
        *,
        proxy: Optional[str] = None,
        timeout: float = 45.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client_kwargs: Dict[str, Any] = {
            "timeout": timeout,
            "headers": _default_headers(),
            "follow_redirects": True,
        }
        if proxy:
            self._client_kwargs["proxy"] = proxy
        if transport is not None:
            self._client_kwargs["transport"] = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "CathoClient":
        self._client = httpx.AsyncClient(**self._client_kwargs)
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @retry(
        # 1s, 2s, 4s ... capped at 16s; 4 attempts in total
        wait=wait_exponential(min=1, max=16),
        stop=stop_after_attempt(4),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    async def _get(self, url: str) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("CathoClient used outside 'async with'")
        resp = await self._client.get(url)
        resp.raise_for_status()
        return resp

    async def fetch(self, url: str) -> PageSnapshot:
        try:
            resp = await self._get(url)
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or type(e).__name__) from e
        return PageSnapshot(url=str(resp.url), html=resp.text, status_code=resp.status_code)


def first_page_params(
    keyword: str, location: str, start_url: Optional[str]
) -> Tuple[SearchParameters, str]:
    """
    Resolve what to crawl and which location to filter on.

    A pasted Catho URL wins over keyword/location inputs: it is reused as-is for
    pagination and its path is used to infer the location filter.
    """
    keyword = (keyword or "").strip()
    location = (location or "").strip()

    if start_url and is_direct_search_url(start_url):
        parsed = parse_search_url(start_url)
        params = SearchParameters(
            keyword=parsed.keyword or keyword,
            location=location,
            page=parsed.page,
            direct_url=start_url,
            path_segments=parsed.path_segments,
        )
        location_filter = infer_location_filter(parsed.path_segments) or location
        return params, location_filter

    return SearchParameters(keyword=keyword, location=location, page=1), location
