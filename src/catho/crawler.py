# src/catho/crawler.py
"""
Crawl orchestration: listing pages -> (optional) detail pages -> dataset.

One Crawler owns one CrawlState for one run. Requests go through an asyncio
queue consumed by a fixed number of workers; handlers only touch the state
between awaits, so the event loop serializes every update and no lock is
needed. Running handlers on OS threads would need a lock around CrawlState.

Stop rules:
- quota reached or time budget spent: nothing new is enqueued, in-flight work
  still finishes;
- an empty listing page ends pagination for the run;
- a listing page with fewer than `min_jobs_for_next_page` jobs is the last one.
"""
from __future__ import annotations
import asyncio
import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Set, Tuple

from catho.clients.catho import Fetcher, build_search_url
from catho.errors import ExtractionMiss, FetchError, NoResultsError
from catho.models import CanonicalJobRecord, RunSummary, SearchParameters
from catho.pipeline.extract import build_record
from catho.pipeline.filter import matches_location
from catho.pipeline.page import detail_payload, find_job_posting, listing_jobs

log = logging.getLogger(__name__)

# Catho shows ~15-20 jobs per page
JOBS_PER_PAGE = 15
PAGE_BUFFER = 2
MIN_JOBS_FOR_NEXT_PAGE = 10
MAX_RUNTIME_SECS = 210.0


class RecordSink(Protocol):
    def persist_batch(self, records: List[CanonicalJobRecord]) -> None: ...


@dataclass
class CrawlSettings:
    results_wanted: int = 50
    max_pages: Optional[int] = None
    location_filter: str = ""
    collect_details: bool = False
    max_concurrency: int = 5
    max_runtime_secs: float = MAX_RUNTIME_SECS
    min_jobs_for_next_page: int = MIN_JOBS_FOR_NEXT_PAGE
    # Pause before reading a fetched page, in seconds
    delay_range: Tuple[float, float] = (0.2, 0.5)

    @property
    def page_ceiling(self) -> int:
        if self.max_pages:
            return self.max_pages
        return compute_max_pages(self.results_wanted)


@dataclass
class CrawlState:
    seen_ids: Set[str] = field(default_factory=set)
    saved_count: int = 0
    # Accepted jobs waiting for their detail page
    pending_details: int = 0
    pages_processed: int = 0
    details_fetched: int = 0
    skipped_for_location: int = 0
    skipped_duplicates: int = 0
    parse_failures: int = 0
    error_count: int = 0
    start_time: float = field(default_factory=time.monotonic)
    has_more_pages: bool = True

    @property
    def reserved(self) -> int:
        """Saved plus promised (queued for details); what the quota is checked against."""
        return self.saved_count + self.pending_details


@dataclass
class CrawlRequest:
    url: str
    kind: str  # "listing" | "detail"
    page_num: int = 1
    listing: Optional[Dict[str, Any]] = None


def compute_max_pages(results_wanted: int, per_page: int = JOBS_PER_PAGE, buffer: int = PAGE_BUFFER) -> int:
    # Buffer pages make up for duplicates and location skips
    return math.ceil(max(1, results_wanted) / per_page) + buffer


def should_enqueue_next(
    state: CrawlState,
    *,
    page_num: int,
    page_job_count: int,
    results_wanted: int,
    max_pages: int,
    min_jobs: int = MIN_JOBS_FOR_NEXT_PAGE,
) -> bool:
    """Pagination decision after a listing page has been handled."""
    return (
        state.reserved < results_wanted
        and page_num < max_pages
        and page_job_count >= min_jobs
        and state.has_more_pages
    )


class Crawler:
    def __init__(
        self,
        fetcher: Fetcher,
        sink: RecordSink,
        search: SearchParameters,
        settings: Optional[CrawlSettings] = None,
        *,
        state: Optional[CrawlState] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.fetcher = fetcher
        self.sink = sink
        self.search = search
        self.settings = settings or CrawlSettings()
        self.clock = clock
        self.state = state or CrawlState(start_time=clock())
        self._queue: "asyncio.Queue[CrawlRequest]" = asyncio.Queue()

    # ---- public ----

    async def run(self) -> RunSummary:
        """
        Crawl until the queue drains and return the summary.

        Raises NoResultsError (carrying the summary) when nothing was saved.
        """
        s = self.settings
        log.info("Starting Catho crawl")
        log.info("   Keyword: %s", self.search.keyword or "(all jobs)")
        log.info("   Location: %s", self.search.location or "(all Brazil)")
        log.info("   Location filter: %s", s.location_filter or "(none)")
        log.info("   Direct URL: %s", self.search.direct_url or "(none)")
        log.info("   Results wanted: %d (max pages %d)", s.results_wanted, s.page_ceiling)

        first = build_search_url(self.search)
        log.info("Starting URL: %s", first)
        self._enqueue(CrawlRequest(url=first, kind="listing", page_num=self.search.page))

        workers = [asyncio.create_task(self._worker(i)) for i in range(max(1, s.max_concurrency))]
        try:
            await self._queue.join()
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        summary = self.summary()
        self._log_summary(summary)
        if summary.jobs_saved == 0:
            log.error("No results scraped. Check input parameters and proxy configuration.")
            raise NoResultsError(summary)
        return summary

    def summary(self) -> RunSummary:
        st = self.state
        return RunSummary(
            jobs_saved=st.saved_count,
            results_wanted=self.settings.results_wanted,
            pages_processed=st.pages_processed,
            details_fetched=st.details_fetched,
            skipped_for_location=st.skipped_for_location,
            skipped_duplicates=st.skipped_duplicates,
            parse_failures=st.parse_failures,
            errors=st.error_count,
            runtime_seconds=self.clock() - st.start_time,
        )

    # ---- queue / workers ----

    def _enqueue(self, request: CrawlRequest) -> None:
        self._queue.put_nowait(request)

    async def _worker(self, n: int) -> None:
        while True:
            request = await self._queue.get()
            try:
                if request.kind == "detail":
                    await self._handle_detail(request)
                else:
                    await self._handle_listing(request)
            except FetchError as e:
                self.state.error_count += 1
                log.warning("Request failed: %s", e)
            except Exception:
                self.state.error_count += 1
                log.exception("Handler crashed on %s (worker %d)", request.url, n)
            finally:
                self._queue.task_done()

    async def _pause(self) -> None:
        low, high = self.settings.delay_range
        if high > 0:
            await asyncio.sleep(random.uniform(low, high))

    def _out_of_time(self) -> bool:
        return self.clock() - self.state.start_time > self.settings.max_runtime_secs

    # ---- handlers ----

    async def _handle_listing(self, request: CrawlRequest) -> None:
        s, st = self.settings, self.state
        page_num = request.page_num

        if self._out_of_time():
            log.info("Time budget spent; not processing page %d.", page_num)
            return
        if st.reserved >= s.results_wanted:
            log.info("Reached target: %d/%d jobs", st.reserved, s.results_wanted)
            return

        st.pages_processed += 1
        page = await self.fetcher.fetch(request.url)
        await self._pause()
        log.info("Page %d: %s", page_num, request.url)

        try:
            next_data = page.require_next_data()
        except ExtractionMiss as e:
            st.error_count += 1
            log.warning("%s (page %d)", e, page_num)
            return

        jobs = listing_jobs(next_data)
        if not jobs:
            log.info("No jobs found on page %d. End of results.", page_num)
            st.has_more_pages = False
            return
        log.info("Found %d jobs on page %d", len(jobs), page_num)

        batch = self._accept_jobs(jobs)
        if batch:
            try:
                self.sink.persist_batch(batch)
            except Exception:
                st.error_count += 1
                log.exception("Could not save %d jobs from page %d", len(batch), page_num)
            else:
                st.saved_count += len(batch)
                log.info("Saved %d jobs (total: %d/%d)", len(batch), st.saved_count, s.results_wanted)

        if should_enqueue_next(
            st,
            page_num=page_num,
            page_job_count=len(jobs),
            results_wanted=s.results_wanted,
            max_pages=s.page_ceiling,
            min_jobs=s.min_jobs_for_next_page,
        ):
            params = self.search.for_page(page_num + 1)
            self._enqueue(CrawlRequest(url=build_search_url(params), kind="listing", page_num=page_num + 1))

    def _accept_jobs(self, jobs: List[Any]) -> List[CanonicalJobRecord]:
        """
        Parse, dedup and location-filter one page's jobs in page order.

        Returns the records to save now; with details enabled they are queued
        instead and the returned batch is empty.
        """
        s, st = self.settings, self.state
        batch: List[CanonicalJobRecord] = []

        for raw in jobs:
            if st.reserved + len(batch) >= s.results_wanted:
                break

            record = build_record(raw)
            if record is None:
                st.parse_failures += 1
                continue
            if record["id"] in st.seen_ids:
                st.skipped_duplicates += 1
                continue
            if s.location_filter and not matches_location(record["location"], s.location_filter):
                st.skipped_for_location += 1
                log.debug("Skipping %s: %r does not match %r", record["id"], record["location"], s.location_filter)
                continue

            st.seen_ids.add(record["id"])
            if s.collect_details:
                st.pending_details += 1
                self._enqueue(CrawlRequest(url=record["url"], kind="detail", listing=raw))
            else:
                batch.append(record)
        return batch

    async def _handle_detail(self, request: CrawlRequest) -> None:
        st = self.state
        listing = request.listing or {}
        try:
            try:
                page = await self.fetcher.fetch(request.url)
            except FetchError as e:
                # Save the listing-only record rather than dropping the job;
                # the failure still counts as an error.
                st.error_count += 1
                log.warning("Detail fetch failed, keeping listing data: %s", e)
                record = build_record(listing)
            else:
                await self._pause()
                detail = detail_payload(page.next_data())
                structured = find_job_posting(page.structured_blocks())
                record = build_record(listing, detail, structured)
                st.details_fetched += 1

            if record is None:
                st.parse_failures += 1
                return
            self.sink.persist_batch([record])
            st.saved_count += 1
        finally:
            st.pending_details -= 1

    def _log_summary(self, summary: RunSummary) -> None:
        log.info("=" * 60)
        log.info("RUN STATISTICS")
        log.info("=" * 60)
        log.info("Jobs saved: %d/%d", summary.jobs_saved, summary.results_wanted)
        log.info("Pages processed: %d", summary.pages_processed)
        log.info("Details fetched: %d", summary.details_fetched)
        log.info("Skipped (location mismatch): %d", summary.skipped_for_location)
        log.info("Skipped (duplicate id): %d", summary.skipped_duplicates)
        log.info("Parse failures: %d", summary.parse_failures)
        log.info("Errors: %d", summary.errors)
        log.info("Runtime: %.2fs", summary.runtime_seconds)
        log.info("Speed: %.2f jobs/second", summary.jobs_per_second)
        log.info("=" * 60)
