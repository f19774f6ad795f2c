import pytest

from catho.clients.catho import PageSnapshot
from catho.errors import ExtractionMiss
from catho.pipeline.page import detail_payload, find_job_posting, listing_jobs, parse_structured_blocks

from conftest import listing_html, listing_job, next_data_html


def test_listing_jobs_accepts_list_or_jobs_object():
    as_list = {"props": {"pageProps": {"jobSearch": {"jobSearchResult": {"data": [1, 2]}}}}}
    as_obj = {"props": {"pageProps": {"jobSearch": {"jobSearchResult": {"data": {"jobs": [3]}}}}}}
    assert listing_jobs(as_list) == [1, 2]
    assert listing_jobs(as_obj) == [3]
    assert listing_jobs({"props": {}}) == []
    assert listing_jobs(None) == []


def test_snapshot_reads_next_data():
    page = PageSnapshot(url="u", html=listing_html([listing_job(1)]))
    assert listing_jobs(page.next_data())[0]["id"] == 1
    assert page.extract("script#__NEXT_DATA__").startswith("{")


def test_missing_or_broken_next_data():
    assert PageSnapshot(url="u", html="<html></html>").next_data() is None
    broken = PageSnapshot(url="u", html='<script id="__NEXT_DATA__">{not json</script>')
    assert broken.next_data() is None
    with pytest.raises(ExtractionMiss):
        broken.require_next_data()


def test_structured_blocks_flatten_graph_and_skip_garbage():
    html = (
        '<script type="application/ld+json">{"@graph": [{"@type": "Organization"}, {"@type": "JobPosting", "title": "A"}]}</script>'
        '<script type="application/ld+json">{oops</script>'
        '<script type="application/ld+json">[{"@type": ["JobPosting"], "title": "B"}]</script>'
    )
    blocks = parse_structured_blocks(html)
    assert [b.get("title") for b in blocks] == [None, "A", "B"]
    assert find_job_posting(blocks)["title"] == "A"
    assert find_job_posting([{"@type": "Organization"}]) is None


def test_detail_payload_paths():
    html = next_data_html({"jobAdData": {"id": 5, "titulo": "X"}})
    assert detail_payload(PageSnapshot(url="u", html=html).next_data()) == {"id": 5, "titulo": "X"}
    assert detail_payload({"props": {"pageProps": {}}}) is None
