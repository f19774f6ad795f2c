from __future__ import annotations

import json
from typing import Dict, List, Optional

import pytest

from catho.clients.catho import PageSnapshot
from catho.errors import FetchError


def listing_job(job_id, title="Analista de Dados", city="São Paulo", uf="SP", **extra) -> dict:
    job = {
        "id": job_id,
        "titulo": title,
        "contratante": {"nome": "Empresa X"},
        "vagas": [{"cidade": city, "uf": uf}],
        "faixaSalarial": "R$ 3.001,00 a R$ 4.000,00",
        "regimeContrato": "Efetivo – CLT",
        "descricao": "Atuar com dados.",
        "dataAtualizacao": "2025-10-01",
    }
    job.update(extra)
    return job


def next_data_html(page_props: dict, ld_blocks: Optional[List[dict]] = None) -> str:
    payload = {"props": {"pageProps": page_props}}
    ld = "".join(
        f'<script type="application/ld+json">{json.dumps(b)}</script>' for b in (ld_blocks or [])
    )
    return (
        "<html><head>"
        f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(payload)}</script>'
        f"{ld}</head><body></body></html>"
    )


def listing_html(jobs: List[dict]) -> str:
    return next_data_html({"jobSearch": {"jobSearchResult": {"data": jobs}}})


class FakeFetcher:
    """Serves canned HTML by URL; unknown URLs or FetchError values raise FetchError."""

    def __init__(self, pages: Dict[str, object]):
        self.pages = pages
        self.requested: List[str] = []

    async def fetch(self, url: str) -> PageSnapshot:
        self.requested.append(url)
        html = self.pages.get(url)
        if html is None:
            raise FetchError(url, "HTTP 404")
        if isinstance(html, Exception):
            raise html
        return PageSnapshot(url=url, html=html)


class ListSink:
    def __init__(self):
        self.batches: List[list] = []

    def persist_batch(self, records):
        self.batches.append(list(records))

    @property
    def records(self) -> list:
        return [r for b in self.batches for r in b]


@pytest.fixture
def sink() -> ListSink:
    return ListSink()
