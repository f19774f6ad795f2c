# src/catho/cli.py
"""
Command-line interface for the Catho crawler.

Commands:
- crawl: search Catho, write records to a JSONL dataset (and optionally Sheets)
- build-url: show the first search URL and location filter without fetching
- export: convert a JSONL dataset to CSV
- sheets-debug: list worksheet titles to verify Google Sheets access
"""

from dotenv import load_dotenv
load_dotenv(override=True)  # automatically looks for a .env file in the project root

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from catho.clients.catho import CathoClient, build_search_url
from catho.config import crawl_settings, load_run_config, resolve_search
from catho.crawler import Crawler
from catho.errors import ConfigError, NoResultsError
from catho.io.dataset import JsonlDataset, export_csv, write_summary
from catho.io.sheets import FanOutSink, SheetsSink, list_worksheets

# Typer app instance for CLI commands
app = typer.Typer(help="Catho job crawler")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )
    # httpx logs every request at INFO; keep it quiet unless debugging.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load(input_file: Optional[Path], **overrides):
    try:
        return load_run_config(input_file, **overrides)
    except ConfigError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=2)


@app.command()
def crawl(
    input_file: Optional[Path] = typer.Option(None, "--input", help="JSON input file (startUrl, keyword, location, ...)"),
    keyword: Optional[str] = typer.Option(None, "--keyword", "-k"),
    location: Optional[str] = typer.Option(None, "--location", "-l", help="e.g. 'São Paulo, SP'"),
    start_url: Optional[str] = typer.Option(None, "--start-url", help="A catho.com.br/vagas/... URL to reuse as-is"),
    results_wanted: Optional[int] = typer.Option(None, "--results-wanted", "-n"),
    max_pages: Optional[int] = typer.Option(None, "--max-pages"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency"),
    details: Optional[bool] = typer.Option(None, "--details/--no-details", help="Visit every job page for richer data"),
    proxy: Optional[str] = typer.Option(None, "--proxy", help="Proxy URL (or CATHO_PROXY_URL)"),
    output: Path = typer.Option(Path("storage/dataset.jsonl"), "--output", "-o"),
    summary_path: Path = typer.Option(Path("storage/OUTPUT_SUMMARY.json"), "--summary"),
    sheet_id: Optional[str] = typer.Option(None, "--sheet-id", help="Also append records to this Google Sheet"),
    log_level: str = typer.Option("INFO", "--log-level"),
):
    """
    Crawl Catho search results → dedupe → location filter → (optional) detail pages → dataset.
    Exits 1 when nothing was saved, 2 when the configuration is unusable.
    """
    _setup_logging(log_level)
    cfg = _load(
        input_file,
        keyword=keyword,
        location=location,
        start_url=start_url,
        results_wanted=results_wanted,
        max_pages=max_pages,
        max_concurrency=concurrency,
        collect_details=details,
        proxy_url=proxy,
    )
    search, location_filter = resolve_search(cfg)
    settings = crawl_settings(cfg, location_filter)

    sink = JsonlDataset(output)
    if sheet_id:
        sink = FanOutSink(sink, SheetsSink(sheet_id))

    async def _run():
        async with CathoClient(proxy=cfg.proxy_url) as client:
            return await Crawler(client, sink, search, settings).run()

    try:
        summary = asyncio.run(_run())
    except NoResultsError as e:
        write_summary(summary_path, e.summary.to_dict())
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)

    write_summary(summary_path, summary.to_dict())
    typer.echo(json.dumps(summary.to_dict(), indent=2))


@app.command()
def build_url(
    keyword: str = typer.Option("", "--keyword", "-k"),
    location: str = typer.Option("", "--location", "-l"),
    start_url: Optional[str] = typer.Option(None, "--start-url"),
    page: int = typer.Option(1, "--page", min=1),
):
    """
    Quick check: print the search URL and the location filter a crawl would use.
    """
    cfg = _load(None, keyword=keyword, location=location, start_url=start_url)
    search, location_filter = resolve_search(cfg)
    if page > 1:
        search = search.for_page(page)
    typer.echo(json.dumps({
        "url": build_search_url(search),
        "keyword": search.keyword,
        "location": search.location,
        "page": search.page,
        "location_filter": location_filter,
    }, indent=2, ensure_ascii=False))


@app.command()
def export(jsonl_path: Path, csv_path: Path):
    """Convert a JSONL dataset into a CSV file."""
    n = export_csv(jsonl_path, csv_path)
    typer.echo(f"Wrote {n} rows to {csv_path}")


@app.command()
def sheets_debug(sheet_id: str):
    """
    List worksheet titles and IDs via gspread to verify private access.
    """
    for title, gid in list_worksheets(sheet_id):
        typer.echo(f"{title}  gid={gid}")


if __name__ == "__main__":
    app()
