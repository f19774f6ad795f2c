# src/catho/config.py
"""
Run configuration.

Sources, lowest to highest precedence:
1. an Apify-style JSON input file (startUrl, keyword, location, results_wanted, ...)
2. environment variables (a .env file is loaded by the CLI)
3. explicit overrides (CLI options); None means "not given"

The only fatal error of a run is an input that cannot be read: ConfigError.
"""
from __future__ import annotations
import json
import math
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from catho.clients.catho import first_page_params
from catho.crawler import MAX_RUNTIME_SECS, CrawlSettings
from catho.errors import ConfigError
from catho.models import SearchParameters

DEFAULT_RESULTS_WANTED = 50
DEFAULT_CONCURRENCY = 5

# JSON input key -> RunConfig field
_INPUT_KEYS = {
    "startUrl": "start_url",
    "keyword": "keyword",
    "location": "location",
    "results_wanted": "results_wanted",
    "max_pages": "max_pages",
    "maxConcurrency": "max_concurrency",
    "collectDetails": "collect_details",
}


@dataclass(frozen=True)
class RunConfig:
    keyword: str = ""
    location: str = ""
    start_url: Optional[str] = None
    results_wanted: int = DEFAULT_RESULTS_WANTED
    max_pages: Optional[int] = None
    max_concurrency: int = DEFAULT_CONCURRENCY
    collect_details: bool = False
    proxy_url: Optional[str] = None
    max_runtime_secs: float = MAX_RUNTIME_SECS


def coerce_results_wanted(raw: Any) -> int:
    # Anything that is not a finite number falls back to the default
    try:
        n = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_RESULTS_WANTED
    if not math.isfinite(n):
        return DEFAULT_RESULTS_WANTED
    return max(1, int(n))


def _positive_int(raw: Any, name: str) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        n = int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
    if n < 1:
        raise ConfigError(f"{name} must be >= 1, got {n}")
    return n


_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off", ""}


def _flag(raw: Any, name: str) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise ConfigError(f"{name} must be true or false, got {raw!r}")


def _read_input(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read input file {path}: {e}") from e
    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Input file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Input file {path} must hold a JSON object")
    return data


def _proxy_from_input(data: Dict[str, Any]) -> Optional[str]:
    proxy = data.get("proxyConfiguration")
    if isinstance(proxy, dict):
        urls = proxy.get("proxyUrls") or []
        if isinstance(urls, list) and urls:
            return str(urls[0])
    if isinstance(proxy, str) and proxy:
        return proxy
    return None


def load_run_config(path: Optional[Path] = None, **overrides: Any) -> RunConfig:
    """Build a RunConfig from the input file, the environment and overrides."""
    values: Dict[str, Any] = {}

    if path is not None:
        data = _read_input(Path(path))
        for key, name in _INPUT_KEYS.items():
            if data.get(key) is not None:
                values[name] = data[key]
        proxy = _proxy_from_input(data)
        if proxy:
            values["proxy_url"] = proxy

    if os.getenv("CATHO_PROXY_URL"):
        values["proxy_url"] = os.getenv("CATHO_PROXY_URL")
    if os.getenv("CATHO_MAX_RUNTIME_SECS"):
        values["max_runtime_secs"] = os.getenv("CATHO_MAX_RUNTIME_SECS")

    known = {f.name for f in fields(RunConfig)}
    for name, value in overrides.items():
        if name not in known:
            raise ConfigError(f"Unknown setting: {name}")
        if value is not None:
            values[name] = value

    try:
        runtime = float(values.get("max_runtime_secs", MAX_RUNTIME_SECS))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"max_runtime_secs must be a number, got {values['max_runtime_secs']!r}") from e

    cfg = RunConfig(
        keyword=str(values.get("keyword") or "").strip(),
        location=str(values.get("location") or "").strip(),
        start_url=(str(values["start_url"]).strip() or None) if values.get("start_url") else None,
        results_wanted=coerce_results_wanted(values.get("results_wanted", DEFAULT_RESULTS_WANTED)),
        max_pages=_positive_int(values.get("max_pages"), "max_pages"),
        max_concurrency=_positive_int(values.get("max_concurrency"), "max_concurrency") or DEFAULT_CONCURRENCY,
        collect_details=_flag(values.get("collect_details", False), "collect_details"),
        proxy_url=values.get("proxy_url") or None,
        max_runtime_secs=runtime,
    )
    return cfg


def resolve_search(cfg: RunConfig) -> Tuple[SearchParameters, str]:
    """First-page search parameters and the location filter for this run."""
    return first_page_params(cfg.keyword, cfg.location, cfg.start_url)


def crawl_settings(cfg: RunConfig, location_filter: str, **extra: Any) -> CrawlSettings:
    settings = CrawlSettings(
        results_wanted=cfg.results_wanted,
        max_pages=cfg.max_pages,
        location_filter=location_filter,
        collect_details=cfg.collect_details,
        max_concurrency=cfg.max_concurrency,
        max_runtime_secs=cfg.max_runtime_secs,
    )
    return replace(settings, **extra) if extra else settings
