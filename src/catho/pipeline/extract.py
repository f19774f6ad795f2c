# src/catho/pipeline/extract.py
"""
Turn Catho payloads into CanonicalJobRecord dicts.

Up to three sources describe the same job:
- listing:    the entry in the search page's __NEXT_DATA__ array (always there)
- detail:     the job page's own __NEXT_DATA__ record (only when details are fetched)
- structured: the job page's schema.org JobPosting (JSON-LD), a fallback/cross-check

Which source wins for which field is data, not code: see FIELD_SOURCES.
"""
from __future__ import annotations
import datetime as dt
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from catho.clients.catho import build_job_url
from catho.models import CanonicalJobRecord, RawDetailPayload, RawListingPayload, StructuredMetadata
from catho.pipeline.normalize import clean_text, html_to_text

CONFIDENTIAL = "Confidencial"

Extractor = Callable[[Dict[str, Any]], Any]


# ---- Small readers -------------------------------------------------------------

def _unwrap(job: Any) -> Dict[str, Any]:
    # Listing entries sometimes nest the real data under job_customized_data
    if not isinstance(job, dict):
        return {}
    inner = job.get("job_customized_data")
    if isinstance(inner, dict):
        # Empty inner values fall back to the outer ones
        return {**job, **{k: v for k, v in inner.items() if v not in (None, "", [], {})}}
    return job


def _first(data: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = clean_text(data.get(key))
        if value:
            return value
    return None


def _name(data: Dict[str, Any], key: str) -> Optional[str]:
    node = data.get(key)
    if isinstance(node, dict):
        return clean_text(node.get("nome"))
    return None


def _city_state(city: Any, state: Any) -> Optional[str]:
    parts = [p for p in (clean_text(city), clean_text(state)) if p]
    return ", ".join(parts) or None


# ---- Catho payload fields (listing and detail share the same names) -------------

def _catho_id(data):
    return clean_text(data.get("id"))


def _catho_title(data):
    return _first(data, "titulo")


def _catho_companies(data) -> List[str]:
    # contratante = employer, anunciante = advertiser; employer first
    return [n for n in (_name(data, "contratante"), _name(data, "anunciante")) if n]


def _catho_location(data):
    vagas = data.get("vagas")
    if isinstance(vagas, list) and vagas and isinstance(vagas[0], dict):
        loc = _city_state(vagas[0].get("cidade"), vagas[0].get("uf"))
        if loc:
            return loc
    if data.get("cidade") and data.get("uf"):
        return _city_state(data.get("cidade"), data.get("uf"))
    return _first(data, "localizacao")


def _catho_salary(data):
    return _first(data, "faixaSalarial", "salario")


def _catho_employment_type(data):
    return _first(data, "regimeContrato", "tipoContrato")


def _catho_description(data):
    return _first(data, "descricao")


def _catho_description_html(data):
    value = data.get("descricao")
    return value if isinstance(value, str) and value.strip() else None


def _catho_benefits(data):
    items = data.get("beneficios")
    if isinstance(items, str):
        return clean_text(items)
    if not isinstance(items, list):
        return None
    names = []
    for item in items:
        if isinstance(item, dict):
            item = item.get("nome") or item.get("descricao")
        text = clean_text(item)
        if text:
            names.append(text)
    return ", ".join(names) or None


def _catho_date(data):
    return _first(data, "dataAtualizacao", "dataPublicacao")


# ---- schema.org JobPosting fields -------------------------------------------------

def _ld_id(data):
    ident = data.get("identifier")
    if isinstance(ident, dict):
        ident = ident.get("value")
    return clean_text(ident)


def _ld_title(data):
    return _first(data, "title")


def _ld_companies(data) -> List[str]:
    org = data.get("hiringOrganization")
    name = clean_text(org.get("name")) if isinstance(org, dict) else clean_text(org)
    return [name] if name else []


def _ld_location(data):
    locations = data.get("jobLocation")
    if isinstance(locations, dict):
        locations = [locations]
    if not isinstance(locations, list):
        return None
    for loc in locations:
        address = loc.get("address") if isinstance(loc, dict) else None
        if isinstance(address, dict):
            found = _city_state(address.get("addressLocality"), address.get("addressRegion"))
            if found:
                return found
    return None


def _format_amount(value: float, currency: str) -> str:
    if currency == "BRL":
        # Brazilian separators: 1.234,56
        body = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
        return f"R$ {body}"
    return f"{currency} {value:,.2f}".strip()


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _ld_salary(data):
    salary = data.get("baseSalary")
    if not isinstance(salary, dict):
        return None
    currency = clean_text(salary.get("currency")) or "BRL"
    value = salary.get("value")
    if isinstance(value, dict):
        low = _as_number(value.get("minValue"))
        high = _as_number(value.get("maxValue"))
        single = _as_number(value.get("value"))
    else:
        low = high = None
        single = _as_number(value)

    if low is not None and high is not None and low != high:
        return f"{_format_amount(low, currency)} - {_format_amount(high, currency)}"
    amount = next((v for v in (low, high, single) if v is not None), None)
    if amount is None:
        return None
    return _format_amount(amount, currency)


def _ld_employment_type(data):
    kind = data.get("employmentType")
    if isinstance(kind, list):
        return ", ".join(t for t in (clean_text(k) for k in kind) if t) or None
    return clean_text(kind)


def _ld_description_html(data):
    value = data.get("description")
    return value if isinstance(value, str) and value.strip() else None


def _ld_date(data):
    return _first(data, "datePosted")


# ---- Field priorities ------------------------------------------------------------

# field -> ordered (source, extractor) pairs; the first non-empty value wins
FIELD_SOURCES: Dict[str, Tuple[Tuple[str, Extractor], ...]] = {
    "id": (("listing", _catho_id), ("detail", _catho_id), ("structured", _ld_id)),
    "title": (("detail", _catho_title), ("structured", _ld_title), ("listing", _catho_title)),
    "companies": (("detail", _catho_companies), ("structured", _ld_companies), ("listing", _catho_companies)),
    "location": (("detail", _catho_location), ("structured", _ld_location), ("listing", _catho_location)),
    "salary": (("structured", _ld_salary), ("detail", _catho_salary), ("listing", _catho_salary)),
    "employment_type": (
        ("detail", _catho_employment_type),
        ("listing", _catho_employment_type),
        ("structured", _ld_employment_type),
    ),
    "description_html": (("detail", _catho_description_html), ("structured", _ld_description_html)),
    "short_description": (("listing", _catho_description),),
    "benefits": (("detail", _catho_benefits), ("listing", _catho_benefits)),
    "date_posted": (("detail", _catho_date), ("listing", _catho_date), ("structured", _ld_date)),
}


def resolve(field: str, sources: Mapping[str, Dict[str, Any]]) -> Any:
    """First non-empty value for `field`, walking FIELD_SOURCES in order."""
    for source_name, extractor in FIELD_SOURCES[field]:
        data = sources.get(source_name)
        if not data:
            continue
        value = extractor(data)
        if value:
            return value
    return None


def pick_company(sources: Mapping[str, Dict[str, Any]]) -> Optional[str]:
    """
    Company names from every source, in priority order. The first one that is
    not "Confidencial" wins; a confidential name is kept only when it is all
    there is.
    """
    names: List[str] = []
    for source_name, extractor in FIELD_SOURCES["companies"]:
        data = sources.get(source_name)
        if data:
            names.extend(extractor(data))
    for name in names:
        if name.casefold() != CONFIDENTIAL.casefold():
            return name
    return names[0] if names else None


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds")


def build_record(
    listing: RawListingPayload,
    detail: Optional[RawDetailPayload] = None,
    structured: Optional[StructuredMetadata] = None,
    *,
    fetched_at: Optional[str] = None,
) -> Optional[CanonicalJobRecord]:
    """
    Merge the sources into one record, or None if no id/title can be found.

    The record URL is always rebuilt from id + title; URLs found in payloads
    can be relative or stale.
    """
    sources = {
        "listing": _unwrap(listing),
        "detail": _unwrap(detail) if detail else {},
        "structured": structured if isinstance(structured, dict) else {},
    }

    job_id = resolve("id", sources)
    title = resolve("title", sources)
    if not job_id or not title:
        return None

    description_html = resolve("description_html", sources)
    description = html_to_text(description_html) or resolve("short_description", sources)
    url = build_job_url(job_id, title)

    return {
        "id": job_id,
        "title": title,
        "company": pick_company(sources),
        "location": resolve("location", sources),
        "salary": resolve("salary", sources),
        "employment_type": resolve("employment_type", sources),
        "description": description,
        "description_html": description_html,
        "benefits": resolve("benefits", sources),
        "date_posted": resolve("date_posted", sources),
        "url": url,
        "apply_url": url,
        "source": "detail" if sources["detail"] else "listing",
        "fetched_at": fetched_at or _now_iso(),
    }

