from catho.clients.catho import BASE_URL
from catho.pipeline.extract import FIELD_SOURCES, build_record, pick_company, resolve

from conftest import listing_job

JOB_POSTING = {
    "@context": "https://schema.org",
    "@type": "JobPosting",
    "title": "Analista de Dados Sênior",
    "hiringOrganization": {"@type": "Organization", "name": "Org LD"},
    "jobLocation": [{"@type": "Place", "address": {"addressLocality": "Campinas", "addressRegion": "SP"}}],
    "baseSalary": {"@type": "MonetaryAmount", "currency": "BRL", "value": {"minValue": 1000, "maxValue": 2000}},
    "employmentType": ["FULL_TIME"],
    "description": "<p>Descrição <b>completa</b></p>",
    "datePosted": "2025-09-01",
}


def test_listing_only_record():
    rec = build_record(listing_job(42), fetched_at="2025-10-02T00:00:00+00:00")
    assert rec == {
        "id": "42",
        "title": "Analista de Dados",
        "company": "Empresa X",
        "location": "São Paulo, SP",
        "salary": "R$ 3.001,00 a R$ 4.000,00",
        "employment_type": "Efetivo – CLT",
        "description": "Atuar com dados.",
        "description_html": None,
        "benefits": None,
        "date_posted": "2025-10-01",
        "url": BASE_URL + "analista-de-dados/42/",
        "apply_url": BASE_URL + "analista-de-dados/42/",
        "source": "listing",
        "fetched_at": "2025-10-02T00:00:00+00:00",
    }


def test_missing_id_or_title_is_rejected():
    assert build_record({"titulo": "Sem id"}) is None
    assert build_record({"id": 1, "titulo": "   "}) is None
    assert build_record("not a dict") is None


def test_customized_data_wrapper_is_unwrapped():
    rec = build_record({"id": 7, "job_customized_data": {"titulo": "Motorista", "cidade": "Recife", "uf": "PE"}})
    assert rec["title"] == "Motorista"
    assert rec["location"] == "Recife, PE"


def test_structured_salary_overrides_listing_salary():
    rec = build_record(listing_job(1, faixaSalarial="A"), structured=JOB_POSTING)
    assert rec["salary"] == "R$ 1.000,00 - R$ 2.000,00"


def test_single_salary_value_and_other_currency():
    ld = {"baseSalary": {"currency": "USD", "value": {"value": 2500}}}
    assert resolve("salary", {"structured": ld}) == "USD 2,500.00"


def test_detail_beats_structured_beats_listing():
    listing = listing_job(5, title="Analista")
    detail = {
        "titulo": "Analista de Dados Pleno",
        "contratante": {"nome": "Empresa Detalhe"},
        "vagas": [{"cidade": "Santos", "uf": "SP"}],
        "descricao": "<p>Texto <i>rico</i></p>",
        "beneficios": ["Vale refeição", {"nome": "Plano de saúde"}],
    }
    rec = build_record(listing, detail, JOB_POSTING)
    assert rec["title"] == "Analista de Dados Pleno"
    assert rec["company"] == "Empresa Detalhe"
    assert rec["location"] == "Santos, SP"
    assert rec["description_html"] == "<p>Texto <i>rico</i></p>"
    assert rec["description"] == "Texto rico"
    assert rec["benefits"] == "Vale refeição, Plano de saúde"
    assert rec["employment_type"] == "Efetivo – CLT"
    assert rec["source"] == "detail"
    assert rec["url"] == BASE_URL + "analista-de-dados-pleno/5/"


def test_structured_fills_gaps_left_by_detail():
    listing = {"id": 9, "titulo": "Vendedor", "descricao": "curta"}
    rec = build_record(listing, {"id": 9}, JOB_POSTING)
    assert rec["title"] == "Analista de Dados Sênior"
    assert rec["company"] == "Org LD"
    assert rec["location"] == "Campinas, SP"
    assert rec["description"] == "Descrição completa"
    assert rec["employment_type"] == "FULL_TIME"
    assert rec["date_posted"] == "2025-09-01"


def test_confidential_company_used_only_as_last_resort():
    confidential = {"contratante": {"nome": "Confidencial"}, "anunciante": {"nome": "Agência RH"}}
    assert pick_company({"listing": confidential}) == "Agência RH"
    assert pick_company({"listing": {"contratante": {"nome": "Confidencial"}}}) == "Confidencial"
    assert pick_company({"detail": {"contratante": {"nome": "Confidencial"}}, "structured": {"hiringOrganization": {"name": "Org"}}}) == "Org"
    assert pick_company({"listing": {}}) is None


def test_url_never_taken_from_payload():
    rec = build_record(listing_job(3, url="/vagas/velha/3", title="Nova Vaga"))
    assert rec["url"] == BASE_URL + "nova-vaga/3/"


def test_every_priority_list_names_known_sources():
    for field, chain in FIELD_SOURCES.items():
        assert chain, field
        assert {name for name, _ in chain} <= {"listing", "detail", "structured"}


def test_empty_customized_values_keep_outer_ones():
    rec = build_record({"id": 7, "titulo": "Motorista", "job_customized_data": {"titulo": None, "uf": ""}})
    assert rec["title"] == "Motorista"
