import re

import pytest

from catho.pipeline.normalize import html_to_text, normalize_for_compare, title_slug, to_slug


@pytest.mark.parametrize(
    "text, expected",
    [
        ("São Paulo", "sao-paulo"),
        ("São José dos Campos", "sao-jose-dos-campos"),
        ("  Analista -- de   TI  ", "analista-de-ti"),
        ("C++ / C#", "c-c"),
        ("-já-", "ja"),
        ("", ""),
        (None, ""),
    ],
)
def test_to_slug(text, expected):
    assert to_slug(text) == expected


@pytest.mark.parametrize(
    "text",
    ["Técnico(a) em Enfermagem!", "--a--b--", "  ", "Ação & Reação_2024", "ÁÉÍÓÚ çñ", "\t x \n y"],
)
def test_to_slug_is_idempotent_and_clean(text):
    slug = to_slug(text)
    assert to_slug(slug) == slug
    assert re.fullmatch(r"[a-z0-9-]*", slug)
    assert not slug.startswith("-") and not slug.endswith("-")
    assert "--" not in slug


def test_title_slug_turns_punctuation_into_separators():
    assert title_slug("Analista/Dev Pleno") == "analista-dev-pleno"
    assert title_slug("Vendedor(a) Externo") == "vendedor-a-externo"


def test_normalize_for_compare_keeps_commas():
    assert normalize_for_compare("  São Paulo, SP ") == "sao paulo, sp"
    assert normalize_for_compare("sao-paulo") == "saopaulo"
    assert normalize_for_compare(None) == ""


def test_html_to_text_drops_scripts_and_collapses_whitespace():
    html = "<div><p>Vaga  de <b>TI</b></p><script>alert(1)</script><style>p{}</style>\n<ul><li>SQL</li></ul></div>"
    assert html_to_text(html) == "Vaga de TI SQL"
    assert html_to_text("") is None
