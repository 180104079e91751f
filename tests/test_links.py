from urllib.parse import parse_qsl, urlsplit

import pytest

from utmbot.links.assembler import MalformedURLError, TagFields, assemble, is_valid_source_url
from utmbot.links.sanitizer import TRANSLITERATION, fold_case, sanitize


FIELDS = TagFields(source="google", medium="cpc", campaign="Su Kuyusu Genel", content="Kreatif Ismi", term="")


# ---------- sanitize ----------
@pytest.mark.parametrize("raw,expected", [
    ("Su Kuyusu Genel", "su_kuyusu_genel"),
    ("Test Genel Su Kuyusu", "test_genel_su_kuyusu"),
    ("Çeşme Ağustos", "cesme_agustos"),
    ("İSTANBUL", "istanbul"),
    ("ISPARTA ılık", "isparta_ilik"),
    ("Gönüllü Öğrenci", "gonullu_ogrenci"),
    ("", ""),
])
def test_sanitize_examples(raw, expected):
    assert sanitize(raw) == expected


@pytest.mark.parametrize("raw", ["Su Kuyusu", "İĞÜŞÖÇ ığüşöç", "  a  b ", "already_clean", "Ä x"])
def test_sanitize_is_idempotent_and_clean(raw):
    once = sanitize(raw)
    assert sanitize(once) == once
    assert " " not in once
    assert not any(ch in once for ch in TRANSLITERATION if ch.isupper())


def test_dotted_capital_i_folds_without_combining_mark():
    # plain str.lower() would leave U+0307 behind
    assert fold_case("İ") == "i"
    assert "̇" not in sanitize("İzmir")


# ---------- URL validation ----------
@pytest.mark.parametrize("text,ok", [
    ("https://hayratyardim.org/bagis/", True),
    ("http://example.org", True),
    ("  https://example.org/p?x=1  ", True),
    ("ftp://example.org/file", False),
    ("hayratyardim.org/bagis", False),
    ("https://", False),
    ("not a url", False),
])
def test_is_valid_source_url(text, ok):
    assert is_valid_source_url(text) is ok


# ---------- assembly ----------
def test_assembly_without_query_has_exactly_four_tags():
    url = assemble("https://example.org/landing", FIELDS)
    params = parse_qsl(urlsplit(url).query, keep_blank_values=True)
    assert params == [
        ("utm_source", "google"),
        ("utm_medium", "cpc"),
        ("utm_campaign", "su_kuyusu_genel"),
        ("utm_content", "kreatif_ismi"),
    ]


def test_assembly_keeps_foreign_parameters():
    url = assemble("https://example.org/p?ref=abc", FIELDS)
    params = parse_qsl(urlsplit(url).query)
    assert ("ref", "abc") in params
    assert len(params) == 5
    assert url.startswith("https://example.org/p?ref=abc&utm_source=google")


def test_existing_tag_keys_are_replaced_not_duplicated():
    src = "https://example.org/p?utm_source=old&b=2&a=1&a=0"
    url = assemble(src, FIELDS)
    params = parse_qsl(urlsplit(url).query)
    assert [v for k, v in params if k == "utm_source"] == ["google"]
    # foreign keys sorted, repeated keys keep their order
    assert params[:3] == [("a", "1"), ("a", "0"), ("b", "2")]


def test_term_included_when_present():
    url = assemble("https://example.org/", TagFields("meta", "cpc", "c", "k", term="Reklam Seti"))
    assert url.endswith("&utm_term=reklam_seti")


def test_assembly_keeps_fragment_and_is_stable():
    once = assemble("https://example.org/p#top", FIELDS)
    assert once.endswith("#top")
    assert assemble(once, FIELDS) == once


def test_custom_prefix():
    url = assemble("https://example.org/", FIELDS, prefix="tag_")
    assert "tag_source=google" in url and "utm_" not in url


@pytest.mark.parametrize("bad", ["example.org/p", "https://[::1/p", ""])
def test_malformed_url_raises(bad):
    with pytest.raises(MalformedURLError):
        assemble(bad, FIELDS)
