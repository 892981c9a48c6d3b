"""Tests for name / domain normalization and trigram similarity."""

import pytest

from brand_analytics.analysis.normalizer import (
    display_slug,
    domains_match,
    normalize_brand_slug,
    normalize_domain,
    trigram_similarity,
)


class TestNormalizeBrandSlug:
    """Identity slug derivation."""

    @pytest.mark.parametrize("variant", ["Acme Inc.", "ACME", "acme.com", "Acme, Inc.", "  acme  ", "Acme LLC"])
    def test_equivalent_variants_share_slug(self, variant):
        assert normalize_brand_slug(variant) == "acme"

    def test_entity_suffixes(self):
        assert normalize_brand_slug("Other Co") == "other"
        assert normalize_brand_slug("Notion Software") == "notion"
        assert normalize_brand_slug("Zapier Platform") == "zapier"
        assert normalize_brand_slug("Globex Corporation") == "globex"

    def test_only_one_entity_suffix_stripped(self):
        assert normalize_brand_slug("Acme Software Inc") == "acme software"

    def test_suffix_word_alone_is_kept(self):
        # No preceding separator: "App" is the whole name, not a suffix
        assert normalize_brand_slug("App") == "app"
        assert normalize_brand_slug("Tool") == "tool"

    def test_suffix_inside_word_is_kept(self):
        assert normalize_brand_slug("Coinbase") == "coinbase"
        assert normalize_brand_slug("Incognito") == "incognito"

    def test_domain_suffix(self):
        assert normalize_brand_slug("Linear.app") == "linear"
        assert normalize_brand_slug("Notion.so") == "notion"
        assert normalize_brand_slug("copy.ai") == "copy"

    def test_punctuation_removed_and_whitespace_collapsed(self):
        assert normalize_brand_slug("Ben & Jerry's") == "ben jerrys"
        assert normalize_brand_slug("Hello   Fresh\t!") == "hello fresh"

    def test_unicode_letters_kept(self):
        assert normalize_brand_slug("Тинькофф Банк") == "тинькофф банк"
        assert normalize_brand_slug("Nestlé") == "nestlé"

    def test_total_function(self):
        assert normalize_brand_slug(None) == ""
        assert normalize_brand_slug("") == ""
        assert normalize_brand_slug("   ") == ""
        assert normalize_brand_slug("!!!") == ""

    def test_deterministic(self):
        assert normalize_brand_slug("Eight Sleep") == normalize_brand_slug("Eight Sleep")


class TestDisplaySlug:
    def test_hyphenated(self):
        assert display_slug("Acme Inc.") == "acme-inc"
        assert display_slug("Other Co") == "other-co"

    def test_underscores_and_edges(self):
        assert display_slug("__Brand_X__") == "brand-x"

    def test_empty(self):
        assert display_slug(None) == ""
        assert display_slug("...") == ""

    def test_differs_from_identity_slug(self):
        assert display_slug("Acme Inc.") != normalize_brand_slug("Acme Inc.")


class TestNormalizeDomain:
    def test_url_with_path(self):
        assert normalize_domain("https://www.Acme.com/pricing?x=1") == "acme.com"

    def test_bare_domain(self):
        assert normalize_domain("acme.com") == "acme.com"
        assert normalize_domain("WWW.ACME.COM") == "acme.com"

    def test_port_and_trailing_dot(self):
        assert normalize_domain("http://acme.com:8080") == "acme.com"
        assert normalize_domain("acme.com.") == "acme.com"

    def test_subdomain_kept(self):
        assert normalize_domain("https://blog.acme.com") == "blog.acme.com"

    def test_invalid(self):
        assert normalize_domain(None) is None
        assert normalize_domain("") is None
        assert normalize_domain("   ") is None
        assert normalize_domain("localhost") is None
        assert normalize_domain("not a domain") is None
        assert normalize_domain("http://[::1") is None


class TestDomainsMatch:
    def test_equal(self):
        assert domains_match("https://www.acme.com/a", "acme.com") is True

    def test_subdomain(self):
        assert domains_match("docs.acme.com", "acme.com") is True

    def test_lookalike_is_not_a_match(self):
        assert domains_match("notacme.com", "acme.com") is False
        assert domains_match("acme.com.evil.io", "acme.com") is False

    def test_missing(self):
        assert domains_match(None, "acme.com") is False
        assert domains_match("acme.com", None) is False


class TestTrigramSimilarity:
    def test_identical(self):
        assert trigram_similarity("acme", "acme") == 1.0

    def test_disjoint(self):
        assert trigram_similarity("acme", "zzz") == 0.0

    def test_empty(self):
        assert trigram_similarity("", "acme") == 0.0
        assert trigram_similarity(None, None) == 0.0

    def test_known_value(self):
        # pg_trgm: "acme" -> {"  a"," ac","acm","cme","me "}; "acmes" has 6, 4 shared
        assert trigram_similarity("acme", "acmes") == pytest.approx(4 / 7)

    def test_symmetric(self):
        assert trigram_similarity("hubspot", "hub spot") == trigram_similarity("hub spot", "hubspot")

    def test_near_duplicate_above_threshold(self):
        assert trigram_similarity("salesforce crm", "salesforce crm s") >= 0.85

    def test_short_names_fall_below_threshold(self):
        assert trigram_similarity("asana", "asanas") < 0.85
