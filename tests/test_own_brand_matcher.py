"""Tests for own-brand detection."""

import uuid
from unittest.mock import patch

from brand_analytics.analysis.own_brand_matcher import match_own_brand
from brand_analytics.analysis.types import TrackedBrand


def test_flags_tracked_name_variants(tracked: TrackedBrand):
    flags = match_own_brand(tracked, ["Acme Inc.", "acme.com", "Other Co"])

    assert flags == [True, True, False]


def test_aliases_count_as_own(tracked: TrackedBrand):
    flags = match_own_brand(tracked, ["ACME Anvils", "Acme Corp", "Globex"])

    assert flags == [True, True, False]


def test_near_duplicate_matches_by_similarity():
    tracked = TrackedBrand(website_id=uuid.uuid4(), name="Salesforce Marketing Cloud")

    assert match_own_brand(tracked, ["Salesforce Marketing Clouds", "Salesforce"]) == [True, False]


def test_threshold_override():
    tracked = TrackedBrand(website_id=uuid.uuid4(), name="Asana")

    assert match_own_brand(tracked, ["Asanas"]) == [False]
    assert match_own_brand(tracked, ["Asanas"], threshold=0.5) == [True]


def test_one_flag_per_name_in_order(tracked: TrackedBrand):
    names = ["Other Co", "", "Acme", "Acme", "Globex"]

    flags = match_own_brand(tracked, names)

    assert len(flags) == len(names)
    assert flags == [False, False, True, True, False]


def test_empty_input(tracked: TrackedBrand):
    assert match_own_brand(tracked, []) == []


def test_tracked_without_usable_names():
    tracked = TrackedBrand(website_id=uuid.uuid4(), name="!!!", aliases=["", "  "])

    assert match_own_brand(tracked, ["Acme", "!!!"]) == [False, False]


def test_failure_defaults_every_flag_to_false(tracked: TrackedBrand):
    """A broken matcher must never mark anything as the tracked brand."""
    with patch(
        "brand_analytics.analysis.own_brand_matcher.trigram_similarity",
        side_effect=RuntimeError("boom"),
    ):
        flags = match_own_brand(tracked, ["Acme Industries", "Other Co"])

    assert flags == [False, False]
