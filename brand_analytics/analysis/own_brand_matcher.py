"""Own-brand detection: does a mention refer to the tracked business itself?"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from brand_analytics.analysis.normalizer import normalize_brand_slug, trigram_similarity
from brand_analytics.analysis.types import TrackedBrand
from brand_analytics.core.config import settings

logger = logging.getLogger(__name__)


def _own_slugs(tracked: TrackedBrand) -> set[str]:
    slugs = {normalize_brand_slug(n) for n in [tracked.name, *(tracked.aliases or [])]}
    slugs.discard("")
    return slugs


def _is_own(slug: str, own_slugs: set[str], threshold: float) -> bool:
    if not slug:
        return False
    if slug in own_slugs:
        return True
    return any(trigram_similarity(slug, own) >= threshold for own in own_slugs)


def match_own_brand(
    tracked: TrackedBrand,
    names: Sequence[str],
    threshold: float | None = None,
) -> list[bool]:
    """Flag each name that refers to the tracked brand or one of its aliases.

    Returns one bool per input name, in order. Never raises: on any failure
    every flag is False, since a false "own brand" would inflate business metrics.
    """
    threshold = settings.brand_similarity_threshold if threshold is None else threshold
    try:
        own_slugs = _own_slugs(tracked)
        return [_is_own(normalize_brand_slug(name), own_slugs, threshold) for name in names]
    except Exception:
        logger.exception("Own-brand matching failed for %r, defaulting to False", getattr(tracked, "name", None))
        return [False] * len(names)
