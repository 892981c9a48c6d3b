from brand_analytics.models.analytics_fact import NO_BRANDS_SLUG, AnalyticsFact
from brand_analytics.models.canonical_brand import CanonicalBrand
from brand_analytics.models.citation import PromptCitation

__all__ = [
    "NO_BRANDS_SLUG",
    "AnalyticsFact",
    "CanonicalBrand",
    "PromptCitation",
]
