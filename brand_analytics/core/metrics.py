"""Prometheus metrics for the brand analytics workers."""

from prometheus_client import Counter, Info

# --- Metrics ---

APP_INFO = Info("brand_analytics", "Brand analytics worker info")
APP_INFO.info({"version": "0.1.0", "name": "brand_analytics"})

CANONICAL_RESOLUTIONS = Counter(
    "canonical_brand_resolutions_total",
    "Canonical brand resolutions by how the identity was found",
    ["outcome"],  # domain | additional_website | fuzzy | created | race
)

DEGRADED_BATCHES = Counter(
    "canonical_batches_degraded_total",
    "Answers whose mentions were written without canonical identity",
    ["reason"],  # cardinality | store_error | matcher
)

FACT_ROWS_WRITTEN = Counter(
    "analytics_fact_rows_written_total",
    "Analytics fact rows upserted",
    ["kind"],  # mention | placeholder
)

ANSWERS_PROCESSED = Counter(
    "answers_processed_total",
    "Answers processed by the fact pipeline",
    ["status"],  # ok | degraded | error
)
