"""Fact Expander: turns one analyzed answer into analytics fact rows.

One row per (mention, tag); an answer without mentions gets one
``no_brands`` placeholder per tag. Rows are upserted on
``(result_id, brand_slug, tag)`` so a redelivered job rewrites the same rows,
and rows of the result that the new expansion no longer produces are removed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from brand_analytics.analysis.normalizer import display_slug, domains_match, normalize_domain
from brand_analytics.analysis.types import AnswerContext, CitationInfo
from brand_analytics.core.config import settings
from brand_analytics.core.metrics import FACT_ROWS_WRITTEN
from brand_analytics.db.postgres import insert_for, translate_store_errors
from brand_analytics.models.analytics_fact import NO_BRANDS_SLUG, AnalyticsFact
from brand_analytics.models.citation import PromptCitation

logger = logging.getLogger(__name__)

# Columns replaced when a fact row is written again
_FACT_UPDATE_COLUMNS = (
    "website_id",
    "prompt_id",
    "date",
    "engine",
    "model",
    "canonical_brand_id",
    "brand_name",
    "brand_website",
    "is_own_brand",
    "mention_count",
    "ranking_position",
    "sentiment_score",
    "total_citations",
    "own_brand_citations",
    "answer_length",
    "updated_at",
)

# Rows per INSERT statement. asyncpg allows 32767 bind parameters per statement.
_UPSERT_CHUNK_ROWS = 500


def _chunks(rows: list[dict], size: int):
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Strip, drop blanks, de-duplicate in order; fall back to the default tag."""
    seen: list[str] = []
    for tag in tags or []:
        tag = (tag or "").strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen or [settings.default_fact_tag]


def citation_domain(citation: CitationInfo) -> str | None:
    return normalize_domain(citation.domain) or normalize_domain(citation.url)


def count_own_brand_citations(citations: list[CitationInfo], tracked_domain: str | None) -> int:
    """Citations pointing at the tracked website (or its subdomains)."""
    if not normalize_domain(tracked_domain):
        return 0
    return sum(1 for c in citations if domains_match(citation_domain(c), tracked_domain))


def expand_answer_facts(context: AnswerContext) -> list[dict]:
    """Build the fact rows for one answer (pure; no I/O)."""
    tags = normalize_tags(context.tags)
    total_citations = len(context.citations)
    own_citations = count_own_brand_citations(context.citations, context.tracked.domain)
    now = datetime.now(timezone.utc)

    base = {
        "website_id": context.tracked.website_id,
        "result_id": context.result_id,
        "prompt_id": context.prompt_id,
        "date": context.date,
        "engine": context.engine,
        "model": context.model,
        "total_citations": total_citations,
        "own_brand_citations": own_citations,
        "answer_length": context.answer_length,
        "updated_at": now,
    }

    usable = []
    seen_slugs: set[str] = set()
    for mention in context.mentions:
        slug = display_slug(mention.name)
        if not slug:
            logger.warning("Mention %r has no usable brand slug, skipped", mention.name)
            continue
        if slug in seen_slugs:
            # One statement cannot upsert the same key twice; first occurrence wins.
            logger.debug("Duplicate mention %r in result %s, keeping first", mention.name, context.result_id)
            continue
        seen_slugs.add(slug)
        usable.append((slug, mention))

    rows: list[dict] = []
    if not usable:
        for tag in tags:
            rows.append(
                {
                    **base,
                    "tag": tag,
                    "brand_slug": NO_BRANDS_SLUG,
                    "canonical_brand_id": None,
                    "brand_name": None,
                    "brand_website": None,
                    "is_own_brand": False,
                    "mention_count": 0,
                    "ranking_position": None,
                    "sentiment_score": None,
                }
            )
        return rows

    for slug, mention in usable:
        for tag in tags:
            rows.append(
                {
                    **base,
                    "tag": tag,
                    "brand_slug": slug,
                    "canonical_brand_id": mention.canonical_brand_id,
                    "brand_name": mention.name.strip(),
                    "brand_website": mention.domain,
                    "is_own_brand": bool(mention.is_own_brand),
                    "mention_count": 1,
                    "ranking_position": mention.ranking_position,
                    "sentiment_score": mention.sentiment,
                }
            )
    return rows


async def write_answer_facts(db: AsyncSession, context: AnswerContext) -> int:
    """Upsert every fact row of the answer. Returns the number of rows written.

    The caller owns the transaction and commits.
    """
    rows = expand_answer_facts(context)
    if not rows:
        return 0

    insert = insert_for(db)
    # Rows are a full slug x tag product, so the key set is exactly slugs x tags.
    slugs = sorted({r["brand_slug"] for r in rows})
    tags = sorted({r["tag"] for r in rows})
    stale = (
        delete(AnalyticsFact)
        .where(
            AnalyticsFact.result_id == context.result_id,
            or_(AnalyticsFact.brand_slug.notin_(slugs), AnalyticsFact.tag.notin_(tags)),
        )
        .execution_options(synchronize_session=False)
    )
    with translate_store_errors("analytics fact upsert"):
        await db.execute(stale)
        for chunk in _chunks(rows, _UPSERT_CHUNK_ROWS):
            stmt = insert(AnalyticsFact).values(chunk)
            stmt = stmt.on_conflict_do_update(
                index_elements=["result_id", "brand_slug", "tag"],
                set_={col: stmt.excluded[col] for col in _FACT_UPDATE_COLUMNS},
            )
            await db.execute(stmt)

    kind = "placeholder" if rows[0]["brand_slug"] == NO_BRANDS_SLUG else "mention"
    FACT_ROWS_WRITTEN.labels(kind=kind).inc(len(rows))
    logger.info(
        "Wrote %d fact rows for result %s (%s)",
        len(rows),
        context.result_id,
        kind,
        extra={"result_id": str(context.result_id)},
    )
    return len(rows)


async def write_citations(db: AsyncSession, context: AnswerContext) -> int:
    """Upsert the answer's citation rows keyed on (result_id, url)."""
    rows: dict[str, dict] = {}
    for citation in context.citations:
        url = (citation.url or "").strip()
        if not url or url in rows:
            continue
        domain = citation_domain(citation)
        rows[url] = {
            "result_id": context.result_id,
            "website_id": context.tracked.website_id,
            "url": url,
            "title": citation.title,
            "domain": domain,
            "is_own_website": domains_match(domain, context.tracked.domain),
        }
    if not rows:
        return 0

    insert = insert_for(db)
    with translate_store_errors("citation upsert"):
        for chunk in _chunks(list(rows.values()), _UPSERT_CHUNK_ROWS):
            stmt = insert(PromptCitation).values(chunk)
            stmt = stmt.on_conflict_do_update(
                index_elements=["result_id", "url"],
                set_={col: stmt.excluded[col] for col in ("website_id", "title", "domain", "is_own_website")},
            )
            await db.execute(stmt)
    return len(rows)
