"""Per-answer batch orchestrator.

Runs the identity steps once per answer instead of once per mention:
  1. Validate mentions (invalid ones are skipped)
  2. Resolve all canonical brands in one batch (one transaction per mention)
  3. Match all names against the tracked brand in one batch
  4. Zip the results back onto the mentions
  5. Write fact rows and citations (one transaction)

Identity failures never lose the answer: the batch is degraded to
``canonical_brand_id=None`` / ``is_own_brand=False`` and the facts are still
written. Store failures while writing facts surface as TransientStoreError.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brand_analytics.analysis.canonical_resolver import resolve_canonical_brands, validate_mention
from brand_analytics.analysis.fact_expander import write_answer_facts, write_citations
from brand_analytics.analysis.own_brand_matcher import match_own_brand
from brand_analytics.analysis.types import AnswerContext, AnswerOutcome, Mention
from brand_analytics.core.exceptions import BatchCardinalityMismatch, TransientStoreError, ValidationError
from brand_analytics.core.metrics import ANSWERS_PROCESSED, DEGRADED_BATCHES
from brand_analytics.db.postgres import translate_store_errors

logger = logging.getLogger(__name__)


def _valid_mentions(mentions: list[Mention], result_id: uuid.UUID) -> tuple[list[Mention], int]:
    valid: list[Mention] = []
    skipped = 0
    for mention in mentions:
        try:
            validate_mention(mention)
        except ValidationError as e:
            logger.warning("Result %s: skipping mention: %s", result_id, e, extra={"result_id": str(result_id)})
            skipped += 1
            continue
        valid.append(mention)
    return valid, skipped


async def _resolve_batch(
    db: AsyncSession, mentions: list[Mention], result_id: uuid.UUID
) -> list[uuid.UUID | None] | None:
    """Resolve the batch; None means the whole batch must be degraded.

    Each mention is committed by the resolver as it goes.
    """
    log_extra = {"result_id": str(result_id)}
    try:
        ids = await resolve_canonical_brands(db, mentions)
        if len(ids) != len(mentions):
            raise BatchCardinalityMismatch("resolve_canonical_brands", len(mentions), len(ids))
        return ids
    except BatchCardinalityMismatch as e:
        logger.error("Degrading batch: %s", e, extra=log_extra)
        DEGRADED_BATCHES.labels(reason="cardinality").inc()
    except (TransientStoreError, SQLAlchemyError) as e:
        logger.error("Degrading batch, canonical resolution failed: %s", e, extra=log_extra)
        DEGRADED_BATCHES.labels(reason="store_error").inc()
    await db.rollback()
    return None


def _match_batch(context: AnswerContext, mentions: list[Mention]) -> list[bool] | None:
    flags = match_own_brand(context.tracked, [m.name for m in mentions])
    if len(flags) != len(mentions):
        e = BatchCardinalityMismatch("match_own_brand", len(mentions), len(flags))
        logger.error("Degrading own-brand flags: %s", e)
        DEGRADED_BATCHES.labels(reason="matcher").inc()
        return None
    return flags


async def process_answer(db: AsyncSession, context: AnswerContext) -> AnswerOutcome:
    """Resolve identities for one answer and write its facts.

    Raises:
        TransientStoreError: facts could not be written; the job should be retried.
    """
    outcome = AnswerOutcome(result_id=context.result_id)
    mentions, outcome.skipped_mentions = _valid_mentions(context.mentions, context.result_id)

    if mentions:
        ids = await _resolve_batch(db, mentions, context.result_id)
        flags = _match_batch(context, mentions)
        if ids is None or flags is None or any(brand_id is None for brand_id in ids):
            outcome.degraded = True
            ids = [None] * len(mentions)
            flags = [False] * len(mentions)
        mentions = [
            replace(m, canonical_brand_id=brand_id, is_own_brand=is_own)
            for m, brand_id, is_own in zip(mentions, ids, flags)
        ]
        outcome.resolved = sum(1 for brand_id in ids if brand_id is not None)

    enriched = replace(context, mentions=mentions)
    try:
        outcome.fact_rows = await write_answer_facts(db, enriched)
        outcome.citations = await write_citations(db, enriched)
        with translate_store_errors("analytics fact commit"):
            await db.commit()
    except Exception:
        await db.rollback()
        ANSWERS_PROCESSED.labels(status="error").inc()
        raise

    ANSWERS_PROCESSED.labels(status="degraded" if outcome.degraded else "ok").inc()
    logger.info(
        "Processed result %s: mentions=%d resolved=%d facts=%d citations=%d degraded=%s",
        context.result_id,
        len(mentions),
        outcome.resolved,
        outcome.fact_rows,
        outcome.citations,
        outcome.degraded,
        extra={"result_id": str(context.result_id)},
    )
    return outcome
