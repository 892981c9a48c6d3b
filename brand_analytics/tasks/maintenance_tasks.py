"""Celery tasks for data maintenance."""

import logging

from brand_analytics.tasks.answer_tasks import _make_session_factory, _run_async
from brand_analytics.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _repair_async(limit: int | None) -> dict:
    from brand_analytics.services.canonical_repair import relink_null_canonical_brands

    session_factory, engine = _make_session_factory()
    try:
        async with session_factory() as db:
            result = await relink_null_canonical_brands(db, limit=limit)
        return result.as_dict()
    finally:
        await engine.dispose()


@celery_app.task(name="repair_null_canonical_brands")
def repair_null_canonical_brands_task(limit: int | None = None):
    """Re-link fact rows left without a canonical brand by degraded answers.

    Runs daily at 05:00 UTC via Celery Beat.
    """
    from brand_analytics.core.config import settings

    limit = limit or settings.repair_batch_limit
    logger.info("Repairing NULL canonical_brand_id fact rows (limit=%d)...", limit)
    try:
        result = _run_async(_repair_async(limit))
        logger.info("Canonical repair completed: %s", result)
        return {"status": "ok", **result}
    except Exception as exc:
        logger.error("Canonical repair failed: %s", exc)
        return {"status": "error", "error": str(exc)}
