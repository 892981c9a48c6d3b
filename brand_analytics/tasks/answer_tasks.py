"""Celery task turning one analyzed answer into canonical identities and fact rows.

Each task builds its own engine + session factory and disposes it when done,
so concurrently running jobs never share connection state.
"""

import asyncio
import logging

from brand_analytics.core.config import settings
from brand_analytics.core.exceptions import TransientStoreError
from brand_analytics.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Run an async coroutine from sync Celery task context.

    Creates a fresh event loop each time; the per-job engine is bound to it.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _make_session_factory():
    """Create a fresh async engine + session factory for this job."""
    from brand_analytics.db.postgres import make_engine, make_session_factory

    engine = make_engine(pool_size=2, max_overflow=0)
    return make_session_factory(engine), engine


async def _process_answer_async(payload: dict) -> dict:
    from brand_analytics.analysis.pipeline import process_answer
    from brand_analytics.schemas.answer import AnswerPayload

    context = AnswerPayload.model_validate(payload).to_context()

    session_factory, engine = _make_session_factory()
    try:
        async with session_factory() as db:
            outcome = await process_answer(db, context)
        return outcome.as_dict()
    finally:
        await engine.dispose()


@celery_app.task(
    bind=True,
    name="process_answer_facts",
    autoretry_for=(TransientStoreError,),
    retry_backoff=True,
    retry_backoff_max=60,
    retry_jitter=True,
    max_retries=settings.job_max_retries,
)
def process_answer_facts_task(self, payload: dict):
    """Celery task: resolve brand identities for one answer and write its facts.

    Store outages are retried by Celery; a malformed payload fails immediately.
    """
    result_id = payload.get("result_id")
    log_extra = {"result_id": str(result_id)}
    logger.info(
        "Processing answer facts for result=%s (attempt %d)", result_id, self.request.retries + 1, extra=log_extra
    )
    result = _run_async(_process_answer_async(payload))
    logger.info("Answer facts done for result=%s: %s", result_id, result, extra=log_extra)
    return result
