"""Maintenance pass re-linking fact rows written without a canonical brand.

Degraded answers are stored with ``canonical_brand_id IS NULL``. This pass finds
the distinct brand names behind those rows, links them to an existing brand by
identity slug (or resolves/creates one), and back-fills the rows.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brand_analytics.analysis.canonical_resolver import resolve_canonical_brand
from brand_analytics.analysis.normalizer import normalize_brand_slug
from brand_analytics.analysis.types import Mention
from brand_analytics.core.exceptions import TransientStoreError, ValidationError
from brand_analytics.db.postgres import translate_store_errors
from brand_analytics.models.analytics_fact import NO_BRANDS_SLUG, AnalyticsFact
from brand_analytics.models.canonical_brand import CanonicalBrand

logger = logging.getLogger(__name__)


@dataclass
class RepairResult:
    """Result of one repair run."""

    brands_checked: int = 0
    brands_linked: int = 0  # matched an existing canonical brand by slug
    brands_resolved: int = 0  # went through full resolution (may create)
    rows_fixed: int = 0
    failures: int = 0

    def as_dict(self) -> dict:
        return {
            "brands_checked": self.brands_checked,
            "brands_linked": self.brands_linked,
            "brands_resolved": self.brands_resolved,
            "rows_fixed": self.rows_fixed,
            "failures": self.failures,
        }


async def _brand_id_by_slug(db: AsyncSession, slug: str) -> uuid.UUID | None:
    stmt = select(CanonicalBrand.id).where(CanonicalBrand.canonical_slug == slug)
    return (await db.execute(stmt)).scalar_one_or_none()


async def relink_null_canonical_brands(db: AsyncSession, limit: int | None = None) -> RepairResult:
    """Back-fill ``canonical_brand_id`` on fact rows where it is NULL.

    Commits after each brand so a failure only loses that brand's repair.
    """
    result = RepairResult()

    stmt = (
        select(AnalyticsFact.brand_name, AnalyticsFact.brand_website)
        .where(
            AnalyticsFact.canonical_brand_id.is_(None),
            AnalyticsFact.brand_slug != NO_BRANDS_SLUG,
            AnalyticsFact.brand_name.isnot(None),
        )
        .distinct()
        .order_by(AnalyticsFact.brand_name)
    )
    if limit:
        stmt = stmt.limit(limit)

    with translate_store_errors("null canonical scan"):
        candidates = (await db.execute(stmt)).all()

    # Several websites may be recorded for one name; the first one wins.
    by_name: dict[str, str | None] = {}
    for brand_name, brand_website in candidates:
        by_name.setdefault(brand_name, brand_website)

    if not by_name:
        logger.info("Canonical repair: no NULL canonical_brand_id rows")
        return result

    for brand_name, brand_website in by_name.items():
        result.brands_checked += 1
        try:
            with translate_store_errors("canonical repair"):
                brand_id = await _brand_id_by_slug(db, normalize_brand_slug(brand_name))
                if brand_id is not None:
                    result.brands_linked += 1
                else:
                    # The mention was counted when its answer was processed
                    brand_id = await resolve_canonical_brand(
                        db, Mention(name=brand_name, domain=brand_website), record=False
                    )
                    result.brands_resolved += 1

                fixed = await db.execute(
                    update(AnalyticsFact)
                    .where(
                        AnalyticsFact.brand_name == brand_name,
                        AnalyticsFact.canonical_brand_id.is_(None),
                    )
                    .values(canonical_brand_id=brand_id)
                    .execution_options(synchronize_session=False)
                )
                await db.commit()
            result.rows_fixed += fixed.rowcount or 0
        except ValidationError as e:
            logger.warning("Canonical repair: skipping %r: %s", brand_name, e)
            result.failures += 1
            await db.rollback()
        except TransientStoreError:
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error("Canonical repair failed for %r: %s", brand_name, e)
            result.failures += 1
            await db.rollback()

    logger.info(
        "Canonical repair: checked=%d linked=%d resolved=%d rows_fixed=%d failures=%d",
        result.brands_checked,
        result.brands_linked,
        result.brands_resolved,
        result.rows_fixed,
        result.failures,
    )
    return result
