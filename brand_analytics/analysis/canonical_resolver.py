"""Canonical Brand Resolver.

Maps a free-text brand mention onto exactly one ``CanonicalBrand`` row:

  1. Exact match of the mention's domain against ``canonical_website``
  2. Exact match against any of ``additional_websites``
  3. Fuzzy slug match (trigram similarity >= threshold) unless the domains disagree
  4. Otherwise create a new brand

Creation is race-safe without locks or retries: ``INSERT ... ON CONFLICT
(canonical_slug) DO NOTHING RETURNING id`` inside a SAVEPOINT of the caller's
transaction. An empty RETURNING means another worker created the slug first, so
the row is read back and treated as a match.

A batch commits after every mention, so a worker never holds more than one
brand row locked at a time.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import Select, func, select, type_coerce
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession

from brand_analytics.analysis.normalizer import normalize_brand_slug, normalize_domain, trigram_similarity
from brand_analytics.analysis.types import Mention
from brand_analytics.core.config import settings
from brand_analytics.core.exceptions import TransientStoreError, ValidationError
from brand_analytics.core.metrics import CANONICAL_RESOLUTIONS
from brand_analytics.db.postgres import dialect_name, insert_for, translate_store_errors
from brand_analytics.models.canonical_brand import CanonicalBrand

logger = logging.getLogger(__name__)

# SQLite fallback: fuzzy candidates are prefiltered by slug length before
# similarity is computed in Python.
_LENGTH_WINDOW = 0.5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_mention(mention: Mention) -> str:
    """Return the mention's identity slug or raise ValidationError."""
    name = (mention.name or "").strip()
    if not name:
        raise ValidationError("Brand name cannot be empty")
    slug = normalize_brand_slug(name)
    if not slug:
        raise ValidationError(f"Brand name {name!r} has no letters or digits")
    return slug


# ---------------------------------------------------------------------------
# Lookup (priorities 1-3)
# ---------------------------------------------------------------------------


async def _lock_brand(db: AsyncSession, brand_id: uuid.UUID) -> CanonicalBrand | None:
    stmt = (
        select(CanonicalBrand)
        .where(CanonicalBrand.id == brand_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def _find_by_website(db: AsyncSession, domain: str) -> uuid.UUID | None:
    stmt = (
        select(CanonicalBrand.id)
        .where(CanonicalBrand.website_key == domain)
        .order_by(CanonicalBrand.created_at.asc())
        .limit(1)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


def additional_website_stmt(domain: str) -> Select:
    """PostgreSQL lookup: JSONB containment on the normalized domain list."""
    return (
        select(CanonicalBrand.id)
        .where(type_coerce(CanonicalBrand.additional_websites, JSONB).contains([domain]))
        .order_by(CanonicalBrand.created_at.asc())
        .limit(1)
    )


async def _find_by_additional_website(db: AsyncSession, domain: str) -> uuid.UUID | None:
    if dialect_name(db) == "postgresql":
        return (await db.execute(additional_website_stmt(domain))).scalar_one_or_none()

    stmt = (
        select(CanonicalBrand.id, CanonicalBrand.additional_websites)
        .where(CanonicalBrand.additional_websites.isnot(None))
        .order_by(CanonicalBrand.created_at.asc())
    )
    for brand_id, websites in (await db.execute(stmt)).all():
        if domain in (websites or []):
            return brand_id
    return None


def fuzzy_candidates_stmt(slug: str, domain: str | None, threshold: float) -> Select:
    """PostgreSQL lookup: pg_trgm ``%`` (GIN index) then ``similarity()`` cutoff.

    Best similarity first, then the oldest brand. A disagreeing domain vetoes
    the match.
    """
    score = func.similarity(CanonicalBrand.canonical_slug, slug)
    stmt = select(CanonicalBrand.id).where(
        CanonicalBrand.canonical_slug.op("%")(slug),
        score >= threshold,
    )
    if domain:
        stmt = stmt.where((CanonicalBrand.website_key.is_(None)) | (CanonicalBrand.website_key == domain))
    return stmt.order_by(score.desc(), CanonicalBrand.created_at.asc()).limit(1)


async def _find_fuzzy_in_python(
    db: AsyncSession,
    slug: str,
    domain: str | None,
    threshold: float,
) -> uuid.UUID | None:
    lo = int(len(slug) * _LENGTH_WINDOW)
    hi = int(len(slug) / _LENGTH_WINDOW) + 2
    stmt = select(
        CanonicalBrand.id,
        CanonicalBrand.canonical_slug,
        CanonicalBrand.website_key,
        CanonicalBrand.created_at,
    ).where(func.length(CanonicalBrand.canonical_slug).between(lo, hi))

    best: tuple[float, datetime, uuid.UUID] | None = None
    for brand_id, candidate_slug, website_key, created_at in (await db.execute(stmt)).all():
        score = trigram_similarity(slug, candidate_slug)
        if score < threshold:
            continue
        if domain and website_key and website_key != domain:
            continue
        if best is None or score > best[0] or (score == best[0] and created_at < best[1]):
            best = (score, created_at, brand_id)
    return best[2] if best else None


async def _find_fuzzy(
    db: AsyncSession,
    slug: str,
    domain: str | None,
    threshold: float,
) -> uuid.UUID | None:
    if dialect_name(db) == "postgresql":
        return (await db.execute(fuzzy_candidates_stmt(slug, domain, threshold))).scalar_one_or_none()
    return await _find_fuzzy_in_python(db, slug, domain, threshold)


async def find_canonical_brand(
    db: AsyncSession,
    mention: Mention,
    threshold: float | None = None,
) -> tuple[CanonicalBrand | None, str | None]:
    """Run priorities 1-3 and return the locked brand and how it matched."""
    slug = validate_mention(mention)
    domain = normalize_domain(mention.domain)
    threshold = settings.brand_similarity_threshold if threshold is None else threshold

    if domain:
        brand_id = await _find_by_website(db, domain)
        if brand_id is not None:
            return await _lock_brand(db, brand_id), "domain"

        brand_id = await _find_by_additional_website(db, domain)
        if brand_id is not None:
            return await _lock_brand(db, brand_id), "additional_website"

    brand_id = await _find_fuzzy(db, slug, domain, threshold)
    if brand_id is not None:
        return await _lock_brand(db, brand_id), "fuzzy"

    return None, None


# ---------------------------------------------------------------------------
# Match update / creation
# ---------------------------------------------------------------------------


def _domain_agrees(brand: CanonicalBrand, domain: str | None) -> bool:
    if not brand.website_key:
        return True
    return domain is not None and (domain == brand.website_key or domain in (brand.additional_websites or []))


def record_mention(brand: CanonicalBrand, mention: Mention, fill_website: bool = False) -> None:
    """Apply one matching mention to an existing brand (in-session, not flushed)."""
    now = _utcnow()
    name = mention.name.strip()
    domain = normalize_domain(mention.domain)

    aliases = list(brand.aliases or [])
    if name not in brand.known_names():
        aliases.append({"name": name, "first_seen_at": now.isoformat(), "mention_count": 1})
    else:
        for i, alias in enumerate(aliases):
            if alias.get("name") == name:
                aliases[i] = {**alias, "mention_count": int(alias.get("mention_count", 0)) + 1}
                break
    # Reassign so the JSON column is flagged dirty
    brand.aliases = aliases

    brand.total_mentions = (brand.total_mentions or 0) + 1
    brand.last_seen_at = now

    if fill_website and not brand.website_key and domain:
        brand.canonical_website = domain
        brand.website_key = domain

    # Verification of some other domain says nothing about this brand's website
    if mention.domain_verified and _domain_agrees(brand, domain):
        brand.domain_verified = True


async def _insert_if_absent(db: AsyncSession, slug: str, mention: Mention) -> uuid.UUID | None:
    """Atomic insert of a new brand; None when the slug already exists."""
    now = _utcnow()
    domain = normalize_domain(mention.domain)
    insert = insert_for(db)
    stmt = (
        insert(CanonicalBrand)
        .values(
            id=uuid.uuid4(),
            canonical_name=mention.name.strip(),
            canonical_slug=slug,
            canonical_website=domain,
            website_key=domain,
            aliases=[],
            domain_verified=bool(mention.domain_verified),
            total_mentions=1,
            first_seen_at=now,
            last_seen_at=now,
            created_at=now,
            updated_at=now,
        )
        .on_conflict_do_nothing(index_elements=["canonical_slug"])
        .returning(CanonicalBrand.id)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def _lock_by_slug(db: AsyncSession, slug: str) -> CanonicalBrand | None:
    stmt = (
        select(CanonicalBrand)
        .where(CanonicalBrand.canonical_slug == slug)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def resolve_canonical_brand(db: AsyncSession, mention: Mention, record: bool = True) -> uuid.UUID:
    """Find or create the canonical brand for one mention and return its id.

    Runs inside a SAVEPOINT so the insert-if-absent and the read-back form one
    unit of the caller's transaction. The caller commits.

    With ``record=False`` a matched brand is returned untouched (no alias or
    counter update), for passes that re-link mentions seen before.

    Raises:
        ValidationError: blank name.
        TransientStoreError: the store is unreachable.
    """
    slug = validate_mention(mention)

    with translate_store_errors("canonical brand resolution"):
        async with db.begin_nested():
            brand, how = await find_canonical_brand(db, mention)
            if brand is not None:
                if record:
                    record_mention(brand, mention, fill_website=(how == "fuzzy"))
                    await db.flush()
                CANONICAL_RESOLUTIONS.labels(outcome=how).inc()
                return brand.id

            brand_id = await _insert_if_absent(db, slug, mention)
            if brand_id is not None:
                logger.info("Created canonical brand %r (slug=%r, id=%s)", mention.name, slug, brand_id)
                CANONICAL_RESOLUTIONS.labels(outcome="created").inc()
                return brand_id

            # Lost the race: another worker inserted this slug after our lookup.
            brand = await _lock_by_slug(db, slug)
            if brand is None:
                raise TransientStoreError(f"canonical brand with slug {slug!r} vanished after conflict")
            logger.info("Slug %r created concurrently, joining existing brand %s", slug, brand.id)
            if record:
                record_mention(brand, mention)
                await db.flush()
            CANONICAL_RESOLUTIONS.labels(outcome="race").inc()
            return brand.id


async def resolve_canonical_brands(db: AsyncSession, mentions: Sequence[Mention]) -> list[uuid.UUID | None]:
    """Resolve a batch of mentions in input order, committing after each one.

    An entry is None when that mention failed validation; the remaining
    mentions are still resolved. Store errors roll back the current mention
    and propagate, so the caller can degrade the whole batch.
    """
    results: list[uuid.UUID | None] = []
    for mention in mentions:
        try:
            brand_id = await resolve_canonical_brand(db, mention)
            with translate_store_errors("canonical brand commit"):
                await db.commit()
        except ValidationError as e:
            logger.warning("Skipping invalid mention %r: %s", mention.name, e)
            results.append(None)
            continue
        except Exception:
            await db.rollback()
            raise
        results.append(brand_id)
    return results


async def add_additional_website(db: AsyncSession, brand_id: uuid.UUID, website: str) -> bool:
    """Record a secondary domain for a brand. Returns False if nothing changed.

    Domains are stored normalized so lookups can match them exactly.
    """
    domain = normalize_domain(website)
    if not domain:
        raise ValidationError(f"Invalid website {website!r}")

    with translate_store_errors("add additional website"):
        brand = await _lock_brand(db, brand_id)
        if brand is None:
            raise ValidationError(f"Canonical brand {brand_id} not found")
        known = set(brand.additional_websites or [])
        if domain == brand.website_key or domain in known:
            return False
        brand.additional_websites = [*(brand.additional_websites or []), domain]
        await db.flush()
    return True
