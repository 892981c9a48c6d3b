import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from brand_analytics.db.base import Base, JsonType


class CanonicalBrand(Base):
    """Stable identity for a real-world brand, shared across all analyzed answers.

    Exactly one row exists per canonical_slug. Rows are created on the first
    unmatched mention and updated by every later mention that resolves to them.
    """

    __tablename__ = "canonical_brands"
    __table_args__ = (
        UniqueConstraint("canonical_slug", name="uq_canonical_brand_slug"),
        Index("ix_canonical_brand_website_key", "website_key"),
        # pg_trgm `%` / similarity() lookups on the slug
        Index(
            "ix_canonical_brand_slug_trgm",
            "canonical_slug",
            postgresql_using="gin",
            postgresql_ops={"canonical_slug": "gin_trgm_ops"},
        ),
        # JSONB containment (`@>`) on secondary domains
        Index("ix_canonical_brand_additional_websites", "additional_websites", postgresql_using="gin"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    canonical_name: Mapped[str] = mapped_column(String(255), nullable=False)
    canonical_slug: Mapped[str] = mapped_column(String(255), nullable=False)
    canonical_website: Mapped[str | None] = mapped_column(String(255), nullable=True)  # as first supplied
    website_key: Mapped[str | None] = mapped_column(String(255), nullable=True)  # normalized, comparison only
    additional_websites: Mapped[list | None] = mapped_column(JsonType, nullable=True)  # ["acme.io", ...]
    aliases: Mapped[list] = mapped_column(
        JsonType, default=list
    )  # [{"name": "ACME Inc.", "first_seen_at": "...", "mention_count": 3}]

    # Monotonic: false -> true only
    domain_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    total_mentions: Mapped[int] = mapped_column(Integer, default=1)

    first_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    def known_names(self) -> set[str]:
        """Exact name strings already recorded for this brand."""
        names = {self.canonical_name}
        names.update(a.get("name", "") for a in self.aliases or [])
        return names
