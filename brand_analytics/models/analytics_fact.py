import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from brand_analytics.db.base import Base

NO_BRANDS_SLUG = "no_brands"


class AnalyticsFact(Base):
    """One (mention, tag) pair of an analyzed answer, or a per-tag placeholder.

    Answers without any brand mention get one ``brand_slug='no_brands'`` row per tag
    so they still count in mention-rate denominators.
    """

    __tablename__ = "analytics_facts"
    __table_args__ = (
        UniqueConstraint("result_id", "brand_slug", "tag", name="uq_analytics_fact"),
        Index("ix_analytics_fact_website_date", "website_id", "date"),
        Index("ix_analytics_fact_canonical_brand", "canonical_brand_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    website_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    result_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    prompt_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    engine: Mapped[str] = mapped_column(String(30), nullable=False)  # chatgpt | perplexity | gemini | google
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tag: Mapped[str] = mapped_column(String(255), nullable=False)

    # Brand identity (sentinel 'no_brands' for placeholders)
    brand_slug: Mapped[str] = mapped_column(String(255), nullable=False)
    canonical_brand_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("canonical_brands.id", ondelete="SET NULL"), nullable=True
    )
    brand_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    brand_website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_own_brand: Mapped[bool] = mapped_column(Boolean, default=False)

    # Measures
    mention_count: Mapped[int] = mapped_column(Integer, default=0)  # 0 for placeholders, else 1
    ranking_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sentiment_score: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-100
    total_citations: Mapped[int] = mapped_column(Integer, default=0)
    own_brand_citations: Mapped[int] = mapped_column(Integer, default=0)
    answer_length: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )
