"""add canonical_brands, analytics_facts and prompt_citations tables

Revision ID: a7c3e9d1b2f4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision = "a7c3e9d1b2f4"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")

    op.create_table(
        "canonical_brands",
        sa.Column("id", UUID(as_uuid=True), nullable=False),
        sa.Column("canonical_name", sa.String(255), nullable=False),
        sa.Column("canonical_slug", sa.String(255), nullable=False),
        sa.Column("canonical_website", sa.String(255), nullable=True),
        sa.Column("website_key", sa.String(255), nullable=True),
        sa.Column("additional_websites", JSONB(), nullable=True),
        sa.Column("aliases", JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("domain_verified", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("total_mentions", sa.Integer(), server_default="1", nullable=False),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("canonical_slug", name="uq_canonical_brand_slug"),
    )
    op.create_index("ix_canonical_brand_website_key", "canonical_brands", ["website_key"])
    op.create_index(
        "ix_canonical_brand_slug_trgm",
        "canonical_brands",
        ["canonical_slug"],
        postgresql_using="gin",
        postgresql_ops={"canonical_slug": "gin_trgm_ops"},
    )
    op.create_index(
        "ix_canonical_brand_additional_websites",
        "canonical_brands",
        ["additional_websites"],
        postgresql_using="gin",
    )

    op.create_table(
        "analytics_facts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("website_id", UUID(as_uuid=True), nullable=False),
        sa.Column("result_id", UUID(as_uuid=True), nullable=False),
        sa.Column("prompt_id", UUID(as_uuid=True), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("engine", sa.String(30), nullable=False),
        sa.Column("model", sa.String(100), nullable=True),
        sa.Column("tag", sa.String(255), nullable=False),
        sa.Column("brand_slug", sa.String(255), nullable=False),
        sa.Column("canonical_brand_id", UUID(as_uuid=True), nullable=True),
        sa.Column("brand_name", sa.String(255), nullable=True),
        sa.Column("brand_website", sa.String(255), nullable=True),
        sa.Column("is_own_brand", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("mention_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("ranking_position", sa.Integer(), nullable=True),
        sa.Column("sentiment_score", sa.Integer(), nullable=True),
        sa.Column("total_citations", sa.Integer(), server_default="0", nullable=False),
        sa.Column("own_brand_citations", sa.Integer(), server_default="0", nullable=False),
        sa.Column("answer_length", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["canonical_brand_id"], ["canonical_brands.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("result_id", "brand_slug", "tag", name="uq_analytics_fact"),
    )
    op.create_index("ix_analytics_facts_result_id", "analytics_facts", ["result_id"])
    op.create_index("ix_analytics_fact_website_date", "analytics_facts", ["website_id", "date"])
    op.create_index("ix_analytics_fact_canonical_brand", "analytics_facts", ["canonical_brand_id"])

    op.create_table(
        "prompt_citations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("result_id", UUID(as_uuid=True), nullable=False),
        sa.Column("website_id", UUID(as_uuid=True), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("domain", sa.String(255), nullable=True),
        sa.Column("is_own_website", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("result_id", "url", name="uq_prompt_citation"),
    )
    op.create_index("ix_prompt_citations_result_id", "prompt_citations", ["result_id"])


def downgrade() -> None:
    op.drop_index("ix_prompt_citations_result_id", table_name="prompt_citations")
    op.drop_table("prompt_citations")
    op.drop_index("ix_analytics_fact_canonical_brand", table_name="analytics_facts")
    op.drop_index("ix_analytics_fact_website_date", table_name="analytics_facts")
    op.drop_index("ix_analytics_facts_result_id", table_name="analytics_facts")
    op.drop_table("analytics_facts")
    op.drop_index("ix_canonical_brand_additional_websites", table_name="canonical_brands")
    op.drop_index("ix_canonical_brand_slug_trgm", table_name="canonical_brands")
    op.drop_index("ix_canonical_brand_website_key", table_name="canonical_brands")
    op.drop_table("canonical_brands")
