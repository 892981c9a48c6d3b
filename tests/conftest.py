import os
import tempfile
import uuid
from collections.abc import AsyncGenerator
from datetime import date

import pytest
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from brand_analytics.core.config import settings

# Override settings for tests
settings.app_env = "development"
settings.brand_similarity_threshold = 0.85
settings.default_fact_tag = "untagged"

from brand_analytics.analysis.types import AnswerContext, CitationInfo, Mention, TrackedBrand  # noqa: E402
from brand_analytics.db.base import Base  # noqa: E402
from brand_analytics.models import AnalyticsFact, CanonicalBrand, PromptCitation  # noqa: E402, F401

# PostgreSQL when TEST_DATABASE_URL is set, otherwise a throwaway SQLite file.
# NullPool gives every session its own connection, like separate workers.
_TMP_DIR = tempfile.mkdtemp(prefix="brand_analytics_test_")
TEST_DB_URL = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{_TMP_DIR}/test.db"

_engine_kwargs = {"echo": False, "poolclass": NullPool}
if TEST_DB_URL.startswith("sqlite"):
    _engine_kwargs["connect_args"] = {"timeout": 30}

test_engine = create_async_engine(TEST_DB_URL, **_engine_kwargs)
test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

if TEST_DB_URL.startswith("sqlite"):
    # pysqlite/aiosqlite transaction handling breaks SAVEPOINT; take it over and
    # start every transaction as a writer so concurrent sessions serialize.

    @event.listens_for(test_engine.sync_engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test and drop after."""
    async with test_engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS pg_trgm"))
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    """Independent sessions, each standing in for a separate worker."""
    return test_session_factory


@pytest.fixture
def tracked() -> TrackedBrand:
    return TrackedBrand(
        website_id=uuid.UUID("11111111-1111-1111-1111-111111111111"),
        name="Acme",
        domain="acme.com",
        aliases=["Acme Corp", "ACME Anvils"],
    )


@pytest.fixture
def make_context(tracked: TrackedBrand):
    """Factory for AnswerContext with sensible defaults."""

    def _make(
        mentions: list[Mention] | None = None,
        tags: list[str] | None = None,
        citations: list[CitationInfo] | None = None,
        result_id: uuid.UUID | None = None,
    ) -> AnswerContext:
        return AnswerContext(
            result_id=result_id or uuid.uuid4(),
            tracked=tracked,
            engine="chatgpt",
            date=date(2026, 10, 19),
            tags=tags if tags is not None else ["general"],
            mentions=mentions or [],
            citations=citations or [],
            prompt_id=uuid.UUID("22222222-2222-2222-2222-222222222222"),
            model="gpt-4o-mini",
            answer_length=1200,
        )

    return _make
