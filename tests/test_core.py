"""Tests for settings validation, logging setup and error translation."""

import json
import logging
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from brand_analytics.core.config import settings, validate_settings_for_production
from brand_analytics.core.exceptions import BatchCardinalityMismatch, TransientStoreError
from brand_analytics.core.logging import JSONFormatter, ResultIdFilter, setup_logging
from brand_analytics.core.sentry import init_sentry
from brand_analytics.db.postgres import translate_store_errors


def test_default_settings_are_valid():
    validate_settings_for_production()


def test_threshold_out_of_range_rejected():
    with patch.object(settings, "brand_similarity_threshold", 1.5):
        with pytest.raises(SystemExit):
            validate_settings_for_production()


def test_production_requires_password():
    with patch.object(settings, "app_env", "production"), patch.object(settings, "postgres_password", "changeme"):
        with pytest.raises(SystemExit, match="POSTGRES_PASSWORD"):
            validate_settings_for_production()


def test_postgres_url_uses_asyncpg():
    assert settings.postgres_url.startswith("postgresql+asyncpg://")


def test_json_formatter_includes_result_id():
    record = logging.LogRecord("brand_analytics.test", logging.INFO, __file__, 1, "wrote %d rows", (3,), None)
    record.result_id = "abc"

    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "wrote 3 rows"
    assert data["level"] == "INFO"
    assert data["result_id"] == "abc"


def test_setup_logging_installs_one_handler():
    root = logging.getLogger()
    saved = root.handlers[:]
    try:
        with patch.object(settings, "log_json", True):
            setup_logging()
            setup_logging()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        root.handlers[:] = saved


def test_text_format_shows_result_id():
    root = logging.getLogger()
    saved = root.handlers[:]
    try:
        with patch.object(settings, "log_json", False):
            setup_logging()
        handler = root.handlers[0]
        tagged = logging.LogRecord("brand_analytics.test", logging.INFO, __file__, 1, "done", (), None)
        tagged.result_id = "abc"
        untagged = logging.LogRecord("brand_analytics.test", logging.INFO, __file__, 1, "idle", (), None)

        assert handler.filter(tagged) and handler.filter(untagged)
        assert handler.format(tagged).endswith("| abc | done")
        assert handler.format(untagged).endswith("| - | idle")
    finally:
        root.handlers[:] = saved


def test_json_formatter_omits_missing_result_id():
    record = logging.LogRecord("brand_analytics.test", logging.INFO, __file__, 1, "idle", (), None)
    ResultIdFilter().filter(record)

    assert "result_id" not in json.loads(JSONFormatter().format(record))


def test_sentry_disabled_without_dsn():
    with patch.object(settings, "sentry_dsn", ""):
        assert init_sentry() is False


def test_connectivity_errors_become_transient():
    with pytest.raises(TransientStoreError, match="fact upsert"):
        with translate_store_errors("fact upsert"):
            raise OperationalError("INSERT", {}, Exception("connection refused"))


def test_integrity_errors_pass_through():
    with pytest.raises(IntegrityError):
        with translate_store_errors("fact upsert"):
            raise IntegrityError("INSERT", {}, Exception("duplicate key"))


def test_cardinality_mismatch_message():
    e = BatchCardinalityMismatch("resolve_canonical_brands", 3, 2)

    assert isinstance(e, TransientStoreError)
    assert (e.expected, e.actual) == (3, 2)
    assert "expected 3 results, got 2" in str(e)
