"""
Foundation Component Tests
==========================

Settings, exceptions, validators and logging utilities.
"""

import json
import logging
import pytest

from pydantic import ValidationError as PydanticValidationError

from feedworker.config.settings import FeedWorkerSettings, WorkerSettings, get_settings, load_settings
from feedworker.utils.exceptions import (
    ConfigurationError,
    DatabaseError,
    DuplicatePostError,
    ErrorCode,
    FeedFetchError,
    FeedNetworkError,
    FeedRequestError,
    FeedStatusError,
    ValidationError,
)
from feedworker.utils.logging import (
    PerformanceLogger,
    StructuredFormatter,
    get_logger_for_component,
)
from feedworker.utils.validators import URLValidator, validate_name


class TestSettings:
    """Test configuration loading."""

    def test_defaults(self):
        settings = FeedWorkerSettings()

        assert settings.worker.interval_seconds == 60
        assert settings.worker.batch_size == 10
        assert settings.worker.fetch_timeout == 30
        assert settings.database.path == "data/feedworker.db"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("FEEDWORKER_WORKER__BATCH_SIZE", "25")
        monkeypatch.setenv("FEEDWORKER_WORKER__INTERVAL_SECONDS", "2.5")
        monkeypatch.setenv("FEEDWORKER_DATABASE__PATH", "/tmp/feedworker_env.db")

        settings = FeedWorkerSettings()

        assert settings.worker.batch_size == 25
        assert settings.worker.interval_seconds == 2.5
        assert settings.database.path == "/tmp/feedworker_env.db"

    @pytest.mark.parametrize(
        "field, value",
        [("interval_seconds", 0), ("batch_size", 0), ("fetch_timeout", 0)],
    )
    def test_worker_settings_rejects_non_positive(self, field, value):
        with pytest.raises(PydanticValidationError):
            WorkerSettings(**{field: value})

    def test_load_settings_wraps_invalid_values(self, monkeypatch):
        monkeypatch.setenv("FEEDWORKER_WORKER__BATCH_SIZE", "not-a-number")

        with pytest.raises(ConfigurationError) as exc_info:
            load_settings()

        assert exc_info.value.error_code == ErrorCode.CONFIG_INVALID

    def test_load_settings_creates_directories(self, monkeypatch, tmp_path):
        db_path = tmp_path / "nested" / "feeds.db"
        monkeypatch.setenv("FEEDWORKER_DATABASE__PATH", str(db_path))

        load_settings()

        assert db_path.parent.is_dir()

    def test_get_settings_cached(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FEEDWORKER_DATABASE__PATH", str(tmp_path / "cached.db"))

        first = get_settings(reload=True)
        assert get_settings() is first
        assert get_settings(reload=True) is not first

    def test_debug_forces_debug_level(self):
        assert FeedWorkerSettings(debug=True).get_effective_log_level() == "DEBUG"
        assert FeedWorkerSettings(debug=False).get_effective_log_level() == "INFO"


class TestExceptions:
    """Test the exception hierarchy."""

    def test_str_includes_error_code(self):
        error = DatabaseError("locked", error_code=ErrorCode.DATABASE_ERROR)
        assert str(error) == "[DATABASE_ERROR] locked"

    def test_to_dict(self):
        error = FeedStatusError("HTTP 502", status=502, feed_url="https://example.com/rss")
        data = error.to_dict()

        assert data["error_type"] == "FeedStatusError"
        assert data["error_code"] == ErrorCode.FEED_HTTP_STATUS.value
        assert data["context"] == {"status": 502, "feed_url": "https://example.com/rss"}
        assert data["recoverable"] is True

    def test_duplicate_post_is_database_error(self):
        error = DuplicatePostError("feed-1", "https://x/a")

        assert isinstance(error, DatabaseError)
        assert error.feed_id == "feed-1"
        assert error.url == "https://x/a"
        assert error.error_code == ErrorCode.DATABASE_CONSTRAINT

    def test_fetch_errors_share_base(self):
        for error in (FeedNetworkError("reset"), FeedRequestError("bad url"), FeedStatusError("HTTP 503", status=503)):
            assert isinstance(error, FeedFetchError)

        assert FeedNetworkError("reset").error_code == ErrorCode.FEED_NETWORK_ERROR
        assert FeedRequestError("bad url").error_code == ErrorCode.FEED_INVALID_URL


class TestValidators:
    """Test URL and name validation."""

    def test_normalizes_feed_url(self):
        assert URLValidator.validate_feed_url("  HTTPS://Example.COM/rss#top ") == "https://example.com/rss"
        assert URLValidator.validate_feed_url("http://example.com") == "http://example.com/"

    @pytest.mark.parametrize("url", ["", None, "example.com/rss", "file:///etc/passwd", "https://"])
    def test_rejects_invalid_urls(self, url):
        with pytest.raises(ValidationError):
            URLValidator.validate_feed_url(url)

    def test_validate_name(self):
        assert validate_name("  News  ") == "News"
        with pytest.raises(ValidationError):
            validate_name("   ")
        with pytest.raises(ValidationError):
            validate_name("x" * 300)


class TestLogging:
    """Test logging utilities."""

    def test_component_logger_context(self):
        adapter = get_logger_for_component("feed_worker", feed_id="f1")

        assert adapter.logger.name == "feedworker.feed_worker"
        assert adapter.extra == {"component": "feed_worker", "feed_id": "f1"}

    def test_structured_formatter_includes_extra(self):
        record = logging.LogRecord("feedworker.test", logging.INFO, __file__, 1, "hello", (), None)
        record.feed_id = "f1"

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["extra"] == {"feed_id": "f1"}

    def test_performance_logger_records_duration(self, caplog):
        logger = get_logger_for_component("perf_test")

        with caplog.at_level("DEBUG", logger="feedworker"):
            with PerformanceLogger(logger, "unit of work") as perf:
                pass

        assert perf.duration is not None and perf.duration >= 0
        assert "Completed unit of work" in caplog.text
