"""
Unit Tests: Structured Logging

Tests:
    - JsonFormatter output with record extras and context fields
    - StructuredLogger child loggers
    - Environment-driven setup
"""

import io
import json
import logging
import sys

import pytest

from uplink.core.config import LibraryConfig
from uplink.core.types import Err
from uplink.observability.logging import (
    JsonFormatter,
    LogLevel,
    StructuredLogger,
    configure_from_env,
    current_context,
    setup_logging,
)


@pytest.fixture
def restore_package_logger():
    """setup_logging() mutates the shared "uplink" logger; put it back."""
    package_logger = logging.getLogger("uplink")
    saved = (package_logger.level, list(package_logger.handlers), package_logger.propagate)
    yield
    package_logger.setLevel(saved[0])
    package_logger.handlers[:] = saved[1]
    package_logger.propagate = saved[2]


class TestJsonFormatter:
    """Tests for JSON log formatting."""
    
    def test_extras_and_context(self, restore_package_logger):
        stream = io.StringIO()
        setup_logging(level=LogLevel.DEBUG, json_output=True, stream=stream)
        logger = StructuredLogger("uplink.test").with_extra(resource="upload")
        
        with logger.context(bucket="photos"):
            assert current_context() == {"bucket": "photos"}
            logger.info("Committed", key="cat.jpg")
        
        record = json.loads(stream.getvalue().strip())
        assert record["message"] == "Committed"
        assert record["level"] == "INFO"
        assert record["logger"] == "uplink.test"
        assert record["resource"] == "upload"
        assert record["bucket"] == "photos"
        assert record["key"] == "cat.jpg"
        assert current_context() == {}
    
    def test_record_extras_stay_out_of_context(self, restore_package_logger):
        """Formatting copies the context; extras of one line never stick."""
        stream = io.StringIO()
        setup_logging(level=LogLevel.DEBUG, json_output=True, stream=stream)
        logger = StructuredLogger("uplink.test")
        
        with logger.context(bucket="photos"):
            logger.info("first", key="cat.jpg")
            logger.info("second")
            assert current_context() == {"bucket": "photos"}
        
        first, second = (json.loads(line) for line in stream.getvalue().splitlines())
        assert first["key"] == "cat.jpg"
        assert "key" not in second
        assert second["bucket"] == "photos"
    
    def test_exception_included(self):
        formatter = JsonFormatter()
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord(
                "uplink.test", logging.ERROR, __file__, 1, "failed", (), sys.exc_info(),
            )
        data = json.loads(formatter.format(record))
        assert "ValueError: bad" in data["exception"]


class TestSetup:
    """Tests for logging setup."""
    
    def test_level_filtering(self, restore_package_logger):
        stream = io.StringIO()
        setup_logging(level=LogLevel.WARNING, stream=stream)
        logger = StructuredLogger("uplink.test")
        
        logger.debug("hidden")
        logger.warning("shown")
        
        output = stream.getvalue()
        assert "hidden" not in output
        assert "shown" in output
    
    def test_configure_from_env(self, monkeypatch, restore_package_logger):
        monkeypatch.setenv("UPLINK_LOG_LEVEL", "info")
        monkeypatch.setenv("UPLINK_LOG_JSON", "1")
        stream = io.StringIO()
        
        config = configure_from_env(stream=stream)
        StructuredLogger("uplink.test").info("hello")
        
        assert config.log_level == "INFO"
        assert json.loads(stream.getvalue())["message"] == "hello"
    
    def test_configure_unknown_level(self, monkeypatch, restore_package_logger):
        monkeypatch.setenv("UPLINK_LOG_LEVEL", "chatty")
        with pytest.raises(ValueError):
            configure_from_env()
    
    def test_configure_invalid_environment(self, monkeypatch, restore_package_logger):
        """A failed environment load surfaces as ValueError, not RuntimeError."""
        monkeypatch.setattr(
            LibraryConfig, "from_env",
            classmethod(lambda cls: Err("Configuration error: bad value")),
        )
        with pytest.raises(ValueError, match="bad value"):
            configure_from_env()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
