"""
Unit tests for logging helpers.
"""

import json
import logging

from crime_pulse.shared.logging_utils import JsonFormatter, configure_logging, log_event


class TestLogEvent:
    """Test cases for log_event."""

    def test_emits_compact_json(self, caplog):
        logger = logging.getLogger("crime_pulse.test")
        with caplog.at_level(logging.INFO, logger="crime_pulse.test"):
            log_event(logger, logging.INFO, "view_loaded", dataset="austin", rows=3)

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload == {"event": "view_loaded", "dataset": "austin", "rows": 3}


class TestJsonFormatter:
    """Test cases for JsonFormatter."""

    def test_includes_extra_context(self):
        record = logging.makeLogRecord(
            {"name": "x", "levelname": "INFO", "msg": "hello %s", "args": ("world",)}
        )
        record.dataset = "austin"

        payload = json.loads(JsonFormatter(include_timestamp=False).format(record))

        assert payload == {
            "logger": "x",
            "level": "INFO",
            "message": "hello world",
            "dataset": "austin",
        }


class TestConfigureLogging:
    """Test cases for configure_logging."""

    def test_json_format(self, test_config, mocker):
        basic_config = mocker.patch("crime_pulse.shared.logging_utils.logging.basicConfig")
        config = test_config.model_copy(
            update={"logging": test_config.logging.model_copy(update={"format": "json"})}
        )

        configure_logging(config)

        kwargs = basic_config.call_args.kwargs
        assert kwargs["level"] == "DEBUG"
        assert kwargs["force"] is True
        assert isinstance(kwargs["handlers"][0].formatter, JsonFormatter)

    def test_text_format(self, test_config, mocker):
        basic_config = mocker.patch("crime_pulse.shared.logging_utils.logging.basicConfig")

        configure_logging(test_config)

        formatter = basic_config.call_args.kwargs["handlers"][0].formatter
        assert not isinstance(formatter, JsonFormatter)
        assert "%(asctime)s" in formatter._fmt
