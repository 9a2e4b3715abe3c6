"""Tests for logging setup and settings."""

from __future__ import annotations

import json
import logging
from typing import Generator

import pytest
from pydantic import ValidationError

from formtree.lib.errors import UnknownFieldError
from formtree.lib.observability import FormContextFilter, JSONFormatter, bind_form, current_form, setup_logging
from formtree.lib.settings import FormSettings, LoggingConfig


@pytest.fixture
def restore_root_logger() -> Generator[None, None, None]:
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def unbound_form() -> Generator[None, None, None]:
    bind_form(None)
    yield
    bind_form(None)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("formtree.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self, unbound_form) -> None:
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "formtree.test"
        assert data["message"] == "hello world"
        assert data["form"] == "-"
        assert data["timestamp"].endswith("Z")
        assert "error" not in data

    def test_form_from_record_wins(self, unbound_form) -> None:
        bind_form("signup")

        data = json.loads(JSONFormatter().format(_record(form="contact")))

        assert data["form"] == "contact"

    def test_form_from_binding(self, unbound_form) -> None:
        bind_form("signup")

        assert json.loads(JSONFormatter().format(_record()))["form"] == "signup"

    def test_error_payload_is_top_level(self, unbound_form) -> None:
        """A FormError's to_dict() passed as extra is emitted under 'error'."""
        error = UnknownFieldError("nope", form="contact")

        data = json.loads(JSONFormatter().format(_record(error=error.to_dict())))

        assert data["error"]["error_type"] == "UnknownFieldError"
        assert data["error"]["details"] == {"field": "nope"}


class TestFormContextFilter:
    """Tests for bind_form and FormContextFilter."""

    def test_tags_records_with_bound_form(self, unbound_form) -> None:
        context = FormContextFilter()
        bind_form("contact")
        record = _record()

        assert context.filter(record) is True
        assert record.form == "contact"
        assert current_form() == "contact"

    def test_placeholder_when_unbound(self, unbound_form) -> None:
        record = _record()
        FormContextFilter().filter(record)
        assert record.form == "-"

    def test_console_output_carries_form(self, restore_root_logger, unbound_form, tmp_path) -> None:
        """Engine loggers are tagged without passing anything themselves."""
        log_file = tmp_path / "console.log"
        setup_logging(level="INFO", log_file=str(log_file))
        bind_form("contact")

        logging.getLogger("formtree.lib.state").info("Replaced form definition")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "formtree.lib.state (contact): Replaced form definition" in log_file.read_text(encoding="utf-8")


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_default_level(self, restore_root_logger) -> None:
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_verbose_wins(self, restore_root_logger) -> None:
        setup_logging(verbose=True, level="ERROR")
        assert logging.getLogger().level == logging.DEBUG

    def test_json_and_file(self, restore_root_logger, tmp_path) -> None:
        log_file = tmp_path / "formtree.log"

        setup_logging(json_format=True, log_file=str(log_file), level="INFO")
        logging.getLogger("formtree.test.file").info("to file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        assert json.loads(line)["message"] == "to file"

    def test_unknown_level_falls_back_to_warning(self, restore_root_logger) -> None:
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.WARNING


class TestSettings:
    """Tests for FormSettings and LoggingConfig."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        for var in ("FORMTREE_LOG_LEVEL", "FORMTREE_LOG_FORMAT", "FORMTREE_LOG_FILE"):
            monkeypatch.delenv(var, raising=False)

        config = FormSettings().logging_config()

        assert config == LoggingConfig(level="WARNING", format="console", file=None)

    def test_environment(self, monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("FORMTREE_LOG_LEVEL", "debug")
        monkeypatch.setenv("FORMTREE_LOG_FORMAT", "JSON")

        config = FormSettings().logging_config()

        assert config.level == "DEBUG"
        assert config.format == "json"

    def test_dotenv_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("FORMTREE_LOG_LEVEL", raising=False)
        (tmp_path / ".env").write_text("FORMTREE_LOG_LEVEL=info\n", encoding="utf-8")

        assert FormSettings().logging_config().level == "INFO"

    def test_arguments_override(self, monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("FORMTREE_LOG_LEVEL", "ERROR")

        config = FormSettings().logging_config(level="DEBUG", file="out.log")

        assert config.level == "DEBUG"
        assert config.file == "out.log"

    def test_invalid_values(self) -> None:
        with pytest.raises(ValidationError, match="level must be one of"):
            LoggingConfig(level="LOUD")
        with pytest.raises(ValidationError, match="format must be one of"):
            LoggingConfig(format="xml")
