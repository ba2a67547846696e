"""Tests for ColoredFormatter and setup_logging."""

import logging
from io import StringIO
from unittest.mock import patch

import pytest

from terminal_music_player.utils.logging import ColoredFormatter, setup_logging

RESET = "\033[0m"
DIM = "\033[2m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[1;31m",
}


def _make_record(level: int, message: str = "test") -> logging.LogRecord:
    return logging.LogRecord(
        name="player.controller",
        level=level,
        pathname="controller.py",
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


def _tty_stream() -> StringIO:
    stream = StringIO()
    stream.isatty = lambda: True  # type: ignore[method-assign]
    return stream


class TestColoredFormatter:
    """Tests for ANSI color formatting."""

    def _tty_formatter(self) -> ColoredFormatter:
        return ColoredFormatter("%(levelname)s | %(name)s | %(message)s", stream=_tty_stream())

    @pytest.mark.parametrize(
        "level",
        [logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL],
    )
    def test_color_applied_per_level(self, level: int):
        """Should apply the correct ANSI color code for each level."""
        output = self._tty_formatter().format(_make_record(level))

        assert LEVEL_COLORS[level] in output
        assert RESET in output

    def test_logger_name_dimmed(self):
        """Should dim the logger name."""
        output = self._tty_formatter().format(_make_record(logging.INFO))
        assert f"{DIM}player.controller{RESET}" in output

    def test_no_color_when_no_color_env_set(self, monkeypatch):
        """Should not apply colors when NO_COLOR env var is set."""
        monkeypatch.setenv("NO_COLOR", "1")
        output = self._tty_formatter().format(_make_record(logging.INFO))

        assert "\033[" not in output

    def test_no_color_when_stream_not_tty(self, monkeypatch):
        """Should not apply colors when stream is not a TTY."""
        monkeypatch.delenv("NO_COLOR", raising=False)
        fmt = ColoredFormatter("%(levelname)s | %(message)s", stream=StringIO())
        output = fmt.format(_make_record(logging.ERROR))

        assert "\033[" not in output

    def test_format_output_matches_pattern(self, monkeypatch):
        """Should produce output matching the configured format string."""
        monkeypatch.delenv("NO_COLOR", raising=False)
        output = self._tty_formatter().format(_make_record(logging.INFO, "hello world"))

        plain = (
            output.replace(LEVEL_COLORS[logging.INFO], "").replace(DIM, "").replace(RESET, "")
        )
        assert plain == "INFO | player.controller | hello world"

    def test_original_record_not_mutated(self, monkeypatch):
        """Should not mutate the original LogRecord."""
        monkeypatch.delenv("NO_COLOR", raising=False)
        record = _make_record(logging.WARNING)

        self._tty_formatter().format(record)

        assert record.levelname == "WARNING"
        assert record.name == "player.controller"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_loads_json_config(self, tmp_path):
        """Should apply a dictConfig from the given file."""
        config = tmp_path / "logging.json"
        config.write_text('{"version": 1, "disable_existing_loggers": false}')

        with patch("logging.config.dictConfig") as dict_config:
            setup_logging("DEBUG", config_path=config)

        dict_config.assert_called_once_with({"version": 1, "disable_existing_loggers": False})
        assert logging.getLogger().level == logging.DEBUG

    def test_falls_back_when_config_missing(self, tmp_path):
        """Should fall back to a basic config and warn when the file is missing."""
        missing = tmp_path / "missing.json"

        with patch("logging.basicConfig") as basic_config:
            setup_logging("WARNING", config_path=missing)

        basic_config.assert_called_once()
        handler = basic_config.call_args.kwargs["handlers"][0]
        assert isinstance(handler.formatter, ColoredFormatter)
        assert logging.getLogger().level == logging.WARNING

    def test_falls_back_on_invalid_json(self, tmp_path):
        """Should fall back when the file is not valid JSON."""
        config = tmp_path / "logging.json"
        config.write_text("{not json")

        with patch("logging.basicConfig") as basic_config:
            setup_logging("INFO", config_path=config)

        basic_config.assert_called_once()

    def test_unknown_level_defaults_to_info(self, tmp_path):
        """Should treat an unknown level name as INFO."""
        config = tmp_path / "logging.json"
        config.write_text('{"version": 1, "disable_existing_loggers": false}')

        with patch("logging.config.dictConfig"):
            setup_logging("chatty", config_path=config)

        assert logging.getLogger().level == logging.INFO
