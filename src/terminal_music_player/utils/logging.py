"""Console logging setup and a color-aware formatter."""

from __future__ import annotations

import json
import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import IO, Any

LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[3] / "logging_config.json"

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name and dims the logger name.

    Colors are disabled when the ``NO_COLOR`` environment variable is set or
    when the target stream is not a TTY, so piping the player's log to a file
    keeps it free of escape codes.
    """

    COLORS: dict[int, str] = {
        logging.DEBUG: "\033[36m",  # cyan
        logging.INFO: "\033[32m",  # green
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",  # red
        logging.CRITICAL: "\033[1;31m",  # bold red
    }
    DIM = "\033[2m"
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: str | None = DEFAULT_FORMAT,
        datefmt: str | None = DEFAULT_DATEFMT,
        style: Any = "%",
        validate: bool = True,
        *,
        stream: IO[str] | None = None,
    ) -> None:
        super().__init__(fmt, datefmt, style, validate)
        self._stream = stream

    def use_color(self) -> bool:
        if os.environ.get("NO_COLOR") is not None:
            return False
        stream = self._stream or sys.stderr
        isatty = getattr(stream, "isatty", None)
        return bool(isatty and isatty())

    def format(self, record: logging.LogRecord) -> str:
        if self.use_color():
            color = self.COLORS.get(record.levelno, "")
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{self.RESET}"
            record.name = f"{self.DIM}{record.name}{self.RESET}"
        return super().format(record)


def setup_logging(log_level: str = "INFO", config_path: Path | None = None) -> None:
    """Configure logging from ``logging_config.json``, else a colored basic config."""
    resolved_level = getattr(logging, log_level.upper(), logging.INFO)
    path = config_path or LOGGING_CONFIG_PATH

    try:
        with open(path) as f:
            config = json.load(f)
        logging.config.dictConfig(config)
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ColoredFormatter(stream=sys.stderr))
        logging.basicConfig(level=resolved_level, handlers=[handler], force=True)
        logging.getLogger(__name__).warning(
            "Could not load %s, falling back to basic config", path
        )

    logging.getLogger().setLevel(resolved_level)
