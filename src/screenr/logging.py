"""Logging setup for Screenr."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import LoggingConfig
from .errors import ConfigError

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
MAIN_LOG_NAME = "screenr.log"
DEBUG_LOG_NAME = "debug.log"


class ConsoleFormatter(logging.Formatter):
    """Formatter that prepends colourised level symbols."""

    SYMBOLS: dict[int, tuple[str, str]] = {
        logging.DEBUG: ("D", "\x1b[36m"),
        logging.INFO: ("I", "\x1b[32m"),
        logging.WARNING: ("!", "\x1b[33m"),
        logging.ERROR: ("X", "\x1b[31m"),
        logging.CRITICAL: ("X", "\x1b[35m"),
    }

    RESET = "\x1b[0m"

    def __init__(self, use_color: bool) -> None:
        super().__init__("%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        symbol, color = self.SYMBOLS.get(record.levelno, ("?", "\x1b[37m"))
        message = super().format(record)
        if self.use_color:
            return f"{color}{symbol}{self.RESET} {message}"
        return f"{symbol} {message}"


def configure_logging(logging_config: LoggingConfig, root_dir: Path) -> None:
    """Install file and console handlers on the root logger."""

    level = _level_from_string(logging_config.level)
    log_dir = (root_dir / "logs").expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        _file_handler(log_dir / MAIN_LOG_NAME, level=logging.INFO),
        _console_handler(),
    ]
    if logging_config.debug_file:
        handlers.append(_file_handler(log_dir / DEBUG_LOG_NAME, level=logging.DEBUG))

    logging.basicConfig(level=level, handlers=handlers, force=True)


def _level_from_string(level: str) -> int:
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ConfigError(f"Unknown log level: {level}")
    return resolved


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=5)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    stream = getattr(handler, "stream", None)
    use_color = bool(getattr(stream, "isatty", lambda: False)())
    handler.setFormatter(ConsoleFormatter(use_color))
    return handler


__all__ = ["configure_logging"]
