"""Console logging with info, debug, success, warning and error levels."""

from __future__ import annotations

import os
import re
import sys
from enum import Enum
from typing import Optional, TextIO


class Color(str, Enum):
    """256-colour palette identifiers used for terminal styling."""

    INFO = "6"
    DEBUG = "248"
    SUCCESS = "46"
    WARNING = "220"
    ERROR = "1"
    DARK_GRAY = "240"
    LIGHT_GRAY = "248"

    def __str__(self) -> str:
        return self.value


class LogLevel(str, Enum):
    """Supported logging levels."""

    DEBUG = "debug"
    INFO = "info"

    def __str__(self) -> str:
        return self.value


_ICON_DEBUG = "\u2699"
_VERB_RE = re.compile(r"%(%|v)")


def _format(fmt: str, args: tuple) -> str:
    if not args:
        return fmt
    converted = _VERB_RE.sub(lambda m: "%%" if m.group(1) == "%" else "%s", fmt)
    return converted % args


def _render(color: Color, text: str, stream: TextIO) -> str:
    isatty = getattr(stream, "isatty", None)
    if isatty is None or not isatty() or os.environ.get("NO_COLOR"):
        return text
    return f"\x1b[38;5;{color.value}m{text}\x1b[0m"


def _emit(stream: TextIO, message: str) -> None:
    stream.write(message)
    if not message.endswith("\n"):
        stream.write("\n")
    stream.flush()


class Logger:
    """Writes printf-style messages to the console."""

    def __init__(self, level: LogLevel | str = LogLevel.INFO) -> None:
        self.level = level

    def info(self, fmt: str, *args) -> None:
        _emit(sys.stdout, _format(fmt, args))

    def debug(self, fmt: str, *args) -> None:
        if self.level != LogLevel.DEBUG:
            return
        message = _format(fmt, args)
        icon = _render(Color.DEBUG, _ICON_DEBUG, sys.stdout)
        _emit(sys.stdout, f"{icon} {message}")

    def success(self, fmt: str, *args) -> None:
        _emit(sys.stdout, _format(fmt, args))

    def error(self, fmt: str, *args) -> None:
        _emit(sys.stderr, _format(fmt, args))

    def warning(self, fmt: str, *args) -> None:
        _emit(sys.stdout, _format(fmt, args))


_global_logger: Optional[Logger] = None


def init_logger(level: LogLevel | str) -> None:
    """Initialise the shared logger with the given level."""
    global _global_logger
    _global_logger = Logger(level)


def get_logger() -> Logger:
    """Return the shared logger, creating one at info level if needed."""
    if _global_logger is None:
        init_logger(LogLevel.INFO)
    assert _global_logger is not None
    return _global_logger


def info(fmt: str, *args) -> None:
    get_logger().info(fmt, *args)


def debug(fmt: str, *args) -> None:
    get_logger().debug(fmt, *args)


def success(fmt: str, *args) -> None:
    get_logger().success(fmt, *args)


def error(fmt: str, *args) -> None:
    get_logger().error(fmt, *args)


def warning(fmt: str, *args) -> None:
    get_logger().warning(fmt, *args)