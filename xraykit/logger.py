"""Internal logging helpers with lazily formatted messages."""

import logging
import sys
from typing import Any, Callable

__all__ = [
    "set_logger",
    "get_logger",
    "debug",
    "debugf",
    "debug_deferred",
    "info",
    "infof",
    "warn",
    "warnf",
    "error",
    "errorf",
]

_SHORT_LEVEL_NAMES = {logging.WARNING: "WARN", logging.CRITICAL: "FATAL"}


class _Formatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        level = _SHORT_LEVEL_NAMES.get(record.levelno, record.levelname)
        return f"{self.formatTime(record)} [{level}] {record.getMessage()}"


def _default_logger() -> logging.Logger:
    log = logging.getLogger("xraykit")
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_Formatter())
        log.addHandler(handler)
        log.setLevel(logging.DEBUG)
        log.propagate = False
    return log


_logger: logging.Logger = _default_logger()


def set_logger(logger: logging.Logger) -> None:
    """Replace the logger used by the package.

    Raises TypeError if ``logger`` has no callable ``log`` method.
    """
    global _logger
    if not callable(getattr(logger, "log", None)):
        raise TypeError(f"logger must provide a callable 'log' method, got {logger!r}")
    _logger = logger


def get_logger() -> logging.Logger:
    """Return the logger used by the package."""
    return _logger


def _sprint(args: tuple) -> str:
    # Operands are separated by a space only when neither side is a string.
    pieces = []
    previous_is_str = True
    for index, arg in enumerate(args):
        is_str = isinstance(arg, str)
        if index and not is_str and not previous_is_str:
            pieces.append(" ")
        pieces.append(str(arg))
        previous_is_str = is_str
    return "".join(pieces)


class _Lazy:
    """A message that is only rendered when a handler emits it."""

    __slots__ = ("_render",)

    def __init__(self, render: Callable[[], str]) -> None:
        self._render = render

    def __str__(self) -> str:
        return self._render()


def _printf(format: str, args: tuple) -> _Lazy:
    return _Lazy(lambda: format % args if args else format)


def _print(args: tuple) -> _Lazy:
    return _Lazy(lambda: _sprint(args))


def debug(*args: Any) -> None:
    _logger.log(logging.DEBUG, _print(args))


def debugf(format: str, *args: Any) -> None:
    _logger.log(logging.DEBUG, _printf(format, args))


def debug_deferred(fn: Callable[[], str]) -> None:
    """Log at debug level the text returned by ``fn``, calling it only if needed."""
    _logger.log(logging.DEBUG, _Lazy(fn))


def info(*args: Any) -> None:
    _logger.log(logging.INFO, _print(args))


def infof(format: str, *args: Any) -> None:
    _logger.log(logging.INFO, _printf(format, args))


def warn(*args: Any) -> None:
    _logger.log(logging.WARNING, _print(args))


def warnf(format: str, *args: Any) -> None:
    _logger.log(logging.WARNING, _printf(format, args))


def error(*args: Any) -> None:
    _logger.log(logging.ERROR, _print(args))


def errorf(format: str, *args: Any) -> None:
    _logger.log(logging.ERROR, _printf(format, args))