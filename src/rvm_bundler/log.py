# SPDX-License-Identifier: MIT
"""Build log output for the buildpack.

Buildpack output is read by humans in CI logs, so it is rendered as an
indented outline rather than timestamped records:

    RVM Bundler Buildpack 1.0.0
      Installing Bundler version '2.1.4'
        Executing: gem install -N rubygems-update

:class:`LogEmitter` wraps a standard :class:`logging.Logger`; handlers are
attached once with :func:`configure_logging`.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

DEFAULT_LOGGER_NAME = "rvm_bundler"

_INDENT = "  "


def configure_logging(
    stream: TextIO | None = None,
    *,
    verbose: bool = True,
    name: str = DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """Attach a plain message handler to the package logger.

    Repeated calls replace the previous handler instead of stacking a second
    one, so tests can point the log at a fresh buffer.

    Args:
        stream: Output stream (default: stdout, where lifecycle tools
            expect buildpack output).
        verbose: Emit DEBUG records when True, INFO and above otherwise.
        name: Logger name to configure.

    Returns:
        The configured logger.
    """
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        if getattr(handler, "_rvm_bundler_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler._rvm_bundler_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    return logger


class LogEmitter:
    """Outline-style emitter over a standard logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def title(self, message: str, *args: object) -> None:
        self._emit(0, message, args)

    def process(self, message: str, *args: object) -> None:
        self._emit(1, message, args)

    def subprocess(self, message: str, *args: object) -> None:
        self._emit(2, message, args)

    def action(self, message: str, *args: object) -> None:
        self._emit(2, message, args)

    def detail(self, message: str, *args: object) -> None:
        self._emit(2, message, args, level=logging.DEBUG)

    def break_(self) -> None:
        self._logger.info("")

    def _emit(self, depth: int, message: str, args: tuple[object, ...], *, level: int = logging.INFO) -> None:
        text = message % args if args else message
        prefix = _INDENT * depth
        for line in text.rstrip("\n").split("\n"):
            self._logger.log(level, "%s%s", prefix, line)


__all__ = ["DEFAULT_LOGGER_NAME", "LogEmitter", "configure_logging"]
