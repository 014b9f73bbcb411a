# SPDX-License-Identifier: MIT
"""Lookup of the Ruby version active in the RVM environment."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from .command import Command, CommandExecutionError, CommandRunner
from .errors import ResolutionError

logger = logging.getLogger(__name__)

RVM_CURRENT = Command.of("rvm", "current")

# Order matters: the first pattern that matches wins, and the JRuby patterns
# must run before the MRI ones because "jruby-9.2.13.0" also contains
# "ruby-9.2.13".
_VERSION_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"(jruby-\d+\.\d+\.\d+).\d+",
        r"(jruby-\d+\.\d+)\.\d+",
        r"(jruby-head)",
        r"(ruby-\d+\.\d+)\.\d+",
        r"(ruby-head)",
    )
)


def normalize_ruby_version(text: str) -> str | None:
    """Reduce ``rvm current`` output to a version tag.

    Patch levels are dropped for MRI so that a patch upgrade does not
    invalidate installed gems:

    >>> normalize_ruby_version("ruby-2.7.1\\n")
    'ruby-2.7'
    >>> normalize_ruby_version("jruby-9.2.13.0")
    'jruby-9.2.13'
    """
    for pattern in _VERSION_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


class RubyVersionResolver:
    """Resolve the active Ruby version by asking RVM."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def lookup(self, working_dir: Path) -> str:
        try:
            result = self._runner.run(RVM_CURRENT, cwd=Path(working_dir))
        except CommandExecutionError as exc:
            raise ResolutionError(f"failed to obtain ruby version: {exc}") from exc
        if not result.success:
            raise ResolutionError(
                f"failed to obtain ruby version: exit status {result.returncode}: {result.stdout}{result.stderr}"
            )

        version = normalize_ruby_version(result.stdout)
        if version is None:
            raise ResolutionError("no string with ruby version found")
        logger.debug("Resolved Ruby version %s in %s", version, working_dir)
        return version


__all__ = ["RVM_CURRENT", "RubyVersionResolver", "normalize_ruby_version"]
