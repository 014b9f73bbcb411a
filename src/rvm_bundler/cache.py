# SPDX-License-Identifier: MIT
"""Decide whether the Bundler layer must be (re)installed.

The layer is reusable only when both of the following still hold:
    - the normalized Ruby version equals the one recorded at the last build
    - the fingerprint of Gemfile + Gemfile.lock equals the recorded one

A missing recorded Ruby version is treated as a match. A missing recorded
fingerprint never matches, so the first build always installs. Without a
Gemfile.lock the fingerprint is the empty string and nothing is hashed.

Usage:
    >>> verdict = evaluate(layer.metadata, working_dir, resolver, calculator)
    >>> if verdict.should_run:
    ...     install()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .errors import ManifestIOError
from .metadata import LayerMetadata

logger = logging.getLogger(__name__)

GEMFILE = "Gemfile"
GEMFILE_LOCK = "Gemfile.lock"


@runtime_checkable
class VersionResolver(Protocol):
    def lookup(self, working_dir: Path) -> str:
        """Return the normalized runtime version or raise ResolutionError."""
        ...


@runtime_checkable
class Calculator(Protocol):
    def sum(self, *paths: str) -> str:
        """Return a digest over *paths* or raise ManifestIOError."""
        ...


@dataclass(frozen=True)
class InstallVerdict:
    """Outcome of :func:`evaluate`.

    Attributes:
        should_run: True when the expensive install must run this build.
        fresh_fingerprint: Fingerprint computed for this build ("" without
            a Gemfile.lock).
        fresh_env_version: Ruby version tag resolved for this build.
    """

    should_run: bool
    fresh_fingerprint: str
    fresh_env_version: str


def evaluate(
    prior: LayerMetadata | Mapping[str, Any] | None,
    working_dir: Path,
    version_resolver: VersionResolver,
    calculator: Calculator,
) -> InstallVerdict:
    """Compare the recorded layer state with the current application.

    Args:
        prior: Metadata from the previous build, raw or decoded. ``None`` or
            an empty mapping means no previous build.
        working_dir: Application source root.
        version_resolver: Resolves the active Ruby version.
        calculator: Computes the manifest fingerprint.

    Returns:
        The verdict together with the fresh values to persist.

    Raises:
        ResolutionError: Propagated unchanged from *version_resolver*; the
            fingerprint is not computed in that case.
        ManifestIOError: The manifests could not be read, or Gemfile.lock
            could not be stat'd for a reason other than nonexistence.
    """
    recorded = prior if isinstance(prior, LayerMetadata) else LayerMetadata.from_mapping(prior)
    working_dir = Path(working_dir)

    ruby_version = version_resolver.lookup(working_dir)
    version_match = recorded.ruby_version is None or recorded.ruby_version == ruby_version

    fingerprint = ""
    if _lock_file_exists(working_dir / GEMFILE_LOCK):
        try:
            fingerprint = calculator.sum(str(working_dir / GEMFILE), str(working_dir / GEMFILE_LOCK))
        except OSError as exc:
            raise ManifestIOError(f"Failed to fingerprint {GEMFILE} and {GEMFILE_LOCK}: {exc}") from exc

    fingerprint_match = recorded.cache_sha is not None and recorded.cache_sha == fingerprint
    should_run = not fingerprint_match or not version_match

    logger.debug(
        "Layer verdict should_run=%s (version_match=%s, fingerprint_match=%s)",
        should_run,
        version_match,
        fingerprint_match,
    )
    return InstallVerdict(
        should_run=should_run,
        fresh_fingerprint=fingerprint,
        fresh_env_version=ruby_version,
    )


def _lock_file_exists(path: Path) -> bool:
    try:
        path.stat()
    except FileNotFoundError:
        return False
    except OSError as exc:
        raise ManifestIOError(f"Failed to stat {path}: {exc}") from exc
    return True


__all__ = [
    "Calculator",
    "GEMFILE",
    "GEMFILE_LOCK",
    "InstallVerdict",
    "VersionResolver",
    "evaluate",
]
