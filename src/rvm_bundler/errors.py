# SPDX-License-Identifier: MIT
"""Exception hierarchy for the RVM Bundler buildpack.

Every failure surfaced by this package derives from
:class:`BundlerBuildpackError` so the embedding build process can translate
any of them into a nonzero exit status with a single ``except`` clause.
"""

from __future__ import annotations


class BundlerBuildpackError(RuntimeError):
    """Base class for all buildpack failures."""


class ResolutionError(BundlerBuildpackError):
    """Raised when the active Ruby version cannot be determined."""


class ManifestIOError(BundlerBuildpackError):
    """Raised when the Gemfile or Gemfile.lock cannot be read or stat'd."""


class InstallError(BundlerBuildpackError):
    """Raised when an install step exits nonzero."""


class ConfigurationError(BundlerBuildpackError):
    """Raised when the bundle path reconfiguration step fails."""


class BuildpackConfigError(BundlerBuildpackError):
    """Raised when buildpack.toml or buildpack.yml is missing or invalid."""


class DetectError(BundlerBuildpackError):
    """Raised when the application does not qualify for this buildpack."""


__all__ = [
    "BuildpackConfigError",
    "BundlerBuildpackError",
    "ConfigurationError",
    "DetectError",
    "InstallError",
    "ManifestIOError",
    "ResolutionError",
]
