# SPDX-License-Identifier: MIT
"""RVM Bundler buildpack: install a pinned Bundler into a reusable layer.

Public API
----------
- :func:`detect` - Decide participation and the requested Bundler version
- :func:`build` - Install or reuse Bundler in the ``rvm-bundler`` layer
- :func:`evaluate` - Decide whether the cached layer is stale
- :func:`reconcile` - Apply a verdict: install and commit, or reconfigure

Example
-------
>>> from rvm_bundler import BuildContext, BuildpackInfo, build
>>> result = build(BuildContext(
...     working_dir=Path("/workspace"),
...     cnb_path=Path("/cnb/buildpacks/rvm-bundler"),
...     layers_path=Path("/layers/rvm-bundler"),
...     buildpack_info=BuildpackInfo(name="RVM Bundler", version="1.0.0"),
... ))
"""

from __future__ import annotations

from rvm_bundler.build import LAYER_NAME, build, install_bundler
from rvm_bundler.cache import InstallVerdict, evaluate
from rvm_bundler.checksum import ChecksumCalculator
from rvm_bundler.command import BashCommandRunner, Command, CommandResult, CommandRunner
from rvm_bundler.config import BuildpackConfiguration, PumaConfig, read_configuration
from rvm_bundler.context import (
    BuildContext,
    BuildpackInfo,
    BuildPlan,
    BuildResult,
    DetectContext,
    DetectResult,
    PlanEntry,
    Process,
)
from rvm_bundler.detect import detect
from rvm_bundler.errors import (
    BuildpackConfigError,
    BundlerBuildpackError,
    ConfigurationError,
    DetectError,
    InstallError,
    ManifestIOError,
    ResolutionError,
)
from rvm_bundler.layers import Layer, Layers
from rvm_bundler.lifecycle import LifecycleOutcome, LifecycleState, reconcile
from rvm_bundler.log import LogEmitter, configure_logging
from rvm_bundler.metadata import LayerMetadata
from rvm_bundler.ruby_version import RubyVersionResolver

__version__ = "0.4.0"

__all__ = [
    # Phases
    "build",
    "detect",
    "install_bundler",
    # Cache decision and lifecycle
    "InstallVerdict",
    "LayerMetadata",
    "LifecycleOutcome",
    "LifecycleState",
    "evaluate",
    "reconcile",
    # Collaborators
    "BashCommandRunner",
    "ChecksumCalculator",
    "Command",
    "CommandResult",
    "CommandRunner",
    "RubyVersionResolver",
    # Configuration and context
    "BuildContext",
    "BuildPlan",
    "BuildResult",
    "BuildpackConfiguration",
    "BuildpackInfo",
    "DetectContext",
    "DetectResult",
    "LAYER_NAME",
    "Layer",
    "Layers",
    "PlanEntry",
    "Process",
    "PumaConfig",
    "read_configuration",
    # Logging
    "LogEmitter",
    "configure_logging",
    # Errors
    "BuildpackConfigError",
    "BundlerBuildpackError",
    "ConfigurationError",
    "DetectError",
    "InstallError",
    "ManifestIOError",
    "ResolutionError",
]
