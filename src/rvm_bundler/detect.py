# SPDX-License-Identifier: MIT
"""Detect phase: participate when the app has a Gemfile."""

from __future__ import annotations

from pathlib import Path

from .config import read_configuration
from .context import BUNDLER_PLAN_ENTRY, BuildPlan, DetectContext, DetectResult, Provision, Requirement
from .errors import DetectError
from .log import LogEmitter
from .parsers import BuildpackYMLParser, BundlerVersionParser, VersionParser


def detect(
    context: DetectContext,
    *,
    bundler_version_parser: VersionParser | None = None,
    buildpack_yml_parser: VersionParser | None = None,
    emitter: LogEmitter | None = None,
) -> DetectResult:
    """Return the build plan for an application with a Gemfile.

    The Bundler version starts from ``default_bundler_version`` and is
    overridden by Gemfile.lock and then buildpack.yml; the last source that
    names a version wins.

    Raises:
        DetectError: The application has no Gemfile.
        BuildpackConfigError: buildpack.toml or buildpack.yml is invalid.
    """
    emitter = emitter or LogEmitter()
    working_dir = Path(context.working_dir)
    if not (working_dir / "Gemfile").exists():
        raise DetectError(f"No Gemfile found in {working_dir}")

    configuration = read_configuration(context.cnb_path)
    version = configuration.default_bundler_version

    sources: list[tuple[VersionParser, str]] = [
        (bundler_version_parser or BundlerVersionParser(), "Gemfile.lock"),
        (buildpack_yml_parser or BuildpackYMLParser(), "buildpack.yml"),
    ]
    for parser, filename in sources:
        path = working_dir / filename
        found = parser.parse_version(path)
        if found:
            version = found
            emitter.detail("Found Bundler version in %s: %s", path, version)

    emitter.detail("Detected Bundler version: %s", version)
    return DetectResult(
        plan=BuildPlan(
            provides=(Provision(name=BUNDLER_PLAN_ENTRY),),
            requires=(Requirement(name=BUNDLER_PLAN_ENTRY, version=version),),
        )
    )


__all__ = ["detect"]
