# SPDX-License-Identifier: MIT
"""Build phase: install Bundler into the ``rvm-bundler`` layer.

The expensive part (RubyGems update, Bundler install, ``bundle install``)
runs only when :func:`~rvm_bundler.cache.evaluate` says the cached layer is
stale. Otherwise the cached gems are reused and only the bundle path is
re-declared, because Bundler's local config does not survive between builds.

``BUNDLE_USER_CONFIG`` is handed to every command through the runner's
``env`` argument; the process environment is never modified.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .cache import Calculator, VersionResolver, evaluate
from .checksum import ChecksumCalculator
from .command import BashCommandRunner, Command, CommandRunner, require_success
from .config import BuildpackConfiguration, bundler_major_version, read_configuration
from .context import BUNDLER_PLAN_ENTRY, BuildContext, BuildResult
from .errors import BundlerBuildpackError, ConfigurationError, InstallError
from .layers import Layer, Layers
from .lifecycle import Clock, LifecycleState, reconcile, utc_now
from .log import LogEmitter
from .metadata import LayerMetadata
from .puma import PumaInstaller, create_puma_process
from .ruby_version import RubyVersionResolver

logger = logging.getLogger(__name__)

LAYER_NAME = "rvm-bundler"
BUNDLER_VERSION_KEY = "rvm_bundler_version"
BUNDLE_USER_CONFIG = "BUNDLE_USER_CONFIG"

# Bundler 1.x needs an older RubyGems; newer Bundlers take the latest one.
RUBYGEMS_VERSION_FOR_BUNDLER_1 = "3.0.8"


def bundler_version(context: BuildContext, configuration: BuildpackConfiguration) -> str:
    """Return the plan's requested Bundler version, else the configured default."""
    requested = context.plan_metadata(BUNDLER_PLAN_ENTRY, BUNDLER_VERSION_KEY)
    if isinstance(requested, str):
        return requested
    return configuration.default_bundler_version


def bundle_path_command(layer_path: Path, major_version: int) -> Command:
    args = ["config"]
    if major_version > 1:
        args.append("set")
    args.extend(["--local", "path", str(layer_path)])
    return Command.of("bundle", *args)


def rubygems_commands(major_version: int) -> list[Command]:
    pinned = RUBYGEMS_VERSION_FOR_BUNDLER_1 if major_version == 1 else ""
    install = ["install", "-N", "rubygems-update"]
    update = ["update", "-N", "--system"]
    if pinned:
        install.extend(["-v", pinned])
        update.append(pinned)
    return [
        Command.of("gem", *install),
        Command.of("gem", *update),
        Command.of("gem", "cleanup"),
    ]


def bundler_install_command(version: str) -> Command:
    args = ["install", "-N", "--default", "bundler"]
    if version:
        args.extend(["-v", version])
    return Command.of("gem", *args)


def prepare_user_config(working_dir: Path, layer: Layer) -> Path:
    """Seed ``<layer>/config`` from the application's ``.bundle/config``.

    A stale copy in the layer is always removed first. When the app ships a
    local config, the pristine version kept in ``.bundle/config.bak`` is
    restored (an earlier build may have modified ``.bundle/config``), copied
    into the layer, and backed up again.

    Returns:
        Path to use as ``BUNDLE_USER_CONFIG``.
    """
    local_config = working_dir / ".bundle" / "config"
    backup_config = working_dir / ".bundle" / "config.bak"
    global_config = layer.path / "config"

    try:
        if global_config.is_dir():
            shutil.rmtree(global_config)
        else:
            global_config.unlink(missing_ok=True)

        if local_config.exists():
            layer.path.mkdir(parents=True, exist_ok=True)
            if backup_config.exists():
                shutil.copyfile(backup_config, local_config)
            shutil.copyfile(local_config, global_config)
            shutil.copyfile(local_config, backup_config)
    except OSError as exc:
        raise ConfigurationError(f"Failed to prepare Bundler user config: {exc}") from exc
    return global_config


class BundlerInstaller:
    """Sequences the commands of one build against one layer."""

    def __init__(
        self,
        context: BuildContext,
        configuration: BuildpackConfiguration,
        layer: Layer,
        *,
        runner: CommandRunner,
        puma_installer: PumaInstaller,
        user_config: Path,
        emitter: LogEmitter,
    ) -> None:
        self.context = context
        self.configuration = configuration
        self.layer = layer
        self.runner = runner
        self.puma_installer = puma_installer
        self.env = {BUNDLE_USER_CONFIG: str(user_config)}
        self.version = bundler_version(context, configuration)
        self.major_version = bundler_major_version(self.version)
        self._emitter = emitter

    def install(self) -> None:
        self._emitter.process("Installing Bundler version '%s'", self.version)
        for command in rubygems_commands(self.major_version):
            self._run(command, InstallError)

        self.puma_installer.install_puma(self.context.working_dir, self.configuration)

        self._run(bundler_install_command(self.version), InstallError)
        self._run(bundle_path_command(self.layer.path, self.major_version), InstallError)
        self._run(Command.of("bundle", "install"), InstallError)
        self._run(Command.of("bundle", "clean"), InstallError)

    def configure(self) -> None:
        self._run(bundle_path_command(self.layer.path, self.major_version), ConfigurationError)

    def _run(self, command: Command, error_cls: type[BundlerBuildpackError]) -> None:
        result = self.runner.run(command, cwd=self.context.working_dir, env=self.env)
        require_success(result, error_cls)


def install_bundler(
    context: BuildContext,
    configuration: BuildpackConfiguration,
    *,
    runner: CommandRunner,
    version_resolver: VersionResolver,
    calculator: Calculator,
    puma_installer: PumaInstaller | None = None,
    emitter: LogEmitter | None = None,
    clock: Clock = utc_now,
) -> BuildResult:
    """Install or reuse Bundler and return the build result.

    Raises:
        BuildpackConfigError: The Bundler version cannot be parsed.
        ResolutionError: The Ruby version cannot be determined.
        ManifestIOError: Gemfile or Gemfile.lock cannot be read.
        InstallError: An install step failed; layer metadata is unchanged.
        ConfigurationError: The bundle path could not be configured.
    """
    emitter = emitter or LogEmitter()
    puma_installer = puma_installer or PumaInstaller(emitter)

    emitter.title("%s %s", context.buildpack_info.name, context.buildpack_info.version)
    version = bundler_version(context, configuration)
    emitter.process("default Bundler version: %s", version)
    bundler_major_version(version)

    layers = Layers(context.layers_path)
    layer = layers.get(LAYER_NAME)
    layer.build = True
    layer.cache = True
    layer.launch = True

    verdict = evaluate(layer.metadata, context.working_dir, version_resolver, calculator)
    logger.debug("Layer %s verdict: %s", layer.path, verdict)

    user_config = prepare_user_config(context.working_dir, layer)
    layer.default_build_env(BUNDLE_USER_CONFIG, str(user_config))
    layer.default_launch_env(BUNDLE_USER_CONFIG, str(user_config))

    installer = BundlerInstaller(
        context,
        configuration,
        layer,
        runner=runner,
        puma_installer=puma_installer,
        user_config=user_config,
        emitter=emitter,
    )

    def commit(metadata: LayerMetadata) -> None:
        layer.metadata = metadata
        layers.write(layer)

    if not verdict.should_run:
        emitter.process("Reusing cached layer %s", layer.path)
        emitter.break_()

    outcome = reconcile(
        verdict,
        installer.install,
        installer.configure,
        commit=commit,
        version=version,
        clock=clock,
    )

    if outcome.state is LifecycleState.REUSED:
        layers.write(layer)
    else:
        emitter.action("RVM Bundler CNB completed in %.3fs", outcome.duration_seconds or 0.0)
        emitter.break_()

    result = BuildResult(layers=[layer])
    process = create_puma_process(context.working_dir, emitter)
    if process is not None:
        result.processes.append(process)
    return result


def build(
    context: BuildContext,
    *,
    runner: CommandRunner | None = None,
    version_resolver: VersionResolver | None = None,
    calculator: Calculator | None = None,
    puma_installer: PumaInstaller | None = None,
    emitter: LogEmitter | None = None,
    clock: Clock = utc_now,
) -> BuildResult:
    """Read ``buildpack.toml`` and run :func:`install_bundler`.

    Collaborators default to the production implementations.
    """
    configuration = read_configuration(context.cnb_path)
    emitter = emitter or LogEmitter()
    runner = runner or BashCommandRunner(emitter=emitter)
    return install_bundler(
        context,
        configuration,
        runner=runner,
        version_resolver=version_resolver or RubyVersionResolver(runner),
        calculator=calculator or ChecksumCalculator(),
        puma_installer=puma_installer,
        emitter=emitter,
        clock=clock,
    )


__all__ = [
    "BUNDLE_USER_CONFIG",
    "BundlerInstaller",
    "LAYER_NAME",
    "RUBYGEMS_VERSION_FOR_BUNDLER_1",
    "build",
    "bundle_path_command",
    "bundler_install_command",
    "bundler_version",
    "install_bundler",
    "prepare_user_config",
    "rubygems_commands",
]
