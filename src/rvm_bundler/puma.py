# SPDX-License-Identifier: MIT
"""Puma web server support: config stub, Gemfile entry and web process."""

from __future__ import annotations

import re
from pathlib import Path

from .config import BuildpackConfiguration
from .context import Process
from .errors import InstallError
from .log import LogEmitter

PUMA_CONFIG = Path("config") / "puma.rb"
PUMA_COMMAND = "bundle exec puma"

_WEB_PROCESS_RE = re.compile(r"^web:.*$")


def render_puma_config(configuration: BuildpackConfiguration) -> str:
    puma = configuration.puma
    lines = [
        f"bind '{puma.bind}'",
        f"workers {puma.workers}",
        f"threads {puma.threads}, {puma.threads}",
        "log_requests true",
    ]
    if puma.preload:
        lines.append("preload_app!")
    lines.append("activate_control_app 'unix:///tmp/pumactl.sock', { no_token: true }")
    return "\n".join(lines) + "\n"


class PumaInstaller:
    """Prepare an application to be served by Puma."""

    def __init__(self, emitter: LogEmitter | None = None) -> None:
        self._emitter = emitter or LogEmitter()

    def install_puma(self, working_dir: Path, configuration: BuildpackConfiguration) -> None:
        """Write ``config/puma.rb`` if missing and make sure Puma is bundled.

        Does nothing unless ``install_puma`` is enabled.

        Raises:
            InstallError: If the config stub, Gemfile.lock or Gemfile cannot
                be read or written.
        """
        if not configuration.install_puma:
            return

        working_dir = Path(working_dir)
        config_path = working_dir / PUMA_CONFIG
        try:
            if not config_path.exists():
                self._emitter.process("Creating configuration file for Puma at: '%s'", config_path)
                config_path.parent.mkdir(parents=True, exist_ok=True)
                config_path.write_text(render_puma_config(configuration), encoding="utf-8")
            else:
                self._emitter.process("Using config/puma.rb supplied by application")

            if _lock_has_puma(working_dir / "Gemfile.lock"):
                self._emitter.process("Puma is present in Gemfile.lock")
                self._emitter.break_()
                return

            self._emitter.process("Adding Puma version: '%s' to Gemfile", configuration.puma.version)
            with (working_dir / "Gemfile").open("a", encoding="utf-8") as gemfile:
                gemfile.write(f'\ngem "puma", "{configuration.puma.version}"\n')
        except OSError as exc:
            raise InstallError(f"Failed to prepare Puma: {exc}") from exc


def _lock_has_puma(lock_path: Path) -> bool:
    with lock_path.open(encoding="utf-8", errors="replace") as handle:
        return any(line.strip().startswith("puma (") for line in handle)


def create_puma_process(working_dir: Path, emitter: LogEmitter | None = None) -> Process | None:
    """Return the Puma ``web`` process unless the Procfile already has one."""
    emitter = emitter or LogEmitter()
    procfile = Path(working_dir) / "Procfile"
    if procfile.is_file():
        try:
            with procfile.open(encoding="utf-8", errors="replace") as handle:
                has_web = any(_WEB_PROCESS_RE.match(line.strip()) for line in handle)
        except OSError as exc:
            emitter.detail("Ignoring unreadable Procfile %s: %s", procfile, exc)
            has_web = False
        if has_web:
            emitter.process("Do not return a process because a Procfile with process type 'web' already exists")
            return None

    emitter.process("Returning process type 'web' with command '%s'", PUMA_COMMAND)
    return Process(type="web", command=PUMA_COMMAND)


__all__ = [
    "PUMA_COMMAND",
    "PUMA_CONFIG",
    "PumaInstaller",
    "create_puma_process",
    "render_puma_config",
]
