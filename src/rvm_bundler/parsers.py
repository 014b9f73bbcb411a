# SPDX-License-Identifier: MIT
"""Bundler version parsers for Gemfile.lock and buildpack.yml."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import yaml

from .errors import BuildpackConfigError

BUNDLED_WITH = "BUNDLED WITH"


class VersionParser(Protocol):
    def parse_version(self, path: Path) -> str:
        """Return the version found in *path*, or "" when there is none."""
        ...


class BundlerVersionParser:
    """Read the version below ``BUNDLED WITH`` in a Gemfile.lock."""

    def parse_version(self, path: Path) -> str:
        path = Path(path)
        try:
            lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
        except FileNotFoundError:
            return ""
        except OSError as exc:
            raise BuildpackConfigError(f"Failed to read {path}: {exc}") from exc

        for index, line in enumerate(lines):
            if line.strip() == BUNDLED_WITH and index + 1 < len(lines):
                return lines[index + 1].strip()
        return ""


class BuildpackYMLParser:
    """Read ``rvm_bundler.bundler_version`` from a buildpack.yml."""

    def parse(self, path: Path) -> dict[str, str]:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            raise BuildpackConfigError(f"Failed to read {path}: {exc}") from exc

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise BuildpackConfigError(f"Invalid YAML in {path}: {exc}") from exc

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise BuildpackConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
        section = data.get("rvm_bundler") or {}
        if not isinstance(section, dict):
            raise BuildpackConfigError(f"rvm_bundler in {path} must be a mapping")
        return {str(key): str(value) for key, value in section.items() if value is not None}

    def parse_version(self, path: Path) -> str:
        return self.parse(path).get("bundler_version", "")


__all__ = ["BUNDLED_WITH", "BuildpackYMLParser", "BundlerVersionParser", "VersionParser"]
