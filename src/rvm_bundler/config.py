# SPDX-License-Identifier: MIT
"""Buildpack configuration from ``buildpack.toml``.

The configuration lives in the ``[metadata.configuration]`` table:

    [metadata.configuration]
    default_bundler_version = "2.1.4"
    install_puma = true

    [metadata.configuration.puma]
    version = "4.3.5"
    bind = "tcp://0.0.0.0:8080"
    workers = "5"
    threads = "5"
    preload = true
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import BuildpackConfigError

BUILDPACK_TOML = "buildpack.toml"


class _ConfigBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class PumaConfig(_ConfigBase):
    version: str = ""
    bind: str = ""
    workers: str = ""
    threads: str = ""
    preload: bool = False


class BuildpackConfiguration(_ConfigBase):
    default_bundler_version: str = ""
    install_puma: bool = False
    puma: PumaConfig = Field(default_factory=PumaConfig)


def read_configuration(cnb_path: Path) -> BuildpackConfiguration:
    """Load the configuration table of ``<cnb_path>/buildpack.toml``.

    A file without the table yields the all-defaults configuration.

    Raises:
        BuildpackConfigError: If the file is missing, is not valid TOML, or
            the table does not validate.
    """
    path = Path(cnb_path) / BUILDPACK_TOML
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except FileNotFoundError as exc:
        raise BuildpackConfigError(f"Buildpack configuration not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise BuildpackConfigError(f"Invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise BuildpackConfigError(f"Failed to read {path}: {exc}") from exc

    return parse_configuration(data, source=path)


def parse_configuration(data: dict[str, Any], *, source: Path | None = None) -> BuildpackConfiguration:
    metadata = data.get("metadata")
    table = metadata.get("configuration") if isinstance(metadata, dict) else None
    if table is None:
        return BuildpackConfiguration()
    try:
        return BuildpackConfiguration.model_validate(table)
    except ValidationError as exc:
        where = f" in {source}" if source else ""
        raise BuildpackConfigError(f"Invalid [metadata.configuration]{where}: {exc}") from exc


def bundler_major_version(version: str) -> int:
    """Return the major component of a Bundler version string.

    >>> bundler_major_version("2.1.4")
    2
    """
    head = version.split(".", 1)[0].strip()
    if not head.isdigit():
        raise BuildpackConfigError(f"Failed to determine bundler major version from {version!r}")
    return int(head)


__all__ = [
    "BUILDPACK_TOML",
    "BuildpackConfiguration",
    "PumaConfig",
    "bundler_major_version",
    "parse_configuration",
    "read_configuration",
]
