# SPDX-License-Identifier: MIT
"""Layer directories and their ``<name>.toml`` descriptors.

Layout under the layers root::

    {layers}/
        rvm-bundler.toml          # [types] flags + [metadata] table
        rvm-bundler/
            config                # Bundler user config copied from the app
            env/                  # build-time env defaults
                BUNDLE_USER_CONFIG.default
            env.launch/           # launch-time env defaults
                BUNDLE_USER_CONFIG.default
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from .errors import BundlerBuildpackError
from .metadata import LayerMetadata

logger = logging.getLogger(__name__)


class LayerError(BundlerBuildpackError):
    """Raised when a layer descriptor cannot be read or written."""


@dataclass
class Layer:
    """A cacheable directory of build artifacts.

    Attributes:
        name: Layer name; also the directory and descriptor stem.
        path: Layer directory.
        build: Visible to subsequent buildpacks.
        cache: Restored on the next build.
        launch: Exported into the application image.
        metadata: Metadata restored from the previous build.
        build_env: Env defaults for the build phase.
        launch_env: Env defaults for the launch phase.
    """

    name: str
    path: Path
    build: bool = False
    cache: bool = False
    launch: bool = False
    metadata: LayerMetadata = field(default_factory=LayerMetadata)
    build_env: dict[str, str] = field(default_factory=dict)
    launch_env: dict[str, str] = field(default_factory=dict)

    def reset(self) -> None:
        """Remove the directory contents and forget the metadata."""
        if self.path.exists():
            shutil.rmtree(self.path)
        self.path.mkdir(parents=True, exist_ok=True)
        self.metadata = LayerMetadata()

    def default_build_env(self, name: str, value: str) -> None:
        self.build_env[name] = value

    def default_launch_env(self, name: str, value: str) -> None:
        self.launch_env[name] = value


class Layers:
    """Access to the layers root of one build."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def descriptor_path(self, name: str) -> Path:
        return self.path / f"{name}.toml"

    def get(self, name: str) -> Layer:
        """Return layer *name* with any metadata restored from the last build."""
        layer = Layer(name=name, path=self.path / name)
        descriptor = self.descriptor_path(name)
        try:
            with descriptor.open("rb") as handle:
                data = tomllib.load(handle)
        except FileNotFoundError:
            return layer
        except tomllib.TOMLDecodeError as exc:
            raise LayerError(f"Invalid layer descriptor {descriptor}: {exc}") from exc
        except OSError as exc:
            raise LayerError(f"Failed to read layer descriptor {descriptor}: {exc}") from exc

        types = data.get("types")
        if isinstance(types, dict):
            layer.build = bool(types.get("build", False))
            layer.cache = bool(types.get("cache", False))
            layer.launch = bool(types.get("launch", False))
        metadata = data.get("metadata")
        if isinstance(metadata, dict):
            layer.metadata = LayerMetadata.from_mapping(metadata)
        return layer

    def write(self, layer: Layer) -> None:
        """Persist the descriptor and env defaults of *layer*."""
        payload: dict[str, Any] = {
            "types": {"build": layer.build, "cache": layer.cache, "launch": layer.launch},
        }
        metadata = layer.metadata.to_dict()
        if metadata:
            payload["metadata"] = metadata
        try:
            text = tomli_w.dumps(payload)
        except TypeError as exc:
            raise LayerError(f"Layer metadata for {layer.name} is not TOML serializable: {exc}") from exc

        layer.path.mkdir(parents=True, exist_ok=True)
        _write_env_dir(layer.path / "env", layer.build_env)
        _write_env_dir(layer.path / "env.launch", layer.launch_env)
        atomic_write_text(self.descriptor_path(layer.name), text)
        logger.debug("Wrote layer descriptor %s", self.descriptor_path(layer.name))


def _write_env_dir(directory: Path, values: dict[str, str]) -> None:
    if not values:
        return
    directory.mkdir(parents=True, exist_ok=True)
    for name, value in sorted(values.items()):
        atomic_write_text(directory / f"{name}.default", value)


def atomic_write_text(path: Path, text: str) -> None:
    atomic_write_bytes(path, text.encode("utf-8"))


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(prefix=".tmp-", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    finally:
        if os.path.exists(temp_path):
            os.unlink(temp_path)


__all__ = [
    "Layer",
    "LayerError",
    "Layers",
    "atomic_write_bytes",
    "atomic_write_text",
]
