# SPDX-License-Identifier: MIT
"""Content fingerprints over dependency manifest files."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import ManifestIOError

if TYPE_CHECKING:
    import os

_HASH_CHUNK_SIZE = 1024 * 1024


class ChecksumCalculator:
    """SHA-256 fingerprints for files and directory trees.

    A single regular file hashes to the digest of its bytes. Several paths,
    or a directory, hash to the digest of the concatenated per-file hex
    digests in argument order (directory members in sorted path order).
    """

    def sum(self, *paths: str | os.PathLike[str]) -> str:
        if not paths:
            raise ValueError("sum() requires at least one path")

        files: list[Path] = []
        for raw in paths:
            files.extend(_expand(Path(raw)))

        digests = [_hash_file(path) for path in files]
        if len(paths) == 1 and len(digests) == 1 and not Path(paths[0]).is_dir():
            return digests[0]
        return hashlib.sha256("".join(digests).encode("ascii")).hexdigest()


def _expand(path: Path) -> list[Path]:
    try:
        if path.is_dir():
            return sorted(child for child in path.rglob("*") if child.is_file())
    except OSError as exc:
        raise ManifestIOError(f"Failed to list {path}: {exc}") from exc
    return [path]


def _hash_file(path: Path) -> str:
    hasher = hashlib.sha256()
    try:
        with path.open("rb") as handle:
            while True:
                chunk = handle.read(_HASH_CHUNK_SIZE)
                if not chunk:
                    break
                hasher.update(chunk)
    except OSError as exc:
        raise ManifestIOError(f"Failed to read {path}: {exc}") from exc
    return hasher.hexdigest()


__all__ = ["ChecksumCalculator"]
