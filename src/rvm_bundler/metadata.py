# SPDX-License-Identifier: MIT
"""Persisted metadata of the Bundler layer.

The record is stored in the ``[metadata]`` table of ``<layers>/<name>.toml``
and is replaced as a whole on every successful install. Decoding is forward
compatible: unknown keys are kept in :attr:`LayerMetadata.extra`, and
missing or non-string values read as "no prior value" (``None``).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

# Canonical key first, accepted aliases after it.
_VERSION_KEYS = ("version",)
_BUILT_AT_KEYS = ("built_at", "builtAt")
_CACHE_SHA_KEYS = ("cache_sha", "cacheFingerprint")
_RUBY_VERSION_KEYS = ("ruby_version", "resolvedEnvVersion")

_KNOWN_KEYS = frozenset(_VERSION_KEYS + _BUILT_AT_KEYS + _CACHE_SHA_KEYS + _RUBY_VERSION_KEYS)


@dataclass(frozen=True)
class LayerMetadata:
    """Metadata recorded after the last successful Bundler install.

    Attributes:
        version: Bundler version that was installed.
        built_at: RFC3339 UTC timestamp of the install.
        cache_sha: Fingerprint of Gemfile + Gemfile.lock (may be empty).
        ruby_version: Normalized Ruby version tag, e.g. ``"ruby-2.7"``.
        extra: Keys this version does not recognize, preserved verbatim.
    """

    version: str | None = None
    built_at: str | None = None
    cache_sha: str | None = None
    ruby_version: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> LayerMetadata:
        if not data:
            return cls()
        return cls(
            version=_first_str(data, _VERSION_KEYS),
            built_at=_first_str(data, _BUILT_AT_KEYS),
            cache_sha=_first_str(data, _CACHE_SHA_KEYS),
            ruby_version=_first_str(data, _RUBY_VERSION_KEYS),
            extra={key: value for key, value in data.items() if key not in _KNOWN_KEYS},
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.version is None
            and self.built_at is None
            and self.cache_sha is None
            and self.ruby_version is None
            and not self.extra
        )

    @property
    def built_at_datetime(self) -> datetime | None:
        if not self.built_at:
            return None
        return parse_timestamp(self.built_at)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.extra)
        for key, value in (
            ("version", self.version),
            ("built_at", self.built_at),
            ("cache_sha", self.cache_sha),
            ("ruby_version", self.ruby_version),
        ):
            if value is not None:
                payload[key] = value
        return payload


def format_timestamp(moment: datetime) -> str:
    """Format *moment* as RFC3339 in UTC with microsecond precision.

    The fixed width makes lexical order match chronological order.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def parse_timestamp(text: str) -> datetime:
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    return datetime.fromisoformat(normalized)


def _first_str(data: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str):
            return value
    return None


__all__ = ["LayerMetadata", "format_timestamp", "parse_timestamp"]
