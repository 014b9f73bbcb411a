# SPDX-License-Identifier: MIT
"""Apply an :class:`~rvm_bundler.cache.InstallVerdict` to the layer.

Each build ends in exactly one of three states:

    should_run=False                  -> REUSED     (configure only)
    should_run=True, install ok       -> INSTALLED  (metadata committed)
    should_run=True, install raises   -> failure    (metadata untouched)

Metadata is committed only after every install step succeeded, so a failed
build leaves the previous record authoritative and the next build retries
the full install.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from .cache import InstallVerdict
from .metadata import LayerMetadata, format_timestamp

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LifecycleState(str, enum.Enum):
    INSTALLED = "installed"
    REUSED = "reused"


@dataclass(frozen=True)
class LifecycleOutcome:
    """Terminal state of one reconcile pass.

    Attributes:
        state: Which branch ran.
        metadata: The committed metadata for INSTALLED, otherwise None.
        started_at: When the install branch started (None for REUSED).
        finished_at: When the commit happened (None for REUSED).
    """

    state: LifecycleState
    metadata: LayerMetadata | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


def reconcile(
    verdict: InstallVerdict,
    install_action: Callable[[], None],
    configure_action: Callable[[], None],
    *,
    commit: Callable[[LayerMetadata], None],
    version: str,
    clock: Clock = utc_now,
) -> LifecycleOutcome:
    """Run the install or the configure branch for *verdict*.

    Args:
        verdict: Result of :func:`~rvm_bundler.cache.evaluate`.
        install_action: Full install; raises on the first failing step.
            Expected to leave the bundle path configured as well.
        configure_action: Cheap re-configuration of a reused layer.
        commit: Persists the new metadata. Called at most once, and only
            after *install_action* returned.
        version: Bundler version recorded in the new metadata.
        clock: Source of the ``built_at`` timestamp.

    Returns:
        The terminal lifecycle outcome.

    Raises:
        Whatever *install_action*, *configure_action* or *commit* raise.
    """
    if not verdict.should_run:
        configure_action()
        return LifecycleOutcome(state=LifecycleState.REUSED)

    started_at = clock()
    install_action()

    metadata = LayerMetadata(
        version=version,
        built_at=format_timestamp(started_at),
        cache_sha=verdict.fresh_fingerprint,
        ruby_version=verdict.fresh_env_version,
    )
    commit(metadata)
    finished_at = clock()
    logger.debug("Committed layer metadata %s", metadata.to_dict())
    return LifecycleOutcome(
        state=LifecycleState.INSTALLED,
        metadata=metadata,
        started_at=started_at,
        finished_at=finished_at,
    )


__all__ = [
    "Clock",
    "LifecycleOutcome",
    "LifecycleState",
    "reconcile",
    "utc_now",
]
