# SPDX-License-Identifier: MIT
"""Inputs and results exchanged with the buildpack lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .layers import Layer

BUNDLER_PLAN_ENTRY = "rvm-bundler"


@dataclass(frozen=True)
class BuildpackInfo:
    name: str
    version: str


@dataclass(frozen=True)
class PlanEntry:
    name: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BuildContext:
    """Everything one build invocation is given.

    Attributes:
        working_dir: Application source root.
        cnb_path: Buildpack root (holds buildpack.toml).
        layers_path: Directory where layers and their TOML files live.
        buildpack_info: Name and version for the log title.
        plan_entries: Resolved build plan entries for this buildpack.
        stack: Stack identifier.
    """

    working_dir: Path
    cnb_path: Path
    layers_path: Path
    buildpack_info: BuildpackInfo
    plan_entries: tuple[PlanEntry, ...] = ()
    stack: str = ""

    def plan_metadata(self, name: str, key: str) -> Any:
        """Return *key* from the last plan entry named *name*, if any."""
        value = None
        for entry in self.plan_entries:
            if entry.name == name and key in entry.metadata:
                value = entry.metadata[key]
        return value


@dataclass(frozen=True)
class DetectContext:
    working_dir: Path
    cnb_path: Path
    stack: str = ""


@dataclass(frozen=True)
class Provision:
    name: str


@dataclass(frozen=True)
class Requirement:
    name: str
    version: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BuildPlan:
    provides: tuple[Provision, ...] = ()
    requires: tuple[Requirement, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        requires: list[dict[str, Any]] = []
        for requirement in self.requires:
            record: dict[str, Any] = {"name": requirement.name}
            if requirement.version:
                record["version"] = requirement.version
            if requirement.metadata:
                record["metadata"] = dict(requirement.metadata)
            requires.append(record)
        return {
            "provides": [{"name": provision.name} for provision in self.provides],
            "requires": requires,
        }


@dataclass(frozen=True)
class DetectResult:
    plan: BuildPlan


@dataclass(frozen=True)
class Process:
    type: str
    command: str


@dataclass
class BuildResult:
    layers: list[Layer] = field(default_factory=list)
    processes: list[Process] = field(default_factory=list)


__all__ = [
    "BUNDLER_PLAN_ENTRY",
    "BuildContext",
    "BuildPlan",
    "BuildResult",
    "BuildpackInfo",
    "DetectContext",
    "DetectResult",
    "PlanEntry",
    "Process",
    "Provision",
    "Requirement",
]
