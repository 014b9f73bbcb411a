# SPDX-License-Identifier: MIT
"""Pytest configuration and shared fixtures for the test suite.

This module provides:
- Deterministic test environment setup
- Recording fakes for the command runner, version resolver and calculator
- A scratch application tree, buildpack root and layers root per test
"""
from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from rvm_bundler.command import Command, CommandResult
from rvm_bundler.context import BuildContext, BuildpackInfo, PlanEntry

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TESTS_DIR = Path(__file__).resolve().parent
ROOT_DIR = TESTS_DIR.parent
BUILDPACK_TOML = ROOT_DIR / "buildpack.toml"


# ---------------------------------------------------------------------------
# Environment Setup
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest environment for determinism."""
    deterministic_env = {
        "LC_ALL": "C",
        "LANG": "C",
        "TZ": "UTC",
    }
    for key, value in deterministic_env.items():
        os.environ.setdefault(key, value)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


@dataclass
class RecordedCall:
    command: Command
    cwd: Path
    env: dict[str, str]


@dataclass
class FakeRunner:
    """CommandRunner that records calls and returns scripted results.

    ``responses`` maps a command's display text to ``(returncode, stdout)``;
    anything unscripted succeeds with empty output.
    """

    responses: dict[str, tuple[int, str]] = field(default_factory=dict)
    calls: list[RecordedCall] = field(default_factory=list)

    def run(
        self,
        command: Command,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        self.calls.append(RecordedCall(command=command, cwd=cwd, env=dict(env or {})))
        returncode, stdout = self.responses.get(command.display(), (0, ""))
        stderr = "boom" if returncode else ""
        return CommandResult(returncode=returncode, stdout=stdout, stderr=stderr, command=command)

    @property
    def commands(self) -> list[str]:
        return [call.command.display() for call in self.calls]


@dataclass
class FakeVersionResolver:
    version: str = "ruby-2.7"
    error: Exception | None = None
    calls: list[Path] = field(default_factory=list)

    def lookup(self, working_dir: Path) -> str:
        self.calls.append(working_dir)
        if self.error is not None:
            raise self.error
        return self.version


@dataclass
class FakeCalculator:
    checksum: str = "some-checksum"
    error: Exception | None = None
    calls: list[tuple[str, ...]] = field(default_factory=list)

    def sum(self, *paths: str) -> str:
        self.calls.append(tuple(paths))
        if self.error is not None:
            raise self.error
        return self.checksum


class SteppingClock:
    """Clock returning a fixed start that advances one second per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self._next = start or datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self._next
        self._next = current + timedelta(seconds=1)
        return current


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def version_resolver() -> FakeVersionResolver:
    return FakeVersionResolver()


@pytest.fixture
def calculator() -> FakeCalculator:
    return FakeCalculator()


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def working_dir(tmp_path: Path) -> Path:
    path = tmp_path / "working-dir"
    path.mkdir()
    (path / "Gemfile").write_text('source "https://rubygems.org"\n', encoding="utf-8")
    return path


@pytest.fixture
def cnb_dir(tmp_path: Path) -> Path:
    path = tmp_path / "cnb"
    path.mkdir()
    (path / "buildpack.toml").write_bytes(BUILDPACK_TOML.read_bytes())
    return path


@pytest.fixture
def layers_dir(tmp_path: Path) -> Path:
    path = tmp_path / "layers"
    path.mkdir()
    return path


@pytest.fixture
def make_context(working_dir: Path, cnb_dir: Path, layers_dir: Path) -> Callable[..., BuildContext]:
    def _make(bundler_version: str | None = None) -> BuildContext:
        entries: tuple[PlanEntry, ...] = ()
        if bundler_version is not None:
            entries = (PlanEntry(name="rvm-bundler", metadata={"rvm_bundler_version": bundler_version}),)
        return BuildContext(
            working_dir=working_dir,
            cnb_path=cnb_dir,
            layers_path=layers_dir,
            buildpack_info=BuildpackInfo(name="Some Buildpack", version="1.2.3"),
            plan_entries=entries,
            stack="some-stack",
        )

    return _make
