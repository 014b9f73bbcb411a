# SPDX-License-Identifier: MIT
"""Tests for typed commands and the bash runner."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

import pytest

from rvm_bundler.command import (
    BashCommandRunner,
    Command,
    CommandResult,
    CommandRunner,
    CommandTimeoutError,
    require_success,
)
from rvm_bundler.errors import InstallError

requires_bash = pytest.mark.skipif(shutil.which("bash") is None, reason="bash not available")


def _result(returncode: int, stderr: str = "") -> CommandResult:
    return CommandResult(returncode=returncode, stdout="", stderr=stderr, command=Command.of("gem", "cleanup"))


class TestCommand:
    def test_display_quotes_arguments_with_spaces(self) -> None:
        command = Command.of("bundle", "config", "--local", "path", Path("/tmp/my layers/rvm-bundler"))

        assert command.display() == "bundle config --local path '/tmp/my layers/rvm-bundler'"
        assert command.argv[-1] == "/tmp/my layers/rvm-bundler"

    def test_display_quotes_embedded_quotes(self) -> None:
        command = Command.of("echo", "it's")

        assert command.display() == "echo 'it'\"'\"'s'"

    def test_empty_program_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            Command.of("")

    def test_commands_compare_by_value(self) -> None:
        assert Command.of("gem", "cleanup") == Command("gem", ("cleanup",))


class TestRequireSuccess:
    def test_success_passes_through(self) -> None:
        result = _result(0)

        assert require_success(result, InstallError) is result

    def test_failure_raises_with_status_and_stderr(self) -> None:
        with pytest.raises(InstallError) as excinfo:
            require_success(_result(1, "boom\n"), InstallError)

        assert str(excinfo.value) == "Command failed: gem cleanup (exit status 1): boom"

    def test_custom_message(self) -> None:
        with pytest.raises(InstallError, match=r"^cleanup failed \(exit status 3\)$"):
            require_success(_result(3), InstallError, "cleanup failed")


class TestBashCommandRunner:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(BashCommandRunner(base_env={}), CommandRunner)

    def test_shell_argv_sources_rvm_profile(self) -> None:
        runner = BashCommandRunner(rvm_path=Path("/layers/rvm/rvm"), base_env={})

        assert runner.shell_argv(Command.of("rvm", "current")) == [
            "bash",
            "--login",
            "-c",
            "source /layers/rvm/rvm/profile.d/rvm && rvm current",
        ]

    def test_rvm_path_defaults_from_environment(self) -> None:
        runner = BashCommandRunner(base_env={"rvm_path": "/usr/local/rvm"})

        assert runner.rvm_path == Path("/usr/local/rvm")
        assert runner.shell_argv(Command.of("true"))[-1].startswith("source /usr/local/rvm/profile.d/rvm && ")

    def test_without_rvm_path_runs_command_directly(self) -> None:
        runner = BashCommandRunner(base_env={})

        assert runner.shell_argv(Command.of("echo", "hi")) == ["bash", "--login", "-c", "echo hi"]

    @requires_bash
    def test_runs_command_and_captures_output(self, tmp_path: Path) -> None:
        runner = BashCommandRunner(base_env={"PATH": os.environ.get("PATH", "/usr/bin:/bin")})

        result = runner.run(Command.of("pwd"), cwd=tmp_path)

        assert result.success
        assert str(tmp_path) in result.stdout

    @requires_bash
    def test_call_env_is_layered_over_base_env(self, tmp_path: Path) -> None:
        runner = BashCommandRunner(base_env={"PATH": os.environ.get("PATH", "/usr/bin:/bin")})

        result = runner.run(Command.of("printenv", "BUNDLE_USER_CONFIG"), cwd=tmp_path, env={"BUNDLE_USER_CONFIG": "/x"})

        assert result.stdout.strip().endswith("/x")

    @requires_bash
    def test_nonzero_exit_is_returned_not_raised(self, tmp_path: Path) -> None:
        runner = BashCommandRunner(base_env={"PATH": os.environ.get("PATH", "/usr/bin:/bin")})

        result = runner.run(Command.of("ls", str(tmp_path / "missing")), cwd=tmp_path)

        assert not result.success
        assert result.stderr

    @requires_bash
    def test_undecodable_output_is_replaced(self, tmp_path: Path) -> None:
        runner = BashCommandRunner(base_env={"PATH": os.environ.get("PATH", "/usr/bin:/bin")})

        result = runner.run(Command.of("printf", "caf\\xe9\\n"), cwd=tmp_path)

        assert result.success
        assert result.stdout.endswith("caf\ufffd\n")

    @requires_bash
    def test_timeout_kills_command(self, tmp_path: Path) -> None:
        runner = BashCommandRunner(base_env={"PATH": os.environ.get("PATH", "/usr/bin:/bin")}, timeout=0.2)

        with pytest.raises(CommandTimeoutError) as excinfo:
            runner.run(Command.of("sleep", "2"), cwd=tmp_path)

        assert excinfo.value.command == Command.of("sleep", "2")
