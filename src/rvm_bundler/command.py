# SPDX-License-Identifier: MIT
"""Command execution inside an RVM-enabled login shell.

Commands are described as typed values (program plus ordered arguments) and
only joined into shell text at the last moment with :func:`shlex.join`, so
paths containing spaces or quotes survive unchanged.

The :class:`CommandRunner` protocol is what the rest of the package depends
on; :class:`BashCommandRunner` is the production implementation and tests
substitute a recording fake.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, TYPE_CHECKING, Protocol, cast, runtime_checkable

from .errors import BundlerBuildpackError
from .log import LogEmitter

if TYPE_CHECKING:
    from collections.abc import Mapping


class CommandExecutionError(BundlerBuildpackError):
    """Raised when a command cannot be started at all."""


class CommandTimeoutError(BundlerBuildpackError):
    """Raised when a command exceeds the runner's deadline."""

    def __init__(self, timeout_sec: float, command: Command) -> None:
        self.timeout_sec = timeout_sec
        self.command = command
        super().__init__(f"Command timed out after {timeout_sec} seconds: {command.display()}")


@dataclass(frozen=True)
class Command:
    """A program invocation with an ordered argument list."""

    program: str
    args: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.program:
            raise ValueError("program must be a non-empty string")
        object.__setattr__(self, "args", tuple(str(arg) for arg in self.args))

    @classmethod
    def of(cls, program: str, *args: str | os.PathLike[str]) -> Command:
        return cls(program=program, args=tuple(os.fspath(arg) for arg in args))

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def display(self) -> str:
        """Return the command as shell text, quoted where needed."""
        return shlex.join(self.argv)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished command.

    Attributes:
        returncode: Process exit status.
        stdout: Complete standard output.
        stderr: Complete standard error.
        command: The command that was executed.
    """

    returncode: int
    stdout: str
    stderr: str
    command: Command

    @property
    def success(self) -> bool:
        return self.returncode == 0


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for command runners.

    Runners block until the process exits and its output is fully drained.
    ``env`` entries are layered over the runner's base environment for this
    call only.
    """

    def run(
        self,
        command: Command,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult: ...


def require_success(
    result: CommandResult,
    error_cls: type[BundlerBuildpackError],
    message: str | None = None,
) -> CommandResult:
    """Return *result* unchanged, or raise *error_cls* if it exited nonzero."""
    if result.success:
        return result
    detail = message or f"Command failed: {result.command.display()}"
    text = f"{detail} (exit status {result.returncode})"
    stderr = result.stderr.strip()
    if stderr:
        text = f"{text}: {stderr}"
    raise error_cls(text)


class BashCommandRunner:
    """Run commands in ``bash --login`` after sourcing the RVM profile.

    Example:
        >>> runner = BashCommandRunner(rvm_path=Path("/layers/rvm/rvm"))
        >>> result = runner.run(Command.of("rvm", "current"), cwd=Path("/workspace"))
        >>> result.stdout
        'ruby-2.7.1\\n'
    """

    def __init__(
        self,
        rvm_path: Path | str | None = None,
        *,
        base_env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        emitter: LogEmitter | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            rvm_path: RVM installation root. Defaults to the ``rvm_path``
                variable of *base_env*.
            base_env: Environment every command starts from. Defaults to a
                snapshot of ``os.environ`` taken here.
            timeout: Optional deadline in seconds. ``None`` waits forever.
            emitter: Build log emitter.
        """
        self._base_env = dict(os.environ if base_env is None else base_env)
        resolved = rvm_path if rvm_path is not None else self._base_env.get("rvm_path", "")
        self._rvm_path = Path(resolved) if resolved else None
        self._timeout = timeout
        self._emitter = emitter or LogEmitter()

    @property
    def rvm_path(self) -> Path | None:
        return self._rvm_path

    def shell_argv(self, command: Command) -> list[str]:
        """Return the bash invocation that runs *command*."""
        script = command.display()
        if self._rvm_path is not None:
            profile = self._rvm_path / "profile.d" / "rvm"
            script = f"source {shlex.quote(str(profile))} && {script}"
        return ["bash", "--login", "-c", script]

    def run(
        self,
        command: Command,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        argv = self.shell_argv(command)
        process_env = dict(self._base_env)
        if env:
            process_env.update(env)

        self._emitter.process("Executing: %s", shlex.join(argv))

        try:
            process = subprocess.Popen(
                argv,
                cwd=str(cwd),
                env=process_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            self._emitter.process("Failed to start command: %s", command.display())
            self._emitter.break_()
            raise CommandExecutionError(f"Failed to start command {command.display()!r}: {exc}") from exc

        stderr_chunks: list[str] = []
        stderr_reader = threading.Thread(
            target=_drain,
            args=(process.stderr, stderr_chunks),
            daemon=True,
        )
        stderr_reader.start()

        timer: threading.Timer | None = None
        timed_out = threading.Event()
        if self._timeout:

            def _kill() -> None:
                timed_out.set()
                process.kill()

            timer = threading.Timer(self._timeout, _kill)
            timer.start()

        stdout = cast("IO[str]", process.stdout)
        stdout_lines: list[str] = []
        try:
            for line in stdout:
                self._emitter.subprocess(line.rstrip("\n"))
                stdout_lines.append(line)
        except BaseException:
            process.kill()
            raise
        finally:
            if timer is not None:
                timer.cancel()
            # Always reap the child and the stderr reader.
            returncode = process.wait()
            stderr_reader.join()

        if timed_out.is_set():
            raise CommandTimeoutError(self._timeout or 0.0, command)

        result = CommandResult(
            returncode=returncode,
            stdout="".join(stdout_lines),
            stderr="".join(stderr_chunks),
            command=command,
        )
        if not result.success:
            self._emitter.process("Command failed: %s", command.display())
            self._emitter.process("Error status code: %d", returncode)
            if result.stderr:
                self._emitter.process("Command output on stderr:")
                self._emitter.subprocess(result.stderr)
            return result

        self._emitter.break_()
        return result


def _drain(stream: IO[str], sink: list[str]) -> None:
    for chunk in stream:
        sink.append(chunk)


__all__ = [
    "BashCommandRunner",
    "Command",
    "CommandExecutionError",
    "CommandResult",
    "CommandRunner",
    "CommandTimeoutError",
    "require_success",
]
