"""Command execution: structured command descriptors and the dry-run gate.

Every external program is described by a :class:`Command` (program plus
argument list) and executed without a shell. Read-only queries always run;
mutating commands and filesystem changes are replaced by a ``[dry-run]``
line when the runner is in dry-run mode.
"""

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import click

QUERY_TIMEOUT = 30

_logging = logging.getLogger(__name__)


@dataclass(frozen=True)
class Command:
    program: str
    args: tuple[str, ...] = ()

    @classmethod
    def of(cls, *argv: str) -> "Command":
        return cls(argv[0], tuple(argv[1:]))

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def __str__(self) -> str:
        return shlex.join(self.argv)


@dataclass
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return self.stdout.strip() or self.stderr.strip()


class CommandError(Exception):
    """Raised when a mutating command exits non-zero."""

    def __init__(self, result: CommandResult):
        self.result = result
        message = f"Command failed with exit code {result.returncode}: {shlex.join(result.argv)}"
        if result.output:
            message += f"\n{result.output}"
        super().__init__(message)


def resolve_elevation() -> tuple[str, ...]:
    """Return the privilege elevation prefix for the invoking user."""
    if os.geteuid() == 0:
        return ()
    return ("sudo",)


@dataclass
class Runner:
    """Executes commands, honouring dry-run.

    ``elevation`` is resolved once at construction and prepended to every
    privileged command.
    """

    dry_run: bool = False
    elevation: tuple[str, ...] | None = None
    announce: Callable[[str], None] | None = field(default=None, repr=False)

    def __post_init__(self):
        if self.elevation is None:
            self.elevation = resolve_elevation()

    @property
    def sudo(self) -> str:
        return " ".join(self.elevation)

    def argv_for(self, command: Command, privileged: bool = False) -> tuple[str, ...]:
        prefix = self.elevation if privileged else ()
        return (*prefix, *command.argv)

    def _execute(
        self,
        argv: tuple[str, ...],
        input: str | None = None,
        capture: bool = True,
        timeout: int | None = None,
    ) -> CommandResult:
        _logging.debug(f"Running command: {shlex.join(argv)}")
        try:
            proc = subprocess.run(
                list(argv),
                input=input,
                capture_output=capture,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError:
            return CommandResult(argv, 127, "", f"command not found: {argv[0]}")
        except subprocess.TimeoutExpired:
            _logging.error(f"Command timed out after {timeout} seconds: {shlex.join(argv)}")
            return CommandResult(argv, 124, "", f"timed out after {timeout} seconds")
        return CommandResult(argv, proc.returncode, proc.stdout or "", proc.stderr or "")

    def _dry_run(self, text: str) -> None:
        if self.announce is not None:
            self.announce(text)
        else:
            click.echo(f"[dry-run] {text}")

    def query(self, command: Command, privileged: bool = False) -> CommandResult:
        """Run a read-only command; executes even in dry-run mode."""
        return self._execute(
            self.argv_for(command, privileged), capture=True, timeout=QUERY_TIMEOUT
        )

    def run(
        self,
        command: Command,
        privileged: bool = False,
        input: str | None = None,
        capture: bool = False,
    ) -> CommandResult:
        """Run a mutating command.

        Raises:
            CommandError: If the command exits non-zero
        """
        argv = self.argv_for(command, privileged)
        if self.dry_run:
            self._dry_run(shlex.join(argv))
            return CommandResult(argv, 0)
        result = self._execute(argv, input=input, capture=capture)
        if not result.ok:
            raise CommandError(result)
        return result

    def pipe(self, producer: Command, consumer: Command) -> CommandResult:
        """Feed the output of ``producer`` into ``consumer``."""
        if self.dry_run:
            self._dry_run(f"{producer} | {consumer}")
            return CommandResult(tuple(consumer.argv), 0)
        produced = self._execute(tuple(producer.argv), capture=True)
        if not produced.ok:
            raise CommandError(produced)
        result = self._execute(tuple(consumer.argv), input=produced.stdout, capture=True)
        if not result.ok:
            raise CommandError(result)
        return result

    def mkdir(self, path: Path) -> None:
        if self.dry_run:
            self._dry_run(f"mkdir -p {shlex.quote(str(path))}")
            return
        path.mkdir(parents=True, exist_ok=True)

    def remove_tree(self, path: Path) -> None:
        if self.dry_run:
            self._dry_run(f"rm -rf {shlex.quote(str(path))}")
            return
        shutil.rmtree(path, ignore_errors=True)

    def make_executable(self, path: Path) -> None:
        if self.dry_run:
            self._dry_run(f"chmod +x {shlex.quote(str(path))}")
            return
        path.chmod(path.stat().st_mode | 0o111)

    def symlink(self, target: Path, link: Path) -> None:
        if self.dry_run:
            self._dry_run(f"ln -s {shlex.quote(str(target))} {shlex.quote(str(link))}")
            return
        link.symlink_to(target)


__all__ = [
    "Command",
    "CommandResult",
    "CommandError",
    "Runner",
    "resolve_elevation",
]
