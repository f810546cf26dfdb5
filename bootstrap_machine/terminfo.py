"""Push a terminal's terminfo entry to remote hosts and Incus instances."""

import logging
import shlex
from dataclasses import dataclass
from enum import Enum

from .config import Settings
from .console import Console
from .errors import PreconditionError
from .execution import Command, CommandError, Runner
from .probe import Probe

_logging = logging.getLogger(__name__)

TIC_HINTS = {
    "ssh": (
        "Fedora: sudo dnf install -y ncurses",
        "Arch:   sudo pacman -S --noconfirm ncurses",
    ),
    "incus": (
        "Fedora: dnf install -y ncurses",
        "Arch:   pacman -S --noconfirm ncurses",
    ),
}


class Transport(Enum):
    SSH = "ssh"
    INCUS = "incus"


@dataclass(frozen=True)
class TerminfoTarget:
    transport: Transport
    name: str

    def __str__(self) -> str:
        return f"{self.transport.value}:{self.name}"


class PushOutcome(Enum):
    ALREADY_PRESENT = "already-present"
    INSTALLED = "installed"
    MISSING_TIC = "missing-tic"
    FAILED = "failed"
    PLANNED = "planned"


@dataclass
class PushResult:
    target: TerminfoTarget
    outcome: PushOutcome
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.outcome in (PushOutcome.MISSING_TIC, PushOutcome.FAILED)


def parse_target(text: str) -> TerminfoTarget:
    """Parse ``ssh:HOST`` or ``incus:INSTANCE``.

    Raises:
        ValueError: If the prefix is unknown or the name is empty
    """
    transport, sep, name = text.partition(":")
    if not sep or not name:
        raise ValueError(f"Unknown target format: {text} (use ssh:HOST or incus:INSTANCE)")
    try:
        return TerminfoTarget(Transport(transport), name)
    except ValueError:
        raise ValueError(
            f"Unknown target format: {text} (use ssh:HOST or incus:INSTANCE)"
        ) from None


class TerminfoPusher:
    def __init__(self, settings: Settings, runner: Runner, probe: Probe, console: Console):
        self.settings = settings
        self.runner = runner
        self.probe = probe
        self.console = console

    @property
    def name(self) -> str:
        return self.settings.terminfo_name

    def require_local_terminfo(self) -> None:
        """Raises PreconditionError unless this machine can export the entry."""
        if not self.probe.has_command("infocmp"):
            raise PreconditionError("infocmp not found locally. Install ncurses/terminfo tools.")
        if not self.probe.succeeds(Command.of("infocmp", "-x", self.name)):
            raise PreconditionError(
                f"Local machine cannot export terminfo '{self.name}'. Run this from a "
                f"system where 'infocmp -x {self.name}' works."
            )

    def _remote(self, target: TerminfoTarget, *argv: str) -> Command:
        if target.transport is Transport.SSH:
            return Command.of("ssh", target.name, "--", *argv)
        return Command.of("incus", "exec", target.name, "--", *argv)

    def _remote_check(self, target: TerminfoTarget, script: str) -> bool:
        if target.transport is Transport.SSH:
            command = Command.of("ssh", target.name, script)
        else:
            command = Command.of("incus", "exec", target.name, "--", "sh", "-lc", script)
        return self.runner.query(command).ok

    def push(self, target: TerminfoTarget) -> PushResult:
        """Install the terminfo entry on one target.

        Raises:
            PreconditionError: If an Incus target is given without a local
                incus client
        """
        label = "SSH" if target.transport is Transport.SSH else "Incus"
        self.console.info(f"{label} target: {target.name}")

        if target.transport is Transport.INCUS and not self.probe.has_command("incus"):
            raise PreconditionError("incus command not found locally.")

        quoted = shlex.quote(self.name)
        if self._remote_check(target, f"infocmp -x {quoted} >/dev/null 2>&1"):
            self.console.info(f"  already has {self.name}")
            return PushResult(target, PushOutcome.ALREADY_PRESENT)

        if not self._remote_check(target, "command -v tic >/dev/null 2>&1"):
            where = "remote" if target.transport is Transport.SSH else "instance"
            self.console.error(
                f"  {where} '{target.name}' lacks 'tic'. Install ncurses/terminfo tools first."
            )
            for hint in TIC_HINTS[target.transport.value]:
                self.console.error(f"  {hint}")
            return PushResult(target, PushOutcome.MISSING_TIC)

        self.console.info(f"  installing {self.name}")
        try:
            self.runner.pipe(
                Command.of("infocmp", "-x", self.name),
                self._remote(target, "tic", "-x", "-"),
            )
        except CommandError as e:
            self.console.error(f"  failed to install {self.name} on {target}: {e}")
            return PushResult(target, PushOutcome.FAILED, str(e))

        if self.runner.dry_run:
            return PushResult(target, PushOutcome.PLANNED)
        return PushResult(target, PushOutcome.INSTALLED)

    def push_all(self, targets: list[TerminfoTarget]) -> list[PushResult]:
        return [self.push(target) for target in targets]

    @staticmethod
    def batch_failed(results: list[PushResult]) -> bool:
        return any(result.failed for result in results)


__all__ = [
    "Transport",
    "TerminfoTarget",
    "PushOutcome",
    "PushResult",
    "TerminfoPusher",
    "parse_target",
]
