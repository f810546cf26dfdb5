"""Pytest fixtures and utilities for bootstrap-machine tests."""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from bootstrap_machine.catalog import clear_cache
from bootstrap_machine.config import Settings
from bootstrap_machine.console import Console
from bootstrap_machine.detect import HostOS, HostProfile, Profile
from bootstrap_machine.execution import CommandResult, Runner
from bootstrap_machine.probe import Probe


class FakeRunner(Runner):
    """Runner that records argv instead of spawning processes.

    Results are scripted by argv prefix (elevation stripped); the most
    recently added matching script wins, and a script with ``times`` set is
    dropped once used up. Unscripted commands exit with
    ``default_returncode``.
    """

    def __init__(self, dry_run: bool = False, elevation: tuple[str, ...] = ("sudo",)):
        super().__init__(dry_run=dry_run, elevation=elevation)
        self.calls: list[tuple[str, ...]] = []
        self.inputs: list[str | None] = []
        self.announced: list[str] = []
        self.announce = self.announced.append
        self.default_returncode = 0
        self._scripts: list[list] = []

    def script(
        self,
        *prefix: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        times: int | None = None,
    ):
        self._scripts.append([prefix, returncode, stdout, stderr, times])

    def _bare(self, argv: tuple[str, ...]) -> tuple[str, ...]:
        n = len(self.elevation)
        if n and argv[:n] == self.elevation:
            return argv[n:]
        return argv

    def _execute(self, argv, input=None, capture=True, timeout=None) -> CommandResult:
        argv = tuple(argv)
        self.calls.append(argv)
        self.inputs.append(input)
        bare = self._bare(argv)
        for entry in reversed(self._scripts):
            prefix, returncode, stdout, stderr, times = entry
            if bare[: len(prefix)] != prefix:
                continue
            if times is not None:
                entry[4] -= 1
                if entry[4] == 0:
                    self._scripts = [e for e in self._scripts if e is not entry]
            return CommandResult(argv, returncode, stdout, stderr)
        return CommandResult(argv, self.default_returncode)

    def ran(self, *prefix: str) -> bool:
        return any(self._bare(argv)[: len(prefix)] == prefix for argv in self.calls)


class FakeProbe(Probe):
    """Probe with a fixed set of commands on PATH; paths are checked for real."""

    def __init__(self, runner: Runner, commands: set[str] | None = None):
        super().__init__(runner)
        self.commands = set(commands or ())

    def has_command(self, name: str) -> bool:
        return name in self.commands


@pytest.fixture(autouse=True)
def _clear_catalog_cache():
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def home(temp_dir: Path) -> Path:
    path = temp_dir / "home"
    path.mkdir()
    return path


@pytest.fixture
def make_settings(home: Path):
    """Factory for Settings rooted in a temporary home directory."""

    def _make(**overrides) -> Settings:
        values = {
            "home": home,
            "zinit_home": home / ".local" / "share" / "zinit" / "zinit.git",
            "ezpodman_bin": home / ".local" / "bin" / "ezpodman",
            "shell": "/bin/bash",
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def dry_runner() -> FakeRunner:
    return FakeRunner(dry_run=True)


@pytest.fixture
def console() -> Console:
    return Console("test")


@pytest.fixture
def make_host():
    def _make(os=HostOS.FEDORA, profile=Profile.DESKTOP, version="41") -> HostProfile:
        return HostProfile(os=os, profile=profile, os_version=version)

    return _make


@pytest.fixture
def make_probe():
    """Factory for a FakeProbe with the given commands on PATH."""

    def _make(runner: Runner, *commands: str) -> FakeProbe:
        return FakeProbe(runner, set(commands))

    return _make
