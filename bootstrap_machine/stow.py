"""Stow reconciliation of dotfiles packages into the home directory.

Each named app maps to a package directory under ``~/dotfiles``. A package
is linked only when its app is installed, and a conflicting package is left
untouched unless ``force_stow`` asks stow to adopt the existing files.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .config import Settings
from .console import Console
from .errors import PreconditionError
from .execution import Command, CommandError, Runner
from .probe import Probe

_logging = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppDetector:
    """Installed-app predicate: a command on PATH or an existing path."""
    command: str | None = None
    path: Path | None = None

    def describe(self) -> str:
        if self.command:
            return f"'{self.command}'"
        return str(self.path)

    def is_installed(self, probe: Probe) -> bool:
        if self.command:
            return probe.has_command(self.command)
        return probe.exists(self.path)


APP_DETECTORS: dict[str, AppDetector] = {
    "zsh": AppDetector(command="zsh"),
    "nvim": AppDetector(command="nvim"),
    "starship": AppDetector(command="starship"),
    "bat": AppDetector(command="bat"),
    "eza": AppDetector(command="eza"),
    "yazi": AppDetector(command="yazi"),
    "karabiner": AppDetector(path=Path("/Applications/Karabiner-Elements.app")),
}


class StowOutcome(Enum):
    LINKED = "linked"
    SKIPPED_NOT_INSTALLED = "skipped-not-installed"
    SKIPPED_MISSING_SOURCE = "skipped-missing-source"
    CONFLICT_REFUSED = "conflict-refused"
    CONFLICT_ADOPTED = "conflict-adopted"
    FAILED = "failed"


FAILED_OUTCOMES = frozenset({StowOutcome.CONFLICT_REFUSED, StowOutcome.FAILED})


@dataclass(frozen=True)
class StowPackage:
    name: str
    detect: AppDetector | None
    source_dir: Path
    target_dir: Path


@dataclass
class StowResult:
    package: StowPackage
    outcome: StowOutcome
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.outcome in FAILED_OUTCOMES


class StowReconciler:
    def __init__(self, settings: Settings, runner: Runner, probe: Probe, console: Console):
        self.settings = settings
        self.runner = runner
        self.probe = probe
        self.console = console

    @property
    def dotfiles_dir(self) -> Path:
        return self.settings.dotfiles_dir

    def ensure_stow_available(self) -> None:
        """Raises PreconditionError when stow is not on PATH."""
        if not self.probe.has_command("stow"):
            raise PreconditionError(
                "stow is not installed. Run bootstrap first (or install stow manually), then re-run."
            )
        self.console.info("stow already installed")

    def build_packages(self, apps: list[str]) -> list[StowPackage]:
        return [
            StowPackage(
                name=app,
                detect=APP_DETECTORS.get(app),
                source_dir=self.dotfiles_dir / app,
                target_dir=self.settings.home,
            )
            for app in apps
        ]

    def _stow_command(self, package: StowPackage, flags: list[str], trial: bool = False) -> Command:
        argv = ["stow"]
        if trial:
            argv.append("-n")
        argv += ["-d", str(self.dotfiles_dir), "-t", str(package.target_dir), *flags, package.name]
        return Command.of(*argv)

    def _is_installed(self, package: StowPackage) -> bool:
        if package.detect is None:
            self.console.warn(
                f"Unknown app '{package.name}' (no binary mapping). Stowing anyway."
            )
            return True
        if package.detect.is_installed(self.probe):
            return True
        self.console.warn(
            f"App '{package.name}' not installed (missing {package.detect.describe()}), skipping stow"
        )
        return False

    def reconcile(self, package: StowPackage) -> StowResult:
        """Link one package, never touching conflicting files unless forced."""
        if not self.probe.is_dir(package.source_dir):
            self.console.warn(f"No stow package for '{package.name}' in {self.dotfiles_dir}")
            return StowResult(package, StowOutcome.SKIPPED_MISSING_SOURCE, str(package.source_dir))

        if not self._is_installed(package):
            return StowResult(package, StowOutcome.SKIPPED_NOT_INSTALLED)

        flags = ["--restow"] if self.settings.restow else []
        outcome = StowOutcome.LINKED

        self.console.info(f"Stow dry-run: {package.name}")
        trial = self.runner.query(self._stow_command(package, flags, trial=True))
        if not trial.ok:
            _logging.debug(f"stow trial for {package.name} failed: {trial.output}")
            self.console.warn(f"Conflicts detected for '{package.name}'.")
            if not self.settings.force_stow:
                self.console.error(f"Refusing to stow '{package.name}' due to conflicts.")
                self.console.error(
                    "Resolve conflicts manually or re-run with FORCE_STOW=1 (be careful)."
                )
                return StowResult(package, StowOutcome.CONFLICT_REFUSED, trial.output)
            self.console.warn(
                "FORCE_STOW=1: using --adopt (moves existing files into stow package)."
            )
            flags.append("--adopt")
            outcome = StowOutcome.CONFLICT_ADOPTED

        self.console.info(f"Stowing: {package.name}")
        try:
            self.runner.run(self._stow_command(package, flags))
        except CommandError as e:
            self.console.error(f"stow failed for '{package.name}': {e}")
            return StowResult(package, StowOutcome.FAILED, str(e))

        detail = self._link_zshrc() if package.name == "zsh" else ""
        return StowResult(package, outcome, detail)

    def _link_zshrc(self) -> str:
        home = self.settings.home
        config_rc = home / ".config" / "zsh" / ".zshrc"
        home_rc = home / ".zshrc"
        if self.probe.is_file(config_rc) and not self.probe.lexists(home_rc):
            self.console.info("Creating symlink: ~/.zshrc -> ~/.config/zsh/.zshrc")
            try:
                self.runner.symlink(config_rc, home_rc)
            except OSError as e:
                self.console.warn(f"Could not create ~/.zshrc symlink: {e}")
                return f"~/.zshrc not linked: {e}"
        return ""

    def reconcile_all(self, apps: list[str]) -> list[StowResult]:
        self.console.info(f"Stow apps: {' '.join(apps)}")
        return [self.reconcile(package) for package in self.build_packages(apps)]

    @staticmethod
    def batch_failed(results: list[StowResult]) -> bool:
        return any(result.failed for result in results)


__all__ = [
    "AppDetector",
    "APP_DETECTORS",
    "StowOutcome",
    "StowPackage",
    "StowResult",
    "StowReconciler",
]
