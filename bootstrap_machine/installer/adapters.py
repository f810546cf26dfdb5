"""Package manager adapters: idempotent ensure with per-package fallbacks."""

import logging

from ..console import Console
from ..detect import HostOS
from ..errors import InstallError, PreconditionError, UnsupportedPlatformError
from ..execution import Command, CommandError, Runner
from ..probe import Probe
from .models import (
    Channel,
    ChannelKind,
    InstallerKind,
    InstallOutcome,
    InstallResult,
    PackageSpec,
)

_logging = logging.getLogger(__name__)


class InstallerAdapter:
    """Ensures packages are present through one package manager.

    ``ensure`` never raises for a single package; failures come back as an
    InstallResult with outcome FAILED and the caller decides whether that is
    fatal.
    """

    manager = ""
    label = ""
    privileged = True
    required_commands: tuple[str, ...] = ()
    install_hint = ""

    def __init__(self, runner: Runner, probe: Probe, console: Console):
        self.runner = runner
        self.probe = probe
        self.console = console
        self._settled: dict[str, InstallResult] = {}

    def check_ready(self) -> None:
        """Raise PreconditionError when the package manager is missing."""
        for command in self.required_commands:
            if not self.probe.has_command(command):
                message = f"{command} not found. Install it first, then re-run."
                if self.install_hint:
                    message += f" ({self.install_hint})"
                raise PreconditionError(message)

    def query_command(self, spec: PackageSpec) -> Command:
        raise NotImplementedError

    def install_command(self, spec: PackageSpec) -> Command:
        raise NotImplementedError

    def refresh(self) -> None:
        """Refresh the package index. Most managers do this on install."""
        _logging.debug(f"{self.manager}: no explicit index refresh")

    def enable_channel(self, channel: Channel) -> None:
        raise InstallError(
            f"{self.manager} cannot enable {channel.kind.value} channel '{channel.name}'"
        )

    def is_installed(self, spec: PackageSpec) -> bool:
        if spec.probe and self.probe.has_command(spec.probe):
            return True
        return self.probe.succeeds(self.query_command(spec))

    def ensure(self, spec: PackageSpec) -> InstallResult:
        settled = self._settled.get(spec.name)
        if settled is not None:
            if settled.outcome == InstallOutcome.PLANNED:
                return InstallResult(spec.name, InstallOutcome.PLANNED, "already planned")
            return InstallResult(
                spec.name, InstallOutcome.ALREADY_PRESENT, "ensured earlier in this run"
            )

        if self.is_installed(spec):
            self.console.info(f"{self.manager}: {spec.name} already installed")
            result = InstallResult(spec.name, InstallOutcome.ALREADY_PRESENT)
        else:
            try:
                self._install(spec)
            except (CommandError, InstallError) as e:
                _logging.debug(f"Install of {spec.name} failed: {e}")
                self.console.error(f"{self.manager}: failed to install {spec.name}")
                return InstallResult(spec.name, InstallOutcome.FAILED, str(e))
            outcome = InstallOutcome.PLANNED if self.runner.dry_run else InstallOutcome.INSTALLED
            result = InstallResult(spec.name, outcome)

        self._settled[spec.name] = result
        return result

    def _install(self, spec: PackageSpec) -> None:
        kind = spec.installer
        if kind is InstallerKind.NATIVE:
            self._install_native(spec)
        elif kind is InstallerKind.CASK:
            self._install_cask(spec)
        elif kind is InstallerKind.PLUGIN:
            self.enable_channel(self._channel(spec))
            self._install_native(spec)
        elif kind is InstallerKind.SOURCE:
            self._build_from_source(spec)
        elif kind is InstallerKind.NATIVE_THEN_PLUGIN:
            channel = self._channel(spec)
            try:
                self._install_native(spec)
            except CommandError:
                self.console.warn(
                    f"{spec.name} not available in default repositories; "
                    f"enabling {channel.kind.value} {channel.name}"
                )
                self.enable_channel(channel)
                self._install_native(spec)
        else:
            raise InstallError(f"Unknown installer kind for {spec.name}: {kind}")

    def _channel(self, spec: PackageSpec) -> Channel:
        if spec.channel is None:
            raise InstallError(f"{spec.name} requires a repository channel")
        return spec.channel

    def _install_native(self, spec: PackageSpec) -> None:
        self.console.info(f"{self.manager}: installing {spec.name}")
        self.runner.run(self.install_command(spec), privileged=self.privileged)

    def _install_cask(self, spec: PackageSpec) -> None:
        raise InstallError(f"{self.manager} does not support cask installs ({spec.name})")

    def _build_from_source(self, spec: PackageSpec) -> None:
        if spec.source is None:
            raise InstallError(f"{spec.name} has no source build recipe")
        self.console.info(f"{self.label}: building {spec.name} from source")
        for tool in spec.source.toolchain:
            result = self.ensure(PackageSpec(tool))
            if not result.ok:
                raise InstallError(f"toolchain package '{tool}' for {spec.name} failed to install")
        self.runner.run(Command.of(*spec.source.build))


class BrewAdapter(InstallerAdapter):
    manager = "brew"
    label = "macOS"
    privileged = False
    required_commands = ("brew",)
    install_hint = "Homebrew install docs: https://docs.brew.sh/Installation"

    def query_command(self, spec: PackageSpec) -> Command:
        flag = "--cask" if spec.installer is InstallerKind.CASK else "--formula"
        return Command.of("brew", "list", flag, spec.name)

    def install_command(self, spec: PackageSpec) -> Command:
        return Command.of("brew", "install", spec.name)

    def _install_cask(self, spec: PackageSpec) -> None:
        self.console.info(f"brew: installing cask {spec.name}")
        self.runner.run(Command.of("brew", "install", "--cask", spec.name))

    def enable_channel(self, channel: Channel) -> None:
        if channel.kind is not ChannelKind.TAP:
            super().enable_channel(channel)
        self.console.info(f"brew: tapping {channel.name}")
        self.runner.run(Command.of("brew", "tap", channel.name))


class DnfAdapter(InstallerAdapter):
    manager = "dnf"
    label = "Fedora"
    required_commands = ("dnf", "rpm")

    def query_command(self, spec: PackageSpec) -> Command:
        return Command.of("rpm", "-q", spec.name)

    def install_command(self, spec: PackageSpec) -> Command:
        return Command.of("dnf", "install", "-y", spec.name)

    def enable_channel(self, channel: Channel) -> None:
        if channel.kind is ChannelKind.COPR:
            self._enable_copr(channel.name)
        elif channel.kind is ChannelKind.REPOFILE:
            self._add_repofile(channel.name)
        else:
            super().enable_channel(channel)

    def _enable_copr(self, name: str) -> None:
        if not self.probe.succeeds(Command.of("dnf", "copr", "--help")):
            self.console.warn("dnf copr not available; trying to install dnf plugins")
            try:
                self.runner.run(
                    Command.of("dnf", "install", "-y", "dnf-plugins-core"), privileged=True
                )
            except CommandError as e:
                # enabling the COPR below reports the real failure
                self.console.warn(f"Could not install dnf-plugins-core: {e}")
        self.console.info(f"Fedora: enabling COPR {name}")
        self.runner.run(Command.of("dnf", "-y", "copr", "enable", name), privileged=True)

    def _add_repofile(self, url: str) -> None:
        try:
            self.runner.run(
                Command.of("dnf", "install", "-y", "dnf-command(config-manager)"),
                privileged=True,
            )
        except CommandError:
            self.runner.run(
                Command.of("dnf", "install", "-y", "dnf-plugins-core"), privileged=True
            )

        help_text = self.runner.query(Command.of("dnf", "config-manager", "--help"))
        self.console.info(f"Fedora: adding repository {url}")
        if "--add-repo" in help_text.stdout + help_text.stderr:
            command = Command.of("dnf", "config-manager", "--add-repo", url)
        else:
            command = Command.of(
                "dnf", "config-manager", "addrepo", f"--from-repofile={url}"
            )
        self.runner.run(command, privileged=True)


class PacmanAdapter(InstallerAdapter):
    manager = "pacman"
    label = "Arch"
    required_commands = ("pacman",)

    def query_command(self, spec: PackageSpec) -> Command:
        return Command.of("pacman", "-Qi", spec.name)

    def install_command(self, spec: PackageSpec) -> Command:
        return Command.of("pacman", "-S", "--noconfirm", spec.name)

    def refresh(self) -> None:
        self.console.info("Arch: refreshing package database")
        self.runner.run(Command.of("pacman", "-Sy", "--noconfirm"), privileged=True)


ADAPTERS: dict[HostOS, type[InstallerAdapter]] = {
    HostOS.MACOS: BrewAdapter,
    HostOS.FEDORA: DnfAdapter,
    HostOS.ARCH: PacmanAdapter,
}


def adapter_for(
    host_os: HostOS, runner: Runner, probe: Probe, console: Console
) -> InstallerAdapter:
    """Return the installer adapter for a supported OS.

    Raises:
        UnsupportedPlatformError: If the OS has no adapter
    """
    try:
        adapter_cls = ADAPTERS[host_os]
    except KeyError:
        raise UnsupportedPlatformError(f"Unsupported OS: {host_os.value}") from None
    return adapter_cls(runner, probe, console)


__all__ = [
    "InstallerAdapter",
    "BrewAdapter",
    "DnfAdapter",
    "PacmanAdapter",
    "ADAPTERS",
    "adapter_for",
]
