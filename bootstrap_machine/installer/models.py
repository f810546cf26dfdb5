"""Data models for the provisioning system."""

from dataclasses import dataclass, field
from enum import Enum

from packaging.specifiers import SpecifierSet
from packaging.version import InvalidVersion, Version

from ..detect import HostProfile, Profile

ALL_PROFILES = frozenset(Profile)


class InstallerKind(Enum):
    NATIVE = "native"
    CASK = "cask"
    PLUGIN = "plugin"
    SOURCE = "source"
    NATIVE_THEN_PLUGIN = "native-then-plugin"


class ChannelKind(Enum):
    COPR = "copr"
    REPOFILE = "repofile"
    TAP = "tap"


class InstallOutcome(Enum):
    ALREADY_PRESENT = "already-present"
    INSTALLED = "installed"
    PLANNED = "planned"
    FAILED = "failed"


@dataclass(frozen=True)
class Applicability:
    profiles: frozenset[Profile] = ALL_PROFILES
    os_version: str | None = None

    def matches(self, host: HostProfile) -> bool:
        if host.profile not in self.profiles:
            return False
        if self.os_version and host.os_version:
            try:
                version = Version(host.os_version)
            except InvalidVersion:
                return True
            return version in SpecifierSet(self.os_version)
        return True


@dataclass(frozen=True)
class Channel:
    kind: ChannelKind
    name: str


@dataclass(frozen=True)
class SourceBuild:
    toolchain: tuple[str, ...]
    build: tuple[str, ...]


@dataclass(frozen=True)
class PackageSpec:
    name: str
    installer: InstallerKind = InstallerKind.NATIVE
    probe: str | None = None
    channel: Channel | None = None
    source: SourceBuild | None = None
    applicability: Applicability = field(default_factory=Applicability)

    def applies(self, host: HostProfile) -> bool:
        return self.applicability.matches(host)


@dataclass
class InstallResult:
    package: str
    outcome: InstallOutcome
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome != InstallOutcome.FAILED


class EntryKind(Enum):
    PACKAGE = "package"
    SHELL = "shell"
    CLONE = "clone"
    FETCH = "fetch"
    REFRESH = "refresh"
    NOTE = "note"


@dataclass(frozen=True)
class CatalogEntry:
    kind: EntryKind
    value: str = ""
    dest: str | None = None
    strip_git: bool = False
    executable: bool = False
    package: PackageSpec | None = None
    applicability: Applicability = field(default_factory=Applicability)


class ActionKind(Enum):
    ENSURE_PACKAGE = "ensure-package"
    REGISTER_SHELL = "register-shell"
    SET_DEFAULT_SHELL = "set-default-shell"
    CLONE_REPO = "clone-repo"
    FETCH_FILE = "fetch-file"
    REFRESH_INDEX = "refresh-index"
    NOTE = "note"


class FailurePolicy(Enum):
    ABORT = "abort"
    CONTINUE = "continue"


@dataclass
class PlanStep:
    action: ActionKind
    target: str
    description: str
    on_failure: FailurePolicy = FailurePolicy.ABORT
    package: PackageSpec | None = None
    source_url: str | None = None
    strip_git: bool = False
    executable: bool = False


@dataclass
class Plan:
    host: HostProfile
    steps: list[PlanStep]

    def packages(self) -> list[str]:
        return [s.target for s in self.steps if s.action == ActionKind.ENSURE_PACKAGE]


class StepStatus(Enum):
    DONE = "done"
    SKIPPED = "skipped"
    PLANNED = "planned"
    FAILED = "failed"


@dataclass
class StepResult:
    step: PlanStep
    status: StepStatus
    detail: str = ""


@dataclass
class ApplyReport:
    results: list[StepResult] = field(default_factory=list)
    aborted: bool = False

    @property
    def failed(self) -> list[StepResult]:
        return [r for r in self.results if r.status == StepStatus.FAILED]

    @property
    def ok(self) -> bool:
        return not self.aborted


__all__ = [
    "InstallerKind",
    "ChannelKind",
    "InstallOutcome",
    "Applicability",
    "Channel",
    "SourceBuild",
    "PackageSpec",
    "InstallResult",
    "EntryKind",
    "CatalogEntry",
    "ActionKind",
    "FailurePolicy",
    "PlanStep",
    "Plan",
    "StepStatus",
    "StepResult",
    "ApplyReport",
]
