"""Host OS and deployment profile detection."""

import logging
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .config import Settings

OS_RELEASE = Path("/etc/os-release")

_logging = logging.getLogger(__name__)


class HostOS(Enum):
    MACOS = "macos"
    FEDORA = "fedora"
    ARCH = "arch"
    LINUX_UNKNOWN = "linux-unknown"
    UNKNOWN = "unknown"

    @property
    def supported(self) -> bool:
        return self in SUPPORTED_OS


SUPPORTED_OS = frozenset({HostOS.MACOS, HostOS.FEDORA, HostOS.ARCH})


class Profile(Enum):
    DESKTOP = "desktop"
    SERVER = "server"


@dataclass(frozen=True)
class HostProfile:
    os: HostOS
    profile: Profile
    os_version: str | None = None

    def describe(self) -> str:
        version = f" {self.os_version}" if self.os_version else ""
        return f"{self.os.value}{version} ({self.profile.value})"


def parse_os_release(text: str) -> dict[str, str]:
    """Parse KEY=value lines of an os-release file, stripping quotes."""
    fields = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        fields[key.strip()] = value
    return fields


def detect_os(
    platform_marker: str, os_release: Path = OS_RELEASE
) -> tuple[HostOS, str | None]:
    """Classify the host OS and return it with its version, if known."""
    if platform_marker.startswith("darwin"):
        return HostOS.MACOS, None

    try:
        fields = parse_os_release(os_release.read_text(encoding="utf-8", errors="replace"))
    except OSError as e:
        _logging.debug(f"Cannot read {os_release}: {e}")
        return HostOS.UNKNOWN, None

    distro = fields.get("ID", "").lower()
    version = fields.get("VERSION_ID") or None
    if distro == "fedora":
        return HostOS.FEDORA, version
    if distro == "arch":
        return HostOS.ARCH, version
    return HostOS.LINUX_UNKNOWN, version


def is_headless(settings: Settings) -> bool:
    """Coarse heuristic: no windowing-display variable means a server."""
    return not settings.display and not settings.wayland_display


def detect_profile(host_os: HostOS, settings: Settings) -> Profile:
    if settings.profile != "auto":
        return Profile(settings.profile)
    if host_os is HostOS.MACOS:
        return Profile.DESKTOP
    return Profile.SERVER if is_headless(settings) else Profile.DESKTOP


def detect_host(
    settings: Settings,
    platform_marker: str | None = None,
    os_release: Path = OS_RELEASE,
) -> HostProfile:
    """Detect the host profile. Never raises."""
    if platform_marker is None:
        platform_marker = sys.platform
    host_os, version = detect_os(platform_marker, os_release)
    return HostProfile(
        os=host_os, profile=detect_profile(host_os, settings), os_version=version
    )


__all__ = [
    "HostOS",
    "Profile",
    "HostProfile",
    "SUPPORTED_OS",
    "parse_os_release",
    "detect_os",
    "detect_profile",
    "detect_host",
]
