"""Loader for the provisioning catalog.

The catalog is a YAML file listing, per supported OS, the ordered entries
that make up the provisioning plan: packages, shell registration, repository
clones, file fetches, index refreshes and notes.

Caching Strategy:
- Each catalog file is parsed and validated once, then cached by path
- Use clear_cache() to force a reload (tests, or after editing a catalog)
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml
from packaging.specifiers import InvalidSpecifier, SpecifierSet

from .config import ConfigError
from .detect import HostOS, Profile, SUPPORTED_OS
from .errors import format_field_error
from .installer.models import (
    ALL_PROFILES,
    Applicability,
    CatalogEntry,
    Channel,
    ChannelKind,
    EntryKind,
    InstallerKind,
    PackageSpec,
    SourceBuild,
)
from .paths import get_packaged_catalog_path

_catalog_cache: dict[Path, "Catalog"] = {}

_COMMON_KEYS = {"profiles", "os_version"}
_KIND_KEYS: dict[EntryKind, set[str]] = {
    EntryKind.PACKAGE: {"installer", "probe", "channel", "source"},
    EntryKind.SHELL: set(),
    EntryKind.CLONE: {"dest", "strip_git"},
    EntryKind.FETCH: {"dest", "executable"},
    EntryKind.REFRESH: set(),
    EntryKind.NOTE: set(),
}


@dataclass
class Catalog:
    platforms: dict[HostOS, list[CatalogEntry]] = field(default_factory=dict)
    path: Path | None = None

    def entries_for(self, host_os: HostOS) -> list[CatalogEntry]:
        return self.platforms.get(host_os, [])


def clear_cache() -> None:
    """Clear all cached catalogs."""
    _catalog_cache.clear()


def _load_yaml_file(path: Path) -> dict:
    """Load and parse a YAML catalog file with error handling.

    Raises:
        ConfigError: If file cannot be read or contains invalid YAML
    """
    if not path.exists():
        raise ConfigError(f"Catalog file not found: {path}")

    if not path.is_file():
        raise ConfigError(f"Catalog path is not a file: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to load catalog file {path}: {e}") from e
    except UnicodeDecodeError:
        raise ConfigError(f"Catalog file is not valid UTF-8: {path}") from None
    except OSError as e:
        raise ConfigError(f"Error reading catalog file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Catalog {path} must be a mapping of OS name to entries")
    return data


def _require_str_field(data: dict, field: str, entity_name: str) -> None:
    """Validate required string field.

    Raises:
        ConfigError: If field missing, not str, or empty
    """
    if field not in data:
        raise ConfigError(f"{entity_name} missing required field: {field}")
    if not isinstance(data[field], str) or not data[field].strip():
        raise ConfigError(format_field_error(entity_name, field, "must be a non-empty string"))


def _optional_field(data: dict, field: str, entity_name: str, field_type: type) -> None:
    """Validate optional field with type check.

    Raises:
        ConfigError: If field present, not None, and wrong type
    """
    if field in data and data[field] is not None:
        if not isinstance(data[field], field_type):
            type_name = field_type.__name__
            raise ConfigError(
                format_field_error(entity_name, field, f"must be a {type_name} or null")
            )


def _validate_string_list(data: dict, field: str, entity_name: str) -> None:
    """Validate list contains only non-empty strings.

    Raises:
        ConfigError: If field not a list or contains invalid strings
    """
    if field in data:
        if not isinstance(data[field], list):
            raise ConfigError(format_field_error(entity_name, field, "must be an array"))
        for i, item in enumerate(data[field]):
            if not isinstance(item, str) or not item.strip():
                raise ConfigError(
                    f"{entity_name} {field}[{i}] must be a non-empty string"
                )


def _parse_enum(enum_cls, value: str, entity_name: str, field: str):
    try:
        return enum_cls(value.lower())
    except (ValueError, AttributeError):
        allowed = ", ".join(sorted(member.value for member in enum_cls))
        raise ConfigError(
            f"{entity_name} has invalid {field}: {value}. Must be one of: {allowed}"
        ) from None


def _entry_kind(data: dict, entity_name: str) -> EntryKind:
    kinds = [kind for kind in EntryKind if kind.value in data]
    if len(kinds) != 1:
        names = ", ".join(kind.value for kind in EntryKind)
        raise ConfigError(f"{entity_name} must have exactly one of: {names}")
    return kinds[0]


def _parse_applicability(data: dict, entity_name: str) -> Applicability:
    profiles = ALL_PROFILES
    if "profiles" in data:
        _validate_string_list(data, "profiles", entity_name)
        profiles = frozenset(
            _parse_enum(Profile, p, entity_name, "profile") for p in data["profiles"]
        )

    os_version = data.get("os_version")
    if os_version is not None:
        _optional_field(data, "os_version", entity_name, str)
        try:
            SpecifierSet(os_version)
        except InvalidSpecifier:
            raise ConfigError(
                format_field_error(
                    entity_name, "os_version", f"is not a valid version specifier: {os_version}"
                )
            ) from None

    return Applicability(profiles=profiles, os_version=os_version)


def _parse_channel(data: dict, entity_name: str) -> Channel:
    if not isinstance(data, dict):
        raise ConfigError(format_field_error(entity_name, "channel", "must be an object"))
    _require_str_field(data, "kind", f"{entity_name} channel")
    _require_str_field(data, "name", f"{entity_name} channel")
    kind = _parse_enum(ChannelKind, data["kind"], entity_name, "channel kind")
    return Channel(kind=kind, name=data["name"])


def _parse_source(data: dict, entity_name: str) -> SourceBuild:
    if not isinstance(data, dict):
        raise ConfigError(format_field_error(entity_name, "source", "must be an object"))
    _validate_string_list(data, "toolchain", f"{entity_name} source")
    if not data.get("build"):
        raise ConfigError(f"{entity_name} source missing required field: build")
    _validate_string_list(data, "build", f"{entity_name} source")
    return SourceBuild(
        toolchain=tuple(data.get("toolchain", [])), build=tuple(data["build"])
    )


def _parse_package(
    data: dict, host_os: HostOS, entity_name: str, applicability: Applicability
) -> PackageSpec:
    _optional_field(data, "installer", entity_name, str)
    _optional_field(data, "probe", entity_name, str)
    installer = _parse_enum(
        InstallerKind, data.get("installer") or "native", entity_name, "installer"
    )

    channel = None
    if "channel" in data:
        channel = _parse_channel(data["channel"], entity_name)
    source = None
    if "source" in data:
        source = _parse_source(data["source"], entity_name)

    if installer in (InstallerKind.PLUGIN, InstallerKind.NATIVE_THEN_PLUGIN) and channel is None:
        raise ConfigError(f"{entity_name} installer '{installer.value}' requires a channel")
    if installer is InstallerKind.SOURCE and source is None:
        raise ConfigError(f"{entity_name} installer 'source' requires a source recipe")
    if installer is InstallerKind.CASK and host_os is not HostOS.MACOS:
        raise ConfigError(f"{entity_name} installer 'cask' is only available on macos")

    return PackageSpec(
        name=data["package"],
        installer=installer,
        probe=data.get("probe"),
        channel=channel,
        source=source,
        applicability=applicability,
    )


def _parse_entry(data: dict, host_os: HostOS, index: int) -> CatalogEntry:
    entity_name = f"Entry {host_os.value}[{index}]"
    if not isinstance(data, dict):
        raise ConfigError(f"{entity_name} must be an object")

    kind = _entry_kind(data, entity_name)
    allowed = {kind.value} | _COMMON_KEYS | _KIND_KEYS[kind]
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigError(f"{entity_name} has unknown fields: {', '.join(unknown)}")

    applicability = _parse_applicability(data, entity_name)

    if kind is EntryKind.REFRESH:
        return CatalogEntry(kind=kind, applicability=applicability)

    _require_str_field(data, kind.value, entity_name)

    if kind is EntryKind.PACKAGE:
        package = _parse_package(data, host_os, entity_name, applicability)
        return CatalogEntry(
            kind=kind, value=package.name, package=package, applicability=applicability
        )

    if kind in (EntryKind.CLONE, EntryKind.FETCH):
        _require_str_field(data, "dest", entity_name)
        _optional_field(data, "strip_git", entity_name, bool)
        _optional_field(data, "executable", entity_name, bool)
        return CatalogEntry(
            kind=kind,
            value=data[kind.value],
            dest=data["dest"],
            strip_git=bool(data.get("strip_git", False)),
            executable=bool(data.get("executable", False)),
            applicability=applicability,
        )

    return CatalogEntry(kind=kind, value=data[kind.value], applicability=applicability)


def parse_catalog(raw_data: dict, path: Path | None = None) -> Catalog:
    """Validate raw catalog data and convert it to a Catalog.

    Raises:
        ConfigError: If validation fails
    """
    platforms = {}
    for os_name, entries in raw_data.items():
        host_os = _parse_enum(HostOS, str(os_name), "Catalog", "OS")
        if host_os not in SUPPORTED_OS:
            raise ConfigError(f"Catalog OS '{os_name}' is not a supported platform")
        if not isinstance(entries, list):
            raise ConfigError(f"Catalog section '{os_name}' must be an array")
        platforms[host_os] = [
            _parse_entry(entry, host_os, i) for i, entry in enumerate(entries)
        ]
    return Catalog(platforms=platforms, path=path)


def load_catalog(path: Path | None = None) -> Catalog:
    """Load the catalog from ``path`` or the packaged default.

    Raises:
        ConfigError: If file cannot be loaded or data is invalid
    """
    path = path or get_packaged_catalog_path()
    if path in _catalog_cache:
        return _catalog_cache[path]

    raw_data = _load_yaml_file(path)
    try:
        catalog = parse_catalog(raw_data, path)
    except ConfigError as e:
        raise ConfigError(f"Invalid catalog {path}: {e}") from e

    _catalog_cache[path] = catalog
    return catalog


__all__ = [
    "Catalog",
    "clear_cache",
    "parse_catalog",
    "load_catalog",
]
