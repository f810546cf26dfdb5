"""Tests for catalog loading and validation."""

import pytest

from bootstrap_machine.catalog import load_catalog, parse_catalog
from bootstrap_machine.config import ConfigError
from bootstrap_machine.detect import HostOS, Profile
from bootstrap_machine.installer import (
    ChannelKind,
    EntryKind,
    InstallerKind,
)


def _package(catalog, host_os, name):
    for entry in catalog.entries_for(host_os):
        if entry.kind is EntryKind.PACKAGE and entry.package.name == name:
            return entry.package
    raise AssertionError(f"{name} not in {host_os.value} catalog")


def test_packaged_catalog_loads():
    catalog = load_catalog()
    assert set(catalog.platforms) == {HostOS.MACOS, HostOS.FEDORA, HostOS.ARCH}


def test_packaged_catalog_is_cached():
    assert load_catalog() is load_catalog()


def test_packaged_catalog_fallbacks():
    catalog = load_catalog()

    yazi = _package(catalog, HostOS.FEDORA, "yazi")
    assert yazi.installer is InstallerKind.NATIVE_THEN_PLUGIN
    assert yazi.channel.kind is ChannelKind.COPR
    assert yazi.channel.name == "lihaohong/yazi"

    tailscale = _package(catalog, HostOS.FEDORA, "tailscale")
    assert tailscale.channel.kind is ChannelKind.REPOFILE

    eza = _package(catalog, HostOS.FEDORA, "eza")
    assert eza.installer is InstallerKind.SOURCE
    assert eza.source.toolchain == ("git", "cargo", "rust")
    assert eza.source.build[:2] == ("cargo", "install")

    ghostty = _package(catalog, HostOS.MACOS, "ghostty")
    assert ghostty.installer is InstallerKind.CASK
    assert ghostty.applicability.profiles == frozenset({Profile.DESKTOP})


def test_fedora_shell_comes_before_tools():
    entries = load_catalog().entries_for(HostOS.FEDORA)
    kinds = [entry.kind for entry in entries[:2]]
    assert kinds == [EntryKind.PACKAGE, EntryKind.SHELL]
    assert entries[0].value == "zsh"


def test_arch_refreshes_first():
    entries = load_catalog().entries_for(HostOS.ARCH)
    assert entries[0].kind is EntryKind.REFRESH


def test_load_catalog_from_path(temp_dir):
    path = temp_dir / "catalog.yaml"
    path.write_text("arch:\n  - package: zsh\n  - note: hello\n")

    catalog = load_catalog(path)

    assert catalog.path == path
    assert [e.kind for e in catalog.entries_for(HostOS.ARCH)] == [EntryKind.PACKAGE, EntryKind.NOTE]
    assert catalog.entries_for(HostOS.FEDORA) == []


def test_missing_catalog_file(temp_dir):
    with pytest.raises(ConfigError, match="Catalog file not found"):
        load_catalog(temp_dir / "missing.yaml")


def test_invalid_yaml(temp_dir):
    path = temp_dir / "catalog.yaml"
    path.write_text("fedora: [\n")
    with pytest.raises(ConfigError, match="Failed to load catalog file"):
        load_catalog(path)


def test_non_utf8_catalog(temp_dir):
    path = temp_dir / "catalog.yaml"
    path.write_bytes(b"fedora:\n  - package: \xff\xfe\n")
    with pytest.raises(ConfigError, match="Catalog file is not valid UTF-8"):
        load_catalog(path)


def test_field_errors_name_the_field():
    raw = {"fedora": [{"package": "a", "installer": "plugin", "channel": "copr"}]}
    with pytest.raises(ConfigError, match=r"field 'channel' must be an object"):
        parse_catalog(raw)


def test_invalid_entry_is_wrapped_with_path(temp_dir):
    path = temp_dir / "catalog.yaml"
    path.write_text("fedora:\n  - package: zsh\n    installer: snap\n")
    with pytest.raises(ConfigError, match=r"Invalid catalog .*installer: snap"):
        load_catalog(path)


@pytest.mark.parametrize(
    "raw,message",
    [
        ({"windows": []}, "invalid OS"),
        ({"linux-unknown": []}, "not a supported platform"),
        ({"fedora": {"package": "zsh"}}, "must be an array"),
        ({"fedora": ["zsh"]}, "must be an object"),
        ({"fedora": [{"package": "a", "note": "b"}]}, "exactly one of"),
        ({"fedora": [{"colour": "red"}]}, "exactly one of"),
        ({"fedora": [{"package": "a", "dest": "/x"}]}, "unknown fields: dest"),
        ({"fedora": [{"package": ""}]}, "must be a non-empty string"),
        ({"fedora": [{"package": "a", "installer": "plugin"}]}, "requires a channel"),
        ({"fedora": [{"package": "a", "installer": "source"}]}, "requires a source recipe"),
        ({"fedora": [{"package": "a", "installer": "cask"}]}, "only available on macos"),
        (
            {"fedora": [{"package": "a", "installer": "plugin", "channel": {"kind": "ppa", "name": "x"}}]},
            "invalid channel kind",
        ),
        (
            {"fedora": [{"package": "a", "installer": "source", "source": {"toolchain": ["cargo"]}}]},
            "missing required field: build",
        ),
        ({"fedora": [{"package": "a", "profiles": ["laptop"]}]}, "invalid profile"),
        ({"fedora": [{"package": "a", "profiles": "desktop"}]}, "must be an array"),
        ({"fedora": [{"package": "a", "os_version": "forty"}]}, "not a valid version specifier"),
        ({"fedora": [{"clone": "https://x"}]}, "missing required field: dest"),
        ({"fedora": [{"fetch": "https://x", "dest": "/y", "executable": "yes"}]}, "must be a bool"),
    ],
)
def test_validation_errors(raw, message):
    with pytest.raises(ConfigError, match=message):
        parse_catalog(raw)


def test_refresh_entry_needs_no_value():
    catalog = parse_catalog({"arch": [{"refresh": True}]})
    assert catalog.entries_for(HostOS.ARCH)[0].kind is EntryKind.REFRESH


def test_os_version_is_kept():
    catalog = parse_catalog({"fedora": [{"package": "incus", "os_version": ">=41"}]})
    assert catalog.entries_for(HostOS.FEDORA)[0].applicability.os_version == ">=41"
