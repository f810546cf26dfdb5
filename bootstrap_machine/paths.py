"""Well-known path helpers for bootstrap-machine."""

from collections.abc import Mapping
from pathlib import Path


def get_home(environ: Mapping[str, str]) -> Path:
    """Return the home directory from HOME, falling back to Path.home()."""
    home = environ.get("HOME")
    return Path(home) if home else Path.home()


def get_config_dir(environ: Mapping[str, str]) -> Path:
    """Return XDG-compliant config directory: ~/.config/bootstrap-machine"""
    xdg = environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else get_home(environ) / ".config"
    return base / "bootstrap-machine"


def get_config_path(environ: Mapping[str, str]) -> Path:
    """Return path to the user settings file.

    Priority:
    1. BOOTSTRAP_MACHINE_CONFIG environment variable (if set)
    2. ~/.config/bootstrap-machine/config.yaml (default XDG location)
    """
    if environ.get("BOOTSTRAP_MACHINE_CONFIG"):
        return Path(environ["BOOTSTRAP_MACHINE_CONFIG"])
    return get_config_dir(environ) / "config.yaml"


def get_packaged_catalog_path() -> Path:
    """Return path to the packaged package catalog"""
    return Path(__file__).parent / "data" / "catalog.yaml"


def default_zinit_home(environ: Mapping[str, str]) -> Path:
    xdg = environ.get("XDG_DATA_HOME")
    base = Path(xdg) if xdg else get_home(environ) / ".local" / "share"
    return base / "zinit" / "zinit.git"


def default_ezpodman_bin(environ: Mapping[str, str]) -> Path:
    return get_home(environ) / ".local" / "bin" / "ezpodman"
