"""Settings loading and validation.

Settings are assembled once per invocation from, lowest priority first:
built-in defaults, the optional YAML settings file, and environment
variables. CLI flags are applied on top with :meth:`Settings.with_overrides`.
The resulting :class:`Settings` is immutable and passed explicitly to every
component.
"""

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import BootstrapError
from .paths import (
    default_ezpodman_bin,
    default_zinit_home,
    get_config_path,
    get_home,
)


class ConfigError(BootstrapError):
    """Raised when settings or catalog loading fails.

    Messages name the offending key or file and, for syntax errors, the line
    and column with a caret indicator.
    """
    pass


PROFILES = ("auto", "desktop", "server")

DEFAULT_DOTFILES_REPO_URL = "git@github.com:alfonsosanchez12/dotfiles.git"
DEFAULT_EZPODMAN_URL = (
    "https://raw.githubusercontent.com/alfonsosanchez12/ezpodman/main/ezpodman"
)
DEFAULT_TERMINFO_NAME = "xterm-ghostty"
DEFAULT_APPS = ("zsh", "nvim", "starship", "bat", "eza", "yazi", "karabiner")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}

# settings file key -> (Settings field, expected type)
_FILE_KEYS: dict[str, tuple[str, type]] = {
    "profile": ("profile", str),
    "dry_run": ("dry_run", bool),
    "force_stow": ("force_stow", bool),
    "restow": ("restow", bool),
    "dotfiles_repo_url": ("dotfiles_repo_url", str),
    "zinit_home": ("zinit_home", str),
    "ezpodman_bin": ("ezpodman_bin", str),
    "ezpodman_url": ("ezpodman_url", str),
    "terminfo_name": ("terminfo_name", str),
    "default_apps": ("default_apps", list),
    "catalog": ("catalog_path", str),
}

# environment variable -> Settings field
_ENV_KEYS: dict[str, str] = {
    "PROFILE": "profile",
    "DRY_RUN": "dry_run",
    "FORCE_STOW": "force_stow",
    "RESTOW": "restow",
    "DOTFILES_REPO_URL": "dotfiles_repo_url",
    "ZINIT_HOME": "zinit_home",
    "EZPODMAN_BIN": "ezpodman_bin",
    "EZPODMAN_URL": "ezpodman_url",
    "TERMINFO_NAME": "terminfo_name",
    "BOOTSTRAP_CATALOG": "catalog_path",
}

_BOOL_FIELDS = {"dry_run", "force_stow", "restow"}
_PATH_FIELDS = {"zinit_home", "ezpodman_bin", "catalog_path"}


@dataclass(frozen=True)
class Settings:
    """Immutable run configuration."""
    home: Path
    zinit_home: Path
    ezpodman_bin: Path
    profile: str = "auto"
    dry_run: bool = False
    force_stow: bool = False
    restow: bool = True
    dotfiles_repo_url: str = DEFAULT_DOTFILES_REPO_URL
    ezpodman_url: str = DEFAULT_EZPODMAN_URL
    terminfo_name: str = DEFAULT_TERMINFO_NAME
    default_apps: tuple[str, ...] = DEFAULT_APPS
    catalog_path: Path | None = None
    shell: str | None = None
    display: str | None = None
    wayland_display: str | None = None
    source: Path | None = field(default=None, compare=False)

    def __post_init__(self):
        if self.profile not in PROFILES:
            raise ConfigError(
                f"Invalid profile '{self.profile}'. Must be one of: {', '.join(PROFILES)}"
            )
        if not self.dotfiles_repo_url:
            raise ConfigError("dotfiles_repo_url must be a non-empty string")
        if not self.terminfo_name:
            raise ConfigError("terminfo_name must be a non-empty string")

    @property
    def dotfiles_dir(self) -> Path:
        """Dotfiles are always cloned into ~/dotfiles."""
        return self.home / "dotfiles"

    def with_overrides(self, **changes) -> "Settings":
        """Return a copy with CLI-level overrides applied (None values ignored)."""
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            return self
        return dataclasses.replace(self, **changes)


def parse_bool(value: str, name: str) -> bool:
    """Parse a boolean environment value.

    Raises:
        ConfigError: If the value is not a recognised boolean
    """
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be one of 0/1/true/false/yes/no, got '{value}'")


def _format_yaml_error(path: Path, error: yaml.YAMLError) -> str:
    """Format a YAML syntax error with line, caret, and context."""
    mark = getattr(error, "problem_mark", None)
    problem = getattr(error, "problem", None) or str(error)
    if mark is None:
        return f"Settings syntax error in {path}: {problem}"

    msg_parts = [
        f"Settings syntax error in {path} at line {mark.line + 1}, "
        f"col {mark.column + 1}: {problem}"
    ]
    lines = (mark.buffer or "").split("\n") if mark.buffer else []
    if 0 <= mark.line < len(lines):
        msg_parts.append(lines[mark.line].rstrip("\0"))
        msg_parts.append(" " * mark.column + "^")
    return "\n".join(msg_parts)


def load_settings_file(path: Path) -> dict:
    """Load and validate the YAML settings file.

    Returns:
        Dict mapping Settings field names to raw values; empty if the file
        does not exist

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, or
            contains unknown keys or wrongly typed values
    """
    if not path.exists():
        return {}
    try:
        text = path.read_text(encoding="utf-8")
    except PermissionError:
        raise ConfigError(f"Permission denied reading settings file: {path}")
    except UnicodeDecodeError:
        raise ConfigError(f"Settings file is not valid UTF-8: {path}")
    except OSError as e:
        raise ConfigError(f"Error reading settings file {path}: {e}")

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(_format_yaml_error(path, e)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Settings file {path} must be a mapping, got {type(data).__name__}"
        )

    values = {}
    for key, value in data.items():
        if key not in _FILE_KEYS:
            allowed = ", ".join(sorted(_FILE_KEYS))
            raise ConfigError(f"Unknown settings key '{key}' in {path}. Allowed: {allowed}")
        field_name, expected = _FILE_KEYS[key]
        if not isinstance(value, expected):
            raise ConfigError(
                f"Settings key '{key}' must be a {expected.__name__}, "
                f"got {type(value).__name__}"
            )
        if expected is list:
            if not all(isinstance(item, str) and item.strip() for item in value):
                raise ConfigError(f"Settings key '{key}' must be a list of non-empty strings")
            value = tuple(value)
        values[field_name] = value
    return values


def load_settings(
    environ: Mapping[str, str] | None = None, config_path: Path | None = None
) -> Settings:
    """Build Settings from defaults, the settings file and the environment.

    Args:
        environ: Environment mapping (defaults to os.environ)
        config_path: Explicit settings file; defaults to the XDG location

    Raises:
        ConfigError: If any layer contains an invalid value
    """
    if environ is None:
        environ = os.environ

    home = get_home(environ)
    path = config_path or get_config_path(environ)
    values: dict[str, object] = {
        "home": home,
        "zinit_home": default_zinit_home(environ),
        "ezpodman_bin": default_ezpodman_bin(environ),
    }
    values.update(load_settings_file(path))

    for env_name, field_name in _ENV_KEYS.items():
        raw = environ.get(env_name)
        if raw is None:
            continue
        if field_name in _BOOL_FIELDS:
            values[field_name] = parse_bool(raw, env_name)
        elif raw:
            values[field_name] = raw

    for field_name in _PATH_FIELDS:
        value = values.get(field_name)
        if isinstance(value, str):
            values[field_name] = Path(value).expanduser()

    values["shell"] = environ.get("SHELL") or None
    values["display"] = environ.get("DISPLAY") or None
    values["wayland_display"] = environ.get("WAYLAND_DISPLAY") or None
    values["source"] = path if path.exists() else None

    return Settings(**values)


__all__ = [
    "ConfigError",
    "Settings",
    "PROFILES",
    "DEFAULT_APPS",
    "parse_bool",
    "load_settings_file",
    "load_settings",
]
