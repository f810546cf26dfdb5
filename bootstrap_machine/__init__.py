"""Bootstrap a workstation or server: install packages, then stow dotfiles."""

import logging

import click

from .errors import (
    BootstrapError,
    InstallError,
    PreconditionError,
    UnsupportedPlatformError,
    format_error,
    format_field_error,
)
from .config import ConfigError, Settings, load_settings
from .detect import HostOS, HostProfile, Profile, detect_host

__version__ = "0.1.0"


class _ClickHandler(logging.Handler):
    """Writes records to stderr through click, resolving the stream per call."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def setup_logging(debug: bool = False) -> None:
    """Route package logs to stderr; debug records only with --debug."""
    logger = logging.getLogger(__name__)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    if not any(isinstance(h, _ClickHandler) for h in logger.handlers):
        handler = _ClickHandler()
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(handler)


__all__ = [
    "__version__",
    "setup_logging",
    "BootstrapError",
    "ConfigError",
    "InstallError",
    "PreconditionError",
    "UnsupportedPlatformError",
    "format_error",
    "format_field_error",
    "Settings",
    "load_settings",
    "HostOS",
    "HostProfile",
    "Profile",
    "detect_host",
]
