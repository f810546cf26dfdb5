"""Shared helpers for commands: exit codes, run context and error mapping."""

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass

import click

from bootstrap_machine.config import ConfigError, Settings, load_settings
from bootstrap_machine.console import Console
from bootstrap_machine.errors import (
    InstallError,
    PreconditionError,
    UnsupportedPlatformError,
    format_error,
)
from bootstrap_machine.execution import CommandError, Runner
from bootstrap_machine.probe import Probe

_logging = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INVALID_ARGS = 2
EXIT_UNSUPPORTED_PLATFORM = 3
EXIT_CONFIG_ERROR = 4
EXIT_INSTALL_FAILED = 5

PROFILE_CHOICE = click.Choice(["auto", "desktop", "server"])


@dataclass
class RunContext:
    """Collaborators shared by every step of one command invocation."""
    settings: Settings
    runner: Runner
    probe: Probe
    console: Console


def _fail(message: str, code: int) -> None:
    _logging.debug("Command failed", exc_info=True)
    click.echo(format_error(message), err=True)
    sys.exit(code)


@contextmanager
def exit_on_error():
    """Translate toolkit exceptions into an error line and exit code."""
    try:
        yield
    except ConfigError as e:
        _fail(str(e), EXIT_CONFIG_ERROR)
    except UnsupportedPlatformError as e:
        _fail(str(e), EXIT_UNSUPPORTED_PLATFORM)
    except InstallError as e:
        _fail(str(e), EXIT_INSTALL_FAILED)
    except (PreconditionError, CommandError) as e:
        _fail(str(e), EXIT_FAILURE)


def load_run_settings(**overrides) -> Settings:
    """Load layered settings and apply CLI overrides (None means unset).

    Exits with EXIT_CONFIG_ERROR when any layer is invalid.
    """
    try:
        settings = load_settings().with_overrides(**overrides)
    except ConfigError as e:
        _fail(str(e), EXIT_CONFIG_ERROR)
    _logging.debug(f"Settings file: {settings.source or 'none (defaults and environment)'}")
    return settings


def build_context(settings: Settings, tag: str) -> RunContext:
    console = Console(tag)
    runner = Runner(dry_run=settings.dry_run, announce=console.dry_run)
    return RunContext(settings=settings, runner=runner, probe=Probe(runner), console=console)


def flag(value: bool) -> bool | None:
    """Map an unset boolean flag to None so lower layers keep their value."""
    return True if value else None
