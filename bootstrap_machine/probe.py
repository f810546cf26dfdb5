"""Read-only capability queries against the host."""

import os
import shutil
from pathlib import Path

from .execution import Command, Runner


class Probe:
    """Answers "is X present?" for commands, paths and installed packages."""

    def __init__(self, runner: Runner):
        self.runner = runner

    def has_command(self, name: str) -> bool:
        return shutil.which(name) is not None

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def is_file(self, path: Path) -> bool:
        return path.is_file()

    def is_executable(self, path: Path) -> bool:
        return path.is_file() and os.access(path, os.X_OK)

    def lexists(self, path: Path) -> bool:
        """True for any directory entry, including dangling symlinks."""
        return os.path.lexists(path)

    def succeeds(self, command: Command) -> bool:
        """Run a query command and report whether it exited zero."""
        return self.runner.query(command).ok


__all__ = ["Probe"]
