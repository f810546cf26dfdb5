"""Clone or fast-forward the dotfiles repository."""

from .config import Settings
from .console import Console
from .errors import PreconditionError
from .execution import Command, CommandError, Runner
from .probe import Probe


def clone_or_update_dotfiles(
    settings: Settings, runner: Runner, probe: Probe, console: Console
) -> None:
    """Make sure ``~/dotfiles`` is a checkout of the dotfiles repository.

    An existing checkout is pulled with ``--ff-only``; a missing one is
    cloned from ``settings.dotfiles_repo_url``.

    Raises:
        PreconditionError: If git is missing, the directory exists but is
            not a git checkout, or the clone fails
    """
    if not probe.has_command("git"):
        raise PreconditionError("git not found. Install git and re-run.")

    target = settings.dotfiles_dir
    if probe.is_dir(target / ".git"):
        console.info(f"dotfiles already cloned: {target} (pulling latest)")
        runner.run(Command.of("git", "-C", str(target), "pull", "--ff-only"))
        return

    if probe.lexists(target):
        raise PreconditionError(
            f"{target} exists but is not a git repo. Move it aside (or delete it) then re-run."
        )

    console.info(f"Cloning dotfiles -> {target}")
    try:
        runner.run(Command.of("git", "clone", settings.dotfiles_repo_url, str(target)))
    except CommandError as e:
        raise PreconditionError(
            "Failed to clone dotfiles repo. "
            "If private: prefer SSH URL and ensure your GitHub SSH key is set up."
        ) from e


__all__ = ["clone_or_update_dotfiles"]
