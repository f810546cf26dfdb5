"""Stow command implementation."""

import sys

import click

from bootstrap_machine import setup_logging
from bootstrap_machine.commands.utils import (
    EXIT_FAILURE,
    RunContext,
    build_context,
    exit_on_error,
    flag,
    load_run_settings,
)
from bootstrap_machine.stow import StowReconciler, StowResult


def run_stow(run: RunContext, apps: list[str]) -> list[StowResult]:
    """Reconcile every app; a failing package never stops the others.

    Raises:
        PreconditionError: If stow is not installed
    """
    reconciler = StowReconciler(run.settings, run.runner, run.probe, run.console)
    reconciler.ensure_stow_available()
    return reconciler.reconcile_all(apps)


@click.command()
@click.argument("apps", nargs=-1)
@click.option("--all", "all_apps", is_flag=True, help="Stow the default app list")
@click.option("--force", is_flag=True, help="Adopt conflicting files (moves them into the package)")
@click.option("--no-restow", is_flag=True, help="Do not pass --restow to stow")
@click.option("--dry-run", is_flag=True, help="Print actions without executing")
@click.pass_context
def stow(ctx, apps: tuple[str, ...], all_apps: bool, force: bool, no_restow: bool, dry_run: bool):
    """Link dotfiles packages for installed apps into $HOME."""
    setup_logging(ctx.obj.get("debug", False))
    if apps and all_apps:
        raise click.BadArgumentUsage("--all cannot be combined with app names")

    settings = load_run_settings(
        force_stow=flag(force),
        restow=False if no_restow else None,
        dry_run=flag(dry_run),
    )
    run = build_context(settings, "setup")
    selected = list(apps) if apps else list(settings.default_apps)

    with exit_on_error():
        results = run_stow(run, selected)

    if StowReconciler.batch_failed(results):
        failed = ", ".join(r.package.name for r in results if r.failed)
        run.console.error(f"Stow failed for: {failed}")
        sys.exit(EXIT_FAILURE)
