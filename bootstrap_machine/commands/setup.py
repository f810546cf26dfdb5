"""Setup command: dotfiles, bootstrap and stow in one run."""

import sys

import click

from bootstrap_machine import setup_logging
from bootstrap_machine.commands.bootstrap import run_bootstrap
from bootstrap_machine.commands.stow import run_stow
from bootstrap_machine.commands.utils import (
    EXIT_FAILURE,
    build_context,
    exit_on_error,
    flag,
    load_run_settings,
)
from bootstrap_machine.dotfiles import clone_or_update_dotfiles
from bootstrap_machine.stow import StowReconciler


@click.command()
@click.option("--all", "all_apps", is_flag=True, help="Stow the default app list")
@click.option("--apps", type=str, help='Space-separated app list, e.g. "zsh nvim starship"')
@click.option("--skip-bootstrap", is_flag=True, help="Do not install packages")
@click.option("--skip-stow", is_flag=True, help="Do not stow dotfiles")
@click.option("--dry-run", is_flag=True, help="Print actions without executing")
@click.pass_context
def setup(
    ctx,
    all_apps: bool,
    apps: str | None,
    skip_bootstrap: bool,
    skip_stow: bool,
    dry_run: bool,
):
    """Clone ~/dotfiles, bootstrap this machine and stow app configs."""
    setup_logging(ctx.obj.get("debug", False))
    if apps is not None and all_apps:
        raise click.BadArgumentUsage("--all cannot be combined with --apps")

    settings = load_run_settings(dry_run=flag(dry_run))
    run = build_context(settings, "setup")
    selected = apps.split() if apps else []
    if not selected:
        selected = list(settings.default_apps)

    with exit_on_error():
        clone_or_update_dotfiles(settings, run.runner, run.probe, run.console)

        if skip_bootstrap:
            run.console.info("Skipping bootstrap (--skip-bootstrap)")
        else:
            run_bootstrap(run)

        if skip_stow:
            run.console.info("Skipping stow (--skip-stow)")
            return
        results = run_stow(run, selected)

    if StowReconciler.batch_failed(results):
        sys.exit(EXIT_FAILURE)
