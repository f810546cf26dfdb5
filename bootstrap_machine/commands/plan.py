"""Plan command implementation."""

import click

from bootstrap_machine import detect_host, setup_logging
from bootstrap_machine.catalog import load_catalog
from bootstrap_machine.commands.utils import (
    PROFILE_CHOICE,
    build_context,
    exit_on_error,
    load_run_settings,
)
from bootstrap_machine.installer import plan_provisioning, render_plan


@click.command()
@click.option("--profile", type=PROFILE_CHOICE, help="Override the detected profile")
@click.pass_context
def plan(ctx, profile: str | None):
    """Show the provisioning plan without executing it."""
    setup_logging(ctx.obj.get("debug", False))
    settings = load_run_settings(profile=profile)
    run = build_context(settings, "bootstrap")

    with exit_on_error():
        host = detect_host(settings)
        catalog = load_catalog(settings.catalog_path)
        provisioning = plan_provisioning(host, catalog, settings, sudo=run.runner.sudo)
        click.echo(render_plan(provisioning))
