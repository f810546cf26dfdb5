"""Detect command implementation."""

import click

from bootstrap_machine import detect_host, setup_logging
from bootstrap_machine.commands.utils import load_run_settings


@click.command()
@click.pass_context
def detect(ctx):
    """Print the detected OS, version and deployment profile."""
    setup_logging(ctx.obj.get("debug", False))
    settings = load_run_settings()
    host = detect_host(settings)

    click.echo(f"OS: {host.os.value}")
    click.echo(f"Version: {host.os_version or 'unknown'}")
    click.echo(f"Profile: {host.profile.value}")
    if not host.os.supported:
        click.secho("This OS is not supported for provisioning.", fg="yellow")
