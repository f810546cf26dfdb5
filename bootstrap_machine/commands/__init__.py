"""CLI command definitions for bootstrap-machine."""

import click

from bootstrap_machine import __version__
from bootstrap_machine.commands.bootstrap import bootstrap
from bootstrap_machine.commands.detect import detect
from bootstrap_machine.commands.plan import plan
from bootstrap_machine.commands.setup import setup
from bootstrap_machine.commands.stow import stow
from bootstrap_machine.commands.terminfo import push_terminfo


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="bootstrap-machine")
@click.option("--debug", is_flag=True, help="Enable debug output for troubleshooting")
@click.pass_context
def cli(ctx, debug):
    """Provision this machine and link its dotfiles."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


cli.add_command(detect)
cli.add_command(plan)
cli.add_command(bootstrap)
cli.add_command(stow)
cli.add_command(setup)
cli.add_command(push_terminfo)

__all__ = ["cli"]


if __name__ == "__main__":
    cli()
