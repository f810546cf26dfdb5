"""Terminfo push command implementation."""

import sys

import click

from bootstrap_machine import setup_logging
from bootstrap_machine.commands.utils import (
    EXIT_FAILURE,
    build_context,
    exit_on_error,
    flag,
    load_run_settings,
)
from bootstrap_machine.terminfo import (
    TerminfoPusher,
    TerminfoTarget,
    Transport,
    parse_target,
)


@click.command("push-terminfo")
@click.argument("mode", type=click.Choice(["ssh", "incus", "target"]))
@click.argument("targets", nargs=-1, required=True)
@click.option("--dry-run", is_flag=True, help="Print actions without executing")
@click.pass_context
def push_terminfo(ctx, mode: str, targets: tuple[str, ...], dry_run: bool):
    """Install the terminal's terminfo entry on remote hosts.

    \b
    Examples:
      bootstrap-machine push-terminfo ssh fedora01 arch01
      bootstrap-machine push-terminfo incus arch01 fedora-vm
      bootstrap-machine push-terminfo target ssh:fedora01 incus:arch01
    """
    setup_logging(ctx.obj.get("debug", False))
    settings = load_run_settings(dry_run=flag(dry_run))
    run = build_context(settings, "terminfo")
    pusher = TerminfoPusher(settings, run.runner, run.probe, run.console)

    parsed: list[TerminfoTarget] = []
    invalid = 0
    for text in targets:
        if mode != "target":
            parsed.append(TerminfoTarget(Transport(mode), text))
            continue
        try:
            parsed.append(parse_target(text))
        except ValueError as e:
            run.console.warn(str(e))
            invalid += 1

    with exit_on_error():
        pusher.require_local_terminfo()
        results = pusher.push_all(parsed)

    if invalid or TerminfoPusher.batch_failed(results):
        sys.exit(EXIT_FAILURE)
