"""User-facing log lines with coloured level prefixes."""

import click


class Console:
    """Log sink shared by every component of a run.

    Informational lines carry the ``[tag]`` prefix, warnings ``[warn]`` and
    errors ``[err]``. Errors go to stderr.
    """

    def __init__(self, tag: str = "bootstrap"):
        self.tag = tag

    def info(self, message: str) -> None:
        click.secho(f"[{self.tag}]", fg="blue", bold=True, nl=False)
        click.echo(f" {message}")

    def warn(self, message: str) -> None:
        click.secho("[warn]", fg="yellow", bold=True, nl=False)
        click.echo(f" {message}")

    def error(self, message: str) -> None:
        click.secho("[err]", fg="red", bold=True, nl=False, err=True)
        click.echo(f" {message}", err=True)

    def dry_run(self, text: str) -> None:
        click.echo(f"[dry-run] {text}")


__all__ = ["Console"]
