"""Bootstrap command implementation."""

import logging

import click

from bootstrap_machine import InstallError, detect_host, setup_logging
from bootstrap_machine.catalog import load_catalog
from bootstrap_machine.commands.utils import (
    PROFILE_CHOICE,
    RunContext,
    build_context,
    exit_on_error,
    flag,
    load_run_settings,
)
from bootstrap_machine.installer import (
    ApplyReport,
    adapter_for,
    apply_plan,
    plan_provisioning,
    summarize,
)

_logging = logging.getLogger(__name__)


def run_bootstrap(run: RunContext) -> ApplyReport:
    """Detect the host, plan its provisioning and execute the plan.

    Raises:
        ConfigError: If the catalog is invalid
        UnsupportedPlatformError: If the host OS is not supported
        PreconditionError: If the package manager is missing
        InstallError: If a load-bearing step failed
    """
    settings, console = run.settings, run.console
    host = detect_host(settings)
    console.info(f"Detected OS: {host.os.value}")
    console.info(f"Profile: {host.profile.value}")

    catalog = load_catalog(settings.catalog_path)
    provisioning = plan_provisioning(host, catalog, settings, sudo=run.runner.sudo)
    _logging.debug(f"Planned {len(provisioning.steps)} steps for {host.describe()}")

    adapter = adapter_for(host.os, run.runner, run.probe, console)
    adapter.check_ready()

    report = apply_plan(provisioning, adapter, run.runner, run.probe, console, settings)
    console.info(f"Bootstrap summary: {summarize(report)}")
    if not report.ok:
        failed = report.failed[-1]
        raise InstallError(f"{failed.step.description} failed: {failed.detail}")

    console.info("Done.")
    return report


@click.command()
@click.option("--profile", type=PROFILE_CHOICE, help="Override the detected profile")
@click.option("--dry-run", is_flag=True, help="Print actions without executing")
@click.pass_context
def bootstrap(ctx, profile: str | None, dry_run: bool):
    """Install the packages and tools for this machine."""
    setup_logging(ctx.obj.get("debug", False))
    settings = load_run_settings(profile=profile, dry_run=flag(dry_run))
    run = build_context(settings, "bootstrap")

    with exit_on_error():
        run_bootstrap(run)
