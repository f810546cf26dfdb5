"""Provisioning planning and rendering."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..config import ConfigError, Settings
from ..detect import HostProfile
from ..errors import UnsupportedPlatformError
from .models import (
    ActionKind,
    CatalogEntry,
    EntryKind,
    FailurePolicy,
    InstallerKind,
    PackageSpec,
    Plan,
    PlanStep,
)

if TYPE_CHECKING:
    from ..catalog import Catalog


def placeholder_values(settings: Settings, sudo: str = "sudo") -> dict[str, str]:
    return {
        "home": str(settings.home),
        "zinit_home": str(settings.zinit_home),
        "ezpodman_bin": str(settings.ezpodman_bin),
        "ezpodman_url": settings.ezpodman_url,
        "sudo": sudo,
    }


def _expand(template: str, values: dict[str, str]) -> str:
    try:
        expanded = template.format_map(values)
    except (KeyError, IndexError, ValueError) as e:
        raise ConfigError(f"Invalid placeholder in catalog value '{template}': {e}") from e
    return expanded


def _describe_package(spec: PackageSpec) -> str:
    text = f"install {spec.name}"
    if spec.installer is not InstallerKind.NATIVE:
        text += f" ({spec.installer.value}"
        if spec.channel:
            text += f" via {spec.channel.kind.value} {spec.channel.name}"
        text += ")"
    return text


def _steps_for(entry: CatalogEntry, values: dict[str, str]) -> list[PlanStep]:
    if entry.kind is EntryKind.PACKAGE:
        spec = entry.package
        return [
            PlanStep(
                action=ActionKind.ENSURE_PACKAGE,
                target=spec.name,
                description=_describe_package(spec),
                package=spec,
            )
        ]

    if entry.kind is EntryKind.SHELL:
        shell = _expand(entry.value, values)
        return [
            PlanStep(
                action=ActionKind.REGISTER_SHELL,
                target=shell,
                description=f"register {shell} in /etc/shells",
                on_failure=FailurePolicy.CONTINUE,
            ),
            PlanStep(
                action=ActionKind.SET_DEFAULT_SHELL,
                target=shell,
                description=f"set default shell to {shell}",
                on_failure=FailurePolicy.CONTINUE,
            ),
        ]

    if entry.kind is EntryKind.CLONE:
        url = _expand(entry.value, values)
        dest = _expand(entry.dest, values)
        return [
            PlanStep(
                action=ActionKind.CLONE_REPO,
                target=dest,
                description=f"clone {url} -> {dest}",
                source_url=url,
                strip_git=entry.strip_git,
            )
        ]

    if entry.kind is EntryKind.FETCH:
        url = _expand(entry.value, values)
        dest = _expand(entry.dest, values)
        return [
            PlanStep(
                action=ActionKind.FETCH_FILE,
                target=dest,
                description=f"fetch {url} -> {dest}",
                source_url=url,
                executable=entry.executable,
            )
        ]

    if entry.kind is EntryKind.REFRESH:
        return [
            PlanStep(
                action=ActionKind.REFRESH_INDEX,
                target="package-index",
                description="refresh package index",
            )
        ]

    text = " ".join(_expand(entry.value, values).split())
    return [
        PlanStep(
            action=ActionKind.NOTE,
            target="note",
            description=text,
            on_failure=FailurePolicy.CONTINUE,
        )
    ]


def plan_provisioning(
    host: HostProfile, catalog: Catalog, settings: Settings, sudo: str = "sudo"
) -> Plan:
    """Build the ordered provisioning plan for a host.

    Raises:
        UnsupportedPlatformError: If the host OS is not supported or the
            catalog has no section for it
    """
    if not host.os.supported:
        raise UnsupportedPlatformError(f"Unsupported OS: {host.os.value}")

    entries = catalog.entries_for(host.os)
    if not entries:
        raise UnsupportedPlatformError(f"Catalog has no entries for {host.os.value}")

    values = placeholder_values(settings, sudo)
    steps = []
    for entry in entries:
        if not entry.applicability.matches(host):
            continue
        steps.extend(_steps_for(entry, values))

    return Plan(host=host, steps=steps)


def render_plan(plan: Plan) -> str:
    lines = [f"Provisioning Plan: {plan.host.describe()}", ""]

    lines.append("Steps:")
    for i, step in enumerate(plan.steps, 1):
        suffix = ""
        if step.on_failure is FailurePolicy.CONTINUE and step.action is not ActionKind.NOTE:
            suffix = "  (continues on failure)"
        lines.append(f"  {i:2d}. [{step.action.value}] {step.description}{suffix}")

    lines.append("")
    lines.append(f"{len(plan.packages())} package(s), {len(plan.steps)} step(s)")
    return "\n".join(lines)


__all__ = [
    "placeholder_values",
    "plan_provisioning",
    "render_plan",
]
