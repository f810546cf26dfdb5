"""Installer engine: package specs, adapters, planning and execution."""

from .adapters import (
    ADAPTERS,
    BrewAdapter,
    DnfAdapter,
    InstallerAdapter,
    PacmanAdapter,
    adapter_for,
)
from .installation import SHELLS_FILE, PlanExecutor, apply_plan, summarize
from .models import (
    ActionKind,
    Applicability,
    ApplyReport,
    CatalogEntry,
    Channel,
    ChannelKind,
    EntryKind,
    FailurePolicy,
    InstallerKind,
    InstallOutcome,
    InstallResult,
    PackageSpec,
    Plan,
    PlanStep,
    SourceBuild,
    StepResult,
    StepStatus,
)
from .planning import placeholder_values, plan_provisioning, render_plan

__all__ = [
    "ActionKind",
    "Applicability",
    "ApplyReport",
    "CatalogEntry",
    "Channel",
    "ChannelKind",
    "EntryKind",
    "FailurePolicy",
    "InstallerKind",
    "InstallOutcome",
    "InstallResult",
    "PackageSpec",
    "Plan",
    "PlanStep",
    "SourceBuild",
    "StepResult",
    "StepStatus",
    "InstallerAdapter",
    "BrewAdapter",
    "DnfAdapter",
    "PacmanAdapter",
    "ADAPTERS",
    "adapter_for",
    "SHELLS_FILE",
    "PlanExecutor",
    "apply_plan",
    "summarize",
    "placeholder_values",
    "plan_provisioning",
    "render_plan",
]
