"""Plan execution with per-step failure policy."""

import logging
from pathlib import Path

from ..config import Settings
from ..console import Console
from ..errors import InstallError
from ..execution import Command, CommandError, Runner
from ..probe import Probe
from .adapters import InstallerAdapter
from .models import (
    ActionKind,
    ApplyReport,
    FailurePolicy,
    InstallOutcome,
    Plan,
    PlanStep,
    StepResult,
    StepStatus,
)

SHELLS_FILE = Path("/etc/shells")

_logging = logging.getLogger(__name__)

_INSTALL_STATUS = {
    InstallOutcome.ALREADY_PRESENT: StepStatus.SKIPPED,
    InstallOutcome.INSTALLED: StepStatus.DONE,
    InstallOutcome.PLANNED: StepStatus.PLANNED,
    InstallOutcome.FAILED: StepStatus.FAILED,
}


class PlanExecutor:
    """Runs plan steps one at a time against the host."""

    def __init__(
        self,
        adapter: InstallerAdapter,
        runner: Runner,
        probe: Probe,
        console: Console,
        settings: Settings,
        shells_file: Path = SHELLS_FILE,
    ):
        self.adapter = adapter
        self.runner = runner
        self.probe = probe
        self.console = console
        self.settings = settings
        self.shells_file = shells_file

    def _done(self, detail: str = "") -> tuple[StepStatus, str]:
        if self.runner.dry_run:
            return StepStatus.PLANNED, detail
        return StepStatus.DONE, detail

    def execute(self, step: PlanStep) -> tuple[StepStatus, str]:
        handlers = {
            ActionKind.ENSURE_PACKAGE: self._ensure_package,
            ActionKind.REGISTER_SHELL: self._register_shell,
            ActionKind.SET_DEFAULT_SHELL: self._set_default_shell,
            ActionKind.CLONE_REPO: self._clone_repo,
            ActionKind.FETCH_FILE: self._fetch_file,
            ActionKind.REFRESH_INDEX: self._refresh_index,
            ActionKind.NOTE: self._note,
        }
        return handlers[step.action](step)

    def _ensure_package(self, step: PlanStep) -> tuple[StepStatus, str]:
        result = self.adapter.ensure(step.package)
        return _INSTALL_STATUS[result.outcome], result.detail

    def _register_shell(self, step: PlanStep) -> tuple[StepStatus, str]:
        shell = step.target
        if not self.probe.is_executable(Path(shell)):
            return StepStatus.SKIPPED, f"{shell} is not executable"
        if not self.probe.is_file(self.shells_file):
            return StepStatus.SKIPPED, f"{self.shells_file} not found"

        content = self.shells_file.read_text(encoding="utf-8", errors="replace")
        if shell in (line.strip() for line in content.splitlines()):
            return StepStatus.SKIPPED, "already registered"

        line = f"{shell}\n"
        if content and not content.endswith("\n"):
            line = "\n" + line
        self.console.info(f"Adding {shell} to {self.shells_file}")
        self.runner.run(
            Command.of("tee", "-a", str(self.shells_file)),
            privileged=True,
            input=line,
            capture=True,
        )
        return self._done()

    def _set_default_shell(self, step: PlanStep) -> tuple[StepStatus, str]:
        shell = step.target
        if not self.settings.shell:
            self.console.warn("SHELL env var not set; skipping default shell change")
            return StepStatus.SKIPPED, "SHELL not set"
        if self.settings.shell == shell:
            self.console.info(f"Default shell already set to {shell}")
            return StepStatus.SKIPPED, "already default"
        if not self.probe.is_executable(Path(shell)):
            self.console.warn(f"Shell not executable: {shell} (skipping)")
            return StepStatus.SKIPPED, "not executable"
        if not self.probe.has_command("chsh"):
            self.console.warn("chsh not found; skipping default shell change")
            return StepStatus.SKIPPED, "chsh not found"

        self.console.info(f"Setting default shell to {shell} (may prompt for password)")
        self.runner.run(Command.of("chsh", "-s", shell))
        return self._done()

    def _clone_repo(self, step: PlanStep) -> tuple[StepStatus, str]:
        dest = Path(step.target)
        if self.probe.is_dir(dest):
            self.console.info(f"{dest} already exists, skipping clone")
            return StepStatus.SKIPPED, "already present"

        self.console.info(f"Cloning {step.source_url} -> {dest}")
        self.runner.mkdir(dest.parent)
        self.runner.run(Command.of("git", "clone", step.source_url, str(dest)))
        if step.strip_git:
            self.runner.remove_tree(dest / ".git")
        return self._done()

    def _fetch_file(self, step: PlanStep) -> tuple[StepStatus, str]:
        dest = Path(step.target)
        if self.probe.is_executable(dest) or (not step.executable and self.probe.is_file(dest)):
            self.console.info(f"{dest} already installed")
            return StepStatus.SKIPPED, "already present"

        self.console.info(f"Fetching {step.source_url} -> {dest}")
        self.runner.mkdir(dest.parent)
        self.runner.run(Command.of("curl", "-fsSL", step.source_url, "-o", str(dest)))
        if step.executable:
            self.runner.make_executable(dest)
        return self._done()

    def _refresh_index(self, step: PlanStep) -> tuple[StepStatus, str]:
        self.adapter.refresh()
        return self._done()

    def _note(self, step: PlanStep) -> tuple[StepStatus, str]:
        self.console.info(step.description)
        return StepStatus.DONE, ""


def apply_plan(
    plan: Plan,
    adapter: InstallerAdapter,
    runner: Runner,
    probe: Probe,
    console: Console,
    settings: Settings,
    shells_file: Path = SHELLS_FILE,
) -> ApplyReport:
    """Execute every step in order.

    A failed step with the ABORT policy stops the run; CONTINUE steps only
    log a warning.
    """
    executor = PlanExecutor(adapter, runner, probe, console, settings, shells_file)
    report = ApplyReport()

    for step in plan.steps:
        try:
            status, detail = executor.execute(step)
        except (CommandError, InstallError, OSError) as e:
            _logging.debug(f"Step {step.action.value} {step.target} raised: {e}")
            status, detail = StepStatus.FAILED, str(e)

        report.results.append(StepResult(step, status, detail))
        if status is not StepStatus.FAILED:
            continue

        if step.on_failure is FailurePolicy.ABORT:
            console.error(f"Step failed: {step.description}")
            report.aborted = True
            break
        console.warn(f"Step failed: {step.description} (continuing)")

    return report


def summarize(report: ApplyReport) -> str:
    counts = {status: 0 for status in StepStatus}
    for result in report.results:
        counts[result.status] += 1
    parts = [f"{counts[s]} {s.value}" for s in StepStatus if counts[s]]
    summary = ", ".join(parts) if parts else "no steps"
    if report.aborted:
        summary += " (aborted)"
    return summary


__all__ = [
    "SHELLS_FILE",
    "PlanExecutor",
    "apply_plan",
    "summarize",
]
