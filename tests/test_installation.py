"""Tests for plan execution."""

import pytest

from bootstrap_machine.catalog import load_catalog
from bootstrap_machine.detect import HostOS, HostProfile, Profile
from bootstrap_machine.installer import (
    ActionKind,
    ApplyReport,
    DnfAdapter,
    FailurePolicy,
    PackageSpec,
    PacmanAdapter,
    Plan,
    PlanStep,
    StepStatus,
    adapter_for,
    apply_plan,
    plan_provisioning,
    summarize,
)

HOST = HostProfile(HostOS.FEDORA, Profile.DESKTOP, "41")


def _package(name):
    return PlanStep(
        action=ActionKind.ENSURE_PACKAGE,
        target=name,
        description=f"install {name}",
        package=PackageSpec(name),
    )


def _shell_steps(shell):
    return [
        PlanStep(ActionKind.REGISTER_SHELL, shell, "register", FailurePolicy.CONTINUE),
        PlanStep(ActionKind.SET_DEFAULT_SHELL, shell, "set default", FailurePolicy.CONTINUE),
    ]


@pytest.fixture
def fake_shell(temp_dir):
    path = temp_dir / "zsh"
    path.write_text("#!/bin/sh\n")
    path.chmod(0o755)
    return path


@pytest.fixture
def shells_file(temp_dir):
    path = temp_dir / "shells"
    path.write_text("/bin/sh\n/bin/bash\n")
    return path


@pytest.fixture
def execute(runner, make_probe, console, settings, shells_file):
    """Run steps with a dnf adapter; extra commands may be put on PATH."""

    def _execute(steps, *commands, run=runner, settings=settings):
        probe = make_probe(run, "dnf", "rpm", *commands)
        adapter = DnfAdapter(run, probe, console)
        return apply_plan(Plan(HOST, steps), adapter, run, probe, console, settings, shells_file)

    return _execute


def test_package_outcomes_map_to_status(execute, runner):
    runner.script("rpm", "-q", "jq", returncode=1)

    report = execute([_package("zsh"), _package("jq")])

    assert [r.status for r in report.results] == [StepStatus.SKIPPED, StepStatus.DONE]
    assert report.ok


def test_abort_policy_stops_run(execute, runner, capsys):
    runner.script("rpm", "-q", returncode=1)
    runner.script("dnf", "install", "-y", "broken", returncode=1)

    report = execute([_package("broken"), _package("zsh")])

    assert report.aborted
    assert not report.ok
    assert len(report.results) == 1
    assert report.failed[0].step.target == "broken"
    assert not runner.ran("dnf", "install", "-y", "zsh")
    assert "Step failed: install broken" in capsys.readouterr().err


def test_continue_policy_keeps_going(execute, runner, make_settings, fake_shell):
    runner.script("chsh", returncode=1)
    steps = _shell_steps(str(fake_shell)) + [_package("zsh")]

    report = execute(steps, "chsh", settings=make_settings(shell="/bin/bash"))

    statuses = [r.status for r in report.results]
    assert statuses == [StepStatus.DONE, StepStatus.FAILED, StepStatus.SKIPPED]
    assert not report.aborted


def test_register_shell_appends_with_tee(execute, runner, fake_shell, shells_file):
    report = execute(_shell_steps(str(fake_shell))[:1])

    assert report.results[0].status is StepStatus.DONE
    index = runner.calls.index(("sudo", "tee", "-a", str(shells_file)))
    assert runner.inputs[index] == f"{fake_shell}\n"


def test_register_shell_adds_missing_newline(execute, runner, fake_shell, shells_file):
    shells_file.write_text("/bin/sh")

    execute(_shell_steps(str(fake_shell))[:1])

    index = runner.calls.index(("sudo", "tee", "-a", str(shells_file)))
    assert runner.inputs[index] == f"\n{fake_shell}\n"


def test_register_shell_already_listed(execute, runner, fake_shell, shells_file):
    shells_file.write_text(f"/bin/sh\n{fake_shell}\n")

    report = execute(_shell_steps(str(fake_shell))[:1])

    assert report.results[0].status is StepStatus.SKIPPED
    assert not runner.ran("tee")


def test_register_shell_skips_without_registry(execute, runner, fake_shell, shells_file):
    shells_file.unlink()
    report = execute(_shell_steps(str(fake_shell))[:1])
    assert report.results[0].status is StepStatus.SKIPPED


def test_register_shell_skips_non_executable(execute, runner, temp_dir):
    report = execute(_shell_steps(str(temp_dir / "nope"))[:1])
    assert report.results[0].status is StepStatus.SKIPPED
    assert runner.calls == []


def test_set_default_shell_runs_chsh(execute, runner, fake_shell):
    report = execute(_shell_steps(str(fake_shell))[1:], "chsh")

    assert report.results[0].status is StepStatus.DONE
    assert ("chsh", "-s", str(fake_shell)) in runner.calls


def test_set_default_shell_without_shell_env(execute, runner, make_settings, fake_shell, capsys):
    report = execute(_shell_steps(str(fake_shell))[1:], "chsh", settings=make_settings(shell=None))

    assert report.results[0].status is StepStatus.SKIPPED
    assert "SHELL env var not set" in capsys.readouterr().out
    assert not runner.ran("chsh")


def test_set_default_shell_already_default(execute, runner, make_settings, fake_shell):
    report = execute(
        _shell_steps(str(fake_shell))[1:], "chsh", settings=make_settings(shell=str(fake_shell))
    )
    assert report.results[0].detail == "already default"
    assert not runner.ran("chsh")


def test_set_default_shell_without_chsh(execute, runner, fake_shell, capsys):
    report = execute(_shell_steps(str(fake_shell))[1:])

    assert report.results[0].status is StepStatus.SKIPPED
    assert "chsh not found" in capsys.readouterr().out


def test_clone_skips_existing(execute, runner, home):
    dest = home / ".config" / "nvim"
    dest.mkdir(parents=True)
    step = PlanStep(ActionKind.CLONE_REPO, str(dest), "clone", source_url="https://x/starter")

    report = execute([step])

    assert report.results[0].status is StepStatus.SKIPPED
    assert runner.calls == []


def test_clone_strips_git_dir(execute, runner, home):
    dest = home / ".config" / "nvim"
    step = PlanStep(
        ActionKind.CLONE_REPO, str(dest), "clone", source_url="https://x/starter", strip_git=True
    )

    report = execute([step])

    assert report.results[0].status is StepStatus.DONE
    assert dest.parent.is_dir()
    assert ("git", "clone", "https://x/starter", str(dest)) in runner.calls


def test_clone_failure_aborts(execute, runner, home):
    runner.script("git", "clone", returncode=128, stderr="Repository not found")
    step = PlanStep(ActionKind.CLONE_REPO, str(home / "zinit"), "clone", source_url="https://x/zinit")

    report = execute([step, _package("zsh")])

    assert report.aborted
    assert "Repository not found" in report.results[0].detail


def test_fetch_dry_run(execute, dry_runner, home, make_settings):
    dest = home / ".local" / "bin" / "ezpodman"
    step = PlanStep(
        ActionKind.FETCH_FILE, str(dest), "fetch", source_url="https://x/ezpodman", executable=True
    )

    report = execute([step], run=dry_runner)

    assert report.results[0].status is StepStatus.PLANNED
    assert not dest.parent.exists()
    assert dry_runner.announced == [
        f"mkdir -p {dest.parent}",
        f"curl -fsSL https://x/ezpodman -o {dest}",
        f"chmod +x {dest}",
    ]


def test_fetch_skips_existing_executable(execute, runner, fake_shell):
    step = PlanStep(
        ActionKind.FETCH_FILE, str(fake_shell), "fetch", source_url="https://x/y", executable=True
    )
    report = execute([step])
    assert report.results[0].status is StepStatus.SKIPPED
    assert not runner.ran("curl")


def test_refresh_uses_adapter(runner, make_probe, console, settings, shells_file):
    probe = make_probe(runner, "pacman")
    adapter = PacmanAdapter(runner, probe, console)
    step = PlanStep(ActionKind.REFRESH_INDEX, "package-index", "refresh")

    report = apply_plan(Plan(HOST, [step]), adapter, runner, probe, console, settings, shells_file)

    assert report.results[0].status is StepStatus.DONE
    assert runner.calls == [("sudo", "pacman", "-Sy", "--noconfirm")]


def test_note_is_printed(execute, capsys):
    step = PlanStep(ActionKind.NOTE, "note", "run podman machine init", FailurePolicy.CONTINUE)
    report = execute([step])
    assert report.results[0].status is StepStatus.DONE
    assert "run podman machine init" in capsys.readouterr().out


def test_summarize():
    assert summarize(ApplyReport()) == "no steps"


def test_summarize_counts(execute, runner):
    runner.script("rpm", "-q", "jq", returncode=1)
    runner.script("dnf", "install", "-y", "jq", returncode=1)

    report = execute([_package("zsh"), _package("jq")])

    assert summarize(report) == "1 skipped, 1 failed (aborted)"


_QUERY_PREFIXES = (
    ("rpm", "-q"),
    ("pacman", "-Qi"),
    ("brew", "list"),
    ("dnf", "copr", "--help"),
    ("dnf", "config-manager", "--help"),
)


def _is_query(argv):
    return any(argv[: len(prefix)] == prefix for prefix in _QUERY_PREFIXES)


@pytest.mark.parametrize("host_os", [HostOS.MACOS, HostOS.FEDORA, HostOS.ARCH])
def test_dry_run_full_plan_mutates_nothing(
    host_os, dry_runner, make_probe, console, make_settings, make_host, shells_file, home, mocker
):
    dry_runner.default_returncode = 1
    settings = make_settings(dry_run=True)
    plan = plan_provisioning(make_host(os=host_os), load_catalog(), settings, sudo=dry_runner.sudo)
    shells = {step.target for step in plan.steps if step.action is ActionKind.REGISTER_SHELL}
    probe = make_probe(dry_runner, "brew", "dnf", "rpm", "pacman", "chsh")
    mocker.patch.object(probe, "is_executable", side_effect=lambda path: str(path) in shells)
    adapter = adapter_for(host_os, dry_runner, probe, console)
    registry = shells_file.read_text()

    report = apply_plan(plan, adapter, dry_runner, probe, console, settings, shells_file)

    assert not report.aborted
    assert dry_runner.calls
    assert all(_is_query(argv) for argv in dry_runner.calls)
    assert list(home.iterdir()) == []
    assert shells_file.read_text() == registry
    assert dry_runner.announced
    for result in report.results:
        if result.step.action in (
            ActionKind.REGISTER_SHELL,
            ActionKind.SET_DEFAULT_SHELL,
            ActionKind.CLONE_REPO,
        ):
            assert result.status is StepStatus.PLANNED
