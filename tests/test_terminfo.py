"""Tests for pushing terminfo entries to remote targets."""

import pytest

from bootstrap_machine.errors import PreconditionError
from bootstrap_machine.terminfo import (
    PushOutcome,
    TerminfoPusher,
    TerminfoTarget,
    Transport,
    parse_target,
)

HAS_ENTRY = "infocmp -x xterm-ghostty >/dev/null 2>&1"
HAS_TIC = "command -v tic >/dev/null 2>&1"


@pytest.fixture
def make_pusher(settings, runner, make_probe, console):
    def _make(*commands, run=runner):
        return TerminfoPusher(settings, run, make_probe(run, "infocmp", *commands), console)

    return _make


@pytest.mark.parametrize(
    "text,expected",
    [
        ("ssh:fedora01", TerminfoTarget(Transport.SSH, "fedora01")),
        ("incus:arch01", TerminfoTarget(Transport.INCUS, "arch01")),
        ("ssh:user@host:22", TerminfoTarget(Transport.SSH, "user@host:22")),
    ],
)
def test_parse_target(text, expected):
    assert parse_target(text) == expected


@pytest.mark.parametrize("text", ["fedora01", "ssh:", "docker:web", ":host"])
def test_parse_target_invalid(text):
    with pytest.raises(ValueError, match="Unknown target format"):
        parse_target(text)


def test_requires_local_infocmp(settings, runner, make_probe, console):
    pusher = TerminfoPusher(settings, runner, make_probe(runner), console)
    with pytest.raises(PreconditionError, match="infocmp not found"):
        pusher.require_local_terminfo()


def test_requires_local_entry(make_pusher, runner):
    runner.script("infocmp", "-x", "xterm-ghostty", returncode=1)
    with pytest.raises(PreconditionError, match="cannot export terminfo 'xterm-ghostty'"):
        make_pusher().require_local_terminfo()


def test_ssh_already_present(make_pusher, runner):
    result = make_pusher().push(TerminfoTarget(Transport.SSH, "fedora01"))

    assert result.outcome is PushOutcome.ALREADY_PRESENT
    assert runner.calls == [("ssh", "fedora01", HAS_ENTRY)]


def test_ssh_missing_tic(make_pusher, runner, capsys):
    runner.script("ssh", "fedora01", HAS_ENTRY, returncode=1)
    runner.script("ssh", "fedora01", HAS_TIC, returncode=1)

    result = make_pusher().push(TerminfoTarget(Transport.SSH, "fedora01"))

    assert result.outcome is PushOutcome.MISSING_TIC
    assert result.failed
    err = capsys.readouterr().err
    assert "lacks 'tic'" in err
    assert "sudo dnf install -y ncurses" in err


def test_ssh_install_pipes_entry(make_pusher, runner):
    runner.script("ssh", "fedora01", HAS_ENTRY, returncode=1)
    runner.script("infocmp", "-x", "xterm-ghostty", stdout="xterm-ghostty|ghostty,\n")

    result = make_pusher().push(TerminfoTarget(Transport.SSH, "fedora01"))

    assert result.outcome is PushOutcome.INSTALLED
    assert runner.calls[-2:] == [
        ("infocmp", "-x", "xterm-ghostty"),
        ("ssh", "fedora01", "--", "tic", "-x", "-"),
    ]
    assert runner.inputs[-1] == "xterm-ghostty|ghostty,\n"


def test_ssh_install_failure(make_pusher, runner):
    runner.script("ssh", "fedora01", HAS_ENTRY, returncode=1)
    runner.script("ssh", "fedora01", "--", "tic", returncode=1, stderr="tic: permission denied")

    result = make_pusher().push(TerminfoTarget(Transport.SSH, "fedora01"))

    assert result.outcome is PushOutcome.FAILED
    assert "permission denied" in result.detail


def test_incus_requires_local_client(make_pusher):
    with pytest.raises(PreconditionError, match="incus command not found"):
        make_pusher().push(TerminfoTarget(Transport.INCUS, "arch01"))


def test_incus_install(make_pusher, runner):
    runner.script("incus", "exec", "arch01", "--", "sh", "-lc", HAS_ENTRY, returncode=1)

    result = make_pusher("incus").push(TerminfoTarget(Transport.INCUS, "arch01"))

    assert result.outcome is PushOutcome.INSTALLED
    assert ("incus", "exec", "arch01", "--", "sh", "-lc", HAS_TIC) in runner.calls
    assert runner.calls[-1] == ("incus", "exec", "arch01", "--", "tic", "-x", "-")


def test_dry_run_checks_but_does_not_install(make_pusher, dry_runner):
    dry_runner.script("ssh", "host", HAS_ENTRY, returncode=1)

    result = make_pusher(run=dry_runner).push(TerminfoTarget(Transport.SSH, "host"))

    assert result.outcome is PushOutcome.PLANNED
    assert dry_runner.calls == [("ssh", "host", HAS_ENTRY), ("ssh", "host", HAS_TIC)]
    assert dry_runner.announced == ["infocmp -x xterm-ghostty | ssh host -- tic -x -"]


def test_batch_aggregation(make_pusher, runner):
    runner.script("ssh", "bad", HAS_ENTRY, returncode=1)
    runner.script("ssh", "bad", HAS_TIC, returncode=1)
    pusher = make_pusher()

    results = pusher.push_all(
        [TerminfoTarget(Transport.SSH, "bad"), TerminfoTarget(Transport.SSH, "good")]
    )

    assert [r.outcome for r in results] == [PushOutcome.MISSING_TIC, PushOutcome.ALREADY_PRESENT]
    assert TerminfoPusher.batch_failed(results)
    assert not TerminfoPusher.batch_failed(results[1:])
