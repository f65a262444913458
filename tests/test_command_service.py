"""Tests for CommandService"""

from types import SimpleNamespace

import pytest

from steadfast.application.command_service import CommandFailed, CommandService
from steadfast.domain.config import BackoffSpec


@pytest.fixture
def fake_run(monkeypatch):
    outcomes = []
    calls = []

    def _run(command, check=False):
        calls.append(command)
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(returncode=outcome)

    monkeypatch.setattr("steadfast.application.command_service.subprocess.run", _run)
    return SimpleNamespace(outcomes=outcomes, calls=calls)


def test_command_failed_message():
    error = CommandFailed(["make", "test"], 2)
    assert error.returncode == 2
    assert str(error) == "make test exited with status 2"


def test_success_without_retry(fake_run):
    fake_run.outcomes.extend([0])
    sleeps = []
    service = CommandService(BackoffSpec(count=3), sleep=sleeps.append)
    assert service.run(["true"]) == 0
    assert service.attempts == 1
    assert sleeps == []


def test_retries_follow_backoff(fake_run):
    fake_run.outcomes.extend([1, 1, 0])
    sleeps = []
    spec = BackoffSpec(count=3, first_delay=0.5, growth_factor=2.0, jitter_fraction=0.0)
    service = CommandService(spec, sleep=sleeps.append)
    assert service.run(["flaky"]) == 0
    assert service.attempts == 3
    assert sleeps == [0.5, 1.0]


def test_returns_last_status_when_exhausted(fake_run):
    fake_run.outcomes.extend([9, 8])
    service = CommandService(BackoffSpec(count=1), sleep=lambda _: None)
    assert service.run(["broken"]) == 8
    assert service.attempts == 2


def test_retry_on_filters_statuses(fake_run):
    fake_run.outcomes.extend([1])
    service = CommandService(BackoffSpec(count=4), retry_on=[75], sleep=lambda _: None)
    assert service.run(["strict"]) == 1
    assert service.attempts == 1


def test_start_failures_are_not_retried(fake_run):
    fake_run.outcomes.extend([FileNotFoundError("missing")])
    sleeps = []
    service = CommandService(BackoffSpec(count=3), sleep=sleeps.append)
    with pytest.raises(FileNotFoundError):
        service.run(["missing"])
    assert len(fake_run.calls) == 1
    assert sleeps == []


def test_attempts_reset_between_runs(fake_run):
    fake_run.outcomes.extend([1, 0, 0])
    service = CommandService(BackoffSpec(count=2), sleep=lambda _: None)
    assert service.run(["a"]) == 0
    assert service.run(["b"]) == 0
    assert service.attempts == 1
