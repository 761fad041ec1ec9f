# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the adapter-aggregating category runner."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from pyassess.config import AssessmentConfig
from pyassess.core.context import RunContext
from pyassess.core.errors import AssessmentCancelledError, ToolExecutionError, ToolTimeoutError
from pyassess.core.models import AssessmentCategory, AssessmentMode, Issue, Suppression
from pyassess.runners import base as runner_base
from pyassess.runners.base import AdapterRunner, AssessmentRunner


@dataclass
class StubAdapter:
    name: str
    issues: list[Issue] = field(default_factory=list)
    available: bool = True
    error: Exception | None = None
    calls: int = 0

    def is_available(self) -> bool:
        return self.available

    def run(self, ctx: RunContext) -> list[Issue]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.issues)


@dataclass
class SuppressingAdapter(StubAdapter):
    suppressions: list[Suppression] = field(default_factory=list)

    def run_with_suppressions(self, ctx: RunContext) -> tuple[list[Issue], list[Suppression]]:
        return self.run(ctx), list(self.suppressions)


def _runner(*adapters: StubAdapter, tolerate: bool = False) -> AdapterRunner:
    return AdapterRunner(
        AssessmentCategory.SECURITY,
        lambda target, config: adapters,
        ("scanner",),
        tolerate_failures=tolerate,
    )


def test_adapter_runner_satisfies_protocol() -> None:
    assert isinstance(_runner(), AssessmentRunner)


def test_merges_issues_and_records_metrics(tmp_path: Path, make_issue: Callable[..., Issue]) -> None:
    first = StubAdapter("one", issues=[make_issue("a.go")])
    second = StubAdapter("two", issues=[make_issue("b.go"), make_issue("c.go")])
    missing = StubAdapter("three", available=False)

    result = _runner(first, missing, second).assess(RunContext(), tmp_path, AssessmentConfig())

    assert result.success
    assert [issue.file for issue in result.issues] == ["a.go", "b.go", "c.go"]
    assert result.metrics == {
        "adapters_run": ["one", "two"],
        "adapters_unavailable": ["three"],
        "adapter_failures": [],
    }
    assert missing.calls == 0


def test_failure_fails_category_when_not_tolerated(tmp_path: Path, make_issue: Callable[..., Issue]) -> None:
    broken = StubAdapter("broken", error=ToolExecutionError("broken", "unrecognised output"))
    healthy = StubAdapter("healthy", issues=[make_issue()])

    result = _runner(broken, healthy).assess(RunContext(), tmp_path, AssessmentConfig())

    assert not result.success
    assert result.error == "broken: unrecognised output"
    assert len(result.issues) == 1


def test_tolerated_failure_keeps_partial_results(tmp_path: Path, make_issue: Callable[..., Issue]) -> None:
    broken = StubAdapter("broken", error=ToolExecutionError("broken", "crashed"))
    healthy = StubAdapter("healthy", issues=[make_issue()])

    result = _runner(broken, healthy, tolerate=True).assess(RunContext(), tmp_path, AssessmentConfig())

    assert result.success
    assert result.metrics["adapter_failures"] == ["broken: crashed"]


def test_tolerated_failures_fail_when_every_adapter_failed(tmp_path: Path) -> None:
    adapters = [StubAdapter(name, error=ToolExecutionError(name, "crashed")) for name in ("a", "b")]

    result = _runner(*adapters, tolerate=True).assess(RunContext(), tmp_path, AssessmentConfig())

    assert not result.success
    assert result.error == "a: crashed; b: crashed"


def test_nothing_ran_is_reported_without_error(tmp_path: Path) -> None:
    result = _runner(StubAdapter("gone", available=False)).assess(RunContext(), tmp_path, AssessmentConfig())

    assert not result.success
    assert result.error == ""


@pytest.mark.parametrize("error", [ToolTimeoutError("slow", 1.0), AssessmentCancelledError("security")])
def test_timeouts_and_cancellation_propagate(tmp_path: Path, error: Exception) -> None:
    runner = _runner(StubAdapter("slow", error=error), tolerate=True)

    with pytest.raises(type(error)):
        runner.assess(RunContext(), tmp_path, AssessmentConfig())


def test_no_op_mode_runs_nothing(tmp_path: Path) -> None:
    adapter = StubAdapter("one")

    result = _runner(adapter).assess(RunContext(), tmp_path, AssessmentConfig(mode=AssessmentMode.NO_OP))

    assert result.success
    assert adapter.calls == 0


def test_cancelled_context_stops_before_adapters(tmp_path: Path) -> None:
    adapter = StubAdapter("one")
    ctx = RunContext()
    ctx.cancel()

    with pytest.raises(AssessmentCancelledError):
        _runner(adapter).assess(ctx, tmp_path, AssessmentConfig())
    assert adapter.calls == 0


def test_suppressions_collected_when_tracking(tmp_path: Path) -> None:
    adapter = SuppressingAdapter("gosec", suppressions=[Suppression(tool="gosec", rule_id="G204", file="a.go")])

    tracked = _runner(adapter).assess(RunContext(), tmp_path, AssessmentConfig(track_suppressions=True))
    untracked = _runner(adapter).assess(RunContext(), tmp_path, AssessmentConfig())

    assert tracked.suppression_report is not None
    assert tracked.suppression_report.summary.by_tool == {"gosec": 1}
    assert untracked.suppression_report is None


def test_availability_follows_path_lookup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(runner_base, "find_executable", lambda name: None)
    assert not _runner().is_available()

    monkeypatch.setattr(runner_base, "find_executable", lambda name: f"/usr/bin/{name}")
    assert _runner().is_available()
