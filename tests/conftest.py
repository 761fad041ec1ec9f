# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from subprocess import CompletedProcess

import pytest

from pyassess.config import AssessmentConfig
from pyassess.core.context import RunContext
from pyassess.core.models import AssessmentCategory, AssessmentResult, Issue
from pyassess.core.process import CommandOptions
from pyassess.core.severity import IssueSeverity
from pyassess.registry import RunnerRegistry


@dataclass
class FakeRunner:
    """Runner double that sleeps cooperatively and returns canned issues."""

    category: AssessmentCategory
    issues: list[Issue] = field(default_factory=list)
    delay: float = 0.0
    parallel: bool = True
    available: bool = True
    success: bool = True
    error_text: str = ""
    raises: Exception | None = None
    cooperative: bool = True
    intervals: list[tuple[float, float]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def can_run_in_parallel(self) -> bool:
        return self.parallel

    def estimated_time(self, target: Path) -> timedelta:
        return timedelta(seconds=self.delay)

    def is_available(self) -> bool:
        return self.available

    def assess(self, ctx: RunContext, target: Path, config: AssessmentConfig) -> AssessmentResult:
        started = time.monotonic()
        if self.delay:
            if self.cooperative:
                if ctx.wait(self.delay):
                    ctx.raise_if_done(self.category.value)
            else:
                time.sleep(self.delay)
        with self._lock:
            self.intervals.append((started, time.monotonic()))
        if self.raises is not None:
            raise self.raises
        return AssessmentResult(
            category=self.category,
            issues=list(self.issues),
            success=self.success,
            error=self.error_text,
        )


@dataclass
class CannedCommandRunner:
    """Command runner double answering commands from a prefix table."""

    responses: dict[tuple[str, ...], CompletedProcess[str]] = field(default_factory=dict)
    calls: list[list[str]] = field(default_factory=list)
    raises: Exception | None = None

    def add(self, prefix: Sequence[str], stdout: str = "", stderr: str = "", returncode: int = 0) -> None:
        self.responses[tuple(prefix)] = CompletedProcess(list(prefix), returncode, stdout, stderr)

    def __call__(
        self,
        args: Sequence[str],
        *,
        ctx: RunContext | None = None,
        options: CommandOptions | None = None,
        tool: str | None = None,
    ) -> CompletedProcess[str]:
        command = list(args)
        self.calls.append(command)
        if self.raises is not None:
            raise self.raises
        matches = [prefix for prefix in self.responses if tuple(command[: len(prefix)]) == prefix]
        if not matches:
            return CompletedProcess(command, 0, "", "")
        return self.responses[max(matches, key=len)]


@pytest.fixture
def make_issue() -> Callable[..., Issue]:
    """Return a factory building issues with sensible defaults."""

    def _make(
        file: str = "a.py",
        *,
        category: AssessmentCategory = AssessmentCategory.LINT,
        severity: IssueSeverity = IssueSeverity.MEDIUM,
        message: str = "finding",
        **extra: object,
    ) -> Issue:
        return Issue(file=file, category=category, severity=severity, message=message, **extra)

    return _make


@pytest.fixture
def fake_runner() -> type[FakeRunner]:
    return FakeRunner


@pytest.fixture
def make_registry() -> Callable[..., RunnerRegistry]:
    """Return a factory registering runners on a private registry."""

    def _make(*runners: FakeRunner) -> RunnerRegistry:
        registry = RunnerRegistry()
        for runner in runners:
            registry.register_runner(runner.category, runner)
        return registry

    return _make


@pytest.fixture
def canned_runner() -> CannedCommandRunner:
    return CannedCommandRunner()
