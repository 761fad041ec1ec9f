# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Concurrency-bounded execution of category runners."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from ..config import AssessmentConfig
from ..core.context import RunContext
from ..core.errors import AssessmentCancelledError, ToolTimeoutError, format_seconds
from ..core.models import AssessmentCategory, AssessmentResult, CategoryResult, CategoryStatus
from ..discovery import relativize_issue
from ..priorities import PriorityManager
from ..registry import RunnerRegistry
from ..runners.base import AssessmentRunner
from ..summary import estimate_category_time

LOGGER = logging.getLogger(__name__)

@dataclass(slots=True)
class ExecutionOutcome:
    """Per-category results collected by :class:`CategoryExecutor`."""

    results: dict[AssessmentCategory, CategoryResult] = field(default_factory=dict)
    raw_results: dict[AssessmentCategory, AssessmentResult] = field(default_factory=dict)
    skipped_reasons: dict[AssessmentCategory, str] = field(default_factory=dict)
    runtimes: dict[AssessmentCategory, timedelta] = field(default_factory=dict)
    worker_count: int = 1
    total_runtime: timedelta = timedelta(0)


@dataclass(slots=True, frozen=True)
class _Scheduled:
    category: AssessmentCategory
    runner: AssessmentRunner
    parallel: bool


@dataclass(slots=True, frozen=True)
class _CategoryRun:
    result: CategoryResult
    raw: AssessmentResult | None
    runtime: timedelta
    skip_reason: str = ""


class CategoryExecutor:
    """Run category runners concurrently up to a worker bound.

    Parallelizable categories each get their own task on the pool.
    Categories whose runner cannot run in parallel share a single sequential
    lane, so they never overlap each other and only ever occupy one worker.
    Every requested category ends with a terminal :class:`CategoryStatus`,
    including those short-circuited by cancellation or by the run-wide
    deadline.
    """

    def __init__(
        self,
        registry: RunnerRegistry,
        priorities: PriorityManager | None = None,
        *,
        cpu_count: int | None = None,
    ) -> None:
        self._registry = registry
        self._priorities = priorities or PriorityManager()
        self._cpu_count = cpu_count
        self._results_lock = threading.Lock()

    def execute(
        self,
        ctx: RunContext,
        target: Path,
        config: AssessmentConfig,
        categories: Sequence[AssessmentCategory],
    ) -> ExecutionOutcome:
        """Run ``categories`` against ``target`` and collect their results.

        Args:
            ctx: Parent context; cancelling it stops dispatch and kills
                in-flight tool processes.
            target: Repository root being assessed; issue paths are reported
                relative to it.
            config: Assessment configuration.
            categories: Categories to run; each must have a registered runner.

        Returns:
            ExecutionOutcome: Results keyed by category plus timing data.
        """

        started = time.monotonic()
        outcome = ExecutionOutcome(worker_count=config.resolve_worker_count(self._cpu_count))
        run_ctx = ctx.child(timeout=config.total_timeout, label="assessment")
        ordered = self._priorities.ordered(categories)
        LOGGER.debug("executing categories=%s workers=%s", [c.value for c in ordered], outcome.worker_count)

        lanes = self._plan_lanes(outcome, ordered)
        with ThreadPoolExecutor(max_workers=outcome.worker_count, thread_name_prefix="pyassess") as pool:
            futures = [pool.submit(self._run_lane, run_ctx, lane, target, config) for lane in lanes]
            for future in as_completed(futures):
                for category, run in future.result():
                    self._record(outcome, category, run)

        outcome.total_runtime = timedelta(seconds=time.monotonic() - started)
        return outcome

    def _plan_lanes(self, outcome: ExecutionOutcome, ordered: Sequence[AssessmentCategory]) -> list[list[_Scheduled]]:
        # The sequential lane is queued at the position of its highest-priority member.
        lanes: list[list[_Scheduled]] = []
        sequential: list[_Scheduled] = []
        for category in ordered:
            runner = self._runner_for(category)
            started = time.monotonic()
            try:
                parallel = runner.can_run_in_parallel()
            except Exception as exc:  # runner failures are isolated to their category
                _log_failure(category, exc)
                self._record(outcome, category, self._finished(category, False, started, error=_error_text(exc)))
                continue
            scheduled = _Scheduled(category, runner, parallel)
            if parallel:
                lanes.append([scheduled])
                continue
            if not sequential:
                lanes.append(sequential)
            sequential.append(scheduled)
        return lanes

    def _runner_for(self, category: AssessmentCategory) -> AssessmentRunner:
        runner = self._registry.get_runner(category)
        if runner is None:
            raise KeyError(f"no runner registered for category '{category.value}'")
        return runner

    def _record(self, outcome: ExecutionOutcome, category: AssessmentCategory, run: _CategoryRun) -> None:
        with self._results_lock:
            outcome.results[category] = run.result
            outcome.runtimes[category] = run.runtime
            if run.raw is not None:
                outcome.raw_results[category] = run.raw
            if run.skip_reason:
                outcome.skipped_reasons[category] = run.skip_reason

    def _run_lane(
        self,
        run_ctx: RunContext,
        lane: Sequence[_Scheduled],
        target: Path,
        config: AssessmentConfig,
    ) -> list[tuple[AssessmentCategory, _CategoryRun]]:
        return [(item.category, self._run_category(run_ctx, item, target, config)) for item in lane]

    def _run_category(
        self,
        run_ctx: RunContext,
        item: _Scheduled,
        target: Path,
        config: AssessmentConfig,
    ) -> _CategoryRun:
        started = time.monotonic()
        if run_ctx.done:
            return self._skipped(item.category, item.parallel, _stop_reason(run_ctx, "before start"), started)
        return self._assess(run_ctx, item, target, config, started)

    def _assess(
        self,
        run_ctx: RunContext,
        item: _Scheduled,
        target: Path,
        config: AssessmentConfig,
        started: float,
    ) -> _CategoryRun:
        category, parallel = item.category, item.parallel
        category_ctx = run_ctx.child(timeout=config.timeout, label=category.value)
        try:
            raw = item.runner.assess(category_ctx, target, config)
            if category_ctx.expired:
                raise ToolTimeoutError(category.value, category_ctx.effective_timeout())
            status = _status_for(raw)
            result = CategoryResult(
                category=category,
                issues=tuple(relativize_issue(issue, target) for issue in raw.issues),
                priority=self._priorities.priority(category),
                parallelizable=parallel,
                status=status,
                error=raw.error if status is CategoryStatus.ERROR else "",
                estimated_time=estimate_category_time(raw.issues),
                execution_time=_since(started),
            )
        except ToolTimeoutError:
            message = f"{category.value} timed out after {_timeout_text(category_ctx)}"
            LOGGER.warning(message)
            return self._finished(category, parallel, started, error=message)
        except AssessmentCancelledError:
            return self._skipped(category, parallel, "cancelled", started)
        except Exception as exc:  # runner failures are isolated to their category
            _log_failure(category, exc)
            return self._finished(category, parallel, started, error=_error_text(exc))

        reason = "" if status is not CategoryStatus.SKIPPED else "runner reported nothing to assess"
        return _CategoryRun(result=result, raw=raw, runtime=_since(started), skip_reason=reason)

    def _finished(
        self,
        category: AssessmentCategory,
        parallel: bool,
        started: float,
        *,
        error: str,
    ) -> _CategoryRun:
        return _CategoryRun(
            result=CategoryResult(
                category=category,
                priority=self._priorities.priority(category),
                parallelizable=parallel,
                status=CategoryStatus.ERROR,
                error=error,
                execution_time=_since(started),
            ),
            raw=None,
            runtime=_since(started),
        )

    def _skipped(self, category: AssessmentCategory, parallel: bool, reason: str, started: float) -> _CategoryRun:
        LOGGER.info("%s skipped: %s", category.value, reason)
        return _CategoryRun(
            result=CategoryResult(
                category=category,
                priority=self._priorities.priority(category),
                parallelizable=parallel,
                status=CategoryStatus.SKIPPED,
                execution_time=_since(started),
            ),
            raw=None,
            runtime=_since(started),
            skip_reason=reason,
        )


def _log_failure(category: AssessmentCategory, exc: Exception) -> None:
    LOGGER.warning("%s runner failed: %s", category.value, exc, exc_info=LOGGER.isEnabledFor(logging.DEBUG))


def _error_text(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


def _status_for(result: AssessmentResult) -> CategoryStatus:
    if result.success:
        return CategoryStatus.SUCCESS
    if result.error:
        return CategoryStatus.ERROR
    return CategoryStatus.SKIPPED


def _stop_reason(ctx: RunContext, when: str) -> str:
    if ctx.cancelled:
        return f"cancelled {when}"
    return f"run timed out after {_timeout_text(ctx)} {when}"


def _timeout_text(ctx: RunContext) -> str:
    budget = ctx.effective_timeout()
    return format_seconds(budget) if budget is not None else "deadline"


def _since(started: float) -> timedelta:
    return timedelta(seconds=time.monotonic() - started)


def skipped_categories(
    requested: Sequence[AssessmentCategory],
    registry: RunnerRegistry,
) -> tuple[list[AssessmentCategory], dict[AssessmentCategory, str]]:
    """Split ``requested`` into runnable categories and skip reasons.

    Args:
        requested: Categories selected for the run.
        registry: Registry providing runners.

    Returns:
        tuple[list[AssessmentCategory], dict[AssessmentCategory, str]]:
        Runnable categories and the reasons the others were not scheduled.
    """

    runnable: list[AssessmentCategory] = []
    reasons: dict[AssessmentCategory, str] = {}
    for category in requested:
        runner = registry.get_runner(category)
        if runner is None:
            reasons[category] = "no runner registered"
        elif not runner.is_available():
            reasons[category] = "required tools not available"
        else:
            runnable.append(category)
    return runnable, reasons


def merge_reasons(*sources: Mapping[AssessmentCategory, str]) -> dict[str, str]:
    """Merge skip-reason mappings into a string-keyed dict sorted by category."""

    merged: dict[AssessmentCategory, str] = {}
    for source in sources:
        merged.update(source)
    return {category.value: merged[category] for category in sorted(merged, key=lambda item: item.value)}


__all__ = ["CategoryExecutor", "ExecutionOutcome", "merge_reasons", "skipped_categories"]
