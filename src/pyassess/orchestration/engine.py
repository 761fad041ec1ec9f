# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Assessment engine tying runners, planning and reporting together."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from pathlib import Path

from .. import __version__
from ..adapters.base import CommandRunner
from ..config import AssessmentConfig
from ..core.context import RunContext
from ..core.models import (
    AssessmentCategory,
    AssessmentReport,
    CategoryResult,
    ExtendedWorkplan,
    ReportMetadata,
    SuppressionReport,
)
from ..core.process import run_command
from ..gitctx import ChangeSet, collect_change_set, mark_change_related
from ..priorities import PriorityManager
from ..registry import RunnerRegistry
from ..runners.builtin import default_registry
from ..summary import DEFAULT_HEALTH_WEIGHTS, HealthWeights, calculate_summary
from ..suppressions import SuppressionParser, build_suppression_report, merge_suppression_reports
from ..workflow import plan_workflow
from .executor import CategoryExecutor, ExecutionOutcome, merge_reasons, skipped_categories

LOGGER = logging.getLogger(__name__)


class AssessmentEngine:
    """Run an assessment over a repository and assemble the report."""

    def __init__(
        self,
        registry: RunnerRegistry | None = None,
        priorities: PriorityManager | None = None,
        *,
        weights: HealthWeights = DEFAULT_HEALTH_WEIGHTS,
        git_runner: CommandRunner = run_command,
        collect_changes: bool = True,
        cpu_count: int | None = None,
    ) -> None:
        self._registry = registry if registry is not None else default_registry()
        self._priorities = priorities or PriorityManager()
        self._weights = weights
        self._git_runner = git_runner
        self._collect_changes = collect_changes
        self._cpu_count = cpu_count

    @property
    def priorities(self) -> PriorityManager:
        return self._priorities

    def select_categories(
        self,
        config: AssessmentConfig,
        priorities: PriorityManager | None = None,
    ) -> tuple[list[AssessmentCategory], dict[AssessmentCategory, str]]:
        """Return runnable categories and the reasons others are skipped.

        Explicitly selected categories without a registered runner are
        reported as skipped rather than silently dropped.
        """

        registered = self._registry.all_categories()
        requested = list(config.selected_categories) if config.selected_categories else registered
        unselected = {category: "not selected" for category in registered if category not in requested}
        runnable, reasons = skipped_categories(requested, self._registry)
        reasons.update(unselected)
        return (priorities or self._priorities).ordered(runnable), reasons

    def run_assessment(
        self,
        target: Path,
        config: AssessmentConfig,
        ctx: RunContext | None = None,
    ) -> AssessmentReport:
        """Assess ``target`` and return the complete report.

        Args:
            target: Repository root to assess.
            config: Assessment configuration.
            ctx: Parent context; a fresh one is created when omitted.

        Returns:
            AssessmentReport: Report with categories, summary and workflow.

        Raises:
            ConfigError: If ``config.priority`` is malformed.
        """

        started = time.monotonic()
        run_ctx = ctx or RunContext(label="assessment")
        # Overrides apply to this run only.
        priorities = self._priorities.copy()
        priorities.parse(config.priority)
        target = target.resolve()

        categories, not_scheduled = self.select_categories(config, priorities)
        for category, reason in not_scheduled.items():
            if reason != "not selected":
                LOGGER.info("%s skipped: %s", category.value, reason)

        executor = CategoryExecutor(self._registry, priorities, cpu_count=self._cpu_count)
        outcome = executor.execute(run_ctx, target, config, categories)

        change_set = self._change_set(run_ctx, target)
        results = _annotate(outcome.results, change_set, target)
        workflow = plan_workflow(results)
        summary = calculate_summary(results, workflow, self._weights)

        report = AssessmentReport(
            metadata=ReportMetadata(
                version=__version__,
                target=str(target),
                execution_time=timedelta(seconds=time.monotonic() - started),
                commands_run=run_ctx.commands_run,
                fail_on=config.fail_on,
                change_context=change_set.context if change_set is not None else None,
            ),
            summary=summary,
            categories=results,
            workflow=workflow,
            suppression_report=_suppression_report(target, config, outcome),
        )
        if config.extended:
            report.workplan = self._workplan(target, categories, outcome, not_scheduled)

        LOGGER.info("concurrency summary: workers=%d categories=%d", outcome.worker_count, len(categories))
        for category in categories:
            LOGGER.debug("runtime %-16s %s", category.value, outcome.runtimes.get(category))
        LOGGER.info(
            "assessment completed: %d issue(s), estimated fix time %s",
            summary.total_issues,
            summary.estimated_time,
        )
        return report

    def _change_set(self, ctx: RunContext, target: Path) -> ChangeSet | None:
        if not self._collect_changes or ctx.done:
            return None
        return collect_change_set(target, ctx=ctx, runner=self._git_runner)

    def _workplan(
        self,
        target: Path,
        categories: list[AssessmentCategory],
        outcome: ExecutionOutcome,
        not_scheduled: dict[AssessmentCategory, str],
    ) -> ExtendedWorkplan:
        return ExtendedWorkplan(
            categories_planned=categories,
            categories_skipped=merge_reasons(not_scheduled, outcome.skipped_reasons),
            worker_count=outcome.worker_count,
            category_estimates=self._estimates(target, categories),
            category_runtimes={category.value: runtime for category, runtime in outcome.runtimes.items()},
            total_runtime=outcome.total_runtime,
        )

    def _estimates(self, target: Path, categories: list[AssessmentCategory]) -> dict[str, timedelta]:
        estimates: dict[str, timedelta] = {}
        for category in categories:
            runner = self._registry.get_runner(category)
            if runner is not None:
                estimates[category.value] = runner.estimated_time(target)
        return estimates


def _annotate(
    results: dict[AssessmentCategory, CategoryResult],
    change_set: ChangeSet | None,
    target: Path,
) -> dict[AssessmentCategory, CategoryResult]:
    # Report order follows priority, never completion order.
    ordered = sorted(results.values(), key=lambda result: (result.priority, result.category.value))
    if change_set is None or not change_set.files:
        return {result.category: result for result in ordered}
    return {
        result.category: result.model_copy(
            update={"issues": tuple(mark_change_related(result.issues, change_set, target))},
        )
        for result in ordered
    }


def _suppression_report(
    target: Path,
    config: AssessmentConfig,
    outcome: ExecutionOutcome,
) -> SuppressionReport | None:
    """Merge adapter-reported suppressions, scanning sources when none were reported."""

    merged = merge_suppression_reports(
        raw.suppression_report for raw in outcome.raw_results.values() if raw.suppression_report is not None
    )
    if merged is not None or not config.track_suppressions:
        return merged
    found = [item for item in SuppressionParser().parse_directory(target) if config.path_included(item.file)]
    return build_suppression_report(found)


def run_assessment(
    target: Path,
    config: AssessmentConfig,
    *,
    registry: RunnerRegistry | None = None,
    ctx: RunContext | None = None,
) -> AssessmentReport:
    """Convenience wrapper running a one-off :class:`AssessmentEngine`."""

    return AssessmentEngine(registry).run_assessment(target, config, ctx)


__all__ = ["AssessmentEngine", "run_assessment"]
