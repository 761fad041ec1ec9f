# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Assessment runner contract and the adapter-aggregating runner."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..adapters.base import SuppressionAwareAdapter, ToolAdapter
from ..config import AssessmentConfig
from ..core.context import RunContext
from ..core.errors import AssessmentCancelledError, ToolExecutionError, ToolTimeoutError
from ..core.models import AssessmentCategory, AssessmentMode, AssessmentResult, Issue, JsonValue, Suppression
from ..core.process import find_executable
from ..suppressions import build_suppression_report

LOGGER = logging.getLogger(__name__)

type AdapterFactory = Callable[[Path, AssessmentConfig], Sequence[ToolAdapter]]


@runtime_checkable
class AssessmentRunner(Protocol):
    """Contract implemented by every category runner."""

    @property
    def category(self) -> AssessmentCategory:
        """Return the category the runner is responsible for."""
        ...

    def assess(self, ctx: RunContext, target: Path, config: AssessmentConfig) -> AssessmentResult:
        """Assess ``target`` and return the category result."""
        ...

    def can_run_in_parallel(self) -> bool:
        """Return ``True`` when the runner may overlap with other runners."""
        ...

    def estimated_time(self, target: Path) -> timedelta:
        """Return a rough execution time estimate for ``target``."""
        ...

    def is_available(self) -> bool:
        """Return ``True`` when at least one backing tool is installed."""
        ...


@dataclass(slots=True)
class _AdapterOutcome:
    issues: list[Issue] = field(default_factory=list)
    suppressions: list[Suppression] = field(default_factory=list)
    ran: list[str] = field(default_factory=list)
    unavailable: list[str] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)


@dataclass(slots=True)
class AdapterRunner:
    """Run every available adapter of one category and merge their issues.

    Args:
        category: Category the runner reports for.
        adapters: Factory building the adapters for a target and config.
        tools: Executables whose presence makes the runner available.
        parallel: Whether the category may overlap with other categories.
        tolerate_failures: Keep going when some adapters fail; the category
            only fails when every adapter that ran failed.
        base_estimate: Execution time estimate reported to the planner.
    """

    category: AssessmentCategory
    adapters: AdapterFactory
    tools: tuple[str, ...]
    parallel: bool = True
    tolerate_failures: bool = False
    base_estimate: timedelta = timedelta(seconds=30)

    def can_run_in_parallel(self) -> bool:
        return self.parallel

    def estimated_time(self, target: Path) -> timedelta:
        return self.base_estimate

    def is_available(self) -> bool:
        return any(find_executable(tool) is not None for tool in self.tools)

    def assess(self, ctx: RunContext, target: Path, config: AssessmentConfig) -> AssessmentResult:
        started = time.monotonic()
        adapters = list(self.adapters(target, config))
        if config.mode is AssessmentMode.NO_OP:
            for adapter in adapters:
                if adapter.is_available():
                    LOGGER.info("[NO-OP] would run %s for %s", adapter.name, self.category.value)
            return AssessmentResult(category=self.category, execution_time=_elapsed(started))

        outcome = self._run_adapters(ctx, adapters, config)
        metrics: dict[str, JsonValue] = {
            "adapters_run": list(outcome.ran),
            "adapters_unavailable": list(outcome.unavailable),
            "adapter_failures": list(outcome.failures),
        }
        result = AssessmentResult(
            category=self.category,
            issues=outcome.issues,
            execution_time=_elapsed(started),
            metrics=metrics,
        )
        if config.track_suppressions and outcome.suppressions:
            result.suppression_report = build_suppression_report(outcome.suppressions)
        if outcome.failures and (not self.tolerate_failures or len(outcome.failures) == len(outcome.ran)):
            result.success = False
            result.error = "; ".join(outcome.failures)
        elif not outcome.ran:
            result.success = False
        return result

    def _run_adapters(
        self,
        ctx: RunContext,
        adapters: Sequence[ToolAdapter],
        config: AssessmentConfig,
    ) -> _AdapterOutcome:
        outcome = _AdapterOutcome()
        for adapter in adapters:
            ctx.raise_if_done(self.category.value)
            if not adapter.is_available():
                LOGGER.info("%s not available; skipping for %s", adapter.name, self.category.value)
                outcome.unavailable.append(adapter.name)
                continue
            outcome.ran.append(adapter.name)
            try:
                if config.track_suppressions and isinstance(adapter, SuppressionAwareAdapter):
                    issues, suppressions = adapter.run_with_suppressions(ctx)
                    outcome.suppressions.extend(suppressions)
                else:
                    issues = adapter.run(ctx)
            except (AssessmentCancelledError, ToolTimeoutError):
                raise
            except ToolExecutionError as exc:
                if self.tolerate_failures:
                    LOGGER.warning("%s failed: %s", adapter.name, exc.detail)
                outcome.failures.append(str(exc))
                continue
            outcome.issues.extend(issues)
        return outcome


def _elapsed(started: float) -> timedelta:
    return timedelta(seconds=time.monotonic() - started)


__all__ = ["AdapterFactory", "AdapterRunner", "AssessmentRunner"]
